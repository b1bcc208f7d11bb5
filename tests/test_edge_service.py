import numpy as np

from plotcrop.models.pixel_buffer import PixelBuffer
from plotcrop.services.edge_service import EdgeDetectionService, STRONG, WEAK
from plotcrop.services.filter_service import FilterService


def step_image(height=12, width=12, column=6):
    src = np.zeros((height, width), dtype=np.uint8)
    src[:, column:] = 255
    return PixelBuffer(src)


def test_sobel_border_is_zero():
    magnitude, direction = EdgeDetectionService.sobel_gradients(step_image())
    assert np.all(magnitude[0, :] == 0)
    assert np.all(magnitude[:, -1] == 0)
    assert np.all(direction[-1, :] == 0)


def test_sobel_vertical_step():
    magnitude, direction = EdgeDetectionService.sobel_gradients(step_image())
    # columns 5 and 6 straddle the step: gx = 255 * 4
    assert magnitude[5, 5] == 1020
    assert magnitude[5, 6] == 1020
    assert magnitude[5, 3] == 0
    assert direction[5, 5] == 0


def test_non_max_suppression_keeps_ties():
    magnitude = np.zeros((5, 5), dtype=np.float32)
    magnitude[:, 2] = 200
    magnitude[:, 3] = 200
    direction = np.zeros((5, 5), dtype=np.float32)
    out = EdgeDetectionService.non_max_suppression(magnitude, direction, 60, 140)
    assert out[2, 2] == STRONG
    assert out[2, 3] == STRONG
    assert out[2, 1] == 0


def test_non_max_suppression_classifies_weak():
    magnitude = np.zeros((3, 3), dtype=np.float32)
    magnitude[1, 1] = 100
    direction = np.zeros((3, 3), dtype=np.float32)
    out = EdgeDetectionService.non_max_suppression(magnitude, direction, 60, 140)
    assert out[1, 1] == WEAK


def test_non_max_suppression_opposite_directions_share_bins():
    magnitude = np.zeros((5, 5), dtype=np.float32)
    magnitude[1:4, 2] = [150, 200, 150]
    for theta in (np.pi / 2, -np.pi / 2):
        direction = np.full((5, 5), theta, dtype=np.float32)
        out = EdgeDetectionService.non_max_suppression(magnitude, direction, 60, 140)
        assert out[2, 2] == STRONG
        # vertical neighbours of the maximum are suppressed
        assert out[1, 2] == 0
        assert out[3, 2] == 0


def test_hysteresis_keeps_connected_weak_only():
    suppressed = np.zeros((10, 10), dtype=np.uint8)
    suppressed[2, 2] = STRONG
    suppressed[2, 3] = WEAK
    suppressed[3, 4] = WEAK
    suppressed[7, 7] = WEAK
    edges = EdgeDetectionService.hysteresis(suppressed)
    assert edges[2, 2] == 255
    assert edges[2, 3] == 255
    assert edges[3, 4] == 255
    assert edges[7, 7] == 0
    assert set(np.unique(edges)) <= {0, 255}


def test_detect_produces_binary_mask_on_plan(small_plan_pixels):
    filters = FilterService()
    blurred = filters.blur(filters.to_grayscale(small_plan_pixels))
    edges = EdgeDetectionService().detect(blurred, 60, 140).data
    assert set(np.unique(edges)) == {0, 255}
    # left edge of the rectangle at x=60 shows up two pixels wide
    assert edges[120, 59] == 255
    assert edges[120, 60] == 255
    assert edges[120, 58] == 0
    assert edges[120, 150] == 0


def test_detect_blank_image_has_no_edges():
    blank = PixelBuffer(np.full((20, 20), 90, dtype=np.uint8))
    edges = EdgeDetectionService().detect(FilterService.blur(blank), 60, 140)
    # the zero blur border itself is a step; only the interior must be quiet
    assert np.count_nonzero(edges.data[3:-3, 3:-3]) == 0
