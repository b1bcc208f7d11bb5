# pipeline/crop_to_plot.py
from __future__ import annotations

import logging

from ..models.crop_config import CropConfig
from ..models.image import Image
from ..models.pipeline_result import PipelineResult
from ..repositories.image_repository import ImageSource
from ..services.contour_service import ContourService
from ..services.cropping_service import CroppingService
from ..services.edge_service import EdgeDetectionService
from ..services.filter_service import FilterService
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)


def crop_canvas(
    canvas: Image,
    config: CropConfig,
    *,
    filter_service: FilterService = FilterService(),
    edge_service: EdgeDetectionService = EdgeDetectionService(),
    contour_service: ContourService = ContourService(),
    cropping_service: CroppingService = CroppingService(),
) -> Image:
    """
    Run the pixel stages on an already scaled canvas:
        grayscale -> blur -> edges -> dilate -> contours -> best rectangle -> crop

    Returns the canvas itself when no rectangle qualifies.
    Stage failures raise (ProcessingError or whatever numpy raised); the
    caller decides on the fallback.
    """
    gray = filter_service.to_grayscale(canvas.pixels)
    blurred = filter_service.blur(gray)
    edges = edge_service.detect(blurred, config.edge_low_threshold, config.edge_high_threshold)
    dilated = filter_service.dilate(edges, config.dilation_iterations)

    contours = contour_service.find_contours(dilated)
    rect = contour_service.select_best_rectangle(contours, canvas.width, canvas.height,
                                                 config.min_area_percent)
    if rect is None:
        logger.info(f"No plan rectangle among {len(contours)} contour(s); keeping full image")
        return canvas

    logger.info(f"Plan rectangle at ({rect.x}, {rect.y}) size {rect.width}x{rect.height}")
    return cropping_service.crop_to_rectangle(canvas, rect, config.inset_margin_px)


def crop_image(
    original: Image,
    config: CropConfig | None = None,
    *,
    image_service: ImageService = ImageService(),
) -> Image:
    """
    Scale and crop an already decoded image. Anything that goes wrong
    after scaling yields the scaled, uncropped image.
    """
    config = config or CropConfig()

    canvas = image_service.scale_to_max_side(original)
    logger.debug(f"Working canvas {canvas.width}x{canvas.height}")

    try:
        return crop_canvas(canvas, config)
    except Exception as e:
        logger.warning(f"Rectangle extraction failed, returning scaled image: {e}")
        return canvas


def extract_plot(
    source: ImageSource,
    config: CropConfig | None = None,
    *,
    image_service: ImageService = ImageService(),
) -> Image:
    """Load, scale and crop. Only decoding may raise (DecodeError)."""
    return crop_image(image_service.load(source), config, image_service=image_service)


def crop_to_plot(
    source: ImageSource,
    config: CropConfig | None = None,
    *,
    image_service: ImageService = ImageService(),
) -> PipelineResult:
    """
    Entry point: crop *source* to the inner plan rectangle.

    Args:
        source: encoded bytes, a file path, a data: URL or an http(s) URL.
        config: crop tunables; defaults to CropConfig().

    Returns:
        PipelineResult with PNG bytes and the output width/height.

    Raises:
        DecodeError: the source could not be fetched or decoded.
    """
    plot = extract_plot(source, config, image_service=image_service)
    return image_service.to_result(plot)
