import numpy as np

from ..exceptions import ProcessingError
from ..models.pixel_buffer import PixelBuffer

# 3x3 Gaussian-like smoothing kernel, normalised by 16.
BLUR_KERNEL = np.array([[1, 2, 1],
                        [2, 4, 2],
                        [1, 2, 1]], dtype=np.int32)
BLUR_KERNEL_SUM = 16

NEIGHBOUR_OFFSETS = [(dy, dx) for dy in (-1, 0, 1) for dx in (-1, 0, 1)]


class FilterService:
    """
    Point and neighbourhood filters over PixelBuffers.
    Every method is pure: it returns a new buffer and never touches its input.
    """

    @staticmethod
    def to_grayscale(pixels: np.ndarray) -> PixelBuffer:
        """
        Luminance collapse of an RGB(A) array: 0.299 R + 0.587 G + 0.114 B,
        rounded half up. Alpha is ignored.
        """
        if pixels is None or pixels.size == 0:
            raise ProcessingError("Cannot convert an empty image to grayscale")
        if pixels.ndim != 3 or pixels.shape[2] < 3:
            raise ProcessingError(f"Expected an RGB(A) array, got shape {pixels.shape}")

        rgb = pixels[:, :, :3].astype(np.float64)
        lum = 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]
        gray = np.clip(np.floor(lum + 0.5), 0, 255).astype(np.uint8)
        return PixelBuffer(gray)

    @staticmethod
    def blur(gray: PixelBuffer) -> PixelBuffer:
        """
        Direct 3x3 convolution with BLUR_KERNEL over interior pixels.
        The one-pixel border is left at 0.
        """
        if gray.size == 0:
            raise ProcessingError("Cannot blur an empty buffer")

        src = gray.data.astype(np.int32)
        h, w = src.shape
        out = np.zeros((h, w), dtype=np.uint8)
        if h < 3 or w < 3:
            return PixelBuffer(out)

        acc = np.zeros((h - 2, w - 2), dtype=np.int32)
        for dy, dx in NEIGHBOUR_OFFSETS:
            acc += BLUR_KERNEL[dy + 1, dx + 1] * src[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]
        # round(acc / 16) with halves rounded up
        out[1:-1, 1:-1] = (acc + BLUR_KERNEL_SUM // 2) // BLUR_KERNEL_SUM
        return PixelBuffer(out)

    @staticmethod
    def dilate(mask: PixelBuffer, iterations: int) -> PixelBuffer:
        """
        Morphological dilation of a 0/255 mask with a 3x3 square.
        Each pass reads the previous pass and writes a fresh buffer, so one
        pass never cascades into itself. Only interior set pixels spread.
        """
        if iterations < 0:
            raise ProcessingError(f"Dilation iterations must be >= 0, got {iterations}")
        if mask.size == 0:
            raise ProcessingError("Cannot dilate an empty buffer")

        current = mask.data.copy()
        h, w = current.shape
        if h < 3 or w < 3:
            return PixelBuffer(current)

        for _ in range(int(iterations)):
            sources = current[1:-1, 1:-1] == 255
            nxt = current.copy()
            for dy, dx in NEIGHBOUR_OFFSETS:
                target = nxt[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]
                target[sources] = 255
            current = nxt
        return PixelBuffer(current)
