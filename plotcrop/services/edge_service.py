import logging
import math

import numpy as np

from ..exceptions import ProcessingError
from ..models.pixel_buffer import PixelBuffer
from .filter_service import NEIGHBOUR_OFFSETS

logger = logging.getLogger(__name__)

STRONG = 255
WEAK = 128

_PI_8 = math.pi / 8


class EdgeDetectionService:
    """
    Canny-style edge detector over a blurred grayscale buffer:

        Sobel gradients -> non-maximum suppression -> double threshold -> hysteresis

    Gradient magnitude/direction only exist inside `detect`; the caller only
    ever sees the final 0/255 mask.
    """

    def detect(self, blurred: PixelBuffer, low_threshold: float, high_threshold: float) -> PixelBuffer:
        if blurred.size == 0:
            raise ProcessingError("Cannot detect edges on an empty buffer")
        if low_threshold > high_threshold:
            raise ProcessingError(f"Low threshold {low_threshold} is above high threshold {high_threshold}")

        magnitude, direction = self.sobel_gradients(blurred)
        suppressed = self.non_max_suppression(magnitude, direction, low_threshold, high_threshold)
        edges = self.hysteresis(suppressed)
        logger.debug(
            f"Edges: {int(np.count_nonzero(suppressed == STRONG))} strong seeds, "
            f"{int(np.count_nonzero(edges))} edge pixels after hysteresis"
        )
        return PixelBuffer(edges)

    @staticmethod
    def sobel_gradients(blurred: PixelBuffer):
        """
        3x3 Sobel at every interior pixel.

        Returns:
            (magnitude, direction) float32 arrays of the buffer's shape;
            the one-pixel border is 0 in both.
        """
        src = blurred.data.astype(np.int32)
        h, w = src.shape
        magnitude = np.zeros((h, w), dtype=np.float32)
        direction = np.zeros((h, w), dtype=np.float32)
        if h < 3 or w < 3:
            return magnitude, direction

        def at(dy, dx):
            return src[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]

        gx = (at(-1, 1) - at(-1, -1)) + 2 * (at(0, 1) - at(0, -1)) + (at(1, 1) - at(1, -1))
        gy = (at(1, -1) - at(-1, -1)) + 2 * (at(1, 0) - at(-1, 0)) + (at(1, 1) - at(-1, 1))

        gx = gx.astype(np.float64)
        gy = gy.astype(np.float64)
        magnitude[1:-1, 1:-1] = np.sqrt(gx * gx + gy * gy)
        direction[1:-1, 1:-1] = np.arctan2(gy, gx)
        return magnitude, direction

    @staticmethod
    def non_max_suppression(magnitude: np.ndarray, direction: np.ndarray,
                            low_threshold: float, high_threshold: float) -> np.ndarray:
        """
        Keep interior pixels whose magnitude is >= both neighbours along the
        quantised gradient direction, then classify them:
        > high -> STRONG, > low -> WEAK, otherwise 0.
        """
        h, w = magnitude.shape
        out = np.zeros((h, w), dtype=np.uint8)
        if h < 3 or w < 3:
            return out

        mag = magnitude.astype(np.float64)

        def at(dy, dx):
            return mag[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]

        centre = at(0, 0)
        # Fold into [0, pi): a gradient and its opposite share the same neighbours.
        theta = direction[1:-1, 1:-1].astype(np.float64)
        theta = np.where(theta < 0, theta + math.pi, theta)

        horizontal = (theta < _PI_8) | (theta >= 7 * _PI_8)
        diagonal = (theta >= _PI_8) & (theta < 3 * _PI_8)
        vertical = (theta >= 3 * _PI_8) & (theta < 5 * _PI_8)
        # everything else: anti-diagonal [5pi/8, 7pi/8)

        n1 = np.select([horizontal, diagonal, vertical], [at(0, -1), at(-1, -1), at(-1, 0)], default=at(-1, 1))
        n2 = np.select([horizontal, diagonal, vertical], [at(0, 1), at(1, 1), at(1, 0)], default=at(1, -1))

        keep = (centre >= n1) & (centre >= n2)
        classified = np.where(centre > high_threshold, STRONG, np.where(centre > low_threshold, WEAK, 0))
        out[1:-1, 1:-1] = np.where(keep, classified, 0).astype(np.uint8)
        return out

    @staticmethod
    def hysteresis(suppressed: np.ndarray) -> np.ndarray:
        """
        Promote WEAK pixels 8-connected (directly or through other weak pixels)
        to a STRONG pixel. Explicit work stack, no recursion.
        Weak pixels never reached end up 0.
        """
        h, w = suppressed.shape
        edges = np.where(suppressed == STRONG, STRONG, 0).astype(np.uint8)
        if not np.any(suppressed == WEAK):
            return edges

        src = suppressed.tobytes()
        out = bytearray(edges.tobytes())
        stack = np.flatnonzero(suppressed == STRONG).tolist()
        offsets = [dy * w + dx for dy, dx in NEIGHBOUR_OFFSETS if (dy, dx) != (0, 0)]

        # Seeds and weak pixels are interior, so every neighbour index is in bounds.
        while stack:
            idx = stack.pop()
            for off in offsets:
                n = idx + off
                if src[n] == WEAK and out[n] == 0:
                    out[n] = STRONG
                    stack.append(n)

        return np.frombuffer(bytes(out), dtype=np.uint8).reshape(h, w).copy()
