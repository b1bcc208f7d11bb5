import logging
import math
from typing import List, Optional

import numpy as np

from ..exceptions import ProcessingError
from ..models.contour import Contour
from ..models.pixel_buffer import PixelBuffer
from ..models.rectangle import CandidateRectangle

logger = logging.getLogger(__name__)

MIN_CONTOUR_POINTS = 10     # smaller components are treated as noise
BORDER_PAD_FRACTION = 0.02  # of the shorter image side
MAX_ANGLE_PENALTY = 10.0    # degrees off-axis that zero out the alignment factor


class ContourService:
    """
    Turns a dilated edge mask into connected components and picks the one
    whose bounding box most plausibly is the plan rectangle.
    """

    def __init__(self, min_points: int = MIN_CONTOUR_POINTS):
        self.min_points = min_points

    def find_contours(self, mask: PixelBuffer) -> List[Contour]:
        """
        Row-major scan; every unvisited set pixel starts an 8-connected
        flood fill on an explicit stack. Each pixel lands in at most one
        contour. Components below `min_points` are dropped.
        """
        if mask.size == 0:
            raise ProcessingError("Cannot trace contours on an empty buffer")

        h, w = mask.height, mask.width
        data = mask.data.tobytes()
        visited = bytearray(h * w)
        contours: List[Contour] = []

        for start in np.flatnonzero(mask.data == 255).tolist():
            if visited[start]:
                continue
            points = []
            stack = [start]
            while stack:
                idx = stack.pop()
                if visited[idx]:
                    continue
                visited[idx] = 1
                y, x = divmod(idx, w)
                points.append((x, y))
                for ny in (y - 1, y, y + 1):
                    if ny < 0 or ny >= h:
                        continue
                    row = ny * w
                    for nx in (x - 1, x, x + 1):
                        if nx < 0 or nx >= w:
                            continue
                        n = row + nx
                        if not visited[n] and data[n] == 255:
                            stack.append(n)
            if len(points) >= self.min_points:
                contours.append(Contour(points))

        logger.debug(f"Traced {len(contours)} contour(s)")
        return contours

    @staticmethod
    def estimate_angle(contour: Contour) -> float:
        """
        Coarse orientation in degrees: direction from the first to the last
        traced point. Not a minimum-area-rectangle fit.
        """
        if len(contour) <= 2:
            return 0.0
        (x0, y0), (x1, y1) = contour.first, contour.last
        return math.degrees(math.atan2(y1 - y0, x1 - x0))

    @staticmethod
    def axis_alignment_factor(angle: float) -> float:
        """1 at 0/90 degrees, dropping by 0.1 per degree off-axis (may go negative)."""
        a = abs(math.fmod(angle, 90))
        return 1 - min(a, 90 - a) / MAX_ANGLE_PENALTY

    def to_rectangle(self, contour: Contour) -> CandidateRectangle:
        x, y, w, h = contour.bounding_box()
        return CandidateRectangle(x=x, y=y, width=w, height=h, angle=self.estimate_angle(contour))

    def select_best_rectangle(
        self,
        contours: List[Contour],
        width: int,
        height: int,
        min_area_percent: float,
    ) -> Optional[CandidateRectangle]:
        """
        Score every contour's bounding box by area * axis alignment and return
        the best one, or None when nothing qualifies.

        Rejected outright:
            - boxes smaller than min_area_percent of the image
            - boxes reaching into the border pad (2% of the shorter side)
        Ties keep the first candidate in scan order.
        """
        min_area = width * height * (min_area_percent / 100)
        border_pad = int(math.floor(min(width, height) * BORDER_PAD_FRACTION + 0.5))

        best: Optional[CandidateRectangle] = None
        best_score = None
        for contour in contours:
            if len(contour) < 4:
                continue
            rect = self.to_rectangle(contour)
            if rect.area < min_area:
                continue
            if (rect.x <= border_pad or rect.y <= border_pad
                    or rect.x + rect.width >= width - border_pad
                    or rect.y + rect.height >= height - border_pad):
                continue

            score = rect.area * self.axis_alignment_factor(rect.angle)
            if best_score is None or score > best_score:
                best, best_score = rect, score

        if best is not None:
            logger.debug(f"Best rectangle {best.as_tuple()} angle={best.angle:.1f} score={best_score:.1f}")
        return best
