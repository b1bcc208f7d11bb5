from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass
class Contour:
    """
    One connected component of the edge mask.
    Points are kept in the order the tracer visited them; the first and last
    point drive the coarse orientation estimate.
    """
    points: List[Tuple[int, int]] = field(default_factory=list)  # (x, y)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def first(self) -> Tuple[int, int]:
        return self.points[0]

    @property
    def last(self) -> Tuple[int, int]:
        return self.points[-1]

    def bounding_box(self) -> Tuple[int, int, int, int]:
        """(x, y, width, height) where width/height are max - min."""
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        min_x, min_y = min(xs), min(ys)
        return min_x, min_y, max(xs) - min_x, max(ys) - min_y
