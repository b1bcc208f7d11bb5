from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class CandidateRectangle:
    x: int
    y: int
    width: int
    height: int
    angle: float = 0.0  # degrees, first-to-last contour point; approximate only

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_tuple(self):
        return self.x, self.y, self.width, self.height
