from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """
    Single-channel intensity buffer handed from one pipeline stage to the next.

    The array is stored read-only: a stage that wants different pixels must
    build a new buffer, so no two stages ever alias the same samples.
    """
    data: np.ndarray # Shape (H, W), dtype uint8.

    def __post_init__(self):
        arr = np.array(self.data, dtype=np.uint8, copy=True)
        if arr.ndim != 2:
            raise ValueError(f"PixelBuffer needs a 2-D array, got shape {arr.shape}")
        arr.flags.writeable = False
        object.__setattr__(self, "data", arr)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def size(self) -> int:
        return int(self.data.size)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return np.array_equal(self.data, other.data)

    __hash__ = None
