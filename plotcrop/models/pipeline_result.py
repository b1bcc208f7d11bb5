from __future__ import annotations
from dataclasses import dataclass
import base64


@dataclass(frozen=True)
class PipelineResult:
    """The only value handed back to callers: encoded PNG plus its size."""
    image: bytes
    width: int
    height: int

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.image).decode("utf-8")
        return f"data:image/png;base64,{encoded}"
