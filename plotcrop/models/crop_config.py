from __future__ import annotations
from dataclasses import dataclass, fields, replace
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class CropConfig:
    """
    Value-object holding the tunables of one crop run.
    Built once by the caller and only read by the pipeline.
    """
    edge_low_threshold: float = 60       # weak-edge cutoff
    edge_high_threshold: float = 140     # strong-edge cutoff
    dilation_iterations: int = 1         # gap-closing passes
    min_area_percent: float = 20         # min rectangle area, % of image area
    inset_margin_px: float = 10          # trimmed inward from each detected edge

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{f.name} must be a number, got {value!r}")
            if value < 0:
                raise ValueError(f"{f.name} must be >= 0, got {value}")
        if int(self.dilation_iterations) != self.dilation_iterations:
            raise ValueError(f"dilation_iterations must be an integer, got {self.dilation_iterations}")
        if self.edge_low_threshold > self.edge_high_threshold:
            raise ValueError(
                f"edge_low_threshold ({self.edge_low_threshold}) is above "
                f"edge_high_threshold ({self.edge_high_threshold})"
            )

    # ── Alternate constructors ───────────────────────────────────────
    @classmethod
    def from_env(cls) -> "CropConfig":
        """Defaults overridden by CROP_* environment variables (.env aware)."""
        return cls(
            edge_low_threshold=float(os.getenv("CROP_EDGE_LOW_THRESHOLD", "60")),
            edge_high_threshold=float(os.getenv("CROP_EDGE_HIGH_THRESHOLD", "140")),
            dilation_iterations=int(os.getenv("CROP_DILATION_ITERATIONS", "1")),
            min_area_percent=float(os.getenv("CROP_MIN_AREA_PERCENT", "20")),
            inset_margin_px=float(os.getenv("CROP_INSET_MARGIN_PX", "10")),
        )

    def with_overrides(self, **overrides) -> "CropConfig":
        """Copy with the given fields replaced; None values are ignored."""
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in known:
                raise ValueError(f"Unknown crop option: {key}")
            if isinstance(value, bool) or not isinstance(value, (int, float, str)):
                raise ValueError(f"{key} must be a number, got {value!r}")
            try:
                changes[key] = int(value) if key == "dilation_iterations" else float(value)
            except (TypeError, ValueError) as err:
                raise ValueError(f"{key}: {err}") from err
        return replace(self, **changes)
