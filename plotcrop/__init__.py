"""
plotcrop: find the plan rectangle inside a photographed floor-plan or
land-plot drawing and crop to it.

    from plotcrop import process, CropConfig
    result = process("plan.jpg", CropConfig(inset_margin_px=5))
    print(result.width, result.height)
"""
from .exceptions import PlotCropError, DecodeError, ProcessingError
from .models.crop_config import CropConfig
from .models.pipeline_result import PipelineResult
from .pipeline.crop_to_plot import crop_to_plot
from .pipeline.plot_image import mirror_image, process_plot_image

process = crop_to_plot

__version__ = "1.0.0"

__all__ = [
    "process",
    "crop_to_plot",
    "process_plot_image",
    "mirror_image",
    "CropConfig",
    "PipelineResult",
    "PlotCropError",
    "DecodeError",
    "ProcessingError",
]
