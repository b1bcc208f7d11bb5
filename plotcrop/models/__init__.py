from .image import Image
from .pixel_buffer import PixelBuffer
from .contour import Contour
from .rectangle import CandidateRectangle
from .crop_config import CropConfig
from .pipeline_result import PipelineResult

__all__ = [
    "Image",
    "PixelBuffer",
    "Contour",
    "CandidateRectangle",
    "CropConfig",
    "PipelineResult",
]
