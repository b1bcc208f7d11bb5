from .image_service import ImageService, MAX_SIDE
from .filter_service import FilterService
from .edge_service import EdgeDetectionService
from .contour_service import ContourService
from .cropping_service import CroppingService

__all__ = [
    "ImageService",
    "MAX_SIDE",
    "FilterService",
    "EdgeDetectionService",
    "ContourService",
    "CroppingService",
]
