# pipeline/plot_image.py
from __future__ import annotations

from ..models.crop_config import CropConfig
from ..models.pipeline_result import PipelineResult
from ..repositories.image_repository import ImageSource
from ..services.image_service import ImageService
from .crop_to_plot import extract_plot


def process_plot_image(
    source: ImageSource,
    mirror_x: bool = False,
    mirror_y: bool = False,
    config: CropConfig | None = None,
    *,
    image_service: ImageService = ImageService(),
) -> PipelineResult:
    """
    Crop to the plan rectangle, then apply the requested flips.
    Width/height are those of the cropped image (flips never change them).
    """
    plot = extract_plot(source, config, image_service=image_service)
    if mirror_x or mirror_y:
        plot = image_service.mirror(plot, mirror_x, mirror_y)
    return image_service.to_result(plot)


def mirror_image(
    source: ImageSource,
    mirror_x: bool = False,
    mirror_y: bool = False,
    *,
    image_service: ImageService = ImageService(),
) -> PipelineResult:
    """Flip an image at its natural size, no cropping."""
    img = image_service.load(source)
    return image_service.to_result(image_service.mirror(img, mirror_x, mirror_y))
