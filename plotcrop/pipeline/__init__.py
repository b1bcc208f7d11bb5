from .crop_to_plot import crop_canvas, crop_image, crop_to_plot, extract_plot
from .plot_image import mirror_image, process_plot_image

__all__ = [
    "crop_canvas",
    "crop_image",
    "crop_to_plot",
    "extract_plot",
    "mirror_image",
    "process_plot_image",
]
