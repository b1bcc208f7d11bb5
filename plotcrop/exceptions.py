class PlotCropError(Exception):
    """Base class for every error raised by plotcrop."""


class DecodeError(PlotCropError):
    """The source image could not be fetched or decoded. Never recovered."""


class ProcessingError(PlotCropError):
    """A pixel stage rejected its input. The pipeline falls back to the scaled image."""
