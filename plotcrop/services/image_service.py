from __future__ import annotations
from pathlib import Path
from typing import Iterable, Union, Iterator
import logging
import math

import cv2
import numpy as np

from ..exceptions import ProcessingError
from ..models.image import Image
from ..models.pipeline_result import PipelineResult
from ..repositories.image_repository import ImageRepository, ImageSource

logger = logging.getLogger(__name__)

# Longest side of the working canvas. Fixed, not part of CropConfig.
MAX_SIDE = 1400


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ImageService:
    """I/O helpers plus whole-image transforms (scale, crop, mirror)."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        return self.image_repository.create_image(pixels, path)

    def load(self, source: ImageSource) -> Image:
        """Load a single image (bytes, path, data URL or http URL). Raises DecodeError."""
        return self.image_repository.load(source)

    def stream_gallery(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield images lazily instead of returning a gigantic list.
        """
        return self.image_repository.iter_dir(folder,
                                              recursive=recursive,
                                              exts=exts)

    def save(self, image: Image) -> None:
        self.image_repository.save(image)

    def get_image_dimensions(self, img: Image):
        return self.image_repository.retrieve_image_dimensions(img)

    @staticmethod
    def scaled_size(width: int, height: int, max_side: int = MAX_SIDE):
        scale = min(1.0, max_side / max(width, height))
        return max(1, _round_half_up(width * scale)), max(1, _round_half_up(height * scale))

    def scale_to_max_side(self, img: Image, max_side: int = MAX_SIDE) -> Image:
        """
        Downscale so the longest side is at most *max_side*. Never upscales.
        Returns a new Image; the input is left untouched.
        """
        height, width = self.get_image_dimensions(img)
        new_w, new_h = self.scaled_size(width, height, max_side)
        if (new_w, new_h) == (width, height):
            return self.create_image(img.pixels.copy(), img.path)

        logger.debug(f"Scaling {width}x{height} -> {new_w}x{new_h}")
        pixels = cv2.resize(img.pixels, (new_w, new_h), interpolation=cv2.INTER_AREA)
        return self.create_image(pixels, img.path)

    def crop_pixels(self, img: Image, bound_r, bound_l, bound_t, bound_b) -> np.ndarray:
        width = bound_r - bound_l
        height = bound_b - bound_t
        if bound_l >= bound_r or bound_t >= bound_b:
            img_h, img_w = self.get_image_dimensions(img)
            raise ProcessingError(
                f"Invalid crop bounds ({bound_l},{bound_t},{bound_r},{bound_b}) "
                f"on {img_w}x{img_h} image would create {width}x{height} image"
            )
        return img.pixels[bound_t:bound_b, bound_l:bound_r].copy()

    @staticmethod
    def mirror_pixels(pixels: np.ndarray, mirror_x: bool = False, mirror_y: bool = False) -> np.ndarray:
        """
        Flip horizontally (mirror_x) and/or vertically (mirror_y).
        Both flags together equal a 180 degree rotation.
        """
        if mirror_x and mirror_y:
            return cv2.flip(pixels, -1)
        if mirror_x:
            return cv2.flip(pixels, 1)
        if mirror_y:
            return cv2.flip(pixels, 0)
        return pixels.copy()

    def mirror(self, img: Image, mirror_x: bool = False, mirror_y: bool = False) -> Image:
        return self.create_image(self.mirror_pixels(img.pixels, mirror_x, mirror_y), img.path)

    def encode_png(self, img: Image) -> bytes:
        return self.image_repository.encode_png(img.pixels)

    def to_result(self, img: Image) -> PipelineResult:
        height, width = self.get_image_dimensions(img)
        return PipelineResult(image=self.encode_png(img), width=int(width), height=int(height))
