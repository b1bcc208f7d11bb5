import math

from ..models.image import Image
from ..models.rectangle import CandidateRectangle
from .image_service import ImageService


class CroppingService:
    def __init__(self):
        self.image_service = ImageService()

    @staticmethod
    def get_inset_sizes(rect: CandidateRectangle, inset_margin: float):
        # An inset may eat at most a quarter of the rectangle per axis.
        inset_x = min(inset_margin, rect.width / 4)
        inset_y = min(inset_margin, rect.height / 4)
        return inset_x, inset_y

    def get_crop_bounds(self, img: Image, rect: CandidateRectangle, inset_margin: float):
        """
        Inset the rectangle and clamp it to the canvas.

        Returns:
            (bound_l, bound_t, bound_r, bound_b) in integer pixels, never empty.
        """
        height_img, width_img = self.image_service.get_image_dimensions(img)
        inset_x, inset_y = self.get_inset_sizes(rect, inset_margin)

        crop_x = max(0.0, rect.x + inset_x)
        crop_y = max(0.0, rect.y + inset_y)
        crop_w = min(width_img - crop_x, rect.width - 2 * inset_x)
        crop_h = min(height_img - crop_y, rect.height - 2 * inset_y)

        bound_l = min(int(math.floor(crop_x + 0.5)), width_img - 1)
        bound_t = min(int(math.floor(crop_y + 0.5)), height_img - 1)
        bound_r = min(width_img, bound_l + max(1, int(crop_w)))
        bound_b = min(height_img, bound_t + max(1, int(crop_h)))
        return bound_l, bound_t, bound_r, bound_b

    def crop_to_rectangle(self, img: Image, rect: CandidateRectangle, inset_margin: float) -> Image:
        bound_l, bound_t, bound_r, bound_b = self.get_crop_bounds(img, rect, inset_margin)
        new_pixels = self.image_service.crop_pixels(img, bound_r=bound_r, bound_l=bound_l,
                                                    bound_t=bound_t, bound_b=bound_b)
        return self.image_service.create_image(new_pixels, img.path)
