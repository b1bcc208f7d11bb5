from __future__ import annotations
from io import BytesIO
from pathlib import Path
from typing import Union, Iterable, Iterator
from urllib.parse import unquote_to_bytes
import base64
import binascii
import logging
import os

import cv2
import numpy as np
import requests
from PIL import Image as PILImage, ImageOps, UnidentifiedImageError
from dotenv import load_dotenv

from ..exceptions import DecodeError
from ..models.image import Image

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, str, Path]
EXIF_ORIENTATION = 0x0112


class ImageRepository:
    """
    Handles fetching, decoding and encoding of Image entities.
    Everything that touches bytes, files or the network lives here.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext if ext.startswith(".") else f".{ext}"
            for ext in os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,gif,bmp,webp").lower().split(",")
            if ext
        }
        self.fetch_timeout = float(os.getenv("FETCH_TIMEOUT_SECONDS", "15"))
        self.max_download_bytes = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        if path is None:
            return Image(pixels)
        return Image(pixels=pixels, path=Path(path))

    # ─── reading ──────────────────────────────────────────────────────
    def read_bytes(self, source: ImageSource) -> bytes:
        """
        Resolve *source* to encoded image bytes.
        Accepts raw bytes, a file path, a data: URL or an http(s) URL.
        """
        if isinstance(source, (bytes, bytearray, memoryview)):
            return bytes(source)
        if isinstance(source, Path):
            return self._read_file(source)
        if not isinstance(source, str):
            raise DecodeError(f"Unsupported image source type: {type(source).__name__}")

        if source.startswith("data:"):
            return self._read_data_url(source)
        if source.startswith(("http://", "https://")):
            return self._read_url(source)
        return self._read_file(Path(source))

    @staticmethod
    def _read_file(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as err:
            raise DecodeError(f"Image not found or unreadable: {path}") from err

    @staticmethod
    def _read_data_url(url: str) -> bytes:
        header, sep, payload = url.partition(",")
        if not sep:
            raise DecodeError("Malformed data URL: missing ',' separator")
        try:
            if header.endswith(";base64"):
                return base64.b64decode(payload, validate=True)
            return unquote_to_bytes(payload)
        except (binascii.Error, ValueError) as err:
            raise DecodeError(f"Malformed data URL payload: {err}") from err

    def _read_url(self, url: str) -> bytes:
        limit = self.max_download_bytes
        chunks = []
        total = 0
        try:
            with requests.get(url, timeout=self.fetch_timeout, stream=True) as resp:
                resp.raise_for_status()
                declared = resp.headers.get("Content-Length", "")
                if declared.isdigit() and int(declared) > limit:
                    raise DecodeError(f"Image at {url} is {declared} bytes, limit is {limit}")
                for chunk in resp.iter_content(chunk_size=64 * 1024):
                    total += len(chunk)
                    if total > limit:
                        raise DecodeError(f"Image at {url} exceeds the {limit} byte limit")
                    chunks.append(chunk)
        except requests.RequestException as err:
            raise DecodeError(f"Failed to fetch image from {url}: {err}") from err
        return b"".join(chunks)

    @staticmethod
    def decode(data: bytes) -> np.ndarray:
        """
        Decode encoded image bytes into an (H, W, 4) RGBA uint8 array.
        OpenCV first; Pillow covers the formats OpenCV builds often lack (GIF).
        The EXIF orientation tag is applied, so pixels come out upright.
        """
        if not data:
            raise DecodeError("Empty image data")

        buf = np.frombuffer(data, dtype=np.uint8)
        try:
            arr = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
        except cv2.error:
            arr = None
        if arr is not None:
            rgba = ImageRepository._to_rgba(arr)
            return ImageRepository._apply_orientation(rgba, ImageRepository._exif_orientation(data))

        try:
            with PILImage.open(BytesIO(data)) as pil_img:
                upright = ImageOps.exif_transpose(pil_img)
                return np.asarray(upright.convert("RGBA")).copy()
        except (UnidentifiedImageError, OSError, ValueError) as err:
            raise DecodeError(f"Failed to decode image: {err}") from err

    @staticmethod
    def _exif_orientation(data: bytes) -> int:
        # IMREAD_UNCHANGED skips the orientation tag; read it from the header only.
        try:
            with PILImage.open(BytesIO(data)) as pil_img:
                orientation = pil_img.getexif().get(EXIF_ORIENTATION, 1)
        except (UnidentifiedImageError, OSError, ValueError) as err:
            logger.debug(f"No EXIF orientation available: {err}")
            return 1
        return orientation if orientation in range(1, 9) else 1

    @staticmethod
    def _apply_orientation(pixels: np.ndarray, orientation: int) -> np.ndarray:
        """Turn stored pixels into display order for EXIF orientations 1-8."""
        if orientation == 2:
            return cv2.flip(pixels, 1)
        if orientation == 3:
            return cv2.rotate(pixels, cv2.ROTATE_180)
        if orientation == 4:
            return cv2.flip(pixels, 0)
        if orientation == 5:
            return np.ascontiguousarray(pixels.swapaxes(0, 1))
        if orientation == 6:
            return cv2.rotate(pixels, cv2.ROTATE_90_CLOCKWISE)
        if orientation == 7:
            return cv2.rotate(np.ascontiguousarray(pixels.swapaxes(0, 1)), cv2.ROTATE_180)
        if orientation == 8:
            return cv2.rotate(pixels, cv2.ROTATE_90_COUNTERCLOCKWISE)
        return pixels

    @staticmethod
    def _to_rgba(arr: np.ndarray) -> np.ndarray:
        if arr.dtype == np.uint16:
            arr = (arr >> 8).astype(np.uint8)
        elif arr.dtype != np.uint8:
            arr = cv2.normalize(arr, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        channels = arr.shape[2]
        if channels == 1:
            return cv2.cvtColor(arr[:, :, 0], cv2.COLOR_GRAY2RGBA)
        if channels == 3:
            return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        if channels == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        raise DecodeError(f"Unsupported channel count: {channels}")

    def load(self, source: ImageSource) -> Image:
        """Fetch and decode a single image into an Image object."""
        data = self.read_bytes(source)
        pixels = self.decode(data)
        path = None
        if isinstance(source, Path) or (
            isinstance(source, str) and not source.startswith(("data:", "http://", "https://"))
        ):
            path = Path(source)
        return Image(pixels=pixels, path=path)

    # ─── writing ──────────────────────────────────────────────────────
    @staticmethod
    def encode_png(pixels: np.ndarray) -> bytes:
        buffer = BytesIO()
        PILImage.fromarray(np.ascontiguousarray(pixels)).save(buffer, format="PNG")
        return buffer.getvalue()

    @staticmethod
    def save(image: Image) -> None:
        if image.path is None:
            raise ValueError("Image has no destination path")
        PILImage.fromarray(np.ascontiguousarray(image.pixels)).save(image.path)

    def retrieve_image_dimensions(self, img: Image):
        return img.pixels.shape[:2]

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield Image objects one at a time.  Nothing accumulates in memory.
        Unreadable files are logged and skipped.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if not p.is_file():
                continue
            if p.suffix.lower() not in allowed:
                logger.debug(f"Skipping due to extension: {p}")
                continue
            try:
                img = self.load(p)
            except DecodeError as err:
                logger.warning(f"Skipping {p.name}: {err}")
                continue
            yield img
