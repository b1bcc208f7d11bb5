from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Iterator, List, Tuple

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)
# ───────────────────────────────────────────

from ..exceptions import DecodeError
from ..models.crop_config import CropConfig
from ..models.image import Image
from ..pipeline.crop_to_plot import crop_image
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="plotcrop-crop",
        description="Crop floor-plan / land-plot pictures to their plan rectangle.",
    )
    parser.add_argument("inputs", nargs="+", type=Path, help="image files or directories")
    parser.add_argument("-o", "--output-dir", type=Path, required=True)
    parser.add_argument("-r", "--recursive", action="store_true", help="descend into sub-directories")
    parser.add_argument("--mirror-x", action="store_true", help="flip horizontally")
    parser.add_argument("--mirror-y", action="store_true", help="flip vertically")
    parser.add_argument("--low", type=float, dest="edge_low_threshold")
    parser.add_argument("--high", type=float, dest="edge_high_threshold")
    parser.add_argument("--dilate", type=int, dest="dilation_iterations")
    parser.add_argument("--min-area", type=float, dest="min_area_percent")
    parser.add_argument("--inset", type=float, dest="inset_margin_px")
    return parser.parse_args(argv)


def iter_images(inputs: List[Path], image_service: ImageService, recursive: bool) -> Iterator[Tuple[Image, Path]]:
    """
    Yield (image, path relative to its input) pairs. Directories are streamed;
    single files that fail to decode are logged and skipped, like unreadable
    directory entries.
    """
    for item in inputs:
        if item.is_dir():
            for img in image_service.stream_gallery(item, recursive=recursive):
                yield img, img.path.relative_to(item)
            continue
        try:
            yield image_service.load(item), Path(item.name)
        except DecodeError as e:
            logger.warning(f"Skipping {item}: {e}")


def output_path(output_dir: Path, relative: Path) -> Path:
    """Sub-directories of a recursive input are mirrored under *output_dir*."""
    return output_dir / relative.parent / f"{relative.stem}_plot.png"


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = CropConfig.from_env().with_overrides(
            edge_low_threshold=args.edge_low_threshold,
            edge_high_threshold=args.edge_high_threshold,
            dilation_iterations=args.dilation_iterations,
            min_area_percent=args.min_area_percent,
            inset_margin_px=args.inset_margin_px,
        )
    except ValueError as e:
        logger.error(f"Invalid crop settings: {e}")
        return 2

    image_service = ImageService()
    args.output_dir.mkdir(parents=True, exist_ok=True)

    written = set()
    for img, relative in iter_images(args.inputs, image_service, args.recursive):
        plot = crop_image(img, config, image_service=image_service)
        plot = image_service.mirror(plot, args.mirror_x, args.mirror_y)
        plot.path = output_path(args.output_dir, relative)
        if plot.path in written:
            logger.warning(f"{img.path} overwrites an earlier result at {plot.path}")
        plot.path.parent.mkdir(parents=True, exist_ok=True)
        image_service.save(plot)
        written.add(plot.path)
        logger.info(f"Saved {plot.path} ({plot.width}x{plot.height})")

    logger.info(f"Wrote {len(written)} image(s) to {args.output_dir}")
    return 0 if written else 1


if __name__ == "__main__":
    sys.exit(main())
