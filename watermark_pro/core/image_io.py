"""
Image loading and export helpers.

Decoding happens here, before the compositor ever sees an image: the
compositor only accepts fully decoded rasters.
"""

import io
import logging
import time
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif", ".tiff"}


class ImageLoadError(ValueError):
    """Raised when a file cannot be decoded into an image."""


def is_supported_image(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_FORMATS


def load_image(path: Union[str, Path]) -> Image.Image:
    """
    Decode an image file into an RGBA image.

    EXIF orientation is applied so phone photos come out upright. Only
    the first frame of animated formats is used.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ImageLoadError: If the file is not a readable image.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    try:
        with Image.open(path) as img:
            img.seek(0)
            img = ImageOps.exif_transpose(img)
            result = img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"Cannot read image {path.name}: {e}") from e

    logger.info("Loaded %s (%dx%d)", path.name, result.width, result.height)
    return result


def export_filename(timestamp_ms: Optional[int] = None) -> str:
    """``watermarked-<unix-ms>.png``"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"watermarked-{timestamp_ms}.png"


def encode_png(image: Image.Image) -> bytes:
    """Encode as PNG, keeping the alpha channel."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def save_png(image: Image.Image, output_dir: Union[str, Path], filename: Optional[str] = None) -> Path:
    """Save ``image`` as PNG into ``output_dir`` and return the written path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    output_path = output_dir / (filename or export_filename())
    image.save(output_path, format="PNG")
    logger.info("Exported %s", output_path)
    return output_path
