"""Page image encoding helpers built on Pillow."""

from __future__ import annotations

from pathlib import Path

from PIL import Image

from .types import ImageFormat, QualityConfig
from .utils import ensure_parent_dir


def page_filename(page_index: int, image_format: ImageFormat, padding: int = 3) -> str:
    """Return the output filename for zero-based *page_index*, e.g. ``page-001.png``."""

    return f"page-{(page_index + 1):0{padding}d}.{image_format.extension}"


def write_image(
    image: Image.Image,
    path: Path,
    image_format: ImageFormat,
    quality: QualityConfig,
) -> int:
    """Encode *image* to *path* and return the written size in bytes."""

    ensure_parent_dir(path)
    if image_format is ImageFormat.JPEG:
        if image.mode in ("RGB", "L"):
            image.save(path, format="JPEG", quality=quality.jpeg_quality)
        else:
            # The converted copy is ours to close; the caller owns *image*.
            rgb = image.convert("RGB")
            try:
                rgb.save(path, format="JPEG", quality=quality.jpeg_quality)
            finally:
                rgb.close()
    else:
        image.save(path, format="PNG", compress_level=quality.png_compress_level)
    return path.stat().st_size


__all__ = ["page_filename", "write_image"]
