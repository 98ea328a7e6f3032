"""Pillow helpers for cropping sprites and composing preview sheets."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from ..core import SpriteRect
from ..core.errors import ImageProcessingError
from . import file_tools

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def load_image(path: Path) -> Image.Image:
    """Load an image safely."""

    if not path.exists():
        raise FileNotFoundError(path)
    with Image.open(path) as img:
        return img.convert("RGBA")


def save_image(image: Image.Image, path: Path) -> Path:
    """Persist an image to disk."""

    file_tools.ensure_directory(path.parent)
    image.save(path, format="PNG")
    return path


def apply_crop(image: Image.Image, x: int, y: int, width: int, height: int) -> Image.Image:
    """Crop a region, refusing boxes that leave the image."""

    if width <= 0 or height <= 0:
        raise ValueError(f"Crop size must be positive, got {width}x{height}")
    if x < 0 or y < 0 or x + width > image.width or y + height > image.height:
        raise ValueError(
            f"Crop box ({x},{y} {width}x{height}) outside image {image.width}x{image.height}"
        )
    return image.crop((x, y, x + width, y + height))


def fit_contain(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale to fit inside width x height, keeping aspect, padded transparent."""

    scaled = ImageOps.contain(image, (width, height), method=Image.Resampling.NEAREST)
    canvas = Image.new("RGBA", (width, height), TRANSPARENT)
    left = (width - scaled.width) // 2
    top = (height - scaled.height) // 2
    canvas.paste(scaled, (left, top))
    return canvas


def compose(
    size: Tuple[int, int],
    background: Tuple[int, int, int, int],
    placements: Sequence[tuple[Image.Image, int, int]],
) -> Image.Image:
    """Paste each image at its offset onto a solid background."""

    canvas = Image.new("RGBA", size, background)
    for tile, left, top in placements:
        canvas.alpha_composite(tile.convert("RGBA"), (left, top))
    return canvas


class PillowImageBackend:
    """ImageBackend implementation on top of Pillow."""

    def open(self, path: Path) -> Image.Image:
        try:
            return load_image(path)
        except (OSError, UnidentifiedImageError) as exc:
            raise ImageProcessingError(f"Could not decode {path}: {exc}") from exc

    def size(self, image: Image.Image) -> tuple[int, int]:
        return image.size

    def crop(self, image: Image.Image, rect: SpriteRect) -> Image.Image:
        if rect.w is None or rect.h is None:
            raise ImageProcessingError("Crop rectangle needs explicit w/h")
        try:
            return apply_crop(image, rect.x, rect.y, rect.w, rect.h)
        except ValueError as exc:
            raise ImageProcessingError(str(exc)) from exc

    def fit(self, image: Image.Image, width: int, height: int) -> Image.Image:
        try:
            return fit_contain(image, width, height)
        except (ValueError, ZeroDivisionError) as exc:
            raise ImageProcessingError(f"Resize failed: {exc}") from exc

    def compose(
        self,
        size: tuple[int, int],
        background: tuple[int, int, int, int],
        placements: Sequence[tuple[Image.Image, int, int]],
    ) -> Image.Image:
        try:
            return compose(size, background, placements)
        except ValueError as exc:
            raise ImageProcessingError(f"Composite failed: {exc}") from exc

    def save(self, image: Image.Image, path: Path) -> Path:
        try:
            saved = save_image(image, path)
        except (OSError, ValueError) as exc:
            raise ImageProcessingError(f"Could not write {path}: {exc}") from exc
        logger.debug("Wrote image to %s", saved)
        return saved
