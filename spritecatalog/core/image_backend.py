"""Capability interface for the image decode/crop/resize/composite collaborator."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from . import SpriteRect

logger = logging.getLogger(__name__)

Placement = tuple[Any, int, int]


class ImageBackend(Protocol):
    """Operations the verifier needs from an image library.

    Implementations raise ``ImageProcessingError`` for any decode, crop,
    resize or write failure.
    """

    def open(self, path: Path) -> Any: ...

    def size(self, image: Any) -> tuple[int, int]: ...

    def crop(self, image: Any, rect: SpriteRect) -> Any: ...

    def fit(self, image: Any, width: int, height: int) -> Any: ...

    def compose(
        self,
        size: tuple[int, int],
        background: tuple[int, int, int, int],
        placements: Sequence[Placement],
    ) -> Any: ...

    def save(self, image: Any, path: Path) -> Path: ...


def resolve_backend() -> Optional[ImageBackend]:
    """Return the Pillow backend, or None when Pillow is not installed."""

    try:
        from ..utils.image_tools import PillowImageBackend
    except ModuleNotFoundError as exc:
        logger.warning("Image processing unavailable (%s); install Pillow for coordinate checks", exc)
        return None
    return PillowImageBackend()
