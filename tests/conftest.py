from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from spritecatalog.core import SpriteRect
from spritecatalog.core.errors import ImageProcessingError


@dataclass
class FakeImage:
    width: int
    height: int
    origin: tuple[int, int] = (0, 0)


@dataclass
class FakeBackend:
    """In-memory stand-in for the Pillow backend with synthetic sheet sizes."""

    sizes: dict[str, tuple[int, int]] = field(default_factory=dict)
    fail_fit_for: set[tuple[int, int]] = field(default_factory=set)
    fail_compose: bool = False
    composed: list = field(default_factory=list)
    saved: list[Path] = field(default_factory=list)

    def open(self, path: Path) -> FakeImage:
        if path.name not in self.sizes:
            raise ImageProcessingError(f"Could not decode {path}")
        return FakeImage(*self.sizes[path.name])

    def size(self, image: FakeImage) -> tuple[int, int]:
        return image.width, image.height

    def crop(self, image: FakeImage, rect: SpriteRect) -> FakeImage:
        if rect.x < 0 or rect.y < 0 or rect.x + rect.w > image.width or rect.y + rect.h > image.height:
            raise ImageProcessingError("bad extract area")
        return FakeImage(rect.w, rect.h, origin=(rect.x, rect.y))

    def fit(self, image: FakeImage, width: int, height: int) -> FakeImage:
        if image.origin in self.fail_fit_for:
            raise ImageProcessingError("resize failed")
        return FakeImage(width, height, origin=image.origin)

    def compose(self, size, background, placements):
        if self.fail_compose:
            raise ImageProcessingError("composite failed")
        self.composed.append((size, background, list(placements)))
        return FakeImage(*size)

    def save(self, image: FakeImage, path: Path) -> Path:
        self.saved.append(path)
        return path


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def pack_dir(tmp_path: Path) -> Path:
    """An extracted pack tree with a single sheet file."""

    root = tmp_path / "cache" / "tiny-dungeon"
    (root / "Tilemap").mkdir(parents=True)
    (root / "Tilemap" / "tilemap_packed.png").write_bytes(b"png")
    return root
