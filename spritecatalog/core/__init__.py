"""Core data model for grid addressing, sprite definitions and verification."""

__all__ = [
    "GridParams",
    "SpriteRect",
    "StaticSprite",
    "AnimatedSprite",
    "SpriteDef",
    "SpritePack",
    "SelectionEntry",
    "VerificationReport",
]

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Optional, Union


@dataclass(frozen=True)
class GridParams:
    """Tile size, gap and origin offset that fully determine a grid."""

    tile_size: int
    spacing: int = 0
    offset_x: int = 0
    offset_y: int = 0

    @property
    def stride(self) -> int:
        return self.tile_size + self.spacing


@dataclass(frozen=True)
class SpriteRect:
    """A rectangle in sheet pixels; missing w/h fall back to the tile size."""

    x: int
    y: int
    w: Optional[int] = None
    h: Optional[int] = None

    def to_dict(self) -> dict[str, int]:
        payload = {"x": self.x, "y": self.y}
        if self.w is not None:
            payload["w"] = self.w
        if self.h is not None:
            payload["h"] = self.h
        return payload


@dataclass
class StaticSprite:
    """A sprite occupying a single rectangle."""

    kind: ClassVar[str] = "static"

    rect: SpriteRect
    file: Optional[str] = None

    @property
    def frames(self) -> tuple[SpriteRect, ...]:
        return (self.rect,)


@dataclass
class AnimatedSprite:
    """A sprite made of an ordered, non-empty sequence of frames."""

    kind: ClassVar[str] = "animated"

    frames: tuple[SpriteRect, ...]
    fps: Optional[float] = None
    loop: Optional[bool] = None
    file: Optional[str] = None

    def __post_init__(self):
        self.frames = tuple(self.frames)
        if not self.frames:
            raise ValueError("Animated sprites need at least one frame")


SpriteDef = Union[StaticSprite, AnimatedSprite]


@dataclass
class SpritePack:
    """A named, licensed collection of sprite definitions."""

    id: str
    name: str
    download_url: str
    source: str = ""
    license: str = ""
    homepage: Optional[str] = None
    tile_size: Optional[int] = None
    primary_sheet: Optional[str] = None
    sprites: dict[str, SpriteDef] = field(default_factory=dict)
    tags: dict[str, list[str]] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SelectionEntry:
    """One selected grid cell in an interactive session."""

    name: str
    x: int
    y: int
    w: int
    h: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.x, self.y)


@dataclass
class VerificationReport:
    """Outcome of verifying one pack."""

    valid: bool = True
    sprite_count: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    preview_path: Optional[Path] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "valid": self.valid,
            "spriteCount": self.sprite_count,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
        if self.preview_path is not None:
            payload["previewPath"] = str(self.preview_path)
        return payload
