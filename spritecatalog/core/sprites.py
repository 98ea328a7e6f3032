"""Frame enumeration and JSON conversion for sprite definitions."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any, Iterator, Mapping

from . import AnimatedSprite, SpriteDef, SpriteRect, StaticSprite
from .errors import FrameIndexError, PackFormatError


def iter_frames(sprite: SpriteDef) -> Iterator[SpriteRect]:
    """Yield a sprite's frames in order; static sprites yield one."""

    yield from sprite.frames


def frame_count(sprite: SpriteDef) -> int:
    return len(sprite.frames)


def frame_at(sprite: SpriteDef, index: int) -> SpriteRect:
    """Return frame ``index``, raising FrameIndexError when it does not exist."""

    frames = sprite.frames
    if index < 0 or index >= len(frames):
        raise FrameIndexError(index, len(frames))
    return frames[index]


def effective_rect(frame: SpriteRect, default_tile_size: int) -> SpriteRect:
    """Return a copy of ``frame`` with missing w/h set to the tile size."""

    return replace(
        frame,
        w=frame.w if frame.w else default_tile_size,
        h=frame.h if frame.h else default_tile_size,
    )


def _int_field(payload: Mapping[str, Any], key: str, name: str, required: bool = True) -> int | None:
    value = payload.get(key)
    if value is None:
        if required:
            raise PackFormatError(None, f"Sprite '{name}' is missing '{key}'")
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not float(value).is_integer():
        raise PackFormatError(None, f"Sprite '{name}' has non-integer '{key}': {value!r}")
    return int(value)


def rect_from_dict(payload: Mapping[str, Any], name: str) -> SpriteRect:
    if not isinstance(payload, Mapping):
        raise PackFormatError(None, f"Sprite '{name}' must be an object")
    return SpriteRect(
        x=_int_field(payload, "x", name),
        y=_int_field(payload, "y", name),
        w=_size_field(payload, "w", name),
        h=_size_field(payload, "h", name),
    )


def _size_field(payload: Mapping[str, Any], key: str, name: str) -> int | None:
    # 0 means "use the tile size"; negative sizes would defeat the bounds check
    value = _int_field(payload, key, name, required=False)
    if value is not None and value < 0:
        raise PackFormatError(None, f"Sprite '{name}' has negative '{key}': {value}")
    return value


def _fps_field(payload: Mapping[str, Any], name: str) -> float | None:
    value = payload.get("fps")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise PackFormatError(None, f"Sprite '{name}' has invalid 'fps': {value!r}")
    return float(value)


def sprite_from_dict(name: str, payload: Mapping[str, Any]) -> SpriteDef:
    """Build a sprite definition from its JSON form.

    An object carrying ``frames`` is animated; anything else must be a single
    rectangle with ``x``/``y``.
    """

    if not isinstance(payload, Mapping):
        raise PackFormatError(None, f"Sprite '{name}' must be an object")
    file = payload.get("file")
    if "frames" in payload:
        raw_frames = payload["frames"]
        if not isinstance(raw_frames, list) or not raw_frames:
            raise PackFormatError(None, f"Sprite '{name}' needs a non-empty 'frames' list")
        frames = tuple(rect_from_dict(frame, f"{name}[{idx}]") for idx, frame in enumerate(raw_frames))
        loop = payload.get("loop")
        return AnimatedSprite(
            frames=frames,
            fps=_fps_field(payload, name),
            loop=bool(loop) if loop is not None else None,
            file=file,
        )
    return StaticSprite(rect=rect_from_dict(payload, name), file=file)


def sprite_to_dict(sprite: SpriteDef) -> dict[str, Any]:
    if isinstance(sprite, AnimatedSprite):
        payload: dict[str, Any] = {"frames": [frame.to_dict() for frame in sprite.frames]}
        if sprite.fps is not None:
            payload["fps"] = sprite.fps
        if sprite.loop is not None:
            payload["loop"] = sprite.loop
    else:
        payload = sprite.rect.to_dict()
    if sprite.file:
        payload["file"] = sprite.file
    return payload
