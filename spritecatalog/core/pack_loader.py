"""Loading pack definition files into SpritePack objects."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from . import SpritePack
from .errors import PackFormatError
from .sprites import sprite_from_dict, sprite_to_dict

logger = logging.getLogger(__name__)


def structural_errors(pack: SpritePack) -> list[str]:
    """Return the missing-field problems that make a pack unusable."""

    errors = []
    if not pack.id:
        errors.append("Missing 'id' field")
    if not pack.name:
        errors.append("Missing 'name' field")
    if not pack.download_url:
        errors.append("Missing 'downloadUrl' field")
    if not pack.sprites:
        errors.append("No sprites defined")
    return errors


def pack_from_dict(payload: Mapping[str, Any], path: Path | None = None) -> SpritePack:
    """Build a SpritePack; absent top-level fields are left empty for reporting."""

    if not isinstance(payload, Mapping):
        raise PackFormatError(path, "Pack definition must be a JSON object")

    raw_sprites = payload.get("sprites") or {}
    if not isinstance(raw_sprites, Mapping):
        raise PackFormatError(path, "'sprites' must be an object")
    try:
        sprites = {name: sprite_from_dict(name, entry) for name, entry in raw_sprites.items()}
    except PackFormatError as exc:
        raise PackFormatError(path, exc.reason) from exc

    tile_size = payload.get("tileSize")
    if tile_size is not None and (
        isinstance(tile_size, bool)
        or not isinstance(tile_size, (int, float))
        or not float(tile_size).is_integer()
        or tile_size <= 0
    ):
        raise PackFormatError(path, f"'tileSize' must be a positive integer: {tile_size!r}")
    for key in ("tags", "metadata"):
        if payload.get(key) is not None and not isinstance(payload[key], Mapping):
            raise PackFormatError(path, f"'{key}' must be an object")
    primary_sheet = payload.get("primarySheet")
    if primary_sheet is not None and not isinstance(primary_sheet, str):
        raise PackFormatError(path, "'primarySheet' must be a string")

    return SpritePack(
        id=str(payload.get("id") or ""),
        name=str(payload.get("name") or ""),
        download_url=str(payload.get("downloadUrl") or ""),
        source=str(payload.get("source") or ""),
        license=str(payload.get("license") or ""),
        homepage=payload.get("homepage"),
        tile_size=int(tile_size) if tile_size is not None else None,
        primary_sheet=primary_sheet or None,
        sprites=sprites,
        tags=dict(payload.get("tags") or {}),
        metadata=dict(payload.get("metadata") or {}),
    )


def load_pack_definition(path: Path) -> SpritePack:
    """Read and parse a pack definition JSON file."""

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PackFormatError(path, f"Could not read definition: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PackFormatError(path, f"Invalid JSON: {exc}") from exc
    pack = pack_from_dict(payload, path)
    logger.debug("Loaded pack definition %s (%s sprites)", path, len(pack.sprites))
    return pack


def pack_to_dict(pack: SpritePack) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": pack.id,
        "name": pack.name,
        "source": pack.source,
        "license": pack.license,
        "downloadUrl": pack.download_url,
    }
    if pack.homepage:
        payload["homepage"] = pack.homepage
    if pack.tile_size is not None:
        payload["tileSize"] = pack.tile_size
    if pack.primary_sheet:
        payload["primarySheet"] = pack.primary_sheet
    payload["sprites"] = {name: sprite_to_dict(sprite) for name, sprite in pack.sprites.items()}
    if pack.tags:
        payload["tags"] = pack.tags
    if pack.metadata:
        payload["metadata"] = pack.metadata
    return payload
