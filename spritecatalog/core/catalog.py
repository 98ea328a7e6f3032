"""The pack catalog and discovery of sheet images inside extracted packs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from .. import config
from . import GridParams
from .errors import PackFormatError

logger = logging.getLogger(__name__)

# Well-known sheet locations in common asset packs, most useful first.
PREFERRED_SHEET_PATHS = (
    "Tilemap/tilemap.png",
    "Tilemap/tilemap_packed.png",
    "Spritesheet/sheet.png",
    "Spritesheet/spritesheet.png",
    "Tilesheet/tilesheet.png",
    "Tilesheet/tilesheet_packed.png",
    "Tilesheet/monochrome_packed.png",
    "Spritesheets/sheet.png",
    "Spritesheets/spritesheet.png",
)
SAMPLE_IMAGE_NAMES = ("Preview.png", "preview.png", "Sample.png", "sample.png")
MAX_SCAN_DEPTH = 3


@dataclass
class CatalogPack:
    """A browsable pack entry from catalog.json."""

    id: str
    name: str
    download_url: str
    source: str = ""
    tile_size: Optional[int] = None
    spacing: Optional[int] = None
    grid_offset: tuple[int, int] = (0, 0)
    tags: list[str] = field(default_factory=list)

    def grid(self) -> GridParams:
        return GridParams(
            tile_size=self.tile_size or config.DEFAULT_TILE_SIZE,
            spacing=self.spacing or 0,
            offset_x=self.grid_offset[0],
            offset_y=self.grid_offset[1],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "source": self.source,
            "downloadUrl": self.download_url,
            "tileSize": self.tile_size,
            "spacing": self.spacing,
            "gridOffset": {"x": self.grid_offset[0], "y": self.grid_offset[1]},
            "tags": list(self.tags),
        }


def catalog_pack_from_dict(payload: Mapping[str, Any]) -> CatalogPack:
    try:
        offset = payload.get("gridOffset") or {}
        return CatalogPack(
            id=str(payload["id"]),
            name=str(payload.get("name") or payload["id"]),
            download_url=str(payload.get("downloadUrl") or ""),
            source=str(payload.get("source") or ""),
            tile_size=int(payload["tileSize"]) if payload.get("tileSize") else None,
            spacing=int(payload["spacing"]) if payload.get("spacing") else None,
            grid_offset=(int(offset.get("x") or 0), int(offset.get("y") or 0)),
            tags=list(payload.get("tags") or []),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise PackFormatError(None, f"Invalid catalog entry {payload!r}: {exc}") from exc


def load_catalog(path: Path) -> list[CatalogPack]:
    """Read catalog.json (``{"packs": [...]}``)."""

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise PackFormatError(path, f"Could not read catalog: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PackFormatError(path, f"Invalid JSON: {exc}") from exc
    packs = [catalog_pack_from_dict(entry) for entry in payload.get("packs", [])]
    logger.info("Loaded %s packs from %s", len(packs), path)
    return packs


def find_pack_images(cache_dir: Path, pack_id: str) -> list[Path]:
    """List a pack's PNG sheets, well-known sheets first and samples last."""

    pack_dir = cache_dir / pack_id
    if not pack_dir.is_dir():
        return []

    images: list[Path] = []
    seen: set[Path] = set()

    def add(path: Path) -> None:
        if path not in seen:
            images.append(path)
            seen.add(path)

    for relative in PREFERRED_SHEET_PATHS:
        candidate = pack_dir / relative
        if candidate.is_file():
            add(candidate)

    sample_names = {name.lower() for name in SAMPLE_IMAGE_NAMES}

    def scan(directory: Path, depth: int) -> None:
        if depth > MAX_SCAN_DEPTH:
            return
        for entry in sorted(directory.iterdir()):
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                scan(entry, depth + 1)
            elif entry.suffix == ".png" and entry.name.lower() not in sample_names:
                add(entry)

    try:
        scan(pack_dir, 0)
    except OSError as exc:
        logger.warning("Could not scan %s: %s", pack_dir, exc)

    for name in SAMPLE_IMAGE_NAMES:
        candidate = pack_dir / name
        if candidate.is_file():
            add(candidate)
    return images


def relative_sheet_paths(cache_dir: Path, pack_id: str, images: list[Path]) -> list[str]:
    pack_dir = cache_dir / pack_id
    return [image.relative_to(pack_dir).as_posix() for image in images]
