"""Filesystem helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def find_file(base_dir: Path, relative_path: str) -> Optional[Path]:
    """Resolve a slash-separated path under base_dir, ignoring case per segment.

    Archives from different sources disagree on casing ("Tilemap/tilemap.png"
    vs "tilemap/Tilemap.png"), so the exact path is tried first and then each
    segment is matched case-insensitively.
    """

    exact = base_dir / relative_path
    if exact.exists():
        return exact if is_within(exact, base_dir) else None

    current = base_dir
    for part in (p for p in relative_path.replace("\\", "/").split("/") if p):
        if not current.is_dir():
            return None
        wanted = part.lower()
        match = next((entry for entry in sorted(current.iterdir()) if entry.name.lower() == wanted), None)
        if match is None:
            return None
        current = match
    return current if current.exists() and current != base_dir else None


def preview_path_for(preview_dir: Path, pack_id: str) -> Path:
    """Where the diagnostic preview of a pack is written."""

    return preview_dir / f"{pack_id}-preview.png"


def is_within(path: Path, root: Path) -> bool:
    """True when path resolves to root or somewhere below it."""

    resolved = path.resolve()
    root = root.resolve()
    return resolved == root or root in resolved.parents
