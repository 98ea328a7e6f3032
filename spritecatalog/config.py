"""Runtime settings, overridable through environment variables."""

from __future__ import annotations

import os
from pathlib import Path

CACHE_DIR = Path(os.environ.get("PALETTE_CACHE_DIR", ".cache"))
CATALOG_PATH = Path(os.environ.get("PALETTE_CATALOG", "catalog.json"))
HOST = os.environ.get("PALETTE_HOST", "127.0.0.1")
PORT = int(os.environ.get("PALETTE_PORT", "3847"))
DOWNLOAD_TIMEOUT_SECONDS = float(os.environ.get("PALETTE_DOWNLOAD_TIMEOUT", "120"))

DEFAULT_TILE_SIZE = 16
MIN_ZOOM = 1
MAX_ZOOM = 8
DRAG_THRESHOLD_PX = 3
# Margin the sheet view keeps around the image when picking a fit zoom.
FIT_MARGIN_PX = 40

PREVIEW_CELL_SIZE = 64
PREVIEW_COLUMNS = 8
PREVIEW_LIMIT = 64
PREVIEW_INSET = 2
PREVIEW_BACKGROUND = (40, 40, 40, 255)
