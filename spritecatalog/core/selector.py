"""Pointer/zoom state machine for picking sprites off a sheet.

Pointer coordinates are viewport pixels (relative to the visible area of the
zoomed sheet); the image point under the pointer is
``(viewport + scroll) / zoom``. Rendering is left to whoever drives the
session: it reads ``hover``, ``selection``, ``viewport`` and ``guide_lines()``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .. import config
from ..utils import validators
from . import GridParams, SelectionEntry, SpriteRect
from .errors import SessionClosedError, ValidationError
from .grid import grid_lines, pixel_to_rect
from .transport import ResultTransport

logger = logging.getLogger(__name__)


class DragState(Enum):
    IDLE = "idle"
    PANNING = "panning"
    GRID_DRAGGING = "grid_dragging"
    CLOSED = "closed"


@dataclass
class Viewport:
    """Visible window onto the zoomed sheet."""

    width: int
    height: int
    scroll_x: float = 0.0
    scroll_y: float = 0.0


@dataclass(frozen=True)
class PackIdentity:
    id: str
    name: str
    source: str = ""
    cache_path: str = ""


@dataclass(frozen=True)
class SheetRef:
    """A loaded sheet: its path inside the pack and its pixel size."""

    path: str
    width: int
    height: int


@dataclass
class _DragStart:
    x: float
    y: float
    scroll_x: float
    scroll_y: float
    offset_x: int
    offset_y: int
    moved: bool = False


def _js_round(value: float) -> int:
    # half-up rounding, so a drag of -0.5 cells snaps the same way as +0.5
    return math.floor(value + 0.5)


def fit_zoom(sheet_width: int, sheet_height: int, viewport_width: int, viewport_height: int) -> int:
    """Largest integer zoom in [MIN_ZOOM, MAX_ZOOM] that fits the sheet in the viewport."""

    usable_w = viewport_width - config.FIT_MARGIN_PX
    usable_h = viewport_height - config.FIT_MARGIN_PX
    if sheet_width <= 0 or sheet_height <= 0:
        return config.MIN_ZOOM
    ratio = min(usable_w / sheet_width, usable_h / sheet_height)
    return max(config.MIN_ZOOM, min(config.MAX_ZOOM, math.floor(ratio)))


class Selection:
    """Ordered selected cells, unique by (x, y) origin."""

    def __init__(self) -> None:
        self.entries: list[SelectionEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def index_of(self, x: int, y: int) -> Optional[int]:
        for idx, entry in enumerate(self.entries):
            if entry.key == (x, y):
                return idx
        return None

    def toggle(self, rect: SpriteRect) -> Optional[SelectionEntry]:
        """Add the cell, or remove it when already selected.

        Returns the new entry, or None when the cell was removed.
        """

        existing = self.index_of(rect.x, rect.y)
        if existing is not None:
            self.entries.pop(existing)
            return None
        entry = SelectionEntry(name=f"sprite-{rect.x}-{rect.y}", x=rect.x, y=rect.y, w=rect.w, h=rect.h)
        self.entries.append(entry)
        return entry

    def rename(self, index: int, name: str) -> SelectionEntry:
        entry = self._entry(index)
        entry.name = name
        return entry

    def remove(self, index: int) -> SelectionEntry:
        self._entry(index)
        return self.entries.pop(index)

    def clear(self) -> None:
        self.entries.clear()

    def _entry(self, index: int) -> SelectionEntry:
        if index < 0 or index >= len(self.entries):
            raise IndexError(f"No selection at index {index}")
        return self.entries[index]

    def to_sprites(self) -> dict[str, dict[str, int]]:
        # later duplicates of a user-edited name win, as in a JS object literal
        return {entry.name: {"x": entry.x, "y": entry.y, "w": entry.w, "h": entry.h} for entry in self.entries}


class SelectorSession:
    """One sheet, one grid and one selection, driven by discrete user events."""

    def __init__(
        self,
        pack: PackIdentity,
        sheet: SheetRef,
        grid: GridParams,
        viewport: Viewport,
        zoom: Optional[int] = None,
    ) -> None:
        validators.validate_grid_params(grid.tile_size, grid.spacing, grid.offset_x, grid.offset_y)
        self.pack = pack
        self.grid = grid
        self.viewport = viewport
        self.state = DragState.IDLE
        self.hover: Optional[SpriteRect] = None
        self.selection = Selection()
        self.sheet = sheet
        self.zoom = config.MIN_ZOOM
        self._drag: Optional[_DragStart] = None
        self.load_sheet(sheet, zoom=zoom)

    # -- sheet / view -------------------------------------------------

    def load_sheet(self, sheet: SheetRef, zoom: Optional[int] = None) -> None:
        """Show a new sheet with a fresh, empty selection."""

        self._ensure_open()
        self.sheet = sheet
        self.selection = Selection()
        self.hover = None
        self.state = DragState.IDLE
        self._drag = None
        if zoom is None:
            zoom = fit_zoom(sheet.width, sheet.height, self.viewport.width, self.viewport.height)
        self.zoom = validators.validate_zoom(zoom)
        self._set_scroll(0, 0)
        logger.debug("Loaded sheet %s (%sx%s) at %sx", sheet.path, sheet.width, sheet.height, self.zoom)

    def image_point(self, vx: float, vy: float) -> tuple[float, float]:
        return (vx + self.viewport.scroll_x) / self.zoom, (vy + self.viewport.scroll_y) / self.zoom

    def viewport_center(self) -> tuple[float, float]:
        """Image-space point at the centre of the viewport."""

        return self.image_point(self.viewport.width / 2, self.viewport.height / 2)

    def zoom_to(self, new_zoom: int) -> int:
        """Change zoom while keeping the centred image point centred."""

        self._ensure_open()
        new_zoom = max(config.MIN_ZOOM, min(config.MAX_ZOOM, int(new_zoom)))
        center_x, center_y = self.viewport_center()
        self.zoom = new_zoom
        self._set_scroll(
            center_x * new_zoom - self.viewport.width / 2,
            center_y * new_zoom - self.viewport.height / 2,
        )
        self.hover = None
        return self.zoom

    def zoom_in(self) -> int:
        return self.zoom_to(self.zoom + 1)

    def zoom_out(self) -> int:
        return self.zoom_to(self.zoom - 1)

    def resize_viewport(self, width: int, height: int) -> None:
        self.viewport.width = width
        self.viewport.height = height
        self._set_scroll(self.viewport.scroll_x, self.viewport.scroll_y)

    def _set_scroll(self, scroll_x: float, scroll_y: float) -> None:
        max_x = max(0, self.sheet.width * self.zoom - self.viewport.width)
        max_y = max(0, self.sheet.height * self.zoom - self.viewport.height)
        self.viewport.scroll_x = min(max(0, scroll_x), max_x)
        self.viewport.scroll_y = min(max(0, scroll_y), max_y)

    def guide_lines(self) -> tuple[list[int], list[int]]:
        return grid_lines(self.sheet.width, self.sheet.height, self.grid, self.zoom)

    # -- grid edits ---------------------------------------------------

    def set_tile_size(self, tile_size: int) -> None:
        self._ensure_open()
        self.grid = GridParams(validators.validate_tile_size(tile_size), self.grid.spacing, self.grid.offset_x, self.grid.offset_y)

    def set_spacing(self, spacing: int) -> None:
        self._ensure_open()
        validators.validate_non_negative(spacing, "Spacing")
        self.grid = GridParams(self.grid.tile_size, spacing, self.grid.offset_x, self.grid.offset_y)

    def set_offset(self, offset_x: int, offset_y: int) -> None:
        self._ensure_open()
        validators.validate_non_negative(offset_x, "Grid X offset")
        validators.validate_non_negative(offset_y, "Grid Y offset")
        self.grid = GridParams(self.grid.tile_size, self.grid.spacing, offset_x, offset_y)

    # -- pointer events -----------------------------------------------

    def pointer_down(self, x: float, y: float, modifier: bool = False) -> DragState:
        self._ensure_open()
        if self.state is not DragState.IDLE:
            raise ValidationError(f"Pointer already down ({self.state.value})")
        self._drag = _DragStart(
            x=x,
            y=y,
            scroll_x=self.viewport.scroll_x,
            scroll_y=self.viewport.scroll_y,
            offset_x=self.grid.offset_x,
            offset_y=self.grid.offset_y,
        )
        self.state = DragState.GRID_DRAGGING if modifier else DragState.PANNING
        self.hover = None
        return self.state

    def pointer_move(self, x: float, y: float) -> Optional[SpriteRect]:
        """Advance a drag, or update the hover cell when idle."""

        self._ensure_open()
        if self.state is DragState.IDLE:
            self.hover = self._cell_under(x, y)
            return self.hover

        drag = self._drag
        dx = x - drag.x
        dy = y - drag.y
        if abs(dx) > config.DRAG_THRESHOLD_PX or abs(dy) > config.DRAG_THRESHOLD_PX:
            drag.moved = True

        if self.state is DragState.GRID_DRAGGING:
            self.grid = GridParams(
                self.grid.tile_size,
                self.grid.spacing,
                max(0, drag.offset_x + _js_round(dx / self.zoom)),
                max(0, drag.offset_y + _js_round(dy / self.zoom)),
            )
        else:
            self._set_scroll(drag.scroll_x - dx, drag.scroll_y - dy)
        return None

    def pointer_up(self, x: float, y: float) -> Optional[SelectionEntry]:
        """End a drag; a drag that never moved counts as a click here.

        The release point is applied as a final move first, so a press and
        release more than the drag threshold apart pans (or shifts the grid)
        instead of clicking. Returns the entry added by the click, if any.
        """

        self._ensure_open()
        if self.state is DragState.IDLE:
            return None
        self.pointer_move(x, y)
        drag = self._drag
        self.state = DragState.IDLE
        self._drag = None
        if drag.moved:
            return None
        return self.click(x, y)

    def pointer_leave(self) -> None:
        """Abandon any drag without clicking and hide the hover outline."""

        self._ensure_open()
        self.state = DragState.IDLE
        self._drag = None
        self.hover = None

    def click(self, x: float, y: float) -> Optional[SelectionEntry]:
        self._ensure_open()
        rect = self._cell_under(x, y)
        if rect is None:
            return None
        entry = self.selection.toggle(rect)
        logger.debug("Toggled cell (%s, %s): %s", rect.x, rect.y, "added" if entry else "removed")
        return entry

    def _cell_under(self, x: float, y: float) -> Optional[SpriteRect]:
        px, py = self.image_point(x, y)
        if px < 0 or py < 0 or px >= self.sheet.width or py >= self.sheet.height:
            return None
        return pixel_to_rect(px, py, self.grid)

    # -- hand-off -----------------------------------------------------

    @property
    def closed(self) -> bool:
        return self.state is DragState.CLOSED

    def _ensure_open(self) -> None:
        if self.state is DragState.CLOSED:
            raise SessionClosedError("Selector session already closed")

    def result(self) -> dict[str, Any]:
        return {
            "packId": self.pack.id,
            "packName": self.pack.name,
            "source": self.pack.source,
            "sheetPath": self.sheet.path,
            "sheetWidth": self.sheet.width,
            "sheetHeight": self.sheet.height,
            "tileSize": self.grid.tile_size,
            "spacing": self.grid.spacing,
            "gridOffset": {"x": self.grid.offset_x, "y": self.grid.offset_y},
            "sprites": self.selection.to_sprites(),
            "cachePath": self.pack.cache_path,
        }

    def copy_and_close(self, transport: ResultTransport) -> dict[str, Any]:
        """Hand the result to the transport and end the session."""

        self._ensure_open()
        result = self.result()
        transport(result)
        self.state = DragState.CLOSED
        self._drag = None
        logger.info("Selection of %s sprites handed off for %s", len(self.selection), self.pack.id)
        return result
