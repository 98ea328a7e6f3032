"""Pixel/cell conversion and bounds math for uniform sprite grids."""

from __future__ import annotations

import numpy as np

from . import GridParams, SpriteRect
from .errors import InvalidGridError


def _require_stride(grid: GridParams) -> int:
    stride = grid.stride
    if stride <= 0:
        raise InvalidGridError(f"Grid stride must be positive (tile_size={grid.tile_size}, spacing={grid.spacing})")
    return stride


def pixel_to_cell(px: float, py: float, grid: GridParams) -> tuple[int, int]:
    """Return the (possibly negative) cell index containing a pixel."""

    stride = _require_stride(grid)
    cell_x = int((px - grid.offset_x) // stride)
    cell_y = int((py - grid.offset_y) // stride)
    return cell_x, cell_y


def cell_to_rect(cell_x: int, cell_y: int, grid: GridParams) -> SpriteRect:
    """Return the tile rectangle for a cell index."""

    stride = grid.stride
    return SpriteRect(
        x=grid.offset_x + cell_x * stride,
        y=grid.offset_y + cell_y * stride,
        w=grid.tile_size,
        h=grid.tile_size,
    )


def pixel_to_rect(px: float, py: float, grid: GridParams) -> SpriteRect:
    """Return the tile rectangle whose cell contains the pixel."""

    cell_x, cell_y = pixel_to_cell(px, py, grid)
    return cell_to_rect(cell_x, cell_y, grid)


def is_within_bounds(rect: SpriteRect, sheet_width: int, sheet_height: int) -> bool:
    """True when a fully sized rectangle lies inside the sheet."""

    if rect.w is None or rect.h is None:
        raise ValueError("Rectangle needs explicit w/h for a bounds check; use effective_rect first")
    return (
        rect.x >= 0
        and rect.y >= 0
        and rect.x + rect.w <= sheet_width
        and rect.y + rect.h <= sheet_height
    )


def _line_positions(offset: int, extent: int, stride: int, zoom: int) -> list[int]:
    # stop is exclusive, so extend by one to keep a line that lands on the edge
    return np.arange(offset * zoom, extent * zoom + 1, stride * zoom, dtype=np.int64).tolist()


def grid_lines(width: int, height: int, grid: GridParams, zoom: int = 1) -> tuple[list[int], list[int]]:
    """Screen positions of the vertical and horizontal guide lines.

    Lines start at the scaled grid offset and repeat every scaled stride while
    they stay within the scaled sheet extent.
    """

    stride = _require_stride(grid)
    if zoom <= 0:
        raise InvalidGridError(f"Zoom must be positive, got {zoom}")
    xs = _line_positions(grid.offset_x, width, stride, zoom)
    ys = _line_positions(grid.offset_y, height, stride, zoom)
    return xs, ys


def tile_edges(width: int, height: int, grid: GridParams, zoom: int = 1) -> tuple[list[int], list[int]]:
    """Right and bottom edges of every tile that fits inside the sheet."""

    xs, ys = grid_lines(width, height, grid, zoom)
    scaled_tile = grid.tile_size * zoom
    right = [x + scaled_tile for x in xs if x + scaled_tile <= width * zoom]
    bottom = [y + scaled_tile for y in ys if y + scaled_tile <= height * zoom]
    return right, bottom
