import pytest

from spritecatalog.core import GridParams, SpriteRect
from spritecatalog.core.errors import InvalidGridError
from spritecatalog.core.grid import (
    cell_to_rect,
    grid_lines,
    is_within_bounds,
    pixel_to_cell,
    pixel_to_rect,
    tile_edges,
)


def test_pixel_on_cell_origin_belongs_to_that_cell():
    grid = GridParams(tile_size=16, spacing=1, offset_x=3, offset_y=5)
    for k in range(5):
        assert pixel_to_cell(3 + k * 17, 5 + k * 17, grid) == (k, k)
        assert pixel_to_cell(3 + k * 17 - 1, 5 + k * 17 - 1, grid) == (k - 1, k - 1)


def test_pixel_left_of_origin_gives_negative_cell():
    grid = GridParams(tile_size=16, offset_x=10, offset_y=10)
    assert pixel_to_cell(0, 9, grid) == (-1, -1)


@pytest.mark.parametrize("px,py", [(0, 0), (15, 15), (16, 0), (31.5, 47.9), (100, 3)])
def test_pixel_to_rect_contains_pixel(px, py):
    grid = GridParams(tile_size=16)
    rect = pixel_to_rect(px, py, grid)
    assert rect.x <= px < rect.x + rect.w
    assert rect.y <= py < rect.y + rect.h


def test_cell_to_rect_uses_stride_and_offset():
    grid = GridParams(tile_size=16, spacing=2, offset_x=1, offset_y=4)
    assert cell_to_rect(2, 3, grid) == SpriteRect(x=37, y=58, w=16, h=16)


def test_zero_stride_is_rejected():
    grid = GridParams(tile_size=0)
    with pytest.raises(InvalidGridError):
        pixel_to_cell(1, 1, grid)
    with pytest.raises(InvalidGridError):
        grid_lines(32, 32, grid)


def test_bounds_edge_is_inclusive():
    assert is_within_bounds(SpriteRect(16, 16, 16, 16), 32, 32)
    assert not is_within_bounds(SpriteRect(17, 16, 16, 16), 32, 32)
    assert not is_within_bounds(SpriteRect(16, 17, 16, 16), 32, 32)
    assert not is_within_bounds(SpriteRect(-1, 0, 16, 16), 32, 32)


def test_bounds_requires_sized_rect():
    with pytest.raises(ValueError):
        is_within_bounds(SpriteRect(0, 0), 16, 16)


def test_grid_lines_scaled_by_zoom():
    grid = GridParams(tile_size=16, spacing=0, offset_x=4, offset_y=0)
    xs, ys = grid_lines(40, 32, grid, zoom=2)
    assert xs == [8, 40, 72]
    assert ys == [0, 32, 64]


def test_grid_lines_empty_when_offset_past_sheet():
    grid = GridParams(tile_size=8, offset_x=50)
    xs, _ = grid_lines(32, 32, grid)
    assert xs == []


def test_tile_edges_only_for_tiles_that_fit():
    grid = GridParams(tile_size=16, spacing=1)
    right, bottom = tile_edges(40, 16, grid)
    assert right == [16, 33]
    assert bottom == [16]
