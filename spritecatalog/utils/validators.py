"""Validation helpers for user inputs."""

from __future__ import annotations

from ..config import MAX_ZOOM, MIN_ZOOM
from ..core.errors import ValidationError


def validate_tile_size(value: int) -> int:
    if value <= 0:
        raise ValidationError("Tile size must be greater than zero")
    return value


def validate_non_negative(value: int, field: str) -> int:
    if value < 0:
        raise ValidationError(f"{field} must be zero or greater")
    return value


def validate_grid_params(tile_size: int, spacing: int, offset_x: int, offset_y: int) -> None:
    """Ensure grid values describe a usable grid."""

    validate_tile_size(tile_size)
    validate_non_negative(spacing, "Spacing")
    validate_non_negative(offset_x, "Grid X offset")
    validate_non_negative(offset_y, "Grid Y offset")


def validate_zoom(value: int) -> int:
    if value < MIN_ZOOM or value > MAX_ZOOM:
        raise ValidationError(f"Zoom must be between {MIN_ZOOM} and {MAX_ZOOM}")
    return value
