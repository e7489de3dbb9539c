from __future__ import annotations

import math
from typing import List, Tuple

from src.tilestitch.capture.config import Surface, Tile
from src.tilestitch.render.errors import InvalidViewportError

__all__ = [
    "clamp_extent",
    "format_dimensions",
    "plan_tiles",
    "scaled_surface",
    "tile_count",
]


def format_dimensions(width: int, height: int) -> str:
    """Return width × height using integer values."""

    return f"{int(width)} × {int(height)}"


def _require_positive(width: int, height: int, label: str) -> None:
    if int(width) <= 0 or int(height) <= 0:
        raise InvalidViewportError(
            f"{label} dimensions must be positive (got {format_dimensions(width, height)})"
        )


def scaled_surface(logical_width: float, logical_height: float, scale: float) -> Surface:
    """Build a Surface whose pixel extent is the logical size times *scale*."""

    if scale <= 0 or not math.isfinite(scale):
        raise InvalidViewportError(f"Surface scale must be positive (got {scale})")
    return Surface(width=float(logical_width), height=float(logical_height), scale=float(scale))


def tile_count(
    surface_width: int,
    surface_height: int,
    viewport_width: int,
    viewport_height: int,
) -> Tuple[int, int]:
    """Return ``(columns, rows)`` needed to cover the surface."""

    _require_positive(viewport_width, viewport_height, "Viewport")
    _require_positive(surface_width, surface_height, "Surface")
    columns = -(-int(surface_width) // int(viewport_width))
    rows = -(-int(surface_height) // int(viewport_height))
    return (columns, rows)


def clamp_extent(origin: int, span: int, limit: int) -> int:
    """Return how much of ``span`` starting at ``origin`` fits below ``limit``."""

    return max(0, min(int(span), int(limit) - int(origin)))


def plan_tiles(
    surface_width: int,
    surface_height: int,
    viewport_width: int,
    viewport_height: int,
) -> List[Tile]:
    """
    Plan the row-major grid of tiles covering a surface.

    Each tile is one viewport-sized region; tiles on the last row or column are
    truncated to the remaining surface extent so the union is exactly the
    surface and no two tiles overlap.

    Raises:
        InvalidViewportError: If any viewport or surface dimension is not positive.
    """

    columns, rows = tile_count(surface_width, surface_height, viewport_width, viewport_height)
    step_x = int(viewport_width)
    step_y = int(viewport_height)
    limit_x = int(surface_width)
    limit_y = int(surface_height)

    tiles: List[Tile] = []
    for row in range(rows):
        origin_y = row * step_y
        height = clamp_extent(origin_y, step_y, limit_y)
        for column in range(columns):
            origin_x = column * step_x
            tiles.append(
                Tile(
                    origin_x=origin_x,
                    origin_y=origin_y,
                    width=clamp_extent(origin_x, step_x, limit_x),
                    height=height,
                    row=row,
                    column=column,
                    index=len(tiles),
                )
            )
    return tiles
