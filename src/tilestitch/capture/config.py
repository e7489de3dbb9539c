"""Capture data types shared by the planner, session and overlay."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from PIL import Image


@dataclass(frozen=True)
class Size:
    """Integer width/height pair reported by the host."""

    width: int
    height: int

    def as_tuple(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class Rect:
    """
    On-screen bounding rectangle in CSS pixels.

    Attributes:
        x (float): Left edge.
        y (float): Top edge.
        width (float): Horizontal extent.
        height (float): Vertical extent.
    """

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Surface:
    """Logical content size plus the display scale it is captured at."""

    width: float
    height: float
    scale: float = 1.0

    @property
    def pixel_width(self) -> int:
        return int(self.width * self.scale)

    @property
    def pixel_height(self) -> int:
        return int(self.height * self.scale)


@dataclass(frozen=True)
class Tile:
    """
    One viewport-sized region of the surface.

    Attributes:
        origin_x (int): Horizontal offset into surface pixels.
        origin_y (int): Vertical offset into surface pixels.
        width (int): Extent clamped to the remaining surface width.
        height (int): Extent clamped to the remaining surface height.
        row (int): Grid row, top to bottom.
        column (int): Grid column, left to right.
        index (int): Position in row-major order.
    """

    origin_x: int
    origin_y: int
    width: int
    height: int
    row: int = 0
    column: int = 0
    index: int = 0

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (
            self.origin_x,
            self.origin_y,
            self.origin_x + self.width,
            self.origin_y + self.height,
        )


@dataclass
class TileResult:
    """Accepted pixels for a tile and the attempt that produced them."""

    tile: Tile
    frame: Image.Image
    attempt: int


@dataclass(frozen=True)
class LabelSpec:
    """Text read from a host label element plus its on-screen rectangle."""

    text: str
    rect: Rect


@dataclass
class SavedViewState:
    """Scroll and zoom captured before a session starts changing them."""

    zoom: int
    scroll: Tuple[float, float] = field(default=(0.0, 0.0))
