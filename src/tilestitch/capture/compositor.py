"""Copy accepted tiles into the composite image."""

from __future__ import annotations

from PIL import Image

from src.tilestitch.capture.config import Surface, Tile, TileResult
from src.tilestitch.render.errors import CompositeBoundsError, RenderUnavailableError
from src.tilestitch.render.geometry import format_dimensions

__all__ = ["new_composite", "write"]


def new_composite(surface: Surface) -> Image.Image:
    """Allocate a fully transparent RGBA accumulator sized to the surface."""

    return Image.new("RGBA", (surface.pixel_width, surface.pixel_height), (0, 0, 0, 0))


def write(composite: Image.Image, tile: Tile, result: TileResult) -> None:
    """Paste the tile-extent region of ``result.frame`` at the tile origin."""

    left, top, right, bottom = tile.box
    if left < 0 or top < 0 or right > composite.width or bottom > composite.height:
        raise CompositeBoundsError(
            f"Tile {tile.index} at ({left}, {top}) size {format_dimensions(tile.width, tile.height)} "
            f"falls outside composite {format_dimensions(composite.width, composite.height)}"
        )
    frame = result.frame
    if frame.width < tile.width or frame.height < tile.height:
        raise RenderUnavailableError(
            f"Frame {format_dimensions(frame.width, frame.height)} is smaller than tile "
            f"{tile.index} extent {format_dimensions(tile.width, tile.height)}"
        )
    region = frame.crop((0, 0, tile.width, tile.height))
    if region.mode != composite.mode:
        region = region.convert(composite.mode)
    composite.paste(region, (left, top))
