"""Edge-row corruption checks and the per-tile retry policy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from PIL import Image

from src.tilestitch.capture.config import Tile
from src.tilestitch.render.geometry import clamp_extent

__all__ = [
    "ValidationOutcome",
    "Verdict",
    "is_corrupted",
    "validate",
]


class Verdict(str, Enum):
    """Decision for one validation attempt."""

    ACCEPT = "accept"
    RETRY = "retry"
    REJECT = "reject"


@dataclass(frozen=True)
class ValidationOutcome:
    """Verdict plus the retry budget left after applying it."""

    verdict: Verdict
    remaining: int


def _alpha_channel(frame: Image.Image) -> Image.Image:
    if frame.mode == "RGBA":
        return frame.getchannel("A")
    if "A" in frame.getbands():
        return frame.convert("RGBA").getchannel("A")
    # No alpha band means every pixel is opaque.
    return Image.new("L", frame.size, 255)


def _row_has_transparency(alpha: Image.Image, y: int, width: int) -> bool:
    row = alpha.crop((0, y, width, y + 1))
    low, _high = row.getextrema()
    return low == 0


def is_corrupted(frame: Image.Image, tile: Tile) -> bool:
    """
    Return True when the top or bottom sampled row contains a fully transparent pixel.

    Sampling is clamped to the tile's extent so the truncated last row/column
    never reads past the surface. Corruption confined to the interior is not
    detected.
    """

    width = clamp_extent(0, tile.width, frame.width)
    height = clamp_extent(0, tile.height, frame.height)
    if width <= 0 or height <= 0:
        return True

    alpha = _alpha_channel(frame)
    if _row_has_transparency(alpha, 0, width):
        return True
    return _row_has_transparency(alpha, height - 1, width)


def validate(frame: Image.Image, tile: Tile, budget: int) -> ValidationOutcome:
    """Accept a clean frame; otherwise spend one unit of *budget* or reject."""

    remaining = max(0, int(budget))
    if not is_corrupted(frame, tile):
        return ValidationOutcome(Verdict.ACCEPT, remaining)
    if remaining > 0:
        return ValidationOutcome(Verdict.RETRY, remaining - 1)
    return ValidationOutcome(Verdict.REJECT, 0)
