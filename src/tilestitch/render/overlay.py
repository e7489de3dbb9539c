from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from PIL import Image, ImageColor, ImageDraw, ImageFont

from src.datatypes import OverlayConfig
from src.tilestitch.capture.config import LabelSpec, Rect

__all__ = [
    "LabelPlacement",
    "OverlayStyle",
    "find_anchor",
    "load_label_font",
    "overlay_labels",
    "plan_label_placements",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabelPlacement:
    """A label translated into composite coordinates."""

    text: str
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class OverlayStyle:
    """Resolved colours, font and baseline offset for label drawing."""

    background: tuple[int, int, int, int] = (255, 255, 255, 128)
    text: tuple[int, int, int, int] = (0, 0, 0, 255)
    font_size: int = 14
    text_offset: int = 5
    font_candidates: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, cfg: OverlayConfig) -> "OverlayStyle":
        return cls(
            background=_rgba(cfg.background_color),
            text=_rgba(cfg.text_color),
            font_size=int(cfg.font_size),
            text_offset=int(cfg.text_offset),
            font_candidates=tuple(cfg.font_candidates),
        )


def _rgba(value: str) -> tuple[int, int, int, int]:
    color = ImageColor.getrgb(value)
    if len(color) == 3:
        return (color[0], color[1], color[2], 255)
    return (color[0], color[1], color[2], color[3])


def find_anchor(containers: Sequence[Rect]) -> Optional[Rect]:
    """
    Return the container rectangle used as the coordinate origin for labels.

    The first rectangle wins unless a later one is strictly taller and strictly
    wider than the current pick; ties and rectangles that only beat it on one
    axis are skipped.
    """

    largest: Optional[Rect] = None
    for rect in containers:
        if largest is None:
            largest = rect
        elif largest.height < rect.height and largest.width < rect.width:
            largest = rect
    return largest


def plan_label_placements(
    labels: Sequence[LabelSpec],
    containers: Sequence[Rect],
) -> List[LabelPlacement]:
    """Translate label rectangles into composite space relative to the anchor container."""

    anchor = find_anchor(containers)
    if anchor is None:
        logger.debug("No label containers found; labels keep their on-screen coordinates")
        anchor_x = anchor_y = 0.0
    else:
        anchor_x, anchor_y = anchor.x, anchor.y
    return [
        LabelPlacement(
            text=label.text,
            x=label.rect.x - anchor_x,
            y=label.rect.y - anchor_y,
            width=label.rect.width,
            height=label.rect.height,
        )
        for label in labels
    ]


def load_label_font(style: OverlayStyle) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    """Load the first available bold font candidate, falling back to Pillow's default."""

    for candidate in style.font_candidates:
        try:
            return ImageFont.truetype(candidate, style.font_size)
        except OSError:
            continue
    logger.debug("No label font candidate could be loaded; using Pillow default font")
    return ImageFont.load_default(size=style.font_size)


def overlay_labels(
    composite: Image.Image,
    labels: Sequence[LabelSpec],
    containers: Sequence[Rect],
    style: OverlayStyle | None = None,
) -> Image.Image:
    """
    Draw every label onto *composite* in place and return the same image.

    All backgrounds are blended first, then all text is drawn, so no label's
    text ends up underneath a neighbour's background.
    """

    if composite.mode != "RGBA":
        raise ValueError(f"Label overlay requires an RGBA composite, got {composite.mode}")
    placements = plan_label_placements(labels, containers)
    if not placements:
        return composite
    style = style or OverlayStyle.from_config(OverlayConfig())

    backgrounds = Image.new("RGBA", composite.size, (0, 0, 0, 0))
    background_draw = ImageDraw.Draw(backgrounds)
    for placement in placements:
        if placement.width <= 0 or placement.height <= 0:
            continue
        background_draw.rectangle(
            (
                placement.x,
                placement.y,
                placement.x + max(placement.width - 1, 0),
                placement.y + max(placement.height - 1, 0),
            ),
            fill=style.background,
        )
    composite.alpha_composite(backgrounds)

    font = load_label_font(style)
    text_draw = ImageDraw.Draw(composite)
    for placement in placements:
        if not placement.text:
            continue
        text_draw.text(
            (placement.x, placement.y + style.text_offset),
            placement.text,
            fill=style.text,
            font=font,
        )
    logger.debug("Drew %d label(s) onto composite", len(placements))
    return composite
