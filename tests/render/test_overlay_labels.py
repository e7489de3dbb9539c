from __future__ import annotations

from typing import Any, List, Tuple

import pytest
from PIL import Image

from src.datatypes import OverlayConfig
from src.tilestitch.capture.config import LabelSpec, Rect
from src.tilestitch.render import overlay


def _label(text: str, x: float, y: float, width: float = 20, height: float = 10) -> LabelSpec:
    return LabelSpec(text=text, rect=Rect(x, y, width, height))


class _RecordingDraw:
    def __init__(self, log: List[Tuple[Any, ...]], image: Image.Image) -> None:
        self._log = log
        self._image = image

    def rectangle(self, xy, fill=None, **_kwargs) -> None:
        self._log.append(("rectangle", tuple(xy), fill))

    def text(self, xy, text, fill=None, font=None, **_kwargs) -> None:
        self._log.append(("text", tuple(xy), text, self._image))


def test_find_anchor_prefers_strictly_larger_containers() -> None:
    first = Rect(10, 10, 100, 100)
    wider_only = Rect(0, 0, 200, 100)
    larger = Rect(3, 4, 150, 150)

    assert overlay.find_anchor([first, wider_only]) is first
    assert overlay.find_anchor([first, wider_only, larger]) is larger


def test_find_anchor_keeps_first_on_tie() -> None:
    first = Rect(10, 10, 100, 100)
    same = Rect(50, 50, 100, 100)

    assert overlay.find_anchor([first, same]) is first


def test_find_anchor_empty_returns_none() -> None:
    assert overlay.find_anchor([]) is None


def test_plan_label_placements_translates_by_anchor() -> None:
    placements = overlay.plan_label_placements(
        [_label("Goblin", 15, 20)],
        [Rect(10, 10, 300, 300)],
    )

    assert len(placements) == 1
    assert (placements[0].x, placements[0].y) == (5, 10)
    assert placements[0].text == "Goblin"


def test_plan_label_placements_without_containers_uses_origin() -> None:
    placements = overlay.plan_label_placements([_label("Orc", 15, 20)], [])

    assert (placements[0].x, placements[0].y) == (15, 20)


def test_overlay_blends_background_over_composite() -> None:
    composite = Image.new("RGBA", (60, 40), (0, 0, 0, 255))

    result = overlay.overlay_labels(composite, [_label("", 15, 20)], [Rect(10, 10, 60, 40)])

    assert result is composite
    inside = composite.getpixel((5, 10))
    far_corner = composite.getpixel((24, 19))
    outside = composite.getpixel((25, 19))
    assert all(abs(channel - 128) <= 2 for channel in inside[:3])
    assert inside[3] == 255
    assert far_corner == inside
    assert outside == (0, 0, 0, 255)


def test_overlay_draws_all_backgrounds_before_any_text(monkeypatch: pytest.MonkeyPatch) -> None:
    log: List[Tuple[Any, ...]] = []
    monkeypatch.setattr(overlay.ImageDraw, "Draw", lambda image: _RecordingDraw(log, image))
    composite = Image.new("RGBA", (100, 100), (0, 0, 0, 0))
    labels = [_label("A", 15, 20), _label("B", 25, 25)]

    overlay.overlay_labels(composite, labels, [Rect(10, 10, 90, 90)], overlay.OverlayStyle())

    kinds = [entry[0] for entry in log]
    assert kinds == ["rectangle", "rectangle", "text", "text"]
    assert log[0][1] == (5, 10, 24, 19)
    assert log[2][1] == (5, 15)
    assert log[3][1] == (15, 20)
    assert [entry[2] for entry in log[2:]] == ["A", "B"]
    assert all(entry[3] is composite for entry in log[2:])


def test_overlay_skips_zero_sized_background(monkeypatch: pytest.MonkeyPatch) -> None:
    log: List[Tuple[Any, ...]] = []
    monkeypatch.setattr(overlay.ImageDraw, "Draw", lambda image: _RecordingDraw(log, image))
    composite = Image.new("RGBA", (50, 50))

    overlay.overlay_labels(composite, [_label("x", 0, 0, width=0, height=10)], [])

    assert [entry[0] for entry in log] == ["text"]


def test_overlay_without_labels_leaves_composite_untouched() -> None:
    composite = Image.new("RGBA", (10, 10), (1, 2, 3, 255))

    overlay.overlay_labels(composite, [], [Rect(0, 0, 10, 10)])

    assert composite.getpixel((5, 5)) == (1, 2, 3, 255)


def test_overlay_rejects_non_rgba_composite() -> None:
    with pytest.raises(ValueError):
        overlay.overlay_labels(Image.new("RGB", (10, 10)), [_label("a", 0, 0)], [])


def test_style_from_config_parses_colours() -> None:
    cfg = OverlayConfig(background_color="#ff000040", text_color="blue", font_size=18)

    style = overlay.OverlayStyle.from_config(cfg)

    assert style.background == (255, 0, 0, 64)
    assert style.text == (0, 0, 255, 255)
    assert style.font_size == 18
    assert style.text_offset == 5


def test_load_label_font_falls_back_to_default() -> None:
    style = overlay.OverlayStyle(font_candidates=("no-such-font-for-tests.ttf",))

    font = overlay.load_label_font(style)

    assert font is not None
