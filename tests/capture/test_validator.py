from __future__ import annotations

import pytest
from PIL import Image

from src.tilestitch.capture import validator
from src.tilestitch.capture.config import Tile


def _frame(size=(40, 30), color=(10, 20, 30, 255)) -> Image.Image:
    return Image.new("RGBA", size, color)


def _tile(width: int = 40, height: int = 30) -> Tile:
    return Tile(origin_x=0, origin_y=0, width=width, height=height)


def test_clean_frame_is_accepted_without_spending_budget() -> None:
    outcome = validator.validate(_frame(), _tile(), 3)

    assert outcome.verdict is validator.Verdict.ACCEPT
    assert outcome.remaining == 3


def test_corrupted_frame_retries_while_budget_remains() -> None:
    frame = _frame()
    frame.putpixel((12, 0), (0, 0, 0, 0))

    outcome = validator.validate(frame, _tile(), 2)

    assert outcome.verdict is validator.Verdict.RETRY
    assert outcome.remaining == 1


def test_corrupted_frame_rejected_when_budget_exhausted() -> None:
    frame = _frame()
    frame.putpixel((12, 0), (0, 0, 0, 0))

    outcome = validator.validate(frame, _tile(), 0)

    assert outcome.verdict is validator.Verdict.REJECT
    assert outcome.remaining == 0


def test_bottom_row_transparency_is_detected() -> None:
    frame = _frame()
    frame.putpixel((39, 29), (255, 255, 255, 0))

    assert validator.is_corrupted(frame, _tile())


def test_partially_transparent_pixels_are_not_corruption() -> None:
    frame = _frame(color=(10, 20, 30, 1))

    assert not validator.is_corrupted(frame, _tile())


def test_interior_transparency_is_not_detected() -> None:
    frame = _frame()
    frame.putpixel((20, 15), (0, 0, 0, 0))

    assert not validator.is_corrupted(frame, _tile())


def test_sampling_is_clamped_to_truncated_tile() -> None:
    frame = _frame(size=(40, 30))
    # Only the region outside a 25×10 tile is transparent.
    frame.paste((0, 0, 0, 0), (25, 0, 40, 30))
    frame.paste((0, 0, 0, 0), (0, 10, 40, 30))

    assert not validator.is_corrupted(frame, _tile(width=25, height=10))
    assert validator.is_corrupted(frame, _tile(width=26, height=10))
    assert validator.is_corrupted(frame, _tile(width=25, height=11))


def test_frame_without_alpha_band_is_opaque() -> None:
    frame = Image.new("RGB", (40, 30), (0, 0, 0))

    assert not validator.is_corrupted(frame, _tile())


def test_zero_extent_is_treated_as_corrupted() -> None:
    assert validator.is_corrupted(_frame(), _tile(width=0))


@pytest.mark.parametrize("budget", [-4, 0])
def test_negative_budget_behaves_like_exhausted(budget) -> None:
    frame = _frame()
    frame.putpixel((0, 0), (0, 0, 0, 0))

    assert validator.validate(frame, _tile(), budget).verdict is validator.Verdict.REJECT
