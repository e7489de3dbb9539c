from __future__ import annotations

import pytest
from click.testing import CliRunner

from src.datatypes import AppConfig
from tests.helpers.fake_host import FakeRenderer


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    """Provide a 1000×1000 surface behind a 400×400 viewport at 100% zoom."""

    return FakeRenderer()


@pytest.fixture
def quiet_config() -> AppConfig:
    """Default config with short frame waits and overlay disabled."""

    cfg = AppConfig()
    cfg.capture.max_frame_waits = 2
    cfg.capture.settle_frames = 0
    cfg.overlay.enabled = False
    return cfg


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()
