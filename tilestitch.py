"""Public shim exposing the tilestitch CLI and library surface."""

from __future__ import annotations

from src.config_loader import ConfigError, load_config
from src.datatypes import AppConfig
from src.tilestitch.capture.adapter import RendererAdapter
from src.tilestitch.capture.orchestrator import CaptureResult, CaptureSession, capture
from src.tilestitch.cli_entry import main
from src.tilestitch.render.errors import (
    CaptureError,
    HostIntegrityError,
    InvalidViewportError,
    RenderUnavailableError,
    TileRenderTimeoutError,
)
from src.tilestitch.render.postprocess import finish_image

__all__ = (
    "AppConfig",
    "CaptureError",
    "CaptureResult",
    "CaptureSession",
    "ConfigError",
    "HostIntegrityError",
    "InvalidViewportError",
    "RenderUnavailableError",
    "RendererAdapter",
    "TileRenderTimeoutError",
    "capture",
    "finish_image",
    "load_config",
    "main",
)


if __name__ == "__main__":
    main()
