"""Error kinds raised while planning, capturing and compositing tiles."""

from __future__ import annotations

__all__ = [
    "CaptureError",
    "CompositeBoundsError",
    "HostIntegrityError",
    "InvalidViewportError",
    "RenderUnavailableError",
    "TileRenderTimeoutError",
    "ZoomUnavailableError",
]


class CaptureError(RuntimeError):
    """Base class for failures that end a capture session."""


class InvalidViewportError(CaptureError):
    """Raised when viewport or surface dimensions are non-positive."""


class RenderUnavailableError(CaptureError):
    """Raised when the host cannot produce a readable frame-buffer."""


class TileRenderTimeoutError(CaptureError):
    """Raised when a tile stays corrupted after its retry budget is spent."""

    def __init__(self, message: str, *, tile_index: int, attempts: int) -> None:
        super().__init__(message)
        self.tile_index = tile_index
        self.attempts = attempts


class HostIntegrityError(CaptureError):
    """Raised when the host renderer refuses to yield pixel data at all."""


class ZoomUnavailableError(CaptureError):
    """Raised by adapters when the requested zoom level cannot be selected."""


class CompositeBoundsError(CaptureError):
    """Raised when a tile would be written outside the composite."""
