"""Configuration dataclasses for the tiled capture tool."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List


ZOOM_LEVELS: tuple[int, ...] = tuple(range(10, 251, 10))
"""Zoom percentages offered by the host zoom widget."""

DEFAULT_ZOOM = 100


class OutputFormat(str, Enum):
    """Encodings available for the stitched image."""

    PNG = "png"
    JPEG = "jpeg"


@dataclass
class CaptureConfig:
    """Tile capture pacing, zoom and retry budget."""

    zoom: int = DEFAULT_ZOOM
    retry_budget: int = 10
    max_frame_waits: int = 10
    settle_frames: int = 2
    grid_cell_size: int = 70


@dataclass
class OverlayConfig:
    """Label overlay styling."""

    enabled: bool = True
    background_color: str = "#ffffff80"
    text_color: str = "#000000"
    font_size: int = 14
    text_offset: int = 5
    font_candidates: List[str] = field(
        default_factory=lambda: [
            "arialbd.ttf",
            "Arial Bold.ttf",
            "DejaVuSans-Bold.ttf",
            "LiberationSans-Bold.ttf",
        ]
    )


@dataclass
class OutputConfig:
    """Encoding and post-processing of the final image."""

    format: OutputFormat = OutputFormat.PNG
    compression_level: int = 1
    jpeg_quality: int = 90
    crop_visible: bool = False
    resolution: int = 0


@dataclass
class HostConfig:
    """CSS selectors used by the Playwright page adapter."""

    canvas_selector: str = "#babylonCanvas"
    scroll_container_selector: str = "#editor-wrapper"
    editor_selector: str = "#editor"
    zoom_select_selector: str = ".selZoom"
    zoom_display_selector: str = "#zoomPercent"
    label_selector: str = ".nameplate"
    label_container_selector: str = "#token-properties-layer"


@dataclass
class AppConfig:
    """Top-level configuration bundle."""

    capture: CaptureConfig = field(default_factory=CaptureConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    host: HostConfig = field(default_factory=HostConfig)
