"""Renderer adapter backed by an already-open Playwright page."""

from __future__ import annotations

import base64
import io
import logging
from typing import Any, List, Mapping, Sequence, Tuple

from PIL import Image, UnidentifiedImageError
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from src.datatypes import DEFAULT_ZOOM, HostConfig
from src.tilestitch.capture.config import LabelSpec, Rect, Size
from src.tilestitch.render.errors import (
    HostIntegrityError,
    RenderUnavailableError,
    ZoomUnavailableError,
)

__all__ = ["PlaywrightPageAdapter", "is_integrity_violation"]

logger = logging.getLogger(__name__)

_INTEGRITY_MARKERS = ("securityerror", "insecure", "tainted")

_SURFACE_SIZE_JS = """
(cellSize) => {
    const page = window.Campaign.activePage();
    return [page.get('width') * cellSize, page.get('height') * cellSize];
}
"""

_CANVAS_SIZE_JS = """
(selector) => {
    const canvas = document.querySelector(selector);
    if (!canvas) return null;
    return [canvas.width, canvas.height];
}
"""

_FORCE_REDRAW_JS = "() => { window.Campaign.view.render(); }"

_NEXT_FRAME_JS = "() => new Promise(resolve => requestAnimationFrame(() => resolve(true)))"

_SET_SCROLL_JS = """
([selector, x, y]) => {
    const wrapper = document.querySelector(selector);
    wrapper.scrollLeft = x;
    wrapper.scrollTop = y;
}
"""

_GET_SCROLL_JS = """
(selector) => {
    const wrapper = document.querySelector(selector);
    return [wrapper.scrollLeft, wrapper.scrollTop];
}
"""

_GET_ZOOM_JS = """
([selector, fallback]) => {
    const text = document.querySelector(selector)?.textContent || String(fallback);
    return Number(text) || fallback;
}
"""

_SET_ZOOM_JS = """
([selector, level]) => {
    const select = document.querySelector(selector);
    if (!select) return false;
    const option = Array.from(select.children).find(({ value }) => Number(value) === level);
    if (!option) return false;
    option.click();
    return true;
}
"""

_READ_CANVAS_JS = """
(selector) => {
    const canvas = document.querySelector(selector);
    if (!canvas) return null;
    return canvas.toDataURL('image/png');
}
"""

_LABELS_JS = """
(selector) => Array.from(document.querySelectorAll(selector)).map((element) => {
    const rect = element.getBoundingClientRect();
    return { text: element.innerText, x: rect.x, y: rect.y, width: rect.width, height: rect.height };
})
"""

_CONTAINERS_JS = """
(selector) => {
    const layer = document.querySelector(selector);
    if (!layer) return [];
    return Array.from(layer.children).map((element) => {
        const rect = element.getBoundingClientRect();
        return { x: rect.x, y: rect.y, width: rect.width, height: rect.height };
    });
}
"""

_PREPARE_JS = """
([editorSelector, canvasSelector, scale]) => {
    const editor = document.querySelector(editorSelector);
    const canvas = document.querySelector(canvasSelector);
    if (!editor || !canvas) return null;
    editor.style.paddingRight = `${canvas.width / scale}px`;
    editor.style.paddingBottom = `${canvas.height / scale}px`;
    const style = getComputedStyle(editor);
    return [parseInt(style.paddingLeft, 10) || 0, parseInt(style.paddingTop, 10) || 0];
}
"""

_RELEASE_JS = """
(editorSelector) => {
    const editor = document.querySelector(editorSelector);
    if (!editor) return;
    editor.style.paddingRight = null;
    editor.style.paddingBottom = null;
}
"""


def is_integrity_violation(exc: BaseException) -> bool:
    """Return True when a page error reports a tainted canvas or security block."""

    message = str(exc).lower()
    return any(marker in message for marker in _INTEGRITY_MARKERS)


def _decode_data_url(data_url: str) -> Image.Image:
    _, _, payload = data_url.partition(",")
    if not payload:
        raise RenderUnavailableError("Canvas returned an empty data URL")
    try:
        raw = base64.b64decode(payload)
        with Image.open(io.BytesIO(raw)) as handle:
            handle.load()
            return handle.convert("RGBA")
    except (ValueError, UnidentifiedImageError, OSError) as exc:
        raise RenderUnavailableError(f"Canvas data could not be decoded: {exc}") from exc


def _rect_from(entry: Mapping[str, Any]) -> Rect:
    return Rect(
        x=float(entry.get("x", 0.0)),
        y=float(entry.get("y", 0.0)),
        width=float(entry.get("width", 0.0)),
        height=float(entry.get("height", 0.0)),
    )


class PlaywrightPageAdapter:
    """
    Drive a canvas-based map editor through a Playwright page.

    The page must already be navigated and logged in; this adapter only reads
    and nudges the editor state. Selectors come from :class:`HostConfig`.
    """

    def __init__(
        self,
        page: Page,
        host_cfg: HostConfig | None = None,
        *,
        grid_cell_size: int = 70,
    ) -> None:
        self.page = page
        self.host = host_cfg or HostConfig()
        self.grid_cell_size = int(grid_cell_size)
        self._scale = 1.0
        self._padding: Tuple[int, int] = (0, 0)

    async def _evaluate(self, script: str, arg: Any = None) -> Any:
        """Run *script* in the page, mapping page errors onto capture errors."""

        try:
            return await self.page.evaluate(script, arg)
        except PlaywrightError as exc:
            if is_integrity_violation(exc):
                raise HostIntegrityError(
                    "The page refused the request; the canvas is probably tainted by a "
                    "cross-origin asset"
                ) from exc
            raise RenderUnavailableError(f"Page script failed: {exc}") from exc

    async def get_surface_size(self) -> Tuple[float, float]:
        size = await self._evaluate(_SURFACE_SIZE_JS, self.grid_cell_size)
        if not size:
            raise RenderUnavailableError("Could not read the active page size")
        return (float(size[0]), float(size[1]))

    async def get_viewport_size(self) -> Tuple[int, int]:
        size = await self._evaluate(_CANVAS_SIZE_JS, self.host.canvas_selector)
        if not size:
            raise RenderUnavailableError(
                f"Could not find game canvas '{self.host.canvas_selector}'"
            )
        return (int(size[0]), int(size[1]))

    async def force_redraw(self) -> None:
        await self._evaluate(_FORCE_REDRAW_JS)

    async def on_next_frame_boundary(self) -> None:
        await self._evaluate(_NEXT_FRAME_JS)

    async def set_scroll(self, x: float, y: float) -> None:
        pad_left, pad_top = self._padding
        await self._evaluate(
            _SET_SCROLL_JS,
            [
                self.host.scroll_container_selector,
                x + pad_left * self._scale,
                y + pad_top * self._scale,
            ],
        )

    async def get_scroll(self) -> Tuple[float, float]:
        left, top = await self._evaluate(_GET_SCROLL_JS, self.host.scroll_container_selector)
        return (float(left), float(top))

    async def set_zoom(self, level: int) -> None:
        selected = await self._evaluate(
            _SET_ZOOM_JS, [self.host.zoom_select_selector, int(level)]
        )
        if not selected:
            raise ZoomUnavailableError(f"Zoom option {level}% is not available")

    async def get_zoom(self) -> int:
        value = await self._evaluate(
            _GET_ZOOM_JS, [self.host.zoom_display_selector, DEFAULT_ZOOM]
        )
        return int(value)

    async def read_viewport_pixels(self) -> Image.Image:
        data_url = await self._evaluate(_READ_CANVAS_JS, self.host.canvas_selector)
        if not data_url:
            raise RenderUnavailableError(
                f"Could not find game canvas '{self.host.canvas_selector}'"
            )
        return _decode_data_url(str(data_url))

    async def enumerate_labels(self) -> Sequence[LabelSpec]:
        entries = await self._evaluate(_LABELS_JS, self.host.label_selector)
        labels: List[LabelSpec] = []
        for entry in entries or []:
            labels.append(LabelSpec(text=str(entry.get("text") or ""), rect=_rect_from(entry)))
        return labels

    async def enumerate_label_containers(self) -> Sequence[Rect]:
        entries = await self._evaluate(_CONTAINERS_JS, self.host.label_container_selector)
        return [_rect_from(entry) for entry in entries or []]

    async def prepare_capture(self, viewport: Size, scale: float) -> None:
        self._scale = float(scale)
        padding = await self._evaluate(
            _PREPARE_JS,
            [self.host.editor_selector, self.host.canvas_selector, self._scale],
        )
        if padding is None:
            raise RenderUnavailableError(
                f"Could not find editor '{self.host.editor_selector}'"
            )
        self._padding = (int(padding[0]), int(padding[1]))
        logger.debug(
            "Editor padded for %dx%d viewport; existing padding left=%d top=%d",
            viewport.width,
            viewport.height,
            *self._padding,
        )

    async def release_capture(self) -> None:
        await self._evaluate(_RELEASE_JS, self.host.editor_selector)
        self._padding = (0, 0)
