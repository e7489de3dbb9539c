from __future__ import annotations

import asyncio
import base64
import io
from typing import Any, Dict, List, Tuple

import pytest
from PIL import Image
from playwright.async_api import Error as PlaywrightError

from src.datatypes import HostConfig
from src.tilestitch.capture.config import LabelSpec, Rect, Size
from src.tilestitch.host import playwright_page as pw
from src.tilestitch.render.errors import (
    HostIntegrityError,
    RenderUnavailableError,
    ZoomUnavailableError,
)


def _data_url(image: Image.Image) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class FakePage:
    """Answers ``page.evaluate`` by script, recording the argument it received."""

    def __init__(self, responses: Dict[str, Any]) -> None:
        self.responses = responses
        self.calls: List[Tuple[str, Any]] = []

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.calls.append((expression, arg))
        response = self.responses.get(expression)
        if isinstance(response, BaseException):
            raise response
        return response


def _adapter(responses: Dict[str, Any], **kwargs: Any) -> Tuple[pw.PlaywrightPageAdapter, FakePage]:
    page = FakePage(responses)
    return pw.PlaywrightPageAdapter(page, **kwargs), page  # type: ignore[arg-type]


def test_surface_size_multiplies_grid_cells() -> None:
    adapter, page = _adapter({pw._SURFACE_SIZE_JS: [28, 14]}, grid_cell_size=70)

    assert asyncio.run(adapter.get_surface_size()) == (28.0, 14.0)
    assert page.calls == [(pw._SURFACE_SIZE_JS, 70)]


def test_viewport_size_requires_canvas() -> None:
    adapter, _ = _adapter({pw._CANVAS_SIZE_JS: None})

    with pytest.raises(RenderUnavailableError):
        asyncio.run(adapter.get_viewport_size())


def test_read_viewport_pixels_decodes_canvas() -> None:
    source = Image.new("RGBA", (6, 4), (1, 2, 3, 0))
    adapter, page = _adapter({pw._READ_CANVAS_JS: _data_url(source)})

    frame = asyncio.run(adapter.read_viewport_pixels())

    assert frame.mode == "RGBA"
    assert frame.size == (6, 4)
    assert frame.getpixel((0, 0)) == (1, 2, 3, 0)
    assert page.calls[0][1] == HostConfig().canvas_selector


def test_tainted_canvas_raises_integrity_error() -> None:
    error = PlaywrightError("SecurityError: The operation is insecure.")
    adapter, _ = _adapter({pw._READ_CANVAS_JS: error})

    with pytest.raises(HostIntegrityError):
        asyncio.run(adapter.read_viewport_pixels())


def test_other_page_errors_are_render_unavailable() -> None:
    adapter, _ = _adapter({pw._READ_CANVAS_JS: PlaywrightError("Target closed")})

    with pytest.raises(RenderUnavailableError):
        asyncio.run(adapter.read_viewport_pixels())


@pytest.mark.parametrize("payload", ["data:image/png;base64,", "data:image/png;base64,AAAA"])
def test_undecodable_canvas_data(payload: str) -> None:
    adapter, _ = _adapter({pw._READ_CANVAS_JS: payload})

    with pytest.raises(RenderUnavailableError):
        asyncio.run(adapter.read_viewport_pixels())


def test_is_integrity_violation_markers() -> None:
    assert pw.is_integrity_violation(RuntimeError("Tainted canvases may not be exported"))
    assert pw.is_integrity_violation(RuntimeError("The operation is insecure."))
    assert not pw.is_integrity_violation(RuntimeError("Execution context was destroyed"))


def test_set_zoom_raises_when_option_missing() -> None:
    adapter, page = _adapter({pw._SET_ZOOM_JS: False})

    with pytest.raises(ZoomUnavailableError):
        asyncio.run(adapter.set_zoom(130))
    assert page.calls == [(pw._SET_ZOOM_JS, [".selZoom", 130])]


def test_get_zoom_reads_display() -> None:
    adapter, page = _adapter({pw._GET_ZOOM_JS: 150})

    assert asyncio.run(adapter.get_zoom()) == 150
    assert page.calls[0][1] == ["#zoomPercent", 100]


def test_scroll_is_offset_by_editor_padding_after_prepare() -> None:
    adapter, page = _adapter({pw._PREPARE_JS: [20, 30], pw._RELEASE_JS: None})

    async def scenario() -> None:
        await adapter.set_scroll(100, 200)
        await adapter.prepare_capture(Size(800, 600), 2.0)
        await adapter.set_scroll(100, 200)
        await adapter.release_capture()
        await adapter.set_scroll(100, 200)

    asyncio.run(scenario())

    scrolls = [arg for script, arg in page.calls if script == pw._SET_SCROLL_JS]
    assert scrolls == [
        ["#editor-wrapper", 100, 200],
        ["#editor-wrapper", 140.0, 260.0],
        ["#editor-wrapper", 100, 200],
    ]
    assert (pw._PREPARE_JS, ["#editor", "#babylonCanvas", 2.0]) in page.calls


def test_prepare_requires_editor() -> None:
    adapter, _ = _adapter({pw._PREPARE_JS: None})

    with pytest.raises(RenderUnavailableError):
        asyncio.run(adapter.prepare_capture(Size(10, 10), 1.0))


def test_labels_and_containers_are_parsed() -> None:
    adapter, _ = _adapter(
        {
            pw._LABELS_JS: [{"text": "Goblin", "x": 15, "y": 20, "width": 40, "height": 18}],
            pw._CONTAINERS_JS: [{"x": 10, "y": 10, "width": 500, "height": 400}],
        }
    )

    labels = asyncio.run(adapter.enumerate_labels())
    containers = asyncio.run(adapter.enumerate_label_containers())

    assert labels == [LabelSpec(text="Goblin", rect=Rect(15.0, 20.0, 40.0, 18.0))]
    assert containers == [Rect(10.0, 10.0, 500.0, 400.0)]


def test_custom_selectors_flow_into_scripts() -> None:
    host = HostConfig(scroll_container_selector="#scroller")
    adapter, page = _adapter({pw._GET_SCROLL_JS: [5, 7]}, host_cfg=host)

    assert asyncio.run(adapter.get_scroll()) == (5.0, 7.0)
    assert page.calls == [(pw._GET_SCROLL_JS, "#scroller")]


def test_firefox_taint_message_raises_integrity_error() -> None:
    adapter, _ = _adapter({pw._READ_CANVAS_JS: PlaywrightError("Error: The operation is insecure.")})

    with pytest.raises(HostIntegrityError):
        asyncio.run(adapter.read_viewport_pixels())


def test_failing_page_script_is_render_unavailable() -> None:
    error = PlaywrightError("ReferenceError: Campaign is not defined")
    adapter, _ = _adapter({pw._FORCE_REDRAW_JS: error, pw._SURFACE_SIZE_JS: error})

    with pytest.raises(RenderUnavailableError):
        asyncio.run(adapter.force_redraw())
    with pytest.raises(RenderUnavailableError):
        asyncio.run(adapter.get_surface_size())


def test_missing_surface_size_is_render_unavailable() -> None:
    adapter, _ = _adapter({pw._SURFACE_SIZE_JS: None})

    with pytest.raises(RenderUnavailableError):
        asyncio.run(adapter.get_surface_size())
