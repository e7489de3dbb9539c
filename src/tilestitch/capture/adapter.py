"""Host-side renderer/DOM surface consumed by a capture session."""

from __future__ import annotations

from typing import Protocol, Sequence, Tuple

from PIL import Image

from src.tilestitch.capture.config import LabelSpec, Rect, Size

__all__ = ["RendererAdapter"]


class RendererAdapter(Protocol):
    """
    Operations a capture session needs from the hosting renderer.

    Every method is a coroutine. ``on_next_frame_boundary`` is the only point
    where a session is expected to yield to the renderer's own loop; the rest
    should complete without waiting on rendering.

    ``read_viewport_pixels`` raises :class:`HostIntegrityError` when the host
    refuses readback outright and :class:`RenderUnavailableError` when no frame
    can be read. ``set_zoom`` raises :class:`ZoomUnavailableError` when the level
    cannot be selected.
    """

    async def get_surface_size(self) -> Tuple[float, float]: ...

    async def get_viewport_size(self) -> Tuple[int, int]: ...

    async def force_redraw(self) -> None: ...

    async def on_next_frame_boundary(self) -> None: ...

    async def set_scroll(self, x: float, y: float) -> None: ...

    async def get_scroll(self) -> Tuple[float, float]: ...

    async def set_zoom(self, level: int) -> None: ...

    async def get_zoom(self) -> int: ...

    async def read_viewport_pixels(self) -> Image.Image: ...

    async def enumerate_labels(self) -> Sequence[LabelSpec]: ...

    async def enumerate_label_containers(self) -> Sequence[Rect]: ...

    async def prepare_capture(self, viewport: Size, scale: float) -> None: ...

    async def release_capture(self) -> None: ...
