"""Scroll/zoom control with guaranteed restoration."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from src.datatypes import DEFAULT_ZOOM, ZOOM_LEVELS
from src.tilestitch.capture.adapter import RendererAdapter
from src.tilestitch.capture.config import SavedViewState, Size, Tile
from src.tilestitch.render.errors import ZoomUnavailableError

__all__ = ["ViewportController", "resolve_zoom_level"]

logger = logging.getLogger(__name__)


def resolve_zoom_level(level: object) -> int:
    """Return *level* when it is an offered zoom percentage, else the default."""

    try:
        value = int(level)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return DEFAULT_ZOOM
    if value != level and not isinstance(level, str):
        return DEFAULT_ZOOM
    if value in ZOOM_LEVELS:
        return value
    return DEFAULT_ZOOM


class ViewportController:
    """
    Owns the host's scroll and zoom state for one capture session.

    ``acquire`` records the current state and pairs it with ``restore`` on
    every exit path, including failures in the middle of the tile loop.
    """

    def __init__(self, adapter: RendererAdapter) -> None:
        self._adapter = adapter
        self._saved: Optional[SavedViewState] = None
        self._prepared = False
        self._restored = False
        self.restore_count = 0

    @property
    def saved_state(self) -> Optional[SavedViewState]:
        return self._saved

    async def save(self) -> SavedViewState:
        zoom = await self._adapter.get_zoom()
        scroll = await self._adapter.get_scroll()
        self._saved = SavedViewState(zoom=zoom, scroll=(float(scroll[0]), float(scroll[1])))
        self._restored = False
        logger.debug("Saved view state zoom=%s scroll=%s", zoom, self._saved.scroll)
        return self._saved

    async def apply_zoom(self, level: int) -> int:
        """Select *level* (falling back to the default) and return the level applied."""

        resolved = resolve_zoom_level(level)
        if resolved != level:
            logger.warning("Zoom %s%% is not offered; using %d%%", level, resolved)
        try:
            await self._adapter.set_zoom(resolved)
        except ZoomUnavailableError as exc:
            if resolved == DEFAULT_ZOOM:
                raise
            logger.warning("Host refused zoom %d%% (%s); using %d%%", resolved, exc, DEFAULT_ZOOM)
            await self._adapter.set_zoom(DEFAULT_ZOOM)
            return DEFAULT_ZOOM
        return resolved

    async def prepare(self, viewport: Size, scale: float) -> None:
        await self._adapter.prepare_capture(viewport, scale)
        self._prepared = True

    async def reposition(self, tile: Tile) -> None:
        await self._adapter.set_scroll(tile.origin_x, tile.origin_y)
        # one frame for the scroll itself to reach the renderer
        await self._adapter.on_next_frame_boundary()

    async def restore(self) -> None:
        """
        Put zoom and scroll back to the saved state; later calls do nothing.

        A saved zoom the host no longer offers falls back to the default level.
        """

        if self._restored:
            return
        self._restored = True
        self.restore_count += 1
        try:
            if self._prepared:
                await self._adapter.release_capture()
                self._prepared = False
        finally:
            if self._saved is not None:
                try:
                    await self._restore_zoom(self._saved.zoom)
                finally:
                    await self._adapter.set_scroll(*self._saved.scroll)
                logger.debug("Restored view state zoom=%s", self._saved.zoom)

    async def _restore_zoom(self, level: int) -> None:
        try:
            await self._adapter.set_zoom(level)
            return
        except ZoomUnavailableError as exc:
            if level == DEFAULT_ZOOM:
                logger.warning("Host refused to restore zoom %s%% (%s)", level, exc)
                return
            logger.warning(
                "Host refused to restore zoom %s%% (%s); using %d%%", level, exc, DEFAULT_ZOOM
            )
        try:
            await self._adapter.set_zoom(DEFAULT_ZOOM)
        except ZoomUnavailableError as exc:
            logger.warning("Host refused fallback zoom %d%% (%s)", DEFAULT_ZOOM, exc)

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator["ViewportController"]:
        await self.save()
        try:
            yield self
        finally:
            await self.restore()
