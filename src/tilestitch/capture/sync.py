"""Frame-synchronised redraw waits."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from src.tilestitch.capture.adapter import RendererAdapter
from src.tilestitch.capture.config import Tile

__all__ = ["RenderSynchronizer", "SettleReport", "wait_ceiling"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettleReport:
    """Readiness signal for one attempt at a tile."""

    tile: Tile
    attempt: int
    frames_waited: int


def wait_ceiling(max_frame_waits: int, attempt: int) -> int:
    """Return the frame waits for a zero-based *attempt*: one fewer per retry, at least one."""

    return max(1, int(max_frame_waits) - max(0, int(attempt)))


async def wait_frames(adapter: RendererAdapter, count: int) -> int:
    """Await ``count`` frame boundaries and return how many were awaited."""

    waited = 0
    for _ in range(max(0, int(count))):
        await adapter.on_next_frame_boundary()
        waited += 1
    return waited


class RenderSynchronizer:
    """Forces a redraw and waits for the renderer to settle before sampling."""

    def __init__(self, adapter: RendererAdapter) -> None:
        self._adapter = adapter

    async def settle(self, tile: Tile, max_waits: int, *, attempt: int = 0) -> SettleReport:
        await self._adapter.force_redraw()
        frames = await wait_frames(self._adapter, max(1, int(max_waits)))
        logger.debug(
            "Tile %d settled after %d frame(s) (attempt %d)",
            tile.index,
            frames,
            attempt + 1,
        )
        return SettleReport(tile=tile, attempt=attempt, frames_waited=frames)
