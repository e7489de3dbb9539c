"""High-level capture orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from PIL import Image

from src.datatypes import AppConfig
from src.tilestitch.capture import compositor, validator
from src.tilestitch.capture.adapter import RendererAdapter
from src.tilestitch.capture.config import SavedViewState, Size, Surface, Tile, TileResult
from src.tilestitch.capture.sync import RenderSynchronizer, wait_ceiling, wait_frames
from src.tilestitch.capture.viewport import ViewportController, resolve_zoom_level
from src.tilestitch.render import encoders as _enc
from src.tilestitch.render import geometry as _geo
from src.tilestitch.render.errors import (
    CaptureError,
    RenderUnavailableError,
    TileRenderTimeoutError,
)
from src.tilestitch.render.overlay import OverlayStyle, overlay_labels

__all__ = ["CaptureResult", "CaptureSession", "capture"]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class CaptureResult:
    """
    Outcome of one capture invocation.

    Attributes:
        ok (bool): True when every tile was accepted and the image was encoded.
        image_bytes (bytes | None): Encoded image on success.
        error (CaptureError | None): Failure reason when ``ok`` is False.
        tiles (int): Number of tiles composited.
        attempts (int): Validation attempts across all tiles.
        surface (Surface | None): Surface the session planned against.
    """

    ok: bool
    image_bytes: Optional[bytes] = None
    error: Optional[CaptureError] = None
    tiles: int = 0
    attempts: int = 0
    surface: Optional[Surface] = None

    def unwrap(self) -> bytes:
        """Return the image bytes or raise the recorded error."""

        if self.ok and self.image_bytes is not None:
            return self.image_bytes
        if self.error is not None:
            raise self.error
        raise CaptureError("Capture produced no image")


@dataclass
class _Plan:
    surface: Surface
    viewport: Size
    tiles: List[Tile] = field(default_factory=list)


class CaptureSession:
    """
    Owns a single capture: planning, the tile loop, label overlay and restoration.

    A session is meant to be used for one ``capture()`` call; create a new one
    for every capture.
    """

    def __init__(
        self,
        adapter: RendererAdapter,
        cfg: AppConfig | None = None,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.adapter = adapter
        self.cfg = cfg or AppConfig()
        self.progress_callback = progress_callback
        self.viewport = ViewportController(adapter)
        self.synchronizer = RenderSynchronizer(adapter)
        self.surface: Optional[Surface] = None
        self.tiles: List[Tile] = []
        self.composite: Optional[Image.Image] = None
        self.attempts = 0
        self.outcome: Optional[CaptureResult] = None

    @property
    def saved_state(self) -> Optional[SavedViewState]:
        return self.viewport.saved_state

    async def capture(self) -> CaptureResult:
        """Run the capture and return a result; failures are reported, never raised."""

        try:
            image = await self._run()
            output = self.cfg.output
            data = _enc.encode_image(
                image,
                output.format,
                compression_level=output.compression_level,
                jpeg_quality=output.jpeg_quality,
            )
        except CaptureError as exc:
            return self._fail(exc)
        except (RuntimeError, OSError, ValueError) as exc:
            error = RenderUnavailableError(f"Host call failed: {exc}")
            error.__cause__ = exc
            return self._fail(error)

        logger.info("Capture saved (%d tiles, %d bytes)", len(self.tiles), len(data))
        self.outcome = CaptureResult(
            ok=True,
            image_bytes=data,
            tiles=len(self.tiles),
            attempts=self.attempts,
            surface=self.surface,
        )
        return self.outcome

    def _fail(self, exc: CaptureError) -> CaptureResult:
        logger.error("Capture failed: %s", exc)
        self.outcome = CaptureResult(
            ok=False,
            error=exc,
            tiles=0,
            attempts=self.attempts,
            surface=self.surface,
        )
        return self.outcome

    async def _plan(self, zoom: int) -> _Plan:
        logical_w, logical_h = await self.adapter.get_surface_size()
        view_w, view_h = await self.adapter.get_viewport_size()
        surface = _geo.scaled_surface(logical_w, logical_h, zoom / 100)
        tiles = _geo.plan_tiles(surface.pixel_width, surface.pixel_height, view_w, view_h)
        viewport = Size(int(view_w), int(view_h))
        logger.info(
            "Planned %d tile(s) for %s surface with %s viewport at %d%% zoom",
            len(tiles),
            _geo.format_dimensions(surface.pixel_width, surface.pixel_height),
            _geo.format_dimensions(viewport.width, viewport.height),
            zoom,
        )
        return _Plan(surface=surface, viewport=viewport, tiles=tiles)

    def _adopt(self, plan: _Plan) -> None:
        self.surface = plan.surface
        self.tiles = plan.tiles

    async def _run(self) -> Image.Image:
        capture_cfg = self.cfg.capture
        planned_zoom = resolve_zoom_level(capture_cfg.zoom)
        plan = await self._plan(planned_zoom)
        self._adopt(plan)

        async with self.viewport.acquire():
            applied_zoom = await self.viewport.apply_zoom(capture_cfg.zoom)
            await wait_frames(self.adapter, capture_cfg.settle_frames)
            if applied_zoom != planned_zoom:
                plan = await self._plan(applied_zoom)
                self._adopt(plan)
            await self.viewport.prepare(plan.viewport, plan.surface.scale)

            composite = compositor.new_composite(plan.surface)
            total = len(plan.tiles)
            for done, tile in enumerate(plan.tiles, start=1):
                await self.viewport.reposition(tile)
                result = await self._capture_tile(tile)
                compositor.write(composite, tile, result)
                self._report_progress(done, total)
            self.composite = composite

            if self.cfg.overlay.enabled:
                labels = await self.adapter.enumerate_labels()
                containers = await self.adapter.enumerate_label_containers()
                overlay_labels(
                    composite,
                    labels,
                    containers,
                    OverlayStyle.from_config(self.cfg.overlay),
                )
        return composite

    async def _capture_tile(self, tile: Tile) -> TileResult:
        capture_cfg = self.cfg.capture
        budget = max(0, int(capture_cfg.retry_budget))
        attempt = 0
        while True:
            await self.synchronizer.settle(
                tile,
                wait_ceiling(capture_cfg.max_frame_waits, attempt),
                attempt=attempt,
            )
            frame = await self._read_frame()
            self.attempts += 1
            outcome = validator.validate(frame, tile, budget)
            if outcome.verdict is validator.Verdict.ACCEPT:
                return TileResult(tile=tile, frame=frame, attempt=attempt + 1)
            if outcome.verdict is validator.Verdict.REJECT:
                raise TileRenderTimeoutError(
                    f"Could not render tile {tile.index} at ({tile.origin_x}, {tile.origin_y}) "
                    f"after {attempt + 1} attempt(s); raise capture.retry_budget and try again",
                    tile_index=tile.index,
                    attempts=attempt + 1,
                )
            logger.info(
                "Tile %d has transparent edge pixels; retrying (%d retr%s left)",
                tile.index,
                outcome.remaining,
                "y" if outcome.remaining == 1 else "ies",
            )
            budget = outcome.remaining
            attempt += 1

    async def _read_frame(self) -> Image.Image:
        try:
            frame = await self.adapter.read_viewport_pixels()
        except CaptureError:
            raise
        except (RuntimeError, OSError, ValueError) as exc:
            raise RenderUnavailableError(f"Could not read viewport pixels: {exc}") from exc
        if not isinstance(frame, Image.Image):
            raise RenderUnavailableError(
                f"Viewport readback returned {type(frame).__name__}, expected an image"
            )
        return frame

    def _report_progress(self, done: int, total: int) -> None:
        logger.info("%d%%", (done * 100) // total if total else 100)
        if self.progress_callback is not None:
            self.progress_callback(done, total)


async def capture(
    adapter: RendererAdapter,
    cfg: AppConfig | None = None,
    *,
    progress_callback: ProgressCallback | None = None,
) -> CaptureResult:
    """Run one capture session against *adapter*."""

    session = CaptureSession(adapter, cfg, progress_callback=progress_callback)
    return await session.capture()
