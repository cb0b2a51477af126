"""
overlay.py

`ProjectiveOverlay` drapes one image over four geographic corners. On every
corner change and every viewport ``moveend`` it projects the corners to layer
pixels, solves the image-rectangle -> quad homography and applies it to its
`ImageSurface`.

Failure containment: a degenerate quad skips the frame and keeps the last
placement; a surface without 3-D transforms gets the image unwarped at
corner 0 and a one-time ``"degraded"`` event. Nothing raised while
recomputing reaches the caller.

`OpacityPulse` is the cosmetic "active" blink, an asyncio task started when
the overlay is added to a viewport and cancelled when it is removed.
"""
import asyncio
import logging
import math
from typing import Optional, Sequence

import numpy as np

from geodrape.config import DEFAULT_CORNERS, IMAGE_DEFAULTS, PULSE
from geodrape.errors import DegenerateGeometryError, UnsupportedRenderingCapability
from geodrape.geometry import CORNER_ORDER, LatLng, corner_bounds, to_logical, to_storage
from geodrape.homography import general_projection, to_render_matrix
from geodrape.layers import Layer
from geodrape.surface import ImageSurface
from geodrape.utils import safe_log_exception

logger = logging.getLogger(__name__)


class OpacityPulse:
    """Periodic opacity oscillation: 0.5 + sin(counter) / 2."""

    def __init__(self, surface: ImageSurface, interval: float = PULSE['interval_s'],
                 step: float = PULSE['step']):
        self.surface = surface
        self.interval = interval
        self.step = step
        self.counter = 0.0
        self._task: Optional[asyncio.Task] = None

    def tick(self) -> float:
        opacity = 0.5 + math.sin(self.counter) / 2
        self.surface.set_opacity(opacity)
        self.counter += self.step
        return opacity

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Start ticking on the running event loop.

        Returns False when no loop is running; the host can then drive
        `tick()` itself.
        """
        if self.running:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug('no running event loop; opacity pulse left idle')
            return False
        self._task = loop.create_task(self._run())
        return True

    def stop(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


class ProjectiveOverlay(Layer):
    """Image warped onto a quadrilateral of geographic corners.

    Corners are stored as [c0, c1, c2, c3] where c0..c3 receive the image's
    top-left, top-right, bottom-left and bottom-right pixel. `get_corners`,
    `get_corner` and `set_corners` speak polygon order [c0, c1, c3, c2]; see
    `geometry.CORNER_ORDER`.

    Events:
    - ``"update"`` after every `set_corners`, with ``corners`` (polygon order)
    - ``"degraded"`` once, the first time the surface cannot warp
    """

    def __init__(self, image=None, opacity: float = IMAGE_DEFAULTS['opacity'], pulse: bool = True):
        super().__init__()
        self.surface = image if isinstance(image, ImageSurface) else ImageSurface(image)
        self.surface.set_opacity(opacity)
        self.surface.on('load', self._on_image_load)
        self._corners = [LatLng(*c) for c in DEFAULT_CORNERS]
        self.bounds = corner_bounds(self._corners)
        self.transform: Optional[np.ndarray] = None
        self.pulse = OpacityPulse(self.surface) if pulse else None
        self._degraded = False
        self.skipped_frames = 0

    # ── lifecycle ─────────────────────────────────────────────────────────────

    def on_add(self, viewport):
        super().on_add(viewport)
        viewport.on('moveend', self._on_move_end)
        if self.pulse is not None:
            self.pulse.start()
        self.update_transform()

    def on_remove(self):
        if self.viewport is not None:
            self.viewport.off('moveend', self._on_move_end)
        if self.pulse is not None:
            self.pulse.stop()
        super().on_remove()

    def _on_move_end(self, event):
        # re-project only once the pan/zoom has finished
        self.set_corners(self.get_corners())

    def _on_image_load(self, event):
        if self.viewport is not None:
            self.update_transform()

    # ── corners ───────────────────────────────────────────────────────────────

    def get_corners(self):
        """Corners in polygon order."""
        return to_logical(self._corners)

    def get_corner(self, i: int) -> LatLng:
        """Corner `i` in polygon order."""
        return self._corners[CORNER_ORDER[i]]

    def set_corners(self, corners: Sequence):
        """Replace the quad with `corners` given in polygon order and re-warp."""
        if len(corners) != 4:
            raise ValueError(f'set_corners needs exactly 4 corners, got {len(corners)}')
        logical = [LatLng(float(c[0]), float(c[1])) for c in corners]
        self._corners = list(to_storage(logical))
        self.bounds = corner_bounds(self._corners)
        self.surface.bounds = self.bounds
        self.fire('update', corners=self.get_corners())
        self.update_transform()
        return self

    # ── transform ─────────────────────────────────────────────────────────────

    @property
    def degraded(self) -> bool:
        return self._degraded

    def image_size(self):
        """Natural image size, or the fallback while it is unknown."""
        size = self.surface.natural_size
        if size is None or not size[0] or not size[1]:
            return IMAGE_DEFAULTS['fallback_width'], IMAGE_DEFAULTS['fallback_height']
        return size

    def calculate_projective_transform(self, lat_lng_to_point) -> np.ndarray:
        """Homography from image pixels to layer pixels relative to corner 0.

        Raises `DegenerateGeometryError` for a degenerate quad.
        """
        offset = lat_lng_to_point(self._corners[0])
        c0, c1, c2, c3 = [lat_lng_to_point(c) - offset for c in self._corners]
        w, h = self.image_size()
        # (0, 0) -> c0 says the image's upper-left corner lands on the first corner
        return general_projection(
            [(0.0, 0.0), (w, 0.0), (0.0, h), (w, h)],
            [(c0.x, c0.y), (c1.x, c1.y), (c2.x, c2.y), (c3.x, c3.y)],
        )

    def update_transform(self) -> bool:
        """Recompute and apply the placement for the current view.

        Returns True when the surface was updated, False when the frame was
        skipped (not on a map, degenerate quad, or an unexpected failure).
        """
        if self.viewport is None:
            return False
        viewport = self.viewport
        try:
            top_left = viewport.lat_lng_to_layer_point(self._corners[0])
            try:
                matrix = self.calculate_projective_transform(viewport.lat_lng_to_layer_point)
            except DegenerateGeometryError as e:
                self.skipped_frames += 1
                logger.debug('degenerate corners %s, keeping previous placement: %s', self.get_corners(), e)
                return False
            self.transform = matrix
            try:
                render = to_render_matrix(matrix, supports_3d=getattr(viewport, 'supports_3d', True))
            except UnsupportedRenderingCapability as e:
                self._enter_degraded(e)
                self.surface.set_placement(top_left, None)
                return True
            self.surface.set_placement(top_left, render)
            # warp around the upper-left corner, not the image center
            self.surface.transform_origin = '0 0 0'
            return True
        except Exception as e:
            safe_log_exception('overlay transform recompute failed', e, corners=self.get_corners())
            return False

    def _enter_degraded(self, exc):
        if self._degraded:
            return
        self._degraded = True
        logger.warning('%s; drawing the image unwarped', exc)
        self.fire('degraded', reason=str(exc))
