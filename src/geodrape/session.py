"""
session.py

`DrapeSession` ties one image to the polygons a user draws on a viewport.

Rules, applied per drawing-toolkit event:
- create/edit of the image polygon, or of any 4-corner polygon while no image
  polygon is bound yet, (re)binds that polygon and pushes its corners into
  the overlay, creating the overlay on first use;
- removing the image polygon unbinds it and takes the overlay off the map;
- cutting a polygon registers the resulting layer so its edits are seen;
- every create/edit/remove marks the session dirty until the host saves.

Each observed polygon's ``"edit"`` event is routed to `handle`, which is how
translations made by `CornerInteractionController` reach the overlay.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from geodrape.config import DEFAULT_BOUNDS, IMAGE_DEFAULTS, VIEWPORT
from geodrape.geometry import corner_bounds, iter_points, mirror_quad, rotate_quad
from geodrape.layers import Marker, PolygonLayer
from geodrape.overlay import ProjectiveOverlay
from geodrape.surface import ImageSurface
from geodrape.utils import safe_log_exception

logger = logging.getLogger(__name__)


# ── drawing-toolkit events ────────────────────────────────────────────────────

@dataclass(frozen=True)
class PolygonCreated:
    layer: PolygonLayer


@dataclass(frozen=True)
class PolygonEdited:
    layer: PolygonLayer


@dataclass(frozen=True)
class PolygonRemoved:
    layer: PolygonLayer


@dataclass(frozen=True)
class PolygonCut:
    layer: PolygonLayer


# ── transitions ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ImagePolygonBound:
    layer: PolygonLayer


@dataclass(frozen=True)
class ImagePolygonUnbound:
    layer: PolygonLayer


@dataclass(frozen=True)
class OverlayUpdated:
    corners: tuple


class DrapeSession:
    """Binds drawn polygons on `viewport` to a single `ProjectiveOverlay`.

    `image` is anything `ProjectiveOverlay` accepts (an `ImageSurface`, a
    path, bytes or a Pillow image). Without an image no overlay is created,
    but polygons are still tracked and the dirty flag still works.

    The image is decoded when the overlay is first created. Inside a running
    event loop the decode runs off-thread and `load_task` holds it; the
    overlay draws at the fallback size until it finishes.
    """

    def __init__(self, viewport, image=None, opacity: float = IMAGE_DEFAULTS['opacity'],
                 default_bounds=DEFAULT_BOUNDS):
        self.viewport = viewport
        self.image = image
        self.opacity = opacity
        self.default_bounds = default_bounds
        self.image_polygon: Optional[PolygonLayer] = None
        self.overlay: Optional[ProjectiveOverlay] = None
        self.dirty = False
        self._fitted = False
        self._observed = []
        self.load_task: Optional[asyncio.Task] = None

    # ── setup ─────────────────────────────────────────────────────────────────

    def attach(self, layers=()):
        """Put initial polygons on the map and bind the first one if it is a quad."""
        first_polygon = None
        for layer in layers:
            self.viewport.add_layer(layer)
            if isinstance(layer, PolygonLayer):
                self.observe(layer)
                if first_polygon is None:
                    first_polygon = layer
        transitions = []
        if first_polygon is not None and first_polygon.quad() is not None:
            transitions = self._bind_and_update(first_polygon)
        return transitions

    def observe(self, layer: PolygonLayer):
        if layer in self._observed:
            return
        layer.on('edit', self._on_layer_edit)
        self._observed.append(layer)

    def unobserve(self, layer: PolygonLayer):
        if layer not in self._observed:
            return
        layer.off('edit', self._on_layer_edit)
        self._observed.remove(layer)

    def _on_layer_edit(self, event):
        self.handle(PolygonEdited(event['target']))

    # ── event dispatch ────────────────────────────────────────────────────────

    def handle(self, event) -> list:
        if isinstance(event, PolygonCreated):
            self.mark_dirty()
            self.observe(event.layer)
            if event.layer.viewport is None:
                self.viewport.add_layer(event.layer)
            return self._maybe_bind(event.layer)
        if isinstance(event, PolygonEdited):
            self.mark_dirty()
            return self._maybe_bind(event.layer)
        if isinstance(event, PolygonRemoved):
            self.mark_dirty()
            return self._removed(event.layer)
        if isinstance(event, PolygonCut):
            self.observe(event.layer)
            return []
        raise TypeError(f'unsupported session event: {event!r}')

    def _maybe_bind(self, layer: PolygonLayer) -> list:
        if layer is self.image_polygon:
            return self.update_overlay()
        if self.image_polygon is None and layer.quad() is not None:
            return self._bind_and_update(layer)
        return []

    def _bind_and_update(self, layer: PolygonLayer) -> list:
        self.image_polygon = layer
        logger.info('image polygon bound: %r', layer)
        return [ImagePolygonBound(layer)] + self.update_overlay()

    def _removed(self, layer: PolygonLayer) -> list:
        self.unobserve(layer)
        if self.viewport.has_layer(layer):
            self.viewport.remove_layer(layer)
        if layer is not self.image_polygon:
            return []
        self.image_polygon = None
        self._drop_overlay()
        return [ImagePolygonUnbound(layer)]

    def _drop_overlay(self):
        if self.load_task is not None and not self.load_task.done():
            self.load_task.cancel()
        self.load_task = None
        if self.overlay is not None:
            self.viewport.remove_layer(self.overlay)
        self.overlay = None

    # ── overlay ───────────────────────────────────────────────────────────────

    def update_overlay(self) -> list:
        """Push the image polygon's corners into the overlay.

        When the bound polygon is no longer a 4-corner quad the binding is
        dropped along with the overlay. Without an image the binding is kept
        but no overlay is drawn.
        """
        layer = self.image_polygon
        if layer is None:
            self._drop_overlay()
            return []
        quad = layer.quad()
        if quad is None:
            logger.info('image polygon %r is not drapeable; unbinding', layer)
            self.image_polygon = None
            self._drop_overlay()
            return [ImagePolygonUnbound(layer)]
        if self.image is None:
            return []
        if self.overlay is None:
            self.overlay = ProjectiveOverlay(self.image, opacity=self.opacity)
            self.overlay.add_to(self.viewport)
            self._load_image(self.overlay.surface)
        self.overlay.set_corners(quad)
        return [OverlayUpdated(tuple(self.overlay.get_corners()))]

    def _load_image(self, surface: ImageSurface):
        """Decode the overlay's image: off-thread when a loop is running, inline otherwise.

        A failed decode is logged and the overlay keeps the fallback size.
        """
        if surface.loaded:
            return
        surface.on('load', self._on_image_loaded)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None:
            try:
                surface.load()
            except Exception as e:
                safe_log_exception('image decode failed', e, source=type(surface.source).__name__)
            return
        self.load_task = loop.create_task(surface.load_async())
        self.load_task.add_done_callback(self._on_load_done)

    def _on_image_loaded(self, event):
        # keep the decoded image so a rebuilt overlay does not decode again
        if not isinstance(self.image, ImageSurface):
            self.image = event['target'].image

    def _on_load_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            safe_log_exception('image decode failed', exc)

    def corners(self):
        """Current quad in polygon order, for serialization; None without an overlay."""
        if self.overlay is None:
            return None
        return self.overlay.get_corners()

    def _rewrite_quad(self, reorder) -> list:
        if self.image_polygon is None:
            return []
        quad = self.image_polygon.quad()
        if quad is None:
            return []
        new_quad = reorder(quad)
        self.image_polygon.set_lat_lngs(list(new_quad))
        self.mark_dirty()
        if self.overlay is None:
            return []
        self.overlay.set_corners(new_quad)
        return [OverlayUpdated(tuple(self.overlay.get_corners()))]

    def rotate(self) -> list:
        """Turn the image a quarter turn within its polygon."""
        return self._rewrite_quad(rotate_quad)

    def mirror(self) -> list:
        """Flip the image within its polygon."""
        return self._rewrite_quad(mirror_quad)

    # ── host state ────────────────────────────────────────────────────────────

    def mark_dirty(self):
        self.dirty = True

    def mark_clean(self):
        self.dirty = False

    def content_bounds(self):
        """Bounds of everything drawn on the viewport, or None when it is empty.

        Covers every polygon vertex and every marker except temporary
        handles such as the controller's drag markers.
        """
        points = []
        for layer in self.viewport.each_layer():
            if isinstance(layer, PolygonLayer):
                points.extend(iter_points(layer.get_lat_lngs()))
            elif isinstance(layer, Marker) and not layer.temporary:
                points.append(layer.latlng)
        if not points:
            return None
        return corner_bounds(points)

    def fit_once(self) -> bool:
        """Fit the viewport to the drawn content the first time only.

        Falls back to `default_bounds` when nothing is drawn.
        """
        if self._fitted:
            return False
        bounds = self.content_bounds()
        if bounds is None:
            bounds = self.default_bounds
        self.viewport.fit_bounds(bounds, max_zoom=VIEWPORT['fit_max_zoom'])
        self._fitted = True
        return True
