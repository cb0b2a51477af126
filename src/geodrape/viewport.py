"""
viewport.py

Reference implementation of the map host the overlay talks to. A real
application usually wraps its own map widget; anything providing the same
members can stand in for `Viewport`:

- `lat_lng_to_layer_point(latlng)` -> ScreenPoint
- ``"moveend"`` event (pan end and zoom end both fire it, once per move)
- `size` -> (width, height) in pixels, or None while unknown
- `supports_3d` -> whether matrix3d transforms can be applied
- `each_layer()` -> iterator over the layers currently on the map

Projection is spherical Web Mercator through pyproj; the mapping from
projected metres to global pixels at the current zoom is an `affine.Affine`.
Layer points are global pixels minus a pixel origin that is only reset when
the zoom changes, so a plain pan does not move already placed layers.
"""
import logging
import math
from typing import Iterator, Optional, Tuple

from affine import Affine
from pyproj import Transformer

from geodrape.config import VIEWPORT
from geodrape.events import Evented
from geodrape.geometry import LatLng, ScreenPoint

logger = logging.getLogger(__name__)

# Web Mercator is undefined at the poles.
MAX_LATITUDE = 85.0511287798


class Viewport(Evented):
    """Pan/zoom state, projection and the set of layers on a map."""

    def __init__(self, center=(0.0, 0.0), zoom: int = 0,
                 size: Optional[Tuple[int, int]] = None, supports_3d: bool = True):
        self._to_projected = Transformer.from_crs(
            VIEWPORT['geographic_crs'], VIEWPORT['projected_crs'], always_xy=True)
        self._to_geographic = Transformer.from_crs(
            VIEWPORT['projected_crs'], VIEWPORT['geographic_crs'], always_xy=True)
        self.size = size
        self.supports_3d = supports_3d
        self._layers = []
        self.center = LatLng(float(center[0]), float(center[1]))
        self.zoom = self._clamp_zoom(zoom)
        self._pixel_origin = self._compute_pixel_origin()

    # ── projection ────────────────────────────────────────────────────────────

    def _clamp_zoom(self, zoom) -> float:
        return max(VIEWPORT['min_zoom'], min(VIEWPORT['max_zoom'], zoom))

    def world_to_pixel(self, zoom: Optional[float] = None) -> Affine:
        """Affine from projected metres to global pixels at `zoom`."""
        z = self.zoom if zoom is None else zoom
        extent = VIEWPORT['mercator_extent']
        scale = VIEWPORT['tile_size'] * 2.0 ** z / (2.0 * extent)
        return Affine(scale, 0.0, extent * scale, 0.0, -scale, extent * scale)

    def project(self, latlng, zoom: Optional[float] = None) -> ScreenPoint:
        """Global pixel coordinates of `latlng` at `zoom`."""
        lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, float(latlng[0])))
        mx, my = self._to_projected.transform(float(latlng[1]), lat)
        px, py = self.world_to_pixel(zoom) * (mx, my)
        return ScreenPoint(px, py)

    def unproject(self, point, zoom: Optional[float] = None) -> LatLng:
        mx, my = ~self.world_to_pixel(zoom) * (float(point[0]), float(point[1]))
        lng, lat = self._to_geographic.transform(mx, my)
        return LatLng(lat, lng)

    def _half_size(self) -> Tuple[float, float]:
        if self.size is None:
            return 0.0, 0.0
        return self.size[0] / 2.0, self.size[1] / 2.0

    def _compute_pixel_origin(self) -> ScreenPoint:
        c = self.project(self.center)
        hw, hh = self._half_size()
        return ScreenPoint(round(c.x - hw), round(c.y - hh))

    def lat_lng_to_layer_point(self, latlng) -> ScreenPoint:
        return self.project(latlng) - self._pixel_origin

    def layer_point_to_lat_lng(self, point) -> LatLng:
        return self.unproject((point[0] + self._pixel_origin.x, point[1] + self._pixel_origin.y))

    # ── movement ──────────────────────────────────────────────────────────────

    def set_view(self, center, zoom: Optional[float] = None):
        """Move to `center` (and `zoom`), then fire a single ``moveend``."""
        self.center = LatLng(float(center[0]), float(center[1]))
        if zoom is not None:
            new_zoom = self._clamp_zoom(zoom)
            zoom_changed = new_zoom != self.zoom
            self.zoom = new_zoom
            if zoom_changed:
                self._pixel_origin = self._compute_pixel_origin()
                self.fire('zoomend', zoom=self.zoom)
        logger.debug('view set to %s @ z%s', self.center, self.zoom)
        self.fire('moveend', center=self.center, zoom=self.zoom)
        return self

    def pan_to(self, center):
        return self.set_view(center)

    def set_zoom(self, zoom: float):
        return self.set_view(self.center, zoom)

    def fit_bounds(self, bounds, max_zoom: Optional[float] = None):
        """Center on (south, west, north, east) at the largest zoom that shows it whole."""
        south, west, north, east = bounds
        if max_zoom is None:
            max_zoom = VIEWPORT['fit_max_zoom']
        sw = self.project((south, west), zoom=0)
        ne = self.project((north, east), zoom=0)
        dx = abs(ne.x - sw.x)
        dy = abs(sw.y - ne.y)
        w, h = self.size if self.size is not None else (VIEWPORT['tile_size'], VIEWPORT['tile_size'])
        if dx == 0.0 and dy == 0.0:
            zoom = max_zoom
        else:
            ratio = min(w / dx if dx else math.inf, h / dy if dy else math.inf)
            zoom = min(max_zoom, math.floor(math.log2(ratio)))
        center = self.unproject(((sw.x + ne.x) / 2.0, (sw.y + ne.y) / 2.0), zoom=0)
        return self.set_view(center, zoom)

    # ── layers ────────────────────────────────────────────────────────────────

    def add_layer(self, layer):
        if layer in self._layers:
            return self
        self._layers.append(layer)
        on_add = getattr(layer, 'on_add', None)
        if on_add is not None:
            on_add(self)
        self.fire('layeradd', layer=layer)
        return self

    def remove_layer(self, layer):
        if layer not in self._layers:
            return self
        self._layers.remove(layer)
        on_remove = getattr(layer, 'on_remove', None)
        if on_remove is not None:
            on_remove()
        self.fire('layerremove', layer=layer)
        return self

    def has_layer(self, layer) -> bool:
        return layer in self._layers

    def each_layer(self) -> Iterator:
        # snapshot: callers may add or remove layers while iterating
        return iter(list(self._layers))
