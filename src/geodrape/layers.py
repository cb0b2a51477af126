"""Vector layers that live on a `Viewport`: polygons and point markers."""
from typing import Optional

from geodrape.events import Evented
from geodrape.geometry import LatLng, Ring, as_ring, count_vertices, find_quad


class Layer(Evented):
    """Base layer: remembers the viewport it was added to."""

    def __init__(self):
        self.viewport = None

    def on_add(self, viewport):
        self.viewport = viewport

    def on_remove(self):
        self.viewport = None

    def add_to(self, viewport):
        viewport.add_layer(self)
        return self

    def remove(self):
        if self.viewport is not None:
            self.viewport.remove_layer(self)
        return self


class PolygonLayer(Layer):
    """A polygon drawn by the user; its vertices are held as a `Ring`.

    `set_lat_lngs` does not notify anyone by itself. Whoever changes the
    vertices fires ``"edit"`` once the change is complete.
    """

    def __init__(self, latlngs):
        super().__init__()
        self._ring = as_ring(latlngs)

    def get_lat_lngs(self) -> Ring:
        return self._ring

    def set_lat_lngs(self, latlngs):
        self._ring = as_ring(latlngs)
        return self

    def quad(self):
        return find_quad(self._ring)

    def __repr__(self):
        return f'PolygonLayer({count_vertices(self._ring)} vertices)'


class Marker(Layer):
    """Point handle at a geographic position.

    `temporary` markers are helpers (e.g. drag handles) that a drawing
    toolkit must not snap to or serialize.
    """

    def __init__(self, latlng, draggable: bool = False, temporary: bool = False):
        super().__init__()
        self.latlng = LatLng(float(latlng[0]), float(latlng[1]))
        self.draggable = draggable
        self.temporary = temporary
        self.last_position: Optional[LatLng] = None

    def set_lat_lng(self, latlng):
        self.latlng = LatLng(float(latlng[0]), float(latlng[1]))
        return self

    def __repr__(self):
        return f'Marker({self.latlng.lat:.6f}, {self.latlng.lng:.6f})'
