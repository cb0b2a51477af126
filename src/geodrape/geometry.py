"""
geometry.py

Point types and small pure helpers for corner quads and polygon rings.

Public names:
- `LatLng`, `ScreenPoint` : geographic and layer-pixel points
- `Flat`, `Nested`, `Ring` : polygon vertex rings as an explicit variant
- `as_ring(latlngs)` / `ring_to_lists(ring)` : convert from/to plain nested sequences
- `find_quad(ring)` -> 4 LatLng or None
- `add_delta(ring, dlat, dlng)` -> translated ring
- `CORNER_ORDER`, `to_logical(storage)`, `to_storage(logical)` : corner permutation
- `rotate_quad(q)`, `mirror_quad(q)`
- `corner_bounds(points)` -> (south, west, north, east)
- `iter_points(ring)`, `count_vertices(ring)`

"""
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence, Tuple, Union

from shapely.geometry import MultiPoint


class LatLng(NamedTuple):
    lat: float
    lng: float


class ScreenPoint(NamedTuple):
    """Layer-pixel coordinates (x to the right, y down)."""
    x: float
    y: float

    def __sub__(self, other):
        return ScreenPoint(self.x - other[0], self.y - other[1])

    def subtract(self, other):
        return self - other


Quad = Tuple[LatLng, LatLng, LatLng, LatLng]


@dataclass(frozen=True)
class Flat:
    """A single ring of vertices."""
    points: Tuple[LatLng, ...]


@dataclass(frozen=True)
class Nested:
    """A list of rings: outer ring plus holes, or several polygons."""
    rings: Tuple['Ring', ...]


Ring = Union[Flat, Nested]


def _is_latlng(item) -> bool:
    if isinstance(item, LatLng):
        return True
    return (isinstance(item, (tuple, list)) and len(item) == 2
            and all(isinstance(v, (int, float)) for v in item))


def as_ring(latlngs) -> Ring:
    """Build a `Ring` from nested sequences of (lat, lng) pairs.

    Rings already in variant form are returned unchanged. An empty sequence
    is an empty `Flat` ring.
    """
    if isinstance(latlngs, (Flat, Nested)):
        return latlngs
    items = list(latlngs)
    if not items or _is_latlng(items[0]):
        return Flat(tuple(LatLng(float(p[0]), float(p[1])) for p in items))
    return Nested(tuple(as_ring(child) for child in items))


def ring_to_lists(ring: Ring) -> list:
    """Inverse of `as_ring`: plain nested lists of (lat, lng) tuples."""
    if isinstance(ring, Flat):
        return [tuple(p) for p in ring.points]
    return [ring_to_lists(child) for child in ring.rings]


def find_quad(ring: Ring) -> Optional[Quad]:
    """Return the four corners if `ring` describes a single 4-point polygon.

    A flat ring of exactly four points is a quad; a nested ring holding
    exactly one child is unwrapped. Anything else (holes, multi-polygons,
    other vertex counts) gives None.
    """
    if isinstance(ring, Flat):
        if len(ring.points) == 4:
            return tuple(ring.points)
        return None
    if len(ring.rings) == 1:
        return find_quad(ring.rings[0])
    return None


def add_delta(ring: Ring, dlat: float, dlng: float) -> Ring:
    """Translate every vertex of `ring`, at any nesting depth, by (dlat, dlng)."""
    if isinstance(ring, Flat):
        return Flat(tuple(LatLng(p.lat + dlat, p.lng + dlng) for p in ring.points))
    return Nested(tuple(add_delta(child, dlat, dlng) for child in ring.rings))


def count_vertices(ring: Ring) -> int:
    if isinstance(ring, Flat):
        return len(ring.points)
    return sum(count_vertices(child) for child in ring.rings)


# Storage order is [c0, c1, c2, c3]; the drawn polygon visits [c0, c1, c3, c2].
# logical[i] == storage[CORNER_ORDER[i]]. The map is its own inverse.
CORNER_ORDER = (0, 1, 3, 2)


def to_logical(storage: Sequence[LatLng]) -> Quad:
    """Storage order -> polygon (logical) order."""
    return tuple(storage[CORNER_ORDER[i]] for i in range(4))


def to_storage(logical: Sequence[LatLng]) -> Quad:
    """Polygon (logical) order -> storage order."""
    out = [None] * 4
    for i in range(4):
        out[CORNER_ORDER[i]] = logical[i]
    return tuple(out)


def rotate_quad(q: Sequence[LatLng]) -> Quad:
    """Rotate a logical quad by one corner: [q3, q0, q1, q2]."""
    return (q[3], q[0], q[1], q[2])


def mirror_quad(q: Sequence[LatLng]) -> Quad:
    """Reverse the winding of a logical quad: [q3, q2, q1, q0]."""
    return (q[3], q[2], q[1], q[0])


def corner_bounds(points: Sequence[LatLng]) -> Tuple[float, float, float, float]:
    """Bounding box (south, west, north, east) of geographic points."""
    # shapely works in (x, y) == (lng, lat)
    minx, miny, maxx, maxy = MultiPoint([(p[1], p[0]) for p in points]).bounds
    return (miny, minx, maxy, maxx)


def iter_points(ring: Ring):
    """Yield every vertex of `ring`, depth first."""
    if isinstance(ring, Flat):
        yield from ring.points
        return
    for child in ring.rings:
        yield from iter_points(child)
