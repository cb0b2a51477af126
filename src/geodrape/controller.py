"""
controller.py

Rigid-body translation of draped images through proxy drag markers.

While enabled, each map click drops a draggable marker. Dragging a marker
moves every polygon on the viewport by the marker's displacement, so the
image polygon (and therefore the overlay, which listens for the polygon's
``"edit"``) follows as one piece. Right-clicking a marker removes it.

The controller never registers callbacks of its own. The host feeds input
events to `handle()` and gets back the effects that were applied, which
keeps the order of recomputations explicit and easy to test.
"""
import enum
import logging
from dataclasses import dataclass
from typing import List, Tuple

from geodrape.geometry import LatLng, add_delta
from geodrape.layers import Marker, PolygonLayer

logger = logging.getLogger(__name__)


class ControllerState(enum.Enum):
    DISABLED = 'disabled'
    ENABLED = 'enabled'


# ── input events ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MapClick:
    latlng: Tuple[float, float]


@dataclass(frozen=True)
class DragStart:
    marker: Marker


@dataclass(frozen=True)
class Drag:
    marker: Marker
    latlng: Tuple[float, float]


@dataclass(frozen=True)
class DragEnd:
    marker: Marker


@dataclass(frozen=True)
class MarkerContextMenu:
    marker: Marker


# ── effects ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MarkerAdded:
    marker: Marker


@dataclass(frozen=True)
class MarkerRemoved:
    marker: Marker


@dataclass(frozen=True)
class PolygonTranslated:
    polygon: PolygonLayer
    dlat: float
    dlng: float


class CornerInteractionController:
    """Two-state (disabled/enabled) marker-drag controller for one viewport."""

    def __init__(self, viewport):
        self.viewport = viewport
        self.state = ControllerState.DISABLED
        self.markers: List[Marker] = []

    @property
    def enabled(self) -> bool:
        return self.state is ControllerState.ENABLED

    def enable(self) -> list:
        self.state = ControllerState.ENABLED
        logger.debug('transform mode enabled')
        return []

    def disable(self) -> list:
        """Stop handling clicks and drop every marker."""
        self.state = ControllerState.DISABLED
        effects = []
        for marker in self.markers:
            self.viewport.remove_layer(marker)
            marker.last_position = None
            effects.append(MarkerRemoved(marker))
        self.markers = []
        logger.debug('transform mode disabled, %d markers removed', len(effects))
        return effects

    def toggle(self) -> list:
        return self.disable() if self.enabled else self.enable()

    # ── event dispatch ────────────────────────────────────────────────────────

    def handle(self, event) -> list:
        """Apply one input event and return the resulting effects."""
        if not self.enabled:
            return []
        if isinstance(event, MapClick):
            return self._add_marker(event.latlng)
        marker = getattr(event, 'marker', None)
        if marker is None or marker not in self.markers:
            # stale handle from before a disable, or someone else's marker
            return []
        if isinstance(event, DragStart):
            marker.last_position = marker.latlng
            return []
        if isinstance(event, Drag):
            return self._drag(marker, LatLng(float(event.latlng[0]), float(event.latlng[1])))
        if isinstance(event, DragEnd):
            marker.last_position = None
            return []
        if isinstance(event, MarkerContextMenu):
            return self._remove_marker(marker)
        raise TypeError(f'unsupported controller event: {event!r}')

    def _add_marker(self, latlng) -> list:
        marker = Marker(latlng, draggable=True, temporary=True)
        self.markers.append(marker)
        self.viewport.add_layer(marker)
        return [MarkerAdded(marker)]

    def _remove_marker(self, marker: Marker) -> list:
        self.viewport.remove_layer(marker)
        self.markers.remove(marker)
        return [MarkerRemoved(marker)]

    def _drag(self, marker: Marker, new_ll: LatLng) -> list:
        marker.set_lat_lng(new_ll)
        if marker.last_position is None:
            marker.last_position = new_ll
            return []
        dlat = new_ll.lat - marker.last_position.lat
        dlng = new_ll.lng - marker.last_position.lng
        effects = self.translate_polygons(dlat, dlng)
        marker.last_position = new_ll
        return effects

    def translate_polygons(self, dlat: float, dlng: float) -> list:
        """Shift every vertex of every polygon on the viewport; one ``"edit"`` each."""
        effects = []
        for layer in self.viewport.each_layer():
            if isinstance(layer, PolygonLayer):
                layer.set_lat_lngs(add_delta(layer.get_lat_lngs(), dlat, dlng))
                layer.fire('edit')
                effects.append(PolygonTranslated(layer, dlat, dlng))
        return effects
