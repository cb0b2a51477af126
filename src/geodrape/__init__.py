"""Projective image draping over four draggable geographic corners."""
from geodrape.errors import DegenerateGeometryError, DrapeError, UnsupportedRenderingCapability
from geodrape.geometry import LatLng, ScreenPoint
from geodrape.overlay import ProjectiveOverlay
from geodrape.controller import CornerInteractionController
from geodrape.session import DrapeSession
from geodrape.viewport import Viewport

__version__ = '0.1.0'
