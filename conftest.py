import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# run from a source checkout without installing
sys.path.insert(0, str(Path(__file__).parent / "src"))

from geodrape.geometry import LatLng  # noqa: E402
from geodrape.viewport import Viewport  # noqa: E402


def make_png_bytes(width=64, height=48, color=(200, 50, 50)):
    """Encode a small solid-colour PNG in memory."""
    buf = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buf, format='PNG')
    return buf.getvalue()


@pytest.fixture
def viewport():
    """A 800x600 viewport over a small area so corners project to distinct pixels."""
    return Viewport(center=(51.5, -0.1), zoom=12, size=(800, 600))


@pytest.fixture
def png_bytes():
    return make_png_bytes()


@pytest.fixture
def quad():
    """A non-degenerate quad in polygon order (top-left, top-right, bottom-right, bottom-left)."""
    return [
        LatLng(51.52, -0.14),
        LatLng(51.52, -0.06),
        LatLng(51.48, -0.05),
        LatLng(51.49, -0.15),
    ]
