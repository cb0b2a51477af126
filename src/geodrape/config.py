# -*- coding: utf-8 -*-

"""
geodrape/config.py

This module centralizes the tunable constants of the image-draping engine. By
keeping sizes, timings and tolerances in one place, the overlay, the viewport
host and the tests all agree on the same values.

Contents:
---------
1. IMAGE_DEFAULTS:
   - Fallback pixel size used before an image has finished loading.
   - Initial opacity of a freshly created overlay.

2. PULSE:
   - Interval and step of the cosmetic opacity pulse.

3. NUMERICS:
   - Tolerance under which a normalizing divisor counts as zero.
   - Tolerance used to decide whether a projection is purely affine.

4. DEFAULT_CORNERS / DEFAULT_BOUNDS (EPSG:4326):
   - Degenerate unit-square quad every overlay starts from (storage order).
   - Bounds a viewport is fitted to when no image polygon exists yet.

5. VIEWPORT:
   - Tile size, zoom limits and CRS codes of the reference viewport.

Usage:
------
    from geodrape.config import IMAGE_DEFAULTS, PULSE

    w = IMAGE_DEFAULTS['fallback_width']
"""
import sys

# ───────────────────────────────────────────────────────────────────────────────
# 1) IMAGE DEFAULTS (pixels)
# ───────────────────────────────────────────────────────────────────────────────
# Reasonable but made-up image size so an overlay can be placed on the map
# before its image has downloaded.
IMAGE_DEFAULTS = {
    'fallback_width': 500,      # px
    'fallback_height': 375,     # px
    'opacity': 0.7,             # initial overlay opacity (0..1)
}

# ───────────────────────────────────────────────────────────────────────────────
# 2) OPACITY PULSE
# ───────────────────────────────────────────────────────────────────────────────
# opacity = 0.5 + sin(counter) / 2, counter += step every interval
PULSE = {
    'interval_s': 0.1,          # seconds between ticks
    'step': 0.2,                # radians added to the counter per tick
}

# ───────────────────────────────────────────────────────────────────────────────
# 3) NUMERICS
# ───────────────────────────────────────────────────────────────────────────────
# A normalizing divisor with |m22| below this is treated as zero.
DEGENERATE_EPS = sys.float_info.epsilon
# Projective-distortion entries below this count as zero for is_affine().
AFFINE_TOL = 1e-9

# ───────────────────────────────────────────────────────────────────────────────
# 4) DEFAULT GEOMETRY (EPSG:4326, (lat, lng))
# ───────────────────────────────────────────────────────────────────────────────
DEFAULT_CORNERS = (
    (0.0, 0.0),
    (1.0, 0.0),
    (0.0, 1.0),
    (1.0, 1.0),
)

# south, west, north, east
DEFAULT_BOUNDS = (-60.0, -170.0, 75.0, 170.0)

# ───────────────────────────────────────────────────────────────────────────────
# 5) REFERENCE VIEWPORT
# ───────────────────────────────────────────────────────────────────────────────
VIEWPORT = {
    'tile_size': 256,           # px per tile at zoom 0
    'min_zoom': 0,
    'max_zoom': 25,
    'fit_max_zoom': 20,         # fit_bounds never zooms past this
    'geographic_crs': 'EPSG:4326',
    'projected_crs': 'EPSG:3857',
    # half the circumference of the Web Mercator square (m)
    'mercator_extent': 20037508.342789244,
}

# ───────────────────────────────────────────────────────────────────────────────
# 6) LOGGING
# ───────────────────────────────────────────────────────────────────────────────
LOGGING = {
    'logger_name': 'geodrape',
    'console_format': '[%(levelname)s] %(message)s',
    'file_format': '%(asctime)s [%(levelname)s] %(message)s',
}
