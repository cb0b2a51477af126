"""
surface.py

`ImageSurface` stands for the on-screen image element an overlay warps.
It owns the image handle (a Pillow image), reports its natural pixel size
once loaded, and records the placement the overlay applies each frame:
a position (layer pixels of corner 0), an optional 4x4 render matrix and an
opacity. `css_transform()` turns the placement into CSS transform text for
hosts that render through a browser.
"""
import asyncio
import io
import logging
import os
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image

from geodrape.events import Evented
from geodrape.geometry import ScreenPoint
from geodrape.homography import matrix3d_string

logger = logging.getLogger(__name__)

ImageSource = Union[str, os.PathLike, bytes, Image.Image]


def translate_string(point, is3d: bool = True) -> str:
    """CSS translate text for `point`; translate3d keeps hardware acceleration on."""
    if is3d:
        return f'translate3d({point[0]!r}px,{point[1]!r}px,0)'
    return f'translate({point[0]!r}px,{point[1]!r}px)'


def _open_image(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, (bytes, bytearray)):
        img = Image.open(io.BytesIO(source))
    else:
        img = Image.open(source)
    # decode now so a broken file fails here and not at first paint
    img.load()
    return img


class ImageSurface(Evented):
    """Rendering surface for one draped image.

    Fires ``"load"`` with ``width``/``height`` once the image is available.
    """

    def __init__(self, source: Optional[ImageSource] = None, opacity: float = 1.0):
        self.source = source
        self.image: Optional[Image.Image] = None
        self.position: Optional[ScreenPoint] = None
        self.transform: Optional[np.ndarray] = None
        self.transform_origin = '0 0 0'
        self.opacity = float(opacity)
        self.bounds = None
        if isinstance(source, Image.Image):
            self._set_image(source)

    # ── image handle ──────────────────────────────────────────────────────────

    def _set_image(self, img: Image.Image):
        self.image = img
        logger.debug('image loaded: %dx%d', img.width, img.height)
        self.fire('load', width=img.width, height=img.height)

    def load(self, source: Optional[ImageSource] = None):
        """Decode `source` (or the constructor's) synchronously."""
        if source is not None:
            self.source = source
        if self.source is None:
            raise ValueError('ImageSurface.load: no image source given')
        self._set_image(_open_image(self.source))
        return self

    async def load_async(self, source: Optional[ImageSource] = None):
        """Decode the image off the event loop thread, then publish it."""
        if source is not None:
            self.source = source
        if self.source is None:
            raise ValueError('ImageSurface.load_async: no image source given')
        img = await asyncio.to_thread(_open_image, self.source)
        self._set_image(img)
        return self

    @property
    def loaded(self) -> bool:
        return self.image is not None

    @property
    def natural_size(self) -> Optional[Tuple[int, int]]:
        if self.image is None:
            return None
        return self.image.width, self.image.height

    # ── placement ─────────────────────────────────────────────────────────────

    def set_opacity(self, opacity: float):
        self.opacity = float(opacity)
        return self

    def set_placement(self, position, transform: Optional[np.ndarray] = None):
        """Place the image's top-left at `position`, warped by `transform` if given."""
        self.position = ScreenPoint(float(position[0]), float(position[1]))
        self.transform = None if transform is None else np.array(transform, dtype=float)
        return self

    def placement(self):
        """Snapshot of (position, transform) for comparisons."""
        t = None if self.transform is None else self.transform.copy()
        return self.position, t

    def css_transform(self, is3d: bool = True) -> str:
        if self.position is None:
            return ''
        parts = [translate_string(self.position, is3d=is3d)]
        if self.transform is not None:
            parts.append(matrix3d_string(self.transform))
        return ' '.join(parts)
