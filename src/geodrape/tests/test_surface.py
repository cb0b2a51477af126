import asyncio

import numpy as np
import pytest
from PIL import Image

from geodrape.surface import ImageSurface, translate_string


def test_load_bytes_reports_natural_size(png_bytes):
    s = ImageSurface(png_bytes)
    sizes = []
    s.on('load', lambda e: sizes.append((e['width'], e['height'])))
    assert not s.loaded
    assert s.natural_size is None
    s.load()
    assert s.loaded
    assert s.natural_size == (64, 48)
    assert sizes == [(64, 48)]


def test_load_from_path(tmp_path, png_bytes):
    path = tmp_path / 'plan.png'
    path.write_bytes(png_bytes)
    s = ImageSurface().load(str(path))
    assert s.natural_size == (64, 48)


def test_pil_image_is_loaded_immediately():
    s = ImageSurface(Image.new('RGB', (10, 20)))
    assert s.natural_size == (10, 20)


def test_load_without_source_raises():
    with pytest.raises(ValueError):
        ImageSurface().load()


def test_broken_image_fails_at_load():
    with pytest.raises(OSError):
        ImageSurface(b'not an image').load()


def test_load_async(png_bytes):
    s = ImageSurface()
    asyncio.run(s.load_async(png_bytes))
    assert s.natural_size == (64, 48)


def test_load_async_without_source_raises():
    with pytest.raises(ValueError):
        asyncio.run(ImageSurface().load_async())


def test_translate_strings():
    assert translate_string((1.5, -2.0)) == 'translate3d(1.5px,-2.0px,0)'
    assert translate_string((1.5, -2.0), is3d=False) == 'translate(1.5px,-2.0px)'


def test_placement_and_css():
    s = ImageSurface()
    assert s.css_transform() == ''
    s.set_placement((3, 4))
    assert s.css_transform() == 'translate3d(3.0px,4.0px,0)'
    r = np.eye(4).ravel()
    s.set_placement((3, 4), r)
    css = s.css_transform()
    assert css.startswith('translate3d(3.0px,4.0px,0) matrix3d(')
    pos, t = s.placement()
    t[0] = 99.0
    assert s.transform[0] == 1.0
    assert pos == (3.0, 4.0)
