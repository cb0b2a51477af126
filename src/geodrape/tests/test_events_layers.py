from geodrape.events import Evented
from geodrape.geometry import LatLng, Nested
from geodrape.layers import Marker, PolygonLayer
from geodrape.viewport import Viewport


def test_fire_reaches_listeners_in_order():
    src = Evented()
    seen = []
    src.on('ping', lambda e: seen.append(('a', e['type'], e['value'])))
    src.on('ping', lambda e: seen.append(('b', e['target'] is src, e['value'])))
    src.fire('ping', value=3)
    assert seen == [('a', 'ping', 3), ('b', True, 3)]


def test_off_and_self_removal():
    src = Evented()
    calls = []

    def once(e):
        calls.append(e['type'])
        src.off('ping', once)

    src.on('ping', once)
    src.fire('ping')
    src.fire('ping')
    assert calls == ['ping']
    assert not src.listens('ping')
    # removing something never registered is harmless
    src.off('ping', once)


def test_polygon_layer_quad_and_lat_lngs():
    poly = PolygonLayer([[(0, 0), (0, 1), (1, 1), (1, 0)]])
    assert isinstance(poly.get_lat_lngs(), Nested)
    assert poly.quad()[2] == LatLng(1.0, 1.0)
    poly.set_lat_lngs([(0, 0), (0, 1), (1, 1)])
    assert poly.quad() is None


def test_layer_add_and_remove_track_viewport():
    vp = Viewport(size=(256, 256))
    m = Marker((10.0, 20.0), draggable=True, temporary=True)
    m.add_to(vp)
    assert m.viewport is vp
    assert vp.has_layer(m)
    m.remove()
    assert m.viewport is None
    assert not vp.has_layer(m)
    assert m.last_position is None
    assert m.set_lat_lng((1, 2)).latlng == LatLng(1.0, 2.0)
