import asyncio

import pytest
from PIL import Image

from geodrape.geometry import LatLng, mirror_quad, rotate_quad
from geodrape.layers import Marker, PolygonLayer
from geodrape.overlay import ProjectiveOverlay
from geodrape.session import (
    DrapeSession, ImagePolygonBound, ImagePolygonUnbound, OverlayUpdated,
    PolygonCreated, PolygonCut, PolygonEdited, PolygonRemoved,
)

TRIANGLE = [(51.50, -0.10), (51.50, -0.08), (51.48, -0.09)]


@pytest.fixture
def session(viewport, png_bytes):
    return DrapeSession(viewport, image=png_bytes)


def overlays_on(viewport):
    return [l for l in viewport.each_layer() if isinstance(l, ProjectiveOverlay)]


def test_creating_a_quad_binds_it(session, viewport, quad):
    poly = PolygonLayer(quad)
    transitions = session.handle(PolygonCreated(poly))
    assert transitions == [ImagePolygonBound(poly), OverlayUpdated(tuple(quad))]
    assert session.image_polygon is poly
    assert viewport.has_layer(poly)
    assert overlays_on(viewport) == [session.overlay]
    assert session.corners() == tuple(quad)


def test_non_quad_is_not_bound(session, viewport, quad):
    tri = PolygonLayer(TRIANGLE)
    assert session.handle(PolygonCreated(tri)) == []
    assert session.image_polygon is None
    assert session.overlay is None
    poly = PolygonLayer(quad)
    assert session.handle(PolygonCreated(poly))[0] == ImagePolygonBound(poly)


def test_second_quad_does_not_steal_the_binding(session, quad):
    first = PolygonLayer(quad)
    session.handle(PolygonCreated(first))
    second = PolygonLayer([(p.lat + 0.1, p.lng) for p in quad])
    assert session.handle(PolygonCreated(second)) == []
    assert session.handle(PolygonEdited(second)) == []
    assert session.image_polygon is first


def test_editing_the_image_polygon_moves_the_overlay(session, quad):
    poly = PolygonLayer(quad)
    session.handle(PolygonCreated(poly))
    moved = [LatLng(p.lat + 0.01, p.lng) for p in quad]
    poly.set_lat_lngs(moved)
    assert session.handle(PolygonEdited(poly)) == [OverlayUpdated(tuple(moved))]
    assert session.overlay.get_corners() == tuple(moved)


def test_observed_edit_event_reaches_the_overlay(session, quad):
    poly = PolygonLayer(quad)
    session.handle(PolygonCreated(poly))
    moved = [LatLng(p.lat, p.lng + 0.02) for p in quad]
    poly.set_lat_lngs(moved)
    poly.fire('edit')
    assert session.corners() == tuple(moved)


def test_image_polygon_losing_its_quad_unbinds(session, viewport, quad):
    poly = PolygonLayer(quad)
    session.handle(PolygonCreated(poly))
    poly.set_lat_lngs(list(quad) + [LatLng(51.50, -0.16)])
    assert session.handle(PolygonEdited(poly)) == [ImagePolygonUnbound(poly)]
    assert session.image_polygon is None
    assert session.overlay is None
    assert overlays_on(viewport) == []


def test_removing_the_image_polygon_drops_the_overlay(session, viewport, quad):
    poly = PolygonLayer(quad)
    session.handle(PolygonCreated(poly))
    session.mark_clean()
    assert session.handle(PolygonRemoved(poly)) == [ImagePolygonUnbound(poly)]
    assert session.dirty
    assert not viewport.has_layer(poly)
    assert overlays_on(viewport) == []
    assert session.corners() is None
    # no longer observed
    poly.fire('edit')
    assert session.image_polygon is None


def test_removing_another_polygon_keeps_the_overlay(session, viewport, quad):
    poly = PolygonLayer(quad)
    tri = PolygonLayer(TRIANGLE)
    session.handle(PolygonCreated(poly))
    session.handle(PolygonCreated(tri))
    assert session.handle(PolygonRemoved(tri)) == []
    assert session.image_polygon is poly
    assert overlays_on(viewport) == [session.overlay]


def test_cut_layer_is_observed(session, viewport, quad):
    piece = PolygonLayer(quad).add_to(viewport)
    assert session.handle(PolygonCut(piece)) == []
    assert not session.dirty
    piece.fire('edit')
    assert session.image_polygon is piece


def test_rotate_and_mirror_rewrite_polygon_and_overlay(session, quad):
    poly = PolygonLayer(quad)
    session.handle(PolygonCreated(poly))
    session.mark_clean()

    [update] = session.rotate()
    expected = rotate_quad(tuple(quad))
    assert update == OverlayUpdated(expected)
    assert poly.quad() == expected
    assert session.dirty

    session.mirror()
    assert session.corners() == mirror_quad(expected)
    assert poly.quad() == mirror_quad(expected)


def test_rotate_without_binding_is_a_no_op(session):
    assert session.rotate() == []
    assert session.mirror() == []
    assert not session.dirty


def test_dirty_flag(session, quad):
    assert not session.dirty
    session.handle(PolygonCreated(PolygonLayer(TRIANGLE)))
    assert session.dirty
    session.mark_clean()
    assert not session.dirty


def test_no_image_tracks_polygons_without_overlay(viewport, quad):
    session = DrapeSession(viewport)
    poly = PolygonLayer(quad)
    assert session.handle(PolygonCreated(poly)) == [ImagePolygonBound(poly)]
    assert session.overlay is None
    assert overlays_on(viewport) == []


def test_attach_binds_first_quad(session, viewport, quad):
    poly = PolygonLayer(quad)
    tri = PolygonLayer(TRIANGLE)
    transitions = session.attach([poly, tri])
    assert transitions[0] == ImagePolygonBound(poly)
    assert viewport.has_layer(poly) and viewport.has_layer(tri)
    assert not session.dirty


def test_attach_skips_non_quad_first_polygon(session, quad):
    assert session.attach([PolygonLayer(TRIANGLE), PolygonLayer(quad)]) == []
    assert session.image_polygon is None


def test_fit_once(session, viewport, quad):
    poly = PolygonLayer(quad)
    session.handle(PolygonCreated(poly))
    viewport.set_view((0.0, 0.0), 3)
    assert session.fit_once() is True
    assert 51.48 < viewport.center.lat < 51.52
    assert -0.15 < viewport.center.lng < -0.05
    zoom = viewport.zoom
    viewport.set_view((0.0, 0.0), 3)
    assert session.fit_once() is False
    assert viewport.zoom == 3 != zoom


def test_fit_once_falls_back_to_default_bounds(session, viewport):
    assert session.fit_once() is True
    assert viewport.zoom <= 2


def test_unknown_event_raises(session):
    with pytest.raises(TypeError):
        session.handle(object())


def test_overlay_decodes_its_image_without_a_manual_load(session, quad):
    session.handle(PolygonCreated(PolygonLayer(quad)))
    assert session.overlay.surface.loaded
    assert session.overlay.image_size() == (64, 48)


def test_rebuilt_overlay_reuses_the_decoded_image(session, quad):
    poly = PolygonLayer(quad)
    session.handle(PolygonCreated(poly))
    first = session.overlay
    session.handle(PolygonRemoved(poly))
    again = PolygonLayer(quad)
    session.handle(PolygonCreated(again))
    assert session.overlay is not first
    assert isinstance(session.image, Image.Image)
    assert session.overlay.image_size() == (64, 48)


def test_undecodable_image_keeps_the_fallback_size(viewport, quad):
    session = DrapeSession(viewport, image=b'not an image')
    transitions = session.handle(PolygonCreated(PolygonLayer(quad)))
    assert isinstance(transitions[-1], OverlayUpdated)
    assert not session.overlay.surface.loaded
    assert session.overlay.image_size() == (500, 375)


def test_image_decodes_off_thread_inside_an_event_loop(viewport, quad, png_bytes):
    async def scenario():
        session = DrapeSession(viewport, image=png_bytes)
        session.handle(PolygonCreated(PolygonLayer(quad)))
        assert session.load_task is not None
        await session.load_task
        assert session.overlay.image_size() == (64, 48)
        viewport.remove_layer(session.overlay)

    asyncio.run(scenario())


def test_content_bounds_cover_markers_but_not_drag_handles(session, viewport, quad):
    session.handle(PolygonCreated(PolygonLayer(quad)))
    Marker((52.0, 0.5)).add_to(viewport)
    Marker((40.0, -10.0), draggable=True, temporary=True).add_to(viewport)
    assert session.content_bounds() == pytest.approx((51.48, -0.15, 52.0, 0.5))
