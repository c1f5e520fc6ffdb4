"""Viewport, transform and culling tests."""

import math

import pytest

from src.config import LayoutSettings, ViewSettings
from src.pedigree.layout import compute_layout
from src.pedigree.models import Connection, LayoutResult, Person, PositionedNode
from src.pedigree.viewport import (
    Transform,
    Viewport,
    ZoomLevel,
    bundle_markers,
    clamp_scale,
    cull_layout,
    fit_transform,
    path_spec,
    visible_rect,
    zoom_level,
)


@pytest.fixture
def view():
    return ViewSettings()


@pytest.fixture
def geometry():
    return LayoutSettings(card_width=160, card_height=80, horizontal_spacing=24, vertical_spacing=60)


def node(handle, x, y):
    return PositionedNode(node=Person(handle=handle), x=x, y=y, generation=0)


class TestScale:
    """Clamping and level of detail."""

    def test_clamp_bounds(self, view):
        assert clamp_scale(0, config=view) == 0.15
        assert clamp_scale(-2, config=view) == 0.15
        assert clamp_scale(10, config=view) == 3.0
        assert clamp_scale(1.5, config=view) == 1.5

    def test_non_finite_keeps_previous(self, view):
        assert clamp_scale(float("nan"), previous=0.5, config=view) == 0.5
        assert clamp_scale(float("inf"), previous=2.0, config=view) == 2.0

    def test_constructor_clamps_degenerate_transform(self, view):
        assert Viewport(800, 600, Transform(10, 20, 0), config=view).transform == Transform(10, 20, 0.15)
        assert Viewport(800, 600, Transform(0, 0, 50), config=view).transform.scale == 3.0
        t = Viewport(800, 600, Transform(float("nan"), 5, float("inf")), config=view).transform
        assert (t.x, t.y, t.scale) == (0.0, 5, 1.0)

    def test_zoom_levels(self, view):
        assert zoom_level(0.61, view) == ZoomLevel.FULL
        assert zoom_level(0.6, view) == ZoomLevel.COMPACT
        assert zoom_level(0.31, view) == ZoomLevel.COMPACT
        assert zoom_level(0.3, view) == ZoomLevel.MINI


class TestGestures:
    """Wheel, drag and pinch handlers."""

    def test_wheel_zoom_keeps_cursor_point(self, view):
        vp = Viewport(800, 600, config=view)
        before = ((200 - vp.transform.x) / vp.transform.scale, (100 - vp.transform.y) / vp.transform.scale)
        t = vp.wheel(-1, 200, 100)
        assert t.scale == pytest.approx(1.1)
        after = ((200 - t.x) / t.scale, (100 - t.y) / t.scale)
        assert after == pytest.approx(before)

    def test_wheel_out_clamps(self, view):
        vp = Viewport(800, 600, config=view)
        for _ in range(100):
            vp.wheel(1, 0, 0)
        assert vp.transform.scale == 0.15

    def test_drag_is_relative_to_start(self, view):
        vp = Viewport(800, 600, Transform(5, 5, 1), config=view)
        vp.begin_drag(10, 10)
        vp.drag_to(30, 40)
        t = vp.drag_to(30, 40)
        assert (t.x, t.y) == (25, 35)
        vp.end_drag()
        assert not vp.dragging
        assert vp.drag_to(100, 100) == t

    def test_pinch_ratio_and_idempotence(self, view):
        vp = Viewport(800, 600, config=view)
        vp.begin_pinch(100)
        first = vp.pinch_to(200, 50, 50)
        assert first.scale == pytest.approx(2.0)
        assert vp.pinch_to(200, 50, 50) == first

    def test_pinch_clamped(self, view):
        vp = Viewport(800, 600, config=view)
        vp.begin_pinch(100)
        assert vp.pinch_to(100000, 0, 0).scale == 3.0

    def test_degenerate_pinch_ignored(self, view):
        vp = Viewport(800, 600, config=view)
        start = vp.transform
        vp.begin_pinch(0)
        assert vp.pinch_to(50, 10, 10) == start
        vp.begin_pinch(100)
        assert vp.pinch_to(float("nan"), 10, 10) == start

    def test_zoom_buttons_use_center(self, view):
        vp = Viewport(800, 600, config=view)
        t = vp.zoom_in()
        assert ((400 - t.x) / t.scale, (300 - t.y) / t.scale) == pytest.approx((400, 300))


class TestFit:
    """Fit-to-view framing."""

    def test_fit_centers_box(self, view):
        t = fit_transform(1000, 500, 1200, 800, view)
        assert t.scale == pytest.approx(1200 / 1080)
        assert t.x == pytest.approx((1200 - 1000 * t.scale) / 2)
        assert t.y == pytest.approx((800 - 500 * t.scale) / 2)

    @pytest.mark.parametrize("width,height", [(10, 10), (100000, 100), (100, 100000), (800, 600), (1, 50000)])
    def test_fit_scale_bounds(self, view, width, height):
        t = fit_transform(width, height, 1024, 768, view)
        assert 0.12 <= t.scale <= 1.2

    def test_fit_without_size_is_noop(self, view, sample, geometry):
        layout = compute_layout(sample.people, sample.families, geometry)
        vp = Viewport(config=view)
        assert vp.fit(layout) == Transform()


class TestCulling:
    """Viewport culling and path batching."""

    @pytest.mark.parametrize("t", [
        Transform(0, 0, 1),
        Transform(-800, -200, 1),
        Transform(-300, 50, 2.5),
        Transform(100, 100, 0.2),
    ])
    def test_culling_soundness(self, sample, view, geometry, t):
        layout = compute_layout(sample.people, sample.families, geometry)
        culled = cull_layout(layout, t, 400, 300, view, geometry)
        rect = visible_rect(t, 400, 300, view.cull_padding)
        kept = {n.handle for n in culled.nodes}
        for n in layout.nodes:
            inside = rect.intersects_box(n.x, n.y, geometry.card_width, geometry.card_height)
            assert (n.handle in kept) == inside

    def test_far_away_nodes_dropped(self, view, geometry):
        layout = LayoutResult(nodes=[node("A", 0, 0), node("B", 5000, 0)])
        culled = cull_layout(layout, Transform(), 800, 600, view, geometry)
        assert [n.handle for n in culled.nodes] == ["A"]

    def test_zero_viewport_keeps_everything(self, sample, view, geometry):
        layout = compute_layout(sample.people, sample.families, geometry)
        culled = cull_layout(layout, Transform(-99999, -99999, 1), 0, 0, view, geometry)
        assert len(culled.nodes) == len(layout.nodes)

    def test_path_spec_format(self):
        spec = path_spec([
            Connection("parent", 0, 0, 10, 20.5),
            Connection("couple", 1.25, 2, 3, 4),
            Connection("parent", 10, 20.5, 10, 40),
        ])
        assert spec.parent_path_spec == "M0,0L10,20.5M10,20.5L10,40"
        assert spec.couple_path_spec == "M1.25,2L3,4"

    def test_connection_kept_if_one_end_visible(self, view, geometry):
        layout = LayoutResult(
            nodes=[node("A", 0, 0)],
            connections=[Connection("parent", 80, 80, 80, 9000), Connection("parent", 9000, 9000, 9100, 9100)],
        )
        culled = cull_layout(layout, Transform(), 800, 600, view, geometry)
        assert culled.connections.parent_path_spec == "M80,80L80,9000"


class TestFraming:
    """Pan-to-person and bundle markers."""

    def test_pan_to_centers_card(self, view, geometry):
        layout = LayoutResult(nodes=[node("A", 100, 200)])
        vp = Viewport(800, 600, config=view)
        t = vp.pan_to(layout, "A", geometry)
        assert (t.x, t.y, t.scale) == (220, 60, 1)

    def test_pan_to_unknown_is_noop(self, view):
        vp = Viewport(800, 600, config=view)
        assert vp.pan_to(LayoutResult(), "Z") == Transform()

    def test_bundle_marker_below_card(self, view, geometry):
        markers = bundle_markers([node("A", 10, 20), node("B", 300, 20)], {"A"}, None, view, geometry)
        assert [(m.handle, m.x, m.y) for m in markers] == [("A", 10, 140)]

    def test_degenerate_scale_rect(self, view):
        rect = visible_rect(Transform(0, 0, 0), 100, 100, 0)
        assert math.isfinite(rect.right)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
