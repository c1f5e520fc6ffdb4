"""View-mode state machine tests."""

import pytest

from src.config import ViewSettings
from src.pedigree.models import GraphSnapshot
from src.pedigree.view_state import TreeViewState, ViewMode
from src.pedigree.viewport import Transform, Viewport, ZoomLevel


@pytest.fixture
def links():
    return []


@pytest.fixture
def make_state(sample, links):
    def make(threshold=8, viewport=None):
        config = ViewSettings(auto_collapse_generation=threshold)
        return TreeViewState(sample, viewport=viewport or Viewport(config=config),
                             on_link_change=links.append, config=config)
    return make


class TestDeepLink:
    """Loading state from `view` / `person` query parameters."""

    def test_descendant_link_uses_relative_depth(self, make_state):
        state = make_state(threshold=1)
        state.apply_deep_link("?view=descendant&person=P007")
        assert state.view_mode == ViewMode.DESCENDANT
        assert state.focus_person == "P007"
        # Measured from P007; from the roots P003 and P007 would be collapsed too
        assert state.collapsed == {"P014"}

    def test_descendant_link_visible_graph(self, make_state):
        state = make_state(threshold=1)
        state.apply_deep_link({"view": "descendant", "person": "P007"})
        assert {n.handle for n in state.layout().nodes} == {"P007", "P013", "P014", "P015"}
        assert state.branch_summaries()["P014"].total_descendants == 2

    def test_no_view_applies_panoramic(self, make_state):
        state = make_state(threshold=2)
        state.apply_deep_link({})
        assert state.view_mode == ViewMode.FULL
        assert state.collapsed == {"P009", "P014", "P018"}

    def test_unknown_person_ignored(self, make_state):
        state = make_state()
        state.apply_deep_link({"view": "ancestor", "person": "P404"})
        assert state.view_mode == ViewMode.ANCESTOR
        assert state.focus_person is None
        assert state.collapsed == frozenset()

    def test_unknown_view_falls_back_to_full(self, make_state):
        state = make_state()
        state.apply_deep_link("view=sideways")
        assert state.view_mode == ViewMode.FULL

    def test_loading_does_not_rewrite_link(self, make_state, links):
        make_state().apply_deep_link("view=descendant&person=P007")
        assert links == []


class TestTransitions:
    """Mode, focus and collapse changes."""

    def test_non_full_mode_picks_first_person(self, make_state, links):
        state = make_state()
        state.set_view_mode("descendant")
        assert state.focus_person == "P001"
        assert links[-1] == {"view": "descendant", "person": "P001"}

    def test_full_mode_link_is_empty(self, make_state, links):
        state = make_state()
        state.apply_deep_link("view=descendant&person=P007")
        state.set_view_mode(ViewMode.FULL)
        assert links[-1] == {}

    def test_ancestor_mode_clears_collapsed(self, make_state):
        state = make_state(threshold=2)
        state.apply_deep_link({})
        assert state.collapsed
        state.set_focus("P020")
        state.set_view_mode(ViewMode.ANCESTOR)
        assert state.collapsed == frozenset()
        assert {n.handle for n in state.layout().nodes} == {"P020", "P014", "P017", "P007", "P013", "P001", "P002"}

    def test_set_focus_unknown(self, make_state, links):
        state = make_state()
        assert state.set_focus("P404") is False
        assert links == []

    def test_focus_change_recollapses_in_descendant_mode(self, make_state):
        state = make_state(threshold=1)
        state.apply_deep_link("view=descendant&person=P007")
        state.set_focus("P001")
        assert state.collapsed == {"P003", "P005", "P007"}

    def test_collapse_operations_notify(self, make_state, links):
        state = make_state()
        state.toggle_collapse("P003")
        state.collapse_all()
        state.expand_all()
        assert len(links) == 3
        assert state.collapsed == frozenset()

    def test_set_snapshot_prunes_missing_handles(self, make_state, sample):
        state = make_state()
        state.apply_deep_link("view=descendant&person=P014")
        state.collapsed = frozenset({"P014", "P003"})
        trimmed = GraphSnapshot(
            people=[p for p in sample.people if p.handle != "P014"],
            families=sample.families,
        )
        state.set_snapshot(trimmed)
        assert state.focus_person is None
        assert state.collapsed == {"P003"}

    def test_share_link(self, make_state):
        link = make_state().share_link("P007", "https://clan.example/")
        assert link == "https://clan.example/tree?view=descendant&person=P007"


class TestRenderFrame:
    """Frames handed to renderers."""

    def test_full_frame_without_viewport_size(self, make_state, sample):
        state = make_state()
        frame = state.render_frame()
        assert len(frame.visible_nodes) == len(sample.people)
        assert frame.zoom_level == ZoomLevel.FULL
        assert frame.show_collapse_controls
        assert frame.bundles == []
        assert "P001" in frame.collapsible
        assert "P022" not in frame.collapsible
        assert frame.visible_connections.parent_path_spec.startswith("M")

    def test_mini_frame_has_bundles(self, make_state):
        state = make_state(viewport=Viewport(0, 0, Transform(0, 0, 0.2)))
        state.toggle_collapse("P003")
        frame = state.render_frame()
        assert frame.zoom_level == ZoomLevel.MINI
        assert not frame.show_collapse_controls
        assert [b.handle for b in frame.bundles] == ["P003"]
        node = next(n for n in frame.visible_nodes if n.handle == "P003")
        assert frame.bundles[0].y == node.y + 80 + 40
        assert frame.bundles[0].summary.total_descendants == 10

    def test_layout_memoized_across_pan_and_zoom(self, make_state):
        state = make_state(viewport=Viewport(800, 600))
        first = state.layout()
        state.viewport.wheel(-1, 10, 10)
        state.render_frame()
        assert state.layout() is first

    def test_collapse_reuses_scoped_graph(self, make_state):
        state = make_state()
        scoped = state.scoped_graph()
        layout = state.layout()
        state.toggle_collapse("P003")
        assert state.scoped_graph() is scoped
        assert state.layout() is not layout

    def test_pan_to_person(self, make_state):
        state = make_state(viewport=Viewport(800, 600))
        t = state.pan_to_person("P022")
        node = state.layout().node_for("P022")
        assert t.x + (node.x + 80) * t.scale == pytest.approx(400)

    def test_stats_and_search(self, make_state, sample):
        state = make_state()
        assert state.stats().total == len(sample.people)
        assert len(state.search("lê")) == 8


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
