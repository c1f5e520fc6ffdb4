"""Branch collapse engine tests."""

import pytest

from src.pedigree import collapse
from src.pedigree.generations import compute_generations
from src.pedigree.index import GraphIndex


def index_of(snapshot):
    return GraphIndex(snapshot.people, snapshot.families)


class TestHiddenHandles:
    """Hidden set derivation and cascade."""

    def test_chain_collapse(self, chain):
        idx = index_of(chain)
        assert collapse.hidden_handles(idx, {"A"}) == {"B", "C"}

    def test_nothing_collapsed(self, sample):
        assert collapse.hidden_handles(index_of(sample), frozenset()) == frozenset()

    def test_branch_includes_spouses(self, sample):
        hidden = collapse.hidden_handles(index_of(sample), {"P003"})
        assert hidden == {"P004", "P008", "P009", "P010", "P011", "P016", "P018", "P019", "P021", "P022"}

    def test_cascade_through_hidden_spouse(self, build):
        """A spouse's child from another union is hidden once all its parents are."""
        snap = build(
            ["X", ("Y", {"is_patrilineal": False}), "K", ("W", {"is_patrilineal": False})],
            [("F1", "X", "Y", ["K"]), ("F3", None, "Y", ["W"])],
        )
        hidden = collapse.hidden_handles(index_of(snap), {"X"})
        assert hidden == {"Y", "K", "W"}

    def test_no_cascade_with_visible_parent(self, build):
        snap = build(
            ["X", ("Y", {"is_patrilineal": False}), ("Z", {"is_patrilineal": False}), "K", "W"],
            [("F1", "X", "Y", ["K"]), ("F3", "Z", "Y", ["W"])],
        )
        hidden = collapse.hidden_handles(index_of(snap), {"X"})
        assert "W" not in hidden

    def test_cycle_terminates(self, build):
        snap = build(["A", "B"], [("F1", "A", None, ["B"]), ("F2", "B", None, ["A"])])
        # A's only parent is hidden, so the cascade reaches A as well
        assert collapse.hidden_handles(index_of(snap), {"A"}) == {"A", "B"}

    def test_round_trip(self, sample):
        idx = index_of(sample)
        collapsed = collapse.expand_all()
        collapsed = collapse.collapse_all(idx)
        assert collapse.hidden_handles(idx, collapsed)
        collapsed = collapse.expand_all()
        assert collapse.hidden_handles(idx, collapsed) == frozenset()


class TestVisibleGraph:
    """Projection after hiding."""

    def test_drops_hidden_people_and_orphaned_families(self, chain):
        idx = index_of(chain)
        visible = collapse.visible_graph(chain.people, chain.families, collapse.hidden_handles(idx, {"A"}))
        assert [p.handle for p in visible.people] == ["A"]
        assert [f.handle for f in visible.families] == ["F1"]

    def test_family_with_one_visible_parent_stays(self, two_marriages):
        visible = collapse.visible_graph(two_marriages.people, two_marriages.families, frozenset({"Y2", "C3"}))
        assert [f.handle for f in visible.families] == ["F1", "F2"]


class TestToggle:
    """Collapse, progressive expand and bulk operations."""

    def test_toggle_progressive_reveal(self, chain):
        idx = index_of(chain)
        collapsed = collapse.toggle_collapse(idx, frozenset(), "A")
        assert collapsed == {"A"}
        collapsed = collapse.toggle_collapse(idx, collapsed, "A")
        assert collapsed == {"B"}
        collapsed = collapse.toggle_collapse(idx, collapsed, "B")
        assert collapsed == frozenset()

    def test_toggle_returns_new_set(self, chain):
        before = frozenset()
        after = collapse.toggle_collapse(index_of(chain), before, "A")
        assert before == frozenset()
        assert after is not before

    def test_collapse_all_takes_every_parent(self, two_marriages):
        assert collapse.collapse_all(index_of(two_marriages)) == {"X", "Y1", "Y2"}

    def test_collapse_all_skips_childless_unions(self, build):
        snap = build(["A", ("B", {"is_patrilineal": False})], [("F1", "A", "B", [])])
        assert collapse.collapse_all(index_of(snap)) == frozenset()


class TestBranchSummary:
    """Aggregates over a collapsed branch."""

    def test_chain_total(self, chain):
        summary = collapse.branch_summary(index_of(chain), "A")
        assert summary.total_descendants == 2
        assert summary.parent_handle == "A"

    def test_sample_branch(self, sample):
        idx = index_of(sample)
        gens = compute_generations(sample.people, sample.families, index=idx)
        summary = collapse.branch_summary(idx, "P003", gens)
        assert summary.total_descendants == 10
        assert summary.living_count == 8
        assert summary.deceased_count == 2
        assert summary.patrilineal_count == 6
        assert summary.generation_range == (1, 4)

    def test_leaf_summary(self, sample):
        summary = collapse.branch_summary(index_of(sample), "P022")
        assert summary.total_descendants == 0
        assert summary.generation_range == (0, 0)

    def test_summaries_keyed_by_handle(self, sample):
        summaries = collapse.branch_summaries(index_of(sample), {"P014", "P003"})
        assert list(summaries) == ["P003", "P014"]


class TestAutoCollapse:
    """Initial collapsed sets for large trees."""

    def test_panoramic_uses_absolute_generation(self, sample):
        idx = index_of(sample)
        gens = compute_generations(sample.people, sample.families, index=idx)
        assert collapse.auto_collapse_panoramic(idx, gens, 2) == {"P009", "P014", "P018"}

    def test_panoramic_default_threshold_collapses_nothing(self, sample):
        idx = index_of(sample)
        gens = compute_generations(sample.people, sample.families, index=idx)
        assert collapse.auto_collapse_panoramic(idx, gens, 8) == frozenset()

    def test_descendant_uses_relative_depth(self, sample):
        idx = index_of(sample)
        assert collapse.auto_collapse_descendant(idx, "P001", 2) == {"P009", "P014"}
        assert collapse.auto_collapse_descendant(idx, "P007", 1) == {"P014"}

    def test_descendant_unknown_focus(self, sample):
        assert collapse.auto_collapse_descendant(index_of(sample), "P404", 1) == frozenset()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
