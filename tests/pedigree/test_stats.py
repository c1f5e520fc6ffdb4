"""Tree statistics and search tests."""

import pytest

from src.pedigree.layout import compute_layout
from src.pedigree.models import Person, PositionedNode
from src.pedigree.stats import compute_tree_stats, generation_counts, highlight_handles, search_people


class TestTreeStats:
    """Counts over the sample clan."""

    def test_sample_stats(self, sample):
        layout = compute_layout(sample.people, sample.families)
        stats = compute_tree_stats(layout.nodes, sample.families)
        assert stats.total == 22
        assert stats.total_families == 8
        assert stats.total_generations == 5
        assert stats.per_generation == [(1, 2), (2, 7), (3, 8), (4, 4), (5, 1)]
        assert (stats.living_count, stats.deceased_count) == (13, 9)
        assert (stats.patrilineal_count, stats.non_patrilineal_count) == (13, 9)

    def test_empty(self):
        stats = compute_tree_stats([], [])
        assert stats.total == 0
        assert stats.per_generation == []

    def test_generation_headers_skip_detached(self):
        nodes = [
            PositionedNode(Person(handle="A"), 0, 0, 0),
            PositionedNode(Person(handle="B"), 0, 140, 1),
            PositionedNode(Person(handle="Z"), 200, 0, 0, detached=True),
        ]
        assert generation_counts(nodes) == {1: 1, 2: 1}


class TestSearch:
    """Name search and highlighting."""

    def test_case_insensitive_substring(self, sample):
        found = search_people(sample.people, "LÊ THỊ")
        assert [p.handle for p in found] == ["P005", "P010", "P015", "P019"]

    def test_limit(self, sample):
        assert len(search_people(sample.people, "lê văn")) == 8
        assert len(search_people(sample.people, "lê văn", limit=0)) == 9

    def test_blank_query(self, sample):
        assert search_people(sample.people, "   ") == []

    def test_highlight(self, sample):
        assert highlight_handles(sample.people, "hoàng") == {"P006", "P012"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
