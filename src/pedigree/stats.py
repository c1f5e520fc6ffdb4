"""Tree statistics, generation headers and name search."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from src.pedigree.models import Family, Person, PositionedNode


@dataclass(frozen=True)
class TreeStats:
    """Counts over the laid-out tree."""
    total: int = 0
    total_families: int = 0
    total_generations: int = 0
    per_generation: list[tuple[int, int]] = field(default_factory=list)
    living_count: int = 0
    deceased_count: int = 0
    patrilineal_count: int = 0
    non_patrilineal_count: int = 0


def generation_counts(nodes: Iterable[PositionedNode]) -> dict[int, int]:
    """Members per generation, 1-based, for the row headers.

    Detached persons have no real generation and are left out.
    """
    counts = Counter(n.generation + 1 for n in nodes if not n.detached)
    return dict(sorted(counts.items()))


def compute_tree_stats(nodes: list[PositionedNode], families: list[Family]) -> TreeStats:
    per_gen = Counter(n.generation + 1 for n in nodes)
    living = sum(1 for n in nodes if n.node.is_living)
    patrilineal = sum(1 for n in nodes if n.node.is_patrilineal)
    return TreeStats(
        total=len(nodes),
        total_families=len(families),
        total_generations=len(per_gen),
        per_generation=sorted(per_gen.items()),
        living_count=living,
        deceased_count=len(nodes) - living,
        patrilineal_count=patrilineal,
        non_patrilineal_count=len(nodes) - patrilineal,
    )


def search_people(people: Iterable[Person], query: str, limit: int = 8) -> list[Person]:
    """Case-insensitive substring match on display names."""
    q = query.strip().lower()
    if not q:
        return []
    matches = [p for p in people if q in p.display_name.lower()]
    return matches[:limit] if limit else matches


def highlight_handles(people: Iterable[Person], query: str) -> set[str]:
    """Every handle whose name matches, for highlighting cards."""
    return {p.handle for p in search_people(people, query, limit=0)}
