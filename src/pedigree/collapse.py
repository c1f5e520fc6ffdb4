"""
Branch collapse engine.

The collapsed set is an immutable frozenset of branch roots; every operation
returns a new set. Hidden handles are derived from it in two steps:

1. everything below each collapsed root (children, grandchildren and the
   spouses of each of them);
2. a cascade: a person whose every resolvable parent family has all of its
   present parents hidden is hidden too. Only children of newly hidden
   parents are re-checked, so the cascade is a worklist, not a rescan.
"""

from collections import deque
from typing import Iterable, Iterator, Optional

from src.pedigree.index import GraphIndex
from src.pedigree.models import BranchSummary, Family, GraphSnapshot, Person


def _walk_below(index: GraphIndex, handle: str) -> Iterator[str]:
    """Yield every handle below `handle` once: spouses and children of the
    root and of each discovered child. Spouses are not walked further."""
    seen: set[str] = {handle}
    stack = [handle]
    while stack:
        current = stack.pop()
        for fam in index.own_families(current):
            for parent in fam.parents:
                if parent not in seen:
                    seen.add(parent)
                    yield parent
            for child in fam.children:
                if child not in seen:
                    seen.add(child)
                    yield child
                    stack.append(child)


def descendant_handles(index: GraphIndex, handle: str) -> set[str]:
    """Every handle reachable below `handle`, spouses included, itself excluded."""
    return set(_walk_below(index, handle))


def _family_hidden(fam: Family, index: GraphIndex, hidden: set[str]) -> bool:
    present = [p for p in fam.parents if p in index.person_map]
    return bool(present) and all(p in hidden for p in present)


def _orphaned_by_hidden(handle: str, index: GraphIndex, hidden: set[str]) -> bool:
    parent_fams = index.parent_families_of(handle)
    return bool(parent_fams) and all(_family_hidden(f, index, hidden) for f in parent_fams)


def hidden_handles(index: GraphIndex, collapsed: Iterable[str]) -> frozenset[str]:
    """All handles hidden by the collapsed branch roots, cascade included."""
    hidden: set[str] = set()
    for root in collapsed:
        hidden.update(descendant_handles(index, root))
    if not hidden:
        return frozenset()

    queue = deque(hidden)
    while queue:
        parent = queue.popleft()
        for fam in index.families_by_parent.get(parent, []):
            for child in fam.children:
                if child in hidden or child not in index.person_map:
                    continue
                if _orphaned_by_hidden(child, index, hidden):
                    hidden.add(child)
                    queue.append(child)
    return frozenset(hidden)


def visible_graph(people: Iterable[Person], families: Iterable[Family],
                  hidden: frozenset[str]) -> GraphSnapshot:
    """Drop hidden persons, and families whose present parents are all hidden.

    A family with one visible parent stays; its hidden children are dropped
    from the people list, so the layout truncates its connectors.
    """
    visible_people = [p for p in people if p.handle not in hidden]
    visible_families = [
        f for f in families
        if not all(p in hidden for p in f.parents)
    ]
    return GraphSnapshot(people=visible_people, families=visible_families)


def toggle_collapse(index: GraphIndex, collapsed: frozenset[str], handle: str) -> frozenset[str]:
    """
    Collapse a branch, or expand it by one level.

    Expanding re-collapses each direct child that has children of their own,
    so large subtrees are revealed progressively.
    """
    if handle not in collapsed:
        return collapsed | {handle}

    result = set(collapsed)
    result.discard(handle)
    for fam in index.own_families(handle):
        for child in fam.children:
            if child in index.person_map and index.has_children(child):
                result.add(child)
    return frozenset(result)


def expand_all() -> frozenset[str]:
    return frozenset()


def collapse_all(index: GraphIndex) -> frozenset[str]:
    """Collapse every parent of a family with at least one child."""
    parents: set[str] = set()
    for fam in index.families:
        if fam.children:
            parents.update(fam.parents)
    return frozenset(parents)


def branch_summary(index: GraphIndex, handle: str,
                   generations: Optional[dict[str, int]] = None) -> BranchSummary:
    """Tally the persons a collapsed branch hides.

    Generations come from the generation map when given, otherwise from the
    stored `generation` attribute of each person.
    """
    generations = generations or {}
    total = living = deceased = patrilineal = 0
    min_gen: Optional[int] = None
    max_gen: Optional[int] = None
    for below in _walk_below(index, handle):
        person = index.person_map.get(below)
        if not person:
            continue
        total += 1
        if person.is_living:
            living += 1
        else:
            deceased += 1
        if person.is_patrilineal:
            patrilineal += 1
        gen = generations.get(below, person.generation)
        min_gen = gen if min_gen is None else min(min_gen, gen)
        max_gen = gen if max_gen is None else max(max_gen, gen)

    return BranchSummary(
        parent_handle=handle,
        total_descendants=total,
        generation_range=(0, 0) if min_gen is None else (min_gen, max_gen),
        living_count=living,
        deceased_count=deceased,
        patrilineal_count=patrilineal,
    )


def branch_summaries(index: GraphIndex, collapsed: Iterable[str],
                     generations: Optional[dict[str, int]] = None) -> dict[str, BranchSummary]:
    return {h: branch_summary(index, h, generations) for h in sorted(collapsed)}


def auto_collapse_panoramic(index: GraphIndex, generations: dict[str, int],
                            threshold: int) -> frozenset[str]:
    """Collapse the first parent of each family at absolute generation >= threshold."""
    result: set[str] = set()
    for fam in index.families:
        if not fam.children:
            continue
        parent = fam.father_handle or fam.mother_handle
        if not parent:
            continue
        gen = generations.get(parent)
        if gen is not None and gen >= threshold:
            result.add(parent)
    return frozenset(result)


def auto_collapse_descendant(index: GraphIndex, focus: str, threshold: int) -> frozenset[str]:
    """Collapse parents at relative depth >= threshold below the focus person."""
    result: set[str] = set()
    depth = {focus: 0}
    queue = deque([focus])
    while queue:
        handle = queue.popleft()
        if handle not in index.person_map:
            continue
        for fam in index.own_families(handle):
            if not fam.children:
                continue
            if depth[handle] >= threshold:
                result.add(handle)
                continue
            for child in fam.children:
                if child not in depth:
                    depth[child] = depth[handle] + 1
                    queue.append(child)
    return frozenset(result)
