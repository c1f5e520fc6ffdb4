"""Ancestor-only and descendant-only projections of the graph."""

from collections import deque
from typing import Iterable

from src.pedigree.index import GraphIndex
from src.pedigree.models import Family, GraphSnapshot, Person


def _project(index: GraphIndex, keep_people: set[str], keep_families: set[str]) -> GraphSnapshot:
    """Snapshot restricted to the kept handles, in original order."""
    people = [p for p in index.people if p.handle in keep_people]
    families = []
    for fam in index.families:
        if fam.handle not in keep_families:
            continue
        children = [c for c in fam.children if c in keep_people]
        if children != fam.children:
            fam = fam.model_copy(update={"children": children})
        families.append(fam)
    return GraphSnapshot(people=people, families=families)


def filter_descendants(focus: str, people: Iterable[Person], families: Iterable[Family]) -> GraphSnapshot:
    """
    The focus person, every descendant, and the spouse of each of them.

    Spouses are included but not traversed unless they are also descendants.
    """
    index = GraphIndex(people, families)
    if focus not in index.person_map:
        return GraphSnapshot()

    keep: set[str] = {focus}
    keep_families: set[str] = set()
    visited: set[str] = {focus}
    queue = deque([focus])
    while queue:
        handle = queue.popleft()
        for fam in index.own_families(handle):
            if fam.handle in keep_families:
                continue
            keep_families.add(fam.handle)
            for parent in fam.parents:
                if parent in index.person_map:
                    keep.add(parent)
            for child in fam.children:
                if child in index.person_map and child not in visited:
                    visited.add(child)
                    keep.add(child)
                    queue.append(child)

    return _project(index, keep, keep_families)


def filter_ancestors(focus: str, people: Iterable[Person], families: Iterable[Family]) -> GraphSnapshot:
    """
    The focus person and every ancestor reachable through parent families.

    Both parents of each family are kept; their own parent families are
    walked in turn, deduplicated by handle.
    """
    index = GraphIndex(people, families)
    if focus not in index.person_map:
        return GraphSnapshot()

    keep: set[str] = {focus}
    keep_families: set[str] = set()
    visited: set[str] = {focus}
    queue = deque([focus])
    while queue:
        handle = queue.popleft()
        for fam in index.parent_families_of(handle):
            keep_families.add(fam.handle)
            for parent in fam.parents:
                if parent in index.person_map and parent not in visited:
                    visited.add(parent)
                    keep.add(parent)
                    queue.append(parent)

    return _project(index, keep, keep_families)
