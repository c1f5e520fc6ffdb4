"""Breadth-first generation assignment over the pedigree forest."""

import logging
from collections import deque
from typing import Iterable, Optional

from src.config import UnreachablePolicy, settings
from src.pedigree.index import GraphIndex
from src.pedigree.models import Family, Person

logger = logging.getLogger(__name__)


def find_roots(index: GraphIndex) -> list[Person]:
    """Patrilineal persons never listed as anyone's child."""
    return [
        p for p in index.people
        if p.is_patrilineal and p.handle not in index.child_handles
    ]


def is_married_in(index: GraphIndex, handle: str) -> bool:
    """Whether some partner of this person is listed as a child somewhere."""
    for fam in index.own_families(handle):
        for parent in fam.parents:
            if parent != handle and parent in index.child_handles:
                return True
    return False


def _level(index: GraphIndex, seeds: Iterable[str], gens: dict[str, int]) -> None:
    """BFS from seeds at depth 0, writing first-assigned depths into gens."""
    queue = deque((handle, 0) for handle in seeds)
    while queue:
        handle, gen = queue.popleft()
        if handle in gens:
            continue
        gens[handle] = gen
        if handle not in index.person_map:
            continue
        for fam in index.own_families(handle):
            # Spouses join the partner's generation
            for parent in fam.parents:
                if parent not in gens:
                    gens[parent] = gen
            for child in fam.children:
                if child not in gens:
                    queue.append((child, gen + 1))


def compute_generations(people: Iterable[Person], families: Iterable[Family],
                        index: Optional[GraphIndex] = None) -> dict[str, int]:
    """
    Map handle -> generation for every person reachable from a root.

    Unreachable persons are left out of the mapping.
    """
    index = index or GraphIndex(people, families)
    gens: dict[str, int] = {}
    _level(index, (r.handle for r in find_roots(index)), gens)
    # Dangling child handles may have been assigned; keep only real persons
    return {h: g for h, g in gens.items() if h in index.person_map}


def resolve_generations(
    people: Iterable[Person],
    families: Iterable[Family],
    policy: Optional[UnreachablePolicy] = None,
    index: Optional[GraphIndex] = None,
) -> tuple[dict[str, int], set[str]]:
    """
    Generations for every person, plus the handles that were unreachable.

    With the ROOT policy unreachable persons sit on generation 0. With the
    FOREST policy each disconnected fragment is leveled from its own roots.
    """
    index = index or GraphIndex(people, families)
    policy = policy or settings.layout.unreachable_policy
    gens = compute_generations(index.people, index.families, index=index)
    unreachable = {p.handle for p in index.people if p.handle not in gens}
    if not unreachable:
        return gens, unreachable

    logger.warning("%d person(s) unreachable from any root; policy=%s",
                   len(unreachable), policy.value)

    if policy == UnreachablePolicy.FOREST:
        extra: dict[str, int] = dict(gens)
        candidates = [
            p.handle for p in index.people
            if p.handle in unreachable and p.handle not in index.child_handles
        ]
        # Married-in partners are leveled through their spouse when possible
        _level(index, [h for h in candidates if not is_married_in(index, h)], extra)
        _level(index, [h for h in candidates if h not in extra], extra)
        for handle in unreachable:
            if handle in extra:
                gens[handle] = extra[handle]

    for handle in unreachable:
        gens.setdefault(handle, 0)
    return gens, unreachable
