"""Lookup maps shared by every traversal over a snapshot."""

from typing import Iterable, Optional

from src.pedigree.models import Family, Person


class GraphIndex:
    """
    Handle lookups for one people/families snapshot.

    Built once per snapshot; traversals read it and never mutate it.
    Dangling references are tolerated: lookups simply return None.
    """

    def __init__(self, people: Iterable[Person], families: Iterable[Family]):
        self.people: list[Person] = list(people)
        self.families: list[Family] = list(families)
        self.person_map: dict[str, Person] = {p.handle: p for p in self.people}
        self.family_map: dict[str, Family] = {f.handle: f for f in self.families}

        # Every handle that appears as a child of some family
        self.child_handles: set[str] = set()
        # Families keyed by each present parent, in declaration order
        self.families_by_parent: dict[str, list[Family]] = {}
        for fam in self.families:
            self.child_handles.update(fam.children)
            for parent in fam.parents:
                self.families_by_parent.setdefault(parent, []).append(fam)

    def person(self, handle: Optional[str]) -> Optional[Person]:
        if not handle:
            return None
        return self.person_map.get(handle)

    def family(self, handle: Optional[str]) -> Optional[Family]:
        if not handle:
            return None
        return self.family_map.get(handle)

    def own_families(self, handle: str) -> list[Family]:
        """Families the person parents: their `families` list first, then any
        family naming them as a parent that the list missed."""
        person = self.person_map.get(handle)
        result: list[Family] = []
        seen: set[str] = set()
        if person:
            for fid in person.families:
                fam = self.family_map.get(fid)
                if fam and fam.handle not in seen:
                    seen.add(fam.handle)
                    result.append(fam)
        for fam in self.families_by_parent.get(handle, []):
            if fam.handle not in seen:
                seen.add(fam.handle)
                result.append(fam)
        return result

    def parent_families_of(self, handle: str) -> list[Family]:
        """Resolvable families in which the person is a child."""
        person = self.person_map.get(handle)
        if not person:
            return []
        return [self.family_map[fid] for fid in person.parent_families if fid in self.family_map]

    def has_children(self, handle: str) -> bool:
        """Whether the person parents at least one family with children."""
        return any(fam.children for fam in self.own_families(handle))

    def dangling_references(self) -> list[tuple[str, str]]:
        """(owner handle, missing handle) pairs, for callers that log data quality."""
        missing: list[tuple[str, str]] = []
        for person in self.people:
            for fid in list(person.families) + list(person.parent_families):
                if fid not in self.family_map:
                    missing.append((person.handle, fid))
        for fam in self.families:
            for ref in fam.parents + list(fam.children):
                if ref not in self.person_map:
                    missing.append((fam.handle, ref))
        return missing
