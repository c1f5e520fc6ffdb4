"""Pytest fixtures shared by the pedigree tests."""

import pytest

from src.pedigree.models import Family, GraphSnapshot, Person
from src.store.sample_data import sample_snapshot


def build_snapshot(people, families):
    """
    Build a snapshot from compact specs.

    people: list of handles, or (handle, overrides dict) pairs
    families: list of (handle, father, mother, children)

    `families` / `parent_families` back-references are filled in.
    """
    own: dict[str, list[str]] = {}
    parent_of: dict[str, list[str]] = {}
    for handle, father, mother, children in families:
        for parent in (father, mother):
            if parent:
                own.setdefault(parent, []).append(handle)
        for child in children:
            parent_of.setdefault(child, []).append(handle)

    result = []
    for spec in people:
        handle, overrides = (spec, {}) if isinstance(spec, str) else spec
        fields = {
            "handle": handle,
            "display_name": f"Person {handle}",
            "is_patrilineal": True,
            "families": own.get(handle, []),
            "parent_families": parent_of.get(handle, []),
        }
        fields.update(overrides)
        result.append(Person(**fields))
    return GraphSnapshot(
        people=result,
        families=[Family(handle=h, father_handle=f, mother_handle=m, children=list(c))
                  for h, f, m, c in families],
    )


@pytest.fixture
def build():
    """Snapshot builder."""
    return build_snapshot


@pytest.fixture
def chain():
    """Three-generation chain A -> B -> C, single-parent families."""
    return build_snapshot(
        ["A", "B", "C"],
        [("F1", "A", None, ["B"]), ("F2", "B", None, ["C"])],
    )


@pytest.fixture
def two_marriages():
    """X married to Y1 (two children) and then Y2 (one child)."""
    return build_snapshot(
        [
            "X",
            ("Y1", {"is_patrilineal": False, "gender": "F"}),
            ("Y2", {"is_patrilineal": False, "gender": "F"}),
            "C1", "C2", "C3",
        ],
        [("F1", "X", "Y1", ["C1", "C2"]), ("F2", "X", "Y2", ["C3"])],
    )


@pytest.fixture
def sample():
    """Bundled five-generation sample clan."""
    return sample_snapshot()
