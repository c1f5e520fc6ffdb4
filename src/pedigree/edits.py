"""
Copy-on-write edits of a graph snapshot, and the editor that persists them.

The edit functions never mutate their input: they return a new snapshot that
shares every untouched record with the old one. `TreeEditor` applies an edit
locally first (optimistic), then awaits the durable write.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from src.config import EditFailurePolicy, settings
from src.pedigree.models import Family, GraphSnapshot, Person

logger = logging.getLogger(__name__)

# Person fields the editor may change locally
EDITABLE_FIELDS = {"display_name", "gender", "birth_year", "death_year", "is_living", "is_patrilineal"}
# Fields owned by the graph structure, only changed through child edits
STRUCTURAL_FIELDS = {"handle", "families", "parent_families", "generation", "profile_ref"}

_ALIASES = {info.alias: name for name, info in Person.model_fields.items() if info.alias}


def _replace_family(snapshot: GraphSnapshot, handle: str, fn: Callable[[Family], Family]) -> list[Family]:
    return [fn(f) if f.handle == handle else f for f in snapshot.families]


def _replace_person(people: list[Person], handle: str, fn: Callable[[Person], Person]) -> list[Person]:
    return [fn(p) if p.handle == handle else p for p in people]


def reorder_children(snapshot: GraphSnapshot, family_handle: str, new_order: list[str]) -> GraphSnapshot:
    """Set a new display order for a family's children."""
    family = next((f for f in snapshot.families if f.handle == family_handle), None)
    if family is None:
        return snapshot
    if sorted(new_order) != sorted(family.children):
        raise ValueError(f"new order for {family_handle} is not a permutation of its children")
    families = _replace_family(
        snapshot, family_handle, lambda f: f.model_copy(update={"children": list(new_order)})
    )
    return snapshot.model_copy(update={"families": families})


def move_child(snapshot: GraphSnapshot, child_handle: str, from_family: str, to_family: str) -> GraphSnapshot:
    """Re-parent a child: drop it from one family and append it to another."""
    if from_family == to_family:
        return snapshot

    def update(f: Family) -> Family:
        if f.handle == from_family:
            return f.model_copy(update={"children": [c for c in f.children if c != child_handle]})
        if f.handle == to_family:
            kept = [c for c in f.children if c != child_handle]
            return f.model_copy(update={"children": kept + [child_handle]})
        return f

    def reparent(p: Person) -> Person:
        parents = [pf for pf in p.parent_families if pf not in (from_family, to_family)]
        return p.model_copy(update={"parent_families": parents + [to_family]})

    families = [update(f) for f in snapshot.families]
    people = _replace_person(snapshot.people, child_handle, reparent)
    return GraphSnapshot(people=people, families=families)


def remove_child(snapshot: GraphSnapshot, child_handle: str, family_handle: str) -> GraphSnapshot:
    """Detach a child from a family."""
    families = _replace_family(
        snapshot, family_handle,
        lambda f: f.model_copy(update={"children": [c for c in f.children if c != child_handle]}),
    )
    people = _replace_person(
        snapshot.people, child_handle,
        lambda p: p.model_copy(update={"parent_families": [pf for pf in p.parent_families if pf != family_handle]}),
    )
    return GraphSnapshot(people=people, families=families)


def toggle_living(snapshot: GraphSnapshot, handle: str, is_living: bool) -> GraphSnapshot:
    people = _replace_person(snapshot.people, handle, lambda p: p.model_copy(update={"is_living": is_living}))
    return snapshot.model_copy(update={"people": people})


def split_fields(fields: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split an update into graph fields and profile-only fields.

    Accepts snake_case or camelCase keys. Structural fields are rejected.
    """
    graph_fields: dict[str, Any] = {}
    profile_fields: dict[str, Any] = {}
    for key, value in fields.items():
        name = _ALIASES.get(key, key)
        if name in STRUCTURAL_FIELDS:
            raise ValueError(f"field '{key}' cannot be edited directly")
        if name in EDITABLE_FIELDS:
            graph_fields[name] = value
        else:
            profile_fields[key] = value
    return graph_fields, profile_fields


def update_person_fields(snapshot: GraphSnapshot, handle: str, fields: dict[str, Any]) -> GraphSnapshot:
    """Apply editable graph fields to a person; profile fields are left to storage."""
    graph_fields, _ = split_fields(fields)
    if not graph_fields:
        return snapshot

    def update(p: Person) -> Person:
        data = p.model_dump()
        data.update(graph_fields)
        return Person.model_validate(data)

    people = _replace_person(snapshot.people, handle, update)
    return snapshot.model_copy(update={"people": people})


@dataclass
class EditOutcome:
    """Result of one edit: the local snapshot plus the durable write status."""
    success: bool
    snapshot: GraphSnapshot
    error: Optional[str] = None
    rolled_back: bool = False


class TreeWriter(Protocol):
    """Durable storage for edits."""

    def update_family_children(self, family_handle: str, children: list[str]) -> bool: ...
    def move_child_to_family(self, child_handle: str, from_family: str, to_family: str) -> bool: ...
    def remove_child_from_family(self, child_handle: str, family_handle: str) -> bool: ...
    def update_person_living(self, handle: str, is_living: bool) -> bool: ...
    def update_person(self, handle: str, fields: dict[str, Any]) -> bool: ...
    def load_snapshot(self) -> GraphSnapshot: ...


class TreeEditor:
    """
    Optimistic editor over a snapshot.

    Each edit replaces `snapshot` immediately and notifies `on_change`, then
    forwards the same change to the writer on a worker thread. A failed write
    is reported in the outcome; with the ROLLBACK policy the previous
    snapshot is restored as well.

    Edits run one at a time: the next edit starts from the snapshot the
    previous one settled on, so a rollback never discards a later edit.
    """

    def __init__(
        self,
        snapshot: GraphSnapshot,
        writer: TreeWriter,
        policy: Optional[EditFailurePolicy] = None,
        on_change: Optional[Callable[[GraphSnapshot], None]] = None,
    ):
        self.snapshot = snapshot
        self.writer = writer
        self.policy = policy or settings.edit.failure_policy
        self.on_change = on_change
        self._lock = asyncio.Lock()

    def _set(self, snapshot: GraphSnapshot) -> None:
        self.snapshot = snapshot
        if self.on_change:
            self.on_change(snapshot)

    async def _apply(self, edit: Callable[[GraphSnapshot], GraphSnapshot],
                     write: Callable[..., bool], *args) -> EditOutcome:
        async with self._lock:
            previous = self.snapshot
            self._set(edit(previous))

            loop = asyncio.get_running_loop()
            error = None
            try:
                ok = await loop.run_in_executor(None, write, *args)
                if not ok:
                    error = f"{write.__name__} reported failure"
            except Exception as e:
                error = f"{write.__name__} failed: {e}"

            if error is None:
                return EditOutcome(success=True, snapshot=self.snapshot)

            logger.error("Durable write failed: %s", error)
            if self.policy == EditFailurePolicy.ROLLBACK:
                self._set(previous)
                return EditOutcome(success=False, snapshot=previous, error=error, rolled_back=True)
            return EditOutcome(success=False, snapshot=self.snapshot, error=error)

    async def reorder_children(self, family_handle: str, new_order: list[str]) -> EditOutcome:
        return await self._apply(
            lambda s: reorder_children(s, family_handle, new_order),
            self.writer.update_family_children, family_handle, list(new_order),
        )

    async def move_child(self, child_handle: str, from_family: str, to_family: str) -> EditOutcome:
        return await self._apply(
            lambda s: move_child(s, child_handle, from_family, to_family),
            self.writer.move_child_to_family, child_handle, from_family, to_family,
        )

    async def remove_child(self, child_handle: str, family_handle: str) -> EditOutcome:
        return await self._apply(
            lambda s: remove_child(s, child_handle, family_handle),
            self.writer.remove_child_from_family, child_handle, family_handle,
        )

    async def toggle_living(self, handle: str, is_living: bool) -> EditOutcome:
        return await self._apply(
            lambda s: toggle_living(s, handle, is_living),
            self.writer.update_person_living, handle, is_living,
        )

    async def update_person_fields(self, handle: str, fields: dict[str, Any]) -> EditOutcome:
        return await self._apply(
            lambda s: update_person_fields(s, handle, fields),
            self.writer.update_person, handle, dict(fields),
        )

    async def reset(self) -> GraphSnapshot:
        """Discard local edits and reload from storage."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            snapshot = await loop.run_in_executor(None, self.writer.load_snapshot)
            self._set(snapshot)
            return snapshot
