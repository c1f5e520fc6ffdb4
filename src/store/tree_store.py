"""
SQLite store for the pedigree graph.

This is a DATA LAYER component:
- Persists people, families and person profiles
- Applies the same child/living/field edits as the in-memory editor
- NO layout or view logic

Tables:
- people: graph fields of each person, list fields as JSON
- families: unions with their ordered children
- profiles: optional contact and biography fields, keyed by person handle
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

from src.config import settings
from src.pedigree.edits import split_fields
from src.pedigree.models import Family, Gender, GraphSnapshot, Person, PersonProfile

logger = logging.getLogger(__name__)

# Legacy numeric gender codes used by the people table
_GENDER_CODES = {Gender.MALE: 1, Gender.FEMALE: 2, Gender.UNKNOWN: 0}

_PEOPLE_COLUMNS = {
    "display_name", "gender", "birth_year", "death_year", "is_living", "is_patrilineal",
}
_PROFILE_COLUMNS = [
    "phone", "email", "current_address", "hometown", "occupation", "education", "notes", "biography",
]
_PROFILE_ALIASES = {info.alias: name for name, info in PersonProfile.model_fields.items() if info.alias}


class TreeStore:
    """Storage for the people/families snapshot."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or settings.database.tree_db_path
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize people, families and profiles tables."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS people (
                    handle TEXT PRIMARY KEY,
                    display_name TEXT NOT NULL DEFAULT '',
                    gender INTEGER DEFAULT 0,
                    birth_year INTEGER,
                    death_year INTEGER,
                    generation INTEGER DEFAULT 0,
                    is_living INTEGER DEFAULT 1,
                    is_patrilineal INTEGER DEFAULT 0,
                    families TEXT DEFAULT '[]',
                    parent_families TEXT DEFAULT '[]',
                    profile_ref TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS families (
                    handle TEXT PRIMARY KEY,
                    father_handle TEXT,
                    mother_handle TEXT,
                    children TEXT DEFAULT '[]'
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    handle TEXT PRIMARY KEY,
                    phone TEXT,
                    email TEXT,
                    current_address TEXT,
                    hometown TEXT,
                    occupation TEXT,
                    education TEXT,
                    notes TEXT,
                    biography TEXT,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_people_name ON people(display_name)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_family_father ON families(father_handle)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_family_mother ON families(mother_handle)")

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def is_empty(self) -> bool:
        with sqlite3.connect(self.db_path) as conn:
            return conn.execute("SELECT COUNT(*) FROM people").fetchone()[0] == 0

    def load_snapshot(self) -> GraphSnapshot:
        """Read every person and family, in insertion order."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            people = conn.execute("SELECT * FROM people ORDER BY rowid").fetchall()
            families = conn.execute("SELECT * FROM families ORDER BY rowid").fetchall()
        return GraphSnapshot(
            people=[self._row_to_person(row) for row in people],
            families=[self._row_to_family(row) for row in families],
        )

    def save_snapshot(self, snapshot: GraphSnapshot,
                      profiles: Optional[list[PersonProfile]] = None) -> None:
        """Replace the stored graph with a snapshot."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM people")
            conn.execute("DELETE FROM families")
            conn.executemany("""
                INSERT INTO people (handle, display_name, gender, birth_year, death_year,
                                    generation, is_living, is_patrilineal, families,
                                    parent_families, profile_ref)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                (
                    p.handle,
                    p.display_name,
                    _GENDER_CODES[p.gender],
                    p.birth_year,
                    p.death_year,
                    p.generation,
                    int(p.is_living),
                    int(p.is_patrilineal),
                    json.dumps(p.families),
                    json.dumps(p.parent_families),
                    p.profile_ref,
                )
                for p in snapshot.people
            ])
            conn.executemany("""
                INSERT INTO families (handle, father_handle, mother_handle, children)
                VALUES (?, ?, ?, ?)
            """, [
                (f.handle, f.father_handle, f.mother_handle, json.dumps(f.children))
                for f in snapshot.families
            ])
        for profile in profiles or []:
            self.upsert_profile(profile)
        logger.info("Saved %d people and %d families to %s",
                    len(snapshot.people), len(snapshot.families), self.db_path)

    def get_person(self, handle: str) -> Optional[Person]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute("SELECT * FROM people WHERE handle = ?", (handle,)).fetchone()
            return self._row_to_person(row) if row else None

    def get_family(self, handle: str) -> Optional[Family]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute("SELECT * FROM families WHERE handle = ?", (handle,)).fetchone()
            return self._row_to_family(row) if row else None

    # =========================================================================
    # EDITS
    # =========================================================================

    def update_family_children(self, family_handle: str, children: list[str]) -> bool:
        """Store a new child order for a family."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE families SET children = ? WHERE handle = ?",
                (json.dumps(children), family_handle),
            )
            return cursor.rowcount > 0

    def move_child_to_family(self, child_handle: str, from_family: str, to_family: str) -> bool:
        """Move a child between families and update its parent families."""
        with sqlite3.connect(self.db_path) as conn:
            source = self._children(conn, from_family)
            target = self._children(conn, to_family)
            if source is None or target is None:
                return False
            source = [c for c in source if c != child_handle]
            target = [c for c in target if c != child_handle] + [child_handle]
            conn.execute("UPDATE families SET children = ? WHERE handle = ?",
                         (json.dumps(source), from_family))
            conn.execute("UPDATE families SET children = ? WHERE handle = ?",
                         (json.dumps(target), to_family))

            parents = self._parent_families(conn, child_handle)
            if parents is not None:
                parents = [pf for pf in parents if pf not in (from_family, to_family)] + [to_family]
                conn.execute("UPDATE people SET parent_families = ? WHERE handle = ?",
                             (json.dumps(parents), child_handle))
            return True

    def remove_child_from_family(self, child_handle: str, family_handle: str) -> bool:
        """Detach a child from a family."""
        with sqlite3.connect(self.db_path) as conn:
            children = self._children(conn, family_handle)
            if children is None:
                return False
            conn.execute("UPDATE families SET children = ? WHERE handle = ?",
                         (json.dumps([c for c in children if c != child_handle]), family_handle))

            parents = self._parent_families(conn, child_handle)
            if parents is not None:
                conn.execute("UPDATE people SET parent_families = ? WHERE handle = ?",
                             (json.dumps([pf for pf in parents if pf != family_handle]), child_handle))
            return True

    def update_person_living(self, handle: str, is_living: bool) -> bool:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE people SET is_living = ? WHERE handle = ?", (int(is_living), handle)
            )
            return cursor.rowcount > 0

    def update_person(self, handle: str, fields: dict[str, Any]) -> bool:
        """
        Update graph fields and profile fields of a person.

        Graph fields go to the people table, known profile fields to the
        profiles table. Unknown keys are ignored.
        """
        graph_fields, extra = split_fields(fields)
        profile_fields = {}
        for key, value in extra.items():
            name = _PROFILE_ALIASES.get(key, key)
            if name in _PROFILE_COLUMNS:
                profile_fields[name] = value

        if self.get_person(handle) is None:
            return False

        updates = {k: v for k, v in graph_fields.items() if k in _PEOPLE_COLUMNS}
        if "gender" in updates:
            gender = Person(handle=handle, gender=updates["gender"]).gender
            updates["gender"] = _GENDER_CODES[gender]
        for flag in ("is_living", "is_patrilineal"):
            if flag in updates:
                updates[flag] = int(bool(updates[flag]))

        if updates:
            set_clause = ", ".join(f"{k} = ?" for k in updates.keys())
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(f"UPDATE people SET {set_clause} WHERE handle = ?",
                             list(updates.values()) + [handle])
        if profile_fields:
            current = self.get_profile(handle) or PersonProfile(handle=handle)
            self.upsert_profile(current.model_copy(update=profile_fields))
        return True

    # =========================================================================
    # PROFILES
    # =========================================================================

    def get_profile(self, handle: str) -> Optional[PersonProfile]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute("SELECT * FROM profiles WHERE handle = ?", (handle,)).fetchone()
            if not row:
                return None
            return PersonProfile(handle=row["handle"], **{c: row[c] for c in _PROFILE_COLUMNS})

    def upsert_profile(self, profile: PersonProfile) -> None:
        columns = ", ".join(_PROFILE_COLUMNS)
        placeholders = ", ".join("?" for _ in _PROFILE_COLUMNS)
        assignments = ", ".join(f"{c} = excluded.{c}" for c in _PROFILE_COLUMNS)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(f"""
                INSERT INTO profiles (handle, {columns}) VALUES (?, {placeholders})
                ON CONFLICT(handle) DO UPDATE SET {assignments}, updated_at = CURRENT_TIMESTAMP
            """, [profile.handle] + [getattr(profile, c) for c in _PROFILE_COLUMNS])

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _children(conn: sqlite3.Connection, family_handle: str) -> Optional[list[str]]:
        row = conn.execute("SELECT children FROM families WHERE handle = ?", (family_handle,)).fetchone()
        return json.loads(row[0] or "[]") if row else None

    @staticmethod
    def _parent_families(conn: sqlite3.Connection, handle: str) -> Optional[list[str]]:
        row = conn.execute("SELECT parent_families FROM people WHERE handle = ?", (handle,)).fetchone()
        return json.loads(row[0] or "[]") if row else None

    def _row_to_person(self, row: sqlite3.Row) -> Person:
        return Person(
            handle=row["handle"],
            display_name=row["display_name"] or "",
            gender=row["gender"],
            birth_year=row["birth_year"],
            death_year=row["death_year"],
            generation=row["generation"] or 0,
            is_living=bool(row["is_living"]),
            is_patrilineal=bool(row["is_patrilineal"]),
            families=json.loads(row["families"] or "[]"),
            parent_families=json.loads(row["parent_families"] or "[]"),
            profile_ref=row["profile_ref"],
        )

    def _row_to_family(self, row: sqlite3.Row) -> Family:
        return Family(
            handle=row["handle"],
            father_handle=row["father_handle"],
            mother_handle=row["mother_handle"],
            children=json.loads(row["children"] or "[]"),
        )
