"""Data models for the pedigree engine.

Graph records (Person, Family, GraphSnapshot) are pydantic models so they can
be parsed straight from store rows or API payloads. Layout records are frozen
dataclasses produced by the layout engine and never mutated by consumers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Gender(str, Enum):
    """Gender of a person."""
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


_GENDER_CODES = {
    1: Gender.MALE,
    2: Gender.FEMALE,
    "m": Gender.MALE,
    "f": Gender.FEMALE,
    "male": Gender.MALE,
    "female": Gender.FEMALE,
}


class GraphModel(BaseModel):
    """Base for graph records: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Person(GraphModel):
    """A node in the pedigree."""

    handle: str
    display_name: str = ""
    gender: Gender = Gender.UNKNOWN
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    is_living: bool = True
    generation: int = 0
    is_patrilineal: bool = False
    families: list[str] = Field(default_factory=list)
    parent_families: list[str] = Field(default_factory=list)
    profile_ref: Optional[str] = None

    @field_validator("gender", mode="before")
    @classmethod
    def _coerce_gender(cls, value):
        if isinstance(value, Gender):
            return value
        if isinstance(value, str):
            value = value.strip().lower()
        return _GENDER_CODES.get(value, Gender.UNKNOWN)

    @field_validator("families", "parent_families", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []


class PersonProfile(GraphModel):
    """Profile fields resolved by the renderer, never by the layout."""

    handle: str
    phone: Optional[str] = None
    email: Optional[str] = None
    current_address: Optional[str] = None
    hometown: Optional[str] = None
    occupation: Optional[str] = None
    education: Optional[str] = None
    notes: Optional[str] = None
    biography: Optional[str] = None


class Family(GraphModel):
    """A union producing zero or more children."""

    handle: str
    father_handle: Optional[str] = None
    mother_handle: Optional[str] = None
    children: list[str] = Field(default_factory=list)

    @field_validator("children", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []

    @property
    def parents(self) -> list[str]:
        """Handles of the parents that are present, father first."""
        return [h for h in (self.father_handle, self.mother_handle) if h]


class GraphSnapshot(GraphModel):
    """Immutable people/families snapshot handed to the engine."""

    people: list[Person] = Field(default_factory=list)
    families: list[Family] = Field(default_factory=list)


@dataclass(frozen=True)
class PositionedNode:
    """A person placed on the canvas."""
    node: Person
    x: float
    y: float
    generation: int
    detached: bool = False  # unreachable from every BFS root

    @property
    def handle(self) -> str:
        return self.node.handle


@dataclass(frozen=True)
class PositionedCouple:
    """Midpoint marker of a union."""
    family_handle: str
    father_pos: Optional[PositionedNode]
    mother_pos: Optional[PositionedNode]
    mid_x: float
    y: float


@dataclass(frozen=True)
class Connection:
    """A straight segment between two points."""
    type: str  # "parent" or "couple"
    from_x: float
    from_y: float
    to_x: float
    to_y: float


@dataclass(frozen=True)
class LayoutResult:
    """Output of the layout engine, the only artifact handed to renderers."""
    nodes: list[PositionedNode] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)
    couples: list[PositionedCouple] = field(default_factory=list)
    width: float = 0
    height: float = 0

    def node_for(self, handle: str) -> Optional[PositionedNode]:
        """Find the positioned node for a handle."""
        for positioned in self.nodes:
            if positioned.node.handle == handle:
                return positioned
        return None


@dataclass(frozen=True)
class BranchSummary:
    """Aggregate over a collapsed subtree."""
    parent_handle: str
    total_descendants: int
    generation_range: tuple[int, int]
    living_count: int
    deceased_count: int
    patrilineal_count: int
