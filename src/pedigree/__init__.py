"""Pedigree package - layout and interactive viewing engine for clan trees."""

from src.pedigree.models import (
    BranchSummary,
    Connection,
    Family,
    Gender,
    GraphSnapshot,
    LayoutResult,
    Person,
    PersonProfile,
    PositionedCouple,
    PositionedNode,
)
from src.pedigree.index import GraphIndex
from src.pedigree.generations import compute_generations, resolve_generations
from src.pedigree.layout import compute_layout
from src.pedigree.filters import filter_ancestors, filter_descendants
from src.pedigree.viewport import Transform, Viewport, ZoomLevel
from src.pedigree.view_state import RenderFrame, TreeViewState, ViewMode
from src.pedigree.edits import EditOutcome, TreeEditor

__all__ = [
    "BranchSummary",
    "Connection",
    "EditOutcome",
    "Family",
    "Gender",
    "GraphIndex",
    "GraphSnapshot",
    "LayoutResult",
    "Person",
    "PersonProfile",
    "PositionedCouple",
    "PositionedNode",
    "RenderFrame",
    "Transform",
    "TreeEditor",
    "TreeViewState",
    "ViewMode",
    "Viewport",
    "ZoomLevel",
    "compute_generations",
    "compute_layout",
    "filter_ancestors",
    "filter_descendants",
    "resolve_generations",
]
