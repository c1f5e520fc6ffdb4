"""
View-mode state for one tree screen.

`TreeViewState` owns the inputs of the pipeline (snapshot, view mode, focus
person, collapsed set, viewport) and derives everything else:

    snapshot -> scoped graph (full / ancestors / descendants of focus)
             -> hidden set -> visible graph -> layout -> culled frame

Each derived stage is memoized on the identity of its inputs, so a pan or
zoom only re-runs culling, and a collapse toggle never re-filters.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union
from urllib.parse import parse_qs, urlencode

from src.config import ViewSettings, settings
from src.pedigree import collapse
from src.pedigree.filters import filter_ancestors, filter_descendants
from src.pedigree.generations import compute_generations
from src.pedigree.index import GraphIndex
from src.pedigree.layout import compute_layout
from src.pedigree.models import (
    BranchSummary,
    GraphSnapshot,
    LayoutResult,
    Person,
    PositionedCouple,
    PositionedNode,
)
from src.pedigree.stats import TreeStats, compute_tree_stats, search_people
from src.pedigree.viewport import (
    BundleMarker,
    PathSpec,
    Transform,
    Viewport,
    ZoomLevel,
    bundle_markers,
    cull_layout,
)

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    FULL = "full"
    ANCESTOR = "ancestor"
    DESCENDANT = "descendant"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ViewMode":
        """Unknown or missing values fall back to FULL."""
        try:
            return cls(value)
        except ValueError:
            return cls.FULL


@dataclass(frozen=True)
class RenderFrame:
    """Everything a renderer needs to draw one frame."""
    visible_nodes: list[PositionedNode]
    visible_connections: PathSpec
    visible_couples: list[PositionedCouple]
    branch_summaries: dict[str, BranchSummary]
    zoom_level: ZoomLevel
    transform: Transform
    bundles: list[BundleMarker] = field(default_factory=list)
    show_collapse_controls: bool = True
    collapsed: frozenset[str] = frozenset()
    # Visible cards that parent at least one child, so can be collapsed
    collapsible: frozenset[str] = frozenset()
    width: float = 0
    height: float = 0


_VALUE_TYPES = (str, int, float, bool, frozenset, Transform, type(None))


def _same(a: Any, b: Any) -> bool:
    if a is b:
        return True
    return isinstance(a, _VALUE_TYPES) and type(a) is type(b) and a == b


class _Stage:
    """Single-entry memo: recompute only when an input changes.

    Graph inputs are compared by identity; immutable scalars by value.
    """

    def __init__(self, fn: Callable[..., Any]):
        self.fn = fn
        self._args: Optional[tuple] = None
        self._value: Any = None

    def __call__(self, *args):
        if self._args is not None and len(args) == len(self._args) \
                and all(_same(a, b) for a, b in zip(args, self._args)):
            return self._value
        self._value = self.fn(*args)
        self._args = args
        return self._value


def _build_index(snapshot: GraphSnapshot) -> GraphIndex:
    index = GraphIndex(snapshot.people, snapshot.families)
    dangling = index.dangling_references()
    if dangling:
        logger.debug("Skipping %d dangling reference(s), e.g. %s -> %s",
                     len(dangling), dangling[0][0], dangling[0][1])
    return index


def _scope(snapshot: GraphSnapshot, mode: ViewMode, focus: Optional[str]) -> GraphSnapshot:
    if mode == ViewMode.FULL or focus is None:
        return snapshot
    if mode == ViewMode.ANCESTOR:
        return filter_ancestors(focus, snapshot.people, snapshot.families)
    return filter_descendants(focus, snapshot.people, snapshot.families)


def _visible(scoped: GraphSnapshot, hidden: frozenset[str]) -> GraphSnapshot:
    if not hidden:
        return scoped
    return collapse.visible_graph(scoped.people, scoped.families, hidden)


class TreeViewState:
    """
    State machine behind the tree screen.

    `on_link_change` receives the deep-link query dict after every state
    change, so the host can replace the browser URL without a history entry.
    """

    def __init__(
        self,
        snapshot: Optional[GraphSnapshot] = None,
        viewport: Optional[Viewport] = None,
        on_link_change: Optional[Callable[[dict[str, str]], None]] = None,
        config: Optional[ViewSettings] = None,
    ):
        self.config = config or settings.view
        self.snapshot = snapshot or GraphSnapshot()
        self.viewport = viewport or Viewport(config=self.config)
        self.on_link_change = on_link_change
        self.view_mode = ViewMode.FULL
        self.focus_person: Optional[str] = None
        self.collapsed: frozenset[str] = frozenset()

        self._index = _Stage(_build_index)
        self._generations = _Stage(lambda index: compute_generations(index.people, index.families, index=index))
        self._scoped = _Stage(_scope)
        self._scoped_index = _Stage(_build_index)
        self._hidden = _Stage(collapse.hidden_handles)
        self._visible = _Stage(_visible)
        self._layout = _Stage(lambda visible: compute_layout(visible.people, visible.families))
        self._summaries = _Stage(
            lambda index, collapsed, gens: collapse.branch_summaries(
                index, [h for h in collapsed if h in index.person_map], gens
            )
        )

    # Derived stages

    @property
    def index(self) -> GraphIndex:
        return self._index(self.snapshot)

    @property
    def generations(self) -> dict[str, int]:
        """Absolute generations over the whole snapshot."""
        return self._generations(self.index)

    def scoped_graph(self) -> GraphSnapshot:
        return self._scoped(self.snapshot, self.view_mode, self.focus_person)

    def scoped_index(self) -> GraphIndex:
        return self._scoped_index(self.scoped_graph())

    def hidden(self) -> frozenset[str]:
        return self._hidden(self.scoped_index(), self.collapsed)

    def visible_graph(self) -> GraphSnapshot:
        return self._visible(self.scoped_graph(), self.hidden())

    def layout(self) -> LayoutResult:
        return self._layout(self.visible_graph())

    def branch_summaries(self) -> dict[str, BranchSummary]:
        return self._summaries(self.scoped_index(), self.collapsed, self.generations)

    def render_frame(self) -> RenderFrame:
        layout = self.layout()
        vp = self.viewport
        culled = cull_layout(layout, vp.transform, vp.width, vp.height, self.config)
        level = vp.zoom_level
        summaries = self.branch_summaries()
        mini = level == ZoomLevel.MINI
        scoped_index = self.scoped_index()
        return RenderFrame(
            visible_nodes=culled.nodes,
            visible_connections=culled.connections,
            visible_couples=culled.couples,
            branch_summaries=summaries,
            zoom_level=level,
            transform=vp.transform,
            bundles=bundle_markers(culled.nodes, self.collapsed, summaries, self.config) if mini else [],
            show_collapse_controls=not mini,
            collapsed=self.collapsed,
            collapsible=frozenset(n.handle for n in culled.nodes if scoped_index.has_children(n.handle)),
            width=layout.width,
            height=layout.height,
        )

    def stats(self) -> TreeStats:
        return compute_tree_stats(self.layout().nodes, self.visible_graph().families)

    def search(self, query: str, limit: int = 8) -> list[Person]:
        return search_people(self.snapshot.people, query, limit)

    # Deep links

    def to_query(self) -> dict[str, str]:
        query: dict[str, str] = {}
        if self.view_mode != ViewMode.FULL:
            query["view"] = self.view_mode.value
            if self.focus_person:
                query["person"] = self.focus_person
        return query

    def share_link(self, handle: str, base_url: str = "") -> str:
        """Link that opens the descendant view of a person."""
        query = urlencode({"view": ViewMode.DESCENDANT.value, "person": handle})
        return f"{base_url.rstrip('/')}/tree?{query}"

    def apply_deep_link(self, query: Union[str, Mapping[str, Any], None]) -> None:
        """Initialize mode, focus and collapsed set from a URL query."""
        params = self._parse_query(query)
        self.view_mode = ViewMode.parse(params.get("view"))
        person = params.get("person")
        self.focus_person = person if person and person in self.index.person_map else None
        if person and self.focus_person is None:
            logger.info("Deep link person %s not found, ignoring", person)
        self.collapsed = self._auto_collapse()

    @staticmethod
    def _parse_query(query: Union[str, Mapping[str, Any], None]) -> dict[str, str]:
        if not query:
            return {}
        if isinstance(query, str):
            parsed = parse_qs(query.lstrip("?"))
            return {k: v[0] for k, v in parsed.items() if v}
        result = {}
        for key, value in query.items():
            if isinstance(value, (list, tuple)):
                value = value[0] if value else None
            if value is not None:
                result[key] = str(value)
        return result

    def _auto_collapse(self) -> frozenset[str]:
        threshold = self.config.auto_collapse_generation
        if self.view_mode == ViewMode.FULL:
            return collapse.auto_collapse_panoramic(self.index, self.generations, threshold)
        if self.view_mode == ViewMode.DESCENDANT and self.focus_person:
            return collapse.auto_collapse_descendant(self.index, self.focus_person, threshold)
        return frozenset()

    def _notify(self) -> None:
        if self.on_link_change:
            self.on_link_change(self.to_query())

    # Transitions

    def set_view_mode(self, mode: Union[ViewMode, str]) -> None:
        self.view_mode = ViewMode(mode)
        if self.view_mode != ViewMode.FULL and self.focus_person is None and self.snapshot.people:
            self.focus_person = self.snapshot.people[0].handle
        self.collapsed = self._auto_collapse()
        self._notify()

    def set_focus(self, handle: str) -> bool:
        """Focus a person; unknown handles are ignored."""
        if handle not in self.index.person_map:
            logger.debug("Ignoring focus on unknown person %s", handle)
            return False
        self.focus_person = handle
        if self.view_mode != ViewMode.FULL:
            self.collapsed = self._auto_collapse()
        self._notify()
        return True

    def toggle_collapse(self, handle: str) -> None:
        self.collapsed = collapse.toggle_collapse(self.scoped_index(), self.collapsed, handle)
        self._notify()

    def expand_all(self) -> None:
        self.collapsed = collapse.expand_all()
        self._notify()

    def collapse_all(self) -> None:
        self.collapsed = collapse.collapse_all(self.scoped_index())
        self._notify()

    def set_snapshot(self, snapshot: GraphSnapshot) -> None:
        """Swap in an edited snapshot, keeping mode, focus and collapsed state
        for every handle that still exists."""
        self.snapshot = snapshot
        people = self.index.person_map
        if self.focus_person and self.focus_person not in people:
            self.focus_person = None
        self.collapsed = frozenset(h for h in self.collapsed if h in people)
        self._notify()

    # Viewport shortcuts

    def fit(self) -> Transform:
        return self.viewport.fit(self.layout())

    def pan_to_person(self, handle: str) -> Transform:
        return self.viewport.pan_to(self.layout(), handle)
