"""
Viewport and transform manager.

The transform maps tree space to screen pixels: screen = tree * scale +
(x, y). Everything here is cheap enough to run on every pointer-move or
wheel event; handlers derive the new transform from the gesture start, so
repeating the same event yields the same transform.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from src.config import LayoutSettings, ViewSettings, settings
from src.pedigree.models import (
    BranchSummary,
    Connection,
    LayoutResult,
    PositionedCouple,
    PositionedNode,
)


class ZoomLevel(str, Enum):
    """Rendering fidelity tier selected by the zoom scale."""
    FULL = "full"
    COMPACT = "compact"
    MINI = "mini"


@dataclass(frozen=True)
class Transform:
    """Pan offset and zoom factor."""
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in tree space."""
    left: float
    top: float
    right: float
    bottom: float

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def intersects_box(self, x: float, y: float, w: float, h: float) -> bool:
        return x + w >= self.left and x <= self.right and y + h >= self.top and y <= self.bottom


@dataclass(frozen=True)
class PathSpec:
    """Connections batched into two SVG path strings."""
    parent_path_spec: str = ""
    couple_path_spec: str = ""


@dataclass(frozen=True)
class BundleMarker:
    """Stand-in for a collapsed branch at the mini zoom level."""
    handle: str
    x: float
    y: float
    summary: Optional[BranchSummary] = None


@dataclass(frozen=True)
class CulledLayout:
    """The part of a layout that intersects the viewport."""
    nodes: list[PositionedNode]
    connections: PathSpec
    couples: list[PositionedCouple]


def zoom_level(scale: float, config: Optional[ViewSettings] = None) -> ZoomLevel:
    config = config or settings.view
    if scale > config.full_detail_scale:
        return ZoomLevel.FULL
    if scale > config.compact_scale:
        return ZoomLevel.COMPACT
    return ZoomLevel.MINI


def clamp_scale(value: float, previous: float = 1.0, config: Optional[ViewSettings] = None) -> float:
    """Bound a scale to the interactive range; non-finite values keep `previous`."""
    config = config or settings.view
    if not math.isfinite(value):
        value = previous
    return min(max(value, config.min_scale), config.max_scale)


def zoom_about(t: Transform, new_scale: float, px: float, py: float,
               config: Optional[ViewSettings] = None) -> Transform:
    """Rescale so that the screen point (px, py) stays fixed."""
    scale = clamp_scale(new_scale, t.scale, config)
    current = t.scale if t.scale > 0 and math.isfinite(t.scale) else scale
    ratio = scale / current
    return Transform(x=px - (px - t.x) * ratio, y=py - (py - t.y) * ratio, scale=scale)


def fit_transform(width: float, height: float, viewport_w: float, viewport_h: float,
                  config: Optional[ViewSettings] = None) -> Transform:
    """Scale and center a width x height box inside the viewport."""
    config = config or settings.view
    box_w = width + config.fit_padding * 2
    box_h = height + config.fit_padding * 2
    scale = max(min(viewport_w / box_w, viewport_h / box_h, config.fit_max_scale),
                config.fit_min_scale)
    return Transform(
        x=(viewport_w - width * scale) / 2,
        y=(viewport_h - height * scale) / 2,
        scale=scale,
    )


def visible_rect(t: Transform, viewport_w: float, viewport_h: float,
                 padding: Optional[float] = None) -> Rect:
    """Inverse-transform the viewport corners into tree space, padded."""
    if padding is None:
        padding = settings.view.cull_padding
    scale = t.scale if t.scale > 0 else settings.view.min_scale
    return Rect(
        left=-t.x / scale - padding,
        top=-t.y / scale - padding,
        right=(viewport_w - t.x) / scale + padding,
        bottom=(viewport_h - t.y) / scale + padding,
    )


def format_coord(value: float) -> str:
    rounded = round(value, 2)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:g}"


def path_spec(connections: Iterable[Connection]) -> PathSpec:
    """Batch segments into one parent path and one couple path."""
    parent_parts: list[str] = []
    couple_parts: list[str] = []
    for c in connections:
        segment = f"M{format_coord(c.from_x)},{format_coord(c.from_y)}L{format_coord(c.to_x)},{format_coord(c.to_y)}"
        (couple_parts if c.type == "couple" else parent_parts).append(segment)
    return PathSpec(parent_path_spec="".join(parent_parts), couple_path_spec="".join(couple_parts))


def cull_layout(
    layout: LayoutResult,
    t: Transform,
    viewport_w: float,
    viewport_h: float,
    view_config: Optional[ViewSettings] = None,
    layout_config: Optional[LayoutSettings] = None,
) -> CulledLayout:
    """
    Slice a layout down to what intersects the padded viewport.

    Nodes are kept when their card box intersects, connections when either
    endpoint is inside, couples when either parent card is kept. A viewport
    with no size yet culls nothing.
    """
    view_config = view_config or settings.view
    layout_config = layout_config or settings.layout
    if viewport_w <= 0 or viewport_h <= 0:
        return CulledLayout(nodes=list(layout.nodes), connections=path_spec(layout.connections),
                            couples=list(layout.couples))

    rect = visible_rect(t, viewport_w, viewport_h, view_config.cull_padding)
    card_w, card_h = layout_config.card_width, layout_config.card_height
    nodes = [n for n in layout.nodes if rect.intersects_box(n.x, n.y, card_w, card_h)]
    kept = {n.node.handle for n in nodes}
    connections = [
        c for c in layout.connections
        if rect.contains(c.from_x, c.from_y) or rect.contains(c.to_x, c.to_y)
    ]
    couples = [
        c for c in layout.couples
        if (c.father_pos and c.father_pos.node.handle in kept)
        or (c.mother_pos and c.mother_pos.node.handle in kept)
    ]
    return CulledLayout(nodes=nodes, connections=path_spec(connections), couples=couples)


def bundle_markers(nodes: Iterable[PositionedNode], collapsed: Iterable[str],
                   summaries: Optional[dict[str, BranchSummary]] = None,
                   view_config: Optional[ViewSettings] = None,
                   layout_config: Optional[LayoutSettings] = None) -> list[BundleMarker]:
    """Markers below each visible collapsed branch root."""
    view_config = view_config or settings.view
    layout_config = layout_config or settings.layout
    summaries = summaries or {}
    collapsed = set(collapsed)
    return [
        BundleMarker(
            handle=n.node.handle,
            x=n.x,
            y=n.y + layout_config.card_height + view_config.bundle_offset,
            summary=summaries.get(n.node.handle),
        )
        for n in nodes
        if n.node.handle in collapsed
    ]


class Viewport:
    """
    Pan/zoom state for one tree view.

    Drag and pinch are anchored at the gesture start; wheel events are
    applied to the current transform.
    """

    def __init__(self, width: float = 0, height: float = 0,
                 transform: Optional[Transform] = None,
                 config: Optional[ViewSettings] = None):
        self.config = config or settings.view
        self.width = width
        self.height = height
        self.transform = Transform()
        if transform is not None:
            # Degenerate transforms are clamped on entry
            self.transform = Transform(
                x=transform.x if math.isfinite(transform.x) else 0.0,
                y=transform.y if math.isfinite(transform.y) else 0.0,
                scale=clamp_scale(transform.scale, config=self.config),
            )
        self._drag_start: Optional[tuple[float, float, Transform]] = None
        self._pinch_start: Optional[tuple[float, Transform]] = None

    @property
    def zoom_level(self) -> ZoomLevel:
        return zoom_level(self.transform.scale, self.config)

    # Pan

    def begin_drag(self, px: float, py: float) -> None:
        self._drag_start = (px, py, self.transform)

    def drag_to(self, px: float, py: float) -> Transform:
        if self._drag_start is None:
            return self.transform
        sx, sy, start = self._drag_start
        self.transform = replace(self.transform, x=start.x + px - sx, y=start.y + py - sy)
        return self.transform

    def end_drag(self) -> None:
        self._drag_start = None

    @property
    def dragging(self) -> bool:
        return self._drag_start is not None

    # Zoom

    def wheel(self, delta_y: float, px: float, py: float) -> Transform:
        factor = self.config.wheel_zoom_out if delta_y > 0 else self.config.wheel_zoom_in
        self.transform = zoom_about(self.transform, self.transform.scale * factor, px, py, self.config)
        return self.transform

    def zoom_in(self) -> Transform:
        return self.wheel(-1, self.width / 2, self.height / 2)

    def zoom_out(self) -> Transform:
        return self.wheel(1, self.width / 2, self.height / 2)

    def begin_pinch(self, distance: float) -> None:
        self._pinch_start = (distance, self.transform)

    def pinch_to(self, distance: float, mid_x: float, mid_y: float) -> Transform:
        """Scale by live / initial finger distance, anchored at the midpoint."""
        if self._pinch_start is None:
            return self.transform
        initial, start = self._pinch_start
        if initial <= 0 or not math.isfinite(distance):
            return self.transform
        new_scale = start.scale * (distance / initial)
        self.transform = zoom_about(self.transform, new_scale, mid_x, mid_y, self.config)
        return self.transform

    def end_pinch(self) -> None:
        self._pinch_start = None

    # Framing

    def fit(self, layout: LayoutResult) -> Transform:
        if self.width <= 0 or self.height <= 0:
            return self.transform
        self.transform = fit_transform(layout.width, layout.height, self.width, self.height, self.config)
        return self.transform

    def pan_to(self, layout: LayoutResult, handle: str,
               layout_config: Optional[LayoutSettings] = None) -> Transform:
        """Center the viewport on a person's card, keeping the scale."""
        layout_config = layout_config or settings.layout
        node = layout.node_for(handle)
        if node is None:
            return self.transform
        scale = self.transform.scale
        self.transform = replace(
            self.transform,
            x=self.width / 2 - (node.x + layout_config.card_width / 2) * scale,
            y=self.height / 2 - (node.y + layout_config.card_height / 2) * scale,
        )
        return self.transform
