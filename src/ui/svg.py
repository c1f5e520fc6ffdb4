"""SVG markup for a render frame."""

from html import escape
from typing import Iterable, Optional

from src.config import LayoutSettings, settings
from src.pedigree.models import Gender, PositionedNode
from src.pedigree.view_state import RenderFrame
from src.pedigree.viewport import ZoomLevel, format_coord

CARD_FILL = {
    Gender.MALE: "#dbeafe",
    Gender.FEMALE: "#fce7f3",
    Gender.UNKNOWN: "#f3f4f6",
}
PATRILINEAL_STROKE = "#b45309"
DEFAULT_STROKE = "#9ca3af"
HIGHLIGHT_STROKE = "#dc2626"


def _years(node: PositionedNode) -> str:
    person = node.node
    if person.birth_year is None and person.death_year is None:
        return ""
    birth = str(person.birth_year) if person.birth_year is not None else "?"
    if person.is_living:
        return f"{birth} -"
    death = str(person.death_year) if person.death_year is not None else "?"
    return f"{birth} - {death}"


def _card(node: PositionedNode, level: ZoomLevel, focused: bool, highlighted: bool,
          config: LayoutSettings) -> str:
    person = node.node
    w, h = config.card_width, config.card_height
    stroke = HIGHLIGHT_STROKE if highlighted else (PATRILINEAL_STROKE if person.is_patrilineal else DEFAULT_STROKE)
    stroke_width = 3 if focused else 1.5
    opacity = ' opacity="0.6"' if not person.is_living else ""
    parts = [
        f'<g class="card" data-handle="{escape(person.handle)}"'
        f' transform="translate({format_coord(node.x)},{format_coord(node.y)})"{opacity}>',
        f'<rect width="{format_coord(w)}" height="{format_coord(h)}" rx="8" fill="{CARD_FILL[person.gender]}"'
        f' stroke="{stroke}" stroke-width="{stroke_width}"/>',
    ]
    if level != ZoomLevel.MINI:
        parts.append(
            f'<text x="{format_coord(w / 2)}" y="{format_coord(h / 2 - 4)}" text-anchor="middle"'
            f' font-size="13" font-weight="600">{escape(person.display_name)}</text>'
        )
    if level == ZoomLevel.FULL:
        parts.append(
            f'<text x="{format_coord(w / 2)}" y="{format_coord(h / 2 + 14)}" text-anchor="middle"'
            f' font-size="11" fill="#6b7280">{escape(_years(node))}</text>'
        )
    parts.append("</g>")
    return "".join(parts)


def _toggle(node: PositionedNode, collapsed: bool, config: LayoutSettings) -> str:
    cx = node.x + config.card_width / 2
    cy = node.y + config.card_height
    symbol = "+" if collapsed else "-"
    return (
        f'<g class="toggle" data-toggle="{escape(node.handle)}" transform="translate({format_coord(cx)},{format_coord(cy)})">'
        f'<circle r="9" fill="#ffffff" stroke="#6b7280"/>'
        f'<text y="4" text-anchor="middle" font-size="12">{symbol}</text></g>'
    )


def render_svg(
    frame: RenderFrame,
    width: float,
    height: float,
    focus: Optional[str] = None,
    highlighted: Iterable[str] = (),
    config: Optional[LayoutSettings] = None,
) -> str:
    """Draw the frame: connectors first, then couple markers, cards,
    collapse toggles and bundle markers."""
    config = config or settings.layout
    highlighted = set(highlighted)
    t = frame.transform
    out = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{format_coord(width)}" height="{format_coord(height)}"'
        f' style="background:#fafaf9;touch-action:none;user-select:none">',
        f'<g transform="translate({format_coord(t.x)},{format_coord(t.y)}) scale({t.scale:g})">',
    ]
    paths = frame.visible_connections
    if paths.parent_path_spec:
        out.append(f'<path class="parent-links" d="{paths.parent_path_spec}" fill="none" stroke="#9ca3af" stroke-width="1.5"/>')
    if paths.couple_path_spec:
        out.append(f'<path class="couple-links" d="{paths.couple_path_spec}" fill="none" stroke="#b45309" stroke-width="2"/>')

    for couple in frame.visible_couples:
        if couple.father_pos and couple.mother_pos:
            out.append(
                f'<circle class="couple" cx="{format_coord(couple.mid_x)}" cy="{format_coord(couple.y + config.card_height / 2)}"'
                f' r="4" fill="#b45309"/>'
            )

    for node in frame.visible_nodes:
        out.append(_card(node, frame.zoom_level, node.handle == focus, node.handle in highlighted, config))

    if frame.show_collapse_controls:
        for node in frame.visible_nodes:
            if node.handle in frame.collapsible:
                out.append(_toggle(node, node.handle in frame.collapsed, config))

    for bundle in frame.bundles:
        count = bundle.summary.total_descendants if bundle.summary else 0
        cx = bundle.x + config.card_width / 2
        out.append(
            f'<g class="bundle" data-toggle="{escape(bundle.handle)}" transform="translate({format_coord(cx)},{format_coord(bundle.y)})">'
            f'<circle r="18" fill="#fde68a" stroke="#b45309"/>'
            f'<text y="5" text-anchor="middle" font-size="14">+{count}</text></g>'
        )

    out.append("</g></svg>")
    return "".join(out)
