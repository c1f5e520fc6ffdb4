"""
Pedigree layout engine.

Turns a people/families graph into absolute card positions, couple markers
and connector segments. Layout is a two-pass subtree-width algorithm:

1. Every placed person ("anchor") forms a unit with the partners reachable
   through the families they parent. Units are claimed breadth-first from
   the roots, so each person is positioned exactly once.
2. Bottom-up, each unit gets the width of max(its own cards, its children's
   subtrees). Children blocks are kept per family, in declaration order.
3. Top-down, spans are handed out left to right and each unit is centered
   over its children.

Rows come from generation assignment: y = generation * (card height +
vertical spacing).
"""

from collections import deque
from typing import Iterable, Optional

from src.config import LayoutSettings, settings
from src.pedigree.generations import find_roots, is_married_in, resolve_generations
from src.pedigree.index import GraphIndex
from src.pedigree.models import (
    Connection,
    Family,
    LayoutResult,
    Person,
    PositionedCouple,
    PositionedNode,
)

_EPSILON = 1e-6


class _UnitPlan:
    """Claimed structure of the forest: who anchors which unit, and which
    children each unit lays out under which family."""

    def __init__(self):
        self.claimed: set[str] = set()
        self.order: list[str] = []      # anchors, top-down BFS order
        self.tops: list[str] = []       # anchors of top-level trees
        self.rows: dict[str, list[str]] = {}
        self.blocks: dict[str, list[tuple[Family, list[str]]]] = {}


def _row_order(anchor: str, members: list[str], via: dict[str, str], families: list[Family]) -> list[str]:
    """
    Left-to-right card order for a unit.

    The anchor's first partner goes on the left and later partners on the
    right. A partner's own further partners continue outward on that
    partner's side, so both cards of every union sit next to each other.
    """
    if len(members) == 1:
        return members
    if len(members) == 2:
        pair = set(members)
        for fam in families:
            if fam.father_handle and fam.mother_handle and {fam.father_handle, fam.mother_handle} == pair:
                return [fam.father_handle, fam.mother_handle]
        return members

    def outward(handle: str) -> list[str]:
        chain: list[str] = []
        stack = [handle]
        while stack:
            current = stack.pop()
            chain.append(current)
            stack.extend(reversed([m for m in members if via.get(m) == current]))
        return chain

    partners = [m for m in members if via.get(m) == anchor]
    left = outward(partners[0])
    right = [h for p in partners[1:] for h in outward(p)]
    return list(reversed(left)) + [anchor] + right


def _build_unit(index: GraphIndex, plan: _UnitPlan, anchor: str) -> list[Family]:
    members = [anchor]
    via: dict[str, str] = {}
    families: list[Family] = []
    seen: set[str] = set()
    i = 0
    while i < len(members):
        member = members[i]
        i += 1
        for fam in index.own_families(member):
            if fam.handle in seen:
                continue
            seen.add(fam.handle)
            families.append(fam)
            for parent in fam.parents:
                if parent != member and parent in index.person_map and parent not in plan.claimed:
                    plan.claimed.add(parent)
                    members.append(parent)
                    via[parent] = member

    plan.rows[anchor] = _row_order(anchor, members, via, families)
    plan.blocks[anchor] = []
    return families


def _union_position(row: list[str], fam: Family) -> float:
    slots = [row.index(p) for p in fam.parents if p in row]
    return sum(slots) / len(slots) if slots else 0.0


def _claim_tree(index: GraphIndex, plan: _UnitPlan, top: str) -> None:
    plan.claimed.add(top)
    plan.tops.append(top)
    queue = deque([top])
    while queue:
        anchor = queue.popleft()
        plan.order.append(anchor)
        families = _build_unit(index, plan, anchor)
        for fam in families:
            kids = []
            for child in fam.children:
                if child in index.person_map and child not in plan.claimed:
                    plan.claimed.add(child)
                    kids.append(child)
                    queue.append(child)
            if kids:
                plan.blocks[anchor].append((fam, kids))
        # Children blocks follow their unions left to right
        row = plan.rows[anchor]
        plan.blocks[anchor].sort(key=lambda block: _union_position(row, block[0]))


def _plan_units(index: GraphIndex) -> _UnitPlan:
    plan = _UnitPlan()
    not_child = [p for p in index.people if p.handle not in index.child_handles]
    seed_groups = [
        find_roots(index),
        [p for p in not_child if not is_married_in(index, p.handle)],
        not_child,
        index.people,  # cycles and orphaned children
    ]
    for group in seed_groups:
        for person in group:
            if person.handle not in plan.claimed:
                _claim_tree(index, plan, person.handle)
    return plan


def _resolve_row_collisions(positions: dict[str, list[float]], order: list[str], min_dist: float) -> None:
    """Push apart cards in the same row that are closer than min_dist."""
    by_row: dict[float, list[str]] = {}
    for handle in order:
        by_row.setdefault(positions[handle][1], []).append(handle)

    rank = {h: i for i, h in enumerate(order)}
    for handles in by_row.values():
        handles.sort(key=lambda h: (positions[h][0], rank[h]))
        shift = 0.0
        prev_x: Optional[float] = None
        for handle in handles:
            x = positions[handle][0] + shift
            if prev_x is not None and x - prev_x < min_dist - _EPSILON:
                push = min_dist - (x - prev_x)
                shift += push
                x += push
            positions[handle][0] = x
            prev_x = x


def compute_layout(
    people: Iterable[Person],
    families: Iterable[Family],
    config: Optional[LayoutSettings] = None,
) -> LayoutResult:
    """Compute absolute positions for every person and union."""
    config = config or settings.layout
    index = GraphIndex(people, families)
    if not index.people:
        return LayoutResult()

    card_w = config.card_width
    card_h = config.card_height
    gap = config.horizontal_spacing
    slot = card_w + gap
    row_h = card_h + config.vertical_spacing

    gens, unreachable = resolve_generations(
        index.people, index.families, policy=config.unreachable_policy, index=index
    )
    plan = _plan_units(index)

    # Pass 1: bottom-up widths and offsets relative to each subtree's left edge
    subtree_w: dict[str, float] = {}
    children_start: dict[str, float] = {}
    unit_left: dict[str, float] = {}
    anchor_center: dict[str, float] = {}
    for anchor in reversed(plan.order):
        unit_w = len(plan.rows[anchor]) * slot
        kids = [c for _, block in plan.blocks[anchor] for c in block]
        children_w = sum(subtree_w[c] for c in kids)
        width = max(unit_w, children_w)
        start = (width - children_w) / 2

        centers = []
        offset = start
        for child in kids:
            centers.append(offset + anchor_center[child])
            offset += subtree_w[child]
        mid = (centers[0] + centers[-1]) / 2 if centers else width / 2
        mid = min(max(mid, unit_w / 2), width - unit_w / 2)

        subtree_w[anchor] = width
        children_start[anchor] = start
        unit_left[anchor] = mid - unit_w / 2
        k = plan.rows[anchor].index(anchor)
        anchor_center[anchor] = unit_left[anchor] + k * slot + gap / 2 + card_w / 2

    # Pass 2: top-down absolute placement
    left: dict[str, float] = {}
    cursor = 0.0
    for top in plan.tops:
        left[top] = cursor
        cursor += subtree_w[top]

    positions: dict[str, list[float]] = {}
    node_gen: dict[str, int] = {}
    placed: list[str] = []
    for anchor in plan.order:
        base = left[anchor]
        gen = gens.get(anchor, 0)
        x0 = base + unit_left[anchor]
        for k, member in enumerate(plan.rows[anchor]):
            positions[member] = [x0 + k * slot + gap / 2, gen * row_h]
            # Partners share the anchor's row, so they report its generation
            node_gen[member] = gen
            placed.append(member)
        offset = base + children_start[anchor]
        for _, block in plan.blocks[anchor]:
            for child in block:
                left[child] = offset
                offset += subtree_w[child]

    _resolve_row_collisions(positions, placed, slot)

    nodes = [
        PositionedNode(
            node=index.person_map[h],
            x=positions[h][0],
            y=positions[h][1],
            generation=node_gen[h],
            detached=h in unreachable,
        )
        for h in placed
    ]
    by_handle = {n.node.handle: n for n in nodes}

    connections: list[Connection] = []
    couples: list[PositionedCouple] = []
    for fam in index.families:
        father = by_handle.get(fam.father_handle) if fam.father_handle else None
        mother = by_handle.get(fam.mother_handle) if fam.mother_handle else None
        if not father and not mother:
            continue
        if father and mother:
            lhs, rhs = sorted((father, mother), key=lambda n: n.x)
            connections.append(Connection(
                "couple", lhs.x + card_w, lhs.y + card_h / 2, rhs.x, rhs.y + card_h / 2,
            ))
            mid_x = (father.x + mother.x) / 2 + card_w / 2
            y = father.y
        else:
            single = father or mother
            mid_x = single.x + card_w / 2
            y = single.y
        couples.append(PositionedCouple(fam.handle, father, mother, mid_x, y))

        for child_handle in fam.children:
            child = by_handle.get(child_handle)
            if not child:
                continue
            connections.append(Connection(
                "parent", mid_x, y + card_h, child.x + card_w / 2, child.y,
            ))

    width = max(n.x for n in nodes) + card_w + gap / 2
    height = max(n.y for n in nodes) + card_h
    return LayoutResult(nodes=nodes, connections=connections, couples=couples,
                        width=width, height=height)
