"""Pedigree tree page for NiceGUI."""

import json
import logging
from typing import Optional
from urllib.parse import urlencode

from nicegui import ui

from src.pedigree.edits import TreeEditor
from src.pedigree.models import Person
from src.pedigree.stats import generation_counts, highlight_handles
from src.pedigree.view_state import TreeViewState, ViewMode
from src.pedigree.viewport import Viewport
from src.store.loader import TreeLoader
from src.store.tree_store import TreeStore
from src.ui.svg import render_svg

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 760
DRAG_THRESHOLD = 3

# Client-side handlers only measure the gesture; all state lives in Python
_CLICK_JS = """(e) => {
    const t = e.target.closest('[data-toggle]');
    const c = e.target.closest('[data-handle]');
    emit({toggle: t ? t.dataset.toggle : null, handle: c ? c.dataset.handle : null});
}"""
_POINTER_JS = """(e) => {
    const r = e.currentTarget.getBoundingClientRect();
    emit({x: e.clientX - r.left, y: e.clientY - r.top, deltaY: e.deltaY || 0});
}"""
_PINCH_JS = """(e) => {
    if (e.touches.length !== 2) return;
    const r = e.currentTarget.getBoundingClientRect();
    const [a, b] = e.touches;
    emit({
        distance: Math.hypot(a.clientX - b.clientX, a.clientY - b.clientY),
        x: (a.clientX + b.clientX) / 2 - r.left,
        y: (a.clientY + b.clientY) / 2 - r.top,
    });
}"""


class TreePage:
    """Interactive pedigree with pan, zoom, view modes and branch collapse."""

    def __init__(self, store: Optional[TreeStore] = None, loader: Optional[TreeLoader] = None):
        self.store = store or TreeStore()
        self.loader = loader or TreeLoader(store=self.store)
        self.state = TreeViewState(
            viewport=Viewport(CANVAS_WIDTH, CANVAS_HEIGHT),
            on_link_change=self._replace_url,
        )
        self.editor: Optional[TreeEditor] = None
        self.query = ""
        self._moved = False
        self._pointer_start: Optional[tuple[float, float]] = None

    async def load(self, params: dict) -> None:
        result = await self.loader.load()
        self.state.snapshot = result.snapshot
        self.state.apply_deep_link(params)
        self.editor = TreeEditor(result.snapshot, self.store, on_change=self.state.set_snapshot)
        self.state.fit()
        if self.state.focus_person:
            self.state.pan_to_person(self.state.focus_person)

    def build(self):
        """Build the page UI."""
        with ui.row().classes("w-full items-center gap-2 mb-2"):
            ui.label("🌳 Pedigree").classes("text-xl font-bold mr-4")
            ui.toggle(
                {m.value: m.value.title() for m in ViewMode},
                value=self.state.view_mode.value,
                on_change=lambda e: self._change_mode(e.value),
            )
            ui.button(icon="zoom_in", on_click=lambda: self._viewport_action(self.state.viewport.zoom_in)).props("flat dense")
            ui.button(icon="zoom_out", on_click=lambda: self._viewport_action(self.state.viewport.zoom_out)).props("flat dense")
            ui.button("Fit", on_click=lambda: self._viewport_action(self.state.fit)).props("flat dense")
            ui.button("Expand all", on_click=self._expand_all).props("flat dense")
            ui.button("Collapse all", on_click=self._collapse_all).props("flat dense")
            ui.input("Search", on_change=lambda e: self._search(e.value)).props("dense clearable").classes("w-64")

        with ui.row().classes("w-full gap-4 no-wrap"):
            self.canvas = ui.html(self._svg(), sanitize=False).style(
                f"width:{CANVAS_WIDTH}px;height:{CANVAS_HEIGHT}px;overflow:hidden;border:1px solid #e5e7eb;border-radius:8px"
            )
            self.canvas.on("click", self._on_click, js_handler=_CLICK_JS)
            self.canvas.on("wheel", self._on_wheel, js_handler=_POINTER_JS, throttle=0.03)
            self.canvas.on("mousedown", self._on_mouse_down, js_handler=_POINTER_JS)
            self.canvas.on("mousemove", self._on_mouse_move, js_handler=_POINTER_JS, throttle=0.03)
            self.canvas.on("mouseup", self._on_mouse_up)
            self.canvas.on("mouseleave", self._on_mouse_up)
            self.canvas.on("touchstart", self._on_pinch_start, js_handler=_PINCH_JS)
            self.canvas.on("touchmove", self._on_pinch_move, js_handler=_PINCH_JS, throttle=0.03)
            self.canvas.on("touchend", lambda: self.state.viewport.end_pinch())

            with ui.column().classes("w-80 gap-2"):
                self.details = ui.column().classes("w-full")
                self.results = ui.column().classes("w-full")
                self.stats_panel = ui.column().classes("w-full")

        self._render_details()
        self._render_stats()

    # Rendering

    def _svg(self) -> str:
        highlighted = highlight_handles(self.state.snapshot.people, self.query) if self.query else ()
        return render_svg(
            self.state.render_frame(), CANVAS_WIDTH, CANVAS_HEIGHT,
            focus=self.state.focus_person, highlighted=highlighted,
        )

    def refresh(self):
        self.canvas.content = self._svg()

    def _render_stats(self):
        self.stats_panel.clear()
        stats = self.state.stats()
        headers = generation_counts(self.state.layout().nodes)
        with self.stats_panel:
            with ui.card().classes("w-full p-3"):
                ui.label("Statistics").classes("font-bold")
                ui.label(f"Members: {stats.total} in {stats.total_families} families")
                ui.label(f"Generations: {stats.total_generations}")
                ui.label(f"Living: {stats.living_count} · Deceased: {stats.deceased_count}")
                ui.label(f"Patrilineal: {stats.patrilineal_count} · Married in: {stats.non_patrilineal_count}")
                for gen, count in headers.items():
                    ui.label(f"Generation {gen}: {count}").classes("text-sm text-gray-500")

    def _render_details(self):
        self.details.clear()
        person = self.state.index.person(self.state.focus_person)
        with self.details:
            with ui.card().classes("w-full p-3"):
                if not person:
                    ui.label("Click a card to select a person").classes("text-gray-500")
                    return
                ui.label(person.display_name).classes("text-lg font-bold")
                ui.label(f"Handle: {person.handle}").classes("text-sm text-gray-500")
                ui.switch("Living", value=person.is_living,
                          on_change=lambda e: self._set_living(person.handle, e.value))
                with ui.row().classes("gap-1"):
                    ui.button("▲", on_click=lambda: self._shift_child(person.handle, -1)).props("flat dense")
                    ui.button("▼", on_click=lambda: self._shift_child(person.handle, 1)).props("flat dense")
                    ui.button("Share", icon="link", on_click=lambda: self._share(person.handle)).props("flat dense")

                summary = self.state.branch_summaries().get(person.handle)
                if summary:
                    low, high = summary.generation_range
                    ui.label(
                        f"Collapsed: {summary.total_descendants} hidden, generations {low + 1}-{high + 1}"
                    ).classes("text-sm")

    def _render_results(self, matches: list[Person]):
        self.results.clear()
        with self.results:
            for person in matches:
                ui.button(person.display_name, on_click=lambda h=person.handle: self._select(h)) \
                    .props("flat dense no-caps").classes("w-full justify-start")

    def _redraw(self):
        self.refresh()
        self._render_details()
        self._render_stats()

    # State transitions

    def _change_mode(self, mode: str):
        self.state.set_view_mode(mode)
        self.state.fit()
        self._redraw()

    def _expand_all(self):
        self.state.expand_all()
        self._redraw()

    def _collapse_all(self):
        self.state.collapse_all()
        self._redraw()

    def _viewport_action(self, action):
        action()
        self.refresh()

    def _select(self, handle: str):
        if self.state.set_focus(handle):
            self.state.pan_to_person(handle)
            self._redraw()

    def _search(self, value: Optional[str]):
        self.query = value or ""
        self._render_results(self.state.search(self.query))
        self.refresh()

    def _replace_url(self, query: dict):
        qs = urlencode(query)
        ui.run_javascript(f"history.replaceState(null, '', {json.dumps('/tree' + ('?' + qs if qs else ''))})")

    def _share(self, handle: str):
        link = self.state.share_link(handle)
        ui.run_javascript(f"navigator.clipboard.writeText(window.location.origin + {json.dumps(link)})")
        ui.notify("Link copied")

    # Edits

    async def _set_living(self, handle: str, is_living: bool):
        outcome = await self.editor.toggle_living(handle, is_living)
        if not outcome.success:
            ui.notify(f"Save failed: {outcome.error}", type="negative")
        self._redraw()

    async def _shift_child(self, handle: str, step: int):
        parents = self.state.index.parent_families_of(handle)
        if not parents:
            ui.notify("No parent family to reorder in", type="warning")
            return
        family = parents[0]
        order = list(family.children)
        i = order.index(handle)
        j = i + step
        if not 0 <= j < len(order):
            return
        order[i], order[j] = order[j], order[i]
        outcome = await self.editor.reorder_children(family.handle, order)
        if not outcome.success:
            ui.notify(f"Save failed: {outcome.error}", type="negative")
        self._redraw()

    # Pointer events

    def _on_click(self, e):
        if self._moved:
            self._moved = False
            return
        toggle, handle = e.args.get("toggle"), e.args.get("handle")
        if toggle:
            self.state.toggle_collapse(toggle)
            self._redraw()
        elif handle and self.state.set_focus(handle):
            self._redraw()

    def _on_wheel(self, e):
        self.state.viewport.wheel(e.args["deltaY"], e.args["x"], e.args["y"])
        self.refresh()

    def _on_mouse_down(self, e):
        self._moved = False
        self._pointer_start = (e.args["x"], e.args["y"])
        self.state.viewport.begin_drag(e.args["x"], e.args["y"])

    def _on_mouse_move(self, e):
        if not self.state.viewport.dragging:
            return
        sx, sy = self._pointer_start
        if abs(e.args["x"] - sx) + abs(e.args["y"] - sy) > DRAG_THRESHOLD:
            self._moved = True
        self.state.viewport.drag_to(e.args["x"], e.args["y"])
        self.refresh()

    def _on_mouse_up(self):
        self.state.viewport.end_drag()

    def _on_pinch_start(self, e):
        self.state.viewport.begin_pinch(e.args["distance"])

    def _on_pinch_move(self, e):
        self.state.viewport.pinch_to(e.args["distance"], e.args["x"], e.args["y"])
        self.refresh()


def setup():
    """Register the tree pages."""

    @ui.page("/")
    def index_page():
        ui.navigate.to("/tree")

    @ui.page("/tree")
    async def tree_page(view: Optional[str] = None, person: Optional[str] = None):
        page = TreePage()
        await page.load({"view": view, "person": person})
        page.build()


def run_app():
    setup()
    ui.run(title="Clan Pedigree", port=8080, reload=False)


if __name__ in {"__main__", "__mp_main__"}:
    run_app()
