"""FastAPI backend serving pedigree layouts and frames to renderers."""

import dataclasses
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from src.pedigree.edits import EditOutcome, TreeEditor
from src.pedigree.models import GraphSnapshot
from src.pedigree.view_state import TreeViewState
from src.pedigree.viewport import Transform, Viewport, clamp_scale
from src.store.loader import TreeLoader, TreeSource
from src.store.sample_data import sample_profiles
from src.store.tree_store import TreeStore

logger = logging.getLogger(__name__)


class ChildOrderRequest(BaseModel):
    children: list[str]


class MoveChildRequest(BaseModel):
    child: str
    to_family: str


class LivingRequest(BaseModel):
    is_living: bool


def to_wire(value: Any) -> Any:
    """JSON-ready value with camelCase keys for dataclasses and models."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {to_camel(f.name): to_wire(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_wire(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    return value


def create_app(store: Optional[TreeStore] = None, loader: Optional[TreeLoader] = None) -> FastAPI:
    """Build the API; the store and loader can be swapped for tests."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        tree_store = store or TreeStore()
        result = await (loader or TreeLoader(store=tree_store)).load()
        if result.source != TreeSource.STORE:
            # Mirror into the local store so edits have rows to update
            profiles = sample_profiles() if result.source == TreeSource.SAMPLE else None
            tree_store.save_snapshot(result.snapshot, profiles)
        app.state.store = tree_store
        app.state.source = result.source
        app.state.editor = TreeEditor(result.snapshot, tree_store)
        logger.info("Tree loaded from %s: %d people", result.source.value, len(result.snapshot.people))
        yield

    app = FastAPI(title="Clan Pedigree API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def editor(request: Request) -> TreeEditor:
        return request.app.state.editor

    def snapshot(request: Request) -> GraphSnapshot:
        return editor(request).snapshot

    def view_state(request: Request, view: Optional[str], person: Optional[str],
                   collapsed: Optional[str]) -> TreeViewState:
        state = TreeViewState(snapshot(request))
        state.apply_deep_link({"view": view, "person": person})
        if collapsed is not None:
            state.collapsed = frozenset(h for h in collapsed.split(",") if h)
        return state

    def require_person(request: Request, handle: str) -> None:
        if not any(p.handle == handle for p in snapshot(request).people):
            raise HTTPException(status_code=404, detail=f"Person {handle} not found")

    def require_family(request: Request, handle: str) -> None:
        if not any(f.handle == handle for f in snapshot(request).families):
            raise HTTPException(status_code=404, detail=f"Family {handle} not found")

    def outcome_out(outcome: EditOutcome) -> dict:
        return {"success": outcome.success, "error": outcome.error, "rolledBack": outcome.rolled_back}

    # =========================================================================
    # READ
    # =========================================================================

    @app.get("/api/tree")
    async def get_tree(request: Request):
        return {"source": request.app.state.source.value, "data": to_wire(snapshot(request))}

    @app.get("/api/tree/layout")
    async def get_layout(
        request: Request,
        view: Optional[str] = None,
        person: Optional[str] = None,
        collapsed: Optional[str] = None,
    ):
        state = view_state(request, view, person, collapsed)
        return to_wire(state.layout())

    @app.get("/api/tree/frame")
    async def get_frame(
        request: Request,
        view: Optional[str] = None,
        person: Optional[str] = None,
        collapsed: Optional[str] = None,
        x: float = 0,
        y: float = 0,
        scale: float = 1.0,
        width: float = Query(0, ge=0),
        height: float = Query(0, ge=0),
        fit: bool = False,
    ):
        state = view_state(request, view, person, collapsed)
        state.viewport = Viewport(width, height, Transform(x, y, clamp_scale(scale)))
        if fit:
            state.fit()
        frame = to_wire(state.render_frame())
        frame["query"] = state.to_query()
        return frame

    @app.get("/api/tree/stats")
    async def get_stats(request: Request, view: Optional[str] = None, person: Optional[str] = None):
        state = view_state(request, view, person, collapsed="")
        return to_wire(state.stats())

    @app.get("/api/tree/search")
    async def search(request: Request, q: str = "", limit: int = Query(8, ge=0)):
        state = TreeViewState(snapshot(request))
        return {"results": to_wire(state.search(q, limit))}

    @app.get("/api/tree/share/{handle}")
    async def share_link(request: Request, handle: str):
        require_person(request, handle)
        base_url = str(request.base_url).rstrip("/")
        return {"url": TreeViewState(snapshot(request)).share_link(handle, base_url)}

    @app.get("/api/people/{handle}/profile")
    async def get_profile(request: Request, handle: str):
        require_person(request, handle)
        profile = request.app.state.store.get_profile(handle)
        return to_wire(profile) if profile else {"handle": handle}

    # =========================================================================
    # EDITS
    # =========================================================================

    @app.put("/api/families/{family_handle}/children")
    async def reorder_children(request: Request, family_handle: str, req: ChildOrderRequest):
        require_family(request, family_handle)
        try:
            outcome = await editor(request).reorder_children(family_handle, req.children)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return outcome_out(outcome)

    @app.post("/api/families/{family_handle}/children/move")
    async def move_child(request: Request, family_handle: str, req: MoveChildRequest):
        require_family(request, family_handle)
        require_family(request, req.to_family)
        require_person(request, req.child)
        outcome = await editor(request).move_child(req.child, family_handle, req.to_family)
        return outcome_out(outcome)

    @app.delete("/api/families/{family_handle}/children/{child}")
    async def remove_child(request: Request, family_handle: str, child: str):
        require_family(request, family_handle)
        require_person(request, child)
        outcome = await editor(request).remove_child(child, family_handle)
        return outcome_out(outcome)

    @app.put("/api/people/{handle}/living")
    async def set_living(request: Request, handle: str, req: LivingRequest):
        require_person(request, handle)
        outcome = await editor(request).toggle_living(handle, req.is_living)
        return outcome_out(outcome)

    @app.patch("/api/people/{handle}")
    async def update_person(request: Request, handle: str, fields: dict[str, Any]):
        require_person(request, handle)
        try:
            outcome = await editor(request).update_person_fields(handle, fields)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return outcome_out(outcome)

    @app.post("/api/tree/reset")
    async def reset(request: Request):
        reloaded = await editor(request).reset()
        return {"success": True, "people": len(reloaded.people)}

    return app


app = create_app()
