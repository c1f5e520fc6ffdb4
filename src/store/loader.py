"""
Three-tier snapshot loading.

1. Remote genealogy API (`GET {url}/genealogy/tree`, bearer token, short
   timeout), when a URL is configured
2. Local SQLite store, when it holds data
3. Bundled sample clan
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from src.config import RemoteApiSettings, settings
from src.pedigree.models import GraphSnapshot
from src.store.sample_data import sample_snapshot
from src.store.tree_store import TreeStore

logger = logging.getLogger(__name__)


class TreeSource(str, Enum):
    API = "api"
    STORE = "store"
    SAMPLE = "sample"


@dataclass
class LoadResult:
    """Loaded snapshot and the tier it came from."""
    snapshot: GraphSnapshot
    source: TreeSource


class TreeLoader:
    """Load a snapshot from the first tier that answers."""

    def __init__(
        self,
        store: Optional[TreeStore] = None,
        api: Optional[RemoteApiSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.api = api or settings.remote_api
        self.transport = transport

    async def load(self) -> LoadResult:
        if self.api.url:
            snapshot = await self.fetch_remote()
            if snapshot is not None:
                return LoadResult(snapshot, TreeSource.API)

        if self.store is not None:
            snapshot = await self._load_store()
            if snapshot is not None:
                return LoadResult(snapshot, TreeSource.STORE)

        logger.info("Using bundled sample tree")
        return LoadResult(sample_snapshot(), TreeSource.SAMPLE)

    async def fetch_remote(self) -> Optional[GraphSnapshot]:
        """Fetch the tree from the remote API; None on any failure."""
        url = f"{self.api.url.rstrip('/')}/genealogy/tree"
        headers = {"Authorization": f"Bearer {self.api.token}"} if self.api.token else {}
        try:
            async with httpx.AsyncClient(timeout=self.api.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=headers)
                response.raise_for_status()
                payload = response.json()
            data = payload.get("data", payload) if isinstance(payload, dict) else payload
            snapshot = GraphSnapshot.model_validate(data)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Remote tree unavailable (%s): %s", url, e)
            return None

        logger.info("Loaded %d people from %s", len(snapshot.people), url)
        return snapshot

    async def _load_store(self) -> Optional[GraphSnapshot]:
        loop = asyncio.get_running_loop()
        try:
            if await loop.run_in_executor(None, self.store.is_empty):
                return None
            snapshot = await loop.run_in_executor(None, self.store.load_snapshot)
        except sqlite3.Error as e:
            logger.warning("Local tree store unavailable: %s", e)
            return None
        logger.info("Loaded %d people from %s", len(snapshot.people), self.store.db_path)
        return snapshot
