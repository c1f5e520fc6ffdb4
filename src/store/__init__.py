"""Store package - SQLite persistence and snapshot loading."""

from src.store.tree_store import TreeStore
from src.store.loader import LoadResult, TreeLoader, TreeSource
from src.store.sample_data import sample_profiles, sample_snapshot

__all__ = [
    "LoadResult",
    "TreeLoader",
    "TreeSource",
    "TreeStore",
    "sample_profiles",
    "sample_snapshot",
]
