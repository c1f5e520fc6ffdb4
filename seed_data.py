"""
Seed script for Clan Pedigree - Populates the tree database with the sample clan.

This script:
1. Removes the existing tree database
2. Writes the bundled five-generation sample clan, with a few profiles

Run this script to start with a clean slate:
    python seed_data.py
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, ".")

from src.config import settings
from src.store.sample_data import sample_profiles, sample_snapshot
from src.store.tree_store import TreeStore

logger = logging.getLogger("seed_data")


def clear_database(db_path: str):
    """Remove the tree database file to start fresh."""
    path = Path(db_path)
    if path.exists():
        path.unlink()
        logger.info("Deleted: %s", path)
    else:
        logger.info("Not found: %s", path)


def seed_sample_data(db_path: str):
    """Write the sample clan into a fresh store."""
    store = TreeStore(db_path)
    snapshot = sample_snapshot()
    store.save_snapshot(snapshot, sample_profiles())
    logger.info("Seeded %d people, %d families", len(snapshot.people), len(snapshot.families))


def main():
    db_path = settings.database.tree_db_path
    clear_database(db_path)
    seed_sample_data(db_path)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    main()
