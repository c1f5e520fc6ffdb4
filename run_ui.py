"""Run the Clan Pedigree UI."""

import logging
import sys

# Set path and run
sys.path.insert(0, ".")

from src.ui.tree_page import run_app

if __name__ in {"__main__", "__mp_main__"}:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    run_app()
