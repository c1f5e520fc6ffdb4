"""UI module for NiceGUI interface."""

from src.ui.svg import render_svg
from src.ui.tree_page import TreePage

__all__ = ["TreePage", "render_svg"]
