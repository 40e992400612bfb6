"""Layer stack export for Cardslice."""

from .layout import SheetLayout
from .svg import contour_to_path_data, render_svg, write_svg

__all__ = ["SheetLayout", "contour_to_path_data", "render_svg", "write_svg"]
