"""Cardslice - Mesh to laser-cut layer slicing.

A Python application that turns an STL model into a stack of flat
cross-sections for cutting from sheet material (cardboard, plywood,
acrylic) and stacking back into the original shape.
"""

__version__ = "0.1.0"

from .core.config import CardsliceConfig, SliceSettings
from .core.geometry import Mesh, SliceResult
from .export.svg import render_svg, write_svg
from .mesh.loader import MeshLoader, load_mesh, parse_mesh
from .mesh.normalize import normalize
from .mesh.slicer import MeshSlicer
from .session import SlicerSession

__all__ = [
    "CardsliceConfig",
    "SliceSettings",
    "Mesh",
    "SliceResult",
    "render_svg",
    "write_svg",
    "MeshLoader",
    "load_mesh",
    "parse_mesh",
    "normalize",
    "MeshSlicer",
    "SlicerSession",
]
