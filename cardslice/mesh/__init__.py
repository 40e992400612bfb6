"""Mesh processing modules for Cardslice."""

from .intersect import Contact, intersect, intersect_many
from .loader import MeshLoader, load_mesh, parse_mesh
from .normalize import normalize
from .slicer import MeshSlicer, SliceProgress, slice_mesh
from .stitch import stitch

__all__ = [
    "Contact",
    "intersect",
    "intersect_many",
    "MeshLoader",
    "load_mesh",
    "parse_mesh",
    "normalize",
    "MeshSlicer",
    "SliceProgress",
    "slice_mesh",
    "stitch",
]
