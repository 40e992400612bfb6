"""Core modules for Cardslice."""

from .config import CardsliceConfig, LayoutParams, LoaderParams, SlicePlan, SliceSettings
from .errors import (
    CancelledError,
    CardsliceError,
    DegenerateMeshError,
    EmptyExportError,
    MalformedInputError,
    SliceInProgressError,
)
from .geometry import Contour, Layer, Mesh, NormalizedMesh, Segment, SliceDiagnostics, SliceResult

__all__ = [
    "CardsliceConfig",
    "LayoutParams",
    "LoaderParams",
    "SlicePlan",
    "SliceSettings",
    "CancelledError",
    "CardsliceError",
    "DegenerateMeshError",
    "EmptyExportError",
    "MalformedInputError",
    "SliceInProgressError",
    "Contour",
    "Layer",
    "Mesh",
    "NormalizedMesh",
    "Segment",
    "SliceDiagnostics",
    "SliceResult",
]
