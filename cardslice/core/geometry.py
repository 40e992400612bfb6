"""Geometry data structures shared by the slicing pipeline.

A mesh is a triangle soup: an ``(N, 3, 3)`` array of XYZ vertices with no
shared-vertex indexing. Slicing turns it into a stack of layers, each a list
of 2D contours in the mesh's centered XY frame.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Literal

import numpy as np
import trimesh
from numpy.typing import NDArray

Point2 = tuple[float, float]


def _frozen_triangles(triangles: NDArray | list) -> NDArray[np.float64]:
    arr = np.array(triangles, dtype=np.float64).reshape(-1, 3, 3)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Mesh:
    """Triangle soup as parsed from a mesh file.

    Attributes:
        triangles: Read-only Nx3x3 array of vertex coordinates, file order
        source_format: Encoding the mesh was parsed from
        name: Solid name (ASCII) or header text (binary), if any
    """

    triangles: NDArray[np.float64]
    source_format: Literal["ascii", "binary", "memory"] = "memory"
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "triangles", _frozen_triangles(self.triangles))

    def __len__(self) -> int:
        """Return number of triangles."""
        return len(self.triangles)

    @property
    def bounds(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return (min_xyz, max_xyz) bounding box."""
        vertices = self.triangles.reshape(-1, 3)
        return vertices.min(axis=0), vertices.max(axis=0)

    @property
    def size(self) -> NDArray[np.float64]:
        """Return size of bounding box (x, y, z)."""
        min_pt, max_pt = self.bounds
        return max_pt - min_pt

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh, name: str | None = None) -> Mesh:
        """Build a triangle soup from a trimesh object."""
        return cls(triangles=np.asarray(mesh.triangles), name=name)

    def to_trimesh(self) -> trimesh.Trimesh:
        """Convert to an indexed trimesh object (vertices are merged)."""
        n = len(self.triangles)
        return trimesh.Trimesh(
            vertices=self.triangles.reshape(-1, 3),
            faces=np.arange(n * 3).reshape(-1, 3),
            process=True,
        )


@dataclass(frozen=True)
class NormalizedMesh:
    """Mesh rescaled to a target height and recentered.

    X and Y are centered on the bounding-box center; Z starts at 0.
    ``normalized = (raw - offset) * scale``.
    """

    triangles: NDArray[np.float64]
    width: float
    length: float
    height: float
    scale: float
    offset: tuple[float, float, float]
    source: Mesh | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "triangles", _frozen_triangles(self.triangles))

    def __len__(self) -> int:
        return len(self.triangles)


@dataclass(frozen=True)
class Segment:
    """Unordered pair of points where one triangle crosses one Z plane."""

    p1: Point2
    p2: Point2


@dataclass(frozen=True)
class Contour:
    """Ordered polyline in a layer.

    Closed contours do not repeat their first point at the end.
    """

    points: NDArray[np.float64]
    closed: bool

    def __len__(self) -> int:
        return len(self.points)

    @property
    def segment_count(self) -> int:
        """Number of input segments this contour was built from."""
        n = len(self.points)
        return n if self.closed else n - 1

    def as_tuples(self) -> list[Point2]:
        """Return points as a list of (x, y) tuples."""
        return [(float(x), float(y)) for x, y in self.points]


@dataclass
class SliceDiagnostics:
    """Non-fatal geometry issues seen while slicing.

    Attributes:
        coplanar: Triangles lying entirely in a cutting plane (dropped)
        grazing: Triangles touched only at a vertex or edge (dropped)
        open_contours: Contours whose ends did not meet
    """

    coplanar: int = 0
    grazing: int = 0
    open_contours: int = 0

    def __add__(self, other: SliceDiagnostics) -> SliceDiagnostics:
        return SliceDiagnostics(
            coplanar=self.coplanar + other.coplanar,
            grazing=self.grazing + other.grazing,
            open_contours=self.open_contours + other.open_contours,
        )

    @property
    def dropped(self) -> int:
        """Total number of triangle contacts dropped."""
        return self.coplanar + self.grazing

    @property
    def is_clean(self) -> bool:
        return self.dropped == 0 and self.open_contours == 0


@dataclass(frozen=True)
class Layer:
    """Contours produced at one Z height."""

    index: int
    z: float
    contours: list[Contour]
    segment_count: int = 0
    diagnostics: SliceDiagnostics = field(default_factory=SliceDiagnostics)

    @property
    def is_empty(self) -> bool:
        """Check if this layer has no geometry."""
        return not self.contours

    @property
    def closed_contours(self) -> list[Contour]:
        return [c for c in self.contours if c.closed]


@dataclass(frozen=True)
class SliceResult:
    """Ordered layer stack, index 0 at the bottom.

    Attributes:
        layers: One Layer per cutting plane
        thickness: Layer thickness in mm
        height: Normalized model height in mm
        width: Normalized model X extent in mm
        length: Normalized model Y extent in mm
    """

    layers: list[Layer]
    thickness: float
    height: float
    width: float
    length: float

    def __len__(self) -> int:
        return len(self.layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(self.layers)

    def __getitem__(self, idx: int) -> Layer:
        return self.layers[idx]

    @property
    def is_empty(self) -> bool:
        return not self.layers

    @property
    def z_centers(self) -> list[float]:
        return [layer.z for layer in self.layers]

    @property
    def diagnostics(self) -> SliceDiagnostics:
        """Diagnostics summed over all layers."""
        total = SliceDiagnostics()
        for layer in self.layers:
            total = total + layer.diagnostics
        return total

    def stats(self) -> dict:
        """Return summary statistics about the layer stack."""
        diag = self.diagnostics
        return {
            "num_layers": len(self.layers),
            "thickness": self.thickness,
            "num_contours": sum(len(layer.contours) for layer in self.layers),
            "num_segments": sum(layer.segment_count for layer in self.layers),
            "empty_layers": sum(1 for layer in self.layers if layer.is_empty),
            "coplanar_drops": diag.coplanar,
            "grazing_drops": diag.grazing,
            "open_contours": diag.open_contours,
        }
