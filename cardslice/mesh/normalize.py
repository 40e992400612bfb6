"""Rescale and recenter a mesh to a target height."""

from __future__ import annotations

import logging

import numpy as np

from ..core.errors import DegenerateMeshError
from ..core.geometry import Mesh, NormalizedMesh

logger = logging.getLogger(__name__)


def normalize(mesh: Mesh, target_height: float) -> NormalizedMesh:
    """Scale a mesh uniformly so its Z extent equals ``target_height``.

    X and Y are centered on the bounding-box center and Z is shifted so the
    lowest vertex sits on Z=0. The same scale is applied to all three axes,
    so the model keeps its proportions.

    Args:
        mesh: Raw triangle soup
        target_height: Desired model height in mm (must be > 0)

    Returns:
        NormalizedMesh with width/length/height in mm

    Raises:
        ValueError: If target_height is not positive
        DegenerateMeshError: If the mesh is empty, non-finite, or flat in Z
    """
    if not target_height > 0:
        raise ValueError(f"Target height must be > 0, got {target_height}")
    if len(mesh) == 0:
        raise DegenerateMeshError("Mesh has no triangles")
    if not np.isfinite(mesh.triangles).all():
        raise DegenerateMeshError("Mesh contains non-finite coordinates")

    min_pt, max_pt = mesh.bounds
    raw_height = float(max_pt[2] - min_pt[2])
    if raw_height == 0:
        raise DegenerateMeshError("Mesh has zero Z extent; cannot scale to a height")

    scale = target_height / raw_height
    offset = np.array([
        (min_pt[0] + max_pt[0]) / 2,
        (min_pt[1] + max_pt[1]) / 2,
        min_pt[2],
    ])

    triangles = (mesh.triangles - offset) * scale
    width = float((max_pt[0] - min_pt[0]) * scale)
    length = float((max_pt[1] - min_pt[1]) * scale)

    logger.info(
        f"Normalized mesh: scale {scale:.4g}, "
        f"{width:.2f} x {length:.2f} x {target_height:.2f} mm"
    )

    return NormalizedMesh(
        triangles=triangles,
        width=width,
        length=length,
        height=float(target_height),
        scale=scale,
        offset=(float(offset[0]), float(offset[1]), float(offset[2])),
        source=mesh,
    )
