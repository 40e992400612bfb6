"""Triangle / horizontal plane intersection.

Stateless: every function takes raw triangles and a Z height and returns
segments. ``intersect_many`` is the vectorized form used per layer;
``intersect`` applies it to a single triangle.
"""

from __future__ import annotations

from enum import IntEnum

import numpy as np
from numpy.typing import NDArray

from ..core.geometry import Segment, SliceDiagnostics

# Endpoints closer than this on both axes are a vertex/edge graze
GRAZE_EPSILON = 1e-5


class Contact(IntEnum):
    """How a plane meets a triangle."""

    MISS = 0
    COPLANAR = 1
    GRAZING = 2
    CROSSING = 3


def _interpolate_xy(
    low: NDArray[np.float64],
    high: NDArray[np.float64],
    z: float,
) -> NDArray[np.float64]:
    """XY where the edge low->high crosses z. Horizontal edges give low's XY."""
    dz = high[:, 2] - low[:, 2]
    t = np.divide(z - low[:, 2], dz, out=np.zeros_like(dz), where=dz != 0)
    return low[:, :2] + t[:, None] * (high[:, :2] - low[:, :2])


def intersect_many(
    triangles: NDArray[np.float64],
    z: float,
) -> tuple[NDArray[np.float64], NDArray[np.int8]]:
    """Intersect every triangle with the plane Z = z.

    Args:
        triangles: Nx3x3 array of vertices
        z: Height of the cutting plane

    Returns:
        Tuple of (segments, contacts): an Mx2x2 array holding one segment per
        CROSSING triangle in input order, and the N-length Contact code of
        each triangle
    """
    triangles = np.asarray(triangles, dtype=np.float64).reshape(-1, 3, 3)
    n = len(triangles)
    contacts = np.full(n, Contact.MISS, dtype=np.int8)
    if n == 0:
        return np.empty((0, 2, 2)), contacts

    # Sort each triangle's vertices by ascending Z: p0 <= p1 <= p2
    order = np.argsort(triangles[:, :, 2], axis=1, kind="stable")
    pts = np.take_along_axis(triangles, order[:, :, None], axis=1)
    p0, p1, p2 = pts[:, 0], pts[:, 1], pts[:, 2]

    spans = (z >= p0[:, 2]) & (z <= p2[:, 2])
    coplanar = spans & (p0[:, 2] == z) & (p2[:, 2] == z)
    contacts[coplanar] = Contact.COPLANAR

    active = spans & ~coplanar
    if not active.any():
        return np.empty((0, 2, 2)), contacts

    p0, p1, p2 = p0[active], p1[active], p2[active]

    # The p0-p2 edge always spans the plane
    a = _interpolate_xy(p0, p2, z)
    lower = (z <= p1[:, 2])[:, None]
    b = _interpolate_xy(np.where(lower, p0, p1), np.where(lower, p1, p2), z)

    grazing = (np.abs(a - b) < GRAZE_EPSILON).all(axis=1)
    active_idx = np.flatnonzero(active)
    contacts[active_idx[grazing]] = Contact.GRAZING
    contacts[active_idx[~grazing]] = Contact.CROSSING

    segments = np.stack([a, b], axis=1)[~grazing]
    return segments, contacts


def intersect(triangle: NDArray[np.float64] | list, z: float) -> Segment | None:
    """Return the segment where the plane Z = z crosses one triangle.

    Returns None when the plane misses the triangle, contains it, or only
    touches a vertex or edge.
    """
    segments, _ = intersect_many(np.asarray(triangle, dtype=np.float64)[None], z)
    if len(segments) == 0:
        return None
    (ax, ay), (bx, by) = segments[0]
    return Segment(p1=(float(ax), float(ay)), p2=(float(bx), float(by)))


def contact_diagnostics(contacts: NDArray[np.int8]) -> SliceDiagnostics:
    """Count dropped contacts by kind."""
    return SliceDiagnostics(
        coplanar=int(np.count_nonzero(contacts == Contact.COPLANAR)),
        grazing=int(np.count_nonzero(contacts == Contact.GRAZING)),
    )
