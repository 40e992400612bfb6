"""Rebuild polylines from a layer's unordered segments.

Greedy chaining: seed a path with one segment, then keep attaching any
remaining segment whose endpoint touches the path's head or tail until none
does. Every input segment ends up in exactly one output contour.

Each extension rescans the remaining pool, so cost is O(n^2) in the number
of segments in the layer. The scan itself is vectorized with numpy.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from ..core.geometry import Contour, Segment

logger = logging.getLogger(__name__)

# Squared distance below which two endpoints are the same point
JOIN_EPSILON = 1e-5


def _as_array(segments: Sequence[Segment] | NDArray[np.float64]) -> NDArray[np.float64]:
    if isinstance(segments, np.ndarray):
        return np.asarray(segments, dtype=np.float64).reshape(-1, 2, 2)
    return np.array([[s.p1, s.p2] for s in segments], dtype=np.float64).reshape(-1, 2, 2)


def _close_enough(a: NDArray[np.float64], b: NDArray[np.float64]) -> bool:
    return float(np.sum((a - b) ** 2)) < JOIN_EPSILON


def stitch(segments: Sequence[Segment] | NDArray[np.float64]) -> list[Contour]:
    """Chain segments into contours.

    Args:
        segments: Segment objects or an Mx2x2 array of endpoint pairs

    Returns:
        List of contours. A contour is closed when its two ends meet, in
        which case the repeated end point is dropped.
    """
    segs = _as_array(segments)
    remaining = np.ones(len(segs), dtype=bool)
    contours: list[Contour] = []

    while remaining.any():
        seed = int(np.flatnonzero(remaining)[-1])
        remaining[seed] = False
        path = deque([segs[seed, 0], segs[seed, 1]])

        while True:
            pool = np.flatnonzero(remaining)
            if len(pool) == 0:
                break

            candidates = segs[pool]
            near_tail = np.sum((candidates - path[-1]) ** 2, axis=2) < JOIN_EPSILON
            near_head = np.sum((candidates - path[0]) ** 2, axis=2) < JOIN_EPSILON
            # Per segment, test p1~tail, p2~tail, p1~head, p2~head in order
            hits = np.column_stack([near_tail, near_head])

            matched = np.flatnonzero(hits.any(axis=1))
            if len(matched) == 0:
                break

            row = int(matched[0])
            which = int(np.argmax(hits[row]))
            idx = pool[row]
            remaining[idx] = False
            p1, p2 = segs[idx]

            if which == 0:
                path.append(p2)
            elif which == 1:
                path.append(p1)
            elif which == 2:
                path.appendleft(p2)
            else:
                path.appendleft(p1)

        points = np.array(path)
        closed = len(points) > 2 and _close_enough(points[0], points[-1])
        if closed:
            points = points[:-1]
        contours.append(Contour(points=points, closed=closed))

    logger.debug(f"Stitched {len(segs)} segments into {len(contours)} contours")
    return contours
