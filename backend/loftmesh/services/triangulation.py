"""
Ear-clipping triangulation for the end caps of a closed sweep.

The input is an ordered, simple polygon (the boundary loop), not the
profile's edge graph.  Triangles are returned as a flat index list
that keeps the winding of the input: a counter-clockwise polygon gives
counter-clockwise triangles.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from .errors import DegeneratePolygonError

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-12


def signed_area(points: Sequence[Sequence[float]]) -> float:
    """Shoelace area of a polygon; positive for counter-clockwise order."""
    if len(points) < 3:
        return 0.0
    pts = np.asarray(points, dtype=float)[:, :2]
    x = pts[:, 0]
    y = pts[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def _unit_box(poly: np.ndarray) -> np.ndarray:
    """Translate and scale *poly* so its bounding box diagonal is 1."""
    origin = poly.min(axis=0)
    extent = float(np.linalg.norm(poly.max(axis=0) - origin))
    if extent < np.finfo(float).tiny:
        return poly - origin
    return (poly - origin) / extent


def _cross_z(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    ab = b - a
    ac = c - a
    return float(ab[0] * ac[1] - ab[1] * ac[0])


def _point_in_triangle(p: np.ndarray, a: np.ndarray, b: np.ndarray, c: np.ndarray, tol: float) -> bool:
    # barycentric
    v0 = c - a
    v1 = b - a
    v2 = p - a
    dot00 = float(np.dot(v0, v0))
    dot01 = float(np.dot(v0, v1))
    dot02 = float(np.dot(v0, v2))
    dot11 = float(np.dot(v1, v1))
    dot12 = float(np.dot(v1, v2))
    denom = dot00 * dot11 - dot01 * dot01
    if abs(denom) < tol:
        return False
    inv = 1.0 / denom
    u = (dot11 * dot02 - dot01 * dot12) * inv
    v = (dot00 * dot12 - dot01 * dot02) * inv
    return (u >= -tol) and (v >= -tol) and (u + v <= 1.0 + tol)


def triangulate(
    points: Sequence[Sequence[float]],
    strict: bool = False,
    tol: float = DEFAULT_TOLERANCE,
) -> List[int]:
    """Triangulate a simple polygon by ear clipping.

    Args:
        points: Ordered polygon vertices (x, y), either winding.
        strict: Raise instead of returning an empty result when fewer
            than three points are given.
        tol: Tolerance for convexity and containment tests, relative to
            the size of the polygon.

    Returns:
        A flat list of vertex indices, three per triangle.  A simple
        polygon of n vertices yields n - 2 triangles.  Self-intersecting
        or degenerate input stops at the first round without an ear and
        returns the triangles found so far.

    Raises:
        DegeneratePolygonError: With ``strict`` and fewer than 3 points.
    """
    n = len(points)
    if n < 3:
        if strict:
            raise DegeneratePolygonError(f"cannot triangulate a polygon with {n} points")
        return []

    poly = _unit_box(np.asarray(points, dtype=float)[:, :2])
    orientation = 1.0 if signed_area(poly) >= 0.0 else -1.0  # +1 => CCW, -1 => CW

    indices = list(range(n))
    triangles: List[int] = []

    guard = 0
    while len(indices) > 3 and guard < n * n:
        m = len(indices)
        ear_found = False

        for i in range(m):
            i_prev = indices[(i - 1) % m]
            i_curr = indices[i]
            i_next = indices[(i + 1) % m]

            a = poly[i_prev]
            b = poly[i_curr]
            c = poly[i_next]

            if _cross_z(a, b, c) * orientation <= tol:
                continue

            ok = True
            for j in indices:
                if j in (i_prev, i_curr, i_next):
                    continue
                if _point_in_triangle(poly[j], a, b, c, tol):
                    ok = False
                    break
            if not ok:
                continue

            triangles.extend((i_prev, i_curr, i_next))
            del indices[i]
            ear_found = True
            break

        if not ear_found:
            logger.warning(
                "Ear clipping found no ear with %d of %d vertices left; polygon is not simple",
                len(indices),
                n,
            )
            return triangles

        guard += 1

    triangles.extend(indices)
    return triangles


def reverse_winding(triangles: Sequence[int]) -> List[int]:
    """Flip every triangle of a flat index list."""
    flipped: List[int] = []
    for k in range(0, len(triangles) - 2, 3):
        flipped.extend((triangles[k], triangles[k + 2], triangles[k + 1]))
    return flipped
