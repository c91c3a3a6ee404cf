"""
Quaternion helpers used by the control frames and the loft engine.

Quaternions are numpy arrays of shape (4,) in ``(w, x, y, z)`` order.
The local frame convention is right handed with +Z as *forward* and +Y
as *up*, so an identity rotation sweeps a profile drawn in the XY plane
along +Z.
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

EPS = 1e-12

FORWARD = np.array([0.0, 0.0, 1.0])
UP = np.array([0.0, 1.0, 0.0])


def identity() -> np.ndarray:
    return np.array([1.0, 0.0, 0.0, 0.0])


def as_quaternion(values: Iterable[float]) -> np.ndarray:
    """Return *values* as a normalised float quaternion."""
    q = np.asarray(values, dtype=float).reshape(4)
    return normalize(q)


def normalize(q: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(q))
    if n < EPS:
        return identity()
    return q / n


def multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product ``a * b`` (apply *b* first, then *a*)."""
    aw, ax, ay, az = a
    bw, bx, by, bz = b
    return np.array(
        [
            aw * bw - ax * bx - ay * by - az * bz,
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw,
        ]
    )


def from_axis_angle(axis: Iterable[float], angle: float) -> np.ndarray:
    """Rotation of *angle* radians about *axis*."""
    a = np.asarray(axis, dtype=float)
    n = float(np.linalg.norm(a))
    if n < EPS:
        return identity()
    a = a / n
    half = 0.5 * angle
    return np.concatenate(([math.cos(half)], a * math.sin(half)))


def rotate(q: np.ndarray, v: Iterable[float]) -> np.ndarray:
    """Rotate vector *v* by quaternion *q*."""
    v = np.asarray(v, dtype=float)
    w = q[0]
    u = q[1:]
    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


def rotate_many(q: np.ndarray, vs: np.ndarray) -> np.ndarray:
    """Rotate an (N, 3) array of vectors by *q*."""
    return vs @ to_matrix(q).T


def to_matrix(q: np.ndarray) -> np.ndarray:
    w, x, y, z = q
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def from_matrix(m: np.ndarray) -> np.ndarray:
    """Convert a proper rotation matrix into a unit quaternion."""
    trace = m[0, 0] + m[1, 1] + m[2, 2]
    if trace > 0.0:
        s = 2.0 * math.sqrt(trace + 1.0)
        q = np.array(
            [
                0.25 * s,
                (m[2, 1] - m[1, 2]) / s,
                (m[0, 2] - m[2, 0]) / s,
                (m[1, 0] - m[0, 1]) / s,
            ]
        )
    elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
        s = 2.0 * math.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2])
        q = np.array(
            [
                (m[2, 1] - m[1, 2]) / s,
                0.25 * s,
                (m[0, 1] + m[1, 0]) / s,
                (m[0, 2] + m[2, 0]) / s,
            ]
        )
    elif m[1, 1] > m[2, 2]:
        s = 2.0 * math.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2])
        q = np.array(
            [
                (m[0, 2] - m[2, 0]) / s,
                (m[0, 1] + m[1, 0]) / s,
                0.25 * s,
                (m[1, 2] + m[2, 1]) / s,
            ]
        )
    else:
        s = 2.0 * math.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1])
        q = np.array(
            [
                (m[1, 0] - m[0, 1]) / s,
                (m[0, 2] + m[2, 0]) / s,
                (m[1, 2] + m[2, 1]) / s,
                0.25 * s,
            ]
        )
    return normalize(q)


def look_rotation(forward: Iterable[float], up: Iterable[float]) -> np.ndarray:
    """Rotation whose +Z axis points along *forward* and +Y leans towards *up*.

    *up* only needs to be roughly perpendicular to *forward*; it is
    re-orthogonalised here.  When *up* is parallel to *forward* an
    arbitrary perpendicular is used instead.

    Raises:
        ValueError: If *forward* has zero length.
    """
    f = np.asarray(forward, dtype=float)
    fn = float(np.linalg.norm(f))
    if fn < EPS:
        raise ValueError("look_rotation requires a non-zero forward vector")
    f = f / fn
    u = np.asarray(up, dtype=float)
    r = np.cross(u, f)
    rn = float(np.linalg.norm(r))
    if rn < 1e-9:
        # Up is parallel to forward; pick any axis that is not.
        fallback = UP if abs(f[1]) < 0.9 else np.array([1.0, 0.0, 0.0])
        r = np.cross(fallback, f)
        rn = float(np.linalg.norm(r))
    r = r / rn
    u = np.cross(f, r)
    return from_matrix(np.column_stack((r, u, f)))


def forward_of(q: np.ndarray) -> np.ndarray:
    return rotate(q, FORWARD)


def up_of(q: np.ndarray) -> np.ndarray:
    return rotate(q, UP)


def slerp(a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
    """Spherical linear interpolation along the shortest arc."""
    d = float(np.dot(a, b))
    if d < 0.0:
        b = -b
        d = -d
    if d > 0.9995:
        return normalize(a * (1.0 - t) + b * t)
    theta = math.acos(min(d, 1.0))
    sin_theta = math.sin(theta)
    wa = math.sin((1.0 - t) * theta) / sin_theta
    wb = math.sin(t * theta) / sin_theta
    return normalize(a * wa + b * wb)


def same_rotation(a: np.ndarray, b: np.ndarray, tol: float = 1e-6) -> bool:
    """True when *a* and *b* describe the same orientation (q and -q match)."""
    return abs(abs(float(np.dot(normalize(a), normalize(b)))) - 1.0) <= tol
