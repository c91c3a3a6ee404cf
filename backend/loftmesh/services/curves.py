"""
Cubic Bezier evaluation between two control frames.

Each span is the cubic with control points ``p0``, ``p0 + h0``,
``p1 + h1`` and ``p1`` where ``h0`` is the start frame's forward handle
and ``h1`` the end frame's backward handle.
"""

from __future__ import annotations

import numpy as np

from . import quaternion as quat


def _control_points(p0, h0, p1, h1) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    c0 = np.asarray(p0, dtype=float)
    c3 = np.asarray(p1, dtype=float)
    c1 = c0 + np.asarray(h0, dtype=float)
    c2 = c3 + np.asarray(h1, dtype=float)
    return c0, c1, c2, c3


def bezier_position(p0, h0, p1, h1, t: float) -> np.ndarray:
    """Point on the span at parameter *t* in [0, 1]."""
    c0, c1, c2, c3 = _control_points(p0, h0, p1, h1)
    s = 1.0 - t
    return (s * s * s) * c0 + (3.0 * s * s * t) * c1 + (3.0 * s * t * t) * c2 + (t * t * t) * c3


def bezier_tangent(p0, h0, p1, h1, t: float) -> np.ndarray:
    """First derivative of the span at *t* (not normalised)."""
    c0, c1, c2, c3 = _control_points(p0, h0, p1, h1)
    s = 1.0 - t
    return 3.0 * s * s * (c1 - c0) + 6.0 * s * t * (c2 - c1) + 3.0 * t * t * (c3 - c2)


def bezier_orientation(p0, h0, up0, p1, h1, up1, t: float) -> np.ndarray:
    """Rotation facing along the curve with an up vector blended between ends.

    With zero-length handles the derivative vanishes at the end points;
    the chord ``p1 - p0`` is used as the forward direction there.

    Raises:
        ValueError: If the span has no direction at all (coincident end
            points and zero handles).
    """
    tangent = bezier_tangent(p0, h0, p1, h1, t)
    if float(np.linalg.norm(tangent)) < 1e-9:
        tangent = np.asarray(p1, dtype=float) - np.asarray(p0, dtype=float)
    up = (1.0 - t) * np.asarray(up0, dtype=float) + t * np.asarray(up1, dtype=float)
    return quat.look_rotation(tangent, up)
