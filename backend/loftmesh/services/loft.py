"""
Loft engine: sweep a 2-D profile through a list of control frames.

The public entry points are:

- ``loft(profile, frames, settings)`` – build a :class:`SweepMesh` or
  raise.  Fewer than two frames raise
  :class:`InsufficientControlPointsError`; an empty profile raises
  :class:`EmptyProfileError`.
- ``extrude_shape(profile, frames, settings)`` – same as ``loft`` but
  downgrades those two recoverable conditions to a logged warning and
  returns ``None``.
- ``build_preview_mesh(profile, length)`` – straight extrusion along
  +Z, handy for showing a profile on its own.

Sampling: each of the ``F - 1`` spans is sampled ``resolution`` times
(``t = span + step / resolution``) and one final ring is taken at the
last frame, giving ``resolution * (F - 1) + 1`` rings of ``P`` vertices.
Every profile edge ``(a, b)`` contributes two triangles per pair of
consecutive rings.  With ``close_shape`` the point loop is
triangulated once and placed at both ends with opposite winding.

When a rotation policy other than ``manual`` is configured the
interior control frames passed in are re-oriented in place before
sweeping.  Pass copies if the caller's frames must stay untouched.

Set the ``LOFT_DEBUG`` environment variable to log a summary of each
call.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from . import quaternion as quat
from .curves import bezier_orientation, bezier_position
from .errors import ConfigurationError, EmptyProfileError, InsufficientControlPointsError, RecoverableLoftError
from .frames import ControlFrame, RotationPolicy, solve_frame_rotations
from .profile import Profile
from .triangulation import reverse_winding, triangulate

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION = 5


class InterpolationMethod(str, Enum):
    LINEAR = "linear"
    BEZIER = "bezier"

    @classmethod
    def coerce(cls, value: "InterpolationMethod | str") -> "InterpolationMethod":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if key == member.value:
                return member
        raise ConfigurationError(f"Unsupported interpolation method: {value!r}")


@dataclass
class LoftSettings:
    """Options for a single loft call.

    Attributes:
        resolution: Samples per span between two control frames (>= 1).
        interpolation: Linear or Bezier interpolation between frames.
        rotation_policy: How interior frames are re-oriented first.
        recalculate_normals: Replace profile normals with smoothed
            per-vertex normals computed from the triangles.
        close_shape: Add triangulated caps at both ends.
    """

    resolution: int = DEFAULT_RESOLUTION
    interpolation: InterpolationMethod = InterpolationMethod.LINEAR
    rotation_policy: RotationPolicy = RotationPolicy.MANUAL
    recalculate_normals: bool = False
    close_shape: bool = False

    def __post_init__(self) -> None:
        self.interpolation = InterpolationMethod.coerce(self.interpolation)
        self.rotation_policy = RotationPolicy.coerce(self.rotation_policy)
        if isinstance(self.resolution, bool) or int(self.resolution) != self.resolution or self.resolution < 1:
            raise ConfigurationError(f"resolution must be an integer >= 1, got {self.resolution!r}")
        self.resolution = int(self.resolution)


@dataclass
class SweepMesh:
    """Mesh buffers produced by the loft."""

    vertices: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    normals: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    uvs: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)))
    triangles: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.triangles.shape[0]) // 3

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Axis-aligned bounding box ``(min_xyz, max_xyz)``."""
        if self.vertex_count == 0:
            return np.zeros(3), np.zeros(3)
        return self.vertices.min(axis=0), self.vertices.max(axis=0)


@dataclass
class _Sample:
    span: int
    local_t: float
    t: float


def ring_samples(frame_count: int, resolution: int) -> List[_Sample]:
    """Sampling parameters for every ring.

    The last control frame contributes exactly one ring.
    """
    samples: List[_Sample] = []
    for span in range(frame_count - 1):
        for step in range(resolution):
            local_t = step / resolution
            samples.append(_Sample(span=span, local_t=local_t, t=span + local_t))
    samples.append(_Sample(span=frame_count - 2, local_t=1.0, t=float(frame_count - 1)))
    return samples


def _lerp(a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
    return a * (1.0 - t) + b * t


def interpolate_linear(start: ControlFrame, end: ControlFrame, t: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Position, rotation and scale between two frames at local *t*."""
    return (
        _lerp(start.position, end.position, t),
        quat.slerp(start.rotation, end.rotation, t),
        _lerp(start.scale, end.scale, t),
    )


def interpolate_bezier(start: ControlFrame, end: ControlFrame, t: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    position = bezier_position(start.position, start.handle_forward, end.position, end.handle_backward, t)
    try:
        rotation = bezier_orientation(
            start.position,
            start.handle_forward,
            start.up,
            end.position,
            end.handle_backward,
            end.up,
            t,
        )
    except ValueError:
        # Coincident frames without handles have no direction to face.
        rotation = quat.slerp(start.rotation, end.rotation, t)
    return position, rotation, _lerp(start.scale, end.scale, t)


_INTERPOLATORS = {
    InterpolationMethod.LINEAR: interpolate_linear,
    InterpolationMethod.BEZIER: interpolate_bezier,
}


def _smooth_normals(vertices: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """Per-vertex average of the unit normals of adjacent faces."""
    normals = np.zeros_like(vertices)
    if triangles.size == 0:
        return normals
    tris = triangles.reshape(-1, 3)
    v0 = vertices[tris[:, 0]]
    v1 = vertices[tris[:, 1]]
    v2 = vertices[tris[:, 2]]
    face = np.cross(v1 - v0, v2 - v0)
    lengths = np.linalg.norm(face, axis=1)
    valid = lengths > 1e-12
    face[valid] /= lengths[valid, None]
    face[~valid] = 0.0
    for k in range(3):
        np.add.at(normals, tris[:, k], face)
    lengths = np.linalg.norm(normals, axis=1)
    nonzero = lengths > 1e-12
    normals[nonzero] /= lengths[nonzero, None]
    return normals


def _side_wall_triangles(edges: Sequence[int], ring_count: int, ring_size: int) -> np.ndarray:
    pairs = np.asarray(edges, dtype=np.int64).reshape(-1, 2)
    if ring_count < 2 or pairs.size == 0:
        return np.zeros(0, dtype=np.int64)
    a = pairs[:, 0]
    b = pairs[:, 1]
    blocks = []
    for ring in range(ring_count - 1):
        base = ring * ring_size
        nxt = base + ring_size
        quads = np.column_stack((base + a, base + b, nxt + a, nxt + a, base + b, nxt + b))
        blocks.append(quads.ravel())
    return np.concatenate(blocks)


def _cap_triangles(profile: Profile, ring_count: int) -> np.ndarray:
    """Caps for both ends; the start cap faces backwards along the sweep."""
    cap = reverse_winding(triangulate(profile.points))
    if not cap:
        return np.zeros(0, dtype=np.int64)
    start = np.asarray(cap, dtype=np.int64)
    last_base = (ring_count - 1) * profile.point_count
    end = np.asarray(reverse_winding(cap), dtype=np.int64) + last_base
    return np.concatenate((start, end))


def loft(
    profile: Profile,
    frames: Sequence[ControlFrame],
    settings: Optional[LoftSettings] = None,
) -> SweepMesh:
    """Sweep *profile* through *frames*.

    Raises:
        InsufficientControlPointsError: Fewer than two frames.
        EmptyProfileError: The profile has no points.
        ConfigurationError: Unsupported settings.
        ProfileIndexError: The profile references missing points.
    """
    settings = settings or LoftSettings()
    if len(frames) < 2:
        raise InsufficientControlPointsError(
            f"At least 2 control points needed to extrude, got {len(frames)}"
        )
    if profile.point_count == 0:
        raise EmptyProfileError("No shape points to extrude")
    profile.validate()

    interpolate = _INTERPOLATORS.get(settings.interpolation)
    if interpolate is None:
        raise ConfigurationError(f"Unsupported interpolation method: {settings.interpolation!r}")

    solve_frame_rotations(frames, settings.rotation_policy)

    points = np.zeros((profile.point_count, 3))
    points[:, :2] = np.asarray(profile.points, dtype=float)
    profile_normals = np.zeros((profile.point_count, 3))
    profile_normals[:, :2] = np.asarray(profile.normals, dtype=float)
    us = np.asarray(profile.us, dtype=float)

    samples = ring_samples(len(frames), settings.resolution)
    ring_size = profile.point_count
    ring_count = len(samples)
    v_scale = 1.0 / (len(frames) - 1)

    vertices = np.empty((ring_count * ring_size, 3))
    normals = np.empty((ring_count * ring_size, 3))
    uvs = np.empty((ring_count * ring_size, 2))

    for ring, sample in enumerate(samples):
        position, rotation, scale = interpolate(frames[sample.span], frames[sample.span + 1], sample.local_t)
        lo = ring * ring_size
        hi = lo + ring_size
        vertices[lo:hi] = position + quat.rotate_many(rotation, points * scale)
        normals[lo:hi] = quat.rotate_many(rotation, profile_normals)
        uvs[lo:hi, 0] = us
        uvs[lo:hi, 1] = sample.t * v_scale

    triangles = _side_wall_triangles(profile.edges, ring_count, ring_size)
    if settings.close_shape:
        triangles = np.concatenate((triangles, _cap_triangles(profile, ring_count)))

    if settings.recalculate_normals:
        normals = _smooth_normals(vertices, triangles)

    if os.getenv("LOFT_DEBUG"):
        logger.debug(
            "Lofted %d points through %d frames: rings=%d vertices=%d triangles=%d interpolation=%s rotation=%s",
            ring_size,
            len(frames),
            ring_count,
            vertices.shape[0],
            triangles.shape[0] // 3,
            settings.interpolation.value,
            settings.rotation_policy.value,
        )

    return SweepMesh(vertices=vertices, normals=normals, uvs=uvs, triangles=triangles)


def extrude_shape(
    profile: Optional[Profile],
    frames: Sequence[ControlFrame],
    settings: Optional[LoftSettings] = None,
) -> Optional[SweepMesh]:
    """Like :func:`loft` but returns ``None`` with a warning for transient states.

    A missing or empty profile and fewer than two control frames are
    normal while a sweep is being edited, so they are logged instead of
    raised.  Every other error propagates.
    """
    if profile is None:
        logger.warning("No shape selected, nothing to extrude")
        return None
    try:
        return loft(profile, frames, settings)
    except RecoverableLoftError as exc:
        logger.warning("Skipping extrusion: %s", exc)
        return None


def build_preview_mesh(profile: Profile, length: float = 1.0) -> SweepMesh:
    """Extrude *profile* straight along +Z by *length*."""
    frames = [
        ControlFrame(position=(0.0, 0.0, 0.0)),
        ControlFrame(position=(0.0, 0.0, float(length))),
    ]
    return loft(profile, frames, LoftSettings(resolution=1))
