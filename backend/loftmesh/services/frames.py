"""
Control frames and automatic orientation of interior frames.

A :class:`ControlFrame` is one station of the sweep: position,
rotation, non-uniform scale and the two Bezier handle offsets.  The
frame solver recomputes the rotation of every interior frame from its
two neighbours according to a :class:`RotationPolicy`.  Policies are
dispatched through a handler table.

The first and last frames are never modified.  Interior frames are
solved in order and written back in place, so frame *i* sees the
already-updated frame *i - 1* when choosing which side is up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Sequence

import numpy as np

from . import quaternion as quat
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_EPS = 1e-9


class RotationPolicy(str, Enum):
    """How interior control frames are oriented before sweeping."""

    MANUAL = "manual"
    AUTO_NORMALS = "auto_normals"
    AUTO_ORIENTATION = "auto_orientation"
    AUTO_BOTH = "auto_both"

    @classmethod
    def coerce(cls, value: "RotationPolicy | str") -> "RotationPolicy":
        """Accept enum members or their names/values in any case."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        for member in cls:
            if key in (member.value, member.name.lower(), member.value.replace("_", "")):
                return member
        raise ConfigurationError(f"Unsupported control point rotation: {value!r}")


def _vec3(values) -> np.ndarray:
    return np.asarray(values, dtype=float).reshape(3)


@dataclass
class ControlFrame:
    """One oriented station along the sweep path.

    Attributes:
        position: Location of the frame.
        rotation: Unit quaternion ``(w, x, y, z)``.
        scale: Per-axis scale applied to profile points.
        handle_forward: Bezier handle offset towards the next frame.
        handle_backward: Bezier handle offset towards the previous frame.
    """

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=quat.identity)
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    handle_forward: np.ndarray = field(default_factory=lambda: np.zeros(3))
    handle_backward: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.position = _vec3(self.position)
        self.rotation = quat.as_quaternion(self.rotation)
        self.scale = _vec3(self.scale)
        self.handle_forward = _vec3(self.handle_forward)
        self.handle_backward = _vec3(self.handle_backward)

    @property
    def forward(self) -> np.ndarray:
        return quat.forward_of(self.rotation)

    @property
    def up(self) -> np.ndarray:
        return quat.up_of(self.rotation)

    def transform_point(self, point) -> np.ndarray:
        return transform_point(point, self.position, self.rotation, self.scale)

    def transform_direction(self, direction) -> np.ndarray:
        return quat.rotate(self.rotation, _vec3(direction))


def transform_point(point, position: np.ndarray, rotation: np.ndarray, scale: np.ndarray) -> np.ndarray:
    """``position + rotation * (point * scale)``; 2-D points get z = 0."""
    p = np.zeros(3)
    values = np.asarray(point, dtype=float).ravel()
    p[: len(values)] = values[:3]
    return position + quat.rotate(rotation, p * scale)


# ----------------------------------------------------------------------
# Rotation policies


@dataclass
class _Neighbourhood:
    tangent: np.ndarray
    bent_normal: np.ndarray


PolicyHandler = Callable[[ControlFrame, _Neighbourhood], np.ndarray]


def _keep(frame: ControlFrame, hood: _Neighbourhood) -> np.ndarray:
    return frame.rotation


def _auto_normals(frame: ControlFrame, hood: _Neighbourhood) -> np.ndarray:
    return quat.look_rotation(frame.forward, hood.bent_normal)


def _auto_orientation(frame: ControlFrame, hood: _Neighbourhood) -> np.ndarray:
    return quat.look_rotation(hood.tangent, frame.up)


def _auto_both(frame: ControlFrame, hood: _Neighbourhood) -> np.ndarray:
    return quat.look_rotation(hood.tangent, hood.bent_normal)


POLICY_HANDLERS: Dict[RotationPolicy, PolicyHandler] = {
    RotationPolicy.MANUAL: _keep,
    RotationPolicy.AUTO_NORMALS: _auto_normals,
    RotationPolicy.AUTO_ORIENTATION: _auto_orientation,
    RotationPolicy.AUTO_BOTH: _auto_both,
}


def _neighbourhood(prev: ControlFrame, frame: ControlFrame, nxt: ControlFrame) -> _Neighbourhood:
    dir_from_prev = frame.position - prev.position
    dir_to_next = nxt.position - frame.position
    tangent = dir_from_prev + dir_to_next
    if float(np.linalg.norm(tangent)) < _EPS:
        tangent = frame.forward

    neighbour_up = prev.up + nxt.up
    bent = np.cross(dir_from_prev, dir_to_next)
    if float(np.linalg.norm(bent)) < _EPS:
        # Straight run: there is no bend to define a normal.
        bent = neighbour_up
        if float(np.linalg.norm(bent)) < _EPS:
            bent = frame.up
    elif float(np.dot(neighbour_up, bent)) < 0.0:
        bent = -bent
    return _Neighbourhood(tangent=tangent, bent_normal=bent)


def solve_frame_rotations(
    frames: Sequence[ControlFrame],
    policy: "RotationPolicy | str",
) -> None:
    """Re-orient the interior frames of *frames* in place.

    The bent-normal sign of each interior frame comes from the up
    vectors its neighbours had on entry, so the result does not depend
    on the order the frames are visited.

    Raises:
        ConfigurationError: If *policy* is not a known rotation policy.
    """
    policy = RotationPolicy.coerce(policy)
    handler = POLICY_HANDLERS.get(policy)
    if handler is None:
        raise ConfigurationError(f"No handler for control point rotation {policy!r}")
    if policy is RotationPolicy.MANUAL or len(frames) < 3:
        return

    # Every neighbourhood is taken from the authored rotations before any
    # frame is rewritten.
    hoods = [_neighbourhood(frames[i - 1], frames[i], frames[i + 1]) for i in range(1, len(frames) - 1)]
    for frame, hood in zip(frames[1:-1], hoods):
        frame.rotation = quat.normalize(handler(frame, hood))
    logger.debug("Solved %d interior control frames with policy %s", len(frames) - 2, policy.value)
