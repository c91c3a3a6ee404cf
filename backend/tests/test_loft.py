"""
Tests for the loft engine.

A unit square swept along +Z is used throughout: its side walls must
face away from the sweep axis and its caps must face backwards at the
start and forwards at the end.
"""

from __future__ import annotations

import logging
import math
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from loftmesh.services import quaternion as quat  # type: ignore
from loftmesh.services.errors import (  # type: ignore
    ConfigurationError,
    EmptyProfileError,
    InsufficientControlPointsError,
    ProfileIndexError,
)
from loftmesh.services.frames import ControlFrame, RotationPolicy  # type: ignore
from loftmesh.services.loft import (  # type: ignore
    InterpolationMethod,
    LoftSettings,
    build_preview_mesh,
    extrude_shape,
    interpolate_linear,
    loft,
    ring_samples,
)
from loftmesh.services.profile import Profile  # type: ignore


def make_square() -> Profile:
    return Profile.from_loop([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])


def make_polygon(n: int, radius: float = 1.0) -> Profile:
    return Profile.from_loop(
        [(radius * math.cos(2 * math.pi * k / n), radius * math.sin(2 * math.pi * k / n)) for k in range(n)]
    )


def straight_frames(count: int, spacing: float = 1.0) -> list[ControlFrame]:
    return [ControlFrame(position=(0.0, 0.0, k * spacing)) for k in range(count)]


def face_normals(vertices: np.ndarray, indices: np.ndarray) -> np.ndarray:
    tris = indices.reshape(-1, 3)
    return np.cross(vertices[tris[:, 1]] - vertices[tris[:, 0]], vertices[tris[:, 2]] - vertices[tris[:, 0]])


def test_square_example() -> None:
    """Two frames, resolution 1: two rings of four and four side quads."""
    mesh = loft(make_square(), straight_frames(2), LoftSettings(resolution=1))

    assert mesh.vertex_count == 8
    assert mesh.triangles.shape[0] == 3 * 1 * 1 * 8
    assert mesh.triangle_count == 8
    np.testing.assert_allclose(mesh.vertices[:4, 2], 0.0)
    np.testing.assert_allclose(mesh.vertices[4:, 2], 1.0)
    np.testing.assert_allclose(mesh.vertices[:4, :2], make_square().points)


def test_vertex_and_index_counts() -> None:
    profile = make_polygon(5)
    frames = straight_frames(4)
    mesh = loft(profile, frames, LoftSettings(resolution=3))
    assert mesh.vertex_count == (3 * (4 - 1) + 1) * 5
    assert mesh.triangles.shape[0] == 3 * 3 * (4 - 1) * len(profile.edges)
    assert mesh.normals.shape == mesh.vertices.shape
    assert mesh.uvs.shape == (mesh.vertex_count, 2)


def test_last_frame_contributes_one_ring() -> None:
    samples = ring_samples(3, 4)
    assert len(samples) == 4 * 2 + 1
    assert [s.t for s in samples[-2:]] == [1.75, 2.0]
    assert samples[-1].span == 1 and samples[-1].local_t == 1.0


def test_close_shape_adds_two_caps() -> None:
    profile = make_polygon(6)
    open_mesh = loft(profile, straight_frames(3), LoftSettings(resolution=2))
    closed_mesh = loft(profile, straight_frames(3), LoftSettings(resolution=2, close_shape=True))
    assert closed_mesh.vertex_count == open_mesh.vertex_count
    assert closed_mesh.triangles.shape[0] - open_mesh.triangles.shape[0] == 2 * 3 * (6 - 2)


def test_small_profile_still_gets_caps() -> None:
    profile = make_polygon(6, radius=1e-7)
    open_mesh = loft(profile, straight_frames(2), LoftSettings(resolution=1))
    closed_mesh = loft(profile, straight_frames(2), LoftSettings(resolution=1, close_shape=True))
    assert closed_mesh.triangles.shape[0] - open_mesh.triangles.shape[0] == 2 * 3 * (6 - 2)


def test_caps_face_outward_at_both_ends() -> None:
    profile = make_square()
    mesh = loft(profile, straight_frames(2, spacing=2.0), LoftSettings(resolution=3, close_shape=True))
    cap_len = 3 * (profile.point_count - 2)
    start_cap = mesh.triangles[-2 * cap_len:-cap_len]
    end_cap = mesh.triangles[-cap_len:]

    start_normals = face_normals(mesh.vertices, start_cap)
    end_normals = face_normals(mesh.vertices, end_cap)

    assert np.all(mesh.vertices[start_cap, 2] == 0.0)
    assert np.allclose(mesh.vertices[end_cap, 2], 2.0)
    assert np.all(start_normals[:, 2] < 0.0)
    assert np.all(end_normals[:, 2] > 0.0)


def test_side_walls_face_outward() -> None:
    mesh = loft(make_square(), straight_frames(3), LoftSettings(resolution=2))
    tris = mesh.triangles.reshape(-1, 3)
    centroids = mesh.vertices[tris].mean(axis=1)
    outward = centroids - np.array([0.5, 0.5, 0.0])
    outward[:, 2] = 0.0
    normals = face_normals(mesh.vertices, mesh.triangles)
    assert np.all(np.einsum("ij,ij->i", normals, outward) > 0.0)


def test_uvs_use_profile_u_and_normalised_t() -> None:
    profile = make_square()
    mesh = loft(profile, straight_frames(3), LoftSettings(resolution=2))
    vs = mesh.uvs[:, 1].reshape(-1, profile.point_count)
    np.testing.assert_allclose(vs[:, 0], [0.0, 0.25, 0.5, 0.75, 1.0])
    np.testing.assert_allclose(mesh.uvs[:4, 0], profile.us)
    np.testing.assert_allclose(mesh.uvs[-4:, 0], profile.us)


def test_profile_normals_are_rotated_only() -> None:
    profile = make_square()
    turned = quat.from_axis_angle((0.0, 0.0, 1.0), math.pi / 2)
    frames = [
        ControlFrame(position=(5.0, 0.0, 0.0), rotation=turned, scale=(3.0, 3.0, 3.0)),
        ControlFrame(position=(5.0, 0.0, 1.0), rotation=turned, scale=(3.0, 3.0, 3.0)),
    ]
    mesh = loft(profile, frames, LoftSettings(resolution=1))
    nx, ny = profile.normals[0]
    np.testing.assert_allclose(mesh.normals[0], [-ny, nx, 0.0], atol=1e-12)
    # Point (1, 0) is scaled, turned onto +Y and moved by the frame.
    np.testing.assert_allclose(mesh.vertices[1], [5.0, 3.0, 0.0], atol=1e-12)


def test_linear_interpolation_reproduces_end_frames() -> None:
    a = ControlFrame(
        position=(1.0, 2.0, 3.0),
        rotation=quat.from_axis_angle((0.0, 1.0, 0.0), 0.3),
        scale=(1.0, 2.0, 3.0),
    )
    b = ControlFrame(
        position=(-4.0, 0.5, 9.0),
        rotation=quat.from_axis_angle((1.0, 0.0, 1.0), 1.1),
        scale=(0.5, 0.5, 0.5),
    )
    pos, rot, scale = interpolate_linear(a, b, 0.0)
    np.testing.assert_allclose(pos, a.position)
    np.testing.assert_allclose(scale, a.scale)
    assert quat.same_rotation(rot, a.rotation)

    pos, rot, scale = interpolate_linear(a, b, 1.0)
    np.testing.assert_allclose(pos, b.position)
    np.testing.assert_allclose(scale, b.scale)
    assert quat.same_rotation(rot, b.rotation)


def test_scale_is_interpolated_along_the_sweep() -> None:
    frames = [
        ControlFrame(position=(0.0, 0.0, 0.0)),
        ControlFrame(position=(0.0, 0.0, 1.0), scale=(3.0, 3.0, 1.0)),
    ]
    mesh = loft(make_square(), frames, LoftSettings(resolution=2))
    np.testing.assert_allclose(mesh.vertices[4 + 2], [2.0, 2.0, 0.5])
    np.testing.assert_allclose(mesh.vertices[8 + 2], [3.0, 3.0, 1.0])


def test_bezier_follows_handles() -> None:
    frames = [
        ControlFrame(position=(0.0, 0.0, 0.0), handle_forward=(0.0, 0.0, 1.0)),
        ControlFrame(position=(0.0, 0.0, 3.0), handle_backward=(0.0, 0.0, -1.0)),
    ]
    settings = LoftSettings(resolution=4, interpolation=InterpolationMethod.BEZIER)
    mesh = loft(make_square(), frames, settings)
    ring_z = mesh.vertices[:, 2].reshape(-1, 4)[:, 0]
    np.testing.assert_allclose(ring_z, [0.0, 0.75, 1.5, 2.25, 3.0], atol=1e-12)
    # Straight curve along +Z keeps the profile unrotated.
    np.testing.assert_allclose(mesh.vertices[-4:, :2], make_square().points, atol=1e-12)


def test_bezier_curve_bends_the_sweep() -> None:
    frames = [
        ControlFrame(position=(0.0, 0.0, 0.0), handle_forward=(0.0, 0.0, 2.0)),
        ControlFrame(
            position=(2.0, 0.0, 2.0),
            rotation=quat.look_rotation((1.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
            handle_backward=(-2.0, 0.0, 0.0),
        ),
    ]
    profile = Profile.from_loop([(0.0, 0.0), (0.0, 1.0)], closed=False)
    mesh = loft(profile, frames, LoftSettings(resolution=2, interpolation="bezier"))
    # The last ring faces +X, so the profile lies in the YZ plane at x = 2.
    np.testing.assert_allclose(mesh.vertices[-2:, 0], [2.0, 2.0], atol=1e-9)
    np.testing.assert_allclose(mesh.vertices[-1], [2.0, 1.0, 2.0], atol=1e-9)


def test_auto_both_rewrites_middle_frame() -> None:
    frames = straight_frames(3)
    authored = quat.from_axis_angle((0.0, 0.0, 1.0), 0.8)
    frames[1].rotation = authored
    loft(make_square(), frames, LoftSettings(resolution=1, rotation_policy=RotationPolicy.AUTO_BOTH))
    assert quat.same_rotation(frames[1].rotation, quat.identity())


def test_recalculated_normals_are_smoothed() -> None:
    profile = make_square()
    plain = loft(profile, straight_frames(2), LoftSettings(resolution=1))
    smooth = loft(profile, straight_frames(2), LoftSettings(resolution=1, recalculate_normals=True))
    assert not np.allclose(plain.normals, smooth.normals)
    np.testing.assert_allclose(np.linalg.norm(smooth.normals, axis=1), 1.0)
    corner = smooth.normals[0]
    assert corner[0] < 0.0 and corner[1] < 0.0
    assert corner[2] == pytest.approx(0.0, abs=1e-12)


def test_insufficient_control_points() -> None:
    with pytest.raises(InsufficientControlPointsError):
        loft(make_square(), straight_frames(1))


def test_empty_profile() -> None:
    with pytest.raises(EmptyProfileError):
        loft(Profile(), straight_frames(2))


def test_extrude_shape_warns_instead_of_raising(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        assert extrude_shape(make_square(), straight_frames(1)) is None
        assert extrude_shape(Profile(), straight_frames(2)) is None
        assert extrude_shape(None, straight_frames(2)) is None
    assert "control points" in caplog.text


def test_extrude_shape_propagates_other_errors() -> None:
    broken = Profile(points=[(0.0, 0.0), (1.0, 0.0)], edges=[0, 7])
    with pytest.raises(ProfileIndexError):
        extrude_shape(broken, straight_frames(2))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"resolution": 0},
        {"resolution": 2.5},
        {"interpolation": "cubic"},
        {"rotation_policy": "sideways"},
    ],
)
def test_invalid_settings(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        LoftSettings(**kwargs)


def test_preview_mesh_is_a_straight_extrusion() -> None:
    mesh = build_preview_mesh(make_square(), length=2.5)
    assert mesh.vertex_count == 8
    bbox_min, bbox_max = mesh.bounds()
    np.testing.assert_allclose(bbox_min, [0.0, 0.0, 0.0])
    np.testing.assert_allclose(bbox_max, [1.0, 1.0, 2.5])
