"""
Routes for sweeping profiles into meshes.

``POST /loft`` runs the full loft on the submitted profile and control
frames.  ``POST /loft/preview`` extrudes a profile straight along +Z.
Recoverable input (fewer than two frames, empty profile) returns an
empty mesh with a warning instead of an error status.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from .models import (
    ControlFrameModel,
    LoftRequest,
    MeshBBox,
    MeshResponse,
    PreviewRequest,
    ProfileModel,
)
from ..services.errors import ConfigurationError, ProfileIndexError, RecoverableLoftError
from ..services.frames import ControlFrame
from ..services.loft import LoftSettings, SweepMesh, build_preview_mesh, loft
from ..services.profile import Profile

logger = logging.getLogger(__name__)

router = APIRouter()

# Largest mesh the API will build in one request.  Requests above the
# cap are rejected before any geometry is generated.
MAX_MESH_VERTICES: int = 2_000_000


def profile_from_model(model: ProfileModel) -> Profile:
    """Convert request data into a validated :class:`Profile`."""
    for p in model.points:
        if len(p) != 2:
            raise HTTPException(status_code=422, detail="Profile points must have two coordinates")
    for n in model.normals:
        if len(n) != 2:
            raise HTTPException(status_code=422, detail="Profile normals must have two components")
    profile = Profile(points=model.points, normals=model.normals, us=model.us, edges=model.edges)
    try:
        profile.validate()
    except (ProfileIndexError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return profile


def profile_to_model(profile: Profile) -> ProfileModel:
    return ProfileModel(
        points=[list(p) for p in profile.points],
        normals=[list(n) for n in profile.normals],
        us=list(profile.us),
        edges=list(profile.edges),
    )


def _frame_from_model(model: ControlFrameModel) -> ControlFrame:
    if len(model.position) != 3 or len(model.scale) != 3 or len(model.rotation) != 4:
        raise HTTPException(status_code=422, detail="Malformed control frame")
    if len(model.handleForward) != 3 or len(model.handleBackward) != 3:
        raise HTTPException(status_code=422, detail="Control frame handles must have three components")
    return ControlFrame(
        position=model.position,
        rotation=model.rotation,
        scale=model.scale,
        handle_forward=model.handleForward,
        handle_backward=model.handleBackward,
    )


def _frame_to_model(frame: ControlFrame) -> ControlFrameModel:
    return ControlFrameModel(
        position=frame.position.tolist(),
        rotation=frame.rotation.tolist(),
        scale=frame.scale.tolist(),
        handleForward=frame.handle_forward.tolist(),
        handleBackward=frame.handle_backward.tolist(),
    )


def mesh_to_response(mesh: SweepMesh, frames: List[ControlFrame] | None = None) -> MeshResponse:
    bbox_min, bbox_max = mesh.bounds()
    return MeshResponse(
        vertices=mesh.vertices.ravel().tolist(),
        normals=mesh.normals.ravel().tolist(),
        uvs=mesh.uvs.ravel().tolist(),
        indices=[int(i) for i in mesh.triangles],
        bbox=MeshBBox(min=bbox_min.tolist(), max=bbox_max.tolist()),
        controlFrames=[_frame_to_model(f) for f in frames or []],
    )


@router.post("/loft", response_model=MeshResponse)
async def create_loft(body: LoftRequest) -> MeshResponse:
    """Sweep the profile through the control frames.

    Returns:
        MeshResponse: Flattened mesh buffers, the bounding box and the
        control frames after any automatic rotation.

    Raises:
        HTTPException: 400 for unsupported settings, 422 for malformed
            profiles and 413 when the mesh would exceed the vertex cap.
    """
    profile = profile_from_model(body.profile)
    frames = [_frame_from_model(f) for f in body.controlFrames]
    try:
        settings = LoftSettings(
            resolution=body.resolution,
            interpolation=body.interpolationMethod,
            rotation_policy=body.controlPointRotation,
            recalculate_normals=body.recalculateNormals,
            close_shape=body.closeShape,
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    rings = settings.resolution * max(len(frames) - 1, 0) + 1
    if rings * profile.point_count > MAX_MESH_VERTICES:
        raise HTTPException(
            status_code=413,
            detail=f"Mesh would have {rings * profile.point_count} vertices (limit {MAX_MESH_VERTICES})",
        )

    try:
        mesh = loft(profile, frames, settings)
    except RecoverableLoftError as exc:
        logger.warning("Loft request produced no mesh: %s", exc)
        return MeshResponse(
            controlFrames=[_frame_to_model(f) for f in frames],
            warnings=[str(exc)],
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return mesh_to_response(mesh, frames)


@router.post("/loft/preview", response_model=MeshResponse)
async def preview_loft(body: PreviewRequest) -> MeshResponse:
    """Extrude the profile straight along +Z for a quick look."""
    profile = profile_from_model(body.profile)
    try:
        mesh = build_preview_mesh(profile, body.length)
    except RecoverableLoftError as exc:
        return MeshResponse(warnings=[str(exc)])
    return mesh_to_response(mesh)
