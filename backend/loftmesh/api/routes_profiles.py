"""
Routes for profile editing helpers and polygon triangulation.

The profile endpoints are stateless: the client sends the whole
profile, the server applies one edit and returns the result.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from .models import (
    DeletePointRequest,
    NormalsRequest,
    ProfileModel,
    TriangulateRequest,
    TriangulateResponse,
)
from .routes_loft import profile_from_model, profile_to_model
from ..services.errors import DegeneratePolygonError, ProfileIndexError
from ..services.triangulation import signed_area, triangulate

router = APIRouter()


@router.post("/profiles/normals", response_model=ProfileModel)
async def recalculate_normals(body: NormalsRequest) -> ProfileModel:
    """Recalculate the normals of the given points (all when omitted)."""
    profile = profile_from_model(body.profile)
    try:
        if body.indices is None:
            profile.recalculate_all_normals()
        else:
            profile.recalculate_normals(body.indices)
    except ProfileIndexError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return profile_to_model(profile)


@router.post("/profiles/points/delete", response_model=ProfileModel)
async def delete_point(body: DeletePointRequest) -> ProfileModel:
    """Remove one point and re-index the edges that remain."""
    profile = profile_from_model(body.profile)
    try:
        profile.delete_point(body.index)
    except ProfileIndexError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return profile_to_model(profile)


@router.post("/triangulate", response_model=TriangulateResponse)
async def triangulate_polygon(body: TriangulateRequest) -> TriangulateResponse:
    """Ear-clip a simple polygon into triangles."""
    if any(len(p) < 2 for p in body.points):
        raise HTTPException(status_code=422, detail="Polygon points must have two coordinates")
    try:
        indices = triangulate(body.points, strict=True)
    except DegeneratePolygonError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return TriangulateResponse(indices=indices, area=signed_area(body.points))
