"""
Pydantic data models for the loft API.

These models define the shapes of requests and responses used by the
backend.  Vectors travel as plain lists; quaternions use ``[w, x, y, z]``
order.  Mesh buffers are flattened (``x, y, z, x, y, z …``) the same
way most rendering front ends expect them.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ProfileModel(BaseModel):
    """A 2-D cross-section: points with parallel normals and Us plus edges."""

    points: List[List[float]] = Field(..., description="2-D profile points [[x, y], …]")
    normals: List[List[float]] = Field(
        default_factory=list,
        description="Per-point 2-D normals; missing entries default to (0, 1)",
    )
    us: List[float] = Field(
        default_factory=list,
        description="Per-point texture U coordinate; missing entries default to 0",
    )
    edges: List[int] = Field(
        default_factory=list,
        description="Flat list of point-index pairs, one pair per edge",
    )


class ControlFrameModel(BaseModel):
    """One oriented station along the sweep path."""

    position: List[float] = Field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: List[float] = Field(
        default_factory=lambda: [1.0, 0.0, 0.0, 0.0],
        description="Unit quaternion [w, x, y, z]",
    )
    scale: List[float] = Field(default_factory=lambda: [1.0, 1.0, 1.0])
    handleForward: List[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        description="Bezier handle offset towards the next frame",
    )
    handleBackward: List[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        description="Bezier handle offset towards the previous frame",
    )


class LoftRequest(BaseModel):
    """Request body for sweeping a profile through control frames."""

    profile: ProfileModel
    controlFrames: List[ControlFrameModel] = Field(..., description="Ordered sweep stations")
    resolution: int = Field(default=5, ge=1, description="Samples per span between two frames")
    interpolationMethod: str = Field(default="linear", description="'linear' or 'bezier'")
    controlPointRotation: str = Field(
        default="manual",
        description="'manual', 'auto_normals', 'auto_orientation' or 'auto_both'",
    )
    recalculateNormals: bool = Field(
        default=False, description="Smooth normals from the generated triangles"
    )
    closeShape: bool = Field(default=False, description="Cap both ends of the sweep")


class PreviewRequest(BaseModel):
    """Request body for a straight preview extrusion of a profile."""

    profile: ProfileModel
    length: float = Field(default=1.0, gt=0.0, description="Extrusion length along +Z")


class MeshBBox(BaseModel):
    """Axis‑aligned bounding box for a mesh."""

    min: List[float] = Field(..., description="Minimum x, y, z coordinates of the mesh")
    max: List[float] = Field(..., description="Maximum x, y, z coordinates of the mesh")


class MeshResponse(BaseModel):
    """Mesh buffers returned by the loft endpoints."""

    vertices: List[float] = Field(default_factory=list, description="Flat list of vertex positions (x, y, z …)")
    normals: List[float] = Field(default_factory=list, description="Flat list of vertex normals (x, y, z …)")
    uvs: List[float] = Field(default_factory=list, description="Flat list of texture coordinates (u, v …)")
    indices: List[int] = Field(default_factory=list, description="Index buffer defining the mesh triangles")
    bbox: MeshBBox | None = Field(default=None, description="Bounding box around the mesh")
    controlFrames: List[ControlFrameModel] = Field(
        default_factory=list,
        description="Control frames after automatic rotation was applied",
    )
    warnings: List[str] = Field(
        default_factory=list,
        description="Reasons why no mesh was produced, if any",
    )


class NormalsRequest(BaseModel):
    """Request body for recalculating profile normals."""

    profile: ProfileModel
    indices: List[int] | None = Field(
        default=None, description="Points to recalculate; all points when omitted"
    )


class DeletePointRequest(BaseModel):
    """Request body for deleting a point from a profile."""

    profile: ProfileModel
    index: int = Field(..., description="Index of the point to remove")


class TriangulateRequest(BaseModel):
    """Request body for triangulating a simple polygon."""

    points: List[List[float]] = Field(..., description="Ordered polygon vertices [[x, y], …]")


class TriangulateResponse(BaseModel):
    """Triangle indices covering the polygon."""

    indices: List[int] = Field(..., description="Flat triangle index list")
    area: float = Field(..., description="Signed polygon area; positive for counter-clockwise input")
