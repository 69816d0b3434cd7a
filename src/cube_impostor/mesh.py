"""
Impostor Cube Mesh

The impostor is a unit cube (+-0.5 on every axis) with 24 vertices: four per
face, not shared between faces, so every face keeps a hard normal and its own
UVs. Each face is two triangles (0, 1, 2), (0, 2, 3) in its local vertex
order, wound so cross(v1 - v0, v2 - v0) points out of the cube.

Local vertex k of a face takes corner k of its atlas tile:
    0: (u0, v0)  1: (u1, v0)  2: (u1, v1)  3: (u0, v1)
so no per-face UV rotation is needed.

Normals and tangents are recomputed from the geometry rather than written
by hand, which keeps them consistent with the winding.
"""

from typing import NamedTuple
import numpy as np

from .atlas import AtlasLayout
from .projection import (
    CoordinateSystem, ViewDirection, flips_handedness, get_coordinate_transform
)


class ImpostorMesh(NamedTuple):
    """Container for impostor mesh data."""
    vertices: np.ndarray  # (24, 3) float32 positions
    normals: np.ndarray   # (24, 3) float32 unit normals
    tangents: np.ndarray  # (24, 4) float32 tangent xyz + handedness w
    uvs: np.ndarray       # (24, 2) float32, v up from the bottom of the atlas
    indices: np.ndarray   # (36,) uint32 triangle indices


# Face corner positions in ViewDirection order
CUBE_FACE_VERTICES = np.array([
    # Front (+Z)
    [[-0.5, -0.5, 0.5], [0.5, -0.5, 0.5], [0.5, 0.5, 0.5], [-0.5, 0.5, 0.5]],
    # Back (-Z)
    [[0.5, -0.5, -0.5], [-0.5, -0.5, -0.5], [-0.5, 0.5, -0.5], [0.5, 0.5, -0.5]],
    # Left (-X)
    [[-0.5, -0.5, -0.5], [-0.5, -0.5, 0.5], [-0.5, 0.5, 0.5], [-0.5, 0.5, -0.5]],
    # Right (+X)
    [[0.5, -0.5, 0.5], [0.5, -0.5, -0.5], [0.5, 0.5, -0.5], [0.5, 0.5, 0.5]],
    # Up (+Y)
    [[-0.5, 0.5, 0.5], [0.5, 0.5, 0.5], [0.5, 0.5, -0.5], [-0.5, 0.5, -0.5]],
    # Down (-Y)
    [[-0.5, -0.5, -0.5], [0.5, -0.5, -0.5], [0.5, -0.5, 0.5], [-0.5, -0.5, 0.5]],
], dtype=np.float64)

QUAD_TRIANGLES = np.array([0, 1, 2, 0, 2, 3], dtype=np.uint32)


def face_uvs(u0: float, v0: float, u1: float, v1: float) -> np.ndarray:
    """UVs for the four local vertices of a face."""
    return np.array([
        [u0, v0],
        [u1, v0],
        [u1, v1],
        [u0, v1],
    ], dtype=np.float64)


def compute_normals(vertices: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """
    Area-weighted vertex normals from triangle geometry.

    Args:
        vertices: (N, 3) positions
        indices: (M,) triangle indices

    Returns:
        (N, 3) unit normals
    """
    tris = indices.reshape(-1, 3)
    p0, p1, p2 = vertices[tris[:, 0]], vertices[tris[:, 1]], vertices[tris[:, 2]]
    face_normals = np.cross(p1 - p0, p2 - p0)

    normals = np.zeros_like(vertices)
    for corner in range(3):
        np.add.at(normals, tris[:, corner], face_normals)

    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    lengths[lengths == 0] = 1.0
    # + 0.0 turns -0.0 into 0.0
    return normals / lengths + 0.0


def compute_tangents(
    vertices: np.ndarray,
    normals: np.ndarray,
    uvs: np.ndarray,
    indices: np.ndarray
) -> np.ndarray:
    """
    Per-vertex tangents from positions and UVs.

    Tangents follow the direction of increasing u, are orthogonalized against
    the normal, and carry the bitangent handedness in w (+1 or -1).

    Returns:
        (N, 4) tangents
    """
    tris = indices.reshape(-1, 3)
    p0, p1, p2 = vertices[tris[:, 0]], vertices[tris[:, 1]], vertices[tris[:, 2]]
    t0, t1, t2 = uvs[tris[:, 0]], uvs[tris[:, 1]], uvs[tris[:, 2]]

    e1 = p1 - p0
    e2 = p2 - p0
    duv1 = t1 - t0
    duv2 = t2 - t0

    det = duv1[:, 0] * duv2[:, 1] - duv2[:, 0] * duv1[:, 1]
    r = np.where(det != 0, 1.0 / np.where(det != 0, det, 1.0), 0.0)[:, None]

    sdir = (e1 * duv2[:, 1:2] - e2 * duv1[:, 1:2]) * r
    tdir = (e2 * duv1[:, 0:1] - e1 * duv2[:, 0:1]) * r

    tan1 = np.zeros_like(vertices)
    tan2 = np.zeros_like(vertices)
    for corner in range(3):
        np.add.at(tan1, tris[:, corner], sdir)
        np.add.at(tan2, tris[:, corner], tdir)

    # Gram-Schmidt
    tangent = tan1 - normals * np.sum(normals * tan1, axis=1, keepdims=True)
    lengths = np.linalg.norm(tangent, axis=1, keepdims=True)
    lengths[lengths == 0] = 1.0
    tangent = tangent / lengths + 0.0

    handedness = np.where(
        np.sum(np.cross(normals, tangent) * tan2, axis=1) < 0.0, -1.0, 1.0
    )

    return np.column_stack([tangent, handedness])


class ImpostorMeshBuilder:
    """
    Builds the fixed-topology impostor cube for an atlas layout.

    The result depends only on the layout's tile rectangles; the object being
    impostored only affects where the cube is placed and scaled.
    """

    def build_cube_mesh(self, layout: AtlasLayout) -> ImpostorMesh:
        """
        Build the cube mesh.

        Args:
            layout: Atlas layout whose tiles the faces map to

        Returns:
            ImpostorMesh with 24 vertices and 36 indices
        """
        vertices = CUBE_FACE_VERTICES.reshape(-1, 3)

        uvs = np.vstack([face_uvs(*layout.uv_rect(d)) for d in ViewDirection])

        indices = np.concatenate([
            QUAD_TRIANGLES + 4 * face for face in range(len(ViewDirection))
        ]).astype(np.uint32)

        normals = compute_normals(vertices, indices)
        tangents = compute_tangents(vertices, normals, uvs, indices)

        return ImpostorMesh(
            vertices=vertices.astype(np.float32),
            normals=normals.astype(np.float32),
            tangents=tangents.astype(np.float32),
            uvs=uvs.astype(np.float32),
            indices=indices
        )


def transform_mesh(
    mesh: ImpostorMesh,
    source: CoordinateSystem,
    target: CoordinateSystem,
    scale: float = 1.0
) -> ImpostorMesh:
    """
    Convert a mesh between coordinate systems.

    Conversions that mirror the geometry also reverse the triangle winding
    and negate the tangent handedness, so faces keep pointing outward.

    Args:
        mesh: Mesh in the source system
        source: Source coordinate system
        target: Target coordinate system
        scale: Uniform scale applied to positions

    Returns:
        New ImpostorMesh in the target system
    """
    matrix = get_coordinate_transform(source, target)

    vertices = (matrix @ mesh.vertices.T).T * scale
    normals = (matrix @ mesh.normals.T).T
    tangents = mesh.tangents.copy()
    tangents[:, :3] = (matrix @ mesh.tangents[:, :3].T).T
    indices = mesh.indices.copy()

    if flips_handedness(source, target):
        tris = indices.reshape(-1, 3)
        tris[:, [1, 2]] = tris[:, [2, 1]]
        indices = tris.reshape(-1)
        tangents[:, 3] = -tangents[:, 3]

    return ImpostorMesh(
        vertices=vertices.astype(np.float32),
        normals=normals.astype(np.float32) + 0.0,
        tangents=tangents.astype(np.float32) + 0.0,
        uvs=mesh.uvs.copy(),
        indices=indices.astype(np.uint32)
    )
