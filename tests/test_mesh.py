"""
Unit tests for the impostor cube mesh.
"""

import sys
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cube_impostor.atlas import SUPPORTED_TEXTURE_SIZES, AtlasLayout
from cube_impostor.mesh import ImpostorMeshBuilder, transform_mesh
from cube_impostor.projection import CoordinateSystem, ViewDirection


def triangle_normals(vertices: np.ndarray, indices: np.ndarray) -> np.ndarray:
    tris = indices.reshape(-1, 3)
    p0, p1, p2 = vertices[tris[:, 0]], vertices[tris[:, 1]], vertices[tris[:, 2]]
    return np.cross(p1 - p0, p2 - p0)


class TestImpostorMeshBuilder(unittest.TestCase):
    """Tests for ImpostorMeshBuilder."""

    def setUp(self):
        self.layout = AtlasLayout(512)
        self.mesh = ImpostorMeshBuilder().build_cube_mesh(self.layout)

    def test_counts(self):
        mesh = self.mesh
        assert mesh.vertices.shape == (24, 3)
        assert mesh.normals.shape == (24, 3)
        assert mesh.tangents.shape == (24, 4)
        assert mesh.uvs.shape == (24, 2)
        assert mesh.indices.shape == (36,)
        assert mesh.indices.dtype == np.uint32
        assert mesh.indices.max() == 23

    def test_unit_cube(self):
        assert np.allclose(np.abs(self.mesh.vertices), 0.5)

    def test_six_axis_normals(self):
        unique = np.unique(self.mesh.normals, axis=0)
        assert len(unique) == 6
        assert np.allclose(np.abs(unique).sum(axis=1), 1.0)

    def test_normals_match_faces(self):
        for d in ViewDirection:
            face_normals = self.mesh.normals[4 * d.value:4 * d.value + 4]
            assert np.allclose(face_normals, d.vector)

    def test_winding_outward(self):
        geometric = triangle_normals(self.mesh.vertices, self.mesh.indices)
        per_tri = self.mesh.normals[self.mesh.indices.reshape(-1, 3)[:, 0]]
        assert np.all(np.sum(geometric * per_tri, axis=1) > 0)
        # Outward also means pointing away from the cube center
        centers = self.mesh.vertices[self.mesh.indices.reshape(-1, 3)].mean(axis=1)
        assert np.all(np.sum(geometric * centers, axis=1) > 0)

    def test_uv_corners_match_layout(self):
        for size in SUPPORTED_TEXTURE_SIZES:
            layout = AtlasLayout(size)
            mesh = ImpostorMeshBuilder().build_cube_mesh(layout)
            for d in ViewDirection:
                u0, v0, u1, v1 = layout.uv_rect(d)
                uvs = mesh.uvs[4 * d.value:4 * d.value + 4]
                assert np.allclose(uvs, [[u0, v0], [u1, v0], [u1, v1], [u0, v1]])

    def test_uvs_avoid_leftover_strip(self):
        top = 3 * self.layout.tile_height / 512
        assert self.mesh.uvs[:, 1].max() <= top + 1e-7

    def test_tangents(self):
        tangents = self.mesh.tangents
        assert np.allclose(np.linalg.norm(tangents[:, :3], axis=1), 1.0)
        assert np.allclose(np.sum(tangents[:, :3] * self.mesh.normals, axis=1), 0.0)
        assert np.all(tangents[:, 3] == 1.0)

    def test_tangents_follow_u(self):
        vertices = self.mesh.vertices.reshape(6, 4, 3)
        tangents = self.mesh.tangents[:, :3].reshape(6, 4, 3)
        u_axis = vertices[:, 1] - vertices[:, 0]
        for face in range(6):
            assert np.all(tangents[face] @ u_axis[face] > 0)

    def test_independent_of_object(self):
        other = ImpostorMeshBuilder().build_cube_mesh(AtlasLayout(512))
        for a, b in zip(self.mesh, other):
            assert np.array_equal(a, b)


class TestTransformMesh(unittest.TestCase):
    """Tests for coordinate system conversion of the mesh."""

    def setUp(self):
        self.mesh = ImpostorMeshBuilder().build_cube_mesh(AtlasLayout(256))

    def test_identity(self):
        out = transform_mesh(self.mesh, CoordinateSystem.INTERNAL, CoordinateSystem.INTERNAL)
        assert np.array_equal(out.indices, self.mesh.indices)
        assert np.allclose(out.vertices, self.mesh.vertices)

    def test_mirroring_keeps_faces_outward(self):
        for target in (CoordinateSystem.GLTF, CoordinateSystem.BLENDER):
            out = transform_mesh(self.mesh, CoordinateSystem.INTERNAL, target)
            geometric = triangle_normals(out.vertices, out.indices)
            per_tri = out.normals[out.indices.reshape(-1, 3)[:, 0]]
            assert np.all(np.sum(geometric * per_tri, axis=1) > 0)
            assert np.all(out.tangents[:, 3] == -1.0)

    def test_winding_reversed(self):
        out = transform_mesh(self.mesh, CoordinateSystem.INTERNAL, CoordinateSystem.GLTF)
        assert out.indices[:3].tolist() == [0, 2, 1]
        # Source mesh untouched
        assert self.mesh.indices[:3].tolist() == [0, 1, 2]

    def test_scale(self):
        out = transform_mesh(
            self.mesh, CoordinateSystem.INTERNAL, CoordinateSystem.INTERNAL, scale=4.0
        )
        assert np.allclose(np.abs(out.vertices), 2.0)
        assert np.allclose(out.uvs, self.mesh.uvs)


if __name__ == "__main__":
    unittest.main(verbosity=2)
