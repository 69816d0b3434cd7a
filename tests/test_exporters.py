"""
Unit tests for the atlas, OBJ and glTF exporters.
"""

import sys
import tempfile
from pathlib import Path
import numpy as np
import unittest
from PIL import Image

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cube_impostor import AtlasLayout, AtlasPacker, ImpostorMeshBuilder, ViewDirection
from cube_impostor.exporters import AtlasExporter, GLTFExporter, OBJExporter
from cube_impostor.exporters.gltf_exporter import CLAMP_TO_EDGE, LINEAR, read_glb
from cube_impostor.images import OrientedFaceImage
from cube_impostor.projection import CoordinateSystem


def gradient_atlas(size: int = 64):
    faces = {}
    for d in ViewDirection:
        pixels = np.zeros((8, 8, 3), dtype=np.float32)
        pixels[..., 0] = np.linspace(0, 1, 8)[None, :]
        pixels[..., 1] = d.value / 5.0
        faces[d] = OrientedFaceImage(
            pixels=pixels, direction=d, source_direction=d, average_color=pixels.mean(axis=(0, 1))
        )
    return AtlasPacker().pack(faces, size)


class ExporterTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.atlas = gradient_atlas()
        self.mesh = ImpostorMeshBuilder().build_cube_mesh(AtlasLayout(64))

    def tearDown(self):
        self._tmp.cleanup()


class TestAtlasExporter(ExporterTestCase):
    """Tests for AtlasExporter."""

    def test_png_pixels(self):
        path = AtlasExporter().export(self.atlas, self.tmp / "atlas.png")
        with Image.open(path) as img:
            assert img.mode == "RGB"
            assert img.size == (64, 64)
            data = np.array(img)
        assert np.array_equal(data, self.atlas.to_uint8())

    def test_to_bytes(self):
        data = AtlasExporter().to_bytes(self.atlas)
        assert data[:8] == b"\x89PNG\r\n\x1a\n"


class TestGLTFExporter(ExporterTestCase):
    """Tests for GLTFExporter."""

    def test_glb_structure(self):
        path = GLTFExporter().export(self.mesh, self.tmp / "impostor.glb", atlas=self.atlas)
        gltf, binary = read_glb(path)

        assert gltf["asset"]["version"] == "2.0"
        attributes = gltf["meshes"][0]["primitives"][0]["attributes"]
        assert set(attributes) == {"POSITION", "NORMAL", "TANGENT", "TEXCOORD_0"}
        assert gltf["accessors"][attributes["TANGENT"]]["type"] == "VEC4"
        assert gltf["accessors"][attributes["POSITION"]]["count"] == 24
        assert gltf["accessors"][0]["count"] == 36
        assert gltf["buffers"][0]["byteLength"] == len(binary)

    def test_embedded_texture(self):
        path = GLTFExporter().export(self.mesh, self.tmp / "impostor.glb", atlas=self.atlas)
        gltf, binary = read_glb(path)

        assert gltf["images"][0]["mimeType"] == "image/png"
        sampler = gltf["samplers"][0]
        assert sampler["magFilter"] == LINEAR and sampler["minFilter"] == LINEAR
        assert sampler["wrapS"] == CLAMP_TO_EDGE and sampler["wrapT"] == CLAMP_TO_EDGE
        material = gltf["materials"][0]
        assert material["pbrMetallicRoughness"]["baseColorTexture"]["index"] == 0

        view = gltf["bufferViews"][gltf["images"][0]["bufferView"]]
        png = binary[view["byteOffset"]:view["byteOffset"] + view["byteLength"]]
        assert png == AtlasExporter().to_bytes(self.atlas)

    def test_without_atlas(self):
        path = GLTFExporter().export(self.mesh, self.tmp / "bare.glb")
        gltf, _ = read_glb(path)
        assert "images" not in gltf
        assert "baseColorTexture" not in gltf["materials"][0]["pbrMetallicRoughness"]

    def test_buffer_contents(self):
        path = GLTFExporter().export(self.mesh, self.tmp / "impostor.glb")
        gltf, binary = read_glb(path)

        def read(accessor_index, dtype, width):
            accessor = gltf["accessors"][accessor_index]
            view = gltf["bufferViews"][accessor["bufferView"]]
            data = np.frombuffer(
                binary, dtype=dtype, count=accessor["count"] * width, offset=view["byteOffset"]
            )
            return data.reshape(accessor["count"], width) if width > 1 else data

        attributes = gltf["meshes"][0]["primitives"][0]["attributes"]
        indices = read(0, np.uint16, 1)
        positions = read(attributes["POSITION"], np.float32, 3)
        uvs = read(attributes["TEXCOORD_0"], np.float32, 2)
        tangents = read(attributes["TANGENT"], np.float32, 4)

        # Z mirrored, winding reversed, tangent handedness flipped
        assert np.allclose(positions[:, 2], -self.mesh.vertices[:, 2])
        assert indices[:3].tolist() == [0, 2, 1]
        assert np.all(tangents[:, 3] == -1.0)
        # V flipped to a top-left texture origin
        assert np.allclose(uvs[:, 0], self.mesh.uvs[:, 0])
        assert np.allclose(uvs[:, 1], 1.0 - self.mesh.uvs[:, 1])

    def test_internal_coordinates(self):
        exporter = GLTFExporter(coordinate_system=CoordinateSystem.INTERNAL, scale=2.0)
        gltf, _ = read_glb(exporter.export(self.mesh, self.tmp / "internal.glb"))
        position = gltf["accessors"][1]
        assert np.allclose(position["min"], [-1, -1, -1])
        assert np.allclose(position["max"], [1, 1, 1])


class TestOBJExporter(ExporterTestCase):
    """Tests for OBJExporter."""

    def read_records(self, path: Path):
        records = {}
        for line in path.read_text().splitlines():
            if line and not line.startswith("#"):
                key = line.split()[0]
                records.setdefault(key, []).append(line)
        return records

    def test_record_counts(self):
        texture = AtlasExporter().export(self.atlas, self.tmp / "atlas.png")
        path = OBJExporter().export(self.mesh, self.tmp / "impostor.obj", texture_path=texture)

        records = self.read_records(path)
        assert len(records["v"]) == 24
        assert len(records["vt"]) == 24
        assert len(records["vn"]) == 6
        assert len(records["f"]) == 12
        assert records["mtllib"] == ["mtllib impostor.mtl"]
        # Faces reference position/uv/normal
        assert all(len(corner.split("/")) == 3 for corner in records["f"][0].split()[1:])

    def test_mtl_references_atlas(self):
        texture = AtlasExporter().export(self.atlas, self.tmp / "atlas.png")
        OBJExporter().export(self.mesh, self.tmp / "impostor.obj", texture_path=texture)

        mtl = (self.tmp / "impostor.mtl").read_text()
        assert "map_Kd atlas.png" in mtl
        assert "newmtl impostor_atlas" in mtl

    def test_no_texture(self):
        path = OBJExporter().export(self.mesh, self.tmp / "bare.obj")
        records = self.read_records(path)
        assert "mtllib" not in records
        assert "usemtl" not in records
        assert not (self.tmp / "bare.mtl").exists()

    def test_blender_axes(self):
        path = OBJExporter().export(self.mesh, self.tmp / "impostor.obj")
        records = self.read_records(path)
        first = [float(x) for x in records["v"][0].split()[1:]]
        v = self.mesh.vertices[0]
        assert np.allclose(first, [v[0], v[2], v[1]])
        assert records["f"][0].startswith("f 1/1/")
        assert records["f"][0].split()[2].startswith("3/3/")


if __name__ == "__main__":
    unittest.main(verbosity=2)
