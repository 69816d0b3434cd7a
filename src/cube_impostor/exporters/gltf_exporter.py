"""
glTF 2.0 Exporter (.glb binary format)

glTF is the preferred format for game engines (Godot, Unity, Unreal).
This exporter writes the impostor cube as a single textured primitive:
- Positions, normals and tangents (for normal-mapped shaders)
- TEXCOORD_0 with V flipped to glTF's top-left texture origin
- The atlas embedded as a PNG, sampled LINEAR with CLAMP_TO_EDGE
- Coordinate system transformation for different engines

glTF Structure:
- JSON header describing scene graph
- Binary buffer containing geometry data and the atlas image
  - Indices (uint16)
  - Positions (float32 vec3)
  - Normals (float32 vec3)
  - Tangents (float32 vec4)
  - UVs (float32 vec2)
  - Image (PNG bytes)
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import struct
import numpy as np

from ..atlas import AtlasTexture
from ..mesh import ImpostorMesh, transform_mesh
from ..projection import CoordinateSystem
from .atlas_exporter import AtlasExporter


# glTF constants
GLTF_VERSION = "2.0"
GENERATOR = "CubeImpostor"

GLB_MAGIC = 0x46546C67
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942

# Component types
UNSIGNED_SHORT = 5123
UNSIGNED_INT = 5125
FLOAT = 5126

# Buffer view targets
ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963

# Primitive modes
TRIANGLES = 4

# Sampler settings
LINEAR = 9729
CLAMP_TO_EDGE = 33071


def _pad4(data: bytes, fill: bytes = b'\x00') -> bytes:
    return data + fill * ((4 - len(data) % 4) % 4)


class GLTFExporter:
    """
    Export an impostor mesh (and optionally its atlas) to a .glb file.
    """

    def __init__(
        self,
        coordinate_system: CoordinateSystem = CoordinateSystem.GLTF,
        scale: float = 1.0
    ):
        """
        Initialize the exporter.

        Args:
            coordinate_system: Target coordinate system
            scale: Scale factor for vertex positions
        """
        self.coordinate_system = coordinate_system
        self.scale = scale

    def export(
        self,
        mesh: ImpostorMesh,
        output_path: Union[str, Path],
        atlas: Optional[AtlasTexture] = None,
        name: str = "Impostor"
    ) -> Path:
        """
        Export mesh to .glb file.

        Args:
            mesh: ImpostorMesh from ImpostorMeshBuilder
            output_path: Output file path
            atlas: Atlas to embed as the base color texture
            name: Node/mesh/material name

        Returns:
            The path written
        """
        output_path = Path(output_path)

        if len(mesh.vertices) == 0:
            raise ValueError("Cannot export empty mesh")

        mesh = transform_mesh(
            mesh, CoordinateSystem.INTERNAL, self.coordinate_system, self.scale
        )

        image_bytes = AtlasExporter().to_bytes(atlas) if atlas is not None else None

        gltf, buffer_data = self.build(mesh, image_bytes, name)
        self._write_glb(output_path, gltf, buffer_data)
        return output_path

    def build(
        self,
        mesh: ImpostorMesh,
        image_bytes: Optional[bytes] = None,
        name: str = "Impostor"
    ) -> Tuple[Dict[str, Any], bytes]:
        """
        Build the glTF JSON and binary buffer for an already transformed mesh.

        Returns:
            (gltf_json, buffer_bytes)
        """
        indices = mesh.indices
        if indices.max() < 65536:
            index_type = UNSIGNED_SHORT
            indices = indices.astype(np.uint16)
        else:
            index_type = UNSIGNED_INT
            indices = indices.astype(np.uint32)

        # glTF puts the texture origin at the top-left
        uvs = mesh.uvs.astype(np.float32).copy()
        uvs[:, 1] = 1.0 - uvs[:, 1]

        parts: List[bytes] = []
        buffer_views: List[Dict[str, Any]] = []

        def add_view(data: bytes, target: Optional[int] = None) -> int:
            offset = sum(len(p) for p in parts)
            view = {"buffer": 0, "byteOffset": offset, "byteLength": len(data)}
            if target is not None:
                view["target"] = target
            buffer_views.append(view)
            parts.append(_pad4(data))
            return len(buffer_views) - 1

        index_view = add_view(indices.tobytes(), ELEMENT_ARRAY_BUFFER)
        position_view = add_view(mesh.vertices.astype(np.float32).tobytes(), ARRAY_BUFFER)
        normal_view = add_view(mesh.normals.astype(np.float32).tobytes(), ARRAY_BUFFER)
        tangent_view = add_view(mesh.tangents.astype(np.float32).tobytes(), ARRAY_BUFFER)
        uv_view = add_view(uvs.tobytes(), ARRAY_BUFFER)

        num_vertices = len(mesh.vertices)
        accessors = [
            {
                "bufferView": index_view,
                "componentType": index_type,
                "count": len(indices),
                "type": "SCALAR"
            },
            {
                "bufferView": position_view,
                "componentType": FLOAT,
                "count": num_vertices,
                "type": "VEC3",
                "min": mesh.vertices.min(axis=0).tolist(),
                "max": mesh.vertices.max(axis=0).tolist()
            },
            {
                "bufferView": normal_view,
                "componentType": FLOAT,
                "count": num_vertices,
                "type": "VEC3"
            },
            {
                "bufferView": tangent_view,
                "componentType": FLOAT,
                "count": num_vertices,
                "type": "VEC4"
            },
            {
                "bufferView": uv_view,
                "componentType": FLOAT,
                "count": num_vertices,
                "type": "VEC2"
            },
        ]

        material: Dict[str, Any] = {
            "name": f"{name}Material",
            "pbrMetallicRoughness": {
                "baseColorFactor": [1.0, 1.0, 1.0, 1.0],
                "metallicFactor": 0.0,
                "roughnessFactor": 1.0
            },
            "doubleSided": False
        }

        gltf: Dict[str, Any] = {
            "asset": {
                "version": GLTF_VERSION,
                "generator": GENERATOR
            },
            "scene": 0,
            "scenes": [
                {"nodes": [0]}
            ],
            "nodes": [
                {"mesh": 0, "name": name}
            ],
            "meshes": [
                {
                    "primitives": [
                        {
                            "attributes": {
                                "POSITION": 1,
                                "NORMAL": 2,
                                "TANGENT": 3,
                                "TEXCOORD_0": 4
                            },
                            "indices": 0,
                            "material": 0,
                            "mode": TRIANGLES
                        }
                    ],
                    "name": f"{name}Mesh"
                }
            ],
            "materials": [material],
            "accessors": accessors,
            "bufferViews": buffer_views,
        }

        if image_bytes is not None:
            image_view = add_view(image_bytes)
            gltf["images"] = [{"bufferView": image_view, "mimeType": "image/png"}]
            gltf["samplers"] = [{
                "magFilter": LINEAR,
                "minFilter": LINEAR,
                "wrapS": CLAMP_TO_EDGE,
                "wrapT": CLAMP_TO_EDGE
            }]
            gltf["textures"] = [{"sampler": 0, "source": 0}]
            material["pbrMetallicRoughness"]["baseColorTexture"] = {"index": 0}

        buffer_data = b''.join(parts)
        gltf["buffers"] = [{"byteLength": len(buffer_data)}]

        return gltf, buffer_data

    def _write_glb(
        self,
        output_path: Path,
        gltf: Dict[str, Any],
        buffer_data: bytes
    ):
        """Write the GLB binary file."""
        json_bytes = _pad4(json.dumps(gltf, separators=(',', ':')).encode('utf-8'), b' ')

        total_length = 12 + 8 + len(json_bytes) + 8 + len(buffer_data)

        with open(output_path, 'wb') as f:
            # Header
            f.write(struct.pack('<III', GLB_MAGIC, 2, total_length))

            # JSON chunk
            f.write(struct.pack('<II', len(json_bytes), CHUNK_JSON))
            f.write(json_bytes)

            # Binary chunk
            f.write(struct.pack('<II', len(buffer_data), CHUNK_BIN))
            f.write(buffer_data)


def read_glb(path: Union[str, Path]) -> Tuple[Dict[str, Any], bytes]:
    """
    Read back a .glb file written by GLTFExporter.

    Returns:
        (gltf_json, binary_chunk)
    """
    data = Path(path).read_bytes()
    magic, version, total_length = struct.unpack_from('<III', data, 0)
    if magic != GLB_MAGIC:
        raise ValueError(f"Invalid GLB file: bad magic {magic:#x}")
    if total_length != len(data):
        raise ValueError(f"GLB length mismatch: header says {total_length}, file is {len(data)}")

    json_length, json_type = struct.unpack_from('<II', data, 12)
    if json_type != CHUNK_JSON:
        raise ValueError("Expected JSON chunk")
    gltf = json.loads(data[20:20 + json_length].decode('utf-8'))

    offset = 20 + json_length
    bin_length, bin_type = struct.unpack_from('<II', data, offset)
    if bin_type != CHUNK_BIN:
        raise ValueError("Expected BIN chunk")
    binary = data[offset + 8:offset + 8 + bin_length]

    return gltf, binary
