"""
Wavefront OBJ Format Exporter

OBJ is a universal text-based format supported by virtually all 3D software.
The impostor cube is written with:
- Positions, texture coordinates and normals (v / vt / vn)
- An MTL file referencing the atlas as the diffuse map, when a texture
  path is given

Limitations:
- Text format = larger file sizes
- No tangents (importers recompute them)
- Requires MTL file for materials
"""

from pathlib import Path
from typing import List, Optional, Union
import numpy as np

from ..mesh import ImpostorMesh, transform_mesh
from ..projection import CoordinateSystem


class OBJExporter:
    """
    Export an impostor mesh to Wavefront OBJ format.

    Supports:
    - Standard OBJ with an MTL material pointing at the atlas
    - Coordinate system transformation
    """

    def __init__(
        self,
        coordinate_system: CoordinateSystem = CoordinateSystem.BLENDER,
        scale: float = 1.0,
        include_normals: bool = True
    ):
        """
        Initialize the exporter.

        Args:
            coordinate_system: Target coordinate system
            scale: Scale factor for vertex positions
            include_normals: Whether to include vertex normals
        """
        self.coordinate_system = coordinate_system
        self.scale = scale
        self.include_normals = include_normals

    def export(
        self,
        mesh: ImpostorMesh,
        output_path: Union[str, Path],
        texture_path: Optional[Union[str, Path]] = None,
        model_name: str = "impostor"
    ) -> Path:
        """
        Export mesh to OBJ file.

        Args:
            mesh: ImpostorMesh from ImpostorMeshBuilder
            output_path: Output file path (.obj)
            texture_path: Atlas image to reference from the MTL file
            model_name: Name for the model/object

        Returns:
            The path written
        """
        output_path = Path(output_path)

        if len(mesh.vertices) == 0:
            raise ValueError("Cannot export empty mesh")

        mesh = transform_mesh(
            mesh, CoordinateSystem.INTERNAL, self.coordinate_system, self.scale
        )
        vertices = mesh.vertices
        uvs = mesh.uvs
        indices = mesh.indices

        lines: List[str] = []
        lines.append("# Cube Impostor OBJ Export")
        lines.append(f"# Vertices: {len(vertices)}")
        lines.append(f"# Triangles: {len(indices) // 3}")
        lines.append("")

        if texture_path is not None:
            mtl_path = output_path.with_suffix('.mtl')
            lines.append(f"mtllib {mtl_path.name}")
            lines.append("")

        lines.append(f"o {model_name}")
        lines.append("")

        for v in vertices:
            lines.append(f"v {v[0]:.6f} {v[1]:.6f} {v[2]:.6f}")
        lines.append("")

        for uv in uvs:
            lines.append(f"vt {uv[0]:.6f} {uv[1]:.6f}")
        lines.append("")

        if self.include_normals:
            # Get unique normals
            unique_normals, normal_indices = np.unique(
                np.round(mesh.normals, 6), axis=0, return_inverse=True
            )
            normal_indices = normal_indices.reshape(-1)
            for n in unique_normals:
                lines.append(f"vn {n[0]:.6f} {n[1]:.6f} {n[2]:.6f}")
            lines.append("")

        if texture_path is not None:
            lines.append(f"usemtl {model_name}_atlas")

        for i in range(0, len(indices), 3):
            corners = indices[i:i + 3] + 1
            if self.include_normals:
                ni = normal_indices[indices[i:i + 3]] + 1
                lines.append(
                    "f " + " ".join(f"{c}/{c}/{n}" for c, n in zip(corners, ni))
                )
            else:
                lines.append("f " + " ".join(f"{c}/{c}" for c in corners))

        with open(output_path, 'w') as f:
            f.write('\n'.join(lines) + '\n')

        if texture_path is not None:
            self._write_mtl(output_path.with_suffix('.mtl'), Path(texture_path), model_name)

        return output_path

    def _write_mtl(self, mtl_path: Path, texture_path: Path, model_name: str):
        """Write MTL material file."""
        try:
            texture_ref = texture_path.relative_to(mtl_path.parent)
        except ValueError:
            texture_ref = texture_path

        lines = []
        lines.append("# Cube Impostor MTL Export")
        lines.append("")
        lines.append(f"newmtl {model_name}_atlas")
        lines.append("Kd 1.0000 1.0000 1.0000")  # Diffuse comes from the map
        lines.append("Ka 0.0000 0.0000 0.0000")
        lines.append("Ks 0.0 0.0 0.0")  # No specular: the lighting is baked in
        lines.append("Ns 0")
        lines.append("d 1.0")
        lines.append("illum 1")
        lines.append(f"map_Kd {texture_ref.as_posix()}")
        lines.append("")

        with open(mtl_path, 'w') as f:
            f.write('\n'.join(lines))
