"""
Export modules for baked impostors.

Supported formats:
- PNG (.png) - The atlas texture
- glTF 2.0 (.glb) - Mesh with the atlas embedded, for game engines
- Wavefront (.obj + .mtl) - Universal legacy support
"""

from .atlas_exporter import AtlasExporter
from .gltf_exporter import GLTFExporter
from .obj_exporter import OBJExporter

__all__ = ["AtlasExporter", "GLTFExporter", "OBJExporter"]
