"""
Cube Impostor Baker
===================

Bakes a 3D object into a cheap stand-in: a unit cube whose six faces are
textured with tight orthographic captures of the object, packed into one
square atlas.

Pipeline:
- BoundsProjector: frames an orthographic capture per axis direction
- FaceTrimmer: crops each capture to its foreground and heals the edges
- FaceOrienter: swaps and flips the captures into atlas orientation
- AtlasPacker: resizes the faces into a 2x3 tile grid
- ImpostorMeshBuilder: builds the 24-vertex cube with matching UVs

Example Usage:
    from cube_impostor import AxisAlignedBounds, ImpostorBaker, ImpostorConfig

    bounds = AxisAlignedBounds(center=[0, 1, 0], extents=[0.5, 1, 0.5])
    baker = ImpostorBaker(ImpostorConfig(texture_size=256))
    result = baker.bake(bounds, renderer)
"""

__version__ = "1.0.0"
__author__ = "Cube Impostor Team"

from .atlas import AtlasLayout, AtlasPacker, AtlasTexture
from .baker import ImpostorBaker, ImpostorPlacement, ImpostorResult, PrecapturedRenderer
from .config import ImpostorConfig
from .errors import ImpostorError, InvalidConfigurationError, UpstreamRenderError
from .mesh import ImpostorMesh, ImpostorMeshBuilder
from .orientation import FaceOrienter
from .projection import (
    AxisAlignedBounds, BoundsProjector, CameraFrame, CoordinateSystem,
    ViewDirection, compute_bounds
)
from .trimming import FaceTrimmer

__all__ = [
    "AtlasLayout",
    "AtlasPacker",
    "AtlasTexture",
    "AxisAlignedBounds",
    "BoundsProjector",
    "CameraFrame",
    "CoordinateSystem",
    "FaceOrienter",
    "FaceTrimmer",
    "ImpostorBaker",
    "ImpostorConfig",
    "ImpostorError",
    "ImpostorMesh",
    "ImpostorMeshBuilder",
    "ImpostorPlacement",
    "ImpostorResult",
    "InvalidConfigurationError",
    "PrecapturedRenderer",
    "UpstreamRenderError",
    "ViewDirection",
    "compute_bounds",
]
