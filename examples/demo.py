#!/usr/bin/env python3
"""
Cube Impostor Demo Script

This script demonstrates the full baking pipeline by:
1. Ray-casting synthetic ellipsoid "objects" (no external renderer needed)
2. Baking them into cube impostors at several atlas sizes
3. Exporting the atlas, OBJ and GLB
4. Printing timings and per-face statistics

Run with: python examples/demo.py
"""

import sys
from pathlib import Path
import numpy as np
import time

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cube_impostor import AxisAlignedBounds, ImpostorBaker, ImpostorConfig
from cube_impostor.exporters import AtlasExporter, GLTFExporter, OBJExporter
from cube_impostor.projection import CameraFrame

LIGHT_DIRECTION = np.array([0.4, 0.8, -0.45])
LIGHT_DIRECTION = LIGHT_DIRECTION / np.linalg.norm(LIGHT_DIRECTION)


class EllipsoidRenderer:
    """
    Orthographic ray caster for a single shaded ellipsoid filling the bounds.

    Stands in for a real engine renderer: it honors the frame's capture
    axes and clears to the requested background color.
    """

    def __init__(self, bounds: AxisAlignedBounds, color, resolution: int = 128):
        self.bounds = bounds
        self.color = np.asarray(color, dtype=np.float32)
        self.resolution = resolution

    def render(self, frame: CameraFrame, background_color) -> np.ndarray:
        size = self.resolution
        image = np.empty((size, size, 3), dtype=np.float32)
        image[:] = background_color

        extent = frame.ortho_half_extent
        coords = ((np.arange(size) + 0.5) / size * 2.0 - 1.0) * extent
        u, v = np.meshgrid(coords, -coords)

        origins = (
            frame.position
            + u[..., None] * frame.right
            + v[..., None] * frame.capture_up
        )
        direction = frame.capture_forward

        # Solve |(o + t*d - c) / e|^2 = 1 in ellipsoid space
        radii = np.maximum(self.bounds.extents, 1e-9)
        o = (origins - self.bounds.center) / radii
        d = direction / radii
        a = d @ d
        b = 2.0 * (o @ d)
        c = np.sum(o * o, axis=-1) - 1.0
        disc = b * b - 4.0 * a * c
        hit = disc >= 0.0

        t = (-b - np.sqrt(np.where(hit, disc, 0.0))) / (2.0 * a)
        points = origins + t[..., None] * direction
        normals = (points - self.bounds.center) / radii ** 2
        normals /= np.maximum(np.linalg.norm(normals, axis=-1, keepdims=True), 1e-9)

        shade = 0.3 + 0.7 * np.clip(normals @ LIGHT_DIRECTION, 0.0, 1.0)
        image[hit] = self.color * shade[hit][:, None]
        return image


def run_demo():
    """Run the demonstration."""
    print("=" * 60)
    print("Cube Impostor Baker - Demo")
    print("=" * 60)
    print()

    # Create output directory
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    # Test objects: (name, bounds, color, atlas size)
    test_objects = [
        ("sphere", AxisAlignedBounds(center=[0, 0, 0], extents=[1, 1, 1]), (0.4, 0.6, 0.8), 256),
        ("tree", AxisAlignedBounds(center=[0, 2, 0], extents=[0.8, 2, 0.8]), (0.13, 0.55, 0.13), 512),
        ("rock", AxisAlignedBounds(center=[3, 0.25, -1], extents=[1.5, 0.25, 0.7]), (0.5, 0.45, 0.4), 128),
    ]

    total_start = time.time()

    for name, bounds, color, texture_size in test_objects:
        print(f"\n--- Baking: {name} ---")
        print(f"Bounds: center={bounds.center.tolist()} extents={bounds.extents.tolist()}")

        bake_start = time.time()

        baker = ImpostorBaker(ImpostorConfig(texture_size=texture_size))
        result = baker.bake(bounds, EllipsoidRenderer(bounds, color))

        bake_time = time.time() - bake_start

        layout = result.layout
        print(f"  Atlas: {texture_size}x{texture_size}, tiles {layout.tile_width}x{layout.tile_height}")
        print(f"  Bake time: {bake_time*1000:.1f}ms")

        print("\n  Capture frames:")
        for direction, frame in result.frames.items():
            print(f"    {direction.face_name:>5}: half-extent {frame.ortho_half_extent:.3f}")

        if result.degenerate_faces:
            print(f"  Degenerate faces: {[d.face_name for d in result.degenerate_faces]}")

        # Export to all formats
        print(f"\n  Exporting...")
        base_path = output_dir / name

        export_start = time.time()

        texture_path = AtlasExporter().export(result.atlas, base_path.with_suffix(".png"))
        print(f"    Saved: {texture_path}")

        obj_path = OBJExporter().export(result.mesh, base_path.with_suffix(".obj"), texture_path)
        print(f"    Saved: {obj_path}")

        glb_path = GLTFExporter().export(result.mesh, base_path.with_suffix(".glb"), result.atlas)
        print(f"    Saved: {glb_path}")

        export_time = time.time() - export_start
        print(f"    Export time: {export_time*1000:.1f}ms")

        placement = result.placement
        print(f"  Placement: position={placement.position.tolist()} scale={placement.scale.tolist()}")

    total_time = time.time() - total_start

    print("\n" + "=" * 60)
    print(f"Demo complete! Total time: {total_time:.2f}s")
    print(f"Output files in: {output_dir}")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    run_demo()
