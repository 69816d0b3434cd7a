"""
Command-Line Interface for Cube Impostor

Usage:
    impostor-bake captures/ --center 0 1 0 --extents 0.5 1 0.5 -o tree
    impostor-bake captures/ --center 0 0 0 --extents 1 1 1 --texture-size 1024 --format png glb

The faces directory must hold one capture per view direction, named
front.png, back.png, left.png, right.png, up.png and down.png.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from . import __version__
from .atlas import SUPPORTED_TEXTURE_SIZES
from .baker import ImpostorBaker
from .config import DEFAULT_TEXTURE_SIZE, ImpostorConfig
from .exporters import AtlasExporter, GLTFExporter, OBJExporter
from .images import load_rgb_image
from .projection import AxisAlignedBounds, CoordinateSystem, ViewDirection


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="impostor-bake",
        description="Cube Impostor Baker - Pack six orthographic captures into a textured impostor cube",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  impostor-bake captures/ --center 0 1 0 --extents 0.5 1 0.5
      Bake captures/*.png into captures.png, captures.obj and captures.glb

  impostor-bake captures/ --center 0 0 0 --extents 1 1 1 -o tree --format glb
      Write only tree.glb (the atlas is embedded)

  impostor-bake captures/ --center 0 0 0 --extents 1 1 1 --background 255 0 255
      Captures were rendered against magenta

Expected files in FACES_DIR:
  front.png back.png left.png right.png up.png down.png
        """
    )

    # Input
    parser.add_argument(
        "faces_dir",
        help="Directory containing the six face captures"
    )

    parser.add_argument(
        "--center",
        nargs=3,
        type=float,
        required=True,
        metavar=("X", "Y", "Z"),
        help="Center of the object's bounding box"
    )

    parser.add_argument(
        "--extents",
        nargs=3,
        type=float,
        required=True,
        metavar=("X", "Y", "Z"),
        help="Half-size of the object's bounding box"
    )

    # Output
    parser.add_argument(
        "-o", "--output",
        help="Output path without extension (default: the faces directory name)"
    )

    parser.add_argument(
        "-f", "--format",
        nargs="+",
        choices=["png", "obj", "glb"],
        default=["png", "obj", "glb"],
        help="Output format(s) (default: png obj glb)"
    )

    parser.add_argument(
        "--coordinate-system",
        choices=["internal", "gltf", "blender"],
        help="Target coordinate system for mesh output "
             "(default: gltf for .glb, blender for .obj)"
    )

    # Bake settings
    parser.add_argument(
        "-s", "--texture-size",
        type=int,
        choices=SUPPORTED_TEXTURE_SIZES,
        default=DEFAULT_TEXTURE_SIZE,
        help=f"Atlas resolution (default: {DEFAULT_TEXTURE_SIZE})"
    )

    parser.add_argument(
        "--trim",
        type=float,
        default=0.0,
        help="Trim amount in [-0.05, 0.05]; positive crops, negative pads (default: 0.0)"
    )

    parser.add_argument(
        "--background",
        nargs=3,
        type=int,
        default=[0, 0, 0],
        metavar=("R", "G", "B"),
        help="Background color of the captures, 0-255 (default: 0 0 0)"
    )

    parser.add_argument(
        "--threshold",
        type=float,
        default=0.1,
        help="RGB distance below which a pixel is background (default: 0.1)"
    )

    # Misc
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def get_coordinate_system(name: Optional[str], default: CoordinateSystem) -> CoordinateSystem:
    """Convert string to CoordinateSystem enum."""
    if name is None:
        return default
    return CoordinateSystem(name)


def with_extension(base: Path, extension: str) -> Path:
    """Append an extension, keeping any dots already in the name (tree.v2 -> tree.v2.png)."""
    return base.parent / f"{base.name}{extension}"


def load_faces(faces_dir: Path, verbose: bool = False) -> Dict[ViewDirection, np.ndarray]:
    """Load front.png ... down.png from a directory."""
    images = {}
    for direction in ViewDirection:
        path = faces_dir / f"{direction.face_name}.png"
        if verbose:
            print(f"Loading: {path}")
        images[direction] = load_rgb_image(path)
    return images


def process(args) -> int:
    """Bake one set of captures and write the requested outputs."""
    faces_dir = Path(args.faces_dir)
    if not faces_dir.is_dir():
        print(f"Error: Faces directory not found: {faces_dir}", file=sys.stderr)
        return 1

    output_base = Path(args.output) if args.output else faces_dir.resolve()

    start_time = time.time()

    try:
        config = ImpostorConfig(
            texture_size=args.texture_size,
            trim_amount=args.trim,
            background_color=tuple(np.array(args.background) / 255.0),
            similarity_threshold=args.threshold
        )
        bounds = AxisAlignedBounds(
            center=np.array(args.center),
            extents=np.array(args.extents)
        )

        images = load_faces(faces_dir, args.verbose)

        if args.verbose:
            print(f"Baking {config.texture_size}x{config.texture_size} atlas...")

        result = ImpostorBaker(config).bake_from_images(bounds, images)

        if result.degenerate_faces:
            names = ", ".join(d.face_name for d in result.degenerate_faces)
            print(f"Warning: no foreground found in: {names}", file=sys.stderr)

        output_base.parent.mkdir(parents=True, exist_ok=True)
        texture_path = with_extension(output_base, ".png")

        for fmt in args.format:
            if fmt == "png":
                output_path = AtlasExporter().export(result.atlas, texture_path)

            elif fmt == "obj":
                exporter = OBJExporter(
                    coordinate_system=get_coordinate_system(
                        args.coordinate_system, CoordinateSystem.BLENDER
                    )
                )
                output_path = exporter.export(
                    result.mesh,
                    with_extension(output_base, ".obj"),
                    texture_path=texture_path if "png" in args.format else None
                )

            elif fmt == "glb":
                exporter = GLTFExporter(
                    coordinate_system=get_coordinate_system(
                        args.coordinate_system, CoordinateSystem.GLTF
                    )
                )
                output_path = exporter.export(
                    result.mesh, with_extension(output_base, ".glb"), atlas=result.atlas
                )

            if args.verbose:
                print(f"Exported: {output_path}")

        elapsed = time.time() - start_time
        if args.verbose:
            placement = result.placement
            print(f"\nPlacement: position={placement.position.tolist()} scale={placement.scale.tolist()}")
            print(f"Completed in {elapsed:.2f}s")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    return process(args)


if __name__ == "__main__":
    sys.exit(main())
