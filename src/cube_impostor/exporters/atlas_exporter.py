"""
Atlas Texture Exporter

Writes the baked atlas as an uncompressed RGB image. PNG is lossless, so the
file holds exactly the pixels the packer produced (after 8-bit quantization).
"""

from io import BytesIO
from pathlib import Path
from typing import Union
from PIL import Image

from ..atlas import AtlasTexture


class AtlasExporter:
    """Export an AtlasTexture to an image file."""

    def __init__(self, image_format: str = "PNG"):
        """
        Initialize the exporter.

        Args:
            image_format: Pillow format name; keep it lossless
        """
        self.image_format = image_format

    def to_image(self, atlas: AtlasTexture) -> Image.Image:
        """Convert the atlas to a Pillow RGB image."""
        return Image.fromarray(atlas.to_uint8())

    def to_bytes(self, atlas: AtlasTexture) -> bytes:
        """Encode the atlas in memory."""
        buf = BytesIO()
        self.to_image(atlas).save(buf, format=self.image_format)
        return buf.getvalue()

    def export(self, atlas: AtlasTexture, output_path: Union[str, Path]) -> Path:
        """
        Write the atlas to disk.

        Args:
            atlas: Baked atlas
            output_path: Output file path

        Returns:
            The path written
        """
        output_path = Path(output_path)
        self.to_image(atlas).save(output_path, format=self.image_format)
        return output_path
