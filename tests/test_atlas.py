"""
Unit tests for atlas layout, resizing and packing.
"""

import sys
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cube_impostor.atlas import (
    SUPPORTED_TEXTURE_SIZES, AtlasLayout, AtlasPacker, TileRect, resize_face
)
from cube_impostor.errors import InvalidConfigurationError
from cube_impostor.images import OrientedFaceImage
from cube_impostor.projection import ViewDirection

FACE_COLORS = {
    ViewDirection.FRONT: (1.0, 0.0, 0.0),
    ViewDirection.BACK: (0.0, 1.0, 0.0),
    ViewDirection.LEFT: (0.0, 0.0, 1.0),
    ViewDirection.RIGHT: (1.0, 1.0, 0.0),
    ViewDirection.UP: (1.0, 0.0, 1.0),
    ViewDirection.DOWN: (0.0, 1.0, 1.0),
}


def flat_faces(height: int = 8, width: int = 8):
    faces = {}
    for d, color in FACE_COLORS.items():
        pixels = np.empty((height, width, 3), dtype=np.float32)
        pixels[:] = color
        faces[d] = OrientedFaceImage(
            pixels=pixels, direction=d, source_direction=d,
            average_color=np.array(color, dtype=np.float32)
        )
    return faces


class TestAtlasLayout(unittest.TestCase):
    """Tests for AtlasLayout."""

    def test_tile_size_512(self):
        layout = AtlasLayout(512)
        assert layout.tile_width == 256
        assert layout.tile_height == 170

    def test_tile_origins_512(self):
        layout = AtlasLayout(512)
        assert layout.tile(ViewDirection.FRONT) == TileRect(0, 340, 256, 170)
        assert layout.tile(ViewDirection.BACK) == TileRect(256, 340, 256, 170)
        assert layout.tile(ViewDirection.LEFT) == TileRect(0, 170, 256, 170)
        assert layout.tile(ViewDirection.RIGHT) == TileRect(256, 170, 256, 170)
        assert layout.tile(ViewDirection.UP) == TileRect(0, 0, 256, 170)
        assert layout.tile(ViewDirection.DOWN) == TileRect(256, 0, 256, 170)

    def test_uv_rect(self):
        layout = AtlasLayout(512)
        u0, v0, u1, v1 = layout.uv_rect(ViewDirection.FRONT)
        assert (u0, u1) == (0.0, 0.5)
        assert np.isclose(v0, 340 / 512)
        assert np.isclose(v1, 510 / 512)

    def test_array_slices_top_down(self):
        layout = AtlasLayout(512)
        rows, cols = layout.array_slices(ViewDirection.FRONT)
        assert (rows.start, rows.stop) == (2, 172)
        assert (cols.start, cols.stop) == (0, 256)
        rows, cols = layout.array_slices(ViewDirection.DOWN)
        assert (rows.start, rows.stop) == (342, 512)
        assert (cols.start, cols.stop) == (256, 512)

    def test_no_overlap(self):
        for size in SUPPORTED_TEXTURE_SIZES:
            layout = AtlasLayout(size)
            coverage = np.zeros((size, size), dtype=np.int32)
            for d in ViewDirection:
                rows, cols = layout.array_slices(d)
                coverage[rows, cols] += 1
            assert coverage.max() == 1
            assert coverage.sum() == 6 * layout.tile_width * layout.tile_height
            # Only the leftover strip at the top is uncovered
            strip = size - 3 * layout.tile_height
            assert not coverage[:strip].any()
            assert coverage[strip:].all()

    def test_invalid_size(self):
        for size in (2, 512.0, True, "512"):
            with self.assertRaises(InvalidConfigurationError):
                AtlasLayout(size)


class TestResize(unittest.TestCase):
    """Tests for the bilinear resize."""

    def test_same_size_copies(self):
        pixels = np.random.default_rng(0).random((4, 5, 3)).astype(np.float32)
        out = resize_face(pixels, 5, 4)
        assert np.array_equal(out, pixels)
        assert out is not pixels

    def test_upsample_gradient(self):
        pixels = np.zeros((2, 2, 3), dtype=np.float32)
        pixels[:, 1] = 1.0
        out = resize_face(pixels, 4, 2)
        assert out.shape == (2, 4, 3)
        assert np.allclose(out[0, :, 0], [0.0, 0.25, 0.75, 1.0])
        assert np.allclose(out[1, :, 0], [0.0, 0.25, 0.75, 1.0])

    def test_flat_stays_flat(self):
        pixels = np.empty((1, 1, 3), dtype=np.float32)
        pixels[:] = [0.2, 0.4, 0.6]
        out = resize_face(pixels, 7, 3)
        assert out.shape == (3, 7, 3)
        assert np.allclose(out, [0.2, 0.4, 0.6])


class TestAtlasPacker(unittest.TestCase):
    """Tests for AtlasPacker."""

    def test_tiles_hold_faces(self):
        atlas = AtlasPacker().pack(flat_faces(), 64)
        assert atlas.pixels.shape == (64, 64, 3)
        assert atlas.pixels.dtype == np.float32
        for d, color in FACE_COLORS.items():
            tile = atlas.tile_pixels(d)
            assert tile.shape == (21, 32, 3)
            assert np.allclose(tile, color)

    def test_fill_strip(self):
        atlas = AtlasPacker(fill_color=(0.5, 0.5, 0.5)).pack(flat_faces(), 64)
        # 64 - 3 * 21 = 1 leftover row
        assert np.allclose(atlas.pixels[0], 0.5)
        assert not np.allclose(atlas.pixels[1], 0.5)

    def test_front_tile_at_top_left(self):
        atlas = AtlasPacker().pack(flat_faces(), 128)
        assert np.allclose(atlas.pixels[-1, 0], FACE_COLORS[ViewDirection.UP])
        assert np.allclose(atlas.pixels[-1, -1], FACE_COLORS[ViewDirection.DOWN])
        assert np.allclose(atlas.pixels[2, 0], FACE_COLORS[ViewDirection.FRONT])
        assert np.allclose(atlas.pixels[2, -1], FACE_COLORS[ViewDirection.BACK])

    def test_to_uint8(self):
        atlas = AtlasPacker().pack(flat_faces(), 64)
        data = atlas.to_uint8()
        assert data.dtype == np.uint8
        assert data[-1, 0].tolist() == [255, 0, 255]

    def test_missing_face(self):
        faces = flat_faces()
        del faces[ViewDirection.LEFT]
        with self.assertRaises(InvalidConfigurationError):
            AtlasPacker().pack(faces, 64)

    def test_layout_mismatch(self):
        with self.assertRaises(InvalidConfigurationError):
            AtlasPacker().pack(flat_faces(), 64, AtlasLayout(128))


if __name__ == "__main__":
    unittest.main(verbosity=2)
