"""
Atlas Layout and Packing

The six oriented faces share one square texture arranged as a 2x3 grid of
tiles (origin bottom-left, y up, in tile units):

    +-------+-------+
    | Front | Back  |   row 2
    +-------+-------+
    | Left  | Right |   row 1
    +-------+-------+
    |  Up   | Down  |   row 0
    +-------+-------+

tile_width = size // 2 and tile_height = size // 3. For the supported
power-of-two sizes the height does not divide evenly, so a strip of
size - 3 * tile_height rows at the top of the atlas belongs to no tile. UVs
are derived from the integer pixel rectangles, so that strip is never
sampled.

The atlas is kept uncompressed and without mipmaps: the impostor usually
takes over at short distances and must stay pixel-exact.
"""

from dataclasses import dataclass
import numbers
from typing import Dict, Mapping, NamedTuple, Optional, Tuple
import logging
import numpy as np
from numba import njit, prange

from .errors import InvalidConfigurationError
from .images import OrientedFaceImage, as_color, to_uint8
from .projection import ViewDirection

logger = logging.getLogger(__name__)

SUPPORTED_TEXTURE_SIZES = (64, 128, 256, 512, 1024, 2048)

GRID_COLUMNS = 2
GRID_ROWS = 3

# (column, row) in tile units, origin bottom-left
TILE_GRID = {
    ViewDirection.FRONT: (0, 2),
    ViewDirection.BACK: (1, 2),
    ViewDirection.LEFT: (0, 1),
    ViewDirection.RIGHT: (1, 1),
    ViewDirection.UP: (0, 0),
    ViewDirection.DOWN: (1, 0),
}


class TileRect(NamedTuple):
    """Tile rectangle in atlas pixels (origin bottom-left, y up)."""
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class AtlasLayout:
    """
    Fixed 2x3 tile layout for a square atlas.

    Attributes:
        texture_size: Atlas width and height in pixels
    """
    texture_size: int

    def __post_init__(self):
        size = self.texture_size
        if not isinstance(size, numbers.Integral) or isinstance(size, bool) or size < GRID_ROWS:
            raise InvalidConfigurationError(
                f"Texture size must be an integer >= {GRID_ROWS}, got {self.texture_size}"
            )

    @property
    def tile_width(self) -> int:
        return self.texture_size // GRID_COLUMNS

    @property
    def tile_height(self) -> int:
        return self.texture_size // GRID_ROWS

    def tile(self, direction: ViewDirection) -> TileRect:
        """Pixel rectangle of a face's tile."""
        col, row = TILE_GRID[direction]
        return TileRect(
            x=col * self.tile_width,
            y=row * self.tile_height,
            width=self.tile_width,
            height=self.tile_height
        )

    def uv_rect(self, direction: ViewDirection) -> Tuple[float, float, float, float]:
        """
        Normalized tile rectangle.

        Returns:
            (u0, v0, u1, v1) with v measured from the bottom of the atlas
        """
        rect = self.tile(direction)
        size = float(self.texture_size)
        return (
            rect.x / size,
            rect.y / size,
            (rect.x + rect.width) / size,
            (rect.y + rect.height) / size,
        )

    def array_slices(self, direction: ViewDirection) -> Tuple[slice, slice]:
        """
        Row/column slices of a tile in a top-down (row 0 = top) pixel array.
        """
        rect = self.tile(direction)
        top = self.texture_size - (rect.y + rect.height)
        return (
            slice(top, top + rect.height),
            slice(rect.x, rect.x + rect.width)
        )

    def tiles(self) -> Dict[ViewDirection, TileRect]:
        return {d: self.tile(d) for d in ViewDirection}


@dataclass
class AtlasTexture:
    """
    The baked atlas.

    Attributes:
        pixels: float32 RGB buffer (size, size, 3), row 0 = top
        layout: Tile layout used to pack it
    """
    pixels: np.ndarray
    layout: AtlasLayout

    @property
    def size(self) -> int:
        return self.layout.texture_size

    def tile_pixels(self, direction: ViewDirection) -> np.ndarray:
        """View of one face's tile."""
        rows, cols = self.layout.array_slices(direction)
        return self.pixels[rows, cols]

    def to_uint8(self) -> np.ndarray:
        return to_uint8(self.pixels)


@njit(cache=True, parallel=True)
def bilinear_resize(src: np.ndarray, out_h: int, out_w: int) -> np.ndarray:
    """
    Resize an image with bilinear filtering.

    Samples at pixel centers and clamps at the edges (no wraparound).

    Args:
        src: float32 array of shape (H, W, C)
        out_h: Output height
        out_w: Output width

    Returns:
        float32 array of shape (out_h, out_w, C)
    """
    in_h = src.shape[0]
    in_w = src.shape[1]
    channels = src.shape[2]
    out = np.empty((out_h, out_w, channels), dtype=np.float32)

    scale_y = in_h / out_h
    scale_x = in_w / out_w

    for r in prange(out_h):
        sy = (r + 0.5) * scale_y - 0.5
        sy = min(max(sy, 0.0), in_h - 1.0)
        y0 = int(sy)
        y1 = min(y0 + 1, in_h - 1)
        fy = sy - y0

        for c in range(out_w):
            sx = (c + 0.5) * scale_x - 0.5
            sx = min(max(sx, 0.0), in_w - 1.0)
            x0 = int(sx)
            x1 = min(x0 + 1, in_w - 1)
            fx = sx - x0

            for ch in range(channels):
                top = src[y0, x0, ch] * (1.0 - fx) + src[y0, x1, ch] * fx
                bottom = src[y1, x0, ch] * (1.0 - fx) + src[y1, x1, ch] * fx
                out[r, c, ch] = top * (1.0 - fy) + bottom * fy

    return out


def resize_face(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """Bilinear resize of an RGB face buffer to exactly width x height."""
    if pixels.shape[0] == height and pixels.shape[1] == width:
        return pixels.astype(np.float32, copy=True)
    src = np.ascontiguousarray(pixels, dtype=np.float32)
    return bilinear_resize(src, height, width)


class AtlasPacker:
    """Resizes six oriented faces into their tiles of one square atlas."""

    def __init__(self, fill_color=(0.0, 0.0, 0.0)):
        """
        Initialize the packer.

        Args:
            fill_color: Color of atlas pixels outside every tile
        """
        self.fill_color = as_color(fill_color)

    def pack(
        self,
        faces: Mapping[ViewDirection, OrientedFaceImage],
        texture_size: int,
        layout: Optional[AtlasLayout] = None
    ) -> AtlasTexture:
        """
        Pack oriented faces into an atlas.

        Args:
            faces: One OrientedFaceImage per atlas slot
            texture_size: Atlas width/height in pixels
            layout: Precomputed layout (must match texture_size)

        Returns:
            AtlasTexture of shape (texture_size, texture_size, 3)
        """
        layout = layout or AtlasLayout(texture_size)
        if layout.texture_size != texture_size:
            raise InvalidConfigurationError(
                f"Layout is for {layout.texture_size}px, atlas requested at {texture_size}px"
            )

        missing = [d.face_name for d in ViewDirection if d not in faces]
        if missing:
            raise InvalidConfigurationError(f"Missing faces for atlas: {missing}")

        atlas = np.empty((texture_size, texture_size, 3), dtype=np.float32)
        atlas[:] = self.fill_color

        for direction in ViewDirection:
            rows, cols = layout.array_slices(direction)
            atlas[rows, cols] = resize_face(
                faces[direction].pixels, layout.tile_width, layout.tile_height
            )

        logger.debug(
            "Packed atlas %dx%d with %dx%d tiles",
            texture_size, texture_size, layout.tile_width, layout.tile_height
        )

        return AtlasTexture(pixels=atlas, layout=layout)
