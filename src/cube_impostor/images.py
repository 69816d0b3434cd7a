"""
Pixel Buffer Types and Image I/O

All buffers handled by the pipeline are RGB numpy arrays:
- Shape (H, W, 3), float32, channel values in [0, 1]
- Row 0 is the TOP of the image (Pillow convention)
- No alpha channel; "empty" pixels are detected by color, not alpha

uint8 buffers are accepted wherever a buffer enters the package and are
normalized on the way in.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union
import numpy as np
from PIL import Image

from .errors import InvalidConfigurationError
from .projection import ViewDirection

Color = Tuple[float, float, float]


def as_rgb_buffer(pixels, name: str = "image") -> np.ndarray:
    """
    Normalize an RGB pixel buffer to float32 in [0, 1].

    Args:
        pixels: Array-like of shape (H, W, 3), uint8 or float
        name: Label used in error messages

    Returns:
        float32 array of shape (H, W, 3)
    """
    if pixels is None:
        raise InvalidConfigurationError(f"{name} is missing")

    arr = np.asarray(pixels)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise InvalidConfigurationError(
            f"{name} must have shape (H, W, 3), got {arr.shape}"
        )
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidConfigurationError(f"{name} is empty: {arr.shape}")

    if arr.dtype == np.uint8:
        return arr.astype(np.float32) / 255.0

    arr = arr.astype(np.float32)
    if not np.all(np.isfinite(arr)):
        raise InvalidConfigurationError(f"{name} contains non-finite values")
    return arr


def as_color(color) -> np.ndarray:
    """
    Normalize an RGB color to float32 on the [0, 1] scale.

    Only uint8 colors are treated as 0-255; every other dtype, integers
    included, is taken to be on the [0, 1] scale already.
    """
    arr = np.asarray(color)
    if arr.shape != (3,):
        raise InvalidConfigurationError(f"Color must have 3 components, got {arr.shape}")
    if arr.dtype == np.uint8:
        return arr.astype(np.float32) / 255.0
    return arr.astype(np.float32)


def to_uint8(pixels: np.ndarray) -> np.ndarray:
    """Quantize a float [0, 1] buffer to uint8 with rounding."""
    return (np.clip(pixels, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


@dataclass
class RawFaceImage:
    """A capture of the source object from one view direction."""
    pixels: np.ndarray
    direction: ViewDirection
    background_color: np.ndarray

    def __post_init__(self):
        self.pixels = as_rgb_buffer(self.pixels, f"{self.direction.face_name} capture")
        self.background_color = as_color(self.background_color)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


@dataclass
class TrimmedFaceImage:
    """
    A capture cropped to its foreground with background pixels healed.

    Attributes:
        pixels: Cropped buffer (H', W', 3)
        direction: Direction the capture was taken from
        average_color: Mean foreground color inside the crop
        crop_rect: (x_min, y_min, x_max, y_max) in source pixels, inclusive;
            None for the degenerate 1x1 fallback
        degenerate: True when the capture held no foreground at all
    """
    pixels: np.ndarray
    direction: ViewDirection
    average_color: np.ndarray
    crop_rect: Optional[Tuple[int, int, int, int]] = None
    degenerate: bool = False


@dataclass
class OrientedFaceImage:
    """
    A trimmed face after the fixed flip/swap stage.

    `direction` is the atlas slot this image now fills; `source_direction`
    is the capture it came from. They differ for Front/Back and Left/Right.
    """
    pixels: np.ndarray
    direction: ViewDirection
    source_direction: ViewDirection
    average_color: np.ndarray


def load_rgb_image(image_path: Union[str, Path]) -> np.ndarray:
    """
    Load an image file as a float32 RGB buffer.

    Alpha, palette and grayscale images are converted to RGB.

    Args:
        image_path: Path to the image (PNG recommended)

    Returns:
        float32 array of shape (H, W, 3) in [0, 1]
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image not found: {image_path}")

    img = Image.open(image_path)
    if img.mode != "RGB":
        img = img.convert("RGB")

    return np.array(img, dtype=np.uint8).astype(np.float32) / 255.0

