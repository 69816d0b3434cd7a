"""
Background Trimming

Captures are rendered against a flat background color. Trimming crops each
capture to the tight rectangle around everything that is NOT background, so
the atlas tile spends its pixels on the object rather than on empty space.

After cropping, any background pixels left inside the rectangle are replaced
with the average foreground color. Without this "healing" step the later
bilinear resize would blend the background color into the silhouette edge
and the impostor would show a dark (or bright) fringe.
"""

from typing import Optional, Tuple
import logging
import numpy as np
from scipy import ndimage

from .images import RawFaceImage, TrimmedFaceImage, as_color

logger = logging.getLogger(__name__)

# Euclidean RGB distance (channels in [0, 1]) below which a pixel counts as background
DEFAULT_SIMILARITY_THRESHOLD = 0.1


def background_mask(
    pixels: np.ndarray,
    background_color: np.ndarray,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD
) -> np.ndarray:
    """
    Classify pixels as background by color distance.

    Args:
        pixels: float32 buffer of shape (H, W, 3)
        background_color: RGB color (3,)
        threshold: Distance below which a pixel is background

    Returns:
        Boolean mask of shape (H, W), True = background
    """
    distance = np.linalg.norm(pixels - background_color, axis=-1)
    return distance < threshold


def average_color(
    pixels: np.ndarray,
    background: np.ndarray,
    background_color: np.ndarray
) -> np.ndarray:
    """
    Mean color of the non-background pixels.

    Falls back to the background color itself when there are none.
    """
    foreground = pixels[~background]
    if len(foreground) == 0:
        return background_color.astype(np.float32).copy()
    return foreground.mean(axis=0).astype(np.float32)


def foreground_rect(foreground: np.ndarray) -> Optional[Tuple[int, int, int, int]]:
    """
    Minimal rectangle enclosing all foreground pixels.

    Args:
        foreground: Boolean mask (H, W), True = foreground

    Returns:
        (x_min, y_min, x_max, y_max) inclusive, or None if the mask is empty
    """
    objects = ndimage.find_objects(foreground.astype(np.int32))
    if not objects or objects[0] is None:
        return None
    rows, cols = objects[0]
    return cols.start, rows.start, cols.stop - 1, rows.stop - 1


def _adjust_span(lo: int, hi: int, trim_factor: float, limit: int) -> Tuple[int, int]:
    """Shrink (positive factor) or grow (negative factor) a span, clamped to [0, limit)."""
    offset = int(round((hi - lo) * trim_factor))
    new_lo = min(max(lo + offset, 0), limit - 1)
    new_hi = min(max(hi - offset, 0), limit - 1)
    if new_lo > new_hi:
        # Over-shrunk: keep the center line
        new_lo = new_hi = (lo + hi) // 2
    return new_lo, new_hi


class FaceTrimmer:
    """
    Crops a capture to its foreground and heals leftover background pixels.
    """

    def __init__(self, similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD):
        """
        Initialize the trimmer.

        Args:
            similarity_threshold: RGB distance below which a pixel is background
        """
        self.similarity_threshold = similarity_threshold

    def trim(
        self,
        image: RawFaceImage,
        background_color=None,
        trim_factor: float = 0.0
    ) -> TrimmedFaceImage:
        """
        Trim a raw capture.

        Args:
            image: The raw capture
            background_color: Background used for the capture; defaults to
                the color recorded on the image
            trim_factor: Fraction of the foreground size removed from each
                side (positive crops tighter, negative adds padding)

        Returns:
            TrimmedFaceImage. A capture with no foreground at all becomes a
            1x1 image of the background color.
        """
        bg = image.background_color if background_color is None else as_color(background_color)
        pixels = image.pixels
        height, width = pixels.shape[:2]

        is_background = background_mask(pixels, bg, self.similarity_threshold)
        rect = foreground_rect(~is_background)

        if rect is None:
            logger.warning(
                "No foreground in %s capture (%dx%d); using 1x1 background fallback",
                image.direction.face_name, width, height
            )
            return TrimmedFaceImage(
                pixels=np.broadcast_to(bg, (1, 1, 3)).astype(np.float32),
                direction=image.direction,
                average_color=bg.copy(),
                crop_rect=None,
                degenerate=True
            )

        x_min, y_min, x_max, y_max = rect
        x_min, x_max = _adjust_span(x_min, x_max, trim_factor, width)
        y_min, y_max = _adjust_span(y_min, y_max, trim_factor, height)

        cropped = pixels[y_min:y_max + 1, x_min:x_max + 1].copy()
        crop_background = is_background[y_min:y_max + 1, x_min:x_max + 1]

        avg = average_color(cropped, crop_background, bg)
        cropped[crop_background] = avg

        logger.debug(
            "Trimmed %s capture %dx%d -> %dx%d (healed %d pixels)",
            image.direction.face_name, width, height,
            cropped.shape[1], cropped.shape[0], int(crop_background.sum())
        )

        return TrimmedFaceImage(
            pixels=cropped,
            direction=image.direction,
            average_color=avg,
            crop_rect=(x_min, y_min, x_max, y_max)
        )
