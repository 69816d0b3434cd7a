"""
Face Orientation

The raw captures do not line up with the atlas convention:
- The side captures come out mirrored and on the opposite face, so
  Front/Back and Left/Right trade places and are then mirrored horizontally.
- The Up/Down captures were taken with a half-turned camera, so they are
  flipped vertically.

The swap MUST happen before the mirror. Getting this wrong does not crash,
it just produces an impostor that is mirrored or has faces on the wrong side.
"""

from typing import Dict, Mapping
import numpy as np

from .errors import InvalidConfigurationError
from .images import OrientedFaceImage, TrimmedFaceImage
from .projection import ViewDirection

# Slot <- capture
FACE_SWAPS = {
    ViewDirection.FRONT: ViewDirection.BACK,
    ViewDirection.BACK: ViewDirection.FRONT,
    ViewDirection.LEFT: ViewDirection.RIGHT,
    ViewDirection.RIGHT: ViewDirection.LEFT,
    ViewDirection.UP: ViewDirection.UP,
    ViewDirection.DOWN: ViewDirection.DOWN,
}

MIRRORED_FACES = frozenset({
    ViewDirection.FRONT, ViewDirection.BACK,
    ViewDirection.LEFT, ViewDirection.RIGHT,
})
VERTICALLY_FLIPPED_FACES = frozenset({ViewDirection.UP, ViewDirection.DOWN})


def flip_horizontal(pixels: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(pixels[:, ::-1])


def flip_vertical(pixels: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(pixels[::-1, :])


class FaceOrienter:
    """Applies the fixed swap/mirror/flip stage to a full set of six faces."""

    def orient(
        self,
        faces: Mapping[ViewDirection, TrimmedFaceImage]
    ) -> Dict[ViewDirection, OrientedFaceImage]:
        """
        Orient six trimmed faces for the atlas.

        Args:
            faces: One TrimmedFaceImage per ViewDirection, keyed by capture direction

        Returns:
            One OrientedFaceImage per atlas slot
        """
        missing = [d.face_name for d in ViewDirection if d not in faces]
        if missing:
            raise InvalidConfigurationError(f"Missing faces for orientation: {missing}")

        oriented = {}
        for slot in ViewDirection:
            # 1. Swap identities
            source = faces[FACE_SWAPS[slot]]
            pixels = source.pixels

            # 2. Mirror the side faces (after the swap)
            if slot in MIRRORED_FACES:
                pixels = flip_horizontal(pixels)

            # 3. Undo the capture half-turn
            if slot in VERTICALLY_FLIPPED_FACES:
                pixels = flip_vertical(pixels)

            oriented[slot] = OrientedFaceImage(
                pixels=pixels,
                direction=slot,
                source_direction=source.direction,
                average_color=source.average_color
            )

        return oriented
