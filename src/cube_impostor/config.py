"""
Bake Configuration

Everything a bake needs besides the object itself is passed explicitly in an
ImpostorConfig; there is no process-wide state.
"""

from dataclasses import dataclass
import numbers
from typing import Tuple
import logging
import numpy as np

from .atlas import SUPPORTED_TEXTURE_SIZES
from .errors import InvalidConfigurationError
from .images import as_color
from .trimming import DEFAULT_SIMILARITY_THRESHOLD

logger = logging.getLogger(__name__)

DEFAULT_TEXTURE_SIZE = 512
TRIM_AMOUNT_RANGE = (-0.05, 0.05)


@dataclass
class ImpostorConfig:
    """
    Settings for one bake.

    Attributes:
        texture_size: Atlas resolution, one of SUPPORTED_TEXTURE_SIZES
        trim_amount: Crop (positive) or pad (negative) fraction, clamped to [-0.05, 0.05]
        background_color: Flat color the captures are rendered against
        similarity_threshold: RGB distance below which a pixel counts as background
    """
    texture_size: int = DEFAULT_TEXTURE_SIZE
    trim_amount: float = 0.0
    background_color: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD

    def __post_init__(self):
        size = self.texture_size
        if (not isinstance(size, numbers.Integral) or isinstance(size, bool)
                or size not in SUPPORTED_TEXTURE_SIZES):
            raise InvalidConfigurationError(
                f"Texture size must be one of {list(SUPPORTED_TEXTURE_SIZES)}, "
                f"got {self.texture_size}"
            )

        if not np.isfinite(self.trim_amount):
            raise InvalidConfigurationError(f"Trim amount must be finite, got {self.trim_amount}")

        lo, hi = TRIM_AMOUNT_RANGE
        clamped = min(max(float(self.trim_amount), lo), hi)
        if clamped != self.trim_amount:
            logger.warning("Trim amount %s clamped to %s", self.trim_amount, clamped)
        self.trim_amount = clamped

        if not self.similarity_threshold > 0:
            raise InvalidConfigurationError(
                f"Similarity threshold must be positive, got {self.similarity_threshold}"
            )

        self.background_color = tuple(float(c) for c in as_color(self.background_color))
