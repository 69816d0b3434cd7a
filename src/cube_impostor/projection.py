"""
Orthographic Capture Framing

This module computes, for each of the six cardinal view directions, where the
capture camera goes and how large its orthographic window must be so that the
object's bounding box fills the frame without being clipped.

Tight framing matters: every pixel of slack around the silhouette is texture
resolution the atlas tile never gets back.

Coordinate Systems:
- Internal: Left-handed, Y-up (+X Right, +Y Up, +Z Forward), the capture convention
- glTF: Right-handed, Y-up (+X Right, +Y Up, +Z Back)
- Blender: Right-handed, Z-up (+X Right, +Y Forward, +Z Up)
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union
import logging
import numpy as np

from .errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

# Camera sits this far outside the bounding sphere, as a fraction of its radius
CAMERA_DISTANCE_FACTOR = 1.1
# Near/far planes are +-this multiple of the bounding sphere radius
CLIP_RANGE_FACTOR = 2.0

WORLD_UP = np.array([0.0, 1.0, 0.0])
WORLD_FORWARD = np.array([0.0, 0.0, 1.0])


class ViewDirection(IntEnum):
    """The six capture directions, in atlas face order."""
    FRONT = 0  # +Z
    BACK = 1   # -Z
    LEFT = 2   # -X
    RIGHT = 3  # +X
    UP = 4     # +Y
    DOWN = 5   # -Y

    @property
    def vector(self) -> np.ndarray:
        return VIEW_VECTORS[self].copy()

    @property
    def face_name(self) -> str:
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "ViewDirection":
        return cls[name.upper()]


VIEW_VECTORS = np.array([
    [0, 0, 1],   # FRONT
    [0, 0, -1],  # BACK
    [-1, 0, 0],  # LEFT
    [1, 0, 0],   # RIGHT
    [0, 1, 0],   # UP
    [0, -1, 0],  # DOWN
], dtype=np.float64)

# Captures along the vertical axis get a half-turn so the image is not
# degenerate with respect to world up; FaceOrienter undoes it.
ROTATED_DIRECTIONS = frozenset({ViewDirection.UP, ViewDirection.DOWN})


class CoordinateSystem(Enum):
    """Target coordinate system for export."""
    INTERNAL = "internal"  # Y-up, left-handed (capture convention)
    GLTF = "gltf"          # Y-up, right-handed
    BLENDER = "blender"    # Z-up, right-handed


@dataclass(frozen=True, eq=False)
class AxisAlignedBounds:
    """
    Axis-aligned bounding box stored as center + half-size.

    Attributes:
        center: Box center (3,)
        extents: Half-sizes along each axis (3,), all >= 0
    """
    center: np.ndarray
    extents: np.ndarray

    def __post_init__(self):
        center = np.asarray(self.center, dtype=np.float64).reshape(-1)
        extents = np.asarray(self.extents, dtype=np.float64).reshape(-1)
        if center.shape != (3,) or extents.shape != (3,):
            raise InvalidConfigurationError("Bounds center and extents must be 3-vectors")
        if not (np.all(np.isfinite(center)) and np.all(np.isfinite(extents))):
            raise InvalidConfigurationError("Bounds must be finite")
        if np.any(extents < 0):
            raise InvalidConfigurationError(f"Bounds extents must be >= 0, got {extents.tolist()}")
        object.__setattr__(self, "center", center)
        object.__setattr__(self, "extents", extents)

    @classmethod
    def from_min_max(cls, min_corner, max_corner) -> "AxisAlignedBounds":
        lo = np.asarray(min_corner, dtype=np.float64)
        hi = np.asarray(max_corner, dtype=np.float64)
        return cls(center=(lo + hi) / 2.0, extents=(hi - lo) / 2.0)

    @property
    def min(self) -> np.ndarray:
        return self.center - self.extents

    @property
    def max(self) -> np.ndarray:
        return self.center + self.extents

    @property
    def size(self) -> np.ndarray:
        return self.extents * 2.0

    @property
    def radius(self) -> float:
        """Radius of the bounding sphere (length of the extents vector)."""
        return float(np.linalg.norm(self.extents))

    @property
    def is_empty(self) -> bool:
        return bool(np.all(self.extents == 0))

    def corners(self) -> np.ndarray:
        """
        Get the 8 corners of the box.

        Returns:
            Array of shape (8, 3), ordered with x slowest and z fastest
        """
        signs = np.array([
            [sx, sy, sz]
            for sx in (-1, 1)
            for sy in (-1, 1)
            for sz in (-1, 1)
        ], dtype=np.float64)
        return self.center + signs * self.extents

    def encapsulate(self, other: "AxisAlignedBounds") -> "AxisAlignedBounds":
        """Return the smallest box containing both boxes."""
        return AxisAlignedBounds.from_min_max(
            np.minimum(self.min, other.min),
            np.maximum(self.max, other.max)
        )


def compute_bounds(
    parts: Iterable[AxisAlignedBounds],
    origin: Sequence[float] = (0.0, 0.0, 0.0)
) -> AxisAlignedBounds:
    """
    Union the bounds of all renderable parts of an object.

    Args:
        parts: Bounds of each renderable part
        origin: Object origin, used when there are no parts

    Returns:
        The combined bounds, or a zero-size box at origin if parts is empty
    """
    result: Optional[AxisAlignedBounds] = None
    for part in parts:
        result = part if result is None else result.encapsulate(part)

    if result is None:
        logger.warning("Object has no renderable parts; using zero-size bounds at %s", list(origin))
        return AxisAlignedBounds(center=np.asarray(origin, dtype=np.float64), extents=np.zeros(3))

    return result


def _normalize(v: np.ndarray) -> np.ndarray:
    length = np.linalg.norm(v)
    if length == 0:
        return v
    return v / length


def camera_basis(direction: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute the (right, up) axes for a camera looking along `direction`.

    World up seeds the basis unless the direction is parallel to it, in which
    case world forward is used. Up is re-orthogonalized as
    cross(cross(direction, seed_up), direction).

    Args:
        direction: Unit view vector

    Returns:
        (right, up): Unit vectors. right = cross(up, direction), which is the
        image-right axis in the left-handed capture convention.
    """
    seed_up = WORLD_UP
    side = np.cross(direction, seed_up)
    if np.allclose(side, 0.0):
        seed_up = WORLD_FORWARD
        side = np.cross(direction, seed_up)

    up = _normalize(np.cross(side, direction))
    right = _normalize(np.cross(up, direction))
    return right, up


@dataclass(frozen=True, eq=False)
class CameraFrame:
    """
    Orthographic capture camera for one view direction.

    Attributes:
        direction: Which face this frame captures
        position: Camera position
        forward: Unit view vector (the direction's vector)
        up: Unit up vector before the Up/Down half-turn
        right: Unit image-right vector
        ortho_half_extent: Half-size of the square orthographic window
        near: Near clip distance (negative: the volume starts behind the camera)
        far: Far clip distance
        rotate_180: True for Up/Down captures, whose camera is given a half-turn
            about its right axis. The renderer must then look along
            capture_forward with capture_up as the image up.
    """
    direction: ViewDirection
    position: np.ndarray
    forward: np.ndarray
    up: np.ndarray
    right: np.ndarray
    ortho_half_extent: float
    near: float
    far: float
    rotate_180: bool = False

    @property
    def capture_forward(self) -> np.ndarray:
        return -self.forward if self.rotate_180 else self.forward

    @property
    def capture_up(self) -> np.ndarray:
        return -self.up if self.rotate_180 else self.up

    def project(self, points: np.ndarray) -> np.ndarray:
        """
        Project world points onto the capture image plane.

        Args:
            points: Array of shape (N, 3)

        Returns:
            Array of shape (N, 2) with (u, v): u along image right, v along
            image up, both relative to the frame center
        """
        rel = np.atleast_2d(points) - self.position
        u = rel @ self.right
        v = rel @ self.capture_up
        return np.column_stack([u, v])

    def to_pixels(self, points: np.ndarray, width: int, height: int) -> np.ndarray:
        """
        Map world points to continuous pixel coordinates of a capture.

        The window [-extent, extent] maps onto [0, width] x [0, height], with
        row 0 at the top of the image.

        Returns:
            Array of shape (N, 2) with (col, row)
        """
        uv = self.project(points)
        extent = self.ortho_half_extent
        if extent == 0:
            return np.tile([width / 2.0, height / 2.0], (len(uv), 1))
        col = (uv[:, 0] / extent + 1.0) * 0.5 * width
        row = (1.0 - uv[:, 1] / extent) * 0.5 * height
        return np.column_stack([col, row])


class BoundsProjector:
    """
    Computes tight orthographic capture frames around a bounding box.

    The half-extent is found by projecting all 8 corners of the box onto the
    camera plane and taking the larger of the two half-spans, so the
    silhouette is never clipped and no side gets extra padding.
    """

    def __init__(
        self,
        distance_factor: float = CAMERA_DISTANCE_FACTOR,
        clip_factor: float = CLIP_RANGE_FACTOR
    ):
        """
        Initialize the projector.

        Args:
            distance_factor: Camera distance from the center, in bounding-sphere radii
            clip_factor: Near/far plane distance, in bounding-sphere radii
        """
        self.distance_factor = distance_factor
        self.clip_factor = clip_factor

    def compute_frame(
        self,
        bounds: AxisAlignedBounds,
        direction: Union[ViewDirection, Sequence[float], np.ndarray]
    ) -> CameraFrame:
        """
        Compute the capture frame for one direction.

        Args:
            bounds: Object bounds
            direction: A ViewDirection, or any non-zero view vector

        Returns:
            CameraFrame framing the bounds tightly
        """
        if isinstance(direction, ViewDirection):
            view = direction
            forward = direction.vector
        else:
            forward = _normalize(np.asarray(direction, dtype=np.float64))
            if not np.any(forward):
                raise InvalidConfigurationError("View direction must be non-zero")
            view = _closest_view_direction(forward)

        right, up = camera_basis(forward)

        radius = bounds.radius
        position = bounds.center - forward * (radius * self.distance_factor)
        extent = self.ortho_half_extent(bounds, position, right, up)

        if bounds.is_empty:
            logger.debug("Zero-size bounds for %s capture; frame extent is 0", view.face_name)

        return CameraFrame(
            direction=view,
            position=position,
            forward=forward,
            up=up,
            right=right,
            ortho_half_extent=extent,
            near=-radius * self.clip_factor,
            far=radius * self.clip_factor,
            rotate_180=view in ROTATED_DIRECTIONS and isinstance(direction, ViewDirection)
        )

    def compute_frames(self, bounds: AxisAlignedBounds) -> Dict[ViewDirection, CameraFrame]:
        """Compute all six frames in ViewDirection order."""
        return {d: self.compute_frame(bounds, d) for d in ViewDirection}

    @staticmethod
    def ortho_half_extent(
        bounds: AxisAlignedBounds,
        position: np.ndarray,
        right: np.ndarray,
        up: np.ndarray
    ) -> float:
        """
        Smallest orthographic half-extent containing every projected corner.

        Args:
            bounds: Object bounds
            position: Camera position
            right, up: Unit camera plane axes

        Returns:
            max((maxU - minU) / 2, (maxV - minV) / 2)
        """
        rel = bounds.corners() - position
        u = rel @ right
        v = rel @ up
        half_u = (u.max() - u.min()) / 2.0
        half_v = (v.max() - v.min()) / 2.0
        return float(max(half_u, half_v))


def _closest_view_direction(forward: np.ndarray) -> ViewDirection:
    return ViewDirection(int(np.argmax(VIEW_VECTORS @ forward)))


def get_coordinate_transform(
    source: CoordinateSystem,
    target: CoordinateSystem
) -> np.ndarray:
    """
    Get the 3x3 transformation matrix between coordinate systems.

    Args:
        source: Source coordinate system
        target: Target coordinate system

    Returns:
        3x3 transformation matrix
    """
    if source == target:
        return np.eye(3, dtype=np.float64)

    # Internal (left-handed Y-up) to glTF (right-handed Y-up): mirror Z
    internal_to_gltf = np.array([
        [1, 0, 0],
        [0, 1, 0],
        [0, 0, -1]
    ], dtype=np.float64)

    # Internal to Blender (right-handed Z-up): x' = x, y' = z, z' = y
    internal_to_blender = np.array([
        [1, 0, 0],
        [0, 0, 1],
        [0, 1, 0]
    ], dtype=np.float64)

    transforms = {
        (CoordinateSystem.INTERNAL, CoordinateSystem.GLTF): internal_to_gltf,
        (CoordinateSystem.INTERNAL, CoordinateSystem.BLENDER): internal_to_blender,
    }

    if (source, target) in transforms:
        return transforms[(source, target)]

    if (target, source) in transforms:
        return np.linalg.inv(transforms[(target, source)])

    # Chain through internal
    to_internal = get_coordinate_transform(source, CoordinateSystem.INTERNAL)
    from_internal = get_coordinate_transform(CoordinateSystem.INTERNAL, target)
    return from_internal @ to_internal


def transform_vertices(
    vertices: np.ndarray,
    source: CoordinateSystem,
    target: CoordinateSystem
) -> np.ndarray:
    """
    Transform an array of vectors between coordinate systems.

    Args:
        vertices: Array of shape (N, 3)
        source: Source coordinate system
        target: Target coordinate system

    Returns:
        Transformed array of shape (N, 3)
    """
    matrix = get_coordinate_transform(source, target)
    return (matrix @ vertices.T).T


def flips_handedness(source: CoordinateSystem, target: CoordinateSystem) -> bool:
    """True if converting between the systems mirrors geometry."""
    return bool(np.linalg.det(get_coordinate_transform(source, target)) < 0)
