"""
Main ImpostorBaker Class

This is the primary interface for the baking pipeline.
It orchestrates:
1. Capture framing (BoundsProjector)
2. Capture, through the host-supplied Renderer
3. Background trimming (FaceTrimmer)
4. Orientation (FaceOrienter)
5. Atlas packing (AtlasPacker)
6. Cube mesh generation (ImpostorMeshBuilder)

Example Usage:
    baker = ImpostorBaker(ImpostorConfig(texture_size=256))
    result = baker.bake(bounds, renderer)
    AtlasExporter().export(result.atlas, "impostor.png")
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol
import logging
import numpy as np

from .atlas import AtlasLayout, AtlasPacker, AtlasTexture
from .config import ImpostorConfig
from .errors import InvalidConfigurationError, UpstreamRenderError
from .images import RawFaceImage, TrimmedFaceImage, as_rgb_buffer
from .mesh import ImpostorMesh, ImpostorMeshBuilder
from .orientation import FaceOrienter
from .projection import AxisAlignedBounds, BoundsProjector, CameraFrame, ViewDirection
from .trimming import FaceTrimmer

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """
    Host capability that captures the object for one frame.

    Implementations render orthographically along frame.capture_forward with
    frame.capture_up as image up, clear to background_color, and return an
    RGB buffer of shape (H, W, 3) with row 0 at the top.
    """

    def render(self, frame: CameraFrame, background_color) -> np.ndarray:
        ...


class PrecapturedRenderer:
    """
    Serves captures that were rendered ahead of time.

    Args:
        images: One RGB buffer per ViewDirection
    """

    def __init__(self, images: Mapping[ViewDirection, np.ndarray]):
        self.images = dict(images)

    def render(self, frame: CameraFrame, background_color) -> np.ndarray:
        image = self.images.get(frame.direction)
        if image is None:
            raise KeyError(f"No capture for {frame.direction.face_name}")
        return image


@dataclass
class ImpostorPlacement:
    """Transform that fits the unit impostor cube over the source object."""
    position: np.ndarray
    scale: np.ndarray

    @classmethod
    def from_bounds(cls, bounds: AxisAlignedBounds) -> "ImpostorPlacement":
        return cls(position=bounds.center.copy(), scale=bounds.size)

    def apply(self, vertices: np.ndarray) -> np.ndarray:
        """Place unit-cube vertices in world space."""
        return vertices * self.scale + self.position


@dataclass
class ImpostorResult:
    """Everything one bake produces."""
    atlas: AtlasTexture
    mesh: ImpostorMesh
    layout: AtlasLayout
    bounds: AxisAlignedBounds
    frames: Dict[ViewDirection, CameraFrame]
    placement: ImpostorPlacement
    degenerate_faces: List[ViewDirection] = field(default_factory=list)


class ImpostorBaker:
    """
    High-level interface for baking cube impostors.

    Every call to bake() is independent: the baker holds configuration and
    stateless pipeline stages only, so one instance may serve many bakes.

    Attributes:
        config: Bake settings
        projector: Capture framing stage
        trimmer: Background trimming stage
        orienter: Face orientation stage
        packer: Atlas packing stage
        mesh_builder: Cube mesh stage
    """

    def __init__(self, config: Optional[ImpostorConfig] = None):
        """
        Initialize the baker.

        Args:
            config: Bake settings (defaults to ImpostorConfig())
        """
        self.config = config or ImpostorConfig()
        self.projector = BoundsProjector()
        self.trimmer = FaceTrimmer(self.config.similarity_threshold)
        self.orienter = FaceOrienter()
        self.packer = AtlasPacker(fill_color=self.config.background_color)
        self.mesh_builder = ImpostorMeshBuilder()

    def bake(self, bounds: AxisAlignedBounds, renderer: Renderer) -> ImpostorResult:
        """
        Run one complete bake.

        Args:
            bounds: Bounds of the source object
            renderer: Host renderer used for the six captures

        Returns:
            ImpostorResult with atlas, mesh and placement

        Raises:
            UpstreamRenderError: The renderer failed for some direction
        """
        config = self.config
        background = np.asarray(config.background_color, dtype=np.float32)
        layout = AtlasLayout(config.texture_size)

        frames = self.projector.compute_frames(bounds)

        trimmed: Dict[ViewDirection, TrimmedFaceImage] = {}
        for direction in ViewDirection:
            raw = self._capture(renderer, frames[direction], background)
            trimmed[direction] = self.trimmer.trim(raw, background, config.trim_amount)
            del raw

        degenerate = [d for d in ViewDirection if trimmed[d].degenerate]

        oriented = self.orienter.orient(trimmed)
        del trimmed

        atlas = self.packer.pack(oriented, config.texture_size, layout)
        del oriented

        mesh = self.mesh_builder.build_cube_mesh(layout)

        logger.info(
            "Baked %dx%d impostor atlas (%d degenerate faces)",
            config.texture_size, config.texture_size, len(degenerate)
        )

        return ImpostorResult(
            atlas=atlas,
            mesh=mesh,
            layout=layout,
            bounds=bounds,
            frames=frames,
            placement=ImpostorPlacement.from_bounds(bounds),
            degenerate_faces=degenerate
        )

    def bake_from_images(
        self,
        bounds: AxisAlignedBounds,
        images: Mapping[ViewDirection, np.ndarray]
    ) -> ImpostorResult:
        """
        Bake from six captures that were rendered ahead of time.

        Args:
            bounds: Bounds of the source object
            images: One RGB buffer per ViewDirection

        Returns:
            ImpostorResult
        """
        missing = [d.face_name for d in ViewDirection if d not in images]
        if missing:
            raise InvalidConfigurationError(f"Missing captures: {missing}")
        return self.bake(bounds, PrecapturedRenderer(images))

    def _capture(
        self,
        renderer: Renderer,
        frame: CameraFrame,
        background: np.ndarray
    ) -> RawFaceImage:
        """Render one direction, turning any failure into UpstreamRenderError."""
        name = frame.direction.face_name
        try:
            pixels = renderer.render(frame, tuple(background.tolist()))
        except UpstreamRenderError:
            raise
        except Exception as e:
            raise UpstreamRenderError(f"Renderer failed for {name} capture: {e}") from e

        if pixels is None:
            raise UpstreamRenderError(f"Renderer returned no image for {name} capture")

        try:
            pixels = as_rgb_buffer(pixels, f"{name} capture")
        except InvalidConfigurationError as e:
            raise UpstreamRenderError(f"Renderer returned a corrupt buffer: {e}") from e

        logger.debug("Captured %s: %dx%d", name, pixels.shape[1], pixels.shape[0])
        return RawFaceImage(pixels=pixels, direction=frame.direction, background_color=background)
