#
# PROJECT: model-viewer-core
# MODULE: model_viewer/context.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import logging
from dataclasses import dataclass, field
from typing import Optional

from .camera import Camera
from .config import ViewerConfig
from .material import MaterialDescriptor
from .mesh import Geometry
from .node import AmbientLight, DirectionalLight, GridHelper, NodeType, SceneNode
from .registry import FormatRegistry, default_registry
from .scene import Scene

logger = logging.getLogger(__name__)


@dataclass
class ViewerContext:
    """
    Everything one viewer session owns, passed explicitly to each component.

    The scene owns the replaceable content subtree; the context owns the
    camera, the furniture lights/grid and the current material.
    """
    config: ViewerConfig
    scene: Scene
    camera: Camera
    registry: FormatRegistry
    material: MaterialDescriptor
    ambient: AmbientLight
    directional: DirectionalLight
    grid: GridHelper
    generation: int = field(default=0)

    @classmethod
    def create(cls, config: Optional[ViewerConfig] = None,
               registry: Optional[FormatRegistry] = None,
               resolver=None) -> 'ViewerContext':
        """Build furniture, initialize the scene and show the placeholder."""
        config = config or ViewerConfig()
        ambient = AmbientLight(config.ambient_color, config.ambient_intensity)
        directional = DirectionalLight(config.directional_color,
                                       config.directional_intensity,
                                       config.directional_position)
        grid = GridHelper(config.grid_size, config.grid_divisions)
        grid.visible = config.show_grid

        scene = Scene(background=config.background)
        scene.initialize((ambient, directional, grid))

        context = cls(config=config,
                      scene=scene,
                      camera=Camera.from_config(config),
                      registry=registry or default_registry(resolver),
                      material=MaterialDescriptor.from_config(config),
                      ambient=ambient,
                      directional=directional,
                      grid=grid)
        if config.placeholder:
            context.scene.replace(context._placeholder())
        return context

    def _placeholder(self) -> SceneNode:
        root = SceneNode(NodeType.GROUP, name="placeholder")
        root.add(SceneNode(NodeType.MESH, name="cube",
                           geometry=Geometry.cube(), material=self.material))
        return root

    @property
    def content(self) -> Optional[SceneNode]:
        return self.scene.content

    def next_generation(self) -> int:
        self.generation += 1
        return self.generation

    def reset_camera(self):
        self.camera.reset()

    def close(self):
        """End of session: release every node."""
        self.generation += 1
        self.scene.close()
        logger.debug("Viewer context closed")
