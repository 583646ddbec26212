#
# PROJECT: model-viewer-core
# MODULE: model_viewer/node.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import enum
from typing import Iterator, List, Optional, Tuple

from .material import MaterialDescriptor
from .math_utils import IDENTITY_QUAT, Mat4, Vec3
from .mesh import Geometry


class NodeType(enum.Enum):
    MESH = "mesh"
    GROUP = "group"
    LIGHT = "light"
    HELPER = "helper"


# Top-level node kinds that survive content replacement
FURNITURE_TYPES = frozenset((NodeType.LIGHT, NodeType.HELPER))


class SceneNode:
    """
    Canonical unit of the normalized scene tree.

    A MESH node always carries a non-empty geometry; the normalizer enforces
    this before a tree reaches the scene.
    """

    def __init__(self, kind: NodeType, name: str = "",
                 geometry: Optional[Geometry] = None,
                 material: Optional[MaterialDescriptor] = None,
                 position=(0.0, 0.0, 0.0), rotation=IDENTITY_QUAT,
                 scale=(1.0, 1.0, 1.0)):
        self.kind = kind
        self.name = name
        self.geometry = geometry
        self.material = material
        self.position = Vec3.from_iterable(position)
        self.rotation: Tuple[float, float, float, float] = tuple(float(c) for c in rotation)
        self.scale = Vec3.from_iterable(scale)
        self.children: List['SceneNode'] = []
        self.visible = True
        # Set whenever the renderer must re-upload this node's material
        self.needs_update = False

    def __repr__(self):
        return (f"{type(self).__name__}({self.kind.value}, {self.name!r}, "
                f"children={len(self.children)})")

    @property
    def is_mesh(self) -> bool:
        return self.kind is NodeType.MESH

    def add(self, child: 'SceneNode') -> 'SceneNode':
        self.children.append(child)
        return child

    def local_matrix(self) -> Mat4:
        return Mat4.compose(self.position, self.rotation, self.scale)

    def set_uniform_scale(self, factor: float):
        self.scale = Vec3(factor, factor, factor)

    def traverse(self) -> Iterator['SceneNode']:
        """Depth-first, pre-order; every descendant is yielded exactly once."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_world(self, parent: Optional[Mat4] = None) -> Iterator[Tuple['SceneNode', Mat4]]:
        """Yield (node, accumulated world matrix) pairs, depth-first."""
        base = parent if parent is not None else Mat4.identity()
        stack = [(self, base)]
        while stack:
            node, parent_matrix = stack.pop()
            world = parent_matrix @ node.local_matrix()
            yield node, world
            for child in reversed(node.children):
                stack.append((child, world))

    def signature(self):
        """Structural fingerprint: type tags, names and shapes in traversal order."""
        sig = []
        for node in self.traverse():
            geo = node.geometry
            sig.append((node.kind, node.name, len(node.children),
                        None if geo is None else (geo.vertex_count, geo.face_count)))
        return tuple(sig)

    def dispose(self):
        """Release the whole subtree. The node must not be used afterwards."""
        for node in list(self.traverse()):
            node.geometry = None
            node.material = None
            node.children = []


class Light(SceneNode):
    def __init__(self, name: str, color: int, intensity: float, position=(0.0, 0.0, 0.0)):
        super().__init__(NodeType.LIGHT, name=name, position=position)
        self.color = color
        self.intensity = float(intensity)


class AmbientLight(Light):
    def __init__(self, color: int = 0x404040, intensity: float = 2.0):
        super().__init__("ambient", color, intensity)


class DirectionalLight(Light):
    def __init__(self, color: int = 0xFFFFFF, intensity: float = 2.0,
                 position=(5.0, 10.0, 7.5)):
        super().__init__("directional", color, intensity,
                         position=Vec3.from_iterable(position).normalize())


class GridHelper(SceneNode):
    def __init__(self, size: float = 10.0, divisions: int = 10):
        super().__init__(NodeType.HELPER, name="grid")
        self.size = float(size)
        self.divisions = int(divisions)
