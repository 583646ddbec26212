#
# PROJECT: model-viewer-core
# MODULE: model_viewer/parsed.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#
"""Intermediate objects produced by decoders, before normalization."""

from dataclasses import dataclass, field
from typing import Awaitable, List, Optional, Union

from .material import MaterialDescriptor
from .math_utils import IDENTITY_QUAT, Mat4
from .mesh import Geometry
from .node import NodeType


@dataclass
class ParsedNode:
    """Format-neutral node as a decoder saw it. Fields may be missing."""
    name: str = ""
    kind: NodeType = NodeType.GROUP
    geometry: Optional[Geometry] = None
    material: Optional[MaterialDescriptor] = None
    position: tuple = (0.0, 0.0, 0.0)
    rotation: tuple = IDENTITY_QUAT
    scale: tuple = (1.0, 1.0, 1.0)
    children: List['ParsedNode'] = field(default_factory=list)
    light_color: int = 0xFFFFFF
    light_intensity: float = 1.0

    @classmethod
    def from_matrix(cls, matrix: Mat4, **kwargs) -> 'ParsedNode':
        position, rotation, scale = matrix.decompose()
        return cls(position=tuple(position), rotation=rotation,
                   scale=tuple(scale), **kwargs)


@dataclass
class GeometryOnly:
    """A bare geometry with at most a material (STL)."""
    geometry: Geometry
    material: Optional[MaterialDescriptor] = None
    name: str = ""


@dataclass
class FlatMesh:
    """An ordered list of sibling meshes with no nesting (OBJ)."""
    meshes: List[ParsedNode]
    name: str = ""


@dataclass
class Hierarchy:
    """A multi-level node tree (FBX, resolved glTF)."""
    root: ParsedNode
    animation_count: int = 0


@dataclass
class AsyncSceneGraph:
    """
    A scene graph whose sub-resources are still being resolved.

    ``pending`` is an awaitable yielding a ``Hierarchy``; it may raise
    ``ParseFailure``. It can be awaited once.
    """
    pending: Awaitable[Hierarchy]
    filename: str = ""

    async def resolve(self) -> Hierarchy:
        return await self.pending

    def close(self):
        """Drop an unawaited coroutine without a 'never awaited' warning."""
        close = getattr(self.pending, 'close', None)
        if close is not None:
            close()


ParsedObject = Union[GeometryOnly, FlatMesh, Hierarchy, AsyncSceneGraph]
