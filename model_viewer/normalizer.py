#
# PROJECT: model-viewer-core
# MODULE: model_viewer/normalizer.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import logging
from typing import Optional

from .errors import MissingSubresource
from .material import NEUTRAL_MATERIAL, MaterialDescriptor
from .math_utils import Vec3
from .node import Light, NodeType, SceneNode
from .parsed import AsyncSceneGraph, FlatMesh, GeometryOnly, Hierarchy, ParsedNode

logger = logging.getLogger(__name__)


def normalize(parsed, default_material: Optional[MaterialDescriptor] = None) -> SceneNode:
    """
    Produce one canonical Scene Node tree from any intermediate object.

    The input is never mutated, so normalizing the same object twice gives
    structurally equal trees. Meshes without geometry are dropped (or kept
    as groups when they still have children); meshes without a material get
    ``default_material`` or the neutral fallback.
    """
    fallback = default_material or NEUTRAL_MATERIAL

    if isinstance(parsed, GeometryOnly):
        if parsed.geometry is None or parsed.geometry.is_empty:
            logger.warning("%s", MissingSubresource(parsed.name or "geometry", "empty geometry"))
            return SceneNode(NodeType.GROUP, name=parsed.name)
        return SceneNode(NodeType.MESH, name=parsed.name,
                         geometry=parsed.geometry,
                         material=parsed.material or fallback)

    if isinstance(parsed, FlatMesh):
        root = SceneNode(NodeType.GROUP, name=parsed.name)
        for item in parsed.meshes:
            node = _convert(item, fallback)
            if node is not None:
                root.add(node)
        return root

    if isinstance(parsed, Hierarchy):
        root = _convert(parsed.root, fallback)
        if root is None:
            root = SceneNode(NodeType.GROUP, name=parsed.root.name)
        if root.kind is not NodeType.GROUP:
            # Content roots are always groups so scale applies uniformly
            wrapper = SceneNode(NodeType.GROUP, name=root.name)
            wrapper.add(root)
            root = wrapper
        return root

    if isinstance(parsed, AsyncSceneGraph):
        raise TypeError("AsyncSceneGraph must be resolved before normalization")

    raise TypeError(f"Cannot normalize {type(parsed).__name__}")


def _convert(item: ParsedNode, fallback: MaterialDescriptor) -> Optional[SceneNode]:
    """Depth-first copy of a parsed subtree. Returns None for dropped nodes."""
    kind = item.kind
    if kind is NodeType.MESH and (item.geometry is None or item.geometry.is_empty):
        logger.warning("Dropping mesh %r: %s", item.name,
                       MissingSubresource(item.name or "mesh", "no geometry"))
        if not item.children:
            return None
        kind = NodeType.GROUP

    if kind is NodeType.LIGHT:
        node = Light(item.name, item.light_color, item.light_intensity,
                     position=item.position)
        node.rotation = tuple(item.rotation)
        node.scale = Vec3.from_iterable(item.scale)
    else:
        node = SceneNode(kind, name=item.name,
                         position=item.position, rotation=item.rotation,
                         scale=item.scale)

    if kind is NodeType.MESH:
        node.geometry = item.geometry
        if item.material is None:
            logger.debug("Mesh %r has no material, using %s", item.name, fallback.name or "default")
            node.material = fallback
        else:
            node.material = item.material

    for child in item.children:
        converted = _convert(child, fallback)
        if converted is not None:
            node.add(converted)
    return node
