#
# PROJECT: model-viewer-core
# MODULE: model_viewer/materials.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import logging
from typing import Optional

from .material import MaterialDescriptor
from .node import SceneNode

logger = logging.getLogger(__name__)


def apply_material(root: Optional[SceneNode], material: MaterialDescriptor) -> int:
    """
    Assign ``material`` to every Mesh node under ``root`` (inclusive).

    The same descriptor object is shared by all meshes. Group, Light and
    Helper nodes are left untouched. Returns the number of meshes visited.
    """
    if root is None:
        return 0
    count = 0
    for node in root.traverse():
        if node.is_mesh:
            node.material = material
            node.needs_update = True
            count += 1
    logger.debug("Applied %r to %d mesh(es)", material, count)
    return count
