#
# PROJECT: model-viewer-core
# MODULE: model_viewer/reactor.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import logging
import math

from .context import ViewerContext
from .materials import apply_material

logger = logging.getLogger(__name__)


def _non_negative(value, what: str) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{what} must be a finite value >= 0, got {value}")
    return value


class LiveParameterReactor:
    """
    Applies user-adjusted parameters to the furniture or active content.

    Each channel only touches its own target. Content channels (material,
    scale) are no-ops while nothing is loaded; furniture channels always
    apply. The reactor keeps no reference to the content root between calls.
    """

    def __init__(self, context: ViewerContext):
        self.context = context

    def set_ambient_intensity(self, value: float):
        self.context.ambient.intensity = _non_negative(value, "ambient intensity")

    def set_directional_intensity(self, value: float):
        self.context.directional.intensity = _non_negative(value, "directional intensity")

    def set_background(self, color) -> int:
        return self.context.scene.set_background(color)

    def set_grid_visible(self, visible: bool):
        self.context.grid.visible = bool(visible)

    def set_material(self, color=None, wireframe=None, roughness=None, metalness=None) -> bool:
        """
        Replace the shared material and re-apply it to the active content.
        Returns False when nothing changed.
        """
        ctx = self.context
        updated = ctx.material.with_changes(color=color, wireframe=wireframe,
                                            roughness=roughness, metalness=metalness)
        if updated == ctx.material:
            return False
        ctx.material = updated
        root = ctx.scene.content
        if root is None:
            logger.debug("No content loaded; material %r stored for the next upload", updated)
            return True
        apply_material(root, updated)
        return True

    def set_scale(self, factor: float) -> bool:
        factor = float(factor)
        if not math.isfinite(factor) or factor <= 0:
            raise ValueError(f"scale must be a finite value > 0, got {factor}")
        root = self.context.scene.content
        if root is None:
            return False
        root.set_uniform_scale(factor)
        return True
