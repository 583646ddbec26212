#
# PROJECT: model-viewer-core
# MODULE: model_viewer/framing.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import logging
import math
from dataclasses import dataclass
from itertools import product

import numpy as np

from .camera import Camera
from .math_utils import Vec3
from .node import SceneNode

logger = logging.getLogger(__name__)


class BoundingBox:
    """Axis-aligned world-space box. min <= max component-wise."""
    __slots__ = ('min', 'max')

    def __init__(self, min_corner, max_corner):
        self.min = Vec3.from_iterable(min_corner)
        self.max = Vec3.from_iterable(max_corner)

    def __repr__(self):
        return f"BoundingBox(min={self.min}, max={self.max})"

    @property
    def center(self) -> Vec3:
        return Vec3((self.min.x + self.max.x) * 0.5,
                    (self.min.y + self.max.y) * 0.5,
                    (self.min.z + self.max.z) * 0.5)

    @property
    def size(self) -> Vec3:
        return self.max - self.min

    def is_degenerate(self, epsilon: float) -> bool:
        return self.size.max_component() <= epsilon


def compute_bounds(root: SceneNode) -> BoundingBox:
    """
    Union of every Mesh node's local box, each transformed to world space by
    the node's accumulated transform. Content without meshes yields a
    zero-size box at the root's position.
    """
    lo = None
    hi = None
    for node, world in root.iter_world():
        if not node.is_mesh or node.geometry is None:
            continue
        local = node.geometry.bounds()
        if local is None:
            continue
        corners = np.array(list(product(*zip(local[0], local[1]))), dtype=np.float64)
        pts = world.transform_points(corners)
        pts_lo, pts_hi = pts.min(axis=0), pts.max(axis=0)
        lo = pts_lo if lo is None else np.minimum(lo, pts_lo)
        hi = pts_hi if hi is None else np.maximum(hi, pts_hi)

    if lo is None:
        origin = root.position
        return BoundingBox(origin, origin)
    return BoundingBox(lo, hi)


@dataclass(frozen=True)
class Framing:
    box: BoundingBox
    distance: float
    position: Vec3
    target: Vec3
    far: float


def frame(box: BoundingBox, fov: float, near: float = 0.1, margin: float = 1.2,
          far_multiplier: float = 3.0, min_extent: float = 1e-6) -> Framing:
    """
    Camera placement that keeps ``box`` in view.

    distance = |max_dim / 2 * tan(2 * fov)| * margin, with the camera at
    (center.x, center.y, distance) looking at the center. The far plane is
    pushed past the box's back face. Zero-size boxes are floored to
    ``min_extent`` so the result is always finite and positive.
    """
    size = box.size
    max_dim = size.max_component()
    if not math.isfinite(max_dim) or max_dim < min_extent:
        logger.debug("Degenerate bounds %r, flooring extent to %g", box, min_extent)
        max_dim = min_extent

    distance = abs(max_dim / 2 * math.tan(2 * math.radians(fov))) * margin
    if not math.isfinite(distance) or distance < min_extent:
        distance = max(min_extent, max_dim * margin if math.isfinite(max_dim) else min_extent)

    center = box.center
    position = Vec3(center.x, center.y, distance)

    min_z = box.min.z
    if min_z < 0:
        far = far_multiplier * (-min_z + distance)
    else:
        far = far_multiplier * (distance - min_z)
    # Far plane reaches at least the farthest box corner
    reach = math.sqrt((size.x / 2) ** 2 + (size.y / 2) ** 2
                      + max(abs(distance - box.min.z), abs(distance - box.max.z)) ** 2)
    if not math.isfinite(far) or far < reach:
        far = reach
    if not math.isfinite(far) or far < 2 * near:
        far = 2 * near

    return Framing(box=box, distance=distance, position=position, target=center, far=far)


def frame_camera(camera: Camera, root: SceneNode, config) -> Framing:
    """Compute bounds of ``root`` and write the framing into ``camera``."""
    box = compute_bounds(root)
    framing = frame(box, camera.fov, near=camera.near,
                    margin=config.framing_margin,
                    far_multiplier=config.far_multiplier,
                    min_extent=config.min_extent)
    camera.look_at(framing.position, framing.target)
    camera.far = framing.far
    logger.info("Framed %r: distance=%.4g far=%.4g", box, framing.distance, framing.far)
    return framing
