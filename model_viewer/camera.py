#
# PROJECT: model-viewer-core
# MODULE: model_viewer/camera.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

from .math_utils import Vec3


class Camera:
    """
    Perspective camera state consumed by the render loop.

    Stores position, look-at target, vertical field-of-view (degrees),
    aspect ratio and near/far clip planes. Only auto-framing and reset()
    write position, target and far; orbit input handling lives outside the
    core and only reads the target.
    """
    __slots__ = ('position', 'target', 'fov', 'aspect', 'near', 'far',
                 'home_position', 'home_target')

    def __init__(self, fov: float = 75.0, aspect: float = 16.0 / 9.0,
                 near: float = 0.1, far: float = 100000.0,
                 position=(0.0, 1.0, 5.0), target=(0.0, 0.0, 0.0)):
        self.fov = float(fov)
        self.aspect = float(aspect)
        self.near = float(near)
        self.far = float(far)
        self.home_position = Vec3.from_iterable(position)
        self.home_target = Vec3.from_iterable(target)
        self.position = self.home_position
        self.target = self.home_target

    def __repr__(self):
        return (f"Camera(pos={self.position}, target={self.target}, fov={self.fov}, "
                f"near={self.near}, far={self.far:.4g})")

    @classmethod
    def from_config(cls, config) -> 'Camera':
        return cls(fov=config.fov, aspect=config.aspect,
                   near=config.near_clip, far=config.far_clip,
                   position=config.camera_position)

    def look_at(self, position: Vec3, target: Vec3):
        self.position = position
        self.target = target

    def reset(self):
        """Return to the home position looking at the origin."""
        self.position = self.home_position
        self.target = self.home_target

    def set_aspect(self, width: float, height: float):
        """Resize hook for the render loop; ignores degenerate sizes."""
        if width > 0 and height > 0:
            self.aspect = width / height
