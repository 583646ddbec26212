#
# PROJECT: model-viewer-core
# MODULE: model_viewer/config.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import os
from dataclasses import dataclass, field
from typing import Tuple

from .color import parse_hex_color, rgb_to_int


@dataclass
class ViewerConfig:
    """Configuration for scene composition, framing and default visuals."""
    # Camera
    fov: float = 75.0
    aspect: float = 16.0 / 9.0
    near_clip: float = 0.1
    far_clip: float = 100000.0
    camera_position: Tuple[float, float, float] = (0.0, 1.0, 5.0)

    # Auto-framing
    framing_margin: float = 1.2
    far_multiplier: float = 3.0
    min_extent: float = 1e-6

    # Default material
    material_color: int = 0x0055FF
    roughness: float = 0.5
    metalness: float = 0.5
    wireframe: bool = False

    # Scene furniture
    background: int = 0x2C2C2C
    ambient_color: int = 0x404040
    ambient_intensity: float = 2.0
    directional_color: int = 0xFFFFFF
    directional_intensity: float = 2.0
    directional_position: Tuple[float, float, float] = (5.0, 10.0, 7.5)
    grid_size: float = 10.0
    grid_divisions: int = 10
    show_grid: bool = True

    # Placeholder content shown before the first upload
    placeholder: bool = True
    # Keep materials from the file instead of applying the current material
    preserve_materials: bool = False

    log_level: str = field(default="WARNING", repr=False)

    @classmethod
    def from_env(cls) -> 'ViewerConfig':
        """
        Build a config from defaults plus MODEL_VIEWER_* environment overrides.
        Malformed values are ignored and the default is kept.
        """
        config = cls()
        env = os.environ

        fov = env.get('MODEL_VIEWER_FOV')
        if fov:
            try:
                config.fov = max(1.0, min(179.0, float(fov)))
            except ValueError:
                pass

        for key, attr in (('MODEL_VIEWER_BACKGROUND', 'background'),
                          ('MODEL_VIEWER_MATERIAL_COLOR', 'material_color')):
            rgb = parse_hex_color(env.get(key))
            if rgb is not None:
                setattr(config, attr, rgb_to_int(rgb))

        wire = env.get('MODEL_VIEWER_WIREFRAME', '').strip().lower()
        if wire:
            config.wireframe = wire in ('1', 'true', 'yes', 'on')

        level = env.get('MODEL_VIEWER_LOG_LEVEL')
        if level:
            config.log_level = level.upper()

        return config
