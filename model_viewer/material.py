#
# PROJECT: model-viewer-core
# MODULE: model_viewer/material.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

from dataclasses import dataclass, replace

from .color import coerce_color, to_hex


@dataclass(frozen=True)
class MaterialDescriptor:
    """
    Visual appearance shared by reference across Mesh nodes.

    Frozen: a change produces a new descriptor via ``with_changes`` so a
    reader never observes a half-applied update.
    """
    color: int = 0x0055FF
    roughness: float = 0.5
    metalness: float = 0.5
    wireframe: bool = False
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'color', coerce_color(self.color))
        object.__setattr__(self, 'roughness', _unit(self.roughness, 'roughness'))
        object.__setattr__(self, 'metalness', _unit(self.metalness, 'metalness'))
        object.__setattr__(self, 'wireframe', bool(self.wireframe))

    def __repr__(self):
        return (f"MaterialDescriptor({to_hex(self.color)}, r={self.roughness:.2f}, "
                f"m={self.metalness:.2f}, wire={self.wireframe})")

    def with_changes(self, **changes) -> 'MaterialDescriptor':
        """Return a copy with the non-None fields of ``changes`` applied."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            return self
        return replace(self, **changes)

    @classmethod
    def from_config(cls, config) -> 'MaterialDescriptor':
        return cls(color=config.material_color,
                   roughness=config.roughness,
                   metalness=config.metalness,
                   wireframe=config.wireframe)


def _unit(value, field_name: str) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{field_name} must be within [0, 1], got {value}")
    return value


# Assigned to parsed meshes that arrive without any material
NEUTRAL_MATERIAL = MaterialDescriptor(color=0xCCCCCC, roughness=1.0,
                                      metalness=0.0, name="neutral")
