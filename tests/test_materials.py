import pytest

from model_viewer.material import MaterialDescriptor
from model_viewer.materials import apply_material
from model_viewer.mesh import Geometry
from model_viewer.node import GridHelper, Light, NodeType, SceneNode


def tree():
    root = SceneNode(NodeType.GROUP, name="root")
    arm = root.add(SceneNode(NodeType.GROUP, name="arm"))
    arm.add(SceneNode(NodeType.MESH, name="hand", geometry=Geometry.cube()))
    root.add(SceneNode(NodeType.MESH, name="body", geometry=Geometry.cube()))
    root.add(Light("lamp", 0xFFFFFF, 1.0))
    root.add(GridHelper())
    return root


def test_apply_material_touches_meshes_only():
    root = tree()
    material = MaterialDescriptor(color=0xFF0000)
    assert apply_material(root, material) == 2

    for node in root.traverse():
        if node.kind is NodeType.MESH:
            assert node.material is material
            assert node.needs_update
        else:
            assert node.material is None
            assert not node.needs_update


def test_apply_material_is_idempotent():
    root = tree()
    material = MaterialDescriptor(wireframe=True)
    apply_material(root, material)
    first = root.signature()
    apply_material(root, material)
    assert root.signature() == first
    assert all(n.material is material for n in root.traverse() if n.is_mesh)


def test_apply_material_without_content():
    assert apply_material(None, MaterialDescriptor()) == 0


def test_with_changes_validates():
    base = MaterialDescriptor()
    assert base.with_changes() is base
    assert base.with_changes(color=None) is base
    red = base.with_changes(color="#ff0000")
    assert red.color == 0xFF0000 and red.roughness == base.roughness
    with pytest.raises(ValueError):
        base.with_changes(roughness=2.0)
    with pytest.raises(ValueError):
        base.with_changes(color=0x1000000)
