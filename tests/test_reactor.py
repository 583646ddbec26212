import math

import pytest

from model_viewer.config import ViewerConfig
from model_viewer.context import ViewerContext
from model_viewer.math_utils import Vec3
from model_viewer.reactor import LiveParameterReactor


@pytest.fixture
def context():
    return ViewerContext.create()


@pytest.fixture
def reactor(context):
    return LiveParameterReactor(context)


def test_light_intensities(context, reactor):
    reactor.set_ambient_intensity(0.5)
    reactor.set_directional_intensity(4)
    assert context.ambient.intensity == 0.5
    assert context.directional.intensity == 4.0


@pytest.mark.parametrize("value", [-0.1, math.nan, math.inf])
def test_bad_intensity_is_rejected_without_change(context, reactor, value):
    with pytest.raises(ValueError):
        reactor.set_ambient_intensity(value)
    with pytest.raises(ValueError):
        reactor.set_directional_intensity(value)
    assert context.ambient.intensity == 2.0
    assert context.directional.intensity == 2.0


def test_background_and_grid(context, reactor):
    assert reactor.set_background("#101020") == 0x101020
    assert context.scene.background == 0x101020
    reactor.set_grid_visible(False)
    assert context.grid.visible is False
    assert context.grid in context.scene.furniture


def test_set_material_updates_all_content_meshes(context, reactor):
    before_lights = (context.ambient.intensity, context.directional.intensity)
    assert reactor.set_material(color=0xFF8800, wireframe=True)
    material = context.material
    assert material.color == 0xFF8800 and material.wireframe
    meshes = [n for n in context.content.traverse() if n.is_mesh]
    assert meshes and all(n.material is material for n in meshes)
    assert (context.ambient.intensity, context.directional.intensity) == before_lights


def test_set_material_without_change_is_a_no_op(context, reactor):
    current = context.material
    assert reactor.set_material(color=current.color) is False
    assert context.material is current


def test_set_material_with_bad_color_keeps_material(context, reactor):
    current = context.material
    with pytest.raises(ValueError):
        reactor.set_material(color="#GGGGGG")
    assert context.material is current


def test_set_material_without_content_is_stored():
    context = ViewerContext.create(ViewerConfig(placeholder=False))
    reactor = LiveParameterReactor(context)
    assert context.content is None
    assert reactor.set_material(color=0x00FF00)
    assert context.material.color == 0x00FF00


def test_set_scale(context, reactor):
    position = context.camera.position
    assert reactor.set_scale(2.5)
    assert context.content.scale == Vec3(2.5, 2.5, 2.5)
    assert context.camera.position == position


@pytest.mark.parametrize("factor", [0, -1, math.nan])
def test_bad_scale_is_rejected(reactor, factor):
    with pytest.raises(ValueError):
        reactor.set_scale(factor)


def test_scale_without_content_is_ignored():
    reactor = LiveParameterReactor(ViewerContext.create(ViewerConfig(placeholder=False)))
    assert reactor.set_scale(3.0) is False
