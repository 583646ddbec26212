import asyncio

import pytest

from model_viewer.config import ViewerConfig
from model_viewer.context import ViewerContext
from model_viewer.errors import ContentEncodingError, ParseFailure, UnsupportedFormat
from model_viewer.math_utils import Vec3
from model_viewer.node import NodeType
from model_viewer.pipeline import UploadPipeline


def upload(pipeline, filename, content):
    return asyncio.run(pipeline.upload(filename, content))


@pytest.fixture
def context():
    return ViewerContext.create()


@pytest.fixture
def pipeline(context):
    return UploadPipeline(context)


def test_initial_scene_shows_placeholder(context):
    assert context.content.name == "placeholder"
    assert context.camera.position == Vec3(0, 1, 5)
    assert context.scene.furniture == (context.ambient, context.directional, context.grid)
    assert context.directional.position.magnitude() == pytest.approx(1.0)


def test_stl_upload_frames_camera(context, pipeline, stl_bytes):
    framing = upload(pipeline, "part.stl", stl_bytes)

    root = context.content
    assert root.name == "part"
    (mesh,) = [n for n in root.traverse() if n.is_mesh]
    assert mesh.material is context.material

    # Tetrahedron spans (0,0,0)..(2,4,6)
    assert tuple(framing.box.min) == pytest.approx((0.0, 0.0, 0.0))
    assert tuple(framing.box.max) == pytest.approx((2.0, 4.0, 6.0))
    assert framing.distance == pytest.approx(2.07846, rel=1e-4)
    assert tuple(context.camera.position) == pytest.approx((1.0, 2.0, framing.distance))
    assert tuple(context.camera.target) == pytest.approx((1.0, 2.0, 3.0))
    assert context.camera.far == pytest.approx(3 * framing.distance)


def test_upload_replaces_previous_content(context, pipeline, obj_text, glb_bytes):
    placeholder = context.content
    upload(pipeline, "tetra.obj", obj_text)
    first = context.content
    upload(pipeline, "tri.glb", glb_bytes)

    assert placeholder.children == []
    assert first.children == []
    non_furniture = [n for n in context.scene.children if n not in context.scene.furniture]
    assert non_furniture == [context.content]
    assert len(context.scene.children) == 4


def test_file_lights_are_content_not_furniture(context, pipeline, gltf_embedded, stl_bytes):
    upload(pipeline, "tri.gltf", gltf_embedded)
    lights = [n for n in context.content.traverse() if n.kind is NodeType.LIGHT]
    assert len(lights) == 1
    upload(pipeline, "part.stl", stl_bytes)
    assert [n.name for n in context.scene.furniture] == ["ambient", "directional", "grid"]


def test_uploaded_meshes_get_current_material(context, pipeline, gltf_embedded):
    upload(pipeline, "tri.gltf", gltf_embedded)
    meshes = [n for n in context.content.traverse() if n.is_mesh]
    assert meshes and all(n.material is context.material for n in meshes)


def test_preserve_materials_keeps_file_materials(gltf_embedded):
    context = ViewerContext.create(ViewerConfig(preserve_materials=True))
    upload(UploadPipeline(context), "tri.gltf", gltf_embedded)
    (mesh,) = [n for n in context.content.traverse() if n.is_mesh]
    assert mesh.material.color == 0xFF0000


@pytest.mark.parametrize("filename,content,error", [
    ("model.xyz", b"data", UnsupportedFormat),
    ("broken.glb", b"glTF\x01\x00\x00\x00\x0c\x00\x00\x00", ParseFailure),
    ("tetra.obj", b"v 0 0 0", ContentEncodingError),
])
def test_failed_upload_leaves_scene_untouched(context, pipeline, filename, content, error):
    before = context.content
    children = context.scene.children
    position = context.camera.position
    generation = context.generation
    with pytest.raises(error):
        upload(pipeline, filename, content)
    assert context.content is before
    assert context.scene.children == children
    assert context.camera.position == position
    assert context.generation == generation


def test_malformed_gltf_structure_leaves_scene_untouched(context, pipeline):
    before = context.content
    children = context.scene.children
    text = '{"asset": {"version": "2.0"}, "extensions": []}'
    with pytest.raises(ParseFailure):
        upload(pipeline, "shape.gltf", text)
    assert context.content is before
    assert context.scene.children == children


def test_missing_external_buffer_is_not_fatal(context, pipeline, gltf_external):
    framing = upload(pipeline, "tri.gltf", gltf_external.text)
    assert framing is not None
    assert not [n for n in context.content.traverse() if n.is_mesh]


def test_stale_async_upload_is_discarded(gltf_external, stl_bytes):
    async def scenario():
        gate = asyncio.Event()

        async def resolver(uri):
            await gate.wait()
            return gltf_external.buffer

        context = ViewerContext.create(resolver=resolver)
        pipeline = UploadPipeline(context)
        slow = asyncio.ensure_future(pipeline.upload("slow.gltf", gltf_external.text))
        await asyncio.sleep(0)
        fast = await pipeline.upload("part.stl", stl_bytes)
        gate.set()
        stale = await slow
        return context, fast, stale

    context, fast, stale = asyncio.run(scenario())
    assert fast is not None
    assert stale is None
    assert context.content.name == "part"


def test_listeners_receive_new_content(context, pipeline, stl_bytes, caplog):
    seen = []

    def broken(root, framing):
        raise RuntimeError("listener bug")

    pipeline.subscribe(broken)
    pipeline.subscribe(lambda root, framing: seen.append((root, framing)))
    framing = upload(pipeline, "part.stl", stl_bytes)

    assert seen == [(context.content, framing)]
    assert "listener bug" in caplog.text

    pipeline.unsubscribe(broken)
    upload(pipeline, "again.stl", stl_bytes)
    assert len(seen) == 2


def test_reset_camera_after_upload(context, pipeline, stl_bytes):
    upload(pipeline, "part.stl", stl_bytes)
    assert context.camera.position != Vec3(0, 1, 5)
    context.reset_camera()
    assert context.camera.position == Vec3(0, 1, 5)
    assert context.camera.target == Vec3(0, 0, 0)


def test_upload_before_placeholder_with_no_content(stl_bytes):
    context = ViewerContext.create(ViewerConfig(placeholder=False))
    assert context.content is None
    upload(UploadPipeline(context), "part.stl", stl_bytes)
    assert context.content.name == "part"
