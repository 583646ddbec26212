import base64
import json
import struct
import zlib
from types import SimpleNamespace

import numpy as np
import pytest

from model_viewer.fbx import FBX_MAGIC


# ── OBJ / STL ───────────────────────────────────────────────────────────

OBJ_TEXT = """\
# tetrahedron
o tetra
v 0 0 0
v 1 0 0
v 0 1 0
v 0 0 1
f 1 3 2
f 1 2 4
f 1 4 3
f 2 3 4
"""


def stl_binary(triangles) -> bytes:
    out = bytearray(b"\0" * 80)
    out += struct.pack("<I", len(triangles))
    for tri in triangles:
        out += struct.pack("<3f", 0.0, 0.0, 0.0)
        for vertex in tri:
            out += struct.pack("<3f", *vertex)
        out += struct.pack("<H", 0)
    return bytes(out)


TETRA = [(0, 0, 0), (2, 0, 0), (0, 4, 0), (0, 0, 6)]


@pytest.fixture
def obj_text():
    return OBJ_TEXT


@pytest.fixture
def stl_bytes():
    a, b, c, d = TETRA
    return stl_binary([(a, c, b), (a, b, d), (a, d, c), (b, c, d)])


# ── glTF / GLB ──────────────────────────────────────────────────────────

TRI_POSITIONS = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]


def gltf_parts(uri=None):
    """Document with Root -> (Tri mesh, Lamp light) and its binary buffer."""
    pos = np.asarray(TRI_POSITIONS, dtype="<f4").tobytes()
    idx = np.asarray([0, 1, 2], dtype="<u2").tobytes() + b"\0\0"
    buffer = pos + idx
    buffer_spec = {"byteLength": len(buffer)}
    if uri is not None:
        buffer_spec["uri"] = uri
    doc = {
        "asset": {"version": "2.0"},
        "scene": 0,
        "scenes": [{"name": "Scene", "nodes": [0]}],
        "nodes": [
            {"name": "Root", "children": [1, 2]},
            {"name": "Tri", "mesh": 0, "translation": [1.0, 0.0, 0.0]},
            {"name": "Lamp", "extensions": {"KHR_lights_punctual": {"light": 0}}},
        ],
        "meshes": [{"name": "Tri", "primitives": [
            {"attributes": {"POSITION": 0}, "indices": 1, "material": 0}]}],
        "materials": [{"name": "Red", "pbrMetallicRoughness": {
            "baseColorFactor": [1.0, 0.0, 0.0, 1.0],
            "metallicFactor": 0.0, "roughnessFactor": 0.8}}],
        "extensions": {"KHR_lights_punctual": {"lights": [
            {"type": "point", "color": [1.0, 1.0, 1.0], "intensity": 3.0}]}},
        "accessors": [
            {"bufferView": 0, "componentType": 5126, "count": 3, "type": "VEC3"},
            {"bufferView": 1, "componentType": 5123, "count": 3, "type": "SCALAR"},
        ],
        "bufferViews": [
            {"buffer": 0, "byteOffset": 0, "byteLength": len(pos)},
            {"buffer": 0, "byteOffset": len(pos), "byteLength": 6},
        ],
        "buffers": [buffer_spec],
    }
    return doc, buffer


def glb_container(doc, buffer) -> bytes:
    js = json.dumps(doc).encode("utf-8")
    js += b" " * (-len(js) % 4)
    bin_chunk = buffer + b"\0" * (-len(buffer) % 4)
    body = (struct.pack("<II", len(js), 0x4E4F534A) + js
            + struct.pack("<II", len(bin_chunk), 0x004E4942) + bin_chunk)
    return b"glTF" + struct.pack("<II", 2, 12 + len(body)) + body


@pytest.fixture
def gltf_embedded():
    doc, buffer = gltf_parts()
    uri = "data:application/octet-stream;base64," + base64.b64encode(buffer).decode()
    doc["buffers"][0]["uri"] = uri
    return json.dumps(doc)


@pytest.fixture
def gltf_external():
    doc, buffer = gltf_parts(uri="tri.bin")
    return SimpleNamespace(text=json.dumps(doc), buffer=buffer)


@pytest.fixture
def glb_bytes():
    doc, buffer = gltf_parts()
    return glb_container(doc, buffer)


# ── FBX (binary, version 7400) ──────────────────────────────────────────

class DoubleArray(list):
    pass


class IntArray(list):
    pass


def _fbx_prop(value) -> bytes:
    if isinstance(value, DoubleArray):
        raw = zlib.compress(np.asarray(value, dtype="<f8").tobytes())
        return b"d" + struct.pack("<III", len(value), 1, len(raw)) + raw
    if isinstance(value, IntArray):
        raw = np.asarray(value, dtype="<i4").tobytes()
        return b"i" + struct.pack("<III", len(value), 0, len(raw)) + raw
    if isinstance(value, bool):
        return b"C" + struct.pack("<?", value)
    if isinstance(value, int):
        return b"L" + struct.pack("<q", value)
    if isinstance(value, float):
        return b"D" + struct.pack("<d", value)
    raw = value.encode("utf-8")
    return b"S" + struct.pack("<I", len(raw)) + raw


def _fbx_node(name, props, children, offset) -> bytes:
    prop_bytes = b"".join(_fbx_prop(p) for p in props)
    name_bytes = name.encode("ascii")
    head = 13 + len(name_bytes)
    body = b""
    child_offset = offset + head + len(prop_bytes)
    for child in children:
        body += _fbx_node(*child, offset=child_offset + len(body))
    if children:
        body += b"\0" * 13
    end = offset + head + len(prop_bytes) + len(body)
    return (struct.pack("<IIIB", end, len(props), len(prop_bytes), len(name_bytes))
            + name_bytes + prop_bytes + body)


def fbx_document(nodes) -> bytes:
    out = bytearray(FBX_MAGIC + b"\x1a\x00" + struct.pack("<I", 7400))
    for node in nodes:
        out += _fbx_node(*node, offset=len(out))
    out += b"\0" * 13
    out += b"\0" * 16
    return bytes(out)


def _p70(*entries):
    return ("Properties70", [], [("P", list(e), []) for e in entries])


CUBE_VERTICES = DoubleArray([
    -1, -1, -1, 1, -1, -1, 1, 1, -1, -1, 1, -1,
    -1, -1, 1, 1, -1, 1, 1, 1, 1, -1, 1, 1,
])
CUBE_POLYGONS = IntArray([
    0, 1, 2, ~3, 5, 4, 7, ~6, 4, 0, 3, ~7,
    1, 5, 6, ~2, 3, 2, 6, ~7, 4, 5, 1, ~0,
])


def fbx_scene() -> bytes:
    objects = ("Objects", [], [
        ("Geometry", [100, "Cube\x00\x01Geometry", "Mesh"], [
            ("Vertices", [DoubleArray(float(v) for v in CUBE_VERTICES)], []),
            ("PolygonVertexIndex", [CUBE_POLYGONS], []),
        ]),
        ("Model", [200, "Cube\x00\x01Model", "Mesh"], [
            _p70(("Lcl Translation", "Lcl Translation", "", "A", 1.0, 2.0, 3.0)),
        ]),
        ("Model", [300, "Root\x00\x01Model", "Null"], []),
        ("Material", [400, "Red\x00\x01Material", ""], [
            _p70(("DiffuseColor", "Color", "", "A", 1.0, 0.0, 0.0)),
        ]),
    ])
    connections = ("Connections", [], [
        ("C", ["OO", 300, 0], []),
        ("C", ["OO", 200, 300], []),
        ("C", ["OO", 100, 200], []),
        ("C", ["OO", 400, 200], []),
    ])
    return fbx_document([("FBXHeaderExtension", [], [("FBXVersion", [7400], [])]),
                         objects, connections])


@pytest.fixture
def fbx_bytes():
    return fbx_scene()
