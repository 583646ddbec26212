#
# PROJECT: model-viewer-core
# MODULE: model_viewer/gltf.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#
"""
glTF 2.0 / GLB decoder.

The container and JSON document are validated synchronously so malformed
files fail fast. Buffer resolution runs in a coroutine: external buffer
URIs are fetched through an async resolver supplied by the host, which is
why the decoder hands back an AsyncSceneGraph instead of a finished tree.
"""

import base64
import binascii
import json
import logging
import os
import struct
from typing import Awaitable, Callable, Dict, List, Optional

import numpy as np

from .color import float_rgb_to_int
from .errors import MissingSubresource, ParseFailure
from .material import MaterialDescriptor
from .math_utils import IDENTITY_QUAT, Mat4
from .mesh import Geometry
from .node import NodeType
from .parsed import AsyncSceneGraph, Hierarchy, ParsedNode
from .registry import Decoder, Encoding

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Awaitable[bytes]]

GLB_MAGIC = b"glTF"
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942

COMPONENT_DTYPES = {
    5120: '<i1', 5121: '<u1', 5122: '<i2',
    5123: '<u2', 5125: '<u4', 5126: '<f4',
}
TYPE_SIZES = {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4,
              "MAT2": 4, "MAT3": 9, "MAT4": 16}

MODE_TRIANGLES = 4
MODE_TRIANGLE_STRIP = 5
MODE_TRIANGLE_FAN = 6


# ------------------------------------------------------------------
# Container parsing (synchronous)
# ------------------------------------------------------------------

def _load_json(filename: str, raw) -> dict:
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode('utf-8')
        document = json.loads(raw)
    except (UnicodeDecodeError, ValueError) as exc:
        raise ParseFailure(filename, f"invalid glTF JSON ({exc})") from exc
    if not isinstance(document, dict):
        raise ParseFailure(filename, "glTF document is not a JSON object")
    asset = document.get('asset')
    if not isinstance(asset, dict):
        raise ParseFailure(filename, "glTF document has no 'asset' object")
    version = str(asset.get('version', ''))
    if not version.startswith('2'):
        raise ParseFailure(filename, f"unsupported glTF version '{version or '?'}'")
    return document


def parse_glb(filename: str, data: bytes):
    """Split a GLB container into (json document, BIN chunk or None)."""
    if len(data) < 12:
        raise ParseFailure(filename, "GLB header truncated")
    magic, version, length = struct.unpack_from('<4sII', data, 0)
    if magic != GLB_MAGIC:
        raise ParseFailure(filename, "not a GLB container")
    if version != 2:
        raise ParseFailure(filename, f"unsupported GLB version {version}")
    if length > len(data):
        raise ParseFailure(filename, f"GLB truncated: header declares {length} bytes, "
                                     f"got {len(data)}")

    document = None
    bin_chunk = None
    offset = 12
    while offset + 8 <= length:
        chunk_length, chunk_type = struct.unpack_from('<II', data, offset)
        offset += 8
        chunk = data[offset:offset + chunk_length]
        if len(chunk) < chunk_length:
            raise ParseFailure(filename, "GLB chunk truncated")
        offset += chunk_length
        if chunk_type == CHUNK_JSON and document is None:
            document = _load_json(filename, chunk)
        elif chunk_type == CHUNK_BIN and bin_chunk is None:
            bin_chunk = chunk

    if document is None:
        raise ParseFailure(filename, "GLB has no JSON chunk")
    return document, bin_chunk


def load_document(filename: str, content, binary_only: bool = False):
    if isinstance(content, bytes) and (binary_only or content[:4] == GLB_MAGIC):
        return parse_glb(filename, content)
    return _load_json(filename, content), None


# ------------------------------------------------------------------
# Buffer resolution (asynchronous)
# ------------------------------------------------------------------

async def _load_buffer(index: int, entry: dict, bin_chunk: Optional[bytes],
                       resolver: Optional[Resolver]) -> bytes:
    uri = entry.get('uri')
    if uri is not None and not isinstance(uri, str):
        raise TypeError(f"buffer {index} uri is not a string")
    if uri is None:
        if index == 0 and bin_chunk is not None:
            data = bin_chunk
        else:
            raise MissingSubresource(f"buffer[{index}]", "no GLB binary chunk")
    elif uri.startswith('data:'):
        try:
            data = base64.b64decode(uri.split(',', 1)[1], validate=True)
        except (IndexError, binascii.Error) as exc:
            raise MissingSubresource(f"buffer[{index}]", f"bad data URI ({exc})") from exc
    else:
        if resolver is None:
            raise MissingSubresource(uri, "no resolver configured")
        try:
            data = await resolver(uri)
        except MissingSubresource:
            raise
        except Exception as exc:
            raise MissingSubresource(uri, str(exc) or type(exc).__name__) from exc
        if data is None:
            raise MissingSubresource(uri, "resolver returned nothing")
        data = bytes(data)

    expected = int(entry.get('byteLength', len(data)))
    if len(data) < expected:
        raise MissingSubresource(uri or f"buffer[{index}]",
                                 f"truncated: {len(data)} of {expected} bytes")
    return data


async def resolve_scene(filename: str, document: dict, bin_chunk: Optional[bytes],
                        resolver: Optional[Resolver]) -> Hierarchy:
    try:
        buffers: List[Optional[bytes]] = []
        for index, entry in enumerate(document.get('buffers', [])):
            try:
                buffers.append(await _load_buffer(index, entry, bin_chunk, resolver))
            except MissingSubresource as exc:
                logger.warning("%s: %s", filename, exc)
                buffers.append(None)
        return _SceneBuilder(filename, document, buffers).build()
    except (AttributeError, KeyError, IndexError, TypeError, ValueError,
            RecursionError) as exc:
        raise ParseFailure(filename, f"invalid glTF structure ({exc})") from exc


# ------------------------------------------------------------------
# Scene construction
# ------------------------------------------------------------------

def _faces_for_mode(mode: int, indices: np.ndarray) -> np.ndarray:
    if mode == MODE_TRIANGLES:
        usable = len(indices) - len(indices) % 3
        return indices[:usable].reshape(-1, 3)
    if mode == MODE_TRIANGLE_STRIP:
        faces = []
        for i in range(len(indices) - 2):
            a, b, c = indices[i], indices[i + 1], indices[i + 2]
            faces.append((a, b, c) if i % 2 == 0 else (b, a, c))
        return np.array(faces, dtype=np.int64).reshape(-1, 3)
    if mode == MODE_TRIANGLE_FAN:
        faces = [(indices[0], indices[i], indices[i + 1])
                 for i in range(1, len(indices) - 1)]
        return np.array(faces, dtype=np.int64).reshape(-1, 3)
    # Points and lines: positions only
    return np.zeros((0, 3), dtype=np.int64)


class _SceneBuilder:
    """Turns a glTF document plus resolved buffers into ParsedNodes."""

    def __init__(self, filename: str, document: dict, buffers: List[Optional[bytes]]):
        self.filename = filename
        self.doc = document
        self.buffers = buffers
        self._materials: Dict[int, Optional[MaterialDescriptor]] = {}
        self._lights = (document.get('extensions', {})
                        .get('KHR_lights_punctual', {})
                        .get('lights', []))

    def build(self) -> Hierarchy:
        nodes = self.doc.get('nodes', [])
        scenes = self.doc.get('scenes', [])
        if scenes:
            scene = scenes[self.doc.get('scene', 0)]
            root_indices = scene.get('nodes', [])
            root_name = scene.get('name') or ""
        else:
            referenced = {c for n in nodes for c in n.get('children', [])}
            root_indices = [i for i in range(len(nodes)) if i not in referenced]
            root_name = ""

        root = ParsedNode(name=root_name or os.path.splitext(os.path.basename(self.filename))[0],
                          kind=NodeType.GROUP)
        for index in root_indices:
            root.children.append(self._node(index, frozenset()))
        return Hierarchy(root, animation_count=len(self.doc.get('animations', [])))

    def _node(self, index: int, ancestors: frozenset) -> ParsedNode:
        if index in ancestors:
            raise ValueError(f"node {index} is its own ancestor")
        entry = self.doc['nodes'][index]
        name = entry.get('name') or f"node_{index}"

        if 'matrix' in entry:
            # glTF stores matrices column-major
            matrix = Mat4(np.array(entry['matrix'], dtype=np.float64).reshape(4, 4).T)
            parsed = ParsedNode.from_matrix(matrix, name=name)
        else:
            parsed = ParsedNode(name=name,
                                position=tuple(entry.get('translation', (0.0, 0.0, 0.0))),
                                rotation=tuple(entry.get('rotation', IDENTITY_QUAT)),
                                scale=tuple(entry.get('scale', (1.0, 1.0, 1.0))))

        if 'mesh' in entry:
            primitives = self._mesh_primitives(entry['mesh'])
            if len(primitives) == 1:
                parsed.kind = NodeType.MESH
                parsed.geometry = primitives[0].geometry
                parsed.material = primitives[0].material
            else:
                parsed.children.extend(primitives)

        light_ref = entry.get('extensions', {}).get('KHR_lights_punctual')
        if light_ref is not None:
            parsed.children.append(self._light(light_ref.get('light', -1)))

        inner = ancestors | {index}
        for child in entry.get('children', []):
            parsed.children.append(self._node(child, inner))
        return parsed

    def _mesh_primitives(self, mesh_index: int) -> List[ParsedNode]:
        mesh = self.doc['meshes'][mesh_index]
        mesh_name = mesh.get('name') or f"mesh_{mesh_index}"
        out = []
        for i, prim in enumerate(mesh.get('primitives', [])):
            label = f"{mesh_name}[{i}]"
            try:
                geometry = self._primitive_geometry(label, prim)
            except MissingSubresource as exc:
                # Normalizer drops mesh nodes without geometry
                logger.warning("%s: %s", self.filename, exc)
                geometry = None
            out.append(ParsedNode(name=label, kind=NodeType.MESH, geometry=geometry,
                                  material=self._material(prim.get('material'))))
        return out

    def _primitive_geometry(self, label: str, prim: dict) -> Geometry:
        attrs = prim.get('attributes', {})
        if 'POSITION' not in attrs:
            raise MissingSubresource(f"{label}.POSITION", "primitive has no positions")
        positions = self.accessor(attrs['POSITION']).astype(np.float64)
        if 'indices' in prim:
            indices = self.accessor(prim['indices']).reshape(-1).astype(np.int64)
        else:
            indices = np.arange(len(positions), dtype=np.int64)
        faces = _faces_for_mode(prim.get('mode', MODE_TRIANGLES), indices)
        if faces.size and int(faces.max()) >= len(positions):
            raise ValueError(f"{label}: vertex index out of range")
        return Geometry(positions[:, :3], faces, name=label)

    def accessor(self, index: int) -> np.ndarray:
        acc = self.doc['accessors'][index]
        count = int(acc['count'])
        width = TYPE_SIZES[acc['type']]
        dtype = np.dtype(COMPONENT_DTYPES[acc['componentType']])
        if acc.get('sparse'):
            logger.debug("%s: sparse accessor %d read without its overrides",
                         self.filename, index)
        if count == 0 or 'bufferView' not in acc:
            return np.zeros((count, width), dtype=dtype)

        view = self.doc['bufferViews'][acc['bufferView']]
        buffer_index = view['buffer']
        data = self.buffers[buffer_index]
        if data is None:
            raise MissingSubresource(f"buffer[{buffer_index}]", "not loaded")

        offset = view.get('byteOffset', 0) + acc.get('byteOffset', 0)
        element = dtype.itemsize * width
        stride = view.get('byteStride') or element
        end = offset + stride * (count - 1) + element
        if end > len(data):
            raise ValueError(f"accessor {index} reads past the end of buffer {buffer_index}")
        view_array = np.ndarray(shape=(count, width), dtype=dtype, buffer=data,
                                offset=offset, strides=(stride, dtype.itemsize))
        return np.array(view_array)

    def _material(self, index) -> Optional[MaterialDescriptor]:
        if index is None:
            return None
        if index not in self._materials:
            materials = self.doc.get('materials', [])
            if not 0 <= index < len(materials):
                logger.warning("%s: %s", self.filename,
                               MissingSubresource(f"material[{index}]", "undefined"))
                self._materials[index] = None
            else:
                entry = materials[index]
                pbr = entry.get('pbrMetallicRoughness', {})
                self._materials[index] = MaterialDescriptor(
                    color=float_rgb_to_int(pbr.get('baseColorFactor', (1.0, 1.0, 1.0, 1.0))),
                    roughness=_clamp01(pbr.get('roughnessFactor', 1.0)),
                    metalness=_clamp01(pbr.get('metallicFactor', 1.0)),
                    name=entry.get('name') or f"material_{index}")
        return self._materials[index]

    def _light(self, index: int) -> ParsedNode:
        if 0 <= index < len(self._lights):
            entry = self._lights[index]
        else:
            logger.warning("%s: %s", self.filename,
                           MissingSubresource(f"light[{index}]", "undefined"))
            entry = {}
        return ParsedNode(name=entry.get('name') or f"light_{index}",
                          kind=NodeType.LIGHT,
                          light_color=float_rgb_to_int(entry.get('color', (1.0, 1.0, 1.0))),
                          light_intensity=float(entry.get('intensity', 1.0)))


def _clamp01(value) -> float:
    return max(0.0, min(1.0, float(value)))


# ------------------------------------------------------------------
# Decoders
# ------------------------------------------------------------------

class GltfDecoder(Decoder):
    """glTF JSON (text or UTF-8 bytes); GLB bytes are detected by magic."""
    name = "gltf"
    extensions = (".gltf",)
    encoding = Encoding.ANY
    binary_only = False

    def __init__(self, resolver: Optional[Resolver] = None):
        self.resolver = resolver

    def decode(self, filename: str, content) -> AsyncSceneGraph:
        document, bin_chunk = load_document(filename, content, binary_only=self.binary_only)
        return AsyncSceneGraph(resolve_scene(filename, document, bin_chunk, self.resolver),
                               filename=filename)


class GlbDecoder(GltfDecoder):
    name = "glb"
    extensions = (".glb",)
    encoding = Encoding.BINARY
    signature = GLB_MAGIC
    binary_only = True
