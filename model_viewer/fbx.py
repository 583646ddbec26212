#
# PROJECT: model-viewer-core
# MODULE: model_viewer/fbx.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#
"""Binary FBX decoder: node records, object graph and mesh hierarchy."""

import logging
import math
import os
import struct
import zlib
from collections import defaultdict
from typing import Dict, List, Optional

import numpy as np

from .color import float_rgb_to_int
from .errors import MissingSubresource, ParseFailure
from .material import MaterialDescriptor
from .math_utils import quaternion_from_euler_xyz
from .mesh import Geometry
from .node import NodeType
from .parsed import Hierarchy, ParsedNode
from .registry import Decoder, Encoding

logger = logging.getLogger(__name__)

FBX_MAGIC = b"Kaydara FBX Binary  \x00"
HEADER_SIZE = 27

ARRAY_DTYPES = {'f': '<f4', 'd': '<f8', 'l': '<i8', 'i': '<i4', 'b': '?'}
SCALAR_FORMATS = {'Y': '<h', 'C': '?', 'I': '<i', 'F': '<f', 'D': '<d', 'L': '<q'}


class FbxNode:
    __slots__ = ('name', 'props', 'children')

    def __init__(self, name: str, props: list, children: List['FbxNode']):
        self.name = name
        self.props = props
        self.children = children

    def __repr__(self):
        return f"FbxNode({self.name!r}, props={len(self.props)}, children={len(self.children)})"

    def find(self, name: str) -> Optional['FbxNode']:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def find_all(self, name: str) -> List['FbxNode']:
        return [child for child in self.children if child.name == name]


class FbxReader:
    """Low-level FBX binary record reader (32- and 64-bit headers)."""

    def __init__(self, data: bytes):
        if len(data) < HEADER_SIZE or data[:len(FBX_MAGIC)] != FBX_MAGIC:
            raise ValueError("not a binary FBX file")
        self.data = data
        self.version = struct.unpack_from('<I', data, 23)[0]
        self.is64 = self.version >= 7500
        self._null_size = 25 if self.is64 else 13

    def read(self) -> FbxNode:
        """Return a synthetic root whose children are the top-level records."""
        nodes = []
        offset = HEADER_SIZE
        while offset < len(self.data) - self._null_size:
            node, offset = self._read_node(offset)
            if node is None:
                break
            nodes.append(node)
        return FbxNode("", [], nodes)

    def _read_node(self, offset: int):
        data = self.data
        if self.is64:
            end_offset, num_props, prop_len = struct.unpack_from('<QQQ', data, offset)
            name_start = offset + 25
        else:
            end_offset, num_props, prop_len = struct.unpack_from('<III', data, offset)
            name_start = offset + 13
        if end_offset == 0:
            return None, offset + self._null_size
        if end_offset > len(data) or end_offset <= offset:
            raise ValueError(f"node record at {offset} ends outside the file")

        name_len = data[name_start - 1]
        name = data[name_start:name_start + name_len].decode('ascii')
        po = name_start + name_len
        props = []
        for _ in range(num_props):
            prop, po = self._read_property(po)
            props.append(prop)

        children = []
        child_offset = name_start + name_len + prop_len
        while child_offset < end_offset - self._null_size:
            child, child_offset = self._read_node(child_offset)
            if child is None:
                break
            children.append(child)
        return FbxNode(name, props, children), end_offset

    def _read_property(self, offset: int):
        data = self.data
        code = chr(data[offset])
        offset += 1

        fmt = SCALAR_FORMATS.get(code)
        if fmt is not None:
            return struct.unpack_from(fmt, data, offset)[0], offset + struct.calcsize(fmt)

        if code in ARRAY_DTYPES:
            length, encoding, comp_len = struct.unpack_from('<III', data, offset)
            offset += 12
            raw = data[offset:offset + comp_len]
            if len(raw) < comp_len:
                raise ValueError("array property truncated")
            if encoding == 1:
                raw = zlib.decompress(raw)
            return np.frombuffer(raw, dtype=ARRAY_DTYPES[code], count=length), offset + comp_len

        if code in ('S', 'R'):
            length = struct.unpack_from('<I', data, offset)[0]
            raw = data[offset + 4:offset + 4 + length]
            if len(raw) < length:
                raise ValueError("string property truncated")
            value = raw.decode('utf-8', errors='replace') if code == 'S' else raw
            return value, offset + 4 + length

        raise ValueError(f"unknown FBX property type {code!r}")


# ------------------------------------------------------------------
# Object graph helpers
# ------------------------------------------------------------------

def _object_name(obj: FbxNode) -> str:
    raw = obj.props[1] if len(obj.props) > 1 and isinstance(obj.props[1], str) else ""
    # Binary names are "Name\x00\x01Class"
    return raw.split('\x00\x01')[0]


def _object_class(obj: FbxNode) -> str:
    return obj.props[2] if len(obj.props) > 2 and isinstance(obj.props[2], str) else ""


def properties70(obj: FbxNode) -> Dict[str, object]:
    result = {}
    block = obj.find('Properties70')
    if block is None:
        return result
    for p in block.find_all('P'):
        if len(p.props) < 5:
            continue
        values = p.props[4:]
        result[p.props[0]] = values[0] if len(values) == 1 else tuple(values)
    return result


def polygon_geometry(obj: FbxNode, label: str) -> Geometry:
    verts_node = obj.find('Vertices')
    index_node = obj.find('PolygonVertexIndex')
    if verts_node is None or not verts_node.props:
        raise MissingSubresource(f"{label}.Vertices", "geometry has no vertices")
    vertices = np.asarray(verts_node.props[0], dtype=np.float64).reshape(-1, 3)
    if index_node is None or not index_node.props:
        return Geometry(vertices, name=label)

    raw = np.asarray(index_node.props[0], dtype=np.int64)
    ends = raw < 0
    # The last index of each polygon is stored as ~index
    indices = np.where(ends, ~raw, raw)
    if indices.size and int(indices.max()) >= len(vertices):
        raise ValueError(f"{label}: polygon index out of range")
    polygons = np.split(indices, np.flatnonzero(ends) + 1)
    return Geometry.from_polygons(vertices, [p.tolist() for p in polygons if len(p) >= 3],
                                  name=label)


class _HierarchyBuilder:

    def __init__(self, filename: str, top: FbxNode):
        self.filename = filename
        objects = top.find('Objects')
        if objects is None:
            raise ParseFailure(filename, "FBX file has no Objects section")
        self.objects = {obj.props[0]: obj for obj in objects.children if obj.props}
        self.children_of = defaultdict(list)
        self.has_parent = set()
        connections = top.find('Connections')
        for c in connections.find_all('C') if connections is not None else ():
            if len(c.props) >= 3:
                self.children_of[c.props[2]].append(c.props[1])
                self.has_parent.add(c.props[1])
        self._materials: Dict[int, MaterialDescriptor] = {}

    def _connected(self, obj_id, kind: str) -> List[FbxNode]:
        out = []
        for child_id in self.children_of.get(obj_id, ()):
            child = self.objects.get(child_id)
            if child is not None and child.name == kind:
                out.append(child)
        return out

    def build(self) -> Hierarchy:
        models = {oid for oid, obj in self.objects.items() if obj.name == 'Model'}
        roots = [oid for oid in self.children_of.get(0, ()) if oid in models]
        if not roots:
            roots = [oid for oid in models if oid not in self.has_parent]

        stem = os.path.splitext(os.path.basename(self.filename))[0]
        root = ParsedNode(name=stem, kind=NodeType.GROUP)
        for oid in roots:
            root.children.append(self._model(oid, models, frozenset()))

        if not roots:
            # Geometry-only files without a model layer
            for oid, obj in self.objects.items():
                if obj.name == 'Geometry':
                    root.children.append(self._mesh_leaf(obj))

        if not any(n.geometry is not None for n in _walk(root)):
            raise ParseFailure(self.filename, "FBX file contains no geometry")
        animations = sum(1 for obj in self.objects.values() if obj.name == 'AnimationStack')
        return Hierarchy(root, animation_count=animations)

    def _model(self, oid, models, ancestors: frozenset) -> ParsedNode:
        if oid in ancestors:
            raise ValueError(f"model {oid} is its own ancestor")
        obj = self.objects[oid]
        p70 = properties70(obj)
        rx, ry, rz = (math.radians(float(a)) for a in p70.get('Lcl Rotation', (0.0, 0.0, 0.0)))
        node = ParsedNode(name=_object_name(obj) or f"model_{oid}",
                          kind=NodeType.GROUP,
                          position=tuple(float(v) for v in p70.get('Lcl Translation', (0.0, 0.0, 0.0))),
                          rotation=quaternion_from_euler_xyz(rx, ry, rz),
                          scale=tuple(float(v) for v in p70.get('Lcl Scaling', (1.0, 1.0, 1.0))))

        if _object_class(obj) == 'Light':
            node.kind = NodeType.LIGHT
            attrs = self._connected(oid, 'NodeAttribute')
            light_p70 = properties70(attrs[0]) if attrs else {}
            node.light_color = float_rgb_to_int(light_p70.get('Color', (1.0, 1.0, 1.0)))
            node.light_intensity = float(light_p70.get('Intensity', 100.0)) / 100.0

        geometries = self._connected(oid, 'Geometry')
        if geometries:
            node.kind = NodeType.MESH
            node.geometry = self._geometry(geometries[0])
            materials = self._connected(oid, 'Material')
            node.material = self._material(materials[0]) if materials else None
            for extra in geometries[1:]:
                node.children.append(self._mesh_leaf(extra))

        inner = ancestors | {oid}
        for child_id in self.children_of.get(oid, ()):
            if child_id in models:
                node.children.append(self._model(child_id, models, inner))
        return node

    def _mesh_leaf(self, obj: FbxNode) -> ParsedNode:
        return ParsedNode(name=_object_name(obj) or f"geometry_{obj.props[0]}",
                          kind=NodeType.MESH, geometry=self._geometry(obj))

    def _geometry(self, obj: FbxNode) -> Optional[Geometry]:
        label = _object_name(obj) or f"geometry_{obj.props[0]}"
        try:
            return polygon_geometry(obj, label)
        except MissingSubresource as exc:
            logger.warning("%s: %s", self.filename, exc)
            return None

    def _material(self, obj: FbxNode) -> MaterialDescriptor:
        oid = obj.props[0]
        if oid not in self._materials:
            p70 = properties70(obj)
            color = p70.get('DiffuseColor', p70.get('Diffuse', (0.8, 0.8, 0.8)))
            self._materials[oid] = MaterialDescriptor(
                color=float_rgb_to_int(color),
                roughness=0.5,
                metalness=0.0,
                name=_object_name(obj))
        return self._materials[oid]


def _walk(node: ParsedNode):
    yield node
    for child in node.children:
        yield from _walk(child)


class FbxDecoder(Decoder):
    name = "fbx"
    extensions = (".fbx",)
    encoding = Encoding.BINARY
    signature = FBX_MAGIC

    def decode(self, filename: str, content: bytes) -> Hierarchy:
        if content.lstrip()[:1] == b';':
            raise ParseFailure(filename, "ASCII FBX is not supported")
        try:
            top = FbxReader(content).read()
            hierarchy = _HierarchyBuilder(filename, top).build()
        except ParseFailure:
            raise
        except (struct.error, zlib.error, AttributeError, IndexError, KeyError,
                TypeError, ValueError, UnicodeDecodeError, RecursionError) as exc:
            raise ParseFailure(filename, f"malformed FBX data ({exc})") from exc
        logger.debug("%s: %d top-level FBX model(s)", filename, len(hierarchy.root.children))
        return hierarchy
