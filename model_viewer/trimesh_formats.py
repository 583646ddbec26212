#
# PROJECT: model-viewer-core
# MODULE: model_viewer/trimesh_formats.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#
"""OBJ and STL decoders built on trimesh."""

import io
import logging
import os

import trimesh

from .color import rgb_to_int
from .errors import ParseFailure
from .material import MaterialDescriptor
from .math_utils import Mat4
from .mesh import Geometry
from .node import NodeType
from .parsed import FlatMesh, GeometryOnly, ParsedNode
from .registry import Decoder, Encoding

logger = logging.getLogger(__name__)


def _stem(filename: str) -> str:
    return os.path.splitext(os.path.basename(filename))[0]


def _material_from_visual(geom):
    """Main color of a trimesh material, or None when the mesh has none."""
    material = getattr(getattr(geom, 'visual', None), 'material', None)
    color = getattr(material, 'main_color', None)
    if color is None:
        return None
    return MaterialDescriptor(color=rgb_to_int(list(color)[:3]),
                              name=getattr(material, 'name', None) or "")


class ObjDecoder(Decoder):
    """Wavefront OBJ (text). One parsed mesh per trimesh geometry node."""
    name = "obj"
    extensions = (".obj",)
    encoding = Encoding.TEXT

    def decode(self, filename: str, content: str) -> FlatMesh:
        stream = io.BytesIO(content.encode('utf-8'))
        try:
            scene = trimesh.load(stream, file_type='obj', force='scene', process=False)
        except Exception as exc:
            raise ParseFailure(filename, f"unreadable OBJ data ({exc})") from exc

        meshes = []
        graph = scene.graph
        for node_name in graph.nodes_geometry:
            transform, geometry_name = graph.get(node_name)
            geom = scene.geometry.get(geometry_name)
            if geom is None or not hasattr(geom, 'vertices'):
                continue
            geometry = Geometry.from_trimesh(geom, name=str(geometry_name))
            if geometry.is_empty:
                logger.debug("%s: skipping empty geometry %s", filename, geometry_name)
                continue
            meshes.append(ParsedNode.from_matrix(
                Mat4(transform),
                name=str(node_name),
                kind=NodeType.MESH,
                geometry=geometry,
                material=_material_from_visual(geom)))

        if not meshes:
            raise ParseFailure(filename, "no geometry found in OBJ data")
        logger.debug("%s: %d OBJ mesh(es)", filename, len(meshes))
        return FlatMesh(meshes, name=_stem(filename))


class StlDecoder(Decoder):
    """STL (binary, ASCII bytes also accepted by trimesh). No material."""
    name = "stl"
    extensions = (".stl",)
    encoding = Encoding.BINARY

    def decode(self, filename: str, content: bytes) -> GeometryOnly:
        try:
            mesh = trimesh.load(io.BytesIO(content), file_type='stl',
                                force='mesh', process=False)
        except Exception as exc:
            raise ParseFailure(filename, f"unreadable STL data ({exc})") from exc

        vertices = getattr(mesh, 'vertices', None)
        if vertices is None or len(vertices) == 0:
            raise ParseFailure(filename, "STL data contains no triangles")
        name = _stem(filename)
        return GeometryOnly(Geometry.from_trimesh(mesh, name=name), name=name)
