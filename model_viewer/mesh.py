#
# PROJECT: model-viewer-core
# MODULE: model_viewer/mesh.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import numpy as np


class Geometry:
    """
    Triangle geometry shared by reference between Scene Nodes.

    vertices: (n, 3) float64 positions in the owning node's local space.
    faces: (m, 3) int64 vertex indices. May be empty for point/line data,
    which still contributes to bounds.
    """
    __slots__ = ('vertices', 'faces', 'name')

    def __init__(self, vertices, faces=None, name: str = ""):
        verts = np.asarray(vertices, dtype=np.float64)
        if verts.size == 0:
            verts = np.zeros((0, 3), dtype=np.float64)
        self.vertices = verts.reshape(-1, 3)
        if faces is None or len(faces) == 0:
            self.faces = np.zeros((0, 3), dtype=np.int64)
        else:
            self.faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
        self.name = name

    def __repr__(self):
        return f"Geometry({self.name!r}, V:{self.vertex_count}, F:{self.face_count})"

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def face_count(self) -> int:
        return int(self.faces.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.vertex_count == 0

    def bounds(self):
        """Local-space (min, max) arrays over finite vertices, or None."""
        if self.is_empty:
            return None
        finite = self.vertices[np.isfinite(self.vertices).all(axis=1)]
        if finite.shape[0] == 0:
            return None
        return finite.min(axis=0), finite.max(axis=0)

    @classmethod
    def from_polygons(cls, vertices, polygons, name: str = "") -> 'Geometry':
        """Fan-triangulate polygons given as sequences of vertex indices."""
        tris = []
        for poly in polygons:
            for i in range(1, len(poly) - 1):
                tris.append((poly[0], poly[i], poly[i + 1]))
        return cls(vertices, tris, name=name)

    @classmethod
    def from_trimesh(cls, mesh, name: str = "") -> 'Geometry':
        faces = getattr(mesh, 'faces', None)
        return cls(np.asarray(mesh.vertices), faces, name=name)

    @classmethod
    def cube(cls) -> 'Geometry':
        """Cube spanning -1..1 on every axis, used as placeholder content."""
        vertices = [
            [-1, -1, -1], [ 1, -1, -1], [ 1,  1, -1], [-1,  1, -1],
            [-1, -1,  1], [ 1, -1,  1], [ 1,  1,  1], [-1,  1,  1],
        ]
        faces = [
            [0, 1, 2, 3],  # front
            [5, 4, 7, 6],  # back
            [4, 0, 3, 7],  # left
            [1, 5, 6, 2],  # right
            [3, 2, 6, 7],  # top
            [4, 5, 1, 0],  # bottom
        ]
        return cls.from_polygons(vertices, faces, name="cube")
