#
# PROJECT: model-viewer-core
# MODULE: model_viewer/math_utils.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import math

import numpy as np

IDENTITY_QUAT = (0.0, 0.0, 0.0, 1.0)


class Vec3:
    """Immutable 3-component vector."""
    __slots__ = ('x', 'y', 'z')

    def __init__(self, x: float, y: float, z: float):
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    @classmethod
    def from_iterable(cls, values) -> 'Vec3':
        x, y, z = (float(v) for v in list(values)[:3])
        return cls(x, y, z)

    def __repr__(self):
        return f"Vec3({self.x:.4g}, {self.y:.4g}, {self.z:.4g})"

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def __getitem__(self, index):
        if index == 0: return self.x
        if index == 1: return self.y
        if index == 2: return self.z
        raise IndexError("Vec3 index out of range")

    def __eq__(self, other):
        if isinstance(other, Vec3):
            return self.x == other.x and self.y == other.y and self.z == other.z
        return NotImplemented

    def __hash__(self):
        return hash((self.x, self.y, self.z))

    def __add__(self, other):
        if isinstance(other, Vec3):
            return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, Vec3):
            return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)
        return NotImplemented

    def __mul__(self, scalar):
        return Vec3(self.x * scalar, self.y * scalar, self.z * scalar)

    def __truediv__(self, scalar):
        return Vec3(self.x / scalar, self.y / scalar, self.z / scalar)

    def dot(self, other) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def normalize(self) -> 'Vec3':
        m = self.magnitude()
        if m == 0:
            return Vec3(0, 0, 0)
        return self / m

    def max_component(self) -> float:
        return max(self.x, self.y, self.z)

    def is_finite(self) -> bool:
        return all(math.isfinite(c) for c in self)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


class Mat4:
    """4x4 affine transform backed by a numpy array, [row][col] storage.
    Points are column vectors: world = M @ local.
    """
    __slots__ = ('m',)

    def __init__(self, data=None):
        if data is None:
            self.m = np.identity(4, dtype=np.float64)
        else:
            self.m = np.array(data, dtype=np.float64).reshape(4, 4)

    def __repr__(self):
        return f"Mat4({self.m.tolist()})"

    @classmethod
    def identity(cls) -> 'Mat4':
        return cls()

    @classmethod
    def translation(cls, x, y, z) -> 'Mat4':
        mat = cls()
        mat.m[:3, 3] = (x, y, z)
        return mat

    @classmethod
    def scale(cls, sx, sy, sz) -> 'Mat4':
        mat = cls()
        mat.m[0, 0] = sx
        mat.m[1, 1] = sy
        mat.m[2, 2] = sz
        return mat

    @classmethod
    def rotation_x(cls, rad: float) -> 'Mat4':
        mat = cls()
        c, s = math.cos(rad), math.sin(rad)
        mat.m[1, 1] = c
        mat.m[1, 2] = -s
        mat.m[2, 1] = s
        mat.m[2, 2] = c
        return mat

    @classmethod
    def rotation_y(cls, rad: float) -> 'Mat4':
        mat = cls()
        c, s = math.cos(rad), math.sin(rad)
        mat.m[0, 0] = c
        mat.m[0, 2] = s
        mat.m[2, 0] = -s
        mat.m[2, 2] = c
        return mat

    @classmethod
    def rotation_z(cls, rad: float) -> 'Mat4':
        mat = cls()
        c, s = math.cos(rad), math.sin(rad)
        mat.m[0, 0] = c
        mat.m[0, 1] = -s
        mat.m[1, 0] = s
        mat.m[1, 1] = c
        return mat

    @classmethod
    def from_euler_xyz(cls, rx: float, ry: float, rz: float) -> 'Mat4':
        """Rotation applied about X, then Y, then Z (radians)."""
        return cls.rotation_z(rz) @ cls.rotation_y(ry) @ cls.rotation_x(rx)

    @classmethod
    def from_quaternion(cls, q) -> 'Mat4':
        x, y, z, w = normalize_quaternion(q)
        mat = cls()
        mat.m[:3, :3] = (
            (1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)),
            (2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)),
            (2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)),
        )
        return mat

    @classmethod
    def compose(cls, position, rotation, scale) -> 'Mat4':
        """T * R * S, the usual local transform order."""
        px, py, pz = position
        sx, sy, sz = scale
        return (cls.translation(px, py, pz)
                @ cls.from_quaternion(rotation)
                @ cls.scale(sx, sy, sz))

    def decompose(self):
        """
        Split an affine matrix into (position, quaternion, scale).
        Shear is discarded. A negative determinant is folded into scale.x.
        """
        m = self.m
        position = Vec3(m[0, 3], m[1, 3], m[2, 3])
        basis = m[:3, :3]
        sx, sy, sz = (float(np.linalg.norm(basis[:, i])) for i in range(3))
        if np.linalg.det(basis) < 0:
            sx = -sx
        scale = Vec3(sx, sy, sz)
        if sx == 0 or sy == 0 or sz == 0:
            return position, IDENTITY_QUAT, scale
        rot = basis / np.array([sx, sy, sz])
        return position, quaternion_from_matrix(rot), scale

    def __matmul__(self, other):
        if isinstance(other, Mat4):
            res = Mat4.__new__(Mat4)
            res.m = self.m @ other.m
            return res
        return NotImplemented

    def mul_vec3(self, v: Vec3) -> Vec3:
        """Multiply with Vec3 as if w=1, return Vec3 (ignoring w result)."""
        out = self.m[:3, :3] @ v.to_array() + self.m[:3, 3]
        return Vec3(out[0], out[1], out[2])

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Apply to an (n, 3) array of points."""
        return points @ self.m[:3, :3].T + self.m[:3, 3]


def normalize_quaternion(q):
    x, y, z, w = (float(c) for c in q)
    n = math.sqrt(x * x + y * y + z * z + w * w)
    if n == 0 or not math.isfinite(n):
        return IDENTITY_QUAT
    return (x / n, y / n, z / n, w / n)


def quaternion_from_matrix(r) -> tuple:
    """(x, y, z, w) quaternion from a 3x3 pure rotation matrix."""
    m00, m01, m02 = r[0]
    m10, m11, m12 = r[1]
    m20, m21, m22 = r[2]
    trace = m00 + m11 + m22
    if trace > 0:
        s = 0.5 / math.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (m21 - m12) * s
        y = (m02 - m20) * s
        z = (m10 - m01) * s
    elif m00 > m11 and m00 > m22:
        s = 2.0 * math.sqrt(1.0 + m00 - m11 - m22)
        w = (m21 - m12) / s
        x = 0.25 * s
        y = (m01 + m10) / s
        z = (m02 + m20) / s
    elif m11 > m22:
        s = 2.0 * math.sqrt(1.0 + m11 - m00 - m22)
        w = (m02 - m20) / s
        x = (m01 + m10) / s
        y = 0.25 * s
        z = (m12 + m21) / s
    else:
        s = 2.0 * math.sqrt(1.0 + m22 - m00 - m11)
        w = (m10 - m01) / s
        x = (m02 + m20) / s
        y = (m12 + m21) / s
        z = 0.25 * s
    return normalize_quaternion((x, y, z, w))


def quaternion_from_euler_xyz(rx: float, ry: float, rz: float) -> tuple:
    return quaternion_from_matrix(Mat4.from_euler_xyz(rx, ry, rz).m[:3, :3])
