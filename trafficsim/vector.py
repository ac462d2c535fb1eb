"""Three-dimensional vectors, rotations and transforms used by traffic paths."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Union, overload

_SMALL_NUMBER = 1e-8
_KINDA_SMALL_NUMBER = 1e-4


@dataclass(frozen=True)
class Vector:
    """An immutable 3D vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector) -> Vector:
        return Vector(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector) -> Vector:
        return Vector(self.x - other.x, self.y - other.y, self.z - other.z)

    def __neg__(self) -> Vector:
        return Vector(-self.x, -self.y, -self.z)

    def __mul__(self, other: Union[float, Vector]) -> Vector:
        if isinstance(other, Vector):
            return Vector(self.x * other.x, self.y * other.y, self.z * other.z)
        return Vector(self.x * other, self.y * other, self.z * other)

    def __rmul__(self, other: float) -> Vector:
        return self * other

    def __truediv__(self, other: Union[float, Vector]) -> Vector:
        if isinstance(other, Vector):
            return Vector(self.x / other.x, self.y / other.y, self.z / other.z)
        return Vector(self.x / other, self.y / other, self.z / other)

    def dot(self, other: Vector) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector) -> Vector:
        return Vector(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def length_squared(self) -> float:
        return self.dot(self)

    def safe_normal(self) -> Vector:
        """Unit vector in the same direction, or the zero vector if too short."""
        squared = self.length_squared()
        if squared == 1.0:
            return self
        if squared < _SMALL_NUMBER:
            return Vector()
        return self / math.sqrt(squared)

    def is_zero(self) -> bool:
        return self.x == 0.0 and self.y == 0.0 and self.z == 0.0

    def dist_2d(self, other: Vector) -> float:
        """Distance to another vector, ignoring the z component."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def equals(self, other: Vector, tolerance: float = _KINDA_SMALL_NUMBER) -> bool:
        """True if every component differs by at most ``tolerance``."""
        return (
            abs(self.x - other.x) <= tolerance
            and abs(self.y - other.y) <= tolerance
            and abs(self.z - other.z) <= tolerance
        )

    def to_rotator(self) -> Rotator:
        """Orientation (in degrees) that points along this vector, with no roll."""
        yaw = math.degrees(math.atan2(self.y, self.x))
        pitch = math.degrees(math.atan2(self.z, math.hypot(self.x, self.y)))
        return Rotator(pitch=pitch, yaw=yaw, roll=0.0)


@dataclass(frozen=True)
class Rotator:
    """Pitch, yaw and roll angles in degrees."""

    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0


@dataclass(frozen=True)
class Quat:
    """A rotation quaternion."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @classmethod
    def from_axis_angle(cls, axis: Vector, angle: float) -> Quat:
        """Rotation of ``angle`` radians around the unit vector ``axis``."""
        half = angle * 0.5
        s = math.sin(half)
        return cls(axis.x * s, axis.y * s, axis.z * s, math.cos(half))

    def rotate(self, vector: Vector) -> Vector:
        q = Vector(self.x, self.y, self.z)
        t = q.cross(vector) * 2.0
        return vector + t * self.w + q.cross(t)

    @overload
    def __mul__(self, other: Quat) -> Quat: ...

    @overload
    def __mul__(self, other: Vector) -> Vector: ...

    def __mul__(self, other):
        """Compose with another rotation (``other`` applied first) or rotate a vector."""
        if isinstance(other, Vector):
            return self.rotate(other)
        if isinstance(other, Quat):
            a = Vector(self.x, self.y, self.z)
            b = Vector(other.x, other.y, other.z)
            v = b * self.w + a * other.w + a.cross(b)
            return Quat(v.x, v.y, v.z, self.w * other.w - a.dot(b))
        return NotImplemented

    def _conjugate(self) -> Quat:
        return Quat(-self.x, -self.y, -self.z, self.w)


@dataclass(frozen=True)
class Transform:
    """Scale, then rotation, then translation."""

    rotation: Quat = field(default_factory=Quat)
    translation: Vector = field(default_factory=Vector)
    scale: Vector = field(default_factory=lambda: Vector(1.0, 1.0, 1.0))

    def transform_position(self, position: Vector) -> Vector:
        return self.rotation.rotate(position * self.scale) + self.translation

    def inverse_transform_position(self, position: Vector) -> Vector:
        local = self.rotation._conjugate().rotate(position - self.translation)
        return local / self.scale

    def compose(self, parent: Transform) -> Transform:
        """Transform that applies this one first and ``parent`` afterwards."""
        return Transform(
            rotation=parent.rotation * self.rotation,
            translation=parent.transform_position(self.translation),
            scale=self.scale * parent.scale,
        )


def closest_point_on_segment(point: Vector, start: Vector, end: Vector) -> Vector:
    """Point on the segment from ``start`` to ``end`` closest to ``point``."""
    segment = end - start
    to_point = point - start
    along = to_point.dot(segment)
    if along <= 0.0:
        return start
    segment_squared = segment.dot(segment)
    if segment_squared <= along:
        return end
    return start + segment * (along / segment_squared)