# kestrel/types.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple, TypeAlias

import numpy as np

Scalar: TypeAlias = float

Color = Tuple[float, float, float, float]  # r, g, b, a in 0..1


@dataclass(frozen=True, slots=True)
class Vector3:
    x: Scalar
    y: Scalar
    z: Scalar

    @staticmethod
    def zero() -> Vector3:
        return Vector3(0.0, 0.0, 0.0)

    @staticmethod
    def one() -> Vector3:
        return Vector3(1.0, 1.0, 1.0)

    def __iter__(self) -> Iterator[Scalar]:
        return iter((self.x, self.y, self.z))

    def __getitem__(self, index: int) -> Scalar:
        return (self.x, self.y, self.z)[index]

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3) -> Vector3:
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vector3:
        return Vector3(self.x * scalar, self.y * scalar, self.z * scalar)

    def length(self) -> Scalar:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)


@dataclass(frozen=True, slots=True)
class Quaternion:
    """Rotation as (x, y, z, w)."""

    x: Scalar
    y: Scalar
    z: Scalar
    w: Scalar

    def __iter__(self) -> Iterator[Scalar]:
        return iter((self.x, self.y, self.z, self.w))

    @staticmethod
    def identity() -> Quaternion:
        return Quaternion(0.0, 0.0, 0.0, 1.0)


@dataclass(frozen=True, slots=True)
class BoundingBox3D:
    """Axis-aligned box. Bounds are inclusive."""

    min: Vector3
    max: Vector3

    @classmethod
    def from_corners(cls, a: Iterable[Scalar], b: Iterable[Scalar]) -> BoundingBox3D:
        """Build a box from two opposite corners given in any order."""
        lo = [float(min(p, q)) for p, q in zip(a, b)]
        hi = [float(max(p, q)) for p, q in zip(a, b)]
        return cls(Vector3(*lo), Vector3(*hi))

    @classmethod
    def from_points(cls, points: np.ndarray) -> BoundingBox3D:
        """Tight box around an (N, 3) array of points."""
        if len(points) == 0:
            raise ValueError("Cannot bound an empty point set")
        lo = points.min(axis=0)
        hi = points.max(axis=0)
        return cls(Vector3(*map(float, lo[:3])), Vector3(*map(float, hi[:3])))

    def contains_point(self, p: Iterable[Scalar]) -> bool:
        x, y, z = p
        lo, hi = self.min, self.max
        return lo.x <= x <= hi.x and lo.y <= y <= hi.y and lo.z <= z <= hi.z

    def union(self, other: BoundingBox3D) -> BoundingBox3D:
        return BoundingBox3D(
            Vector3(
                min(self.min.x, other.min.x),
                min(self.min.y, other.min.y),
                min(self.min.z, other.min.z),
            ),
            Vector3(
                max(self.max.x, other.max.x),
                max(self.max.y, other.max.y),
                max(self.max.z, other.max.z),
            ),
        )

    @property
    def center(self) -> Vector3:
        return (self.min + self.max) * 0.5

    @property
    def half_extents(self) -> Vector3:
        return (self.max - self.min) * 0.5
