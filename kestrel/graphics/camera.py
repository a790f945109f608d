# kestrel/graphics/camera.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Union

import numpy as np

from kestrel.math import create_perspective_projection, create_view_matrix
from kestrel.types import BoundingBox3D, Quaternion, Scalar, Vector3

LEFT, RIGHT, BOTTOM, TOP, NEAR, FAR = range(6)


@dataclass(frozen=True)
class Frustum:
    """Six planes (a, b, c, d) with unit normals pointing inwards."""

    planes: np.ndarray  # (6, 4)

    @classmethod
    def from_matrix(cls, view_projection: np.ndarray) -> Frustum:
        """Extract planes from a column-vector view-projection matrix."""
        m = np.asarray(view_projection, dtype=np.float64)
        r0, r1, r2, r3 = m[0], m[1], m[2], m[3]
        planes = np.array(
            [r3 + r0, r3 - r0, r3 + r1, r3 - r1, r3 + r2, r3 - r2],
            dtype=np.float64,
        )
        norms = np.linalg.norm(planes[:, :3], axis=1, keepdims=True)
        return cls(planes / norms)

    def signed_distance(self, plane: int, point: Iterable[Scalar]) -> float:
        p = self.planes[plane]
        x, y, z = point
        return float(p[0] * x + p[1] * y + p[2] * z + p[3])

    def distance_to_near(self, point: Iterable[Scalar]) -> float:
        """Distance in front of the near plane (negative behind it)."""
        return self.signed_distance(NEAR, point)

    def intersects_aabb(self, box: BoundingBox3D) -> bool:
        lo = np.array(tuple(box.min), dtype=np.float64)
        hi = np.array(tuple(box.max), dtype=np.float64)
        normals = self.planes[:, :3]
        # Corner furthest along each plane normal.
        positive = np.where(normals >= 0.0, hi, lo)
        distances = np.einsum("ij,ij->i", normals, positive) + self.planes[:, 3]
        return bool(np.all(distances >= 0.0))


class CameraState:
    """Per-frame camera input for visibility tests."""

    def __init__(
        self,
        position: Union[Vector3, np.ndarray],
        rotation: Union[Quaternion, np.ndarray],
        *,
        fov_degrees: float = 60.0,
        aspect: float = 16.0 / 9.0,
        near: float = 1.0,
        far: float = 5000.0,
    ) -> None:
        self.view_matrix = create_view_matrix(position, rotation)
        self.projection_matrix = create_perspective_projection(
            fov_degrees, aspect, near, far
        )
        self._frustum: Optional[Frustum] = None

    @classmethod
    def from_matrices(cls, view: np.ndarray, projection: np.ndarray) -> CameraState:
        camera = cls.__new__(cls)
        camera.view_matrix = np.asarray(view, dtype=np.float32)
        camera.projection_matrix = np.asarray(projection, dtype=np.float32)
        camera._frustum = None
        return camera

    @classmethod
    def look_at(
        cls,
        eye: Vector3,
        target: Vector3,
        up: Vector3 = Vector3(0.0, 1.0, 0.0),
        **kwargs: float,
    ) -> CameraState:
        e = np.array(tuple(eye), dtype=np.float64)
        f = np.array(tuple(target), dtype=np.float64) - e
        f = f / np.linalg.norm(f)

        s = np.cross(f, np.array(tuple(up), dtype=np.float64))
        s = s / np.linalg.norm(s)

        u = np.cross(s, f)

        view = np.eye(4, dtype=np.float32)
        view[0, :3] = s
        view[1, :3] = u
        view[2, :3] = -f
        view[0, 3] = -np.dot(s, e)
        view[1, 3] = -np.dot(u, e)
        view[2, 3] = np.dot(f, e)

        projection = create_perspective_projection(
            kwargs.get("fov_degrees", 60.0),
            kwargs.get("aspect", 16.0 / 9.0),
            kwargs.get("near", 1.0),
            kwargs.get("far", 5000.0),
        )
        return cls.from_matrices(view, projection)

    @property
    def view_projection(self) -> np.ndarray:
        return self.projection_matrix @ self.view_matrix

    @property
    def frustum(self) -> Frustum:
        if self._frustum is None:
            self._frustum = Frustum.from_matrix(self.view_projection)
        return self._frustum
