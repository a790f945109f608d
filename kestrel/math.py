import math
from typing import Sequence, Union

import numpy as np

from kestrel.types import Quaternion, Vector3

QuaternionLike = Union[Quaternion, Sequence[float], np.ndarray]


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def next_pow2(x: float) -> int:
    """Smallest power of two >= x (1 for x <= 1)."""
    if x <= 1:
        return 1
    return 1 << math.ceil(math.log2(x))


def rotation_matrix(q: QuaternionLike) -> np.ndarray:
    """3x3 rotation of a unit quaternion (x, y, z, w)."""
    x, y, z, w = (float(c) for c in q)
    return np.array(
        [
            [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - w * z), 2.0 * (x * z + w * y)],
            [2.0 * (x * y + w * z), 1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - w * x)],
            [2.0 * (x * z - w * y), 2.0 * (y * z + w * x), 1.0 - 2.0 * (x * x + y * y)],
        ],
        dtype=np.float32,
    )


def quaternion_to_matrix(q: QuaternionLike) -> np.ndarray:
    """4x4 homogeneous rotation."""
    mat = np.eye(4, dtype=np.float32)
    mat[:3, :3] = rotation_matrix(q)
    return mat


# Map files are Z-up; the renderer works Y-up.
Z_UP_TO_Y_UP = quaternion_to_matrix(Quaternion(0.5, 0.5, 0.5, -0.5))


def model_matrix(
    translation: Vector3, rotation: Quaternion, scale: Vector3
) -> np.ndarray:
    """
    World matrix of one placed item: translate * rotate * scale, then
    converted to Y-up. Column-vector convention.
    """
    m = np.eye(4, dtype=np.float32)
    # Scale is diagonal, so it scales the columns of the rotation.
    m[:3, :3] = rotation_matrix(rotation) * np.array(tuple(scale), dtype=np.float32)
    m[:3, 3] = tuple(translation)
    return Z_UP_TO_Y_UP @ m


def transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a 4x4 column-vector matrix to an (N, 3) array of points."""
    points = np.asarray(points, dtype=np.float32).reshape(-1, 3)
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def create_view_matrix(
    pos: Union[Vector3, np.ndarray], rot: QuaternionLike
) -> np.ndarray:
    """World -> camera space: the inverse of the camera's rigid transform."""
    r_t = rotation_matrix(rot).T
    eye = np.array([float(pos[0]), float(pos[1]), float(pos[2])], dtype=np.float32)

    view = np.eye(4, dtype=np.float32)
    view[:3, :3] = r_t
    view[:3, 3] = -(r_t @ eye)
    return view


def create_perspective_projection(
    fov_deg: float, aspect: float, near: float, far: float
) -> np.ndarray:
    """OpenGL-style projection, vertical field of view in degrees, clip w = -z."""
    if near <= 0.0 or far <= near:
        raise ValueError(f"Invalid clip range near={near} far={far}")
    if aspect <= 0.0:
        raise ValueError(f"Invalid aspect ratio {aspect}")

    f = 1.0 / math.tan(math.radians(fov_deg) / 2.0)
    depth = near - far

    mat = np.zeros((4, 4), dtype=np.float32)
    mat[0, 0] = f / aspect
    mat[1, 1] = f
    mat[2, 2] = (far + near) / depth
    mat[2, 3] = 2.0 * far * near / depth
    mat[3, 2] = -1.0
    return mat
