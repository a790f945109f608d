import numpy as np
import pytest

from kestrel.math import model_matrix, next_pow2, transform_points
from kestrel.types import Quaternion, Vector3


@pytest.mark.parametrize("x, expected", [(0, 1), (1, 1), (3, 4), (64, 64), (1000, 1024)])
def test_next_pow2(x, expected):
    assert next_pow2(x) == expected


def test_model_matrix_converts_z_up_to_y_up():
    m = model_matrix(Vector3(1.0, 2.0, 3.0), Quaternion.identity(), Vector3.one())

    (p,) = transform_points(m, np.zeros((1, 3)))
    assert p == pytest.approx([2.0, 3.0, 1.0])


def test_model_matrix_scales_before_translating():
    m = model_matrix(Vector3(10.0, 0.0, 0.0), Quaternion.identity(), Vector3(2.0, 2.0, 2.0))

    (p,) = transform_points(m, np.array([[1.0, 0.0, 0.0]]))
    # Z-up x=12 becomes Y-up z=12.
    assert p == pytest.approx([0.0, 0.0, 12.0])
