#!/usr/bin/env python3
"""
Tests for the 4x4 rendering matrix and homography embedding.

Run with: python -m pytest tests/test_matrix4.py -v
"""

import os
import sys

import numpy as np
import pytest
from hypothesis import assume, given, settings, strategies as st

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from perspective_transform.geometry.errors import (
    DegenerateConfiguration,
    InvalidInputCardinality,
)
from perspective_transform.geometry.homography import (
    HomographyCoefficients,
    solve_homography,
)
from perspective_transform.geometry.matrix4 import (
    Matrix4,
    embed_as_matrix4,
    get_perspective_transform,
)

coordinate = st.floats(min_value=-1e4, max_value=1e4)
coefficient = st.floats(min_value=-10.0, max_value=10.0)


class TestMatrix4:
    """Tests for the Matrix4 container."""

    def test_default_is_identity(self) -> None:
        np.testing.assert_array_equal(Matrix4().to_numpy(), np.eye(4))

    def test_set_is_row_major_and_storage_column_major(self) -> None:
        m = Matrix4().set(*range(1, 17))

        assert m.get(0, 1) == 2
        assert m.get(1, 0) == 5
        assert m.get(3, 3) == 16
        np.testing.assert_array_equal(m.elements[:4], [1, 5, 9, 13])
        np.testing.assert_array_equal(m.to_numpy()[0], [1, 2, 3, 4])

    @pytest.mark.parametrize("n", [0, 9, 15, 17])
    def test_set_requires_sixteen_values(self, n: int) -> None:
        with pytest.raises(ValueError):
            Matrix4().set(*([1.0] * n))

    def test_identity_resets(self) -> None:
        m = Matrix4().set(*range(16))

        assert m.identity() == Matrix4()

    def test_copy_is_independent(self) -> None:
        m = Matrix4().set(*range(16))
        c = m.copy()
        m.identity()

        assert c == Matrix4().set(*range(16))
        assert c != m

    def test_multiply(self) -> None:
        scale = Matrix4().set(
            2, 0, 0, 0,
            0, 3, 0, 0,
            0, 0, 4, 0,
            0, 0, 0, 1,
        )
        translate = Matrix4().set(
            1, 0, 0, 5,
            0, 1, 0, 6,
            0, 0, 1, 7,
            0, 0, 0, 1,
        )

        result = scale.copy().multiply(translate)

        assert result.apply_to_point(0, 0, 0) == pytest.approx((10, 18, 28))

    def test_apply_to_point_divides_by_w(self) -> None:
        m = Matrix4().set(
            1, 0, 0, 0,
            0, 1, 0, 0,
            0, 0, 1, 0,
            0, 0, 0, 2,
        )

        assert m.apply_to_point(2, 4, 6) == pytest.approx((1, 2, 3))

    def test_repr(self) -> None:
        assert repr(Matrix4()).startswith("Matrix4([1.0, 0.0, 0.0, 0.0]")


class TestEmbedAsMatrix4:
    """Tests for splicing a homography into a 4x4 matrix."""

    def test_layout(self) -> None:
        coeffs = HomographyCoefficients(11, 12, 13, 21, 22, 23, 31, 32)

        m = embed_as_matrix4(coeffs).to_numpy()

        np.testing.assert_array_equal(m, [
            [11, 12, 0, 13],
            [21, 22, 0, 23],
            [0,  0,  1, 0],
            [31, 32, 0, 1],
        ])

    @given(a=st.lists(coefficient, min_size=8, max_size=8),
           x=coordinate, y=coordinate, z=coordinate)
    @settings(max_examples=200, deadline=None)
    def test_z_passes_through(self, a, x, y, z) -> None:
        m = embed_as_matrix4(HomographyCoefficients(*a))

        out = m.to_numpy() @ np.array([x, y, z, 1.0])

        assert out[2] == z

    @given(a=st.lists(coefficient, min_size=8, max_size=8),
           x=coordinate, y=coordinate, z=coordinate)
    @settings(max_examples=200, deadline=None)
    def test_xy_match_homography(self, a, x, y, z) -> None:
        coeffs = HomographyCoefficients(*a)
        w = a[6] * x + a[7] * y + 1.0
        assume(abs(w) > 1e-3)

        px, py, _ = embed_as_matrix4(coeffs).apply_to_point(x, y, z)

        expected = coeffs.transform(x, y)
        assert (px, py) == pytest.approx(expected, rel=1e-6, abs=1e-6)


class TestGetPerspectiveTransform:
    """Tests for the composed quad-to-quad entry point."""

    def test_unit_square_to_double_square(self) -> None:
        src = [(0, 0), (1, 0), (1, 1), (0, 1)]
        dst = [(0, 0), (2, 0), (2, 2), (0, 2)]

        m = get_perspective_transform(src, dst).to_numpy()

        np.testing.assert_allclose(m, [
            [2, 0, 0, 0],
            [0, 2, 0, 0],
            [0, 0, 1, 0],
            [0, 0, 0, 1],
        ], atol=1e-9)

    def test_corners_map_with_depth_kept(self) -> None:
        src = [(0, 0), (640, 0), (640, 480), (0, 480)]
        dst = [(80, 20), (560, 0), (640, 480), (0, 460)]

        m = get_perspective_transform(src, dst)

        for (sx, sy), (dx, dy) in zip(src, dst):
            x, y, _ = m.apply_to_point(sx, sy, 0.0)
            assert (x, y) == pytest.approx((dx, dy), abs=1e-6)
            homogeneous = m.to_numpy() @ np.array([sx, sy, -3.5, 1.0])
            assert homogeneous[2] == -3.5

    def test_matches_embedded_solution(self) -> None:
        src = [(0, 0), (1, 0), (1, 1), (0, 1)]
        dst = [(0, 0), (3, 1), (4, 4), (-1, 3)]

        assert get_perspective_transform(src, dst) == embed_as_matrix4(
            solve_homography(src, dst))

    def test_errors_propagate(self) -> None:
        square = [(0, 0), (1, 0), (1, 1), (0, 1)]

        with pytest.raises(DegenerateConfiguration):
            get_perspective_transform([(0, 0), (1, 0), (2, 0), (0, 1)], square)
        with pytest.raises(InvalidInputCardinality):
            get_perspective_transform(square[:3], square)
