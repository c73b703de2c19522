"""
Tests for the dense linear algebra kernel.
"""

import numpy as np
import pytest

from leakage.errors import DimensionMismatchError, InputShapeError, SingularMatrixError
from leakage.model.linalg import (
    exact_standard_errors,
    invert,
    mat_mul,
    mat_vec_mul,
    solve_linear_system,
    standard_errors,
    transpose,
)


class TestMatrixProducts:
    """Transpose and products."""

    def test_transpose(self):
        m = [[1, 2, 3], [4, 5, 6]]
        np.testing.assert_array_equal(transpose(m), [[1, 4], [2, 5], [3, 6]])

    def test_transpose_does_not_alias_input(self):
        m = np.array([[1.0, 2.0], [3.0, 4.0]])
        t = transpose(m)
        t[0, 0] = 99.0
        assert m[0, 0] == 1.0

    def test_mat_mul(self):
        a = [[1, 2], [3, 4]]
        b = [[5, 6], [7, 8]]
        np.testing.assert_array_equal(mat_mul(a, b), [[19, 22], [43, 50]])

    def test_mat_mul_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError) as exc:
            mat_mul([[1, 2, 3]], [[1, 2]])
        assert exc.value.left_shape == (1, 3)
        assert exc.value.right_shape == (1, 2)

    def test_dimension_mismatch_is_input_shape_error(self):
        with pytest.raises(InputShapeError):
            mat_vec_mul([[1, 2]], [1, 2, 3])

    def test_mat_vec_mul(self):
        np.testing.assert_array_equal(mat_vec_mul([[1, 2], [3, 4]], [1, 1]), [3, 7])


class TestSolveLinearSystem:
    """Gaussian elimination with partial pivoting."""

    def test_solves_known_system(self):
        a = [[2.0, 1.0, -1.0], [-3.0, -1.0, 2.0], [-2.0, 1.0, 2.0]]
        b = [8.0, -11.0, -3.0]
        np.testing.assert_allclose(solve_linear_system(a, b), [2.0, 3.0, -1.0])

    def test_zero_leading_entry_needs_pivoting(self):
        a = [[0.0, 1.0], [1.0, 0.0]]
        np.testing.assert_allclose(solve_linear_system(a, [3.0, 5.0]), [5.0, 3.0])

    def test_matches_numpy_on_random_system(self):
        rng = np.random.default_rng(0)
        a = rng.normal(size=(6, 6)) + 6 * np.eye(6)
        b = rng.normal(size=6)
        np.testing.assert_allclose(solve_linear_system(a, b), np.linalg.solve(a, b), rtol=1e-10)

    def test_singular_raises(self):
        a = [[1.0, 2.0], [2.0, 4.0]]
        with pytest.raises(SingularMatrixError) as exc:
            solve_linear_system(a, [1.0, 2.0])
        assert exc.value.pivot_index == 1

    def test_singular_is_arithmetic_error(self):
        with pytest.raises(ArithmeticError):
            solve_linear_system([[0.0, 0.0], [0.0, 0.0]], [0.0, 0.0])

    def test_non_square_raises(self):
        with pytest.raises(DimensionMismatchError):
            solve_linear_system([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]], [1.0, 2.0])

    def test_badly_scaled_system(self):
        # a tiny but healthy pivot next to an O(1) one
        a = [[1e-14, 0.0], [0.0, 1.0]]
        np.testing.assert_allclose(solve_linear_system(a, [2e-14, 3.0]), [2.0, 3.0])

    def test_mixed_scale_normal_equations(self):
        rng = np.random.default_rng(3)
        x = np.column_stack([np.ones(60), rng.normal(1e8, 1e7, 60), np.repeat([0.0, 1.0], 30)])
        xtx = x.T @ x
        xty = x.T @ rng.normal(size=60)
        d = np.diag(1 / np.sqrt(np.diag(xtx)))
        expected = d @ np.linalg.solve(d @ xtx @ d, d @ xty)
        np.testing.assert_allclose(solve_linear_system(xtx, xty), expected, rtol=1e-6)

    def test_inputs_not_modified(self):
        a = np.array([[4.0, 1.0], [1.0, 3.0]])
        b = np.array([1.0, 2.0])
        a_copy, b_copy = a.copy(), b.copy()
        solve_linear_system(a, b)
        np.testing.assert_array_equal(a, a_copy)
        np.testing.assert_array_equal(b, b_copy)


class TestStandardErrors:
    """Legacy diagonal and inverse-based standard errors."""

    def test_legacy_uses_diagonal_of_xtx(self):
        xtx = np.array([[4.0, 2.0], [2.0, 9.0]])
        np.testing.assert_allclose(standard_errors(xtx, 0.25), [1.0, 1.5])

    def test_exact_uses_inverse(self):
        xtx = np.array([[4.0, 2.0], [2.0, 9.0]])
        expected = np.sqrt(0.25 * np.diag(np.linalg.inv(xtx)))
        np.testing.assert_allclose(exact_standard_errors(xtx, 0.25), expected)

    def test_invert(self):
        a = np.array([[4.0, 7.0], [2.0, 6.0]])
        np.testing.assert_allclose(invert(a) @ a, np.eye(2), atol=1e-12)
