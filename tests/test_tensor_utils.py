"""
Tests for unfolding, centering, and validation of three-way arrays.
"""

import numpy as np
import pytest

from npls.exceptions import InvalidInputError
from npls.tensor_utils import center, matricize, validate_input, validate_response


def test_matricize_mode_0_layout():
    """Verify X[n, c, d] lands in row n, column c * D + d."""
    N, C, D = 4, 3, 2
    X = np.arange(N * C * D, dtype=np.float64).reshape(N, C, D)
    X_unfolded = matricize(X, 0)

    assert X_unfolded.shape == (N, C * D)
    for n in range(N):
        for c in range(C):
            for d in range(D):
                assert X_unfolded[n, c * D + d] == X[n, c, d]


def test_matricize_mode_0_is_a_view():
    """Verify unfolding a contiguous array does not copy it."""
    X = np.zeros((5, 3, 2))
    assert np.shares_memory(matricize(X, 0), X)


def test_matricize_other_modes():
    """Verify the shapes and layout of the mode-1 and mode-2 unfoldings."""
    X = np.arange(24, dtype=np.float64).reshape(4, 3, 2)

    X1 = matricize(X, 1)
    assert X1.shape == (3, 8)
    assert X1[1, 2 * 2 + 1] == X[2, 1, 1]

    X2 = matricize(X, 2)
    assert X2.shape == (2, 12)
    assert X2[1, 3 * 3 + 2] == X[3, 2, 1]


@pytest.mark.parametrize("shape", [(0, 3, 2), (4, 0, 2), (4, 3, 0)])
def test_matricize_zero_dimension(shape):
    """Verify arrays with a zero-sized dimension are rejected."""
    with pytest.raises(InvalidInputError):
        matricize(np.zeros(shape), 0)


def test_matricize_invalid_mode():
    with pytest.raises(InvalidInputError):
        matricize(np.zeros((4, 3, 2)), 3)


def test_center_columns():
    """Verify centering along axis 0 removes column means and leaves input intact."""
    rng = np.random.default_rng(42)
    M = rng.uniform(size=(10, 4)) + 3
    M_copy = M.copy()
    M_centered = center(M, axis=0)

    np.testing.assert_allclose(M_centered.mean(axis=0), 0, atol=1e-12)
    np.testing.assert_allclose(M_centered, M - M_copy.mean(axis=0))
    np.testing.assert_array_equal(M, M_copy)


def test_center_rows():
    rng = np.random.default_rng(42)
    M = rng.uniform(size=(10, 4))
    np.testing.assert_allclose(center(M, axis=1).mean(axis=1), 0, atol=1e-12)


def test_validate_input_rejects_non_three_way():
    with pytest.raises(InvalidInputError):
        validate_input(np.zeros((4, 3)))


@pytest.mark.parametrize("shape", [(0, 3, 2), (4, 0, 2), (4, 3, 0)])
def test_validate_input_rejects_zero_dimension(shape):
    with pytest.raises(InvalidInputError):
        validate_input(np.zeros(shape))


def test_validate_input_nested_lists():
    X = validate_input([[[1, 2], [3, 4]]])
    assert X.shape == (1, 2, 2)
    assert X.dtype == np.float64


def test_validate_response_shapes():
    """Verify vectors and single columns are accepted and returned as columns."""
    assert validate_response(np.arange(5), 5).shape == (5, 1)
    assert validate_response(np.arange(5).reshape(-1, 1), 5).shape == (5, 1)

    with pytest.raises(InvalidInputError):
        validate_response(np.zeros((5, 2)), 5)

    with pytest.raises(InvalidInputError):
        validate_response(np.arange(4), 5)
