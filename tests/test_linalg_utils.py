"""
Tests for the linear algebra helpers.
"""

import numpy as np
import pytest

from npls.exceptions import InvalidInputError
from npls.linalg_utils import (
    invert_vectorize,
    khatri_rao_product_column_wise,
    outer,
    pseudo_invert,
    t,
    vectorize,
)
from npls.tensor_utils import matricize

PRECISION = 1e-5


def test_pseudo_invert_3x2():
    """
    Verify the pseudo-inverse of a matrix whose columns are linearly independent but
    whose rows are not (x_1 + x_3 = 2 * x_2).
    """
    X = np.array([[1, 2], [3, 4], [5, 6]], dtype=np.float64)
    expected = np.array([[-16, -4, 8], [13, 4, -5]]) / 12
    X_pinv = pseudo_invert(X)

    np.testing.assert_allclose(X_pinv, expected, atol=1e-12)

    # Right inverse must not hold since the rows of X are linearly dependent.
    assert not np.allclose(X @ X_pinv, np.eye(3), rtol=0, atol=PRECISION)

    # Left inverse must hold since the columns of X are linearly independent.
    np.testing.assert_allclose(X_pinv @ X, np.eye(2), atol=PRECISION)

    # General condition.
    np.testing.assert_allclose(X @ X_pinv @ X, X, atol=PRECISION)


def test_pseudo_invert_independent_rows():
    X = np.array([[1, 3, 5], [2, 4, 6]], dtype=np.float64)
    np.testing.assert_allclose(X @ pseudo_invert(X), np.eye(2), atol=PRECISION)


def test_pseudo_invert_rank_deficient():
    """Verify the Penrose conditions hold for a singular square matrix."""
    rng = np.random.default_rng(42)
    u = rng.standard_normal((4, 2))
    M = u @ u.T
    M_pinv = pseudo_invert(M, rcond=1e-10)

    np.testing.assert_allclose(M @ M_pinv @ M, M, atol=PRECISION)
    np.testing.assert_allclose(M_pinv @ M @ M_pinv, M_pinv, atol=PRECISION)


def test_pseudo_invert_integer_input():
    M_pinv = pseudo_invert([[2, 0], [0, 4]])
    np.testing.assert_allclose(M_pinv, [[0.5, 0], [0, 0.25]])


def test_outer_shape():
    u = np.array([1.0, 2.0, 3.0])
    v = np.array([[4.0], [5.0]])
    np.testing.assert_array_equal(outer(u, v), [[4, 5], [8, 10], [12, 15]])


def test_t():
    M = np.arange(6).reshape(2, 3)
    np.testing.assert_array_equal(t(M), M.T)


def test_invert_vectorize_round_trip():
    """Verify vectorize undoes invert_vectorize."""
    rng = np.random.default_rng(42)
    z = rng.standard_normal(12)
    for num_columns in (1, 2, 3, 4, 6, 12):
        Z = invert_vectorize(z, num_columns)
        assert Z.shape == (12 // num_columns, num_columns)
        np.testing.assert_array_equal(vectorize(Z).ravel(), z)


def test_invert_vectorize_folds_unfolded_observation():
    """
    Verify folding the mode-0 unfolding of an observation into C columns gives the
    transpose of the observation's (C, D) slice.
    """
    rng = np.random.default_rng(42)
    X = rng.standard_normal((3, 4, 5))
    X_unfolded = matricize(X, 0)
    for n in range(X.shape[0]):
        np.testing.assert_array_equal(invert_vectorize(X_unfolded[n], 4), X[n].T)


def test_invert_vectorize_incompatible_length():
    with pytest.raises(InvalidInputError):
        invert_vectorize(np.zeros(7), 3)


def test_khatri_rao_product_column_wise():
    """
    Example from
    https://en.wikipedia.org/wiki/Kronecker_product#Khatri%E2%80%93Rao_product
    """
    C = np.array([[1, 2, 3], [4, 5, 6], [7, 8, 9]], dtype=np.float64)
    D = C.T
    expected = np.array(
        [
            [1, 8, 21],
            [2, 10, 24],
            [3, 12, 27],
            [4, 20, 42],
            [8, 25, 48],
            [12, 30, 54],
            [7, 32, 63],
            [14, 40, 72],
            [21, 48, 81],
        ]
    )
    np.testing.assert_array_equal(khatri_rao_product_column_wise(C, D), expected)


def test_khatri_rao_product_column_wise_r_reference():
    """
    Example from R:
    x <- matrix(seq(20), 4, 5, byrow=TRUE)
    y <- matrix(c(21:40), 4, 5, byrow=TRUE)
    KhatriRao(x, y)
    """
    x = np.arange(1, 21, dtype=np.float64).reshape(4, 5)
    y = np.arange(21, 41, dtype=np.float64).reshape(4, 5)
    expected = np.array(
        [
            [21, 44, 69, 96, 125],
            [26, 54, 84, 116, 150],
            [31, 64, 99, 136, 175],
            [36, 74, 114, 156, 200],
            [126, 154, 184, 216, 250],
            [156, 189, 224, 261, 300],
            [186, 224, 264, 306, 350],
            [216, 259, 304, 351, 400],
            [231, 264, 299, 336, 375],
            [286, 324, 364, 406, 450],
            [341, 384, 429, 476, 525],
            [396, 444, 494, 546, 600],
            [336, 374, 414, 456, 500],
            [416, 459, 504, 551, 600],
            [496, 544, 594, 646, 700],
            [576, 629, 684, 741, 800],
        ]
    )
    np.testing.assert_array_equal(khatri_rao_product_column_wise(x, y), expected)


def test_khatri_rao_product_column_wise_matches_kron():
    rng = np.random.default_rng(42)
    A = rng.standard_normal((3, 4))
    B = rng.standard_normal((5, 4))
    AB = khatri_rao_product_column_wise(A, B)
    for j in range(4):
        np.testing.assert_allclose(AB[:, j], np.kron(A[:, j], B[:, j]))


def test_khatri_rao_product_column_wise_column_mismatch():
    with pytest.raises(InvalidInputError):
        khatri_rao_product_column_wise(np.ones((3, 2)), np.ones((3, 3)))
