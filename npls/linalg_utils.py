"""
Contains the linear algebra helpers used by N-PLS: a pseudo-inverse computed from the
singular value decomposition, outer products, vectorization and its inverse, and the
column-wise Khatri-Rao product.

`vectorize` stacks the columns of a matrix (column-major). `invert_vectorize` is its
exact inverse. With the mode-0 unfolding from `npls.tensor_utils`, folding the
cross-covariance `Xa.T @ ya` of length C * D with `invert_vectorize(z, C)` gives the
(D, C) matrix Z with `Z[d, c] = z[c * D + d]`.
"""

from typing import Optional

import numpy as np
import numpy.linalg as la
import numpy.typing as npt

from .exceptions import InvalidInputError


def pseudo_invert(
    M: npt.ArrayLike, rcond: Optional[float] = None
) -> npt.NDArray[np.floating]:
    """
    Computes the Moore-Penrose pseudo-inverse of `M` from its singular value
    decomposition.

    Parameters
    ----------
    M : Array of shape (I, J)
        Matrix to invert.

    rcond : float or None, optional, default=None
        Singular values less than or equal to `rcond` times the largest singular value
        are treated as zero. If None, then `max(I, J)` times the machine epsilon of
        `M`'s dtype is used.

    Returns
    -------
    M_pinv : Array of shape (J, I)

    Raises
    ------
    numpy.linalg.LinAlgError
        If the singular value decomposition does not converge.
    """
    M = np.asarray(M)
    if not np.issubdtype(M.dtype, np.inexact):
        M = M.astype(np.float64)
    if M.ndim != 2:
        raise InvalidInputError(f"Can only invert matrices, got shape {M.shape}.")
    if rcond is None:
        rcond = max(M.shape) * np.finfo(M.dtype).eps
    U, s, Vt = la.svd(M, full_matrices=False)
    s_inv = np.zeros_like(s)
    if s.size > 0:
        nonzero = s > rcond * s[0]
        s_inv[nonzero] = 1 / s[nonzero]
    return (Vt.T * s_inv) @ U.T


def outer(u: npt.ArrayLike, v: npt.ArrayLike) -> npt.NDArray[np.floating]:
    """
    Returns the outer product of `u` and `v` as a matrix of shape (len(u), len(v)).
    Both inputs are flattened first, so column vectors are accepted.
    """
    return np.outer(np.ravel(u), np.ravel(v))


def t(M: npt.ArrayLike) -> npt.NDArray[np.floating]:
    """Transpose."""
    return np.asarray(M).T


def vectorize(Z: npt.ArrayLike) -> npt.NDArray[np.floating]:
    """
    Stacks the columns of `Z` into a single column vector.

    Parameters
    ----------
    Z : Array of shape (I, J)

    Returns
    -------
    z : Array of shape (I * J, 1)
    """
    Z = np.asarray(Z)
    return Z.reshape(-1, 1, order="F")


def invert_vectorize(z: npt.ArrayLike, num_columns: int) -> npt.NDArray[np.floating]:
    """
    Reshapes a vectorized matrix back into a matrix with `num_columns` columns. This is
    the exact inverse of `vectorize`.

    Parameters
    ----------
    z : Array of shape (I * num_columns,) or (I * num_columns, 1)

    num_columns : int
        Number of columns of the folded matrix.

    Returns
    -------
    Z : Array of shape (I, num_columns)

    Raises
    ------
    InvalidInputError
        If the length of `z` is not a positive multiple of `num_columns`.
    """
    z = np.ravel(z)
    if num_columns < 1 or z.size == 0 or z.size % num_columns != 0:
        raise InvalidInputError(
            f"Cannot fold a vector of length {z.size} into {num_columns} column(s)."
        )
    return z.reshape(-1, num_columns, order="F")


def khatri_rao_product_column_wise(
    A: npt.ArrayLike, B: npt.ArrayLike
) -> npt.NDArray[np.floating]:
    """
    Computes the column-wise Khatri-Rao product of `A` and `B`. Column j of the result
    is the Kronecker product of column j of `A` and column j of `B`.

    Parameters
    ----------
    A : Array of shape (I, R)

    B : Array of shape (J, R)

    Returns
    -------
    AB : Array of shape (I * J, R)

    Raises
    ------
    InvalidInputError
        If `A` and `B` are not matrices with the same number of columns.
    """
    A = np.asarray(A)
    B = np.asarray(B)
    if A.ndim != 2 or B.ndim != 2 or A.shape[1] != B.shape[1]:
        raise InvalidInputError(
            "Khatri-Rao product requires two matrices with the same number of "
            f"columns, got shapes {A.shape} and {B.shape}."
        )
    # (I, 1, R) * (1, J, R) -> (I, J, R), row index i * J + j after reshaping.
    return (A[:, np.newaxis, :] * B[np.newaxis, :, :]).reshape(-1, A.shape[1])
