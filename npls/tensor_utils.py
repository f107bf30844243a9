"""
Contains functions for validating, unfolding, and centering three-way arrays.

The unfolding convention used throughout the package is row-major over the modes that
are flattened. For the mode-0 unfolding of an array of shape (N, C, D), entry
`X[n, c, d]` lands in row `n` and column `c * D + d`.
"""

import numpy as np
import numpy.typing as npt

from .exceptions import InvalidInputError


def validate_input(
    X: npt.ArrayLike, dtype: np.floating = np.float64
) -> npt.NDArray[np.floating]:
    """
    Converts `X` to an array of `dtype` and verifies that it is a three-way array with
    non-zero dimensions.

    Parameters
    ----------
    X : Array of shape (N, C, D)
        Three-way array.

    dtype : numpy.float, default=numpy.float64
        The float datatype of the returned array.

    Returns
    -------
    X : Array of shape (N, C, D)
        `X` as an array of `dtype`. No copy is made if `X` already is such an array.

    Raises
    ------
    InvalidInputError
        If `X` is not three-way or if any of its dimensions is zero.
    """
    X = np.asarray(X, dtype=dtype)
    if X.ndim != 3:
        raise InvalidInputError(
            f"Input array must be three-way, got an array with {X.ndim} mode(s)."
        )
    if min(X.shape) == 0:
        raise InvalidInputError(
            f"Input matrix dimensions must be greater than 0, got shape {X.shape}."
        )
    return X


def validate_response(
    y: npt.ArrayLike, num_rows: int, dtype: np.floating = np.float64
) -> npt.NDArray[np.floating]:
    """
    Converts `y` to a column vector of `dtype` and verifies that it has one entry per
    observation.

    Parameters
    ----------
    y : Array of shape (N,) or (N, 1)
        Response variable.

    num_rows : int
        Number of observations N in the predictor array.

    dtype : numpy.float, default=numpy.float64
        The float datatype of the returned array.

    Returns
    -------
    y : Array of shape (N, 1)

    Raises
    ------
    InvalidInputError
        If `y` is not a vector or a single column, or if its length is not `num_rows`.
    """
    y = np.asarray(y, dtype=dtype)
    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise InvalidInputError(
            f"Response must have shape (N,) or (N, 1), got shape {y.shape}."
        )
    if y.shape[0] != num_rows:
        raise InvalidInputError(
            f"Response has {y.shape[0]} entries but the input array has {num_rows} "
            "observations."
        )
    return y.reshape(-1, 1)


def matricize(X: npt.ArrayLike, mode: int = 0) -> npt.NDArray[np.floating]:
    """
    Unfolds a three-way array into a matrix along `mode`.

    Parameters
    ----------
    X : Array of shape (I_0, I_1, I_2)
        Three-way array.

    mode : int, default=0
        The mode that becomes the rows of the matrix. The two remaining modes are
        flattened row-major into the columns.

    Returns
    -------
    X_unfolded : Array of shape (I_mode, product of the two remaining dimensions)
        A view of `X` whenever the memory layout allows it.

    Raises
    ------
    InvalidInputError
        If `X` is not three-way, has a zero-sized dimension, or `mode` is not 0, 1,
        or 2.
    """
    X = np.asarray(X)
    if X.ndim != 3 or min(X.shape) == 0:
        raise InvalidInputError(
            f"Can only unfold three-way arrays with non-zero dimensions, got shape "
            f"{X.shape}."
        )
    if mode not in (0, 1, 2):
        raise InvalidInputError(f"Invalid mode: {mode}. Mode must be 0, 1, or 2.")
    return np.moveaxis(X, mode, 0).reshape(X.shape[mode], -1)


def center(M: npt.ArrayLike, axis: int = 0) -> npt.NDArray[np.floating]:
    """
    Subtracts the mean along `axis` from `M`.

    Parameters
    ----------
    M : Array of shape (I, J)
        Matrix to center.

    axis : int, default=0
        Axis along which the means are computed. With `axis=0`, the mean of each
        column is subtracted from that column.

    Returns
    -------
    M_centered : Array of shape (I, J)
        A new array with zero mean along `axis`.
    """
    M = np.asarray(M)
    return M - np.mean(M, axis=axis, keepdims=True)
