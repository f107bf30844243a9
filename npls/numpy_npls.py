"""
Contains the NPLS class which implements multilinear partial least-squares regression
(N-PLS) of a single response variable on a three-way array of predictor variables as
described by Bro:
https://doi.org/10.1002/(SICI)1099-128X(199601)10:1%3C47::AID-CEM400%3E3.0.CO;2-C

Each component's weight vector is the Kronecker product of a column-mode and a
depth-mode weight vector, found as the dominant singular vectors of the folded
cross-covariance between the deflated predictors and the residual response.

The NPLS class subclasses scikit-learn's BaseEstimator to ensure compatibility with e.g.
scikit-learn's cross_validate. It is written using NumPy.
"""

import logging
import warnings
from collections.abc import Callable, Hashable
from typing import Any, Iterable, Optional, Tuple

import joblib
import numpy as np
import numpy.linalg as la
import numpy.typing as npt
from joblib import Parallel, delayed
from sklearn.base import BaseEstimator, clone
from sklearn.exceptions import NotFittedError

from .exceptions import InvalidInputError, OrthogonalityError
from .linalg_utils import invert_vectorize, outer, pseudo_invert
from .tensor_utils import center, matricize, validate_input, validate_response

logger = logging.getLogger(__name__)

UNIT_NORM_TOLERANCE = 1e-5


def assemble_coefficients(
    W: npt.ArrayLike, ba: npt.ArrayLike
) -> Tuple[npt.NDArray[np.floating], npt.NDArray[np.floating]]:
    """
    Folds the weights of all components and their regression coefficients into a
    single vector of regression coefficients that applies to the undeflated data.

    Component i was extracted from X deflated by components 0, ..., i - 1. Its
    direction in the coordinates of the undeflated X is therefore
    :math:`\\mathbf{r}_i = \\mathbf{P}_i\\mathbf{w}_i` with
    :math:`\\mathbf{P}_0 = \\mathbf{I}` and
    :math:`\\mathbf{P}_i = \\mathbf{P}_{i-1}(\\mathbf{I} - \\mathbf{w}_{i-1}\\mathbf{w}_{i-1}^{\\mathbf{T}})`.

    Parameters
    ----------
    W : Array of shape (K, A)
        Weights matrix with the weight vector of component i in column i.

    ba : Array of shape (A, 1) or (A,)
        Regression coefficients of the response on the scores of each component.

    Returns
    -------
    R : Array of shape (K, A)
        Weights matrix to compute scores directly from the undeflated X.

    B : Array of shape (K, 1)
        Regression coefficients. `B = R @ ba`.

    Raises
    ------
    InvalidInputError
        If the number of columns of `W` differs from the length of `ba`.
    """
    W = np.asarray(W)
    ba = np.asarray(ba).reshape(-1, 1)
    A = W.shape[1]
    if ba.shape[0] != A:
        raise InvalidInputError(
            f"Got {A} weight vector(s) but {ba.shape[0]} regression coefficient(s)."
        )
    R = np.empty_like(W)
    for i in range(A):
        r = W[:, i : i + 1]
        # The rightmost projection complement, that of component i - 1, applies first.
        for j in range(i - 1, -1, -1):
            w_j = W[:, j : j + 1]
            r = r - w_j @ (w_j.T @ r)
        R[:, i] = r[:, 0]
    B = R @ ba
    return R, B


class NPLS(BaseEstimator):
    """
    Implements multilinear partial least-squares regression (N-PLS) of a single
    response variable on a three-way array of predictor variables.

    Parameters
    ----------
    n_components : int, default=1
        Number of components in the N-PLS model. Fitting always extracts exactly this
        many components.

    dtype : numpy.float, default=numpy.float64
        The float datatype to use in computation of the N-PLS algorithm. Using a lower
        precision than float64 will yield significantly worse results when using an
        increasing number of components due to propagation of numerical errors.

    Raises
    ------
    ValueError
        If `n_components` is not a positive integer.

    Notes
    -----
    `X` is unfolded and centered and `y` is centered before fitting. Neither centering
    is undone by `predict`: the regression coefficients are applied directly to the
    unfolded `X` passed to `predict`, and the mean of the training response is not
    added back. Predictions are therefore only on the original scale if `X` and `y`
    have zero mean.
    """

    def __init__(
        self,
        n_components: int = 1,
        dtype: np.floating = np.float64,
    ) -> None:
        self.n_components = n_components
        self.dtype = dtype
        self.name = "Multilinear PLS"
        self._check_n_components()
        self._reset()

    def _check_n_components(self) -> None:
        """
        Raises a ValueError unless `n_components` is a positive integer.
        """
        n_components = self.n_components
        if not isinstance(n_components, (int, np.integer)) or n_components < 1:
            raise ValueError(
                f"Invalid n_components: {n_components}. n_components must be a "
                "positive integer."
            )

    def _reset(self) -> None:
        """
        Discards any fitted state.
        """
        self.A = None
        self.N = None
        self.C = None
        self.D = None
        self.B = None
        self.W = None
        self.R = None
        self.T = None
        self.ba = None
        self.wJ = None
        self.wK = None
        self.y_residual = None
        self.max_stable_components = None

    def _weight_warning(self, i: int) -> None:
        """
        Warns the user that the weight is close to zero.

        Parameters
        ----------
        i : int
            Number of components.

        Returns
        -------
        None.
        """
        warnings.warn(
            message=f"Weight is close to zero. Results with A = {i + 1} "
            "component(s) or higher may be unstable.",
            category=UserWarning,
        )

    def get_available_stopping_criteria(self) -> frozenset:
        """
        N-PLS always extracts `n_components` components and supports no stopping
        criteria.
        """
        return frozenset()

    def _get_weights(
        self,
        Xa: npt.NDArray[np.floating],
        ya: npt.NDArray[np.floating],
        num_columns: int,
    ) -> Tuple[
        npt.NDArray[np.floating],
        npt.NDArray[np.floating],
        npt.NDArray[np.floating],
        float,
    ]:
        """
        Computes the weight vector of the next component as the Kronecker product of
        the dominant singular vectors of Z, where vec(Z) = Xa^T ya.

        Parameters
        ----------
        Xa : Array of shape (N, C * D)
            Unfolded, centered, and deflated predictor variables.

        ya : Array of shape (N, 1)
            Residual response.

        num_columns : int
            Number of columns C of the three-way predictor array.

        Returns
        -------
        w : Array of shape (C * D, 1)
            Weight vector with `w[c * D + d] = wK[c] * wJ[d]`.

        wJ : Array of shape (D,)
            Depth-mode weight vector. First left singular vector of Z.

        wK : Array of shape (C,)
            Column-mode weight vector. First right singular vector of Z.

        norm : float
            Norm of Xa^T ya.

        Raises
        ------
        numpy.linalg.LinAlgError
            If Z contains non-finite values or its singular value decomposition does not
            converge.
        """
        z = Xa.T @ ya
        Z = invert_vectorize(z, num_columns)
        if not np.all(np.isfinite(Z)):
            raise la.LinAlgError(
                "Cross-covariance between X and y contains non-finite values."
            )
        U, _, Vt = la.svd(Z)
        wJ = U[:, 0]
        wK = Vt[0]
        wJ = wJ / la.norm(wJ)
        wK = wK / la.norm(wK)
        w = outer(wK, wJ).reshape(-1, 1)
        return w, wJ, wK, la.norm(z)

    def fit(self, X: npt.ArrayLike, y: npt.ArrayLike) -> None:
        """
        Fits N-PLS on `X` and `y` using `n_components` components. Any previously
        fitted state is discarded first, and is only replaced if fitting succeeds.

        Parameters
        ----------
        X : Array of shape (N, C, D)
            Predictor variables.

        y : Array of shape (N,) or (N, 1)
            Response variable.

        Attributes
        ----------
        A : int
            Number of components in the N-PLS model.

        N : int
            Number of observations.

        C : int
            Number of columns of `X`.

        D : int
            Number of depth levels of `X`.

        max_stable_components : int
            Maximum number of components that can be used before the cross-covariance
            between the deflated X and the residual response goes below machine
            epsilon.

        B : Array of shape (C * D, 1)
            Regression coefficients. Applied to the mode-0 unfolding of `X`.

        W : Array of shape (C * D, A)
            Weights matrix for the deflated X.

        R : Array of shape (C * D, A)
            Weights matrix to compute scores T directly from the centered, unfolded X.

        T : Array of shape (N, A)
            Scores matrix of X.

        ba : Array of shape (A, 1)
            Regression coefficients of the centered y on T.

        wJ : Array of shape (D, A)
            Depth-mode weights of each component.

        wK : Array of shape (C, A)
            Column-mode weights of each component.

        y_residual : Array of shape (N, 1)
            Residual of the centered y after regression on all A scores.

        Returns
        -------
        None.

        Raises
        ------
        ValueError
            If `n_components` is not a positive integer.

        InvalidInputError
            If `X` is not a three-way array with non-zero dimensions, or if `y` does not
            have one entry per observation in `X`.

        OrthogonalityError
            If an extracted weight vector does not have unit norm.

        numpy.linalg.LinAlgError
            If a singular value decomposition cannot be computed.

        Warns
        -----
        UserWarning.
            If at any point during iteration over the number of components `A`, the
            cross-covariance between the deflated X and the residual response goes
            below machine precision.
        """
        self._check_n_components()
        self._reset()
        eps = np.finfo(self.dtype).eps
        X = validate_input(X, dtype=self.dtype)
        N, C, D = X.shape
        y = validate_response(y, N, dtype=self.dtype)
        A = self.n_components
        K = C * D

        Xa = center(matricize(X, mode=0), axis=0)
        y0 = y - np.mean(y)
        ya = y0

        W = np.zeros(shape=(A, K), dtype=self.dtype)
        T = np.zeros(shape=(A, N), dtype=self.dtype)
        wJs = np.zeros(shape=(A, D), dtype=self.dtype)
        wKs = np.zeros(shape=(A, C), dtype=self.dtype)
        max_stable_components = A

        for a in range(A):
            w, wJ, wK, norm = self._get_weights(Xa, ya, C)
            if max_stable_components == A and np.isclose(
                norm, 0, atol=eps, rtol=0
            ):
                self._weight_warning(a)
                max_stable_components = a

            wTw = (w.T @ w).item()
            if abs(1 - wTw) > UNIT_NORM_TOLERANCE:
                raise OrthogonalityError(
                    f"Condition w^T w = 1 violated for component {a + 1} "
                    f"(was {wTw})."
                )
            W[a] = w[:, 0]
            wJs[a] = wJ
            wKs[a] = wK

            t = Xa @ w
            T[a] = t[:, 0]
            Xa = Xa - t @ w.T

            # Regress y0 on all scores extracted so far.
            T_a = T[: a + 1].T
            ba = pseudo_invert(T_a.T @ T_a) @ T_a.T @ y0
            ya = y0 - T_a @ ba
            logger.debug(
                "Component %d/%d: |y_residual| = %g", a + 1, A, la.norm(ya)
            )

        R, B = assemble_coefficients(W.T, ba)

        self.A = A
        self.N = N
        self.C = C
        self.D = D
        self.max_stable_components = max_stable_components
        self.W = W.T
        self.T = T.T
        self.wJ = wJs.T
        self.wK = wKs.T
        self.ba = ba
        self.R = R
        self.B = B
        self.y_residual = ya
        logger.debug(
            "Fitted %d component(s) on X of shape %s. |T @ ba - y0| = %g",
            A,
            X.shape,
            la.norm(self.T @ ba - y0),
        )

    def predict(self, X: npt.ArrayLike) -> npt.NDArray[np.floating]:
        """
        Predicts on `X` with `B`.

        Parameters
        ----------
        X : Array of shape (M, C, D)
            Predictor variables. C and D must match those of the `X` used in `fit`.

        Returns
        -------
        y_pred : Array of shape (M,)
            Predictions. Neither `X` nor the predictions are adjusted by the means
            removed in `fit`.

        Raises
        ------
        sklearn.exceptions.NotFittedError
            If the model has not been successfully fitted.

        InvalidInputError
            If `X` is not a three-way array with non-zero dimensions, or if its column
            and depth dimensions differ from those of the `X` used in `fit`.
        """
        if self.B is None:
            raise NotFittedError(
                "This NPLS instance is not fitted yet. Call 'fit' before 'predict'."
            )
        X = validate_input(X, dtype=self.dtype)
        if X.shape[1:] != (self.C, self.D):
            raise InvalidInputError(
                f"X has observations of shape {X.shape[1:]}, but the model was fitted "
                f"on observations of shape {(self.C, self.D)}."
            )
        # Row i of the mode-0 unfolding is the unfolding of observation i.
        X_unfolded = matricize(X, mode=0)
        return (X_unfolded @ self.B)[:, 0]

    def cross_validate(
        self,
        X: npt.ArrayLike,
        y: npt.ArrayLike,
        folds: Iterable[Hashable],
        metric_function: Callable[
            [npt.NDArray[np.floating], npt.NDArray[np.floating]], Any
        ],
        preprocessing_function: Optional[
            Callable[
                [
                    npt.NDArray[np.floating],
                    npt.NDArray[np.floating],
                    npt.NDArray[np.floating],
                    npt.NDArray[np.floating],
                ],
                Tuple[
                    npt.NDArray[np.floating],
                    npt.NDArray[np.floating],
                    npt.NDArray[np.floating],
                    npt.NDArray[np.floating],
                ],
            ]
        ] = None,
        n_jobs: int = -1,
        verbose: int = 10,
    ) -> dict[Hashable, Any]:
        """
        Performs cross-validation for the N-PLS model on given data. Each fold is fitted
        on a clone of this model, so the fitted state of this model is left untouched.

        Parameters
        ----------
        X : Array of shape (N, C, D)
            Predictor variables.

        y : Array of shape (N,) or (N, 1)
            Response variable.

        folds : Iterable of Hashable with N elements
            An iterable defining cross-validation splits. Each unique value in
            `folds` corresponds to a different fold.

        metric_function : Callable receiving arrays `y_val` and `y_pred` of shape
        (N_val,) and returning Any.
            Computes a metric based on true values `y_val` and predicted values
            `y_pred`.

        preprocessing_function : Callable or None, optional, default=None
            A function receiving arrays `X_train`, `y_train`, `X_val`, and `y_val`
            and returning a Tuple of preprocessed `X_train`, `y_train`, `X_val`, and
            `y_val`. It is applied to each fold before fitting.

        n_jobs : int, optional default=-1
            Number of parallel jobs to use. A value of -1 will use the minimum of all
            available cores and the number of unique values in `folds`.

        verbose : int, optional default=10
            Controls verbosity of parallel jobs.

        Returns
        -------
        metrics : dict of Hashable to Any
            A dictionary mapping each unique value in `folds` to the result of
            evaluating `metric_function` on the validation set corresponding to that
            value.

        Raises
        ------
        InvalidInputError
            If `X` is not a three-way array with non-zero dimensions, or if `y` or
            `folds` does not have one entry per observation in `X`.
        """
        X = validate_input(X, dtype=self.dtype)
        y = validate_response(y, X.shape[0], dtype=self.dtype)[:, 0]

        folds_dict = self._validation_indices_per_fold(folds, X.shape[0])
        num_splits = len(folds_dict)
        all_indices = np.arange(X.shape[0])

        if n_jobs == -1:
            n_jobs = min(num_splits, joblib.cpu_count())
        else:
            n_jobs = min(num_splits, n_jobs)

        def worker(val_indices: npt.NDArray[np.int_]) -> Any:
            train_indices = np.setdiff1d(all_indices, val_indices, assume_unique=True)
            X_train = X[train_indices]
            y_train = y[train_indices]
            X_val = X[val_indices]
            y_val = y[val_indices]

            if preprocessing_function is not None:
                X_train, y_train, X_val, y_val = preprocessing_function(
                    X_train, y_train, X_val, y_val
                )

            model = clone(self)
            model.fit(X_train, y_train)
            y_pred = model.predict(X_val)
            return metric_function(y_val, y_pred)

        metrics_list = Parallel(n_jobs=n_jobs, verbose=verbose)(
            delayed(worker)(val_indices) for val_indices in folds_dict.values()
        )
        metrics_dict = dict(zip(folds_dict, metrics_list))
        return metrics_dict

    def _validation_indices_per_fold(
        self, folds: Iterable[Hashable], num_rows: int
    ) -> dict[Hashable, npt.NDArray[np.int_]]:
        """
        Groups observation indices by their fold label. Labels are sorted.

        Parameters
        ----------
        folds : Iterable of Hashable with N elements
            Fold label of each observation.

        num_rows : int
            Number of observations N.

        Returns
        -------
        val_indices : dict of Hashable to Array
            Maps each unique value in `folds` to the indices of the observations that
            make up its validation set.

        Raises
        ------
        InvalidInputError
            If `folds` does not have exactly `num_rows` elements.
        """
        folds = np.asarray(list(folds))
        if folds.shape != (num_rows,):
            raise InvalidInputError(
                f"Got {folds.size} fold assignment(s) for {num_rows} observations."
            )
        labels, fold_of_row = np.unique(folds, return_inverse=True)
        return {
            label: np.flatnonzero(fold_of_row == k)
            for k, label in enumerate(labels.tolist())
        }
