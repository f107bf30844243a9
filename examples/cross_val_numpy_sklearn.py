"""
This file contains an example implementation of cross-validation using the NumPy
implementation of N-PLS with sklearn's `cross_validate`. It also demonstrates metric
computation and evaluation.

The code includes the following functions:
- `cv_splitter`: A function to generate indices to split data into training and
    validation sets.
- `rmse`: A function to compute the root mean squared error of a fitted estimator.

To run the cross-validation, execute the file.

Note: The code assumes the availability of the `npls` package and its dependencies.
"""

import numpy as np
from sklearn.model_selection import cross_validate

from npls.numpy_npls import NPLS


def cv_splitter(folds: np.ndarray):
    """
    Generate indices to split data into training and validation sets.
    """
    uniq_folds = np.unique(folds)
    for split in uniq_folds:
        train_idxs = np.nonzero(folds != split)[0]
        val_idxs = np.nonzero(folds == split)[0]
        yield train_idxs, val_idxs


def rmse(estimator, X: np.ndarray, y_true: np.ndarray) -> float:
    """
    Compute the root mean squared error of `estimator`'s predictions on `X`.
    """
    y_pred = estimator.predict(X)  # Shape (N,)
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))


if __name__ == "__main__":
    N = 100  # Number of samples.
    C = 30  # Number of columns, e.g. wavelengths.
    D = 8  # Number of depth levels, e.g. time points.
    A = 3  # Number of latent variables (N-PLS components).
    folds = np.random.randint(
        0, 5, size=N
    )  # Randomly assign each sample to one of 5 folds.

    X = np.random.uniform(size=(N, C, D))
    X = X - X.mean(axis=0, keepdims=True)
    y = X[:, :5, :2].sum(axis=(1, 2)) + 0.1 * np.random.normal(size=N)
    y = y - y.mean()

    np_npls = NPLS(n_components=A)
    np_npls_results = cross_validate(
        np_npls,
        X,
        y,
        cv=cv_splitter(folds),
        scoring=rmse,
        return_estimator=False,
        n_jobs=-1,
    )

    # Shape (number_of_folds,). Validation RMSE for each fold.
    val_rmses = np_npls_results["test_score"]
    print(f"Validation RMSE per fold: {val_rmses}")
