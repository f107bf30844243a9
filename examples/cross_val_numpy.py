"""
This file contains an example implementation of cross-validation using N-PLS.
It demonstrates metric computation and evaluation for a range of numbers of components
on a synthetic three-way dataset.

The code includes the following functions:
- `make_trilinear_data`: A function to generate predictors of shape (N, C, D) and a
    response that depends on them through one column profile and one depth profile.
- `rmse`: A function to compute the root mean squared error.

To run the cross-validation, execute the file.

Note: The code assumes the availability of the `npls` package and its dependencies.
"""

import numpy as np

from npls.numpy_npls import NPLS


def make_trilinear_data(
    N: int, C: int, D: int, noise: float, rng: np.random.Generator
) -> tuple[np.ndarray, np.ndarray]:
    """
    Generate X with zero mean over observations and a response y with zero mean. The
    response is the projection of each observation's (C, D) slice on the outer product
    of a column profile and a depth profile, plus noise.
    """
    X = rng.standard_normal((N, C, D))
    X = X - X.mean(axis=0, keepdims=True)
    column_profile = np.sin(np.linspace(0, np.pi, C))
    depth_profile = np.exp(-np.linspace(0, 3, D))
    y = np.einsum("ncd,c,d->n", X, column_profile, depth_profile)
    y = y + noise * rng.standard_normal(N)
    return X, y - y.mean()


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))


if __name__ == "__main__":
    N = 100  # Number of samples.
    C = 30  # Number of columns, e.g. wavelengths.
    D = 8  # Number of depth levels, e.g. time points.
    max_components = 5  # Largest number of N-PLS components to evaluate.
    rng = np.random.default_rng(42)
    folds = rng.integers(0, 5, size=N)  # Randomly assign each sample to one of 5 folds.

    X, y = make_trilinear_data(N, C, D, noise=0.1, rng=rng)

    # N-PLS does not add back the response mean in predict, so this example uses
    # centered data. Each fold is fitted on a clone of the model.
    for A in range(1, max_components + 1):
        np_npls = NPLS(n_components=A)
        np_npls_cv_rmses = np_npls.cross_validate(
            X=X,
            y=y,
            folds=folds,
            metric_function=rmse,
            preprocessing_function=None,
            n_jobs=-1,
            verbose=0,
        )
        mean_rmse = np.mean(list(np_npls_cv_rmses.values()))
        print(f"A = {A}: mean validation RMSE = {mean_rmse:.4f}")
