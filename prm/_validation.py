"""
Input validation shared by the estimators.
"""

import numpy as np
import pandas as pd

from .exceptions import DimensionMismatchError


def check_predictors(X, name="X"):
    """
    Convert ``X`` to a fresh 2-D float64 array.

    DataFrames are accepted as long as every column is numeric; their
    column names are returned alongside the array (``None`` otherwise).
    The returned array never shares memory with the caller's data.
    """
    feature_names = None
    if isinstance(X, pd.DataFrame):
        non_numeric = X.select_dtypes(exclude=[np.number]).columns.tolist()
        if non_numeric:
            raise ValueError(
                f"{name} has non-numeric column(s): {non_numeric}"
            )
        feature_names = np.asarray(X.columns, dtype=object)
        X = X.to_numpy(dtype=np.float64, copy=True)
    else:
        X = np.array(X, dtype=np.float64, copy=True)

    if X.ndim != 2:
        raise ValueError(f"{name} must be 2-dimensional, got {X.ndim}-D")
    if X.shape[0] == 0 or X.shape[1] == 0:
        raise ValueError(f"{name} is empty (shape {X.shape})")
    if not np.all(np.isfinite(X)):
        raise ValueError(f"{name} contains NaN or Inf")
    return X, feature_names


def check_response(y, name="y"):
    """Convert ``y`` to a fresh 1-D float64 array (n or n x 1 accepted)."""
    if isinstance(y, (pd.Series, pd.DataFrame)):
        y = y.to_numpy(dtype=np.float64, copy=True)
    else:
        y = np.array(y, dtype=np.float64, copy=True)

    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise ValueError(
            f"{name} must be a single response (n,) or (n, 1), "
            f"got shape {y.shape}"
        )
    if not np.all(np.isfinite(y)):
        raise ValueError(f"{name} contains NaN or Inf")
    return y


def check_training_data(X, y, n_components):
    """
    Validate a training pair before any fitting work is done.

    Returns
    -------
    X : np.ndarray of shape (n_samples, n_features)
    y : np.ndarray of shape (n_samples,)
    feature_names : np.ndarray or None
    """
    X, feature_names = check_predictors(X)
    y = check_response(y)

    if X.shape[0] != y.shape[0]:
        raise DimensionMismatchError(
            f"X has {X.shape[0]} rows but y has {y.shape[0]}"
        )
    if X.shape[0] < n_components:
        raise DimensionMismatchError(
            f"{n_components} latent components requested but only "
            f"{X.shape[0]} samples supplied"
        )
    return X, y, feature_names


def check_n_features(X, n_features):
    """Reject prediction-time data with the wrong number of columns."""
    if X.shape[1] != n_features:
        raise DimensionMismatchError(
            f"X has {X.shape[1]} features, but the model was fitted "
            f"with {n_features}"
        )
