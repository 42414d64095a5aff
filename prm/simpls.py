"""
SIMPLS latent-variable regression for a single response.

``fit_simpls`` is a pure function of (X, y, hyperparameters): it never
keeps state between calls, which is what the PRM outer loop relies on
when it refits the engine on freshly reweighted data every round.
``SIMPLSRegressor`` wraps it as a scikit-learn estimator.

Reference: S. de Jong, "SIMPLS: an alternative approach to partial least
squares regression", Chemometrics and Intelligent Laboratory Systems 18
(1993) 251-263.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np
from sklearn.base import BaseEstimator, RegressorMixin, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from ._validation import (
    check_n_features,
    check_predictors,
    check_training_data,
)
from .exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    NumericalDegeneracyError,
)


# Relative threshold below which a weight direction counts as rank deficient
RANK_TOL = 1e-12


class SIMPLSMatrix(Enum):
    """Matrices exposed by a fitted SIMPLS model."""
    W = "W"     # projection weights (p x k)
    P = "P"     # X loadings (p x k)
    Q = "Q"     # response loadings (1 x k)
    B = "B"     # regression coefficients (p x 1)


@dataclass(frozen=True, eq=False)
class SIMPLSResult:
    """Output of one SIMPLS fit."""
    W: np.ndarray
    P: np.ndarray
    Q: np.ndarray
    B: np.ndarray

    @property
    def gamma(self):
        """Response coefficients of the scores, shape (k,)."""
        return self.Q.ravel()

    @property
    def n_components(self):
        return self.W.shape[1]

    def transform(self, X):
        """Scores ``T = X @ W``."""
        return np.asarray(X, dtype=np.float64) @ self.W

    def predict(self, X):
        return (np.asarray(X, dtype=np.float64) @ self.B).ravel()

    def get_matrix(self, name):
        """
        Return one of the exposed matrices.

        ``name`` may be a :class:`SIMPLSMatrix` or its string value;
        unknown names return ``None``.
        """
        try:
            key = SIMPLSMatrix(name)
        except ValueError:
            return None
        return getattr(self, key.name)


def _keep_largest(w, n_keep):
    """Zero all but the ``n_keep`` largest-magnitude entries of ``w``."""
    if n_keep <= 0 or n_keep >= w.shape[0]:
        return w
    drop = np.argsort(np.abs(w), kind="stable")[:-n_keep]
    w = w.copy()
    w[drop] = 0.0
    return w


def fit_simpls(X, y, n_components, n_coefficients=-1):
    """
    Fit SIMPLS on a single response.

    No centering or scaling is applied here; callers pass data already
    in the space they want to model.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
    y : array-like of shape (n_samples,) or (n_samples, 1)
    n_components : int
        Number of latent components to extract.
    n_coefficients : int, default=-1
        If positive, every weight vector keeps only its
        ``n_coefficients`` largest-magnitude entries and the rest are
        zeroed before the component is extracted.  Zero or negative
        keeps all weights.

    Returns
    -------
    SIMPLSResult

    Raises
    ------
    DimensionMismatchError
        Row counts differ, or fewer samples than components.
    NumericalDegeneracyError
        The data cannot support ``n_components`` components (rank
        deficient X, or the response covariance is exhausted).
    """
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64).reshape(-1, 1)
    n, p = X.shape
    k = int(n_components)

    if y.shape[0] != n:
        raise DimensionMismatchError(
            f"X has {n} rows but y has {y.shape[0]}"
        )
    if k < 1:
        raise ConfigurationError(f"n_components must be >= 1, got {k}")
    if n < k:
        raise DimensionMismatchError(
            f"{k} latent components requested but only {n} samples supplied"
        )

    A = X.T @ y                     # cross-covariance, p x 1
    xty = A[:, 0].copy()
    M = X.T @ X
    C = np.eye(p)                   # projector onto complement of loadings
    a0_norm = np.linalg.norm(A)
    x_scale = np.trace(M)

    W = np.zeros((p, k))
    P = np.zeros((p, k))
    Q = np.zeros((1, k))

    for h in range(k):
        # Single response: the dominant eigenvector of A'A is the scalar 1
        w = _keep_largest(A[:, 0], n_coefficients)
        w_norm = np.linalg.norm(w)
        if w_norm <= RANK_TOL * a0_norm:
            raise NumericalDegeneracyError(
                f"Response covariance exhausted after {h} component(s); "
                f"cannot extract {k}"
            )

        t_sq = float(w @ M @ w)
        if t_sq <= RANK_TOL * x_scale * w_norm ** 2:
            raise NumericalDegeneracyError(
                f"X is rank deficient: component {h + 1} has zero variance"
            )

        w = w / np.sqrt(t_sq)       # unit-norm score t = X w
        p_h = M @ w
        q_h = xty @ w              # = y't

        v = C @ p_h
        v_norm = np.linalg.norm(v)
        if v_norm <= RANK_TOL * np.linalg.norm(p_h):
            raise NumericalDegeneracyError(
                f"Loading of component {h + 1} lies in the span of the "
                f"previous loadings"
            )
        v = v / v_norm
        C = C - np.outer(v, v)
        A = C @ A

        W[:, h] = w
        P[:, h] = p_h
        Q[0, h] = q_h

    B = W @ Q.T
    return SIMPLSResult(W=W, P=P, Q=Q, B=B)


class SIMPLSRegressor(RegressorMixin, TransformerMixin, BaseEstimator):
    """
    Plain (unweighted) SIMPLS regression.

    Parameters
    ----------
    n_components : int, default=2
    n_coefficients : int, default=-1
        Number of weights to keep per component, -1 keeps all.
    """

    def __init__(self, n_components=2, n_coefficients=-1):
        self.n_components = n_components
        self.n_coefficients = n_coefficients

    def fit(self, X, y):
        for attr in ("result_", "coef_", "x_weights_", "n_features_in_",
                     "feature_names_in_"):
            self.__dict__.pop(attr, None)

        X, y, feature_names = check_training_data(X, y, self.n_components)
        result = fit_simpls(X, y, self.n_components, self.n_coefficients)

        self.result_ = result
        self.coef_ = result.B.ravel()
        self.x_weights_ = result.W
        self.n_features_in_ = X.shape[1]
        if feature_names is not None:
            self.feature_names_in_ = feature_names
        return self

    def transform(self, X):
        check_is_fitted(self, "result_")
        X, _ = check_predictors(X)
        check_n_features(X, self.n_features_in_)
        return self.result_.transform(X)

    def predict(self, X):
        check_is_fitted(self, "result_")
        X, _ = check_predictors(X)
        check_n_features(X, self.n_features_in_)
        return self.result_.predict(X)

    def get_matrix(self, name):
        check_is_fitted(self, "result_")
        return self.result_.get_matrix(name)
