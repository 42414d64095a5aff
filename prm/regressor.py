"""
PRM: Partial Robust M-regression

A robust partial least-squares regression that iteratively reweights
samples by their residuals (Fair weights on MAD-scaled residuals) and by
their leverage in score space (Fair weights on distances to the
geometric median), refitting SIMPLS on the reweighted data until the
response coefficients of the scores settle.

Paper: S. Serneels, C. Croux, P. Filzmoser, P.J. Van Espen,
       "Partial robust M-regression", Chemometrics and Intelligent
       Laboratory Systems 79 (2005) 55-64.
"""

import numbers
import time
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from sklearn.base import BaseEstimator, RegressorMixin, TransformerMixin
from sklearn.exceptions import ConvergenceWarning
from sklearn.preprocessing import StandardScaler
from sklearn.utils.validation import check_is_fitted

from ._validation import (
    check_n_features,
    check_predictors,
    check_training_data,
)
from .exceptions import ConfigurationError, NumericalDegeneracyError
from .robust import leverage_weights, residual_weights
from .simpls import fit_simpls


PREPROCESSING_TYPES = ['none', 'center', 'standardize']

# |c| below this is treated as zero
MIN_ABS_C = 1e-10


# ---------------------------------------------------------------------------
# Hyperparameter validation
# ---------------------------------------------------------------------------

def _check_hyperparameters(n_components=None, c=4.0, tol=1e-6, max_iter=500,
                           n_coefficients=-1, preprocessing='none',
                           **ignored):
    """Raise ConfigurationError for any invalid hyperparameter value."""
    if n_components is None:
        raise ConfigurationError("n_components is required")
    if (isinstance(n_components, bool)
            or not isinstance(n_components, (int, np.integer))
            or n_components < 1):
        raise ConfigurationError(
            f"n_components must be a positive integer, got {n_components!r}"
        )
    if (isinstance(c, bool) or not isinstance(c, numbers.Real)
            or np.isnan(c)):
        raise ConfigurationError(f"c must be a number, got {c!r}")
    if abs(c) < MIN_ABS_C:
        raise ConfigurationError("Parameter c must not be zero")
    if (isinstance(tol, bool) or not isinstance(tol, numbers.Real)
            or not tol >= 0):
        raise ConfigurationError(f"tol must be non-negative, got {tol!r}")
    if (isinstance(max_iter, bool)
            or not isinstance(max_iter, (int, np.integer))
            or max_iter < 1):
        raise ConfigurationError(
            f"max_iter must be a positive integer, got {max_iter!r}"
        )
    if (isinstance(n_coefficients, bool)
            or not isinstance(n_coefficients, (int, np.integer))):
        raise ConfigurationError(
            f"n_coefficients must be an integer, got {n_coefficients!r}"
        )
    if preprocessing not in PREPROCESSING_TYPES:
        raise ConfigurationError(
            f"Unknown preprocessing {preprocessing!r}; "
            f"expected one of {PREPROCESSING_TYPES}"
        )


# ---------------------------------------------------------------------------
# Fitted parameters
# ---------------------------------------------------------------------------

class PRMMatrix(Enum):
    """Matrices exposed by a fitted PRM model."""
    B = "B"             # final regression coefficients (p x 1)
    WR = "Wr"           # residual weights (n,)
    WX = "Wx"           # leverage weights (n,)
    W = "W"             # combined weights Wr * Wx (n,)
    T = "T"             # rescaled scores of the last round (n x k)
    GAMMA = "gamma"     # response coefficients of the scores (k,)


@dataclass(frozen=True, eq=False)
class PRMResult:
    """
    Immutable outcome of one PRM fit.

    ``coef`` and ``x_weights`` come verbatim from the last SIMPLS call.
    Scaling fields are ``None`` when no preprocessing was applied.
    """
    coef: np.ndarray
    x_weights: np.ndarray
    residual_weights: np.ndarray
    leverage_weights: np.ndarray
    scores: np.ndarray
    gamma: np.ndarray
    n_iter: int
    converged: bool
    x_mean: Optional[np.ndarray] = None
    x_scale: Optional[np.ndarray] = None
    y_mean: Optional[float] = None
    y_scale: Optional[float] = None

    def __post_init__(self):
        for value in self.__dict__.values():
            if isinstance(value, np.ndarray):
                value.setflags(write=False)

    @property
    def combined_weights(self):
        return self.residual_weights * self.leverage_weights

    def get_matrix(self, name):
        """
        Return one of the exposed matrices.

        ``name`` may be a :class:`PRMMatrix` or its string value;
        unknown names return ``None``.
        """
        try:
            key = PRMMatrix(name)
        except ValueError:
            return None
        return {
            PRMMatrix.B: self.coef,
            PRMMatrix.WR: self.residual_weights,
            PRMMatrix.WX: self.leverage_weights,
            PRMMatrix.W: self.combined_weights,
            PRMMatrix.T: self.scores,
            PRMMatrix.GAMMA: self.gamma,
        }[key]

    def scale_predictors(self, X):
        if self.x_mean is None:
            return X
        X = X - self.x_mean
        if self.x_scale is not None:
            X = X / self.x_scale
        return X

    def unscale_response(self, y):
        if self.y_mean is None:
            return y
        if self.y_scale is not None:
            y = y * self.y_scale
        return y + self.y_mean


# ---------------------------------------------------------------------------
# Main class
# ---------------------------------------------------------------------------

class PRMRegressor(RegressorMixin, TransformerMixin, BaseEstimator):
    """
    Partial robust M-regression.

    Parameters
    ----------
    n_components : int
        Number of latent components extracted by SIMPLS on every round.
    c : float, default=4.0
        Tuning constant of the Fair weight function.  Larger values
        flatten the function; c -> inf reproduces plain SIMPLS.
    tol : float, default=1e-6
        Convergence threshold on the squared change of the score
        coefficients between rounds.  Also used by the geometric median.
    max_iter : int, default=500
        Maximum number of reweighting rounds (and of Weiszfeld rounds
        inside each geometric median).
    n_coefficients : int, default=-1
        Number of SIMPLS weights to keep per component (the rest are
        zeroed).  Zero or negative keeps all.
    preprocessing : {'none', 'center', 'standardize'}, default='none'
        Preprocessing of predictors and response before fitting.
    verbose : bool, default=False
        Print progress.
    """

    def __init__(
        self,
        n_components,
        c=4.0,
        tol=1e-6,
        max_iter=500,
        n_coefficients=-1,
        preprocessing='none',
        verbose=False,
    ):
        _check_hyperparameters(
            n_components=n_components, c=c, tol=tol, max_iter=max_iter,
            n_coefficients=n_coefficients, preprocessing=preprocessing,
        )
        self.n_components = n_components
        self.c = c
        self.tol = tol
        self.max_iter = max_iter
        self.n_coefficients = n_coefficients
        self.preprocessing = preprocessing
        self.verbose = verbose

    # ---- configuration ---------------------------------------------------

    def set_params(self, **params):
        """
        Set hyperparameters, validating them first.

        Any previously fitted state is discarded.
        """
        merged = self.get_params(deep=False)
        merged.update(params)
        _check_hyperparameters(**merged)
        super().set_params(**params)
        self._reset()
        return self

    def _reset(self):
        for attr in ('result_', 'coef_', 'x_weights_', 'n_iter_',
                     'n_features_in_', 'feature_names_in_',
                     'convergence_history_', 'runtime_'):
            self.__dict__.pop(attr, None)

    # ---- public interface ------------------------------------------------

    def fit(self, X, y):
        """
        Fit the PRM model.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Predictor matrix (DataFrame, numpy array or nested list).
            Never modified.
        y : array-like of shape (n_samples,) or (n_samples, 1)
            Response variable.  Never modified.

        Returns
        -------
        self

        Raises
        ------
        DimensionMismatchError
            Mismatched row counts, or fewer samples than components.
        NumericalDegeneracyError
            Residual scale, leverage scale or SIMPLS rank collapsed.
        """
        t0 = time.time()
        self._reset()
        _check_hyperparameters(**self.get_params(deep=False))

        X, y, feature_names = check_training_data(X, y, self.n_components)
        n, p = X.shape

        if self.verbose:
            print("=" * 70)
            print("PARTIAL ROBUST M-REGRESSION")
            print("=" * 70)
            print(f"  Dataset : n={n}, p={p}")
            print(f"  k={self.n_components}  c={self.c}  tol={self.tol}  "
                  f"max_iter={self.max_iter}  "
                  f"preprocessing={self.preprocessing}")
            print()

        X0, y0, scaling = self._preprocess(X, y)
        result, history = self._iterate(X0, y0, scaling)

        # Only reached when every round succeeded
        self.result_ = result
        self.coef_ = result.coef.ravel()
        self.x_weights_ = result.x_weights
        self.n_iter_ = result.n_iter
        self.n_features_in_ = p
        if feature_names is not None:
            self.feature_names_in_ = feature_names
        self.convergence_history_ = history
        self.runtime_ = time.time() - t0

        if self.verbose:
            self._print_summary()

        return self

    def transform(self, X):
        """
        Project predictors onto the latent space: ``X @ W``.

        Returns
        -------
        np.ndarray of shape (n_samples, n_components)
        """
        X = self._coerce_X(X)
        return X @ self.result_.x_weights

    def predict(self, X):
        """
        Predict the response: ``X @ B``.

        Returns
        -------
        np.ndarray of shape (n_samples,)
        """
        X = self._coerce_X(X)
        y_pred = (X @ self.result_.coef).ravel()
        return self.result_.unscale_response(y_pred)

    def get_matrix(self, name):
        """Named matrix of the fitted model (see :class:`PRMMatrix`)."""
        self._check_fitted()
        return self.result_.get_matrix(name)

    def get_sample_weights(self):
        """Return the final per-sample weights as a DataFrame."""
        self._check_fitted()
        res = self.result_
        return pd.DataFrame({
            'residual_weight': res.residual_weights,
            'leverage_weight': res.leverage_weights,
            'combined_weight': res.combined_weights,
        })

    def plot_weights(self, threshold=0.1, figsize=(7, 6)):
        """
        Outlier map: residual weight against leverage weight.

        Samples whose combined weight falls below ``threshold`` are
        highlighted and labelled with their row index.

        Returns
        -------
        matplotlib.figure.Figure
        """
        self._check_fitted()
        wr = self.result_.residual_weights
        wx = self.result_.leverage_weights
        flagged = (wr * wx) < threshold

        fig, ax = plt.subplots(1, 1, figsize=figsize)
        ax.scatter(wx[~flagged], wr[~flagged], alpha=0.6, s=14,
                   color='steelblue', label='Regular')
        ax.scatter(wx[flagged], wr[flagged], alpha=0.9, s=24,
                   color='#ef4444', label=f'Combined weight < {threshold}')
        for idx in np.flatnonzero(flagged):
            ax.annotate(str(idx), (wx[idx], wr[idx]), fontsize=8,
                        xytext=(3, 3), textcoords='offset points')
        ax.set_xlim(0, 1.05)
        ax.set_ylim(0, 1.05)
        ax.set_xlabel("Leverage weight")
        ax.set_ylabel("Residual weight")
        ax.set_title(f"PRM weights (n_iter={self.n_iter_})")
        ax.legend(fontsize=9, loc='lower left')
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        return fig

    # ---- internals -------------------------------------------------------

    def _preprocess(self, X, y):
        """Center / standardize the training data as configured."""
        if self.preprocessing == 'none':
            return X, y, {}

        with_std = self.preprocessing == 'standardize'
        x_scaler = StandardScaler(with_std=with_std).fit(X)
        y_scaler = StandardScaler(with_std=with_std).fit(y.reshape(-1, 1))

        X0 = x_scaler.transform(X)
        y0 = y_scaler.transform(y.reshape(-1, 1)).ravel()
        scaling = {
            'x_mean': x_scaler.mean_,
            'x_scale': x_scaler.scale_,
            'y_mean': float(y_scaler.mean_[0]),
            'y_scale': (float(y_scaler.scale_[0])
                        if y_scaler.scale_ is not None else None),
        }
        return X0, y0, scaling

    def _iterate(self, X, y, scaling):
        """
        Reweighting loop.

        Stops when the squared change of gamma drops below ``tol`` or
        after ``max_iter`` rounds, whichever comes first.
        """
        k = self.n_components

        # Robust starting values
        wr = residual_weights(y, self.c)
        wx = leverage_weights(X, self.c, tol=self.tol, max_iter=self.max_iter)

        gamma = np.zeros(k)
        rounds = []
        n_iter = 0
        converged = False

        while True:
            w = wr * wx
            if not np.all(np.isfinite(w)) or np.any(w <= 0):
                raise NumericalDegeneracyError(
                    "Combined sample weights underflowed to zero"
                )
            w_sqrt = np.sqrt(w)

            Xp = X * w_sqrt[:, np.newaxis]
            yp = y * w_sqrt

            # Fresh engine every round, nothing carried over
            engine = fit_simpls(Xp, yp, k, self.n_coefficients)

            gamma_old = gamma
            scores = engine.transform(Xp) / w_sqrt[:, np.newaxis]
            gamma = engine.gamma

            wr = residual_weights(yp, self.c, scores, gamma)
            wx = leverage_weights(scores, self.c, tol=self.tol,
                                  max_iter=self.max_iter)
            n_iter += 1

            change = float(np.sum((gamma - gamma_old) ** 2))
            rounds.append({
                'iteration': n_iter,
                'gamma_change': change,
                'median_residual_weight': float(np.median(wr)),
                'median_leverage_weight': float(np.median(wx)),
            })
            if self.verbose:
                print(f"  Iteration {n_iter:4d}: |dgamma|^2 = {change:.3e}")

            if change < self.tol:
                converged = True
                break
            if n_iter >= self.max_iter:
                break

        if not converged:
            warnings.warn(
                f"PRM did not converge within max_iter={self.max_iter} "
                f"iterations (last |dgamma|^2 = {change:.3e})",
                ConvergenceWarning,
            )

        result = PRMResult(
            coef=engine.B,
            x_weights=engine.W,
            residual_weights=wr,
            leverage_weights=wx,
            scores=scores,
            gamma=gamma,
            n_iter=n_iter,
            converged=converged,
            **scaling,
        )
        return result, pd.DataFrame(rounds)

    def _print_summary(self):
        res = self.result_
        w = res.combined_weights
        print()
        print("=" * 70)
        print("FINAL MODEL SUMMARY")
        print("=" * 70)
        status = "converged" if res.converged else "stopped at max_iter"
        print(f"  Iterations            : {res.n_iter} ({status})")
        print(f"  Gamma                 : "
              f"{np.array2string(res.gamma, precision=4)}")
        print(f"  Min combined weight   : {w.min():.4f}")
        print(f"  Samples with w < 0.1  : {int(np.sum(w < 0.1))}")
        print(f"  Runtime               : {self.runtime_:.2f}s")
        print("=" * 70)

    def _coerce_X(self, X):
        """Validate prediction-time predictors and apply preprocessing."""
        self._check_fitted()
        X, _ = check_predictors(X)
        check_n_features(X, self.n_features_in_)
        return self.result_.scale_predictors(X)

    def _check_fitted(self):
        check_is_fitted(
            self, 'result_',
            msg="This PRMRegressor instance is not fitted yet. "
                "Call .fit(X, y) first.",
        )


# ---------------------------------------------------------------------------
# Convenience function
# ---------------------------------------------------------------------------

def fit_prm(X, y, n_components, c=4.0, verbose=False, **kwargs):
    """
    One-liner convenience function.

    Parameters
    ----------
    X : array-like
        Predictors.
    y : array-like
        Response.
    n_components : int
        Number of latent components.
    c : float
        Fair tuning constant.
    verbose : bool
        Print progress?
    **kwargs
        Further PRMRegressor hyperparameters.

    Returns
    -------
    PRMRegressor
        Fitted model.
    """
    mdl = PRMRegressor(n_components=n_components, c=c, verbose=verbose,
                       **kwargs)
    return mdl.fit(X, y)
