"""
Robust weighting primitives used by partial robust M-regression.

The Fair weight function, a median-absolute-deviation scale estimate,
Weiszfeld's geometric median and the residual / leverage weight updates
that are recombined on every outer iteration of the PRM fit.
"""

import numpy as np
from scipy.spatial.distance import cdist

from .exceptions import NumericalDegeneracyError


# Distances below this are treated as coincident with the current guess
ZERO_DISTANCE = 1e-10

# Inverse weight substituted for coincident points (1 / 0.1)
ZERO_DISTANCE_WEIGHT = 1.0 / 0.1

# Residual scales below this fraction of max|y| count as an exact fit
MAD_FLOOR = 1e-12


# ---------------------------------------------------------------------------
# Weight function / scale
# ---------------------------------------------------------------------------

def fair_weights(z, c):
    """
    Fair weight function ``1 / (1 + |z / c|)^2``.

    Parameters
    ----------
    z : float or array-like
        Standardised residuals or distances.
    c : float
        Non-zero tuning constant.  Large values flatten the function
        towards 1 (no downweighting), small values downweight
        aggressively.

    Returns
    -------
    np.ndarray or float
        Weights in (0, 1].
    """
    z = np.asarray(z, dtype=np.float64)
    return 1.0 / (1.0 + np.abs(z / c)) ** 2


def median_absolute_deviation(v):
    """MAD(v) = median_i |v_i - median(v)|."""
    v = np.asarray(v, dtype=np.float64).ravel()
    return float(np.median(np.abs(v - np.median(v))))


# ---------------------------------------------------------------------------
# Geometric median (Weiszfeld)
# ---------------------------------------------------------------------------

def geometric_median(points, tol=1e-6, max_iter=500):
    """
    Geometric (L1) median of the rows of ``points``.

    Starts from the column means and runs Weiszfeld's fixed-point update
    until the squared change between successive guesses drops below
    ``tol`` or ``max_iter`` rounds have been used.  The last guess is
    returned even if the iteration has not settled.

    Parameters
    ----------
    points : array-like of shape (n_points, n_dims)
    tol : float
    max_iter : int

    Returns
    -------
    median : np.ndarray of shape (n_dims,)
    n_iter : int
        Number of update rounds performed.
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[0] == 0:
        raise ValueError("points must be a non-empty 2-dimensional array")

    guess = points.mean(axis=0)

    n_iter = 0
    while n_iter < max_iter:
        dists = cdist(points, guess[np.newaxis, :]).ravel()

        inv = np.empty_like(dists)
        near = np.abs(dists) < ZERO_DISTANCE
        inv[near] = ZERO_DISTANCE_WEIGHT
        inv[~near] = 1.0 / dists[~near]

        denom = inv.sum()
        if not np.isfinite(denom) or denom < np.finfo(np.float64).tiny:
            raise NumericalDegeneracyError(
                f"Weiszfeld denominator degenerate ({denom!r})"
            )

        guess_next = (points * inv[:, np.newaxis]).sum(axis=0) / denom
        change = float(np.sum((guess_next - guess) ** 2))
        guess = guess_next
        n_iter += 1

        if change < tol:
            break

    return guess, n_iter


# ---------------------------------------------------------------------------
# Weight updates
# ---------------------------------------------------------------------------

def residual_weights(y, c, scores=None, gamma=None):
    """
    Residual weights ``Fair(r_i / MAD(r), c)``.

    On the first call (no ``scores`` / ``gamma``) the fitted value of
    every sample is ``median(y)``; afterwards it is ``scores[i] @ gamma``.

    Raises
    ------
    NumericalDegeneracyError
        If the residual scale is (numerically) zero.
    """
    y = np.asarray(y, dtype=np.float64).ravel()

    if scores is None or gamma is None:
        y_hat = np.full_like(y, np.median(y))
    else:
        y_hat = np.asarray(scores, dtype=np.float64) @ np.ravel(gamma)

    resid = y - y_hat
    scale = median_absolute_deviation(resid)

    # Relative to the response magnitude so that exact fits are caught
    floor = MAD_FLOOR * max(np.abs(y).max(), 1.0)
    if not np.isfinite(scale) or scale <= floor:
        raise NumericalDegeneracyError(
            f"Median absolute deviation of residuals is {scale:.3g}; "
            f"residual weights are undefined"
        )

    return fair_weights(resid / scale, c)


def leverage_weights(points, c, tol=1e-6, max_iter=500):
    """
    Leverage weights from distances to the geometric median.

    ``Wx_i = Fair(d_i / median(d), c)`` where ``d_i`` is the Euclidean
    distance of row ``i`` to the geometric median of all rows.
    """
    points = np.asarray(points, dtype=np.float64)
    center, _ = geometric_median(points, tol=tol, max_iter=max_iter)
    dists = cdist(points, center[np.newaxis, :]).ravel()

    med = float(np.median(dists))
    if not np.isfinite(med) or med <= ZERO_DISTANCE:
        raise NumericalDegeneracyError(
            f"Median distance to the geometric median is {med:.3g}; "
            f"leverage weights are undefined"
        )

    return fair_weights(dists / med, c)
