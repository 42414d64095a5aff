"""
PRM: Partial Robust M-regression

Robust partial least-squares regression for chemometric calibration,
built on an iteratively reweighted SIMPLS fit.
"""

from .exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    NotFittedError,
    NumericalDegeneracyError,
    PRMError,
)
from .regressor import PRMMatrix, PRMRegressor, PRMResult, fit_prm
from .robust import (
    fair_weights,
    geometric_median,
    leverage_weights,
    median_absolute_deviation,
    residual_weights,
)
from .simpls import SIMPLSMatrix, SIMPLSRegressor, SIMPLSResult, fit_simpls

__version__ = "0.1.0"

__all__ = [
    "PRMRegressor", "PRMResult", "PRMMatrix", "fit_prm",
    "SIMPLSRegressor", "SIMPLSResult", "SIMPLSMatrix", "fit_simpls",
    "fair_weights", "median_absolute_deviation", "geometric_median",
    "residual_weights", "leverage_weights",
    "PRMError", "ConfigurationError", "DimensionMismatchError",
    "NumericalDegeneracyError", "NotFittedError",
]
