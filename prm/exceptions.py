"""
Exceptions raised by the PRM estimators.
"""

from sklearn.exceptions import NotFittedError


class PRMError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(PRMError, ValueError):
    """An invalid hyperparameter value was supplied."""


class DimensionMismatchError(PRMError, ValueError):
    """Input shapes are incompatible with each other or with the model."""


class NumericalDegeneracyError(PRMError, ArithmeticError):
    """A robust scale, distance or rank computation collapsed to zero."""


__all__ = [
    "PRMError",
    "ConfigurationError",
    "DimensionMismatchError",
    "NumericalDegeneracyError",
    "NotFittedError",
]
