"""
Tests for the SIMPLS engine.

Run with:  python -m pytest tests/ -v
"""

import numpy as np
import pytest
import sys
import os

# Allow running from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from prm import (
    DimensionMismatchError,
    NotFittedError,
    NumericalDegeneracyError,
    SIMPLSMatrix,
    SIMPLSRegressor,
    fit_simpls,
)


def _data(n=40, p=4, seed=0, noise=0.1):
    rng = np.random.RandomState(seed)
    X = rng.randn(n, p)
    beta = rng.randn(p)
    y = X @ beta + rng.randn(n) * noise
    return X, y


def test_all_components_match_least_squares():
    """With k = p, SIMPLS spans the full predictor space (no intercept)."""
    X, y = _data()
    res = fit_simpls(X, y, n_components=4)

    ols, *_ = np.linalg.lstsq(X, y, rcond=None)
    np.testing.assert_allclose(res.B.ravel(), ols, rtol=1e-6, atol=1e-8)


def test_scores_are_orthonormal():
    X, y = _data(p=6)
    res = fit_simpls(X, y, n_components=3)

    T = res.transform(X)
    assert T.shape == (40, 3)
    np.testing.assert_allclose(T.T @ T, np.eye(3), atol=1e-8)


def test_gamma_regresses_y_on_scores():
    X, y = _data(p=6)
    res = fit_simpls(X, y, n_components=3)

    T = res.transform(X)
    np.testing.assert_allclose(res.gamma, T.T @ y, rtol=1e-8)
    np.testing.assert_allclose(res.B.ravel(), res.W @ res.gamma, rtol=1e-10)


def test_shapes():
    X, y = _data(p=6)
    res = fit_simpls(X, y, n_components=2)
    assert res.W.shape == (6, 2)
    assert res.P.shape == (6, 2)
    assert res.Q.shape == (1, 2)
    assert res.B.shape == (6, 1)
    assert res.n_components == 2


def test_n_coefficients_zeroes_weights():
    X, y = _data(n=60, p=8)
    res = fit_simpls(X, y, n_components=3, n_coefficients=2)

    nonzero = np.count_nonzero(res.W, axis=0)
    assert np.all(nonzero <= 2), f"Non-zero weights per column: {nonzero}"


def test_non_positive_n_coefficients_keeps_all():
    X, y = _data(p=5)
    full = fit_simpls(X, y, n_components=2, n_coefficients=-1)
    zero = fit_simpls(X, y, n_components=2, n_coefficients=0)
    np.testing.assert_array_equal(full.W, zero.W)
    assert np.all(full.W != 0)


def test_row_mismatch():
    X, y = _data()
    with pytest.raises(DimensionMismatchError):
        fit_simpls(X, y[:-1], n_components=2)


def test_too_few_samples():
    X, y = _data(n=3, p=6)
    with pytest.raises(DimensionMismatchError):
        fit_simpls(X, y, n_components=4)


def test_rank_deficient_predictors():
    rng = np.random.RandomState(5)
    base = rng.randn(30, 2)
    X = np.column_stack([base, base[:, 0] + base[:, 1]])
    y = rng.randn(30)

    with pytest.raises(NumericalDegeneracyError):
        fit_simpls(X, y, n_components=3)


def test_get_matrix():
    X, y = _data()
    res = fit_simpls(X, y, n_components=2)

    np.testing.assert_array_equal(res.get_matrix("W"), res.W)
    np.testing.assert_array_equal(res.get_matrix(SIMPLSMatrix.B), res.B)
    assert res.get_matrix("not-a-matrix") is None


def test_fit_is_stateless():
    X, y = _data()
    a = fit_simpls(X, y, n_components=2)
    fit_simpls(X * 3.0, -y, n_components=3)
    b = fit_simpls(X, y, n_components=2)
    np.testing.assert_array_equal(a.B, b.B)


def test_regressor_wrapper():
    X, y = _data()
    model = SIMPLSRegressor(n_components=2).fit(X, y)

    res = fit_simpls(X, y, n_components=2)
    np.testing.assert_array_equal(model.coef_, res.B.ravel())
    np.testing.assert_array_equal(model.transform(X), res.transform(X))
    assert model.predict(X).shape == (40,)
    assert model.score(X, y) > 0.5


def test_regressor_not_fitted():
    X, _ = _data()
    with pytest.raises(NotFittedError):
        SIMPLSRegressor(n_components=2).predict(X)


if __name__ == '__main__':
    print("=" * 60)
    print("PRM SIMPLS Engine — Test Suite")
    print("=" * 60)
    print()

    tests = [
        test_all_components_match_least_squares,
        test_scores_are_orthonormal,
        test_gamma_regresses_y_on_scores,
        test_shapes,
        test_n_coefficients_zeroes_weights,
        test_non_positive_n_coefficients_keeps_all,
        test_row_mismatch,
        test_too_few_samples,
        test_rank_deficient_predictors,
        test_get_matrix,
        test_fit_is_stateless,
        test_regressor_wrapper,
        test_regressor_not_fitted,
    ]

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except AssertionError as e:
            print(f"  FAIL: {test.__name__}: {e}")
            failed += 1
        except Exception as e:
            print(f"  ERROR: {test.__name__}: {type(e).__name__}: {e}")
            failed += 1

    print()
    print(f"Results: {passed} passed, {failed} failed "
          f"out of {len(tests)} tests")
    print("=" * 60)
