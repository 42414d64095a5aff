"""
Tests for the robust weighting primitives.

Run with:  python -m pytest tests/ -v
"""

import numpy as np
import pytest
import sys
import os

# Allow running from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from prm import (
    NumericalDegeneracyError,
    fair_weights,
    geometric_median,
    leverage_weights,
    median_absolute_deviation,
    residual_weights,
)


def test_fair_is_one_at_zero():
    for c in [0.5, 1.0, 4.0, 250.0, -3.0]:
        assert fair_weights(0.0, c) == 1.0, f"Fair(0, {c}) != 1"


def test_fair_strictly_decreasing():
    """Fair decreases in |z|, is symmetric, and vanishes at infinity."""
    z = np.linspace(0, 50, 201)
    w = fair_weights(z, 4.0)

    assert np.all(np.diff(w) < 0)
    assert np.all((w > 0) & (w <= 1))
    np.testing.assert_array_equal(w, fair_weights(-z, 4.0))
    assert fair_weights(1e12, 4.0) < 1e-20


def test_fair_large_c_flattens():
    z = np.array([-10.0, -1.0, 0.5, 3.0, 25.0])
    assert np.all(fair_weights(z, 1e9) > 1 - 1e-7)
    assert np.all(fair_weights(z[z != 0], 0.01) < 0.01)


def test_mad_constant_vector_is_zero():
    assert median_absolute_deviation(np.full(11, 3.7)) == 0.0


def test_mad_scale_equivariant():
    rng = np.random.RandomState(0)
    v = rng.randn(101)
    base = median_absolute_deviation(v)
    for a in [2.5, -3.5, 0.01]:
        assert np.isclose(median_absolute_deviation(a * v), abs(a) * base)


def test_mad_known_value():
    # median 3, |v - 3| = [2, 1, 0, 1, 97] -> median 1
    assert median_absolute_deviation([1, 2, 3, 4, 100]) == 1.0


def test_geometric_median_identical_rows():
    row = np.array([1.5, -2.0, 3.0])
    points = np.tile(row, (7, 1))

    med, n_iter = geometric_median(points, tol=1e-10, max_iter=100)

    np.testing.assert_allclose(med, row, atol=1e-10)
    assert n_iter <= 1


def test_geometric_median_regular_polygon():
    """Vertices of a regular hexagon: the median is the centre."""
    center = np.array([2.0, -1.0])
    angles = np.arange(6) * np.pi / 3
    points = center + np.column_stack([np.cos(angles), np.sin(angles)])

    tol = 1e-8
    med, _ = geometric_median(points, tol=tol, max_iter=500)
    assert np.sum((med - center) ** 2) < tol


def test_geometric_median_resists_outlier():
    rng = np.random.RandomState(1)
    points = np.vstack([rng.randn(30, 2) * 0.1, [[100.0, 100.0]]])

    med, _ = geometric_median(points, tol=1e-10, max_iter=500)

    assert np.linalg.norm(med) < 0.5
    assert np.linalg.norm(points.mean(axis=0)) > 2.0


def test_geometric_median_stops_at_max_iter():
    rng = np.random.RandomState(2)
    points = rng.randn(20, 3)

    med, n_iter = geometric_median(points, tol=0.0, max_iter=3)

    assert n_iter == 3
    assert np.all(np.isfinite(med))


def test_residual_weights_first_call_uses_median():
    y = np.array([1.0, 2.0, 3.0, 4.0, 100.0])
    w = residual_weights(y, 4.0)

    # residuals from median(y)=3 with MAD=1
    expected = fair_weights(np.array([-2.0, -1.0, 0.0, 1.0, 97.0]), 4.0)
    np.testing.assert_allclose(w, expected)
    assert np.argmin(w) == 4


def test_residual_weights_from_scores():
    rng = np.random.RandomState(3)
    scores = rng.randn(40, 2)
    gamma = np.array([1.5, -0.5])
    y = scores @ gamma + rng.randn(40) * 0.1
    y[5] += 10.0

    w = residual_weights(y, 4.0, scores, gamma)

    assert w.shape == (40,)
    assert np.argmin(w) == 5
    assert np.all((w > 0) & (w <= 1))


def test_residual_weights_degenerate_scale():
    with pytest.raises(NumericalDegeneracyError):
        residual_weights(np.full(10, 2.0), 4.0)


def test_leverage_weights_flag_remote_row():
    rng = np.random.RandomState(4)
    points = rng.randn(50, 3)
    points[17] = [25.0, -25.0, 25.0]

    w = leverage_weights(points, 4.0)

    assert np.argmin(w) == 17
    assert np.all((w > 0) & (w <= 1))


def test_leverage_weights_degenerate_spread():
    points = np.tile([1.0, 2.0], (9, 1))
    with pytest.raises(NumericalDegeneracyError):
        leverage_weights(points, 4.0)


if __name__ == '__main__':
    print("=" * 60)
    print("PRM Robust Weighting — Test Suite")
    print("=" * 60)
    print()

    tests = [
        test_fair_is_one_at_zero,
        test_fair_strictly_decreasing,
        test_fair_large_c_flattens,
        test_mad_constant_vector_is_zero,
        test_mad_scale_equivariant,
        test_mad_known_value,
        test_geometric_median_identical_rows,
        test_geometric_median_regular_polygon,
        test_geometric_median_resists_outlier,
        test_geometric_median_stops_at_max_iter,
        test_residual_weights_first_call_uses_median,
        test_residual_weights_from_scores,
        test_residual_weights_degenerate_scale,
        test_leverage_weights_flag_remote_row,
        test_leverage_weights_degenerate_spread,
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
