"""Unit tests for the regression metrics helpers."""

import math

import numpy as np
import pytest

from rank_knn.metrics import bootstrap_regression_ci, regression_metrics, rmse


def test_rmse():
    assert rmse([1, 2, 3], [1, 2, 3]) == 0.0
    assert rmse([0, 0], [3, 4]) == pytest.approx(math.sqrt(12.5))


def test_regression_metrics_basic():
    y_true = np.array([10.0, 20.0, 30.0, 40.0])
    y_pred = np.array([12.0, 18.0, 33.0, 37.0])
    m = regression_metrics(y_true, y_pred)
    assert m["rmse"] == pytest.approx(rmse(y_true, y_pred))
    assert m["mae"] == pytest.approx(2.5)
    assert m["n_samples"] == 4
    assert m["pearson_correlation"] > 0.9


def test_constant_predictions_have_no_correlation():
    m = regression_metrics([1.0, 2.0, 3.0, 4.0], [2.5, 2.5, 2.5, 2.5])
    assert math.isnan(m["pearson_correlation"])
    assert math.isnan(m["spearman_correlation"])


def test_bootstrap_ci_contains_point_estimate_and_is_seeded():
    rng = np.random.default_rng(0)
    y_true = rng.normal(100, 30, 60)
    y_pred = y_true + rng.normal(0, 10, 60)
    a = bootstrap_regression_ci(y_true, y_pred, n_bootstrap=200, seed=5)
    b = bootstrap_regression_ci(y_true, y_pred, n_bootstrap=200, seed=5)
    assert a == b
    assert a["rmse"]["ci_lower"] <= a["rmse"]["point_estimate"] <= a["rmse"]["ci_upper"]


def test_bootstrap_single_sample():
    out = bootstrap_regression_ci([1.0], [2.0], n_bootstrap=10)
    assert out["rmse"]["point_estimate"] == 1.0
    assert math.isnan(out["rmse"]["ci_lower"])
