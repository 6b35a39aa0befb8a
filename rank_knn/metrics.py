"""
Regression metrics for rank predictions.
Point metrics plus percentile-bootstrap confidence intervals.
"""
from typing import Any, Dict

import numpy as np
from scipy import stats
from sklearn.metrics import (
    mean_absolute_error,
    mean_squared_error,
    median_absolute_error,
    r2_score,
)


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    y_true = np.asarray(y_true, dtype=float).reshape(-1)
    y_pred = np.asarray(y_pred, dtype=float).reshape(-1)
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def regression_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray
) -> Dict[str, Any]:
    """
    Compute regression metrics for predicted vs. true rank.
    """
    y_true = np.asarray(y_true, dtype=float).reshape(-1)
    y_pred = np.asarray(y_pred, dtype=float).reshape(-1)
    residuals = y_true - y_pred

    metrics = {}

    metrics['mse'] = float(mean_squared_error(y_true, y_pred))
    metrics['rmse'] = float(np.sqrt(metrics['mse']))
    metrics['mae'] = float(mean_absolute_error(y_true, y_pred))
    metrics['median_absolute_error'] = float(median_absolute_error(y_true, y_pred))
    metrics['r2'] = float(r2_score(y_true, y_pred)) if len(y_true) > 1 else float('nan')

    metrics['residual_mean'] = float(np.mean(residuals))
    metrics['residual_std'] = float(np.std(residuals))

    # Correlations are undefined for constant predictions (common for large k)
    if len(y_true) > 2 and np.std(y_pred) > 0 and np.std(y_true) > 0:
        metrics['pearson_correlation'] = float(np.corrcoef(y_true, y_pred)[0, 1])
        metrics['spearman_correlation'] = float(stats.spearmanr(y_true, y_pred)[0])
    else:
        metrics['pearson_correlation'] = float('nan')
        metrics['spearman_correlation'] = float('nan')

    metrics['n_samples'] = len(y_true)
    metrics['y_true_mean'] = float(np.mean(y_true))
    metrics['y_pred_mean'] = float(np.mean(y_pred))
    metrics['y_pred_std'] = float(np.std(y_pred))

    return metrics


def bootstrap_regression_ci(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    n_bootstrap: int = 500,
    confidence_level: float = 0.95,
    seed: int = 42
) -> Dict[str, Dict[str, float]]:
    """
    Compute bootstrap confidence intervals for regression metrics.
    """
    rng = np.random.default_rng(seed)

    y_true = np.asarray(y_true, dtype=float).reshape(-1)
    y_pred = np.asarray(y_pred, dtype=float).reshape(-1)
    n_samples = len(y_true)

    alpha = 1 - confidence_level
    lower_percentile = (alpha / 2) * 100
    upper_percentile = (1 - alpha / 2) * 100

    metric_funcs = {
        'rmse': lambda yt, yp: np.sqrt(mean_squared_error(yt, yp)),
        'mae': lambda yt, yp: mean_absolute_error(yt, yp),
        'r2': lambda yt, yp: r2_score(yt, yp),
    }

    bootstrap_results = {name: [] for name in metric_funcs}

    if n_samples > 1:
        for _ in range(n_bootstrap):
            indices = rng.integers(0, n_samples, size=n_samples)
            y_true_boot = y_true[indices]
            y_pred_boot = y_pred[indices]

            for name, func in metric_funcs.items():
                # r2 is nan for a constant resample; leave those out
                value = float(func(y_true_boot, y_pred_boot))
                if np.isfinite(value):
                    bootstrap_results[name].append(value)

    results = {}
    point_estimates = regression_metrics(y_true, y_pred)

    for name in metric_funcs:
        values = bootstrap_results[name]
        if len(values) > 0:
            results[name] = {
                'point_estimate': point_estimates[name],
                'ci_lower': float(np.percentile(values, lower_percentile)),
                'ci_upper': float(np.percentile(values, upper_percentile)),
                'std_error': float(np.std(values))
            }
        else:
            results[name] = {
                'point_estimate': point_estimates[name],
                'ci_lower': float('nan'),
                'ci_upper': float('nan'),
                'std_error': float('nan')
            }

    return results
