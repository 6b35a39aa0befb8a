"""Model factory for the single-predictor KNN rank regressions."""

from __future__ import annotations

from sklearn.neighbors import KNeighborsRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

K_PARAM = "knn__n_neighbors"


def make_knn_pipeline(k: int = 5) -> Pipeline:
    """Standardize the predictor, then average the ranks of the k nearest players.

    The scaler is a pipeline step so it is refit on whatever data the pipeline
    is fit on (each CV training partition, or the full training set).
    """
    return Pipeline(
        [
            ("scale", StandardScaler()),
            ("knn", KNeighborsRegressor(n_neighbors=k, weights="uniform", algorithm="brute")),
        ]
    )
