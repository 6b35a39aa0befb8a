"""Tune, refit and evaluate one single-predictor KNN rank regression.

Every operation is a plain function of its inputs: ``tune`` picks k by
stratified cross-validation, ``fit_final`` refits on the whole training set,
``evaluate`` and ``predict_curve`` only read the fitted model.
``PredictorEvaluator`` strings them together for one ``PipelineConfig``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import GridSearchCV
from sklearn.pipeline import Pipeline

from .config import PipelineConfig
from .errors import InsufficientDataError, MalformedInputError
from .metrics import bootstrap_regression_ci, regression_metrics, rmse
from .models import K_PARAM, make_knn_pipeline
from .splits import TARGET, TrainTestSplit, stratified_folds
from .utils import timed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TuneResult:
    best_k: int
    cv_errors: Dict[int, float]
    excluded_k: Tuple[int, ...] = ()

    def __iter__(self):
        # allows ``best_k, cv_errors = tune(...)``
        return iter((self.best_k, self.cv_errors))


@dataclass(frozen=True)
class TunedModel:
    predictor: str
    k: int
    pipeline: Pipeline

    @property
    def center(self) -> float:
        return float(self.pipeline.named_steps["scale"].mean_[0])

    @property
    def scale(self) -> float:
        return float(self.pipeline.named_steps["scale"].scale_[0])

    @property
    def n_train(self) -> int:
        return int(self.pipeline.named_steps["knn"].n_samples_fit_)

    def predict(self, values) -> np.ndarray:
        X = pd.DataFrame({self.predictor: np.asarray(values, dtype=float).reshape(-1)})
        return self.pipeline.predict(X)


@dataclass(frozen=True)
class PredictorResult:
    predictor: str
    best_k: int
    cv_errors: Dict[int, float]
    excluded_k: Tuple[int, ...]
    test_rmse: float
    test_metrics: Dict[str, Any]
    bootstrap_ci: Dict[str, Dict[str, float]]
    curve: List[Tuple[float, float]]
    n_train: int
    n_test: int
    seconds: float = field(default=0.0, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predictor": self.predictor,
            "best_k": self.best_k,
            "cv_rmse_by_k": {str(k): v for k, v in self.cv_errors.items()},
            "excluded_k": list(self.excluded_k),
            "test_rmse": self.test_rmse,
            "test_metrics": self.test_metrics,
            "bootstrap_ci": self.bootstrap_ci,
            "curve": [{"value": x, "predicted_rank": y} for x, y in self.curve],
            "n_train": self.n_train,
            "n_test": self.n_test,
            "seconds": self.seconds,
        }


def _xy(frame: pd.DataFrame, predictor: str) -> Tuple[pd.DataFrame, np.ndarray]:
    missing = [c for c in (predictor, TARGET) if c not in frame.columns]
    if missing:
        raise MalformedInputError(f"Player table is missing columns: {', '.join(missing)}")
    return frame[[predictor]].astype(float), frame[TARGET].to_numpy(dtype=float)


def tune(
    train: pd.DataFrame,
    predictor: str,
    k_values: Sequence[int],
    folds: int = 5,
    seed: int = 42,
    n_strata: int = 4,
) -> TuneResult:
    """Pick k by minimum mean fold RMSE; ties go to the smallest k."""
    X, y = _xy(train, predictor)
    cv = stratified_folds(train, folds=folds, seed=seed, n_strata=n_strata)

    # k can never exceed the number of points a fold is fit on
    max_k = min(len(train_idx) for train_idx, _ in cv)
    candidates = sorted({int(k) for k in k_values})
    valid_k = [k for k in candidates if 1 <= k <= max_k]
    excluded_k = tuple(k for k in candidates if k not in valid_k)
    if excluded_k:
        logger.warning(
            "%s: excluded %d k value(s) outside 1..%d (smallest fold training size)",
            predictor,
            len(excluded_k),
            max_k,
        )
    if not valid_k:
        raise InsufficientDataError(f"{predictor}: no k value in {candidates} fits folds of {max_k} training rows")

    grid_search = GridSearchCV(
        make_knn_pipeline(),
        {K_PARAM: valid_k},
        cv=cv,
        scoring="neg_root_mean_squared_error",
        n_jobs=1,
        refit=False,
        error_score="raise",
    )
    grid_search.fit(X, y)

    ks = [int(k) for k in grid_search.cv_results_[f"param_{K_PARAM}"]]
    errors = -np.asarray(grid_search.cv_results_["mean_test_score"], dtype=float)
    cv_errors = dict(sorted(zip(ks, (float(e) for e in errors))))

    ordered = list(cv_errors)
    best_k = ordered[int(np.argmin([cv_errors[k] for k in ordered]))]
    logger.info("%s: best k=%d (cv rmse %.3f) over %d candidates", predictor, best_k, cv_errors[best_k], len(ordered))
    return TuneResult(best_k=best_k, cv_errors=cv_errors, excluded_k=excluded_k)


def fit_final(train: pd.DataFrame, predictor: str, k: int) -> TunedModel:
    """Refit scaler and KNN on the whole training set."""
    X, y = _xy(train, predictor)
    if not 1 <= k <= len(train):
        raise InsufficientDataError(f"{predictor}: k={k} needs at least {k} training rows, got {len(train)}")
    pipeline = make_knn_pipeline(k).fit(X, y)
    return TunedModel(predictor=predictor, k=int(k), pipeline=pipeline)


def predict(model: TunedModel, frame: pd.DataFrame) -> np.ndarray:
    X, _ = _xy(frame, model.predictor)
    return model.pipeline.predict(X)


def evaluate(model: TunedModel, test: pd.DataFrame) -> float:
    """Test-set RMSE using the scaler fitted on the training data."""
    y_pred = predict(model, test)
    return rmse(test[TARGET].to_numpy(dtype=float), y_pred)


def predict_curve(model: TunedModel, values: Sequence[float]) -> List[Tuple[float, float]]:
    values = np.asarray(values, dtype=float).reshape(-1)
    if values.size == 0:
        return []
    preds = model.predict(values)
    return [(float(x), float(p)) for x, p in zip(values, preds)]


def curve_grid(frame: pd.DataFrame, predictor: str, points: int = 101) -> np.ndarray:
    """Evenly spaced predictor values spanning what was observed."""
    observed = frame[predictor].to_numpy(dtype=float)
    if observed.size == 0:
        return np.zeros(0)
    return np.linspace(observed.min(), observed.max(), points)


class PredictorEvaluator:
    """Runs tune -> fit_final -> evaluate -> predict_curve for one predictor."""

    def __init__(self, config: PipelineConfig, n_bootstrap: int = 500):
        self.config = config
        self.n_bootstrap = n_bootstrap

    @property
    def predictor(self) -> str:
        return self.config.predictor

    def run(self, split: TrainTestSplit, curve_values: Optional[Sequence[float]] = None) -> PredictorResult:
        cfg = self.config
        with timed() as t:
            tuned = tune(
                split.train,
                cfg.predictor,
                cfg.k_values,
                folds=cfg.folds,
                seed=cfg.seed,
                n_strata=cfg.n_strata,
            )
            model = fit_final(split.train, cfg.predictor, tuned.best_k)

            y_true = split.test[TARGET].to_numpy(dtype=float)
            y_pred = predict(model, split.test)
            test_rmse = rmse(y_true, y_pred)

            if curve_values is None:
                curve_values = curve_grid(pd.concat([split.train, split.test]), cfg.predictor, cfg.curve_points)
            curve = predict_curve(model, curve_values)

        logger.info("%s: k=%d, test rmse %.3f (%.2fs)", cfg.predictor, model.k, test_rmse, t["seconds"])
        return PredictorResult(
            predictor=cfg.predictor,
            best_k=tuned.best_k,
            cv_errors=tuned.cv_errors,
            excluded_k=tuned.excluded_k,
            test_rmse=test_rmse,
            test_metrics=regression_metrics(y_true, y_pred),
            bootstrap_ci=bootstrap_regression_ci(y_true, y_pred, n_bootstrap=self.n_bootstrap, seed=cfg.seed),
            curve=curve,
            n_train=len(split.train),
            n_test=len(split.test),
            seconds=t["seconds"],
        )
