"""End-to-end analysis run: raw matches -> player table -> four KNN evaluations.

The predictor evaluations share nothing but the (read-only) train/test split,
so they are fanned out with joblib, one task per predictor, and gathered in
the order the predictors were given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence

import pandas as pd
from joblib import Parallel, delayed

from . import data_prep as dp
from .config import PipelineConfig, data_cfg, tune_cfg
from .evaluator import PredictorEvaluator, PredictorResult
from .splits import TrainTestSplit, make_train_test_split
from .utils import save_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    summary: pd.DataFrame
    exclusions: dp.ExclusionReport
    split: TrainTestSplit
    results: Dict[str, PredictorResult]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def best_predictor(self) -> str:
        return min(self.results.values(), key=lambda r: r.test_rmse).predictor


def make_configs(
    predictors: Iterable[str] = tune_cfg.predictors,
    seed: int = data_cfg.random_state,
    folds: int = tune_cfg.folds,
    k_values: Optional[Sequence[int]] = None,
    curve_points: int = tune_cfg.curve_points,
    n_strata: int = data_cfg.n_strata,
) -> list[PipelineConfig]:
    if k_values is None:
        k_values = range(tune_cfg.k_min, tune_cfg.k_max + 1)
    return [
        PipelineConfig(
            predictor=p,
            k_values=tuple(k_values),
            folds=folds,
            seed=seed,
            curve_points=curve_points,
            n_strata=n_strata,
        )
        for p in predictors
    ]


def _run_one(config: PipelineConfig, split: TrainTestSplit, n_bootstrap: int) -> PredictorResult:
    return PredictorEvaluator(config, n_bootstrap=n_bootstrap).run(split)


def evaluate_predictors(
    split: TrainTestSplit,
    configs: Sequence[PipelineConfig],
    n_jobs: int = 1,
    n_bootstrap: int = 500,
) -> Dict[str, PredictorResult]:
    """Evaluate every config against the same split; keyed by predictor name."""
    names = [c.predictor for c in configs]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate predictors in configs: {names}")

    logger.info("Evaluating %d predictors (n_jobs=%d)", len(configs), n_jobs)
    results = Parallel(n_jobs=n_jobs)(delayed(_run_one)(cfg, split, n_bootstrap) for cfg in configs)
    return {r.predictor: r for r in results}


def run_analysis(
    csv_path: Path | str = data_cfg.raw_csv,
    seed: int = data_cfg.random_state,
    test_size: float = data_cfg.test_size,
    n_strata: int = data_cfg.n_strata,
    predictors: Iterable[str] = tune_cfg.predictors,
    folds: int = tune_cfg.folds,
    k_values: Optional[Sequence[int]] = None,
    curve_points: int = tune_cfg.curve_points,
    n_jobs: int = 1,
    n_bootstrap: int = 500,
    matches: Optional[pd.DataFrame] = None,
) -> AnalysisResult:
    """Load (or take) matches, build the player table, split once, evaluate all predictors."""
    if matches is None:
        matches = dp.load_matches(csv_path)
        source = str(csv_path)
    else:
        source = "<in-memory>"

    summary, exclusions = dp.build_player_summary(matches)
    if not dp.rate_bounds_ok(summary):
        logger.warning("Some averaged serve rates fall outside [0, 1]; check the raw counts")

    split = make_train_test_split(summary, seed=seed, test_size=test_size, n_strata=n_strata)
    configs = make_configs(
        predictors, seed=seed, folds=folds, k_values=k_values, curve_points=curve_points, n_strata=n_strata
    )
    results = evaluate_predictors(split, configs, n_jobs=n_jobs, n_bootstrap=n_bootstrap)

    metadata = {
        "timestamp": datetime.now().isoformat(),
        "source": source,
        "random_state": seed,
        "test_size": test_size,
        "n_strata": split.n_strata,
        "folds": folds,
        "k_values": list(configs[0].k_values) if configs else [],
        "predictors": [c.predictor for c in configs],
        "n_players": len(summary),
        "splits": split.sizes(),
    }
    return AnalysisResult(summary=summary, exclusions=exclusions, split=split, results=results, metadata=metadata)


def save_json_report(result: AnalysisResult, output_path: Path) -> Path:
    """Write metadata, exclusion counts and every predictor's results to JSON."""
    report = {
        "metadata": result.metadata,
        "exclusions": result.exclusions.to_dict(),
        "predictors": {name: r.to_dict() for name, r in result.results.items()},
        "summary": {
            "best_predictor_by_test_rmse": result.best_predictor() if result.results else None,
            "test_rmse": {name: r.test_rmse for name, r in result.results.items()},
            "best_k": {name: r.best_k for name, r in result.results.items()},
        },
    }
    save_json(report, output_path)
    logger.info("Saved JSON report to %s", output_path)
    return output_path
