"""Command line entry point for the rank-vs-serve-statistics KNN analysis.

Usage:
    python -m rank_knn [--data PATH] [--random-state N] [--folds N] [--k-max N]

This script:
1. Loads the ATP match table (winner/loser columns)
2. Builds one averaged row per player
3. Splits players 75/25, stratified on rank
4. Tunes k for each single-predictor KNN regression by cross-validation
5. Refits, scores on the test set and computes a prediction curve
6. Exports results to JSON format
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import data_cfg, paths, tune_cfg
from .data_prep import save_player_summary
from .errors import RankKnnError
from .runner import run_analysis, save_json_report
from .utils import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Predict ATP rank from single player statistics with tuned KNN regression"
    )
    parser.add_argument("--data", type=Path, default=data_cfg.raw_csv, help="Path to the raw matches CSV")
    parser.add_argument("--random-state", type=int, default=data_cfg.random_state, help="Seed for split and folds (default: 42)")
    parser.add_argument("--test-size", type=float, default=data_cfg.test_size, help="Test fraction (default: 0.25)")
    parser.add_argument("--strata", type=int, default=data_cfg.n_strata, help="Rank quantile strata (default: 4)")
    parser.add_argument("--folds", type=int, default=tune_cfg.folds, help="Cross-validation folds (default: 5)")
    parser.add_argument("--k-min", type=int, default=tune_cfg.k_min, help="Smallest k to try (default: 1)")
    parser.add_argument("--k-max", type=int, default=tune_cfg.k_max, help="Largest k to try (default: 100)")
    parser.add_argument(
        "--predictors",
        nargs="+",
        default=list(tune_cfg.predictors),
        help="Player table columns to evaluate, one model each",
    )
    parser.add_argument("--curve-points", type=int, default=tune_cfg.curve_points, help="Points in each prediction curve")
    parser.add_argument("--bootstrap", type=int, default=500, help="Bootstrap resamples for test-metric CIs")
    parser.add_argument("--n-jobs", type=int, default=1, help="Parallel predictor evaluations (-1 = all cores)")
    parser.add_argument(
        "--report",
        type=Path,
        default=paths.reports / "knn_rank_report.json",
        help="Where to write the JSON report",
    )
    parser.add_argument(
        "--summary-out",
        type=Path,
        nargs="?",
        const=data_cfg.summary_csv,
        default=None,
        help="Also save the player table as CSV (default path when given without a value)",
    )
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function."""
    args = parse_args(argv)
    configure_logging(args.log_level)

    print("=" * 80)
    print("ATP RANK FROM PLAYER STATISTICS - KNN REGRESSION")
    print("=" * 80)
    print("\nConfiguration:")
    print(f"  Data: {args.data}")
    print(f"  Predictors: {', '.join(args.predictors)}")
    print(f"  k range: {args.k_min}..{args.k_max}")
    print(f"  CV folds: {args.folds}")
    print(f"  Random state: {args.random_state}")
    print()

    try:
        result = run_analysis(
            csv_path=args.data,
            seed=args.random_state,
            test_size=args.test_size,
            n_strata=args.strata,
            predictors=args.predictors,
            folds=args.folds,
            k_values=range(args.k_min, args.k_max + 1),
            curve_points=args.curve_points,
            n_jobs=args.n_jobs,
            n_bootstrap=args.bootstrap,
        )
    except RankKnnError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1

    if args.summary_out is not None:
        save_player_summary(result.summary, args.summary_out)
    save_json_report(result, args.report)

    ex = result.exclusions
    print("\n" + "=" * 80)
    print("SUMMARY")
    print("=" * 80)
    print(f"Players: {ex.players_kept} kept, {ex.players_excluded} excluded "
          f"({ex.undefined_rate_rows} rows with undefined rates, {ex.missing_attribute_rows} missing attributes)")
    print(f"Split: {result.split.sizes()['train']} train / {result.split.sizes()['test']} test")
    for name, r in result.results.items():
        ci = r.bootstrap_ci["rmse"]
        print(f"  {name:<16} k={r.best_k:<4} test RMSE={r.test_rmse:8.2f} "
              f"[{ci['ci_lower']:.2f}, {ci['ci_upper']:.2f}]")
        if r.excluded_k:
            print(f"  {'':<16} ({len(r.excluded_k)} k values excluded: larger than fold training size)")
    if result.results:
        print(f"Best predictor (test RMSE): {result.best_predictor()}")
    print(f"\nReport: {args.report}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
