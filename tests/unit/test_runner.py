"""End-to-end tests: raw matches through the JSON report and the CLI."""

import json

import pytest

from rank_knn.config import tune_cfg
from rank_knn.run_evaluation import main
from rank_knn.runner import evaluate_predictors, make_configs, run_analysis, save_json_report
from rank_knn.splits import make_train_test_split


def _run(matches, **kwargs):
    kwargs.setdefault("k_values", range(1, 11))
    kwargs.setdefault("n_bootstrap", 20)
    kwargs.setdefault("curve_points", 7)
    return run_analysis(matches=matches, seed=42, **kwargs)


def test_all_four_predictors_evaluated(matches_frame):
    result = _run(matches_frame)
    assert list(result.results) == list(tune_cfg.predictors)
    for r in result.results.values():
        assert 1 <= r.best_k <= 10
        assert r.test_rmse >= 0
        assert len(r.curve) == 7
    assert result.metadata["n_players"] == len(result.summary)
    assert result.best_predictor() in tune_cfg.predictors


def test_repeat_runs_match(matches_frame):
    a = _run(matches_frame)
    b = _run(matches_frame)
    assert {n: r.test_rmse for n, r in a.results.items()} == {n: r.test_rmse for n, r in b.results.items()}
    assert {n: r.best_k for n, r in a.results.items()} == {n: r.best_k for n, r in b.results.items()}


def test_parallel_matches_sequential(matches_frame):
    seq = _run(matches_frame, n_jobs=1)
    par = _run(matches_frame, n_jobs=2)
    for name in seq.results:
        assert par.results[name].test_rmse == seq.results[name].test_rmse
        assert par.results[name].cv_errors == seq.results[name].cv_errors


def test_duplicate_predictors_rejected(summary_frame):
    split = make_train_test_split(summary_frame, seed=0)
    with pytest.raises(ValueError):
        evaluate_predictors(split, make_configs(["x", "x"], k_values=[1, 2]))


def test_json_report(tmp_path, matches_frame):
    result = _run(matches_frame, predictors=["age", "height"])
    path = save_json_report(result, tmp_path / "reports" / "report.json")
    report = json.loads(path.read_text())
    assert set(report) == {"metadata", "exclusions", "predictors", "summary"}
    assert set(report["predictors"]) == {"age", "height"}
    assert report["predictors"]["age"]["best_k"] == result.results["age"].best_k
    assert report["exclusions"]["players_kept"] == len(result.summary)


def test_cli(tmp_path, matches_frame):
    data = tmp_path / "matches.csv"
    matches_frame.to_csv(data, index=False)
    report = tmp_path / "out.json"
    summary = tmp_path / "players.csv"
    code = main([
        "--data", str(data),
        "--k-max", "8",
        "--bootstrap", "10",
        "--report", str(report),
        "--summary-out", str(summary),
        "--log-level", "WARNING",
    ])
    assert code == 0
    assert report.exists()
    assert summary.exists()


def test_cli_bad_input_exits_nonzero(tmp_path):
    assert main(["--data", str(tmp_path / "missing.csv"), "--report", str(tmp_path / "r.json")]) == 1
