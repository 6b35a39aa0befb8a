from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    """Filesystem layout.

    Raw match data lives under ./data/raw, run outputs under ./outputs.
    """

    project_root: Path = Path(__file__).resolve().parent.parent

    data_raw: Path = project_root / "data" / "raw"
    data_processed: Path = project_root / "data" / "processed"
    outputs: Path = project_root / "outputs"
    reports: Path = outputs / "reports"


@dataclass(frozen=True)
class DataConfig:
    raw_csv: Path = Paths().data_raw / "atp_matches.csv"
    summary_csv: Path = Paths().data_processed / "player_summary.csv"
    random_state: int = 42
    test_size: float = 0.25
    n_strata: int = 4  # rank quartiles


@dataclass(frozen=True)
class TuneConfig:
    folds: int = 5
    k_min: int = 1
    k_max: int = 100
    curve_points: int = 101
    predictors: tuple[str, ...] = ("ace_rate", "age", "height", "first_won_rate")


@dataclass(frozen=True)
class PipelineConfig:
    """Everything one predictor evaluation needs; shared by nothing else."""

    predictor: str
    k_values: tuple[int, ...] = field(default_factory=lambda: tuple(range(TuneConfig.k_min, TuneConfig.k_max + 1)))
    folds: int = TuneConfig.folds
    seed: int = DataConfig.random_state
    curve_points: int = TuneConfig.curve_points
    n_strata: int = DataConfig.n_strata

    def __post_init__(self) -> None:
        # Accept any iterable of ints but store an ordered, de-duplicated tuple.
        object.__setattr__(self, "k_values", tuple(sorted({int(k) for k in self.k_values})))
        if self.folds < 2:
            raise ValueError(f"folds must be >= 2, got {self.folds}")


paths = Paths()
data_cfg = DataConfig()
tune_cfg = TuneConfig()
