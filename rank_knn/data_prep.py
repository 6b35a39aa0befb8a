"""Per-player dataset preparation from ATP match results.

The raw table has one row per match with the winner's and the loser's numbers
side by side. This module:
- loads and validates the raw CSV
- splits every match into two player rows with one shared schema
- turns serve counts into rates (count / serve points of that match)
- drops rows with an undefined rate or missing rank/age/height
- averages what is left into one row per player name
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

import numpy as np
import pandas as pd

from .errors import MalformedInputError

logger = logging.getLogger(__name__)

WINNER_COLUMNS = {
    "winner_name": "name",
    "winner_rank": "rank",
    "winner_age": "age",
    "winner_ht": "height",
    "w_ace": "ace",
    "w_svpt": "svpt",
    "w_df": "df",
    "w_1stIn": "first_in",
    "w_1stWon": "first_won",
    "w_2ndWon": "second_won",
}
LOSER_COLUMNS = {
    "loser_name": "name",
    "loser_rank": "rank",
    "loser_age": "age",
    "loser_ht": "height",
    "l_ace": "ace",
    "l_svpt": "svpt",
    "l_df": "df",
    "l_1stIn": "first_in",
    "l_1stWon": "first_won",
    "l_2ndWon": "second_won",
}
REQUIRED_COLUMNS = list(WINNER_COLUMNS) + list(LOSER_COLUMNS)
NAME_COLUMNS = ["winner_name", "loser_name"]
NUMERIC_COLUMNS = [c for c in REQUIRED_COLUMNS if c not in NAME_COLUMNS]

# count column -> rate column
RATE_COLUMNS = {
    "ace": "ace_rate",
    "df": "df_rate",
    "first_in": "first_in_rate",
    "first_won": "first_won_rate",
    "second_won": "second_won_rate",
}
ATTRIBUTE_COLUMNS = ["rank", "age", "height"]
SUMMARY_VALUE_COLUMNS = ATTRIBUTE_COLUMNS + list(RATE_COLUMNS.values())
SUMMARY_COLUMNS = ["name"] + SUMMARY_VALUE_COLUMNS + ["n_matches"]

MatchInput = Union[pd.DataFrame, Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class ExclusionReport:
    """How much of the input the cleaning policy threw away."""

    matches: int = 0
    player_rows: int = 0
    undefined_rate_rows: int = 0
    missing_attribute_rows: int = 0
    valid_rows: int = 0
    players_seen: int = 0
    players_kept: int = 0

    @property
    def players_excluded(self) -> int:
        return self.players_seen - self.players_kept

    def to_dict(self) -> Dict[str, int]:
        out = asdict(self)
        out["players_excluded"] = self.players_excluded
        return out


def _check_columns(df: pd.DataFrame) -> None:
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise MalformedInputError(f"Match table is missing required columns: {', '.join(missing)}")


def _coerce_numeric(df: pd.DataFrame) -> pd.DataFrame:
    """Convert numeric columns, failing on anything that is present but not a number."""
    df = df.copy()
    for col in NUMERIC_COLUMNS:
        converted = pd.to_numeric(df[col], errors="coerce")
        bad = converted.isna() & df[col].notna()
        if bad.any():
            sample = df.loc[bad, col].astype(str).head(3).tolist()
            raise MalformedInputError(f"Column {col!r} has non-numeric values, e.g. {sample}")
        df[col] = converted.astype(float)
    return df


def load_matches(csv_path: Path | str) -> pd.DataFrame:
    """Read the raw match CSV once and validate its schema."""
    csv_path = Path(csv_path)
    try:
        df = pd.read_csv(csv_path, low_memory=False)
    except FileNotFoundError as exc:
        raise MalformedInputError(f"Match file not found: {csv_path}") from exc
    except pd.errors.EmptyDataError as exc:
        raise MalformedInputError(f"Match file is empty: {csv_path}") from exc
    except pd.errors.ParserError as exc:
        raise MalformedInputError(f"Could not parse {csv_path}: {exc}") from exc

    _check_columns(df)
    if df.empty:
        raise MalformedInputError(f"Match file has a header but no rows: {csv_path}")

    df = _coerce_numeric(df)
    logger.info("Loaded %d matches from %s", len(df), csv_path)
    return df


def split_player_rows(matches: pd.DataFrame) -> pd.DataFrame:
    """One row per player per match; winner rows first, then loser rows."""
    winners = matches[list(WINNER_COLUMNS)].rename(columns=WINNER_COLUMNS)
    losers = matches[list(LOSER_COLUMNS)].rename(columns=LOSER_COLUMNS)
    return pd.concat([winners, losers], ignore_index=True)


def add_rate_columns(rows: pd.DataFrame) -> pd.DataFrame:
    """Divide each serve count by the row's serve points.

    Zero (or missing) serve points leaves the rate undefined (NaN) rather than inf.
    """
    rows = rows.copy()
    svpt = rows["svpt"].where(rows["svpt"] > 0)
    for count_col, rate_col in RATE_COLUMNS.items():
        rows[rate_col] = rows[count_col] / svpt
    return rows


def _empty_summary() -> pd.DataFrame:
    summary = pd.DataFrame({col: pd.Series(dtype=float) for col in SUMMARY_COLUMNS})
    summary["name"] = summary["name"].astype(object)
    summary["n_matches"] = summary["n_matches"].astype(int)
    return summary


def build_player_summary(matches: MatchInput) -> Tuple[pd.DataFrame, ExclusionReport]:
    """Return (player summary table, exclusion counts) for a set of matches."""
    if not isinstance(matches, pd.DataFrame):
        matches = pd.DataFrame.from_records(list(matches))
    if matches.empty:
        logger.info("No matches given; player summary is empty")
        return _empty_summary(), ExclusionReport()

    _check_columns(matches)
    matches = _coerce_numeric(matches)

    rows = add_rate_columns(split_player_rows(matches))
    rows["name"] = rows["name"].where(rows["name"].isna(), rows["name"].astype(str))

    undefined_rate = rows[list(RATE_COLUMNS.values())].isna().any(axis=1)
    missing_attr = rows[["name"] + ATTRIBUTE_COLUMNS].isna().any(axis=1)
    valid = rows.loc[~(undefined_rate | missing_attr)]

    if valid.empty:
        summary = _empty_summary()
    else:
        grouped = valid.groupby("name", sort=True)
        summary = grouped[SUMMARY_VALUE_COLUMNS].mean()
        summary["n_matches"] = grouped.size().astype(int)
        summary = summary.reset_index()[SUMMARY_COLUMNS]

    report = ExclusionReport(
        matches=len(matches),
        player_rows=len(rows),
        undefined_rate_rows=int(undefined_rate.sum()),
        missing_attribute_rows=int((missing_attr & ~undefined_rate).sum()),
        valid_rows=len(valid),
        players_seen=int(rows["name"].dropna().nunique()),
        players_kept=len(summary),
    )
    logger.info(
        "Player rows: %d valid of %d (%d undefined rate, %d missing attributes); %d players kept, %d excluded",
        report.valid_rows,
        report.player_rows,
        report.undefined_rate_rows,
        report.missing_attribute_rows,
        report.players_kept,
        report.players_excluded,
    )
    return summary, report


def save_player_summary(summary: pd.DataFrame, output_path: Path | str) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    summary.to_csv(output_path, index=False)
    logger.info("Saved %d player rows to %s", len(summary), output_path)
    return output_path


def rate_bounds_ok(summary: pd.DataFrame) -> bool:
    """True when every averaged rate lies in [0, 1]."""
    rates = summary[list(RATE_COLUMNS.values())].to_numpy(dtype=float)
    return bool(np.all((rates >= 0) & (rates <= 1)))
