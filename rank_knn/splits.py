"""Rank-stratified train/test split and CV folds.

Rank is continuous, so it is binned into quantile strata before stratified
sampling. Quartiles are the default; when a stratum would be too small to
place at least ``min_count`` players in it, fewer bins are used.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold, train_test_split

from .errors import InsufficientDataError

logger = logging.getLogger(__name__)

TARGET = "rank"


@dataclass(frozen=True)
class TrainTestSplit:
    train: pd.DataFrame
    test: pd.DataFrame
    seed: int
    test_size: float
    n_strata: int

    def sizes(self) -> dict:
        return {"train": len(self.train), "test": len(self.test)}


def rank_strata(ranks, n_strata: int = 4, min_count: int = 2) -> np.ndarray:
    """Quantile bin labels (0..n-1) for each rank value."""
    ranks = pd.Series(np.asarray(ranks, dtype=float))
    if len(ranks) == 0:
        return np.zeros(0, dtype=int)

    for n in range(max(1, n_strata), 1, -1):
        labels = pd.qcut(ranks.rank(method="first"), q=n, labels=False, duplicates="drop")
        counts = labels.value_counts()
        if counts.min() >= min_count:
            if n != n_strata:
                logger.debug("Using %d rank strata instead of %d (min stratum size %d)", n, n_strata, min_count)
            return labels.to_numpy(dtype=int)
    return np.zeros(len(ranks), dtype=int)


def make_train_test_split(
    summary: pd.DataFrame,
    seed: int,
    test_size: float = 0.25,
    n_strata: int = 4,
) -> TrainTestSplit:
    """Split the player table into train/test, stratified on rank."""
    if len(summary) < 4:
        raise InsufficientDataError(f"Need at least 4 players to split, got {len(summary)}")

    # every stratum needs a seat on both sides of the split
    n_test = math.ceil(test_size * len(summary))
    max_strata = max(1, min(n_strata, n_test, len(summary) - n_test))
    strata = rank_strata(summary[TARGET], n_strata=max_strata, min_count=2)
    train, test = train_test_split(
        summary,
        test_size=test_size,
        random_state=seed,
        stratify=strata,
    )
    split = TrainTestSplit(
        train=train.reset_index(drop=True),
        test=test.reset_index(drop=True),
        seed=seed,
        test_size=test_size,
        n_strata=int(strata.max()) + 1,
    )
    logger.info("Train/test split (seed=%d): %d train, %d test players", seed, len(train), len(test))
    return split


def stratified_folds(
    frame: pd.DataFrame,
    folds: int,
    seed: int,
    n_strata: int = 4,
) -> List[Tuple[np.ndarray, np.ndarray]]:
    """Deterministic (train_idx, val_idx) pairs over ``frame``'s rows."""
    if len(frame) < folds:
        raise InsufficientDataError(f"Cannot make {folds} folds from {len(frame)} rows")

    strata = rank_strata(frame[TARGET], n_strata=n_strata, min_count=folds)
    cv = StratifiedKFold(n_splits=folds, shuffle=True, random_state=seed)
    return [(train_idx, val_idx) for train_idx, val_idx in cv.split(np.zeros(len(frame)), strata)]
