"""Shared synthetic data for the unit tests."""

import numpy as np
import pandas as pd
import pytest


def make_match(winner="A", loser="B", **overrides):
    """One raw match row; every count is easy to divide by 100 serve points."""
    row = {
        "winner_name": winner,
        "winner_rank": 10.0,
        "winner_age": 25.0,
        "winner_ht": 185.0,
        "w_ace": 10,
        "w_svpt": 100,
        "w_df": 4,
        "w_1stIn": 60,
        "w_1stWon": 45,
        "w_2ndWon": 20,
        "loser_name": loser,
        "loser_rank": 50.0,
        "loser_age": 30.0,
        "loser_ht": 180.0,
        "l_ace": 5,
        "l_svpt": 80,
        "l_df": 8,
        "l_1stIn": 48,
        "l_1stWon": 30,
        "l_2ndWon": 12,
    }
    row.update(overrides)
    return row


def synthetic_matches(n_players=40, n_matches=300, seed=0):
    """Random matches between players whose serve numbers loosely track their rank."""
    rng = np.random.default_rng(seed)
    players = pd.DataFrame({
        "name": [f"Player {i:02d}" for i in range(n_players)],
        "rank": np.arange(1, n_players + 1) * 5.0,
        "age": rng.uniform(19, 35, n_players).round(1),
        "height": rng.normal(186, 7, n_players).round(),
    })
    players["ace_p"] = np.clip(0.14 - players["rank"] / 2500 + rng.normal(0, 0.01, n_players), 0.01, 0.3)

    rows = []
    for _ in range(n_matches):
        w, l = rng.choice(n_players, size=2, replace=False)
        sides = {}
        for prefix, short, idx in (("winner", "w", w), ("loser", "l", l)):
            p = players.iloc[idx]
            svpt = int(rng.integers(50, 110))
            first_in = int(svpt * rng.uniform(0.55, 0.68))
            sides.update({
                f"{prefix}_name": p["name"],
                f"{prefix}_rank": p["rank"],
                f"{prefix}_age": p["age"],
                f"{prefix}_ht": p["height"],
                f"{short}_ace": int(rng.binomial(svpt, p["ace_p"])),
                f"{short}_svpt": svpt,
                f"{short}_df": int(rng.binomial(svpt, 0.04)),
                f"{short}_1stIn": first_in,
                f"{short}_1stWon": int(first_in * rng.uniform(0.65, 0.8)),
                f"{short}_2ndWon": int((svpt - first_in) * rng.uniform(0.45, 0.55)),
            })
        rows.append(sides)
    return pd.DataFrame(rows)


def synthetic_summary(n_players=40, seed=0):
    """A player table where 'x' tracks rank with noise."""
    rng = np.random.default_rng(seed)
    rank = np.arange(1, n_players + 1) * 10.0
    return pd.DataFrame({
        "name": [f"P{i}" for i in range(n_players)],
        "rank": rank,
        "x": rank / 10.0 + rng.normal(0, 2, n_players),
        "age": rng.uniform(19, 35, n_players),
    })


@pytest.fixture
def matches_frame():
    return synthetic_matches()


@pytest.fixture
def summary_frame():
    return synthetic_summary()


@pytest.fixture
def match_row():
    return make_match
