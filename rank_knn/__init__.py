"""KNN rank predictor package.

This package contains:
- Data preparation (ATP winner/loser match table -> one row per player)
- Rank-stratified train/test splitting and CV folds
- Single-predictor KNN regression tuning and evaluation
- Regression metrics + a JSON report for each analysis run
"""
