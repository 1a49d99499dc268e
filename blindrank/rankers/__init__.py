"""
Ranker implementations.

Provides implementations of the Ranker interface for turning comparison
history into an ordered ranking.

Available implementations:
- EloRanker: Incremental Elo ratings with artist-rank boost and tie-breaks
- BradleyTerryRanker: Batch Bradley-Terry MLE (MM algorithm) with Fisher
  standard errors, reported on the Elo scale
"""

from .bradley_terry import BradleyTerryRanker, estimate_bradley_terry
from .elo import EloRanker, elo_delta, expected_score

__all__ = [
    "BradleyTerryRanker",
    "EloRanker",
    "elo_delta",
    "estimate_bradley_terry",
    "expected_score",
]
