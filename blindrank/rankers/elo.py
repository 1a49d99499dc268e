"""
Elo rating math and the Elo ranker.

Pure functions for expected score, rating deltas, the adaptive K-factor and
the artist-rank boost, plus EloRanker which orders item snapshots by rating.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import replace
from functools import cmp_to_key

from typing_extensions import override

from ..config import StudyConfig
from ..diagnostics.publishability import calculate_elo_std_error
from ..interfaces import Ranker
from ..logging_config import get_logger
from ..models import Comparison, EloResult, Item, RankedItem

logger = get_logger("elo")

DEFAULT_RATING = 1500.0
DEFAULT_K_FACTOR = 32.0
ARTIST_BOOST_PER_RANK = 20
MAX_ARTIST_RANK = 10


def expected_score(rating_a: float, rating_b: float) -> float:
    """Calculate the probability that A beats B.

    Uses the standard Elo formula: E_A = 1 / (1 + 10^((R_B - R_A) / 400))

    Args:
        rating_a: Elo rating of item A
        rating_b: Elo rating of item B

    Returns:
        Expected score (0.0 to 1.0) for item A
    """
    return 1.0 / (1.0 + math.pow(10.0, (rating_b - rating_a) / 400.0))


def elo_delta(winner_rating: float, loser_rating: float, k: float = DEFAULT_K_FACTOR) -> EloResult:
    """Calculate rating changes after the winner beat the loser.

    The loser's expectation is taken as the complement of the winner's, so
    the two deltas cancel exactly.

    Args:
        winner_rating: Current rating of the winner
        loser_rating: Current rating of the loser
        k: K-factor (default 32)

    Returns:
        EloResult with both deltas and both new ratings
    """
    expected_winner = expected_score(winner_rating, loser_rating)
    expected_loser = 1.0 - expected_winner

    winner_delta = k * (1.0 - expected_winner)
    loser_delta = -k * expected_loser

    return EloResult(
        winner_delta=winner_delta,
        loser_delta=loser_delta,
        new_winner=winner_rating + winner_delta,
        new_loser=loser_rating + loser_delta,
    )


def adaptive_k(base_k: float, winner_games: int, loser_games: int) -> float:
    """K-factor that shrinks towards base_k as the less-played item gains games.

    k' = base_k * max(1, base_k / g) with g = max(1, min(winner_games, loser_games))
    """
    games = max(1, min(winner_games, loser_games))
    return base_k * max(1.0, base_k / games)


def effective_k(config: StudyConfig, winner: Item, loser: Item) -> float:
    """K-factor the study applies to a comparison between winner and loser."""
    if config.adaptive_k_factor:
        return adaptive_k(config.k_factor, winner.games_played, loser.games_played)
    return config.k_factor


def artist_boost(artist_rank: int | None) -> int:
    """Initial rating boost from an artist ranking (1 = best, 10 = worst).

    Rank 1 gives +200, rank 10 gives +20; anything else gives 0.
    """
    if artist_rank is None or artist_rank < 1 or artist_rank > MAX_ARTIST_RANK:
        return 0
    return (MAX_ARTIST_RANK + 1 - artist_rank) * ARTIST_BOOST_PER_RANK


def points_to_rank(points: int) -> int:
    """Convert spreadsheet points (10 = best) to an artist rank (1 = best); 0 if invalid."""
    if points < 1 or points > MAX_ARTIST_RANK:
        return 0
    return MAX_ARTIST_RANK + 1 - points


def initial_rating(artist_rank: int | None = None, base: float = DEFAULT_RATING) -> float:
    """Rating an item starts from before any comparison."""
    return base + artist_boost(artist_rank)


def confidence_level(comparison_count: int) -> str:
    """Bucket a comparison count into low / medium / high confidence."""
    if comparison_count < 5:
        return "low"
    if comparison_count < 15:
        return "medium"
    return "high"


def compare_for_ranking(a: Item, b: Item) -> int:
    """
    Compare two items for ranking; negative when a ranks higher.

    Order: rating (higher first), artist rank (lower first, ranked items
    before unranked ones), comparison count (higher first), win rate
    (higher first).
    """
    if a.rating != b.rating:
        return -1 if a.rating > b.rating else 1

    if a.artist_rank is not None and b.artist_rank is not None:
        if a.artist_rank != b.artist_rank:
            return -1 if a.artist_rank < b.artist_rank else 1
    elif a.artist_rank is not None:
        return -1
    elif b.artist_rank is not None:
        return 1

    if a.comparison_count != b.comparison_count:
        return -1 if a.comparison_count > b.comparison_count else 1

    if a.win_rate != b.win_rate:
        return -1 if a.win_rate > b.win_rate else 1
    return 0


rank_key = cmp_to_key(compare_for_ranking)


def replay_elo(
    items: Iterable[Item],
    comparisons: Iterable[Comparison],
    config: StudyConfig | None = None,
) -> dict[str, float]:
    """
    Recompute Elo ratings from scratch by replaying comparison history.

    Every item restarts at its initial rating (1500 plus artist boost) and
    the non-test comparisons are applied in order with the study's K policy.

    Returns:
        item_id -> replayed rating
    """
    config = config or StudyConfig()
    ratings: dict[str, float] = {}
    games: dict[str, int] = {}
    for item in items:
        ratings[item.id] = DEFAULT_RATING + (item.artist_boost or artist_boost(item.artist_rank))
        games[item.id] = 0

    applied = 0
    for comp in comparisons:
        if comp.is_test_session:
            continue
        if comp.is_flagged and config.exclude_flagged_from_elo:
            continue
        winner_id, loser_id = comp.winner_id, comp.loser_id
        winner_rating = ratings.setdefault(winner_id, DEFAULT_RATING)
        loser_rating = ratings.setdefault(loser_id, DEFAULT_RATING)
        if config.adaptive_k_factor:
            k = adaptive_k(config.k_factor, games.get(winner_id, 0), games.get(loser_id, 0))
        else:
            k = config.k_factor
        result = elo_delta(winner_rating, loser_rating, k)
        ratings[winner_id] = result.new_winner
        ratings[loser_id] = result.new_loser
        games[winner_id] = games.get(winner_id, 0) + 1
        games[loser_id] = games.get(loser_id, 0) + 1
        applied += 1

    logger.debug(f"Replayed {applied} comparisons over {len(ratings)} items")
    return ratings


class EloRanker(Ranker):
    """
    Elo-based ranker.

    By default trusts the live ratings carried by the item snapshots. With
    replay=True it recomputes them from the comparison history first, which
    makes the ranking independent of how the host applied updates.
    """

    name = "elo"

    def __init__(self, config: StudyConfig | None = None, replay: bool = False):
        """
        Initialize Elo ranker.

        Args:
            config: Study configuration (K policy used when replaying)
            replay: Recompute ratings from history instead of using snapshots
        """
        self.config: StudyConfig = config or StudyConfig()
        self.replay: bool = replay

    @override
    def rank(self, items: Sequence[Item], comparisons: Sequence[Comparison]) -> list[RankedItem]:
        """Rank items by rating with the artist-rank/count/win-rate tie-breaks."""
        ranked_items = list(items)
        if self.replay:
            ratings = replay_elo(ranked_items, comparisons, self.config)
            ranked_items = [
                replace(item, rating=ratings.get(item.id, item.rating)) for item in ranked_items
            ]

        ranked_items.sort(key=rank_key)
        return [
            RankedItem(
                rank=position,
                item_id=item.id,
                score=item.rating,
                std_error=calculate_elo_std_error(item.comparison_count),
                comparison_count=item.comparison_count,
                win_rate=item.win_rate,
                confidence=confidence_level(item.comparison_count),
            )
            for position, item in enumerate(ranked_items, 1)
        ]
