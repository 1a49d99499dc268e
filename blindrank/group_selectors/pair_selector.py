"""
Pair selector implementation.

Two-phase pair selection for a single session:

COVERAGE (some items unseen this session): pair two unseen items where
possible, otherwise an unseen item with the least-shown seen item, so every
item appears within ceil(N/2) pairs.

DEPTH (all items seen): score every unused pair, lower is better:
    10 * global comparison need
    + Elo difference (close ratings are more informative)
    + 50 / recency for items shown in the last 3 pairs
    + 5 * session appearances
    + 20 * times the pair was already shown

In both phases a pair is never repeated within a session and an item is not
shown three times in a row unless nothing else is left.
"""

import random
from collections.abc import Sequence
from dataclasses import dataclass
from math import comb

from typing_extensions import override

from ..interfaces import Selector
from ..logging_config import get_logger
from ..models import Comparison, Item, MatchPair
from .history import (
    get_compared_pairs,
    get_pair_exposure_counts,
    get_recent_items,
    get_session_item_counts,
    get_session_winner_ids,
    get_streak_blocked_items,
    get_unseen_items,
    pair_key,
)

logger = get_logger("pair_selector")

STREAK_LIMIT = 2
RECENT_WINDOW = 3
FULL_SEARCH_LIMIT = 100
SAMPLED_CANDIDATES = 50

UNSEEN_PAIR_BONUS = -1000.0
NEED_WEIGHT = 10.0
VARIETY_WEIGHT = 50.0
SESSION_WEIGHT = 5.0
PAIR_EXPOSURE_WEIGHT = 20.0


@dataclass
class _Candidate:
    item_a: Item
    item_b: Item
    score: float


class PairSelector(Selector):
    """Selector that returns the next MatchPair of a session."""

    matchup_size = 2

    def __init__(
        self,
        rng: random.Random | None = None,
        winners_only: bool = False,
        streak_limit: int = STREAK_LIMIT,
        recent_window: int = RECENT_WINDOW,
    ):
        """
        Initialize pair selector.

        Args:
            rng: Random source for position tie-breaks (seed it for reproducible runs)
            winners_only: Restrict candidates to items that already won in this session
            streak_limit: Consecutive appearances after which an item is held back
            recent_window: Number of recent pairs the variety penalty looks at
        """
        self.rng: random.Random = rng or random.Random()
        self.winners_only: bool = winners_only
        self.streak_limit: int = streak_limit
        self.recent_window: int = recent_window

    @override
    def select_matchup(
        self, items: Sequence[Item], session_comparisons: Sequence[Comparison]
    ) -> MatchPair | None:
        """Return the next pair, or None when fewer than 2 items or all pairs are used."""
        pool = list(items)
        if self.winners_only:
            winner_ids = get_session_winner_ids(session_comparisons)
            pool = [item for item in pool if item.id in winner_ids]

        if len(pool) < 2:
            logger.debug(f"Insufficient items for a pair ({len(pool)})")
            return None

        pool_ids = {item.id for item in pool}
        compared = {
            key for key in get_compared_pairs(session_comparisons)
            if key[0] in pool_ids and key[1] in pool_ids
        }
        if len(compared) >= comb(len(pool), 2):
            logger.debug(f"All {len(compared)} pairs already compared in this session")
            return None

        unseen = get_unseen_items(pool, session_comparisons)
        best = None
        if unseen:
            best = self._coverage_pair(pool, unseen, session_comparisons, compared)
        if best is None:
            best = self._depth_pair(pool, session_comparisons, compared)
        if best is None:
            return None

        left, right = self._assign_positions(best.item_a, best.item_b)
        logger.debug(f"Selected pair {best.item_a.id} vs {best.item_b.id} (score {best.score:.1f})")
        return MatchPair(
            item_a=best.item_a,
            item_b=best.item_b,
            left_item_id=left.id,
            right_item_id=right.id,
        )

    def _coverage_pair(
        self,
        pool: list[Item],
        unseen: list[Item],
        session_comparisons: Sequence[Comparison],
        compared: set[tuple[str, str]],
    ) -> _Candidate | None:
        # Unseen items are never streak-blocked: coverage wins over variety
        unseen_sorted = sorted(unseen, key=lambda item: item.comparison_count)

        best: _Candidate | None = None
        for i, item_a in enumerate(unseen_sorted):
            for item_b in unseen_sorted[i + 1:]:
                if pair_key(item_a.id, item_b.id) in compared:
                    continue
                score = (
                    UNSEEN_PAIR_BONUS
                    + NEED_WEIGHT * (item_a.comparison_count + item_b.comparison_count)
                    + abs(item_a.rating - item_b.rating)
                )
                if best is None or score < best.score:
                    best = _Candidate(item_a, item_b, score)
        if best is not None:
            return best

        # Odd one out: partner it with the least-shown seen item
        unseen_ids = {item.id for item in unseen}
        session_counts = get_session_item_counts(session_comparisons)
        seen_sorted = sorted(
            (item for item in pool if item.id not in unseen_ids),
            key=lambda item: session_counts[item.id],
        )
        blocked = get_streak_blocked_items(session_comparisons, self.streak_limit)

        for respect_streak in (True, False):
            for unseen_item in unseen_sorted:
                for seen_item in seen_sorted:
                    if respect_streak and seen_item.id in blocked:
                        continue
                    if pair_key(unseen_item.id, seen_item.id) in compared:
                        continue
                    score = (
                        NEED_WEIGHT * (unseen_item.comparison_count + seen_item.comparison_count)
                        + abs(unseen_item.rating - seen_item.rating)
                    )
                    if best is None or score < best.score:
                        best = _Candidate(unseen_item, seen_item, score)
                    break
            if best is not None:
                return best
        return None

    def _depth_pair(
        self,
        pool: list[Item],
        session_comparisons: Sequence[Comparison],
        compared: set[tuple[str, str]],
    ) -> _Candidate | None:
        by_need = sorted(pool, key=lambda item: item.comparison_count)
        recent = get_recent_items(session_comparisons, self.recent_window)
        session_counts = get_session_item_counts(session_comparisons)
        exposures = get_pair_exposure_counts(session_comparisons)
        blocked = get_streak_blocked_items(session_comparisons, self.streak_limit)

        # Large pools: only the most under-compared items lead a pair
        first_limit = len(by_need) if len(by_need) <= FULL_SEARCH_LIMIT else SAMPLED_CANDIDATES

        def variety(item: Item) -> float:
            recency = recent.get(item.id, 0)
            return VARIETY_WEIGHT / recency if recency > 0 else 0.0

        def search(respect_streak: bool, lead_limit: int) -> _Candidate | None:
            best: _Candidate | None = None
            for i, item_a in enumerate(by_need[:lead_limit]):
                if respect_streak and item_a.id in blocked:
                    continue
                for item_b in by_need[i + 1:]:
                    if respect_streak and item_b.id in blocked:
                        continue
                    key = pair_key(item_a.id, item_b.id)
                    if key in compared:
                        continue
                    score = (
                        NEED_WEIGHT * (item_a.comparison_count + item_b.comparison_count)
                        + abs(item_a.rating - item_b.rating)
                        + variety(item_a)
                        + variety(item_b)
                        + SESSION_WEIGHT * (session_counts[item_a.id] + session_counts[item_b.id])
                        + PAIR_EXPOSURE_WEIGHT * exposures[key]
                    )
                    if best is None or score < best.score:
                        best = _Candidate(item_a, item_b, score)
            return best

        best = search(respect_streak=True, lead_limit=first_limit)
        if best is None and first_limit < len(by_need):
            best = search(respect_streak=True, lead_limit=len(by_need))
        if best is None:
            # Every remaining pair would extend a streak
            logger.debug("Relaxing streak limit to find a remaining pair")
            best = search(respect_streak=False, lead_limit=len(by_need))
        return best

    def _assign_positions(self, item_a: Item, item_b: Item) -> tuple[Item, Item]:
        """Fewer left appearances goes left; then lower left bias; then a coin flip."""
        if item_a.left_count != item_b.left_count:
            return (item_a, item_b) if item_a.left_count < item_b.left_count else (item_b, item_a)
        if item_a.position_bias != item_b.position_bias:
            return (item_a, item_b) if item_a.position_bias < item_b.position_bias else (item_b, item_a)
        return (item_a, item_b) if self.rng.random() < 0.5 else (item_b, item_a)


def select_next_pair(
    items: Sequence[Item],
    session_comparisons: Sequence[Comparison],
    rng: random.Random | None = None,
) -> MatchPair | None:
    return PairSelector(rng=rng).select_matchup(items, session_comparisons)


def select_next_pair_winners_only(
    items: Sequence[Item],
    session_comparisons: Sequence[Comparison],
    rng: random.Random | None = None,
) -> MatchPair | None:
    """Next pair drawn only from this session's winners; None with fewer than 2 winners."""
    return PairSelector(rng=rng, winners_only=True).select_matchup(items, session_comparisons)
