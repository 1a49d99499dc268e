"""
Quadruplet selector implementation.

Picks four items per vote. The winner of a quad beats the other three, so
one vote yields three pairwise results. Items are scored individually
(lower is better) and the best four are taken:

    -1000 if unseen in this session
    + 5 * global comparison count
    + 20 * session appearances
    + 100 if shown in the last 2 comparisons

The fourth slot is swapped for an item at least 50 Elo away from the other
three when the natural pick is too close to them. A 4-set already shown
in the session is replaced by the best-scored unused one; once every set
has been shown the best-scored set is repeated. Display positions are
shuffled.
"""

import random
from collections.abc import Sequence
from itertools import combinations

from typing_extensions import override

from ..interfaces import Selector
from ..logging_config import get_logger
from ..models import Comparison, Item, MatchQuad
from .history import (
    get_seen_item_ids,
    get_session_item_counts,
    get_session_quads,
    get_session_winner_ids,
)

logger = get_logger("quad_selector")

QUAD_SIZE = 4
RECENT_WINDOW = 2
ELO_DIVERSITY = 50.0

UNSEEN_BONUS = -1000.0
GLOBAL_WEIGHT = 5.0
SESSION_WEIGHT = 20.0
RECENT_PENALTY = 100.0


class QuadSelector(Selector):
    """Selector that returns the next MatchQuad of a session."""

    matchup_size = QUAD_SIZE

    def __init__(self, rng: random.Random | None = None, winners_only: bool = False):
        self.rng: random.Random = rng or random.Random()
        self.winners_only: bool = winners_only

    def _score_items(self, items: list[Item], session_comparisons: Sequence[Comparison]) -> list[Item]:
        seen = get_seen_item_ids(session_comparisons)
        session_counts = get_session_item_counts(session_comparisons)
        recent: set[str] = set()
        for comp in session_comparisons[-RECENT_WINDOW:]:
            recent.add(comp.item_a_id)
            recent.add(comp.item_b_id)

        def score(item: Item) -> float:
            value = 0.0
            if item.id not in seen:
                value += UNSEEN_BONUS
            value += GLOBAL_WEIGHT * item.comparison_count
            value += SESSION_WEIGHT * session_counts[item.id]
            if item.id in recent:
                value += RECENT_PENALTY
            return value

        return sorted(items, key=score)

    def _pick_four(self, ranked: list[Item]) -> list[Item]:
        selected: list[Item] = []
        for index, item in enumerate(ranked):
            if len(selected) >= QUAD_SIZE:
                break
            if item in selected:
                continue

            if len(selected) == QUAD_SIZE - 1:
                avg_rating = sum(chosen.rating for chosen in selected) / len(selected)
                if abs(item.rating - avg_rating) < ELO_DIVERSITY:
                    diverse = next(
                        (
                            other for other in ranked[index + 1:]
                            if other not in selected and abs(other.rating - avg_rating) >= ELO_DIVERSITY
                        ),
                        None,
                    )
                    if diverse is not None:
                        selected.append(diverse)
                        continue

            selected.append(item)
        return selected

    @override
    def select_matchup(
        self, items: Sequence[Item], session_comparisons: Sequence[Comparison]
    ) -> MatchQuad | None:
        """Return the next quad, or None when fewer than 4 items are eligible."""
        pool = list(items)
        if self.winners_only:
            winner_ids = get_session_winner_ids(session_comparisons)
            pool = [item for item in pool if item.id in winner_ids]

        if len(pool) < QUAD_SIZE:
            logger.debug(f"Insufficient items for a quad ({len(pool)})")
            return None

        ranked = self._score_items(pool, session_comparisons)
        selected = self._pick_four(ranked)

        used = get_session_quads(session_comparisons)
        if frozenset(item.id for item in selected) in used:
            # Same four as an earlier vote: take the best-scored unused set
            unused = next(
                (
                    list(candidate) for candidate in combinations(ranked, QUAD_SIZE)
                    if frozenset(item.id for item in candidate) not in used
                ),
                None,
            )
            if unused is not None:
                selected = unused
            elif self.winners_only:
                logger.debug(f"All {len(used)} winner quads already shown in this session")
                return None
            else:
                # Small categories have fewer 4-sets than a session needs
                logger.debug(f"All {len(used)} quads already shown, repeating the best-scored set")

        positions = [item.id for item in selected]
        self.rng.shuffle(positions)
        logger.debug(f"Selected quad {positions}")
        return MatchQuad(items=tuple(selected), positions=tuple(positions))


def select_next_quad(
    items: Sequence[Item],
    session_comparisons: Sequence[Comparison],
    rng: random.Random | None = None,
) -> MatchQuad | None:
    return QuadSelector(rng=rng).select_matchup(items, session_comparisons)


def select_next_quad_winners_only(
    items: Sequence[Item],
    session_comparisons: Sequence[Comparison],
    rng: random.Random | None = None,
) -> MatchQuad | None:
    """Next quad drawn only from this session's winners; None with fewer than 4 winners or no unused set."""
    return QuadSelector(rng=rng, winners_only=True).select_matchup(items, session_comparisons)
