"""
Vote recording.

Turns a participant's choice on a scheduled pair or quad into Comparison
records, and applies a Comparison to the two affected Item snapshots.
"""

from collections.abc import Iterable, Mapping
from dataclasses import replace

from .config import StudyConfig
from .exceptions import ValidationError
from .logging_config import get_logger
from .models import TEST_SESSION_FLAG, Comparison, Item, MatchPair, MatchQuad, RatingUpdate
from .rankers.elo import effective_k, elo_delta

logger = get_logger("voting")

TOO_FAST = "too_fast"
TOO_SLOW = "too_slow"


def flag_response_time(
    response_time_ms: int | None, config: StudyConfig, test_session: bool = False
) -> tuple[bool, str | None]:
    """Get (is_flagged, flag_reason) for a vote."""
    if test_session:
        return True, TEST_SESSION_FLAG
    if response_time_ms is None:
        return False, None
    if response_time_ms < config.min_response_time_ms:
        return True, TOO_FAST
    if response_time_ms > config.max_response_time_ms:
        return True, TOO_SLOW
    return False, None


def record_pair_vote(
    pair: MatchPair,
    winner_id: str,
    session_id: str | None = None,
    category_id: str | None = None,
    response_time_ms: int | None = None,
    config: StudyConfig | None = None,
    test_session: bool = False,
) -> Comparison:
    """
    Build the Comparison for a vote on a pair.

    Raises:
        ValidationError: If winner_id is not one of the pair
    """
    config = config or StudyConfig()
    is_flagged, flag_reason = flag_response_time(response_time_ms, config, test_session)
    if is_flagged:
        logger.info(f"Flagged pair vote in session {session_id}: {flag_reason} ({response_time_ms} ms)")

    return Comparison(
        item_a_id=pair.item_a.id,
        item_b_id=pair.item_b.id,
        winner_id=winner_id,
        left_item_id=pair.left_item_id,
        right_item_id=pair.right_item_id,
        category_id=category_id if category_id is not None else pair.item_a.category_id,
        session_id=session_id,
        response_time_ms=response_time_ms,
        is_flagged=is_flagged,
        flag_reason=flag_reason,
    )


def expand_quad_vote(
    quad: MatchQuad,
    winner_id: str,
    session_id: str | None = None,
    category_id: str | None = None,
    response_time_ms: int | None = None,
    config: StudyConfig | None = None,
    test_session: bool = False,
) -> list[Comparison]:
    """
    Expand a quad vote into three pairwise comparisons, winner vs each loser.

    Left/right of each comparison follow the quad's display positions. The
    vote's response time is stored on the first comparison only, so timing
    statistics count the vote once.

    Raises:
        ValidationError: If winner_id is not one of the quad
    """
    if winner_id not in quad.positions:
        raise ValidationError(f"winner {winner_id} is not in quad {list(quad.positions)}")

    config = config or StudyConfig()
    is_flagged, flag_reason = flag_response_time(response_time_ms, config, test_session)
    if is_flagged:
        logger.info(f"Flagged quad vote in session {session_id}: {flag_reason} ({response_time_ms} ms)")

    items_by_id = {item.id: item for item in quad.items}
    winner_pos = quad.positions.index(winner_id)
    if category_id is None:
        category_id = items_by_id[winner_id].category_id

    comparisons: list[Comparison] = []
    for loser_id in quad.positions:
        if loser_id == winner_id:
            continue
        winner_left = winner_pos < quad.positions.index(loser_id)
        comparisons.append(
            Comparison(
                item_a_id=winner_id,
                item_b_id=loser_id,
                winner_id=winner_id,
                left_item_id=winner_id if winner_left else loser_id,
                right_item_id=loser_id if winner_left else winner_id,
                category_id=category_id,
                session_id=session_id,
                response_time_ms=response_time_ms if not comparisons else None,
                is_flagged=is_flagged,
                flag_reason=flag_reason,
            )
        )
    return comparisons


def _count_update(item: Item, comparison: Comparison, won: bool) -> Item:
    return replace(
        item,
        comparison_count=item.comparison_count + 1,
        win_count=item.win_count + (1 if won else 0),
        loss_count=item.loss_count + (0 if won else 1),
        left_count=item.left_count + (1 if comparison.left_item_id == item.id else 0),
        right_count=item.right_count + (1 if comparison.right_item_id == item.id else 0),
    )


def apply_comparison(
    items_by_id: Mapping[str, Item], comparison: Comparison, config: StudyConfig | None = None
) -> RatingUpdate:
    """
    Apply one comparison to the winner and loser snapshots.

    Counts (comparisons, wins/losses, left/right) always move. The Elo
    rating and games played move too, unless the comparison is flagged and
    the study excludes flagged votes from Elo. Test-session comparisons
    leave both items untouched.

    Args:
        items_by_id: Current item snapshots
        comparison: The comparison to apply
        config: Study configuration (K policy, flagged-vote handling)

    Returns:
        RatingUpdate with the new snapshots; elo is None when the rating did not move

    Raises:
        ValidationError: If either item is missing from items_by_id
    """
    config = config or StudyConfig()
    missing = [
        item_id for item_id in (comparison.winner_id, comparison.loser_id) if item_id not in items_by_id
    ]
    if missing:
        raise ValidationError(f"Unknown item(s) in comparison: {missing}")

    winner = items_by_id[comparison.winner_id]
    loser = items_by_id[comparison.loser_id]
    if comparison.is_test_session:
        return RatingUpdate(winner=winner, loser=loser)

    new_winner = _count_update(winner, comparison, won=True)
    new_loser = _count_update(loser, comparison, won=False)

    if comparison.is_flagged and config.exclude_flagged_from_elo:
        logger.debug(f"Flagged comparison ({comparison.flag_reason}) excluded from Elo")
        return RatingUpdate(winner=new_winner, loser=new_loser)

    elo = elo_delta(winner.rating, loser.rating, effective_k(config, winner, loser))
    return RatingUpdate(
        winner=replace(new_winner, rating=elo.new_winner, games_played=winner.games_played + 1),
        loser=replace(new_loser, rating=elo.new_loser, games_played=loser.games_played + 1),
        elo=elo,
    )


def apply_comparisons(
    items_by_id: Mapping[str, Item],
    comparisons: Iterable[Comparison],
    config: StudyConfig | None = None,
) -> dict[str, Item]:
    """Apply comparisons in order; returns an updated copy of items_by_id."""
    updated = dict(items_by_id)
    for comparison in comparisons:
        update = apply_comparison(updated, comparison, config)
        updated[update.winner.id] = update.winner
        updated[update.loser.id] = update.loser
    return updated
