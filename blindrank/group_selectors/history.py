"""
Session-history helpers shared by the selectors and the scheduler.

All functions read a single session's comparisons in vote order (oldest
first) and never modify them.
"""

from collections import Counter
from collections.abc import Iterable, Sequence

from ..models import Comparison, Item

PairKey = tuple[str, str]


def pair_key(item_a_id: str, item_b_id: str) -> PairKey:
    """Order-independent key of an unordered pair."""
    if item_a_id <= item_b_id:
        return item_a_id, item_b_id
    return item_b_id, item_a_id


def get_seen_item_ids(session_comparisons: Iterable[Comparison]) -> set[str]:
    seen: set[str] = set()
    for comp in session_comparisons:
        seen.add(comp.item_a_id)
        seen.add(comp.item_b_id)
    return seen


def get_unseen_items(items: Sequence[Item], session_comparisons: Iterable[Comparison]) -> list[Item]:
    seen = get_seen_item_ids(session_comparisons)
    return [item for item in items if item.id not in seen]


def has_full_coverage(items: Sequence[Item], session_comparisons: Iterable[Comparison]) -> bool:
    """True when every item appeared in at least one comparison (vacuously true for no items)."""
    seen = get_seen_item_ids(session_comparisons)
    return all(item.id in seen for item in items)


def get_compared_pairs(session_comparisons: Iterable[Comparison]) -> set[PairKey]:
    return {comp.pair_key for comp in session_comparisons}


def get_pair_exposure_counts(comparisons: Iterable[Comparison]) -> Counter[PairKey]:
    return Counter(comp.pair_key for comp in comparisons)


def get_session_item_counts(session_comparisons: Iterable[Comparison]) -> Counter[str]:
    """How many comparisons each item took part in during the session."""
    counts: Counter[str] = Counter()
    for comp in session_comparisons:
        counts[comp.item_a_id] += 1
        counts[comp.item_b_id] += 1
    return counts


def get_session_winner_ids(session_comparisons: Iterable[Comparison]) -> set[str]:
    """Ids of items that won at least one comparison in the session."""
    return {comp.winner_id for comp in session_comparisons}


def get_streak_blocked_items(session_comparisons: Sequence[Comparison], streak_limit: int = 2) -> set[str]:
    """
    Items that appeared in each of the last streak_limit comparisons.

    Such an item would otherwise be shown streak_limit + 1 times in a row.
    """
    if streak_limit <= 0 or len(session_comparisons) < streak_limit:
        return set()

    appearances = get_session_item_counts(session_comparisons[-streak_limit:])
    return {item_id for item_id, count in appearances.items() if count >= streak_limit}


def get_recent_items(session_comparisons: Sequence[Comparison], window: int = 3) -> dict[str, int]:
    """item_id -> recency (1 = most recent comparison) over the last window comparisons."""
    recent: dict[str, int] = {}
    if window <= 0:
        return recent
    for recency, comp in enumerate(reversed(session_comparisons[-window:]), 1):
        recent.setdefault(comp.item_a_id, recency)
        recent.setdefault(comp.item_b_id, recency)
    return recent


def split_quad_votes(session_comparisons: Sequence[Comparison]) -> tuple[list[frozenset[str]], int]:
    """
    Reconstruct quad votes from a session's comparisons.

    A quad vote is stored as three consecutive comparisons of one session
    that share the winner and cover four distinct items; only the first
    carries the response time. Anything else is a pair vote (for example
    from before the study switched to quad mode). Untimed histories that
    mix modes can still read a pair vote followed by a quad with the same
    winner as one quad.

    Returns:
        (4-item sets in vote order, number of remaining pair comparisons)
    """
    quads: list[frozenset[str]] = []
    pair_votes = 0
    index = 0
    while index < len(session_comparisons):
        run = session_comparisons[index:index + 3]
        if len(run) == 3 and _is_quad_run(run):
            quads.append(frozenset({run[0].winner_id} | {comp.loser_id for comp in run}))
            index += 3
            continue
        pair_votes += 1
        index += 1
    return quads, pair_votes


def _is_quad_run(run: Sequence[Comparison]) -> bool:
    first = run[0]
    members = {first.winner_id} | {comp.loser_id for comp in run}
    return (
        len(members) == 4
        and all(comp.winner_id == first.winner_id and comp.session_id == first.session_id for comp in run)
        and all(comp.response_time_ms is None for comp in run[1:])
    )


def get_session_quads(session_comparisons: Sequence[Comparison]) -> set[frozenset[str]]:
    """The distinct 4-item sets already shown in the session."""
    quads, _ = split_quad_votes(session_comparisons)
    return set(quads)
