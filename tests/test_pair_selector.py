"""
Tests for PairSelector implementation.

Focus on coverage-first selection, no repeats, streak limits and
position balancing.
"""

import random
from math import ceil

import pytest

from blindrank.group_selectors.pair_selector import (
    PairSelector,
    select_next_pair,
    select_next_pair_winners_only,
)
from blindrank.models import Comparison, Item


def make_items(ids: str, **fields) -> list[Item]:
    return [Item(id=item_id, **fields) for item_id in ids]


def beats(winner: str, loser: str) -> Comparison:
    return Comparison(item_a_id=winner, item_b_id=loser, winner_id=winner)


def play(selector: PairSelector, items: list[Item], rounds: int) -> list[Comparison]:
    """Run rounds of selection where item_a always wins."""
    session: list[Comparison] = []
    for _ in range(rounds):
        pair = selector.select_matchup(items, session)
        if pair is None:
            break
        session.append(beats(pair.item_a.id, pair.item_b.id))
    return session


class TestPairSelector:
    """Test PairSelector behavior through public interface."""

    @pytest.mark.parametrize("count", [0, 1])
    def test_fewer_than_two_items(self, count: int) -> None:
        assert PairSelector().select_matchup(make_items("ab"[:count]), []) is None

    def test_first_pairs_use_unseen_items(self) -> None:
        """While two unseen items remain they should be paired together."""
        # Arrange
        items = make_items("abcd")
        session = [beats("a", "b")]

        # Act
        pair = PairSelector(rng=random.Random(1)).select_matchup(items, session)

        # Assert
        assert pair is not None
        assert set(pair.item_ids) == {"c", "d"}, "Both unseen items should be shown next"

    @pytest.mark.parametrize("count", [2, 5, 8, 11])
    def test_full_coverage_within_half_n(self, count: int) -> None:
        """Every item should appear within ceil(N/2) pairs."""
        # Arrange
        items = [Item(id=f"item-{i:02d}") for i in range(count)]

        # Act
        session = play(PairSelector(rng=random.Random(7)), items, ceil(count / 2))

        # Assert
        seen = {item_id for comp in session for item_id in (comp.item_a_id, comp.item_b_id)}
        assert seen == {item.id for item in items}, "Coverage phase should show every item"

    def test_never_repeats_a_pair(self) -> None:
        """All C(n,2) pairs are used exactly once, then selection stops."""
        # Act
        session = play(PairSelector(rng=random.Random(3)), make_items("abcde"), 50)

        # Assert
        keys = [comp.pair_key for comp in session]
        assert len(keys) == 10, "Five items have exactly ten pairs"
        assert len(set(keys)) == len(keys), "No pair should repeat within a session"

    def test_respects_streak_limit(self) -> None:
        """An item shown in the last two pairs should sit out when possible."""
        # Arrange
        items = make_items("abcd")
        session = [beats("c", "d"), beats("a", "b"), beats("a", "c")]

        # Act
        pair = PairSelector(rng=random.Random(0)).select_matchup(items, session)

        # Assert
        assert pair is not None
        assert "a" not in pair.item_ids, "a appeared twice in a row and should rest"

    def test_relaxes_streak_when_no_other_pair_left(self) -> None:
        """The only remaining pair is used even if it extends a streak."""
        # Arrange
        items = make_items("abcd")
        session = [beats("b", "c"), beats("b", "d"), beats("c", "d"), beats("a", "b"), beats("a", "c")]

        # Act
        pair = PairSelector().select_matchup(items, session)

        # Assert
        assert pair is not None
        assert set(pair.item_ids) == {"a", "d"}

    def test_depth_prefers_under_compared_items(self) -> None:
        """Once everything is seen, items with fewer global comparisons go first."""
        # Arrange
        items = [
            Item(id="a", comparison_count=0),
            Item(id="b", comparison_count=0),
            Item(id="c", comparison_count=50),
            Item(id="d", comparison_count=50),
        ]
        session = [beats("a", "c"), beats("b", "d")]

        # Act
        pair = PairSelector(rng=random.Random(0)).select_matchup(items, session)

        # Assert
        assert pair is not None
        assert set(pair.item_ids) == {"a", "b"}

    def test_fewer_left_appearances_goes_left(self) -> None:
        # Arrange
        items = [Item(id="a", left_count=5), Item(id="b", left_count=1)]

        # Act
        pair = PairSelector().select_matchup(items, [])

        # Assert
        assert pair is not None
        assert (pair.left_item_id, pair.right_item_id) == ("b", "a")

    def test_position_bias_breaks_left_count_tie(self) -> None:
        """With equal left counts the item less biased to the left goes left."""
        items = [Item(id="a", left_count=2, right_count=0), Item(id="b", left_count=2, right_count=5)]

        pair = PairSelector().select_matchup(items, [])

        assert pair is not None
        assert pair.left_item_id == "b"

    def test_seeded_rng_is_reproducible(self) -> None:
        """The same seed should produce the same positions on fully tied items."""
        items = make_items("ab")

        first = select_next_pair(items, [], rng=random.Random(42))
        second = select_next_pair(items, [], rng=random.Random(42))

        assert first == second


class TestWinnersOnly:
    """Test winners-only selection used in the tournament phase."""

    def test_only_session_winners_are_paired(self) -> None:
        # Arrange
        items = make_items("abcde")
        session = [beats("a", "b"), beats("c", "d")]

        # Act
        pair = select_next_pair_winners_only(items, session, rng=random.Random(0))

        # Assert
        assert pair is not None
        assert set(pair.item_ids) == {"a", "c"}

    def test_single_winner_returns_none(self) -> None:
        session = [beats("a", "b"), beats("a", "c")]

        assert select_next_pair_winners_only(make_items("abc"), session) is None

    def test_exhausted_winner_pairs_return_none(self) -> None:
        """Winners that already met each other leave nothing to schedule."""
        session = [beats("a", "b"), beats("c", "d"), beats("a", "c")]

        assert select_next_pair_winners_only(make_items("abcd"), session) is None
