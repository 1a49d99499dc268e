"""
Tests for session scheduling.

Focus on per-session targets, the coverage/tournament/complete phases and
the outcomes of next_unit.
"""

import random

import pytest

from blindrank.config import StudyConfig
from blindrank.models import Comparison, ComparisonMode, Item
from blindrank.scheduling import (
    TOURNAMENT_UNITS,
    ScheduleStatus,
    SessionPhase,
    base_target,
    calculate_recommended_comparisons,
    calculate_recommended_quad_comparisons,
    count_completed_units,
    determine_phase,
    get_category_progress,
    next_unit,
    session_progress,
    summarize_categories,
)
from blindrank.voting import expand_quad_vote, record_pair_vote


def make_items(ids: str, category_id: str | None = None) -> list[Item]:
    return [Item(id=item_id, category_id=category_id) for item_id in ids]


def beats(winner: str, loser: str, category_id: str | None = None) -> Comparison:
    return Comparison(item_a_id=winner, item_b_id=loser, winner_id=winner, category_id=category_id)


def quad_vote(winner: str, *losers: str) -> list[Comparison]:
    return [beats(winner, loser) for loser in losers]


QUAD_CONFIG = StudyConfig(comparison_mode=ComparisonMode.QUAD)


class TestRecommendedComparisons:
    """Test the per-session target formulas."""

    @pytest.mark.parametrize(
        "item_count,min_exposures,expected",
        [
            (0, 10, 0),
            (1, 10, 1),
            (10, 10, 10),
            (20, 50, 75),
            (100, 10, 100),
            (200, 10, 200),
        ],
    )
    def test_pair_target(self, item_count: int, min_exposures: int, expected: int) -> None:
        assert calculate_recommended_comparisons(item_count, min_exposures) == expected

    def test_pair_target_bounds(self) -> None:
        """The target stays within [ceil(n/2), max(75, n)] and is at least n."""
        for item_count in range(1, 120):
            for min_exposures in (0, 5, 10, 30):
                target = calculate_recommended_comparisons(item_count, min_exposures)

                assert target >= item_count, f"n={item_count} should see every item"
                assert target <= max(75, item_count), f"n={item_count} should respect the session cap"

    @pytest.mark.parametrize(
        "item_count,min_exposures,expected",
        [
            (0, 10, 0),
            (4, 10, 2),
            (10, 10, 4),
            (20, 50, 25),
            (200, 10, 67),
        ],
    )
    def test_quad_target(self, item_count: int, min_exposures: int, expected: int) -> None:
        assert calculate_recommended_quad_comparisons(item_count, min_exposures) == expected

    def test_base_target_follows_mode(self) -> None:
        assert base_target(10, StudyConfig()) == 10
        assert base_target(10, QUAD_CONFIG) == 4


class TestCountCompletedUnits:
    """Test unit counting in pair and quad mode."""

    def test_pair_mode_counts_comparisons(self) -> None:
        session = [beats("a", "b"), beats("c", "d"), beats("a", "c")]

        assert count_completed_units(session, ComparisonMode.PAIR) == 3

    def test_quad_mode_counts_votes(self) -> None:
        """Three comparisons of one quad vote are one unit."""
        session = quad_vote("a", "b", "c", "d") + quad_vote("e", "f", "g", "h")

        assert count_completed_units(session, ComparisonMode.QUAD) == 2

    def test_leftover_pair_votes_round_up(self) -> None:
        """Pair votes in a quad session count as half a quad each, rounded up."""
        session = quad_vote("a", "b", "c", "d") + [beats("e", "f")]

        assert count_completed_units(session, ComparisonMode.QUAD) == 2


class TestPhases:
    """Test determine_phase and session progress."""

    def test_coverage_until_target(self) -> None:
        items = make_items("abcd")

        assert determine_phase(items, [beats("a", "b"), beats("c", "d")], StudyConfig()) is SessionPhase.COVERAGE

    def test_tournament_after_target_with_coverage(self) -> None:
        # Arrange
        items = make_items("abcd")
        session = [beats("a", "b"), beats("c", "d"), beats("a", "c"), beats("b", "d")]

        # Act & Assert
        assert determine_phase(items, session, StudyConfig()) is SessionPhase.TOURNAMENT

    def test_complete_after_tournament_units(self) -> None:
        items = make_items("abcd")
        session = [beats("a", "b"), beats("c", "d"), beats("a", "c"), beats("b", "d")] * 2

        assert determine_phase(items, session, StudyConfig()) is SessionPhase.COMPLETE

    def test_continued_voting_waits_for_coverage(self) -> None:
        """With continued voting allowed, an unseen item keeps the session open."""
        # Arrange
        items = make_items("abcde")
        session = [beats("a", "b"), beats("c", "d")] * 5

        # Act
        open_phase = determine_phase(items, session, StudyConfig(allow_continued_voting=True))
        closed_phase = determine_phase(items, session, StudyConfig(allow_continued_voting=False))

        # Assert
        assert open_phase is SessionPhase.COVERAGE, "e was never shown"
        assert closed_phase is SessionPhase.COMPLETE
        assert not session_progress(items, session, StudyConfig()).is_complete

    def test_session_progress_counts_against_full_target(self) -> None:
        items = make_items("abcd")
        session = [beats("a", "b"), beats("c", "d"), beats("a", "c"), beats("b", "d")]

        progress = session_progress(items, session, StudyConfig())

        assert progress.target == 4 + TOURNAMENT_UNITS
        assert progress.completed == 4
        assert progress.percentage == 50
        assert not progress.is_complete


class TestCategoryProgress:
    """Test per-category progress helpers."""

    def test_counts_only_matching_category(self) -> None:
        session = [beats("a", "b", "x"), beats("c", "d", "y"), beats("a", "c", "x")]

        progress = get_category_progress(session, "x", target=4)

        assert progress.completed == 2
        assert progress.percentage == 50
        assert not progress.is_complete

    def test_percentage_is_capped(self) -> None:
        session = [beats("a", "b", "x")] * 6

        progress = get_category_progress(session, "x", target=4)

        assert progress.percentage == 100
        assert progress.is_complete

    def test_zero_target_is_complete(self) -> None:
        progress = get_category_progress([], "x", target=0)

        assert progress.percentage == 100
        assert progress.is_complete

    def test_summarize_categories(self) -> None:
        # Arrange
        items = make_items("abcd", "x") + make_items("efgh", "y")
        session = [beats("a", "b", "x"), beats("c", "d", "x")]

        # Act
        summary = summarize_categories(items, session, StudyConfig())

        # Assert
        assert list(summary) == ["x", "y"]
        assert summary["x"].completed == 2
        assert summary["y"].completed == 0


class TestNextUnit:
    """Test next_unit behavior through public interface."""

    def test_insufficient_items(self) -> None:
        result = next_unit(make_items("a"), [], StudyConfig())

        assert result.status is ScheduleStatus.INSUFFICIENT_ITEMS
        assert result.phase is None
        assert result.unit is None

    def test_quad_mode_needs_four_items(self) -> None:
        result = next_unit(make_items("abc"), [], QUAD_CONFIG)

        assert result.status is ScheduleStatus.INSUFFICIENT_ITEMS

    def test_tournament_pairs_session_winners(self) -> None:
        """In the tournament phase the next pair comes from this session's winners."""
        # Arrange
        items = make_items("abcd")
        session = [beats("a", "b"), beats("c", "d"), beats("a", "c"), beats("b", "d")]

        # Act
        result = next_unit(items, session, StudyConfig(), random.Random(0))

        # Assert
        assert result.status is ScheduleStatus.SCHEDULED
        assert result.phase is SessionPhase.TOURNAMENT
        assert result.pair is not None
        assert set(result.pair.item_ids) == {"b", "c"}, "b-c is the only unused pair of winners"

    def test_tournament_falls_back_to_regular_selection(self) -> None:
        """When the winners have all met, any unused pair is scheduled instead."""
        # Arrange
        items = make_items("abcd")
        session = [beats("a", "b"), beats("a", "c"), beats("a", "d"), beats("b", "c")]

        # Act
        result = next_unit(items, session, StudyConfig(), random.Random(0))

        # Assert
        assert result.phase is SessionPhase.TOURNAMENT
        assert result.pair is not None
        assert "d" in result.pair.item_ids

    def test_exhausted_when_every_pair_used(self) -> None:
        items = make_items("abc")
        session = [beats("a", "b"), beats("b", "c"), beats("a", "c")]

        result = next_unit(items, session, StudyConfig())

        assert result.status is ScheduleStatus.EXHAUSTED
        assert result.unit is None

    def test_full_pair_session_runs_to_complete(self) -> None:
        """A session should stop after base target + tournament units."""
        # Arrange
        items = make_items("abcdef")
        config = StudyConfig()
        rng = random.Random(11)
        session: list[Comparison] = []

        # Act
        result = next_unit(items, session, config, rng)
        while result.status is ScheduleStatus.SCHEDULED:
            assert result.pair is not None
            session.append(record_pair_vote(result.pair, result.pair.item_a.id))
            result = next_unit(items, session, config, rng)

        # Assert
        assert result.status is ScheduleStatus.COMPLETE
        assert len(session) == base_target(6, config) + TOURNAMENT_UNITS
        assert len({comp.pair_key for comp in session}) == len(session), "No pair should repeat"
        assert result.progress is not None and result.progress.is_complete

    def test_full_quad_session_runs_to_complete(self) -> None:
        # Arrange
        items = make_items("abcdefgh")
        rng = random.Random(3)
        session: list[Comparison] = []
        votes = 0

        # Act
        result = next_unit(items, session, QUAD_CONFIG, rng)
        while result.status is ScheduleStatus.SCHEDULED:
            assert result.quad is not None and result.unit is result.quad
            session.extend(expand_quad_vote(result.quad, result.quad.positions[0]))
            votes += 1
            result = next_unit(items, session, QUAD_CONFIG, rng)

        # Assert
        assert result.status is ScheduleStatus.COMPLETE
        assert votes == base_target(8, QUAD_CONFIG) + TOURNAMENT_UNITS
        assert len(session) == 3 * votes

    @pytest.mark.parametrize("ids", ["abcd", "abcde"])
    def test_small_quad_session_runs_to_complete(self, ids: str) -> None:
        """Categories with fewer 4-sets than the session needs repeat sets instead of stopping."""
        # Arrange
        items = make_items(ids)
        rng = random.Random(7)
        session: list[Comparison] = []
        votes = 0

        # Act
        result = next_unit(items, session, QUAD_CONFIG, rng)
        while result.status is ScheduleStatus.SCHEDULED:
            assert result.quad is not None
            session.extend(expand_quad_vote(result.quad, result.quad.positions[0]))
            votes += 1
            result = next_unit(items, session, QUAD_CONFIG, rng)

        # Assert
        assert result.status is ScheduleStatus.COMPLETE
        assert votes == base_target(len(ids), QUAD_CONFIG) + TOURNAMENT_UNITS
        assert count_completed_units(session, ComparisonMode.QUAD) == votes
