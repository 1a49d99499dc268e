"""
Tests for the publishability gate.

Focus on the three threshold conditions, test-session filtering and the
insufficient/publishable/confirmation classification.
"""

import math

import pytest

from blindrank.diagnostics.publishability import (
    DataStatus,
    calculate_data_status,
    calculate_elo_std_error,
    is_publishable_threshold,
)
from blindrank.models import TEST_SESSION_FLAG, Comparison, Item


def round_robin(ids: list[str], rounds: int = 1) -> list[Comparison]:
    comparisons = []
    for _ in range(rounds):
        for i, a in enumerate(ids):
            for b in ids[i + 1:]:
                comparisons.append(Comparison(item_a_id=a, item_b_id=b, winner_id=a))
    return comparisons


class TestEloStdError:
    """Test calculate_elo_std_error."""

    def test_closed_form(self) -> None:
        assert calculate_elo_std_error(25) == 400 / (math.sqrt(25) * math.log(10))

    @pytest.mark.parametrize("count", [0, -5])
    def test_no_comparisons_is_infinite(self, count: int) -> None:
        assert math.isinf(calculate_elo_std_error(count))

    def test_decreases_with_more_comparisons(self) -> None:
        errors = [calculate_elo_std_error(n) for n in (1, 4, 16, 64)]

        assert errors == sorted(errors, reverse=True), "More data should mean less error"
        assert len(set(errors)) == len(errors)


class TestIsPublishableThreshold:
    """Test is_publishable_threshold behavior through public interface."""

    def test_all_conditions_met_at_minimum(self) -> None:
        """Meeting every threshold exactly should be publishable, not confirmation."""
        # Arrange
        items = [Item(id=item_id) for item_id in "abc"]
        comparisons = round_robin(["a", "b", "c"])

        # Act
        result = is_publishable_threshold(items, comparisons, min_exposures_per_item=2, min_total_comparisons=3)

        # Assert
        assert result.is_publishable
        assert result.data_status is DataStatus.PUBLISHABLE
        assert result.conditions.min_exposures.min_observed == 2
        assert result.conditions.total_comparisons.observed == 3

    def test_margin_reaches_confirmation(self) -> None:
        """Twice the thresholds should classify as confirmation."""
        items = [Item(id=item_id) for item_id in "abc"]
        comparisons = round_robin(["a", "b", "c"], rounds=2)

        result = is_publishable_threshold(items, comparisons, min_exposures_per_item=2, min_total_comparisons=3)

        assert result.data_status is DataStatus.CONFIRMATION

    def test_test_session_comparisons_are_excluded(self) -> None:
        """Only test-session votes should count as zero real comparisons."""
        # Arrange
        items = [Item(id="a", comparison_count=50), Item(id="b", comparison_count=50)]
        comparisons = [
            Comparison("a", "b", "a", is_flagged=True, flag_reason=TEST_SESSION_FLAG)
            for _ in range(50)
        ]

        # Act
        result = is_publishable_threshold(items, comparisons, min_exposures_per_item=1, min_total_comparisons=1)

        # Assert
        assert not result.is_publishable
        assert result.data_status is DataStatus.INSUFFICIENT
        assert result.conditions.total_comparisons.observed == 0
        assert result.conditions.min_exposures.min_observed == 0, \
            "Exposures should be recounted without test votes"
        assert not result.conditions.graph_connectivity.met

    def test_other_flags_still_count(self) -> None:
        """Flags other than test_session do not remove a comparison from the counts."""
        items = [Item(id="a"), Item(id="b")]
        comparisons = [Comparison("a", "b", "a", is_flagged=True, flag_reason="too_fast")]

        result = is_publishable_threshold(items, comparisons, min_exposures_per_item=1, min_total_comparisons=1)

        assert result.is_publishable

    def test_disconnected_graph_is_insufficient(self) -> None:
        """Two separate clusters should fail even with plenty of votes."""
        # Arrange
        items = [Item(id=item_id) for item_id in "abcd"]
        comparisons = round_robin(["a", "b"], rounds=10) + round_robin(["c", "d"], rounds=10)

        # Act
        result = is_publishable_threshold(items, comparisons, min_exposures_per_item=5, min_total_comparisons=10)

        # Assert
        assert result.conditions.min_exposures.met
        assert result.conditions.total_comparisons.met
        assert not result.conditions.graph_connectivity.met
        assert result.conditions.graph_connectivity.component_count == 2
        assert result.data_status is DataStatus.INSUFFICIENT

    def test_default_total_is_ten_per_item(self) -> None:
        """Without min_total_comparisons the requirement is 10 x item count."""
        items = [Item(id="a"), Item(id="b")]

        result = is_publishable_threshold(items, round_robin(["a", "b"], rounds=5), min_exposures_per_item=1)

        assert result.conditions.total_comparisons.required == 20
        assert not result.conditions.total_comparisons.met

    def test_zero_total_requirement_is_kept(self) -> None:
        """An explicit 0 should not fall back to the default."""
        items = [Item(id="a"), Item(id="b")]

        result = is_publishable_threshold(
            items, round_robin(["a", "b"]), min_exposures_per_item=1, min_total_comparisons=0
        )

        assert result.conditions.total_comparisons.required == 0
        assert result.is_publishable

    def test_items_below_threshold_are_counted(self) -> None:
        items = [Item(id=item_id) for item_id in "abc"]
        comparisons = round_robin(["a", "b"], rounds=3) + [Comparison("a", "c", "c")]

        result = is_publishable_threshold(items, comparisons, min_exposures_per_item=2, min_total_comparisons=1)

        assert result.conditions.min_exposures.items_below_threshold == 1
        assert result.conditions.min_exposures.min_observed == 1

    def test_calculate_data_status_matches(self) -> None:
        items = [Item(id=item_id) for item_id in "abc"]
        comparisons = round_robin(["a", "b", "c"], rounds=2)

        status = calculate_data_status(items, comparisons, min_exposures_per_item=2, min_total_comparisons=3)

        assert status is is_publishable_threshold(items, comparisons, 2, 3).data_status
        assert status.value == "confirmation"
