"""
Abstract base classes defining the interfaces for blindrank.

All interfaces are synchronous and operate on in-memory snapshots.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from .models import Comparison, Item, MatchPair, MatchQuad, RankedItem


class Ranker(ABC):
    """Interface for turning item snapshots and comparison history into a ranking."""

    name: str = "ranker"

    @abstractmethod
    def rank(self, items: Sequence[Item], comparisons: Sequence[Comparison]) -> list[RankedItem]:
        """
        Rank items, best first.

        Args:
            items: Item snapshots to rank (every item appears in the output)
            comparisons: Full comparison history of the study

        Returns:
            RankedItem rows with 1-based ranks
        """
        pass

    def scores(self, items: Sequence[Item], comparisons: Sequence[Comparison]) -> dict[str, float]:
        """Get item_id -> score, ordered best first."""
        return {row.item_id: row.score for row in self.rank(items, comparisons)}


class Selector(ABC):
    """Interface for selecting the next unit (pair or quad) of a session."""

    matchup_size: int = 2

    @abstractmethod
    def select_matchup(
        self, items: Sequence[Item], session_comparisons: Sequence[Comparison]
    ) -> MatchPair | MatchQuad | None:
        """
        Select the next unit to show.

        Args:
            items: All items of the category/study
            session_comparisons: This session's comparisons, oldest first

        Returns:
            The next unit, or None when too few items remain or every
            candidate unit was already used in this session
        """
        pass


class Participant(ABC):
    """Interface for whoever casts votes on scheduled units."""

    participant_id: str = "unknown"

    @abstractmethod
    def choose(self, items: Sequence[Item]) -> str:
        """
        Pick the preferred item.

        Args:
            items: Items in display order (left to right)

        Returns:
            Id of the chosen item
        """
        pass
