"""
Core dataclasses for blindrank.

Defines the Item and Comparison snapshots with validation, plus the plain
result records returned by the ranking, diagnostics and scheduling code.
Snapshots are frozen: updates produce new instances via dataclasses.replace.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

from .exceptions import ValidationError

TEST_SESSION_FLAG = "test_session"


class ComparisonMode(str, Enum):
    """How many items a participant sees per vote."""

    PAIR = "pair"
    QUAD = "quad"

    @property
    def unit_size(self) -> int:
        return 2 if self is ComparisonMode.PAIR else 4


@dataclass(frozen=True)
class Item:
    """Aggregate state of one compared item, as held by the persistence layer."""

    id: str
    rating: float = 1500.0
    games_played: int = 0
    comparison_count: int = 0
    win_count: int = 0
    loss_count: int = 0
    left_count: int = 0
    right_count: int = 0
    artist_rank: int | None = None
    artist_boost: float = 0.0
    bt_ability: float = 0.0
    category_id: str | None = None

    def __post_init__(self) -> None:
        """Validate item data."""
        if not self.id:
            raise ValidationError("item id cannot be empty")

    @property
    def win_rate(self) -> float:
        if self.comparison_count <= 0:
            return 0.0
        return self.win_count / self.comparison_count

    @property
    def position_bias(self) -> int:
        """Positive when the item has been shown on the left more often."""
        return self.left_count - self.right_count


@dataclass(frozen=True)
class Comparison:
    """Immutable record of one pairwise outcome."""

    item_a_id: str
    item_b_id: str
    winner_id: str
    left_item_id: str | None = None
    right_item_id: str | None = None
    category_id: str | None = None
    session_id: str | None = None
    response_time_ms: int | None = None
    is_flagged: bool = False
    flag_reason: str | None = None

    def __post_init__(self) -> None:
        """Validate comparison data."""
        if not self.item_a_id or not self.item_b_id:
            raise ValidationError("comparison item ids cannot be empty")
        if self.item_a_id == self.item_b_id:
            raise ValidationError(f"item compared with itself: {self.item_a_id}")
        if self.winner_id not in (self.item_a_id, self.item_b_id):
            raise ValidationError(
                f"winner {self.winner_id} is not one of {self.item_a_id}, {self.item_b_id}"
            )
        # Display positions default to the a/b order
        if self.left_item_id is None:
            left = self.item_a_id if self.right_item_id is None else self._other(self.right_item_id)
            object.__setattr__(self, "left_item_id", left)
        if self.right_item_id is None:
            object.__setattr__(self, "right_item_id", self._other(self.left_item_id))
        if {self.left_item_id, self.right_item_id} != {self.item_a_id, self.item_b_id}:
            raise ValidationError(
                f"positions {self.left_item_id}/{self.right_item_id} must be "
                f"{self.item_a_id} and {self.item_b_id}, one on each side"
            )

    def _other(self, item_id: str | None) -> str:
        return self.item_b_id if item_id == self.item_a_id else self.item_a_id

    @property
    def loser_id(self) -> str:
        return self.item_b_id if self.winner_id == self.item_a_id else self.item_a_id

    @property
    def pair_key(self) -> tuple[str, str]:
        a, b = sorted((self.item_a_id, self.item_b_id))
        return a, b

    @property
    def is_test_session(self) -> bool:
        return self.is_flagged and self.flag_reason == TEST_SESSION_FLAG


@dataclass(frozen=True)
class EloResult:
    """Rating change after a single pairwise outcome."""

    winner_delta: float
    loser_delta: float
    new_winner: float
    new_loser: float


@dataclass
class BTResult:
    """Output of the Bradley-Terry estimator."""

    abilities: dict[str, float]  # log-scale, geometric mean of pi is 1
    standard_errors: dict[str, float]
    iterations: int
    converged: bool
    log_likelihood: float


@dataclass(frozen=True)
class MatchPair:
    """Next pair to show, with resolved display positions."""

    item_a: Item
    item_b: Item
    left_item_id: str
    right_item_id: str

    @property
    def item_ids(self) -> tuple[str, str]:
        return self.item_a.id, self.item_b.id


@dataclass(frozen=True)
class MatchQuad:
    """Next quadruplet to show; positions is the randomized display order."""

    items: tuple[Item, ...]
    positions: tuple[str, ...]

    @property
    def item_ids(self) -> tuple[str, ...]:
        return tuple(item.id for item in self.items)


@dataclass(frozen=True)
class RankedItem:
    """One row of a ranking produced by a Ranker."""

    rank: int
    item_id: str
    score: float
    std_error: float
    comparison_count: int
    win_rate: float
    confidence: str

    @property
    def has_finite_error(self) -> bool:
        return math.isfinite(self.std_error)


@dataclass(frozen=True)
class RatingUpdate:
    """New item snapshots produced by applying one comparison."""

    winner: Item
    loser: Item
    elo: EloResult | None = None


@dataclass
class ConnectivityResult:
    connected: bool
    component_count: int
    component_sizes: list[int] = field(default_factory=list)
    largest_component: list[str] = field(default_factory=list)
    isolated_items: list[str] = field(default_factory=list)


@dataclass
class TransitivityResult:
    circular_triad_count: int
    total_triads: int
    transitivity_index: float | None  # None when no complete triad exists

    @property
    def computed(self) -> bool:
        return self.circular_triad_count >= 0
