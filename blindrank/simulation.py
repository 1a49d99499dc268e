"""
Study simulator.

Drives whole participant sessions through the scheduler, the vote recorder
and the rating updates, then runs the diagnostics over the collected data.
Used by the CLI and the end-to-end tests.
"""

import random
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from .config import StudyConfig
from .diagnostics.graph import check_connectivity, detect_circular_triads
from .diagnostics.publishability import ThresholdResult, is_publishable_threshold
from .exceptions import ConfigurationError, ParticipantError
from .interfaces import Participant, Ranker
from .logging_config import get_logger
from .models import (
    BTResult,
    Comparison,
    ConnectivityResult,
    Item,
    MatchPair,
    MatchQuad,
    RankedItem,
    TransitivityResult,
)
from .rankers.bradley_terry import estimate_bradley_terry
from .scheduling import ScheduleStatus, next_unit
from .voting import apply_comparisons, expand_quad_vote, record_pair_vote

logger = get_logger("simulation")


@dataclass
class SimulationConfig:
    """Configuration for a simulation run."""

    sessions: int = 5
    max_units_per_session: int = 500  # hard stop per category and session
    seed: int | None = None

    def __post_init__(self):
        """Validate configuration."""
        if self.sessions < 1:
            raise ConfigurationError(f"sessions must be at least 1, got {self.sessions}")
        if self.max_units_per_session < 1:
            raise ConfigurationError(
                f"max_units_per_session must be at least 1, got {self.max_units_per_session}"
            )


@dataclass
class SimulationReport:
    rankings: list[RankedItem]
    threshold: ThresholdResult
    connectivity: ConnectivityResult
    transitivity: TransitivityResult
    bt_result: BTResult
    units_per_session: list[int] = field(default_factory=list)
    comparisons: list[Comparison] = field(default_factory=list)
    items: dict[str, Item] = field(default_factory=dict)


def spearman_correlation(rankings: Sequence[RankedItem], ground_truth: dict[str, float]) -> float:
    """
    Spearman rank correlation between a ranking and ground-truth scores.

    Items missing from ground_truth are ignored. Returns 0.0 with fewer than
    two comparable items.
    """
    ids = [row.item_id for row in rankings if row.item_id in ground_truth]
    if len(ids) < 2:
        return 0.0

    predicted = np.arange(len(ids), dtype=float)
    truth_scores = np.array([ground_truth[item_id] for item_id in ids])
    actual = np.argsort(np.argsort(-truth_scores, kind="stable")).astype(float)

    if np.std(actual) == 0:
        return 0.0
    return float(np.corrcoef(predicted, actual)[0, 1])


class StudySimulator:
    """Runs simulated participant sessions against a study."""

    def __init__(
        self,
        items: Sequence[Item],
        participant: Participant,
        ranker: Ranker,
        config: StudyConfig | None = None,
        sim_config: SimulationConfig | None = None,
    ):
        """Initialize simulator with item snapshots and all components."""
        self.items: dict[str, Item] = {item.id: item for item in items}
        self.participant: Participant = participant
        self.ranker: Ranker = ranker
        self.config: StudyConfig = config or StudyConfig()
        self.sim_config: SimulationConfig = sim_config or SimulationConfig()

        # Runtime state
        self.comparisons: list[Comparison] = []
        self.units_per_session: list[int] = []
        self._rng: random.Random = random.Random(self.sim_config.seed)

    def _categories(self) -> dict[str | None, list[str]]:
        categories: dict[str | None, list[str]] = {}
        for item in self.items.values():
            categories.setdefault(item.category_id, []).append(item.id)
        return categories

    def _vote(self, unit: MatchPair | MatchQuad, session_id: str, category_id: str | None) -> list[Comparison]:
        if isinstance(unit, MatchPair):
            shown = [self.items[unit.left_item_id], self.items[unit.right_item_id]]
        else:
            shown = [self.items[item_id] for item_id in unit.positions]

        try:
            winner_id = self.participant.choose(shown)
        except ParticipantError as e:
            logger.error(f"Participant {self.participant.participant_id} failed in {session_id}: {e}")
            raise

        if winner_id not in {item.id for item in shown}:
            logger.error(f"Participant chose {winner_id}, which was not shown in {session_id}")
            raise ParticipantError(f"Winner {winner_id} is not one of {[item.id for item in shown]}")

        if isinstance(unit, MatchPair):
            return [record_pair_vote(unit, winner_id, session_id, category_id, config=self.config)]
        return expand_quad_vote(unit, winner_id, session_id, category_id, config=self.config)

    def run_session(self, session_id: str) -> int:
        """Run one session over every category; returns the number of units voted on."""
        units = 0
        for category_id, item_ids in self._categories().items():
            session_comparisons: list[Comparison] = []
            category_units = 0

            while category_units < self.sim_config.max_units_per_session:
                category_items = [self.items[item_id] for item_id in item_ids]
                result = next_unit(category_items, session_comparisons, self.config, self._rng)
                if result.status is not ScheduleStatus.SCHEDULED:
                    logger.debug(f"{session_id}/{category_id}: stopped with {result.status.value}")
                    break

                new_comparisons = self._vote(result.unit, session_id, category_id)
                self.items = apply_comparisons(self.items, new_comparisons, self.config)
                session_comparisons.extend(new_comparisons)
                self.comparisons.extend(new_comparisons)
                category_units += 1
            else:
                logger.warning(
                    f"{session_id}/{category_id}: hit max_units_per_session "
                    f"({self.sim_config.max_units_per_session})"
                )

            units += category_units
        return units

    def run(self) -> SimulationReport:
        """Run all sessions, then rank and diagnose the collected comparisons."""
        logger.info(
            f"Starting simulation: {len(self.items)} items, {self.sim_config.sessions} sessions, "
            f"{self.config.comparison_mode.value} mode, ranker {self.ranker.name}"
        )

        for index in range(self.sim_config.sessions):
            session_id = f"session-{index + 1}"
            units = self.run_session(session_id)
            self.units_per_session.append(units)
            logger.info(f"Completed {session_id}: {units} units, {len(self.comparisons)} comparisons total")

        return self.report()

    def report(self) -> SimulationReport:
        items = list(self.items.values())
        valid = [comp for comp in self.comparisons if not comp.is_test_session]

        report = SimulationReport(
            rankings=self.ranker.rank(items, self.comparisons),
            threshold=is_publishable_threshold(
                items,
                self.comparisons,
                self.config.min_exposures_per_item,
                self.config.min_total_comparisons,
            ),
            connectivity=check_connectivity([item.id for item in items], valid),
            transitivity=detect_circular_triads(valid),
            bt_result=estimate_bradley_terry(valid),
            units_per_session=list(self.units_per_session),
            comparisons=list(self.comparisons),
            items=dict(self.items),
        )
        logger.info(f"Simulation finished: data status {report.threshold.data_status.value}")
        return report
