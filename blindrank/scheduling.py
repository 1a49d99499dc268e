"""
Session scheduling.

Decides, for one participant session over one category (or the whole study
when categories are not separated), which phase the session is in and which
unit to show next:

COVERAGE: until every item was seen and the base target of units is met.
TOURNAMENT: TOURNAMENT_UNITS extra units drawn from this session's winners.
COMPLETE: base target + TOURNAMENT_UNITS reached (plus full coverage when the
study allows continued voting).
"""

import math
import random
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum

from .config import StudyConfig
from .group_selectors.history import has_full_coverage, split_quad_votes
from .group_selectors.pair_selector import PairSelector
from .group_selectors.quad_selector import QuadSelector
from .interfaces import Selector
from .logging_config import get_logger
from .models import Comparison, ComparisonMode, Item, MatchPair, MatchQuad

logger = get_logger("scheduling")

TOURNAMENT_UNITS = 4
EXPECTED_REVIEWERS = 5
SESSION_CAP = 75
QUAD_SESSION_CAP = 40
PAIRWISE_RESULTS_PER_QUAD = 3


class SessionPhase(str, Enum):
    COVERAGE = "coverage"
    TOURNAMENT = "tournament"
    COMPLETE = "complete"


class ScheduleStatus(str, Enum):
    SCHEDULED = "scheduled"
    INSUFFICIENT_ITEMS = "insufficient_items"
    EXHAUSTED = "exhausted"
    COMPLETE = "complete"


@dataclass(frozen=True)
class CategoryProgress:
    completed: int
    target: int
    percentage: int
    is_complete: bool


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of next_unit: a pair or quad to show, or why there is none."""

    status: ScheduleStatus
    phase: SessionPhase | None
    progress: CategoryProgress | None = None
    pair: MatchPair | None = None
    quad: MatchQuad | None = None

    @property
    def unit(self) -> MatchPair | MatchQuad | None:
        return self.pair if self.pair is not None else self.quad


def calculate_recommended_comparisons(item_count: int, min_exposures_per_item: int = 10) -> int:
    """
    Pairs each reviewer should judge for a category of item_count items.

    The statistical target spreads item_count * min_exposures_per_item item
    exposures (two per pair) over EXPECTED_REVIEWERS reviewers. The result is
    at least item_count, at least ceil(item_count / 2) and at most
    max(SESSION_CAP, item_count).
    """
    if item_count <= 0:
        return 0

    statistical = math.ceil(item_count * min_exposures_per_item / (2 * EXPECTED_REVIEWERS))
    recommended = max(item_count, statistical)
    upper = max(SESSION_CAP, item_count)
    lower = math.ceil(item_count / 2)
    return max(lower, min(upper, recommended))


def calculate_recommended_quad_comparisons(item_count: int, min_exposures_per_item: int = 10) -> int:
    """
    Quad-mode analogue of calculate_recommended_comparisons.

    Each quad yields three pairwise results, so the pair target is divided
    by three, then kept within [ceil(n / 4), max(QUAD_SESSION_CAP, ceil(n / 2))].
    """
    if item_count <= 0:
        return 0

    pairwise = calculate_recommended_comparisons(item_count, min_exposures_per_item)
    recommended = math.ceil(pairwise / PAIRWISE_RESULTS_PER_QUAD)
    upper = max(QUAD_SESSION_CAP, math.ceil(item_count / 2))
    lower = math.ceil(item_count / 4)
    return max(lower, min(upper, recommended))


def base_target(item_count: int, config: StudyConfig) -> int:
    if config.comparison_mode is ComparisonMode.QUAD:
        return calculate_recommended_quad_comparisons(item_count, config.min_exposures_per_item)
    return calculate_recommended_comparisons(item_count, config.min_exposures_per_item)


def count_completed_units(session_comparisons: Sequence[Comparison], mode: ComparisonMode) -> int:
    """
    Units (pairs or quads) voted on in the session.

    In quad mode each recognized quad vote counts once and leftover pair
    votes count as half a quad each, rounded up.
    """
    if mode is ComparisonMode.PAIR:
        return len(session_comparisons)

    quads, pair_votes = split_quad_votes(session_comparisons)
    return len(quads) + math.ceil(pair_votes / 2)


def _progress(completed: int, target: int) -> CategoryProgress:
    if target <= 0:
        return CategoryProgress(completed=completed, target=target, percentage=100, is_complete=True)
    return CategoryProgress(
        completed=completed,
        target=target,
        percentage=min(100, round(100 * completed / target)),
        is_complete=completed >= target,
    )


def get_category_progress(
    session_comparisons: Sequence[Comparison], category_id: str | None, target: int
) -> CategoryProgress:
    """Progress of a session's comparisons in one category towards target."""
    completed = sum(1 for comp in session_comparisons if comp.category_id == category_id)
    return _progress(completed, target)


def determine_phase(
    items: Sequence[Item], session_comparisons: Sequence[Comparison], config: StudyConfig
) -> SessionPhase:
    target = base_target(len(items), config)
    units = count_completed_units(session_comparisons, config.comparison_mode)
    coverage = has_full_coverage(items, session_comparisons)

    if units >= target + TOURNAMENT_UNITS and (coverage or not config.allow_continued_voting):
        return SessionPhase.COMPLETE
    if units >= target and coverage:
        return SessionPhase.TOURNAMENT
    return SessionPhase.COVERAGE


def session_progress(
    items: Sequence[Item], session_comparisons: Sequence[Comparison], config: StudyConfig
) -> CategoryProgress:
    """Progress in units against the full target (base target + tournament units)."""
    full_target = base_target(len(items), config) + TOURNAMENT_UNITS
    units = count_completed_units(session_comparisons, config.comparison_mode)
    progress = _progress(units, full_target)
    if progress.is_complete and config.allow_continued_voting and not has_full_coverage(items, session_comparisons):
        return replace(progress, is_complete=False)
    return progress


def summarize_categories(
    items: Sequence[Item], session_comparisons: Sequence[Comparison], config: StudyConfig
) -> dict[str | None, CategoryProgress]:
    """Per-category session progress, keyed by category id in first-seen item order."""
    grouped: dict[str | None, list[Item]] = {}
    for item in items:
        grouped.setdefault(item.category_id, []).append(item)

    return {
        category_id: session_progress(
            category_items,
            [comp for comp in session_comparisons if comp.category_id == category_id],
            config,
        )
        for category_id, category_items in grouped.items()
    }


def _selector(mode: ComparisonMode, rng: random.Random, winners_only: bool) -> Selector:
    if mode is ComparisonMode.QUAD:
        return QuadSelector(rng=rng, winners_only=winners_only)
    return PairSelector(rng=rng, winners_only=winners_only)


def next_unit(
    items: Sequence[Item],
    session_comparisons: Sequence[Comparison],
    config: StudyConfig,
    rng: random.Random | None = None,
) -> ScheduleResult:
    """
    Schedule the next pair or quad of a session.

    Args:
        items: Items of the category (or study) being voted on
        session_comparisons: This session's comparisons in that scope, oldest first
        config: Study configuration (mode, exposures, completion rule)
        rng: Random source for display positions

    Returns:
        ScheduleResult; INSUFFICIENT_ITEMS, EXHAUSTED and COMPLETE are
        normal outcomes, not errors
    """
    mode = config.comparison_mode
    if len(items) < mode.unit_size:
        logger.info(f"Cannot schedule {mode.value}: only {len(items)} item(s)")
        return ScheduleResult(status=ScheduleStatus.INSUFFICIENT_ITEMS, phase=None)

    rng = rng or random.Random()
    phase = determine_phase(items, session_comparisons, config)
    progress = session_progress(items, session_comparisons, config)
    if phase is SessionPhase.COMPLETE:
        return ScheduleResult(status=ScheduleStatus.COMPLETE, phase=phase, progress=progress)

    unit = None
    if phase is SessionPhase.TOURNAMENT:
        unit = _selector(mode, rng, winners_only=True).select_matchup(items, session_comparisons)
        if unit is None:
            logger.debug("Too few session winners for a tournament unit, using regular selection")
    if unit is None:
        unit = _selector(mode, rng, winners_only=False).select_matchup(items, session_comparisons)

    if unit is None:
        logger.info(f"No unused {mode.value} left after {progress.completed} unit(s)")
        return ScheduleResult(status=ScheduleStatus.EXHAUSTED, phase=phase, progress=progress)

    return ScheduleResult(
        status=ScheduleStatus.SCHEDULED,
        phase=phase,
        progress=progress,
        pair=unit if isinstance(unit, MatchPair) else None,
        quad=unit if isinstance(unit, MatchQuad) else None,
    )
