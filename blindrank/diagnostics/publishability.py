"""
Data-sufficiency checks.

Decides whether the votes collected so far support a publishable ranking:
every item seen often enough, enough comparisons overall, and a connected
comparison graph.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from ..logging_config import get_logger
from ..models import Comparison, Item
from .graph import check_connectivity

logger = get_logger("publishability")

CONFIRMATION_MARGIN = 1.5
DEFAULT_COMPARISONS_PER_ITEM = 10


class DataStatus(str, Enum):
    INSUFFICIENT = "insufficient"
    PUBLISHABLE = "publishable"
    CONFIRMATION = "confirmation"


@dataclass(frozen=True)
class MinExposuresCondition:
    met: bool
    required: int
    min_observed: int
    items_below_threshold: int


@dataclass(frozen=True)
class TotalComparisonsCondition:
    met: bool
    required: int
    observed: int


@dataclass(frozen=True)
class GraphConnectivityCondition:
    met: bool
    connected: bool
    component_count: int


@dataclass(frozen=True)
class ThresholdConditions:
    min_exposures: MinExposuresCondition
    total_comparisons: TotalComparisonsCondition
    graph_connectivity: GraphConnectivityCondition


@dataclass(frozen=True)
class ThresholdResult:
    """Verdict of is_publishable_threshold with per-condition details."""

    is_publishable: bool
    data_status: DataStatus
    conditions: ThresholdConditions


def calculate_elo_std_error(comparison_count: int) -> float:
    """
    Approximate standard error of an Elo rating.

    SE = 400 / (sqrt(n) * ln(10)), assuming opponents of similar strength.
    Items that were never compared have infinite error.
    """
    if comparison_count <= 0:
        return math.inf
    return 400.0 / (math.sqrt(comparison_count) * math.log(10))


def _ratio(observed: int, required: int) -> float:
    if required <= 0:
        return math.inf
    return observed / required


def is_publishable_threshold(
    items: Sequence[Item],
    comparisons: Iterable[Comparison],
    min_exposures_per_item: int,
    min_total_comparisons: int | None = None,
) -> ThresholdResult:
    """
    Check whether study data meets the publishable threshold.

    All three conditions must hold:
    1. Every item has at least min_exposures_per_item comparisons
    2. Total comparisons >= min_total_comparisons (default 10 x item count)
    3. The comparison graph is connected

    Test-session comparisons are dropped before anything is counted, so
    exposures are recounted from the remaining comparisons rather than
    read from the item snapshots.

    Args:
        items: All items of the category/study
        comparisons: All comparisons of the category/study
        min_exposures_per_item: Required comparisons per item
        min_total_comparisons: Required total; None means 10 x item count

    Returns:
        ThresholdResult with the overall verdict and each condition's numbers
    """
    if min_total_comparisons is None:
        required_total = DEFAULT_COMPARISONS_PER_ITEM * len(items)
    else:
        required_total = min_total_comparisons

    valid = [comp for comp in comparisons if not comp.is_test_session]

    exposures = {item.id: 0 for item in items}
    for comp in valid:
        for item_id in (comp.item_a_id, comp.item_b_id):
            if item_id in exposures:
                exposures[item_id] += 1

    min_observed = min(exposures.values(), default=0)
    items_below = sum(1 for count in exposures.values() if count < min_exposures_per_item)
    connectivity = check_connectivity(list(exposures), valid)

    min_exposures = MinExposuresCondition(
        met=items_below == 0,
        required=min_exposures_per_item,
        min_observed=min_observed,
        items_below_threshold=items_below,
    )
    total_comparisons = TotalComparisonsCondition(
        met=len(valid) >= required_total,
        required=required_total,
        observed=len(valid),
    )
    graph_connectivity = GraphConnectivityCondition(
        met=connectivity.connected,
        connected=connectivity.connected,
        component_count=connectivity.component_count,
    )

    is_publishable = min_exposures.met and total_comparisons.met and graph_connectivity.met
    if not is_publishable:
        status = DataStatus.INSUFFICIENT
    else:
        # Well past both thresholds: more votes only confirm the ranking
        exposure_ratio = _ratio(min_observed, min_exposures_per_item) if min_observed > 0 else 0.0
        total_ratio = _ratio(len(valid), required_total)
        if exposure_ratio >= CONFIRMATION_MARGIN and total_ratio >= CONFIRMATION_MARGIN:
            status = DataStatus.CONFIRMATION
        else:
            status = DataStatus.PUBLISHABLE

    logger.debug(
        f"Threshold check: {len(valid)}/{required_total} comparisons, "
        f"min exposures {min_observed}/{min_exposures_per_item}, "
        f"{connectivity.component_count} component(s) -> {status.value}"
    )
    return ThresholdResult(
        is_publishable=is_publishable,
        data_status=status,
        conditions=ThresholdConditions(
            min_exposures=min_exposures,
            total_comparisons=total_comparisons,
            graph_connectivity=graph_connectivity,
        ),
    )


def calculate_data_status(
    items: Sequence[Item],
    comparisons: Iterable[Comparison],
    min_exposures_per_item: int,
    min_total_comparisons: int | None = None,
) -> DataStatus:
    """Get only the data status of is_publishable_threshold."""
    return is_publishable_threshold(
        items, comparisons, min_exposures_per_item, min_total_comparisons
    ).data_status
