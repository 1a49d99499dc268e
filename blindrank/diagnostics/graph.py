"""
Comparison-graph diagnostics.

Connectivity of the undirected "has been compared" graph and circular-triad
(non-transitivity) analysis of the directed "beats" relation.
"""

from collections import deque
from collections.abc import Iterable, Sequence
from itertools import combinations

from ..logging_config import get_logger
from ..models import Comparison, ConnectivityResult, TransitivityResult

logger = get_logger("graph")

MAX_TRIAD_ITEMS = 100
NOT_COMPUTED = -1


def check_connectivity(item_ids: Sequence[str], comparisons: Iterable[Comparison]) -> ConnectivityResult:
    """
    Find connected components of the comparison graph using BFS.

    Each item is a node; two items share an edge once they have been
    compared, regardless of who won. Comparisons touching ids outside
    item_ids are ignored.

    Args:
        item_ids: All item ids of the category/study
        comparisons: Comparisons to build edges from

    Returns:
        ConnectivityResult with components sorted largest first and the
        items that have no edge at all
    """
    if not item_ids:
        return ConnectivityResult(connected=True, component_count=0)

    adjacency: dict[str, set[str]] = {item_id: set() for item_id in item_ids}
    for comp in comparisons:
        if comp.item_a_id in adjacency and comp.item_b_id in adjacency:
            adjacency[comp.item_a_id].add(comp.item_b_id)
            adjacency[comp.item_b_id].add(comp.item_a_id)

    visited: set[str] = set()
    components: list[list[str]] = []
    isolated: list[str] = []

    for start in adjacency:
        if start in visited:
            continue
        if not adjacency[start]:
            isolated.append(start)

        component: list[str] = []
        queue = deque([start])
        visited.add(start)
        while queue:
            node = queue.popleft()
            component.append(node)
            for neighbor in adjacency[node]:
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)
        components.append(component)

    components.sort(key=len, reverse=True)
    return ConnectivityResult(
        connected=len(components) <= 1,
        component_count=len(components),
        component_sizes=[len(component) for component in components],
        largest_component=components[0],
        isolated_items=isolated,
    )


def build_win_matrix(comparisons: Iterable[Comparison]) -> tuple[list[str], dict[str, dict[str, int]]]:
    """Get item ids in first-seen order and wins[a][b] = times a beat b."""
    item_ids: dict[str, None] = {}
    wins: dict[str, dict[str, int]] = {}
    for comp in comparisons:
        item_ids.setdefault(comp.item_a_id)
        item_ids.setdefault(comp.item_b_id)
        row = wins.setdefault(comp.winner_id, {})
        row[comp.loser_id] = row.get(comp.loser_id, 0) + 1
    return list(item_ids), wins


def detect_circular_triads(comparisons: Iterable[Comparison]) -> TransitivityResult:
    """
    Count circular triads (A beats B, B beats C, C beats A).

    A pair compared several times is reduced to its majority winner; a
    pair with a tied record has no direction and can never close a cycle.
    Only triples whose three pairs were all compared are counted.

    Enumeration is O(n^3), so above MAX_TRIAD_ITEMS items the analysis is
    skipped and the counts are NOT_COMPUTED (-1).

    Returns:
        TransitivityResult; transitivity_index is None without complete triads
    """
    items, wins = build_win_matrix(comparisons)

    if len(items) > MAX_TRIAD_ITEMS:
        logger.debug(f"Skipping triad detection for {len(items)} items (limit {MAX_TRIAD_ITEMS})")
        return TransitivityResult(
            circular_triad_count=NOT_COMPUTED,
            total_triads=NOT_COMPUTED,
            transitivity_index=None,
        )

    def win_count(a: str, b: str) -> int:
        return wins.get(a, {}).get(b, 0)

    def compared(a: str, b: str) -> bool:
        return win_count(a, b) + win_count(b, a) > 0

    def direction(a: str, b: str) -> int:
        """1 if a dominates b, -1 if b dominates a, 0 on a tied record."""
        diff = win_count(a, b) - win_count(b, a)
        return (diff > 0) - (diff < 0)

    circular = 0
    total = 0
    for a, b, c in combinations(items, 3):
        if not (compared(a, b) and compared(b, c) and compared(a, c)):
            continue
        total += 1

        ab, bc, ca = direction(a, b), direction(b, c), direction(c, a)
        # A cycle runs the same way around all three edges
        if ab != 0 and ab == bc == ca:
            circular += 1

    transitivity_index = 1.0 - circular / total if total > 0 else None
    return TransitivityResult(
        circular_triad_count=circular,
        total_triads=total,
        transitivity_index=transitivity_index,
    )
