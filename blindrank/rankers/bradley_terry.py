"""
Bradley-Terry ranker implementation.

Estimates latent abilities pi_i with P(i beats j) = pi_i / (pi_i + pi_j)
using the Minorization-Maximization algorithm (Hunter 2004), with standard
errors from the diagonal of the Fisher information.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import replace

from typing_extensions import override

from ..interfaces import Ranker
from ..logging_config import get_logger
from ..models import BTResult, Comparison, Item, RankedItem
from .elo import DEFAULT_RATING, confidence_level, rank_key

logger = get_logger("bradley_terry")

ZERO_WIN_FLOOR = 1e-10
LOG_FLOOR = 1e-20
DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_TOLERANCE = 1e-8
ELO_SCALE = 400.0 / math.log(10)

ComparisonRecord = tuple[str, str]  # (winner_id, loser_id)


def _as_records(comparisons: Iterable[ComparisonRecord | Comparison]) -> list[ComparisonRecord]:
    records: list[ComparisonRecord] = []
    for comp in comparisons:
        if isinstance(comp, Comparison):
            records.append((comp.winner_id, comp.loser_id))
        else:
            winner_id, loser_id = comp
            records.append((winner_id, loser_id))
    return records


def estimate_bradley_terry(
    comparisons: Iterable[ComparisonRecord | Comparison],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> BTResult:
    """
    Estimate Bradley-Terry abilities from pairwise outcomes.

    The MM update for item i is:
        pi_i <- W_i / sum_j n_ij / (pi_i + pi_j)
    where W_i is the total wins of i and n_ij the games between i and j.
    Items without a win are pinned to a tiny floor instead of dividing by
    zero. After each sweep the abilities are rescaled to geometric mean 1.

    Args:
        comparisons: (winner_id, loser_id) tuples or Comparison records
        max_iterations: Maximum number of MM sweeps
        tolerance: Convergence threshold on the largest normalized change

    Returns:
        BTResult with log-scale abilities, standard errors and convergence info.
        Non-convergence is reported, and the last iterate is still returned.
    """
    records = _as_records(comparisons)

    items: list[str] = []
    wins: dict[str, int] = {}
    # n_ij stored symmetrically: neighbors[i][j] == neighbors[j][i]
    neighbors: dict[str, dict[str, int]] = {}
    for winner_id, loser_id in records:
        for item_id in (winner_id, loser_id):
            if item_id not in neighbors:
                items.append(item_id)
                neighbors[item_id] = {}
                wins[item_id] = 0
        wins[winner_id] += 1
        neighbors[winner_id][loser_id] = neighbors[winner_id].get(loser_id, 0) + 1
        neighbors[loser_id][winner_id] = neighbors[loser_id].get(winner_id, 0) + 1

    n = len(items)
    if n < 2:
        return BTResult(
            abilities={},
            standard_errors={},
            iterations=0,
            converged=True,
            log_likelihood=0.0,
        )

    pi = {item_id: 1.0 for item_id in items}
    iterations = 0
    converged = False

    for iteration in range(max_iterations):
        iterations = iteration + 1
        max_change = 0.0
        new_pi: dict[str, float] = {}

        for i in items:
            w_i = wins[i]
            if w_i == 0:
                new_pi[i] = ZERO_WIN_FLOOR
                continue

            denom = sum(n_ij / (pi[i] + pi[j]) for j, n_ij in neighbors[i].items())
            if denom == 0:
                new_pi[i] = pi[i]
                continue

            new_value = w_i / denom
            new_pi[i] = new_value
            max_change = max(max_change, abs(new_value - pi[i]))

        log_mean = sum(math.log(max(value, LOG_FLOOR)) for value in new_pi.values()) / n
        norm_factor = math.exp(log_mean)
        for item_id, value in new_pi.items():
            pi[item_id] = value / norm_factor

        if max_change / norm_factor < tolerance:
            converged = True
            break

    if converged:
        logger.debug(f"Bradley-Terry converged after {iterations} iterations over {n} items")
    else:
        logger.warning(
            f"Bradley-Terry did not converge within {max_iterations} iterations over {n} items"
        )

    abilities = {item_id: math.log(max(value, LOG_FLOOR)) for item_id, value in pi.items()}
    return BTResult(
        abilities=abilities,
        standard_errors=_fisher_standard_errors(pi, neighbors),
        iterations=iterations,
        converged=converged,
        log_likelihood=_log_likelihood(pi, records),
    )


def _fisher_standard_errors(
    pi: dict[str, float], neighbors: dict[str, dict[str, int]]
) -> dict[str, float]:
    """SE(log pi_i) = 1 / sqrt(I_ii * pi_i^2) with I_ii = sum_j n_ij pi_j / (pi_i + pi_j)^2."""
    standard_errors: dict[str, float] = {}
    for i, pi_i in pi.items():
        fisher_info = 0.0
        for j, n_ij in neighbors[i].items():
            pi_j = pi[j]
            fisher_info += n_ij * pi_j / ((pi_i + pi_j) ** 2)

        if fisher_info > 0:
            standard_errors[i] = 1.0 / math.sqrt(fisher_info * pi_i * pi_i)
        else:
            standard_errors[i] = math.inf
    return standard_errors


def _log_likelihood(pi: dict[str, float], records: list[ComparisonRecord]) -> float:
    """L = sum over outcomes of log(pi_winner) - log(pi_winner + pi_loser)."""
    total = 0.0
    for winner_id, loser_id in records:
        pi_w = pi.get(winner_id, ZERO_WIN_FLOOR)
        pi_l = pi.get(loser_id, ZERO_WIN_FLOOR)
        total += math.log(pi_w) - math.log(pi_w + pi_l)
    return total


def bt_win_probability(ability_a: float, ability_b: float) -> float:
    """Probability that A beats B given log-scale abilities (sigmoid of the gap)."""
    diff = ability_a - ability_b
    if diff >= 0:
        return 1.0 / (1.0 + math.exp(-diff))
    exp_diff = math.exp(diff)
    return exp_diff / (1.0 + exp_diff)


def bt_ability_to_elo_scale(ability: float) -> float:
    """Map a log-ability to the Elo scale: an ln(10) gap becomes 400 points, 0 becomes 1500."""
    return DEFAULT_RATING + ability * ELO_SCALE


class BradleyTerryRanker(Ranker):
    """
    Bradley-Terry ranker.

    Re-estimates abilities from the whole (non-test) comparison history on
    every call. Scores are reported on the Elo scale so the two rankers are
    interchangeable.
    """

    name = "bt"

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS, tolerance: float = DEFAULT_TOLERANCE):
        self.max_iterations: int = max_iterations
        self.tolerance: float = tolerance
        self.last_result: BTResult | None = None

    def estimate(self, comparisons: Sequence[Comparison]) -> BTResult:
        """Estimate abilities over the comparisons that are not test-session votes."""
        valid = [comp for comp in comparisons if not comp.is_test_session]
        self.last_result = estimate_bradley_terry(valid, self.max_iterations, self.tolerance)
        return self.last_result

    @override
    def rank(self, items: Sequence[Item], comparisons: Sequence[Comparison]) -> list[RankedItem]:
        """Rank items by Elo-scaled ability; never-compared items sit at 1500 with infinite error."""
        result = self.estimate(comparisons)

        scored: list[tuple[float, Item, float]] = []
        for item in items:
            ability = result.abilities.get(item.id, 0.0)
            std_error = result.standard_errors.get(item.id, math.inf) * ELO_SCALE
            # Carry the ability on the snapshot so ties fall back to the Elo ordering
            scored.append((bt_ability_to_elo_scale(ability), replace(item, bt_ability=ability), std_error))

        scored.sort(key=lambda entry: (-entry[0], rank_key(entry[1])))
        return [
            RankedItem(
                rank=position,
                item_id=item.id,
                score=score,
                std_error=std_error,
                comparison_count=item.comparison_count,
                win_rate=item.win_rate,
                confidence=confidence_level(item.comparison_count),
            )
            for position, (score, item, std_error) in enumerate(scored, 1)
        ]
