"""
CLI entry point for blindrank.

Simulates a blind comparison study: generates items with hidden quality
scores, runs participant sessions through the scheduler and prints the
resulting ranking with its publishability verdict.
"""

import argparse
import math
import sys
from argparse import Namespace
from dataclasses import replace
from typing import TypedDict

import numpy as np
from prettytable import PrettyTable

from .config import StudyConfig, load_study_config
from .exceptions import ConfigurationError
from .interfaces import Participant, Ranker
from .logging_config import get_logger, setup_logging
from .models import ComparisonMode, Item
from .participants.dummy_participant import DummyParticipant
from .participants.sim_participant import SimulatedParticipant
from .rankers.bradley_terry import BradleyTerryRanker
from .rankers.elo import EloRanker
from .simulation import SimulationConfig, SimulationReport, StudySimulator, spearman_correlation


class CLIArgs(TypedDict):
    """Typed representation of parsed CLI arguments."""
    items: int
    categories: int
    sessions: int
    mode: str | None
    ranker: str
    participant: str
    noise: float
    seed: int | None
    study_config: str | None
    debug: bool
    log_level: str
    no_log_file: bool


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="blindrank - simulate a blind pairwise/quad comparison study"
    )

    _ = parser.add_argument("--items", type=int, default=20, help="Number of items (default: 20)")
    _ = parser.add_argument(
        "--categories",
        type=int,
        default=1,
        help="Split items round-robin into this many categories (default: 1)",
    )
    _ = parser.add_argument(
        "--sessions", type=int, default=5, help="Number of participant sessions (default: 5)"
    )
    _ = parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ComparisonMode],
        help="Comparison mode (default: from study config, else pair)",
    )
    _ = parser.add_argument(
        "--ranker", choices=["elo", "bt"], default="elo", help="Ranking algorithm (default: elo)"
    )
    _ = parser.add_argument(
        "--participant",
        choices=["simulated", "deterministic", "left", "random"],
        default="simulated",
        help="Participant model (default: simulated)",
    )
    _ = parser.add_argument(
        "--noise",
        type=float,
        default=0.5,
        help="Perception noise of the simulated participant (default: 0.5)",
    )
    _ = parser.add_argument("--seed", type=int, help="Random seed for a reproducible run")
    _ = parser.add_argument("--study-config", help="Path to a study config JSON file")
    _ = parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level (default: INFO)",
    )
    _ = parser.add_argument("--no-log-file", action="store_true", help="Do not write blindrank.log")

    return parser.parse_args(argv)


def args_to_typed(ns: Namespace) -> CLIArgs:
    """Convert argparse Namespace to typed CLIArgs."""
    return CLIArgs(
        items=ns.items,
        categories=ns.categories,
        sessions=ns.sessions,
        mode=ns.mode,
        ranker=ns.ranker,
        participant=ns.participant,
        noise=ns.noise,
        seed=ns.seed,
        study_config=ns.study_config,
        debug=ns.debug,
        log_level=ns.log_level,
        no_log_file=ns.no_log_file,
    )


def validate_args(args: CLIArgs) -> None:
    """Validate CLI parameters, exiting with status 1 on bad input."""
    logger = get_logger("validate_args")

    if args["items"] < 2:
        logger.error(f"items must be at least 2, got {args['items']}")
        print(f"Error: items must be at least 2, got {args['items']}")
        sys.exit(1)
    if not 1 <= args["categories"] <= args["items"]:
        logger.error(f"categories must be between 1 and items, got {args['categories']}")
        print(f"Error: categories must be between 1 and {args['items']}, got {args['categories']}")
        sys.exit(1)
    if args["noise"] < 0:
        logger.error(f"noise must be non-negative, got {args['noise']}")
        print(f"Error: noise must be non-negative, got {args['noise']}")
        sys.exit(1)


def build_study(args: CLIArgs) -> tuple[list[Item], dict[str, float]]:
    """Generate item snapshots and their hidden quality scores."""
    rng = np.random.default_rng(args["seed"])
    width = len(str(args["items"]))

    items: list[Item] = []
    ground_truth: dict[str, float] = {}
    for index in range(args["items"]):
        item_id = f"item-{index + 1:0{width}d}"
        category_id = f"cat-{index % args['categories'] + 1}" if args["categories"] > 1 else None
        items.append(Item(id=item_id, category_id=category_id))
        ground_truth[item_id] = float(rng.normal())
    return items, ground_truth


def wire_components(
    args: CLIArgs, ground_truth: dict[str, float]
) -> tuple[StudyConfig, Participant, Ranker, SimulationConfig]:
    """Wire dependency injection components."""
    logger = get_logger("wire_components")

    config = load_study_config(args["study_config"]) if args["study_config"] else StudyConfig()
    if args["mode"] is not None:
        config = replace(config, comparison_mode=ComparisonMode(args["mode"]))
    logger.info(f"Study configuration: {config}")

    if args["participant"] == "simulated":
        participant: Participant = SimulatedParticipant(ground_truth, noise=args["noise"], seed=args["seed"])
    else:
        participant = DummyParticipant(mode=args["participant"], seed=42 if args["seed"] is None else args["seed"])
    logger.info(f"Participant: {participant.participant_id}")

    ranker: Ranker = BradleyTerryRanker() if args["ranker"] == "bt" else EloRanker(config)
    sim_config = SimulationConfig(sessions=args["sessions"], seed=args["seed"])
    return config, participant, ranker, sim_config


def format_std_error(value: float) -> str:
    return f"{value:.1f}" if math.isfinite(value) else "inf"


def print_report(report: SimulationReport, ground_truth: dict[str, float]) -> None:
    """Print the final ranking table and the diagnostics."""
    true_order = sorted(ground_truth, key=lambda item_id: ground_truth[item_id], reverse=True)
    true_rank = {item_id: position for position, item_id in enumerate(true_order, 1)}

    table = PrettyTable()
    table.field_names = ["Rank", "Item", "Score", "Std Err", "Comparisons", "Win%", "Confidence", "True Rank"]
    for column in ("Rank", "Score", "Std Err", "Comparisons", "Win%", "True Rank"):
        table.align[column] = "r"

    for row in report.rankings:
        table.add_row([
            row.rank,
            row.item_id,
            f"{row.score:.1f}",
            format_std_error(row.std_error),
            row.comparison_count,
            f"{row.win_rate * 100:.1f}%",
            row.confidence,
            true_rank.get(row.item_id, "-"),
        ])
    print(table)

    threshold = report.threshold
    conditions = threshold.conditions
    print("\nPublishability:")
    print("-" * 40)
    print(f"Data status: {threshold.data_status.value}")
    print(
        f"Min exposures: {conditions.min_exposures.min_observed}/{conditions.min_exposures.required} "
        f"({conditions.min_exposures.items_below_threshold} item(s) below)"
    )
    print(
        f"Total comparisons: {conditions.total_comparisons.observed}/{conditions.total_comparisons.required}"
    )
    print(f"Graph components: {conditions.graph_connectivity.component_count}")

    transitivity = report.transitivity
    if transitivity.computed:
        index = "n/a" if transitivity.transitivity_index is None else f"{transitivity.transitivity_index:.3f}"
        print(
            f"Circular triads: {transitivity.circular_triad_count}/{transitivity.total_triads} "
            f"(transitivity index {index})"
        )
    else:
        print("Circular triads: not computed (too many items)")

    print(f"Bradley-Terry: {report.bt_result.iterations} iterations, converged={report.bt_result.converged}")
    print(f"Units per session: {report.units_per_session}")
    print(f"Spearman vs ground truth: {spearman_correlation(report.rankings, ground_truth):.3f}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = args_to_typed(parse_args(argv))
    setup_logging(level=args["log_level"], debug=args["debug"], log_dir=None if args["no_log_file"] else ".")
    logger = get_logger("main")

    try:
        validate_args(args)
        items, ground_truth = build_study(args)
        config, participant, ranker, sim_config = wire_components(args, ground_truth)

        print("blindrank - blind comparison study simulation")
        print("=" * 60)
        print(f"Items: {len(items)} in {args['categories']} categor{'y' if args['categories'] == 1 else 'ies'}")
        print(f"Sessions: {sim_config.sessions}")
        print(f"Mode: {config.comparison_mode.value}")
        print(f"Ranker: {ranker.name}")
        print(f"Participant: {participant.participant_id}")
        print("=" * 60)

        simulator = StudySimulator(items, participant, ranker, config, sim_config)
        report = simulator.run()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Simulation interrupted by user")
        print("\nSimulation interrupted by user")
        sys.exit(1)

    print("\nFinal Rankings:")
    print_report(report, ground_truth)


if __name__ == "__main__":
    main()
