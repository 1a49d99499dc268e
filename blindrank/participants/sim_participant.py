"""
Simulated participant implementation.

Votes from latent ground-truth scores with Gaussian perception noise, for
simulations and tests.
"""

from collections.abc import Sequence

import numpy as np
from typing_extensions import override

from ..exceptions import ConfigurationError, ParticipantError
from ..interfaces import Participant
from ..logging_config import get_logger
from ..models import Item

logger = get_logger("sim_participant")


class SimulatedParticipant(Participant):
    """
    Simulated participant for testing purposes.

    Each shown item's true score is perturbed with N(0, noise^2) and the
    item with the highest perceived score wins.
    """

    def __init__(self, ground_truth: dict[str, float], noise: float = 0.0, seed: int | None = None):
        """
        Initialize simulated participant.

        Args:
            ground_truth: Dict mapping item_id to true quality score
            noise: Standard deviation of the perception noise (0 = always right)
            seed: Seed for the noise generator
        """
        if noise < 0:
            raise ConfigurationError(f"noise must be non-negative, got {noise}")

        self.ground_truth: dict[str, float] = dict(ground_truth)
        self.noise: float = noise
        self.participant_id: str = "simulated"
        self._rng: np.random.Generator = np.random.default_rng(seed)

    @override
    def choose(self, items: Sequence[Item]) -> str:
        if not items:
            raise ParticipantError("Cannot choose from an empty unit")

        true_scores = np.array([self.ground_truth.get(item.id, 0.0) for item in items])
        if self.noise > 0:
            perceived = true_scores + self._rng.normal(0.0, self.noise, size=len(items))
        else:
            perceived = true_scores

        winner = items[int(np.argmax(perceived))]
        logger.debug(
            f"Chose {winner.id} from {[item.id for item in items]} "
            f"(true {self.ground_truth.get(winner.id, 0.0):.3f})"
        )
        return winner.id

    def get_ground_truth(self) -> dict[str, float]:
        return self.ground_truth.copy()
