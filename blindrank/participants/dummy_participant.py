"""
Dummy participant implementation for testing.

Provides deterministic, position-biased and random voting.
"""

import random
from collections.abc import Sequence

from typing_extensions import override

from ..exceptions import ConfigurationError, ParticipantError
from ..interfaces import Participant
from ..models import Item

MODES = ("deterministic", "left", "random")


class DummyParticipant(Participant):
    """
    Dummy participant for testing purposes.

    Modes:
        deterministic: smallest item id wins
        left: the first displayed item wins (worst-case position bias)
        random: uniform choice
    """

    def __init__(self, mode: str = "deterministic", seed: int = 42):
        if mode not in MODES:
            raise ConfigurationError(f"Unknown mode: {mode} (expected one of {', '.join(MODES)})")

        self.mode: str = mode
        self.participant_id: str = f"dummy_{mode}"
        self._rng: random.Random = random.Random(seed)

    @override
    def choose(self, items: Sequence[Item]) -> str:
        if not items:
            raise ParticipantError("Cannot choose from an empty unit")

        if self.mode == "deterministic":
            return min(item.id for item in items)
        if self.mode == "left":
            return items[0].id
        return self._rng.choice(items).id
