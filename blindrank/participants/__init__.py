"""
Participant implementations.
"""

from .dummy_participant import DummyParticipant
from .sim_participant import SimulatedParticipant

__all__ = [
    "DummyParticipant",
    "SimulatedParticipant",
]
