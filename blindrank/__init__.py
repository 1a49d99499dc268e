"""
blindrank - Blind Comparative Ranking Engine

Ranks items from blind pairwise or four-way votes with Elo and
Bradley-Terry, schedules coverage-first comparison sessions, and certifies
when the collected data is publishable.
"""

from .config import StudyConfig, load_study_config
from .diagnostics.publishability import DataStatus, ThresholdResult
from .interfaces import Participant, Ranker, Selector
from .models import Comparison, ComparisonMode, Item, MatchPair, MatchQuad, RankedItem
from .scheduling import ScheduleResult, ScheduleStatus, next_unit

__version__ = "0.1.0"
__all__ = [
    "Comparison",
    "ComparisonMode",
    "DataStatus",
    "Item",
    "MatchPair",
    "MatchQuad",
    "Participant",
    "RankedItem",
    "Ranker",
    "ScheduleResult",
    "ScheduleStatus",
    "Selector",
    "StudyConfig",
    "ThresholdResult",
    "load_study_config",
    "next_unit",
]
