"""
Selector implementations.

Provides implementations of the Selector interface for choosing which items
a participant sees next.

Available implementations:
- PairSelector: Coverage-first pair selection with streak limits, variety
  penalties and left/right balancing
- QuadSelector: Four-item selection favouring unseen and under-compared items
"""

from .pair_selector import PairSelector, select_next_pair, select_next_pair_winners_only
from .quad_selector import QuadSelector, select_next_quad, select_next_quad_winners_only

__all__ = [
    "PairSelector",
    "QuadSelector",
    "select_next_pair",
    "select_next_pair_winners_only",
    "select_next_quad",
    "select_next_quad_winners_only",
]
