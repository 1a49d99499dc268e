"""
Statistical diagnostics for comparison data.

Available diagnostics:
- graph: Connectivity and circular-triad analysis of the comparison graph
- publishability: Exposure/volume/connectivity data-sufficiency verdict
"""

from .graph import check_connectivity, detect_circular_triads
from .publishability import (
    DataStatus,
    ThresholdResult,
    calculate_data_status,
    calculate_elo_std_error,
    is_publishable_threshold,
)

__all__ = [
    "DataStatus",
    "ThresholdResult",
    "calculate_data_status",
    "calculate_elo_std_error",
    "check_connectivity",
    "detect_circular_triads",
    "is_publishable_threshold",
]
