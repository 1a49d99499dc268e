"""
Study configuration.

StudyConfig carries the scalar knobs the ranking and scheduling code reads.
Studies stored as JSON can be loaded with load_study_config.
"""

import json
from dataclasses import dataclass
from pathlib import Path

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import NotRequired, TypedDict

from .exceptions import ConfigurationError
from .logging_config import get_logger
from .models import ComparisonMode

logger = get_logger("config")


class StudyConfigData(TypedDict):
    """JSON shape accepted by load_study_config."""
    k_factor: NotRequired[float]
    adaptive_k_factor: NotRequired[bool]
    min_exposures_per_item: NotRequired[int]
    min_total_comparisons: NotRequired[int | None]
    comparison_mode: NotRequired[ComparisonMode]
    allow_continued_voting: NotRequired[bool]
    exclude_flagged_from_elo: NotRequired[bool]
    min_response_time_ms: NotRequired[int]
    max_response_time_ms: NotRequired[int]


_study_config_adapter = TypeAdapter(StudyConfigData)


@dataclass(frozen=True)
class StudyConfig:
    """Configuration for one study."""

    k_factor: float = 32.0
    adaptive_k_factor: bool = False
    min_exposures_per_item: int = 10
    min_total_comparisons: int | None = None  # None = 10 x item count
    comparison_mode: ComparisonMode = ComparisonMode.PAIR
    allow_continued_voting: bool = True
    exclude_flagged_from_elo: bool = False
    min_response_time_ms: int = 500  # faster votes are flagged too_fast
    max_response_time_ms: int = 300_000  # slower votes are flagged too_slow

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.k_factor <= 0:
            raise ConfigurationError(f"k_factor must be positive, got {self.k_factor}")
        if self.min_exposures_per_item < 0:
            raise ConfigurationError(
                f"min_exposures_per_item must be non-negative, got {self.min_exposures_per_item}"
            )
        if self.min_total_comparisons is not None and self.min_total_comparisons < 0:
            raise ConfigurationError(
                f"min_total_comparisons must be non-negative, got {self.min_total_comparisons}"
            )
        if self.min_response_time_ms < 0 or self.max_response_time_ms < self.min_response_time_ms:
            raise ConfigurationError(
                f"Invalid response time window: {self.min_response_time_ms}-{self.max_response_time_ms} ms"
            )
        if not isinstance(self.comparison_mode, ComparisonMode):
            try:
                mode = ComparisonMode(self.comparison_mode)
            except ValueError as e:
                raise ConfigurationError(f"Unknown comparison_mode: {self.comparison_mode}") from e
            object.__setattr__(self, "comparison_mode", mode)


def load_study_config(path: str | Path) -> StudyConfig:
    """
    Load and validate a study configuration from a JSON file.

    Args:
        path: Path to a JSON object with StudyConfig keys

    Returns:
        Validated StudyConfig

    Raises:
        ConfigurationError: If the file is unreadable or fails validation
    """
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read study config {config_path}: {e}") from e

    try:
        data = _study_config_adapter.validate_python(raw)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid study config {config_path}: {e}") from e

    logger.info(f"Loaded study config from {config_path}: {data}")
    return StudyConfig(**data)
