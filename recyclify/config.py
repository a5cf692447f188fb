"""
Configuration for the detection pipeline
Default settings, JSON config loading and the PipelineConfig passed to the scheduler
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.5
DEFAULT_EXCLUDED_CATEGORIES = frozenset({"person"})
DEFAULT_RECYCLABLE_CATEGORIES = frozenset({
    "bottle", "can", "cardboard", "paper", "cup", "box", "wine glass", "plastic bag",
    "bowl", "fork", "knife", "spoon", "plate", "banana", "apple", "orange",
})
DEFAULT_FALLBACK_SIZE = (640, 480)
DEFAULT_REFRESH_RATE_HZ = 60.0


def _normalize(categories: Iterable[str], field_name: str) -> FrozenSet[str]:
    # A bare string would be split into single characters
    if isinstance(categories, str):
        raise ValueError(f"{field_name} must be a list of category names, got {categories!r}")
    return frozenset(name.strip().lower() for name in categories)


@dataclass(frozen=True)
class PipelineConfig:
    """Per-instance tuning for the detection pipeline"""
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    excluded_categories: FrozenSet[str] = DEFAULT_EXCLUDED_CATEGORIES
    recyclable_categories: FrozenSet[str] = DEFAULT_RECYCLABLE_CATEGORIES
    fallback_size: Tuple[int, int] = DEFAULT_FALLBACK_SIZE
    refresh_rate_hz: float = DEFAULT_REFRESH_RATE_HZ

    def __post_init__(self):
        if not 0.0 < self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be in (0, 1], got {self.confidence_threshold}"
            )
        if self.refresh_rate_hz <= 0:
            raise ValueError(f"refresh_rate_hz must be positive, got {self.refresh_rate_hz}")

        width, height = self.fallback_size
        if width <= 0 or height <= 0:
            raise ValueError(f"fallback_size must be positive, got {self.fallback_size}")

        # Category lookups are case-insensitive, store them lowercased
        for name in ("excluded_categories", "recyclable_categories"):
            object.__setattr__(self, name, _normalize(getattr(self, name), name))
        object.__setattr__(self, "fallback_size", (int(width), int(height)))

    @property
    def tick_interval(self) -> float:
        """Seconds between scheduler ticks"""
        return 1.0 / self.refresh_rate_hz

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "PipelineConfig":
        """Build from the 'pipeline' section of the application config"""
        return cls(
            confidence_threshold=float(config.get("confidence_threshold", DEFAULT_CONFIDENCE_THRESHOLD)),
            excluded_categories=config.get("excluded_categories", DEFAULT_EXCLUDED_CATEGORIES),
            recyclable_categories=config.get("recyclable_categories", DEFAULT_RECYCLABLE_CATEGORIES),
            fallback_size=tuple(config.get("fallback_size", DEFAULT_FALLBACK_SIZE)),
            refresh_rate_hz=float(config.get("refresh_rate_hz", DEFAULT_REFRESH_RATE_HZ)),
        )


def default_config() -> Dict[str, Any]:
    """Default application configuration"""
    return {
        "camera": {
            "source": "auto",
            "resolution": [640, 480],
            "fps": 30
        },
        "detector": {
            "model_path": None,
            "min_score": 0.1
        },
        "pipeline": {
            "confidence_threshold": DEFAULT_CONFIDENCE_THRESHOLD,
            "excluded_categories": sorted(DEFAULT_EXCLUDED_CATEGORIES),
            "recyclable_categories": sorted(DEFAULT_RECYCLABLE_CATEGORIES),
            "fallback_size": list(DEFAULT_FALLBACK_SIZE),
            "refresh_rate_hz": DEFAULT_REFRESH_RATE_HZ
        },
        "stats_log_interval_seconds": 10.0,
        "display": False,
        "log_dir": "logs",
        "log_level": "INFO"
    }


def merge_dicts(default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge user settings over defaults"""
    result = default.copy()
    for key, value in user.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from file or use defaults"""
    config = default_config()

    if config_path and Path(config_path).exists():
        try:
            with open(config_path, 'r') as f:
                user_config = json.load(f)
            return merge_dicts(config, user_config)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config {config_path}: {e}")
            logger.warning("Using default configuration")
    elif config_path:
        logger.warning(f"Config file not found: {config_path}, using defaults")

    return config
