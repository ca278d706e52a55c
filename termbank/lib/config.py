"""
Expansion engine configuration.

Thresholds and limits are read from environment variables (optionally via a
.env file loaded by the entry point) with the defaults the vocabulary
workflow was tuned against.

Usage:
    from termbank.lib.config import get_settings

    settings = get_settings()
    if count >= settings.min_frequency:
        ...
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={raw!r}, using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}={raw!r}, using default {default}")
        return default


@dataclass
class ExpansionSettings:
    """Tunable parameters of the expansion and review workflow."""

    min_frequency: int = 10
    similarity_threshold: float = 0.8
    review_margin: float = 0.1
    similarity_floor: float = 0.5
    oracle_batch_size: int = 5
    oracle_timeout: float = 30.0
    max_bound_film_types: int = 5
    min_ai_confidence: float = 0.65
    term_length_warn: int = 500
    term_length_max: int = 1000
    backend: str = "postgres"

    @classmethod
    def from_env(cls) -> "ExpansionSettings":
        """Build settings from VOCAB_* environment variables."""
        return cls(
            min_frequency=_env_int("VOCAB_MIN_FREQUENCY", 10),
            similarity_threshold=_env_float("VOCAB_SIMILARITY_THRESHOLD", 0.8),
            review_margin=_env_float("VOCAB_REVIEW_MARGIN", 0.1),
            similarity_floor=_env_float("VOCAB_SIMILARITY_FLOOR", 0.5),
            oracle_batch_size=max(1, _env_int("VOCAB_ORACLE_BATCH_SIZE", 5)),
            oracle_timeout=_env_float("VOCAB_ORACLE_TIMEOUT", 30.0),
            max_bound_film_types=_env_int("VOCAB_MAX_BOUND_FILM_TYPES", 5),
            min_ai_confidence=_env_float("VOCAB_MIN_AI_CONFIDENCE", 0.65),
            term_length_warn=_env_int("VOCAB_TERM_LENGTH_WARN", 500),
            term_length_max=_env_int("VOCAB_TERM_LENGTH_MAX", 1000),
            backend=os.getenv("TERM_STORE_BACKEND", "postgres").lower(),
        )


_settings: Optional[ExpansionSettings] = None


def get_settings() -> ExpansionSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = ExpansionSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings (tests change the environment between cases)."""
    global _settings
    _settings = None
