"""
Configuration for the flight scheduler.

Loads settings from environment variables (optionally via a .env file)
and exposes them as an immutable SchedulerConfig.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class SchedulerConfig:
    """
    Immutable scheduler configuration.

    Attributes:
        reference_base_url: Reference-manager REST base URL. None selects
            the in-memory reference data adapter.
        reference_token: Static bearer token for the reference manager.
        reference_timeout_ms: Per-request timeout for reference lookups.
        db_path: SQLite file for flights. None selects the in-memory store.
        min_connection_minutes: Shortest allowed gap between two legs.
        max_connection_minutes: Longest allowed gap between two legs.
        max_segments: Maximum number of legs in one itinerary.
        log_level: Root logging level name.
    """

    reference_base_url: Optional[str] = None
    reference_token: Optional[str] = None
    reference_timeout_ms: int = 5000
    db_path: Optional[str] = None
    min_connection_minutes: int = 30
    max_connection_minutes: int = 1440
    max_segments: int = 10
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.reference_timeout_ms <= 0:
            raise ValueError(
                f"reference_timeout_ms must be > 0, got {self.reference_timeout_ms}"
            )
        if self.min_connection_minutes < 0:
            raise ValueError(
                f"min_connection_minutes must be >= 0, got {self.min_connection_minutes}"
            )
        if self.max_connection_minutes < self.min_connection_minutes:
            raise ValueError(
                f"max_connection_minutes ({self.max_connection_minutes}) must be >= "
                f"min_connection_minutes ({self.min_connection_minutes})"
            )
        if self.max_segments < 2:
            raise ValueError(f"max_segments must be >= 2, got {self.max_segments}")
        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG,
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
            logging.CRITICAL,
        ):
            raise ValueError(f"Unknown log level: {self.log_level}")

    @property
    def reference_timeout_seconds(self) -> float:
        """Reference lookup timeout in seconds."""
        return self.reference_timeout_ms / 1000.0

    @classmethod
    def from_env(cls) -> "SchedulerConfig":
        """
        Build configuration from the environment.

        Reads a .env file first if one is present; real environment
        variables take precedence.

        Returns:
            Validated SchedulerConfig instance.
        """
        load_dotenv()
        return cls(
            reference_base_url=os.getenv("REFERENCE_MANAGER_BASE_URL") or None,
            reference_token=os.getenv("REFERENCE_SERVICE_TOKEN") or None,
            reference_timeout_ms=_env_int("REFERENCE_TIMEOUT_MS", 5000),
            db_path=os.getenv("FLIGHT_DB_PATH") or None,
            min_connection_minutes=_env_int("MIN_CONNECTION_MINUTES", 30),
            max_connection_minutes=_env_int("MAX_CONNECTION_MINUTES", 1440),
            max_segments=_env_int("MAX_ITINERARY_SEGMENTS", 10),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger for console output.

    Only entry points call this; library modules just create their
    module-level loggers.

    Args:
        level: Logging level name (e.g. "DEBUG", "INFO").
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    if any(getattr(h, "_flight_scheduler", False) for h in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._flight_scheduler = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)
