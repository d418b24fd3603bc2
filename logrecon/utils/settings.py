"""
Environment-backed defaults for the reconciliation CLI.

Command-line flags override every value read here.
"""

import os
from dataclasses import dataclass
from typing import Optional

from logrecon.reconciliation.windower import MAX_BLOCKS_PER_REQUEST

DEFAULT_TIMEOUT_SECONDS = 30.0


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass(frozen=True)
class RunSettings:
    """Defaults for endpoints, limits, logging and metrics."""

    chain_1: Optional[str] = None
    chain_2: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_window_size: int = MAX_BLOCKS_PER_REQUEST
    log_level: str = "info"
    log_file: Optional[str] = None
    json_logging: bool = False
    metrics_port: Optional[int] = None
    pushgateway: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RunSettings":
        """
        Read settings from LOGRECON_* variables and JSON_LOGGING.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        return cls(
            chain_1=os.getenv("LOGRECON_CHAIN_1") or None,
            chain_2=os.getenv("LOGRECON_CHAIN_2") or None,
            timeout=_env_float("LOGRECON_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            max_window_size=_env_int("LOGRECON_MAX_WINDOW", MAX_BLOCKS_PER_REQUEST),
            log_level=os.getenv("LOGRECON_LOG_LEVEL", "info"),
            log_file=os.getenv("LOGRECON_LOG_FILE") or None,
            json_logging=_env_bool("JSON_LOGGING"),
            metrics_port=_env_int("LOGRECON_METRICS_PORT"),
            pushgateway=os.getenv("LOGRECON_PUSHGATEWAY") or None,
        )
