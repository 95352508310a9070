"""Configuration for the refresh orchestrator.

Provides environment-based configuration for the intervals between
refresh, reconciliation and maintenance cycles.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _get_int_env(
    name: str,
    default: int,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """Parse an integer from an environment variable with validation.

    Args:
        name: Environment variable name.
        default: Default value if env var is not set.
        min_val: Minimum allowed value (inclusive), or None for no minimum.
        max_val: Maximum allowed value (inclusive), or None for no maximum.

    Returns:
        The parsed and validated integer value.

    Raises:
        ValueError: If the value cannot be parsed as an integer or is out of range.
    """
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for {name}: '{raw}' is not a valid integer"
        )

    if min_val is not None and value < min_val:
        raise ValueError(
            f"Invalid value for {name}: {value} must be >= {min_val}"
        )

    if max_val is not None and value > max_val:
        raise ValueError(
            f"Invalid value for {name}: {value} must be <= {max_val}"
        )

    return value


@dataclass
class PipelineConfig:
    """Timing for the long-running refresh loop.

    All settings can be overridden via environment variables.
    """

    # Feed refresh followed by a download run
    refresh_interval_seconds: int = 1800  # 30 minutes

    # Disk reconciliation of downloaded episodes
    reconcile_interval_seconds: int = 3600  # 1 hour

    # Stale lock reclaim, file size backfill, image caching
    maintenance_interval_seconds: int = 21600  # 6 hours

    # Sleep between loop iterations
    idle_wait_seconds: int = 10

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create configuration from environment variables.

        Returns:
            PipelineConfig instance with values from environment or defaults.

        Raises:
            ValueError: If any environment variable has an invalid value.
        """
        refresh_interval_seconds = _get_int_env(
            "PIPELINE_REFRESH_INTERVAL_SECONDS", 1800, min_val=1
        )
        reconcile_interval_seconds = _get_int_env(
            "PIPELINE_RECONCILE_INTERVAL_SECONDS", 3600, min_val=1
        )
        maintenance_interval_seconds = _get_int_env(
            "PIPELINE_MAINTENANCE_INTERVAL_SECONDS", 21600, min_val=1
        )
        idle_wait_seconds = _get_int_env(
            "PIPELINE_IDLE_WAIT_SECONDS", 10, min_val=0
        )

        return cls(
            refresh_interval_seconds=refresh_interval_seconds,
            reconcile_interval_seconds=reconcile_interval_seconds,
            maintenance_interval_seconds=maintenance_interval_seconds,
            idle_wait_seconds=idle_wait_seconds,
        )
