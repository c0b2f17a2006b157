"""
Configuration module for the range-estimate engine.

Single source of truth for:
- Default estimation constants
- Staffing/budgeting knobs (cost rounding, tight-buffer threshold)
- Azure Blob settings for session storage
- Log level for the CLI / API

All values can be overridden via environment variables. The estimation
functions never read this module: callers build an EstimationConstants
value from it and pass that in explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

from .schema import DEFAULT_CONSTANTS, EstimationConstants


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class Config:
    """
    Runtime configuration for the range-estimate engine.

    All fields default from environment variables but can be overridden
    programmatically by constructing Config(...) manually if needed.
    """

    # Estimation constants
    expected_case_position: float = DEFAULT_CONSTANTS.expected_case_position
    range_spread_divisor: float = DEFAULT_CONSTANTS.range_spread_divisor
    billable_hours_per_week: float = DEFAULT_CONSTANTS.billable_hours_per_week
    duration_scaling_power: float = DEFAULT_CONSTANTS.duration_scaling_power
    coordination_cost_per_pair: float = DEFAULT_CONSTANTS.coordination_cost_per_pair

    # Staffing
    cost_rounding_increment: float = 5000.0
    tight_buffer_fraction: float = 0.05
    default_week_count: int = 12

    # Azure Blob Storage (session files)
    azure_blob_connection_string: Optional[str] = None
    azure_blob_container_name: Optional[str] = None

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """
        Construct a Config object by reading environment variables.

        Environment variables (all optional):
        - RE_EXPECTED_CASE_POSITION      (float)
        - RE_RANGE_SPREAD_DIVISOR        (float)
        - RE_BILLABLE_HOURS_PER_WEEK     (float)
        - RE_DURATION_SCALING_POWER      (float)
        - RE_COORDINATION_COST_PER_PAIR  (float)
        - RE_COST_ROUNDING_INCREMENT     (float)
        - RE_TIGHT_BUFFER_FRACTION       (float)
        - RE_DEFAULT_WEEK_COUNT          (int)
        - RE_AZURE_BLOB_CONNECTION_STRING
        - RE_AZURE_BLOB_CONTAINER_NAME
        - RE_LOG_LEVEL                   (DEBUG/INFO/WARNING/...)
        """
        d = cls()
        return cls(
            expected_case_position=_get_env_float(
                "RE_EXPECTED_CASE_POSITION", d.expected_case_position
            ),
            range_spread_divisor=_get_env_float(
                "RE_RANGE_SPREAD_DIVISOR", d.range_spread_divisor
            ),
            billable_hours_per_week=_get_env_float(
                "RE_BILLABLE_HOURS_PER_WEEK", d.billable_hours_per_week
            ),
            duration_scaling_power=_get_env_float(
                "RE_DURATION_SCALING_POWER", d.duration_scaling_power
            ),
            coordination_cost_per_pair=_get_env_float(
                "RE_COORDINATION_COST_PER_PAIR", d.coordination_cost_per_pair
            ),
            cost_rounding_increment=_get_env_float(
                "RE_COST_ROUNDING_INCREMENT", d.cost_rounding_increment
            ),
            tight_buffer_fraction=_get_env_float(
                "RE_TIGHT_BUFFER_FRACTION", d.tight_buffer_fraction
            ),
            default_week_count=_get_env_int(
                "RE_DEFAULT_WEEK_COUNT", d.default_week_count
            ),
            azure_blob_connection_string=os.getenv(
                "RE_AZURE_BLOB_CONNECTION_STRING"
            ),
            azure_blob_container_name=os.getenv(
                "RE_AZURE_BLOB_CONTAINER_NAME"
            ),
            log_level=os.getenv("RE_LOG_LEVEL", d.log_level).upper(),
        )

    def estimation_constants(self) -> EstimationConstants:
        """Immutable constants value to hand to the estimation functions."""
        return EstimationConstants(
            expected_case_position=self.expected_case_position,
            range_spread_divisor=self.range_spread_divisor,
            billable_hours_per_week=self.billable_hours_per_week,
            duration_scaling_power=self.duration_scaling_power,
            coordination_cost_per_pair=self.coordination_cost_per_pair,
        )


# Convenience singleton-style accessor if you want a shared config
_DEFAULT_CONFIG: Optional[Config] = None


def get_config(force_reload: bool = False) -> Config:
    """
    Return a process-wide Config instance.

    Use `force_reload=True` if environment variables changed at runtime
    and you want to refresh.
    """
    global _DEFAULT_CONFIG
    if _DEFAULT_CONFIG is None or force_reload:
        _DEFAULT_CONFIG = Config.from_env()
    return _DEFAULT_CONFIG
