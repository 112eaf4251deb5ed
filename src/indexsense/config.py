"""
Configuration system for IndexSense.

Every analyzer receives its thresholds through an explicit AdvisorConfig
rather than reading module-level constants, so a run is fully determined
by (snapshot, config).

Sources, in increasing precedence:
- Field defaults
- Environment variables (INDEXSENSE_*)
- Optional JSON/YAML config file (INDEXSENSE_CONFIG_FILE)
- Per-run overrides (CLI flags, AdvisorConfig.with_overrides)

Usage:
    from indexsense.config import get_config

    config = get_config()
    strict = config.with_overrides(selectivity_low_threshold=0.1)
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from indexsense.exceptions import InvalidConfiguration

logger = logging.getLogger(__name__)

ENV_PREFIX = "INDEXSENSE_"


class AdvisorConfig(BaseModel):
    """
    Thresholds and limits for one advisory run.

    Invalid combinations raise InvalidConfiguration at construction time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    selectivity_high_threshold: float = Field(
        default=0.85,
        description="Selectivity at or above which an IndexScan is predicted",
    )
    selectivity_low_threshold: float = Field(
        default=0.05,
        description="Selectivity at or below which indexing is advised against",
    )
    maintenance_stale_days: int = Field(
        default=7,
        description="Days after which a vacuum/analyze timestamp is stale",
    )
    top_slow_queries: int = Field(
        default=20,
        description="Number of slowest queries to report",
    )

    @model_validator(mode="after")
    def _check_ranges(self) -> "AdvisorConfig":
        for key in ("selectivity_high_threshold", "selectivity_low_threshold"):
            value = getattr(self, key)
            if not 0.0 <= value <= 1.0:
                raise InvalidConfiguration(
                    f"{key} must be within [0, 1], got {value}",
                    config_key=key,
                )
        if self.selectivity_low_threshold > self.selectivity_high_threshold:
            raise InvalidConfiguration(
                "selectivity_low_threshold must not exceed selectivity_high_threshold "
                f"({self.selectivity_low_threshold} > {self.selectivity_high_threshold})",
                config_key="selectivity_low_threshold",
            )
        for key in ("maintenance_stale_days", "top_slow_queries"):
            value = getattr(self, key)
            if value <= 0:
                raise InvalidConfiguration(
                    f"{key} must be positive, got {value}",
                    config_key=key,
                )
        return self

    def with_overrides(self, **overrides: Any) -> "AdvisorConfig":
        """Return a new, re-validated config with non-None overrides applied."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return build_config(values)


def build_config(values: dict[str, Any]) -> AdvisorConfig:
    """Construct an AdvisorConfig, reporting type errors as InvalidConfiguration."""
    try:
        return AdvisorConfig(**values)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ())) or None
        raise InvalidConfiguration(
            f"Invalid configuration: {first.get('msg', str(e))}",
            config_key=key,
        ) from e


def _parse_env_float(name: str) -> float | None:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        raise InvalidConfiguration(
            f"{ENV_PREFIX}{name} is not a number: {value!r}",
            config_key=name.lower(),
        ) from None


def _parse_env_int(name: str) -> int | None:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise InvalidConfiguration(
            f"{ENV_PREFIX}{name} is not an integer: {value!r}",
            config_key=name.lower(),
        ) from None


def load_config_from_env() -> AdvisorConfig:
    """
    Load configuration from environment variables.

    Examples:
    - INDEXSENSE_SELECTIVITY_HIGH_THRESHOLD=0.9
    - INDEXSENSE_SELECTIVITY_LOW_THRESHOLD=0.02
    - INDEXSENSE_MAINTENANCE_STALE_DAYS=3
    - INDEXSENSE_TOP_SLOW_QUERIES=50
    """
    values: dict[str, Any] = {
        "selectivity_high_threshold": _parse_env_float("SELECTIVITY_HIGH_THRESHOLD"),
        "selectivity_low_threshold": _parse_env_float("SELECTIVITY_LOW_THRESHOLD"),
        "maintenance_stale_days": _parse_env_int("MAINTENANCE_STALE_DAYS"),
        "top_slow_queries": _parse_env_int("TOP_SLOW_QUERIES"),
    }
    return build_config({k: v for k, v in values.items() if v is not None})


def load_config_from_file(path: Path) -> AdvisorConfig:
    """
    Load configuration from a JSON or YAML file.

    Keys missing from the file fall back to environment values.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise InvalidConfiguration(f"Failed to read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidConfiguration(f"Config file {path} must contain a mapping")

    return load_config_from_env().with_overrides(**data)


@lru_cache(maxsize=1)
def get_config() -> AdvisorConfig:
    """
    Get the process-wide default configuration.

    Loads from INDEXSENSE_CONFIG_FILE if set, otherwise from the
    environment. Cached for the lifetime of the process.
    """
    config_file = os.environ.get(ENV_PREFIX + "CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
