"""Runtime configuration for pkgrouter.

Settings are read once at startup from ``PKGROUTER_*`` environment variables
(``.env`` is loaded by the package) and treated as read-only afterwards.

Configuration via environment variables:
    PKGROUTER_MIN_CONFIDENCE: Drop detections below this score (default: 0.3)
    PKGROUTER_HIGH_CONFIDENCE: Query a single backend at or above this (default: 0.8)
    PKGROUTER_MEDIUM_CONFIDENCE: Query a limited set at or above this (default: 0.6)
    PKGROUTER_LIMITED_COUNT: Backends queried in limited mode (default: 3)
    PKGROUTER_SINGLE_TIMEOUT_MS: Timeout for single dispatch (default: 5000)
    PKGROUTER_PARALLEL_TIMEOUT_MS: Per-call timeout for parallel dispatch (default: 8000)
    PKGROUTER_MAX_RETRIES: Attempts per backend call, 1 disables retry (default: 1)
    PKGROUTER_RETRY_BASE_DELAY_MS: First backoff delay (default: 1000)
    PKGROUTER_CACHE_TTL_SECONDS: Response cache TTL, 0 disables caching (default: 3600)
    PKGROUTER_CACHE_MAX_ENTRIES: Response cache capacity (default: 1000)
    PKGROUTER_SERVERS_CONFIG: JSON file describing backend MCP servers
    PKGROUTER_TABLES_CONFIG: JSON file overriding the detection tables
"""

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from pkgrouter.logging import logger


class ConfigError(Exception):
    """Raised when a configuration file or variable cannot be used."""


class ConfidenceWeights(BaseModel):
    """Category weights used when recomputing confidence from reasons."""

    exact_match: float = 0.4
    pattern_match: float = 0.3
    context_hints: float = 0.2
    user_preference: float = 0.1


class RouterSettings(BaseModel):
    """Thresholds, timeouts and limits for the routing pipeline."""

    minimum_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    high_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    medium_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    limited_count: int = Field(default=3, ge=1)
    single_timeout_ms: int = Field(default=5000, gt=0)
    parallel_timeout_ms: int = Field(default=8000, gt=0)
    max_retries: int = Field(default=1, ge=1)
    retry_base_delay_ms: int = Field(default=1000, ge=0)
    retry_max_delay_ms: int = Field(default=5000, ge=0)
    cache_ttl_seconds: float = Field(default=3600.0, ge=0.0)
    cache_max_entries: int = Field(default=1000, ge=1)
    servers_config: str | None = None
    tables_config: str | None = None
    weights: ConfidenceWeights = Field(default_factory=ConfidenceWeights)

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, **overrides: Any) -> "RouterSettings":
        """Build settings from PKGROUTER_* environment variables.

        Args:
            **overrides: Explicit values that win over the environment.

        Returns:
            Validated settings.

        Raises:
            ConfigError: If a variable holds a value of the wrong type or range.
        """
        env_map = {
            "minimum_confidence": "PKGROUTER_MIN_CONFIDENCE",
            "high_confidence": "PKGROUTER_HIGH_CONFIDENCE",
            "medium_confidence": "PKGROUTER_MEDIUM_CONFIDENCE",
            "limited_count": "PKGROUTER_LIMITED_COUNT",
            "single_timeout_ms": "PKGROUTER_SINGLE_TIMEOUT_MS",
            "parallel_timeout_ms": "PKGROUTER_PARALLEL_TIMEOUT_MS",
            "max_retries": "PKGROUTER_MAX_RETRIES",
            "retry_base_delay_ms": "PKGROUTER_RETRY_BASE_DELAY_MS",
            "cache_ttl_seconds": "PKGROUTER_CACHE_TTL_SECONDS",
            "cache_max_entries": "PKGROUTER_CACHE_MAX_ENTRIES",
            "servers_config": "PKGROUTER_SERVERS_CONFIG",
            "tables_config": "PKGROUTER_TABLES_CONFIG",
        }
        values: dict[str, Any] = {}
        for field_name, var in env_map.items():
            raw = os.getenv(var)
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid pkgrouter settings: {e}") from e


class BackendServerConfig(BaseModel):
    """How to launch and talk to one ecosystem's MCP server."""

    command: str = Field(description="Executable that starts the server")
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] | None = None
    tools: list[str] = Field(
        default_factory=lambda: ["get_package_info", "get_package_readme", "search_packages"],
    )
    health_check_interval_ms: int | None = Field(default=None, gt=0)


def load_server_configs(path: Path | str | None) -> dict[str, BackendServerConfig]:
    """Load backend server definitions from a JSON file.

    The file looks like ``{"servers": {"npm": {"command": "...", "args": [...]}}}``.

    Args:
        path: Path to the JSON file, or None for no backends.

    Returns:
        Mapping of manager id to server config.

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    if path is None:
        logger.warning("No backend servers configured (set PKGROUTER_SERVERS_CONFIG)")
        return {}

    config_path = Path(path)
    try:
        with open(config_path) as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read servers config {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Servers config {config_path} is not valid JSON: {e}") from e

    servers = data.get("servers") if isinstance(data, dict) else None
    if not isinstance(servers, dict):
        raise ConfigError(f"Servers config {config_path} must contain a 'servers' object")

    configs: dict[str, BackendServerConfig] = {}
    for manager_id, raw in servers.items():
        try:
            configs[manager_id] = BackendServerConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid server config for '{manager_id}': {e}") from e

    logger.info("Loaded %d backend server configs from %s", len(configs), config_path)
    return configs
