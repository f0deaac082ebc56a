"""Configuration for the H-100 BLE client.

Sources, highest precedence first:
    1. Environment variables
    2. YAML file (``H100_CONFIG``, else ``./config.yaml`` / ``./config.yml``)
    3. Defaults

Environment variables:
    H100_DEVICE_ADDRESS   -> ble.address
    H100_DEVICE_NAME      -> ble.device_name
    H100_SCAN_TIMEOUT     -> ble.scan_timeout_seconds
    H100_FETCH_TIMEOUT    -> fetch.fetch_timeout_seconds
    H100_TRAFFIC_LOG_SIZE -> log.traffic_log_size
    H100_LOG_LEVEL        -> log.level
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class BleConfig(BaseModel):
    """Device selection and scanning."""

    address: Optional[str] = Field(
        default=None,
        description="Connect to this address instead of scanning by name",
    )
    device_name: Optional[str] = Field(
        default=None,
        description="Exact advertised name; default matches H100 / H....P",
    )
    scan_timeout_seconds: float = Field(default=10.0, gt=0)


class FetchConfig(BaseModel):
    """Saved-data transfer."""

    fetch_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Give up on a fetch that has not finished after this long",
    )


class LogConfig(BaseModel):
    level: str = Field(default="INFO")
    traffic_log_size: int = Field(default=500, ge=1)

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"Unknown log level {value!r}")
        return value


class Settings(BaseModel):
    ble: BleConfig = Field(default_factory=BleConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    log: LogConfig = Field(default_factory=LogConfig)


_ENV_OVERRIDES = {
    "H100_DEVICE_ADDRESS": ("ble", "address"),
    "H100_DEVICE_NAME": ("ble", "device_name"),
    "H100_SCAN_TIMEOUT": ("ble", "scan_timeout_seconds"),
    "H100_FETCH_TIMEOUT": ("fetch", "fetch_timeout_seconds"),
    "H100_TRAFFIC_LOG_SIZE": ("log", "traffic_log_size"),
    "H100_LOG_LEVEL": ("log", "level"),
}


def _find_config_file() -> Optional[Path]:
    if env_path := os.environ.get("H100_CONFIG"):
        return Path(env_path)
    for candidate in (Path("config.yaml"), Path("config.yml")):
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(config_data: dict) -> None:
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        if value := os.environ.get(env_name):
            config_data.setdefault(section, {})[key] = value


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from file and environment.

    Args:
        config_path: Explicit YAML file. If None, ``H100_CONFIG`` and the
            working directory are searched.

    Raises:
        pydantic.ValidationError: If a value is out of range.
    """
    path = Path(config_path) if config_path else _find_config_file()

    config_data: dict = {}
    if path is not None and path.exists():
        logger.debug("Loading config from %s", path)
        with open(path, "r") as f:
            config_data = yaml.safe_load(f) or {}

    _apply_env_overrides(config_data)
    return Settings.model_validate(config_data)


settings = load_settings()
