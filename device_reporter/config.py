"""
Device Reporter - Configuration

Loads the run configuration from a YAML (or JSON) file and validates it
into an immutable RunnerConfig.
"""

import logging
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = structlog.get_logger(__name__)

MINUTES_MULTIPLIER = 60
MIN_CHECK_INTERVAL = 1
MAX_CHECK_INTERVAL = 240

DEFAULT_SERVER_ADDRESS = "tcp://localhost:1883"
DEFAULT_TOPIC = "Device_Status"
DEFAULT_CHECK_INTERVAL = 1


class RuntimeMode(str, Enum):
    """How many cycles a run executes."""
    SINGLE = "Single"
    CONTINUOUS = "Continuous"


class RunnerConfig(BaseModel):
    """Validated, read-only configuration for one run."""
    model_config = ConfigDict(frozen=True)

    mode: RuntimeMode = RuntimeMode.SINGLE
    check_interval_minutes: int = DEFAULT_CHECK_INTERVAL
    device_id: str = Field(default_factory=lambda: str(uuid.uuid4()), min_length=1)
    server_address: str = DEFAULT_SERVER_ADDRESS
    topic: str = Field(default=DEFAULT_TOPIC, min_length=1)

    # MQTT connect options
    username: Optional[str] = None
    password: Optional[str] = None
    keep_alive_seconds: int = Field(default=20, gt=0)
    qos: int = Field(default=0, ge=0, le=2)
    publish_timeout_seconds: float = Field(default=10.0, gt=0)

    log_level: str = "INFO"

    @field_validator("check_interval_minutes")
    @classmethod
    def _check_interval_range(cls, value: int) -> int:
        if not MIN_CHECK_INTERVAL <= value <= MAX_CHECK_INTERVAL:
            raise ValueError(
                f"check_interval must be between {MIN_CHECK_INTERVAL} and "
                f"{MAX_CHECK_INTERVAL} minutes, got {value}"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log_level '{value}'")
        return level

    @property
    def check_interval_seconds(self) -> int:
        return self.check_interval_minutes * MINUTES_MULTIPLIER


def _parse_mode(raw: Any) -> RuntimeMode:
    """Map a runtime_mode literal onto RuntimeMode, exact match only."""
    for mode in RuntimeMode:
        if raw == mode.value:
            return mode
    raise ConfigurationError(f"Unexpected runtime mode '{raw}'")


def _parse_interval(raw: Any) -> int:
    if raw is None:
        raise ConfigurationError("check_interval is required in Continuous mode")
    if isinstance(raw, bool):
        raise ConfigurationError(f"check_interval must be an integer, got {raw!r}")
    if isinstance(raw, float) and not raw.is_integer():
        raise ConfigurationError(f"check_interval must be an integer, got {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"check_interval must be an integer, got {raw!r}") from e


def _read_password_file(path: str) -> str:
    try:
        with open(path, "r") as f:
            return f.read().strip()
    except OSError as e:
        raise ConfigurationError(f"Cannot read password_file '{path}': {e}") from e


def _read_file(config_path: str) -> Dict[str, Any]:
    path = Path(config_path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration '{config_path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse configuration '{config_path}': {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration '{config_path}' must be a mapping")
    return data


def config_from_dict(data: Dict[str, Any]) -> RunnerConfig:
    """Build a RunnerConfig from raw configuration keys."""
    values: Dict[str, Any] = {}

    if "runtime_mode" in data:
        values["mode"] = _parse_mode(data["runtime_mode"])
    mode = values.get("mode", RuntimeMode.SINGLE)

    # check_interval only matters when the run repeats
    if mode is RuntimeMode.CONTINUOUS:
        values["check_interval_minutes"] = _parse_interval(data.get("check_interval"))

    if "device_id" in data:
        values["device_id"] = "" if data["device_id"] is None else str(data["device_id"])
    for key in ("server_address", "topic", "username", "password", "qos", "log_level"):
        if key in data:
            values[key] = data[key]
    if "keep_alive" in data:
        values["keep_alive_seconds"] = data["keep_alive"]
    if "publish_timeout" in data:
        values["publish_timeout_seconds"] = data["publish_timeout"]
    if data.get("password_file"):
        values["password"] = _read_password_file(data["password_file"])

    try:
        return RunnerConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def load_config(config_path: Optional[str] = None) -> RunnerConfig:
    """Load configuration; no path means defaults in Single mode."""
    if config_path is None:
        return RunnerConfig()

    config = config_from_dict(_read_file(config_path))
    logger.debug("Configuration loaded", path=config_path, mode=config.mode.value)
    return config
