"""
Configuration loader for the sync layer.
Loads and validates settings from settings.yaml.
"""

import os
import yaml
from typing import TypedDict, Optional
from pathlib import Path


class StoreConfig(TypedDict, total=False):
    batch_size: int


class RetryConfig(TypedDict, total=False):
    max_attempts: int
    base_delay_sec: float


class SubscriptionsConfig(TypedDict, total=False):
    degrade_on_permission_denied: bool


class LoggingConfig(TypedDict, total=False):
    level: str


class AppConfig(TypedDict, total=False):
    store: StoreConfig
    retry: RetryConfig
    subscriptions: SubscriptionsConfig
    logging: LoggingConfig


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


MAX_BATCH_SIZE = 500
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _validate_config(config: dict) -> None:
    """
    Validate configuration values.

    Raises:
        ConfigValidationError: If validation fails
    """
    store = config.get("store", {})
    if "batch_size" in store:
        batch_size = store["batch_size"]
        if not isinstance(batch_size, int) or isinstance(batch_size, bool) or not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ConfigValidationError(f"store.batch_size must be an integer between 1 and {MAX_BATCH_SIZE}")

    retry = config.get("retry", {})
    if "max_attempts" in retry:
        max_attempts = retry["max_attempts"]
        if not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 1:
            raise ConfigValidationError("retry.max_attempts must be a positive integer")

    if "base_delay_sec" in retry:
        base_delay = retry["base_delay_sec"]
        if not isinstance(base_delay, (int, float)) or isinstance(base_delay, bool) or base_delay < 0:
            raise ConfigValidationError("retry.base_delay_sec must be a non-negative number")

    subscriptions = config.get("subscriptions", {})
    if "degrade_on_permission_denied" in subscriptions:
        if not isinstance(subscriptions["degrade_on_permission_denied"], bool):
            raise ConfigValidationError("subscriptions.degrade_on_permission_denied must be a boolean")

    logging_config = config.get("logging", {})
    if "level" in logging_config:
        level = logging_config["level"]
        if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
            raise ConfigValidationError(f"logging.level must be one of {', '.join(VALID_LOG_LEVELS)}")


def _settings_path(config_path: Optional[str]) -> Path:
    if config_path is not None:
        return Path(config_path)
    override = os.getenv("JOBFINDER_SYNC_SETTINGS")
    return Path(override) if override else Path(__file__).parent / "settings.yaml"


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Read and validate settings.yaml.

    The file is ``config_path`` when given, else JOBFINDER_SYNC_SETTINGS,
    else the copy bundled with the package. An empty file yields ``{}`` so
    every getter falls back to its default.

    Raises:
        ConfigValidationError: If a value is out of range or the root is not a mapping
        FileNotFoundError: If the settings file is missing
        yaml.YAMLError: If the file is not valid YAML
    """
    path = _settings_path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Settings file not found: {path}")

    try:
        config = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigValidationError(f"{path} must contain a YAML mapping")

    _validate_config(config)
    return config


def get_batch_size(config: AppConfig) -> int:
    """
    Get the maximum number of operations per write batch.

    Returns:
        Batch size (default: 500)
    """
    return config.get("store", {}).get("batch_size", MAX_BATCH_SIZE)


def get_retry_max_attempts(config: AppConfig) -> int:
    """
    Get the retry attempt ceiling for store calls.

    Returns:
        Maximum attempts (default: 3)
    """
    return config.get("retry", {}).get("max_attempts", 3)


def get_retry_base_delay(config: AppConfig) -> float:
    """
    Get the base delay for exponential backoff.

    Returns:
        Base delay in seconds (default: 1.0)
    """
    return float(config.get("retry", {}).get("base_delay_sec", 1.0))


def get_degrade_on_permission_denied(config: AppConfig) -> bool:
    return config.get("subscriptions", {}).get("degrade_on_permission_denied", True)


def get_log_level(config: AppConfig) -> str:
    """LOG_LEVEL overrides the configured level."""
    return os.getenv("LOG_LEVEL") or config.get("logging", {}).get("level", "INFO")


def get_config_value(key_path: str, default=None, config: Optional[AppConfig] = None):
    """
    Look up a dotted path such as ``"retry.max_attempts"``.

    Loads the settings file unless ``config`` is given. Any missing segment
    returns ``default``.
    """
    value = load_app_config() if config is None else config
    for key in key_path.split("."):
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value
