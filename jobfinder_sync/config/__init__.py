"""Configuration package for the sync layer."""

from .env_loader import (
    EnvironmentConfigError,
    load_environment,
    get_required_env_var,
    get_optional_env_var,
    get_firestore_settings,
)
from .loader import AppConfig, ConfigValidationError, load_app_config, get_config_value

__all__ = [
    "EnvironmentConfigError",
    "load_environment",
    "get_required_env_var",
    "get_optional_env_var",
    "get_firestore_settings",
    "AppConfig",
    "ConfigValidationError",
    "load_app_config",
    "get_config_value",
]
