"""Configuration loading, validation and static platform metadata."""

from .loader import load_config, get_config_value, ConfigError
from .validator import validate_config, ValidationError
from .platforms import PlatformConfig, PlatformRegistry

__all__ = [
    "load_config",
    "get_config_value",
    "ConfigError",
    "validate_config",
    "ValidationError",
    "PlatformConfig",
    "PlatformRegistry",
]
