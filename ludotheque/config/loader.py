"""Configuration loading and parsing."""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


# Values applied when a section or key is absent from config.yaml
DEFAULTS: Dict[str, Dict[str, Any]] = {
    'screenscraper': {
        'softname': 'ludotheque',
    },
    'api': {
        'request_timeout': 30,
        'max_retries': 1,
        'retry_backoff_seconds': 5,
        'hash_size_limit': 256 * 1024 * 1024,
        'large_format_extensions': [
            '.iso', '.chd', '.cso', '.rvz', '.wbfs', '.nsp', '.xci', '.3ds', '.cia', '.pbp',
        ],
    },
    'scraping': {
        'preferred_regions': ['us', 'wor', 'eu', 'ss', 'jp'],
        'preferred_languages': ['en', 'fr', 'de', 'es'],
    },
    'scheduler': {
        'task_delay': 1.0,
        'restart_delay': 2.0,
        'stop_grace': 3.0,
        'log_capacity': 100,
    },
    'logging': {
        'level': 'INFO',
        'console': True,
        'file': None,
    },
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and parse configuration file.

    Args:
        config_path: Path to config.yaml file. If None, searches current directory.

    Returns:
        Parsed configuration dictionary with defaults applied

    Raises:
        ConfigError: If config file cannot be loaded or parsed
    """
    if config_path is None:
        config_path = Path.cwd() / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}\n"
            f"Copy config.yaml.example to config.yaml and configure it."
        )

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")
    except Exception as e:
        raise ConfigError(f"Failed to read config file: {e}")

    if not isinstance(config, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    return apply_defaults(config)


def apply_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fill in missing sections and keys from DEFAULTS.

    Explicit values in config always win. Also derives paths.bios from
    paths.roms when it is not set.
    """
    for section, values in DEFAULTS.items():
        current = config.setdefault(section, {})
        if current is None:
            current = config[section] = {}
        for key, value in values.items():
            current.setdefault(key, value)

    paths = config.setdefault('paths', {})
    if paths.get('roms') and not paths.get('bios'):
        paths['bios'] = str(Path(paths['roms']) / 'bios')

    return config


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., 'scheduler.task_delay')
        default: Default value if path not found

    Returns:
        Configuration value or default

    Example:
        >>> get_config_value(config, 'scraping.preferred_regions')
        ['us', 'wor', 'eu', 'ss', 'jp']
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
