"""Configuration validation."""

import logging
from pathlib import Path
from typing import Dict, Any, List

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Configuration validation errors."""
    pass


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary from loader

    Raises:
        ValidationError: If configuration is invalid
    """
    errors = []

    errors.extend(_validate_paths(config.get('paths', {})))
    errors.extend(_validate_screenscraper(config.get('screenscraper', {})))
    errors.extend(_validate_api(config.get('api', {})))
    errors.extend(_validate_scraping(config.get('scraping', {})))
    errors.extend(_validate_scheduler(config.get('scheduler', {})))
    errors.extend(_validate_logging(config.get('logging', {})))

    if errors:
        raise ValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )


def _validate_paths(section: Dict[str, Any]) -> List[str]:
    """Validate paths section."""
    errors = []

    for path_key in ('roms', 'media', 'database'):
        if not section.get(path_key):
            errors.append(f"paths.{path_key} is required")

    roms = section.get('roms')
    if roms:
        roms_path = Path(roms).expanduser()
        if roms_path.exists() and not roms_path.is_dir():
            errors.append(f"paths.roms must be a directory: {roms_path}")

    platforms = section.get('platforms')
    if platforms:
        platforms_path = Path(platforms).expanduser()
        if not platforms_path.exists():
            errors.append(f"paths.platforms file not found: {platforms_path}")
        elif not platforms_path.is_file():
            errors.append(f"paths.platforms must be a file: {platforms_path}")

    return errors


def _validate_screenscraper(section: Dict[str, Any]) -> List[str]:
    """
    Validate screenscraper credentials section.

    Credentials are optional (lookups are disabled without them), but a
    half-filled developer pair is almost always a typo.
    """
    errors = []

    if bool(section.get('devid')) != bool(section.get('devpassword')):
        errors.append("screenscraper.devid and screenscraper.devpassword must be set together")

    if section.get('user_id') and not section.get('user_password'):
        errors.append("screenscraper.user_password is required when user_id is set")

    return errors


def _validate_api(section: Dict[str, Any]) -> List[str]:
    """Validate API options section."""
    errors = []

    timeout = section.get('request_timeout', 30)
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        errors.append("api.request_timeout must be a positive number")

    if 'max_retries' in section:
        retries = section['max_retries']
        if not isinstance(retries, int):
            errors.append("api.max_retries must be an integer")
        elif retries < 1 or retries > 10:
            errors.append("api.max_retries must be between 1 and 10")

    backoff = section.get('retry_backoff_seconds', 5)
    if not isinstance(backoff, (int, float)) or backoff < 0:
        errors.append("api.retry_backoff_seconds must be non-negative")

    if 'hash_size_limit' in section:
        size_limit = section['hash_size_limit']
        if not isinstance(size_limit, int) or size_limit < 0:
            errors.append("api.hash_size_limit must be a non-negative integer")

    if 'large_format_extensions' in section:
        extensions = section['large_format_extensions']
        if not isinstance(extensions, list) or any(not isinstance(e, str) for e in extensions):
            errors.append("api.large_format_extensions must be a list of strings")

    return errors


def _validate_scraping(section: Dict[str, Any]) -> List[str]:
    """Validate scraping options section."""
    errors = []

    for key in ('preferred_regions', 'preferred_languages'):
        values = section.get(key, [])
        if not isinstance(values, list):
            errors.append(f"scraping.{key} must be a list")
        elif any(not isinstance(v, str) for v in values):
            errors.append(f"scraping.{key} entries must be strings")

    return errors


def _validate_scheduler(section: Dict[str, Any]) -> List[str]:
    """Validate scheduler timing section."""
    errors = []

    for key in ('task_delay', 'restart_delay', 'stop_grace'):
        if key in section:
            value = section[key]
            if not isinstance(value, (int, float)) or value < 0:
                errors.append(f"scheduler.{key} must be a non-negative number")

    if 'log_capacity' in section:
        capacity = section['log_capacity']
        if not isinstance(capacity, int) or capacity < 1:
            errors.append("scheduler.log_capacity must be a positive integer")

    return errors


def _validate_logging(section: Dict[str, Any]) -> List[str]:
    """Validate logging options section."""
    errors = []

    level = section.get('level', 'INFO')
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR']
    if level not in valid_levels:
        errors.append(f"logging.level must be one of: {', '.join(valid_levels)}")

    console = section.get('console', True)
    if not isinstance(console, bool):
        errors.append("logging.console must be a boolean")

    if 'file' in section and section['file'] is not None:
        if not isinstance(section['file'], str):
            errors.append("logging.file must be a string path or null")

    return errors
