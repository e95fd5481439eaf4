"""Static per-platform metadata (platforms.yaml)."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import yaml

from .loader import ConfigError

logger = logging.getLogger(__name__)


# Emulator cores that load arcade sets and need parent/BIOS merging
ARCADE_CORES = frozenset({
    'arcade',
    'mame',
    'mame2003',
    'mame2003_plus',
    'mame2010',
    'fbneo',
    'fbalpha2012',
    'fbalpha2012_cps1',
    'fbalpha2012_cps2',
    'fbalpha2012_neogeo',
})


@dataclass
class PlatformConfig:
    """Represents one partition's entry in platforms.yaml."""
    name: str
    fullname: str = ''
    abbr: str = ''
    maker: str = ''
    release_year: str = ''
    desc: str = ''
    core: str = ''
    bios: str = ''
    screenscraper_id: Optional[int] = None

    @property
    def is_arcade(self) -> bool:
        """True when the configured core loads merged arcade archives."""
        return self.core.lower() in ARCADE_CORES


class PlatformRegistry:
    """
    Read-only table of PlatformConfig keyed by lower-cased partition name.

    The YAML file is read on first access and kept for the lifetime of the
    registry. A missing file yields an empty table.

    File format:
        nes:
          fullname: Nintendo Entertainment System
          maker: Nintendo
          release_year: "1983"
          core: fceumm
          screenscraper_id: 3
        cps2:
          core: fbneo
          bios: qsound.zip
          screenscraper_id: 7
    """

    def __init__(self, platforms_path: Optional[Path] = None):
        self.platforms_path = Path(platforms_path) if platforms_path else None
        self._platforms: Optional[Dict[str, PlatformConfig]] = None

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Dict]) -> 'PlatformRegistry':
        """Build a registry directly from a dict (no file access)."""
        registry = cls()
        registry._platforms = _parse_platforms(mapping)
        return registry

    def _load(self) -> Dict[str, PlatformConfig]:
        if self._platforms is not None:
            return self._platforms

        if self.platforms_path is None or not self.platforms_path.exists():
            logger.info("No platform table configured, using directory names only")
            self._platforms = {}
            return self._platforms

        try:
            with open(self.platforms_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in platform table: {e}")

        if not isinstance(data, dict):
            raise ConfigError("Platform table must be a YAML dictionary keyed by system name")

        self._platforms = _parse_platforms(data)
        logger.info(f"Loaded {len(self._platforms)} platform definitions from {self.platforms_path}")
        return self._platforms

    def get(self, system: str) -> Optional[PlatformConfig]:
        """Get platform metadata for a partition, or None if not configured."""
        return self._load().get(system.lower())

    def all(self) -> Dict[str, PlatformConfig]:
        """Get every configured platform."""
        return dict(self._load())

    def lookup_id(self, system: str) -> Optional[int]:
        """ScreenScraper system id for a partition, if configured."""
        platform = self.get(system)
        return platform.screenscraper_id if platform else None

    def is_arcade(self, system: str) -> bool:
        """True when the partition's core is in the arcade allow-list."""
        platform = self.get(system)
        return bool(platform and platform.is_arcade)


def _parse_platforms(data: Dict[str, Dict]) -> Dict[str, PlatformConfig]:
    platforms = {}
    for name, info in data.items():
        info = info or {}
        if not isinstance(info, dict):
            raise ConfigError(f"Platform '{name}' must be a mapping")

        ss_id = info.get('screenscraper_id')
        if ss_id is not None:
            try:
                ss_id = int(ss_id)
            except (TypeError, ValueError):
                raise ConfigError(f"Platform '{name}': screenscraper_id must be an integer")

        key = str(name).lower()
        platforms[key] = PlatformConfig(
            name=key,
            fullname=str(info.get('fullname', '') or ''),
            abbr=str(info.get('abbr', '') or ''),
            maker=str(info.get('maker', '') or ''),
            release_year=str(info.get('release_year', '') or ''),
            desc=str(info.get('desc', '') or ''),
            core=str(info.get('core', '') or ''),
            bios=str(info.get('bios', '') or ''),
            screenscraper_id=ss_id,
        )
    return platforms
