"""
Metadata resolution cascade.

Each ROM is looked up in three tiers, stopping at the first validated hit:

1. hash: jeuInfos with filename, size and MD5
2. name: jeuInfos with the extension-less filename
3. search: jeuRecherche with a cleaned-up title

Every failure inside a tier is a miss for that tier only.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ludotheque.cancellation import CancellationToken
from ludotheque.config.platforms import ARCADE_CORES
from ludotheque.media.media_types import AssetCategory
from ludotheque.media.region_selector import (
    DEFAULT_LANGUAGES,
    DEFAULT_REGIONS,
    localize,
    select_media,
)
from ludotheque.scanner.hash_calculator import calculate_hash

from .client import ScreenScraperClient
from .error_handler import APIError, FatalAPIError
from .name_cleaner import clean_rom_name, is_placeholder_title, normalized_stem

logger = logging.getLogger(__name__)


# ScreenScraper system ids of arcade platforms (MAME, CPS, Neo Geo, ...)
ARCADE_SYSTEM_IDS = frozenset({6, 7, 8, 53, 56, 75, 142})

# Partition name fragments that identify arcade sets
ARCADE_NAME_HINTS = ('mame', 'arcade', 'fbneo', 'fba', 'neogeo', 'cps')

MIN_SEARCH_LENGTH = 4


def is_arcade_platform(
    lookup_id: Optional[int],
    system: str = '',
    core: str = ''
) -> bool:
    """
    Classify a partition as arcade.

    Arcade filenames are short set codes ("sf2ce.zip") that free-text
    search cannot match reliably.
    """
    if lookup_id is not None and lookup_id in ARCADE_SYSTEM_IDS:
        return True
    name = (system or '').lower()
    if any(hint in name for hint in ARCADE_NAME_HINTS):
        return True
    return (core or '').lower() in ARCADE_CORES


@dataclass
class MatchResult:
    """Validated metadata for one ROM."""
    game_id: str
    name: str
    desc: str = ''
    developer: str = ''
    publisher: str = ''
    genre: str = ''
    players: str = ''
    rating: str = '0'
    releasedate: str = ''
    media_urls: Dict[AssetCategory, str] = field(default_factory=dict)
    tier: str = ''


def format_rating(note: Optional[int]) -> str:
    """Convert a 0-20 ScreenScraper note to the 0-1 text stored in the catalog."""
    if note is None:
        return '0'
    return f"{note / 20:.2f}"


class MetadataResolver:
    """
    Runs the tiered lookup for a ROM and builds a MatchResult.

    Without developer credentials the resolver is disabled and every
    lookup is a miss.
    """

    def __init__(
        self,
        client: ScreenScraperClient,
        config: Dict[str, Any],
    ):
        self.client = client
        api = config.get('api', {})
        scraping = config.get('scraping', {})
        self.hash_size_limit = api.get('hash_size_limit', 256 * 1024 * 1024)
        self.large_format_extensions = frozenset(
            ext.lower() for ext in api.get('large_format_extensions', [])
        )
        self.preferred_regions: Sequence[str] = scraping.get('preferred_regions') or DEFAULT_REGIONS
        self.preferred_languages: Sequence[str] = scraping.get('preferred_languages') or DEFAULT_LANGUAGES

    @property
    def enabled(self) -> bool:
        return self.client.enabled

    async def resolve(
        self,
        system: str,
        filename: str,
        full_path: Path,
        lookup_id: Optional[int] = None,
        core: str = '',
        token: Optional[CancellationToken] = None
    ) -> Optional[MatchResult]:
        """
        Resolve metadata for one ROM file.

        Args:
            system: Partition name
            filename: ROM filename
            full_path: Absolute path of the ROM
            lookup_id: ScreenScraper system id, if configured
            core: Emulator core of the partition
            token: Cancellation token checked before every tier

        Returns:
            MatchResult from the first tier with a valid hit, or None

        Raises:
            SyncCancelled: If the token is cancelled between tiers
        """
        if not self.enabled:
            logger.debug(f"Resolver disabled, skipping lookup for {filename}")
            return None

        if lookup_id is None:
            if is_arcade_platform(None, system, core):
                logger.debug(f"[{system}] arcade platform without system id, no lookup for {filename}")
                return None
            logger.info(f"[{system}] no system id configured, global search only for {filename}")
            return await self._search_tier(system, filename, None, token)

        result = await self._hash_tier(system, filename, Path(full_path), lookup_id, token)
        if result:
            return result

        result = await self._name_tier(system, filename, lookup_id, token)
        if result:
            return result

        if is_arcade_platform(lookup_id, system, core):
            logger.debug(f"[{system}] arcade platform, no text search for {filename}")
            return None

        return await self._search_tier(system, filename, lookup_id, token)

    async def _hash_tier(
        self,
        system: str,
        filename: str,
        full_path: Path,
        lookup_id: int,
        token: Optional[CancellationToken]
    ) -> Optional[MatchResult]:
        if full_path.suffix.lower() in self.large_format_extensions:
            logger.debug(f"{filename}: large format, skipping hash lookup")
            return None

        try:
            size = full_path.stat().st_size
        except OSError as e:
            logger.warning(f"Cannot stat {full_path}: {e}")
            return None

        if size > self.hash_size_limit:
            logger.debug(f"{filename}: {size} bytes over hash limit, skipping hash lookup")
            return None

        if token:
            token.raise_if_cancelled()

        try:
            md5 = await asyncio.to_thread(calculate_hash, full_path, 'md5')
        except OSError as e:
            logger.warning(f"Cannot hash {full_path}: {e}")
            return None

        if token:
            token.raise_if_cancelled()

        try:
            game = await self.client.query_game_info(lookup_id, filename, romtaille=size, md5=md5)
        except APIError as e:
            self._log_miss(system, filename, 'hash', e)
            return None

        return self._accept(game, 'hash', system, filename)

    async def _name_tier(
        self,
        system: str,
        filename: str,
        lookup_id: int,
        token: Optional[CancellationToken]
    ) -> Optional[MatchResult]:
        if token:
            token.raise_if_cancelled()

        try:
            game = await self.client.query_game_info(lookup_id, normalized_stem(filename))
        except APIError as e:
            self._log_miss(system, filename, 'name', e)
            return None

        return self._accept(game, 'name', system, filename)

    async def _search_tier(
        self,
        system: str,
        filename: str,
        lookup_id: Optional[int],
        token: Optional[CancellationToken]
    ) -> Optional[MatchResult]:
        cleaned = clean_rom_name(filename)
        if len(cleaned) < MIN_SEARCH_LENGTH:
            logger.debug(f"{filename}: search term '{cleaned}' too short")
            return None

        if token:
            token.raise_if_cancelled()

        scope = lookup_id if lookup_id is not None else 'all'
        logger.debug(f"[{system}] searching '{cleaned}' (system id: {scope})")
        try:
            results = await self.client.search_games(cleaned, lookup_id)
        except APIError as e:
            self._log_miss(system, filename, 'search', e)
            return None

        if not results:
            return None
        return self._accept(results[0], 'search', system, filename)

    def _log_miss(self, system: str, filename: str, tier: str, error: APIError) -> None:
        if isinstance(error, FatalAPIError):
            logger.error(f"[{system}] {tier} lookup for {filename} failed: {error}")
        else:
            logger.debug(f"[{system}] {tier} lookup for {filename} missed: {error}")

    def _accept(
        self,
        game: Optional[Dict[str, Any]],
        tier: str,
        system: str,
        filename: str
    ) -> Optional[MatchResult]:
        """Validate a parsed game and convert it, or return None."""
        if not game or not game.get('id'):
            return None

        name = localize(game.get('names'), self.preferred_regions)
        if is_placeholder_title(name):
            logger.debug(f"[{system}] {tier} lookup for {filename} returned placeholder '{name}'")
            return None

        logger.info(f"[{system}] {tier} match for {filename}: {name} (ID: {game['id']})")
        return self._build_match(game, name, tier)

    def _build_match(self, game: Dict[str, Any], name: str, tier: str) -> MatchResult:
        media = game.get('media') or {}
        media_urls = {}
        for category in AssetCategory:
            item = select_media(media, category.media_types, self.preferred_regions)
            if item:
                media_urls[category] = item['url']

        return MatchResult(
            game_id=str(game['id']),
            name=name,
            desc=localize(game.get('descriptions'), self.preferred_languages),
            developer=game.get('developer', ''),
            publisher=game.get('publisher', ''),
            genre=localize(game.get('genres'), self.preferred_languages),
            players=game.get('players', ''),
            rating=format_rating(game.get('note')),
            releasedate=localize(game.get('release_dates'), self.preferred_regions),
            media_urls=media_urls,
            tier=tier,
        )
