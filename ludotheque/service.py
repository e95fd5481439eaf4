"""
Library service.

Single entry point used by front-ends (CLI, HTTP layer). Owns the catalog
store, the shared HTTP client and the scheduler, and exposes the request
level operations: sync requests, status, single refresh, downloads and
catalog browsing.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx

from .api.client import ScreenScraperClient
from .api.resolver import MetadataResolver
from .archive.composer import ArchiveComposer
from .catalog.gamelist_import import GamelistImporter
from .catalog.store import CatalogStore, EntryNotFoundError
from .config.loader import get_config_value
from .config.platforms import PlatformRegistry
from .media.dedup_cache import MediaDedupCache
from .media.fetcher import MediaFetcher
from .media.media_types import GALLERY_DIRECTORIES, IMAGE_EXTENSIONS
from .media.reaper import OrphanReaper
from .scanner.listing_cache import DirectoryListingCache
from .scanner.rom_scanner import is_ignored_dir
from .workflow.engine import SyncEngine
from .workflow.options import SyncOptions
from .workflow.runner import TaskRunner
from .workflow.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


class ServiceValidationError(ValueError):
    """A request is missing a required parameter or names an unknown partition."""
    pass


@dataclass
class Download:
    """
    A file ready to be sent to a client.

    Exactly one of path (stream from disk) or content (composed in memory)
    is set. inline is True for play requests, which must not be served as
    an attachment.
    """
    filename: str
    path: Optional[Path] = None
    content: Optional[bytes] = None
    inline: bool = False


OptionsLike = Union[SyncOptions, Dict[str, Any], None]


class LibraryService:
    """
    Facade over the catalog, sync workflow and archive composer.

    Use as an async context manager so the HTTP client and background
    tasks are closed:

        async with LibraryService(config) as service:
            service.request_sync('nes')
            await service.scheduler.wait_idle()
    """

    def __init__(
        self,
        config: Dict[str, Any],
        client: Optional[httpx.AsyncClient] = None,
        platforms: Optional[PlatformRegistry] = None
    ):
        """
        Args:
            config: Loaded configuration (defaults applied)
            client: Shared HTTP client; one is created and owned if omitted
            platforms: Platform table; read from paths.platforms if omitted
        """
        self.config = config
        self.rom_root = Path(config['paths']['roms'])
        self.media_root = Path(config['paths']['media'])
        bios = get_config_value(config, 'paths.bios') or self.rom_root / 'bios'

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=get_config_value(config, 'api.request_timeout', 30)
        )

        platforms_path = get_config_value(config, 'paths.platforms')
        self.platforms = platforms or PlatformRegistry(Path(platforms_path) if platforms_path else None)
        self.store = CatalogStore(Path(config['paths']['database']))
        self.listing_cache = DirectoryListingCache()

        self.api_client = ScreenScraperClient(config, self.client)
        self.resolver = MetadataResolver(self.api_client, config)
        if not self.resolver.enabled:
            logger.warning("ScreenScraper developer credentials missing, metadata lookups disabled")

        self.dedup_cache = MediaDedupCache(self.media_root)
        self.fetcher = MediaFetcher(
            self.client,
            self.media_root,
            self.dedup_cache,
            timeout=get_config_value(config, 'api.request_timeout', 30)
        )
        self.reaper = OrphanReaper(self.store, self.media_root)

        self.runner = TaskRunner(task_delay=get_config_value(config, 'scheduler.task_delay', 1.0))
        self.engine = SyncEngine(
            self.store,
            self.resolver,
            self.fetcher,
            self.reaper,
            self.platforms,
            self.runner,
            self.rom_root,
            self.media_root,
            listing_cache=self.listing_cache,
        )
        self.scheduler = SyncScheduler(
            self.runner,
            self.engine.run_batch,
            restart_delay=get_config_value(config, 'scheduler.restart_delay', 2.0),
            stop_grace=get_config_value(config, 'scheduler.stop_grace', 3.0),
            log_capacity=get_config_value(config, 'scheduler.log_capacity', 100),
        )
        self.composer = ArchiveComposer(self.store, self.platforms, self.rom_root, Path(bios))
        self.importer = GamelistImporter(self.store, self.rom_root, self.media_root, self.listing_cache)

    async def __aenter__(self) -> 'LibraryService':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop background work and release resources."""
        if self.scheduler.is_syncing:
            await self.scheduler.shutdown()
        await self.runner.shutdown()
        if self._owns_client:
            await self.client.aclose()
        self.store.close()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def request_sync(self, system: str, options: OptionsLike = None) -> Dict[str, str]:
        """
        Queue a partition sync.

        Returns:
            {"status": "queued" | "ignored", "message": ...}

        Raises:
            ServiceValidationError: Empty or unknown partition name
        """
        if not system or not system.strip():
            raise ServiceValidationError("system is required")

        if is_ignored_dir(system) or not (self.rom_root / system).is_dir():
            raise ServiceValidationError(f"Unknown system: {system}")

        if not isinstance(options, SyncOptions):
            options = SyncOptions.from_dict(options)

        accepted, message = self.scheduler.enqueue(system, options)
        return {'status': 'queued' if accepted else 'ignored', 'message': message}

    def stop_sync(self) -> Dict[str, str]:
        """Stop the running batch and drop the queue."""
        if self.scheduler.stop():
            return {'status': 'stopping', 'message': 'Stopping all tasks...'}
        return {'status': 'idle', 'message': 'Nothing to stop'}

    def status(self) -> Dict[str, Any]:
        """Scheduler status projection."""
        return self.scheduler.status()

    async def refresh_entry(self, entry_id: int, options: OptionsLike = None) -> Dict[str, Any]:
        """
        Force a full re-process of one entry.

        Raises:
            EntryNotFoundError: Unknown id or missing ROM file
            SyncCancelled: A stop request discarded the refresh
        """
        if options is not None and not isinstance(options, SyncOptions):
            options = SyncOptions.from_dict(options, refresh=True)
        entry = await self.engine.refresh_entry(entry_id, options)
        return entry.to_dict()

    async def import_gamelists(self) -> Dict[str, int]:
        """Import every partition's gamelist.xml into the catalog."""
        return await asyncio.to_thread(self.importer.import_all)

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    async def open_download(self, entry_id: int, play: bool = False) -> Download:
        """
        Resolve an entry to a downloadable file.

        Arcade partitions get an archive merged with the parent set and
        BIOS; every other partition streams the ROM file unchanged.

        Raises:
            EntryNotFoundError: Unknown id or missing ROM file
            ArchiveError: Arcade base archive is corrupt
        """
        entry = self.store.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"No catalog entry with id {entry_id}")

        path = self.rom_root / entry.system / entry.filename
        if not path.is_file():
            raise EntryNotFoundError(f"ROM file missing: {entry.path}")

        filename = Path(entry.filename).name
        if self.composer.needs_compose(entry):
            content = await asyncio.to_thread(self.composer.compose, entry_id)
            return Download(filename=filename, content=content, inline=play)

        return Download(filename=filename, path=path, inline=play)

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------

    def list_systems(self) -> List[Dict[str, Any]]:
        """
        Cataloged partitions merged with platform metadata.

        Sorted by maker (case-insensitive), then release year with unknown
        years last.
        """
        systems = []
        for name, count in self.store.count_by_system().items():
            platform = self.platforms.get(name)
            systems.append({
                'name': name,
                'count': count,
                'fullname': (platform and platform.fullname) or name.upper(),
                'abbr': (platform and platform.abbr) or name[:4].upper(),
                'maker': (platform and platform.maker) or 'Unknown',
                'year': (platform and platform.release_year) or '0000',
                'desc': (platform and platform.desc) or 'Detected local directory.',
                'core': (platform and platform.core) or '',
            })

        def sort_key(system):
            try:
                year = int(system['year']) or 9999
            except ValueError:
                year = 9999
            return (system['maker'].casefold(), year)

        return sorted(systems, key=sort_key)

    def list_games(
        self,
        system: Optional[str] = None,
        keyword: str = '',
        page: int = 1,
        page_size: int = 24,
        all: bool = False
    ) -> Dict[str, Any]:
        """
        Titles grouped across variants.

        Returns:
            {"total", "page", "pageSize", "data"}; with all=True every title
            is returned and page/pageSize are omitted
        """
        if all:
            total, rows = self.store.list_titles(system, keyword)
            return {'total': total, 'data': rows}

        page = max(1, int(page))
        page_size = max(1, int(page_size))
        total, rows = self.store.list_titles(
            system, keyword, limit=page_size, offset=(page - 1) * page_size
        )
        return {'total': total, 'page': page, 'pageSize': page_size, 'data': rows}

    def game_versions(self, system: str, title: str) -> List[Dict[str, Any]]:
        """
        Every variant of a title with its local image gallery.

        Raises:
            ServiceValidationError: Missing system or title
        """
        if not system or not title:
            raise ServiceValidationError("system and name are required")

        versions = []
        for entry in self.store.list_by_title(system, title):
            data = entry.to_dict()
            data['gallery'] = self._gallery(system, entry.filename)
            versions.append(data)
        return versions

    def _gallery(self, system: str, filename: str) -> List[Dict[str, str]]:
        basename = Path(filename).stem
        images = []
        for directory in GALLERY_DIRECTORIES:
            real = self.listing_cache.find(self.media_root / system / directory, basename, IMAGE_EXTENSIONS)
            if real:
                images.append({'type': directory, 'url': f"{system}/{directory}/{real}"})
        return images
