"""
Sync engine.

Coordinates one partition sync:
1. Reconcile disk and catalog
2. Resolve metadata for each new or incomplete file
3. Adopt local media or download it
4. Replace the catalog row
5. Sweep orphaned media once the batch is done
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from ..api.name_cleaner import clean_rom_name
from ..api.resolver import MatchResult, MetadataResolver
from ..cancellation import CancellationToken, SyncCancelled
from ..catalog.entry import CatalogEntry, PLACEHOLDER_DESC
from ..catalog.store import CatalogStore, EntryNotFoundError
from ..config.platforms import PlatformRegistry
from ..media.box_texture import process_box_texture
from ..media.fetcher import MediaFetcher
from ..media.local_assets import find_local_asset
from ..media.media_types import AssetCategory
from ..media.reaper import OrphanReaper
from ..scanner.listing_cache import DirectoryListingCache
from .options import SyncOptions
from .reconciler import Reconciler
from .runner import TaskRunner

logger = logging.getLogger(__name__)

# Descriptive fields copied from a match when info sync is requested
_INFO_FIELDS = ('name', 'desc', 'developer', 'publisher', 'genre', 'players', 'rating', 'releasedate')


class ProgressReporter(Protocol):
    """What the engine needs from the scheduler."""

    def log(self, system: str, message: str) -> None: ...

    def set_progress(self, current: int, total: Optional[int] = None) -> None: ...


class _LogReporter:
    """Reporter used outside a scheduled batch (single refresh)."""

    def log(self, system: str, message: str) -> None:
        logger.info(f"[{system}] {message}")

    def set_progress(self, current: int, total: Optional[int] = None) -> None:
        pass


@dataclass
class BatchResult:
    """Counters for one partition batch."""
    system: str
    total: int = 0
    processed: int = 0
    failed: int = 0
    discarded: int = 0
    deleted: int = 0
    orphans_removed: int = 0


class SyncEngine:
    """
    Runs partition batches and single-entry refreshes.

    Per-file work is submitted to the shared TaskRunner so lookups from
    every partition are serialised and throttled together.
    """

    def __init__(
        self,
        store: CatalogStore,
        resolver: MetadataResolver,
        fetcher: MediaFetcher,
        reaper: OrphanReaper,
        platforms: PlatformRegistry,
        runner: TaskRunner,
        rom_root: Path,
        media_root: Path,
        listing_cache: Optional[DirectoryListingCache] = None
    ):
        self.store = store
        self.resolver = resolver
        self.fetcher = fetcher
        self.reaper = reaper
        self.platforms = platforms
        self.runner = runner
        self.rom_root = Path(rom_root)
        self.media_root = Path(media_root)
        self.listing_cache = listing_cache or DirectoryListingCache()
        self.reconciler = Reconciler(store, self.rom_root, self.media_root)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def run_batch(
        self,
        system: str,
        options: SyncOptions,
        token: CancellationToken,
        reporter: Optional[ProgressReporter] = None
    ) -> BatchResult:
        """
        Sync one partition.

        Every queued file counts toward progress whether it succeeds,
        fails or is discarded by a stop, so the batch always ends.

        Raises:
            ScannerError: If the partition directory cannot be read
        """
        reporter = reporter or _LogReporter()
        result = BatchResult(system=system)

        reporter.log(system, "Scanning file system...")
        flags = ', '.join(f"{k}={v}" for k, v in options.to_dict().items())
        reporter.log(system, f"Options: {flags}")

        plan = await asyncio.to_thread(self.reconciler.reconcile, system, options)
        result.deleted = len(plan.to_delete)
        for row in plan.to_delete:
            reporter.log(system, f"[removed] {row.filename}")

        work = plan.work_list
        result.total = len(work)
        reporter.log(
            system,
            f"Scan result: {len(plan.to_add)} new, {len(plan.to_delete)} removed, "
            f"{len(plan.to_update)} to update"
        )

        if work:
            reporter.set_progress(0, len(work))
            futures = []
            for filename in work:
                existing = plan.existing.get(filename)
                future = self.runner.submit(
                    self._task(system, filename, existing, options, token, reporter),
                    label=f"{system}/{filename}"
                )
                future.add_done_callback(self._progress_callback(result, reporter))
                futures.append(future)

            reporter.log(system, f"Queued {len(work)} task(s)")
            await asyncio.gather(*futures, return_exceptions=True)
        else:
            reporter.log(system, "Everything is up to date")

        result.orphans_removed = await self._sweep(system)

        if token.cancelled:
            reporter.log(system, f"Sync stopped: {result.processed} processed, "
                                 f"{result.discarded} discarded")
        else:
            reporter.log(system, f"All tasks finished: {result.processed} processed, "
                                 f"{result.failed} failed")
        return result

    def _task(
        self,
        system: str,
        filename: str,
        existing: Optional[CatalogEntry],
        options: SyncOptions,
        token: CancellationToken,
        reporter: ProgressReporter
    ):
        async def run():
            token.raise_if_cancelled()
            try:
                return await self.process_file(system, filename, existing, options, token, reporter)
            except SyncCancelled:
                raise
            except Exception as e:
                reporter.log(system, f"[failed] {filename}: {e}")
                logger.debug(f"Processing {system}/{filename} failed", exc_info=True)
                raise
        return run

    @staticmethod
    def _progress_callback(result: BatchResult, reporter: ProgressReporter):
        def done(future: asyncio.Future) -> None:
            if future.cancelled():
                result.discarded += 1
            elif isinstance(future.exception(), SyncCancelled):
                result.discarded += 1
            elif future.exception() is not None:
                result.failed += 1
            else:
                result.processed += 1
            reporter.set_progress(result.processed + result.failed + result.discarded)
        return done

    # ------------------------------------------------------------------
    # Single entry
    # ------------------------------------------------------------------

    async def refresh_entry(self, entry_id: int, options: Optional[SyncOptions] = None) -> CatalogEntry:
        """
        Re-process one catalog entry with incremental off and overwrite on.

        Runs on the shared runner, then sweeps the partition's orphans.

        Raises:
            EntryNotFoundError: Unknown id or ROM file missing on disk
            SyncCancelled: A stop discarded the refresh before it started
        """
        entry = self.store.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"No catalog entry with id {entry_id}")

        if not (self.rom_root / entry.system / entry.filename).is_file():
            raise EntryNotFoundError(f"ROM file missing: {entry.path}")

        base = options.to_dict() if options else {}
        forced = SyncOptions.from_dict(base, refresh=True)
        token = CancellationToken()
        reporter = _LogReporter()

        future = self.runner.submit(
            self._task(entry.system, entry.filename, entry, forced, token, reporter),
            label=f"refresh {entry.path}"
        )
        await asyncio.wait({future})
        if future.cancelled():
            raise SyncCancelled(f"Refresh of {entry.path} discarded by a stop request")
        updated = future.result()
        await self._sweep(entry.system)
        return updated

    async def _sweep(self, system: str) -> int:
        """Run the orphan sweep as a runner task, after any per-file task in flight."""
        future = self.runner.submit(
            lambda: asyncio.to_thread(self.reaper.sweep, system),
            label=f"sweep {system}",
            keep_on_clear=True
        )
        return await future

    # ------------------------------------------------------------------
    # Per file
    # ------------------------------------------------------------------

    async def process_file(
        self,
        system: str,
        filename: str,
        existing: Optional[CatalogEntry],
        options: SyncOptions,
        token: Optional[CancellationToken] = None,
        reporter: Optional[ProgressReporter] = None
    ) -> CatalogEntry:
        """
        Build and store the catalog row for one ROM file.

        Descriptive fields come from the existing row unless info sync is
        requested and a match supplies them. Asset paths prefer local files,
        then the existing row's files, then downloads.

        Returns:
            The stored entry (with its new id)
        """
        reporter = reporter or _LogReporter()
        basename = Path(filename).stem
        full_path = self.rom_root / system / filename

        info = self._initial_info(filename, existing)
        assets = self._initial_assets(system, basename, existing)

        if options.sync_info or options.requested_categories or existing is None:
            reporter.log(system, f"[processing] {filename}")
            platform = self.platforms.get(system)
            match = await self.resolver.resolve(
                system,
                filename,
                full_path,
                lookup_id=platform.screenscraper_id if platform else None,
                core=platform.core if platform else '',
                token=token,
            )

            if match:
                reporter.log(system, f"[matched] {filename} -> {match.name}")
                if options.sync_info:
                    self._apply_info(info, match)
                await self._fetch_assets(system, basename, match, options, assets, token, reporter)

        if options.sync_box_art and assets.get('boxart_path'):
            await self._composite_box_texture(assets)

        entry = CatalogEntry(
            path=f"{system}/{filename}",
            system=system,
            filename=filename,
            **info,
            **assets,
        )
        self.store.replace(entry)
        return entry

    def _initial_info(self, filename: str, existing: Optional[CatalogEntry]) -> Dict[str, Any]:
        if existing is not None:
            info = {name: getattr(existing, name) for name in _INFO_FIELDS}
            if not info['name']:
                info['name'] = clean_rom_name(filename) or Path(filename).stem
            return info

        return {
            'name': clean_rom_name(filename) or Path(filename).stem,
            'desc': PLACEHOLDER_DESC,
            'developer': '',
            'publisher': '',
            'genre': '',
            'players': '',
            'rating': '0',
            'releasedate': '',
        }

    @staticmethod
    def _apply_info(info: Dict[str, Any], match: MatchResult) -> None:
        for name in _INFO_FIELDS:
            value = getattr(match, name)
            if value and not (name == 'rating' and value == '0'):
                info[name] = value

    def _initial_assets(
        self,
        system: str,
        basename: str,
        existing: Optional[CatalogEntry]
    ) -> Dict[str, Optional[str]]:
        """Local file with the same basename first, then the old row's file if still present."""
        assets: Dict[str, Optional[str]] = {}
        for category in AssetCategory:
            path = find_local_asset(self.listing_cache, self.media_root, system, basename, category)
            if path is None and existing is not None:
                old = getattr(existing, category.field)
                if old and self._non_empty(old):
                    path = old
            assets[category.field] = path
        return assets

    def _non_empty(self, rel_path: str) -> bool:
        try:
            return (self.media_root / rel_path).stat().st_size > 0
        except OSError:
            return False

    async def _fetch_assets(
        self,
        system: str,
        basename: str,
        match: MatchResult,
        options: SyncOptions,
        assets: Dict[str, Optional[str]],
        token: Optional[CancellationToken],
        reporter: ProgressReporter
    ) -> None:
        for category in options.requested_categories:
            url = match.media_urls.get(category)
            if not url:
                continue

            current = assets.get(category.field)
            if current and not options.overwrite and self._non_empty(current):
                continue

            if token:
                token.raise_if_cancelled()

            rel_path = await self.fetcher.ensure_local(
                url, system, category, basename, overwrite=options.overwrite
            )
            if rel_path:
                assets[category.field] = rel_path
                reporter.log(system, f"  -> {category.directory}: {rel_path}")
            elif current and not self._non_empty(current):
                # overwrite removed the old file before the download failed
                assets[category.field] = None

    async def _composite_box_texture(self, assets: Dict[str, Optional[str]]) -> None:
        texture = self.media_root / assets['boxart_path']
        logo = None
        if assets.get('marquee_path') and self._non_empty(assets['marquee_path']):
            logo = self.media_root / assets['marquee_path']
        try:
            await asyncio.to_thread(process_box_texture, texture, logo)
        except OSError as e:
            logger.warning(f"Box texture compositing failed for {texture}: {e}")
