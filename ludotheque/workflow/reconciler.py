"""
Disk vs. catalog reconciliation.

Compares a partition's ROM directory with its catalog rows and decides
which files need processing.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from ludotheque.catalog.entry import CatalogEntry
from ludotheque.catalog.store import CatalogStore
from ludotheque.scanner.rom_scanner import list_rom_files

from .options import SyncOptions

logger = logging.getLogger(__name__)


@dataclass
class ReconcilePlan:
    """
    Outcome of one reconciliation.

    Attributes:
        to_add: On-disk filenames without a catalog row
        to_update: Cataloged filenames whose row is incomplete
        to_delete: Rows whose file is gone from disk
        existing: Current rows by filename, for files still on disk
    """
    to_add: List[str] = field(default_factory=list)
    to_update: List[str] = field(default_factory=list)
    to_delete: List[CatalogEntry] = field(default_factory=list)
    existing: Dict[str, CatalogEntry] = field(default_factory=dict)

    @property
    def work_list(self) -> List[str]:
        """to_add followed by to_update, without duplicates."""
        return list(dict.fromkeys(self.to_add + self.to_update))


class Reconciler:
    """
    Builds a ReconcilePlan and applies its deletions.

    Example:
        reconciler = Reconciler(store, rom_root, media_root)
        plan = reconciler.reconcile('nes', SyncOptions.bulk())
        for filename in plan.work_list:
            ...
    """

    def __init__(self, store: CatalogStore, rom_root: Path, media_root: Path):
        self.store = store
        self.rom_root = Path(rom_root)
        self.media_root = Path(media_root)

    def reconcile(self, system: str, options: SyncOptions) -> ReconcilePlan:
        """
        Reconcile one partition.

        Rows for vanished files are deleted in a single transaction. Their
        asset files stay on disk until the next orphan sweep, since other
        rows may share them through hard links.

        Raises:
            ScannerError: If the partition directory cannot be read
        """
        disk_files = list_rom_files(self.rom_root, system)
        on_disk = set(disk_files)
        rows = self.store.list_by_system(system)

        plan = ReconcilePlan()
        for row in rows:
            if row.filename in on_disk:
                plan.existing[row.filename] = row
            else:
                plan.to_delete.append(row)

        plan.to_add = [f for f in disk_files if f not in plan.existing]
        plan.to_update = [
            f for f in disk_files
            if f in plan.existing and self.needs_update(plan.existing[f], options)
        ]

        if plan.to_delete:
            self.store.delete_many(row.id for row in plan.to_delete)
            for row in plan.to_delete:
                logger.debug(f"[{system}] removed row for missing file {row.filename}")

        logger.info(
            f"[{system}] reconcile: {len(plan.to_add)} new, "
            f"{len(plan.to_update)} to update, {len(plan.to_delete)} removed"
        )
        return plan

    def needs_update(self, entry: CatalogEntry, options: SyncOptions) -> bool:
        """
        True when an existing row is incomplete for the requested options.

        With incremental off every row qualifies. Otherwise a row qualifies
        when a requested category has no usable asset file, or when info
        sync is requested and the description is still the placeholder.
        """
        if not options.incremental:
            return True

        for category in options.requested_categories:
            if not self._asset_present(getattr(entry, category.field)):
                return True

        return options.sync_info and entry.has_placeholder_desc

    def _asset_present(self, rel_path) -> bool:
        if not rel_path:
            return False
        try:
            return (self.media_root / rel_path).stat().st_size > 0
        except OSError:
            return False
