"""
Orphan reaper.

Deletes asset files that no catalog row references any more. Asset files
can be hard-linked between variants, so deletion is decided from the whole
partition's references rather than per removed row.
"""

import logging
from pathlib import Path

from ludotheque.catalog.store import CatalogStore
from .media_types import ASSET_DIRECTORIES

logger = logging.getLogger(__name__)

TEMP_SUFFIX = '.tmp'


class OrphanReaper:
    """Garbage-collects unreferenced files in a partition's asset directories."""

    def __init__(self, store: CatalogStore, media_root: Path):
        self.store = store
        self.media_root = Path(media_root)

    def sweep(self, system: str) -> int:
        """
        Remove every file in <media_root>/<system>/<asset dir>/ that no
        current catalog row of the partition references.

        In-progress downloads (*.tmp) are left alone. Per-file errors are
        logged and skipped.

        Returns:
            Number of files removed
        """
        referenced = self.store.referenced_asset_paths(system)
        removed = 0

        for directory in ASSET_DIRECTORIES:
            asset_dir = self.media_root / system / directory
            if not asset_dir.is_dir():
                continue

            try:
                files = [f for f in asset_dir.iterdir() if f.is_file()]
            except OSError as e:
                logger.warning(f"Cannot list {asset_dir}: {e}")
                continue

            for file_path in files:
                rel_path = f"{system}/{directory}/{file_path.name}"
                if rel_path in referenced or file_path.suffix == TEMP_SUFFIX:
                    continue
                try:
                    file_path.unlink()
                    removed += 1
                    logger.debug(f"Removed orphan: {rel_path}")
                except OSError as e:
                    logger.warning(f"Failed to remove orphan {rel_path}: {e}")

        if removed:
            logger.info(f"[{system}] Removed {removed} orphaned media files")
        return removed
