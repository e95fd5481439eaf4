"""
Arcade archive composition.

Arcade cores expect a clone set to be loaded together with its parent set
and the platform BIOS. Catalogs usually store them as separate zips, so
the download of an arcade entry is assembled in memory: the requested
archive first, then every missing member of the parent and BIOS archives.
"""

import io
import logging
import zipfile
import zlib
from pathlib import Path
from typing import Optional, Set

from ludotheque.catalog.entry import CatalogEntry
from ludotheque.catalog.store import CatalogStore, EntryNotFoundError
from ludotheque.config.platforms import PlatformRegistry

logger = logging.getLogger(__name__)

# Raised by ZipFile.open/read for corrupt, encrypted or unsupported members
_ZIP_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, OSError)


class ArchiveError(Exception):
    """The requested base archive cannot be read."""
    pass


def parent_of(variants) -> Optional[CatalogEntry]:
    """
    Pick the parent among variants of one title.

    The parent is the entry with the shortest filename; equal lengths are
    decided by plain string order.
    """
    variants = list(variants)
    if not variants:
        return None
    return min(variants, key=lambda e: (len(e.filename), e.filename))


class ArchiveComposer:
    """
    Builds merged zip packages for arcade entries.

    Example:
        composer = ArchiveComposer(store, platforms, rom_root, bios_dir)
        if composer.needs_compose(entry):
            data = composer.compose(entry.id)
    """

    def __init__(
        self,
        store: CatalogStore,
        platforms: PlatformRegistry,
        rom_root: Path,
        bios_dir: Optional[Path] = None
    ):
        self.store = store
        self.platforms = platforms
        self.rom_root = Path(rom_root)
        self.bios_dir = Path(bios_dir) if bios_dir else self.rom_root / 'bios'

    def needs_compose(self, entry: CatalogEntry) -> bool:
        """True when the entry's partition runs on an arcade core."""
        return self.platforms.is_arcade(entry.system)

    def rom_path(self, entry: CatalogEntry) -> Path:
        return self.rom_root / entry.system / entry.filename

    def compose(self, entry_id: int) -> bytes:
        """
        Build the merged archive for one entry.

        Args:
            entry_id: Catalog id of the requested entry

        Returns:
            Zip file contents

        Raises:
            EntryNotFoundError: Unknown id or missing base file
            ArchiveError: Base archive is not a readable zip
        """
        entry = self.store.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"No catalog entry with id {entry_id}")

        base_path = self.rom_path(entry)
        if not base_path.is_file():
            raise EntryNotFoundError(f"ROM file missing: {entry.path}")

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as package:
            names = self._copy_base(base_path, package)

            parent = parent_of(self.store.list_by_title(entry.system, entry.name))
            if parent is not None and parent.id != entry.id:
                added = self._merge(self.rom_path(parent), package, names)
                logger.debug(f"Merged {added} file(s) from parent {parent.filename}")

            platform = self.platforms.get(entry.system)
            if platform and platform.bios:
                added = self._merge(self.bios_dir / platform.bios, package, names)
                logger.debug(f"Merged {added} file(s) from BIOS {platform.bios}")

        logger.info(f"Composed {entry.filename} ({len(names)} files)")
        return buffer.getvalue()

    def _copy_base(self, base_path: Path, package: zipfile.ZipFile) -> Set[str]:
        names: Set[str] = set()
        try:
            with zipfile.ZipFile(base_path, 'r') as base:
                for info in base.infolist():
                    package.writestr(info, base.read(info))
                    names.add(info.filename)
        except _ZIP_ERRORS as e:
            raise ArchiveError(f"Cannot read archive {base_path.name}: {e}") from e
        return names

    def _merge(self, source_path: Path, package: zipfile.ZipFile, names: Set[str]) -> int:
        """
        Add members of source_path whose names are not in the package yet.

        Failures are logged and the package keeps whatever was added.

        Returns:
            Number of members added
        """
        if not source_path.is_file():
            logger.warning(f"Merge source not found: {source_path}")
            return 0

        added = 0
        try:
            with zipfile.ZipFile(source_path, 'r') as source:
                for info in source.infolist():
                    if info.filename in names:
                        continue
                    package.writestr(info, source.read(info))
                    names.add(info.filename)
                    added += 1
        except _ZIP_ERRORS as e:
            logger.warning(f"Skipping merge from {source_path.name}: {e}")
        return added
