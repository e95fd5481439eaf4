"""ROM directory scanning."""

import logging
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


# File extensions recognised as ROMs (lower-case, with dot)
ROM_EXTENSIONS = frozenset({
    '.zip', '.7z', '.iso', '.bin', '.cue', '.chd',
    '.nes', '.sfc', '.smc', '.gba', '.gb', '.gbc',
    '.md', '.smd', '.gen', '.n64', '.z64', '.v64',
    '.nds', '.3ds', '.cia', '.nsp', '.xci',
    '.pce', '.sms', '.gg', '.a26', '.lnx', '.ngp', '.ws', '.wsc',
})

# Directory names that are never partitions (media, firmware, saves, ...)
IGNORE_DIRS = frozenset({
    'media', 'images', 'covers', 'screenshots', 'titles', 'wheel',
    'marquees', 'marquee', 'boxart', 'video', 'videos', 'bios',
    'cheats', 'saves', 'states', 'downloaded_images', 'downloaded_media',
    'manuals', 'system', 'tmp', 'temp', 'logs',
})


class ScannerError(Exception):
    """ROM scanning errors."""
    pass


def is_ignored_dir(name: str) -> bool:
    """True for hidden directories and names in IGNORE_DIRS."""
    return name.startswith('.') or name.lower() in IGNORE_DIRS


def is_rom_file(name: str) -> bool:
    """True when the filename carries an allow-listed ROM extension."""
    return not name.startswith('.') and Path(name).suffix.lower() in ROM_EXTENSIONS


def list_systems(rom_root: Path) -> List[str]:
    """
    List partition directories under the ROM root.

    Args:
        rom_root: Root ROM directory

    Returns:
        Sorted partition names; empty if the root is missing
    """
    if not rom_root.is_dir():
        logger.warning(f"ROM root not found: {rom_root}")
        return []

    try:
        return sorted(
            entry.name for entry in rom_root.iterdir()
            if entry.is_dir() and not is_ignored_dir(entry.name)
        )
    except OSError as e:
        raise ScannerError(f"Failed to scan ROM root {rom_root}: {e}")


def list_rom_files(rom_root: Path, system: str) -> List[str]:
    """
    List ROM filenames directly inside a partition directory.

    Args:
        rom_root: Root ROM directory
        system: Partition name

    Returns:
        Sorted filenames matching ROM_EXTENSIONS

    Raises:
        ScannerError: If the partition is ignored, missing or unreadable
    """
    if is_ignored_dir(system):
        raise ScannerError(f"Not a ROM partition: {system}")

    system_dir = rom_root / system
    if not system_dir.is_dir():
        raise ScannerError(f"ROM directory not found: {system_dir}")

    try:
        entries = list(system_dir.iterdir())
    except PermissionError:
        raise ScannerError(f"Permission denied accessing ROM directory: {system_dir}")
    except OSError as e:
        raise ScannerError(f"Failed to scan ROM directory: {e}")

    files = sorted(e.name for e in entries if e.is_file() and is_rom_file(e.name))
    logger.debug(f"Found {len(files)} ROM files in {system_dir}")
    return files
