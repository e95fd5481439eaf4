"""Filesystem scanning: partitions, ROM files, hashes and local media lookup."""

from .rom_scanner import (
    ROM_EXTENSIONS,
    IGNORE_DIRS,
    ScannerError,
    list_systems,
    list_rom_files,
)
from .listing_cache import DirectoryListingCache
from .hash_calculator import calculate_hash

__all__ = [
    "ROM_EXTENSIONS",
    "IGNORE_DIRS",
    "ScannerError",
    "list_systems",
    "list_rom_files",
    "DirectoryListingCache",
    "calculate_hash",
]
