"""
Time-expiring cache of directory listings.

Media lookups by basename hit the same handful of directories thousands
of times during a sync; listings are cached per directory and dropped
after a fixed TTL rather than invalidated on write.
"""

import logging
import time
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)


class DirectoryListingCache:
    """
    Maps a directory to {lower-cased filename: real filename}.

    Example:
        cache = DirectoryListingCache(ttl_seconds=60)
        real = cache.find(Path("media/nes/covers"), "mario", [".png", ".jpg"])
    """

    def __init__(self, ttl_seconds: float = 60.0):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[Path, Tuple[float, Dict[str, str]]] = {}

    def listing(self, directory: Path) -> Dict[str, str]:
        """Get the cached listing for a directory, reading it if expired."""
        now = time.monotonic()
        cached = self._entries.get(directory)
        if cached and now - cached[0] < self.ttl_seconds:
            return cached[1]

        file_map: Dict[str, str] = {}
        if directory.is_dir():
            try:
                for entry in directory.iterdir():
                    file_map[entry.name.lower()] = entry.name
            except OSError as e:
                logger.warning(f"Cannot read directory {directory}: {e}")

        self._entries[directory] = (now, file_map)
        return file_map

    def find(self, directory: Path, basename: str, extensions: Iterable[str]) -> Optional[str]:
        """
        Find a file named basename + one of extensions (case-insensitive).

        Returns:
            Real filename as stored on disk, or None
        """
        file_map = self.listing(directory)
        lower = basename.lower()
        for ext in extensions:
            real = file_map.get(lower + ext.lower())
            if real:
                return real
        return None

    def invalidate(self, directory: Optional[Path] = None) -> None:
        """Drop one directory's listing, or all of them."""
        if directory is None:
            self._entries.clear()
        else:
            self._entries.pop(directory, None)
