"""
URL to local-file index for downloaded media.

Lets several catalog entries share one copy of an identical asset: when a
URL has already been materialised, the fetcher hard-links the existing file
instead of downloading it again.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class MediaDedupCache:
    """
    Disk-backed {url: relative path} mapping.

    Features:
    - Stored as JSON under <media_root>/.cache/media_cache.json
    - Append-only in normal use; entries pointing at deleted files degrade
      to cache misses
    - Atomic writes (temp file + rename)

    Storage format:
    {
        "https://.../media.php?...": "nes/covers/Super Mario Bros.png"
    }
    """

    def __init__(self, media_root: Path, enabled: bool = True):
        """
        Initialize media cache.

        Args:
            media_root: Root media directory (paths are stored relative to it)
            enabled: Whether caching is enabled
        """
        self.media_root = Path(media_root)
        self.enabled = enabled

        self.cache_dir = self.media_root / ".cache"
        self.cache_file = self.cache_dir / "media_cache.json"

        self._entries: Dict[str, str] = {}
        self._cache_loaded = False

        self._hits: int = 0
        self._misses: int = 0

    def _load_cache(self) -> None:
        """Load cache from disk into memory."""
        if self._cache_loaded:
            return

        self._cache_loaded = True
        if not self.enabled or not self.cache_file.exists():
            self._entries = {}
            return

        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._entries = data if isinstance(data, dict) else {}
            logger.info(f"Loaded media cache: {len(self._entries)} entries from {self.cache_file}")
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load media cache: {e}, starting with empty cache")
            self._entries = {}

    def _save_cache(self) -> None:
        """Save in-memory cache to disk."""
        if not self.enabled:
            return

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            temp_file = self.cache_file.with_suffix(".tmp")
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(self._entries, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.cache_file)
        except (IOError, OSError) as e:
            logger.error(f"Failed to save media cache: {e}")

    def get(self, url: str) -> Optional[str]:
        """Registered relative path for a URL, without checking the disk."""
        if not self.enabled:
            return None
        self._load_cache()
        return self._entries.get(url)

    def lookup(self, url: str) -> Optional[Path]:
        """
        Find a usable local copy of a URL.

        Returns:
            Absolute path of a registered, still present, non-empty file,
            or None on a miss
        """
        rel_path = self.get(url)
        if rel_path is None:
            self._misses += 1
            return None

        candidate = self.media_root / rel_path
        try:
            if candidate.is_file() and candidate.stat().st_size > 0:
                self._hits += 1
                return candidate
        except OSError:
            pass

        logger.debug(f"Stale media cache entry: {url} -> {rel_path}")
        self._misses += 1
        return None

    def register(self, url: str, rel_path: str) -> None:
        """Record that url is materialised at rel_path."""
        if not self.enabled:
            return
        self._load_cache()
        if self._entries.get(url) == rel_path:
            return
        self._entries[url] = rel_path
        self._save_cache()

    def __len__(self) -> int:
        self._load_cache()
        return len(self._entries)

    def get_metrics(self) -> Dict[str, Any]:
        """Get cache performance metrics."""
        self._load_cache()
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0
        return {
            "hits": self._hits,
            "misses": self._misses,
            "total_entries": len(self._entries),
            "hit_rate": hit_rate,
            "enabled": self.enabled,
        }
