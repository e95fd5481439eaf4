"""
Media fetcher.

Materialises a remote asset at its catalog location, reusing an existing
local copy through the dedup cache when possible.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import httpx

from .dedup_cache import MediaDedupCache
from .media_types import AssetCategory

logger = logging.getLogger(__name__)


class DownloadError(Exception):
    """Raised when a remote asset cannot be fetched."""
    pass


class MediaFetcher:
    """
    Downloads or hard-links media into <media_root>/<system>/<directory>/.

    Features:
    - Idempotent: an existing non-empty target is kept unless overwrite is set
    - Hard links duplicates of already-downloaded URLs (copy if linking fails)
    - Streams downloads to a temp file, renamed into place on success
    - Failures are logged and reported as None, never raised
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        media_root: Path,
        dedup_cache: MediaDedupCache,
        timeout: float = 30.0
    ):
        """
        Initialize media fetcher.

        Args:
            client: httpx.AsyncClient for HTTP requests
            media_root: Root media directory
            dedup_cache: URL to local path index
            timeout: HTTP request timeout in seconds
        """
        self.client = client
        self.media_root = Path(media_root)
        self.dedup_cache = dedup_cache
        self.timeout = timeout
        self.download_count = 0
        self.link_count = 0

    def relative_path(self, system: str, category: AssetCategory, basename: str) -> str:
        """Catalog path of an asset, relative to the media root."""
        return f"{system}/{category.directory}/{basename}{category.extension}"

    def target_path(self, system: str, category: AssetCategory, basename: str) -> Path:
        """Absolute on-disk path of an asset."""
        return self.media_root / self.relative_path(system, category, basename)

    async def ensure_local(
        self,
        url: str,
        system: str,
        category: AssetCategory,
        basename: str,
        overwrite: bool = False
    ) -> Optional[str]:
        """
        Make sure the asset for url exists at its computed target path.

        Args:
            url: Remote media URL
            system: Partition name
            category: Asset category (selects directory and extension)
            basename: ROM filename without extension
            overwrite: Delete an existing target first and re-acquire it

        Returns:
            Relative target path on success, None if the asset could not be
            materialised
        """
        if not url:
            return None

        rel_path = self.relative_path(system, category, basename)
        target = self.media_root / rel_path

        if overwrite and target.exists():
            try:
                target.unlink()
                logger.debug(f"Removed {rel_path} for re-download")
            except OSError as e:
                logger.warning(f"Could not remove {rel_path}: {e}")
                return None
        elif _non_empty(target):
            # Not necessarily the content of url, so it is not registered
            return rel_path

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create media directory {target.parent}: {e}")
            return None

        source = self.dedup_cache.lookup(url)
        if source is not None and source != target:
            if self._link_or_copy(source, target):
                logger.debug(f"Reused {source.name} for {rel_path}")
                return rel_path

        try:
            await self._download(url, target)
        except DownloadError as e:
            logger.warning(f"Download failed for {rel_path}: {e}")
            return None

        self.download_count += 1
        self.dedup_cache.register(url, rel_path)
        return rel_path

    def _link_or_copy(self, source: Path, target: Path) -> bool:
        try:
            if target.exists():
                target.unlink()
            os.link(source, target)
            self.link_count += 1
            return True
        except OSError as e:
            logger.debug(f"Hard link failed ({e}), copying {source} instead")

        try:
            shutil.copy2(source, target)
            return True
        except OSError as e:
            logger.warning(f"Could not copy {source} to {target}: {e}")
            return False

    async def _download(self, url: str, target: Path) -> None:
        """
        Stream url into target.

        Raises:
            DownloadError: On transport errors, non-2xx status or write errors
        """
        temp_path = target.with_suffix(target.suffix + '.tmp')
        try:
            async with self.client.stream(
                'GET',
                url,
                timeout=self.timeout,
                follow_redirects=True,
                headers={'User-Agent': 'ludotheque/1.0'}
            ) as response:
                response.raise_for_status()
                with open(temp_path, 'wb') as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)

            if temp_path.stat().st_size == 0:
                raise DownloadError("Empty response body")

            temp_path.replace(target)

        except DownloadError:
            _remove_quietly(temp_path)
            raise
        except (httpx.HTTPError, OSError) as e:
            _remove_quietly(temp_path)
            _remove_quietly(target)
            raise DownloadError(str(e)) from e


def _non_empty(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def _remove_quietly(path: Path) -> None:
    try:
        if path.exists():
            path.unlink()
    except OSError as e:
        logger.warning(f"Could not remove partial file {path}: {e}")
