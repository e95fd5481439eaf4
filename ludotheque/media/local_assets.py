"""Discovery of media files already present in the media tree."""

from pathlib import Path
from typing import Optional

from ludotheque.scanner.listing_cache import DirectoryListingCache
from .media_types import AssetCategory, LOCAL_COVER_DIRECTORIES


def find_local_asset(
    listing_cache: DirectoryListingCache,
    media_root: Path,
    system: str,
    basename: str,
    category: AssetCategory
) -> Optional[str]:
    """
    Find an existing, non-empty file for a ROM basename.

    Covers are also looked for among mix images and screenshots. Matching
    is case-insensitive on the filename.

    Returns:
        Path relative to the media root ("nes/covers/Mario.jpg"), or None
    """
    if category is AssetCategory.COVER:
        directories = LOCAL_COVER_DIRECTORIES
    else:
        directories = (category.directory,)

    for directory in directories:
        real = listing_cache.find(media_root / system / directory, basename, category.local_extensions)
        if not real:
            continue
        try:
            if (media_root / system / directory / real).stat().st_size > 0:
                return f"{system}/{directory}/{real}"
        except OSError:
            continue
    return None
