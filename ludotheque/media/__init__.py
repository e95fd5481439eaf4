"""
Media package for ludotheque.

Asset categories, region selection, download/dedup, orphan cleanup and
box-texture compositing.
"""

from .media_types import AssetCategory, ASSET_DIRECTORIES, get_category_for_directory
from .region_selector import localize, select_media
from .dedup_cache import MediaDedupCache
from .fetcher import MediaFetcher, DownloadError
from .reaper import OrphanReaper
from .box_texture import compose_box_texture, process_box_texture
from .local_assets import find_local_asset

__all__ = [
    "AssetCategory",
    "ASSET_DIRECTORIES",
    "get_category_for_directory",
    "localize",
    "select_media",
    "MediaDedupCache",
    "MediaFetcher",
    "DownloadError",
    "OrphanReaper",
    "compose_box_texture",
    "process_box_texture",
    "find_local_asset",
]
