"""
Asset category definitions.

Maps each catalog asset field to its media sub-directory, file extension
and the ScreenScraper media types that may fill it.
"""

from enum import Enum
from typing import Dict, List, Tuple


IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.gif')
VIDEO_EXTENSIONS = ('.mp4', '.webm', '.mkv', '.avi')

# Image directories shown in a variant's gallery, in display order
GALLERY_DIRECTORIES = ('covers', 'miximages', 'screenshots', 'titles', 'marquees')

# Directories searched for an existing cover before downloading one
LOCAL_COVER_DIRECTORIES = ('covers', 'miximages', 'screenshots')


class AssetCategory(Enum):
    """
    Asset categories tracked on a CatalogEntry.

    Value tuple: (entry field, media sub-directory, stored extension,
    ScreenScraper media types in priority order)
    """
    COVER = ('image_path', 'covers', '.png', ('box-3D', 'box-2D'))
    SCREENSHOT = ('screenshot_path', 'screenshots', '.png', ('fanart', 'ss'))
    VIDEO = ('video_path', 'videos', '.mp4', ('video-normalized', 'video'))
    MARQUEE = ('marquee_path', 'marquees', '.png', ('wheel', 'screenmarquee', 'marquee'))
    BOX_TEXTURE = ('boxart_path', 'boxtextures', '.png', ('box-texture',))

    @property
    def field(self) -> str:
        return self.value[0]

    @property
    def directory(self) -> str:
        return self.value[1]

    @property
    def extension(self) -> str:
        return self.value[2]

    @property
    def media_types(self) -> Tuple[str, ...]:
        return self.value[3]

    @property
    def local_extensions(self) -> Tuple[str, ...]:
        """Extensions accepted when adopting an existing local file."""
        return VIDEO_EXTENSIONS if self is AssetCategory.VIDEO else IMAGE_EXTENSIONS


# Sub-directories swept by the orphan reaper
ASSET_DIRECTORIES: List[str] = [c.directory for c in AssetCategory]

# Lookup by directory name
DIRECTORY_TO_CATEGORY: Dict[str, AssetCategory] = {c.directory: c for c in AssetCategory}


def get_category_for_directory(directory: str) -> AssetCategory:
    """
    Get the asset category stored in a media sub-directory.

    Raises:
        ValueError: If directory is not an asset directory
    """
    if directory not in DIRECTORY_TO_CATEGORY:
        raise ValueError(f"Unsupported media directory: {directory}")
    return DIRECTORY_TO_CATEGORY[directory]
