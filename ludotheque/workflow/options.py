"""Per-request sync options."""

from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, List, Optional

from ludotheque.media.media_types import AssetCategory


@dataclass(frozen=True)
class SyncOptions:
    """
    What a sync pass fetches and how it treats existing data.

    Attributes:
        sync_info: Refresh descriptive metadata from the lookup service
        sync_images: Fetch covers and screenshots
        sync_video: Fetch video snaps
        sync_marquees: Fetch marquee/wheel logos
        sync_box_art: Fetch box textures and composite them with the logo
        incremental: Only process new files and files with missing data
        overwrite: Re-download assets even when a local copy exists
    """
    sync_info: bool = True
    sync_images: bool = True
    sync_video: bool = False
    sync_marquees: bool = True
    sync_box_art: bool = False
    incremental: bool = True
    overwrite: bool = False

    # Wire names used by status payloads and request bodies
    _WIRE_NAMES = {
        'syncInfo': 'sync_info',
        'syncImages': 'sync_images',
        'syncVideo': 'sync_video',
        'syncMarquees': 'sync_marquees',
        'syncBoxArt': 'sync_box_art',
        'incremental': 'incremental',
        'overwrite': 'overwrite',
    }

    @classmethod
    def bulk(cls, **overrides) -> 'SyncOptions':
        """Defaults for a partition-wide sync."""
        return cls(**overrides)

    @classmethod
    def refresh(cls, **overrides) -> 'SyncOptions':
        """
        Options for a single-entry forced refresh.

        incremental and overwrite are always forced, whatever the caller
        passes, so every requested category is fetched again.
        """
        overrides.update(incremental=False, overwrite=True)
        return cls(**overrides)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], refresh: bool = False) -> 'SyncOptions':
        """
        Build options from a request payload (camelCase or snake_case keys).

        Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            name = cls._WIRE_NAMES.get(key, key)
            if name in known:
                values[name] = bool(value)
        return cls.refresh(**values) if refresh else cls.bulk(**values)

    def to_dict(self) -> Dict[str, bool]:
        """camelCase representation."""
        data = asdict(self)
        return {wire: data[name] for wire, name in self._WIRE_NAMES.items()}

    @property
    def requested_categories(self) -> List[AssetCategory]:
        """Asset categories these options fetch, in processing order."""
        categories = []
        if self.sync_images:
            categories.extend([AssetCategory.COVER, AssetCategory.SCREENSHOT])
        if self.sync_video:
            categories.append(AssetCategory.VIDEO)
        if self.sync_marquees:
            categories.append(AssetCategory.MARQUEE)
        if self.sync_box_art:
            categories.append(AssetCategory.BOX_TEXTURE)
        return categories
