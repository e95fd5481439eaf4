"""
Catalog data structures.

One CatalogEntry per physical ROM file. Variants of the same game share
(system, name) but never path.
"""

import html
from dataclasses import dataclass, asdict, fields
from typing import Optional, Dict, Any


# Description stored for files that have never been matched
PLACEHOLDER_DESC = "No description available."


@dataclass
class CatalogEntry:
    """
    Represents a cataloged ROM file.

    Asset paths are relative to the media root (e.g. "nes/covers/Game.png").
    Text fields are stored decoded (HTML entities already unescaped).
    """
    # Identity
    path: str       # "<system>/<filename>", unique
    system: str
    filename: str
    name: str       # Logical title shared by variants

    # Asset paths
    image_path: Optional[str] = None
    video_path: Optional[str] = None
    marquee_path: Optional[str] = None
    boxart_path: Optional[str] = None
    screenshot_path: Optional[str] = None

    # Descriptive metadata
    desc: str = PLACEHOLDER_DESC
    rating: str = "0"
    releasedate: str = ""
    developer: str = ""
    publisher: str = ""
    genre: str = ""
    players: str = ""

    # Row id, assigned by the store
    id: Optional[int] = None

    def __post_init__(self):
        """Decode HTML entities in text fields."""
        for attr in ('name', 'desc', 'developer', 'publisher', 'genre'):
            value = getattr(self, attr)
            if value:
                setattr(self, attr, html.unescape(value))

    @property
    def has_placeholder_desc(self) -> bool:
        """True while no real synopsis has been stored."""
        return not self.desc or self.desc == PLACEHOLDER_DESC

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dict (JSON-friendly)."""
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> 'CatalogEntry':
        """Build an entry from a sqlite3.Row or mapping, ignoring unknown columns."""
        keys = set(row.keys())
        kwargs = {}
        for f in fields(cls):
            if f.name in keys:
                value = row[f.name]
                if value is None and f.name in ('desc', 'rating', 'releasedate',
                                                'developer', 'publisher', 'genre', 'players'):
                    continue
                kwargs[f.name] = value
        return cls(**kwargs)
