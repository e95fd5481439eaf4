"""Persistent ROM catalog (SQLite) and gamelist.xml import."""

from .entry import CatalogEntry, PLACEHOLDER_DESC
from .store import CatalogStore, EntryNotFoundError

__all__ = ["CatalogEntry", "PLACEHOLDER_DESC", "CatalogStore", "EntryNotFoundError"]
