"""
Ludotheque - ROM library catalog, ScreenScraper enrichment and arcade
archive composition.

Scans per-platform ROM directories into a SQLite catalog, enriches each
entry with ScreenScraper metadata and media, and serves merged archives
to emulation front-ends.
"""

__version__ = "0.3.0"
