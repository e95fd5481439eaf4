"""
SQLite-backed catalog store.

Provides point lookups, per-system range scans, grouped title queries
and transactional batch writes for CatalogEntry rows.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .entry import CatalogEntry

logger = logging.getLogger(__name__)


class EntryNotFoundError(Exception):
    """Unknown catalog id, or the entry's backing file is missing."""
    pass


COLUMNS = (
    'path', 'system', 'filename', 'name',
    'image_path', 'video_path', 'marquee_path', 'boxart_path', 'screenshot_path',
    'desc', 'rating', 'releasedate', 'developer', 'publisher', 'genre', 'players',
)

ASSET_COLUMNS = ('image_path', 'video_path', 'marquee_path', 'boxart_path', 'screenshot_path')

# Descriptive columns aggregated with MAX() when grouping variants by title
_GROUPED_COLUMNS = (
    'image_path', 'video_path', 'releasedate', 'developer', 'publisher',
    'genre', 'players', 'rating', 'desc',
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS games (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path TEXT UNIQUE,
    system TEXT,
    filename TEXT,
    name TEXT,
    image_path TEXT,
    video_path TEXT,
    marquee_path TEXT,
    boxart_path TEXT,
    screenshot_path TEXT,
    desc TEXT,
    rating TEXT,
    releasedate TEXT,
    developer TEXT,
    publisher TEXT,
    genre TEXT,
    players TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_games_system ON games(system);
CREATE INDEX IF NOT EXISTS idx_games_name ON games(name);
"""


class CatalogStore:
    """
    Durable table of CatalogEntry rows keyed by unique relative path.

    Entries are never partially updated: re-processing a file replaces its
    row (delete + insert in one transaction) so the row id changes.

    Example:
        store = CatalogStore(Path("data/catalog.db"))
        for entry in store.list_by_system("nes"):
            print(entry.filename, entry.name)
        store.close()
    """

    def __init__(self, db_path: Path):
        """
        Open (and create if needed) the catalog database.

        Args:
            db_path: SQLite file path, or ":memory:" for tests
        """
        self.db_path = db_path
        if str(db_path) != ':memory:':
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        # Accessed from asyncio.to_thread workers as well as the loop thread
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()

        with self._lock, self._conn:
            self._conn.executescript(_SCHEMA)

        logger.debug(f"CatalogStore opened: {db_path}")

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, entry_id: int) -> Optional[CatalogEntry]:
        """Point lookup by row id."""
        with self._lock:
            row = self._conn.execute(
                'SELECT * FROM games WHERE id = ?', (entry_id,)
            ).fetchone()
        return CatalogEntry.from_row(row) if row else None

    def get_by_path(self, path: str) -> Optional[CatalogEntry]:
        """Point lookup by unique relative path."""
        with self._lock:
            row = self._conn.execute(
                'SELECT * FROM games WHERE path = ?', (path,)
            ).fetchone()
        return CatalogEntry.from_row(row) if row else None

    def list_by_system(self, system: str) -> List[CatalogEntry]:
        """All entries of one partition."""
        with self._lock:
            rows = self._conn.execute(
                'SELECT * FROM games WHERE system = ? ORDER BY filename', (system,)
            ).fetchall()
        return [CatalogEntry.from_row(r) for r in rows]

    def list_by_title(self, system: str, name: str) -> List[CatalogEntry]:
        """All variants sharing (system, name), ordered by filename."""
        with self._lock:
            rows = self._conn.execute(
                'SELECT * FROM games WHERE system = ? AND name = ? ORDER BY filename ASC',
                (system, name)
            ).fetchall()
        return [CatalogEntry.from_row(r) for r in rows]

    def count_by_system(self) -> Dict[str, int]:
        """Number of entries per partition."""
        with self._lock:
            rows = self._conn.execute(
                'SELECT system, COUNT(*) AS count FROM games GROUP BY system'
            ).fetchall()
        return {row['system']: row['count'] for row in rows}

    def list_titles(
        self,
        system: Optional[str] = None,
        keyword: str = '',
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[int, List[Dict]]:
        """
        Titles grouped across variants.

        Each row carries the MAX() of the descriptive columns and a
        version_count. Ordered case-insensitively by name.

        Args:
            system: Restrict to one partition
            keyword: Substring match on name or filename
            limit: Page size (None returns every title)
            offset: Rows to skip

        Returns:
            Tuple of (total distinct titles, page rows)
        """
        where = 'WHERE 1=1'
        params: List = []
        if system:
            where += ' AND system = ?'
            params.append(system)
        if keyword:
            where += ' AND (name LIKE ? OR filename LIKE ?)'
            params.extend([f'%{keyword}%', f'%{keyword}%'])

        aggregates = ', '.join(f'MAX({c}) AS {c}' for c in _GROUPED_COLUMNS)
        sql = (
            f'SELECT name, {aggregates}, COUNT(*) AS version_count '
            f'FROM games {where} GROUP BY name ORDER BY name COLLATE NOCASE ASC'
        )
        page_params = list(params)
        if limit is not None:
            sql += ' LIMIT ? OFFSET ?'
            page_params.extend([limit, offset])

        with self._lock:
            total = self._conn.execute(
                f'SELECT COUNT(DISTINCT name) AS total FROM games {where}', params
            ).fetchone()['total']
            rows = self._conn.execute(sql, page_params).fetchall()

        return total, [dict(r) for r in rows]

    def referenced_asset_paths(self, system: str) -> Set[str]:
        """Every non-empty asset path referenced by the partition's rows."""
        columns = ', '.join(ASSET_COLUMNS)
        with self._lock:
            rows = self._conn.execute(
                f'SELECT {columns} FROM games WHERE system = ?', (system,)
            ).fetchall()

        referenced = set()
        for row in rows:
            for column in ASSET_COLUMNS:
                if row[column]:
                    referenced.add(row[column])
        return referenced

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def replace(self, entry: CatalogEntry) -> int:
        """
        Delete any row for entry.path and insert entry, in one transaction.

        Returns:
            New row id (also stored on entry.id)
        """
        values = [getattr(entry, c) for c in COLUMNS]
        placeholders = ', '.join('?' for _ in COLUMNS)

        with self._lock, self._conn:
            self._conn.execute('DELETE FROM games WHERE path = ?', (entry.path,))
            cursor = self._conn.execute(
                f'INSERT INTO games ({", ".join(COLUMNS)}) VALUES ({placeholders})',
                values
            )
        entry.id = cursor.lastrowid
        return entry.id

    def upsert_many(self, entries: Iterable[CatalogEntry]) -> int:
        """
        Insert or replace a batch of entries in one transaction.

        Returns:
            Number of rows written
        """
        rows = [[getattr(e, c) for c in COLUMNS] for e in entries]
        if not rows:
            return 0

        placeholders = ', '.join('?' for _ in COLUMNS)
        with self._lock, self._conn:
            self._conn.executemany(
                f'INSERT OR REPLACE INTO games ({", ".join(COLUMNS)}) VALUES ({placeholders})',
                rows
            )
        return len(rows)

    def delete_many(self, entry_ids: Iterable[int]) -> int:
        """
        Delete rows by id in one transaction.

        Returns:
            Number of rows deleted
        """
        ids = [(i,) for i in entry_ids]
        if not ids:
            return 0

        with self._lock, self._conn:
            self._conn.executemany('DELETE FROM games WHERE id = ?', ids)
        return len(ids)
