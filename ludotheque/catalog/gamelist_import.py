"""
gamelist.xml import.

Seeds the catalog from EmulationStation gamelists found in each partition
directory, so an existing scraped collection does not need a full sync.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from lxml import etree

from ludotheque.media.local_assets import find_local_asset
from ludotheque.media.media_types import AssetCategory
from ludotheque.scanner.listing_cache import DirectoryListingCache
from ludotheque.scanner.rom_scanner import list_systems

from .entry import CatalogEntry, PLACEHOLDER_DESC
from .store import CatalogStore

logger = logging.getLogger(__name__)

BATCH_SIZE = 500


def _strip_dot_slash(value: Optional[str]) -> str:
    value = (value or '').strip()
    return value[2:] if value.startswith('./') else value


class GamelistImporter:
    """
    Streams <game> elements from <roms>/<system>/gamelist.xml into the store.

    Media paths in the gamelist are relative to the partition directory;
    they are stored relative to the media root under the partition name.
    Missing image/video paths are filled from local files with the ROM's
    basename.

    Example:
        importer = GamelistImporter(store, rom_root, media_root)
        counts = importer.import_all()
    """

    def __init__(
        self,
        store: CatalogStore,
        rom_root: Path,
        media_root: Path,
        listing_cache: Optional[DirectoryListingCache] = None,
        batch_size: int = BATCH_SIZE
    ):
        self.store = store
        self.rom_root = Path(rom_root)
        self.media_root = Path(media_root)
        self.listing_cache = listing_cache or DirectoryListingCache()
        self.batch_size = batch_size

    def import_all(self) -> Dict[str, int]:
        """
        Import every partition that has a gamelist.xml.

        Returns:
            Rows written per partition
        """
        counts = {}
        for system in list_systems(self.rom_root):
            count = self.import_system(system)
            if count:
                counts[system] = count
        return counts

    def import_system(self, system: str) -> int:
        """
        Import one partition's gamelist.xml.

        A malformed file is logged and skipped; rows already flushed stay.

        Returns:
            Rows written
        """
        xml_path = self.rom_root / system / 'gamelist.xml'
        if not xml_path.is_file():
            return 0

        logger.info(f"[{system}] importing {xml_path}")
        batch: List[CatalogEntry] = []
        written = 0

        try:
            for _, game_elem in etree.iterparse(str(xml_path), events=('end',), tag='game'):
                entry = self._parse_game_element(system, game_elem)
                game_elem.clear()
                if entry is None:
                    continue
                batch.append(entry)
                if len(batch) >= self.batch_size:
                    written += self.store.upsert_many(batch)
                    batch = []
        except etree.XMLSyntaxError as e:
            logger.warning(f"[{system}] malformed gamelist.xml: {e}")

        written += self.store.upsert_many(batch)
        logger.info(f"[{system}] imported {written} games from gamelist.xml")
        return written

    def _parse_game_element(self, system: str, game_elem: etree._Element) -> Optional[CatalogEntry]:
        rom_path = _strip_dot_slash(self._get_text(game_elem, 'path'))
        if not rom_path:
            return None

        basename = Path(rom_path).stem

        return CatalogEntry(
            path=f"{system}/{rom_path}",
            system=system,
            filename=rom_path,
            name=self._get_text(game_elem, 'name') or basename,
            image_path=self._media_path(system, basename, game_elem, 'image', AssetCategory.COVER),
            video_path=self._media_path(system, basename, game_elem, 'video', AssetCategory.VIDEO),
            marquee_path=self._media_path(system, basename, game_elem, 'marquee', AssetCategory.MARQUEE),
            desc=self._get_text(game_elem, 'desc') or PLACEHOLDER_DESC,
            rating=self._get_text(game_elem, 'rating') or '0',
            releasedate=self._get_text(game_elem, 'releasedate') or '',
            developer=self._get_text(game_elem, 'developer') or '',
            publisher=self._get_text(game_elem, 'publisher') or '',
            genre=self._get_text(game_elem, 'genre') or '',
            players=self._get_text(game_elem, 'players') or '',
        )

    def _media_path(
        self,
        system: str,
        basename: str,
        game_elem: etree._Element,
        tag: str,
        category: AssetCategory
    ) -> Optional[str]:
        value = _strip_dot_slash(self._get_text(game_elem, tag))
        if value:
            return f"{system}/{value}"
        return find_local_asset(self.listing_cache, self.media_root, system, basename, category)

    @staticmethod
    def _get_text(element: etree._Element, tag: str) -> Optional[str]:
        """Get stripped text content of a child element."""
        child = element.find(tag)
        if child is None or not child.text:
            return None
        return child.text.strip() or None
