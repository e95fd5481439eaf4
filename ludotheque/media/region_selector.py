"""
Region and language prioritisation.

ScreenScraper returns most text and media once per region (or language).
These helpers pick the best entry from a priority list and fall back to
the first available one.
"""

import logging
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


DEFAULT_REGIONS = ['us', 'wor', 'eu', 'ss', 'jp']
DEFAULT_LANGUAGES = ['en', 'fr', 'de', 'es']


def localize(values: Optional[Dict[str, str]], priorities: Sequence[str]) -> str:
    """
    Pick a localized value from a {code: text} mapping.

    Args:
        values: Mapping of region or language code to text
        priorities: Codes in preference order

    Returns:
        First value whose code matches a priority (case-insensitive),
        else the first value in the mapping, else ''
    """
    if not values:
        return ''

    lowered = {code.lower(): text for code, text in values.items() if code}
    for code in priorities:
        text = lowered.get(code.lower())
        if text:
            return text

    for text in values.values():
        if text:
            return text
    return ''


def select_media(
    media: Dict[str, List[Dict]],
    media_types: Sequence[str],
    preferred_regions: Sequence[str]
) -> Optional[Dict]:
    """
    Select one media item for a category.

    Media types are tried in order; within a type the region priority list
    is scanned, then the first item of that type is used.

    Args:
        media: Mapping of media type to list of media dicts (as parsed)
        media_types: Allow-listed media types in priority order
        preferred_regions: Region priority list

    Returns:
        Media dict with 'url', 'format', 'region', 'type', or None
    """
    for media_type in media_types:
        items = [m for m in media.get(media_type, []) if m.get('url')]
        if not items:
            continue

        for region in preferred_regions:
            for item in items:
                if (item.get('region') or '').lower() == region.lower():
                    logger.debug(f"    {media_type}: matched region '{region}'")
                    return item

        logger.debug(f"    {media_type}: no preferred region, using first available")
        return items[0]

    return None
