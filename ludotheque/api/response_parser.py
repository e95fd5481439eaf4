"""ScreenScraper API response parsing and validation."""

import html
import logging
from typing import Dict, Any, Optional, List

from lxml import etree

logger = logging.getLogger(__name__)


class ResponseError(Exception):
    """Response parsing errors."""
    pass


def validate_response(response_content: bytes) -> etree._Element:
    """
    Validate and parse an XML API response.

    Args:
        response_content: Raw response bytes

    Returns:
        Parsed XML root element

    Raises:
        ResponseError: If validation fails
    """
    if not response_content:
        raise ResponseError("Empty response body received")

    try:
        root = etree.fromstring(response_content)
    except etree.XMLSyntaxError as e:
        raise ResponseError(f"Malformed XML: {e}")

    if root.tag != 'Data':
        raise ResponseError(f"Invalid root element: expected 'Data', got '{root.tag}'")

    return root


def _collect(parent: Optional[etree._Element], child_tag: str, key_attr: str,
             default_key: str) -> Dict[str, str]:
    """Map an attribute (region or langue) to decoded text for each child."""
    values: Dict[str, str] = {}
    if parent is None:
        return values
    for elem in parent.findall(child_tag):
        key = elem.get(key_attr, default_key)
        if elem.text and key not in values:
            values[key] = decode_html_entities(elem.text.strip())
    return values


def _parse_jeu_element(jeu_elem: etree._Element) -> Dict[str, Any]:
    """
    Parse a <jeu> element into game metadata.

    Localised fields are kept as {code: text} mappings; the caller picks
    the variant that matches its own region and language priorities.
    """
    game_data: Dict[str, Any] = {}

    game_id = jeu_elem.get('id')
    if game_id:
        game_data['id'] = game_id

    game_data['names'] = _collect(jeu_elem.find('noms'), 'nom', 'region', 'wor')
    game_data['descriptions'] = _collect(jeu_elem.find('synopsis'), 'synopsis', 'langue', 'en')
    game_data['release_dates'] = _collect(jeu_elem.find('dates'), 'date', 'region', 'wor')

    genres_elem = jeu_elem.find('genres')
    if genres_elem is not None:
        # Only the first primary genre is kept, once per language
        primary = [g for g in genres_elem.findall('genre') if g.get('principale') == '1']
        if not primary:
            primary = genres_elem.findall('genre')
        first_id = primary[0].get('id') if primary else None
        genres: Dict[str, str] = {}
        for genre in primary:
            if genre.get('id') != first_id or not genre.text:
                continue
            genres.setdefault(genre.get('langue', 'en'), decode_html_entities(genre.text))
        game_data['genres'] = genres
    else:
        game_data['genres'] = {}

    for tag, key in (('developpeur', 'developer'), ('editeur', 'publisher'), ('joueurs', 'players')):
        elem = jeu_elem.find(tag)
        if elem is not None and elem.text:
            game_data[key] = decode_html_entities(elem.text.strip())

    note = jeu_elem.find('note')
    if note is not None and note.text:
        try:
            game_data['note'] = int(note.text.strip())
        except ValueError:
            logger.debug(f"Ignoring invalid rating '{note.text}'")

    medias = jeu_elem.find('medias')
    game_data['media'] = parse_media_urls(medias) if medias is not None else {}

    return game_data


def parse_game_info(root: etree._Element) -> Optional[Dict[str, Any]]:
    """
    Parse game information from a jeuInfos.php response.

    Args:
        root: Parsed XML root element

    Returns:
        Game metadata dict, or None when the response carries no <jeu>
    """
    jeu_elem = root.find('jeu')
    if jeu_elem is None:
        return None
    return _parse_jeu_element(jeu_elem)


def parse_search_results(root: etree._Element) -> List[Dict[str, Any]]:
    """
    Parse the game list from a jeuRecherche.php response.

    Args:
        root: Parsed XML root element with <jeux> container

    Returns:
        List of game metadata dicts in server order
    """
    jeux = root.find('jeux')
    if jeux is None:
        return []
    return [_parse_jeu_element(jeu) for jeu in jeux.findall('jeu')]


def parse_media_urls(medias_elem: etree._Element) -> Dict[str, List[Dict[str, Any]]]:
    """
    Parse media URLs from response.

    Args:
        medias_elem: <medias> XML element

    Returns:
        Dictionary mapping media type to list of media items
    """
    media_dict: Dict[str, List[Dict[str, Any]]] = {}

    for media in medias_elem.findall('media'):
        media_type = media.get('type')
        if not media_type:
            continue

        media_info = {
            'type': media_type,
            'url': media.text.strip() if media.text else None,
            'format': media.get('format'),
            'region': media.get('region'),
        }
        media_dict.setdefault(media_type, []).append(media_info)

    return media_dict


def decode_html_entities(text: str) -> str:
    """
    Decode HTML entities in API response text.

    ScreenScraper returns text with HTML entities that must be decoded.
    """
    if not text:
        return text
    return html.unescape(text)


def extract_error_message(root: etree._Element) -> Optional[str]:
    """
    Extract error message from API response.

    Args:
        root: Parsed XML root element

    Returns:
        Error message or None
    """
    error_elem = root.find('.//erreur')
    if error_elem is not None and error_elem.text:
        return decode_html_entities(error_elem.text)
    return None
