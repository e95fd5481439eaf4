"""ROM filename normalisation for name-based lookups."""

import re
from pathlib import Path

_BRACKETS = re.compile(r'\[.*?\]')
_PARENS = re.compile(r'\(.*?\)')
_VERSION = re.compile(r'\bv\d+(\.\d+)*\b', re.IGNORECASE)
_SEPARATORS = re.compile(r'[-_.]')
_WHITESPACE = re.compile(r'\s+')

# Titles ScreenScraper uses for non-game or unidentified entries
_PLACEHOLDER_TITLE = re.compile(r'^\s*zzz|notgame', re.IGNORECASE)


def normalized_stem(filename: str) -> str:
    """Filename without its extension."""
    return Path(filename).stem


def clean_rom_name(filename: str) -> str:
    """
    Turn a ROM filename into free-text search terms.

    Strips the extension, bracketed and parenthesized tags (regions, dump
    flags) and version tokens, then collapses punctuation to spaces.

    Example:
        >>> clean_rom_name("Super_Mario-Bros (USA) [!] v1.1.nes")
        'Super Mario Bros'
    """
    name = normalized_stem(filename)
    name = _BRACKETS.sub('', name)
    name = _PARENS.sub('', name)
    name = _VERSION.sub('', name)
    name = _SEPARATORS.sub(' ', name)
    return _WHITESPACE.sub(' ', name).strip()


def is_placeholder_title(title: str) -> bool:
    """True for titles the service uses for non-game entries."""
    return bool(title) and bool(_PLACEHOLDER_TITLE.search(title))
