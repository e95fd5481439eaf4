"""
Shared pytest fixtures and utilities for the ludotheque test suite.
"""

from io import BytesIO
from pathlib import Path
from typing import Dict, Any, Callable, Optional

import pytest
import yaml

from ludotheque.config.loader import apply_defaults


@pytest.fixture
def rom_root(tmp_path: Path) -> Path:
    path = tmp_path / "roms"
    path.mkdir()
    return path


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    path = tmp_path / "media"
    path.mkdir()
    return path


@pytest.fixture
def make_roms(rom_root: Path) -> Callable[..., Path]:
    """
    Create ROM files under <roms>/<system>/.

    Usage:
        make_roms("nes", "mario.zip", "zelda.zip")
    """

    def _builder(system: str, *filenames: str, content: bytes = b"ROMDATA") -> Path:
        system_dir = rom_root / system
        system_dir.mkdir(parents=True, exist_ok=True)
        for filename in filenames:
            (system_dir / filename).write_bytes(content)
        return system_dir

    return _builder


@pytest.fixture
def base_config(tmp_path: Path, rom_root: Path, media_root: Path) -> Dict[str, Any]:
    """Configuration dict with defaults applied and fast scheduler timings."""
    config = {
        "paths": {
            "roms": str(rom_root),
            "media": str(media_root),
            "database": str(tmp_path / "data" / "catalog.db"),
        },
        "screenscraper": {
            "devid": "dev",
            "devpassword": "devpass",
            "softname": "ludotheque-test",
            "user_id": "user",
            "user_password": "pass",
        },
        "api": {"request_timeout": 5, "max_retries": 1, "retry_backoff_seconds": 0},
        "scheduler": {"task_delay": 0, "restart_delay": 0, "stop_grace": 0},
    }
    return apply_defaults(config)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[[Optional[Dict[str, Any]]], Path]:
    """
    Create a minimal config.yaml in a temp directory.

    Usage:
        path = make_config({"scheduler": {"task_delay": 0.5}})
    """

    def _builder(overrides: Optional[Dict[str, Any]] = None) -> Path:
        base = {
            "screenscraper": {
                "devid": "dev",
                "devpassword": "devpass",
            },
            "paths": {
                "roms": str(tmp_path / "roms"),
                "media": str(tmp_path / "media"),
                "database": str(tmp_path / "catalog.db"),
            },
        }
        if overrides:
            base = merge_dicts(base, overrides)

        cfg_path = tmp_path / "config.yaml"
        cfg_path.write_text(yaml.safe_dump(base))
        return cfg_path

    return _builder


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow+deep merge helper for fixture config dictionaries.
    """
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def make_png_bytes(width: int = 4, height: int = 4, color=(255, 0, 0)) -> bytes:
    from PIL import Image

    img = Image.new("RGB", (width, height), color=color)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def jeu_xml(game_id: str = "1", name: str = "Super Mario Bros.", region: str = "us",
            media: str = "", extra: str = "") -> bytes:
    """Minimal jeuInfos.php XML response."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
    <Data>
      <jeu id="{game_id}">
        <noms><nom region="{region}">{name}</nom></noms>
        <synopsis><synopsis langue="en">A plumber saves a princess.</synopsis></synopsis>
        <developpeur>Nintendo</developpeur>
        <editeur>Nintendo</editeur>
        <joueurs>1-2</joueurs>
        <note>18</note>
        {extra}
        <medias>{media}</medias>
      </jeu>
    </Data>
    """.encode("utf-8")


def search_xml(*games) -> bytes:
    """jeuRecherche.php XML with (id, name) pairs."""
    jeux = "".join(
        f'<jeu id="{gid}"><noms><nom region="us">{name}</nom></noms></jeu>' for gid, name in games
    )
    return f"<Data><jeux>{jeux}</jeux></Data>".encode("utf-8")


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    return make_png_bytes


@pytest.fixture
def jeu_response() -> Callable[..., bytes]:
    return jeu_xml


@pytest.fixture
def search_response() -> Callable[..., bytes]:
    return search_xml
