import os

import pytest

from ludotheque.catalog.entry import CatalogEntry
from ludotheque.catalog.store import CatalogStore
from ludotheque.media.reaper import OrphanReaper


@pytest.fixture
def store(tmp_path):
    catalog = CatalogStore(tmp_path / "catalog.db")
    yield catalog
    catalog.close()


def _write(media_root, rel_path, content=b"data"):
    path = media_root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


@pytest.mark.unit
def test_sweep_removes_only_unreferenced(store, media_root):
    kept = _write(media_root, "nes/covers/a.png")
    orphan = _write(media_root, "nes/covers/gone.png")
    other_dir = _write(media_root, "nes/manuals/a.pdf")
    other_system = _write(media_root, "snes/covers/gone.png")

    store.replace(CatalogEntry(path="nes/a.nes", system="nes", filename="a.nes", name="A",
                               image_path="nes/covers/a.png"))

    removed = OrphanReaper(store, media_root).sweep("nes")

    assert removed == 1
    assert kept.exists()
    assert not orphan.exists()
    assert other_dir.exists()
    assert other_system.exists()


@pytest.mark.unit
def test_shared_hard_link_survives_variant_removal(store, media_root):
    usa = _write(media_root, "nes/covers/Zelda (USA).png")
    europe = media_root / "nes" / "covers" / "Zelda (Europe).png"
    os.link(usa, europe)

    store.replace(CatalogEntry(path="nes/Zelda (Europe).nes", system="nes",
                               filename="Zelda (Europe).nes", name="Zelda",
                               image_path="nes/covers/Zelda (Europe).png"))

    OrphanReaper(store, media_root).sweep("nes")

    assert not usa.exists()
    assert europe.read_bytes() == b"data"


@pytest.mark.unit
def test_sweep_missing_partition(store, media_root):
    assert OrphanReaper(store, media_root).sweep("gba") == 0


@pytest.mark.unit
def test_sweep_leaves_partial_downloads(store, media_root):
    partial = _write(media_root, "nes/covers/mario.png.tmp")
    orphan = _write(media_root, "nes/covers/old.png")

    removed = OrphanReaper(store, media_root).sweep("nes")

    assert removed == 1
    assert partial.exists()
    assert not orphan.exists()
