import threading

import pytest

from ludotheque.catalog.entry import CatalogEntry, PLACEHOLDER_DESC
from ludotheque.catalog.store import CatalogStore


def _entry(system: str, filename: str, name: str = "", **fields) -> CatalogEntry:
    return CatalogEntry(
        path=f"{system}/{filename}",
        system=system,
        filename=filename,
        name=name or filename.rsplit(".", 1)[0],
        **fields,
    )


@pytest.fixture
def store(tmp_path):
    catalog = CatalogStore(tmp_path / "data" / "catalog.db")
    yield catalog
    catalog.close()


@pytest.mark.unit
def test_entry_decodes_entities():
    entry = _entry("nes", "a.nes", name="Tom &amp; Jerry", desc="Cat &lt;3 mouse")

    assert entry.name == "Tom & Jerry"
    assert entry.desc == "Cat <3 mouse"
    assert not entry.has_placeholder_desc
    assert _entry("nes", "b.nes").has_placeholder_desc


@pytest.mark.unit
def test_replace_changes_row_id(store):
    first = _entry("nes", "mario.nes", name="Mario")
    old_id = store.replace(first)

    second = _entry("nes", "mario.nes", name="Super Mario Bros.", image_path="nes/covers/mario.png")
    new_id = store.replace(second)

    assert new_id != old_id
    assert store.get(old_id) is None
    stored = store.get_by_path("nes/mario.nes")
    assert stored.id == new_id
    assert stored.name == "Super Mario Bros."
    assert stored.image_path == "nes/covers/mario.png"
    assert len(store.list_by_system("nes")) == 1


@pytest.mark.unit
def test_database_parent_directory_is_created(tmp_path):
    catalog = CatalogStore(tmp_path / "nested" / "dir" / "catalog.db")
    catalog.close()

    assert (tmp_path / "nested" / "dir" / "catalog.db").exists()


@pytest.mark.unit
def test_upsert_and_delete_many(store):
    written = store.upsert_many([_entry("snes", f"{n}.sfc") for n in ("a", "b", "c")])
    assert written == 3
    assert store.upsert_many([]) == 0

    ids = [e.id for e in store.list_by_system("snes")[:2]]
    assert store.delete_many(ids) == 2
    assert [e.filename for e in store.list_by_system("snes")] == ["c.sfc"]
    assert store.delete_many([]) == 0


@pytest.mark.unit
def test_null_text_columns_fall_back_to_defaults(store):
    store.upsert_many([_entry("nes", "a.nes")])
    with store._conn:
        store._conn.execute("UPDATE games SET desc = NULL, rating = NULL")

    entry = store.get_by_path("nes/a.nes")
    assert entry.desc == PLACEHOLDER_DESC
    assert entry.rating == "0"


@pytest.mark.unit
def test_list_titles_groups_variants(store):
    store.upsert_many([
        _entry("nes", "Zelda (USA).nes", name="Zelda", image_path="nes/covers/z.png"),
        _entry("nes", "Zelda (Japan).nes", name="Zelda", developer="Nintendo"),
        _entry("nes", "metroid.nes", name="metroid"),
        _entry("snes", "Zelda III.sfc", name="Zelda III"),
    ])

    total, rows = store.list_titles("nes")
    assert total == 2
    assert [r["name"] for r in rows] == ["metroid", "Zelda"]
    zelda = rows[1]
    assert zelda["version_count"] == 2
    assert zelda["image_path"] == "nes/covers/z.png"
    assert zelda["developer"] == "Nintendo"

    total, rows = store.list_titles(keyword="zelda", limit=1, offset=1)
    assert total == 2
    assert len(rows) == 1


@pytest.mark.unit
def test_list_by_title_orders_by_filename(store):
    store.upsert_many([
        _entry("nes", "b.nes", name="Game"),
        _entry("nes", "a.nes", name="Game"),
        _entry("nes", "c.nes", name="Other"),
    ])

    assert [e.filename for e in store.list_by_title("nes", "Game")] == ["a.nes", "b.nes"]
    assert store.count_by_system() == {"nes": 3}


@pytest.mark.unit
def test_referenced_asset_paths(store):
    store.upsert_many([
        _entry("nes", "a.nes", image_path="nes/covers/a.png", video_path="nes/videos/a.mp4"),
        _entry("nes", "b.nes", marquee_path="nes/marquees/b.png", video_path=""),
        _entry("snes", "c.sfc", image_path="snes/covers/c.png"),
    ])

    assert store.referenced_asset_paths("nes") == {
        "nes/covers/a.png",
        "nes/videos/a.mp4",
        "nes/marquees/b.png",
    }


@pytest.mark.unit
def test_concurrent_writes_from_threads(store):
    def write(prefix):
        for i in range(20):
            store.replace(_entry("gba", f"{prefix}{i}.gba"))

    threads = [threading.Thread(target=write, args=(p,)) for p in "xyz"]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.count_by_system()["gba"] == 60
