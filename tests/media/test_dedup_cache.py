import json

import pytest

from ludotheque.media.dedup_cache import MediaDedupCache


@pytest.mark.unit
def test_register_persists_json(media_root):
    cache = MediaDedupCache(media_root)
    cache.register("https://x/1", "nes/covers/a.png")

    data = json.loads((media_root / ".cache" / "media_cache.json").read_text())
    assert data == {"https://x/1": "nes/covers/a.png"}
    assert MediaDedupCache(media_root).get("https://x/1") == "nes/covers/a.png"


@pytest.mark.unit
def test_lookup_checks_disk(media_root):
    cache = MediaDedupCache(media_root)
    cache.register("https://x/1", "nes/covers/a.png")
    cache.register("https://x/2", "nes/covers/empty.png")

    assert cache.lookup("https://x/1") is None

    covers = media_root / "nes" / "covers"
    covers.mkdir(parents=True)
    (covers / "a.png").write_bytes(b"png")
    (covers / "empty.png").write_bytes(b"")

    assert cache.lookup("https://x/1") == covers / "a.png"
    assert cache.lookup("https://x/2") is None
    assert cache.lookup("https://x/3") is None

    metrics = cache.get_metrics()
    assert metrics["hits"] == 1
    assert metrics["misses"] == 3
    assert metrics["total_entries"] == 2


@pytest.mark.unit
def test_corrupt_file_starts_empty(media_root):
    (media_root / ".cache").mkdir()
    (media_root / ".cache" / "media_cache.json").write_text("{not json")

    assert len(MediaDedupCache(media_root)) == 0


@pytest.mark.unit
def test_disabled_cache(media_root):
    cache = MediaDedupCache(media_root, enabled=False)
    cache.register("https://x/1", "nes/covers/a.png")

    assert cache.get("https://x/1") is None
    assert not (media_root / ".cache").exists()
