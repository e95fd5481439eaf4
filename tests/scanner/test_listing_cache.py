import pytest

from ludotheque.scanner.listing_cache import DirectoryListingCache


@pytest.mark.unit
def test_find_is_case_insensitive(tmp_path):
    (tmp_path / "Mario.JPG").write_bytes(b"x")
    cache = DirectoryListingCache()

    assert cache.find(tmp_path, "mario", [".png", ".jpg"]) == "Mario.JPG"
    assert cache.find(tmp_path, "luigi", [".png"]) is None


@pytest.mark.unit
def test_extension_order_wins(tmp_path):
    (tmp_path / "game.jpg").write_bytes(b"x")
    (tmp_path / "game.png").write_bytes(b"x")

    assert DirectoryListingCache().find(tmp_path, "game", [".png", ".jpg"]) == "game.png"


@pytest.mark.unit
def test_listing_is_cached_until_invalidated(tmp_path):
    cache = DirectoryListingCache(ttl_seconds=3600)
    assert cache.listing(tmp_path) == {}

    (tmp_path / "new.png").write_bytes(b"x")
    assert cache.listing(tmp_path) == {}

    cache.invalidate(tmp_path)
    assert cache.listing(tmp_path) == {"new.png": "new.png"}


@pytest.mark.unit
def test_expired_listing_is_reread(tmp_path):
    cache = DirectoryListingCache(ttl_seconds=0)
    cache.listing(tmp_path)
    (tmp_path / "new.png").write_bytes(b"x")

    assert "new.png" in cache.listing(tmp_path)


@pytest.mark.unit
def test_missing_directory_is_empty(tmp_path):
    cache = DirectoryListingCache()

    assert cache.find(tmp_path / "absent", "x", [".png"]) is None
    cache.invalidate()
