import httpx
import pytest
import respx

from ludotheque.media.dedup_cache import MediaDedupCache
from ludotheque.media.fetcher import MediaFetcher
from ludotheque.media.media_types import AssetCategory

COVER_URL = "https://neoclone.screenscraper.fr/api2/mediaJeu.php?jeuid=1&media=box-2D(us)"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_download_writes_target(media_root, png_bytes):
    payload = png_bytes()

    async with httpx.AsyncClient() as client:
        fetcher = MediaFetcher(client, media_root, MediaDedupCache(media_root))
        with respx.mock(assert_all_called=False) as mock:
            mock.get(COVER_URL).respond(200, content=payload)
            rel_path = await fetcher.ensure_local(COVER_URL, "nes", AssetCategory.COVER, "Mario")

    assert rel_path == "nes/covers/Mario.png"
    assert (media_root / rel_path).read_bytes() == payload
    assert not (media_root / "nes" / "covers" / "Mario.png.tmp").exists()
    assert fetcher.download_count == 1


@pytest.mark.integration
@pytest.mark.asyncio
async def test_duplicate_url_is_hard_linked(media_root, png_bytes):
    async with httpx.AsyncClient() as client:
        fetcher = MediaFetcher(client, media_root, MediaDedupCache(media_root))
        with respx.mock(assert_all_called=False) as mock:
            route = mock.get(COVER_URL).respond(200, content=png_bytes())
            first = await fetcher.ensure_local(COVER_URL, "nes", AssetCategory.COVER, "Zelda (USA)")
            second = await fetcher.ensure_local(COVER_URL, "nes", AssetCategory.COVER, "Zelda (Europe)")

    assert route.call_count == 1
    assert first != second
    assert (media_root / first).stat().st_ino == (media_root / second).stat().st_ino
    assert fetcher.link_count == 1


@pytest.mark.integration
@pytest.mark.asyncio
async def test_dedup_survives_restart(media_root, png_bytes):
    async with httpx.AsyncClient() as client:
        with respx.mock(assert_all_called=False) as mock:
            route = mock.get(COVER_URL).respond(200, content=png_bytes())
            await MediaFetcher(client, media_root, MediaDedupCache(media_root)).ensure_local(
                COVER_URL, "nes", AssetCategory.COVER, "A"
            )
            await MediaFetcher(client, media_root, MediaDedupCache(media_root)).ensure_local(
                COVER_URL, "nes", AssetCategory.COVER, "B"
            )

    assert route.call_count == 1
    assert (media_root / "nes" / "covers" / "B.png").exists()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_existing_target_is_kept(media_root):
    target = media_root / "nes" / "covers" / "Mario.png"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"local")

    async with httpx.AsyncClient() as client:
        cache = MediaDedupCache(media_root)
        fetcher = MediaFetcher(client, media_root, cache)
        with respx.mock(assert_all_called=False) as mock:
            route = mock.get(COVER_URL).respond(200, content=b"remote")
            rel_path = await fetcher.ensure_local(COVER_URL, "nes", AssetCategory.COVER, "Mario")

    assert rel_path == "nes/covers/Mario.png"
    assert target.read_bytes() == b"local"
    assert not route.called
    assert cache.get(COVER_URL) is None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_overwrite_replaces_target(media_root):
    target = media_root / "nes" / "covers" / "Mario.png"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"local")

    async with httpx.AsyncClient() as client:
        fetcher = MediaFetcher(client, media_root, MediaDedupCache(media_root))
        with respx.mock(assert_all_called=False) as mock:
            mock.get(COVER_URL).respond(200, content=b"remote")
            await fetcher.ensure_local(COVER_URL, "nes", AssetCategory.COVER, "Mario", overwrite=True)

    assert target.read_bytes() == b"remote"


@pytest.mark.integration
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [httpx.Response(404), httpx.Response(200, content=b"")],
)
async def test_failed_download_leaves_nothing(media_root, response):
    async with httpx.AsyncClient() as client:
        fetcher = MediaFetcher(client, media_root, MediaDedupCache(media_root))
        with respx.mock(assert_all_called=False) as mock:
            mock.get(COVER_URL).mock(return_value=response)
            rel_path = await fetcher.ensure_local(COVER_URL, "nes", AssetCategory.VIDEO, "Mario")

    assert rel_path is None
    assert list((media_root / "nes" / "videos").iterdir()) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_transport_error_is_reported_as_none(media_root):
    async with httpx.AsyncClient() as client:
        fetcher = MediaFetcher(client, media_root, MediaDedupCache(media_root))
        with respx.mock(assert_all_called=False) as mock:
            mock.get(COVER_URL).mock(side_effect=httpx.ConnectError("down"))
            assert await fetcher.ensure_local(COVER_URL, "nes", AssetCategory.COVER, "Mario") is None
