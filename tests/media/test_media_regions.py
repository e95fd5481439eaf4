import pytest

from ludotheque.media.media_types import AssetCategory, get_category_for_directory
from ludotheque.media.region_selector import localize, select_media


@pytest.mark.unit
def test_localize_priority_and_fallback():
    names = {"JP": "Rockman", "us": "Mega Man"}

    assert localize(names, ["us", "jp"]) == "Mega Man"
    assert localize(names, ["jp"]) == "Rockman"
    assert localize({"br": "Mega Homem"}, ["us"]) == "Mega Homem"
    assert localize({}, ["us"]) == ""
    assert localize(None, ["us"]) == ""


@pytest.mark.unit
def test_select_media_type_order_then_region():
    media = {
        "box-2D": [
            {"type": "box-2D", "region": "jp", "url": "jp2d"},
            {"type": "box-2D", "region": "us", "url": "us2d"},
        ],
        "box-3D": [{"type": "box-3D", "region": "jp", "url": "jp3d"}],
    }

    assert select_media(media, ("box-3D", "box-2D"), ["us"])["url"] == "jp3d"
    assert select_media(media, ("box-2D",), ["eu", "us"])["url"] == "us2d"
    assert select_media(media, ("box-2D",), ["eu"])["url"] == "jp2d"
    assert select_media(media, ("wheel",), ["us"]) is None


@pytest.mark.unit
def test_select_media_ignores_items_without_url():
    media = {"ss": [{"type": "ss", "region": "us", "url": ""}]}

    assert select_media(media, ("ss",), ["us"]) is None


@pytest.mark.unit
def test_category_lookup():
    assert get_category_for_directory("boxtextures") is AssetCategory.BOX_TEXTURE
    assert AssetCategory.VIDEO.local_extensions[0] == ".mp4"
    assert AssetCategory.COVER.field == "image_path"

    with pytest.raises(ValueError):
        get_category_for_directory("manuals")
