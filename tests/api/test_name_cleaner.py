import pytest

from ludotheque.api.name_cleaner import clean_rom_name, is_placeholder_title, normalized_stem


@pytest.mark.unit
@pytest.mark.parametrize(
    "filename, expected",
    [
        ("Super Mario Bros. (World).nes", "Super Mario Bros"),
        ("Legend_of_Zelda-The [!].zip", "Legend of Zelda The"),
        ("Sonic The Hedgehog (USA, Europe) (Rev A) v1.1.md", "Sonic The Hedgehog"),
        ("Final.Fantasy.VI.sfc", "Final Fantasy VI"),
        ("sf2ce.zip", "sf2ce"),
    ],
)
def test_clean_rom_name(filename, expected):
    assert clean_rom_name(filename) == expected


@pytest.mark.unit
def test_normalized_stem_strips_only_last_extension():
    assert normalized_stem("Game (USA).7z") == "Game (USA)"
    assert normalized_stem("Doom.v1.9.zip") == "Doom.v1.9"


@pytest.mark.unit
@pytest.mark.parametrize(
    "title, placeholder",
    [
        ("ZZZ(notgame):Bios", True),
        ("  zzz unknown", True),
        ("Demo disc NOTGAME", True),
        ("Zzyzx Adventure", False),
        ("Super Mario Bros.", False),
        ("", False),
    ],
)
def test_is_placeholder_title(title, placeholder):
    assert is_placeholder_title(title) is placeholder
