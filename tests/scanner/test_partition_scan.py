import pytest

from ludotheque.scanner.rom_scanner import (
    ScannerError,
    is_ignored_dir,
    is_rom_file,
    list_rom_files,
    list_systems,
)


@pytest.mark.unit
def test_list_systems_skips_ignored_dirs(rom_root, make_roms):
    make_roms("snes", "a.sfc")
    make_roms("nes", "b.nes")
    for name in ("bios", ".hidden", "Media"):
        (rom_root / name).mkdir()
    (rom_root / "readme.txt").write_text("x")

    assert list_systems(rom_root) == ["nes", "snes"]


@pytest.mark.unit
def test_list_systems_missing_root(tmp_path):
    assert list_systems(tmp_path / "absent") == []


@pytest.mark.unit
def test_list_rom_files_filters_extensions(make_roms, rom_root):
    system_dir = make_roms("nes", "b.NES", "a.zip", "notes.txt", ".hidden.nes")
    (system_dir / "sub.zip").mkdir()

    assert list_rom_files(rom_root, "nes") == ["a.zip", "b.NES"]


@pytest.mark.unit
def test_list_rom_files_errors(rom_root):
    with pytest.raises(ScannerError, match="not found"):
        list_rom_files(rom_root, "nes")

    with pytest.raises(ScannerError, match="Not a ROM partition"):
        list_rom_files(rom_root, "bios")


@pytest.mark.unit
@pytest.mark.parametrize(
    "name, ignored",
    [("bios", True), ("Screenshots", True), (".git", True), ("nes", False), ("mame", False)],
)
def test_is_ignored_dir(name, ignored):
    assert is_ignored_dir(name) is ignored


@pytest.mark.unit
def test_is_rom_file():
    assert is_rom_file("Game (Disc 1).CHD")
    assert not is_rom_file("gamelist.xml")
    assert not is_rom_file("._mario.nes")
