import hashlib

import pytest

from ludotheque.scanner.hash_calculator import calculate_hash


@pytest.mark.unit
def test_md5_and_sha1(tmp_path):
    rom = tmp_path / "game.nes"
    rom.write_bytes(b"NES\x1a" * 1000)

    assert calculate_hash(rom) == hashlib.md5(b"NES\x1a" * 1000).hexdigest()
    assert calculate_hash(rom, "sha1") == hashlib.sha1(b"NES\x1a" * 1000).hexdigest()


@pytest.mark.unit
def test_size_limit(tmp_path):
    rom = tmp_path / "big.iso"
    rom.write_bytes(b"x" * 100)

    assert calculate_hash(rom, size_limit=10) is None
    assert calculate_hash(rom, size_limit=100) is not None


@pytest.mark.unit
def test_unsupported_algorithm(tmp_path):
    rom = tmp_path / "game.nes"
    rom.write_bytes(b"x")

    with pytest.raises(ValueError):
        calculate_hash(rom, "crc32")
