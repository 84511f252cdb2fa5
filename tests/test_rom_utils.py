import zlib

import pytest

from star_soldier_extract.rom_utils import crc32, inspect_rom, parse_header, write_bytes, write_text


def test_parse_header(rom_builder):
    hdr = parse_header(rom_builder.to_bytes())
    assert hdr["magic_ok"]
    assert hdr["prg_banks"] == 2 and hdr["prg_size"] == 0x8000
    assert hdr["chr_banks"] == 4 and hdr["chr_size"] == 0x8000
    assert hdr["mapper"] == 3
    assert hdr["mapper_name"] == "CNROM"
    assert hdr["mirroring"] == "vertical"
    assert not hdr["battery"]


def test_parse_header_too_short():
    with pytest.raises(ValueError):
        parse_header(b"NES\x1a")


def test_inspect_rom(rom_file):
    info = inspect_rom(rom_file)
    assert info["size"] == 65552
    assert info["crc32"] == zlib.crc32(rom_file.read_bytes())
    assert "warning" not in info
    assert "header_warning" not in info


def test_inspect_rom_warnings(tmp_path):
    path = tmp_path / "bad.nes"
    path.write_bytes(b"XXXX" + bytes(20))
    info = inspect_rom(path)
    assert "warning" in info
    assert info["header_warning"] == "iNES magic not found"


def test_writers_create_parents(tmp_path):
    write_bytes(tmp_path / "a" / "b.bin", b"\x01\x02")
    write_text(tmp_path / "c" / "d.txt", "hi")
    assert (tmp_path / "a" / "b.bin").read_bytes() == b"\x01\x02"
    assert (tmp_path / "c" / "d.txt").read_text() == "hi"


def test_crc32_is_unsigned():
    assert crc32(b"\xff" * 4) == 0xFFFFFFFF
