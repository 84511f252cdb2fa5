import pytest

from star_soldier_extract.errors import AddressOutOfRange, DecodeError, RomFormatError, RomOverrun
from star_soldier_extract.rom import ROM_FILE_SIZE, RomImage, load_rom, map_address


def test_map_address_is_bijective_over_prg():
    offsets = set()
    for addr in range(0x8000, 0x10000):
        off = map_address(addr)
        assert off + 0x8000 == addr
        offsets.add(off)
    assert offsets == set(range(0x8000))


@pytest.mark.parametrize("addr", [0x0000, 0x7FFF, 0x10000, -1])
def test_map_address_rejects_non_prg(addr):
    with pytest.raises(AddressOutOfRange) as exc:
        map_address(addr)
    assert exc.value.addr == addr


def test_regions_split_after_header(rom_builder):
    rom_builder.prg[0] = 0xAA
    rom_builder.prg[-1] = 0xBB
    rom_builder.chr[0] = 0xCC
    rom = rom_builder.build()
    assert len(rom.code) == 0x8000
    assert len(rom.pattern) == 0x8000
    assert rom.code[0] == 0xAA and rom.code[-1] == 0xBB
    assert rom.pattern[0] == 0xCC


def test_size_mismatch_is_fatal(rom_builder):
    buf = rom_builder.to_bytes()
    with pytest.raises(RomFormatError, match="size mismatch"):
        RomImage.from_ines_bytes(buf[:-1])
    with pytest.raises(RomFormatError):
        RomImage.from_ines_bytes(buf + b"\x00")


def test_missing_magic_is_fatal(rom_builder):
    buf = b"NES\x00" + rom_builder.to_bytes()[4:]
    assert len(buf) == ROM_FILE_SIZE
    with pytest.raises(RomFormatError, match="magic"):
        RomImage.from_ines_bytes(buf)


def test_decode_errors_are_value_errors():
    assert issubclass(DecodeError, ValueError)
    assert issubclass(RomOverrun, DecodeError)


def test_reads_are_little_endian_and_bounded(rom_builder):
    rom = rom_builder.put(0x8010, [0x34, 0x12, 0x78, 0x56]).put(0xFFFF, [0x9A]).build()
    assert rom.read_u8(0x8010) == 0x34
    assert rom.read_u16(0x8010) == 0x1234
    assert rom.read_u16_table(0x8010, 2) == [0x1234, 0x5678]
    assert rom.read_bytes(0xFFFF, 1) == b"\x9a"
    with pytest.raises(RomOverrun) as exc:
        rom.read_bytes(0xFFFF, 2)
    assert exc.value.addr == 0xFFFF
    with pytest.raises(RomOverrun):
        rom.read_u16(0xFFFF)


def test_load_rom(rom_file):
    rom = load_rom(rom_file)
    assert isinstance(rom, RomImage)
