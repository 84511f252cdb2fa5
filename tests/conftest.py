import pytest

from star_soldier_extract.rom import CHR_SIZE, INES_MAGIC, PRG_BASE, PRG_SIZE, RomImage

# CNROM (mapper 3), 2 x 16KB PRG, 4 x 8KB CHR, vertical mirroring
INES_HEADER = INES_MAGIC + bytes([2, 4, 0x31, 0x00]) + bytes(8)

GROUND_BLOCK = 0x9000
SECRET_LIST = 0x9100
MUSIC_TRACK = 0x9200
ENEMY_PARAMS = 0xA000


class RomBuilder:
    """Writes bytes at CPU addresses into a blank image."""

    def __init__(self):
        self.prg = bytearray(PRG_SIZE)
        self.chr = bytearray(CHR_SIZE)

    def put(self, addr: int, data) -> "RomBuilder":
        off = addr - PRG_BASE
        data = bytes(data)
        assert 0 <= off and off + len(data) <= PRG_SIZE
        self.prg[off:off + len(data)] = data
        return self

    def put_u16(self, addr: int, *values: int) -> "RomBuilder":
        buf = b"".join(v.to_bytes(2, "little") for v in values)
        return self.put(addr, buf)

    def put_chr(self, offset: int, data) -> "RomBuilder":
        data = bytes(data)
        self.chr[offset:offset + len(data)] = data
        return self

    def to_bytes(self) -> bytes:
        return INES_HEADER + bytes(self.prg) + bytes(self.chr)

    def build(self) -> RomImage:
        return RomImage.from_ines_bytes(self.to_bytes())

    def fill_valid_tables(self) -> "RomBuilder":
        """Point every table at small well-formed data."""
        # Ground: every row is 20 x cell 0x05; all halves share one block.
        self.put(GROUND_BLOCK, [0xFF, 0x05] * 128)
        self.put_u16(0xD5D9, *([GROUND_BLOCK] * 32))
        self.put(SECRET_LIST, [0x00])
        self.put_u16(0xD5B9, *([SECRET_LIST] * 16))

        # Enemies: no bytecode, no entrypoints.
        ptrs = [ENEMY_PARAMS + 16 * i for i in range(30)]
        self.put_u16(0xC804, *ptrs)

        # Music: every track is SetLength(16), Tone(O4 C), End.
        self.put(MUSIC_TRACK, [0x90, 0x25, 0xFF])
        self.put_u16(0xBBA6, *([MUSIC_TRACK] * 27))
        return self


@pytest.fixture
def rom_builder():
    return RomBuilder()


@pytest.fixture
def valid_builder():
    return RomBuilder().fill_valid_tables()


@pytest.fixture
def rom_file(tmp_path, valid_builder):
    path = tmp_path / "star_soldier.nes"
    path.write_bytes(valid_builder.to_bytes())
    return path
