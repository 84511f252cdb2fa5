"""iNES image container and PRG address mapping."""
from dataclasses import dataclass
from pathlib import Path

from .errors import AddressOutOfRange, RomFormatError, RomOverrun

INES_MAGIC = b"NES\x1a"
INES_HEADER_SIZE = 16
PRG_SIZE = 0x8000
CHR_SIZE = 0x8000
ROM_FILE_SIZE = INES_HEADER_SIZE + PRG_SIZE + CHR_SIZE

PRG_BASE = 0x8000
PRG_LAST = 0xFFFF


def map_address(addr: int) -> int:
    """Convert a CPU address in 0x8000-0xFFFF to an offset into PRG."""
    if not PRG_BASE <= addr <= PRG_LAST:
        raise AddressOutOfRange(addr)
    return addr - PRG_BASE


@dataclass(frozen=True)
class RomImage:
    """The two fixed 32KB regions of the cartridge.

    `code` is PRG (program and data tables), `pattern` is CHR (tile patterns).
    All reads by CPU address go through the bounds-checked helpers below.
    """

    code: bytes
    pattern: bytes

    def __post_init__(self):
        if len(self.code) != PRG_SIZE:
            raise RomFormatError(f"PRG must be {PRG_SIZE} bytes (got {len(self.code)})")
        if len(self.pattern) != CHR_SIZE:
            raise RomFormatError(f"CHR must be {CHR_SIZE} bytes (got {len(self.pattern)})")

    @classmethod
    def from_ines_bytes(cls, buf: bytes) -> "RomImage":
        if len(buf) != ROM_FILE_SIZE:
            raise RomFormatError(f"size mismatch: expected {ROM_FILE_SIZE} bytes, got {len(buf)}")
        if not buf.startswith(INES_MAGIC):
            raise RomFormatError("iNES magic not found")
        prg_end = INES_HEADER_SIZE + PRG_SIZE
        return cls(code=bytes(buf[INES_HEADER_SIZE:prg_end]), pattern=bytes(buf[prg_end:]))

    def read_bytes(self, addr: int, length: int) -> bytes:
        start = map_address(addr)
        if length < 0 or start + length > PRG_SIZE:
            raise RomOverrun(addr, length)
        return self.code[start:start + length]

    def read_u8(self, addr: int) -> int:
        return self.code[map_address(addr)]

    def read_u16(self, addr: int) -> int:
        return int.from_bytes(self.read_bytes(addr, 2), "little")

    def read_u16_table(self, addr: int, count: int) -> list[int]:
        buf = self.read_bytes(addr, 2 * count)
        return [int.from_bytes(buf[i:i + 2], "little") for i in range(0, len(buf), 2)]


def load_rom(path: str | Path) -> RomImage:
    return RomImage.from_ines_bytes(Path(path).read_bytes())
