import zlib
from pathlib import Path

from .rom import INES_HEADER_SIZE, INES_MAGIC, ROM_FILE_SIZE

# Common mapper numbers for quick display; not authoritative
MAPPER_NAMES = {
    0: "NROM",
    1: "MMC1",
    2: "UxROM",
    3: "CNROM",
    4: "MMC3",
    7: "AxROM",
    9: "MMC2",
    10: "MMC4",
    66: "GxROM",
}

PRG_BANK_SIZE = 16 * 1024
CHR_BANK_SIZE = 8 * 1024


def read_rom_bytes(path: str | Path) -> bytes:
    return Path(path).read_bytes()


def write_bytes(path: str | Path, data: bytes) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Path(path).write_bytes(data)


def write_text(path: str | Path, text: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Path(path).write_text(text, encoding="utf-8")


def crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


def parse_header(data: bytes) -> dict:
    if len(data) < INES_HEADER_SIZE:
        raise ValueError("ROM too small to contain an iNES header")
    prg_banks = data[4]
    chr_banks = data[5]
    flags6 = data[6]
    flags7 = data[7]
    mapper = (flags7 & 0xF0) | (flags6 >> 4)

    header = {
        "magic_ok": data[:4] == INES_MAGIC,
        "prg_banks": prg_banks,
        "prg_size": prg_banks * PRG_BANK_SIZE,
        "chr_banks": chr_banks,
        "chr_size": chr_banks * CHR_BANK_SIZE,
        "mapper": mapper,
        "mapper_name": MAPPER_NAMES.get(mapper, f"Unknown({mapper})"),
        "mirroring": "vertical" if flags6 & 0x01 else "horizontal",
        "battery": bool(flags6 & 0x02),
        "trainer": bool(flags6 & 0x04),
        "four_screen": bool(flags6 & 0x08),
    }
    return header


def inspect_rom(path: str | Path) -> dict:
    data = read_rom_bytes(path)
    size = len(data)
    info = {"size": size, "crc32": crc32(data)}
    if size != ROM_FILE_SIZE:
        info["warning"] = f"Unexpected ROM size (expected {ROM_FILE_SIZE} bytes)."
    try:
        header = parse_header(data)
        info["header"] = header
        if not header["magic_ok"]:
            info["header_warning"] = "iNES magic not found"
    except ValueError as e:
        info["header_error"] = str(e)
    return info
