"""Stage ground maps.

Each stage is 256 rows of 20 cells, stored as two 128-row halves of
run-length encoded rows. Row 0 is the bottom of the stage (the start).
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import DecodeError
from .ppu import Palette
from .rom import RomImage

logger = logging.getLogger(__name__)

STAGE_COUNT = 16
ROWS_PER_HALF = 128
ROW_COUNT = 2 * ROWS_PER_HALF
COLUMN_COUNT = 20
ROTATION_ROW_LIMIT = 240

GROUND_CONFIG_TABLE = 0xD48D
GROUND_PALETTE_TABLE = 0xD50D
GROUND_PALETTE_COUNT = 43
GROUND_SECRET_PTR_TABLE = 0xD5B9
GROUND_HALF_PTR_TABLE = 0xD5D9

OP_REDIRECT = 0xDB
OP_LITERAL_MAX = 0xDB

CELL_ZEG_INI = 0x08
HIDDEN_ZEG_MIN = CELL_ZEG_INI + 1
HIDDEN_ZEG_MAX = CELL_ZEG_INI + 5


def _run_shape(op: int) -> tuple[int, int]:
    """Return (unit size, repeat count) for a run opcode (0xDC-0xFF)."""
    if op >= 0xEE:
        return 1, op - 0xEB
    if op >= 0xE5:
        return 2, op - 0xE3
    if op >= 0xE0:
        return 3, op - 0xDE
    return 4, op - 0xDA


def decode_ground_row(rom: RomImage, addr: int) -> tuple[list[int], int]:
    """Decode one RLE row starting at `addr`.

    Returns the 20 cells and the number of bytes consumed. A run that would
    overflow the row is cut off as soon as the row is full.
    """
    cells: list[int] = []
    n_read = 0
    while len(cells) < COLUMN_COUNT:
        op = rom.read_u8(addr + n_read)
        n_read += 1
        if op <= OP_LITERAL_MAX:
            cells.append(op)
            continue

        unit_len, count = _run_shape(op)
        unit = rom.read_bytes(addr + n_read, unit_len)
        n_read += unit_len
        for _ in range(count):
            for b in unit:
                if len(cells) == COLUMN_COUNT:
                    return cells, n_read
                cells.append(b)
    return cells, n_read


def decode_ground_half(rom: RomImage, addr: int) -> list[list[int]]:
    rows = []
    cursor = addr
    for _ in range(ROWS_PER_HALF):
        if rom.read_u8(cursor) == OP_REDIRECT:
            target = rom.read_u16(cursor + 1)
            logger.debug("row %d at 0x%04X redirects to 0x%04X", len(rows), cursor, target)
            row, _ = decode_ground_row(rom, target)
            cursor += 3
        else:
            row, n_read = decode_ground_row(rom, cursor)
            cursor += n_read
        rows.append(row)
    return rows


@dataclass(frozen=True)
class GroundConfig:
    # Palette animation bits are ignored.
    palette_ids: tuple[int, int, int, int]
    rotated: bool

    @classmethod
    def from_bytes(cls, buf: bytes) -> "GroundConfig":
        return cls(tuple(b & 0x3F for b in buf[:4]), (buf[0] & 0x80) != 0)


@dataclass(frozen=True)
class GroundSecret:
    r: int
    c: int
    cell: int


@dataclass(frozen=True)
class Ground:
    stage: int
    cells: tuple[tuple[int, ...], ...]
    configs: tuple[GroundConfig, GroundConfig]
    palette_sets: tuple[tuple[Palette, ...], tuple[Palette, ...]]
    secrets: tuple[GroundSecret, ...]

    def cell(self, r: int, c: int) -> int:
        """Cell at (r, c). Also usable directly as a cell visual id."""
        return self.cells[r][c]

    def hidden_visual_id(self, r: int, c: int) -> Optional[int]:
        """Visual id of the hidden cell at (r, c), hidden zegs included."""
        for secret in self.secrets:
            if secret.r == r and secret.c == c:
                return c % 4 if secret.cell == 0 else secret.cell
        if HIDDEN_ZEG_MIN <= self.cell(r, c) <= HIDDEN_ZEG_MAX:
            return CELL_ZEG_INI
        return None

    def palette_set_half(self, i: int) -> tuple[Palette, ...]:
        return self.palette_sets[i]


def rotate_halves(cells: list[list[int]], configs) -> None:
    """Swap the left and right 10 columns of every rotated half, in place."""
    for i, cfg in enumerate(configs):
        if not cfg.rotated:
            continue
        r_end = min(ROWS_PER_HALF * (i + 1), ROTATION_ROW_LIMIT)
        for r in range(ROWS_PER_HALF * i, r_end):
            row = cells[r]
            row[:10], row[10:] = row[10:], row[:10]


def load_ground_configs(rom: RomImage) -> list[tuple[GroundConfig, GroundConfig]]:
    buf = rom.read_bytes(GROUND_CONFIG_TABLE, 8 * STAGE_COUNT)
    return [
        (GroundConfig.from_bytes(buf[8 * i:8 * i + 4]), GroundConfig.from_bytes(buf[8 * i + 4:8 * i + 8]))
        for i in range(STAGE_COUNT)
    ]


def load_ground_palettes(rom: RomImage) -> list[Palette]:
    buf = rom.read_bytes(GROUND_PALETTE_TABLE, 4 * GROUND_PALETTE_COUNT)
    return [Palette.from_bytes(buf[4 * i:4 * i + 4]) for i in range(GROUND_PALETTE_COUNT)]


def load_ground_secrets(rom: RomImage, addr: int) -> list[GroundSecret]:
    secrets = []
    cursor = addr
    while True:
        r = rom.read_u8(cursor)
        if r == 0:
            break
        byte = rom.read_u8(cursor + 1)
        secrets.append(GroundSecret(r, byte & 0x1F, byte >> 5))
        cursor += 2
    return secrets


def _check_stage(stage: int) -> None:
    if not 1 <= stage <= STAGE_COUNT:
        raise ValueError(f"stage must be within 1..{STAGE_COUNT} (got {stage})")


def load_ground(rom: RomImage, stage: int, palettes: Optional[list[Palette]] = None) -> Ground:
    _check_stage(stage)
    idx = stage - 1
    if palettes is None:
        palettes = load_ground_palettes(rom)

    upper, lower = rom.read_u16_table(GROUND_HALF_PTR_TABLE + 4 * idx, 2)
    logger.debug("stage %d halves at 0x%04X, 0x%04X", stage, upper, lower)
    cells = decode_ground_half(rom, upper) + decode_ground_half(rom, lower)

    configs = load_ground_configs(rom)[idx]
    rotate_halves(cells, configs)

    secret_ptr = rom.read_u16(GROUND_SECRET_PTR_TABLE + 2 * idx)
    for cfg in configs:
        if max(cfg.palette_ids) >= len(palettes):
            raise DecodeError(f"stage {stage}: palette id out of range in {cfg.palette_ids!r}")
    palette_sets = tuple(tuple(palettes[pid] for pid in cfg.palette_ids) for cfg in configs)

    return Ground(
        stage=stage,
        cells=tuple(tuple(row) for row in cells),
        configs=configs,
        palette_sets=palette_sets,
        secrets=tuple(load_ground_secrets(rom, secret_ptr)),
    )


def load_grounds(rom: RomImage) -> list[Ground]:
    palettes = load_ground_palettes(rom)
    return [load_ground(rom, stage, palettes) for stage in range(1, STAGE_COUNT + 1)]
