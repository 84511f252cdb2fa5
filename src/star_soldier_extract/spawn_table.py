"""Enemy spawn order table."""
from dataclasses import dataclass
from typing import Union

from .errors import RomOverrun
from .rom import RomImage

SPAWN_TABLE_ADDR = 0xD30D
SPAWN_TABLE_SIZE = 0x100

CMD_MARK = 0xFF
CMD_JUMP = 0x00
FLAG_BOSS = 1 << 6
FLAG_NOT_COMBI = 1 << 7


@dataclass(frozen=True)
class Mark:
    position: int


@dataclass(frozen=True)
class Jump:
    target: int


@dataclass(frozen=True)
class Spawn:
    object_id: int
    combi: bool  # combined with the previous enemy
    boss: bool


SpawnTableEntry = Union[Mark, Jump, Spawn]


def decode_spawn_table(buf: bytes) -> list[SpawnTableEntry]:
    entries: list[SpawnTableEntry] = []
    offset = 0
    while offset < len(buf):
        b = buf[offset]
        offset += 1

        if b == CMD_MARK:
            # a mark past the window cannot be a jump target
            if offset >= len(buf):
                raise RomOverrun(SPAWN_TABLE_ADDR + offset, 1)
            entries.append(Mark(offset))
        elif b == CMD_JUMP:
            if offset >= len(buf):
                raise RomOverrun(SPAWN_TABLE_ADDR + offset, 1)
            entries.append(Jump(buf[offset]))
            offset += 1
        else:
            entries.append(Spawn(
                object_id=b & 0x3F,
                combi=(b & FLAG_NOT_COMBI) == 0,
                boss=(b & FLAG_BOSS) != 0,
            ))
    return entries


def load_spawn_table(rom: RomImage) -> list[SpawnTableEntry]:
    return decode_spawn_table(rom.read_bytes(SPAWN_TABLE_ADDR, SPAWN_TABLE_SIZE))


def spawn_table_to_records(entries) -> list[dict]:
    """Plain dicts for YAML output."""
    records = []
    for e in entries:
        if isinstance(e, Mark):
            records.append({"mark": e.position})
        elif isinstance(e, Jump):
            records.append({"jump": e.target})
        elif isinstance(e, Spawn):
            records.append({"spawn": e.object_id, "combi": e.combi, "boss": e.boss})
        else:
            raise TypeError(f"unknown spawn table entry: {e!r}")
    return records
