"""Enemy group parameter records and their behaviour bytecode blobs."""
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import PointerOrderError
from .rom import PRG_BASE, RomImage

logger = logging.getLogger(__name__)

ENEMY_GROUP_COUNT = 30

ENEMY_ATTR_TABLE = 0xC7C5
ENEMY_DIFFICULTY_TABLE = 0xC7E5
ENEMY_PARAM_PTR_TABLE = 0xC804

# The last blob has no following parameter block to bound it.
LAST_BYTECODE_LEN = 0xCA


@dataclass(frozen=True)
class EnemyGroup:
    id: int

    sprite_idx_base: int
    difficulty: int
    shot_with_rank: bool
    accel_shot_with_rank: bool
    homing_shot_with_rank: bool
    extra_act_with_rank: bool
    accel_with_rank: bool
    x_ini: int
    y_ini: int

    bytecode: Optional[bytes]

    spawn_interval: int
    spawn_count: int
    entrypoints: tuple[int, ...]

    @property
    def has_bytecode(self) -> bool:
        return self.bytecode is not None


def load_enemy_group_param_ptrs(rom: RomImage) -> list[int]:
    return rom.read_u16_table(ENEMY_PARAM_PTR_TABLE, ENEMY_GROUP_COUNT)


def bytecode_length(slot: int, bytecode_ptr: int, param_ptrs: list[int]) -> int:
    """Infer the blob length of `slot` from the next slot's parameter pointer.

    Blobs are laid out directly before the following parameter block, so the
    table must be ordered; a negative length is reported, never clamped.
    """
    if slot == len(param_ptrs) - 1:
        return LAST_BYTECODE_LEN
    next_ptr = param_ptrs[slot + 1]
    if next_ptr < bytecode_ptr:
        raise PointerOrderError(slot, bytecode_ptr, next_ptr)
    return next_ptr - bytecode_ptr


def load_enemy_groups(rom: RomImage) -> list[EnemyGroup]:
    attrs = rom.read_bytes(ENEMY_ATTR_TABLE, ENEMY_GROUP_COUNT)
    difficulties = rom.read_bytes(ENEMY_DIFFICULTY_TABLE, ENEMY_GROUP_COUNT)
    param_ptrs = load_enemy_group_param_ptrs(rom)

    groups = []
    for i, param_ptr in enumerate(param_ptrs):
        attr = attrs[i]

        bytecode_ptr = rom.read_u16(param_ptr)
        bytecode = None
        if bytecode_ptr >= PRG_BASE:
            length = bytecode_length(i, bytecode_ptr, param_ptrs)
            bytecode = rom.read_bytes(bytecode_ptr, length)
            logger.debug("enemy %d: bytecode at 0x%04X, %d bytes", i + 1, bytecode_ptr, length)

        x_ini, y_ini, sprite_idx_base, spawn_interval, spawn_count = rom.read_bytes(param_ptr + 2, 5)
        entrypoints = rom.read_bytes(param_ptr + 7, spawn_count)

        groups.append(EnemyGroup(
            id=i + 1,
            sprite_idx_base=sprite_idx_base,
            difficulty=difficulties[i],
            shot_with_rank=(attr & (1 << 0)) != 0,
            accel_shot_with_rank=(attr & (1 << 1)) != 0,
            homing_shot_with_rank=(attr & (1 << 2)) != 0,
            extra_act_with_rank=(attr & (1 << 3)) != 0,
            accel_with_rank=(attr & (1 << 4)) != 0,
            x_ini=x_ini,
            y_ini=y_ini,
            bytecode=bytecode,
            spawn_interval=spawn_interval,
            spawn_count=spawn_count,
            entrypoints=tuple(entrypoints),
        ))
    return groups
