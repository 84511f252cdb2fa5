import pytest

from star_soldier_extract.errors import RomOverrun
from star_soldier_extract.spawn_table import (
    SPAWN_TABLE_ADDR,
    Jump,
    Mark,
    Spawn,
    decode_spawn_table,
    load_spawn_table,
    spawn_table_to_records,
)


def test_decode_entries():
    entries = decode_spawn_table(bytes([0xFF, 0x81, 0x45, 0xC2, 0x00, 0x01]))
    assert entries == [
        Mark(1),
        Spawn(object_id=1, combi=False, boss=False),
        Spawn(object_id=5, combi=True, boss=True),
        Spawn(object_id=2, combi=False, boss=True),
        Jump(1),
    ]


def test_jump_consumes_operand():
    # the operand 0xFF is a jump target, not a mark
    assert decode_spawn_table(bytes([0x00, 0xFF, 0xFF, 0x81])) == [
        Jump(0xFF), Mark(3), Spawn(1, False, False),
    ]


def test_trailing_jump_is_fatal():
    with pytest.raises(RomOverrun) as exc:
        decode_spawn_table(bytes([0x81, 0x00]))
    assert exc.value.addr == SPAWN_TABLE_ADDR + 2


def test_mark_at_window_end_is_fatal():
    with pytest.raises(RomOverrun) as exc:
        decode_spawn_table(bytes([0x81] * 255 + [0xFF]))
    assert exc.value.addr == SPAWN_TABLE_ADDR + 0x100


def test_load_spawn_table_reads_full_window(rom_builder):
    data = [0x81] * 0xFE + [0x00, 0x10]
    entries = load_spawn_table(rom_builder.put(SPAWN_TABLE_ADDR, data).build())
    assert len(entries) == 0xFF
    assert entries[-1] == Jump(0x10)


def test_records():
    records = spawn_table_to_records([Mark(1), Jump(4), Spawn(3, True, False)])
    assert records == [
        {"mark": 1},
        {"jump": 4},
        {"spawn": 3, "combi": True, "boss": False},
    ]
