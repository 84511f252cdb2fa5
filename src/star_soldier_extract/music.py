"""BGM decoding.

Each tune has three tracks (square 1, square 2, triangle) of note bytecode.
Durations are counted in frames. Square 1 always carries its own terminator;
in looping tunes (square 1 ends with 0xFE) the other two tracks have none and
are read until they reach square 1's duration.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from .errors import (
    DurationMismatchError,
    InvalidOpcodeError,
    LengthUnsetError,
    LoopError,
    MusicConfigError,
    NestedLoopError,
)
from .rom import RomImage

logger = logging.getLogger(__name__)

# BGM 10 is plain silence and is skipped.
MUSIC_COUNT = 9

MUSIC_CONFIG_TABLE = 0xB716
MUSIC_PTR_TABLE = 0xBBA6

OP_REST = 0x00
OP_TONE_MIN = 0x19
OP_TONE_MAX = 0x7F
OP_LENGTH_MIN = 0x80
OP_LENGTH_MAX = 0xEF
OP_LOOP_END = 0xFC
OP_LOOP_BEGIN = 0xFD
OP_RESTART = 0xFE
OP_END = 0xFF


class SquareDuty(enum.IntEnum):
    EIGHTH = 0
    QUARTER = 1
    HALF = 2
    QUARTER_NEG = 3


@dataclass(frozen=True)
class Tone:
    octave: int
    note: int

    def __post_init__(self):
        if not 0 <= self.note <= 11:
            raise ValueError(f"note must be within 0..11 (got {self.note})")


@dataclass(frozen=True)
class Rest:
    pass


@dataclass(frozen=True)
class SetLength:
    length: int

    def __post_init__(self):
        if self.length <= 0:
            raise ValueError("length must be positive")


@dataclass(frozen=True)
class LoopBegin:
    count: int

    def __post_init__(self):
        if self.count <= 0:
            raise ValueError("loop count must be positive")


@dataclass(frozen=True)
class LoopEnd:
    pass


@dataclass(frozen=True)
class Restart:
    pass


@dataclass(frozen=True)
class End:
    pass


MusicCommand = Union[Tone, Rest, SetLength, LoopBegin, LoopEnd, Restart, End]


@dataclass(frozen=True)
class Music:
    id: int
    sq_envelope: int
    sq_duty: SquareDuty
    track_sq1: tuple[MusicCommand, ...]
    track_sq2: tuple[MusicCommand, ...]
    track_tri: tuple[MusicCommand, ...]
    duration: int

    @property
    def is_loop(self) -> bool:
        return isinstance(self.track_sq1[-1], Restart)

    @property
    def tracks(self) -> tuple[tuple[MusicCommand, ...], ...]:
        return self.track_sq1, self.track_sq2, self.track_tri


class _TrackState:
    """Running totals while walking one track."""

    def __init__(self, ptr: int):
        self.ptr = ptr
        self.length = 0
        self.length_unit: Optional[int] = None
        self.loop_count: Optional[int] = None
        self.length_loop = 0

    def add_length_unit(self, offset: int) -> None:
        if self.length_unit is None:
            raise LengthUnsetError(self.ptr, offset)
        if self.loop_count is not None:
            self.length_loop += self.length_unit
        else:
            self.length += self.length_unit

    def begin_loop(self, offset: int, count: int) -> None:
        if self.loop_count is not None:
            raise NestedLoopError(self.ptr, offset)
        self.loop_count = count

    def end_loop(self, offset: int) -> None:
        if self.loop_count is None:
            raise LoopError(self.ptr, offset, "loop end outside of loop")
        self.length += self.loop_count * self.length_loop
        self.loop_count = None
        self.length_loop = 0

    def check_closed(self, offset: int) -> None:
        if self.loop_count is not None:
            raise LoopError(self.ptr, offset, "unclosed loop")


def decode_track(
    rom: RomImage, ptr: int, expected_duration: Optional[int] = None
) -> tuple[list[MusicCommand], int]:
    """Decode one track starting at `ptr`.

    Without `expected_duration` the track is read up to its 0xFE/0xFF
    terminator. With it, reading stops as soon as the total duration equals
    the expected value. Returns (commands, total duration).
    """
    track: list[MusicCommand] = []
    state = _TrackState(ptr)
    offset = 0

    while True:
        op = rom.read_u8(ptr + offset)
        op_offset = offset
        offset += 1

        if op == OP_REST:
            track.append(Rest())
            state.add_length_unit(op_offset)
        elif OP_TONE_MIN <= op <= OP_TONE_MAX:
            value = op - 1
            track.append(Tone(octave=1 + value // 12, note=value % 12))
            state.add_length_unit(op_offset)
        elif OP_LENGTH_MIN <= op <= OP_LENGTH_MAX:
            unit = op & 0x7F
            if unit == 0:
                raise InvalidOpcodeError(ptr, op_offset, op, "zero note length")
            state.length_unit = unit
            track.append(SetLength(unit))
        elif op == OP_LOOP_END:
            state.end_loop(op_offset)
            track.append(LoopEnd())
        elif op == OP_LOOP_BEGIN:
            count = rom.read_u8(ptr + offset)
            offset += 1
            if count == 0:
                raise InvalidOpcodeError(ptr, op_offset, op, "zero loop count")
            state.begin_loop(op_offset, count)
            track.append(LoopBegin(count))
        elif op == OP_RESTART:
            state.check_closed(op_offset)
            track.append(Restart())
            break
        elif op == OP_END:
            state.check_closed(op_offset)
            track.append(End())
            break
        else:
            raise InvalidOpcodeError(ptr, op_offset, op)

        if expected_duration is not None:
            if state.length > expected_duration:
                raise DurationMismatchError(
                    f"track at 0x{ptr:04X} overruns expected duration {expected_duration} "
                    f"(reached {state.length} at offset 0x{op_offset:04X})"
                )
            if state.length == expected_duration:
                break

    return track, state.length


def load_music_configs(rom: RomImage) -> list[tuple[int, SquareDuty]]:
    """Return (sq_envelope, sq_duty) for each tune."""
    configs = []
    for i, b in enumerate(rom.read_bytes(MUSIC_CONFIG_TABLE, MUSIC_COUNT)):
        if b & 0x30:
            raise MusicConfigError(i + 1, b)
        configs.append((b & 0x0F, SquareDuty(b >> 6)))
    return configs


def load_music_ptrs(rom: RomImage) -> list[tuple[int, int, int]]:
    ptrs = rom.read_u16_table(MUSIC_PTR_TABLE, 3 * MUSIC_COUNT)
    return [tuple(ptrs[3 * i:3 * i + 3]) for i in range(MUSIC_COUNT)]


def load_music(rom: RomImage, music_id: int, config: tuple[int, SquareDuty], ptrs) -> Music:
    sq_envelope, sq_duty = config
    ptr_sq1, ptr_sq2, ptr_tri = ptrs

    track_sq1, length_sq1 = decode_track(rom, ptr_sq1)

    music_loop = isinstance(track_sq1[-1], Restart)
    length_expect = length_sq1 if music_loop else None
    track_sq2, length_sq2 = decode_track(rom, ptr_sq2, length_expect)
    track_tri, length_tri = decode_track(rom, ptr_tri, length_expect)
    if music_loop:
        track_sq2.append(Restart())
        track_tri.append(Restart())

    if not length_sq1 == length_sq2 == length_tri:
        raise DurationMismatchError(
            f"music {music_id}: track durations differ "
            f"(sq1={length_sq1}, sq2={length_sq2}, tri={length_tri})"
        )
    logger.debug("music %d: %s, %d frames", music_id, "loop" if music_loop else "end", length_sq1)

    return Music(
        id=music_id,
        sq_envelope=sq_envelope,
        sq_duty=sq_duty,
        track_sq1=tuple(track_sq1),
        track_sq2=tuple(track_sq2),
        track_tri=tuple(track_tri),
        duration=length_sq1,
    )


def load_musics(rom: RomImage) -> list[Music]:
    configs = load_music_configs(rom)
    ptrss = load_music_ptrs(rom)
    return [load_music(rom, i + 1, cfg, ptrs) for i, (cfg, ptrs) in enumerate(zip(configs, ptrss))]


def iter_notes(track) -> Iterator[tuple[MusicCommand, int]]:
    """Yield (command, length) for every Tone and Rest in the track."""
    length_cur = None
    for cmd in track:
        if isinstance(cmd, SetLength):
            length_cur = cmd.length
        elif isinstance(cmd, (Tone, Rest)):
            if length_cur is None:
                raise ValueError("note length is not set")
            yield cmd, length_cur
        elif not isinstance(cmd, (LoopBegin, LoopEnd, Restart, End)):
            raise TypeError(f"unknown music command: {cmd!r}")


def track_duration(track) -> int:
    """Total duration of a decoded track, loops expanded."""
    total = 0
    loop_count = None
    loop_total = 0
    length_cur = None
    for cmd in track:
        if isinstance(cmd, SetLength):
            length_cur = cmd.length
        elif isinstance(cmd, (Tone, Rest)):
            if length_cur is None:
                raise ValueError("note length is not set")
            if loop_count is None:
                total += length_cur
            else:
                loop_total += length_cur
        elif isinstance(cmd, LoopBegin):
            loop_count = cmd.count
        elif isinstance(cmd, LoopEnd):
            if loop_count is None:
                raise ValueError("loop end outside of loop")
            total += loop_count * loop_total
            loop_count = None
            loop_total = 0
        elif isinstance(cmd, (Restart, End)):
            break
        else:
            raise TypeError(f"unknown music command: {cmd!r}")
    return total
