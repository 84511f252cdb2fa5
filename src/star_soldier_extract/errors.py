"""Exceptions raised while decoding the cartridge image.

Every decode failure is fatal for the extraction run; nothing here is meant to
be caught and replaced by a default value.
"""


class DecodeError(ValueError):
    """Base class for all decode failures."""


class RomFormatError(DecodeError):
    """The input file is not the expected iNES image."""


class AddressOutOfRange(DecodeError):
    def __init__(self, addr: int):
        self.addr = addr
        super().__init__(f"not a PRG address: 0x{addr:04X}")


class RomOverrun(DecodeError):
    def __init__(self, addr: int, length: int):
        self.addr = addr
        self.length = length
        super().__init__(f"read of {length} byte(s) at 0x{addr:04X} is out of bounds")


class PointerOrderError(DecodeError):
    def __init__(self, slot: int, ptr: int, next_ptr: int):
        self.slot = slot
        self.ptr = ptr
        self.next_ptr = next_ptr
        super().__init__(
            f"enemy slot {slot}: next pointer 0x{next_ptr:04X} precedes bytecode pointer 0x{ptr:04X}"
        )


class MusicConfigError(DecodeError):
    def __init__(self, music_id: int, value: int):
        self.music_id = music_id
        self.value = value
        super().__init__(f"music {music_id}: reserved bits set in config byte 0x{value:02X}")


class InvalidOpcodeError(DecodeError):
    def __init__(self, ptr: int, offset: int, opcode: int, reason: str = "invalid track op"):
        self.ptr = ptr
        self.offset = offset
        self.opcode = opcode
        super().__init__(f"{reason}: ptr=0x{ptr:04X}, offset=0x{offset:04X}, op=0x{opcode:02X}")


class TrackStateError(DecodeError):
    """Track bytecode violates the decoder's state machine."""

    def __init__(self, ptr: int, offset: int, message: str):
        self.ptr = ptr
        self.offset = offset
        super().__init__(f"{message}: ptr=0x{ptr:04X}, offset=0x{offset:04X}")


class NestedLoopError(TrackStateError):
    def __init__(self, ptr: int, offset: int):
        super().__init__(ptr, offset, "nested loop is not permitted")


class LoopError(TrackStateError):
    pass


class LengthUnsetError(TrackStateError):
    def __init__(self, ptr: int, offset: int):
        super().__init__(ptr, offset, "note length is not set")


class DurationMismatchError(DecodeError):
    pass
