"""FlMML text output for decoded tunes.

The game counts note lengths in frames while MML counts in 1/384 notes.
Taking 1/192 note = 1 frame gives quarter note = 48 frames, so BPM is
3600 / 48 = 75 and one frame is two ticks.
"""
import io
from typing import TextIO

from .music import End, LoopBegin, LoopEnd, Music, Rest, Restart, SetLength, SquareDuty, Tone

DEFAULT_TEMPO = 75

NOTE_NAMES = ("C", "C+", "D", "D+", "E", "F", "F+", "G", "G+", "A", "A+", "B")

DUTY_WIDTHS = {
    SquareDuty.EIGHTH: 1,
    SquareDuty.QUARTER: 2,
    SquareDuty.HALF: 4,
    SquareDuty.QUARTER_NEG: 6,
}


def length_to_tick(length: int) -> int:
    return 2 * length


def envelope_decay(envelope: int) -> int:
    # APU envelope period is (envelope+1)/240 s and starts at volume 15,
    # so it is silent after 15 periods; FlMML wants that in 1/127 s.
    t = (envelope + 1) / 240.0
    return int(127.0 * 15.0 * t + 0.5)


def track_tokens(track) -> list[str]:
    tokens = []
    length_cur = None
    for cmd in track:
        if isinstance(cmd, Tone):
            if length_cur is None:
                raise ValueError("note length is not set")
            tokens.append(f"O{cmd.octave}{NOTE_NAMES[cmd.note]}%{length_to_tick(length_cur)}")
        elif isinstance(cmd, Rest):
            if length_cur is None:
                raise ValueError("note length is not set")
            tokens.append(f"R%{length_to_tick(length_cur)}")
        elif isinstance(cmd, SetLength):
            length_cur = cmd.length
        elif isinstance(cmd, LoopBegin):
            tokens.append(f"/:{cmd.count}")
        elif isinstance(cmd, LoopEnd):
            tokens.append(":/")
        elif isinstance(cmd, (Restart, End)):
            # MML has no infinite loop, so Restart also just ends the track.
            break
        else:
            raise TypeError(f"unknown music command: {cmd!r}")
    return tokens


def _write_track(stream: TextIO, header: str, track) -> None:
    stream.write(header + "\n")
    stream.write("".join(token + " " for token in track_tokens(track)))
    stream.write(";\n")


def write_mml(music: Music, stream: TextIO, tempo: int = DEFAULT_TEMPO) -> None:
    stream.write(f"T{tempo}\n")
    sq_header = f"@5@W{DUTY_WIDTHS[music.sq_duty]} V15 @E1,0,{envelope_decay(music.sq_envelope)},0,0 "
    _write_track(stream, sq_header, music.track_sq1)
    _write_track(stream, sq_header, music.track_sq2)
    _write_track(stream, "V1 @6", music.track_tri)


def music_to_mml(music: Music, tempo: int = DEFAULT_TEMPO) -> str:
    buf = io.StringIO()
    write_mml(music, buf, tempo)
    return buf.getvalue()
