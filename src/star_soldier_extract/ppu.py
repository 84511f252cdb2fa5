"""NES PPU primitives: colour table, palettes, 2bpp tiles, sprite attributes."""
from dataclasses import dataclass

import numpy as np
from PIL import Image

COLOR_COUNT = 0x40

# 2C02 palette, (R, G, B) per colour id
NES_COLORS: tuple[tuple[int, int, int], ...] = (
    (84, 84, 84), (0, 30, 116), (8, 16, 144), (48, 0, 136),
    (68, 0, 100), (92, 0, 48), (84, 4, 0), (60, 24, 0),
    (32, 42, 0), (8, 58, 0), (0, 64, 0), (0, 60, 0),
    (0, 50, 60), (0, 0, 0), (0, 0, 0), (0, 0, 0),
    (152, 150, 152), (8, 76, 196), (48, 50, 236), (92, 30, 228),
    (136, 20, 176), (160, 20, 100), (152, 34, 32), (120, 60, 0),
    (84, 90, 0), (40, 114, 0), (8, 124, 0), (0, 118, 40),
    (0, 102, 120), (0, 0, 0), (0, 0, 0), (0, 0, 0),
    (236, 238, 236), (76, 154, 236), (120, 124, 236), (176, 98, 236),
    (228, 84, 236), (236, 88, 180), (236, 106, 100), (212, 136, 32),
    (160, 170, 0), (116, 196, 0), (76, 208, 32), (56, 204, 108),
    (56, 180, 204), (60, 60, 60), (0, 0, 0), (0, 0, 0),
    (236, 238, 236), (168, 204, 236), (188, 188, 236), (212, 178, 236),
    (236, 174, 236), (236, 174, 212), (236, 180, 176), (228, 196, 144),
    (204, 210, 120), (180, 222, 120), (168, 226, 144), (152, 226, 180),
    (160, 214, 228), (160, 162, 160), (0, 0, 0), (0, 0, 0),
)


def color_table_from_pal(buf: bytes) -> tuple[tuple[int, int, int], ...]:
    """Build a colour table from a raw .pal file (RGB triplets)."""
    if len(buf) < 3 * COLOR_COUNT:
        raise ValueError(f"incomplete NES palette: need {3 * COLOR_COUNT} bytes, got {len(buf)}")
    return tuple(tuple(buf[3 * i:3 * i + 3]) for i in range(COLOR_COUNT))


@dataclass(frozen=True)
class Palette:
    color_ids: tuple[int, int, int, int]

    def __post_init__(self):
        if len(self.color_ids) != 4:
            raise ValueError(f"palette needs 4 colours (got {len(self.color_ids)})")
        if any(not 0 <= c < COLOR_COUNT for c in self.color_ids):
            raise ValueError(f"invalid color id in palette {self.color_ids!r}")

    @classmethod
    def from_bytes(cls, buf: bytes) -> "Palette":
        if len(buf) < 4:
            raise ValueError("incomplete palette")
        return cls(tuple(buf[:4]))

    def __getitem__(self, i: int) -> int:
        return self.color_ids[i]


@dataclass(frozen=True)
class Tile:
    pattern: bytes

    def __post_init__(self):
        if len(self.pattern) != 16:
            raise ValueError(f"incomplete pattern: {len(self.pattern)} bytes")

    @classmethod
    def from_bytes(cls, buf: bytes) -> "Tile":
        return cls(bytes(buf[:16]))

    def indices(self) -> np.ndarray:
        """Return the 8x8 array of 2-bit colour indices."""
        planes = np.frombuffer(self.pattern, dtype=np.uint8).reshape(2, 8, 1)
        bits = np.unpackbits(planes, axis=2)
        return (bits[0] | (bits[1] << 1)).astype(np.uint8)

    def to_image(self, palette: Palette, transparent: bool = False, colors=NES_COLORS) -> Image.Image:
        idx = self.indices()
        lut = np.array([(*colors[palette[i]], 0xFF) for i in range(4)], dtype=np.uint8)
        rgba = lut[idx]
        if transparent:
            rgba[idx == 0] = 0
        return Image.fromarray(rgba)


@dataclass(frozen=True)
class SpriteAttribute:
    value: int

    @property
    def palette_index(self) -> int:
        return self.value & 3

    @property
    def is_behind(self) -> bool:
        return (self.value & (1 << 5)) != 0

    @property
    def is_flipped_horizontal(self) -> bool:
        return (self.value & (1 << 6)) != 0

    @property
    def is_flipped_vertical(self) -> bool:
        return (self.value & (1 << 7)) != 0


def sprite_image(tile: Tile, attr: SpriteAttribute, palette_set, colors=NES_COLORS) -> Image.Image:
    img = tile.to_image(palette_set[attr.palette_index], transparent=True, colors=colors)
    if attr.is_flipped_horizontal:
        img = img.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
    if attr.is_flipped_vertical:
        img = img.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
    return img
