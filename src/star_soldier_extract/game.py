"""Visual tables and the decoded stage graphics."""
from dataclasses import dataclass, field

from PIL import Image

from .errors import DecodeError
from .ground import STAGE_COUNT, Ground, load_grounds
from .ppu import NES_COLORS, Palette, SpriteAttribute, Tile, sprite_image
from .rom import RomImage

CELL_MAX = 0x96
META_SPRITE_MAX = 0x8F
TILE_COUNT = 0x800

CELL_PALETTE_IDX_TABLE = 0xD619
CELL_TILE_TABLE = 0xD6B0
SPRITE_PALETTE_TABLE = 0xB143
META_SPRITE_TABLE = 0xC344

# Cells use the BG pattern table, which follows the 0x100 sprite tiles.
CELL_TILE_BASE = 0x100
SECOND_ROUND_TILE_BIAS = 0x400


@dataclass(frozen=True)
class CellVisual:
    """Tiles in (top-left, top-right, bottom-left, bottom-right) order."""

    tile_ids: tuple[int, int, int, int]
    plt_idx: int

    def to_image(self, tiles, palette_set, colors=NES_COLORS) -> Image.Image:
        plt = palette_set[self.plt_idx]
        img = Image.new("RGBA", (16, 16))
        for i, tile_id in enumerate(self.tile_ids):
            x = 0 if i % 2 == 0 else 8
            y = 0 if i // 2 == 0 else 8
            img.paste(tiles[tile_id].to_image(plt, colors=colors), (x, y))
        return img


@dataclass(frozen=True)
class MetaSpriteVisual:
    """Tiles in (top-left, bottom-left, top-right, bottom-right) order."""

    tile_ids: tuple[int, int, int, int]
    attrs: tuple[SpriteAttribute, ...]

    def to_image(self, tiles, palette_set, colors=NES_COLORS) -> Image.Image:
        img = Image.new("RGBA", (16, 16))
        for i in range(4):
            part = sprite_image(tiles[self.tile_ids[i]], self.attrs[i], palette_set, colors)
            x = 0 if i // 2 == 0 else 8
            y = 0 if i % 2 == 0 else 8
            img.alpha_composite(part, (x, y))
        return img


def load_cell_visuals(rom: RomImage) -> list[CellVisual]:
    count = CELL_MAX + 1
    tile_buf = rom.read_bytes(CELL_TILE_TABLE, 4 * count)
    plt_buf = rom.read_bytes(CELL_PALETTE_IDX_TABLE, count)
    return [CellVisual(tuple(tile_buf[4 * i:4 * i + 4]), plt_buf[i]) for i in range(count)]


def load_sprite_palette_set(rom: RomImage) -> list[Palette]:
    buf = rom.read_bytes(SPRITE_PALETTE_TABLE, 16)
    return [Palette.from_bytes(buf[4 * i:4 * i + 4]) for i in range(4)]


def load_meta_sprite_visuals(rom: RomImage) -> list[MetaSpriteVisual]:
    visuals = []
    for i in range(META_SPRITE_MAX + 1):
        buf = rom.read_bytes(META_SPRITE_TABLE + 8 * i, 8)
        visuals.append(MetaSpriteVisual(
            tile_ids=tuple(buf[0::2]),
            attrs=tuple(SpriteAttribute(b) for b in buf[1::2]),
        ))
    return visuals


def load_tiles(rom: RomImage) -> list[Tile]:
    return [Tile.from_bytes(rom.pattern[16 * i:16 * i + 16]) for i in range(TILE_COUNT)]


@dataclass(frozen=True)
class Game:
    """Stage maps and graphics decoded from one ROM image.

    `colors` is the NES RGB table used when drawing; it is never mutated.
    """

    grounds: tuple[Ground, ...]
    cell_visuals: tuple[CellVisual, ...]
    sprite_palette_set: tuple[Palette, ...]
    meta_sprite_visuals: tuple[MetaSpriteVisual, ...]
    tiles: tuple[Tile, ...]
    colors: tuple = field(default=NES_COLORS, repr=False)

    @classmethod
    def from_rom(cls, rom: RomImage, colors=NES_COLORS) -> "Game":
        return cls(
            grounds=tuple(load_grounds(rom)),
            cell_visuals=tuple(load_cell_visuals(rom)),
            sprite_palette_set=tuple(load_sprite_palette_set(rom)),
            meta_sprite_visuals=tuple(load_meta_sprite_visuals(rom)),
            tiles=tuple(load_tiles(rom)),
            colors=colors,
        )

    def ground(self, stage: int) -> Ground:
        if not 1 <= stage <= STAGE_COUNT:
            raise ValueError(f"stage must be within 1..{STAGE_COUNT} (got {stage})")
        return self.grounds[stage - 1]

    def cell_image(self, cell_id: int, second_round: bool, palette_set) -> Image.Image:
        if not 0 <= cell_id <= CELL_MAX:
            raise DecodeError(f"no visual for cell 0x{cell_id:02X}")
        visual = self.cell_visuals[cell_id]
        if visual.plt_idx >= len(palette_set):
            raise DecodeError(f"cell 0x{cell_id:02X}: palette index {visual.plt_idx} out of range")
        base = CELL_TILE_BASE + (SECOND_ROUND_TILE_BIAS if second_round else 0)
        return visual.to_image(self.tiles[base:], palette_set, self.colors)

    def cell_images(self, second_round: bool, palette_set) -> list[Image.Image]:
        return [self.cell_image(i, second_round, palette_set) for i in range(CELL_MAX + 1)]

    def meta_sprite_image(self, sprite_id: int, second_round: bool) -> Image.Image:
        base = SECOND_ROUND_TILE_BIAS if second_round else 0
        visual = self.meta_sprite_visuals[sprite_id]
        return visual.to_image(self.tiles[base:], self.sprite_palette_set, self.colors)

    def meta_sprite_images(self, second_round: bool) -> list[Image.Image]:
        return [self.meta_sprite_image(i, second_round) for i in range(META_SPRITE_MAX + 1)]
