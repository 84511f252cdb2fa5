import numpy as np
import pytest

from star_soldier_extract.ppu import (
    NES_COLORS,
    Palette,
    SpriteAttribute,
    Tile,
    color_table_from_pal,
    sprite_image,
)

# Row 0: indices 1,2,3,0,0,0,0,0; other rows all zero.
PATTERN = bytes([0b10100000] + [0] * 7 + [0b01100000] + [0] * 7)
PALETTE = Palette((0x0F, 0x16, 0x27, 0x30))


def test_tile_indices_combine_bitplanes():
    idx = Tile(PATTERN).indices()
    assert idx.shape == (8, 8)
    assert idx[0].tolist() == [1, 2, 3, 0, 0, 0, 0, 0]
    assert not idx[1:].any()


def test_tile_image_colours():
    img = Tile(PATTERN).to_image(PALETTE)
    assert img.size == (8, 8)
    assert img.mode == "RGBA"
    assert img.getpixel((0, 0)) == (*NES_COLORS[0x16], 0xFF)
    assert img.getpixel((1, 0)) == (*NES_COLORS[0x27], 0xFF)
    assert img.getpixel((2, 0)) == (*NES_COLORS[0x30], 0xFF)
    assert img.getpixel((3, 0)) == (*NES_COLORS[0x0F], 0xFF)


def test_transparent_index_zero():
    img = Tile(PATTERN).to_image(PALETTE, transparent=True)
    assert img.getpixel((3, 0))[3] == 0
    assert img.getpixel((0, 0))[3] == 0xFF


def test_sprite_attribute_bits():
    attr = SpriteAttribute(0b1110_0010)
    assert attr.palette_index == 2
    assert attr.is_behind
    assert attr.is_flipped_horizontal
    assert attr.is_flipped_vertical
    assert not SpriteAttribute(0x03).is_flipped_horizontal


def test_sprite_flips():
    palettes = [PALETTE] * 4
    plain = sprite_image(Tile(PATTERN), SpriteAttribute(0), palettes)
    h = sprite_image(Tile(PATTERN), SpriteAttribute(0x40), palettes)
    v = sprite_image(Tile(PATTERN), SpriteAttribute(0x80), palettes)
    assert h.getpixel((7, 0)) == plain.getpixel((0, 0))
    assert v.getpixel((0, 7)) == plain.getpixel((0, 0))
    assert np.array_equal(np.asarray(h)[:, ::-1], np.asarray(plain))


def test_palette_validation():
    assert Palette.from_bytes(bytes([1, 2, 3, 4, 5]))[3] == 4
    with pytest.raises(ValueError):
        Palette((0x40, 0, 0, 0))
    with pytest.raises(ValueError):
        Palette.from_bytes(b"\x00\x00")


def test_tile_needs_16_bytes():
    with pytest.raises(ValueError):
        Tile(bytes(15))


def test_color_table_from_pal():
    buf = bytes(range(192))
    table = color_table_from_pal(buf)
    assert len(table) == 64
    assert table[1] == (3, 4, 5)
    with pytest.raises(ValueError):
        color_table_from_pal(buf[:-1])


def test_builtin_table_size():
    assert len(NES_COLORS) == 64
