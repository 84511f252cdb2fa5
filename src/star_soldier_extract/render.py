"""Composite images: cell/meta-sprite catalogues and full stage maps."""
from PIL import Image, ImageDraw, ImageFont

from .errors import DecodeError
from .game import CELL_MAX, META_SPRITE_MAX, Game
from .ground import COLUMN_COUNT, ROWS_PER_HALF, ROW_COUNT

COLOR_BG = (0, 0, 0, 0xFF)
COLOR_TEXT = (0xFF, 0xFF, 0xFF, 0xFF)
DEFAULT_FONT_SIZE = 16

CELL_PX = 16

# Blank rows drawn below the stage, between the halves, and above it
# (as row-number ranges, bottom-up).
SPACE_ROW_RANGES = (range(-48, 0), range(-17, 0), range(1, 18))


def load_font(size: int = DEFAULT_FONT_SIZE) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def _catalogue(images, rows: int, font) -> Image.Image:
    img = Image.new("RGBA", (256 + CELL_PX, CELL_PX * rows + CELL_PX), COLOR_BG)
    draw = ImageDraw.Draw(img)
    for c in range(16):
        draw.text((CELL_PX + CELL_PX * c + 2, 0), f"x{c:X}", fill=COLOR_TEXT, font=font)
    for r in range(16):
        draw.text((2, CELL_PX + CELL_PX * r), f"{r:X}x", fill=COLOR_TEXT, font=font)
    for i, part in enumerate(images):
        c, r = i % 16, i // 16
        img.alpha_composite(part, (CELL_PX + CELL_PX * c, CELL_PX + CELL_PX * r))
    return img


def cell_matrix_image(game: Game, second_round: bool = False, font_size: int = DEFAULT_FONT_SIZE) -> Image.Image:
    # The first half of stage 1 supplies the palettes.
    palette_set = game.ground(1).palette_set_half(0)
    images = game.cell_images(second_round, palette_set)
    return _catalogue(images, (CELL_MAX + 16) // 16, load_font(font_size))


def meta_sprite_matrix_image(game: Game, second_round: bool = False, font_size: int = DEFAULT_FONT_SIZE) -> Image.Image:
    images = game.meta_sprite_images(second_round)
    return _catalogue(images, (META_SPRITE_MAX + 16) // 16, load_font(font_size))


def _ground_canvas() -> Image.Image:
    w = CELL_PX * COLUMN_COUNT + 2 * CELL_PX
    h = CELL_PX * (ROW_COUNT + sum(len(r) for r in SPACE_ROW_RANGES))
    return Image.new("RGBA", (w, h), COLOR_BG)


def _draw_space(img: Image.Image, draw: ImageDraw.ImageDraw, idx: int, font) -> None:
    first, second, _ = (len(r) for r in SPACE_ROW_RANGES)
    y_bias = CELL_PX * (0, ROWS_PER_HALF + first, ROW_COUNT + first + second)[idx]
    for i, r in enumerate(SPACE_ROW_RANGES[idx]):
        y = img.height - CELL_PX * (i + 1) - y_bias
        draw.text((2, y), f"{r:3}", fill=COLOR_TEXT, font=font)


def _draw_ground_half(img, draw, game: Game, ground, idx: int, second_round: bool, font) -> None:
    first, second, _ = (len(r) for r in SPACE_ROW_RANGES)
    y_bias = CELL_PX * (first, ROWS_PER_HALF + first + second)[idx]

    cell_images = game.cell_images(second_round, ground.palette_set_half(idx))
    for i in range(ROWS_PER_HALF):
        r = i + ROWS_PER_HALF * idx
        y = img.height - CELL_PX * (i + 1) - y_bias
        for c in range(COLUMN_COUNT):
            visual_id = ground.hidden_visual_id(r, c)
            if visual_id is None:
                visual_id = ground.cell(r, c)
            if visual_id > CELL_MAX:
                raise DecodeError(
                    f"stage {ground.stage}: cell 0x{visual_id:02X} at row {r}, column {c} has no visual"
                )
            img.alpha_composite(cell_images[visual_id], (2 * CELL_PX + CELL_PX * c, y))
        draw.text((2, y), f"{r:3}", fill=COLOR_TEXT, font=font)


def ground_image(game: Game, stage: int, second_round: bool = False, font_size: int = DEFAULT_FONT_SIZE) -> Image.Image:
    """Draw a whole stage bottom-up, hidden cells revealed, rows numbered."""
    ground = game.ground(stage)
    font = load_font(font_size)
    img = _ground_canvas()
    draw = ImageDraw.Draw(img)
    for i in range(len(SPACE_ROW_RANGES)):
        _draw_space(img, draw, i, font)
    for i in range(2):
        _draw_ground_half(img, draw, game, ground, i, second_round, font)
    return img
