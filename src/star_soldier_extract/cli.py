import logging
from contextlib import contextmanager
from pathlib import Path

import click
import yaml

from . import config as config_mod
from . import render, rom_utils
from .enemy_group import load_enemy_groups
from .errors import DecodeError
from .game import META_SPRITE_MAX, Game
from .ground import STAGE_COUNT
from .mml import music_to_mml
from .music import load_musics
from .rom import load_rom
from .spawn_table import load_spawn_table, spawn_table_to_records


@contextmanager
def _decode_errors():
    try:
        yield
    except DecodeError as e:
        raise click.ClickException(f"Decode failed: {e}") from e


def _round_no(second_round: bool) -> int:
    return 2 if second_round else 1


def _write_bytecodes(rom, out_dir: Path, cfg) -> int:
    n = 0
    for group in load_enemy_groups(rom):
        if group.bytecode is None:
            continue
        rom_utils.write_bytes(out_dir / config_mod.output_name(cfg, "bytecode", id=group.id), group.bytecode)
        n += 1
    return n


def _write_musics(rom, out_dir: Path, cfg) -> int:
    musics = load_musics(rom)
    for music in musics:
        path = out_dir / config_mod.output_name(cfg, "music", id=music.id)
        rom_utils.write_text(path, music_to_mml(music, tempo=cfg["mml"]["tempo"]))
    return len(musics)


def _write_meta_sprites(game: Game, out_dir: Path, cfg) -> int:
    n = 0
    for second_round in (False, True):
        for i, img in enumerate(game.meta_sprite_images(second_round)):
            name = config_mod.output_name(cfg, "meta_sprite", round=_round_no(second_round), id=i)
            path = out_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            img.save(path)
            n += 1
    return n


def _write_spawn_table(rom, path: Path) -> int:
    records = spawn_table_to_records(load_spawn_table(rom))
    rom_utils.write_text(path, yaml.safe_dump(records, sort_keys=False))
    return len(records)


def _save_image(img, out) -> None:
    Path(out).parent.mkdir(parents=True, exist_ok=True)
    img.save(out)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log decoder details")
def main(verbose):
    """Star Soldier asset extraction toolkit."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command()
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to iNES ROM")
def verify(rom):
    """Print iNES header fields and check the image layout."""
    info = rom_utils.inspect_rom(rom)
    click.echo(f"Size: {info['size']} bytes")
    click.echo(f"CRC32: {info['crc32']:08X}")
    if info.get("warning"):
        click.echo(f"Warning: {info['warning']}")
    hdr = info.get("header")
    if hdr:
        click.echo("Header:")
        click.echo(f"  Magic: {'ok' if hdr['magic_ok'] else 'MISSING'}")
        click.echo(f"  PRG: {hdr['prg_banks']} x 16KB ({hdr['prg_size']} bytes)")
        click.echo(f"  CHR: {hdr['chr_banks']} x 8KB ({hdr['chr_size']} bytes)")
        click.echo(f"  Mapper: {hdr['mapper_name']} ({hdr['mapper']})")
        click.echo(f"  Mirroring: {hdr['mirroring']}")
    with _decode_errors():
        load_rom(rom)
    click.echo("Layout OK")


@main.command()
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out-dir", type=click.Path(file_okay=False), required=True)
def bytecode(rom, out_dir):
    """Write each enemy group's behaviour bytecode as a raw .bin file."""
    cfg = config_mod.load_config()
    with _decode_errors():
        n = _write_bytecodes(load_rom(rom), Path(out_dir), cfg)
    click.echo(f"Wrote {n} bytecode blobs → {out_dir}")


@main.command()
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out-dir", type=click.Path(file_okay=False), required=True)
@click.option("--tempo", type=click.IntRange(min=1), default=75, show_default=True, help="MML tempo directive")
def music(rom, out_dir, tempo):
    """Write each tune as FlMML text."""
    cfg = config_mod.load_config()
    cfg["mml"]["tempo"] = tempo
    with _decode_errors():
        n = _write_musics(load_rom(rom), Path(out_dir), cfg)
    click.echo(f"Wrote {n} MML files → {out_dir}")


@main.command()
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--stage", type=click.IntRange(1, STAGE_COUNT), required=True)
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output PNG")
@click.option("--second-round", is_flag=True, help="Use second-round tiles")
def ground(rom, stage, out, second_round):
    """Render one stage map."""
    with _decode_errors():
        game = Game.from_rom(load_rom(rom))
        img = render.ground_image(game, stage, second_round)
    _save_image(img, out)
    click.echo(f"Wrote stage {stage} → {out}")


@main.command("cell-matrix")
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output PNG")
@click.option("--second-round", is_flag=True, help="Use second-round tiles")
def cell_matrix(rom, out, second_round):
    """Render every ground cell in a labelled 16-column grid."""
    with _decode_errors():
        game = Game.from_rom(load_rom(rom))
        img = render.cell_matrix_image(game, second_round)
    _save_image(img, out)
    click.echo(f"Wrote cell matrix → {out}")


@main.command("meta-sprite")
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out-dir", type=click.Path(file_okay=False), required=True)
def meta_sprite(rom, out_dir):
    """Write every meta sprite, both rounds, as separate PNGs."""
    cfg = config_mod.load_config()
    with _decode_errors():
        game = Game.from_rom(load_rom(rom))
        n = _write_meta_sprites(game, Path(out_dir), cfg)
    click.echo(f"Wrote {n} meta sprites → {out_dir}")


@main.command("meta-sprite-matrix")
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output PNG")
@click.option("--second-round", is_flag=True, help="Use second-round tiles")
def meta_sprite_matrix(rom, out, second_round):
    """Render meta sprites 0x00-0x8F in a labelled grid."""
    with _decode_errors():
        game = Game.from_rom(load_rom(rom))
        img = render.meta_sprite_matrix_image(game, second_round)
    _save_image(img, out)
    click.echo(f"Wrote meta sprite matrix ({META_SPRITE_MAX + 1} sprites) → {out}")


@main.command("spawn-table")
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Output YAML (default: stdout)")
def spawn_table(rom, out):
    """Dump the spawn table as YAML."""
    with _decode_errors():
        rom_image = load_rom(rom)
        if out:
            n = _write_spawn_table(rom_image, Path(out))
            click.echo(f"Wrote {n} spawn table entries → {out}")
        else:
            records = spawn_table_to_records(load_spawn_table(rom_image))
            click.echo(yaml.safe_dump(records, sort_keys=False), nl=False)


@main.command()
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out-dir", type=click.Path(file_okay=False), required=True)
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None, help="YAML settings")
def extract(rom, out_dir, config_path):
    """Run every extraction into one directory."""
    try:
        cfg = config_mod.load_config(config_path)
        colors = config_mod.resolve_colors(cfg)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Bad config: {e}") from e

    out = Path(out_dir)
    second_round = cfg["render"]["second_round"]
    font_size = cfg["render"]["font_size"]
    round_no = _round_no(second_round)

    with _decode_errors():
        rom_image = load_rom(rom)
        n = _write_bytecodes(rom_image, out, cfg)
        click.echo(f"Bytecode blobs: {n}")
        n = _write_musics(rom_image, out, cfg)
        click.echo(f"MML files: {n}")
        n = _write_spawn_table(rom_image, out / config_mod.output_name(cfg, "spawn_table"))
        click.echo(f"Spawn table entries: {n}")
        game = Game.from_rom(rom_image, colors=colors)

        n = _write_meta_sprites(game, out, cfg)
        click.echo(f"Meta sprites: {n}")
        _save_image(
            render.cell_matrix_image(game, second_round, font_size),
            out / config_mod.output_name(cfg, "cell_matrix", round=round_no),
        )
        _save_image(
            render.meta_sprite_matrix_image(game, second_round, font_size),
            out / config_mod.output_name(cfg, "meta_sprite_matrix", round=round_no),
        )
        for stage in range(1, STAGE_COUNT + 1):
            _save_image(
                render.ground_image(game, stage, second_round, font_size),
                out / config_mod.output_name(cfg, "ground", round=round_no, stage=stage),
            )
    click.echo(f"Stage maps: {STAGE_COUNT}")
    click.echo(f"Extraction complete → {out_dir}")


if __name__ == "__main__":
    main()
