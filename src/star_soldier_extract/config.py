"""Extraction settings loaded from YAML.

Example:

    output:
      music: "music-{id:02}.mml"
      bytecode: "bytecode-{id:02}.bin"
    mml:
      tempo: 75
    render:
      second_round: false
      font_size: 16
    nes_palette: palettes/fceux.pal   # or a list of 64 "RRGGBB" strings
"""
import copy
from pathlib import Path
from typing import Any

import yaml

from .ppu import COLOR_COUNT, NES_COLORS, color_table_from_pal

DEFAULTS: dict[str, Any] = {
    "output": {
        "bytecode": "bytecode-{id:02}.bin",
        "music": "music-{id:02}.mml",
        "meta_sprite": "MetaSprite-{round}-{id:03}.png",
        "ground": "ground-{round}-{stage:02}.png",
        "cell_matrix": "cell_matrix-{round}.png",
        "meta_sprite_matrix": "meta_sprite_matrix-{round}.png",
        "spawn_table": "spawn_table.yaml",
    },
    "mml": {"tempo": 75},
    "render": {"second_round": False, "font_size": 16},
    "nes_palette": None,
}


def _merge(base: dict, override: dict, path: str = "") -> dict:
    out = copy.deepcopy(base)
    for key, value in override.items():
        name = f"{path}{key}"
        if key not in base:
            raise ValueError(f"Unknown config key '{name}'")
        if isinstance(base[key], dict):
            if not isinstance(value, dict):
                raise ValueError(f"Config key '{name}' must be a mapping")
            out[key] = _merge(base[key], value, name + ".")
        else:
            out[key] = value
    return out


def _validate(cfg: dict) -> None:
    for key, fmt in cfg["output"].items():
        if not isinstance(fmt, str) or not fmt:
            raise ValueError(f"output.{key} must be a non-empty string")
    for section, key in (("mml", "tempo"), ("render", "font_size")):
        v = cfg[section][key]
        if not isinstance(v, int) or isinstance(v, bool) or v <= 0:
            raise ValueError(f"{section}.{key} must be a positive integer, got {v!r}")
    if not isinstance(cfg["render"]["second_round"], bool):
        raise ValueError("render.second_round must be true or false")


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    if path is None:
        return copy.deepcopy(DEFAULTS)
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file '{path}' must contain a mapping")
    cfg = _merge(DEFAULTS, raw)
    _validate(cfg)
    if isinstance(cfg["nes_palette"], str):
        # Relative .pal paths are resolved against the config file.
        cfg["nes_palette"] = str(Path(path).parent / cfg["nes_palette"])
    return cfg


def _rgb_hex_to_tuple(h: str) -> tuple[int, int, int]:
    h = str(h).strip().lstrip("#").upper()
    if len(h) != 6 or any(c not in "0123456789ABCDEF" for c in h):
        raise ValueError(f"Invalid RGB color '{h}', expected 6 hex digits (e.g. 'FC7460')")
    v = int(h, 16)
    return (v >> 16) & 0xFF, (v >> 8) & 0xFF, v & 0xFF


def resolve_colors(cfg: dict[str, Any]) -> tuple[tuple[int, int, int], ...]:
    """Return the NES colour table selected by the config."""
    entry = cfg.get("nes_palette")
    if entry is None:
        return NES_COLORS
    if isinstance(entry, str):
        return color_table_from_pal(Path(entry).read_bytes())
    if isinstance(entry, list):
        if len(entry) != COLOR_COUNT:
            raise ValueError(f"nes_palette must list {COLOR_COUNT} colors (got {len(entry)})")
        return tuple(_rgb_hex_to_tuple(c) for c in entry)
    raise ValueError("nes_palette must be a .pal path or a list of colors")


def output_name(cfg: dict[str, Any], kind: str, **fields) -> str:
    return cfg["output"][kind].format(**fields)
