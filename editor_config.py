#!/usr/bin/env python3
"""Editor configuration loaded from config/editor.yaml."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from runner_common import read_yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config" / "editor.yaml"


class EditorConfigError(Exception):
    """Raised when the editor config file is invalid."""


@dataclass(frozen=True)
class EditorConfig:
    min_extent: float = 4
    spawn_x: float = 100
    spawn_y: float = 100
    id_length: int = 6
    placeholder_code: str = "-- code will appear here"


def load_editor_config(path: Path = DEFAULT_CONFIG_PATH) -> EditorConfig:
    payload = read_yaml(path)
    if not isinstance(payload, dict):
        raise EditorConfigError("editor config root must be an object")

    geometry = payload.get("geometry", {})
    ids = payload.get("ids", {})
    script = payload.get("script", {})
    for section_name, section in (("geometry", geometry), ("ids", ids), ("script", script)):
        if not isinstance(section, dict):
            raise EditorConfigError(f"{section_name} must be an object")

    spawn = geometry.get("spawn", {})
    if not isinstance(spawn, dict):
        raise EditorConfigError("geometry.spawn must be an object")

    defaults = EditorConfig()
    try:
        min_extent = float(geometry.get("min_extent", defaults.min_extent))
        spawn_x = float(spawn.get("x", defaults.spawn_x))
        spawn_y = float(spawn.get("y", defaults.spawn_y))
        id_length = int(ids.get("length", defaults.id_length))
    except (TypeError, ValueError) as err:
        raise EditorConfigError(f"invalid numeric config field: {err}") from err

    placeholder_code = script.get("placeholder_code", defaults.placeholder_code)
    if not isinstance(placeholder_code, str):
        raise EditorConfigError("script.placeholder_code must be a string")

    if min_extent <= 0:
        raise EditorConfigError("geometry.min_extent must be > 0")
    if not 4 <= id_length <= 32:
        raise EditorConfigError("ids.length must be between 4 and 32")

    return EditorConfig(
        min_extent=min_extent,
        spawn_x=spawn_x,
        spawn_y=spawn_y,
        id_length=id_length,
        placeholder_code=placeholder_code,
    )
