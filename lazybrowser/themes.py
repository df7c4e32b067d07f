"""Theme files: discovery under the config root and loading as overlays.

A theme file is a Lua script returning a table of ``ui.theme`` colors.
"""

from __future__ import annotations

from pathlib import Path

from .config.defaults import DEFAULT_THEME
from .errors import ScriptError
from .scripting.engine import ScriptEngine

THEME_DIRS = (Path("lua") / "themes", Path("themes"))


def list_themes(config_root: Path | None) -> list[tuple[str, Path]]:
    """Return ``(name, path)`` pairs sorted by name; earlier dirs win."""
    if config_root is None:
        return []
    found: dict[str, Path] = {}
    for relative in THEME_DIRS:
        directory = config_root / relative
        if not directory.is_dir():
            continue
        for path in sorted(directory.glob("*.lua")):
            found.setdefault(path.stem, path)
    return sorted(found.items())


def find_theme(config_root: Path | None, name: str) -> Path | None:
    wanted = name.removesuffix(".lua")
    for theme_name, path in list_themes(config_root):
        if theme_name == wanted:
            return path
    return None


def theme_overlay(engine: ScriptEngine, path: Path) -> dict[str, object]:
    """Load ``path`` and build a ``ui`` overlay replacing the whole theme."""
    colors = engine.load_table_file(path)
    theme: dict[str, object] = dict(DEFAULT_THEME)
    for key, value in colors.items():
        if not isinstance(key, str):
            raise ScriptError(f"{path.name}: theme keys must be strings")
        theme[key] = value
    return {"ui": {"theme": theme, "theme_path": str(path)}}


def theme_overlay_by_name(engine: ScriptEngine, config_root: Path | None, name: str) -> dict[str, object]:
    path = find_theme(config_root, name)
    if path is None:
        raise ScriptError(f"theme not found: {name}")
    return theme_overlay(engine, path)
