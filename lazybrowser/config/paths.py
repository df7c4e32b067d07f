"""Configuration root discovery.

Candidates are searched in order; the first one holding ``init.lua`` wins.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "lazybrowser"
CONFIG_DIR_ENV = "LAZYBROWSER_CONFIG_DIR"
ENTRY_FILENAME = "init.lua"
MARKS_FILENAME = "marks"


def candidate_config_roots(environ: Mapping[str, str] | None = None) -> list[Path]:
    """Return config roots in search order without duplicates."""
    env = os.environ if environ is None else environ
    candidates: list[Path] = []
    override = env.get(CONFIG_DIR_ENV, "").strip()
    if override:
        candidates.append(Path(override).expanduser())
    xdg = env.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        candidates.append(Path(xdg).expanduser() / APP_NAME)
    candidates.append(Path(user_config_dir(APP_NAME, appauthor=False)))
    candidates.append(Path.home() / ".config" / APP_NAME)

    unique: list[Path] = []
    for candidate in candidates:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def discover_config_root(environ: Mapping[str, str] | None = None) -> tuple[Path, Path | None]:
    """Return ``(root, entry_file)``.

    ``entry_file`` is ``None`` when no candidate has an ``init.lua``; the
    root is then the first candidate so marks and themes still have a home.
    """
    candidates = candidate_config_roots(environ)
    for root in candidates:
        entry = root / ENTRY_FILENAME
        if entry.is_file():
            return root, entry
    return candidates[0], None
