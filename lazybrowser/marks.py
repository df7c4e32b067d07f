"""Named directory marks persisted as ``<key>\\t<path>`` lines."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def is_mark_key(key: str) -> bool:
    return len(key) == 1 and key.isprintable() and not key.isspace()


def load_marks(path: Path) -> dict[str, Path]:
    """Read marks; a missing or unreadable file yields no marks."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    marks: dict[str, Path] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, target = stripped.partition("\t")
        if not sep or not is_mark_key(key) or not target:
            continue
        marks[key] = Path(target)
    return marks


def save_marks(path: Path, marks: dict[str, Path]) -> None:
    """Write marks atomically through a temporary sibling file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    lines = [f"{key}\t{marks[key]}\n" for key in sorted(marks)]
    tmp.write_text("".join(lines), encoding="utf-8")
    os.replace(tmp, path)
    logger.debug("saved %d marks to %s", len(marks), path)
