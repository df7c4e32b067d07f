"""Directory listing and sort comparators for the three panes."""

from __future__ import annotations

import os
import stat
import time
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DirEntry:
    """One visible directory child row plus cached metadata."""

    name: str
    path: Path
    is_dir: bool
    size: int = 0
    mtime: float | None = None
    ctime: float | None = None
    is_exec: bool = False

    @property
    def is_hidden(self) -> bool:
        return self.name.startswith(".")


def _entry_from_scandir(child: os.DirEntry) -> DirEntry:
    try:
        is_dir = child.is_dir()
    except OSError:
        is_dir = False
    try:
        info = child.stat()
    except OSError:
        return DirEntry(name=child.name, path=Path(child.path), is_dir=is_dir)
    birth = getattr(info, "st_birthtime", None)
    return DirEntry(
        name=child.name,
        path=Path(child.path),
        is_dir=is_dir,
        size=0 if is_dir else int(info.st_size),
        mtime=float(info.st_mtime),
        ctime=float(birth if birth is not None else info.st_ctime),
        is_exec=not is_dir and bool(info.st_mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)),
    )


def _sort_value(entry: DirEntry, sort_key: str) -> tuple:
    name = entry.name.lower()
    if sort_key == "size":
        return (0, name) if entry.is_dir else (entry.size, name)
    if sort_key == "mtime":
        return (entry.mtime or 0.0, name)
    if sort_key == "created":
        return (entry.ctime or 0.0, name)
    return (name,)


def sort_entries(entries: list[DirEntry], sort_key: str, reverse: bool) -> list[DirEntry]:
    """Directories first; size sort keeps directories in name order either way."""
    dirs = [entry for entry in entries if entry.is_dir]
    files = [entry for entry in entries if not entry.is_dir]
    dir_key = "name" if sort_key == "size" else sort_key
    dirs.sort(key=lambda entry: _sort_value(entry, dir_key), reverse=reverse and sort_key != "size")
    files.sort(key=lambda entry: _sort_value(entry, sort_key), reverse=reverse)
    return dirs + files


def read_dir_sorted(
    directory: Path,
    show_hidden: bool,
    sort_key: str = "name",
    sort_reverse: bool = False,
    max_items: int = 5000,
) -> list[DirEntry]:
    """List ``directory``; raises ``OSError`` when it cannot be scanned."""
    entries: list[DirEntry] = []
    with os.scandir(directory) as children:
        for child in children:
            if not show_hidden and child.name.startswith("."):
                continue
            entries.append(_entry_from_scandir(child))
            if len(entries) >= max_items:
                break
    return sort_entries(entries, sort_key, sort_reverse)


def human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "K", "M", "G", "T"):
        if value < 1024 or unit == "T":
            return f"{int(value)}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1024
    return f"{size}B"


def friendly_age(timestamp: float, now: float | None = None) -> str:
    delta = max(0, int((time.time() if now is None else now) - timestamp))
    if delta < 60:
        return f"{delta}s ago"
    if delta < 3600:
        return f"{delta // 60}m ago"
    if delta < 86400:
        return f"{delta // 3600}h ago"
    return f"{delta // 86400}d ago"


def entry_info(entry: DirEntry, show: str, display_mode: str, date_format: str) -> str:
    """Format the info column for ``entry`` according to ``ui.show``."""
    if show == "size":
        return "" if entry.is_dir else human_size(entry.size)
    if show in {"modified", "created"}:
        value = entry.mtime if show == "modified" else entry.ctime
        if value is None:
            return ""
        if display_mode == "friendly":
            return friendly_age(value)
        return time.strftime(date_format, time.localtime(value))
    return ""
