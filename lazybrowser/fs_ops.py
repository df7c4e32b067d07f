"""Filesystem primitives plus batch wrappers that aggregate failures.

A batch never stops at the first error: every item is attempted and the
outcome is summarized in one message.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def copy_path(src: Path, dst: Path) -> None:
    """Copy a file or directory tree from ``src`` to ``dst``."""
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dst, symlinks=True)
    else:
        shutil.copy2(src, dst, follow_symlinks=False)


def move_path(src: Path, dst: Path) -> None:
    """Rename ``src`` to ``dst``, falling back to copy+remove across devices."""
    try:
        os.rename(src, dst)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
        logger.debug("cross-device move %s -> %s, copying", src, dst)
        copy_path(src, dst)
        remove_path(src)


def remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


@dataclass
class BatchReport:
    label: str
    ok: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    moved: dict[Path, Path] = field(default_factory=dict)

    def summary(self) -> str:
        text = f"{self.label}: ok={self.ok} skipped={self.skipped} errors={len(self.errors)}"
        if self.errors:
            text += f" ({self.errors[0]})"
        return text


def _is_within(path: Path, parent: Path) -> bool:
    try:
        return path.resolve().is_relative_to(parent.resolve())
    except OSError:
        return False


def paste_paths(sources: Iterable[Path], destination_dir: Path, mode: str) -> BatchReport:
    """Copy or move ``sources`` into ``destination_dir``.

    Existing targets and moves of a directory into itself are skipped.
    """
    report = BatchReport(label="Paste")
    for src in sources:
        target = destination_dir / src.name
        if mode == "move" and src.is_dir() and _is_within(destination_dir, src):
            report.skipped += 1
            continue
        if target.exists() or target.is_symlink():
            report.skipped += 1
            continue
        try:
            if mode == "move":
                move_path(src, target)
                report.moved[src] = target
            else:
                copy_path(src, target)
        except OSError as exc:
            logger.info("paste %s -> %s failed: %s", src, target, exc)
            report.errors.append(f"{src.name}: {exc.strerror or exc}")
            continue
        report.ok += 1
    return report


def delete_paths(paths: Iterable[Path]) -> BatchReport:
    report = BatchReport(label="Delete")
    for path in paths:
        if not (path.exists() or path.is_symlink()):
            report.skipped += 1
            continue
        try:
            remove_path(path)
        except OSError as exc:
            logger.info("delete %s failed: %s", path, exc)
            report.errors.append(f"{path.name}: {exc.strerror or exc}")
            continue
        report.ok += 1
    return report


def create_entry(directory: Path, name: str) -> Path:
    """Create a file, or a directory when ``name`` ends with ``/``."""
    target = directory / name.rstrip("/")
    if name.endswith("/"):
        target.mkdir(parents=True)
    else:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("x", encoding="utf-8"):
            pass
    return target


def rename_entry(path: Path, new_name: str) -> Path:
    if not new_name or "/" in new_name or new_name in {".", ".."}:
        raise ValueError(f"invalid name: {new_name!r}")
    target = path.with_name(new_name)
    if target.exists():
        raise FileExistsError(f"{new_name} already exists")
    os.rename(path, target)
    return target


def rename_many(paths: list[Path], template: str) -> BatchReport:
    """Rename each path from ``template``.

    ``{}`` stands for the old stem (the suffix is kept) and ``{n}`` for the
    1-based position in ``paths``.
    """
    report = BatchReport(label="Rename")
    for position, path in enumerate(paths, start=1):
        new_name = template.replace("{n}", str(position)).replace("{}", path.stem) + (
            path.suffix if "{}" in template else ""
        )
        try:
            rename_entry(path, new_name)
        except (OSError, ValueError) as exc:
            report.errors.append(f"{path.name}: {exc}")
            continue
        report.ok += 1
    return report
