"""Per-dispatch snapshot of the highlighted entry and listing position."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path


def format_timestamp(value: float | None, date_format: str) -> str:
    if value is None:
        return ""
    try:
        return time.strftime(date_format, time.localtime(value))
    except (ValueError, OverflowError, OSError):
        return ""


@dataclass(frozen=True)
class ActionContext:
    """Built fresh before each dispatch and discarded afterwards."""

    cwd: Path
    selected_index: int = 0
    current_len: int = 0
    current_file: Path | None = None
    current_file_mtime: float | None = None
    current_file_ctime: float | None = None
    selected_paths: tuple[str, ...] = ()
    date_format: str = "%Y-%m-%d %H:%M"

    @property
    def last_index(self) -> int:
        return max(0, self.current_len - 1)

    def as_dict(self) -> dict[str, object]:
        path = self.current_file
        return {
            "cwd": str(self.cwd),
            "selected_index": self.selected_index,
            "current_len": self.current_len,
            "current_file": str(path) if path is not None else "",
            "current_file_dir": str(path.parent) if path is not None else str(self.cwd),
            "current_file_name": path.name if path is not None else "",
            "current_file_extension": path.suffix[1:] if path is not None and path.suffix else "",
            "current_file_mtime": format_timestamp(self.current_file_mtime, self.date_format),
            "current_file_ctime": format_timestamp(self.current_file_ctime, self.date_format),
        }
