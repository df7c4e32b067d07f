from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .listing import DirEntry
from .overlays import OverlayState

MAX_MESSAGES = 200


@dataclass
class Clipboard:
    """Paths captured by copy/cut; move entries are re-pointed after paste."""

    paths: list[Path]
    mode: str = "copy"


@dataclass
class AppState:
    cwd: Path
    entries: list[DirEntry] = field(default_factory=list)
    parent_entries: list[DirEntry] = field(default_factory=list)
    selected_index: int = 0
    overlay: OverlayState = field(default_factory=OverlayState)
    messages: list[str] = field(default_factory=list)
    output_title: str = "Output"
    output_text: str = ""
    clipboard: Clipboard | None = None
    selected_paths: list[Path] = field(default_factory=list)
    marks: dict[str, Path] = field(default_factory=dict)
    search_query: str = ""
    pending_mark: str | None = None
    should_quit: bool = False
    dirty: bool = True
    full_redraw: bool = True

    @property
    def current_entry(self) -> DirEntry | None:
        if 0 <= self.selected_index < len(self.entries):
            return self.entries[self.selected_index]
        return None

    def add_message(self, text: str) -> None:
        self.messages.append(text)
        if len(self.messages) > MAX_MESSAGES:
            del self.messages[: len(self.messages) - MAX_MESSAGES]
        self.dirty = True

    def select(self, index: int) -> None:
        """Clamp ``index`` into the current listing and select it."""
        if not self.entries:
            self.selected_index = 0
        else:
            self.selected_index = max(0, min(index, len(self.entries) - 1))
        self.dirty = True

    def select_name(self, name: str) -> bool:
        for index, entry in enumerate(self.entries):
            if entry.name == name:
                self.select(index)
                return True
        return False

    def toggle_selected(self, path: Path) -> None:
        if path in self.selected_paths:
            self.selected_paths.remove(path)
        else:
            self.selected_paths.append(path)
        self.dirty = True
