"""Single-slot modal overlay state.

At most one overlay is active; opening any overlay replaces whatever was
showing before.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .keymap.bindings import Binding


class OverlayKind(Enum):
    NONE = "none"
    WHICH_KEY = "which_key"
    MESSAGES = "messages"
    OUTPUT = "output"
    THEME_PICKER = "theme_picker"
    PROMPT = "prompt"
    CONFIRM = "confirm"


class PromptKind(Enum):
    COMMAND = "command"
    FIND = "find"
    ADD_ENTRY = "add_entry"
    RENAME = "rename_entry"

    @classmethod
    def parse(cls, value: str) -> PromptKind | None:
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass
class WhichKeyOverlay:
    prefix: tuple[str, ...]
    groups: list[tuple[str, list[Binding]]]


@dataclass
class PromptOverlay:
    kind: PromptKind
    title: str
    text: str = ""
    targets: tuple[Path, ...] = ()

    def insert(self, ch: str) -> None:
        self.text += ch

    def backspace(self) -> None:
        self.text = self.text[:-1]


@dataclass
class ConfirmOverlay:
    kind: str
    question: str
    paths: tuple[Path, ...] = ()


@dataclass
class ThemePickerOverlay:
    themes: list[tuple[str, Path]]
    selected: int = 0
    original_theme: dict[str, object] = field(default_factory=dict)
    original_theme_path: str | None = None


OverlayPayload = WhichKeyOverlay | PromptOverlay | ConfirmOverlay | ThemePickerOverlay | None


@dataclass
class OverlayState:
    kind: OverlayKind = OverlayKind.NONE
    payload: OverlayPayload = None

    @property
    def active(self) -> bool:
        return self.kind is not OverlayKind.NONE

    def is_showing(self, kind: OverlayKind) -> bool:
        return self.kind is kind

    def show(self, kind: OverlayKind, payload: OverlayPayload = None) -> None:
        self.kind = kind
        self.payload = payload

    def hide(self, kind: OverlayKind | None = None) -> None:
        """Close the active overlay, or only ``kind`` when given."""
        if kind is not None and self.kind is not kind:
            return
        self.kind = OverlayKind.NONE
        self.payload = None

    def toggle(self, kind: OverlayKind, payload: OverlayPayload = None) -> None:
        if self.kind is kind:
            self.hide()
        else:
            self.show(kind, payload)
