"""Normalized effect record produced by every handler invocation.

Script results and built-in actions both lower into ``ActionEffects`` so the
applier only ever sees one shape.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from ..config.merge import merge


class OverlayToggle(Enum):
    NONE = "none"
    SHOW = "show"
    HIDE = "hide"
    TOGGLE = "toggle"

    @classmethod
    def parse(cls, value: object) -> OverlayToggle:
        if value is True:
            return cls.SHOW
        if value is False:
            return cls.HIDE
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.NONE
        return cls.NONE


@dataclass
class ActionEffects:
    quit: bool = False
    redraw: bool = False
    full_redraw: bool = False
    selection: int | None = None
    select_last: bool = False
    messages: OverlayToggle = OverlayToggle.NONE
    output_overlay: OverlayToggle = OverlayToggle.NONE
    which_key: OverlayToggle = OverlayToggle.NONE
    theme_picker: bool = False
    prompt: str | None = None
    prompt_initial: str = ""
    confirm: str | None = None
    close_overlays: bool = False
    output: tuple[str, str] | None = None
    messages_added: list[str] = field(default_factory=list)
    clear_messages: bool = False
    theme_name: str | None = None
    config_changes: dict[str, object] = field(default_factory=dict)
    select_paths: list[str] | None = None
    commands: list[str] = field(default_factory=list)

    @classmethod
    def message(cls, text: str) -> ActionEffects:
        return cls(messages_added=[text])

    def add_message(self, text: str) -> None:
        self.messages_added.append(text)

    def change_config(self, overlay: Mapping[str, object]) -> None:
        self.config_changes = merge(self.config_changes, overlay)

    def set_output(self, text: str, title: str = "Output") -> None:
        self.output = (title, text)
        self.output_overlay = OverlayToggle.SHOW

    def extend(self, other: ActionEffects) -> ActionEffects:
        """Fold a later effect set into this one; later values win."""
        self.quit = self.quit or other.quit
        self.redraw = self.redraw or other.redraw
        self.full_redraw = self.full_redraw or other.full_redraw
        if other.selection is not None:
            self.selection = other.selection
            self.select_last = False
        if other.select_last:
            self.select_last = True
            self.selection = None
        for name in ("messages", "output_overlay", "which_key"):
            value = getattr(other, name)
            if value is not OverlayToggle.NONE:
                setattr(self, name, value)
        self.theme_picker = self.theme_picker or other.theme_picker
        if other.prompt is not None:
            self.prompt = other.prompt
            self.prompt_initial = other.prompt_initial
        if other.confirm is not None:
            self.confirm = other.confirm
        self.close_overlays = self.close_overlays or other.close_overlays
        if other.output is not None:
            self.output = other.output
        self.messages_added.extend(other.messages_added)
        self.clear_messages = self.clear_messages or other.clear_messages
        if other.theme_name is not None:
            self.theme_name = other.theme_name
        if other.config_changes:
            self.change_config(other.config_changes)
        if other.select_paths is not None:
            self.select_paths = list(other.select_paths)
        self.commands.extend(other.commands)
        return self
