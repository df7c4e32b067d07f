"""Runtime composition layer for lazybrowser.

Builds initial state from the loaded configuration, wires the key engine,
dispatcher, script bridge, process orchestrator and previewer together, and
owns every host operation that effects and typed commands can request.
"""

from __future__ import annotations

import getpass
import logging
import os
import socket
import stat
import subprocess
import time
from collections.abc import Callable
from pathlib import Path

from .actions.apply import EffectCallbacks, apply_effects
from .actions.context import ActionContext, format_timestamp
from .actions.dispatcher import ActionDispatcher
from .actions.effects import ActionEffects
from .commands import CommandError, ParsedCommand, complete_line, parse_chain
from .config.loader import LoadedConfiguration
from .config.paths import MARKS_FILENAME
from .config.types import Config
from .errors import LazyBrowserError
from .fs_ops import create_entry, delete_paths, paste_paths, rename_entry, rename_many
from .keymap.bindings import Binding
from .keymap.engine import FeedOutcome, KeySequenceEngine
from .keymap.tokens import BACKSPACE, DOWN, ENTER, ESCAPE, TAB, UP, format_sequence
from .listing import DirEntry, human_size, read_dir_sorted
from .loop import RuntimeLoopCallbacks, run_main_loop
from .marks import is_mark_key, load_marks, save_marks
from .overlays import (
    ConfirmOverlay,
    OverlayKind,
    PromptKind,
    PromptOverlay,
    ThemePickerOverlay,
    WhichKeyOverlay,
)
from .preview import Previewer
from .process import CommandContext, ProcessOrchestrator, effects_for_result
from .render import PaneLayout, RenderContext, pane_layout, render_frame
from .scripting.bridge import ScriptBridge
from .scripting.engine import shell_quote
from .state import AppState, Clipboard
from .terminal import TerminalController
from .themes import list_themes, theme_overlay, theme_overlay_by_name

logger = logging.getLogger(__name__)

DEFAULT_SIZE = (80, 24)

_PROMPT_TITLES = {
    PromptKind.COMMAND: ":",
    PromptKind.FIND: "Find",
    PromptKind.ADD_ENTRY: "New entry (end with / for a folder)",
    PromptKind.RENAME: "Rename",
}


def _username() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return os.environ.get("USER", "")


def _plural(count: int, noun: str = "item") -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class BrowserApp:
    """Host state plus the operations handlers and commands act on."""

    def __init__(
        self,
        start: Path,
        loaded: LoadedConfiguration,
        terminal: TerminalController | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        size: Callable[[], tuple[int, int]] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.loaded = loaded
        self.store = loaded.store
        self.engine = loaded.engine
        self.config_root = loaded.root
        self.terminal = terminal
        if size is None:
            size = terminal.size if terminal is not None else (lambda: DEFAULT_SIZE)
        self._size = size
        self.clock = clock

        start = start.expanduser().resolve()
        select_name = None
        if not start.is_dir():
            select_name = start.name
            start = start.parent
        self.state = AppState(cwd=start)

        self.orchestrator = ProcessOrchestrator(terminal=terminal, runner=runner)
        self.bridge = ScriptBridge(self.engine, self.orchestrator, report=self.state.add_message)
        self.dispatcher = ActionDispatcher(self.bridge)
        self.keys = KeySequenceEngine(
            loaded.bindings,
            timeout_ms=self.config.keys.sequence_timeout_ms,
            clock=clock,
        )
        self.previewer = Previewer(
            self.orchestrator,
            command_for=self.bridge.call_previewer if self.bridge.has_previewer else None,
        )
        self.marks_path = self.config_root / MARKS_FILENAME
        self.state.marks = load_marks(self.marks_path)
        self.callbacks = EffectCallbacks(
            open_prompt=self.open_prompt,
            open_confirm=self.open_confirm,
            open_theme_picker=self.open_theme_picker,
            which_key_overlay=self.which_key_overlay,
            theme_overlay=self.theme_overlay,
            config_changed=self.config_changed,
            run_command=self.execute_command_line,
        )
        self._which_key_auto = False

        if loaded.error:
            self.state.add_message(loaded.error)
        self.refresh_listing(keep_name=select_name)

    @property
    def config(self) -> Config:
        return self.store.config

    # Geometry and per-dispatch contexts.

    def layout(self) -> PaneLayout:
        columns, rows = self._size()
        return pane_layout(columns, rows, self.config.ui.panes)

    def build_context(self) -> ActionContext:
        state = self.state
        entry = state.current_entry
        return ActionContext(
            cwd=state.cwd,
            selected_index=state.selected_index,
            current_len=len(state.entries),
            current_file=entry.path if entry is not None else None,
            current_file_mtime=entry.mtime if entry is not None else None,
            current_file_ctime=entry.ctime if entry is not None else None,
            selected_paths=tuple(str(path) for path in state.selected_paths),
            date_format=self.config.ui.date_format,
        )

    def command_context(self) -> CommandContext:
        layout = self.layout()
        entry = self.state.current_entry
        return CommandContext(
            directory=self.state.cwd,
            path=entry.path if entry is not None else None,
            width=layout.preview_width,
            height=layout.body_rows,
            preview_x=layout.preview_x,
            preview_y=1,
        )

    # Listing.

    def _read_entries(self, directory: Path) -> list[DirEntry]:
        ui = self.config.ui
        return read_dir_sorted(directory, ui.show_hidden, ui.sort, ui.sort_reverse, ui.max_list_items)

    def _refresh_parent(self) -> None:
        state = self.state
        parent = state.cwd.parent
        if parent == state.cwd:
            state.parent_entries = []
            return
        try:
            state.parent_entries = self._read_entries(parent)
        except OSError:
            state.parent_entries = []

    def refresh_listing(self, keep_name: str | None = None) -> None:
        """Re-read the current directory, keeping the highlighted name if possible."""
        state = self.state
        if keep_name is None and state.current_entry is not None:
            keep_name = state.current_entry.name
        try:
            state.entries = self._read_entries(state.cwd)
        except OSError as exc:
            state.entries = []
            state.add_message(f"Cannot list {state.cwd}: {exc.strerror or exc}")
        self._refresh_parent()
        if keep_name is None or not state.select_name(keep_name):
            state.select(state.selected_index)
        state.dirty = True

    def change_dir(self, target: Path, select_name: str | None = None) -> bool:
        state = self.state
        path = target.expanduser()
        if not path.is_absolute():
            path = state.cwd / path
        try:
            resolved = path.resolve()
        except OSError as exc:
            state.add_message(f"Cannot open {path}: {exc}")
            return False
        if not resolved.is_dir():
            state.add_message(f"Not a directory: {resolved}")
            return False
        try:
            entries = self._read_entries(resolved)
        except OSError as exc:
            state.add_message(f"Cannot open {resolved}: {exc.strerror or exc}")
            return False
        logger.debug("cd %s -> %s", state.cwd, resolved)
        state.cwd = resolved
        state.entries = entries
        state.selected_index = 0
        self._refresh_parent()
        if select_name is None or not state.select_name(select_name):
            state.select(0)
        state.full_redraw = True
        state.dirty = True
        return True

    # Key handling.

    def handle_key(self, token: str) -> None:
        state = self.state
        if state.pending_mark is not None:
            self._finish_pending_mark(token)
            return
        kind = state.overlay.kind
        if kind is OverlayKind.PROMPT:
            self._prompt_key(token)
            return
        if kind is OverlayKind.CONFIRM:
            self._confirm_key(token)
            return
        if kind is OverlayKind.THEME_PICKER:
            self._theme_picker_key(token)
            return
        self._handle_outcome(self.keys.feed(token))

    def tick(self, now: float | None = None) -> None:
        """Resolve a pending key prefix whose timeout has elapsed."""
        if not self.keys.pending:
            return
        outcome = self.keys.tick(now)
        if outcome.pending:
            return
        self._handle_outcome(outcome)

    def poll_timeout_ms(self, idle_ms: int) -> int:
        deadline = self.keys.deadline
        if deadline is None:
            return idle_ms
        remaining = int((deadline - self.clock()) * 1000.0) + 1
        return max(0, min(idle_ms, remaining))

    def _handle_outcome(self, outcome: FeedOutcome) -> None:
        state = self.state
        if outcome.discarded:
            logger.debug("discarded keys %s", format_sequence(outcome.discarded))
        if outcome.pending:
            if self.config.keys.which_key:
                state.overlay.show(OverlayKind.WHICH_KEY, self.which_key_overlay())
                self._which_key_auto = True
                state.full_redraw = True
            state.dirty = True
            return
        if self._which_key_auto:
            self._which_key_auto = False
            state.overlay.hide(OverlayKind.WHICH_KEY)
            state.full_redraw = True
            state.dirty = True
        if outcome.binding is not None:
            self.run_binding(outcome.binding)

    def run_binding(self, binding: Binding) -> None:
        effects = self.dispatcher.dispatch(
            binding,
            self.store.snapshot_tree(),
            self.build_context(),
            self.command_context(),
            self.config,
        )
        self.apply(effects)

    def run_action(self, action: str) -> None:
        self.apply(self.dispatcher.run_action(action, self.build_context(), self.config))

    def apply(self, effects: ActionEffects) -> None:
        apply_effects(effects, self.state, self.store, self.callbacks)

    # Overlay key routing.

    def _prompt_key(self, token: str) -> None:
        state = self.state
        prompt = state.overlay.payload
        if not isinstance(prompt, PromptOverlay):
            state.overlay.hide()
            return
        if token == ESCAPE:
            state.overlay.hide()
            state.full_redraw = True
        elif token == ENTER:
            state.overlay.hide()
            state.full_redraw = True
            self._submit_prompt(prompt)
        elif token == BACKSPACE:
            prompt.backspace()
        elif token == "<C-u>":
            prompt.text = ""
        elif token == TAB and prompt.kind is PromptKind.COMMAND:
            prompt.text, candidates = complete_line(prompt.text)
            if len(candidates) > 1:
                state.add_message("  ".join(candidates))
        elif len(token) == 1 and token.isprintable():
            prompt.insert(token)
        state.dirty = True

    def _submit_prompt(self, prompt: PromptOverlay) -> None:
        text = prompt.text.strip()
        if prompt.kind is PromptKind.COMMAND:
            self.execute_command_line(prompt.text)
        elif prompt.kind is PromptKind.FIND:
            self.find(text)
        elif prompt.kind is PromptKind.ADD_ENTRY:
            self.add_entry(prompt.text.strip(" "))
        elif prompt.kind is PromptKind.RENAME:
            self.rename(text, list(prompt.targets))

    def _confirm_key(self, token: str) -> None:
        state = self.state
        confirm = state.overlay.payload
        state.overlay.hide()
        state.full_redraw = True
        state.dirty = True
        if not isinstance(confirm, ConfirmOverlay):
            return
        if token.lower() == "y":
            if confirm.kind == "delete":
                self.delete_now(list(confirm.paths))
        else:
            state.add_message("Cancelled")

    def _theme_picker_key(self, token: str) -> None:
        state = self.state
        picker = state.overlay.payload
        if not isinstance(picker, ThemePickerOverlay) or not picker.themes:
            state.overlay.hide()
            return
        if token in {"j", DOWN}:
            picker.selected = (picker.selected + 1) % len(picker.themes)
            self._preview_theme(picker)
        elif token in {"k", UP}:
            picker.selected = (picker.selected - 1) % len(picker.themes)
            self._preview_theme(picker)
        elif token == ENTER:
            state.overlay.hide()
            state.add_message(f"Theme: {picker.themes[picker.selected][0]}")
        elif token in {ESCAPE, "q"}:
            state.overlay.hide()
            self.apply(
                ActionEffects(
                    config_changes={
                        "ui": {"theme": picker.original_theme, "theme_path": picker.original_theme_path}
                    }
                )
            )
        state.full_redraw = True
        state.dirty = True

    def _preview_theme(self, picker: ThemePickerOverlay) -> None:
        _, path = picker.themes[picker.selected]
        try:
            overlay = theme_overlay(self.engine, path)
        except (LazyBrowserError, OSError) as exc:
            self.state.add_message(f"Theme error: {exc}")
            return
        self.apply(ActionEffects(config_changes=overlay))

    def _finish_pending_mark(self, token: str) -> None:
        mode = self.state.pending_mark
        self.state.pending_mark = None
        self.state.dirty = True
        if token == ESCAPE:
            return
        if mode == "mark":
            self.set_mark(token)
        else:
            self.goto_mark(token)

    # Effect callbacks.

    def open_prompt(self, kind: str, initial: str = "") -> None:
        prompt_kind = PromptKind.parse(kind)
        if prompt_kind is None:
            self.state.add_message(f"Unknown prompt: {kind}")
            return
        title = _PROMPT_TITLES[prompt_kind]
        targets: tuple[Path, ...] = ()
        text = initial
        if prompt_kind is PromptKind.RENAME:
            targets = tuple(self.targets())
            if not targets:
                self.state.add_message("Nothing to rename")
                return
            if len(targets) == 1:
                text = initial or targets[0].name
            else:
                title = f"Rename {_plural(len(targets))} ({{}} = name, {{n}} = index)"
        prompt = PromptOverlay(kind=prompt_kind, title=title, text=text, targets=targets)
        self.state.overlay.show(OverlayKind.PROMPT, prompt)
        self.state.full_redraw = True
        self.state.dirty = True

    def open_confirm(self, kind: str) -> None:
        if kind != "delete":
            self.state.add_message(f"Unknown confirmation: {kind}")
            return
        targets = self.targets()
        if not targets:
            self.state.add_message("Nothing to delete")
            return
        question = f"Delete {_plural(len(targets))}?"
        confirm = ConfirmOverlay(kind="delete", question=question, paths=tuple(targets))
        self.state.overlay.show(OverlayKind.CONFIRM, confirm)
        self.state.full_redraw = True
        self.state.dirty = True

    def open_theme_picker(self) -> None:
        themes = list_themes(self.config_root)
        if not themes:
            self.state.add_message(f"No themes found under {self.config_root}")
            return
        ui = self.config.ui
        selected = 0
        for index, (_, path) in enumerate(themes):
            if ui.theme_path is not None and str(path) == ui.theme_path:
                selected = index
        picker = ThemePickerOverlay(
            themes=themes,
            selected=selected,
            original_theme=dict(ui.theme),
            original_theme_path=ui.theme_path,
        )
        self.state.overlay.show(OverlayKind.THEME_PICKER, picker)
        self.state.full_redraw = True
        self.state.dirty = True

    def which_key_overlay(self) -> WhichKeyOverlay:
        return WhichKeyOverlay(prefix=self.keys.prefix, groups=self.keys.continuations())

    def theme_overlay(self, name: str) -> dict[str, object]:
        return theme_overlay_by_name(self.engine, self.config_root, name)

    def config_changed(self, before: Config, after: Config) -> None:
        old, new = before.ui, after.ui
        listing_fields = ("show_hidden", "sort", "sort_reverse", "max_list_items")
        if any(getattr(old, name) != getattr(new, name) for name in listing_fields):
            self.refresh_listing()
        if before.keys.sequence_timeout_ms != after.keys.sequence_timeout_ms:
            self.keys.timeout_ms = after.keys.sequence_timeout_ms
        if old.preview_lines != new.preview_lines:
            self.previewer.cache.clear()
        self.state.full_redraw = True
        self.state.dirty = True

    # Command surface.

    def execute_command_line(self, line: str) -> None:
        try:
            commands = parse_chain(line)
        except CommandError as exc:
            self.state.add_message(str(exc))
            return
        for command in commands:
            self.execute_command(command)
            if self.state.should_quit:
                break

    def execute_command(self, command: ParsedCommand) -> None:
        handler = getattr(self, f"_cmd_{command.name}")
        logger.debug("command %s %r", command.name, command.argument)
        handler(command.argument)

    def _cmd_add(self, argument: str) -> None:
        if argument:
            self.add_entry(argument)
        else:
            self.open_prompt("add_entry")

    def _cmd_cd(self, argument: str) -> None:
        self.change_dir(Path(argument) if argument else Path.home())

    def _cmd_clipboard_clear(self, argument: str) -> None:
        self.state.clipboard = None
        self.state.add_message("Clipboard cleared")

    def _cmd_copy(self, argument: str) -> None:
        self.capture_clipboard("copy")

    def _cmd_move(self, argument: str) -> None:
        self.capture_clipboard("move")

    def _cmd_paste(self, argument: str) -> None:
        self.paste()

    def _cmd_delete(self, argument: str) -> None:
        self.request_delete()

    def _cmd_delmark(self, argument: str) -> None:
        if argument not in self.state.marks:
            self.state.add_message(f"No mark: {argument}" if argument else "Usage: delmark <key>")
            return
        del self.state.marks[argument]
        self._save_marks()
        self.state.add_message(f"Deleted mark {argument}")

    def _cmd_display(self, argument: str) -> None:
        if not argument:
            self.state.add_message("Usage: display absolute|friendly")
            return
        self.run_action(f"display:{argument}")

    def _cmd_find(self, argument: str) -> None:
        if argument:
            self.find(argument)
        else:
            self.open_prompt("find")

    def _cmd_goto(self, argument: str) -> None:
        if argument:
            self.goto_mark(argument)
        else:
            self.state.pending_mark = "goto"
            self.state.dirty = True

    def _cmd_mark(self, argument: str) -> None:
        if argument:
            self.set_mark(argument)
        else:
            self.state.pending_mark = "mark"
            self.state.dirty = True

    def _cmd_marks(self, argument: str) -> None:
        marks = self.state.marks
        lines = [f"{key}\t{marks[key]}" for key in sorted(marks)] or ["(no marks)"]
        self.apply(self._output_effects("\n".join(lines), "Marks"))

    def _cmd_messages(self, argument: str) -> None:
        self.state.overlay.toggle(OverlayKind.MESSAGES)
        self.state.full_redraw = True
        self.state.dirty = True

    def _cmd_next(self, argument: str) -> None:
        self.find_step(1)

    def _cmd_prev(self, argument: str) -> None:
        self.find_step(-1)

    def _cmd_open(self, argument: str) -> None:
        entry = self.state.current_entry
        if entry is None:
            return
        if entry.is_dir:
            self.change_dir(entry.path)
        else:
            self.edit(entry.path)

    def _cmd_output(self, argument: str) -> None:
        self.state.overlay.toggle(OverlayKind.OUTPUT)
        self.state.full_redraw = True
        self.state.dirty = True

    def _cmd_parent(self, argument: str) -> None:
        cwd = self.state.cwd
        if cwd.parent != cwd:
            self.change_dir(cwd.parent, select_name=cwd.name)

    def _cmd_quit(self, argument: str) -> None:
        self.state.should_quit = True

    def _cmd_rename(self, argument: str) -> None:
        if argument:
            self.rename(argument, self.targets())
        else:
            self.open_prompt("rename_entry")

    def _cmd_run(self, argument: str) -> None:
        if not argument:
            self.state.add_message("Usage: run <command>")
            return
        context = self.command_context()
        if argument.startswith("!"):
            result = self.orchestrator.run_interactive(argument[1:].strip(), context)
        else:
            result = self.orchestrator.run_captured(argument, context)
        self.apply(effects_for_result(result))
        self.refresh_listing()

    def _cmd_select_clear(self, argument: str) -> None:
        self.state.selected_paths.clear()
        self.state.dirty = True

    def _cmd_select_toggle(self, argument: str) -> None:
        entry = self.state.current_entry
        if entry is None:
            return
        self.state.toggle_selected(entry.path)
        self.state.select(self.state.selected_index + 1)

    def _cmd_show_hidden_toggle(self, argument: str) -> None:
        self.apply(ActionEffects(config_changes={"ui": {"show_hidden": not self.config.ui.show_hidden}}))

    def _cmd_sort(self, argument: str) -> None:
        if not argument:
            self.state.add_message("Usage: sort name|size|mtime|created")
            return
        self.run_action(f"sort:{argument}")

    def _cmd_sort_reverse_toggle(self, argument: str) -> None:
        self.run_action("sort:reverse:toggle")

    def _cmd_theme(self, argument: str) -> None:
        if argument:
            self.apply(ActionEffects(theme_name=argument))
        else:
            self.open_theme_picker()

    @staticmethod
    def _output_effects(text: str, title: str) -> ActionEffects:
        effects = ActionEffects()
        effects.set_output(text, title)
        return effects

    # Host operations.

    def targets(self) -> list[Path]:
        """Selected paths, or the highlighted entry when nothing is selected."""
        if self.state.selected_paths:
            return list(self.state.selected_paths)
        entry = self.state.current_entry
        return [entry.path] if entry is not None else []

    def capture_clipboard(self, mode: str) -> None:
        targets = self.targets()
        if not targets:
            self.state.add_message("Nothing selected")
            return
        self.state.clipboard = Clipboard(paths=targets, mode=mode)
        self.state.selected_paths.clear()
        verb = "Cut" if mode == "move" else "Copied"
        self.state.add_message(f"{verb} {_plural(len(targets))} to clipboard")

    def paste(self) -> None:
        clipboard = self.state.clipboard
        if clipboard is None or not clipboard.paths:
            self.state.add_message("Clipboard is empty")
            return
        report = paste_paths(clipboard.paths, self.state.cwd, clipboard.mode)
        if report.moved:
            clipboard.paths = [report.moved.get(path, path) for path in clipboard.paths]
            self.state.selected_paths = [report.moved.get(path, path) for path in self.state.selected_paths]
        self.state.add_message(report.summary())
        self.refresh_listing()

    def request_delete(self) -> None:
        targets = self.targets()
        if not targets:
            self.state.add_message("Nothing to delete")
            return
        if self.config.ui.confirm_delete:
            self.open_confirm("delete")
        else:
            self.delete_now(targets)

    def delete_now(self, paths: list[Path]) -> None:
        report = delete_paths(paths)
        removed = set(paths)
        self.state.selected_paths = [path for path in self.state.selected_paths if path not in removed]
        self.state.add_message(report.summary())
        self.refresh_listing()

    def add_entry(self, name: str) -> None:
        if not name.strip():
            return
        try:
            created = create_entry(self.state.cwd, name)
        except OSError as exc:
            self.state.add_message(f"Add failed: {exc.strerror or exc}")
            return
        self.refresh_listing(keep_name=created.relative_to(self.state.cwd).parts[0])

    def rename(self, text: str, targets: list[Path]) -> None:
        if not text or not targets:
            return
        if len(targets) == 1:
            try:
                renamed = rename_entry(targets[0], text)
            except (OSError, ValueError) as exc:
                self.state.add_message(f"Rename failed: {exc}")
                return
            self.state.selected_paths = [
                renamed if path == targets[0] else path for path in self.state.selected_paths
            ]
            self.refresh_listing(keep_name=renamed.name)
            return
        report = rename_many(targets, text)
        self.state.selected_paths = []
        self.state.add_message(report.summary())
        self.refresh_listing()

    def edit(self, path: Path) -> None:
        """Open ``path`` in ``$EDITOR`` with the terminal handed over."""
        editor = os.environ.get("EDITOR", "").strip()
        if not editor:
            self.state.add_message("Cannot edit: $EDITOR is not set.")
            return
        result = self.orchestrator.run_interactive(f"{editor} {shell_quote(path)}", self.command_context())
        self.apply(effects_for_result(result))
        self.previewer.cache.clear()
        self.refresh_listing()

    def find(self, query: str) -> None:
        self.state.search_query = query
        if query:
            self.find_step(1, include_current=True)

    def find_step(self, step: int, include_current: bool = False) -> None:
        state = self.state
        query = state.search_query.lower()
        if not query:
            state.add_message("No find query")
            return
        count = len(state.entries)
        first = 0 if include_current else 1
        for offset in range(first, count + first):
            index = (state.selected_index + step * offset) % count
            if query in state.entries[index].name.lower():
                state.select(index)
                return
        state.add_message(f"No match: {state.search_query}")

    def set_mark(self, key: str) -> None:
        if not is_mark_key(key):
            self.state.add_message(f"Invalid mark key: {key}")
            return
        self.state.marks[key] = self.state.cwd
        self._save_marks()
        self.state.add_message(f"Mark {key} -> {self.state.cwd}")

    def goto_mark(self, key: str) -> None:
        target = self.state.marks.get(key)
        if target is None:
            self.state.add_message(f"No mark: {key}")
            return
        self.change_dir(target)

    def _save_marks(self) -> None:
        try:
            save_marks(self.marks_path, self.state.marks)
        except OSError as exc:
            self.state.add_message(f"Cannot save marks: {exc.strerror or exc}")

    # Rendering.

    def header_values(self) -> dict[str, str]:
        state = self.state
        entry = state.current_entry
        values = {
            "username": _username(),
            "hostname": socket.gethostname(),
            "cwd": str(state.cwd),
            "current_file": str(entry.path) if entry is not None else str(state.cwd),
            "current_file_name": entry.name if entry is not None else "",
            "current_file_size": "",
            "current_file_permissions": "",
            "current_file_mtime": "",
        }
        if entry is not None:
            if not entry.is_dir:
                values["current_file_size"] = human_size(entry.size)
            values["current_file_mtime"] = format_timestamp(entry.mtime, self.config.ui.date_format)
            try:
                values["current_file_permissions"] = stat.filemode(entry.path.lstat().st_mode)
            except OSError:
                pass
        return values

    def status_text(self) -> tuple[str, str]:
        state = self.state
        parts = [f"{state.selected_index + 1 if state.entries else 0}/{len(state.entries)}"]
        ui = self.config.ui
        parts.append(f"sort:{ui.sort}{' rev' if ui.sort_reverse else ''}")
        if state.selected_paths:
            parts.append(f"sel:{len(state.selected_paths)}")
        if state.clipboard is not None:
            parts.append(f"clip:{state.clipboard.mode} {len(state.clipboard.paths)}")
        if self.keys.pending:
            parts.append(format_sequence(self.keys.prefix))
        if state.pending_mark is not None:
            parts.append(f"{state.pending_mark}: press a key")
        right = state.messages[-1] if state.messages else ""
        return "  ".join(parts), right

    def preview_lines(self, layout: PaneLayout) -> list[str]:
        entry = self.state.current_entry
        if entry is None or layout.preview_width <= 0:
            return []
        result = self.previewer.render(
            entry.path,
            layout.preview_width,
            layout.body_rows,
            preview_x=layout.preview_x,
            preview_y=1,
            max_lines=min(self.config.ui.preview_lines, layout.body_rows),
            show_hidden=self.config.ui.show_hidden,
        )
        return result.text.splitlines()

    def render(self, columns: int, rows: int) -> str:
        state = self.state
        config = self.config
        layout = pane_layout(columns, rows, config.ui.panes)
        parent_selected = 0
        for index, entry in enumerate(state.parent_entries):
            if entry.name == state.cwd.name:
                parent_selected = index
        status_left, status_right = self.status_text()
        context = RenderContext(
            columns=columns,
            rows=rows,
            ui=config.ui,
            header_values=self.header_values(),
            parent_entries=state.parent_entries,
            parent_selected=parent_selected,
            entries=state.entries,
            selected_index=state.selected_index,
            preview_lines=self.preview_lines(layout),
            status_left=status_left,
            status_right=status_right,
            overlay=state.overlay,
            selected_paths=frozenset(state.selected_paths),
            clipboard_paths=frozenset(state.clipboard.paths) if state.clipboard is not None else frozenset(),
            clipboard_mode=state.clipboard.mode if state.clipboard is not None else "copy",
            messages=tuple(state.messages),
            output_title=state.output_title,
            output_text=state.output_text,
            icons_enabled=config.icons.enabled,
            icons_preset=config.icons.preset,
        )
        return "\r\n".join(render_frame(context))

    def loop_callbacks(self) -> RuntimeLoopCallbacks:
        return RuntimeLoopCallbacks(
            handle_key=self.handle_key,
            tick=self.tick,
            render=self.render,
            poll_timeout_ms=self.poll_timeout_ms,
        )


def run_browser(start: Path, loaded: LoadedConfiguration, stdin_fd: int, stdout_fd: int) -> None:
    """Build the app for ``start`` and run the interactive loop until quit."""
    terminal = TerminalController(stdin_fd, stdout_fd)
    app = BrowserApp(start, loaded, terminal=terminal)
    run_main_loop(app.state, terminal, stdin_fd, app.loop_callbacks())
