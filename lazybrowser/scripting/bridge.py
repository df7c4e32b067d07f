"""Invocation boundary between the host and script callbacks.

Each action call receives a helper table and the configuration snapshot
(with a ``context`` sub-table). Helper calls, context and config mutations,
and the returned table are all lowered into one ``ActionEffects``; explicit
effect fields win over table mutations. Script errors never escape: they
are logged with the handler identity and elapsed time, reported as a
message, and otherwise treated as a no-op. Processes the handler already ran
still contribute their output and redraw.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from ..actions.context import ActionContext
from ..actions.effects import ActionEffects, OverlayToggle
from ..config.merge import diff, merge
from ..process import CommandContext, ProcessOrchestrator, effects_for_result
from .engine import ScriptEngine, common_helpers
from .marshal import from_lua, is_lua_function, is_lua_table, lua_list, to_lua

logger = logging.getLogger(__name__)

# Result-table keys that stand for ``ui.<key>`` configuration fields.
UI_SHORTHANDS = ("sort", "sort_reverse", "show", "display_mode", "show_hidden")
CONFIG_SECTIONS = ("ui", "keys", "icons")


@dataclass(frozen=True)
class PreviewContext:
    path: Path
    width: int
    height: int
    preview_x: int = 0
    preview_y: int = 0
    is_binary: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            "path": str(self.path),
            "directory": str(self.path.parent),
            "name": self.path.name,
            "extension": self.path.suffix[1:] if self.path.suffix else "",
            "is_binary": self.is_binary,
            "width": self.width,
            "height": self.height,
            "preview_x": self.preview_x,
            "preview_y": self.preview_y,
        }


def _drop_functions(value: object) -> object:
    if is_lua_function(value):
        return None
    if isinstance(value, dict):
        return {key: _drop_functions(item) for key, item in value.items() if not is_lua_function(item)}
    if isinstance(value, list):
        return [_drop_functions(item) for item in value if not is_lua_function(item)]
    return value


def _as_index(value: object) -> int | None:
    """Return a script number as a list index; non-numbers, NaN and infinities give ``None``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def lower_result(result: object, effects: ActionEffects) -> None:
    """Fold a handler's returned table into ``effects`` (overriding earlier values)."""
    if not isinstance(result, Mapping):
        return
    if result.get("quit") is True:
        effects.quit = True
    if result.get("redraw") is True:
        effects.redraw = True
        effects.full_redraw = True
    for key, attr in (("messages", "messages"), ("output", "output_overlay"), ("which_key", "which_key")):
        if key in result:
            toggle = OverlayToggle.parse(result[key])
            if toggle is not OverlayToggle.NONE:
                setattr(effects, attr, toggle)
    if "output_text" in result:
        title = result.get("output_title")
        effects.set_output(str(result["output_text"]), str(title) if title else "Output")
    if isinstance(result.get("message"), str):
        effects.add_message(result["message"])
    if isinstance(result.get("error"), str):
        effects.add_message(f"Error: {result['error']}")
    if result.get("theme_picker"):
        effects.theme_picker = True
    if isinstance(result.get("prompt"), str):
        effects.prompt = result["prompt"]
    if isinstance(result.get("confirm"), str):
        effects.confirm = result["confirm"]
    if "selection" in result:
        selection = _as_index(result["selection"])
        if selection is None:
            effects.add_message(f"Ignoring invalid selection: {result['selection']!r}")
        else:
            effects.selection = selection
            effects.select_last = False

    overlay: dict[str, object] = {}
    for key in UI_SHORTHANDS:
        if key in result:
            overlay = merge(overlay, {"ui": {key: result[key]}})
    for key in CONFIG_SECTIONS:
        if isinstance(result.get(key), Mapping):
            overlay = merge(overlay, {key: result[key]})
    if overlay:
        effects.change_config(overlay)


class ScriptBridge:
    """Calls registered script handlers and the previewer on the host's behalf."""

    def __init__(
        self,
        engine: ScriptEngine,
        orchestrator: ProcessOrchestrator,
        report: Callable[[str], None] | None = None,
    ) -> None:
        self.engine = engine
        self.orchestrator = orchestrator
        self.report = report

    @property
    def has_previewer(self) -> bool:
        return self.engine.previewer is not None

    def _action_helpers(
        self,
        effects: ActionEffects,
        process_effects: ActionEffects,
        context: ActionContext,
        command_context: CommandContext,
    ) -> dict[str, Callable[..., object]]:
        lua = self.engine.lua

        def select_item(index):
            selected = _as_index(index)
            if selected is None:
                effects.add_message(f"Ignoring invalid selection: {index!r}")
                return False
            effects.selection = max(0, selected)
            effects.select_last = False
            return True

        def select_last_item():
            effects.select_last = True
            effects.selection = None
            return True

        def quit():
            effects.quit = True
            return True

        def display_output(text, title=None):
            effects.set_output("" if text is None else str(text), str(title) if title else "Output")
            return True

        def show_message(text):
            effects.add_message(str(text))
            return True

        def show_error(text):
            effects.add_message(f"Error: {text}")
            return True

        def clear_messages():
            effects.clear_messages = True
            return True

        def show_messages():
            effects.messages = OverlayToggle.TOGGLE
            return True

        def force_redraw():
            effects.redraw = True
            effects.full_redraw = True
            return True

        def os_run(command):
            result = self.orchestrator.run_captured(str(command), command_context)
            outcome = effects_for_result(result)
            effects.extend(outcome)
            process_effects.extend(outcome)
            return to_lua(
                lua,
                {
                    "output_text": result.output,
                    "output_title": f"$ {result.command}",
                    "exit_code": result.exit_code,
                },
            )

        def os_run_interactive(command):
            result = self.orchestrator.run_interactive(str(command), command_context)
            outcome = effects_for_result(result)
            effects.extend(outcome)
            process_effects.extend(outcome)
            return result.exit_code

        def open_theme_picker():
            effects.theme_picker = True
            return True

        def set_theme_by_name(name):
            effects.theme_name = str(name)
            return True

        def add_entry():
            effects.prompt = "add_entry"
            return True

        def rename_item():
            effects.prompt = "rename_entry"
            return True

        def delete_selected():
            effects.commands.append("delete")
            return True

        def get_selected_paths():
            return to_lua(lua, list(context.selected_paths))

        def select_paths(paths):
            effects.select_paths = [str(path) for path in lua_list(paths) if path]
            return True

        def command(line):
            effects.commands.append(str(line))
            return True

        helpers: dict[str, Callable[..., object]] = {
            "select_item": select_item,
            "select_last_item": select_last_item,
            "quit": quit,
            "display_output": display_output,
            "show_message": show_message,
            "show_error": show_error,
            "clear_messages": clear_messages,
            "show_messages": show_messages,
            "force_redraw": force_redraw,
            "os_run": os_run,
            "os_run_interactive": os_run_interactive,
            "open_theme_picker": open_theme_picker,
            "set_theme_by_name": set_theme_by_name,
            "add_entry": add_entry,
            "rename_item": rename_item,
            "delete_selected": delete_selected,
            "get_selected_paths": get_selected_paths,
            "select_paths": select_paths,
            "copy_selection": lambda: command("copy"),
            "move_selection": lambda: command("move"),
            "paste_clipboard": lambda: command("paste"),
            "clear_clipboard": lambda: command("clipboard_clear"),
            "command": command,
        }
        helpers.update(common_helpers())
        return helpers

    def call_action(
        self,
        index: int,
        tree: Mapping[str, object],
        context: ActionContext,
        command_context: CommandContext,
    ) -> ActionEffects:
        callback = self.engine.callbacks[index]
        effects = ActionEffects()
        # Effects of processes that already ran; kept even if the handler fails later.
        process_effects = ActionEffects()
        snapshot = merge(tree, {})
        context_values = context.as_dict()
        helpers = self.engine.make_table(self._action_helpers(effects, process_effects, context, command_context))
        config_table = to_lua(self.engine.lua, merge(snapshot, {"context": context_values}))

        started = time.monotonic()
        try:
            result = callback.function(helpers, config_table)
            after = _drop_functions(from_lua(config_table))
            returned = from_lua(result) if is_lua_table(result) else None
        except Exception as exc:
            elapsed_ms = (time.monotonic() - started) * 1000.0
            logger.warning("action %s failed after %.1fms: %s", callback.label, elapsed_ms, exc)
            failed = ActionEffects().extend(process_effects)
            failed.add_message(f"Error in {callback.label}: {exc}")
            return failed
        elapsed_ms = (time.monotonic() - started) * 1000.0
        logger.info("action %s finished in %.1fms", callback.label, elapsed_ms)

        if isinstance(after, dict):
            mutated_context = after.pop("context", None)
            mutations = diff(snapshot, after)
            if mutations:
                effects.config_changes = merge(mutations, effects.config_changes)
            if isinstance(mutated_context, Mapping) and effects.selection is None and not effects.select_last:
                raw = mutated_context.get("selected_index")
                selected = _as_index(raw)
                if selected is None:
                    if raw is not None:
                        effects.add_message(f"Ignoring invalid selection: {raw!r}")
                elif selected != context.selected_index:
                    effects.selection = max(0, selected)
        if returned is not None:
            lower_result(returned, effects)
        return effects

    def call_previewer(self, context: PreviewContext) -> str | None:
        """Ask the script previewer for a command; ``None`` means use the fallback."""
        previewer = self.engine.previewer
        if previewer is None:
            return None
        started = time.monotonic()
        try:
            result = previewer(to_lua(self.engine.lua, context.as_dict()))
        except Exception as exc:
            elapsed_ms = (time.monotonic() - started) * 1000.0
            logger.warning("previewer failed for %s after %.1fms: %s", context.path, elapsed_ms, exc)
            if self.report is not None:
                self.report(f"Previewer error: {exc}")
            return None
        elapsed_ms = (time.monotonic() - started) * 1000.0
        if isinstance(result, tuple):
            result = result[0] if result else None
        command = result if isinstance(result, str) and result.strip() else None
        logger.info("previewer %s -> %r in %.1fms", context.path, command, elapsed_ms)
        return command
