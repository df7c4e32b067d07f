"""Built-in action vocabulary.

Action strings such as ``sort:size`` or ``nav:top`` lower into the same
``ActionEffects`` a script handler would produce. Host operations that need
the filesystem or the overlay machinery (``cmd:...``, clipboard, marks,
directory changes) are forwarded as command-surface lines.
"""

from __future__ import annotations

from ..config.types import Config, parse_display_mode, parse_info_field, parse_sort_key
from ..errors import ConfigError
from .context import ActionContext
from .effects import ActionEffects, OverlayToggle

_CLIPBOARD_COMMANDS = {
    "copy": "copy",
    "move": "move",
    "cut": "move",
    "paste": "paste",
    "clear": "clipboard_clear",
}


def _ui_change(**fields: object) -> dict[str, object]:
    return {"ui": dict(fields)}


def run_internal_action(action: str, context: ActionContext, config: Config) -> ActionEffects | None:
    """Return the effects for one built-in action, or ``None`` if unknown."""
    raw = action.strip()
    low = raw.lower()
    head, _, rest = raw.partition(":")
    head = head.lower()
    effects = ActionEffects()

    if low in {"quit", "q"}:
        effects.quit = True
        return effects

    if low in {"sort:reverse:toggle", "sort:rev:toggle"}:
        effects.change_config(_ui_change(sort_reverse=not config.ui.sort_reverse))
        return effects

    try:
        if head == "sort" and rest:
            effects.change_config(_ui_change(sort=parse_sort_key(rest)))
            return effects
        if head == "show" and rest:
            if rest.lower() == "friendly":
                return run_internal_action("display:friendly", context, config)
            effects.change_config(_ui_change(show=parse_info_field(rest)))
            effects.full_redraw = True
            return effects
        if head == "display" and rest:
            changes: dict[str, object] = {"display_mode": parse_display_mode(rest)}
            if config.ui.show == "none":
                changes["show"] = "modified"
            effects.change_config({"ui": changes})
            effects.full_redraw = True
            return effects
    except ConfigError:
        return None

    if head == "nav":
        target = rest.lower()
        if target == "top":
            effects.selection = 0
        elif target == "bottom":
            effects.select_last = True
        elif target == "down":
            effects.selection = min(context.selected_index + 1, context.last_index)
        elif target == "up":
            effects.selection = max(context.selected_index - 1, 0)
        elif target == "parent":
            effects.commands.append("parent")
        elif target == "enter":
            effects.commands.append("open")
        else:
            return None
        return effects

    if head == "cmd" and rest.strip():
        effects.commands.append(rest.strip())
        return effects

    if head == "run" and rest.strip():
        effects.commands.append(f"run {rest.strip()}")
        return effects

    if head == "clipboard":
        command = _CLIPBOARD_COMMANDS.get(rest.lower())
        if command is None:
            return None
        effects.commands.append(command)
        return effects

    if head == "marks":
        if rest.lower() in {"add", "set"}:
            effects.commands.append("mark")
        elif rest.lower() in {"goto", "jump"}:
            effects.commands.append("goto")
        else:
            return None
        return effects

    if low == "overlay:close":
        effects.close_overlays = True
        return effects

    if low == "whichkey:toggle":
        effects.which_key = OverlayToggle.TOGGLE
        return effects

    if head == "prompt":
        kind = rest.lower() or "command"
        if kind not in {"command", "find"}:
            return None
        effects.prompt = kind
        return effects

    if low in {"redraw", "force_redraw"}:
        effects.redraw = True
        effects.full_redraw = True
        return effects

    return None
