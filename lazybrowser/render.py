"""Frame composition for the three-pane layout.

Produces one full frame string: header row, parent/current/preview panes
split by the configured ratios, an optional centered overlay box, and a
status line. Nothing here touches the terminal directly.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .ansi import RESET, crop_ansi_line, display_width, fit_ansi_line, overlay_ansi_line
from .config.types import PanesConfig, UiConfig
from .keymap.tokens import format_sequence
from .listing import DirEntry, entry_info
from .overlays import (
    ConfirmOverlay,
    OverlayKind,
    OverlayState,
    PromptOverlay,
    ThemePickerOverlay,
    WhichKeyOverlay,
)

SEPARATOR = "│"
SELECTION_BAR = "▌"
_TEMPLATE_RE = re.compile(r"\{([A-Za-z_]+)\}")

_NAMED_COLORS = {
    "black": 0,
    "red": 1,
    "green": 2,
    "yellow": 3,
    "blue": 4,
    "magenta": 5,
    "cyan": 6,
    "white": 7,
    "darkgray": 240,
    "darkgrey": 240,
    "gray": 245,
    "grey": 245,
    "lightred": 9,
    "lightgreen": 10,
    "lightyellow": 11,
    "lightblue": 12,
    "lightmagenta": 13,
    "lightcyan": 14,
}

_ICON_PRESETS = {
    "nerd": ("", ""),
    "unicode": ("\U0001f4c1", "\U0001f4c4"),
    "ascii": ("+", "-"),
}

_MODAL_DEFAULTS = {
    OverlayKind.PROMPT: ("prompt", 50, 10),
    OverlayKind.CONFIRM: ("confirm", 50, 10),
    OverlayKind.THEME_PICKER: ("theme", 60, 60),
    OverlayKind.MESSAGES: ("messages", 80, 60),
    OverlayKind.OUTPUT: ("output", 80, 70),
    OverlayKind.WHICH_KEY: ("which_key", 60, 40),
}


def color_code(value: str | None, background: bool = False) -> str:
    """SGR parameters for a color name, ``#rrggbb`` or 256-color index."""
    if not value:
        return ""
    text = value.strip().lower()
    base = "48" if background else "38"
    if text.startswith("#") and len(text) == 7:
        try:
            red, green, blue = (int(text[i : i + 2], 16) for i in (1, 3, 5))
        except ValueError:
            return ""
        return f"{base};2;{red};{green};{blue}"
    if text.isdigit() and int(text) < 256:
        return f"{base};5;{int(text)}"
    index = _NAMED_COLORS.get(text)
    if index is None:
        return ""
    return f"{base};5;{index}"


def sgr(fg: str | None = None, bg: str | None = None, bold: bool = False) -> str:
    parts = [code for code in (color_code(fg), color_code(bg, background=True)) if code]
    if bold:
        parts.insert(0, "1")
    if not parts:
        return ""
    return "\033[" + ";".join(parts) + "m"


def expand_template(template: str, values: Mapping[str, str]) -> str:
    return _TEMPLATE_RE.sub(lambda match: values.get(match.group(1), match.group(0)), template)


@dataclass(frozen=True)
class PaneLayout:
    """Column geometry of the three panes; a zero-ratio pane gets no width."""

    columns: int
    rows: int
    parent_width: int
    current_width: int
    preview_width: int

    @property
    def body_rows(self) -> int:
        return max(1, self.rows - 2)

    @property
    def current_x(self) -> int:
        return self.parent_width + (1 if self.parent_width else 0)

    @property
    def preview_x(self) -> int:
        return self.current_x + self.current_width + (1 if self.preview_width else 0)


def pane_layout(columns: int, rows: int, panes: PanesConfig) -> PaneLayout:
    parent_ratio, current_ratio, preview_ratio = panes.ratios()
    separators = (1 if parent_ratio > 0 else 0) + (1 if preview_ratio > 0 else 0)
    available = max(1, columns - separators)
    parent = int(available * parent_ratio)
    preview = int(available * preview_ratio)
    current = max(1, available - parent - preview)
    return PaneLayout(
        columns=columns,
        rows=rows,
        parent_width=parent,
        current_width=current,
        preview_width=max(0, available - parent - current),
    )


@dataclass(frozen=True)
class RenderContext:
    columns: int
    rows: int
    ui: UiConfig
    header_values: Mapping[str, str]
    parent_entries: list[DirEntry]
    parent_selected: int
    entries: list[DirEntry]
    selected_index: int
    preview_lines: list[str]
    status_left: str
    status_right: str = ""
    overlay: OverlayState = field(default_factory=OverlayState)
    selected_paths: frozenset[Path] = frozenset()
    clipboard_paths: frozenset[Path] = frozenset()
    clipboard_mode: str = "copy"
    messages: tuple[str, ...] = ()
    output_title: str = "Output"
    output_text: str = ""
    icons_enabled: bool = False
    icons_preset: str | None = None


def _window(count: int, selected: int, rows: int) -> int:
    """First visible row index keeping ``selected`` on screen, roughly centered."""
    if count <= rows:
        return 0
    start = max(0, selected - rows // 2)
    return min(start, count - rows)


def _entry_colors(entry: DirEntry, theme: Mapping[str, str | None]) -> tuple[str | None, str | None]:
    if entry.is_dir:
        return theme.get("dir_fg"), theme.get("dir_bg")
    if entry.is_hidden:
        return theme.get("hidden_fg"), theme.get("hidden_bg")
    if entry.is_exec:
        return theme.get("exec_fg"), theme.get("exec_bg")
    return theme.get("file_fg"), theme.get("file_bg")


def _icon(entry: DirEntry, ctx: RenderContext) -> str:
    if not ctx.icons_enabled:
        return ""
    folder, file = _ICON_PRESETS.get(ctx.icons_preset or "unicode", _ICON_PRESETS["unicode"])
    return folder if entry.is_dir else file


def _fixed(text: str, width: int) -> str:
    return fit_ansi_line(text, width) if width > 0 else text


def format_row(entry: DirEntry, ctx: RenderContext, width: int) -> str:
    """Plain text for one listing row built from ``ui.row`` templates."""
    ui = ctx.ui
    values = {
        "icon": _icon(entry, ctx),
        "name": entry.name + ("/" if entry.is_dir else ""),
        "info": entry_info(entry, ui.show, ui.display_mode, ui.date_format),
    }
    icon = expand_template(ui.row.icon, values) if values["icon"] else ""
    left = _fixed(icon, ui.row_widths.icon) + _fixed(expand_template(ui.row.left, values), ui.row_widths.left)
    middle = _fixed(expand_template(ui.row.middle, values), ui.row_widths.middle)
    right = _fixed(expand_template(ui.row.right, values), ui.row_widths.right)
    right_width = display_width(right)
    left_text = left + (" " + middle if middle else "")
    if right_width == 0 or right_width + 1 >= width:
        return fit_ansi_line(left_text, width)
    return fit_ansi_line(left_text, width - right_width - 1) + " " + right


def _listing_column(
    entries: list[DirEntry],
    selected: int,
    width: int,
    rows: int,
    ctx: RenderContext,
    *,
    active: bool,
) -> list[str]:
    theme = ctx.ui.theme
    if width <= 0:
        return [""] * rows
    if not entries:
        empty = sgr(theme.get("info_fg")) + "<empty>" if active else ""
        return [fit_ansi_line(empty, width)] + [" " * width] * (rows - 1)

    start = _window(len(entries), selected, rows)
    lines: list[str] = []
    for index in range(start, min(len(entries), start + rows)):
        entry = entries[index]
        bar = " "
        if entry.path in ctx.clipboard_paths:
            key = "selection_bar_move_fg" if ctx.clipboard_mode == "move" else "selection_bar_copy_fg"
            bar = sgr(theme.get(key)) + SELECTION_BAR + RESET
        elif entry.path in ctx.selected_paths:
            bar = sgr(theme.get("selection_bar_fg")) + SELECTION_BAR + RESET
        text = format_row(entry, ctx, max(1, width - 1))
        if index == selected:
            style = sgr(theme.get("selected_item_fg"), theme.get("selected_item_bg"))
            if not style:
                style = "\033[7m"
        else:
            style = sgr(*_entry_colors(entry, theme))
        lines.append(f"{bar}{style}{text}{RESET}")
    lines.extend([" " * width] * (rows - len(lines)))
    return lines


def _preview_column(lines: list[str], width: int, rows: int) -> list[str]:
    if width <= 0:
        return [""] * rows
    out = [fit_ansi_line(line, width) for line in lines[:rows]]
    out.extend([" " * width] * (rows - len(out)))
    return out


def build_status_line(left_text: str, width: int, right_text: str = "") -> str:
    usable = max(1, width - 1)
    if usable <= len(right_text):
        return right_text[-usable:]
    left_limit = max(0, usable - len(right_text) - 1)
    left = left_text[:left_limit]
    gap = " " * (usable - len(left) - len(right_text))
    return f"{left}{gap}{right_text}"


def _which_key_lines(payload: WhichKeyOverlay) -> list[str]:
    lines: list[str] = []
    depth = len(payload.prefix) + 1
    for token, bindings in payload.groups:
        label = format_sequence((token,))
        exact = [binding for binding in bindings if len(binding.tokens) == depth]
        longer = len(bindings) - len(exact)
        if exact and not longer:
            lines.append(f"{label:<8} {exact[0].description}")
        elif exact:
            lines.append(f"{label:<8} {exact[0].description} (+{longer})")
        else:
            lines.append(f"{label:<8} +{longer} more")
    return lines or ["(no continuations)"]


def overlay_content(ctx: RenderContext) -> tuple[str, list[str]]:
    """Title and body lines for the active overlay."""
    overlay = ctx.overlay
    payload = overlay.payload
    if overlay.kind is OverlayKind.WHICH_KEY and isinstance(payload, WhichKeyOverlay):
        title = format_sequence(payload.prefix) if payload.prefix else "Keys"
        return title, _which_key_lines(payload)
    if overlay.kind is OverlayKind.MESSAGES:
        return "Messages", list(ctx.messages) or ["(no messages)"]
    if overlay.kind is OverlayKind.OUTPUT:
        return ctx.output_title, ctx.output_text.splitlines() or ["(no output)"]
    if overlay.kind is OverlayKind.PROMPT and isinstance(payload, PromptOverlay):
        return payload.title, [payload.text + "_"]
    if overlay.kind is OverlayKind.CONFIRM and isinstance(payload, ConfirmOverlay):
        names = [path.name for path in payload.paths]
        return "Confirm", [payload.question, *names[:20], "", "[y] yes   [n] no"]
    if overlay.kind is OverlayKind.THEME_PICKER and isinstance(payload, ThemePickerOverlay):
        lines = [("> " if index == payload.selected else "  ") + name for index, (name, _) in enumerate(payload.themes)]
        return "Theme", lines
    return "", []


def _overlay_box(ctx: RenderContext) -> tuple[int, int, list[str]] | None:
    kind = ctx.overlay.kind
    if kind is OverlayKind.NONE:
        return None
    title, body = overlay_content(ctx)
    modal_name, width_pct, height_pct = _MODAL_DEFAULTS.get(kind, ("", 60, 40))
    modal = ctx.ui.modals.get(modal_name)
    if modal is not None:
        width_pct, height_pct = modal.width_pct, modal.height_pct
    width = max(20, min(ctx.columns - 2, ctx.columns * width_pct // 100))
    height = max(3, min(ctx.rows - 2, max(ctx.rows * height_pct // 100, len(body) + 2)))
    inner = max(1, width - 2)
    visible = body[-(height - 2):] if kind in {OverlayKind.MESSAGES, OverlayKind.OUTPUT} else body[: height - 2]
    border = sgr(ctx.ui.theme.get("border_fg"))
    title_text = crop_ansi_line(f" {title} ", 0, inner)
    top = f"{border}┌{title_text}{'─' * (inner - display_width(title_text))}┐{RESET}"
    rows = [top]
    for line in visible:
        rows.append(f"{border}│{RESET}{fit_ansi_line(line, inner)}{border}│{RESET}")
    while len(rows) < height - 1:
        rows.append(f"{border}│{RESET}{' ' * inner}{border}│{RESET}")
    rows.append(f"{border}└{'─' * inner}┘{RESET}")
    x = max(0, (ctx.columns - width) // 2)
    y = max(1, (ctx.rows - height) // 2)
    return x, y, rows


def render_frame(ctx: RenderContext) -> list[str]:
    """Return one string per terminal row."""
    layout = pane_layout(ctx.columns, ctx.rows, ctx.ui.panes)
    theme = ctx.ui.theme
    body_rows = layout.body_rows

    left = expand_template(ctx.ui.header_left, ctx.header_values)
    right = expand_template(ctx.ui.header_right, ctx.header_values)
    header_style = sgr(theme.get("title_fg"), theme.get("title_bg"), bold=True)
    header = header_style + build_status_line(left, ctx.columns + 1, right) + RESET

    parent = _listing_column(ctx.parent_entries, ctx.parent_selected, layout.parent_width, body_rows, ctx, active=False)
    current = _listing_column(ctx.entries, ctx.selected_index, layout.current_width, body_rows, ctx, active=True)
    preview = _preview_column(ctx.preview_lines, layout.preview_width, body_rows)
    separator = sgr(theme.get("border_fg")) + SEPARATOR + RESET

    lines = [header]
    for row in range(body_rows):
        parts: list[str] = []
        if layout.parent_width:
            parts.extend([parent[row], separator])
        parts.append(current[row])
        if layout.preview_width:
            parts.extend([separator, preview[row]])
        lines.append("".join(parts))

    status_style = sgr(theme.get("info_fg"))
    lines.append(status_style + build_status_line(ctx.status_left, ctx.columns, ctx.status_right) + RESET)

    box = _overlay_box(ctx)
    if box is not None:
        x, y, box_rows = box
        for offset, box_line in enumerate(box_rows):
            row = y + offset
            if row >= len(lines) - 1:
                break
            lines[row] = overlay_ansi_line(lines[row], x, box_line, ctx.columns)
    return lines
