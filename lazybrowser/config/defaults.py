"""Embedded default configuration tree and key bindings.

Loaded before any user script; every field a user may set has a value here.
"""

from __future__ import annotations

CONFIG_VERSION = 1

DEFAULT_HEADER_LEFT = "{username}@{hostname}:{current_file}"
DEFAULT_HEADER_RIGHT = "{current_file_size}  {current_file_permissions}  {current_file_mtime}"

DEFAULT_THEME: dict[str, str | None] = {
    "pane_bg": None,
    "border_fg": "gray",
    "item_fg": "white",
    "item_bg": None,
    "selected_item_fg": "black",
    "selected_item_bg": "cyan",
    "title_fg": "gray",
    "title_bg": None,
    "info_fg": "gray",
    "dir_fg": "cyan",
    "dir_bg": None,
    "file_fg": "white",
    "file_bg": None,
    "hidden_fg": "darkgray",
    "hidden_bg": None,
    "exec_fg": "green",
    "exec_bg": None,
    "selection_bar_fg": "yellow",
    "selection_bar_copy_fg": "blue",
    "selection_bar_move_fg": "red",
}

DEFAULT_CONFIG: dict[str, object] = {
    "config_version": CONFIG_VERSION,
    "icons": {"enabled": False, "preset": None, "font": None},
    "keys": {"sequence_timeout_ms": 0, "which_key": True},
    "ui": {
        "panes": {"parent": 20, "current": 30, "preview": 50},
        "show_hidden": False,
        "date_format": "%Y-%m-%d %H:%M",
        "display_mode": "absolute",
        "preview_lines": 100,
        "max_list_items": 5000,
        "sort": "name",
        "sort_reverse": False,
        "show": "none",
        "confirm_delete": True,
        "header": {"left": DEFAULT_HEADER_LEFT, "right": DEFAULT_HEADER_RIGHT},
        "row": {"icon": "{icon} ", "left": "{name}", "middle": "", "right": "{info}"},
        "row_widths": {"icon": 0, "left": 0, "middle": 0, "right": 0},
        "theme": dict(DEFAULT_THEME),
        "theme_path": None,
        "modals": {
            "prompt": {"width_pct": 50, "height_pct": 10},
            "confirm": {"width_pct": 50, "height_pct": 10},
            "theme": {"width_pct": 60, "height_pct": 60},
        },
    },
}

# (sequence, internal action, description)
DEFAULT_KEYMAPS: tuple[tuple[str, str, str], ...] = (
    ("q", "quit", "Quit"),
    ("sn", "sort:name", "Sort by name"),
    ("ss", "sort:size", "Sort by size"),
    ("sm", "sort:mtime", "Sort by modified time"),
    ("sc", "sort:created", "Sort by created time"),
    ("sr", "sort:reverse:toggle", "Toggle reverse sort"),
    ("zn", "show:none", "Info: none"),
    ("zs", "show:size", "Info: size"),
    ("zc", "show:created", "Info: created date"),
    ("zd", "show:modified", "Info: modified date"),
    ("zf", "display:friendly", "Display: friendly"),
    ("za", "display:absolute", "Display: absolute"),
    ("zh", "cmd:show_hidden_toggle", "Toggle hidden files"),
    ("zm", "cmd:messages", "Toggle messages"),
    ("zo", "cmd:output", "Toggle output"),
    ("gg", "nav:top", "Go to top"),
    ("G", "nav:bottom", "Go to bottom"),
    ("j", "nav:down", "Move down"),
    ("<Down>", "nav:down", "Move down"),
    ("k", "nav:up", "Move up"),
    ("<Up>", "nav:up", "Move up"),
    ("h", "nav:parent", "Parent directory"),
    ("<Left>", "nav:parent", "Parent directory"),
    ("<BS>", "nav:parent", "Parent directory"),
    ("l", "nav:enter", "Enter directory"),
    ("<Right>", "nav:enter", "Enter directory"),
    ("<Enter>", "nav:enter", "Enter directory"),
    ("/", "cmd:find", "Find in directory"),
    ("n", "cmd:next", "Next match"),
    ("b", "cmd:prev", "Previous match"),
    ("ut", "cmd:theme", "Theme picker"),
    ("uc", "cmd:select_clear", "Clear selection"),
    ("a", "cmd:add", "Add file or folder"),
    ("r", "cmd:rename", "Rename"),
    ("D", "cmd:delete", "Delete selected"),
    (" ", "cmd:select_toggle", "Toggle selection"),
    ("c", "clipboard:copy", "Copy selection"),
    ("x", "clipboard:move", "Cut selection"),
    ("v", "clipboard:paste", "Paste"),
    ("m", "marks:add", "Set mark"),
    ("'", "marks:goto", "Go to mark"),
    (":", "prompt:command", "Command prompt"),
    ("?", "whichkey:toggle", "Show key bindings"),
    ("<Esc>", "overlay:close", "Close overlays"),
)
