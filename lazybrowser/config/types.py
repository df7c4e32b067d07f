"""Typed, immutable configuration snapshot built from the nested tree.

``Config.from_tree`` is the single validation point: an invalid tree raises
``ConfigError`` and nothing is committed.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..errors import ConfigError
from .merge import merge

_SORT_ALIASES = {
    "name": "name",
    "n": "name",
    "size": "size",
    "s": "size",
    "mtime": "mtime",
    "modified": "mtime",
    "time": "mtime",
    "date": "mtime",
    "t": "mtime",
    "created": "created",
    "ctime": "created",
    "birth": "created",
    "c": "created",
}
_INFO_ALIASES = {
    "none": "none",
    "off": "none",
    "size": "size",
    "bytes": "size",
    "created": "created",
    "ctime": "created",
    "birth": "created",
    "modified": "modified",
    "mtime": "modified",
}
_DISPLAY_ALIASES = {
    "absolute": "absolute",
    "abs": "absolute",
    "friendly": "friendly",
    "ago": "friendly",
    "human": "friendly",
}


def _lookup_alias(table: Mapping[str, str], value: object, what: str) -> str:
    key = str(value).strip().lower()
    if key not in table:
        raise ConfigError(f"invalid {what}: {value!r}")
    return table[key]


def parse_sort_key(value: object) -> str:
    return _lookup_alias(_SORT_ALIASES, value, "sort key")


def parse_info_field(value: object) -> str:
    return _lookup_alias(_INFO_ALIASES, value, "info field")


def parse_display_mode(value: object) -> str:
    return _lookup_alias(_DISPLAY_ALIASES, value, "display mode")


def _section(tree: Mapping[str, object], key: str) -> Mapping[str, object]:
    value = tree.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{key} must be a table")
    return value


def _int(section: Mapping[str, object], key: str, where: str, minimum: int = 0) -> int:
    value = section.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{where}.{key} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ConfigError(f"{where}.{key} must be a finite number")
    if value != int(value) or value < minimum:
        raise ConfigError(f"{where}.{key} must be an integer >= {minimum}")
    return int(value)


def _bool(section: Mapping[str, object], key: str, where: str, default: bool = False) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{where}.{key} must be a boolean")
    return value


def _str(section: Mapping[str, object], key: str, where: str, default: str = "") -> str:
    value = section.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"{where}.{key} must be a string")
    return value


@dataclass(frozen=True)
class KeysConfig:
    sequence_timeout_ms: int = 0
    which_key: bool = True


@dataclass(frozen=True)
class PanesConfig:
    parent: int = 20
    current: int = 30
    preview: int = 50

    def ratios(self) -> tuple[float, float, float]:
        """Return the three pane shares normalised to sum to one."""
        total = self.parent + self.current + self.preview
        if total <= 0:
            return (0.2, 0.3, 0.5)
        return (self.parent / total, self.current / total, self.preview / total)


@dataclass(frozen=True)
class RowFormat:
    icon: str = "{icon} "
    left: str = "{name}"
    middle: str = ""
    right: str = "{info}"


@dataclass(frozen=True)
class RowWidths:
    icon: int = 0
    left: int = 0
    middle: int = 0
    right: int = 0


@dataclass(frozen=True)
class ModalConfig:
    width_pct: int = 50
    height_pct: int = 10


@dataclass(frozen=True)
class IconsConfig:
    enabled: bool = False
    preset: str | None = None
    font: str | None = None


@dataclass(frozen=True)
class UiConfig:
    panes: PanesConfig = field(default_factory=PanesConfig)
    show_hidden: bool = False
    date_format: str = "%Y-%m-%d %H:%M"
    display_mode: str = "absolute"
    preview_lines: int = 100
    max_list_items: int = 5000
    sort: str = "name"
    sort_reverse: bool = False
    show: str = "none"
    confirm_delete: bool = True
    header_left: str = ""
    header_right: str = ""
    row: RowFormat = field(default_factory=RowFormat)
    row_widths: RowWidths = field(default_factory=RowWidths)
    theme: Mapping[str, str | None] = field(default_factory=dict)
    theme_path: str | None = None
    modals: Mapping[str, ModalConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class Config:
    """Validated view of one configuration tree."""

    config_version: int
    keys: KeysConfig
    ui: UiConfig
    icons: IconsConfig
    tree: Mapping[str, object]

    @classmethod
    def from_tree(cls, tree: Mapping[str, object]) -> Config:
        keys = _section(tree, "keys")
        ui = _section(tree, "ui")
        icons = _section(tree, "icons")
        panes = _section(ui, "panes")
        row = _section(ui, "row")
        row_widths = _section(ui, "row_widths")
        header = _section(ui, "header")
        theme = _section(ui, "theme")
        modals = _section(ui, "modals")

        for name, value in theme.items():
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"ui.theme.{name} must be a color string")

        modal_configs: dict[str, ModalConfig] = {}
        for name, value in modals.items():
            if not isinstance(value, Mapping):
                raise ConfigError(f"ui.modals.{name} must be a table")
            where = f"ui.modals.{name}"
            modal_configs[name] = ModalConfig(
                width_pct=_int(value, "width_pct", where, 1),
                height_pct=_int(value, "height_pct", where, 1),
            )

        theme_path = ui.get("theme_path")
        return cls(
            config_version=_int(tree, "config_version", "config"),
            keys=KeysConfig(
                sequence_timeout_ms=_int(keys, "sequence_timeout_ms", "keys"),
                which_key=_bool(keys, "which_key", "keys", True),
            ),
            ui=UiConfig(
                panes=PanesConfig(
                    parent=_int(panes, "parent", "ui.panes"),
                    current=_int(panes, "current", "ui.panes"),
                    preview=_int(panes, "preview", "ui.panes"),
                ),
                show_hidden=_bool(ui, "show_hidden", "ui"),
                date_format=_str(ui, "date_format", "ui", "%Y-%m-%d %H:%M"),
                display_mode=parse_display_mode(ui.get("display_mode", "absolute")),
                preview_lines=_int(ui, "preview_lines", "ui", 1),
                max_list_items=_int(ui, "max_list_items", "ui", 1),
                sort=parse_sort_key(ui.get("sort", "name")),
                sort_reverse=_bool(ui, "sort_reverse", "ui"),
                show=parse_info_field(ui.get("show", "none")),
                confirm_delete=_bool(ui, "confirm_delete", "ui", True),
                header_left=_str(header, "left", "ui.header"),
                header_right=_str(header, "right", "ui.header"),
                row=RowFormat(
                    icon=_str(row, "icon", "ui.row"),
                    left=_str(row, "left", "ui.row"),
                    middle=_str(row, "middle", "ui.row"),
                    right=_str(row, "right", "ui.row"),
                ),
                row_widths=RowWidths(
                    icon=_int(row_widths, "icon", "ui.row_widths"),
                    left=_int(row_widths, "left", "ui.row_widths"),
                    middle=_int(row_widths, "middle", "ui.row_widths"),
                    right=_int(row_widths, "right", "ui.row_widths"),
                ),
                theme=dict(theme),
                theme_path=theme_path if isinstance(theme_path, str) else None,
                modals=modal_configs,
            ),
            icons=IconsConfig(
                enabled=_bool(icons, "enabled", "icons"),
                preset=icons.get("preset") if isinstance(icons.get("preset"), str) else None,
                font=icons.get("font") if isinstance(icons.get("font"), str) else None,
            ),
            tree=tree,
        )


def normalize_tree(tree: Mapping[str, object]) -> dict[str, object]:
    """Rewrite enum aliases (``modified``, ``human``...) to canonical names."""
    ui = tree.get("ui")
    if not isinstance(ui, Mapping):
        return merge(tree, {})
    canonical: dict[str, object] = {}
    if "sort" in ui:
        canonical["sort"] = parse_sort_key(ui["sort"])
    if "show" in ui:
        canonical["show"] = parse_info_field(ui["show"])
    if "display_mode" in ui:
        canonical["display_mode"] = parse_display_mode(ui["display_mode"])
    return merge(tree, {"ui": canonical})


class ConfigStore:
    """Holds the last successfully merged tree and its typed snapshot."""

    def __init__(self, tree: Mapping[str, object]) -> None:
        normalized = normalize_tree(tree)
        self._config = Config.from_tree(normalized)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def tree(self) -> Mapping[str, object]:
        return self._config.tree

    def snapshot_tree(self) -> dict[str, object]:
        """Return a private deep copy handed out as a mutable working copy."""
        return merge(self._config.tree, {})

    def apply(self, overlay: Mapping[str, object]) -> Config:
        """Merge ``overlay`` and commit only if the result validates."""
        candidate = normalize_tree(merge(self._config.tree, overlay))
        self._config = Config.from_tree(candidate)
        return self._config
