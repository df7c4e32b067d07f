"""Sandboxed Lua runtime hosting user configuration scripts.

The runtime starts without ``io``, ``os``, ``debug``, ``package``, the file
loaders, or any bridge back into Python attributes. Everything a script may
do goes through the ``lb`` table, and ``require`` only reads modules below
``<config root>/lua``.
"""

from __future__ import annotations

import logging
import os
import shlex
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

import lupa

from ..config.merge import merge
from ..config.types import Config, normalize_tree
from ..errors import ConfigError, ModuleResolutionError, ScriptError
from ..keymap.bindings import Handler, InternalHandler, ScriptHandler
from .marshal import from_lua, is_lua_function, is_lua_table, lua_list

logger = logging.getLogger(__name__)
script_logger = logging.getLogger("lazybrowser.script")

API_NAME = "lb"
MODULE_DIRNAME = "lua"
SANDBOX_REMOVED_GLOBALS = (
    "io",
    "os",
    "debug",
    "package",
    "dofile",
    "loadfile",
    "load",
    "loadstring",
    "require",
    "python",
)

_GUARD_SOURCE = """
function(tbl, name)
  return setmetatable(tbl, {
    __index = function(_, key)
      return function()
        error("unknown " .. name .. " function: " .. tostring(key), 2)
      end
    end,
  })
end
"""


def _deny_attribute_access(obj, attr_name, is_setting):
    raise AttributeError(f"access to Python attribute {attr_name!r} is not allowed")


def shell_quote(value: object) -> str:
    text = "" if value is None else str(value)
    if sys.platform.startswith("win"):
        return '"' + text.replace('"', '\\"') + '"'
    return shlex.quote(text)


def os_name() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform.startswith("win"):
        return "windows"
    return sys.platform


def common_helpers() -> dict[str, Callable[..., object]]:
    """Helpers available both at config time and inside handlers."""

    def getenv(name, default=None):
        return os.environ.get(str(name), default)

    def trace(text):
        script_logger.info("%s", text)

    return {
        "quote": shell_quote,
        "get_os_name": os_name,
        "getenv": getenv,
        "trace": trace,
    }


@dataclass(frozen=True)
class ScriptCallback:
    """A Lua function registered with ``map_action``."""

    function: object
    description: str
    keys: tuple[str, ...]

    @property
    def label(self) -> str:
        keys = ",".join(self.keys)
        return f"{keys} ({self.description})" if self.description else keys


@dataclass(frozen=True)
class PendingBinding:
    sequence: str
    description: str
    handler: Handler


def _reject_functions(value: object, where: str) -> None:
    if is_lua_function(value):
        raise ConfigError(f"{where}: functions are only allowed in actions")
    if isinstance(value, Mapping):
        for key, item in value.items():
            _reject_functions(item, f"{where}.{key}")
    elif isinstance(value, list):
        for index, item in enumerate(value, start=1):
            _reject_functions(item, f"{where}[{index}]")


class ScriptEngine:
    """One Lua state plus everything registered by the scripts it ran."""

    def __init__(self, config_root: Path | None, base_tree: Mapping[str, object]) -> None:
        self.config_root = config_root
        self.module_root = config_root / MODULE_DIRNAME if config_root is not None else None
        self.tree: dict[str, object] = merge(base_tree, {})
        self.callbacks: list[ScriptCallback] = []
        self.bindings: list[PendingBinding] = []
        self.previewer: object | None = None
        self._modules: dict[str, object] = {}
        self._loading: set[str] = set()
        self.sealed = False

        self._lua = lupa.LuaRuntime(
            unpack_returned_tuples=True,
            register_eval=False,
            register_builtins=False,
            attribute_filter=_deny_attribute_access,
        )
        self._guard = self._lua.eval(_GUARD_SOURCE)
        lua_globals = self._lua.globals()
        self._load = lua_globals["load"]
        for name in SANDBOX_REMOVED_GLOBALS:
            lua_globals[name] = None
        lua_globals["require"] = self._require
        lua_globals[API_NAME] = self.make_table(self._config_api())

    @property
    def lua(self) -> lupa.LuaRuntime:
        return self._lua

    def make_table(self, functions: Mapping[str, Callable[..., object]], name: str = API_NAME):
        """Build a Lua table of host functions that rejects unknown names."""
        table = self._lua.table()
        for key, function in functions.items():
            table[key] = function
        return self._guard(table, name)

    def _config_api(self) -> dict[str, Callable[..., object]]:
        api: dict[str, Callable[..., object]] = {
            name: self._config_time(name, function)
            for name, function in (
                ("config", self._api_config),
                ("mapkey", self._api_mapkey),
                ("map_action", self._api_map_action),
                ("map_command", self._api_map_command),
                ("set_previewer", self._api_set_previewer),
            )
        }
        api.update(common_helpers())
        return api

    def _config_time(self, name: str, function: Callable[..., object]) -> Callable[..., object]:
        def call(*args):
            if self.sealed:
                raise ScriptError(f"{API_NAME}.{name} is config-time only")
            return function(*args)

        return call

    def seal(self) -> None:
        """End the configuration phase; later registration calls raise."""
        self.sealed = True

    # -- loading -----------------------------------------------------------

    def compile(self, source: str, chunk_name: str):
        result = self._load(source, f"@{chunk_name}", "t")
        if isinstance(result, tuple):
            function = result[0] if result else None
            message = result[1] if len(result) > 1 else "unknown error"
        else:
            function, message = result, None
        if function is None:
            raise ScriptError(f"{chunk_name}: {message}")
        return function

    def run_source(self, source: str, chunk_name: str) -> object:
        chunk = self.compile(source, chunk_name)
        try:
            return chunk()
        except lupa.LuaError as exc:
            raise ScriptError(str(exc)) from exc

    def run_file(self, path: Path) -> object:
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ScriptError(f"cannot read {path}: {exc}") from exc
        logger.debug("running script %s", path)
        return self.run_source(source, str(path))

    def load_table_file(self, path: Path) -> dict[str, object]:
        """Run a script that returns a plain table (theme files) and convert it."""
        result = self.run_file(path)
        if not is_lua_table(result):
            raise ScriptError(f"{path} did not return a table")
        converted = from_lua(result)
        if not isinstance(converted, dict):
            raise ScriptError(f"{path} did not return a key/value table")
        _reject_functions(converted, path.name)
        return converted

    def _require(self, name):
        if not isinstance(name, str) or not name.strip():
            raise ModuleResolutionError("invalid module name")
        if name in self._modules:
            return self._modules[name]
        if ".." in name or os.path.isabs(name) or name.startswith(("/", "\\")):
            raise ModuleResolutionError(f"module outside config root: {name}")
        if self.module_root is None:
            raise ModuleResolutionError(f"module not found: {name}")

        root = self.module_root.resolve()
        candidate = (root / (name.replace(".", "/") + ".lua")).resolve()
        if not candidate.is_relative_to(root):
            raise ModuleResolutionError(f"module outside config root: {name}")
        if not candidate.is_file():
            raise ModuleResolutionError(f"module not found: {name}")
        if name in self._loading:
            raise ModuleResolutionError(f"circular require: {name}")

        self._loading.add(name)
        try:
            value = self.run_file(candidate)
        finally:
            self._loading.discard(name)
        if isinstance(value, tuple):
            value = value[0] if value else None
        self._modules[name] = True if value is None else value
        return self._modules[name]

    # -- config-time API ---------------------------------------------------

    def _api_config(self, table) -> bool:
        overlay = from_lua(table)
        if not isinstance(overlay, dict):
            raise ConfigError("lb.config expects a table")
        actions = overlay.pop("actions", None)
        _reject_functions(overlay, "config")
        candidate = normalize_tree(merge(self.tree, overlay))
        Config.from_tree(candidate)
        self.tree = candidate
        if actions is not None:
            self._register_actions(actions)
        return True

    def _register_actions(self, actions: object) -> None:
        if isinstance(actions, dict):
            entries = list(actions.values())
        elif isinstance(actions, list):
            entries = actions
        else:
            raise ConfigError("config.actions must be a list")
        for entry in entries:
            if not isinstance(entry, dict):
                raise ConfigError("config.actions entries must be tables")
            keys = entry.get("keymap")
            description = str(entry.get("description") or "")
            function = entry.get("fn")
            action = entry.get("action")
            key_list = keys if isinstance(keys, list) else [keys]
            if is_lua_function(function):
                self._register_callback(key_list, description, function)
            elif isinstance(action, str):
                for key in self._checked_keys(key_list):
                    self.bindings.append(PendingBinding(key, description or action, InternalHandler(action)))
            else:
                raise ConfigError("config.actions entries need fn or action")

    @staticmethod
    def _checked_keys(keys: list[object]) -> list[str]:
        checked = [key for key in keys if isinstance(key, str) and key]
        if not checked or len(checked) != len(keys):
            raise ConfigError("key sequences must be non-empty strings")
        return checked

    def _register_callback(self, keys: list[object], description: str, function: object) -> int:
        checked = self._checked_keys(keys)
        index = len(self.callbacks)
        self.callbacks.append(ScriptCallback(function=function, description=description, keys=tuple(checked)))
        for key in checked:
            self.bindings.append(PendingBinding(key, description, ScriptHandler(index)))
        return index

    def _api_mapkey(self, sequence, action, description=None) -> bool:
        if not isinstance(action, str) or not action:
            raise ScriptError("mapkey expects an action string")
        for key in self._checked_keys(lua_list(sequence)):
            self.bindings.append(PendingBinding(key, str(description or action), InternalHandler(action)))
        return True

    def _api_map_action(self, keys, description, function) -> bool:
        if not is_lua_function(function):
            raise ScriptError("map_action expects a function")
        self._register_callback(lua_list(keys), str(description or ""), function)
        return True

    def _api_map_command(self, keys, description, command) -> bool:
        if not isinstance(command, str) or not command.strip():
            raise ScriptError("map_command expects a command string")
        for key in self._checked_keys(lua_list(keys)):
            self.bindings.append(PendingBinding(key, str(description or command), InternalHandler(f"run:{command}")))
        return True

    def _api_set_previewer(self, function) -> bool:
        if not is_lua_function(function):
            raise ScriptError("set_previewer expects a function")
        self.previewer = function
        return True
