"""Conversions between plain Python data and Lua values.

Only dicts, lists, strings, numbers, booleans and ``None`` cross the
boundary; Lua functions are kept as opaque handles.
"""

from __future__ import annotations

from collections.abc import Mapping

import lupa

MAX_DEPTH = 32


def to_lua(lua: lupa.LuaRuntime, value: object, _depth: int = 0) -> object:
    """Convert nested Python containers into fresh Lua tables."""
    if _depth > MAX_DEPTH:
        raise ValueError("value nested too deeply for Lua conversion")
    if isinstance(value, Mapping):
        table = lua.table()
        for key, item in value.items():
            if item is None:
                continue
            table[key] = to_lua(lua, item, _depth + 1)
        return table
    if isinstance(value, (list, tuple)):
        table = lua.table()
        for index, item in enumerate(value, start=1):
            table[index] = to_lua(lua, item, _depth + 1)
        return table
    return value


def is_lua_table(value: object) -> bool:
    return lupa.lua_type(value) == "table"


def is_lua_function(value: object) -> bool:
    return lupa.lua_type(value) == "function"


def from_lua(value: object, _depth: int = 0) -> object:
    """Convert Lua tables into dicts (or lists for 1..n arrays).

    Functions are returned untouched; other userdata becomes ``None``.
    """
    kind = lupa.lua_type(value)
    if kind is None:
        return value
    if kind == "function":
        return value
    if kind != "table":
        return None
    if _depth > MAX_DEPTH:
        raise ValueError("Lua table nested too deeply")

    items = [
        (int(key) if isinstance(key, float) and key.is_integer() else key, item)
        for key, item in value.items()
    ]
    keys = [key for key, _ in items]
    if keys and all(isinstance(key, int) and not isinstance(key, bool) for key in keys):
        if sorted(keys) == list(range(1, len(keys) + 1)):
            ordered = sorted(items, key=lambda pair: pair[0])
            return [from_lua(item, _depth + 1) for _, item in ordered]
    result: dict[str, object] = {}
    for key, item in items:
        result[key if isinstance(key, (str, int)) else str(key)] = from_lua(item, _depth + 1)
    return result


def lua_list(value: object) -> list[object]:
    """Accept either a single value or an array table and return a list."""
    converted = from_lua(value)
    if isinstance(converted, list):
        return converted
    if isinstance(converted, dict):
        return list(converted.values())
    return [converted]
