"""Pure recursive merge and diff over nested configuration mappings."""

from __future__ import annotations

import copy
from collections.abc import Mapping


def merge(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, object]:
    """Return ``base`` with every field present in ``overlay`` replaced.

    Nested mappings recurse; any other value overwrites. Neither input is
    mutated, and fields absent from ``overlay`` keep their ``base`` value at
    every nesting level.
    """
    merged: dict[str, object] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def diff(before: Mapping[str, object], after: Mapping[str, object]) -> dict[str, object]:
    """Return the sparse overlay that turns ``before`` into ``after``.

    Keys removed in ``after`` are ignored: an overlay can only set fields.
    """
    changes: dict[str, object] = {}
    for key, value in after.items():
        if key not in before:
            changes[key] = copy.deepcopy(value)
            continue
        previous = before[key]
        if isinstance(value, Mapping) and isinstance(previous, Mapping):
            nested = diff(previous, value)
            if nested:
                changes[key] = nested
        elif value != previous:
            changes[key] = copy.deepcopy(value)
    return changes


def get_path(tree: Mapping[str, object], dotted: str, default: object = None) -> object:
    """Look up ``ui.sort``-style dotted paths in a nested tree."""
    node: object = tree
    for part in dotted.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def overlay_for(dotted: str, value: object) -> dict[str, object]:
    """Build a single-field overlay such as ``{"ui": {"sort": value}}``."""
    parts = dotted.split(".")
    result: dict[str, object] = {parts[-1]: value}
    for part in reversed(parts[:-1]):
        result = {part: result}
    return result
