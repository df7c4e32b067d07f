"""Layered configuration loading.

Embedded defaults load first, then the user's ``init.lua`` runs in a fresh
script engine. The user layer is all-or-nothing: any error while running it
discards both its configuration and its bindings, and the problem is
reported once instead of stopping the launch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ..keymap.bindings import BindingTable, InternalHandler
from ..scripting.engine import ScriptEngine
from .defaults import DEFAULT_CONFIG, DEFAULT_KEYMAPS
from .paths import ENTRY_FILENAME, discover_config_root
from .types import ConfigStore

logger = logging.getLogger(__name__)


@dataclass
class LoadedConfiguration:
    root: Path
    entry: Path | None
    store: ConfigStore
    bindings: BindingTable
    engine: ScriptEngine
    error: str | None = None


def default_bindings() -> BindingTable:
    table = BindingTable()
    for sequence, action, description in DEFAULT_KEYMAPS:
        table.bind(sequence, description, InternalHandler(action))
    return table


def build_bindings(engine: ScriptEngine) -> BindingTable:
    """Default bindings overlaid with everything the engine registered."""
    table = default_bindings()
    for pending in engine.bindings:
        table.bind(pending.sequence, pending.description, pending.handler)
    return table


def load_configuration(config_root: Path | None = None) -> LoadedConfiguration:
    """Load defaults plus the user layer from ``config_root`` (or discovery)."""
    if config_root is None:
        root, entry = discover_config_root()
    else:
        root = config_root
        candidate = root / ENTRY_FILENAME
        entry = candidate if candidate.is_file() else None

    engine = ScriptEngine(root, DEFAULT_CONFIG)
    error: str | None = None
    if entry is not None:
        try:
            engine.run_file(entry)
        except Exception as exc:
            error = f"Config error in {entry}: {exc}"
            logger.warning("%s", error)
            engine = ScriptEngine(root, DEFAULT_CONFIG)
    else:
        logger.info("no %s under %s; using defaults", ENTRY_FILENAME, root)
    engine.seal()

    return LoadedConfiguration(
        root=root,
        entry=entry,
        store=ConfigStore(engine.tree),
        bindings=build_bindings(engine),
        engine=engine,
        error=error,
    )
