"""Resolve a binding to its handler and collect the resulting effects.

Script handlers run through the bridge; built-in action strings (optionally
chained with ``;``) run through ``run_internal_action``. Anything else is a
no-op that leaves a diagnostic message.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ..config.types import Config
from ..keymap.bindings import Binding, InternalHandler, ScriptHandler
from ..process import CommandContext
from ..scripting.bridge import ScriptBridge
from .context import ActionContext
from .effects import ActionEffects
from .internal import run_internal_action

logger = logging.getLogger(__name__)

ACTION_SEPARATOR = ";"
_UNSPLIT_PREFIXES = ("cmd:", "run:")


def split_actions(action: str) -> list[str]:
    """Split ``a;b;c`` chains; ``cmd:`` and ``run:`` keep their whole tail."""
    stripped = action.strip()
    if stripped.lower().startswith(_UNSPLIT_PREFIXES):
        return [stripped]
    return [part.strip() for part in stripped.split(ACTION_SEPARATOR) if part.strip()]


class ActionDispatcher:
    def __init__(self, bridge: ScriptBridge | None = None) -> None:
        self.bridge = bridge

    def dispatch(
        self,
        binding: Binding,
        tree: Mapping[str, object],
        context: ActionContext,
        command_context: CommandContext,
        config: Config,
    ) -> ActionEffects:
        handler = binding.handler
        logger.debug("dispatch %s -> %s", binding.keys, handler)
        if isinstance(handler, ScriptHandler) and self.bridge is not None:
            return self.bridge.call_action(handler.index, tree, context, command_context)
        if isinstance(handler, InternalHandler):
            return self.run_action(handler.action, context, config)
        return ActionEffects.message(f"No handler bound to {binding.keys}")

    def run_action(self, action: str, context: ActionContext, config: Config) -> ActionEffects:
        effects = ActionEffects()
        for part in split_actions(action):
            result = run_internal_action(part, context, config)
            if result is None:
                effects.add_message(f"Unknown action: {part}")
                continue
            effects.extend(result)
            if effects.quit:
                break
        return effects
