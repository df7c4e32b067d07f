"""Embedded Lua scripting: sandboxed runtime and host/script bridge."""

from .bridge import PreviewContext, ScriptBridge
from .engine import PendingBinding, ScriptCallback, ScriptEngine

__all__ = ["PendingBinding", "PreviewContext", "ScriptBridge", "ScriptCallback", "ScriptEngine"]
