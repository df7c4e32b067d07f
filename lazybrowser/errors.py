"""Exception types shared across lazybrowser subsystems."""

from __future__ import annotations


class LazyBrowserError(Exception):
    """Base class for recoverable lazybrowser errors."""


class ConfigError(LazyBrowserError):
    """Configuration tree failed validation or could not be loaded."""


class ScriptError(LazyBrowserError):
    """User script failed to load, compile, or run."""


class ModuleResolutionError(ScriptError):
    """``require`` was asked for a module it may not load."""
