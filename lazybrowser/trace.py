"""Optional diagnostics log.

Tracing is off unless ``LAZYBROWSER_TRACE`` is set (or ``--trace`` is given).
Records go to a plain file and are never read back by the running process.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

LOGGER_NAME = "lazybrowser"
TRACE_ENV = "LAZYBROWSER_TRACE"
TRACE_FILE_ENV = "LAZYBROWSER_TRACE_FILE"
TRACE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_FALSEY = {"", "0", "false", "no", "off"}


def trace_enabled(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(TRACE_ENV, "").strip().lower() not in _FALSEY


def default_trace_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return the trace file from the environment or the temp-dir default."""
    env = os.environ if environ is None else environ
    override = env.get(TRACE_FILE_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path(tempfile.gettempdir()) / "lazybrowser-trace.log"


def configure_trace(path: Path | None = None, *, force: bool = False) -> Path | None:
    """Attach the trace handler to the package logger.

    Returns the trace file path when tracing is active, otherwise ``None``.
    Without tracing a ``NullHandler`` keeps records off the terminal.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    if not (force or path is not None or trace_enabled()):
        logger.addHandler(logging.NullHandler())
        return None

    target = path if path is not None else default_trace_path()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, encoding="utf-8")
    except OSError:
        logger.addHandler(logging.NullHandler())
        return None
    handler.setFormatter(logging.Formatter(TRACE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.info("trace started pid=%d", os.getpid())
    return target
