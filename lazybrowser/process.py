"""Synchronous external command execution.

Commands run through the platform shell in one of two modes: captured
(stdout/stderr collected) or interactive (the child inherits the terminal,
which is released first and reacquired afterwards). Placeholders are
expanded textually; quoting is left to whoever wrote the command.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
import subprocess
import sys
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from .actions.effects import ActionEffects
from .terminal import TerminalController

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_]+)\}")
COLOR_ENV = {"FORCE_COLOR": "1", "CLICOLOR_FORCE": "1"}


@dataclass(frozen=True)
class CommandContext:
    """Selection and geometry values available to command templates."""

    directory: Path
    path: Path | None = None
    width: int = 0
    height: int = 0
    preview_x: int = 0
    preview_y: int = 0

    @property
    def name(self) -> str:
        return self.path.name if self.path is not None else ""

    @property
    def extension(self) -> str:
        if self.path is None:
            return ""
        return self.path.suffix[1:] if self.path.suffix else ""

    def placeholders(self) -> dict[str, str]:
        path = str(self.path) if self.path is not None else ""
        directory = str(self.directory)
        return {
            "path": path,
            "directory": directory,
            "dir": directory,
            "name": self.name,
            "extension": self.extension,
            "width": str(self.width),
            "height": str(self.height),
            "preview_x": str(self.preview_x),
            "preview_y": str(self.preview_y),
        }

    def environment(self) -> dict[str, str]:
        values = self.placeholders()
        return {
            "LB_PATH": values["path"],
            "LB_DIR": values["directory"],
            "LB_NAME": values["name"],
            "LB_EXT": values["extension"],
            "LB_WIDTH": values["width"],
            "LB_HEIGHT": values["height"],
            "LB_PREVIEW_X": values["preview_x"],
            "LB_PREVIEW_Y": values["preview_y"],
        }


def expand_placeholders(command: str, context: CommandContext) -> str:
    """Substitute ``{path}``-style placeholders; unknown ones stay verbatim."""
    values = context.placeholders()
    return _PLACEHOLDER_RE.sub(lambda match: values.get(match.group(1), match.group(0)), command)


def shell_argv(command: str) -> list[str]:
    if sys.platform.startswith("win"):
        return ["cmd", "/C", command]
    return ["sh", "-c", command]


@dataclass(frozen=True)
class ProcessResult:
    command: str
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    interactive: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code == 0

    @property
    def output(self) -> str:
        """Stdout followed by stderr on its own line."""
        if self.error is not None:
            return f"<error: {self.error}>"
        if self.stdout and self.stderr:
            joiner = "" if self.stdout.endswith("\n") else "\n"
            return f"{self.stdout}{joiner}{self.stderr}"
        return self.stdout or self.stderr

    def status_message(self) -> str | None:
        """Message to record for failures; ``None`` when the run succeeded."""
        if self.error is not None:
            return f"Command failed: {self.command}: {self.error}"
        if self.exit_code not in (0, None):
            return f"Command exited with status {self.exit_code}: {self.command}"
        return None


class ProcessOrchestrator:
    """Runs shell commands on behalf of handlers and the previewer."""

    def __init__(
        self,
        terminal: TerminalController | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.terminal = terminal
        self._runner = runner
        self._base_env = base_env

    def _env(self, context: CommandContext, extra: Mapping[str, str] | None) -> dict[str, str]:
        env = dict(os.environ if self._base_env is None else self._base_env)
        env.update(context.environment())
        if extra:
            env.update(extra)
        return env

    def _cwd(self, context: CommandContext) -> str | None:
        return str(context.directory) if context.directory.is_dir() else None

    def run_captured(
        self,
        command: str,
        context: CommandContext,
        *,
        extra_env: Mapping[str, str] | None = None,
    ) -> ProcessResult:
        expanded = expand_placeholders(command, context)
        started = time.monotonic()
        try:
            completed = self._runner(
                shell_argv(expanded),
                cwd=self._cwd(context),
                env=self._env(context, extra_env),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            logger.warning("captured command failed to start cmd=%r error=%s", expanded, exc)
            return ProcessResult(command=expanded, exit_code=None, error=str(exc))

        stdout = _decode(completed.stdout)
        stderr = _decode(completed.stderr)
        logger.info(
            "captured cmd=%r exit=%s stdout=%dB stderr=%dB elapsed=%.1fms",
            expanded,
            completed.returncode,
            len(completed.stdout or b""),
            len(completed.stderr or b""),
            (time.monotonic() - started) * 1000.0,
        )
        return ProcessResult(command=expanded, exit_code=completed.returncode, stdout=stdout, stderr=stderr)

    def run_interactive(self, command: str, context: CommandContext) -> ProcessResult:
        """Run ``command`` attached to the terminal.

        The terminal is released for the child's lifetime and always
        reacquired, even when spawning fails.
        """
        expanded = expand_placeholders(command, context)
        started = time.monotonic()
        suspend = self.terminal.suspended() if self.terminal is not None else contextlib.nullcontext()
        try:
            with suspend:
                completed = self._runner(
                    shell_argv(expanded),
                    cwd=self._cwd(context),
                    env=self._env(context, None),
                    check=False,
                )
        except OSError as exc:
            logger.warning("interactive command failed to start cmd=%r error=%s", expanded, exc)
            return ProcessResult(command=expanded, exit_code=None, error=str(exc), interactive=True)
        logger.info(
            "interactive cmd=%r exit=%s elapsed=%.1fms",
            expanded,
            completed.returncode,
            (time.monotonic() - started) * 1000.0,
        )
        return ProcessResult(command=expanded, exit_code=completed.returncode, interactive=True)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")


def effects_for_result(result: ProcessResult) -> ActionEffects:
    """Lower a finished command into effects for the applier.

    Captured output opens the output overlay; an empty successful capture
    only leaves a ``$ cmd`` message. Interactive runs always force a full
    redraw.
    """
    effects = ActionEffects()
    if result.interactive:
        effects.full_redraw = True
        effects.redraw = True
    else:
        text = result.output
        if text.strip():
            effects.set_output(text, title=f"$ {result.command}")
        elif result.ok:
            effects.add_message(f"$ {result.command}")
    status = result.status_message()
    if status is not None:
        effects.add_message(status)
    return effects
