"""Main interactive event loop for the terminal UI.

Renders when state is dirty, polls for input with a timeout derived from the
key-sequence deadline, and forwards keys and idle ticks to the app.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .input import read_key
from .state import AppState
from .terminal import TerminalController

IDLE_POLL_MS = 120
CLEAR_SCREEN = "\033[2J"
CURSOR_HOME = "\033[H"


@dataclass(frozen=True)
class RuntimeLoopCallbacks:
    """Injected operations used by ``run_main_loop``."""

    handle_key: Callable[[str], None]
    tick: Callable[[], None]
    render: Callable[[int, int], str]
    poll_timeout_ms: Callable[[int], int]


def run_main_loop(
    state: AppState,
    terminal: TerminalController,
    stdin_fd: int,
    callbacks: RuntimeLoopCallbacks,
) -> None:
    """Run until a handler or command sets ``state.should_quit``."""
    last_size: tuple[int, int] | None = None
    with terminal.raw_mode():
        while not state.should_quit:
            size = terminal.size()
            if size != last_size:
                last_size = size
                state.dirty = True
                state.full_redraw = True

            if state.dirty:
                frame = callbacks.render(*size)
                prefix = CLEAR_SCREEN if state.full_redraw else ""
                terminal.write(f"{prefix}{CURSOR_HOME}{frame}")
                state.dirty = False
                state.full_redraw = False

            try:
                key = read_key(stdin_fd, timeout_ms=callbacks.poll_timeout_ms(IDLE_POLL_MS))
            except KeyboardInterrupt:
                # Terminal copy shortcuts can deliver SIGINT; they never quit.
                continue
            if key == "":
                callbacks.tick()
                continue
            callbacks.handle_key(key)
