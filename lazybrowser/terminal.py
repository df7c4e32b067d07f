"""Terminal control helpers for the TUI session.

Owns raw-mode lifecycle, alternate-screen switching, and the suspend window
during which an interactive child process has the terminal to itself.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import termios
import tty

logger = logging.getLogger(__name__)

ENTER_TUI_SEQUENCE = b"\x1b[?1049h\x1b[?25l"
LEAVE_TUI_SEQUENCE = b"\x1b[?25h\x1b[?1049l"


class TerminalController:
    """Manage terminal mode transitions for the single-owner main loop."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state and bind stdin/stdout file descriptors."""
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)
        self._tui_active = False

    @property
    def tui_active(self) -> bool:
        return self._tui_active

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with the cursor hidden."""
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        os.write(self.stdout_fd, ENTER_TUI_SEQUENCE)
        self._tui_active = True

    def disable_tui_mode(self) -> None:
        """Show the cursor, restore the main screen, and reset tty state."""
        os.write(self.stdout_fd, LEAVE_TUI_SEQUENCE)
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)
        self._tui_active = False

    def size(self) -> tuple[int, int]:
        """Return ``(columns, rows)`` for the attached terminal."""
        try:
            size = os.get_terminal_size(self.stdout_fd)
        except OSError:
            size = shutil.get_terminal_size((80, 24))
        return max(1, size.columns), max(1, size.lines)

    def write(self, data: str) -> None:
        os.write(self.stdout_fd, data.encode("utf-8", errors="replace"))

    @contextlib.contextmanager
    def raw_mode(self):
        """Context manager that brackets code with TUI enter/exit calls."""
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()

    @contextlib.contextmanager
    def suspended(self):
        """Hand the terminal to a child process and take it back afterwards.

        Only leaves TUI mode if it was active; re-entry happens even when the
        wrapped block raises.
        """
        was_active = self._tui_active
        if was_active:
            self.disable_tui_mode()
        logger.debug("terminal released (was_active=%s)", was_active)
        try:
            yield
        finally:
            if was_active:
                self.enable_tui_mode()
            logger.debug("terminal reacquired")
