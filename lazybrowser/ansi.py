"""Column arithmetic for styled terminal text.

A line is walked as escape runs, which take no columns, and printable cells.
Pane cells are cropped and padded from that walk, and overlay boxes are
spliced into an already styled frame row without breaking its colors.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterator

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
RESET = "\033[0m"
TAB_STOP = 8


def _cell_width(ch: str, col: int) -> int:
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    return 2 if unicodedata.east_asian_width(ch) in {"W", "F"} else 1


def _walk(text: str) -> Iterator[tuple[str, int, int | None]]:
    """Yield ``(chunk, column, cells)``; escapes have ``cells=None`` and tabs become spaces."""
    col = 0
    pos = 0
    while pos < len(text):
        if text[pos] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, pos)
            if match:
                yield match.group(0), col, None
                pos = match.end()
                continue
        ch = text[pos]
        cells = _cell_width(ch, col)
        yield (" " * cells if ch == "\t" else ch), col, cells
        col += cells
        pos += 1


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def display_width(text: str) -> int:
    return sum(cells for _, _, cells in _walk(text) if cells)


def crop_ansi_line(text: str, start: int, width: int) -> str:
    """Return the ``width`` columns of ``text`` that begin at column ``start``.

    Escapes inside the window stay where they are. When the window opens
    after a color change, the last SGR before it is replayed ahead of the
    first visible cell. A wide character that would straddle the right edge
    is dropped rather than split.
    """
    if width <= 0 or not text:
        return ""
    start = max(0, start)
    out: list[str] = []
    carried = ""
    styled = False
    shown = 0
    for chunk, col, cells in _walk(text):
        if shown >= width:
            break
        if cells is None:
            if col >= start:
                out.append(chunk)
                styled = True
            elif chunk.endswith("m"):
                carried = chunk
            continue
        if col < start and col + cells <= start:
            continue
        if carried and not styled:
            out.append(carried)
            styled = True
        if shown + cells > width:
            break
        out.append(chunk)
        shown += cells
    return "".join(out)


def fit_ansi_line(text: str, width: int) -> str:
    """Crop and pad ``text`` to exactly ``width`` columns, resetting style."""
    if width <= 0:
        return ""
    cropped = crop_ansi_line(text, 0, width)
    padding = width - display_width(cropped)
    suffix = RESET if "\x1b" in cropped else ""
    return f"{cropped}{suffix}{' ' * max(0, padding)}"


def overlay_ansi_line(base: str, x: int, box: str, columns: int) -> str:
    """Paint ``box`` over ``base`` starting at column ``x``.

    Columns left of the box keep their content padded to ``x``; columns
    right of it resume in the style that was active there.
    """
    right = x + display_width(box)
    tail = crop_ansi_line(base, right, max(0, columns - right))
    return f"{fit_ansi_line(base, x)}{RESET}{box}{tail}{RESET}"
