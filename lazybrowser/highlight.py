"""Text loading, sanitization, and syntax highlighting for fallback previews.

Highlighting goes through Pygments with a per-style formatter cache.
Terminal control bytes are neutralized so previews cannot move the cursor.
"""

from __future__ import annotations

import re
from pathlib import Path

from pygments import highlight as pygments_highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

DEFAULT_STYLE = "monokai"
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_FORMATTERS: dict[str, TerminalFormatter] = {}
_VALID_STYLES: set[str] = set()
_INVALID_STYLES: set[str] = set()


def read_head(path: Path, max_lines: int, max_bytes: int = 256_000) -> str:
    """Return at most ``max_lines`` lines from the start of ``path``."""
    with path.open("rb") as handle:
        data = handle.read(max_bytes)
    text = data.decode("utf-8", errors="replace")
    lines = text.splitlines()
    return "\n".join(lines[: max(0, max_lines)])


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


def _normalize_style(style: str) -> str:
    if style in _VALID_STYLES:
        return style
    if style in _INVALID_STYLES:
        return DEFAULT_STYLE
    try:
        get_style_by_name(style)
    except ClassNotFound:
        _INVALID_STYLES.add(style)
        return DEFAULT_STYLE
    _VALID_STYLES.add(style)
    return style


def _formatter_for_style(style: str) -> TerminalFormatter:
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = TerminalFormatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def colorize_source(source: str, path: Path, style: str = DEFAULT_STYLE) -> str:
    """Highlight ``source`` using the lexer Pygments picks for ``path``.

    Unknown file types fall back to the plain text lexer; the input is
    returned unchanged if highlighting itself fails.
    """
    formatter = _formatter_for_style(_normalize_style(style))
    try:
        lexer = get_lexer_for_filename(path.name, source)
    except ClassNotFound:
        lexer = TextLexer()
    try:
        rendered = pygments_highlight(source, lexer, formatter)
    except Exception:
        return source
    return rendered.rstrip("\n")
