"""Preview rendering with a geometry-keyed result cache.

Entries are keyed by ``(resolved path, width, height)``: a change of
selection or pane size simply misses, there is no explicit invalidation.
The cache may be bounded with an LRU ceiling.
"""

from __future__ import annotations

import codecs
import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .highlight import colorize_source, read_head, sanitize_terminal_text
from .listing import read_dir_sorted
from .process import COLOR_ENV, CommandContext, ProcessOrchestrator
from .scripting.bridge import PreviewContext

logger = logging.getLogger(__name__)

BINARY_PROBE_BYTES = 4_096
HEX_DUMP_BYTES = 512
HEX_DUMP_WIDTH = 16
DEFAULT_CACHE_MAX = 256
DIR_PREVIEW_MAX_ENTRIES = 400


@dataclass(frozen=True)
class PreviewKey:
    path: str
    width: int
    height: int


@dataclass(frozen=True)
class PreviewResult:
    text: str
    command: str | None = None
    is_directory: bool = False


class PreviewCache:
    """Memoized preview renders with optional least-recently-used eviction."""

    def __init__(self, max_entries: int | None = DEFAULT_CACHE_MAX) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[PreviewKey, PreviewResult] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: PreviewKey) -> bool:
        return key in self._entries

    def get(self, key: PreviewKey) -> PreviewResult | None:
        cached = self._entries.get(key)
        if cached is None:
            self.misses += 1
            return None
        self.hits += 1
        self._entries.move_to_end(key)
        return cached

    def put(self, key: PreviewKey, result: PreviewResult) -> None:
        self._entries[key] = result
        self._entries.move_to_end(key)
        if self.max_entries is None:
            return
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()


def is_binary_data(data: bytes) -> bool:
    """NUL bytes or invalid UTF-8 mark data as binary.

    A multi-byte sequence cut off at the end of the sample is not an error.
    """
    if b"\x00" in data:
        return True
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(data, final=False)
    except UnicodeDecodeError:
        return True
    return False


def detect_binary(path: Path) -> bool:
    try:
        with path.open("rb") as handle:
            return is_binary_data(handle.read(BINARY_PROBE_BYTES))
    except OSError:
        return False


def hex_dump(data: bytes, width: int = HEX_DUMP_WIDTH) -> str:
    lines: list[str] = []
    for offset in range(0, len(data), width):
        chunk = data[offset : offset + width]
        hex_part = " ".join(f"{byte:02x}" for byte in chunk)
        ascii_part = "".join(chr(byte) if 32 <= byte < 127 else "." for byte in chunk)
        lines.append(f"{offset:08x}  {hex_part:<{width * 3 - 1}}  |{ascii_part}|")
    return "\n".join(lines)


def fallback_preview(path: Path, max_lines: int) -> str:
    """Built-in head-of-file view: highlighted text or a fixed-length hex dump."""
    try:
        if detect_binary(path):
            with path.open("rb") as handle:
                return hex_dump(handle.read(HEX_DUMP_BYTES))
        source = sanitize_terminal_text(read_head(path, max_lines))
    except OSError as exc:
        return f"<error reading file: {exc}>"
    return colorize_source(source, path)


def directory_preview(path: Path, show_hidden: bool, max_lines: int) -> str:
    try:
        entries = read_dir_sorted(path, show_hidden, max_items=min(max_lines, DIR_PREVIEW_MAX_ENTRIES))
    except OSError as exc:
        return f"<cannot list directory: {exc}>"
    if not entries:
        return "<empty>"
    return "\n".join(f"{entry.name}/" if entry.is_dir else entry.name for entry in entries)


def _head_lines(text: str, max_lines: int) -> str:
    lines = text.splitlines()
    return "\n".join(lines[:max_lines])


class Previewer:
    """Produces preview text for the highlighted entry.

    ``command_for`` is the script previewer hook: it returns a shell command
    or ``None`` to request the built-in fallback. It is only consulted on a
    cache miss.
    """

    def __init__(
        self,
        orchestrator: ProcessOrchestrator,
        command_for: Callable[[PreviewContext], str | None] | None = None,
        cache: PreviewCache | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.command_for = command_for
        self.cache = cache if cache is not None else PreviewCache()

    def render(
        self,
        path: Path,
        width: int,
        height: int,
        *,
        preview_x: int = 0,
        preview_y: int = 0,
        max_lines: int = 100,
        show_hidden: bool = False,
    ) -> PreviewResult:
        if path.is_dir():
            return PreviewResult(text=directory_preview(path, show_hidden, max_lines), is_directory=True)

        try:
            resolved = str(path.resolve())
        except OSError:
            resolved = str(path.absolute())
        key = PreviewKey(path=resolved, width=width, height=height)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = self._render_file(path, width, height, preview_x, preview_y, max_lines)
        self.cache.put(key, result)
        return result

    def _render_file(
        self,
        path: Path,
        width: int,
        height: int,
        preview_x: int,
        preview_y: int,
        max_lines: int,
    ) -> PreviewResult:
        command = None
        if self.command_for is not None:
            context = PreviewContext(
                path=path,
                width=width,
                height=height,
                preview_x=preview_x,
                preview_y=preview_y,
                is_binary=detect_binary(path),
            )
            command = self.command_for(context)
        if command is None:
            return PreviewResult(text=fallback_preview(path, max_lines))

        command_context = CommandContext(
            directory=path.parent,
            path=path,
            width=width,
            height=height,
            preview_x=preview_x,
            preview_y=preview_y,
        )
        result = self.orchestrator.run_captured(command, command_context, extra_env=COLOR_ENV)
        text = _head_lines(result.output, max_lines)
        status = result.status_message()
        if status is not None:
            text = f"{text}\n{status}" if text else status
        logger.info("preview %s via %r -> %d lines", path, result.command, text.count("\n") + 1)
        return PreviewResult(text=text, command=result.command)
