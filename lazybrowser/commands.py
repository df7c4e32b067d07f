"""Typed command surface (the ``:`` prompt).

Commands are matched case-insensitively by unique prefix and may be chained
with ``;``. ``run`` takes the rest of the line verbatim, separators included.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

COMMAND_SEPARATOR = ";"

COMMAND_ITEMS: tuple[tuple[str, str], ...] = (
    ("add", "Add file or folder (name ending in / makes a folder)"),
    ("cd", "Change directory: cd <path>"),
    ("clipboard_clear", "Clear the clipboard"),
    ("copy", "Copy selection to clipboard"),
    ("delete", "Delete selected entries"),
    ("delmark", "Delete mark: delmark <key>"),
    ("display", "Date display: display absolute|friendly"),
    ("find", "Find entry in current directory"),
    ("goto", "Go to mark: goto <key>"),
    ("mark", "Set mark: mark <key>"),
    ("marks", "List marks"),
    ("messages", "Toggle messages"),
    ("move", "Cut selection to clipboard"),
    ("next", "Next find match"),
    ("open", "Enter highlighted directory"),
    ("output", "Toggle last output"),
    ("parent", "Go to parent directory"),
    ("paste", "Paste clipboard into current directory"),
    ("prev", "Previous find match"),
    ("quit", "Quit"),
    ("rename", "Rename highlighted or selected entries"),
    ("run", "Run shell command: run <command>"),
    ("select_clear", "Clear selection"),
    ("select_toggle", "Toggle selection of highlighted entry"),
    ("show_hidden_toggle", "Toggle hidden files"),
    ("sort", "Sort: sort name|size|mtime|created"),
    ("sort_reverse_toggle", "Toggle reverse sort"),
    ("theme", "Theme picker, or theme <name>"),
)
COMMAND_NAMES: tuple[str, ...] = tuple(name for name, _ in COMMAND_ITEMS)


class CommandError(ValueError):
    """Raised for unknown or ambiguous command names."""


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    argument: str = ""


def complete(prefix: str) -> list[str]:
    """Command names starting with ``prefix`` (case-insensitive)."""
    low = prefix.strip().lower()
    return [name for name in COMMAND_NAMES if name.startswith(low)]


def resolve_command(word: str) -> str:
    low = word.strip().lower()
    if not low:
        raise CommandError("empty command")
    if low in COMMAND_NAMES:
        return low
    matches = complete(low)
    if not matches:
        raise CommandError(f"Unknown command: {word}")
    if len(matches) > 1:
        raise CommandError(f"Ambiguous command: {word} ({', '.join(matches)})")
    return matches[0]


def complete_line(text: str) -> tuple[str, list[str]]:
    """Tab-complete the command word of the last chained segment.

    Returns the new text and the candidates that were considered.
    """
    head, sep, last = text.rpartition(COMMAND_SEPARATOR)
    leading = last[: len(last) - len(last.lstrip())]
    word = last.strip()
    if " " in word:
        return text, []
    candidates = complete(word)
    if not candidates:
        return text, []
    if len(candidates) == 1:
        completed = candidates[0] + " "
    else:
        completed = os.path.commonprefix(candidates)
    return f"{head}{sep}{leading}{completed}", candidates


def parse_command(segment: str) -> ParsedCommand:
    word, _, argument = segment.strip().partition(" ")
    return ParsedCommand(name=resolve_command(word), argument=argument.strip())


def parse_chain(line: str) -> list[ParsedCommand]:
    """Parse ``a; b arg; run x; y`` into commands; ``run`` ends the chain."""
    commands: list[ParsedCommand] = []
    remaining = line
    while remaining.strip():
        segment, sep, rest = remaining.partition(COMMAND_SEPARATOR)
        if not segment.strip():
            remaining = rest
            continue
        parsed = parse_command(segment)
        if parsed.name == "run":
            _, _, argument = remaining.strip().partition(" ")
            commands.append(ParsedCommand(name="run", argument=argument.strip()))
            break
        commands.append(parsed)
        remaining = rest if sep else ""
    return commands
