"""Key token grammar shared by bindings and the terminal decoder.

A token is a single printable character or a bracketed name such as
``<Esc>``, ``<C-p>`` or ``<M-x>``.
"""

from __future__ import annotations

ESCAPE = "<Esc>"
ENTER = "<Enter>"
TAB = "<Tab>"
BACKSPACE = "<BS>"
UP = "<Up>"
DOWN = "<Down>"
LEFT = "<Left>"
RIGHT = "<Right>"
SPACE = " "

_NAMED_ALIASES = {
    "esc": ESCAPE,
    "escape": ESCAPE,
    "enter": ENTER,
    "cr": ENTER,
    "return": ENTER,
    "tab": TAB,
    "bs": BACKSPACE,
    "backspace": BACKSPACE,
    "up": UP,
    "down": DOWN,
    "left": LEFT,
    "right": RIGHT,
    "space": SPACE,
    "lt": "<",
}


def normalize_token(token: str) -> str:
    """Return the canonical spelling of one token."""
    if len(token) > 2 and token.startswith("<") and token.endswith(">"):
        inner = token[1:-1]
        alias = _NAMED_ALIASES.get(inner.lower())
        if alias is not None:
            return alias
        if len(inner) >= 3 and inner[1] == "-" and inner[0].lower() in {"c", "m", "a", "s"}:
            modifier = {"c": "C", "m": "M", "a": "M", "s": "S"}[inner[0].lower()]
            rest = inner[2:]
            if len(rest) == 1 and modifier == "C":
                rest = rest.lower()
            return f"<{modifier}-{rest}>"
        return token
    return token


def tokenize_sequence(sequence: str) -> tuple[str, ...]:
    """Split a binding string like ``"g<C-p>x"`` into canonical tokens.

    A ``<`` that does not open a closed bracket is taken literally.
    """
    tokens: list[str] = []
    index = 0
    while index < len(sequence):
        ch = sequence[index]
        if ch == "<":
            close = sequence.find(">", index + 2)
            if close != -1 and " " not in sequence[index + 1:close]:
                tokens.append(normalize_token(sequence[index:close + 1]))
                index = close + 1
                continue
        tokens.append(ch)
        index += 1
    return tuple(tokens)


def format_sequence(tokens: tuple[str, ...] | list[str]) -> str:
    return "".join("<Space>" if token == SPACE else token for token in tokens)
