"""Binding trie and handler variants.

Each binding maps a token sequence to one handler chosen at bind time:
either a built-in action string or the index of a script callback.
Re-binding an identical sequence replaces it; shorter and longer
sequences that share a prefix coexist.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Union

from .tokens import format_sequence, tokenize_sequence


@dataclass(frozen=True)
class InternalHandler:
    action: str


@dataclass(frozen=True)
class ScriptHandler:
    index: int


Handler = Union[InternalHandler, ScriptHandler]


@dataclass(frozen=True)
class Binding:
    tokens: tuple[str, ...]
    description: str
    handler: Handler

    @property
    def keys(self) -> str:
        return format_sequence(self.tokens)


@dataclass
class _Node:
    children: dict[str, _Node] = field(default_factory=dict)
    binding: Binding | None = None


class BindingTable:
    """Trie of key bindings keyed by token."""

    def __init__(self) -> None:
        self._root = _Node()
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def bind(self, sequence: str | Sequence[str], description: str, handler: Handler) -> Binding:
        """Register ``handler`` for ``sequence``; last registration wins."""
        tokens = tokenize_sequence(sequence) if isinstance(sequence, str) else tuple(sequence)
        if not tokens:
            raise ValueError("cannot bind an empty key sequence")
        node = self._root
        for token in tokens:
            node = node.children.setdefault(token, _Node())
        if node.binding is None:
            self._count += 1
        binding = Binding(tokens=tokens, description=description, handler=handler)
        node.binding = binding
        return binding

    def _node(self, tokens: Sequence[str]) -> _Node | None:
        node = self._root
        for token in tokens:
            child = node.children.get(token)
            if child is None:
                return None
            node = child
        return node

    def lookup(self, sequence: str | Sequence[str]) -> Binding | None:
        tokens = tokenize_sequence(sequence) if isinstance(sequence, str) else tuple(sequence)
        node = self._node(tokens)
        return node.binding if node is not None else None

    def is_prefix(self, tokens: Sequence[str]) -> bool:
        """Whether some binding extends ``tokens`` (or equals it)."""
        return self._node(tokens) is not None

    def has_longer(self, tokens: Sequence[str]) -> bool:
        node = self._node(tokens)
        return node is not None and bool(node.children)

    def shortest_prefix_binding(self, tokens: Sequence[str]) -> Binding | None:
        """Return the shortest complete binding that is a prefix of ``tokens``."""
        node = self._root
        for token in tokens:
            node = node.children.get(token)
            if node is None:
                return None
            if node.binding is not None:
                return node.binding
        return None

    def _walk(self, node: _Node) -> Iterator[Binding]:
        if node.binding is not None:
            yield node.binding
        for token in sorted(node.children):
            yield from self._walk(node.children[token])

    def bindings(self) -> list[Binding]:
        return list(self._walk(self._root))

    def continuations(self, prefix: Sequence[str] = ()) -> list[tuple[str, list[Binding]]]:
        """Group the bindings extending ``prefix`` by their next token."""
        node = self._node(prefix)
        if node is None:
            return []
        groups: list[tuple[str, list[Binding]]] = []
        for token in sorted(node.children):
            groups.append((token, list(self._walk(node.children[token]))))
        return groups
