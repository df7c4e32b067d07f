"""Key sequence state machine.

Turns a stream of key tokens into resolved bindings using prefix matching
and an optional disambiguation timeout. Time comes from an injectable clock
so tests can drive ticks deterministically.

Ambiguous keys (a complete binding that also prefixes longer bindings) wait
in the pending state. A following token that extends nothing cancels the
pending prefix without firing it and is then looked up on its own; only the
timeout resolves the shorter binding.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .bindings import Binding, BindingTable
from .tokens import ESCAPE


class SequenceState(Enum):
    IDLE = "idle"
    PENDING = "pending"


@dataclass(frozen=True)
class FeedOutcome:
    """Result of one ``feed`` or ``tick`` step."""

    binding: Binding | None = None
    pending: bool = False
    discarded: tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return self.binding is not None


class KeySequenceEngine:
    def __init__(
        self,
        table: BindingTable,
        timeout_ms: int = 0,
        clock: Callable[[], float] = time.monotonic,
        cancel_token: str = ESCAPE,
    ) -> None:
        self.table = table
        self.timeout_ms = max(0, int(timeout_ms))
        self._clock = clock
        self._cancel_token = cancel_token
        self._prefix: tuple[str, ...] = ()
        self._deadline: float | None = None

    @property
    def state(self) -> SequenceState:
        return SequenceState.PENDING if self._prefix else SequenceState.IDLE

    @property
    def pending(self) -> bool:
        return bool(self._prefix)

    @property
    def prefix(self) -> tuple[str, ...]:
        return self._prefix

    @property
    def deadline(self) -> float | None:
        """Clock time at which the pending prefix resolves, if any."""
        return self._deadline

    def set_table(self, table: BindingTable) -> None:
        self.table = table
        self.cancel()

    def cancel(self) -> tuple[str, ...]:
        dropped = self._prefix
        self._prefix = ()
        self._deadline = None
        return dropped

    def continuations(self) -> list[tuple[str, list[Binding]]]:
        return self.table.continuations(self._prefix)

    def feed(self, token: str) -> FeedOutcome:
        if token == self._cancel_token and self._prefix:
            return FeedOutcome(discarded=self.cancel())

        candidate = self._prefix + (token,)
        if self.table.is_prefix(candidate):
            return self._advance(candidate)

        dropped = self.cancel()
        if not dropped:
            return FeedOutcome(discarded=(token,))
        fresh = self.feed(token)
        return FeedOutcome(
            binding=fresh.binding,
            pending=fresh.pending,
            discarded=dropped + fresh.discarded,
        )

    def _advance(self, candidate: tuple[str, ...]) -> FeedOutcome:
        binding = self.table.lookup(candidate)
        if binding is not None and not self.table.has_longer(candidate):
            self.cancel()
            return FeedOutcome(binding=binding)
        self._prefix = candidate
        self._deadline = self._clock() + self.timeout_ms / 1000.0 if self.timeout_ms > 0 else None
        return FeedOutcome(pending=True)

    def tick(self, now: float | None = None) -> FeedOutcome:
        """Resolve the pending prefix once its deadline has passed."""
        if not self._prefix or self._deadline is None:
            return FeedOutcome(pending=bool(self._prefix))
        current = self._clock() if now is None else now
        if current < self._deadline:
            return FeedOutcome(pending=True)
        prefix = self.cancel()
        binding = self.table.lookup(prefix)
        if binding is None:
            binding = self.table.shortest_prefix_binding(prefix)
        if binding is None:
            return FeedOutcome(discarded=prefix)
        return FeedOutcome(binding=binding)
