"""Key token grammar, binding trie, and sequence state machine tests."""

from __future__ import annotations

import unittest

from lazybrowser.keymap.bindings import BindingTable, InternalHandler, ScriptHandler
from lazybrowser.keymap.engine import KeySequenceEngine, SequenceState
from lazybrowser.keymap.tokens import format_sequence, normalize_token, tokenize_sequence


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TokenTests(unittest.TestCase):
    def test_named_and_modifier_tokens_are_canonical(self) -> None:
        self.assertEqual(normalize_token("<esc>"), "<Esc>")
        self.assertEqual(normalize_token("<CR>"), "<Enter>")
        self.assertEqual(normalize_token("<c-P>"), "<C-p>")
        self.assertEqual(normalize_token("<a-x>"), "<M-x>")
        self.assertEqual(normalize_token("<space>"), " ")

    def test_tokenize_mixes_plain_and_bracketed_tokens(self) -> None:
        self.assertEqual(tokenize_sequence("g<C-p>x"), ("g", "<C-p>", "x"))
        self.assertEqual(tokenize_sequence("<lt>a"), ("<", "a"))

    def test_unclosed_bracket_is_literal(self) -> None:
        self.assertEqual(tokenize_sequence("<a"), ("<", "a"))
        self.assertEqual(tokenize_sequence("<"), ("<",))

    def test_format_sequence_spells_space(self) -> None:
        self.assertEqual(format_sequence((" ", "x")), "<Space>x")


class BindingTableTests(unittest.TestCase):
    def test_rebinding_same_sequence_replaces_handler(self) -> None:
        table = BindingTable()
        table.bind("gg", "top", InternalHandler("nav:top"))
        table.bind("gg", "custom", ScriptHandler(3))

        self.assertEqual(len(table), 1)
        self.assertEqual(table.lookup("gg").handler, ScriptHandler(3))

    def test_shorter_and_longer_bindings_coexist(self) -> None:
        table = BindingTable()
        table.bind("g", "short", InternalHandler("a"))
        table.bind("gg", "long", InternalHandler("b"))

        self.assertTrue(table.has_longer(("g",)))
        self.assertFalse(table.has_longer(("g", "g")))
        self.assertEqual(table.shortest_prefix_binding(("g", "g")).description, "short")

    def test_empty_sequence_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            BindingTable().bind("", "nothing", InternalHandler("quit"))

    def test_continuations_group_by_next_token(self) -> None:
        table = BindingTable()
        table.bind("sn", "name", InternalHandler("sort:name"))
        table.bind("ss", "size", InternalHandler("sort:size"))
        table.bind("q", "quit", InternalHandler("quit"))

        groups = table.continuations(("s",))

        self.assertEqual([token for token, _ in groups], ["n", "s"])
        self.assertEqual(groups[0][1][0].description, "name")
        self.assertEqual(table.continuations(("x",)), [])


class KeySequenceEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.table = BindingTable()
        self.table.bind("q", "quit", InternalHandler("quit"))
        self.table.bind("gg", "top", InternalHandler("nav:top"))
        self.table.bind("s", "short", InternalHandler("short"))
        self.table.bind("sn", "name", InternalHandler("sort:name"))
        self.clock = FakeClock()

    def engine(self, timeout_ms: int = 0) -> KeySequenceEngine:
        return KeySequenceEngine(self.table, timeout_ms=timeout_ms, clock=self.clock)

    def test_unambiguous_single_key_resolves_immediately(self) -> None:
        outcome = self.engine().feed("q")

        self.assertTrue(outcome.resolved)
        self.assertEqual(outcome.binding.handler, InternalHandler("quit"))

    def test_multi_key_sequence_waits_then_resolves(self) -> None:
        engine = self.engine()

        first = engine.feed("g")
        self.assertTrue(first.pending)
        self.assertEqual(engine.state, SequenceState.PENDING)

        second = engine.feed("g")
        self.assertEqual(second.binding.handler, InternalHandler("nav:top"))
        self.assertEqual(engine.state, SequenceState.IDLE)

    def test_unbound_key_is_discarded(self) -> None:
        outcome = self.engine().feed("Z")

        self.assertFalse(outcome.resolved)
        self.assertFalse(outcome.pending)
        self.assertEqual(outcome.discarded, ("Z",))

    def test_ambiguous_prefix_waits_forever_without_timeout(self) -> None:
        engine = self.engine(timeout_ms=0)

        self.assertTrue(engine.feed("s").pending)
        self.clock.now += 3600
        self.assertTrue(engine.tick().pending)
        self.assertIsNone(engine.deadline)

    def test_timeout_resolves_shorter_binding(self) -> None:
        engine = self.engine(timeout_ms=500)
        engine.feed("s")

        self.assertTrue(engine.tick(self.clock.now + 0.4).pending)
        outcome = engine.tick(self.clock.now + 0.5)

        self.assertEqual(outcome.binding.handler, InternalHandler("short"))
        self.assertFalse(engine.pending)

    def test_non_extending_key_cancels_prefix_and_is_looked_up_fresh(self) -> None:
        engine = self.engine(timeout_ms=500)
        engine.feed("s")

        outcome = engine.feed("q")

        self.assertEqual(outcome.binding.handler, InternalHandler("quit"))
        self.assertEqual(outcome.discarded, ("s",))
        self.assertFalse(engine.pending)

    def test_escape_cancels_pending_prefix(self) -> None:
        engine = self.engine()
        engine.feed("g")

        outcome = engine.feed("<Esc>")

        self.assertFalse(outcome.resolved)
        self.assertEqual(outcome.discarded, ("g",))
        self.assertEqual(engine.state, SequenceState.IDLE)

    def test_escape_while_idle_is_looked_up_as_a_binding(self) -> None:
        self.table.bind("<Esc>", "close", InternalHandler("overlay:close"))

        outcome = self.engine().feed("<Esc>")

        self.assertEqual(outcome.binding.handler, InternalHandler("overlay:close"))

    def test_continuations_follow_pending_prefix(self) -> None:
        engine = self.engine()
        engine.feed("s")

        self.assertEqual([token for token, _ in engine.continuations()], ["n"])

    def test_set_table_drops_pending_prefix(self) -> None:
        engine = self.engine()
        engine.feed("g")

        engine.set_table(BindingTable())

        self.assertFalse(engine.pending)

    def _replay(self, steps: list[tuple[str, object]]) -> list[tuple[object, bool, tuple[str, ...]]]:
        clock = FakeClock()
        engine = KeySequenceEngine(self.table, timeout_ms=500, clock=clock)
        trace = []
        for kind, value in steps:
            if kind == "feed":
                outcome = engine.feed(value)
            else:
                clock.now += value
                outcome = engine.tick()
            handler = outcome.binding.handler if outcome.binding is not None else None
            trace.append((handler, outcome.pending, outcome.discarded))
        return trace

    def test_same_tokens_and_ticks_resolve_identically(self) -> None:
        steps = [
            ("feed", "s"),
            ("tick", 0.2),
            ("feed", "n"),
            ("feed", "s"),
            ("tick", 0.6),
            ("feed", "g"),
            ("feed", "q"),
            ("feed", "g"),
            ("feed", "g"),
            ("feed", "Z"),
        ]

        first = self._replay(steps)
        second = self._replay(steps)

        self.assertEqual(first, second)
        resolved = [handler for handler, _, _ in first if handler is not None]
        self.assertEqual(
            resolved,
            [
                InternalHandler("sort:name"),
                InternalHandler("short"),
                InternalHandler("quit"),
                InternalHandler("nav:top"),
            ],
        )


if __name__ == "__main__":
    unittest.main()
