"""Command-surface parsing: prefix resolution, chaining, and completion."""

from __future__ import annotations

import unittest

from lazybrowser.commands import (
    CommandError,
    ParsedCommand,
    complete,
    complete_line,
    parse_chain,
    resolve_command,
)


class ResolveCommandTests(unittest.TestCase):
    def test_exact_name_wins_over_longer_matches(self) -> None:
        self.assertEqual(resolve_command("mark"), "mark")
        self.assertEqual(resolve_command("SORT"), "sort")

    def test_unique_prefix_resolves(self) -> None:
        self.assertEqual(resolve_command("q"), "quit")
        self.assertEqual(resolve_command("me"), "messages")

    def test_ambiguous_prefix_lists_candidates(self) -> None:
        with self.assertRaisesRegex(CommandError, "Ambiguous command: pa \\(parent, paste\\)"):
            resolve_command("pa")

    def test_unknown_command(self) -> None:
        with self.assertRaisesRegex(CommandError, "Unknown command: zap"):
            resolve_command("zap")

    def test_complete_is_case_insensitive(self) -> None:
        self.assertEqual(complete("SO"), ["sort", "sort_reverse_toggle"])


class ParseChainTests(unittest.TestCase):
    def test_chain_splits_on_separator_and_keeps_arguments(self) -> None:
        self.assertEqual(
            parse_chain("sort size; display friendly;;quit"),
            [ParsedCommand("sort", "size"), ParsedCommand("display", "friendly"), ParsedCommand("quit")],
        )

    def test_run_takes_rest_of_line_verbatim(self) -> None:
        self.assertEqual(
            parse_chain("cd /tmp; run make clean; make all"),
            [ParsedCommand("cd", "/tmp"), ParsedCommand("run", "make clean; make all")],
        )

    def test_run_by_prefix_also_takes_the_tail(self) -> None:
        self.assertEqual(parse_chain("ru echo a;b"), [ParsedCommand("run", "echo a;b")])

    def test_bad_segment_raises(self) -> None:
        with self.assertRaises(CommandError):
            parse_chain("sort size; s")


class CompleteLineTests(unittest.TestCase):
    def test_unique_candidate_completes_with_space(self) -> None:
        self.assertEqual(complete_line("qu"), ("quit ", ["quit"]))

    def test_several_candidates_extend_to_common_prefix(self) -> None:
        text, candidates = complete_line("so")

        self.assertEqual(text, "sort")
        self.assertEqual(candidates, ["sort", "sort_reverse_toggle"])

    def test_completes_last_chained_segment_only(self) -> None:
        self.assertEqual(complete_line("sort size; sh"), ("sort size; show_hidden_toggle ", ["show_hidden_toggle"]))

    def test_arguments_are_not_completed(self) -> None:
        self.assertEqual(complete_line("sort si"), ("sort si", []))


if __name__ == "__main__":
    unittest.main()
