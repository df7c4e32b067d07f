"""Regression tests for raw-key decoding.

Covers ESC timing, arrow/meta sequences, and control-key token mapping.
Tokens must match the spelling key bindings are normalized to.
"""

import os
import time
import unittest

from lazybrowser import input as input_mod
from lazybrowser.keymap.tokens import tokenize_sequence


class ReadKeyRegressionTests(unittest.TestCase):
    def setUp(self) -> None:
        input_mod._PENDING_BYTES.clear()

    def tearDown(self) -> None:
        input_mod._PENDING_BYTES.clear()

    def _read_all(self, data: bytes, count: int) -> list[str]:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, data)
            return [input_mod.read_key(read_fd, timeout_ms=20) for _ in range(count)]
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_single_escape_returns_esc_without_second_keypress(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, b"\x1b")
            started = time.monotonic()
            key = input_mod.read_key(read_fd, timeout_ms=20)
            elapsed = time.monotonic() - started
        finally:
            os.close(read_fd)
            os.close(write_fd)

        self.assertEqual(key, "<Esc>")
        self.assertLess(elapsed, 0.2)

    def test_arrow_sequences_are_recognized(self) -> None:
        self.assertEqual(self._read_all(b"\x1b[A\x1b[B\x1b[C\x1b[D", 4), ["<Up>", "<Down>", "<Right>", "<Left>"])

    def test_double_escape_yields_two_escapes(self) -> None:
        self.assertEqual(self._read_all(b"\x1b\x1b", 2), ["<Esc>", "<Esc>"])

    def test_escape_followed_by_printable_is_meta(self) -> None:
        self.assertEqual(self._read_all(b"\x1ba", 1), ["<M-a>"])

    def test_control_keys_map_to_binding_tokens(self) -> None:
        self.assertEqual(self._read_all(b"\x10\x0b", 2), ["<C-p>", "<C-k>"])

    def test_enter_tab_and_backspace(self) -> None:
        self.assertEqual(self._read_all(b"\r\t\x7f", 3), ["<Enter>", "<Tab>", "<BS>"])

    def test_utf8_character_is_read_whole(self) -> None:
        self.assertEqual(self._read_all("é".encode("utf-8"), 1), ["é"])

    def test_timeout_returns_empty_string(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            key = input_mod.read_key(read_fd, timeout_ms=10)
        finally:
            os.close(read_fd)
            os.close(write_fd)
        self.assertEqual(key, "")

    def test_decoded_tokens_match_binding_spelling(self) -> None:
        tokens = self._read_all(b"g\x10\x1b[A", 3)
        self.assertEqual(tuple(tokens), tokenize_sequence("g<c-p><up>"))


if __name__ == "__main__":
    unittest.main()
