"""Tests for fallback preview text loading and highlighting."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from lazybrowser import highlight
from lazybrowser.ansi import strip_ansi


class HighlightTests(unittest.TestCase):
    def test_python_source_gets_ansi_colors(self) -> None:
        rendered = highlight.colorize_source("def main():\n    return 1\n", Path("x.py"))

        self.assertIn("\x1b[", rendered)
        self.assertEqual(strip_ansi(rendered), "def main():\n    return 1")

    def test_unknown_extension_falls_back_to_plain_text(self) -> None:
        rendered = highlight.colorize_source("just words", Path("notes.unknownext"))

        self.assertEqual(strip_ansi(rendered), "just words")

    def test_unknown_style_uses_default(self) -> None:
        self.assertEqual(highlight._normalize_style("no-such-style"), highlight.DEFAULT_STYLE)

    def test_read_head_limits_lines(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "f.txt"
            path.write_text("1\n2\n3\n", encoding="utf-8")

            self.assertEqual(highlight.read_head(path, 2), "1\n2")


if __name__ == "__main__":
    unittest.main()
