"""Marks file persistence."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from lazybrowser.marks import is_mark_key, load_marks, save_marks


class MarksTests(unittest.TestCase):
    def test_save_then_load_sorted_lines(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "state" / "marks"

            save_marks(path, {"b": Path("/srv"), "a": Path("/home/me")})

            self.assertEqual(path.read_text(encoding="utf-8"), "a\t/home/me\nb\t/srv\n")
            self.assertEqual(load_marks(path), {"a": Path("/home/me"), "b": Path("/srv")})
            self.assertFalse(path.with_name("marks.tmp").exists())

    def test_malformed_lines_are_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "marks"
            path.write_text("# comment\nab\t/x\nc /y\nd\t\n\ne\t/ok\n", encoding="utf-8")

            self.assertEqual(load_marks(path), {"e": Path("/ok")})

    def test_missing_file_means_no_marks(self) -> None:
        self.assertEqual(load_marks(Path("/nonexistent/lazybrowser/marks")), {})

    def test_mark_keys_are_single_visible_characters(self) -> None:
        self.assertTrue(is_mark_key("a"))
        self.assertFalse(is_mark_key(" "))
        self.assertFalse(is_mark_key("ab"))
        self.assertFalse(is_mark_key("\t"))


if __name__ == "__main__":
    unittest.main()
