"""Regression tests for ANSI-aware width, cropping, and overlay splicing.

Pane cells depend on these to keep styled and wide text column-aligned.
"""

import unittest

from lazybrowser import ansi as ansi_mod


class AnsiWidthTests(unittest.TestCase):
    def test_escape_sequences_do_not_count(self) -> None:
        self.assertEqual(ansi_mod.display_width("\x1b[31mab\x1b[0m"), 2)

    def test_wide_characters_take_two_columns(self) -> None:
        self.assertEqual(ansi_mod.display_width("漢a"), 3)

    def test_tabs_expand_to_next_stop(self) -> None:
        self.assertEqual(ansi_mod.display_width("ab\tc"), 9)

    def test_combining_marks_take_no_columns(self) -> None:
        self.assertEqual(ansi_mod.display_width("e\u0301"), 1)


class AnsiCropTests(unittest.TestCase):
    def test_crop_keeps_styles_and_trims_text(self) -> None:
        self.assertEqual(ansi_mod.crop_ansi_line("\x1b[31mabcdef", 0, 3), "\x1b[31mabc")

    def test_crop_never_splits_wide_character(self) -> None:
        self.assertEqual(ansi_mod.crop_ansi_line("a漢", 0, 2), "a")

    def test_crop_replays_style_from_before_the_window(self) -> None:
        self.assertEqual(ansi_mod.crop_ansi_line("\x1b[31mabcdef", 2, 2), "\x1b[31mcd")

    def test_crop_expands_tabs_to_spaces(self) -> None:
        self.assertEqual(ansi_mod.crop_ansi_line("a\tb", 0, 10), "a" + " " * 7 + "b")

    def test_fit_pads_plain_text(self) -> None:
        self.assertEqual(ansi_mod.fit_ansi_line("ab", 4), "ab  ")

    def test_fit_resets_styled_text(self) -> None:
        self.assertEqual(ansi_mod.fit_ansi_line("\x1b[31mabcdef", 3), "\x1b[31mabc\x1b[0m")


class AnsiOverlayTests(unittest.TestCase):
    def test_box_replaces_middle_columns(self) -> None:
        spliced = ansi_mod.overlay_ansi_line("abcdefgh", 2, "XY", 8)

        self.assertEqual(ansi_mod.strip_ansi(spliced), "abXYefgh")

    def test_tail_resumes_in_its_own_color(self) -> None:
        spliced = ansi_mod.overlay_ansi_line("\x1b[32mabcdefgh", 1, "XY", 6)

        self.assertTrue(spliced.endswith("\x1b[32mdef\x1b[0m"))
        self.assertEqual(ansi_mod.display_width(spliced), 6)


if __name__ == "__main__":
    unittest.main()
