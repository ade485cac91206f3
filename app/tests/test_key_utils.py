#!/usr/bin/env python3
"""
Tests for the key normalization helpers.
"""
import os
import sys
import unittest

# Add parent directory to path for module import
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from key_utils import (
    find_illegal_key_reason,
    to_properties_key,
    to_translation_value,
    unescape_properties_key,
)


class TestKeyNormalization(unittest.TestCase):
    """Tests for converting keys to the properties format and back."""

    def test_to_properties_key(self):
        """Spaces and separators are replaced or escaped."""
        test_cases = [
            # Format: (input, expected output)
            ("simple", "simple"),
            ("Open file", "Open_file"),
            ("Name: %0", "Name\\:_%0"),
            ("a = b", "a_\\=_b"),
            ('he said "hi"', 'he_said_"hi"'),
            ("already_normalized", "already_normalized"),
            ("", ""),
            (None, None),
        ]

        for input_text, expected in test_cases:
            with self.subTest(input_text=input_text):
                self.assertEqual(to_properties_key(input_text), expected)

    def test_to_properties_key_does_not_trim(self):
        """Surrounding whitespace is kept so that trailing spaces can be detected."""
        self.assertEqual(to_properties_key(" padded "), "_padded_")

    def test_unescape_properties_key(self):
        """Separator escapes are removed, other characters are kept."""
        self.assertEqual(unescape_properties_key("Name\\:_%0_\\=_%1"), "Name:_%0_=_%1")
        self.assertEqual(unescape_properties_key("plain_key"), "plain_key")
        self.assertEqual(unescape_properties_key(""), "")

    def test_to_translation_value(self):
        """The display text of a key has spaces and plain separators."""
        self.assertEqual(to_translation_value("Open_file\\:_%0"), "Open file: %0")


class TestIllegalKeys(unittest.TestCase):
    """Tests for the rules a normalized key must satisfy."""

    def test_legal_keys(self):
        """Ordinary keys have no reason attached."""
        for key in ["greeting", "Open_file", "Name\\:_%0", "100%"]:
            with self.subTest(key=key):
                self.assertIsNone(find_illegal_key_reason(key))

    def test_trailing_space(self):
        """A trailing underscore stands for a trailing space."""
        self.assertIn("ends with a space", find_illegal_key_reason("trailing_"))

    def test_newline_escape(self):
        """The two-character sequence backslash-n is rejected."""
        self.assertIn("new line", find_illegal_key_reason("line\\nbreak"))

    def test_real_newline_is_not_the_escape(self):
        """Only the escape sequence is checked, not a raw newline character."""
        self.assertIsNone(find_illegal_key_reason("line\nbreak"))


if __name__ == "__main__":
    unittest.main()
