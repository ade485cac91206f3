#!/usr/bin/env python3
"""
Tests for gitignore pattern handling in git_utils module.

This module tests the functionality for parsing .gitignore files and
applying the patterns to determine which files should be skipped while
scanning a source tree.
"""
import os
import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path for module import
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from git_utils import (
    find_all_gitignores,
    has_extension,
    is_ignored_by_gitignores,
    iter_files,
    parse_gitignore_file,
)


class TestGitIgnore(unittest.TestCase):
    """Tests for reading and applying .gitignore files."""

    def setUp(self):
        """Create a temporary directory with gitignore files for testing."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.root = os.path.abspath(self.temp_dir.name)

        self.gitignore_content = """
# Comments should be ignored
/build/
*.iml
generated/
"""
        with open(os.path.join(self.root, ".gitignore"), "w") as f:
            f.write(self.gitignore_content)

        nested_dir = os.path.join(self.root, "module")
        os.makedirs(nested_dir)
        with open(os.path.join(nested_dir, ".gitignore"), "w") as f:
            f.write("Scratch.java\n")

    def test_parse_gitignore_file(self):
        """Comments and blank lines are skipped."""
        patterns = parse_gitignore_file(os.path.join(self.root, ".gitignore"))
        self.assertEqual(patterns, ["/build/", "*.iml", "generated/"])

    def test_find_all_gitignores(self):
        """Root and nested .gitignore files are found."""
        gitignores = find_all_gitignores(self.root)

        self.assertIn(self.root, gitignores)
        self.assertIn(os.path.join(self.root, "module"), gitignores)
        self.assertEqual(gitignores[os.path.join(self.root, "module")], ["Scratch.java"])

    def test_is_ignored_by_gitignores(self):
        """Patterns apply relative to the directory of their .gitignore."""
        gitignores = find_all_gitignores(self.root)
        test_cases = [
            # Format: (relative path, expected result)
            ("build/Out.java", True),
            ("module/build/Out.java", False),
            ("project.iml", True),
            ("src/generated/Gen.java", True),
            ("module/Scratch.java", True),
            ("Scratch.java", False),
            ("src/Main.java", False),
        ]

        for relative_path, expected in test_cases:
            with self.subTest(path=relative_path):
                path = Path(self.root) / relative_path
                self.assertEqual(is_ignored_by_gitignores(path, gitignores), expected)


class TestIterFiles(unittest.TestCase):
    """Tests for enumerating the files of a source tree."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.root = Path(self.temp_dir.name)
        for relative_path in [
            "b/Second.java",
            "a/First.java",
            "a/View.FXML",
            "build/Generated.java",
            "README.md",
        ]:
            path = self.root / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("", encoding="utf-8")

    def relative(self, paths):
        return [path.relative_to(self.root).as_posix() for path in paths]

    def test_sorted_and_filtered(self):
        """Files come back in sorted order, filtered by suffix."""
        files = iter_files(str(self.root), has_extension([".java"]))
        self.assertEqual(
            self.relative(files), ["a/First.java", "b/Second.java", "build/Generated.java"]
        )

    def test_extension_match_ignores_case(self):
        files = iter_files(str(self.root), has_extension([".fxml"]))
        self.assertEqual(self.relative(files), ["a/View.FXML"])

    def test_ignore_folders(self):
        """Explicit folder names exclude every file below them."""
        files = iter_files(str(self.root), has_extension([".java"]), ignore_folders=["build"])
        self.assertEqual(self.relative(files), ["a/First.java", "b/Second.java"])

    def test_ignore_folders_replace_gitignore(self):
        """With explicit folders, .gitignore files are not consulted."""
        (self.root / ".gitignore").write_text("a/\n", encoding="utf-8")

        with_gitignore = iter_files(str(self.root), has_extension([".java"]))
        with_folders = iter_files(
            str(self.root), has_extension([".java"]), ignore_folders=["build"]
        )

        self.assertEqual(
            self.relative(with_gitignore), ["b/Second.java", "build/Generated.java"]
        )
        self.assertEqual(self.relative(with_folders), ["a/First.java", "b/Second.java"])


if __name__ == "__main__":
    unittest.main()
