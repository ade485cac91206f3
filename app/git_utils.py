#!/usr/bin/env python3
"""
Git utilities

This module enumerates the files of a source tree, honouring .gitignore files
and explicit ignore folders, so that build output and vendored code are not
scanned for localization keys.
"""

import os
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import pathspec

# Get logger
logger = logging.getLogger(__name__)

FilePredicate = Callable[[Path], bool]


def parse_gitignore_file(gitignore_path: str) -> List[str]:
    """
    Parse a single .gitignore file and extract its patterns.

    Empty lines and comments are skipped.

    Args:
        gitignore_path: Path to the .gitignore file

    Returns:
        List of patterns from the file

    Raises:
        OSError: If the file cannot be read
    """
    patterns = []
    with open(gitignore_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            patterns.append(line)
    logger.debug(f"Parsed {len(patterns)} patterns from {gitignore_path}")
    return patterns


def find_all_gitignores(root_dir: str) -> Dict[str, List[str]]:
    """
    Find every .gitignore file that can affect files below ``root_dir``.

    That is the .gitignore files of ``root_dir`` and its parent directories,
    plus those nested anywhere inside ``root_dir``.

    Args:
        root_dir: The root of the tree that will be scanned

    Returns:
        Dictionary mapping absolute directory paths to lists of gitignore patterns
    """
    gitignore_dirs = []

    # Parents, up to the filesystem root
    current_path = os.path.abspath(root_dir)
    while True:
        gitignore_dirs.append(current_path)
        parent_path = os.path.dirname(current_path)
        if parent_path == current_path:
            break
        current_path = parent_path

    # Nested directories
    for dir_path, dir_names, _ in os.walk(os.path.abspath(root_dir)):
        dir_names[:] = [name for name in dir_names if name != ".git"]
        if dir_path != os.path.abspath(root_dir):
            gitignore_dirs.append(dir_path)

    gitignore_files: Dict[str, List[str]] = {}
    for dir_path in gitignore_dirs:
        gitignore_path = os.path.join(dir_path, ".gitignore")
        if not os.path.isfile(gitignore_path):
            continue
        try:
            gitignore_files[dir_path] = parse_gitignore_file(gitignore_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Error parsing .gitignore at {gitignore_path}: {e}")

    return gitignore_files


def is_ignored_by_gitignores(path: Path, all_gitignores: Dict[str, List[str]]) -> bool:
    """
    Check if a path is ignored by any of the given .gitignore files.

    Every .gitignore in an ancestor directory of ``path`` is applied, from the
    filesystem root towards the file, with patterns matched relative to the
    directory holding the .gitignore.

    Args:
        path: The path to check
        all_gitignores: Dictionary mapping directory paths to lists of gitignore patterns

    Returns:
        True if the path should be ignored, False otherwise
    """
    path_str = os.path.abspath(path).replace("\\", "/")

    parent_dirs = []
    current_dir = os.path.dirname(path_str)
    while current_dir:
        parent_dirs.append(current_dir)
        parent = os.path.dirname(current_dir)
        if parent == current_dir:
            break
        current_dir = parent

    for parent_dir in reversed(parent_dirs):
        patterns = all_gitignores.get(parent_dir)
        if not patterns:
            continue
        rel_path = os.path.relpath(path_str, parent_dir).replace("\\", "/")
        spec = pathspec.GitIgnoreSpec.from_lines(patterns)
        if spec.match_file(rel_path):
            return True

    return False


def has_extension(extensions: Iterable[str]) -> FilePredicate:
    """Return a predicate accepting files whose suffix is one of ``extensions``."""
    suffixes = {ext.lower() for ext in extensions}
    return lambda path: path.suffix.lower() in suffixes


def iter_files(
    root_dir: str,
    predicate: FilePredicate,
    ignore_folders: Optional[List[str]] = None,
) -> Iterator[Path]:
    """
    Yield the files below ``root_dir`` accepted by ``predicate``, in sorted order.

    Files can be excluded either by an explicit list of folder names, or, when
    no folders are given, by the patterns of the .gitignore files that apply
    to the tree.

    Args:
        root_dir: Directory to scan
        predicate: File filter, usually built with :func:`has_extension`
        ignore_folders: Optional list of folder names to skip

    Yields:
        Paths of the accepted files
    """
    root = Path(root_dir)
    all_gitignores: Dict[str, List[str]] = {}
    if ignore_folders:
        logger.debug(f"Using explicit ignore folders: {', '.join(ignore_folders)}")
    else:
        all_gitignores = find_all_gitignores(root_dir)
        if all_gitignores:
            total_patterns = sum(len(patterns) for patterns in all_gitignores.values())
            logger.debug(f"Using {total_patterns} patterns from .gitignore files")

    for file_path in sorted(root.rglob("*")):
        if not file_path.is_file() or not predicate(file_path):
            continue
        relative_parts = file_path.relative_to(root).parts[:-1]
        if ignore_folders and any(part in ignore_folders for part in relative_parts):
            logger.debug(f"Skipping {file_path} (matched ignore_folders)")
            continue
        if all_gitignores and is_ignored_by_gitignores(file_path, all_gitignores):
            logger.debug(f"Skipping {file_path} (matched gitignore pattern)")
            continue
        yield file_path
