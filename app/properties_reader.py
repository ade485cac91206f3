#!/usr/bin/env python3
"""
Properties file reader

Reads ``key=value`` resource files with the conventions of Java properties
files: ``#`` and ``!`` comments, ``=``, ``:`` or whitespace separators,
backslash line continuations and ``\\uXXXX`` escapes.

Unlike ``java.util.Properties`` the first definition of a key wins; later
definitions are reported as duplicates.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

logger = logging.getLogger(__name__)

_WHITESPACE = " \t\f"
_SEPARATORS = "=:"
_SIMPLE_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")
_HEX_DIGITS_PATTERN = re.compile(r"[0-9a-fA-F]{4}")


def _ends_with_continuation(line: str) -> bool:
    """A line continues when it ends with an odd number of backslashes."""
    backslashes = len(line) - len(line.rstrip("\\"))
    return backslashes % 2 == 1


def iter_logical_lines(text: str) -> Iterator[Tuple[int, str]]:
    """
    Yield ``(line_number, logical_line)`` pairs, joining continuation lines
    and dropping blank and comment lines.
    """
    physical_lines = _LINE_BREAK_PATTERN.split(text)
    index = 0
    while index < len(physical_lines):
        line_number = index + 1
        line = physical_lines[index].lstrip(_WHITESPACE)
        index += 1

        if not line or line[0] in "#!":
            continue

        while _ends_with_continuation(line) and index < len(physical_lines):
            line = line[:-1] + physical_lines[index].lstrip(_WHITESPACE)
            index += 1
        if _ends_with_continuation(line):
            # Continuation on the last line of the file
            line = line[:-1]

        yield line_number, line


def unescape(text: str) -> str:
    """Resolve backslash escapes the way properties files define them."""
    if "\\" not in text:
        return text

    result: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        ch = text[index]
        index += 1
        if ch != "\\":
            result.append(ch)
            continue
        if index >= length:
            break

        ch = text[index]
        index += 1
        if ch == "u":
            digits = text[index : index + 4]
            if not _HEX_DIGITS_PATTERN.fullmatch(digits):
                raise ValueError(f"Malformed \\uxxxx encoding in '{text}'")
            result.append(chr(int(digits, 16)))
            index += 4
        else:
            result.append(_SIMPLE_ESCAPES.get(ch, ch))

    return "".join(result)


def split_key_value(line: str) -> Tuple[str, str]:
    """Split a logical line into its raw (still escaped) key and value."""
    key_end = len(line)
    value_start = len(line)
    preceding_backslash = False

    for index, ch in enumerate(line):
        if preceding_backslash:
            preceding_backslash = False
            continue
        if ch == "\\":
            preceding_backslash = True
        elif ch in _SEPARATORS or ch in _WHITESPACE:
            key_end = index
            value_start = index
            break

    # Skip whitespace, at most one separator, then whitespace again
    index = value_start
    while index < len(line) and line[index] in _WHITESPACE:
        index += 1
    if index < len(line) and line[index] in _SEPARATORS:
        index += 1
        while index < len(line) and line[index] in _WHITESPACE:
            index += 1

    return line[:key_end], line[index:]


def parse_properties(text: str) -> Tuple[Dict[str, str], List[str]]:
    """
    Parse the text of a properties file.

    Returns:
        A tuple of (ordered key -> value mapping, keys defined more than once)

    Raises:
        ValueError: If an escape sequence is malformed
    """
    properties: Dict[str, str] = {}
    duplicates: List[str] = []

    for line_number, line in iter_logical_lines(text):
        raw_key, raw_value = split_key_value(line)
        try:
            key = unescape(raw_key)
            value = unescape(raw_value)
        except ValueError as e:
            raise ValueError(f"line {line_number}: {e}") from e

        if key in properties:
            logger.debug(f"Duplicate key '{key}' on line {line_number}; keeping first")
            if key not in duplicates:
                duplicates.append(key)
            continue
        properties[key] = value

    return properties, duplicates


def read_properties_file(path: Path) -> Tuple[Dict[str, str], List[str]]:
    """
    Read and parse a UTF-8 properties file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file contains a malformed escape sequence
    """
    text = Path(path).read_text(encoding="utf-8")
    properties, duplicates = parse_properties(text)
    logger.debug(
        f"Parsed {len(properties)} keys ({len(duplicates)} duplicates) from {path}"
    )
    return properties, duplicates
