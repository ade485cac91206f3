#!/usr/bin/env python3
"""
Call site scanner

Finds ``Localization.lang(...)`` and ``Localization.menuTitle(...)`` calls in
source text and recovers the literal key passed as the first argument.

Matching is lexical. A call that appears inside a comment or another string
literal is picked up like any other call site.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from key_utils import find_illegal_key_reason, to_properties_key
from localization_types import BundleKind, FatalExtractionError, LocalizationEntry

logger = logging.getLogger(__name__)

LOCALIZATION_CLASS = "Localization"
# Longest snippet of source text quoted in an error message.
MAX_SNIPPET_LENGTH = 80

_QUOTE_PLACEHOLDER = "\u0000"
# Escaped backslashes are matched as a pair so that "a\\" still ends the literal.
_ESCAPE_PATTERN = re.compile(r'\\\\|\\"')
# Character literals: 'x', '\n', '\'', '\123', '"'
_CHAR_LITERAL_PATTERN = re.compile(
    r"'(?:[^'\\\n]|\\(?:u+[0-9a-fA-F]{4}|[0-7]{1,3}|.))'"
)


def build_call_pattern(method: str, owner: str = LOCALIZATION_CLASS) -> "re.Pattern":
    """Return the regex matching ``<owner> . <method> (`` with optional whitespace."""
    return re.compile(
        r"\b" + re.escape(owner) + r"\s*\.\s*" + re.escape(method) + r"\s*\("
    )


CALL_PATTERNS: Dict[BundleKind, "re.Pattern"] = {
    kind: build_call_pattern(kind.value) for kind in BundleKind
}


class _QuoteState(Enum):
    OUTSIDE = auto()
    INSIDE = auto()
    ESCAPE = auto()


@dataclass
class ScanOutcome:
    """
    Keys extracted from one text, or the error that stopped the extraction.

    A failed outcome still carries the entries found before the bad call site,
    but callers should discard them: the file's contribution is incomplete.
    """

    entries: List[LocalizationEntry] = field(default_factory=list)
    error: Optional[FatalExtractionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def keys(self) -> List[str]:
        return [entry.key for entry in self.entries]

    def unwrap(self) -> List[LocalizationEntry]:
        """Return the entries, raising the extraction error if there was one."""
        if self.error is not None:
            raise self.error
        return self.entries


def _snippet(text: str, start: int) -> str:
    snippet = text[start : start + MAX_SNIPPET_LENGTH].replace("\n", " ")
    if start + MAX_SNIPPET_LENGTH < len(text):
        snippet += "..."
    return snippet


def _char_literal_end(text: str, index: int) -> int:
    """Index just past the character literal at ``index``, or past a lone apostrophe."""
    match = _CHAR_LITERAL_PATTERN.match(text, index)
    return match.end() if match else index + 1


def find_argument_list(text: str, start: int) -> Tuple[Optional[str], int]:
    """
    Walk balanced parentheses starting right after an opening ``(``.

    Parentheses inside double-quoted string literals and character literals
    do not count. Returns the argument text (without the closing parenthesis)
    and the index of the closing parenthesis, or ``(None, len(text))`` when
    the call never closes.
    """
    depth = 1
    state = _QuoteState.OUTSIDE
    index = start
    length = len(text)

    while index < length:
        ch = text[index]
        if state is _QuoteState.ESCAPE:
            state = _QuoteState.INSIDE
        elif state is _QuoteState.INSIDE:
            if ch == "\\":
                state = _QuoteState.ESCAPE
            elif ch == '"':
                state = _QuoteState.OUTSIDE
        elif ch == "'":
            index = _char_literal_end(text, index)
            continue
        elif ch == '"':
            state = _QuoteState.INSIDE
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return text[start:index], index
        index += 1

    return None, length


def _protect_escaped_quotes(arguments: str) -> str:
    return _ESCAPE_PATTERN.sub(
        lambda match: _QUOTE_PLACEHOLDER if match.group(0) == '\\"' else match.group(0),
        arguments,
    )


def extract_key_argument(arguments: str) -> str:
    """
    Return the literal text of the first argument of a call.

    Every quoted span before the first comma outside quotes is appended to
    the key, so ``"part one" + "part two"`` yields ``part onepart two``.
    Character literals such as ``'"'`` are not part of the key.
    """
    text = _protect_escaped_quotes(arguments)
    buffer: List[str] = []
    state = _QuoteState.OUTSIDE
    index = 0
    length = len(text)

    while index < length:
        ch = text[index]
        if state is _QuoteState.INSIDE:
            if ch == '"':
                state = _QuoteState.OUTSIDE
            else:
                buffer.append(ch)
        elif ch == "'":
            index = _char_literal_end(text, index)
            continue
        elif ch == '"':
            state = _QuoteState.INSIDE
        elif ch == ",":
            break
        index += 1

    return "".join(buffer).replace(_QUOTE_PLACEHOLDER, '"')


def scan_text(
    text: str, bundle_kind: BundleKind, path: Optional[Path] = None
) -> ScanOutcome:
    """
    Extract every localization key requested from ``bundle_kind`` in ``text``.

    Stops at the first call site that cannot be extracted and returns the
    error in the outcome instead of raising it.
    """
    outcome = ScanOutcome()
    pattern = CALL_PATTERNS[bundle_kind]
    line = 1
    line_offset = 0

    for match in pattern.finditer(text):
        # Matches come in order, so lines are counted from the previous match
        line += text.count("\n", line_offset, match.start())
        line_offset = match.start()
        arguments, _ = find_argument_list(text, match.end())
        if arguments is None:
            outcome.error = FatalExtractionError(
                "unbalanced parentheses in localization call",
                path=path,
                line=line,
                text=_snippet(text, match.start()),
            )
            return outcome

        language_key = extract_key_argument(arguments)
        properties_key = to_properties_key(language_key)

        reason = find_illegal_key_reason(properties_key)
        if reason is not None:
            outcome.error = FatalExtractionError(
                f'"{language_key}" {reason}', path=path, line=line, text=properties_key
            )
            return outcome

        if not properties_key.strip():
            logger.debug(f"Skipping empty localization key at {path}:{line}")
            continue

        outcome.entries.append(
            LocalizationEntry(path, properties_key, bundle_kind, line)
        )

    return outcome


def get_language_keys_in_string(text: str, bundle_kind: BundleKind) -> List[str]:
    """Return the keys found in ``text``, raising FatalExtractionError on bad calls."""
    return [entry.key for entry in scan_text(text, bundle_kind).unwrap()]


def scan_file(path: Path, bundle_kind: BundleKind) -> ScanOutcome:
    """
    Read a source file and scan it.

    Raises OSError or UnicodeDecodeError when the file cannot be read; the
    caller decides whether that is fatal.
    """
    text = path.read_text(encoding="utf-8")
    outcome = scan_text(text, bundle_kind, path)
    logger.debug(
        f"Found {len(outcome.entries)} '{bundle_kind.value}' keys in {path}"
    )
    return outcome
