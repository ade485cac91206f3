#!/usr/bin/env python3
"""
Localization data model

Shared types for the consistency checker: the bundle kinds, the extracted
entries, the authoritative key set, the scan result and the error taxonomy.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Optional


class BundleKind(Enum):
    """
    The two independent key namespaces.

    The value is the method name on the ``Localization`` class that requests a
    key from this bundle.
    """

    LANG = "lang"
    MENU = "menuTitle"

    @property
    def bundle_name(self) -> str:
        """Base name of the properties files backing this bundle."""
        return "JabRef" if self is BundleKind.LANG else "Menu"

    @property
    def uses_markup(self) -> bool:
        """Only the primary bundle is referenced from FXML documents."""
        return self is BundleKind.LANG

    @classmethod
    def from_name(cls, name: str) -> "BundleKind":
        """Accept either the enum name ("lang", "menu") or the method name."""
        normalized = name.strip()
        for kind in cls:
            if normalized.lower() in (kind.name.lower(), kind.value.lower()):
                return kind
        raise ValueError(
            f"Unknown bundle kind '{name}'. Expected one of: "
            f"{', '.join(kind.name.lower() for kind in cls)}"
        )


@dataclass(frozen=True)
class LocalizationEntry:
    """
    One key found in a source or markup file.

    Only ``key`` and ``bundle_kind`` take part in equality and hashing, so a
    set of entries holds one representative location per key.
    """

    path: Optional[Path] = field(compare=False)
    key: str
    bundle_kind: BundleKind
    line: Optional[int] = field(default=None, compare=False)

    @property
    def location(self) -> str:
        if self.path is None:
            return "<text>"
        if self.line is None:
            return str(self.path)
        return f"{self.path}:{self.line}"

    def __str__(self) -> str:
        return f"{self.key} ({self.location})"


class KeySet:
    """Immutable, naturally sorted set of normalized properties keys."""

    __slots__ = ("_keys", "_lookup")

    def __init__(self, keys: Iterable[str] = ()) -> None:
        lookup = frozenset(keys)
        self._lookup = lookup
        self._keys = tuple(sorted(lookup))

    def __contains__(self, key: object) -> bool:
        return key in self._lookup

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, KeySet):
            return self._keys == other._keys
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._keys)

    def __repr__(self) -> str:
        return f"KeySet({list(self._keys)!r})"

    def difference(self, keys: Iterable[str]) -> List[str]:
        """Return the sorted keys of this set that are not in ``keys``."""
        excluded = set(keys)
        return [key for key in self._keys if key not in excluded]


@dataclass
class ScanResult:
    """Outcome of checking one bundle kind against its base resource file."""

    bundle_kind: BundleKind
    missing_keys: List[LocalizationEntry] = field(default_factory=list)
    obsolete_keys: List[str] = field(default_factory=list)
    skipped_files: List[Path] = field(default_factory=list)
    extraction_errors: List["FatalExtractionError"] = field(default_factory=list)
    duplicate_keys: List[str] = field(default_factory=list)
    # Authoritative keys the result was computed against
    base_keys: KeySet = field(default_factory=KeySet, compare=False, repr=False)

    @property
    def is_consistent(self) -> bool:
        return not (self.missing_keys or self.obsolete_keys or self.extraction_errors)

    @property
    def is_partial(self) -> bool:
        """True when some files could not be read or evaluated."""
        return bool(self.skipped_files)


# ------------------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------------------


class LocalizationCheckError(Exception):
    """Base class for all checker errors."""


class FatalExtractionError(LocalizationCheckError):
    """A call site that cannot be turned into a legal localization key."""

    def __init__(
        self,
        reason: str,
        path: Optional[Path] = None,
        line: Optional[int] = None,
        text: str = "",
    ) -> None:
        self.reason = reason
        self.path = path
        self.line = line
        self.text = text
        super().__init__(self._format())

    def _format(self) -> str:
        location = str(self.path) if self.path is not None else "<text>"
        if self.line is not None:
            location = f"{location}:{self.line}"
        message = f"{location}: {self.reason}"
        if self.text:
            message += f" [{self.text}]"
        return message


class NonFatalFileError(LocalizationCheckError):
    """A single file could not be read or evaluated; the scan continues."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ConfigurationError(LocalizationCheckError):
    """The run cannot start, e.g. the base resource file is missing."""
