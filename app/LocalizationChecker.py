#!/usr/bin/env python3
"""
Localization Consistency Checker

This script scans a source tree for Localization.lang(...) and
Localization.menuTitle(...) calls and for %key references in FXML documents,
and compares the keys it finds with the base-language properties files.
It reports keys that are used but not defined (missing) and keys that are
defined but never used (obsolete), and checks translated bundles for parity.
"""

import argparse
import logging
import os
import re
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from call_site_scanner import scan_file
from git_utils import has_extension, iter_files
from key_utils import to_properties_key, to_translation_value
from language_utils import BASE_LANGUAGE, get_language_name
from localization_types import (
    BundleKind,
    ConfigurationError,
    FatalExtractionError,
    KeySet,
    LocalizationEntry,
    NonFatalFileError,
    ScanResult,
)
from markup_collector import collect_markup_keys
from properties_reader import read_properties_file

DEFAULT_RESOURCES_DIR = "src/main/resources/l10n"
DEFAULT_SOURCE_EXTENSIONS = [".java"]
DEFAULT_MARKUP_EXTENSIONS = [".fxml"]

# ------------------------------------------------------------------------------
# Logger Setup
# ------------------------------------------------------------------------------

logger = logging.getLogger(__name__)


def configure_logging(trace: bool) -> None:
    """Configure logging to the console."""
    log_level = logging.DEBUG if trace else logging.INFO
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    # Configure the root logger so every module shares the same handlers/level.
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            existing_handler.setFormatter(formatter)

    logger.setLevel(log_level)


# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------


def _normalize_extensions(extensions: Iterable[str]) -> List[str]:
    normalized = []
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        normalized.append(ext if ext.startswith(".") else f".{ext}")
    return normalized


@dataclass
class CheckerConfig:
    """
    Configuration for a consistency check run.

    Attributes:
        source_root: Directory scanned for source and markup files
        resources_dir: Directory holding the <Bundle>_<lang>.properties files
        bundles: Bundle kinds to check (names such as "lang" are accepted)
        source_extensions: Suffixes of files scanned for call sites
        markup_extensions: Suffixes of markup documents (primary bundle only)
        ignore_folders: Folder names to skip; .gitignore files are used when empty
        jobs: Number of worker threads used for per-file extraction
        fail_fast: Raise the first extraction error instead of collecting it
        check_translations: Compare translated bundles with the base bundle
        strict_translations: Treat incomplete translations as a failed run
    """

    source_root: str
    resources_dir: str = DEFAULT_RESOURCES_DIR
    bundles: List[BundleKind] = field(default_factory=lambda: list(BundleKind))
    source_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS)
    )
    markup_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_MARKUP_EXTENSIONS)
    )
    ignore_folders: List[str] = field(default_factory=list)
    jobs: int = 1
    fail_fast: bool = False
    check_translations: bool = True
    strict_translations: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.source_root:
            raise ConfigurationError("Source root is required")

        try:
            self.bundles = [
                BundleKind.from_name(kind) if isinstance(kind, str) else kind
                for kind in self.bundles
            ]
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        if not self.bundles:
            raise ConfigurationError("At least one bundle kind is required")

        self.source_extensions = _normalize_extensions(self.source_extensions)
        self.markup_extensions = _normalize_extensions(self.markup_extensions)
        if not self.source_extensions:
            raise ConfigurationError("At least one source file extension is required")

        if self.jobs < 1:
            raise ConfigurationError(f"Number of jobs must be at least 1, got {self.jobs}")


# ------------------------------------------------------------------------------
# Base Resource Files
# ------------------------------------------------------------------------------


def base_properties_path(resources_dir: str, bundle_kind: BundleKind) -> Path:
    """Return the path of the base-language properties file of a bundle."""
    return Path(resources_dir) / f"{bundle_kind.bundle_name}_{BASE_LANGUAGE}.properties"


def keys_from_properties(keys: Iterable[str]) -> KeySet:
    """Normalize the keys of a properties file the same way extracted keys are."""
    return KeySet(to_properties_key(key.strip()) for key in keys)


def get_keys_in_properties_file(path: Path) -> Tuple[KeySet, List[str]]:
    """
    Load the authoritative key set from a properties file.

    Returns:
        A tuple of (normalized key set, keys defined more than once)

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed
    """
    if not path.is_file():
        raise ConfigurationError(f"Base resource file {path} does not exist")
    try:
        properties, duplicates = read_properties_file(path)
    except (OSError, UnicodeDecodeError, ValueError) as e:
        raise ConfigurationError(f"Cannot load base resource file {path}: {e}") from e

    key_set = keys_from_properties(properties.keys())
    logger.debug(f"Loaded {len(key_set)} keys from {path}")
    return key_set, [to_properties_key(key.strip()) for key in duplicates]


# ------------------------------------------------------------------------------
# Entry Collection
# ------------------------------------------------------------------------------


@dataclass
class EntryCollection:
    """Localization entries found in a file tree, plus the files that failed."""

    entries: Set[LocalizationEntry] = field(default_factory=set)
    skipped_files: List[Path] = field(default_factory=list)
    extraction_errors: List[FatalExtractionError] = field(default_factory=list)

    @property
    def keys(self) -> Set[str]:
        return {entry.key for entry in self.entries}


@dataclass
class _FileResult:
    entries: List[LocalizationEntry] = field(default_factory=list)
    skipped: Optional[NonFatalFileError] = None
    error: Optional[FatalExtractionError] = None


def _extract_source_file(path: Path, bundle_kind: BundleKind) -> _FileResult:
    try:
        outcome = scan_file(path, bundle_kind)
    except (OSError, UnicodeDecodeError) as e:
        return _FileResult(skipped=NonFatalFileError(path, f"cannot read source file: {e}"))
    if not outcome.ok:
        return _FileResult(error=outcome.error)
    return _FileResult(entries=outcome.entries)


def _extract_markup_file(path: Path, bundle_kind: BundleKind) -> _FileResult:
    try:
        keys = collect_markup_keys(path)
    except NonFatalFileError as e:
        return _FileResult(skipped=e)
    return _FileResult(
        entries=[LocalizationEntry(path, key, bundle_kind) for key in sorted(keys)]
    )


def find_localization_entries(
    source_root: str,
    bundle_kind: BundleKind,
    source_extensions: Iterable[str] = DEFAULT_SOURCE_EXTENSIONS,
    markup_extensions: Iterable[str] = DEFAULT_MARKUP_EXTENSIONS,
    ignore_folders: Optional[List[str]] = None,
    jobs: int = 1,
    fail_fast: bool = False,
) -> EntryCollection:
    """
    Collect the localization entries of one bundle kind from a file tree.

    Source files are scanned for call sites; markup documents are evaluated
    only for the primary bundle. Files are processed in sorted path order, so
    the location kept for a key that occurs several times is stable.

    Args:
        source_root: Directory to scan
        bundle_kind: Which bundle's keys to collect
        source_extensions: Suffixes of source files
        markup_extensions: Suffixes of markup documents
        ignore_folders: Folder names to skip
        jobs: Number of worker threads for per-file extraction
        fail_fast: Raise the first FatalExtractionError instead of collecting it

    Returns:
        An EntryCollection with the entries and the files that failed

    Raises:
        FatalExtractionError: Only when fail_fast is set
    """
    tasks = [
        (path, _extract_source_file)
        for path in iter_files(source_root, has_extension(source_extensions), ignore_folders)
    ]
    if bundle_kind.uses_markup and markup_extensions:
        tasks.extend(
            (path, _extract_markup_file)
            for path in iter_files(
                source_root, has_extension(markup_extensions), ignore_folders
            )
        )
    logger.debug(
        f"Scanning {len(tasks)} files for '{bundle_kind.value}' keys in {source_root}"
    )

    def run(task):
        path, extract = task
        return path, extract(path, bundle_kind)

    if jobs > 1:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            results = list(executor.map(run, tasks))
    else:
        results = [run(task) for task in tasks]

    collection = EntryCollection()
    for path, result in results:
        if result.error is not None:
            if fail_fast:
                raise result.error
            logger.error(f"Localization key extraction failed: {result.error}")
            collection.extraction_errors.append(result.error)
        elif result.skipped is not None:
            logger.warning(f"Skipping {path}: {result.skipped.reason}")
            collection.skipped_files.append(path)
        else:
            # A set keeps the element already present: the first location of a key
            collection.entries.update(result.entries)

    return collection


# ------------------------------------------------------------------------------
# Consistency Analysis
# ------------------------------------------------------------------------------


def find_missing_keys(
    entries: Iterable[LocalizationEntry], base_keys: KeySet
) -> List[LocalizationEntry]:
    """Entries whose key is not defined in ``base_keys``, one per key, sorted by key."""
    missing: Dict[str, LocalizationEntry] = {}
    for entry in entries:
        if entry.key not in base_keys and entry.key not in missing:
            missing[entry.key] = entry
    return [missing[key] for key in sorted(missing)]


def find_obsolete_keys(
    entries: Iterable[LocalizationEntry], base_keys: KeySet
) -> List[str]:
    """Keys of ``base_keys`` that no entry uses, sorted."""
    return base_keys.difference(entry.key for entry in entries)


def analyze(
    entries: Iterable[LocalizationEntry],
    base_keys: KeySet,
    bundle_kind: BundleKind = BundleKind.LANG,
) -> ScanResult:
    """Compare the entries of one bundle kind with the authoritative key set."""
    entries = list(entries)
    return ScanResult(
        bundle_kind=bundle_kind,
        missing_keys=find_missing_keys(entries, base_keys),
        obsolete_keys=find_obsolete_keys(entries, base_keys),
    )


def check_bundle(config: CheckerConfig, bundle_kind: BundleKind) -> ScanResult:
    """
    Run the full check for one bundle kind.

    Raises:
        ConfigurationError: If the base resource file cannot be loaded
        FatalExtractionError: If config.fail_fast is set and a call site is malformed
    """
    base_path = base_properties_path(config.resources_dir, bundle_kind)
    base_keys, duplicates = get_keys_in_properties_file(base_path)

    collection = find_localization_entries(
        config.source_root,
        bundle_kind,
        source_extensions=config.source_extensions,
        markup_extensions=config.markup_extensions,
        ignore_folders=config.ignore_folders,
        jobs=config.jobs,
        fail_fast=config.fail_fast,
    )

    result = analyze(collection.entries, base_keys, bundle_kind)
    result.skipped_files = collection.skipped_files
    result.extraction_errors = collection.extraction_errors
    result.duplicate_keys = duplicates
    result.base_keys = base_keys

    _log_scan_result(result, base_path)
    return result


def _log_scan_result(result: ScanResult, base_path: Path) -> None:
    bundle = f"{result.bundle_kind.bundle_name} ({result.bundle_kind.value})"
    logger.info(f"Bundle: {bundle}, base file {base_path}")

    for entry in result.missing_keys:
        logger.info(f"  [missing] {entry.key} used at {entry.location}")
    for key in result.obsolete_keys:
        logger.info(f"  [obsolete] {key}")
    for key in result.duplicate_keys:
        logger.warning(f"  [duplicate] {key} is defined more than once in {base_path}")
    for error in result.extraction_errors:
        logger.error(f"  [error] {error}")

    if result.skipped_files:
        logger.warning(
            f"  Coverage is partial: {len(result.skipped_files)} files could not be scanned"
        )
    if result.is_consistent:
        logger.info("  All localization keys are consistent.")


# ------------------------------------------------------------------------------
# Translation Parity
# ------------------------------------------------------------------------------


def detect_language_from_path(file_path: Path, bundle_name: str) -> Optional[str]:
    """
    Detect the language of a properties file from its name.

    Examples:
      - "JabRef_en.properties"    -> "en" (base language)
      - "JabRef_pt_BR.properties" -> "pt_BR"
      - "Menu_zh_CN.properties"   -> "zh_CN"
      - "Other_de.properties"     -> None (different bundle)

    Args:
        file_path: Path object pointing to a properties file
        bundle_name: Base name of the bundle, e.g. "JabRef" or "Menu"

    Returns:
        The locale suffix, or None if the file does not belong to the bundle
    """
    match = re.fullmatch(
        re.escape(bundle_name) + r"_([A-Za-z]{2,3}(?:[_-][A-Za-z0-9]+)*)\.properties",
        file_path.name,
    )
    if not match:
        return None
    language = match.group(1)
    logger.debug(f"Detected language '{language}' from {file_path.name}")
    return language


def find_translation_files(resources_dir: str, bundle_name: str) -> Dict[str, Path]:
    """Map language codes to the translated properties files of a bundle."""
    translations: Dict[str, Path] = {}
    resources = Path(resources_dir)
    if not resources.is_dir():
        return translations

    for path in sorted(resources.glob(f"{bundle_name}_*.properties")):
        language = detect_language_from_path(path, bundle_name)
        if language is None or language == BASE_LANGUAGE:
            continue
        translations[language] = path
    return translations


def check_translation_parity(
    resources_dir: str, bundle_kind: BundleKind, base_keys: KeySet
) -> dict:
    """
    Compare every translation of a bundle with its base-language key set.

    Args:
        resources_dir: Directory holding the properties files
        bundle_kind: Bundle whose translations are checked
        base_keys: Keys of the base-language file

    Returns:
        A dictionary of language -> {"missing": [...], "extra": [...]} for the
        languages that differ from the base file
    """
    parity_report = {}
    bundle_name = bundle_kind.bundle_name

    for language, path in find_translation_files(resources_dir, bundle_name).items():
        try:
            properties, _ = read_properties_file(path)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Skipping translation {path}: {e}")
            continue

        translated_keys = keys_from_properties(properties.keys())
        missing = base_keys.difference(translated_keys)
        extra = translated_keys.difference(base_keys)
        if not (missing or extra):
            continue

        parity_report[language] = {"missing": missing, "extra": extra}
        parts = []
        if missing:
            parts.append(f"missing {len(missing)}")
        if extra:
            parts.append(f"extra {len(extra)}")
        logger.info(
            f"  [{bundle_name} {language}] {get_language_name(language)}: {', '.join(parts)}"
        )

    if not parity_report:
        logger.info(f"All translations of {bundle_name} match the base file.")
    return parity_report


# ------------------------------------------------------------------------------
# Consistency Report Generator
# ------------------------------------------------------------------------------


def _escape_table_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def create_consistency_report(
    results: List[ScanResult], parity: Optional[Dict[str, dict]] = None
) -> str:
    """
    Generate a Markdown formatted consistency report as a string.

    Args:
        results: One ScanResult per checked bundle
        parity: Optional mapping of bundle name -> check_translation_parity() output
    """
    report = "# Localization Consistency Report\n\n"
    has_findings = False

    for result in results:
        kind = result.bundle_kind
        section = ""

        if result.missing_keys:
            section += "### Missing keys\n\n"
            section += "| Key | Text | Location |\n"
            section += "| --- | ---- | -------- |\n"
            for entry in result.missing_keys:
                text = _escape_table_cell(to_translation_value(entry.key))
                section += f"| {_escape_table_cell(entry.key)} | {text} | {entry.location} |\n"
            section += "\n"

        if result.obsolete_keys:
            section += "### Obsolete keys\n\n"
            for key in result.obsolete_keys:
                section += f"- `{key}`\n"
            section += "\n"

        if result.duplicate_keys:
            section += "### Duplicate keys\n\n"
            for key in result.duplicate_keys:
                section += f"- `{key}`\n"
            section += "\n"

        if result.extraction_errors:
            section += "### Extraction errors\n\n"
            for error in result.extraction_errors:
                section += f"- {error}\n"
            section += "\n"

        if result.skipped_files:
            section += "### Skipped files\n\n"
            for path in result.skipped_files:
                section += f"- {path}\n"
            section += "\n"

        if section:
            has_findings = True
            report += f"## Bundle: {kind.bundle_name} ({kind.value})\n\n" + section

    for bundle_name, languages in (parity or {}).items():
        if not languages:
            continue
        has_findings = True
        report += f"## Translations: {bundle_name}\n\n"
        report += "| Language | Missing | Extra |\n"
        report += "| -------- | ------- | ----- |\n"
        for language, details in sorted(languages.items()):
            report += (
                f"| {get_language_name(language)} | {len(details['missing'])} "
                f"| {len(details['extra'])} |\n"
            )
        report += "\n"

    if not has_findings:
        report += "No localization problems were found."

    return report


# ------------------------------------------------------------------------------
# Main Entry Point
# ------------------------------------------------------------------------------


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _config_from_environment() -> CheckerConfig:
    """Build the configuration from GitHub Actions INPUT_* variables."""
    bundle_input = os.environ.get("INPUT_BUNDLE", "all").strip().lower()
    jobs_raw = os.environ.get("INPUT_JOBS", "1")
    try:
        jobs = int(jobs_raw)
    except ValueError:
        raise ConfigurationError(f"Invalid INPUT_JOBS value ('{jobs_raw}')")

    return CheckerConfig(
        source_root=os.environ.get("INPUT_SOURCE_ROOT", ""),
        resources_dir=os.environ.get("INPUT_RESOURCES_DIR", DEFAULT_RESOURCES_DIR),
        bundles=list(BundleKind) if bundle_input == "all" else [bundle_input],
        source_extensions=_split_list(
            os.environ.get("INPUT_SOURCE_EXTENSIONS", ",".join(DEFAULT_SOURCE_EXTENSIONS))
        ),
        markup_extensions=_split_list(
            os.environ.get("INPUT_MARKUP_EXTENSIONS", ",".join(DEFAULT_MARKUP_EXTENSIONS))
        ),
        ignore_folders=_split_list(os.environ.get("INPUT_IGNORE_FOLDERS", "")),
        jobs=jobs,
        fail_fast=os.environ.get("INPUT_FAIL_FAST", "false").lower() == "true",
        check_translations=os.environ.get("INPUT_CHECK_TRANSLATIONS", "true").lower()
        == "true",
        strict_translations=os.environ.get("INPUT_STRICT_TRANSLATIONS", "false").lower()
        == "true",
    )


def _config_from_arguments(args: argparse.Namespace) -> CheckerConfig:
    return CheckerConfig(
        source_root=args.source_root,
        resources_dir=args.resources_dir,
        bundles=list(BundleKind) if args.bundle == "all" else [args.bundle],
        source_extensions=_split_list(args.source_extensions),
        markup_extensions=_split_list(args.markup_extensions),
        ignore_folders=_split_list(args.ignore_folders),
        jobs=args.jobs,
        fail_fast=args.fail_fast,
        check_translations=args.check_translations,
        strict_translations=args.strict_translations,
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Localization Consistency Checker")
    parser.add_argument(
        "source_root",
        help="Directory with the source and FXML files to scan",
    )
    parser.add_argument(
        "-r",
        "--resources-dir",
        default=DEFAULT_RESOURCES_DIR,
        help=f"Directory with the properties files (default: {DEFAULT_RESOURCES_DIR})",
    )
    parser.add_argument(
        "-b",
        "--bundle",
        choices=["lang", "menu", "all"],
        default="all",
        help="Bundle to check (default: all)",
    )
    parser.add_argument(
        "--source-extensions",
        default=",".join(DEFAULT_SOURCE_EXTENSIONS),
        help="Comma separated suffixes of source files (default: .java)",
    )
    parser.add_argument(
        "--markup-extensions",
        default=",".join(DEFAULT_MARKUP_EXTENSIONS),
        help="Comma separated suffixes of markup documents (default: .fxml)",
    )
    parser.add_argument(
        "--ignore-folders",
        default="",
        help="Comma separated list of folder names to ignore during scanning. "
        "If empty, .gitignore patterns will be used instead.",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=1,
        help="Number of threads used to scan files (default: 1)",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first malformed localization call",
    )
    parser.add_argument(
        "--no-check-translations",
        dest="check_translations",
        action="store_false",
        help="Do not compare translated bundles with the base bundle",
    )
    parser.add_argument(
        "--strict-translations",
        action="store_true",
        help="Fail when a translated bundle does not have the same keys as the base bundle",
    )
    parser.add_argument(
        "-l",
        "--log-trace",
        action="store_true",
        help="Log detailed trace information",
    )
    return parser


def run_checks(config: CheckerConfig) -> Tuple[List[ScanResult], Dict[str, dict]]:
    """
    Check every configured bundle and, optionally, its translations.

    Raises:
        ConfigurationError: If a base resource file cannot be loaded
        FatalExtractionError: If config.fail_fast is set and a call site is malformed
    """
    results = []
    parity: Dict[str, dict] = {}
    for bundle_kind in config.bundles:
        result = check_bundle(config, bundle_kind)
        results.append(result)
        if config.check_translations:
            parity[bundle_kind.bundle_name] = check_translation_parity(
                config.resources_dir, bundle_kind, result.base_keys
            )
    return results, parity


def main() -> None:
    """
    Main entry point for the Localization Consistency Checker script.
    Parses command-line arguments or environment variables, scans the source
    tree, reports missing and obsolete keys, and exits non-zero on problems.
    """
    is_github = os.environ.get("GITHUB_ACTIONS", "false").lower() == "true"
    if is_github:
        log_trace = os.environ.get("INPUT_LOG_TRACE", "false").lower() == "true"
        startup_message_prefix = "Running with parameters from environment variables."
    else:
        args = build_argument_parser().parse_args()
        log_trace = args.log_trace
        startup_message_prefix = "Running with command-line parameters."

    configure_logging(log_trace)

    try:
        config = _config_from_environment() if is_github else _config_from_arguments(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    print(
        f"{startup_message_prefix} Source Root: {config.source_root}, "
        f"Resources Dir: {config.resources_dir}, "
        f"Bundles: {[kind.value for kind in config.bundles]}, "
        f"Ignore Folders: {config.ignore_folders}, Jobs: {config.jobs}"
    )

    if not os.path.isdir(config.source_root):
        logger.error(f"Error: The specified path {config.source_root} does not exist!")
        sys.exit(1)

    try:
        results, parity = run_checks(config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except FatalExtractionError as e:
        logger.error(f"Localization key extraction failed: {e}")
        sys.exit(1)

    report_output = create_consistency_report(results, parity)

    if "GITHUB_OUTPUT" in os.environ:
        with open(os.environ["GITHUB_OUTPUT"], "a", encoding="utf-8") as f:
            # Use a unique delimiter to prevent collision with report content
            delimiter = "EOF_LOCALIZATION_REPORT_4c1f9b2e"
            print(f"localization_report<<{delimiter}", file=f)
            print(report_output, file=f)
            print(delimiter, file=f)
    else:
        print("\nLocalization Report:")
        print(report_output)

    failed = any(not result.is_consistent for result in results)
    if config.strict_translations and any(parity.values()):
        failed = True
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
