#!/usr/bin/env python3
"""
Markup key collector

Evaluates FXML documents against a key resolver and records every resource
key the document asks for. Attribute values of the form ``%key`` are
resource lookups; a leading backslash (``\\%key``) escapes the prefix.
"""

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Set, Tuple

from lxml import etree

from key_utils import to_properties_key
from localization_types import NonFatalFileError

logger = logging.getLogger(__name__)

FXML_NAMESPACE = "http://javafx.com/fxml"
RESOURCE_KEY_PREFIX = "%"
ESCAPE_PREFIX = "\\"
PLACEHOLDER_VALUE = "test"


class KeyResolver(Protocol):
    """Anything that can turn a resource key into display text."""

    def lookup(self, key: str) -> str:
        ...


class RecordingKeyResolver:
    """
    Key resolver that pretends every key exists.

    Each requested key is recorded in request order and answered with a
    placeholder, so evaluation always runs to completion.
    """

    def __init__(self, placeholder: str = PLACEHOLDER_VALUE) -> None:
        self.placeholder = placeholder
        self.requested_keys: List[str] = []

    def lookup(self, key: str) -> str:
        self.requested_keys.append(key)
        return self.placeholder


def _create_secure_parser() -> etree.XMLParser:
    """Return an XML parser configured to avoid external entity resolution."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        dtd_validation=False,
        load_dtd=False,
        recover=False,
    )


def _is_fxml_attribute(name: str) -> bool:
    return name.startswith("{") and name[1:].startswith(FXML_NAMESPACE)


class MarkupEvaluator:
    """Resolves the resource references of an FXML document."""

    def __init__(self, resolver: KeyResolver) -> None:
        self.resolver = resolver

    def resolve_value(self, value: str) -> Optional[str]:
        """
        Resolve one attribute value.

        Returns the resolved text for resource references, the unescaped text
        for escaped values, and None for values that are not resources.
        """
        if value.startswith(ESCAPE_PREFIX):
            return value[len(ESCAPE_PREFIX) :]
        if value.startswith(RESOURCE_KEY_PREFIX):
            return self.resolver.lookup(value[len(RESOURCE_KEY_PREFIX) :])
        return None

    def evaluate_tree(self, root) -> List[Tuple[str, str, str]]:
        """Resolve every resource reference below ``root``."""
        resolved: List[Tuple[str, str, str]] = []
        for element in root.iter():
            # Comments and processing instructions have non-string tags
            if not isinstance(element.tag, str):
                continue
            for name, value in element.attrib.items():
                if _is_fxml_attribute(name):
                    continue
                resolved_value = self.resolve_value(value)
                if resolved_value is not None:
                    resolved.append(
                        (etree.QName(element).localname, name, resolved_value)
                    )
        return resolved

    def evaluate(self, path: Path) -> List[Tuple[str, str, str]]:
        """
        Parse and evaluate the document at ``path``.

        Returns:
            A list of (element name, attribute name, resolved value) triples

        Raises:
            NonFatalFileError: If the document cannot be read, parsed or resolved
        """
        try:
            tree = etree.parse(str(path), _create_secure_parser())
            return self.evaluate_tree(tree.getroot())
        except etree.XMLSyntaxError as e:
            raise NonFatalFileError(path, f"XML parse error: {e}") from e
        except OSError as e:
            raise NonFatalFileError(path, f"cannot read markup document: {e}") from e
        except KeyError as e:
            raise NonFatalFileError(path, f"unresolvable resource key {e}") from e


def collect_markup_keys(path: Path) -> Set[str]:
    """
    Return the normalized keys referenced by the markup document at ``path``.

    Raises:
        NonFatalFileError: If the document cannot be evaluated
    """
    resolver = RecordingKeyResolver()
    MarkupEvaluator(resolver).evaluate(path)

    keys = {
        to_properties_key(key)
        for key in resolver.requested_keys
        if key.strip()
    }
    logger.debug(f"Found {len(keys)} resource keys in {path}")
    return keys
