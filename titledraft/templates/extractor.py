"""
Template placeholder extraction.

A placeholder is `{name}` where name is one or more ASCII letters, digits or
underscores. Extraction is order-independent and deduplicated.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Set

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z0-9_]+)\}")

# Deed fields with dedicated inputs; never rendered as dynamic placeholders.
STANDARD_DEED_FIELDS = frozenset({"deedType", "date", "documentNumber", "natureOfDoc"})

# Tokens expanded into generated tables by the merge engine.
RESERVED_TABLE_TOKENS = frozenset({"table", "table1", "table2", "table3", "table4"})


def extract_placeholders(text: str | None) -> Set[str]:
    """Return the distinct placeholder names found in `text`."""
    if not text:
        return set()
    return set(PLACEHOLDER_PATTERN.findall(text))


def dynamic_placeholder_names(templates: Iterable[str | None]) -> Set[str]:
    """Union the placeholders of `templates` and drop the standard deed fields."""
    names: Set[str] = set()
    for template in templates:
        names |= extract_placeholders(template)
    return names - STANDARD_DEED_FIELDS


def template_placeholders(text: str | None) -> List[str]:
    """Placeholders a document template asks the user to fill in, sorted."""
    return sorted(extract_placeholders(text) - RESERVED_TABLE_TOKENS)


def format_label(name: str) -> str:
    """Turn a camelCase placeholder name into a form label ("inFavourOf" -> "In Favour Of")."""
    spaced = re.sub(r"([A-Z])", r" \1", name).replace("_", " ")
    spaced = " ".join(spaced.split())
    return spaced[:1].upper() + spaced[1:]


__all__ = [
    "PLACEHOLDER_PATTERN",
    "RESERVED_TABLE_TOKENS",
    "STANDARD_DEED_FIELDS",
    "dynamic_placeholder_names",
    "extract_placeholders",
    "format_label",
    "template_placeholders",
]
