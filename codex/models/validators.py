"""
codex/models/validators.py -- Semantic checks for encyclopedia entries.

Structural validation is done by the Pydantic models; these validators
understand the content and return human-readable warnings instead of
raising:

    - Dangling links (``@{...}`` tokens whose target no longer exists)
    - Name uniqueness among encyclopedia entries
    - Table blocks whose rows are wider than their header row

Usage::

    from codex.models.validators import validate_links

    issues = validate_links(entry, element_index)
"""

from __future__ import annotations

import logging
from typing import Iterable

from codex.markup.parser import parse
from codex.markup.resolver import ElementIndex
from codex.markup.segments import LinkToken, TableSegment
from codex.models.entry import MARKUP_FIELDS, EncyclopediaEntry

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Link validation
# ------------------------------------------------------------------

def validate_links(entry: EncyclopediaEntry, index: ElementIndex) -> list[str]:
    """Report link tokens whose target id is not in *index*.

    Dangling links still render (with their cached name); this only lets
    the author know the target was deleted or never existed.
    """
    issues: list[str] = []
    for field in MARKUP_FIELDS:
        for segment in parse(entry.markup_text(field)):
            if not isinstance(segment, LinkToken):
                continue
            if index.lookup_by_id(segment.target_id) is None:
                issues.append(
                    f"'{entry.name}' links to '{segment.display_name}' "
                    f"({segment.category}) in '{field}', but no element "
                    f"with id '{segment.target_id}' exists."
                )
    return issues


# ------------------------------------------------------------------
# Name uniqueness
# ------------------------------------------------------------------

def validate_name_uniqueness(
    entry: EncyclopediaEntry,
    entries: Iterable[EncyclopediaEntry],
) -> list[str]:
    """Warn if another entry already uses the same name (case-insensitive)."""
    issues: list[str] = []
    name = entry.name.strip().lower()
    if not name:
        return issues

    for other in entries:
        if other.id == entry.id:
            continue
        if other.name.strip().lower() == name:
            issues.append(
                f"The name '{entry.name}' is already used by entry "
                f"'{other.id}'. Consider a different name to avoid confusion."
            )
            break  # One warning is enough

    return issues


# ------------------------------------------------------------------
# Table shape
# ------------------------------------------------------------------

def validate_tables(entry: EncyclopediaEntry) -> list[str]:
    """Warn about inline tables with rows wider than the header row.

    Short rows are fine (missing cells render empty); extra cells are not
    displayed.
    """
    issues: list[str] = []
    for field in MARKUP_FIELDS:
        for segment in parse(entry.markup_text(field)):
            if not isinstance(segment, TableSegment):
                continue
            width = len(segment.headers)
            for i, row in enumerate(segment.rows):
                if len(row) > width:
                    label = f"'{segment.title}'" if segment.title else "a table"
                    issues.append(
                        f"Row {i + 1} of {label} in '{field}' has {len(row)} cells "
                        f"but only {width} headers; extra cells are hidden."
                    )
    return issues


def validate_entry(
    entry: EncyclopediaEntry,
    entries: Iterable[EncyclopediaEntry],
    index: ElementIndex,
) -> list[str]:
    """Run every validator and return all warnings."""
    return (
        validate_name_uniqueness(entry, entries)
        + validate_links(entry, index)
        + validate_tables(entry)
    )
