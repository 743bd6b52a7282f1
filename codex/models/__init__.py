"""
codex/models/ -- Pydantic v2 models for encyclopedia entries.

Submodules:
    entry       EncyclopediaEntry, its attributes and structured blocks.
    validators  Content validators (dangling links, names, tables).
"""

from codex.models.entry import (
    ENTRY_TYPES,
    MARKUP_FIELDS,
    EncyclopediaEntry,
    EntryAttributes,
)

__all__ = ["ENTRY_TYPES", "MARKUP_FIELDS", "EncyclopediaEntry", "EntryAttributes"]
