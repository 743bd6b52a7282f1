"""
codex/markup/resolver.py -- Link resolution and cross-reference detection.

Two jobs:

    - Resolve an inline ``@{Name|Category|Id}`` token against the world
      element directory (an :class:`ElementIndex`) so the renderer can
      show a current name, icon and colour.  A dangling id never fails:
      the token's cached name and category are used instead.
    - Detect "cross references": mentions of other encyclopedia entries'
      names inside an entry's prose.  This is a best-effort heuristic --
      a case-insensitive, unanchored substring match with no word
      boundaries, so short names also match inside longer words.

The element directory is always passed in explicitly; nothing here looks
up global state.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from codex.markup.segments import LinkToken
from codex.utils import safe_read_json

if TYPE_CHECKING:
    from codex.models.entry import EncyclopediaEntry

logger = logging.getLogger(__name__)

DETECTED_REFERENCE_LIMIT = 6


class ElementRef(BaseModel):
    """A world element as seen by the markup layer."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str


@runtime_checkable
class ElementIndex(Protocol):
    """Directory of world elements, owned outside the markup layer."""

    def lookup_by_id(self, element_id: str) -> Optional[ElementRef]:
        ...

    def list_all(self) -> list[ElementRef]:
        ...


class DictElementIndex:
    """In-memory :class:`ElementIndex` keyed by element id."""

    def __init__(self, elements: Iterable[ElementRef] = ()):
        self._elements: dict[str, ElementRef] = {e.id: e for e in elements}

    def add(self, element: ElementRef) -> None:
        self._elements[element.id] = element

    def remove(self, element_id: str) -> None:
        self._elements.pop(element_id, None)

    def lookup_by_id(self, element_id: str) -> Optional[ElementRef]:
        return self._elements.get(element_id)

    def list_all(self) -> list[ElementRef]:
        return sorted(self._elements.values(), key=lambda e: e.name.lower())


class WorldElementIndex(DictElementIndex):
    """Element directory built from a world's ``state.json`` entity index.

    The index maps ``entity_id -> {"name": ..., "entity_type": ...}``;
    ``entity_type`` becomes the element category.
    """

    @classmethod
    def from_state_file(cls, path: str | Path) -> WorldElementIndex:
        state = safe_read_json(path, default={})
        if not isinstance(state, dict):
            logger.warning("Ignoring malformed world state: %s", path)
            state = {}
        return cls.from_entity_index(state.get("entity_index", {}))

    @classmethod
    def from_entity_index(cls, entity_index: dict) -> WorldElementIndex:
        elements = []
        for entity_id, meta in entity_index.items():
            if not isinstance(meta, dict):
                continue
            elements.append(ElementRef(
                id=entity_id,
                name=meta.get("name") or entity_id,
                category=meta.get("entity_type") or "unknown",
            ))
        return cls(elements)


# ------------------------------------------------------------------
# Category styling
# ------------------------------------------------------------------

# category -> (icon glyph, colour)
_CATEGORY_STYLES: dict[str, tuple[str, str]] = {
    "characters": ("\U0001F464", "#4CAF50"),
    "locations": ("\U0001F4CD", "#9C27B0"),
    "items": ("\U0001F4E6", "#FF9800"),
    "species": ("\U0001F9EC", "#8BC34A"),
    "cultures": ("\U0001F3AD", "#E91E63"),
    "religions": ("✡", "#00BCD4"),
    "philosophies": ("\U0001F4DC", "#607D8B"),
    "languages": ("\U0001F310", "#3F51B5"),
    "magic": ("✨", "#673AB7"),
    "systems": ("⚙", "#795548"),
    "timeline": ("⌛", "#F44336"),
    "calendar": ("\U0001F4C5", "#FF5722"),
    "maps": ("\U0001F5FA", "#009688"),
    "encyclopedia": ("\U0001F4D6", "#FFC107"),
}
_DEFAULT_STYLE = ("\U0001F517", "#9E9E9E")


def category_style(category: str) -> tuple[str, str]:
    """Return ``(icon, colour)`` for a link category."""
    return _CATEGORY_STYLES.get(category.strip().lower(), _DEFAULT_STYLE)


# ------------------------------------------------------------------
# Link resolution
# ------------------------------------------------------------------

class ResolvedLink(BaseModel):
    """A link token joined with the current state of its target."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    category: str
    display_name: str
    exists: bool
    icon: str
    color: str


def resolve_link(token: LinkToken, index: Optional[ElementIndex]) -> ResolvedLink:
    """Resolve *token* against *index*.

    Always succeeds.  When the target is missing (or the index is absent or
    fails), the token's own cached name and category are used and the
    result is flagged ``exists=False``.
    """
    element = None
    if index is not None:
        try:
            element = index.lookup_by_id(token.target_id)
        except Exception:
            logger.warning(
                "Element lookup failed for %s; using cached token", token.target_id,
                exc_info=True,
            )

    if element is None:
        name, category = token.display_name, token.category
    else:
        name, category = element.name, element.category

    icon, color = category_style(category)
    return ResolvedLink(
        target_id=token.target_id,
        category=category,
        display_name=name,
        exists=element is not None,
        icon=icon,
        color=color,
    )


# ------------------------------------------------------------------
# Cross-reference detection
# ------------------------------------------------------------------

def detect_cross_references(
    entry: EncyclopediaEntry,
    entries: Iterable[EncyclopediaEntry],
    limit: int = DETECTED_REFERENCE_LIMIT,
) -> list[ElementRef]:
    """Find other entries whose name appears in *entry*'s text.

    Matching is case-insensitive substring containment over the entry's
    full concatenated text.  There is no word-boundary check: an entry
    named "Ash" is detected inside "Ashford".  Results follow the order of
    *entries* and stop after *limit* matches.
    """
    haystack = entry.full_text().lower()
    found: list[ElementRef] = []
    if not haystack or limit <= 0:
        return found

    for other in entries:
        if other.id == entry.id:
            continue
        needle = other.name.strip().lower()
        if needle and needle in haystack:
            found.append(other.as_element_ref())
            if len(found) >= limit:
                break
    return found
