"""
codex/models/entry.py -- Encyclopedia entry models.

An entry owns a ``description`` and an ``attributes`` mapping.  Several
attribute keys (``definition``, ``origin``, ``etymology``,
``related_terms``, ``examples``) are markup fields parsed independently,
exactly like the description.  ``images``, ``tables`` and ``stats`` are
structured blocks that live next to the text fields.  They are validated
and carried through load/save unchanged for the tools that write them;
this editor neither creates nor displays them, and inline markup never
produces them.

Unknown attribute keys are preserved (``extra="allow"``) so entries
written by newer versions survive a load/save round trip.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from codex.markup.resolver import ElementRef

ENTRY_CATEGORY = "encyclopedia"
TEMP_ID_PREFIX = "temp-"

# Prose fields that hold inline markup, in display order
MARKUP_FIELDS: tuple[str, ...] = (
    "definition",
    "description",
    "origin",
    "etymology",
    "related_terms",
    "examples",
)

# type id -> (label, colour)
ENTRY_TYPES: dict[str, tuple[str, str]] = {
    "concept": ("Concept", "#2563EB"),
    "person": ("Person", "#16A34A"),
    "place": ("Place", "#9333EA"),
    "object": ("Object", "#EA580C"),
    "event": ("Event", "#DC2626"),
    "language": ("Language", "#4F46E5"),
    "culture": ("Culture", "#DB2777"),
    "technology": ("Technology", "#4B5563"),
}
DEFAULT_ENTRY_TYPE = "concept"


def entry_type_info(entry_type: Optional[str]) -> tuple[str, str, str]:
    """Return ``(type_id, label, colour)``, falling back to concept."""
    key = entry_type if entry_type in ENTRY_TYPES else DEFAULT_ENTRY_TYPE
    label, color = ENTRY_TYPES[key]
    return key, label, color


# ------------------------------------------------------------------
# Structured (non-inline) blocks
# ------------------------------------------------------------------

class EntryImage(BaseModel):
    url: str
    caption: str = ""
    width: Optional[PositiveInt] = None
    height: Optional[PositiveInt] = None


class EntryTable(BaseModel):
    title: str = ""
    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)


class EntryStat(BaseModel):
    label: str
    value: str
    unit: str = ""


class EntryAttributes(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = DEFAULT_ENTRY_TYPE
    definition: str = ""
    pronunciation: str = ""
    etymology: str = ""
    origin: str = ""
    related_terms: str = ""
    examples: str = ""
    images: list[EntryImage] = Field(default_factory=list)
    tables: list[EntryTable] = Field(default_factory=list)
    stats: list[EntryStat] = Field(default_factory=list)


# ------------------------------------------------------------------
# Entry
# ------------------------------------------------------------------

class EncyclopediaEntry(BaseModel):
    """One encyclopedia article."""

    id: str = ""
    project_id: str = ""
    category: str = ENTRY_CATEGORY
    name: str
    description: str = ""
    attributes: EntryAttributes = Field(default_factory=EntryAttributes)
    tags: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("an entry needs a name")
        return value.strip()

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return [tag.strip() for tag in value if tag and tag.strip()]

    @property
    def is_temporary(self) -> bool:
        return self.id.startswith(TEMP_ID_PREFIX)

    @property
    def entry_type(self) -> str:
        return self.attributes.type

    # --- markup fields -------------------------------------------------

    def markup_text(self, field: str) -> str:
        """Return the raw markup of *field* (``description`` or an attribute)."""
        if field not in MARKUP_FIELDS:
            raise KeyError(f"'{field}' is not a markup field")
        if field == "description":
            return self.description
        return getattr(self.attributes, field) or ""

    def with_markup_text(self, field: str, text: str) -> EncyclopediaEntry:
        """Return a copy with *field* replaced by *text*."""
        if field not in MARKUP_FIELDS:
            raise KeyError(f"'{field}' is not a markup field")
        if field == "description":
            return self.model_copy(update={"description": text})
        attributes = self.attributes.model_copy(update={field: text})
        return self.model_copy(update={"attributes": attributes})

    def full_text(self) -> str:
        """All markup fields joined with newlines (for cross-reference scans)."""
        return "\n".join(text for text in (self.markup_text(f) for f in MARKUP_FIELDS) if text)

    def as_element_ref(self) -> ElementRef:
        return ElementRef(id=self.id, name=self.name, category=self.category)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def new_temp_entry(project_id: str = "", timestamp_ms: int = 0, now: str = "") -> EncyclopediaEntry:
    """Return an unsaved entry with a ``temp-`` id."""
    return EncyclopediaEntry(
        id=f"{TEMP_ID_PREFIX}{timestamp_ms}",
        project_id=project_id,
        name="New Encyclopedia",
        created_at=now,
        updated_at=now,
    )
