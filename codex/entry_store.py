"""
codex/entry_store.py -- Encyclopedia entry persistence.

Handles entry creation, reading, updating, deletion, listing and search.
Every other part of the program goes through the EntryStore rather than
reading or writing entry files directly.

Layout under the project root::

    encyclopedia/
        index.json              entry_id -> {name, type, updated_at}
        entries/<entry_id>.json full entry documents

The store also acts as an element directory (``ElementIndex``) so that
links between encyclopedia entries resolve like any other world element.

Usage:
    from codex.entry_store import EntryStore

    store = EntryStore("/path/to/world")
    entry_id = store.create_entry({"name": "Aether Tide", "description": "..."})
    store.update_field(entry_id, "description", new_text)
    entries = store.search_entries("tide")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from codex.markup.resolver import ElementIndex, ElementRef
from codex.models.entry import MARKUP_FIELDS, EncyclopediaEntry
from codex.utils import generate_id, now_iso, safe_read_json, safe_write_json

logger = logging.getLogger(__name__)


class EntryStore:
    """JSON-file store for encyclopedia entries.

    Parameters
    ----------
    project_root : str
        Root directory of the world/project.
    project_id : str, optional
        Stamped on entries created through this store.
    """

    def __init__(self, project_root: str, project_id: str = ""):
        self.root = Path(project_root).resolve()
        self.base_dir = self.root / "encyclopedia"
        self.entries_dir = self.base_dir / "entries"
        self.index_path = self.base_dir / "index.json"
        self.project_id = project_id or self.root.name
        self._index: dict[str, dict] = self._load_index()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_index(self) -> dict[str, dict]:
        data = safe_read_json(str(self.index_path), default={})
        if not isinstance(data, dict):
            logger.warning("Encyclopedia index is malformed; rebuilding from files")
            data = {}
        if not data and self.entries_dir.is_dir():
            data = self._rebuild_index()
        return data

    def _rebuild_index(self) -> dict[str, dict]:
        index: dict[str, dict] = {}
        for file_name in sorted(os.listdir(self.entries_dir)):
            if not file_name.endswith(".json"):
                continue
            doc = safe_read_json(str(self.entries_dir / file_name))
            if isinstance(doc, dict) and doc.get("id"):
                index[doc["id"]] = self._index_record(doc)
        return index

    def _save_index(self) -> None:
        safe_write_json(str(self.index_path), self._index)

    @staticmethod
    def _index_record(doc: dict) -> dict:
        return {
            "name": doc.get("name", ""),
            "type": (doc.get("attributes") or {}).get("type", ""),
            "updated_at": doc.get("updated_at", ""),
        }

    def _entry_path(self, entry_id: str) -> Path:
        return self.entries_dir / f"{entry_id}.json"

    def _validate(self, data: dict[str, Any]) -> EncyclopediaEntry:
        try:
            return EncyclopediaEntry.model_validate(data)
        except ValidationError as exc:
            raise ValueError(_format_validation_errors(exc, data)) from exc

    def _write(self, entry: EncyclopediaEntry) -> None:
        record = entry.to_record()
        safe_write_json(str(self._entry_path(entry.id)), record)
        self._index[entry.id] = self._index_record(record)
        self._save_index()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create_entry(self, data: dict[str, Any]) -> str:
        """Create a new entry and return its generated id.

        Raises
        ------
        ValueError
            If *data* does not describe a valid entry.
        """
        data = {k: v for k, v in data.items() if k not in ("id", "created_at", "updated_at")}
        data.setdefault("project_id", self.project_id)
        entry = self._validate(data)

        entry_id = generate_id(entry.name)
        while entry_id in self._index or self._entry_path(entry_id).exists():
            entry_id = generate_id(entry.name)

        now = now_iso()
        entry = entry.model_copy(update={"id": entry_id, "created_at": now, "updated_at": now})
        self._write(entry)
        logger.info("Created encyclopedia entry %s (%s)", entry_id, entry.name)
        return entry_id

    def get_entry(self, entry_id: str) -> EncyclopediaEntry:
        """Load a single entry.

        Raises
        ------
        FileNotFoundError
            If the entry does not exist or cannot be read.
        """
        doc = safe_read_json(str(self._entry_path(entry_id)))
        if doc is None:
            raise FileNotFoundError(
                f"Could not find encyclopedia entry '{entry_id}'. "
                f"It may have been deleted or the ID may be incorrect."
            )
        return self._validate(doc)

    def update_entry(self, entry_id: str, data: dict[str, Any]) -> EncyclopediaEntry:
        """Merge *data* into an entry (top-level keys, ``attributes`` merged too)."""
        current = self.get_entry(entry_id).to_record()
        merged = dict(current)
        for key, value in data.items():
            if key in ("id", "created_at", "updated_at"):
                continue
            if key == "attributes" and isinstance(value, dict):
                merged["attributes"] = {**current.get("attributes", {}), **value}
            else:
                merged[key] = value
        merged["updated_at"] = now_iso()

        entry = self._validate(merged)
        self._write(entry)
        return entry

    def update_field(self, entry_id: str, field: str, text: str) -> EncyclopediaEntry:
        """Persist one markup field (``description`` or a markup attribute)."""
        if field not in MARKUP_FIELDS:
            raise ValueError(f"'{field}' is not a markup field")
        if field == "description":
            return self.update_entry(entry_id, {"description": text})
        return self.update_entry(entry_id, {"attributes": {field: text}})

    def delete_entry(self, entry_id: str) -> None:
        path = self._entry_path(entry_id)
        if entry_id not in self._index and not path.exists():
            raise FileNotFoundError(f"Could not find encyclopedia entry '{entry_id}'.")
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Entry file for %s was already gone", entry_id)
        self._index.pop(entry_id, None)
        self._save_index()
        logger.info("Deleted encyclopedia entry %s", entry_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_entries(self, entry_type: str | None = None) -> list[EncyclopediaEntry]:
        """Return all entries sorted by name, optionally of one type."""
        entries = []
        for entry_id, meta in self._index.items():
            if entry_type and entry_type != "all" and meta.get("type") != entry_type:
                continue
            try:
                entries.append(self.get_entry(entry_id))
            except (FileNotFoundError, ValueError):
                logger.warning("Skipping unreadable entry %s", entry_id, exc_info=True)
        return sorted(entries, key=lambda e: e.name.lower())

    def search_entries(self, query: str = "", entry_type: str = "all") -> list[EncyclopediaEntry]:
        """Case-insensitive search over name, description and definition."""
        query_lower = (query or "").strip().lower()
        return [
            entry for entry in self.list_entries(entry_type)
            if not query_lower or _entry_matches_query(entry, query_lower)
        ]

    # ------------------------------------------------------------------
    # ElementIndex
    # ------------------------------------------------------------------

    def lookup_by_id(self, element_id: str) -> Optional[ElementRef]:
        meta = self._index.get(element_id)
        if meta is None:
            return None
        return ElementRef(id=element_id, name=meta.get("name", element_id), category="encyclopedia")

    def list_all(self) -> list[ElementRef]:
        return [entry.as_element_ref() for entry in self.list_entries()]

    def reload(self) -> None:
        """Re-read the index from disk."""
        self._index = self._load_index()


class ChainedElementIndex:
    """Looks an id up in several element directories, first hit wins."""

    def __init__(self, *indexes: ElementIndex):
        self._indexes = [index for index in indexes if index is not None]

    def lookup_by_id(self, element_id: str) -> Optional[ElementRef]:
        for index in self._indexes:
            element = index.lookup_by_id(element_id)
            if element is not None:
                return element
        return None

    def list_all(self) -> list[ElementRef]:
        seen: dict[str, ElementRef] = {}
        for index in self._indexes:
            for element in index.list_all():
                seen.setdefault(element.id, element)
        return sorted(seen.values(), key=lambda e: (e.category, e.name.lower()))


def _entry_matches_query(entry: EncyclopediaEntry, query_lower: str) -> bool:
    return (
        query_lower in entry.name.lower()
        or query_lower in entry.description.lower()
        or query_lower in entry.attributes.definition.lower()
    )


def _format_validation_errors(exc: ValidationError, data: dict) -> str:
    name = data.get("name") or data.get("id") or "this entry"
    lines = [f"Encyclopedia entry '{name}' is not valid:"]
    for err in exc.errors():
        field_path = " -> ".join(str(part) for part in err.get("loc", ())) or "(root)"
        if err.get("type") == "missing":
            lines.append(f"  - The field '{field_path}' is required but was not provided.")
        else:
            lines.append(f"  - Field '{field_path}': {err.get('msg', 'invalid value')}.")
    return "\n".join(lines)
