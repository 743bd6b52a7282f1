"""
codex_app/panels/encyclopedia_panel.py -- Encyclopedia browser and detail view.

Left: searchable, type-filterable list of entries.  Right: the selected
entry -- name, type, one ``MarkupField`` per markup field, and a sidebar
with detected references (other entries whose name appears in this one's
text, at most six) and validation warnings.

New entries start with a ``temp-`` id and live only in memory until the
user saves the entry header; their field edits are kept on the in-memory
entry until then.

Clicking a link chip to another encyclopedia entry opens it; other
categories are reported on the status bar.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from PySide6.QtCore import Qt, QTimer
from PySide6.QtWidgets import (
    QComboBox,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from codex.entry_store import ChainedElementIndex, EntryStore
from codex.markup.resolver import DETECTED_REFERENCE_LIMIT, ElementIndex, detect_cross_references
from codex.media import MediaUploader
from codex.models.entry import (
    ENTRY_CATEGORY,
    ENTRY_TYPES,
    MARKUP_FIELDS,
    EncyclopediaEntry,
    entry_type_info,
    new_temp_entry,
)
from codex.models.validators import validate_entry
from codex.utils import now_iso
from codex_app.services.event_bus import EventBus
from codex_app.widgets.markup_field import MarkupField

logger = logging.getLogger(__name__)

SEARCH_DELAY_MS = 200

# Custom role for storing the entry ID in list items
ENTRY_ID_ROLE = Qt.ItemDataRole.UserRole + 1

_FIELD_LABELS = {
    "definition": "Definition",
    "description": "Description",
    "origin": "Origin",
    "etymology": "Etymology",
    "related_terms": "Related Terms",
    "examples": "Examples",
}


class EncyclopediaPanel(QWidget):
    """Entry list plus entry detail with markup fields."""

    def __init__(self, parent: QWidget | None = None):
        super().__init__(parent)
        self._store: Optional[EntryStore] = None
        self._world_index: Optional[ElementIndex] = None
        self._uploader: Optional[MediaUploader] = None
        self._entry: Optional[EncyclopediaEntry] = None
        self._bus = EventBus.instance()

        self._search_timer = QTimer(self)
        self._search_timer.setSingleShot(True)
        self._search_timer.setInterval(SEARCH_DELAY_MS)
        self._search_timer.timeout.connect(self.refresh)

        self._setup_ui()
        self._connect_signals()
        self._show_entry(None)

    # ------------------------------------------------------------------
    # Injection
    # ------------------------------------------------------------------

    def set_store(self, store: EntryStore) -> None:
        """Inject the EntryStore after construction."""
        self._store = store
        self._update_index()
        self.refresh()

    def set_world_index(self, index: Optional[ElementIndex]) -> None:
        """Other world elements (characters, places, ...) that links may target."""
        self._world_index = index
        self._update_index()

    def set_uploader(self, uploader: Optional[MediaUploader]) -> None:
        self._uploader = uploader
        entry_id = self._entry.id if self._entry else ""
        for field in self._fields.values():
            field.set_uploader(uploader, entry_id)

    @property
    def element_index(self) -> Optional[ElementIndex]:
        if self._store is None:
            return self._world_index
        return ChainedElementIndex(self._store, self._world_index)

    @property
    def current_entry(self) -> Optional[EncyclopediaEntry]:
        return self._entry

    def field(self, name: str) -> MarkupField:
        return self._fields[name]

    def _update_index(self) -> None:
        index = self.element_index
        for field in self._fields.values():
            field.set_index(index)

    # ------------------------------------------------------------------
    # UI setup
    # ------------------------------------------------------------------

    def _setup_ui(self) -> None:
        layout = QHBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        splitter = QSplitter(Qt.Orientation.Horizontal)

        # --- Entry list ---
        browser = QWidget()
        browser_layout = QVBoxLayout(browser)
        browser_layout.setContentsMargins(0, 0, 0, 0)
        browser_layout.setSpacing(4)

        self._search = QLineEdit()
        self._search.setPlaceholderText("Search encyclopedia...")
        self._search.setClearButtonEnabled(True)
        browser_layout.addWidget(self._search)

        filter_row = QHBoxLayout()
        filter_row.addWidget(QLabel("Type:"))
        self._type_filter = QComboBox()
        self._type_filter.addItem("All", "all")
        for type_id, (label, _color) in ENTRY_TYPES.items():
            self._type_filter.addItem(label, type_id)
        filter_row.addWidget(self._type_filter, 1)
        browser_layout.addLayout(filter_row)

        self._list = QListWidget()
        browser_layout.addWidget(self._list, 1)

        self._count_label = QLabel("0 entries")
        self._count_label.setStyleSheet("color: #888; font-size: 11px;")
        browser_layout.addWidget(self._count_label)

        btn_row = QHBoxLayout()
        self._new_btn = QPushButton("New Entry")
        btn_row.addWidget(self._new_btn)
        self._delete_btn = QPushButton("Delete")
        btn_row.addWidget(self._delete_btn)
        browser_layout.addLayout(btn_row)

        splitter.addWidget(browser)

        # --- Entry detail ---
        detail = QWidget()
        detail_layout = QVBoxLayout(detail)
        detail_layout.setContentsMargins(4, 0, 4, 0)

        header = QHBoxLayout()
        self._name_edit = QLineEdit()
        self._name_edit.setPlaceholderText("Entry name")
        self._name_edit.setStyleSheet("font-weight: bold; font-size: 16px;")
        header.addWidget(self._name_edit, 1)
        header.addWidget(QLabel("Type:"))
        self._type_combo = QComboBox()
        for type_id, (label, _color) in ENTRY_TYPES.items():
            self._type_combo.addItem(label, type_id)
        header.addWidget(self._type_combo)
        self._save_header_btn = QPushButton("Save Entry")
        header.addWidget(self._save_header_btn)
        detail_layout.addLayout(header)

        self._type_badge = QLabel("")
        detail_layout.addWidget(self._type_badge)

        fields_container = QWidget()
        fields_layout = QVBoxLayout(fields_container)
        fields_layout.setContentsMargins(0, 0, 0, 0)
        self._fields: dict[str, MarkupField] = {}
        for name in MARKUP_FIELDS:
            field = MarkupField(name, _FIELD_LABELS.get(name, ""), persist=self._persist_field)
            field.saved.connect(self._on_field_saved)
            fields_layout.addWidget(field)
            self._fields[name] = field
        fields_layout.addStretch()

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(fields_container)
        detail_layout.addWidget(scroll, 1)

        self._empty_label = QLabel("Select an entry or create a new one.")
        self._empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._empty_label.setStyleSheet("color: #888; font-style: italic;")
        detail_layout.addWidget(self._empty_label)

        splitter.addWidget(detail)

        # --- Sidebar ---
        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        sidebar_layout.setContentsMargins(4, 4, 4, 4)

        refs_group = QGroupBox("Detected References")
        refs_layout = QVBoxLayout(refs_group)
        self._refs_list = QListWidget()
        self._refs_list.setMaximumHeight(200)
        refs_layout.addWidget(self._refs_list)
        sidebar_layout.addWidget(refs_group)

        val_group = QGroupBox("Validation")
        val_layout = QVBoxLayout(val_group)
        self._validation_label = QLabel("Not yet validated")
        self._validation_label.setWordWrap(True)
        self._validation_label.setStyleSheet("font-size: 11px;")
        val_layout.addWidget(self._validation_label)
        sidebar_layout.addWidget(val_group)

        sidebar_layout.addStretch()
        splitter.addWidget(sidebar)

        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 3)
        splitter.setStretchFactor(2, 1)
        layout.addWidget(splitter)

    def _connect_signals(self) -> None:
        self._search.textChanged.connect(lambda _: self._search_timer.start())
        self._type_filter.currentIndexChanged.connect(lambda _: self.refresh())
        self._list.currentItemChanged.connect(self._on_list_selection)
        self._refs_list.itemDoubleClicked.connect(self._on_reference_activated)
        self._new_btn.clicked.connect(self.new_entry)
        self._delete_btn.clicked.connect(self._on_delete_clicked)
        self._save_header_btn.clicked.connect(self.save_header)
        self._bus.element_clicked.connect(self._on_element_clicked)
        self._bus.entry_selected.connect(self.select_entry)

    # ------------------------------------------------------------------
    # Entry list
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Reload the entry list using the current search and type filter."""
        if self._store is None:
            return
        query = self._search.text()
        entry_type = self._type_filter.currentData() or "all"
        entries = self._store.search_entries(query, entry_type)

        current_id = self._entry.id if self._entry else ""
        self._list.blockSignals(True)
        try:
            self._list.clear()
            for entry in entries:
                _type_id, label, _color = entry_type_info(entry.entry_type)
                item = QListWidgetItem(f"{entry.name}  ({label})")
                item.setData(ENTRY_ID_ROLE, entry.id)
                self._list.addItem(item)
                if entry.id == current_id:
                    self._list.setCurrentItem(item)
        finally:
            self._list.blockSignals(False)

        count = len(entries)
        self._count_label.setText(f"{count} entr{'y' if count == 1 else 'ies'}")

    def entry_ids(self) -> list[str]:
        """IDs currently listed, in display order."""
        return [self._list.item(i).data(ENTRY_ID_ROLE) for i in range(self._list.count())]

    def _on_list_selection(self, current: QListWidgetItem | None, _previous) -> None:
        if current is not None:
            self.select_entry(current.data(ENTRY_ID_ROLE))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_entry(self, entry_id: str) -> None:
        """Open *entry_id* in the detail view."""
        if self._store is None or not entry_id:
            return
        if self._entry is not None and self._entry.id == entry_id:
            return
        try:
            entry = self._store.get_entry(entry_id)
        except (FileNotFoundError, ValueError) as e:
            logger.warning("Could not open entry %s: %s", entry_id, e)
            self._bus.error_occurred.emit(str(e))
            return
        self._show_entry(entry)

    def new_entry(self) -> None:
        """Start an unsaved entry with a ``temp-`` id."""
        project_id = self._store.project_id if self._store else ""
        entry = new_temp_entry(project_id, int(time.time() * 1000), now_iso())
        self._list.clearSelection()
        self._show_entry(entry)
        self._name_edit.setFocus()
        self._name_edit.selectAll()

    def _show_entry(self, entry: Optional[EncyclopediaEntry]) -> None:
        self._entry = entry
        has_entry = entry is not None
        for widget in (self._name_edit, self._type_combo, self._save_header_btn, self._delete_btn):
            widget.setEnabled(has_entry)
        self._empty_label.setVisible(not has_entry)

        for name, field in self._fields.items():
            field.set_text(entry.markup_text(name) if entry else "")
            field.set_uploader(self._uploader, entry.id if entry else "")
            field.setVisible(has_entry)

        if entry is None:
            self._name_edit.clear()
            self._type_badge.clear()
            self._refs_list.clear()
            self._validation_label.setText("Not yet validated")
            return

        self._name_edit.setText(entry.name)
        type_id, label, color = entry_type_info(entry.entry_type)
        idx = self._type_combo.findData(type_id)
        if idx >= 0:
            self._type_combo.setCurrentIndex(idx)
        self._type_badge.setText(label)
        self._type_badge.setStyleSheet(
            f"color: {color}; font-weight: bold; font-size: 11px;"
        )
        self._update_sidebar()

    # ------------------------------------------------------------------
    # Sidebar
    # ------------------------------------------------------------------

    def _update_sidebar(self) -> None:
        self._refs_list.clear()
        if self._entry is None:
            return

        entries = self._store.list_entries() if self._store else []

        refs = detect_cross_references(self._entry, entries, DETECTED_REFERENCE_LIMIT)
        if not refs:
            self._refs_list.addItem("(No references detected)")
        for ref in refs:
            item = QListWidgetItem(ref.name)
            item.setData(ENTRY_ID_ROLE, ref.id)
            self._refs_list.addItem(item)

        issues = validate_entry(self._entry, entries, self.element_index or ChainedElementIndex())
        if issues:
            self._validation_label.setText("\n".join(issues))
            self._validation_label.setStyleSheet("color: #FFC107; font-size: 11px;")
        else:
            self._validation_label.setText("No issues found.")
            self._validation_label.setStyleSheet("color: #4CAF50; font-size: 11px;")

    def detected_reference_ids(self) -> list[str]:
        ids = []
        for i in range(self._refs_list.count()):
            entry_id = self._refs_list.item(i).data(ENTRY_ID_ROLE)
            if entry_id:
                ids.append(entry_id)
        return ids

    def _on_reference_activated(self, item: QListWidgetItem) -> None:
        entry_id = item.data(ENTRY_ID_ROLE)
        if entry_id:
            self._bus.entry_selected.emit(entry_id)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def _persist_field(self, field_name: str, text: str) -> None:
        """Persist callback for the markup fields (raises to keep editing)."""
        if self._entry is None:
            raise RuntimeError("No entry is open")
        if self._entry.is_temporary or self._store is None:
            self._entry = self._entry.with_markup_text(field_name, text)
            return
        self._entry = self._store.update_field(self._entry.id, field_name, text)

    def _on_field_saved(self, field_name: str, _text: str) -> None:
        if self._entry is None:
            return
        if self._entry.is_temporary:
            self._bus.status_message.emit("Save the entry to store this field")
        else:
            self._bus.entry_saved.emit(self._entry.id)
            self._bus.status_message.emit(f"Saved {_FIELD_LABELS.get(field_name, field_name)}")
        self._update_sidebar()

    def save_header(self) -> Optional[str]:
        """Save name and type; creates the entry if it is still temporary.

        Fields still being edited are saved first, so reloading the entry
        afterwards does not drop their edits.  If one of them fails to
        save, nothing else is written.
        """
        if self._entry is None or self._store is None:
            return None
        for field in self._fields.values():
            if field.session.is_editing and not field.save():
                return None
        name = self._name_edit.text().strip()
        entry_type = self._type_combo.currentData()
        try:
            if self._entry.is_temporary:
                record = self._entry.to_record()
                record["name"] = name
                record["attributes"]["type"] = entry_type
                entry_id = self._store.create_entry(record)
                self._bus.entry_created.emit(entry_id)
            else:
                entry_id = self._entry.id
                self._store.update_entry(entry_id, {"name": name, "attributes": {"type": entry_type}})
                self._bus.entry_saved.emit(entry_id)
        except (ValueError, FileNotFoundError) as e:
            QMessageBox.warning(self, "Save Failed", str(e))
            return None

        self._entry = None
        self.select_entry(entry_id)
        self.refresh()
        self._bus.status_message.emit(f"Saved: {name}")
        return entry_id

    def delete_current(self) -> bool:
        if self._entry is None:
            return False
        if not self._entry.is_temporary and self._store is not None:
            try:
                self._store.delete_entry(self._entry.id)
            except FileNotFoundError as e:
                QMessageBox.warning(self, "Delete Failed", str(e))
                return False
            self._bus.entry_deleted.emit(self._entry.id)
        self._show_entry(None)
        self.refresh()
        return True

    def _on_delete_clicked(self) -> None:
        if self._entry is None:
            return
        answer = QMessageBox.question(
            self,
            "Delete Entry",
            f"Delete '{self._entry.name}'? This cannot be undone.",
        )
        if answer == QMessageBox.StandardButton.Yes:
            self.delete_current()

    # ------------------------------------------------------------------
    # Link navigation
    # ------------------------------------------------------------------

    def _on_element_clicked(self, target_id: str, category: str) -> None:
        if category == ENTRY_CATEGORY:
            if self._store is not None and self._store.lookup_by_id(target_id) is not None:
                self.select_entry(target_id)
                return
            self._bus.status_message.emit(f"Entry '{target_id}' no longer exists")
            return
        self._bus.status_message.emit(f"{category}: {target_id}")
