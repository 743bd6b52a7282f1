"""
codex_app/widgets/link_picker_dialog.py -- World element picker dialog.

A small modal dialog that lets the user choose the element a new link
chip should point at.  The list comes from an ``ElementIndex`` and can be
narrowed with a search box (name or category, case-insensitive).
"""

from __future__ import annotations

from typing import Optional, Sequence

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from codex.markup.resolver import ElementRef, category_style


class LinkPickerDialog(QDialog):
    """Modal dialog for selecting a world element to link to.

    Parameters
    ----------
    elements : Sequence[ElementRef]
        Candidates, shown in the given order.
    exclude_id : str
        Element that should not be offered (usually the entry being edited).
    parent : QWidget | None
        Parent widget.
    """

    def __init__(
        self,
        elements: Sequence[ElementRef],
        exclude_id: str = "",
        parent: QWidget | None = None,
    ):
        super().__init__(parent)
        self.setWindowTitle("Insert Link")
        self.setMinimumSize(360, 380)
        self.setModal(True)

        self._elements = [e for e in elements if e.id != exclude_id]
        self._selected: Optional[ElementRef] = None

        layout = QVBoxLayout(self)
        layout.setSpacing(8)

        header = QLabel("Link to a world element")
        header.setAlignment(Qt.AlignmentFlag.AlignCenter)
        header.setStyleSheet("font-weight: bold; font-size: 13px; padding: 6px;")
        layout.addWidget(header)

        self._search = QLineEdit()
        self._search.setPlaceholderText("Search elements...")
        self._search.setClearButtonEnabled(True)
        self._search.textChanged.connect(self._apply_filter)
        layout.addWidget(self._search)

        self._list = QListWidget()
        for element in self._elements:
            icon, _color = category_style(element.category)
            item = QListWidgetItem(f"{icon}  {element.name}  ({element.category})")
            item.setData(Qt.ItemDataRole.UserRole, element.id)
            self._list.addItem(item)
        self._list.setCurrentRow(0)
        self._list.itemDoubleClicked.connect(self._on_accept)
        layout.addWidget(self._list, 1)

        self._empty_label = QLabel("No elements to link to yet.")
        self._empty_label.setStyleSheet("color: #888; font-style: italic;")
        self._empty_label.setVisible(not self._elements)
        layout.addWidget(self._empty_label)

        btn_row = QHBoxLayout()
        btn_row.setSpacing(8)

        cancel_btn = QPushButton("Cancel")
        cancel_btn.clicked.connect(self.reject)
        btn_row.addWidget(cancel_btn)

        btn_row.addStretch()

        self._ok_btn = QPushButton("Insert Link")
        self._ok_btn.setStyleSheet(
            "background-color: #2E7D32; padding: 6px 16px; font-weight: bold;"
        )
        self._ok_btn.setEnabled(bool(self._elements))
        self._ok_btn.clicked.connect(self._on_accept)
        btn_row.addWidget(self._ok_btn)

        layout.addLayout(btn_row)

    def visible_count(self) -> int:
        return sum(1 for i in range(self._list.count()) if not self._list.item(i).isHidden())

    def _apply_filter(self, text: str) -> None:
        query = text.strip().lower()
        first_visible = -1
        for i, element in enumerate(self._elements):
            match = not query or query in element.name.lower() or query in element.category.lower()
            self._list.item(i).setHidden(not match)
            if match and first_visible < 0:
                first_visible = i
        self._list.setCurrentRow(first_visible)

    def _on_accept(self) -> None:
        """Accept with the currently selected element."""
        current = self._list.currentItem()
        if current is None or current.isHidden():
            return
        element_id = current.data(Qt.ItemDataRole.UserRole)
        self._selected = next((e for e in self._elements if e.id == element_id), None)
        if self._selected is not None:
            self.accept()

    def selected_element(self) -> Optional[ElementRef]:
        """Return the chosen element, or ``None`` if cancelled."""
        return self._selected
