"""
codex_app/widgets/markup_view.py -- Display of a markup field.

``MarkupView.set_markup()`` parses the text, renders it into view nodes
and builds one widget per block:

    - consecutive text runs and link chips -> one rich-text ``QLabel``
    - each image -> ``ResizableImage`` (corner handle when editable)
    - each table -> ``MarkupTable``

The view never changes the text.  Link clicks, finished resizes and table
cell edits are reported through signals; the owner decides what to do
with them.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QCursor
from PySide6.QtWidgets import (
    QAbstractItemView,
    QHeaderView,
    QLabel,
    QTableWidget,
    QTableWidgetItem,
    QToolTip,
    QVBoxLayout,
    QWidget,
)

from codex.markup.parser import parse
from codex.markup.renderer import (
    ImageNode,
    LinkChipNode,
    RenderOptions,
    TableNode,
    TextNode,
    ViewNode,
    render,
)
from codex.markup.segments import TableSegment
from codex_app.services.event_bus import EventBus
from codex_app.widgets.link_chip import chip_href, chip_tooltip, paragraph_html, parse_chip_href
from codex_app.widgets.resizable_image import ResizableImage

logger = logging.getLogger(__name__)


class MarkupTable(QWidget):
    """Title label plus a table sized to its contents.

    Read-only unless the node is editable; then a double-click edits a
    cell and ``table_edited`` reports the whole table afterwards.

    Signals
    -------
    table_edited(int, object)
        ``(occurrence_index, TableSegment)`` after a cell was changed.
    """

    table_edited = Signal(int, object)

    def __init__(self, node: TableNode, parent: QWidget | None = None):
        super().__init__(parent)
        self._node = node
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 4, 0, 4)
        layout.setSpacing(2)

        self.title_label = QLabel(node.title or "")
        self.title_label.setProperty("tableTitle", True)
        self.title_label.setVisible(bool(node.title))
        layout.addWidget(self.title_label)

        self.table = QTableWidget(len(node.rows), len(node.headers))
        self.table.setHorizontalHeaderLabels(node.headers)
        self.table.verticalHeader().setVisible(False)
        if node.editable:
            self.table.setEditTriggers(
                QAbstractItemView.EditTrigger.DoubleClicked
                | QAbstractItemView.EditTrigger.EditKeyPressed
            )
            self.table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        else:
            self.table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
            self.table.setSelectionMode(QAbstractItemView.SelectionMode.NoSelection)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        self.table.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)

        for r, row in enumerate(node.rows):
            for c, cell in enumerate(row):
                self.table.setItem(r, c, QTableWidgetItem(cell))

        self.table.resizeRowsToContents()
        height = self.table.horizontalHeader().height() + 2 * self.table.frameWidth()
        for r in range(self.table.rowCount()):
            height += self.table.rowHeight(r)
        self.table.setFixedHeight(height)
        layout.addWidget(self.table)

        if node.editable:
            self.table.itemChanged.connect(self._on_item_changed)

    @property
    def occurrence_index(self) -> int:
        return self._node.occurrence_index

    def to_segment(self) -> TableSegment:
        """The table as currently shown, cells included."""
        rows = []
        for r in range(self.table.rowCount()):
            row = []
            for c in range(self.table.columnCount()):
                item = self.table.item(r, c)
                row.append(item.text() if item is not None else "")
            rows.append(row)
        return TableSegment(title=self._node.title, headers=list(self._node.headers), rows=rows)

    def _on_item_changed(self, item: QTableWidgetItem) -> None:
        self.table_edited.emit(self._node.occurrence_index, self.to_segment())


class MarkupView(QWidget):
    """Renders one markup string.

    Signals
    -------
    element_clicked(str, str)
        ``(target_id, category)`` of a clicked link chip.  Also forwarded
        to ``EventBus.element_clicked``.
    image_resized(int, int, int)
        ``(occurrence_index, width, height)`` after a completed drag.
    table_edited(int, object)
        ``(occurrence_index, TableSegment)`` after a cell edit in an
        editable table.
    """

    element_clicked = Signal(str, str)
    image_resized = Signal(int, int, int)
    table_edited = Signal(int, object)

    def __init__(self, parent: QWidget | None = None):
        super().__init__(parent)
        self._bus = EventBus.instance()
        self._text = ""
        self._options = RenderOptions()
        self._nodes: list[ViewNode] = []
        self._chip_nodes: dict[str, LinkChipNode] = {}
        self.images: list[ResizableImage] = []
        self.tables: list[MarkupTable] = []
        self.paragraphs: list[QLabel] = []

        self._layout = QVBoxLayout(self)
        self._layout.setContentsMargins(0, 0, 0, 0)
        self._layout.setSpacing(4)

        self._empty_label = QLabel()
        self._empty_label.setStyleSheet("color: #888; font-style: italic;")
        self._layout.addWidget(self._empty_label)

    @property
    def nodes(self) -> list[ViewNode]:
        return list(self._nodes)

    def set_placeholder_text(self, text: str) -> None:
        """Text shown (greyed) when the field is empty."""
        self._empty_label.setText(text)

    def set_markup(self, text: str, options: RenderOptions | None = None) -> None:
        """Parse, render and display *text*."""
        self._text = text or ""
        if options is not None:
            self._options = options
        self._nodes = render(parse(self._text), self._options)
        self._rebuild()

    def refresh(self) -> None:
        """Re-render the current text (e.g. after linked elements changed)."""
        self.set_markup(self._text)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def _clear(self) -> None:
        for widget in [*self.paragraphs, *self.images, *self.tables]:
            self._layout.removeWidget(widget)
            widget.hide()
            widget.deleteLater()
        self.paragraphs.clear()
        self.images.clear()
        self.tables.clear()
        self._chip_nodes.clear()

    def _rebuild(self) -> None:
        self._clear()
        self._empty_label.setVisible(not self._text.strip())

        inline: list[TextNode | LinkChipNode] = []
        for node in self._nodes:
            if isinstance(node, (TextNode, LinkChipNode)):
                inline.append(node)
                continue
            self._flush_paragraph(inline)
            inline = []
            if isinstance(node, ImageNode):
                self._add_image(node)
            elif isinstance(node, TableNode):
                self._add_table(node)
        self._flush_paragraph(inline)

    def _flush_paragraph(self, nodes: list[TextNode | LinkChipNode]) -> None:
        if not nodes:
            return
        if all(isinstance(n, TextNode) and not n.text.strip() for n in nodes):
            return

        for node in nodes:
            if isinstance(node, LinkChipNode):
                self._chip_nodes[chip_href(node.category, node.target_id)] = node

        label = QLabel()
        label.setTextFormat(Qt.TextFormat.RichText)
        label.setWordWrap(True)
        label.setTextInteractionFlags(Qt.TextInteractionFlag.LinksAccessibleByMouse)
        label.setOpenExternalLinks(False)
        label.setText(paragraph_html(nodes))
        label.linkActivated.connect(self._on_link_activated)
        label.linkHovered.connect(self._on_link_hovered)
        self._layout.addWidget(label)
        self.paragraphs.append(label)

    def _add_image(self, node: ImageNode) -> None:
        image = ResizableImage(node)
        image.resize_finished.connect(self.image_resized)
        self._layout.addWidget(image)
        self.images.append(image)

    def _add_table(self, node: TableNode) -> None:
        table = MarkupTable(node)
        table.table_edited.connect(self.table_edited)
        self._layout.addWidget(table)
        self.tables.append(table)

    # ------------------------------------------------------------------
    # Link interaction
    # ------------------------------------------------------------------

    def _on_link_activated(self, href: str) -> None:
        parsed = parse_chip_href(href)
        if parsed is None:
            logger.debug("Ignoring non-element link %s", href)
            return
        target_id, category = parsed
        self.element_clicked.emit(target_id, category)
        self._bus.element_clicked.emit(target_id, category)

    def _on_link_hovered(self, href: str) -> None:
        node: Optional[LinkChipNode] = self._chip_nodes.get(href)
        if node is None:
            QToolTip.hideText()
            return
        QToolTip.showText(QCursor.pos(), chip_tooltip(node), self)
