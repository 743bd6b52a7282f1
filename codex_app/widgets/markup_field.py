"""
codex_app/widgets/markup_field.py -- One editable markup field.

Wraps a ``FieldEditSession``.  In the viewing page the field is a plain
``MarkupView`` with an Edit button.  The editing page shows the raw text
in a ``QPlainTextEdit``, a toolbar (insert link / image / upload / table),
a live preview rendered in editable mode (drag handles on images,
editable table cells) and Save / Cancel buttons.

All text changes go through the session, so a resize or an upload that
finishes while the user keeps typing is spliced into the current text.
Uploads run on an ``UploadWorker`` thread; their results are dropped if
the edit was saved or cancelled in the meantime.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QTimer, Signal
from PySide6.QtGui import QTextCursor
from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from codex.editing import FieldEditSession, UploadTicket
from codex.markup.renderer import RenderOptions
from codex.markup.resolver import ElementIndex
from codex.markup.segments import TableSegment
from codex.media import ALLOWED_EXTENSIONS, MediaUploader, UploadResult
from codex_app.services.event_bus import EventBus
from codex_app.services.upload_worker import UploadWorker
from codex_app.widgets.link_picker_dialog import LinkPickerDialog
from codex_app.widgets.markup_view import MarkupView

logger = logging.getLogger(__name__)

PREVIEW_DELAY_MS = 250

_NEW_TABLE_HEADERS = ["Column 1", "Column 2"]
_NEW_TABLE_ROWS = [["", ""]]


class MarkupField(QWidget):
    """Viewing/Editing widget for one markup field.

    Parameters
    ----------
    field_name : str
        Key of the field (``description``, ``definition``, ...).
    label : str
        Heading shown above the field.
    persist : callable, optional
        ``persist(field_name, text)``; may raise to keep the field in
        editing mode.

    Signals
    -------
    saved(str, str)
        ``(field_name, text)`` after a successful save.
    editing_changed(bool)
        Entered (True) or left (False) editing mode.
    """

    saved = Signal(str, str)
    editing_changed = Signal(bool)

    def __init__(
        self,
        field_name: str,
        label: str = "",
        persist: Optional[Callable[[str, str], None]] = None,
        parent: QWidget | None = None,
    ):
        super().__init__(parent)
        self.field_name = field_name
        self._persist_cb = persist
        self._bus = EventBus.instance()
        self._session = FieldEditSession("", persist=self._persist)
        self._index: Optional[ElementIndex] = None
        self._uploader: Optional[MediaUploader] = None
        self._entry_id = ""
        self._workers: set[UploadWorker] = set()
        self._syncing_editor = False

        self._preview_timer = QTimer(self)
        self._preview_timer.setSingleShot(True)
        self._preview_timer.setInterval(PREVIEW_DELAY_MS)
        self._preview_timer.timeout.connect(self._refresh_preview)

        self._setup_ui(label or field_name.replace("_", " ").title())
        self._show_viewing()

    # ------------------------------------------------------------------
    # UI
    # ------------------------------------------------------------------

    def _setup_ui(self, label: str) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 4, 0, 4)
        layout.setSpacing(4)

        header = QHBoxLayout()
        title = QLabel(label)
        title.setStyleSheet("font-weight: bold; font-size: 13px;")
        header.addWidget(title)
        header.addStretch()
        self._edit_btn = QPushButton("Edit")
        self._edit_btn.clicked.connect(self.begin_edit)
        header.addWidget(self._edit_btn)
        layout.addLayout(header)

        self._stack = QStackedWidget()

        # Viewing page
        self._view = MarkupView()
        self._view.set_placeholder_text(f"No {label.lower()} yet.")
        self._stack.addWidget(self._view)

        # Editing page
        edit_page = QWidget()
        edit_layout = QVBoxLayout(edit_page)
        edit_layout.setContentsMargins(0, 0, 0, 0)
        edit_layout.setSpacing(4)

        toolbar = QHBoxLayout()
        toolbar.setSpacing(4)
        self._link_btn = QPushButton("Insert Link")
        self._link_btn.clicked.connect(self._on_insert_link)
        toolbar.addWidget(self._link_btn)
        self._image_btn = QPushButton("Image URL")
        self._image_btn.clicked.connect(self._on_insert_image_url)
        toolbar.addWidget(self._image_btn)
        self._upload_btn = QPushButton("Upload Image")
        self._upload_btn.clicked.connect(self._on_upload_clicked)
        self._upload_btn.setEnabled(False)
        toolbar.addWidget(self._upload_btn)
        self._table_btn = QPushButton("Insert Table")
        self._table_btn.clicked.connect(self._on_insert_table)
        toolbar.addWidget(self._table_btn)
        toolbar.addStretch()
        self._upload_label = QLabel("")
        self._upload_label.setStyleSheet("color: #888; font-size: 11px;")
        toolbar.addWidget(self._upload_label)
        edit_layout.addLayout(toolbar)

        self._editor = QPlainTextEdit()
        self._editor.setMinimumHeight(120)
        self._editor.textChanged.connect(self._on_editor_changed)
        edit_layout.addWidget(self._editor)

        preview_label = QLabel("Preview")
        preview_label.setStyleSheet("color: #888; font-size: 11px;")
        edit_layout.addWidget(preview_label)
        self._preview = MarkupView()
        self._preview.image_resized.connect(self._on_image_resized)
        self._preview.table_edited.connect(self._on_table_edited)
        edit_layout.addWidget(self._preview)

        btn_row = QHBoxLayout()
        btn_row.addStretch()
        self._cancel_btn = QPushButton("Cancel")
        self._cancel_btn.clicked.connect(self.cancel_edit)
        btn_row.addWidget(self._cancel_btn)
        self._save_btn = QPushButton("Save")
        self._save_btn.setStyleSheet(
            "background-color: #2E7D32; padding: 6px 16px; font-weight: bold;"
        )
        self._save_btn.clicked.connect(self.save)
        btn_row.addWidget(self._save_btn)
        edit_layout.addLayout(btn_row)

        self._stack.addWidget(edit_page)
        layout.addWidget(self._stack)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def set_index(self, index: Optional[ElementIndex]) -> None:
        """Element directory used for link chips and the link picker."""
        self._index = index
        self._render_current()

    def set_uploader(self, uploader: Optional[MediaUploader], entry_id: str = "") -> None:
        self._uploader = uploader
        self._entry_id = entry_id
        self._upload_btn.setEnabled(uploader is not None)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def session(self) -> FieldEditSession:
        return self._session

    @property
    def view(self) -> MarkupView:
        return self._view

    @property
    def preview(self) -> MarkupView:
        return self._preview

    @property
    def editor(self) -> QPlainTextEdit:
        return self._editor

    def text(self) -> str:
        return self._session.text

    def set_text(self, text: str) -> None:
        """Load a new persisted value; any edit in progress is dropped."""
        was_editing = self._session.is_editing
        self._session.reset(text)
        self._show_viewing()
        if was_editing:
            self.editing_changed.emit(False)

    def begin_edit(self) -> None:
        if self._session.is_editing:
            return
        self._session.begin_edit()
        self._set_editor_text(self._session.text, len(self._session.text))
        self._refresh_preview()
        self._stack.setCurrentIndex(1)
        self._edit_btn.setVisible(False)
        self._editor.setFocus()
        self.editing_changed.emit(True)

    def save(self) -> bool:
        """Persist the edit; on failure stay in editing mode and warn."""
        if not self._session.is_editing:
            return False
        try:
            text = self._session.save()
        except Exception as e:
            logger.exception("Saving field %s failed", self.field_name)
            self._show_error("Save Failed", str(e))
            return False
        self._show_viewing()
        self.saved.emit(self.field_name, text)
        self.editing_changed.emit(False)
        return True

    def cancel_edit(self) -> None:
        if not self._session.is_editing:
            return
        self._session.cancel()
        self._show_viewing()
        self.editing_changed.emit(False)

    def _persist(self, text: str) -> None:
        if self._persist_cb is not None:
            self._persist_cb(self.field_name, text)

    def _show_viewing(self) -> None:
        self._preview_timer.stop()
        self._upload_label.setText("")
        self._stack.setCurrentIndex(0)
        self._edit_btn.setVisible(True)
        self._render_current()

    def _render_current(self) -> None:
        if self._session.is_editing:
            self._refresh_preview()
        else:
            self._view.set_markup(self._session.text, RenderOptions(editable=False, index=self._index))

    # ------------------------------------------------------------------
    # Editor sync
    # ------------------------------------------------------------------

    def _caret(self) -> int:
        return self._editor.textCursor().position()

    def _set_editor_text(self, text: str, caret: int) -> None:
        self._syncing_editor = True
        try:
            self._editor.setPlainText(text)
        finally:
            self._syncing_editor = False
        cursor = self._editor.textCursor()
        cursor.setPosition(max(0, min(len(text), caret)), QTextCursor.MoveMode.MoveAnchor)
        self._editor.setTextCursor(cursor)

    def _on_editor_changed(self) -> None:
        if self._syncing_editor or not self._session.is_editing:
            return
        self._session.set_text(self._editor.toPlainText())
        self._preview_timer.start()

    def _refresh_preview(self) -> None:
        if not self._session.is_editing:
            return
        self._preview.set_markup(self._session.text, RenderOptions(editable=True, index=self._index))

    def _apply_session_text(self, caret: int) -> None:
        """Push the session text into the editor and re-render the preview."""
        self._set_editor_text(self._session.text, caret)
        self._preview_timer.stop()
        self._refresh_preview()

    # ------------------------------------------------------------------
    # Toolbar actions
    # ------------------------------------------------------------------

    def _on_image_resized(self, occurrence_index: int, width: int, height: int) -> None:
        if not self._session.is_editing:
            return
        caret = self._caret()
        self._session.resize_image(occurrence_index, width, height)
        self._set_editor_text(self._session.text, caret)
        # Deferred: the emitting image widget is still on the call stack
        self._preview_timer.start()

    def _on_table_edited(self, occurrence_index: int, table: TableSegment) -> None:
        if not self._session.is_editing:
            return
        caret = self._caret()
        self._session.replace_table(occurrence_index, table)
        self._set_editor_text(self._session.text, caret)
        # Deferred: the edited cell's table is still on the call stack
        self._preview_timer.start()

    def _on_insert_link(self) -> None:
        if not self._session.is_editing:
            return
        elements = self._index.list_all() if self._index is not None else []
        dialog = LinkPickerDialog(elements, exclude_id=self._entry_id, parent=self)
        if dialog.exec() != dialog.DialogCode.Accepted:
            return
        element = dialog.selected_element()
        if element is not None:
            self.insert_link(element)

    def insert_link(self, element) -> None:
        try:
            caret = self._session.insert_link(self._caret(), element)
        except ValueError as e:
            self._show_error("Insert Link", str(e))
            return
        self._apply_session_text(caret)

    def _on_insert_image_url(self) -> None:
        if not self._session.is_editing:
            return
        url, ok = QInputDialog.getText(self, "Insert Image", "Image URL:")
        if ok and url.strip():
            self.insert_image_url(url.strip())

    def insert_image_url(self, url: str, alt: str = "") -> None:
        try:
            caret = self._session.insert_image(self._caret(), url, alt=alt)
        except ValueError as e:
            self._show_error("Insert Image", str(e))
            return
        self._apply_session_text(caret)

    def _on_insert_table(self) -> None:
        if not self._session.is_editing:
            return
        caret = self._session.insert_table(self._caret(), _NEW_TABLE_HEADERS, _NEW_TABLE_ROWS, title="Table")
        self._apply_session_text(caret)

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def _on_upload_clicked(self) -> None:
        if not self._session.is_editing or self._uploader is None:
            return
        patterns = " ".join(f"*{ext}" for ext in ALLOWED_EXTENSIONS["images"])
        path, _ = QFileDialog.getOpenFileName(self, "Upload Image", "", f"Images ({patterns})")
        if path:
            self.start_upload(path)

    def start_upload(self, file_path: str) -> Optional[UploadWorker]:
        """Upload *file_path* in the background and insert it at the caret."""
        if not self._session.is_editing or self._uploader is None:
            return None
        ticket = self._session.begin_upload(self._caret())
        worker = UploadWorker(self._uploader, ticket, file_path, self._entry_id, parent=self)
        worker.upload_finished.connect(self._on_upload_finished)
        worker.finished.connect(lambda: self._forget_worker(worker))
        self._workers.add(worker)
        self._upload_label.setText("Uploading...")
        worker.start()
        return worker

    def _forget_worker(self, worker: UploadWorker) -> None:
        self._workers.discard(worker)
        worker.deleteLater()
        if not self._workers:
            self._upload_label.setText("")

    def _on_upload_finished(self, ticket: UploadTicket, result: UploadResult) -> None:
        self.apply_upload_result(ticket, result)

    def apply_upload_result(self, ticket: UploadTicket, result: UploadResult) -> Optional[int]:
        """Splice a finished upload into the current text (if still wanted)."""
        if not self._session.is_current(ticket):
            self._session.complete_upload(ticket, result)
            return None
        if not result.ok:
            self._session.complete_upload(ticket, result)
            self._show_error("Upload Failed", result.error or "Upload failed")
            return None

        caret_before = self._caret()
        length_before = len(self._session.text)
        offset = min(self._session.pending_offset(ticket), length_before)
        caret = self._session.complete_upload(ticket, result)
        if caret is None:
            return None
        if caret_before >= offset:
            caret_before += len(self._session.text) - length_before
        self._apply_session_text(caret_before)
        self._bus.status_message.emit("Image uploaded")
        return caret

    def _show_error(self, title: str, message: str) -> None:
        self._bus.error_occurred.emit(message)
        QMessageBox.warning(self, title, message)

    def wait_for_uploads(self, timeout_ms: int = 5000) -> None:
        """Block until running upload threads finish (shutdown/tests)."""
        for worker in list(self._workers):
            worker.wait(timeout_ms)

    def closeEvent(self, event) -> None:
        self.wait_for_uploads()
        super().closeEvent(event)
