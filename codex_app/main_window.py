"""
codex_app/main_window.py -- Main application window.

Hosts the encyclopedia panel, a File menu for switching worlds, and a
status bar fed by the EventBus.  Window geometry is saved/restored across
sessions via QSettings.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QSettings
from PySide6.QtGui import QAction, QCloseEvent, QKeySequence
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox, QStatusBar, QWidget

from codex.entry_store import EntryStore
from codex.markup.resolver import ElementIndex
from codex.media import MediaUploader
from codex_app.panels.encyclopedia_panel import EncyclopediaPanel
from codex_app.services.event_bus import EventBus

logger = logging.getLogger(__name__)

_ORG_NAME = "Codex"
_APP_NAME = "Codex"


class MainWindow(QMainWindow):
    """Main window: the encyclopedia panel fills the centre."""

    def __init__(self, project_root: str, parent: QWidget | None = None):
        super().__init__(parent)
        self._project_root = project_root
        self._settings = QSettings(_ORG_NAME, _APP_NAME)

        self.setWindowTitle("Codex -- World Encyclopedia")
        self.setMinimumSize(1024, 700)

        self._panel = EncyclopediaPanel()
        self.setCentralWidget(self._panel)

        self._build_menus()

        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)
        self._status_bar.showMessage("Ready")

        self._bus = bus = EventBus.instance()
        bus.status_message.connect(self._on_status_message)
        bus.error_occurred.connect(self._on_error)

        self._restore_layout()

    @property
    def panel(self) -> EncyclopediaPanel:
        return self._panel

    # ------------------------------------------------------------------
    # Service injection
    # ------------------------------------------------------------------

    def inject_store(self, store: EntryStore) -> None:
        self._panel.set_store(store)
        self.setWindowTitle(f"Codex -- {store.project_id}")

    def inject_world_index(self, index: Optional[ElementIndex]) -> None:
        self._panel.set_world_index(index)

    def inject_uploader(self, uploader: MediaUploader) -> None:
        self._panel.set_uploader(uploader)

    # ------------------------------------------------------------------
    # Menu bar
    # ------------------------------------------------------------------

    def _build_menus(self) -> None:
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")

        new_action = QAction("New Entry", self)
        new_action.setShortcut(QKeySequence.StandardKey.New)
        new_action.triggered.connect(self._panel.new_entry)
        file_menu.addAction(new_action)

        open_action = QAction("Open World...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._open_world)
        file_menu.addAction(open_action)

        file_menu.addSeparator()

        quit_action = QAction("Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        help_menu = menubar.addMenu("&Help")
        about_action = QAction("About", self)
        about_action.triggered.connect(self._show_about)
        help_menu.addAction(about_action)

    def _open_world(self) -> None:
        path = QFileDialog.getExistingDirectory(self, "Open World", self._project_root)
        if not path:
            return
        from codex_app.main import load_world_index
        try:
            store = EntryStore(path)
        except OSError as e:
            QMessageBox.warning(self, "Open Failed", str(e))
            return
        self._project_root = path
        self.inject_store(store)
        self.inject_world_index(load_world_index(path))
        self._status_bar.showMessage(f"Opened {path}", 5000)

    # ------------------------------------------------------------------
    # Layout save / restore
    # ------------------------------------------------------------------

    def _save_layout(self) -> None:
        self._settings.setValue("geometry", self.saveGeometry())

    def _restore_layout(self) -> None:
        geometry = self._settings.value("geometry")
        if geometry:
            self.restoreGeometry(geometry)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_status_message(self, message: str) -> None:
        self._status_bar.showMessage(message, 5000)

    def _on_error(self, message: str) -> None:
        self._status_bar.showMessage(f"Error: {message}", 10000)

    def _show_about(self) -> None:
        QMessageBox.about(
            self,
            "Codex",
            "A world encyclopedia with inline images, tables\n"
            "and cross-reference links.",
        )

    def closeEvent(self, event: QCloseEvent) -> None:
        """Save layout on close."""
        self._save_layout()
        logger.info("Main window closing, layout saved")
        super().closeEvent(event)
