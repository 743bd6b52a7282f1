"""
codex_app/main.py -- Application entry point.

Initializes the QApplication, applies the dark theme, opens the world's
encyclopedia store and media uploader, creates the MainWindow, and runs
the event loop.

Usage::

    python -m codex_app.main [WORLD_DIR]
"""

from __future__ import annotations

import os
os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")

import logging
import sys
import traceback
from typing import Optional

from codex.markup.resolver import WorldElementIndex
from codex_app.paths import get_media_dir, get_project_root

# World element index written by the worldbuilding engine, if present
STATE_FILE = os.path.join("user-world", "state.json")


def _setup_logging() -> None:
    """Configure logging for the desktop application.

    ``CODEX_LOG_LEVEL`` (DEBUG, INFO, WARNING, ...) overrides the INFO
    default; unknown names fall back to INFO.
    """
    level_name = os.environ.get("CODEX_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _global_exception_hook(exc_type, exc_value, exc_tb):
    """Last-resort handler for uncaught exceptions.

    Logs the traceback and shows a message box (if a QApplication exists).
    """
    logger = logging.getLogger("codex_app")
    logger.critical(
        "Uncaught exception: %s",
        "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
    )

    try:
        from PySide6.QtWidgets import QApplication, QMessageBox
        app = QApplication.instance()
        if app is not None:
            QMessageBox.critical(
                None,
                "Unexpected Error",
                f"An unexpected error occurred:\n\n{exc_value}\n\n"
                "The application will attempt to continue.\n"
                "Please check the logs for details.",
            )
    except Exception:
        logger.debug("Could not show the error dialog", exc_info=True)


def load_world_index(project_root: str) -> Optional[WorldElementIndex]:
    """Load the world's element index, or None when the world has none."""
    path = os.path.join(project_root, STATE_FILE)
    if not os.path.isfile(path):
        return None
    try:
        return WorldElementIndex.from_state_file(path)
    except Exception:
        logging.getLogger("codex_app").exception("Failed to load world index from %s", path)
        return None


def main(argv: list[str] | None = None) -> int:
    """Launch the encyclopedia editor."""
    argv = list(sys.argv if argv is None else argv)
    _setup_logging()
    logger = logging.getLogger("codex_app")
    logger.info("Starting Codex")

    sys.excepthook = _global_exception_hook

    project_root = os.path.abspath(argv[1]) if len(argv) > 1 else get_project_root()
    logger.info("Project root: %s", project_root)

    from PySide6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication(argv)

    from codex_app.theme.dark_theme import apply_theme
    apply_theme(app)

    from codex_app.main_window import MainWindow
    window = MainWindow(project_root=project_root)

    try:
        from codex.entry_store import EntryStore
        store = EntryStore(project_root)
        window.inject_store(store)
        logger.info("Entry store opened (%s)", store.project_id)
    except Exception:
        logger.exception("Failed to open the entry store")
        store = None

    window.inject_world_index(load_world_index(project_root))

    if store is not None:
        from codex.media import LocalMediaUploader
        window.inject_uploader(LocalMediaUploader(get_media_dir(), store.project_id))

    window.show()
    logger.info("Main window displayed")

    exit_code = app.exec()
    logger.info("Goodbye!")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
