"""
codex_app/theme/dark_theme.py -- Dark theme configuration.

Applies a qt-material dark theme (``dark_teal`` unless ``CODEX_THEME``
names another qt-material theme file) and layers the encyclopedia's own
QSS on top: image captions, inline table titles and the raw-markup
editor.

Usage::

    from codex_app.theme.dark_theme import apply_theme
    apply_theme(app)
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PySide6.QtWidgets import QApplication

logger = logging.getLogger(__name__)

DEFAULT_THEME = "dark_teal.xml"

# Encyclopedia-specific rules layered over qt-material
_MARKUP_QSS = """
/* Captions under inline images */
QLabel[imageCaption="true"] {
    font-style: italic;
    font-size: 11px;
    color: #9E9E9E;
}

/* Bold titles above inline tables */
QLabel[tableTitle="true"] {
    font-weight: bold;
    font-size: 13px;
    padding-top: 4px;
}

/* Inline tables read like prose, not like a spreadsheet */
QTableWidget {
    gridline-color: #455A64;
    font-size: 12px;
}

/* Raw markup editor */
QPlainTextEdit {
    font-family: "Consolas", "DejaVu Sans Mono", monospace;
    font-size: 12px;
}

/* Chip and handle tool tips */
QToolTip {
    padding: 4px 8px;
}
"""


def apply_theme(app: "QApplication", theme: str | None = None) -> None:
    """Style *app* with qt-material plus the markup overrides.

    Parameters
    ----------
    app : QApplication
        The application instance to theme.
    theme : str, optional
        qt-material theme file; defaults to ``CODEX_THEME`` or
        ``dark_teal.xml``.
    """
    theme = theme or os.environ.get("CODEX_THEME") or DEFAULT_THEME
    try:
        from qt_material import apply_stylesheet
        apply_stylesheet(app, theme=theme)
        logger.info("Applied qt-material theme %s", theme)
    except Exception:
        logger.warning("qt-material theme %s failed, falling back to Fusion", theme, exc_info=True)
        from PySide6.QtWidgets import QApplication
        QApplication.setStyle("Fusion")

    app.setStyleSheet((app.styleSheet() or "") + _MARKUP_QSS)
