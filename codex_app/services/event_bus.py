"""
codex_app/services/event_bus.py -- Application-wide event bus using Qt signals.

Singleton that provides typed signals for cross-widget communication.
Markup views report link clicks here instead of navigating themselves, so
whoever owns navigation (the encyclopedia panel, the main window) decides
what a click on a chip means.

Usage::

    from codex_app.services.event_bus import EventBus

    bus = EventBus.instance()
    bus.element_clicked.connect(my_handler)
    bus.element_clicked.emit("aether-tide-1f2e", "encyclopedia")
"""

from __future__ import annotations

import threading

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """Application-wide signal bus.

    Signals
    -------
    entry_selected(str)
        The user selected an encyclopedia entry. Payload is the entry ID.
    entry_created(str)
        A new entry was saved for the first time.
    entry_saved(str)
        An existing entry (or one of its fields) was saved.
    entry_deleted(str)
        An entry was deleted.
    element_clicked(str, str)
        A link chip was clicked: ``(target_id, category)``.
    error_occurred(str)
        An error needs to be shown to the user.
    status_message(str)
        Update the status bar message.
    """

    # Entry lifecycle
    entry_selected = Signal(str)
    entry_created = Signal(str)
    entry_saved = Signal(str)
    entry_deleted = Signal(str)

    # Link navigation
    element_clicked = Signal(str, str)

    # Error and status
    error_occurred = Signal(str)
    status_message = Signal(str)

    # Singleton
    _instance: EventBus | None = None
    _lock = threading.Lock()

    @classmethod
    def instance(cls) -> EventBus:
        """Return the singleton EventBus instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.deleteLater()
            cls._instance = None
