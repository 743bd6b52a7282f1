"""
Tests for codex_app/services/event_bus.py -- EventBus singleton and signals.
"""

import threading
from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication

from codex_app.services.event_bus import EventBus


@pytest.fixture(autouse=True)
def _reset_event_bus():
    """Ensure each test starts with a fresh EventBus."""
    EventBus.reset()
    yield
    EventBus.reset()


@pytest.fixture()
def _ensure_qapp():
    """Make sure a QCoreApplication exists for signal/slot machinery."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


# ------------------------------------------------------------------
# Singleton tests
# ------------------------------------------------------------------


class TestSingletonPattern:
    def test_instance_returns_same_object(self, _ensure_qapp):
        assert EventBus.instance() is EventBus.instance()

    def test_reset_clears_instance(self, _ensure_qapp):
        bus1 = EventBus.instance()
        EventBus.reset()
        assert EventBus.instance() is not bus1

    def test_thread_safe_creation(self, _ensure_qapp):
        results = []
        barrier = threading.Barrier(4)

        def _grab():
            barrier.wait()
            results.append(id(EventBus.instance()))

        threads = [threading.Thread(target=_grab) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(results)) == 1, "All threads should get the same instance"


# ------------------------------------------------------------------
# Signal tests
# ------------------------------------------------------------------


class TestSignals:
    @pytest.mark.parametrize("signal_name", [
        "entry_selected",
        "entry_created",
        "entry_saved",
        "entry_deleted",
        "error_occurred",
        "status_message",
    ])
    def test_single_string_signals(self, _ensure_qapp, signal_name):
        bus = EventBus.instance()
        receiver = MagicMock()
        getattr(bus, signal_name).connect(receiver)
        getattr(bus, signal_name).emit("payload")
        receiver.assert_called_once_with("payload")

    def test_element_clicked_signal(self, _ensure_qapp):
        bus = EventBus.instance()
        receiver = MagicMock()
        bus.element_clicked.connect(receiver)
        bus.element_clicked.emit("mira-sunweaver-c3d4", "characters")
        receiver.assert_called_once_with("mira-sunweaver-c3d4", "characters")
