"""
Tests for codex_app/panels/ and the main window -- EncyclopediaPanel with a
real EntryStore, link navigation, and the window's service injection.

All tests use the qtbot fixture from pytest-qt.
"""

from unittest.mock import MagicMock

import pytest

from codex.markup.resolver import DictElementIndex
from codex_app.main import load_world_index
from codex_app.main_window import MainWindow
from codex_app.panels.encyclopedia_panel import EncyclopediaPanel
from codex_app.services.event_bus import EventBus


@pytest.fixture(autouse=True)
def _reset_singletons():
    EventBus.reset()
    # Flush any pending deleteLater calls
    from PySide6.QtWidgets import QApplication
    app = QApplication.instance()
    if app:
        try:
            app.processEvents()
        except RuntimeError:
            pass
    yield
    EventBus.reset()
    if app:
        try:
            app.processEvents()
        except RuntimeError:
            pass


@pytest.fixture
def panel(qtbot, store, world_index):
    widget = EncyclopediaPanel()
    qtbot.addWidget(widget)
    widget.set_store(store)
    widget.set_world_index(world_index)
    return widget


def _id_by_name(store, name):
    return next(e.id for e in store.list_entries() if e.name == name)


# ==================================================================
# Entry list
# ==================================================================


class TestEntryList:
    def test_lists_all_entries(self, panel, store):
        assert panel.entry_ids() == [e.id for e in store.list_entries()]
        assert panel._count_label.text() == "3 entries"

    def test_type_filter(self, panel, store):
        panel._type_filter.setCurrentIndex(panel._type_filter.findData("language"))
        assert panel.entry_ids() == [_id_by_name(store, "Old Speech")]
        assert panel._count_label.text() == "1 entry"

    def test_search_is_debounced(self, qtbot, panel, store):
        panel._search.setText("flood")
        assert len(panel.entry_ids()) == 3
        qtbot.waitUntil(lambda: len(panel.entry_ids()) == 1, timeout=2000)
        assert panel.entry_ids() == [_id_by_name(store, "Aether Tide")]

    def test_nothing_selected_initially(self, panel):
        assert panel.current_entry is None
        assert not panel.field("description").isVisibleTo(panel)


# ==================================================================
# Detail view
# ==================================================================


class TestDetail:
    def test_select_loads_fields(self, panel, store):
        entry_id = _id_by_name(store, "Aether Tide")
        panel.select_entry(entry_id)
        assert panel.current_entry.id == entry_id
        assert panel._name_edit.text() == "Aether Tide"
        assert panel.field("definition").text() == "The yearly magical flood."
        assert panel._type_badge.text() == "Concept"

    def test_detected_references(self, panel, store):
        panel.select_entry(_id_by_name(store, "Tide Glass"))
        assert panel.detected_reference_ids() == [_id_by_name(store, "Aether Tide")]

    def test_no_references(self, panel, store):
        panel.select_entry(_id_by_name(store, "Aether Tide"))
        assert panel.detected_reference_ids() == []
        assert panel._validation_label.text() == "No issues found."

    def test_field_save_persists_to_store(self, panel, store):
        entry_id = _id_by_name(store, "Aether Tide")
        saved = MagicMock()
        EventBus.instance().entry_saved.connect(saved)
        panel.select_entry(entry_id)

        field = panel.field("description")
        field.begin_edit()
        field.editor.setPlainText("Feared in @{Havenport|locations|havenport-e5f6}.")
        assert field.save()

        assert store.get_entry(entry_id).description == "Feared in @{Havenport|locations|havenport-e5f6}."
        saved.assert_called_once_with(entry_id)
        (chip,) = [n for n in field.view.nodes if n.kind == "link"]
        assert not chip.dangling

    def test_dangling_link_shows_validation_warning(self, panel, store):
        panel.select_entry(_id_by_name(store, "Old Speech"))
        field = panel.field("origin")
        field.begin_edit()
        field.editor.setPlainText("Taught by @{Ghost|characters|ghost-0000}.")
        field.save()
        assert "ghost-0000" in panel._validation_label.text()

    def test_rename_refreshes_link_chips_elsewhere(self, panel, store):
        glass_id = _id_by_name(store, "Tide Glass")
        tide_id = _id_by_name(store, "Aether Tide")
        store.update_field(glass_id, "description", f"See @{{Tide|encyclopedia|{tide_id}}}.")
        store.update_entry(tide_id, {"name": "Great Aether Tide"})
        panel.select_entry(glass_id)
        (chip,) = [n for n in panel.field("description").view.nodes if n.kind == "link"]
        assert chip.label == "Great Aether Tide"


# ==================================================================
# Create / delete
# ==================================================================


class TestCreateDelete:
    def test_new_entry_is_temporary_until_saved(self, panel, store):
        panel.new_entry()
        assert panel.current_entry.is_temporary

        field = panel.field("description")
        field.begin_edit()
        field.editor.setPlainText("A whale that swims in clouds.")
        assert field.save()
        assert len(store.list_entries()) == 3

        panel._name_edit.setText("Sky Whale")
        entry_id = panel.save_header()

        assert entry_id is not None
        assert not panel.current_entry.is_temporary
        entry = store.get_entry(entry_id)
        assert entry.name == "Sky Whale"
        assert entry.description == "A whale that swims in clouds."
        assert entry_id in panel.entry_ids()

    def test_rename_existing(self, panel, store):
        entry_id = _id_by_name(store, "Old Speech")
        panel.select_entry(entry_id)
        panel._name_edit.setText("Elder Speech")
        panel.save_header()
        assert store.get_entry(entry_id).name == "Elder Speech"

    def test_save_header_keeps_open_field_edits(self, panel, store):
        entry_id = _id_by_name(store, "Old Speech")
        panel.select_entry(entry_id)
        field = panel.field("description")
        field.begin_edit()
        field.editor.setPlainText("Spoken before the flood.")

        panel._name_edit.setText("Elder Speech")
        assert panel.save_header() == entry_id

        entry = store.get_entry(entry_id)
        assert entry.name == "Elder Speech"
        assert entry.description == "Spoken before the flood."
        assert not panel.field("description").session.is_editing
        assert panel.field("description").text() == "Spoken before the flood."

    def test_new_entry_keeps_field_still_being_edited(self, panel, store):
        panel.new_entry()
        field = panel.field("definition")
        field.begin_edit()
        field.editor.setPlainText("A storm of glass.")
        panel._name_edit.setText("Glass Storm")

        entry_id = panel.save_header()

        assert store.get_entry(entry_id).attributes.definition == "A storm of glass."

    def test_failed_field_save_blocks_header_save(self, panel, store, monkeypatch):
        entry_id = _id_by_name(store, "Old Speech")
        panel.select_entry(entry_id)
        field = panel.field("description")
        monkeypatch.setattr(field, "_show_error", MagicMock())
        monkeypatch.setattr(store, "update_field", MagicMock(side_effect=ValueError("disk full")))
        field.begin_edit()
        field.editor.setPlainText("Lost?")

        panel._name_edit.setText("Elder Speech")
        assert panel.save_header() is None

        assert store.get_entry(entry_id).name == "Old Speech"
        assert field.session.is_editing
        assert field.text() == "Lost?"

    def test_delete_current(self, panel, store):
        entry_id = _id_by_name(store, "Tide Glass")
        panel.select_entry(entry_id)
        assert panel.delete_current()
        assert entry_id not in panel.entry_ids()
        assert panel.current_entry is None
        assert store.lookup_by_id(entry_id) is None


# ==================================================================
# Link navigation
# ==================================================================


class TestLinkNavigation:
    def test_encyclopedia_link_opens_entry(self, panel, store):
        entry_id = _id_by_name(store, "Old Speech")
        EventBus.instance().element_clicked.emit(entry_id, "encyclopedia")
        assert panel.current_entry.id == entry_id

    def test_dangling_encyclopedia_link(self, panel):
        status = MagicMock()
        EventBus.instance().status_message.connect(status)
        EventBus.instance().element_clicked.emit("gone-0000", "encyclopedia")
        assert panel.current_entry is None
        assert "no longer exists" in status.call_args.args[0]

    def test_other_category_reports_status(self, panel):
        status = MagicMock()
        EventBus.instance().status_message.connect(status)
        EventBus.instance().element_clicked.emit("havenport-e5f6", "locations")
        status.assert_called_once_with("locations: havenport-e5f6")

    def test_chained_index_covers_world_and_entries(self, panel, store):
        index = panel.element_index
        assert index.lookup_by_id("havenport-e5f6").category == "locations"
        assert index.lookup_by_id(_id_by_name(store, "Tide Glass")).category == "encyclopedia"


# ==================================================================
# MainWindow
# ==================================================================


class TestMainWindow:
    def test_injection_and_status_bar(self, qtbot, store, world_root):
        window = MainWindow(project_root=world_root)
        qtbot.addWidget(window)
        window.inject_store(store)
        window.inject_world_index(DictElementIndex())
        assert window.windowTitle() == "Codex -- test-world"
        assert len(window.panel.entry_ids()) == 3

        EventBus.instance().status_message.emit("Hello")
        assert window.statusBar().currentMessage() == "Hello"
        EventBus.instance().error_occurred.emit("Boom")
        assert window.statusBar().currentMessage() == "Error: Boom"

    def test_load_world_index(self, world_root, tmp_path):
        index = load_world_index(world_root)
        assert index.lookup_by_id("mira-sunweaver-c3d4").name == "Mira Sunweaver"
        assert load_world_index(str(tmp_path / "empty")) is None
