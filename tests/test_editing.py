"""
Tests for codex/editing.py -- the Viewing/Editing session and upload tickets.
"""

from unittest.mock import MagicMock

import pytest

from codex.editing import EditState, FieldEditSession, changed_region
from codex.markup.parser import parse
from codex.markup.resolver import ElementRef
from codex.markup.segments import ImageSegment, TableSegment
from codex.media import UploadResult


def _ok(url):
    return UploadResult(url=url)


@pytest.fixture
def session():
    return FieldEditSession("Start text.")


class TestStates:
    def test_starts_viewing(self, session):
        assert session.state is EditState.VIEWING
        assert not session.is_editing
        assert session.text == "Start text."

    def test_begin_edit_bumps_generation(self, session):
        before = session.generation
        session.begin_edit()
        assert session.is_editing
        assert session.generation == before + 1

    def test_begin_edit_twice_is_a_no_op(self, session):
        session.begin_edit()
        generation = session.generation
        session.begin_edit()
        assert session.generation == generation

    def test_save_persists_and_returns_to_viewing(self):
        persist = MagicMock()
        session = FieldEditSession("old", persist=persist)
        session.begin_edit()
        session.set_text("new")
        assert session.is_dirty
        assert session.save() == "new"
        persist.assert_called_once_with("new")
        assert session.state is EditState.VIEWING
        assert session.original_text == "new"
        assert not session.is_dirty

    def test_failed_persist_stays_editing(self):
        persist = MagicMock(side_effect=OSError("disk full"))
        session = FieldEditSession("old", persist=persist)
        session.begin_edit()
        session.set_text("new")
        with pytest.raises(OSError):
            session.save()
        assert session.is_editing
        assert session.text == "new"
        assert session.original_text == "old"

    def test_cancel_discards_edits(self, session):
        session.begin_edit()
        session.set_text("scribbles")
        session.cancel()
        assert session.state is EditState.VIEWING
        assert session.text == "Start text."

    def test_cancel_while_viewing_is_a_no_op(self, session):
        generation = session.generation
        session.cancel()
        assert session.generation == generation

    def test_edits_require_editing(self, session):
        with pytest.raises(RuntimeError):
            session.set_text("x")
        with pytest.raises(RuntimeError):
            session.resize_image(0, 100, 100)
        with pytest.raises(RuntimeError):
            session.begin_upload(0)
        with pytest.raises(RuntimeError):
            session.save()

    def test_reset_replaces_text(self, session):
        session.begin_edit()
        session.reset("Other entry.")
        assert session.state is EditState.VIEWING
        assert session.text == "Other entry."
        assert session.original_text == "Other entry."


class TestEdits:
    def test_insert_link(self, session):
        session.begin_edit()
        caret = session.insert_link(0, ElementRef(id="m-1", name="Mira", category="characters"))
        assert session.text == "@{Mira|characters|m-1}Start text."
        assert caret == len("@{Mira|characters|m-1}")

    def test_insert_markup_and_table(self, session):
        session.begin_edit()
        end = len(session.text)
        caret = session.insert_table(end, ["Name"], [["Tide"]])
        assert session.text.endswith("| Name |\n|---|\n| Tide |\n")
        assert caret == len(session.text)
        session.insert_markup(0, ">> ")
        assert session.text.startswith(">> Start")

    def test_resize_image(self):
        session = FieldEditSession("![a](a.png) ![b](b.png width=10 height=10)")
        session.begin_edit()
        session.resize_image(1, 300, 150)
        assert session.text == "![a](a.png) ![b](b.png width=300 height=150)"


class TestUploads:
    def test_upload_lands_at_ticket_offset(self, session):
        session.begin_edit()
        ticket = session.begin_upload(5, alt="map")
        caret = session.complete_upload(ticket, _ok("file:///m/map.png"))
        assert session.text == "Start![map](file:///m/map.png width=400 height=300) text."
        assert caret == len("Start![map](file:///m/map.png width=400 height=300)")

    def test_result_after_save_is_dropped(self, session):
        session.begin_edit()
        ticket = session.begin_upload(0)
        session.save()
        assert not session.is_current(ticket)
        assert session.complete_upload(ticket, _ok("file:///m/x.png")) is None
        assert session.text == "Start text."

    def test_result_after_cancel_and_reedit_is_dropped(self, session):
        session.begin_edit()
        ticket = session.begin_upload(0)
        session.cancel()
        session.begin_edit()
        assert session.complete_upload(ticket, _ok("file:///m/x.png")) is None
        assert "x.png" not in session.text

    def test_failed_upload_leaves_text(self, session):
        session.begin_edit()
        ticket = session.begin_upload(0)
        result = UploadResult(error="File size exceeds 10 MB limit (12 MB)")
        assert session.complete_upload(ticket, result) is None
        assert session.text == "Start text."
        assert session.is_editing

    def test_two_uploads_both_land_in_either_order(self, session):
        session.begin_edit()
        first = session.begin_upload(0)
        second = session.begin_upload(len(session.text))
        session.complete_upload(second, _ok("file:///m/second.png"))
        session.complete_upload(first, _ok("file:///m/first.png"))
        urls = [s.url for s in parse(session.text) if isinstance(s, ImageSegment)]
        assert sorted(urls) == ["file:///m/first.png", "file:///m/second.png"]

    def test_typing_between_start_and_completion_is_kept(self, session):
        session.begin_edit()
        ticket = session.begin_upload(0)
        session.set_text("Start text. More typing.")
        session.complete_upload(ticket, _ok("file:///m/x.png"))
        assert session.text.endswith("Start text. More typing.")
        assert session.text.startswith("![](file:///m/x.png width=400 height=300)")


IMAGE_B = "![](http://x/b.png width=400 height=300)"
IMAGE_A = "![](http://x/a.png width=400 height=300)"


class TestPendingUploadOffsets:
    def test_earlier_upload_finishing_first_keeps_both_images(self):
        session = FieldEditSession("0123456789abcdef")
        session.begin_edit()
        later = session.begin_upload(10)
        earlier = session.begin_upload(5)

        session.complete_upload(earlier, _ok("http://x/b.png"))
        session.complete_upload(later, _ok("http://x/a.png"))

        assert session.text == "01234" + IMAGE_B + "56789" + IMAGE_A + "abcdef"
        urls = [s.url for s in parse(session.text) if isinstance(s, ImageSegment)]
        assert urls == ["http://x/b.png", "http://x/a.png"]

    def test_typing_before_the_upload_point_moves_it(self):
        session = FieldEditSession("Hello world")
        session.begin_edit()
        ticket = session.begin_upload(11)
        session.set_text("Say: Hello world")
        assert session.pending_offset(ticket) == 16

        session.complete_upload(ticket, _ok("http://x/a.png"))
        assert session.text == "Say: Hello world" + IMAGE_A

    def test_typing_after_the_upload_point_leaves_it(self):
        session = FieldEditSession("Hello world")
        session.begin_edit()
        ticket = session.begin_upload(5)
        session.set_text("Hello world!!!")
        assert session.pending_offset(ticket) == 5

    def test_deleting_around_the_upload_point_snaps_to_the_edit(self):
        session = FieldEditSession("abcdefgh")
        session.begin_edit()
        ticket = session.begin_upload(4)
        session.set_text("abgh")
        assert session.pending_offset(ticket) == 2

        session.complete_upload(ticket, _ok("http://x/a.png"))
        assert session.text == "ab" + IMAGE_A + "gh"

    def test_link_inserted_before_the_upload_point(self, session):
        session.begin_edit()
        ticket = session.begin_upload(len(session.text))
        session.insert_link(0, ElementRef(id="havenport-e5f6", name="Havenport", category="locations"))
        assert session.pending_offset(ticket) == len(session.text)

        session.complete_upload(ticket, _ok("http://x/a.png"))
        assert session.text == "@{Havenport|locations|havenport-e5f6}Start text." + IMAGE_A

    def test_insert_at_the_upload_point_goes_first(self, session):
        session.begin_edit()
        ticket = session.begin_upload(5)
        session.insert_markup(5, "!!")
        session.complete_upload(ticket, _ok("http://x/a.png"))
        assert session.text == "Start!!" + IMAGE_A + " text."

    def test_resize_before_the_upload_point(self):
        session = FieldEditSession("![a](a.png) tail")
        session.begin_edit()
        ticket = session.begin_upload(len(session.text))
        session.resize_image(0, 500, 250)
        assert session.pending_offset(ticket) == len(session.text)

        session.complete_upload(ticket, _ok("http://x/a.png"))
        images = [s for s in parse(session.text) if isinstance(s, ImageSegment)]
        assert [(i.url, i.width) for i in images] == [("a.png", 500), ("http://x/a.png", 400)]

    def test_pending_points_are_dropped_on_cancel(self, session):
        session.begin_edit()
        ticket = session.begin_upload(5)
        session.set_text("Prefix. Start text.")
        session.cancel()
        assert session.pending_offset(ticket) == ticket.offset

    def test_failed_upload_stops_tracking(self, session):
        session.begin_edit()
        ticket = session.begin_upload(5)
        session.complete_upload(ticket, UploadResult(error="Unsupported image type"))
        session.set_text("More. Start text.")
        assert session.pending_offset(ticket) == 5


class TestChangedRegion:
    def test_insertion(self):
        assert changed_region("abc", "abXc") == (2, 2, 3)

    def test_deletion(self):
        assert changed_region("abcdefgh", "abgh") == (2, 6, 2)

    def test_repeated_characters_do_not_overlap(self):
        assert changed_region("aaa", "aaaa") == (3, 3, 4)

    def test_identical(self):
        assert changed_region("same", "same") == (4, 4, 4)


class TestTableEdits:
    TEXT = "Intro\n| a |\n|---|\n| 1 |\nOutro"

    def test_replace_table_rewrites_only_that_table(self):
        session = FieldEditSession(self.TEXT)
        session.begin_edit()
        session.replace_table(0, TableSegment(headers=["a"], rows=[["2"]]))
        assert session.text == "Intro\n| a |\n|---|\n| 2 |\nOutro"

    def test_missing_table_is_a_no_op(self):
        session = FieldEditSession(self.TEXT)
        session.begin_edit()
        session.replace_table(3, TableSegment(headers=["x"]))
        assert session.text == self.TEXT

    def test_requires_editing(self):
        session = FieldEditSession(self.TEXT)
        with pytest.raises(RuntimeError, match="edit a table"):
            session.replace_table(0, TableSegment(headers=["a"]))

    def test_table_edit_moves_a_later_upload_point(self):
        session = FieldEditSession(self.TEXT)
        session.begin_edit()
        ticket = session.begin_upload(len(self.TEXT))
        session.replace_table(0, TableSegment(headers=["a"], rows=[["1"], ["22"]]))
        assert session.pending_offset(ticket) == len(session.text)
