"""
codex/editing.py -- Editing lifecycle of a single markup field.

A field is either being viewed (parse + render only) or edited (render in
editable mode, mutator reachable):

    VIEWING --begin_edit()--> EDITING --save()/cancel()--> VIEWING

Every transition bumps a generation counter.  Image uploads capture the
generation when they start; a result that arrives after the edit was
saved or cancelled carries a stale generation and is dropped.  Accepted
results are spliced into the *current* text at completion time, so two
uploads finishing in any order both land.

While an upload is pending, its insertion point follows the text: every
splice, span rewrite and typed edit moves the pending offsets that sit at
or after the changed region by the change in length.

Usage::

    session = FieldEditSession(entry.description, persist=save_description)
    session.begin_edit()
    ticket = session.begin_upload(caret)
    ...                                  # upload runs elsewhere
    session.complete_upload(ticket, result)
    session.save()
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from codex.markup.mutator import (
    insert_at,
    insert_image,
    insert_link,
    insert_table,
    replace_table,
    update_image_dimensions,
)
from codex.markup.resolver import ElementRef
from codex.markup.segments import TableSegment
from codex.media import UploadResult

logger = logging.getLogger(__name__)

_ticket_serials = itertools.count(1)


class EditState(Enum):
    VIEWING = "viewing"
    EDITING = "editing"


@dataclass(frozen=True)
class UploadTicket:
    """Handle for an upload started while editing.

    ``offset`` is where the upload was started; the session tracks where
    that point has moved to since.  Tickets not issued by a session
    (``serial`` 0) are spliced at ``offset`` as-is.
    """

    generation: int
    offset: int
    alt: str = ""
    serial: int = 0


def changed_region(old: str, new: str) -> tuple[int, int, int]:
    """Return ``(start, old_end, new_end)`` of the edit turning *old* into *new*.

    Everything before ``start`` and after the ends is shared.  A pure
    insertion has ``start == old_end``.
    """
    limit = min(len(old), len(new))
    start = 0
    while start < limit and old[start] == new[start]:
        start += 1
    suffix = 0
    while suffix < limit - start and old[-1 - suffix] == new[-1 - suffix]:
        suffix += 1
    return start, len(old) - suffix, len(new) - suffix


class FieldEditSession:
    """Two-state editing session around one markup string.

    Parameters
    ----------
    text : str
        The persisted field value.
    persist : callable, optional
        Called with the new text on ``save()``.  If it raises, the session
        stays in EDITING so the user can retry.
    """

    def __init__(self, text: str = "", persist: Optional[Callable[[str], None]] = None):
        self._original = text or ""
        self._text = self._original
        self._persist = persist
        self._generation = 0
        self._pending: dict[UploadTicket, int] = {}
        self.state = EditState.VIEWING

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        """The current text (the edited value while EDITING)."""
        return self._text

    @property
    def original_text(self) -> str:
        return self._original

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_editing(self) -> bool:
        return self.state is EditState.EDITING

    @property
    def is_dirty(self) -> bool:
        return self._text != self._original

    def begin_edit(self) -> None:
        if self.is_editing:
            return
        self._text = self._original
        self.state = EditState.EDITING
        self._next_generation()

    def save(self) -> str:
        """Persist the edited text and return to VIEWING."""
        self._require_editing("save")
        if self._persist is not None:
            self._persist(self._text)
        self._original = self._text
        self.state = EditState.VIEWING
        self._next_generation()
        return self._text

    def cancel(self) -> None:
        """Discard in-memory edits and return to VIEWING."""
        if not self.is_editing:
            return
        self._text = self._original
        self.state = EditState.VIEWING
        self._next_generation()

    def reset(self, text: str) -> None:
        """Replace the persisted value (e.g. another entry was selected)."""
        self._original = text or ""
        self._text = self._original
        self.state = EditState.VIEWING
        self._next_generation()

    def _next_generation(self) -> None:
        self._generation += 1
        self._pending.clear()

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def set_text(self, text: str) -> None:
        """Accept a keystroke-level edit of the whole field."""
        self._require_editing("edit text")
        if self._pending and text != self._text:
            self._move_pending(*changed_region(self._text, text))
        self._text = text

    def insert_markup(self, offset: int, markup: str) -> int:
        """Splice *markup* at *offset*; return the new caret position."""
        self._require_editing("insert markup")
        return self._splice(offset, insert_at(self._text, offset, markup))

    def insert_link(self, offset: int, element: ElementRef) -> int:
        self._require_editing("insert a link")
        return self._splice(offset, insert_link(self._text, offset, element))

    def insert_image(self, offset: int, url: str, alt: str = "", caption: Optional[str] = None) -> int:
        self._require_editing("insert an image")
        return self._splice(offset, insert_image(self._text, offset, url, alt=alt, caption=caption))

    def insert_table(
        self,
        offset: int,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]] = (),
        title: Optional[str] = None,
    ) -> int:
        self._require_editing("insert a table")
        return self._splice(offset, insert_table(self._text, offset, headers, rows, title))

    def resize_image(self, occurrence_index: int, width: int, height: int) -> str:
        """Commit a finished drag-resize to the text."""
        self._require_editing("resize an image")
        self.set_text(update_image_dimensions(self._text, occurrence_index, width, height))
        return self._text

    def replace_table(self, occurrence_index: int, table: TableSegment) -> str:
        """Commit an edited table (cells, headers or title) to the text."""
        self._require_editing("edit a table")
        self.set_text(replace_table(self._text, occurrence_index, table))
        return self._text

    def _splice(self, offset: int, spliced: tuple[str, int]) -> int:
        text, caret = spliced
        start = max(0, min(len(self._text), offset))
        self._move_pending(start, start, caret)
        self._text = text
        return caret

    def _move_pending(self, start: int, old_end: int, new_end: int) -> None:
        delta = new_end - old_end
        for ticket, offset in self._pending.items():
            if offset >= old_end:
                self._pending[ticket] = offset + delta
            elif offset > start:
                self._pending[ticket] = start

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def begin_upload(self, offset: int, alt: str = "") -> UploadTicket:
        self._require_editing("upload an image")
        offset = max(0, min(len(self._text), offset))
        ticket = UploadTicket(
            generation=self._generation, offset=offset, alt=alt, serial=next(_ticket_serials),
        )
        self._pending[ticket] = offset
        return ticket

    def is_current(self, ticket: UploadTicket) -> bool:
        """Return True if *ticket* was issued during the current edit."""
        return self.is_editing and ticket.generation == self._generation

    def pending_offset(self, ticket: UploadTicket) -> int:
        """Where *ticket*'s image would be inserted now."""
        return self._pending.get(ticket, ticket.offset)

    def complete_upload(self, ticket: UploadTicket, result: UploadResult) -> Optional[int]:
        """Insert the uploaded image; return the caret, or ``None`` if dropped.

        Stale tickets and failed uploads leave the text untouched.
        """
        if not self.is_current(ticket):
            logger.info(
                "Discarding upload result from generation %d (now %d, %s)",
                ticket.generation, self._generation, self.state.value,
            )
            return None
        offset = self._pending.pop(ticket, ticket.offset)
        if not result.ok:
            logger.warning("Upload failed, field left untouched: %s", result.error)
            return None

        return self._splice(offset, insert_image(self._text, offset, result.url, alt=ticket.alt))

    def _require_editing(self, action: str) -> None:
        if not self.is_editing:
            raise RuntimeError(f"Cannot {action} while the field is not being edited")
