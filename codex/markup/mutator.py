"""
codex/markup/mutator.py -- In-place edits of markup text.

The mutator is the only write path for markup fields.  It works on the raw
text, never on a segment tree: each operation re-scans the current text,
rewrites exactly one span (or splices at one offset), and copies every
other character through unchanged.  The result is simply re-parsed on the
next render.

Occurrence indices that no longer exist (the field changed since the
caller captured the index) are a silent no-op rather than an error.

Usage::

    from codex.markup.mutator import insert_link, update_image_dimensions

    text = update_image_dimensions(text, 0, 400, 200)
    text, caret = insert_link(text, caret, element_ref)
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from codex.markup.parser import find_images, find_tables
from codex.markup.resolver import ElementRef
from codex.markup.segments import TableSegment
from codex.markup.serializer import image_markup, link_markup, table_markup

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_WIDTH = 400
DEFAULT_IMAGE_HEIGHT = 300

_LINK_FORBIDDEN_RE = re.compile(r"[|{}\n\r]+")


# ------------------------------------------------------------------
# Span rewrites
# ------------------------------------------------------------------

def update_image_dimensions(
    text: str,
    occurrence_index: int,
    width: int,
    height: int,
) -> str:
    """Set ``width=``/``height=`` on image number *occurrence_index*.

    Alt text, URL and caption are kept; only that image's span is rewritten
    (in canonical form).  An out-of-range index returns *text* unchanged.

    Raises
    ------
    ValueError
        If *width* or *height* is not a positive integer.
    """
    if int(width) <= 0 or int(height) <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    images = find_images(text)
    if not 0 <= occurrence_index < len(images):
        logger.debug(
            "Image %d not found (field has %d); leaving text unchanged",
            occurrence_index, len(images),
        )
        return text

    span = images[occurrence_index]
    image = span.segment
    replacement = image_markup(image.url, image.alt, int(width), int(height), image.caption)
    return text[:span.start] + replacement + text[span.end:]


def replace_table(text: str, occurrence_index: int, table: TableSegment) -> str:
    """Replace table number *occurrence_index* with *table*.

    An out-of-range index returns *text* unchanged.
    """
    tables = find_tables(text)
    if not 0 <= occurrence_index < len(tables):
        logger.debug(
            "Table %d not found (field has %d); leaving text unchanged",
            occurrence_index, len(tables),
        )
        return text

    span = tables[occurrence_index]
    replacement = table_markup(table.headers, table.rows, table.title)
    return text[:span.start] + replacement + text[span.end:]


# ------------------------------------------------------------------
# Splices
# ------------------------------------------------------------------

def insert_at(text: str, offset: int, markup: str) -> tuple[str, int]:
    """Splice *markup* into *text* at *offset*.

    Returns ``(new_text, caret)`` where the caret sits right after the
    inserted markup.  Offsets outside the text are clamped to its ends.
    """
    offset = max(0, min(len(text), offset))
    return text[:offset] + markup + text[offset:], offset + len(markup)


def insert_link(text: str, offset: int, element: ElementRef) -> tuple[str, int]:
    """Insert a ``@{Name|Category|Id}`` token for *element*."""
    parts = [
        _clean_link_part(element.name),
        _clean_link_part(element.category),
        _clean_link_part(element.id),
    ]
    if not all(parts):
        raise ValueError(f"Cannot link to element with empty name/category/id: {element!r}")
    return insert_at(text, offset, link_markup(*parts))


def insert_image(
    text: str,
    offset: int,
    url: str,
    alt: str = "",
    caption: Optional[str] = None,
    width: int = DEFAULT_IMAGE_WIDTH,
    height: int = DEFAULT_IMAGE_HEIGHT,
) -> tuple[str, int]:
    """Insert a canonical image token (default ``width=400 height=300``)."""
    url = url.strip()
    if not url or any(ch.isspace() or ch == ")" for ch in url):
        raise ValueError(f"Image URL cannot be used in markup: {url!r}")
    alt = alt.replace("]", "").replace("\n", " ")
    if caption is not None:
        caption = caption.replace('"', "'").replace("\n", " ")
    return insert_at(text, offset, image_markup(url, alt, width, height, caption))


def insert_table(
    text: str,
    offset: int,
    headers: Sequence[str],
    rows: Sequence[Sequence[str]] = (),
    title: Optional[str] = None,
) -> tuple[str, int]:
    """Insert a table block at *offset*, on its own lines.

    A newline is added in front when *offset* is mid-line so the table
    starts at a line start.
    """
    if not headers:
        raise ValueError("A table needs at least one header")
    offset = max(0, min(len(text), offset))
    markup = table_markup(headers, rows, title)
    if offset > 0 and text[offset - 1] != "\n":
        markup = "\n" + markup
    return insert_at(text, offset, markup)


def _clean_link_part(value: str) -> str:
    return _LINK_FORBIDDEN_RE.sub(" ", str(value)).strip()
