"""
codex/markup/parser.py -- Markup text to segment sequence.

The parser is a small hand-written scanner made of ordered matchers:

    1. images   ``![alt](url [width=W] [height=H] ["caption"])``
    2. tables   optional ``**Title**`` + blank line, header row,
                ``|---|`` separator row, data rows (line starts only)
    3. links    ``@{Name|Category|Id}`` inside the remaining text runs

Images are single-line and resolved first; tables are matched on the text
left between images; links are split out of whatever text is still left.
Anything a matcher does not fully accept stays literal text, so the parser
never raises on user input.

Usage::

    from codex.markup.parser import parse

    segments = parse("See @{Mira|characters|mira-c3d4} ![map](maps/m.png width=200)")
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, Optional

from codex.markup.segments import (
    ImageSegment,
    LinkToken,
    Segment,
    SegmentSpan,
    TableSegment,
    TextRun,
)

logger = logging.getLogger(__name__)

_LINK_RE = re.compile(r"@\{([^|{}\n]+)\|([^|{}\n]+)\|([^|{}\n]+)\}")

# Image pieces (the scanner glues them together)
_URL_RE = re.compile(r"[^\s)]+")
_SPACES_RE = re.compile(r" +")
_IMAGE_ATTR_RE = re.compile(r'(width|height)=(\d+)|"([^"\n]*)"')

# Table pieces
_TITLE_RE = re.compile(r"\*\*([^*\n]+)\*\*")
_SEPARATOR_CELL_RE = re.compile(r"\s*-{3,}\s*")


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

def parse(text: str) -> list[Segment]:
    """Parse *text* into an ordered list of segments.

    Pure: the same text always yields an equal list.  ``parse("")`` is
    ``[]`` and text without markup is a single :class:`TextRun`.
    """
    return [span.segment for span in parse_spans(text)]


def parse_spans(text: str) -> list[SegmentSpan]:
    """Parse *text* and keep the source offsets of every segment."""
    if not text:
        return []
    try:
        spans: list[SegmentSpan] = []
        cursor = 0
        for image in _scan_images(text):
            _parse_block_text(text, cursor, image.start, spans)
            spans.append(image)
            cursor = image.end
        _parse_block_text(text, cursor, len(text), spans)
        return spans
    except Exception:
        logger.exception("Markup scan failed; treating field as plain text")
        return [SegmentSpan(segment=TextRun(content=text), start=0, end=len(text))]


def find_images(text: str) -> list[SegmentSpan]:
    """Return the image spans of *text* in source order.

    The position in this list is the image's occurrence index.
    """
    return [span for span in parse_spans(text) if isinstance(span.segment, ImageSegment)]


def find_tables(text: str) -> list[SegmentSpan]:
    """Return the table spans of *text* in source order."""
    return [span for span in parse_spans(text) if isinstance(span.segment, TableSegment)]


# ------------------------------------------------------------------
# Pass 1: images
# ------------------------------------------------------------------

def _scan_images(text: str) -> Iterator[SegmentSpan]:
    pos = text.find("![")
    while pos != -1:
        matched = _match_image(text, pos)
        if matched is None:
            pos = text.find("![", pos + 1)
            continue
        segment, end = matched
        yield SegmentSpan(segment=segment, start=pos, end=end)
        pos = text.find("![", end)


def _match_image(text: str, pos: int) -> Optional[tuple[ImageSegment, int]]:
    """Match one image token starting at *pos*; ``None`` if malformed."""
    close = text.find("]", pos + 2)
    if close == -1:
        return None
    alt = text[pos + 2:close]
    if "\n" in alt or not text.startswith("(", close + 1):
        return None

    url_match = _URL_RE.match(text, close + 2)
    if url_match is None:
        return None  # empty URL
    i = url_match.end()

    attrs: dict = {}
    while True:
        if text.startswith(")", i):
            break
        gap = _SPACES_RE.match(text, i)
        if gap is None:
            return None
        i = gap.end()
        if text.startswith(")", i):
            break
        attr = _IMAGE_ATTR_RE.match(text, i)
        if attr is None:
            return None
        key = attr.group(1) or "caption"
        if key in attrs:
            return None
        if key == "caption":
            attrs[key] = attr.group(3)
        else:
            value = int(attr.group(2))
            if value <= 0:
                return None
            attrs[key] = value
        i = attr.end()

    segment = ImageSegment(
        url=url_match.group(),
        alt=alt,
        caption=attrs.get("caption"),
        width=attrs.get("width"),
        height=attrs.get("height"),
    )
    return segment, i + 1


# ------------------------------------------------------------------
# Pass 2: tables
# ------------------------------------------------------------------

def _parse_block_text(text: str, start: int, end: int, out: list[SegmentSpan]) -> None:
    """Split ``text[start:end]`` into tables and link-bearing text."""
    cursor = start
    for table in _scan_tables(text, start, end):
        _split_links(text, cursor, table.start, out)
        out.append(table)
        cursor = table.end
    _split_links(text, cursor, end, out)


def _scan_tables(text: str, start: int, end: int) -> Iterator[SegmentSpan]:
    pos = start
    while pos < end:
        if pos == 0 or text[pos - 1] == "\n":
            matched = _match_table(text, pos, end)
            if matched is not None:
                segment, table_end = matched
                yield SegmentSpan(segment=segment, start=pos, end=table_end)
                pos = table_end
                continue
        newline = text.find("\n", pos, end)
        if newline == -1:
            return
        pos = newline + 1


def _match_table(text: str, pos: int, limit: int) -> Optional[tuple[TableSegment, int]]:
    """Match a table whose first line starts at *pos*; ``None`` if malformed."""
    line = _read_line(text, pos, limit)
    if line is None:
        return None

    title = None
    title_match = _TITLE_RE.fullmatch(line[0].rstrip())
    if title_match and title_match.group(1).strip():
        blank = _read_line(text, line[1], limit)
        if blank is None or blank[0].strip():
            return None
        title = title_match.group(1).strip()
        line = _read_line(text, blank[1], limit)
        if line is None:
            return None

    headers = _split_row(line[0])
    if headers is None:
        return None

    separator = _read_line(text, line[1], limit)
    if separator is None or not _is_separator(separator[0]):
        return None

    rows: list[list[str]] = []
    pos = separator[1]
    while True:
        line = _read_line(text, pos, limit)
        if line is None:
            break
        cells = _split_row(line[0])
        if cells is None:
            break
        rows.append(cells)
        pos = line[1]

    return TableSegment(title=title, headers=headers, rows=rows), pos


def _read_line(text: str, pos: int, limit: int) -> Optional[tuple[str, int]]:
    """Return ``(line, next_pos)`` for the line at *pos*.

    A line must end with a newline or at the real end of the text; a line
    cut short by an inline image at *limit* does not count.
    """
    if pos >= limit:
        return None
    newline = text.find("\n", pos, limit)
    if newline == -1:
        if limit != len(text):
            return None
        return text[pos:limit], limit
    return text[pos:newline], newline + 1


def _split_row(line: str) -> Optional[list[str]]:
    line = line.rstrip()
    if len(line) < 2 or line[0] != "|" or line[-1] != "|":
        return None
    return [cell.strip() for cell in line[1:-1].split("|")]


def _is_separator(line: str) -> bool:
    cells = _split_row(line)
    return bool(cells) and all(_SEPARATOR_CELL_RE.fullmatch(cell) for cell in cells)


# ------------------------------------------------------------------
# Pass 3: links
# ------------------------------------------------------------------

def _split_links(text: str, start: int, end: int, out: list[SegmentSpan]) -> None:
    pos = start
    for match in _LINK_RE.finditer(text, start, end):
        if match.start() > pos:
            out.append(_text_span(text, pos, match.start()))
        display_name, category, target_id = match.groups()
        out.append(SegmentSpan(
            segment=LinkToken(
                display_name=display_name, category=category, target_id=target_id,
            ),
            start=match.start(),
            end=match.end(),
        ))
        pos = match.end()
    if pos < end:
        out.append(_text_span(text, pos, end))


def _text_span(text: str, start: int, end: int) -> SegmentSpan:
    return SegmentSpan(segment=TextRun(content=text[start:end]), start=start, end=end)
