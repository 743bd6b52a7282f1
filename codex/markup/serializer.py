"""
codex/markup/serializer.py -- Canonical text forms of segments.

The inverse of the parser.  Every segment has exactly one canonical
spelling:

    image   ![alt](url width=W height=H "caption")
    table   **Title**\\n\\n| a | b |\\n|---|---|\\n| 1 | 2 |\\n
    link    @{Name|Category|Id}

Image attributes are single-space separated and always written in the
order width, height, caption (absent ones are omitted).  Every table row,
the last included, ends with a newline.  Text in canonical form survives
``serialize(parse(text)) == text`` byte for byte; any other text survives
``parse(serialize(parse(text))) == parse(text)``.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from codex.markup.segments import ImageSegment, LinkToken, Segment, TableSegment, TextRun


def link_markup(display_name: str, category: str, target_id: str) -> str:
    """Return the ``@{Name|Category|Id}`` token for a link."""
    return "@{" + f"{display_name}|{category}|{target_id}" + "}"


def image_markup(
    url: str,
    alt: str = "",
    width: Optional[int] = None,
    height: Optional[int] = None,
    caption: Optional[str] = None,
) -> str:
    """Return the canonical image token."""
    parts = [url]
    if width is not None:
        parts.append(f"width={width}")
    if height is not None:
        parts.append(f"height={height}")
    if caption is not None:
        parts.append(f'"{caption}"')
    return f"![{alt}]({' '.join(parts)})"


def table_markup(
    headers: Sequence[str],
    rows: Iterable[Sequence[str]] = (),
    title: Optional[str] = None,
) -> str:
    """Return the canonical table block, newline-terminated.

    Pipes and newlines inside cells would break the row structure, so they
    are replaced; asterisks are dropped from the title for the same reason.
    """
    lines: list[str] = []
    if title:
        lines.append(f"**{title.replace('*', '').strip()}**")
        lines.append("")
    lines.append(_row_markup(headers))
    lines.append("|" + "|".join("---" for _ in headers) + "|")
    for row in rows:
        lines.append(_row_markup(row))
    return "\n".join(lines) + "\n"


def _row_markup(cells: Sequence[str]) -> str:
    cleaned = [_clean_cell(cell) for cell in cells]
    return "| " + " | ".join(cleaned) + " |"


def _clean_cell(cell: str) -> str:
    return str(cell).replace("|", "/").replace("\n", " ").strip()


def segment_markup(segment: Segment) -> str:
    """Return the text form of a single segment."""
    if isinstance(segment, TextRun):
        return segment.content
    if isinstance(segment, ImageSegment):
        return image_markup(
            segment.url, segment.alt, segment.width, segment.height, segment.caption,
        )
    if isinstance(segment, TableSegment):
        return table_markup(segment.headers, segment.rows, segment.title)
    if isinstance(segment, LinkToken):
        return link_markup(segment.display_name, segment.category, segment.target_id)
    raise TypeError(f"Not a markup segment: {segment!r}")


def serialize(segments: Iterable[Segment]) -> str:
    """Join segments back into a markup string."""
    return "".join(segment_markup(segment) for segment in segments)
