"""
codex/markup/segments.py -- Typed segments of parsed markup.

A markup field is parsed into an ordered list of segments.  Segments are
immutable Pydantic models compared structurally, so two parses of the same
text are equal even though they are different objects.  They only ever
live in memory: the text field stays the record of truth.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class _Segment(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextRun(_Segment):
    """Literal text between markup tokens."""

    kind: Literal["text"] = "text"
    content: str


class ImageSegment(_Segment):
    """An inline image with optional explicit pixel dimensions."""

    kind: Literal["image"] = "image"
    url: str
    alt: str = ""
    caption: Optional[str] = None
    width: Optional[PositiveInt] = None
    height: Optional[PositiveInt] = None


class TableSegment(_Segment):
    """An inline table.  Rows may be shorter than the header row."""

    kind: Literal["table"] = "table"
    title: Optional[str] = None
    headers: list[str]
    rows: list[list[str]] = Field(default_factory=list)


class LinkToken(_Segment):
    """An atomic reference to another world element."""

    kind: Literal["link"] = "link"
    display_name: str
    category: str
    target_id: str


Segment = Union[TextRun, ImageSegment, TableSegment, LinkToken]


class SegmentSpan(BaseModel):
    """A parsed segment together with its ``[start, end)`` source offsets."""

    model_config = ConfigDict(frozen=True)

    segment: Segment = Field(discriminator="kind")
    start: int
    end: int
