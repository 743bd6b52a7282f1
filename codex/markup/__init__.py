"""
codex/markup/ -- The inline markup subsystem for encyclopedia fields.

Submodules:
    segments    Typed segment models (text runs, images, tables, links).
    parser      Markup text -> segments.
    serializer  Segments -> canonical markup text.
    resolver    Link resolution and cross-reference detection.
    renderer    Segments -> display-only view nodes.
    resize      Drag-resize gesture state machine.
    mutator     In-place edits of markup text.
"""

from codex.markup.mutator import insert_at, update_image_dimensions
from codex.markup.parser import parse
from codex.markup.renderer import RenderOptions, render
from codex.markup.segments import ImageSegment, LinkToken, Segment, TableSegment, TextRun
from codex.markup.serializer import serialize

__all__ = [
    "ImageSegment",
    "LinkToken",
    "RenderOptions",
    "Segment",
    "TableSegment",
    "TextRun",
    "insert_at",
    "parse",
    "render",
    "serialize",
    "update_image_dimensions",
]
