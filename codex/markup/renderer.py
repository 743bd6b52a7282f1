"""
codex/markup/renderer.py -- Segments to a display-only view tree.

``render()`` turns parsed segments into view nodes that a UI toolkit can
draw directly.  It is pure: the same segments, ``editable`` flag and
element directory give the same nodes, and nothing is written anywhere.
Interaction is described, not performed -- a link chip carries the
``(target_id, category)`` it reports when clicked, and image and table
nodes carry the occurrence index the mutator needs after a resize or a
cell edit.

Usage::

    from codex.markup import parse, render, RenderOptions

    nodes = render(parse(entry.description), RenderOptions(editable=True, index=index))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from codex.markup.resolver import ElementIndex, resolve_link
from codex.markup.segments import ImageSegment, LinkToken, Segment, TableSegment, TextRun

logger = logging.getLogger(__name__)

# Empty: the image widget draws its own "Image unavailable" box
PLACEHOLDER_IMAGE_URL = ""


@dataclass(frozen=True)
class RenderOptions:
    """Rendering switches.

    Attributes:
        editable: Show resize handles on images and allow table cell edits.
        index: World element directory used to refresh link chips.
        placeholder_url: Local image file shown when a picture fails to
            load; empty for the drawn placeholder.
    """

    editable: bool = False
    index: Optional[ElementIndex] = None
    placeholder_url: str = PLACEHOLDER_IMAGE_URL


class _ViewNode(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextNode(_ViewNode):
    kind: Literal["text"] = "text"
    text: str


class LinkChipNode(_ViewNode):
    """A clickable, atomic cross-reference chip."""

    kind: Literal["link"] = "link"
    target_id: str
    category: str
    label: str
    icon: str
    color: str
    dangling: bool = False


class ImageNode(_ViewNode):
    kind: Literal["image"] = "image"
    url: str
    alt: str = ""
    caption: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    occurrence_index: int
    resizable: bool = False
    placeholder_url: str = PLACEHOLDER_IMAGE_URL


class TableNode(_ViewNode):
    """A table whose rows are padded/trimmed to the header width."""

    kind: Literal["table"] = "table"
    title: Optional[str] = None
    headers: list[str]
    rows: list[list[str]]
    occurrence_index: int = 0
    editable: bool = False


ViewNode = Union[TextNode, LinkChipNode, ImageNode, TableNode]


def render(segments: Sequence[Segment], options: RenderOptions | None = None) -> list[ViewNode]:
    """Build the view tree for *segments*."""
    options = options or RenderOptions()
    nodes: list[ViewNode] = []
    image_count = 0
    table_count = 0

    for segment in segments:
        if isinstance(segment, TextRun):
            nodes.append(TextNode(text=segment.content))
        elif isinstance(segment, LinkToken):
            nodes.append(_render_link(segment, options))
        elif isinstance(segment, ImageSegment):
            nodes.append(ImageNode(
                url=segment.url,
                alt=segment.alt,
                caption=segment.caption,
                width=segment.width,
                height=segment.height,
                occurrence_index=image_count,
                resizable=options.editable,
                placeholder_url=options.placeholder_url,
            ))
            image_count += 1
        elif isinstance(segment, TableSegment):
            nodes.append(_render_table(segment, table_count, options.editable))
            table_count += 1
        else:
            logger.debug("Skipping unknown segment %r", segment)

    return nodes


def _render_link(token: LinkToken, options: RenderOptions) -> LinkChipNode:
    resolved = resolve_link(token, options.index)
    return LinkChipNode(
        target_id=resolved.target_id,
        category=resolved.category,
        label=resolved.display_name,
        icon=resolved.icon,
        color=resolved.color,
        dangling=not resolved.exists,
    )


def _render_table(table: TableSegment, occurrence_index: int, editable: bool) -> TableNode:
    width = len(table.headers)
    rows = []
    for row in table.rows:
        if len(row) > width:
            logger.debug("Dropping %d extra cell(s) in table row", len(row) - width)
        rows.append((list(row) + [""] * width)[:width])
    return TableNode(
        title=table.title,
        headers=list(table.headers),
        rows=rows,
        occurrence_index=occurrence_index,
        editable=editable,
    )


def display_size(
    width: Optional[int],
    height: Optional[int],
    natural_width: int,
    natural_height: int,
) -> tuple[int, int]:
    """Return the on-screen size of an image.

    Explicit width and height win.  With only one of them, the other is
    derived from the natural aspect ratio; with neither, the natural size
    is used.
    """
    if width and height:
        return width, height
    if natural_width <= 0 or natural_height <= 0:
        return width or natural_width, height or natural_height
    if width:
        return width, max(1, round(width * natural_height / natural_width))
    if height:
        return max(1, round(height * natural_width / natural_height)), height
    return natural_width, natural_height
