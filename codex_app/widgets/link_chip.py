"""
codex_app/widgets/link_chip.py -- Link chips as rich-text anchors.

Text runs and the link chips between them are drawn by one rich-text
``QLabel`` per paragraph.  Each chip is an ``<a>`` anchor styled as a
coloured pill; its href encodes ``(category, target_id)`` so the label's
``linkActivated`` signal can be turned back into a click notification.
Chips are atomic: the label is read-only and the whole anchor is one
hit target.
"""

from __future__ import annotations

import html
from typing import Optional, Sequence
from urllib.parse import quote, unquote

from codex.markup.renderer import LinkChipNode, TextNode

CHIP_SCHEME = "codex-element"


def chip_href(category: str, target_id: str) -> str:
    return f"{CHIP_SCHEME}:{quote(category, safe='')}/{quote(target_id, safe='')}"


def parse_chip_href(href: str) -> Optional[tuple[str, str]]:
    """Return ``(target_id, category)`` for a chip href, ``None`` for other links."""
    prefix = f"{CHIP_SCHEME}:"
    if not href.startswith(prefix):
        return None
    category, sep, target_id = href[len(prefix):].partition("/")
    if not sep or not target_id:
        return None
    return unquote(target_id), unquote(category)


def chip_html(node: LinkChipNode) -> str:
    """Return the anchor markup for one chip."""
    label = html.escape(f"{node.icon} {node.label}".strip())
    border = "dashed" if node.dangling else "solid"
    style = (
        f"color: {node.color}; text-decoration: none; "
        f"background-color: rgba(255, 255, 255, 0.06); "
        f"border: 1px {border} {node.color};"
    )
    if node.dangling:
        label = f"<i>{label}</i>"
    return f'<a href="{html.escape(chip_href(node.category, node.target_id))}" style="{style}">&nbsp;{label}&nbsp;</a>'


def chip_tooltip(node: LinkChipNode) -> str:
    if node.dangling:
        return f"{node.label} ({node.category}) -- no longer exists"
    return f"{node.label} ({node.category})"


def paragraph_html(nodes: Sequence[TextNode | LinkChipNode]) -> str:
    """Join text and chip nodes into the HTML of one label."""
    parts = []
    for node in nodes:
        if isinstance(node, LinkChipNode):
            parts.append(chip_html(node))
        else:
            parts.append(html.escape(node.text).replace("\n", "<br>"))
    return "".join(parts)
