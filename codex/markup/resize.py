"""
codex/markup/resize.py -- Drag-resize gesture state machine.

    Idle --begin()--> Dragging --release()/cancel()--> Idle

While dragging, ``move()`` returns the live size for visual feedback only.
The aspect ratio is captured once in ``begin()`` and never recomputed from
intermediate sizes.  ``release()`` hands back the final size exactly once
(or ``None`` when the pointer never moved).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

MIN_IMAGE_WIDTH = 80
MAX_IMAGE_WIDTH = 1000


class ResizeState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


def clamp_width(width: float) -> int:
    return int(max(MIN_IMAGE_WIDTH, min(MAX_IMAGE_WIDTH, round(width))))


class ResizeGesture:
    """Tracks one corner-handle drag at a time."""

    def __init__(self) -> None:
        self.state = ResizeState.IDLE
        self._start_x = 0.0
        self._start_width = 0
        self._aspect = 1.0
        self._current: Optional[tuple[int, int]] = None

    @property
    def is_dragging(self) -> bool:
        return self.state is ResizeState.DRAGGING

    @property
    def current_size(self) -> Optional[tuple[int, int]]:
        """Live size of the drag in progress (``None`` before any move)."""
        return self._current

    def begin(self, x: float, y: float, width: int, height: int) -> None:
        """Start dragging from pointer ``(x, y)`` on an image of the given size."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Cannot resize an image of size {width}x{height}")
        self.state = ResizeState.DRAGGING
        self._start_x = x
        self._start_width = width
        self._aspect = width / height
        self._current = None

    def move(self, x: float, y: float) -> Optional[tuple[int, int]]:
        """Return the live ``(width, height)`` for pointer ``(x, y)``."""
        if not self.is_dragging:
            return None
        new_width = clamp_width(self._start_width + (x - self._start_x))
        new_height = max(1, round(new_width / self._aspect))
        self._current = (new_width, new_height)
        return self._current

    def release(self) -> Optional[tuple[int, int]]:
        """Finish the drag; return the final size, or ``None`` if nothing moved."""
        final = self._current if self.is_dragging else None
        self._reset()
        return final

    def cancel(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.state = ResizeState.IDLE
        self._current = None
