"""
Tests for codex/markup/resize.py -- the drag-resize gesture.
"""

import pytest

from codex.markup.resize import (
    MAX_IMAGE_WIDTH,
    MIN_IMAGE_WIDTH,
    ResizeGesture,
    ResizeState,
    clamp_width,
)


class TestClampWidth:
    @pytest.mark.parametrize("width, expected", [
        (10, MIN_IMAGE_WIDTH),
        (80, 80),
        (412.6, 413),
        (5000, MAX_IMAGE_WIDTH),
    ])
    def test_clamp(self, width, expected):
        assert clamp_width(width) == expected


class TestResizeGesture:
    def test_starts_idle(self):
        gesture = ResizeGesture()
        assert gesture.state is ResizeState.IDLE
        assert gesture.move(10, 10) is None
        assert gesture.release() is None

    def test_drag_keeps_aspect_ratio(self):
        gesture = ResizeGesture()
        gesture.begin(100, 100, 400, 200)
        assert gesture.is_dragging
        assert gesture.move(200, 500) == (500, 250)
        assert gesture.current_size == (500, 250)

    def test_vertical_motion_is_ignored(self):
        gesture = ResizeGesture()
        gesture.begin(0, 0, 300, 100)
        assert gesture.move(0, 900) == (300, 100)

    def test_aspect_fixed_at_begin(self):
        gesture = ResizeGesture()
        gesture.begin(0, 0, 400, 300)
        gesture.move(-1000, 0)   # clamped to the minimum
        assert gesture.move(200, 0) == (600, 450)

    def test_width_is_clamped(self):
        gesture = ResizeGesture()
        gesture.begin(0, 0, 500, 250)
        assert gesture.move(-1000, 0) == (80, 40)
        assert gesture.move(5000, 0) == (1000, 500)

    def test_release_returns_final_size_once(self):
        gesture = ResizeGesture()
        gesture.begin(0, 0, 200, 100)
        gesture.move(50, 0)
        gesture.move(100, 0)
        assert gesture.release() == (300, 150)
        assert gesture.state is ResizeState.IDLE
        assert gesture.release() is None

    def test_release_without_move(self):
        gesture = ResizeGesture()
        gesture.begin(0, 0, 200, 100)
        assert gesture.release() is None

    def test_cancel_discards(self):
        gesture = ResizeGesture()
        gesture.begin(0, 0, 200, 100)
        gesture.move(100, 0)
        gesture.cancel()
        assert not gesture.is_dragging
        assert gesture.current_size is None

    def test_begin_rejects_empty_image(self):
        with pytest.raises(ValueError):
            ResizeGesture().begin(0, 0, 0, 100)
