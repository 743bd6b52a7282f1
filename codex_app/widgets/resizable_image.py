"""
codex_app/widgets/resizable_image.py -- Inline image with a drag-resize handle.

Shows one ``ImageNode``.  Local (``file://`` or plain path) images load
synchronously; ``http(s)`` images load through ``QNetworkAccessManager``.
When loading fails the node's ``placeholder_url`` file is shown, or a
grey "Image unavailable" box when it has none; the stored markup is never
touched by a failed load.

When the node is resizable a corner handle is shown.  Pressing it starts
a ``ResizeGesture``; while it is dragging, one application-wide event
filter tracks the pointer even outside the widget.  Pointer moves are
coalesced into at most one visual update per frame and the final size is
reported once through ``resize_finished`` on release.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QEvent, QObject, QPointF, QSize, Qt, QTimer, QUrl, Signal
from PySide6.QtGui import QColor, QMouseEvent, QPainter, QPixmap
from PySide6.QtNetwork import QNetworkAccessManager, QNetworkReply, QNetworkRequest
from PySide6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget

from codex.markup.renderer import ImageNode, display_size
from codex.markup.resize import ResizeGesture
from codex.media import url_to_path

logger = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16
HANDLE_SIZE = 12
_FALLBACK_SIZE = QSize(400, 300)


def _placeholder_pixmap(size: QSize, text: str) -> QPixmap:
    pixmap = QPixmap(size)
    pixmap.fill(QColor("#37474F"))
    painter = QPainter(pixmap)
    painter.setPen(QColor("#B0BEC5"))
    painter.drawRect(0, 0, size.width() - 1, size.height() - 1)
    painter.drawText(pixmap.rect(), Qt.AlignmentFlag.AlignCenter, text or "Image unavailable")
    painter.end()
    return pixmap


class _ResizeHandle(QWidget):
    """Small square grip in the bottom-right corner of the image."""

    pressed = Signal(QPointF)

    def __init__(self, parent: QWidget | None = None):
        super().__init__(parent)
        self.setFixedSize(HANDLE_SIZE, HANDLE_SIZE)
        self.setCursor(Qt.CursorShape.SizeFDiagCursor)
        self.setToolTip("Drag to resize")

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#26A69A"))
        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self.pressed.emit(event.globalPosition())
            event.accept()
        else:
            super().mousePressEvent(event)


class ResizableImage(QWidget):
    """Image view with optional corner-drag resizing.

    Signals
    -------
    resize_finished(int, int, int)
        ``(occurrence_index, width, height)`` once per completed drag.
    load_failed(str)
        The image URL could not be loaded; the placeholder is shown.
    """

    resize_finished = Signal(int, int, int)
    load_failed = Signal(str)

    def __init__(self, node: ImageNode, parent: QWidget | None = None):
        super().__init__(parent)
        self._node = node
        self._source: Optional[QPixmap] = None
        self._failed = False
        self._network: Optional[QNetworkAccessManager] = None

        self._gesture = ResizeGesture()
        self._filter_installed = False
        self._pending_pos: Optional[QPointF] = None
        self._frame_timer = QTimer(self)
        self._frame_timer.setSingleShot(True)
        self._frame_timer.setInterval(FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._apply_pending_move)

        self._setup_ui()
        self._load()

    # ------------------------------------------------------------------
    # UI
    # ------------------------------------------------------------------

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 4, 0, 4)
        layout.setSpacing(2)

        self._image_label = QLabel()
        self._image_label.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        if self._node.alt:
            self._image_label.setToolTip(self._node.alt)
        layout.addWidget(self._image_label)

        self._caption_label = QLabel(self._node.caption or "")
        self._caption_label.setProperty("imageCaption", True)
        self._caption_label.setWordWrap(True)
        self._caption_label.setVisible(bool(self._node.caption))
        layout.addWidget(self._caption_label)

        self._handle: Optional[_ResizeHandle] = None
        if self._node.resizable:
            self._handle = _ResizeHandle(self._image_label)
            self._handle.pressed.connect(self.begin_resize)

    @property
    def occurrence_index(self) -> int:
        return self._node.occurrence_index

    @property
    def is_placeholder(self) -> bool:
        return self._failed

    @property
    def gesture(self) -> ResizeGesture:
        return self._gesture

    def displayed_size(self) -> QSize:
        return self._image_label.size()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load(self) -> None:
        url = self._node.url
        if url.startswith(("http://", "https://")):
            self._show_pixmap(None)
            self._network = QNetworkAccessManager(self)
            reply = self._network.get(QNetworkRequest(QUrl(url)))
            reply.finished.connect(lambda: self._on_reply(reply))
            return

        path = url_to_path(url) or url
        pixmap = QPixmap(path)
        if pixmap.isNull():
            self._fail(url)
        else:
            self._source = pixmap
            self._show_pixmap(self._target_size())

    def _on_reply(self, reply: QNetworkReply) -> None:
        try:
            if reply.error() != QNetworkReply.NetworkError.NoError:
                logger.debug("Image download failed for %s: %s", self._node.url, reply.errorString())
                self._fail(self._node.url)
                return
            pixmap = QPixmap()
            if not pixmap.loadFromData(reply.readAll()):
                self._fail(self._node.url)
                return
            self._source = pixmap
            self._show_pixmap(self._target_size())
        finally:
            reply.deleteLater()

    def _fail(self, url: str) -> None:
        logger.warning("Could not load image %s; showing placeholder", url)
        self._failed = True
        self._source = None
        if self._node.placeholder_url:
            placeholder = QPixmap(url_to_path(self._node.placeholder_url) or self._node.placeholder_url)
            if not placeholder.isNull():
                self._source = placeholder
        self._show_pixmap(self._target_size())
        self.load_failed.emit(url)

    def _target_size(self) -> QSize:
        if self._source is not None and not self._failed:
            natural_w, natural_h = self._source.width(), self._source.height()
        else:
            natural_w, natural_h = _FALLBACK_SIZE.width(), _FALLBACK_SIZE.height()
        w, h = display_size(self._node.width, self._node.height, natural_w, natural_h)
        return QSize(max(1, w), max(1, h))

    def _show_pixmap(self, size: Optional[QSize]) -> None:
        size = size or self._target_size()
        if self._source is None:
            if self._failed:
                label = "Image unavailable"
            else:
                label = self._node.alt or "Loading..."
            pixmap = _placeholder_pixmap(size, label)
        else:
            pixmap = self._source.scaled(
                size,
                Qt.AspectRatioMode.IgnoreAspectRatio,
                Qt.TransformationMode.SmoothTransformation,
            )
        self._image_label.setPixmap(pixmap)
        self._image_label.setFixedSize(size)
        if self._handle is not None:
            self._handle.move(size.width() - HANDLE_SIZE, size.height() - HANDLE_SIZE)
            self._handle.raise_()

    # ------------------------------------------------------------------
    # Resizing
    # ------------------------------------------------------------------

    def begin_resize(self, global_pos: QPointF) -> None:
        """Start a drag at *global_pos* (screen coordinates)."""
        if not self._node.resizable or self._gesture.is_dragging:
            return
        size = self.displayed_size()
        try:
            self._gesture.begin(global_pos.x(), global_pos.y(), size.width(), size.height())
        except ValueError:
            logger.debug("Ignoring resize of an empty image", exc_info=True)
            return
        app = QApplication.instance()
        if app is not None:
            app.installEventFilter(self)
            self._filter_installed = True

    def drag_to(self, global_pos: QPointF) -> None:
        """Queue a pointer position; applied on the next frame tick."""
        if not self._gesture.is_dragging:
            return
        self._pending_pos = global_pos
        if not self._frame_timer.isActive():
            self._frame_timer.start()

    def finish_resize(self) -> Optional[tuple[int, int]]:
        """End the drag; emit and return the final size (``None`` if unmoved)."""
        if not self._gesture.is_dragging:
            return None
        self._frame_timer.stop()
        self._apply_pending_move()
        self._remove_filter()
        final = self._gesture.release()
        if final is not None:
            self._show_pixmap(QSize(*final))
            self.resize_finished.emit(self._node.occurrence_index, final[0], final[1])
        return final

    def cancel_resize(self) -> None:
        """Abort the drag and restore the size from the markup."""
        if not self._gesture.is_dragging:
            return
        self._frame_timer.stop()
        self._pending_pos = None
        self._remove_filter()
        self._gesture.cancel()
        self._show_pixmap(self._target_size())

    def _apply_pending_move(self) -> None:
        if self._pending_pos is None:
            return
        pos, self._pending_pos = self._pending_pos, None
        live = self._gesture.move(pos.x(), pos.y())
        if live is not None:
            self._show_pixmap(QSize(*live))

    def _remove_filter(self) -> None:
        if self._filter_installed:
            app = QApplication.instance()
            if app is not None:
                app.removeEventFilter(self)
            self._filter_installed = False

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:
        if not self._gesture.is_dragging:
            return False
        etype = event.type()
        if etype == QEvent.Type.MouseMove:
            self.drag_to(event.globalPosition())
            return True
        if etype == QEvent.Type.MouseButtonRelease:
            self.finish_resize()
            return True
        if etype == QEvent.Type.KeyPress and event.key() == Qt.Key.Key_Escape:
            self.cancel_resize()
            return True
        return False

    def hideEvent(self, event) -> None:
        self.cancel_resize()
        super().hideEvent(event)
