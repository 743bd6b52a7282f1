"""
codex_app/services/upload_worker.py -- QThread worker for media uploads.

Runs ``MediaUploader.upload()`` off the GUI thread and hands the result
back through a signal together with the ``UploadTicket`` it was started
with.  The worker never touches field text; the receiving field session
decides whether the ticket is still current and splices the image in.

Usage::

    worker = UploadWorker(uploader, ticket, "/home/me/map.png", entry_id)
    worker.upload_finished.connect(on_done)
    worker.start()
"""

from __future__ import annotations

import logging

from PySide6.QtCore import QThread, Signal

from codex.editing import UploadTicket
from codex.media import MediaUploader, UploadResult

logger = logging.getLogger(__name__)


class UploadWorker(QThread):
    """Background thread for a single upload.

    Signals
    -------
    upload_finished(object, object)
        ``(UploadTicket, UploadResult)``.  Emitted exactly once, also when
        the uploader raised (the result then carries the error message).
    """

    upload_finished = Signal(object, object)

    def __init__(
        self,
        uploader: MediaUploader,
        ticket: UploadTicket,
        file_path: str,
        entry_id: str,
        media_type: str = "images",
        parent=None,
    ):
        super().__init__(parent)
        self._uploader = uploader
        self.ticket = ticket
        self._file_path = file_path
        self._entry_id = entry_id
        self._media_type = media_type

    def run(self) -> None:
        """Thread entry point."""
        try:
            result = self._uploader.upload(self._file_path, self._entry_id, self._media_type)
        except Exception as e:
            logger.exception("UploadWorker run() failed for %s", self._file_path)
            result = UploadResult(error=str(e) or "Upload failed")
        self.upload_finished.emit(self.ticket, result)
