"""
codex/media.py -- Media storage for encyclopedia entries.

The markup only ever stores a URL; this module is the storage side that
produces one.  ``LocalMediaUploader`` copies files into a media directory
laid out as ``<media_root>/<project_id>/<media_type>/<file name>`` and
returns ``file://`` URLs.  Uploads never raise for user mistakes (too big,
wrong type, not really an image); they return an ``UploadResult`` whose
``error`` explains the problem.

Usage::

    from codex.media import LocalMediaUploader

    uploader = LocalMediaUploader(media_root, project_id="my-world")
    result = uploader.upload("/home/me/map.png", entry_id="aether-tide-1f2e")
    if result.ok:
        text, caret = insert_image(text, caret, result.url)
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import time
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse
from urllib.request import url2pathname

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

ALLOWED_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "images": (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"),
    "videos": (".mp4", ".webm", ".ogg", ".avi", ".mov"),
    "audio": (".mp3", ".wav", ".ogg", ".aac", ".m4a"),
}

_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9.-]")


class UploadResult(BaseModel):
    """Outcome of an upload: a URL on success, an error message otherwise."""

    url: str = ""
    error: Optional[str] = None
    natural_width: Optional[int] = None
    natural_height: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.url)


class MediaUploader(Protocol):
    def upload(self, file_path: str, entry_id: str, media_type: str = "images") -> UploadResult:
        ...


class LocalMediaUploader:
    """Stores uploaded media on the local filesystem.

    Parameters
    ----------
    media_root : str
        Directory that receives all media.
    project_id : str
        Sub-directory per world/project.
    """

    def __init__(self, media_root: str, project_id: str = "default"):
        self.root = Path(media_root)
        self.project_id = project_id

    def upload(self, file_path: str, entry_id: str, media_type: str = "images") -> UploadResult:
        """Validate and copy *file_path* into the media directory."""
        source = Path(file_path)

        allowed = ALLOWED_EXTENSIONS.get(media_type)
        if allowed is None:
            return UploadResult(error=f"Unknown media type '{media_type}'")
        if not source.is_file():
            return UploadResult(error=f"File not found: {source.name}")

        size = source.stat().st_size
        if size > MAX_UPLOAD_BYTES:
            return UploadResult(
                error=f"File size exceeds {format_file_size(MAX_UPLOAD_BYTES)} limit "
                f"({format_file_size(size)})"
            )

        suffix = source.suffix.lower()
        if suffix not in allowed:
            return UploadResult(
                error=f"Invalid file type for {media_type}. Allowed: {', '.join(allowed)}"
            )

        natural: tuple[Optional[int], Optional[int]] = (None, None)
        if media_type == "images" and suffix != ".svg":
            try:
                with Image.open(source) as img:
                    natural = img.size
                    img.verify()
            except (UnidentifiedImageError, OSError) as exc:
                logger.info("Rejected upload %s: %s", source, exc)
                return UploadResult(error=f"{source.name} is not a readable image")

        timestamp = int(time.time() * 1000)
        file_name = f"{entry_id}_{timestamp}_{_UNSAFE_NAME_RE.sub('_', source.name)}"
        dest = self.root / self.project_id / media_type / file_name

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, dest)
        except OSError as exc:
            logger.exception("Upload copy failed: %s -> %s", source, dest)
            return UploadResult(error=str(exc))

        logger.info("Stored %s (%s) as %s", source.name, format_file_size(size), dest)
        return UploadResult(
            url=dest.resolve().as_uri(),
            natural_width=natural[0],
            natural_height=natural[1],
        )

    def delete(self, url: str) -> bool:
        """Delete a stored file by its URL.  Returns False if it is not ours."""
        relative = extract_file_path_from_url(url, str(self.root))
        if relative is None:
            return False
        try:
            (self.root / relative).unlink()
        except OSError:
            logger.warning("Could not delete media %s", url, exc_info=True)
            return False
        return True


# ------------------------------------------------------------------
# URL / size helpers
# ------------------------------------------------------------------

def url_to_path(url: str) -> Optional[str]:
    """Return the local path of a ``file://`` URL (``None`` otherwise)."""
    parsed = urlparse(url)
    if parsed.scheme != "file":
        return None
    return url2pathname(parsed.path)


def extract_file_path_from_url(url: str, media_root: str) -> Optional[str]:
    """Return the path of *url* relative to *media_root*, if it lives there."""
    path = url_to_path(url)
    if path is None:
        return None
    root = os.path.realpath(media_root)
    full = os.path.realpath(path)
    if os.path.commonpath([root, full]) != root or full == root:
        return None
    return Path(os.path.relpath(full, root)).as_posix()


def format_file_size(num_bytes: int) -> str:
    """Human-readable size: ``0 Bytes``, ``1.5 KB``, ``10 MB``."""
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    size = float(num_bytes)
    i = 0
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    value = f"{size:.2f}".rstrip("0").rstrip(".")
    return f"{value} {units[i]}"
