"""
Shared utility functions for the encyclopedia engine.

JSON file helpers used by the entry store and the world element index,
plus the id and timestamp helpers used when entries are created.

Entry files and the store index are rewritten through a temp file in the
same directory followed by os.replace(), so a crash mid-write leaves the
previous version in place.
"""

import json
import logging
import os
import re
import secrets
import tempfile
import unicodedata
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON files
# ---------------------------------------------------------------------------

def safe_read_json(path, default=None):
    """Load the JSON document at *path*.

    A missing file returns *default* silently; an unreadable or corrupt
    one is logged and also returns *default*.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        return default
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable JSON file %s: %s", path, exc)
        return default


def safe_write_json(path, data, *, indent=2):
    """Replace the JSON document at *path* with *data* in one step."""
    target = os.fspath(path)
    folder = os.path.dirname(target)
    os.makedirs(folder, exist_ok=True)

    handle, scratch = tempfile.mkstemp(prefix=".codex-", suffix=".json", dir=folder)
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=indent, ensure_ascii=False)
            fh.write("\n")
        os.replace(scratch, target)
    except BaseException:
        if os.path.exists(scratch):
            os.unlink(scratch)
        raise


# ---------------------------------------------------------------------------
# Ids and timestamps
# ---------------------------------------------------------------------------

def slugify(text: str) -> str:
    """Convert a human-readable name to a URL-friendly slug.

    Examples:
        "Aether Tide"       -> "aether-tide"
        "The Sunken Court"  -> "the-sunken-court"
        "Mira's Haven"      -> "mira-s-haven"
    """
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return re.sub(r"-+", "-", text).strip("-")


def generate_id(name: str, fallback: str = "entry") -> str:
    """Generate a unique id in the format ``slugified-name-XXXX``."""
    slug = slugify(name) or fallback
    return f"{slug}-{secrets.token_hex(2)}"


def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()
