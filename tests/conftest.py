"""
Shared pytest fixtures for the Codex test suite.

Provides:
    - world_root: a temporary world directory with a user-world/state.json
      entity index (characters and locations)
    - world_index: the WorldElementIndex loaded from that state file
    - store: an EntryStore on the temporary world, pre-populated with
      three encyclopedia entries
    - sample_png: a small PNG written with Pillow
"""

import json
import os
import sys
from pathlib import Path

import pytest

# Run Qt headless when no display is available
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# ---------------------------------------------------------------------------
# Ensure codex/ and codex_app/ are importable regardless of where pytest
# is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

SAMPLE_ENTITY_INDEX = {
    "mira-sunweaver-c3d4": {
        "template_id": "god-profile",
        "entity_type": "characters",
        "name": "Mira Sunweaver",
        "status": "draft",
    },
    "havenport-e5f6": {
        "template_id": "settlement-profile",
        "entity_type": "locations",
        "name": "Havenport",
        "status": "canon",
    },
}


@pytest.fixture
def world_root(tmp_path):
    """Return a temporary world directory with a state.json entity index."""
    root = tmp_path / "test-world"
    state_dir = root / "user-world"
    state_dir.mkdir(parents=True)
    state = {"current_step": 7, "entity_index": SAMPLE_ENTITY_INDEX}
    with open(state_dir / "state.json", "w", encoding="utf-8") as fh:
        json.dump(state, fh, indent=2)
    return str(root)


@pytest.fixture
def world_index(world_root):
    from codex.markup.resolver import WorldElementIndex
    return WorldElementIndex.from_state_file(Path(world_root) / "user-world" / "state.json")


@pytest.fixture
def sample_entries():
    """Entry payloads for the store fixture (name, type, prose)."""
    return [
        {
            "name": "Aether Tide",
            "description": "A seasonal surge of raw magic. Sailors of Havenport fear it.",
            "attributes": {"type": "concept", "definition": "The yearly magical flood."},
        },
        {
            "name": "Tide Glass",
            "description": "Glass formed when the Aether Tide touches sand.",
            "attributes": {"type": "object"},
        },
        {
            "name": "Old Speech",
            "description": "The first language, spoken before the Tide.",
            "attributes": {"type": "language", "etymology": "From the elder runes."},
        },
    ]


@pytest.fixture
def store(world_root, sample_entries):
    """Return an EntryStore with the sample entries created."""
    from codex.entry_store import EntryStore
    s = EntryStore(world_root, project_id="test-world")
    for data in sample_entries:
        s.create_entry(data)
    return s


@pytest.fixture
def sample_png(tmp_path):
    """Write a 64x32 PNG and return its path."""
    from PIL import Image
    path = tmp_path / "map (draft).png"
    Image.new("RGB", (64, 32), color=(40, 120, 200)).save(path)
    return str(path)
