"""
Shared pytest fixtures for the Archivist importer test suite.
"""

import os
import itertools

import pytest
from unittest.mock import AsyncMock, MagicMock

from models.campaigns import CampaignLink, CreatedRecord, LoreRecord
from tools.notifier import CollectingNotifier
from tools.vault_manager import VaultManager


# ---------------------------------------------------------------------------
# Vault helpers
# ---------------------------------------------------------------------------

def write_note(root, relative_path: str, content: str) -> str:
    """Create a note (and its folders) under *root*; return the full path."""
    full = os.path.join(str(root), *relative_path.split('/'))
    os.makedirs(os.path.dirname(full), exist_ok=True)
    with open(full, 'w', encoding='utf-8') as f:
        f.write(content)
    return full


@pytest.fixture
def vault_dir(tmp_path):
    """A small campaign vault on disk."""
    root = tmp_path / "Waterdeep"
    root.mkdir()
    write_note(root, "01 - Party/Hadrian.md", "---\ntype: party_member\n---\nA paladin who owes [[Durnan]] money.\n")
    write_note(root, "02 - NPCs/Durnan.md", "Owner of the [[Yawning Portal]].\n")
    write_note(root, "03 - Locations/Yawning Portal.md", "A tavern built over the well to [[Undermountain]].\n")
    write_note(root, "07 - Lore/History of Waterdeep.md", "---\nlore_subtype: worldHistory\n---\n# Founding\n\nLong ago.\n")
    write_note(root, ".obsidian/workspace.md", "editor state")
    return root


@pytest.fixture
def vault(vault_dir):
    return VaultManager(str(vault_dir))


@pytest.fixture
def notifier():
    return CollectingNotifier()


# ---------------------------------------------------------------------------
# Client mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_archivist():
    """AsyncMock ArchivistClient. Every create_* call returns a fresh id."""
    counter = itertools.count(1)

    def _created(*args, **kwargs):
        return CreatedRecord(id=f"rec_{next(counter)}")

    client = MagicMock()
    client.has_api_key = True
    client.create_character = AsyncMock(side_effect=_created)
    client.create_item = AsyncMock(side_effect=_created)
    client.create_location = AsyncMock(side_effect=_created)
    client.create_faction = AsyncMock(side_effect=_created)
    client.create_lore = AsyncMock(return_value=LoreRecord(id="lore_1"))
    client.create_campaign_link = AsyncMock(return_value=CampaignLink(id="link_1"))
    return client


@pytest.fixture
def add_note(vault_dir):
    """Write an extra note into the vault fixture: add_note('Items/Sword.md', text)."""
    def _add(relative_path: str, content: str) -> str:
        return write_note(vault_dir, relative_path, content)
    return _add
