"""
VaultManager — Read-only access to the Obsidian vault being imported.

Lists the vault's markdown notes, reads their text, and turns each note
into an ImportRow with a best-guess document kind. Kinds come from YAML
frontmatter when a note declares one, otherwise from the folder it lives in.
"""

import os
import re
import yaml
import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Tuple

from models.documents import DocumentKind, ImportRow

logger = logging.getLogger('VaultManager')


class VaultFileNotFoundError(FileNotFoundError):
    """A selected row points at a file that is no longer in the vault."""
    pass


# ---------------------------------------------------------------------------
# YAML Frontmatter Helpers
# ---------------------------------------------------------------------------

def parse_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
    """Parse YAML frontmatter from a markdown file.

    Returns:
        (frontmatter_dict, body_text)
    """
    if not content.startswith('---'):
        return {}, content

    end_idx = content.find('\n---', 3)
    if end_idx == -1:
        return {}, content

    yaml_str = content[3:end_idx].strip()
    body = content[end_idx + 4:].lstrip('\n')

    try:
        frontmatter = yaml.safe_load(yaml_str) or {}
    except yaml.YAMLError as e:
        logger.warning(f"YAML parse error: {e}")
        frontmatter = {}
    if not isinstance(frontmatter, dict):
        frontmatter = {}

    return frontmatter, body


# ---------------------------------------------------------------------------
# Kind inference
# ---------------------------------------------------------------------------

# Frontmatter `type:` values used by campaign vault templates.
FRONTMATTER_KINDS = {
    'party_member': DocumentKind.PLAYER_CHARACTER,
    'player_character': DocumentKind.PLAYER_CHARACTER,
    'player character': DocumentKind.PLAYER_CHARACTER,
    'pc': DocumentKind.PLAYER_CHARACTER,
    'npc': DocumentKind.NPC,
    'item': DocumentKind.ITEM,
    'location': DocumentKind.LOCATION,
    'faction': DocumentKind.FACTION,
    'lore': DocumentKind.LORE,
}

# Folder names (numeric prefixes like '02 - ' stripped, case-insensitive).
FOLDER_KINDS = {
    'party': DocumentKind.PLAYER_CHARACTER,
    'player characters': DocumentKind.PLAYER_CHARACTER,
    'pcs': DocumentKind.PLAYER_CHARACTER,
    'npcs': DocumentKind.NPC,
    'items': DocumentKind.ITEM,
    'locations': DocumentKind.LOCATION,
    'factions': DocumentKind.FACTION,
    'lore': DocumentKind.LORE,
}

FOLDER_PREFIX_RE = re.compile(r'^\d+\s*-\s*')


def parse_kind(value: Any) -> Optional[DocumentKind]:
    """Map a user/frontmatter value to a DocumentKind, or None."""
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    for kind in DocumentKind:
        if kind.value.lower() == value.lower() or kind.name.lower() == value.lower():
            return kind
    return FRONTMATTER_KINDS.get(value.lower())


def infer_kind(relative_path: str, frontmatter: Dict[str, Any]) -> DocumentKind:
    """Pick a kind for a note: frontmatter first, then folders, else Lore."""
    for key in ('archivist_type', 'type'):
        kind = parse_kind(frontmatter.get(key))
        if kind:
            return kind

    folders = relative_path.replace('\\', '/').split('/')[:-1]
    for folder in reversed(folders):
        name = FOLDER_PREFIX_RE.sub('', folder).strip().lower()
        if name in FOLDER_KINDS:
            return FOLDER_KINDS[name]
    return DocumentKind.LORE


@dataclass
class VaultFileInfo:
    """Basic metadata for one vault file."""

    path: str
    basename: str
    size_bytes: int

    @property
    def title(self) -> str:
        return os.path.splitext(self.basename)[0]


# ---------------------------------------------------------------------------
# VaultManager Class
# ---------------------------------------------------------------------------

class VaultManager:
    """Read access to a vault directory."""

    def __init__(self, vault_path: str):
        self.vault_path = os.path.abspath(vault_path)
        if not os.path.isdir(self.vault_path):
            logger.warning(f"Vault directory not found at {self.vault_path}")

    @property
    def name(self) -> str:
        """Vault folder name; used as the default campaign title."""
        return os.path.basename(self.vault_path.rstrip(os.sep))

    def _resolve(self, relative_path: str) -> str:
        """Resolve a path relative to the vault root."""
        return os.path.join(self.vault_path, *relative_path.replace('\\', '/').split('/'))

    def list_files(self) -> List[str]:
        """All .md files in the vault, relative to its root, sorted.

        Hidden folders (.obsidian, .trash, .git) are skipped.
        """
        results = []
        if not os.path.isdir(self.vault_path):
            return results

        for root, dirs, files in os.walk(self.vault_path):
            dirs[:] = [d for d in dirs if not d.startswith('.')]
            for fname in files:
                if fname.endswith('.md'):
                    full = os.path.join(root, fname)
                    rel = os.path.relpath(full, self.vault_path).replace(os.sep, '/')
                    results.append(rel)
        return sorted(results)

    def stat_file(self, relative_path: str) -> VaultFileInfo:
        full_path = self._resolve(relative_path)
        try:
            size = os.path.getsize(full_path)
        except FileNotFoundError as e:
            raise VaultFileNotFoundError(f"File not found: {relative_path}") from e
        return VaultFileInfo(
            path=relative_path,
            basename=os.path.basename(full_path),
            size_bytes=size,
        )

    def read_file(self, relative_path: str) -> str:
        """Return the raw text of a vault file.

        Raises:
            VaultFileNotFoundError: the file is missing.
        """
        full_path = self._resolve(relative_path)
        if not os.path.isfile(full_path):
            logger.error(f"Vault file not found: {full_path}")
            raise VaultFileNotFoundError(f"File not found: {relative_path}")
        with open(full_path, 'r', encoding='utf-8') as f:
            return f.read()

    def load_rows(self, default_subtype: Optional[str] = None) -> List[ImportRow]:
        """Build one unselected ImportRow per vault note."""
        rows = []
        for rel in self.list_files():
            info = self.stat_file(rel)
            try:
                frontmatter, _body = parse_frontmatter(self.read_file(rel))
            except UnicodeDecodeError as e:
                logger.warning(f"Skipping frontmatter of {rel}: {e}")
                frontmatter = {}
            subtype = frontmatter.get('lore_subtype')
            rows.append(ImportRow(
                path=rel,
                title=info.title,
                size_bytes=info.size_bytes,
                kind=infer_kind(rel, frontmatter),
                lore_subtype=subtype if isinstance(subtype, str) else default_subtype,
            ))
        logger.info(f"Loaded {len(rows)} notes from {self.vault_path}")
        return rows
