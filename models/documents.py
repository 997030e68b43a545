"""
Document schemas — one row per vault file offered for import.

Rows are mutated in place while an import runs (status, error detail),
the same way the admin console mutates queued actions.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class DocumentKind(str, Enum):
    """What kind of remote record a vault document becomes."""

    PLAYER_CHARACTER = "Player Character"
    NPC = "NPC"
    ITEM = "Item"
    LOCATION = "Location"
    FACTION = "Faction"
    LORE = "Lore"


class RowStatus(str, Enum):
    UNSET = "unset"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"


class ImportRow(BaseModel):
    """Schema for a single vault document in the import list."""

    path: str  # Relative to the vault root, e.g. '02 - NPCs/Durnan.md'
    title: str  # File base name without extension
    size_bytes: int = Field(default=0, ge=0)
    kind: DocumentKind = DocumentKind.LORE
    lore_subtype: Optional[str] = None
    selected: bool = False
    status: RowStatus = RowStatus.UNSET
    error_detail: Optional[str] = None

    @field_validator("lore_subtype")
    @classmethod
    def blank_subtype_is_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def basename(self) -> str:
        """File name with extension, e.g. 'Durnan.md'."""
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]

    def mark_uploading(self) -> None:
        self.status = RowStatus.UPLOADING
        self.error_detail = None

    def mark_done(self) -> None:
        self.status = RowStatus.DONE
        self.error_detail = None

    def mark_error(self, detail: str) -> None:
        self.status = RowStatus.ERROR
        self.error_detail = detail


class Chunk(BaseModel):
    """A bounded piece of a Lore document's content."""

    name: str
    text: str
