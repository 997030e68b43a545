"""
Cross-reference and link schemas.

References are pulled out of raw note text; identities are registered as
records get created; resolved links are what finally gets POSTed.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from models.documents import DocumentKind


class RecordType(str, Enum):
    """Link-addressable record types on the Archivist side."""

    CHARACTER = "Character"
    ITEM = "Item"
    LOCATION = "Location"
    FACTION = "Faction"


# Lore is deliberately absent: lore records are never link targets.
KIND_TO_RECORD_TYPE = {
    DocumentKind.PLAYER_CHARACTER: RecordType.CHARACTER,
    DocumentKind.NPC: RecordType.CHARACTER,
    DocumentKind.ITEM: RecordType.ITEM,
    DocumentKind.LOCATION: RecordType.LOCATION,
    DocumentKind.FACTION: RecordType.FACTION,
}


class Reference(BaseModel):
    """A [[target|alias]] token found in a note."""

    target: str
    alias: str


class RecordIdentity(BaseModel):
    """Remote identity of a record created during this run."""

    remote_id: str
    record_type: RecordType


class PendingLink(BaseModel):
    """References of one uploaded document, waiting for the link phase."""

    from_title: str
    from_type: RecordType
    references: List[Reference] = Field(default_factory=list)


class ResolvedLink(BaseModel):
    """A link ready to submit."""

    from_id: str
    from_type: RecordType
    to_id: str
    to_type: RecordType
    alias: str

    @property
    def key(self):
        """Ordered (from, to) pair. Direction matters."""
        return (self.from_id, self.to_id)
