"""
Pydantic v2 data models — the contract for import rows, API responses and links.

Every response from the Archivist API passes through these models first.
If validation fails, the row fails.
"""

from models.documents import DocumentKind, RowStatus, ImportRow, Chunk
from models.campaigns import Campaign, CampaignList, CreatedRecord, LoreRecord, CampaignLink
from models.links import (
    RecordType,
    KIND_TO_RECORD_TYPE,
    Reference,
    RecordIdentity,
    PendingLink,
    ResolvedLink,
)

__all__ = [
    "DocumentKind",
    "RowStatus",
    "ImportRow",
    "Chunk",
    "Campaign",
    "CampaignList",
    "CreatedRecord",
    "LoreRecord",
    "CampaignLink",
    "RecordType",
    "KIND_TO_RECORD_TYPE",
    "Reference",
    "RecordIdentity",
    "PendingLink",
    "ResolvedLink",
]
