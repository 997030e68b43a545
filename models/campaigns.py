"""
Campaign and created-record schemas — the response contract of the Archivist API.

Every JSON body the client hands back passes through one of these models.
"""

from typing import List, Optional

from pydantic import BaseModel, field_validator


class Campaign(BaseModel):
    """Schema for a campaign (called a "world" by the lore endpoint)."""

    id: str
    title: str
    description: Optional[str] = None
    system: Optional[str] = None
    public: Optional[bool] = None
    created_at: Optional[str] = None

    model_config = {"extra": "allow"}


class CampaignList(BaseModel):
    """Response of GET /v1/campaigns."""

    data: List[Campaign] = []
    total: Optional[int] = None

    model_config = {"extra": "allow"}


class CreatedRecord(BaseModel):
    """Any record returned by a create endpoint. Only the id is relied upon."""

    id: str

    model_config = {"extra": "allow"}

    @field_validator("id", mode="before")
    @classmethod
    def id_must_be_present(cls, v):
        if v is None:
            raise ValueError("id is missing")
        v = str(v).strip()
        if not v:
            raise ValueError("id is empty")
        return v


class LoreRecord(BaseModel):
    """Response of POST /v1/lore. The id is not needed: lore is never linked."""

    id: Optional[str] = None

    model_config = {"extra": "allow"}


class CampaignLink(BaseModel):
    """Response of POST /v1/campaigns/{id}/links."""

    id: Optional[str] = None

    model_config = {"extra": "allow"}
