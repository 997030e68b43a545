"""
ImportRunContext — everything one import run knows, in one place.

A fresh context is created at the start of ImportPipeline.run() and
dropped when the run ends. Nothing in here outlives a run or is shared
between runs.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.documents import ImportRow, RowStatus
from models.links import PendingLink, RecordIdentity, ResolvedLink


class RunPhase(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    LINK_RESOLUTION = "link_resolution"
    ERROR_REPORTED = "error_reported"


@dataclass
class ImportProgress:
    """Emitted after every row finishes (success or failure)."""

    index: int  # 1-based position of the row that just finished
    total: int
    row: ImportRow


@dataclass
class ImportSummary:
    """What a run did. Returned by ImportPipeline.run()."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    links_created: int = 0
    links_planned: int = 0
    link_error: Optional[str] = None

    def describe(self) -> str:
        text = (f"Import complete: {self.processed} documents processed "
                f"({self.succeeded} done, {self.failed} failed)")
        if self.links_planned:
            text += f", {self.links_created}/{self.links_planned} links created"
        return text


@dataclass
class ImportRunContext:
    """Per-run state threaded through the upload and link phases.

    Fields:
        campaign_id:    Target campaign (the lore endpoint calls it a world).
        rows:           Selected rows, in selection order.
        phase:          Current RunPhase.
        created:        Identity registry: document title -> created record.
        pending_links:  References of uploaded non-Lore documents.
        resolved_links: Final link set, filled by the link phase.
    """

    campaign_id: str
    rows: List[ImportRow]
    phase: RunPhase = RunPhase.IDLE
    created: Dict[str, RecordIdentity] = field(default_factory=dict)
    pending_links: List[PendingLink] = field(default_factory=list)
    resolved_links: List[ResolvedLink] = field(default_factory=list)
    completed: int = 0
    links_created: int = 0
    link_error: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.rows)

    def summary(self) -> ImportSummary:
        return ImportSummary(
            processed=self.completed,
            succeeded=sum(1 for r in self.rows if r.status == RowStatus.DONE),
            failed=sum(1 for r in self.rows if r.status == RowStatus.ERROR),
            links_created=self.links_created,
            links_planned=len(self.resolved_links),
            link_error=self.link_error,
        )
