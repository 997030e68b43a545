"""
ImportPipeline — uploads selected vault notes, then links them.

Two phases per run:

  1. Upload. Selected rows are processed one at a time, in selection
     order. Each row is read, its [[references]] are extracted from the
     raw text, the text is sanitized, and one record (or one lore record
     per chunk) is created. A failed row is marked and
     reported; the run continues with the next row.
  2. Links. Once every row has finished, the references of the uploaded
     Characters/Items/Locations/Factions are resolved against the records
     created in this run and submitted one by one.

Uploads are never concurrent. Link resolution starts only once the
identity registry holds every record the run could create.
"""

import logging
from typing import Awaitable, Callable, List, Optional

from clients.archivist_client import ArchivistClient
from models.documents import DocumentKind, ImportRow
from models.links import KIND_TO_RECORD_TYPE, PendingLink, RecordIdentity
from pipeline.errors import MissingApiKeyError, MissingLoreSubtypeError, NoCampaignSelectedError
from pipeline.link_resolver import resolve_links
from pipeline.state import ImportProgress, ImportRunContext, ImportSummary, RunPhase
from tools.chunker import split_content_into_chunks
from tools.markdown_cleaner import sanitize_markdown
from tools.notifier import Notifier
from tools.reference_extractor import extract_references
from tools.vault_manager import VaultManager

logger = logging.getLogger('ImportPipeline')

LORE_FILE_TYPE = 'text/markdown'

ProgressCallback = Callable[[ImportProgress], Awaitable[None]]


class ImportPipeline:
    """Runs imports from one vault into Archivist campaigns.

    Usage:
        pipeline = ImportPipeline(client, vault, notifier)
        summary = await pipeline.run(rows, campaign_id, on_progress=show_progress)
    """

    def __init__(
        self,
        client: ArchivistClient,
        vault: VaultManager,
        notifier: Optional[Notifier] = None,
    ):
        self.client = client
        self.vault = vault
        self.notifier = notifier or Notifier()
        self.phase = RunPhase.IDLE

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(
        self,
        rows: List[ImportRow],
        campaign_id: Optional[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportSummary:
        """Import every selected row into *campaign_id*.

        Raises:
            MissingApiKeyError: the client has no API key.
            NoCampaignSelectedError: *campaign_id* is empty.
        """
        if not self.client.has_api_key:
            self.phase = RunPhase.ERROR_REPORTED
            error = MissingApiKeyError()
            self.notifier.error(str(error))
            raise error
        if not campaign_id:
            self.phase = RunPhase.ERROR_REPORTED
            error = NoCampaignSelectedError()
            self.notifier.error(str(error))
            raise error

        ctx = ImportRunContext(campaign_id=campaign_id, rows=[r for r in rows if r.selected])
        logger.info(f"Starting import of {ctx.total} documents into campaign {campaign_id}")

        self._set_phase(ctx, RunPhase.UPLOADING)
        await self._upload_phase(ctx, on_progress)

        if ctx.pending_links:
            self._set_phase(ctx, RunPhase.LINK_RESOLUTION)
            await self._link_phase(ctx)

        self._set_phase(ctx, RunPhase.IDLE)
        summary = ctx.summary()
        self.notifier.notify(summary.describe())
        logger.info(summary.describe())
        return summary

    def _set_phase(self, ctx: ImportRunContext, phase: RunPhase) -> None:
        ctx.phase = phase
        self.phase = phase

    # ------------------------------------------------------------------
    # Upload phase
    # ------------------------------------------------------------------

    async def _upload_phase(self, ctx: ImportRunContext, on_progress: Optional[ProgressCallback]) -> None:
        for row in ctx.rows:
            await self._process_row(ctx, row)
            ctx.completed += 1
            if on_progress:
                await on_progress(ImportProgress(index=ctx.completed, total=ctx.total, row=row))

    async def _process_row(self, ctx: ImportRunContext, row: ImportRow) -> None:
        row.mark_uploading()
        try:
            raw = self.vault.read_file(row.path)
            references = extract_references(raw)
            content = sanitize_markdown(raw)

            identity = await self._upload(ctx, row, content)

            if identity is not None:
                ctx.created[row.title] = identity
                if references:
                    ctx.pending_links.append(PendingLink(
                        from_title=row.title,
                        from_type=identity.record_type,
                        references=references,
                    ))
            row.mark_done()
            logger.info(f"Imported '{row.title}' as {row.kind.value}")
        except Exception as e:
            row.mark_error(str(e) or e.__class__.__name__)
            logger.error(f"Failed importing '{row.title}': {row.error_detail}")
            self.notifier.error(f"Failed importing {row.title}: {row.error_detail}")

    async def _upload(self, ctx: ImportRunContext, row: ImportRow, content: str) -> Optional[RecordIdentity]:
        """Create the remote record(s) for *row*.

        Returns the identity to register, or None for Lore.
        """
        campaign_id = ctx.campaign_id
        kind = row.kind

        if kind == DocumentKind.LORE:
            await self._upload_lore(campaign_id, row, content)
            return None

        if kind in (DocumentKind.PLAYER_CHARACTER, DocumentKind.NPC):
            record = await self.client.create_character(
                campaign_id,
                row.title,
                description=content,
                character_type='PC' if kind == DocumentKind.PLAYER_CHARACTER else 'NPC',
            )
        elif kind == DocumentKind.ITEM:
            record = await self.client.create_item(campaign_id, row.title, description=content)
        elif kind == DocumentKind.LOCATION:
            record = await self.client.create_location(campaign_id, row.title, description=content)
        elif kind == DocumentKind.FACTION:
            record = await self.client.create_faction(campaign_id, row.title, description=content)
        else:
            raise ValueError(f"Unsupported document kind: {kind}")

        return RecordIdentity(remote_id=record.id, record_type=KIND_TO_RECORD_TYPE[kind])

    async def _upload_lore(self, campaign_id: str, row: ImportRow, content: str) -> None:
        if not row.lore_subtype:
            raise MissingLoreSubtypeError()

        chunks = split_content_into_chunks(row.title, content)
        if not chunks:
            # Empty note: still create one (empty) lore record.
            await self.client.create_lore(
                world_id=campaign_id,
                sub_type=row.lore_subtype,
                content='',
                file_name=row.basename,
                original_name=row.basename,
                file_type=LORE_FILE_TYPE,
                size=0,
            )
            return

        multi = len(chunks) > 1
        for idx, chunk in enumerate(chunks, start=1):
            suffix = f" - {idx}" if multi else ''
            await self.client.create_lore(
                world_id=campaign_id,
                sub_type=row.lore_subtype,
                content=chunk.text,
                file_name=f"{chunk.name}.md",
                original_name=f"{row.title}{suffix}.md",
                file_type=LORE_FILE_TYPE,
                size=len(chunk.text),
            )
        if multi:
            logger.info(f"Uploaded '{row.title}' as {len(chunks)} lore chunks")

    # ------------------------------------------------------------------
    # Link phase
    # ------------------------------------------------------------------

    async def _link_phase(self, ctx: ImportRunContext) -> None:
        ctx.resolved_links = resolve_links(ctx.pending_links, ctx.created)
        for link in ctx.resolved_links:
            try:
                await self.client.create_campaign_link(ctx.campaign_id, link)
                ctx.links_created += 1
            except Exception as e:
                # Remaining links are abandoned; created records and links stay.
                ctx.link_error = str(e) or e.__class__.__name__
                logger.error(f"Link creation failed after {ctx.links_created} links: {ctx.link_error}")
                self.notifier.error(f"Failed creating links: {ctx.link_error}")
                break
