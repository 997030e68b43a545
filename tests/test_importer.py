"""
Tests for pipeline/importer.py — the two-phase import run.

The Archivist client is an AsyncMock (see conftest.mock_archivist); the
vault is real files under tmp_path.
"""

import os
import asyncio

import pytest
from unittest.mock import AsyncMock

from clients.archivist_errors import ArchivistAPIError
from models.campaigns import CreatedRecord
from models.documents import DocumentKind, RowStatus
from models.links import RecordType
from pipeline.errors import MissingApiKeyError, NoCampaignSelectedError
from pipeline.importer import ImportPipeline
from pipeline.state import RunPhase
from tools.chunker import CHAR_LIMIT, TOKEN_LIMIT, estimate_tokens


CAMPAIGN = "camp_1"


def select(rows, *titles):
    """Select rows by title (all rows when no titles are given)."""
    for row in rows:
        row.selected = not titles or row.title in titles
    return rows


def run_import(pipeline, rows, campaign_id=CAMPAIGN, on_progress=None):
    return asyncio.run(pipeline.run(rows, campaign_id, on_progress=on_progress))


class TestFullRun:

    def test_every_kind_is_uploaded(self, vault, mock_archivist, notifier):
        rows = select(vault.load_rows())
        pipeline = ImportPipeline(mock_archivist, vault, notifier)

        summary = run_import(pipeline, rows)

        assert summary.processed == 4
        assert summary.succeeded == 4
        assert summary.failed == 0
        assert all(r.status == RowStatus.DONE for r in rows)
        assert mock_archivist.create_character.await_count == 2
        assert mock_archivist.create_location.await_count == 1
        assert mock_archivist.create_lore.await_count == 1
        assert pipeline.phase == RunPhase.IDLE

    def test_character_type_tags(self, vault, mock_archivist):
        rows = select(vault.load_rows())
        run_import(ImportPipeline(mock_archivist, vault), rows)

        calls = mock_archivist.create_character.await_args_list
        assert calls[0].args == (CAMPAIGN, "Hadrian")
        assert calls[0].kwargs["character_type"] == "PC"
        assert calls[1].args == (CAMPAIGN, "Durnan")
        assert calls[1].kwargs["character_type"] == "NPC"

    def test_description_is_sanitized(self, vault, mock_archivist):
        rows = select(vault.load_rows(), "Durnan")
        run_import(ImportPipeline(mock_archivist, vault), rows)

        description = mock_archivist.create_character.await_args.kwargs["description"]
        assert description == "Owner of the Yawning Portal.\n"

    def test_links_created_between_uploaded_records(self, vault, mock_archivist):
        rows = select(vault.load_rows())
        summary = run_import(ImportPipeline(mock_archivist, vault), rows)

        links = [c.args[1] for c in mock_archivist.create_campaign_link.await_args_list]
        assert [(l.from_id, l.to_id) for l in links] == [("rec_1", "rec_2"), ("rec_2", "rec_3")]
        assert links[0].from_type == RecordType.CHARACTER
        assert links[1].to_type == RecordType.LOCATION
        assert links[0].alias == "Durnan"
        assert all(c.args[0] == CAMPAIGN for c in mock_archivist.create_campaign_link.await_args_list)
        assert summary.links_created == 2
        assert summary.links_planned == 2

    def test_unselected_rows_are_ignored(self, vault, mock_archivist):
        rows = select(vault.load_rows(), "Yawning Portal")
        summary = run_import(ImportPipeline(mock_archivist, vault), rows)

        assert summary.processed == 1
        mock_archivist.create_character.assert_not_awaited()
        mock_archivist.create_campaign_link.assert_not_awaited()

    def test_summary_notification(self, vault, mock_archivist, notifier):
        rows = select(vault.load_rows())
        run_import(ImportPipeline(mock_archivist, vault, notifier), rows)

        assert notifier.messages[-1].startswith("Import complete: 4 documents processed")


class TestRowFailures:

    def test_failed_row_does_not_stop_the_batch(self, vault, mock_archivist, notifier, add_note):
        add_note("01 - Party/Hadrian.md", "Regular at the [[Yawning Portal]], owes [[Durnan]].\n")

        async def create_character(campaign_id, name, description=None, character_type="NPC"):
            if name == "Durnan":
                raise ArchivistAPIError(500, "Internal Server Error", "boom")
            return CreatedRecord(id=f"char_{name}")

        mock_archivist.create_character = AsyncMock(side_effect=create_character)
        rows = select(vault.load_rows(), "Hadrian", "Durnan", "Yawning Portal")
        pipeline = ImportPipeline(mock_archivist, vault, notifier)

        summary = run_import(pipeline, rows)

        by_title = {r.title: r for r in rows}
        assert by_title["Hadrian"].status == RowStatus.DONE
        assert by_title["Durnan"].status == RowStatus.ERROR
        assert by_title["Durnan"].error_detail == "500 Internal Server Error - boom"
        assert by_title["Yawning Portal"].status == RowStatus.DONE
        assert summary.failed == 1
        assert "Failed importing Durnan: 500 Internal Server Error - boom" in notifier.errors

        links = [c.args[1] for c in mock_archivist.create_campaign_link.await_args_list]
        assert [(l.from_id, l.to_id, l.alias) for l in links] == [("char_Hadrian", "rec_1", "Yawning Portal")]

    def test_missing_file_fails_only_that_row(self, vault, vault_dir, mock_archivist):
        rows = select(vault.load_rows(), "Durnan", "Yawning Portal")
        os.remove(os.path.join(str(vault_dir), "02 - NPCs", "Durnan.md"))

        summary = run_import(ImportPipeline(mock_archivist, vault), rows)

        by_title = {r.title: r for r in rows}
        assert by_title["Durnan"].status == RowStatus.ERROR
        assert "File not found" in by_title["Durnan"].error_detail
        assert by_title["Yawning Portal"].status == RowStatus.DONE
        assert summary.succeeded == 1

    def test_lore_without_subtype(self, vault, mock_archivist, add_note):
        add_note("07 - Lore/Rumours.md", "Some rumours.\n")
        rows = select(vault.load_rows(), "Rumours")

        run_import(ImportPipeline(mock_archivist, vault), rows)

        assert rows[[r.title for r in rows].index("Rumours")].error_detail == "Lore subtype is required"
        mock_archivist.create_lore.assert_not_awaited()


class TestLoreUploads:

    def test_single_chunk(self, vault, mock_archivist):
        rows = select(vault.load_rows(), "History of Waterdeep")
        run_import(ImportPipeline(mock_archivist, vault), rows)

        kwargs = mock_archivist.create_lore.await_args.kwargs
        assert kwargs["world_id"] == CAMPAIGN
        assert kwargs["sub_type"] == "worldHistory"
        assert kwargs["file_name"] == "History of Waterdeep.md"
        assert kwargs["original_name"] == "History of Waterdeep.md"
        assert kwargs["file_type"] == "text/markdown"
        assert kwargs["size"] == len(kwargs["content"])
        assert "# Founding" in kwargs["content"]

    def test_empty_note_uploads_placeholder(self, vault, mock_archivist, add_note):
        add_note("07 - Lore/Empty.md", "")
        rows = select(vault.load_rows(default_subtype="other"), "Empty")

        run_import(ImportPipeline(mock_archivist, vault), rows)

        mock_archivist.create_lore.assert_awaited_once()
        kwargs = mock_archivist.create_lore.await_args.kwargs
        assert kwargs["content"] == ""
        assert kwargs["size"] == 0
        assert kwargs["file_name"] == "Empty.md"
        assert kwargs["original_name"] == "Empty.md"

    def test_large_note_uploaded_in_numbered_chunks(self, vault, mock_archivist, add_note):
        section = ("lorem " * 1333).strip()
        add_note("07 - Lore/Big.md", "\n\n".join(f"# Part {i}\n\n{section}" for i in range(30)))
        rows = select(vault.load_rows(default_subtype="lore"), "Big")

        run_import(ImportPipeline(mock_archivist, vault), rows)

        calls = mock_archivist.create_lore.await_args_list
        assert len(calls) >= 2
        for idx, call in enumerate(calls, start=1):
            assert call.kwargs["file_name"] == f"Big - {idx}.md"
            assert call.kwargs["original_name"] == f"Big - {idx}.md"
            assert call.kwargs["size"] == len(call.kwargs["content"])
            assert len(call.kwargs["content"]) <= CHAR_LIMIT
            assert estimate_tokens(call.kwargs["content"]) <= TOKEN_LIMIT
        assert rows[[r.title for r in rows].index("Big")].status == RowStatus.DONE

    def test_lore_is_never_linked(self, vault, mock_archivist, add_note):
        add_note("07 - Lore/Legends.md", "---\nlore_subtype: mythology\n---\nTales of [[Durnan]].\n")
        add_note("02 - NPCs/Durnan.md", "Keeper of [[Legends]].\n")
        rows = select(vault.load_rows(), "Legends", "Durnan")

        summary = run_import(ImportPipeline(mock_archivist, vault), rows)

        assert summary.succeeded == 2
        mock_archivist.create_campaign_link.assert_not_awaited()


class TestLinkPhase:

    def test_link_failure_stops_remaining_links(self, vault, mock_archivist, notifier):
        mock_archivist.create_campaign_link = AsyncMock(
            side_effect=ArchivistAPIError(400, "Bad Request", "nope"))
        rows = select(vault.load_rows())

        summary = run_import(ImportPipeline(mock_archivist, vault, notifier), rows)

        assert mock_archivist.create_campaign_link.await_count == 1
        assert summary.link_error == "400 Bad Request - nope"
        assert summary.links_created == 0
        assert summary.links_planned == 2
        assert all(r.status == RowStatus.DONE for r in rows)
        assert "Failed creating links: 400 Bad Request - nope" in notifier.errors
        assert notifier.messages[-1].startswith("Import complete")

    def test_no_link_phase_without_references(self, vault, mock_archivist, add_note):
        add_note("04 - Items/Sunblade.md", "A blade of pure light.\n")
        rows = select(vault.load_rows(), "Sunblade")
        phases = []

        async def on_progress(progress):
            phases.append(pipeline.phase)

        pipeline = ImportPipeline(mock_archivist, vault)
        run_import(pipeline, rows, on_progress=on_progress)

        assert rows[[r.title for r in rows].index("Sunblade")].kind == DocumentKind.ITEM
        assert phases == [RunPhase.UPLOADING]
        mock_archivist.create_item.assert_awaited_once()
        mock_archivist.create_campaign_link.assert_not_awaited()


class TestPreconditions:

    def test_missing_api_key(self, vault, mock_archivist, notifier):
        mock_archivist.has_api_key = False
        pipeline = ImportPipeline(mock_archivist, vault, notifier)

        with pytest.raises(MissingApiKeyError):
            run_import(pipeline, select(vault.load_rows()))

        assert pipeline.phase == RunPhase.ERROR_REPORTED
        assert notifier.errors
        mock_archivist.create_character.assert_not_awaited()
        mock_archivist.create_lore.assert_not_awaited()

    def test_no_campaign_selected(self, vault, mock_archivist, notifier):
        pipeline = ImportPipeline(mock_archivist, vault, notifier)

        with pytest.raises(NoCampaignSelectedError):
            run_import(pipeline, select(vault.load_rows()), campaign_id=None)

        assert pipeline.phase == RunPhase.ERROR_REPORTED
        mock_archivist.create_character.assert_not_awaited()


class TestProgress:

    def test_progress_after_every_row(self, vault, mock_archivist):
        events = []

        async def on_progress(progress):
            events.append((progress.index, progress.total, progress.row.title, progress.row.status))

        rows = select(vault.load_rows())
        run_import(ImportPipeline(mock_archivist, vault), rows, on_progress=on_progress)

        assert [e[:2] for e in events] == [(1, 4), (2, 4), (3, 4), (4, 4)]
        assert [e[2] for e in events] == [
            "Hadrian", "Durnan", "Yawning Portal", "History of Waterdeep",
        ]
        assert all(e[3] == RowStatus.DONE for e in events)

    def test_uploads_are_sequential(self, vault, mock_archivist):
        in_flight = []
        peak = []

        async def slow_create(*args, **kwargs):
            in_flight.append(1)
            peak.append(len(in_flight))
            await asyncio.sleep(0)
            in_flight.pop()
            return CreatedRecord(id=f"rec_{len(peak)}")

        mock_archivist.create_character = AsyncMock(side_effect=slow_create)
        mock_archivist.create_location = AsyncMock(side_effect=slow_create)
        rows = select(vault.load_rows())

        run_import(ImportPipeline(mock_archivist, vault), rows)

        assert max(peak) == 1
