"""
Archivist Importer — Command-line front end

Subcommands:
    configure        Store the API key / base URL.
    subtypes         List the lore subtypes the API accepts.
    campaigns        List your campaigns.
    create-campaign  Create a campaign (defaults to the vault's folder name).
    scan             Show the rows a vault would produce.
    import           Import selected vault notes into a campaign.

Usage:
    python orchestration/main.py configure --api-key archivist_xxx
    python orchestration/main.py scan ~/vaults/waterdeep
    python orchestration/main.py import ~/vaults/waterdeep --campaign c_123 \\
        --include "02 - NPCs/*" --kind "07 - Lore/*=Lore" --lore-subtype worldHistory
"""

import os
import sys
import asyncio
import logging
import argparse
from fnmatch import fnmatch
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from clients.archivist_client import ArchivistClient
from clients.archivist_errors import ArchivistError
from models.documents import ImportRow
from pipeline.errors import ImportPreconditionError, MissingApiKeyError
from pipeline.importer import ImportPipeline
from pipeline.state import ImportProgress
from tools.lore_subtypes import get_lore_subtype_options, is_valid_lore_subtype
from tools.notifier import ConsoleNotifier
from tools.settings_store import ArchivistSettings, SettingsStore
from tools.vault_manager import VaultManager, parse_kind

logger = logging.getLogger('ArchivistImporter')

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NO_API_KEY = 2


def setup_logging(verbose: bool = False, log_dir: str = "logs") -> None:
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "archivist_importer.log"), encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archivist-importer",
        description="Import Obsidian campaign notes into Archivist.",
    )
    parser.add_argument("--settings", help="Path of the settings JSON file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("configure", help="Store API key and base URL.")
    p.add_argument("--api-key", help="Archivist API key.")
    p.add_argument("--base-url", help="Override only if using a custom endpoint.")

    sub.add_parser("subtypes", help="List lore subtypes.")
    sub.add_parser("campaigns", help="List campaigns.")

    p = sub.add_parser("create-campaign", help="Create a campaign.")
    p.add_argument("title", nargs="?", help="Campaign title.")
    p.add_argument("--vault", help="Vault whose folder name is the default title.")

    p = sub.add_parser("scan", help="Show what a vault would import.")
    p.add_argument("vault", help="Path to the vault.")

    p = sub.add_parser("import", help="Import vault notes.")
    p.add_argument("vault", help="Path to the vault.")
    p.add_argument("--campaign", help="Campaign id (default: your first campaign).")
    p.add_argument("--include", action="append", default=[], metavar="GLOB",
                   help="Select notes whose vault path matches GLOB (repeatable). Default: all.")
    p.add_argument("--exclude", action="append", default=[], metavar="GLOB",
                   help="Deselect notes whose vault path matches GLOB (repeatable).")
    p.add_argument("--kind", action="append", default=[], metavar="GLOB=KIND",
                   help="Force the kind of matching notes, e.g. 'Items/*=Item'.")
    p.add_argument("--lore-subtype", help="Subtype for Lore notes without one in frontmatter.")
    return parser


# ---------------------------------------------------------------------------
# Row selection
# ---------------------------------------------------------------------------

def apply_kind_overrides(rows: List[ImportRow], overrides: Sequence[str]) -> None:
    """Apply 'GLOB=KIND' overrides in order; later ones win."""
    for override in overrides:
        if '=' not in override:
            raise ValueError(f"Expected GLOB=KIND, got '{override}'")
        pattern, kind_name = override.rsplit('=', 1)
        kind = parse_kind(kind_name)
        if kind is None:
            raise ValueError(f"Unknown document kind '{kind_name}'")
        for row in rows:
            if fnmatch(row.path, pattern.strip()):
                row.kind = kind


def select_rows(rows: List[ImportRow], include: Sequence[str], exclude: Sequence[str]) -> List[ImportRow]:
    for row in rows:
        row.selected = (not include or any(fnmatch(row.path, g) for g in include)) \
            and not any(fnmatch(row.path, g) for g in exclude)
    return [r for r in rows if r.selected]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_configure(args, store: SettingsStore) -> int:
    current = SettingsStore(store.path, use_env=False).load()
    settings = ArchivistSettings(
        api_key=args.api_key if args.api_key is not None else current.api_key,
        base_url=args.base_url if args.base_url is not None else current.base_url,
    )
    store.save(settings)
    print(f"Settings saved to {store.path}")
    return EXIT_OK


def cmd_subtypes(args, store: SettingsStore) -> int:
    for option in get_lore_subtype_options():
        print(f"{option['value']:<14} {option['label']}")
    return EXIT_OK


def cmd_scan(args, store: SettingsStore) -> int:
    vault = VaultManager(args.vault)
    rows = vault.load_rows()
    for row in rows:
        subtype = row.lore_subtype or '-'
        print(f"{row.kind.value:<17} {subtype:<14} {row.size_bytes:>9}  {row.path}")
    print(f"{len(rows)} notes")
    return EXIT_OK


async def cmd_campaigns(args, client: ArchivistClient) -> int:
    campaigns = await client.list_campaigns()
    if not campaigns.data:
        print("No campaigns found.")
    for c in campaigns.data:
        print(f"{c.id}  {c.title}")
    return EXIT_OK


async def cmd_create_campaign(args, client: ArchivistClient) -> int:
    title = args.title
    if not title and args.vault:
        title = VaultManager(args.vault).name
    if not title:
        print("A campaign title (or --vault) is required.")
        return EXIT_FAILED
    campaign = await client.create_campaign(title)
    print(f"{campaign.id}  {campaign.title}")
    return EXIT_OK


async def cmd_import(args, client: ArchivistClient) -> int:
    if args.lore_subtype and not is_valid_lore_subtype(args.lore_subtype):
        logger.warning(f"'{args.lore_subtype}' is not a known lore subtype; sending it anyway.")

    vault = VaultManager(args.vault)
    rows = vault.load_rows(default_subtype=args.lore_subtype)
    try:
        apply_kind_overrides(rows, args.kind)
    except ValueError as e:
        print(str(e))
        return EXIT_FAILED
    selected = select_rows(rows, args.include, args.exclude)
    if not selected:
        print("No notes selected.")
        return EXIT_OK

    campaign_id: Optional[str] = args.campaign
    if not campaign_id:
        campaigns = await client.list_campaigns()
        campaign_id = campaigns.data[0].id if campaigns.data else None

    async def show_progress(progress: ImportProgress) -> None:
        row = progress.row
        detail = f" ({row.error_detail})" if row.error_detail else ''
        print(f"[{progress.index}/{progress.total}] {row.title}: {row.status.value}{detail}")

    pipeline = ImportPipeline(client, vault, ConsoleNotifier())
    summary = await pipeline.run(rows, campaign_id, on_progress=show_progress)
    return EXIT_OK if summary.failed == 0 and not summary.link_error else EXIT_FAILED


REMOTE_COMMANDS = {
    "campaigns": cmd_campaigns,
    "create-campaign": cmd_create_campaign,
    "import": cmd_import,
}
LOCAL_COMMANDS = {
    "configure": cmd_configure,
    "subtypes": cmd_subtypes,
    "scan": cmd_scan,
}


async def _run_remote(args, settings: ArchivistSettings) -> int:
    async with ArchivistClient(settings.api_key, settings.base_url) as client:
        return await REMOTE_COMMANDS[args.command](args, client)


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    store = SettingsStore(args.settings)

    if args.command in LOCAL_COMMANDS:
        return LOCAL_COMMANDS[args.command](args, store)

    settings = store.load()
    if not settings.has_api_key:
        print(f"❌ {MissingApiKeyError()}")
        return EXIT_NO_API_KEY

    try:
        return asyncio.run(_run_remote(args, settings))
    except ImportPreconditionError as e:
        # The pipeline's notifier has already shown it.
        logger.debug(f"Import stopped: {e}")
        return EXIT_FAILED
    except ArchivistError as e:
        print(f"❌ {e}")
        return EXIT_FAILED


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
