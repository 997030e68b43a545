"""
Link resolution — turns raw [[references]] into the links to create.

Pure function over the run's identity registry; no I/O.
"""

import logging
from typing import Dict, List, Set, Tuple

from models.links import PendingLink, RecordIdentity, RecordType, ResolvedLink

logger = logging.getLogger('LinkResolver')

LINKABLE_TYPES = frozenset(RecordType)


def resolve_links(
    pending_links: List[PendingLink],
    created: Dict[str, RecordIdentity],
) -> List[ResolvedLink]:
    """Compute the deduplicated, directional link set for a run.

    For each source document, references are deduplicated by raw target
    (first alias wins) and looked up by exact title in *created*. Unknown
    targets are skipped silently: they point outside the batch or at Lore.
    Self-links are dropped, and each ordered (from, to) pair is emitted once
    per run no matter how many documents or aliases produce it.
    """
    links: List[ResolvedLink] = []
    seen: Set[Tuple[str, str]] = set()

    for pending in pending_links:
        source = created.get(pending.from_title)
        if source is None:
            logger.warning(f"No created record for '{pending.from_title}', skipping its links")
            continue

        targets_seen: Set[str] = set()
        for ref in pending.references:
            if ref.target in targets_seen:
                continue
            targets_seen.add(ref.target)

            target = created.get(ref.target)
            if target is None:
                logger.debug(f"Unresolved reference '{ref.target}' in '{pending.from_title}'")
                continue
            if source.record_type not in LINKABLE_TYPES or target.record_type not in LINKABLE_TYPES:
                continue
            if source.remote_id == target.remote_id:
                continue

            link = ResolvedLink(
                from_id=source.remote_id,
                from_type=source.record_type,
                to_id=target.remote_id,
                to_type=target.record_type,
                alias=ref.alias,
            )
            if link.key in seen:
                continue
            seen.add(link.key)
            links.append(link)

    logger.info(f"Resolved {len(links)} links from {len(pending_links)} documents")
    return links
