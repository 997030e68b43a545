"""
Chunker — splits oversized Lore notes into pieces the Archivist API accepts.

The server rejects lore content above 2,000,000 characters and large notes
also eat into the per-world token cap, so every chunk is kept under both a
character ceiling and a (heuristic) token ceiling. Splits prefer headings
and paragraph boundaries; a raw character cut is the last resort.
"""

import math
import re
import logging
from typing import List, Optional

from models.documents import Chunk

logger = logging.getLogger('Chunker')

CHAR_LIMIT = 1_900_000  # below the 2,000,000 server limit
TOKEN_LIMIT = 30_000  # below the per-world token cap
CHARS_PER_TOKEN = 4

# Split right before a heading line or a blank/whitespace-only line.
# The newline at the split point is consumed; joining with '\n' restores it.
BLOCK_BOUNDARY_RE = re.compile(r"\n(?=#+\s|[ \t]*$)", re.MULTILINE)


def estimate_tokens(text: Optional[str]) -> int:
    """Rough token count: one token per 4 characters, rounded up."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _fits(text: str, char_limit: int, token_limit: int) -> bool:
    return len(text) <= char_limit and estimate_tokens(text) <= token_limit


def _hard_split(text: str, char_limit: int, token_limit: int) -> List[str]:
    """Cut *text* at raw offsets into slices that satisfy both limits."""
    width = min(char_limit, token_limit * CHARS_PER_TOKEN)
    if width < 1:
        raise ValueError("Limits too small to hold a single character")
    return [text[i:i + width] for i in range(0, len(text), width)]


def split_content_into_chunks(
    title: str,
    content: str,
    *,
    char_limit: int = CHAR_LIMIT,
    token_limit: int = TOKEN_LIMIT,
) -> List[Chunk]:
    """Split *content* into named chunks under both limits.

    Args:
        title: Document title; used verbatim for a single chunk and as the
            '<title> - N' prefix when the content has to be split.
        content: Sanitized markdown.
        char_limit: Maximum characters per chunk.
        token_limit: Maximum estimated tokens per chunk.

    Returns:
        An empty list for empty content, otherwise one or more chunks.
    """
    if not content:
        return []

    if _fits(content, char_limit, token_limit):
        return [Chunk(name=title, text=content)]

    blocks = BLOCK_BOUNDARY_RE.split(content)

    groups: List[str] = []
    current: List[str] = []
    current_chars = 0

    def flush():
        nonlocal current, current_chars
        if not current:
            return
        groups.append('\n'.join(current))
        current = []
        current_chars = 0

    for block in blocks:
        joined_chars = current_chars + (1 if current else 0) + len(block)
        if current and (
            joined_chars > char_limit
            or math.ceil(joined_chars / CHARS_PER_TOKEN) > token_limit
        ):
            flush()
            joined_chars = len(block)
        current.append(block)
        current_chars = joined_chars
    flush()

    pieces: List[str] = []
    for group in groups:
        if _fits(group, char_limit, token_limit):
            pieces.append(group)
        else:
            pieces.extend(_hard_split(group, char_limit, token_limit))

    logger.info(f"Split '{title}' ({len(content)} chars) into {len(pieces)} chunks")
    return [
        Chunk(name=f"{title} - {i}", text=piece)
        for i, piece in enumerate(pieces, start=1)
    ]
