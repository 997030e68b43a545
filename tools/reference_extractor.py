"""
Reference extraction — finds [[wikilink]] cross-references in raw note text.

Must run on the text *before* sanitization: the sanitizer flattens every
wikilink to plain text.
"""

import re
from typing import List

from models.links import Reference

# [[Target]], [[Target|Alias]], ![[Embed]]
WIKI_LINK_RE = re.compile(r"!?\[\[([^\]|]+)(?:\|([^\]]*))?\]\]")


def extract_references(raw_markdown: str) -> List[Reference]:
    """Return every cross-reference in source order, duplicates included.

    The alias falls back to the target when no pipe segment is present.
    Tokens whose target is blank after trimming are skipped.
    """
    refs: List[Reference] = []
    if not raw_markdown:
        return refs
    for match in WIKI_LINK_RE.finditer(raw_markdown):
        target = match.group(1).strip()
        if not target:
            continue
        alias = (match.group(2) or '').strip() or target
        refs.append(Reference(target=target, alias=alias))
    return refs
