"""
Markdown cleaner — strips Obsidian-only syntax before a note is uploaded.

Two passes:
  1. prefilter_markdown(): line/regex level. Catches the obvious constructs
     (Dataview fences, %% comments %%, inline fields, embeds, wikilinks,
     callout markers, images) before anything is parsed.
  2. clean_markdown_tree(): structural. Runs over the block tree from
     tools/markdown_tree.py and picks up what the regexes miss, e.g. nested
     callouts, unterminated query fences, task checkboxes.

The prefilter must run first: raw vault syntax (odd fences, embeds) can
otherwise confuse the block parser.
"""

import re
import logging
from typing import List, Tuple

from tools.markdown_tree import (
    Block,
    Blockquote,
    Code,
    Document,
    Image,
    ListBlock,
    ListItem,
    Paragraph,
    Text,
    parse_markdown,
    render_markdown,
)

logger = logging.getLogger('MarkdownCleaner')

# Code block languages that are live queries inside the vault and mean
# nothing anywhere else.
LIVE_QUERY_LANGS = ("dataviewjs", "dataview", "query", "tasks")
LIVE_QUERY_LANG_RE = re.compile(r'^(?:' + '|'.join(LIVE_QUERY_LANGS) + r')$', re.IGNORECASE)

# ---------------------------------------------------------------------------
# Prefilter patterns (applied in this order)
# ---------------------------------------------------------------------------

LIVE_QUERY_INFO_RE = re.compile(
    r'^(?:' + '|'.join(LIVE_QUERY_LANGS) + r')(?![\w-])',
    re.IGNORECASE,
)
FENCE_LINE_RE = re.compile(r'^[ \t]*(`{3,}|~{3,})[ \t]*(.*?)[ \t]*$')
COMMENT_SPAN_RE = re.compile(r'%%[\s\S]*?%%')
INLINE_FIELD_LINE_RE = re.compile(r'^[ \t]*[A-Za-z0-9_\- \t]+::.*$', re.MULTILINE)
EMBED_RE = re.compile(r'!\[\[[^\]]+\]\]')
ALIASED_WIKILINK_RE = re.compile(r'\[\[([^|\]]+)\|([^\]]+)\]\]')
WIKILINK_RE = re.compile(r'\[\[([^\]]+)\]\]')
CALLOUT_MARKER_LINE_RE = re.compile(r'^>[ \t]*\[![^\]]+\][+-]?[ \t]*', re.MULTILINE)
IMAGE_RE = re.compile(r'!\[[^\]]*\]\([^)]*\)')

# ---------------------------------------------------------------------------
# Tree pass patterns
# ---------------------------------------------------------------------------

CALLOUT_MARKER_RE = re.compile(r'^\s*\[![A-Za-z][^\]]*\][+-]?[ \t]*')
INLINE_FIELD_RE = re.compile(r'^[A-Za-z0-9_\-\s]+::')

# Extra full passes allowed before giving up on a stable result.
MAX_SANITIZE_PASSES = 5


def _strip_live_query_fences(text: str) -> str:
    """Drop closed fences tagged with a live-query language.

    Fences are tracked line by line, so a query fence shown inside another
    code block is body text and stays. An unclosed query fence is kept here
    and left to the tree pass.
    """
    out: List[str] = []
    held: List[str] = []
    fence = None  # (char, length, is_query) of the open fence
    for line in text.split('\n'):
        m = FENCE_LINE_RE.match(line)
        if fence is None:
            if m and not (m.group(1)[0] == '`' and '`' in m.group(2)):
                is_query = bool(LIVE_QUERY_INFO_RE.match(m.group(2)))
                fence = (m.group(1)[0], len(m.group(1)), is_query)
                (held if is_query else out).append(line)
            else:
                out.append(line)
            continue

        char, length, is_query = fence
        closes = bool(m) and not m.group(2) and m.group(1)[0] == char and len(m.group(1)) >= length
        (held if is_query else out).append(line)
        if closes:
            if is_query:
                held = []
                out.append('')
            fence = None

    out.extend(held)
    return '\n'.join(out)


def prefilter_markdown(markdown: str) -> str:
    """Regex pass over raw vault markdown."""
    text = _strip_live_query_fences(markdown)
    text = COMMENT_SPAN_RE.sub('', text)
    text = INLINE_FIELD_LINE_RE.sub('', text)
    text = EMBED_RE.sub('', text)
    text = ALIASED_WIKILINK_RE.sub(r'\2', text)
    text = WIKILINK_RE.sub(r'\1', text)
    text = CALLOUT_MARKER_LINE_RE.sub('> ', text)
    text = IMAGE_RE.sub('', text)
    return text


def _tidy_text(text: str) -> str:
    """Trim a paragraph's text and drop lines emptied by a removal."""
    lines = [line.rstrip() for line in text.strip().split('\n')]
    return '\n'.join(line for line in lines if line.strip())


def _clean_paragraph(node: Paragraph) -> List[Block]:
    inlines = tuple(c for c in node.children if not isinstance(c, Image))
    text = ''.join(c.value for c in inlines if isinstance(c, Text))
    changed = len(inlines) != len(node.children)

    if COMMENT_SPAN_RE.search(text):
        text = COMMENT_SPAN_RE.sub('', text)
        changed = True

    if changed:
        text = _tidy_text(text)
    if not text.strip():
        return []
    if INLINE_FIELD_RE.match(text.strip()):
        return []
    if changed:
        return [Paragraph((Text(text),))]
    return [node]


def _strip_callout_marker(node: Paragraph) -> Tuple[Block, ...]:
    text = _tidy_text(CALLOUT_MARKER_RE.sub('', node.text, count=1))
    return (Paragraph((Text(text),)),) if text else ()


def _is_callout(node: Blockquote) -> bool:
    first = node.children[0] if node.children else None
    return isinstance(first, Paragraph) and bool(CALLOUT_MARKER_RE.match(first.text))


def _clean_node(node: Block, loose: bool = True) -> List[Block]:
    """Return the zero or more nodes that replace *node* in its parent.

    *loose* tells whether the parent separates its children with a blank
    line (document, block quote, loose list item) or not (tight list item).
    """
    if isinstance(node, Code):
        if node.lang and LIVE_QUERY_LANG_RE.match(node.lang):
            return []
        return [node]

    if isinstance(node, Paragraph):
        return _clean_paragraph(node)

    if isinstance(node, Blockquote):
        if _is_callout(node):
            # Unwrap: the callout's body is promoted into the parent.
            unwrapped = _strip_callout_marker(node.children[0]) + node.children[1:]
            return list(_clean_children(unwrapped, loose))
        children = _clean_children(node.children)
        return [Blockquote(children)] if children else []

    if isinstance(node, ListBlock):
        items = tuple(
            ListItem(children=_clean_children(item.children, node.loose), checked=None)
            for item in node.items
        )
        return [ListBlock(items=items, ordered=node.ordered, start=node.start, loose=node.loose)]

    return [node]


def _join_lists(first: ListBlock, second: ListBlock, loose: bool) -> ListBlock:
    return ListBlock(
        items=first.items + second.items,
        ordered=first.ordered,
        start=first.start,
        loose=first.loose or second.loose or loose,
    )


def _clean_children(nodes, loose: bool = True) -> Tuple[Block, ...]:
    out: List[Block] = []
    for node in nodes:
        for cleaned in _clean_node(node, loose):
            prev = out[-1] if out else None
            # Lists of one kind left side by side read back as a single list.
            if (isinstance(prev, ListBlock) and isinstance(cleaned, ListBlock)
                    and prev.ordered == cleaned.ordered):
                out[-1] = _join_lists(prev, cleaned, loose)
            else:
                out.append(cleaned)
    return tuple(out)


def clean_markdown_tree(document: Document) -> Document:
    """Structural pass. Returns a new tree; *document* is left untouched."""
    return Document(children=_clean_children(document.children))


def _sanitize_pass(markdown: str) -> str:
    pre = prefilter_markdown(markdown)
    return render_markdown(clean_markdown_tree(parse_markdown(pre)))


def sanitize_markdown(markdown: str) -> str:
    """Full cleanup: prefilter, parse, clean, render.

    A removal can leave neighbours that parse differently once rendered
    (an indented block after a list, a paragraph run together with the
    next). The passes repeat until the text is stable, so sanitizing the
    result again returns it unchanged.
    """
    if not markdown:
        return ''
    cleaned = _sanitize_pass(markdown)
    for _ in range(MAX_SANITIZE_PASSES):
        again = _sanitize_pass(cleaned)
        if again == cleaned:
            break
        cleaned = again
    else:
        logger.warning(f"Sanitized markdown still changing after {MAX_SANITIZE_PASSES} extra passes")
    logger.debug(f"Sanitized markdown: {len(markdown)} -> {len(cleaned)} chars")
    return cleaned
