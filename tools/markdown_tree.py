"""
Markdown block tree — just enough structure to clean campaign notes.

This is not a CommonMark implementation. It recognises YAML frontmatter,
ATX and setext headings, fenced and indented code, block quotes, bullet /
ordered / task lists, thematic breaks and paragraphs (with image inlines).
Anything else (tables, raw HTML, footnotes) is carried through verbatim as
paragraph text.

Nodes are frozen dataclasses. Transformations never mutate a tree; they
build a new one (see tools/markdown_cleaner.py).

Rendering uses one canonical style: ATX headings, `-` bullets, one space
after list markers, backtick fences, `***` breaks and a blank line between
blocks. parse_markdown(render_markdown(tree)) renders back to the same text.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Image:
    alt: str
    url: str


Inline = Union[Text, Image]


@dataclass(frozen=True)
class Paragraph:
    children: Tuple[Inline, ...]

    @property
    def text(self) -> str:
        """Concatenated text content; images contribute nothing."""
        return ''.join(c.value for c in self.children if isinstance(c, Text))


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class Code:
    value: str
    lang: Optional[str] = None
    meta: Optional[str] = None


@dataclass(frozen=True)
class ThematicBreak:
    pass


@dataclass(frozen=True)
class Frontmatter:
    value: str


@dataclass(frozen=True)
class Blockquote:
    children: Tuple["Block", ...]


@dataclass(frozen=True)
class ListItem:
    children: Tuple["Block", ...]
    checked: Optional[bool] = None  # None = not a task item


@dataclass(frozen=True)
class ListBlock:
    items: Tuple[ListItem, ...]
    ordered: bool = False
    start: int = 1
    loose: bool = False


Block = Union[Frontmatter, Heading, Paragraph, Code, ThematicBreak, Blockquote, ListBlock]


@dataclass(frozen=True)
class Document:
    children: Tuple[Block, ...]


# ---------------------------------------------------------------------------
# Line patterns
# ---------------------------------------------------------------------------

FENCE_OPEN_RE = re.compile(r'^( {0,3})(`{3,}|~{3,})[ \t]*(.*?)[ \t]*$')
ATX_RE = re.compile(r'^ {0,3}(#{1,6})(?=[ \t]|$)(.*)$')
ATX_CLOSE_RE = re.compile(r'(?:^|[ \t]+)#+[ \t]*$')
THEMATIC_RE = re.compile(r'^ {0,3}(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})$')
SETEXT_RE = re.compile(r'^ {0,3}(=+|-+)[ \t]*$')
QUOTE_RE = re.compile(r'^ {0,3}>')
QUOTE_STRIP_RE = re.compile(r'^ {0,3}> ?')
LIST_ITEM_RE = re.compile(r'^( {0,3})([-+*]|\d{1,9}[.)])(?:([ \t]+)(.*)|[ \t]*)$')
TASK_RE = re.compile(r'^\[([ xX])\](?:[ \t]+|$)')
IMAGE_RE = re.compile(r'!\[([^\]]*)\]\(([^)]*)\)')
FRONTMATTER_FENCE_RE = re.compile(r'^---[ \t]*$')


def _is_blank(line: str) -> bool:
    return not line.strip()


def _match_fence(line: str):
    m = FENCE_OPEN_RE.match(line)
    if not m:
        return None
    # Backtick fences cannot carry backticks in their info string.
    if m.group(2)[0] == '`' and '`' in m.group(3):
        return None
    return m


def _match_list_item(line: str):
    if THEMATIC_RE.match(line):
        return None
    return LIST_ITEM_RE.match(line)


def _is_indented_code(line: str) -> bool:
    return (line.startswith('    ') or line.startswith('\t')) and not _is_blank(line)


def _strip_indent(line: str, width: int) -> str:
    i = 0
    while i < width and i < len(line) and line[i] == ' ':
        i += 1
    return line[i:]


def _interrupts_paragraph(line: str) -> bool:
    if _match_fence(line) or ATX_RE.match(line) or QUOTE_RE.match(line) or THEMATIC_RE.match(line):
        return True
    m = _match_list_item(line)
    return bool(m and m.group(4))


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_inlines(text: str) -> Tuple[Inline, ...]:
    """Split paragraph text into text runs and image nodes."""
    out: List[Inline] = []
    pos = 0
    for m in IMAGE_RE.finditer(text):
        if m.start() > pos:
            out.append(Text(text[pos:m.start()]))
        out.append(Image(alt=m.group(1), url=m.group(2)))
        pos = m.end()
    if pos < len(text):
        out.append(Text(text[pos:]))
    return tuple(out)


def parse_markdown(markdown: str) -> Document:
    """Parse *markdown* into a Document tree."""
    lines = markdown.replace('\r\n', '\n').replace('\r', '\n').split('\n')
    children: List[Block] = []

    first = 0
    while first < len(lines) and _is_blank(lines[first]):
        first += 1
    if first < len(lines) and FRONTMATTER_FENCE_RE.match(lines[first]):
        for end in range(first + 1, len(lines)):
            if FRONTMATTER_FENCE_RE.match(lines[end]):
                children.append(Frontmatter('\n'.join(lines[first + 1:end])))
                lines = lines[end + 1:]
                break

    children.extend(_parse_blocks(lines))
    return Document(tuple(children))


def _parse_blocks(lines: List[str]) -> List[Block]:
    blocks: List[Block] = []
    i = 0
    n = len(lines)
    while i < n:
        line = lines[i]
        if _is_blank(line):
            i += 1
            continue

        if _is_indented_code(line):
            node, i = _parse_indented_code(lines, i)
            blocks.append(node)
            continue

        fence = _match_fence(line)
        if fence:
            node, i = _parse_fence(lines, i, fence)
            blocks.append(node)
            continue

        atx = ATX_RE.match(line)
        if atx:
            text = ATX_CLOSE_RE.sub('', atx.group(2)).strip()
            blocks.append(Heading(level=len(atx.group(1)), text=text))
            i += 1
            continue

        if THEMATIC_RE.match(line):
            blocks.append(ThematicBreak())
            i += 1
            continue

        if QUOTE_RE.match(line):
            quoted = []
            while i < n and QUOTE_RE.match(lines[i]):
                quoted.append(QUOTE_STRIP_RE.sub('', lines[i], count=1))
                i += 1
            blocks.append(Blockquote(tuple(_parse_blocks(quoted))))
            continue

        if _match_list_item(line):
            node, i = _parse_list(lines, i)
            blocks.append(node)
            continue

        node, i = _parse_paragraph(lines, i)
        blocks.append(node)
    return blocks


def _parse_indented_code(lines: List[str], i: int):
    body = []
    while i < len(lines) and (_is_blank(lines[i]) or _is_indented_code(lines[i])):
        line = lines[i]
        body.append(line[1:] if line.startswith('\t') else _strip_indent(line, 4))
        i += 1
    while body and _is_blank(body[-1]):
        body.pop()
    return Code(value='\n'.join(body)), i


def _parse_fence(lines: List[str], i: int, m):
    indent = len(m.group(1))
    fence = m.group(2)
    info = m.group(3)
    close_re = re.compile(r'^ {0,3}' + re.escape(fence[0]) + '{' + str(len(fence)) + r',}[ \t]*$')

    body = []
    i += 1
    while i < len(lines):
        if close_re.match(lines[i]):
            i += 1
            break
        body.append(_strip_indent(lines[i], indent))
        i += 1

    lang = meta = None
    if info:
        parts = info.split(None, 1)
        lang = parts[0]
        meta = parts[1] if len(parts) > 1 else None
    return Code(value='\n'.join(body), lang=lang, meta=meta), i


def _parse_paragraph(lines: List[str], i: int):
    para = [lines[i].strip()]
    i += 1
    while i < len(lines):
        line = lines[i]
        if _is_blank(line):
            break
        setext = SETEXT_RE.match(line)
        if setext:
            level = 1 if setext.group(1)[0] == '=' else 2
            text = ' '.join(p.strip() for p in para)
            return Heading(level=level, text=text), i + 1
        if _interrupts_paragraph(line):
            break
        para.append(line.rstrip())
        i += 1
    return Paragraph(parse_inlines('\n'.join(para))), i


def _parse_list(lines: List[str], i: int):
    first = _match_list_item(lines[i])
    ordered = first.group(2)[0].isdigit()
    start = int(first.group(2)[:-1]) if ordered else 1

    items: List[ListItem] = []
    loose = False
    n = len(lines)
    while i < n:
        m = _match_list_item(lines[i])
        if not m or m.group(2)[0].isdigit() != ordered:
            break

        indent = len(m.group(1))
        marker = m.group(2)
        spaces = m.group(3) or ''
        content = m.group(4) or ''
        if not content:
            offset = indent + len(marker) + 1
        elif len(spaces) > 4:
            # Content starts with indented code.
            offset = indent + len(marker) + 1
            content = spaces[1:] + content
        else:
            offset = indent + len(marker) + len(spaces)

        item_lines = [content]
        i += 1
        while i < n:
            line = lines[i]
            if _is_blank(line):
                item_lines.append('')
                i += 1
                continue
            lead = len(line) - len(line.lstrip(' '))
            if lead >= offset:
                item_lines.append(line[offset:])
                i += 1
                continue
            if item_lines[-1] == '' or _match_list_item(line) or _interrupts_paragraph(line):
                break
            # Lazy paragraph continuation.
            item_lines.append(line)
            i += 1

        trailing = 0
        while len(item_lines) > 1 and item_lines[-1] == '':
            item_lines.pop()
            trailing += 1
        if '' in item_lines[1:]:
            loose = True
        if trailing and i < n:
            nxt = _match_list_item(lines[i])
            if nxt and nxt.group(2)[0].isdigit() == ordered:
                loose = True

        checked = None
        task = TASK_RE.match(item_lines[0])
        if task:
            checked = task.group(1) != ' '
            item_lines[0] = item_lines[0][task.end():]

        items.append(ListItem(children=tuple(_parse_blocks(item_lines)), checked=checked))

    return ListBlock(items=tuple(items), ordered=ordered, start=start, loose=loose), i


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_inlines(children) -> str:
    out = []
    for child in children:
        if isinstance(child, Image):
            out.append(f"![{child.alt}]({child.url})")
        else:
            out.append(child.value)
    return ''.join(out)


def render_markdown(document: Document) -> str:
    """Serialize *document* in the canonical style."""
    body = '\n\n'.join(_render_block(b) for b in document.children)
    return body + '\n' if body else ''


def _render_block(node: Block) -> str:
    if isinstance(node, Frontmatter):
        return f"---\n{node.value}\n---" if node.value else "---\n---"
    if isinstance(node, Heading):
        hashes = '#' * node.level
        return f"{hashes} {node.text}" if node.text else hashes
    if isinstance(node, Paragraph):
        return render_inlines(node.children)
    if isinstance(node, Code):
        return _render_code(node)
    if isinstance(node, ThematicBreak):
        return '***'
    if isinstance(node, Blockquote):
        inner = '\n\n'.join(_render_block(c) for c in node.children)
        return '\n'.join(f"> {line}" if line else '>' for line in inner.split('\n'))
    if isinstance(node, ListBlock):
        return _render_list(node)
    raise TypeError(f"Unknown markdown node: {type(node).__name__}")


def _render_code(node: Code) -> str:
    longest = max((len(run) for run in re.findall(r'`{3,}', node.value)), default=0)
    fence = '`' * max(3, longest + 1)
    info = node.lang or ''
    if node.meta:
        info = f"{info} {node.meta}"
    if not node.value:
        return f"{fence}{info}\n{fence}"
    return f"{fence}{info}\n{node.value}\n{fence}"


def _render_list(node: ListBlock) -> str:
    sep = '\n\n' if node.loose else '\n'
    rendered = []
    for idx, item in enumerate(node.items):
        marker = f"{node.start + idx}." if node.ordered else '-'
        content = sep.join(_render_block(c) for c in item.children)
        if item.checked is not None:
            box = '[x]' if item.checked else '[ ]'
            content = f"{box} {content}" if content else box
        pad = ' ' * (len(marker) + 1)
        lines = content.split('\n')
        head = f"{marker} {lines[0]}" if lines[0] else marker
        rest = [pad + line if line else '' for line in lines[1:]]
        rendered.append('\n'.join([head] + rest))
    return sep.join(rendered)
