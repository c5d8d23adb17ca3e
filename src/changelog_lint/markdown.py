"""Read Markdown into a flat block sequence and write it back.

Only the structure the changelog engine needs is parsed: ATX headings (with
their inline content) and link reference definitions. Every other block is
kept verbatim so that prose, lists and code survive a rewrite untouched.
"""

from __future__ import annotations

import re

from changelog_lint.schemas import (
    Block,
    Definition,
    Emphasis,
    Heading,
    Inline,
    InlineCode,
    Link,
    LinkReference,
    ListBlock,
    RawBlock,
    Root,
    Strong,
    Text,
)

_ATX_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
_CLOSING_SEQUENCE_RE = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_DEFINITION_RE = re.compile(
    r"^ {0,3}\[((?:[^\]\\]|\\.)+)\]:[ \t]*<?([^\s>]+)>?"
    r"(?:[ \t]+(?:\"([^\"]*)\"|'([^']*)'|\(([^)]*)\)))?[ \t]*$"
)
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_LINK_DESTINATION_RE = re.compile(r"\(\s*<?([^\s>)]*)>?(?:\s+\"([^\"]*)\")?\s*\)")
_WHITESPACE_RE = re.compile(r"\s+")
_ESCAPE_RE = re.compile(r"\\([!-/:-@\[-`{-~])")
_BRACKET_RE = re.compile(r"(\\.)|([\[\]])", re.DOTALL)


def parse_markdown(text: str) -> Root:
    """Parse Markdown text into a :class:`Root` of blocks."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    chunks = _split_blocks(lines)

    identifiers = {
        normalize_identifier(match.group(1))
        for kind, chunk_lines, _ in chunks
        if kind == "definition"
        for match in [_DEFINITION_RE.match(chunk_lines[0])]
        if match
    }

    blocks: list[Block] = []
    for kind, chunk_lines, line_no in chunks:
        if kind == "heading":
            blocks.append(_parse_heading(chunk_lines[0], line_no, identifiers))
        elif kind == "definition":
            blocks.append(_parse_definition(chunk_lines[0], line_no))
        else:
            blocks.append(RawBlock(value="\n".join(chunk_lines), line=line_no))
    return Root(children=blocks)


def serialize_markdown(root: Root) -> str:
    """Serialize a :class:`Root` back to Markdown text."""
    parts: list[str] = []
    previous: Block | None = None
    for block in root.children:
        if previous is not None:
            adjacent = isinstance(previous, Definition) and isinstance(block, Definition)
            parts.append("\n" if adjacent else "\n\n")
        parts.append(serialize_block(block))
        previous = block
    return "".join(parts) + "\n" if parts else ""


def serialize_block(block: Block) -> str:
    if isinstance(block, Heading):
        marker = "#" * block.depth
        content = serialize_inline(block.children)
        return f"{marker} {content}" if content else marker
    if isinstance(block, Definition):
        title = f' "{block.title}"' if block.title is not None else ""
        return f"[{escape_brackets(block.label)}]: {block.url}{title}"
    if isinstance(block, ListBlock):
        return "\n".join(f"- {item}" for item in block.items)
    return block.value


def serialize_inline(nodes: list[Inline]) -> str:
    out: list[str] = []
    for node in nodes:
        if isinstance(node, Text):
            out.append(escape_brackets(node.value))
        elif isinstance(node, (Emphasis, Strong)):
            out.append(f"{node.marker}{node.value}{node.marker}")
        elif isinstance(node, InlineCode):
            fence = "``" if "`" in node.value else "`"
            out.append(f"{fence}{node.value}{fence}")
        elif isinstance(node, Link):
            title = f' "{node.title}"' if node.title is not None else ""
            out.append(f"[{serialize_inline(node.children)}]({node.url}{title})")
        elif isinstance(node, LinkReference):
            text = serialize_inline(node.children)
            if node.reference_type == "full":
                out.append(f"[{text}][{escape_brackets(node.label)}]")
            elif node.reference_type == "collapsed":
                out.append(f"[{text}][]")
            else:
                out.append(f"[{text}]")
    return "".join(out)


def normalize_identifier(label: str) -> str:
    """Lookup key of a link label: unescaped, whitespace-collapsed and lower-cased."""
    return _WHITESPACE_RE.sub(" ", unescape(label).strip()).lower()


def unescape(value: str) -> str:
    """Drop backslashes that escape ASCII punctuation."""
    return _ESCAPE_RE.sub(r"\1", value)


def escape_brackets(value: str) -> str:
    """Backslash-escape square brackets that are not escaped yet.

    Already escaped brackets are left alone, so writing text read from a
    document twice gives the same result.
    """
    return _BRACKET_RE.sub(lambda match: match.group(1) or "\\" + match.group(2), value)


def _split_blocks(lines: list[str]) -> list[tuple[str, list[str], int]]:
    """Group lines into (kind, lines, first line number) chunks."""
    chunks: list[tuple[str, list[str], int]] = []
    current: list[str] = []
    start = 0
    fence: str | None = None

    def flush() -> None:
        nonlocal current
        if current:
            chunks.append(("raw", current, start))
            current = []

    for number, line in enumerate(lines, start=1):
        if fence is not None:
            current.append(line)
            stripped = line.strip()
            if stripped.startswith(fence) and not stripped.strip(fence[0]):
                fence = None
            continue

        fence_match = _FENCE_RE.match(line)
        if fence_match:
            if not current:
                start = number
            current.append(line)
            fence = fence_match.group(1)
            continue

        if not line.strip():
            flush()
            continue

        if _ATX_RE.match(line):
            flush()
            chunks.append(("heading", [line], number))
            continue

        # Definitions cannot interrupt a paragraph
        if not current and _DEFINITION_RE.match(line):
            chunks.append(("definition", [line], number))
            continue

        if not current:
            start = number
        current.append(line)

    flush()
    return chunks


def _parse_heading(line: str, line_no: int, identifiers: set[str]) -> Heading:
    match = _ATX_RE.match(line)
    assert match is not None
    content = _CLOSING_SEQUENCE_RE.sub("", match.group(2) or "").strip()
    return Heading(
        depth=len(match.group(1)),
        children=parse_inline(content, identifiers),
        line=line_no,
    )


def _parse_definition(line: str, line_no: int) -> Definition:
    match = _DEFINITION_RE.match(line)
    assert match is not None
    label = match.group(1)
    title = next((group for group in match.groups()[2:] if group is not None), None)
    return Definition(
        identifier=normalize_identifier(label),
        label=label,
        url=match.group(2),
        title=title,
        line=line_no,
    )


def parse_inline(text: str, identifiers: set[str]) -> list[Inline]:
    """Parse heading inline content.

    ``identifiers`` holds the known definition identifiers; a bracketed label
    without a matching definition stays literal text.
    """
    nodes: list[Inline] = []
    buffer: list[str] = []
    i = 0

    def flush() -> None:
        if buffer:
            nodes.append(Text(value="".join(buffer)))
            buffer.clear()

    while i < len(text):
        char = text[i]

        if char == "\\" and i + 1 < len(text):
            buffer.append(text[i : i + 2])
            i += 2
            continue

        if char == "`":
            end = text.find("`", i + 1)
            if end > i:
                flush()
                nodes.append(InlineCode(value=text[i + 1 : end]))
                i = end + 1
                continue

        if char in "*_":
            parsed = _parse_emphasis(text, i)
            if parsed is not None:
                node, i = parsed
                flush()
                nodes.append(node)
                continue

        if char == "[":
            parsed = _parse_link(text, i, identifiers)
            if parsed is not None:
                node, i = parsed
                flush()
                nodes.append(node)
                continue

        buffer.append(char)
        i += 1

    flush()
    return nodes


def _parse_emphasis(text: str, start: int) -> tuple[Inline, int] | None:
    char = text[start]
    # Intraword underscores are literal, e.g. snake_case
    if char == "_" and start > 0 and text[start - 1].isalnum():
        return None

    marker = char * 2 if text.startswith(char * 2, start) else char
    end = text.find(marker, start + len(marker))
    if end <= start + len(marker):
        return None

    value = text[start + len(marker) : end]
    if value != value.strip():
        return None

    after = end + len(marker)
    if char == "_" and after < len(text) and text[after].isalnum():
        return None

    node: Inline = Strong(value=value, marker=marker) if len(marker) == 2 else Emphasis(value=value, marker=marker)
    return node, after


def _parse_link(text: str, start: int, identifiers: set[str]) -> tuple[Inline, int] | None:
    close = _matching_bracket(text, start)
    if close is None:
        return None

    inner = text[start + 1 : close]
    after = close + 1

    if text.startswith("(", after):
        match = _LINK_DESTINATION_RE.match(text, after)
        if match:
            return (
                Link(url=match.group(1), title=match.group(2), children=parse_inline(inner, identifiers)),
                match.end(),
            )
        return None

    if text.startswith("[", after):
        label_close = _matching_bracket(text, after)
        if label_close is not None:
            label = text[after + 1 : label_close]
            reference_type = "full" if label else "collapsed"
            identifier = normalize_identifier(label or inner)
            if identifier in identifiers:
                return (
                    LinkReference(
                        identifier=identifier,
                        label=label or inner,
                        reference_type=reference_type,
                        children=parse_inline(inner, identifiers),
                    ),
                    label_close + 1,
                )
            return None

    identifier = normalize_identifier(inner)
    if inner and identifier in identifiers:
        return (
            LinkReference(
                identifier=identifier,
                label=inner,
                reference_type="shortcut",
                children=parse_inline(inner, identifiers),
            ),
            after,
        )
    return None


def _matching_bracket(text: str, start: int) -> int | None:
    depth = 0
    i = start
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None
