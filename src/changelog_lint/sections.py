"""Section tree of a changelog: document, releases, groups and subsections."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from changelog_lint.config import CHANGELOG_TITLE
from changelog_lint.markdown import unescape
from changelog_lint.schemas import (
    Block,
    ChangeEntry,
    Definition,
    Emphasis,
    Heading,
    Link,
    LinkReference,
    ListBlock,
    RawBlock,
    Text,
)


class SectionKind(str, Enum):
    """Kinds of section in the tree."""

    DOCUMENT = "document"
    RELEASE = "release"
    GROUP = "group"
    SECTION = "section"


_CHILD_KIND = {
    SectionKind.DOCUMENT: SectionKind.RELEASE,
    SectionKind.RELEASE: SectionKind.GROUP,
    SectionKind.GROUP: SectionKind.SECTION,
    SectionKind.SECTION: SectionKind.SECTION,
}


@dataclass(eq=False)
class Section:
    """A heading and everything under it up to the next heading of equal or lower depth.

    ``parent`` is the arena index of the parent section in the owning
    :class:`Changelog`. The release fields are only set on
    ``SectionKind.RELEASE`` sections.
    """

    kind: SectionKind
    depth: int
    id: int = 0
    heading: Heading | None = None
    content: list[Block] = field(default_factory=list)
    children: list[Section] = field(default_factory=list)
    parent: int | None = None

    index: int = 0
    version: str | None = None
    date: str | None = None
    title: str | None = None
    link_type: str | None = None
    link_url: str | None = None
    parseable: bool = False
    previous_version: str | None = None

    def has_content(self) -> bool:
        return len(self.content) > 0

    def is_empty(self) -> bool:
        return not self.has_content() and not self.children

    def group_type(self) -> str | None:
        """Category named by a group heading, or None when it has no text."""
        if self.heading is None or not self.heading.children:
            return None
        first = self.heading.children[0]
        return first.value if isinstance(first, Text) else None

    def has_valid_group_heading(self) -> bool:
        if self.heading is None or self.heading.depth != 3:
            return False
        return _sole_child(self.heading.children, Text) is not None


class Changelog:
    """Arena-backed section tree with hoisted link definitions.

    Build it with :meth:`from_blocks` and turn it back into blocks with
    :meth:`tree`.
    """

    def __init__(self) -> None:
        self.sections: list[Section] = [Section(kind=SectionKind.DOCUMENT, depth=1)]
        self.definitions: dict[str, Definition] = {}

    @classmethod
    def from_blocks(cls, blocks: Iterable[Block]) -> Changelog:
        changelog = cls()
        cursor = changelog.root
        for block in blocks:
            cursor = changelog.add(cursor, block)
        return changelog

    @property
    def root(self) -> Section:
        return self.sections[0]

    @property
    def heading(self) -> Heading | None:
        return self.root.heading

    @property
    def releases(self) -> list[Section]:
        return self.root.children

    def parent_of(self, section: Section) -> Section | None:
        return self.sections[section.parent] if section.parent is not None else None

    def add(self, cursor: Section, block: Block) -> Section:
        """Attach ``block`` relative to ``cursor`` and return the new cursor."""
        if isinstance(block, Heading):
            if (
                cursor.kind is SectionKind.DOCUMENT
                and cursor.heading is None
                and not cursor.has_content()
                and block.depth == 1
            ):
                cursor.heading = block
                return cursor
            if block.depth > cursor.depth:
                return self._open_child(cursor, block)
            parent = self.parent_of(cursor)
            if parent is not None:
                return self.add(parent, block)

        if isinstance(block, Definition):
            self.definitions[block.identifier.lower()] = block
        else:
            cursor.content.append(block)
        return cursor

    def tree(self) -> list[Block]:
        """Flatten the tree back into blocks, definitions last."""
        return [*_flatten(self.root), *self.definitions.values()]

    def has_valid_heading(self) -> bool:
        heading = self.heading
        if heading is None or heading.depth != 1:
            return False
        text = _sole_child(heading.children, Text)
        return text is not None and text.value == CHANGELOG_TITLE

    def build_heading(self) -> None:
        if self.heading is not None and self.heading.depth == 1:
            self.heading.children = [Text(value=CHANGELOG_TITLE)]
        else:
            self.root.heading = Heading(depth=1, children=[Text(value=CHANGELOG_TITLE)])

    def create_release(self, version: str, date: str) -> Section:
        heading = Heading(depth=2, children=[Text(value=f"{version} - {date}")])
        return self._open_child(self.root, heading)

    def create_group(self, release: Section, group_type: str) -> Section:
        heading = Heading(depth=3, children=[Text(value=group_type)])
        return self._open_child(release, heading)

    def create_list(self, group: Section, changes: Iterable[ChangeEntry]) -> Section:
        group.content.append(ListBlock(items=[change.title for change in changes]))
        return group

    def create_notice(self, release: Section, text: str) -> Section:
        release.content.insert(0, RawBlock(value=f"_{text}_"))
        return release

    def _open_child(self, parent: Section, heading: Heading) -> Section:
        child = Section(
            kind=_CHILD_KIND[parent.kind],
            depth=parent.depth + 1,
            id=len(self.sections),
            heading=heading,
            parent=parent.id,
            index=len(parent.children),
        )
        if child.kind is SectionKind.RELEASE:
            _parse_release_heading(child)
        self.sections.append(child)
        parent.children.append(child)
        return child


def _parse_release_heading(release: Section) -> None:
    """Read version, date and link style from a release heading.

    Accepts ``<version> - <date>`` as plain text, or a link (reference) whose
    text is the version, optionally followed by `` - <date>``.
    """
    nodes = release.heading.children if release.heading else []
    first = nodes[0] if nodes else None

    if isinstance(first, Text) and len(nodes) == 1:
        release.title = first.value
        parts = first.value.split(" - ")
        if len(parts) <= 2:
            release.parseable = True
            release.version = unescape(parts[0])
            release.date = parts[1] if len(parts) == 2 else None
    elif isinstance(first, (Link, LinkReference)) and _sole_child(first.children, Text):
        release.link_type = first.type
        if isinstance(first, Link):
            release.link_url = first.url
        version = unescape(first.children[0].value)

        if len(nodes) == 1:
            release.parseable = True
            release.version = version
            release.title = version
        elif len(nodes) == 2 and isinstance(nodes[1], Text):
            before, *rest = nodes[1].value.split(" - ")
            if not before and len(rest) <= 1:
                release.parseable = True
                release.version = version
                release.date = rest[0] if rest else None


def _flatten(section: Section) -> list[Block]:
    blocks: list[Block] = []
    if section.heading is not None:
        blocks.append(section.heading)
    blocks.extend(section.content)
    for child in section.children:
        blocks.extend(_flatten(child))
    return blocks


def _sole_child(nodes: list, kind: type):
    if len(nodes) != 1 or not isinstance(nodes[0], kind):
        return None
    return nodes[0]
