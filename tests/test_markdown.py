"""Tests for the Markdown reader and writer."""

from __future__ import annotations

from changelog_lint.markdown import parse_inline, parse_markdown, serialize_markdown
from changelog_lint.schemas import (
    Definition,
    Emphasis,
    Heading,
    InlineCode,
    Link,
    LinkReference,
    ListBlock,
    RawBlock,
    Root,
    Strong,
    Text,
)

SAMPLE = """# Changelog

## [1.0.0] - 2020-01-01

### Added

- Foo
- Bar

[1.0.0]: https://example.com/v1.0.0
"""


class TestParseMarkdown:
    """Tests for parse_markdown."""

    def test_block_structure(self) -> None:
        """Headings, verbatim blocks and definitions are recognized."""
        root = parse_markdown(SAMPLE)

        assert [block.type for block in root.children] == ["heading", "heading", "heading", "raw", "definition"]
        title, release, group, items, definition = root.children
        assert title.depth == 1
        assert title.children == [Text(value="Changelog")]
        assert release.depth == 2
        assert group.depth == 3
        assert items.value == "- Foo\n- Bar"
        assert definition.identifier == "1.0.0"
        assert definition.url == "https://example.com/v1.0.0"

    def test_line_numbers(self) -> None:
        """Blocks remember the line they start on."""
        root = parse_markdown(SAMPLE)
        assert [block.line for block in root.children] == [1, 3, 5, 7, 10]

    def test_reference_requires_definition(self) -> None:
        """A bracketed label is a reference only when a definition exists."""
        linked = parse_markdown(SAMPLE).children[1]
        unlinked = parse_markdown("## [Unreleased]\n").children[0]

        assert isinstance(linked.children[0], LinkReference)
        assert linked.children[0].identifier == "1.0.0"
        assert linked.children[1] == Text(value=" - 2020-01-01")
        assert unlinked.children == [Text(value="[Unreleased]")]

    def test_definition_case_insensitive(self) -> None:
        """Reference matching ignores case."""
        root = parse_markdown("## [v1.0.0]\n\n[V1.0.0]: https://example.com\n")
        heading = root.children[0]
        assert isinstance(heading.children[0], LinkReference)
        assert heading.children[0].identifier == "v1.0.0"

    def test_inline_link(self) -> None:
        """Inline links keep their URL."""
        heading = parse_markdown("## [1.0.0](https://example.com/1) - 2020-01-01\n").children[0]
        link = heading.children[0]
        assert isinstance(link, Link)
        assert link.url == "https://example.com/1"
        assert link.children == [Text(value="1.0.0")]

    def test_definition_title(self) -> None:
        """Definition titles are parsed."""
        definition = parse_markdown('[a]: https://example.com "Title"\n').children[0]
        assert isinstance(definition, Definition)
        assert definition.title == "Title"

    def test_definition_cannot_interrupt_paragraph(self) -> None:
        """A definition-like line inside a paragraph stays text."""
        root = parse_markdown("Some text\n[a]: https://example.com\n")
        assert root.children == [RawBlock(value="Some text\n[a]: https://example.com", line=1)]

    def test_fenced_code_kept_together(self) -> None:
        """Headings inside fenced code are not headings."""
        text = "```\n# not a heading\n\nstill code\n```\n"
        root = parse_markdown(text)
        assert len(root.children) == 1
        assert root.children[0].value == "```\n# not a heading\n\nstill code\n```"

    def test_closing_sequence(self) -> None:
        """Closing hashes are not part of the heading text."""
        heading = parse_markdown("## Title ##\n").children[0]
        assert heading.children == [Text(value="Title")]

    def test_empty_document(self) -> None:
        """Empty text has no blocks."""
        assert parse_markdown("").children == []
        assert parse_markdown("\n\n").children == []


class TestParseInline:
    """Tests for inline heading content."""

    def test_strong_and_emphasis(self) -> None:
        """Strong and emphasis spans are recognized."""
        assert parse_inline("**Added**", set()) == [Strong(value="Added")]
        assert parse_inline("_note_ text", set()) == [Emphasis(value="note"), Text(value=" text")]

    def test_intraword_underscore(self) -> None:
        """snake_case stays plain text."""
        assert parse_inline("foo_bar_baz", set()) == [Text(value="foo_bar_baz")]

    def test_unmatched_marker(self) -> None:
        """An unmatched marker is literal."""
        assert parse_inline("a * b", set()) == [Text(value="a * b")]

    def test_inline_code(self) -> None:
        """Code spans are recognized."""
        assert parse_inline("Use `x`", set()) == [Text(value="Use "), InlineCode(value="x")]

    def test_full_reference(self) -> None:
        """Full references resolve through their label."""
        nodes = parse_inline("[text][ref]", {"ref"})
        assert nodes == [
            LinkReference(identifier="ref", label="ref", reference_type="full", children=[Text(value="text")])
        ]


class TestSerializeMarkdown:
    """Tests for serialize_markdown."""

    def test_round_trip(self) -> None:
        """Parsing and serializing a normalized document is lossless."""
        text = (
            "# Changelog\n\n"
            "Intro with *emphasis* and `code`.\n\n"
            "## [2.0.0] - 2021-01-01\n\n"
            "### **Added**\n\n"
            "- Item\n"
            "  continued\n\n"
            "```\ncode\n\nblock\n```\n\n"
            "## [1.0.0](https://example.com) - 2020-01-01\n\n"
            "[2.0.0]: https://example.com/2\n"
            '[1.0.0]: https://example.com/1 "One"\n'
        )
        assert serialize_markdown(parse_markdown(text)) == text

    def test_constructed_blocks(self) -> None:
        """Blocks built by the engine serialize to Markdown."""
        root = Root(
            children=[
                Heading(depth=1, children=[Text(value="Changelog")]),
                Heading(
                    depth=2,
                    children=[
                        LinkReference(identifier="1.0.0", label="1.0.0", children=[Text(value="1.0.0")]),
                        Text(value=" - 2020-01-01"),
                    ],
                ),
                RawBlock(value="_Initial release._"),
                ListBlock(items=["One", "Two"]),
                Definition(identifier="1.0.0", label="1.0.0", url="https://example.com"),
            ]
        )
        assert serialize_markdown(root) == (
            "# Changelog\n\n"
            "## [1.0.0] - 2020-01-01\n\n"
            "_Initial release._\n\n"
            "- One\n- Two\n\n"
            "[1.0.0]: https://example.com\n"
        )

    def test_empty_root(self) -> None:
        """An empty root serializes to an empty string."""
        assert serialize_markdown(Root()) == ""

    def test_empty_heading(self) -> None:
        """A heading without text is only its marker."""
        assert serialize_markdown(Root(children=[Heading(depth=3)])) == "###\n"

    def test_brackets_in_text_escaped(self) -> None:
        """Brackets in plain text and labels cannot turn into link syntax."""
        root = Root(
            children=[
                Heading(depth=2, children=[Text(value="[Unreleased] - 2020-01-01")]),
                Definition(identifier="[unreleased]", label="[unreleased]", url="https://example.com"),
            ]
        )

        assert serialize_markdown(root) == (
            "## \\[Unreleased\\] - 2020-01-01\n\n[\\[unreleased\\]]: https://example.com\n"
        )

    def test_escaped_brackets_round_trip(self) -> None:
        """Escaped brackets are read back as the same label and written once."""
        text = "## [\\[Unreleased\\]] - 2020-01-01\n\n[\\[unreleased\\]]: https://example.com\n"

        root = parse_markdown(text)

        assert root.children[0].children[0].identifier == "[unreleased]"
        assert root.children[1].identifier == "[unreleased]"
        assert serialize_markdown(root) == text
