"""Shared schemas for changelog-lint."""

from changelog_lint.schemas.changes import ChangeEntry
from changelog_lint.schemas.git import Author, Commit, MergeCommit, Tag
from changelog_lint.schemas.nodes import (
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
from changelog_lint.schemas.results import Diagnostic, LintResult

__all__ = [
    "Author",
    "Block",
    "ChangeEntry",
    "Commit",
    "Definition",
    "Diagnostic",
    "Emphasis",
    "Heading",
    "Inline",
    "InlineCode",
    "LintResult",
    "Link",
    "LinkReference",
    "ListBlock",
    "MergeCommit",
    "RawBlock",
    "Root",
    "Strong",
    "Tag",
    "Text",
]
