"""changelog-lint: lint and fix CHANGELOG.md files against git history."""

from changelog_lint.changes import get_changes
from changelog_lint.engine import LintOptions, process_changelog, process_file, process_markdown
from changelog_lint.exceptions import (
    ChangelogLintError,
    ConfigurationError,
    GitError,
    ParseError,
    StructureError,
)
from changelog_lint.git import GitRepository, Repository
from changelog_lint.markdown import parse_markdown, serialize_markdown
from changelog_lint.project import ProjectMetadata
from changelog_lint.schemas import Diagnostic, LintResult
from changelog_lint.sections import Changelog, Section, SectionKind
from changelog_lint.versions import compare_releases, compare_versions

__all__ = [
    "Changelog",
    "ChangelogLintError",
    "ConfigurationError",
    "Diagnostic",
    "GitError",
    "GitRepository",
    "LintOptions",
    "LintResult",
    "ParseError",
    "ProjectMetadata",
    "Repository",
    "Section",
    "SectionKind",
    "StructureError",
    "compare_releases",
    "compare_versions",
    "get_changes",
    "parse_markdown",
    "process_changelog",
    "process_file",
    "process_markdown",
    "serialize_markdown",
]
