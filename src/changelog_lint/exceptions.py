"""Custom exceptions for changelog-lint."""


class ChangelogLintError(Exception):
    """Base exception for changelog-lint operations."""


class StructureError(ChangelogLintError):
    """Input to the engine is not a document tree."""


class ConfigurationError(ChangelogLintError):
    """Invalid option, such as a malformed add request or override version."""


class GitError(ChangelogLintError):
    """A git query failed or timed out."""


class ParseError(ChangelogLintError):
    """Error while reading Markdown or project metadata."""
