"""Engine output models."""

from __future__ import annotations

from dataclasses import dataclass, field

from changelog_lint.schemas.nodes import Definition, Heading, ListBlock, RawBlock, Root

Anchor = Heading | Definition | RawBlock | ListBlock | None


@dataclass
class Diagnostic:
    """A lint violation or a recoverable problem.

    ``anchor`` is the block the message refers to; ``None`` means the whole
    document.
    """

    message: str
    anchor: Anchor
    rule: str

    @property
    def line(self) -> int:
        if self.anchor is None or self.anchor.line is None:
            return 1
        return self.anchor.line

    def __str__(self) -> str:
        return f"{self.line}: {self.message} [{self.rule}]"


@dataclass
class LintResult:
    """Document returned by the engine and the diagnostics it produced."""

    root: Root
    diagnostics: list[Diagnostic] = field(default_factory=list)
