"""Test setup for changelog-lint."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from changelog_lint.git import parse_tags  # noqa: E402
from changelog_lint.schemas import Commit, Tag  # noqa: E402

REPOSITORY_URL = "https://github.com/test/test"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for pytest.

    This allows skipping tests that shell out to git:
        pytest -m "not git"
    """
    config.addinivalue_line(
        "markers",
        "git: tests that create a real git repository (require the git binary)",
    )


@dataclass
class FakeRepository:
    """In-memory stand-in for :class:`changelog_lint.git.GitRepository`.

    ``commits`` and ``failures`` are keyed by ``(since, until)``.
    """

    tag_names: list[str] = field(default_factory=list)
    commits: dict[tuple[str, str | None], list[Commit]] = field(default_factory=dict)
    failures: dict[tuple[str, str | None], Exception] = field(default_factory=dict)
    tag_dates: dict[str, datetime] = field(default_factory=dict)
    remote: str | None = REPOSITORY_URL
    tags_error: Exception | None = None
    calls: list[tuple[str, str | None]] = field(default_factory=list)

    async def list_tags(self) -> list[Tag]:
        if self.tags_error is not None:
            raise self.tags_error
        return parse_tags(self.tag_names)

    async def commits_between(
        self,
        *,
        since: str,
        until: str | None = None,
        limit: int = 100,
        submodules: bool = False,
    ) -> list[Commit]:
        self.calls.append((since, until))
        if (since, until) in self.failures:
            raise self.failures[(since, until)]
        return list(self.commits.get((since, until), []))

    async def tag_date(self, tag: str) -> datetime | None:
        return self.tag_dates.get(tag)

    async def remote_url(self) -> str | None:
        return self.remote


@dataclass
class FakeProject:
    """Stand-in for :class:`changelog_lint.project.ProjectMetadata`."""

    version: str | None = None
    repository_url: str | None = None


@pytest.fixture
def repository() -> FakeRepository:
    """Fake git collaborator with a GitHub remote and no tags."""
    return FakeRepository()


@pytest.fixture
def project() -> FakeProject:
    """Project metadata without version or URL."""
    return FakeProject()
