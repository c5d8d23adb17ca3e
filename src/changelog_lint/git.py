"""Read tags, commit ranges and tag dates from git."""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
from datetime import datetime
from functools import cmp_to_key
from pathlib import Path, PurePosixPath
from typing import Protocol

from changelog_lint.config import CHANGELOG_LINT_GIT_BINARY, CHANGELOG_LINT_GIT_TIMEOUT_S
from changelog_lint.exceptions import GitError
from changelog_lint.project import normalize_repository_url
from changelog_lint.schemas import Author, Commit, Tag
from changelog_lint.versions import clean_version, compare_versions

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = "%H%x1f%P%x1f%an%x1f%ae%x1f%cn%x1f%ce%x1f%B%x1e"
_PR_SUFFIX_RE = re.compile(r"\s*\(#(\d+)\)$")
_SUBMODULE_CHANGE_RE = re.compile(r"^:160000 160000 ([0-9a-f]+) ([0-9a-f]+) \w+\t(.+)$")


class Repository(Protocol):
    """Version-control queries the changelog engine depends on."""

    async def list_tags(self) -> list[Tag]: ...

    async def commits_between(
        self,
        *,
        since: str,
        until: str | None = None,
        limit: int = 100,
        submodules: bool = False,
    ) -> list[Commit]: ...

    async def tag_date(self, tag: str) -> datetime | None: ...

    async def remote_url(self) -> str | None: ...


class GitRepository:
    """:class:`Repository` backed by the ``git`` command line.

    Args:
        cwd: Working tree to query.
        binary: git executable.
        timeout: Seconds allowed per git invocation.
    """

    def __init__(
        self,
        cwd: Path,
        *,
        binary: str = CHANGELOG_LINT_GIT_BINARY,
        timeout: float = CHANGELOG_LINT_GIT_TIMEOUT_S,
    ) -> None:
        self.cwd = Path(cwd)
        self.binary = binary
        self.timeout = timeout

    async def list_tags(self) -> list[Tag]:
        """All tags that parse as versions, latest first."""
        output = await asyncio.to_thread(self._run, ["tag"])
        return parse_tags(output.splitlines())

    async def commits_between(
        self,
        *,
        since: str,
        until: str | None = None,
        limit: int = 100,
        submodules: bool = False,
    ) -> list[Commit]:
        """Commits after ``since`` up to and including ``until`` (HEAD when None)."""
        return await asyncio.to_thread(self._commits_between, since, until or "HEAD", limit, submodules)

    async def tag_date(self, tag: str) -> datetime | None:
        """Author date of the commit a tag points at, or None."""
        try:
            output = await asyncio.to_thread(self._run, ["log", "-1", "--format=%aI", tag])
        except GitError as exc:
            logger.debug("No date for tag %s: %s", tag, exc)
            return None
        output = output.strip()
        if not output:
            return None
        try:
            return datetime.fromisoformat(output)
        except ValueError as exc:
            raise GitError(f"Unexpected date for tag {tag}: {output}") from exc

    async def remote_url(self) -> str | None:
        return await asyncio.to_thread(self._remote_url, self.cwd)

    def _commits_between(self, since: str, until: str, limit: int, submodules: bool) -> list[Commit]:
        for ref in (since, until):
            self._verify(ref)

        logger.debug("Listing commits %s..%s in %s", since, until, self.cwd)
        commits = self._log(self.cwd, f"{since}..{until}", limit)

        if submodules:
            commits.extend(self._submodule_commits(since, until, limit))
        return commits

    def _submodule_commits(self, since: str, until: str, limit: int) -> list[Commit]:
        output = self._run(["diff", "--raw", "--no-abbrev", since, until])
        commits: list[Commit] = []

        for line in output.splitlines():
            match = _SUBMODULE_CHANGE_RE.match(line)
            if not match:
                continue

            old, new, path = match.groups()
            directory = self.cwd / path
            if not (directory / ".git").exists():
                logger.warning("Skipping submodule %s: not checked out", path)
                continue

            label = PurePosixPath(path).name
            url = normalize_repository_url(self._remote_url(directory))
            for commit in self._log(directory, f"{old}..{new}", limit):
                commits.append(commit.model_copy(update={"submodule": label, "repository_url": url}))

        return commits

    def _log(self, cwd: Path, revision_range: str, limit: int) -> list[Commit]:
        output = self._run(
            ["log", f"--format={_LOG_FORMAT}", "-n", str(limit), revision_range],
            cwd=cwd,
        )
        return parse_log(output)

    def _verify(self, ref: str) -> None:
        try:
            self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        except GitError as exc:
            raise GitError(f"Could not find {ref}.") from exc

    def _remote_url(self, cwd: Path) -> str | None:
        try:
            output = self._run(["config", "--get", "remote.origin.url"], cwd=cwd)
        except GitError:
            return None
        return output.strip() or None

    def _run(self, args: list[str], *, cwd: Path | None = None) -> str:
        try:
            result = subprocess.run(
                [self.binary, *args],
                cwd=cwd or self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise GitError(f"git {args[0]} timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise GitError(f"Could not run {self.binary}: {exc}") from exc

        if result.returncode != 0:
            raise GitError(result.stderr.strip() or f"git {args[0]} exited with {result.returncode}")
        return result.stdout


def parse_tags(names: list[str]) -> list[Tag]:
    """Keep version-like tag names and sort them latest first."""
    tags: list[Tag] = []
    for name in names:
        name = name.strip()
        version = clean_version(name)
        if version:
            tags.append(Tag(tag=name, normalized_tag=f"v{version}", version=version))
    return sorted(tags, key=cmp_to_key(lambda a, b: compare_versions(a.version, b.version)))


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with the record format above."""
    commits: list[Commit] = []

    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue

        fields = record.split(_FIELD_SEP, 6)
        if len(fields) != 7:
            logger.debug("Skipping malformed log record: %r", record[:80])
            continue

        oid, parents, author_name, author_email, committer_name, committer_email, message = fields
        title, _, description = message.strip().partition("\n")

        pr = None
        pr_match = _PR_SUFFIX_RE.search(title)
        if pr_match:
            pr = int(pr_match.group(1))
            title = title[: pr_match.start()]

        commits.append(
            Commit(
                oid=oid,
                title=title.strip(),
                description=description.strip(),
                author=Author(name=author_name, email=author_email or None),
                committer=Author(name=committer_name, email=committer_email or None),
                pr=pr,
                is_merge_commit=len(parents.split()) > 1,
            )
        )

    return commits
