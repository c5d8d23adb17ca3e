"""Lint or fix a changelog document.

The engine runs the same phases in both modes: title, release ordering,
version genealogy (fix only), per-release checks with population of empty
releases from git history, release heading links, and definition ordering.
Lint mode only reports; fix mode rewrites the document.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from functools import cmp_to_key
from pathlib import Path
from typing import Callable

from changelog_lint.changes import UNCATEGORIZED, get_changes
from changelog_lint.config import (
    CHANGELOG_FILENAME,
    CHANGELOG_LINT_COMMIT_LIMIT,
    CHANGELOG_LINT_GIT_TIMEOUT_S,
    DATE_PLACEHOLDER,
)
from changelog_lint.exceptions import ConfigurationError, GitError, ParseError, StructureError
from changelog_lint.git import GitRepository, Repository
from changelog_lint.markdown import parse_markdown, serialize_markdown
from changelog_lint.project import ProjectMetadata, resolve_repository_url
from changelog_lint.schemas import (
    Commit,
    Definition,
    Diagnostic,
    LinkReference,
    LintResult,
    Root,
    Tag,
    Text,
)
from changelog_lint.sections import Changelog, Section
from changelog_lint.versions import (
    bump_version,
    compare_releases,
    compare_versions,
    forgiving_tag,
    is_newer,
    is_sorted,
    is_valid_version,
    matches_range,
    sort_versions,
)

logger = logging.getLogger(__name__)

GROUP_TYPES = ("Changed", "Added", "Deprecated", "Removed", "Fixed", "Security")
FIRST_RELEASE_VERSIONS = frozenset({"0.0.1", "0.1.0", "1.0.0"})
FIRST_RELEASE_NOTICE = "Initial release."
REJECT_NAMES = frozenset({"history", "releases", "changelog"})

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_RANGE_RE = re.compile(r"^\s*[<>=!]")
_RELEASE_KEY = cmp_to_key(compare_releases)
_DEFINITION_KEY = cmp_to_key(lambda a, b: compare_versions(a[0], b[0]))


@dataclass
class LintOptions:
    """Options for linting or fixing a changelog.

    Attributes:
        fix: Rewrite the document instead of only reporting.
        version: Current version used to resolve bump keywords in ``add``.
        add: Release(s) to add: a version, a release type such as ``minor``,
            a list of either, or a tag range such as ``>=1.0.0 <2.0.0``.
        submodules: Include commits of nested submodules when populating.
        commits: Populate empty releases from git history in fix mode.
        repository: Repository URL, overriding project metadata and git.
        cwd: Working directory of the project.
        now: Clock used to date new releases.
    """

    fix: bool = False
    version: str | None = None
    add: str | list[str] | None = None
    submodules: bool = False
    commits: bool = True
    repository: str | None = None
    cwd: Path | None = None
    now: Callable[[], datetime] = field(default=datetime.now)


async def process_changelog(
    root: Root,
    *,
    options: LintOptions | None = None,
    repository: Repository | None = None,
    project: ProjectMetadata | None = None,
) -> LintResult:
    """Lint or fix a parsed changelog.

    Args:
        root: Parsed Markdown document.
        options: Engine options. Uses defaults (lint mode) if None.
        repository: Git collaborator. Defaults to :class:`GitRepository` in ``cwd``.
        project: Project metadata. Defaults to the closest ``pyproject.toml``.

    Returns:
        The document (rewritten in fix mode) and the diagnostics.

    Raises:
        StructureError: If ``root`` is not a document root.
    """
    if not isinstance(root, Root):
        raise StructureError("Expected a root node")

    opts = options or LintOptions()
    cwd = Path(opts.cwd or Path.cwd())
    processor = _ChangelogProcessor(
        root,
        options=opts,
        repository=repository if repository is not None else GitRepository(cwd),
        project=project if project is not None else ProjectMetadata(cwd),
    )
    return await processor.run()


async def process_markdown(text: str, **kwargs) -> tuple[str, list[Diagnostic]]:
    """Parse, process and serialize Markdown text."""
    result = await process_changelog(parse_markdown(text), **kwargs)
    return serialize_markdown(result.root), result.diagnostics


async def process_file(
    path: Path,
    *,
    options: LintOptions | None = None,
    repository: Repository | None = None,
    project: ProjectMetadata | None = None,
) -> tuple[str, list[Diagnostic]]:
    """Process a changelog file and return its new text and the diagnostics.

    Files named like a changelog but not exactly ``CHANGELOG.md`` are flagged
    and left alone; other names are skipped.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")

    if path.name != CHANGELOG_FILENAME:
        if path.stem.lower() in REJECT_NAMES:
            return text, [Diagnostic(f"Filename must be {CHANGELOG_FILENAME}", None, "filename")]
        logger.debug("Skipping %s", path)
        return text, []

    opts = options or LintOptions()
    if opts.cwd is None:
        opts = replace(opts, cwd=path.parent)
    return await process_markdown(text, options=opts, repository=repository, project=project)


class _ChangelogProcessor:
    def __init__(
        self,
        root: Root,
        *,
        options: LintOptions,
        repository: Repository,
        project: ProjectMetadata,
    ) -> None:
        self.root = root
        self.options = options
        self.fix = options.fix
        self.repository = repository
        self.project = project
        self.changelog = Changelog.from_blocks(root.children)
        self.diagnostics: list[Diagnostic] = []
        self.tags: list[Tag] = []
        self.versions: set[str] = set()
        self.repository_url: str | None = None
        self._current_version: str | None = None

    def warn(self, message: str, anchor, rule: str) -> None:
        self.diagnostics.append(Diagnostic(message, anchor, rule))

    async def run(self) -> LintResult:
        changelog = self.changelog
        self.tags = await self._list_tags()
        version_is_valid = self._check_version_option()

        if self.fix:
            self.repository_url = await self._resolve_repository_url()
            changelog.build_heading()
        elif not changelog.has_valid_heading():
            self.warn('Changelog must start with a top-level "Changelog" heading', changelog.heading, "title")

        if self.fix:
            if self.options.add is not None and version_is_valid:
                await self._add_release(self.options.add)
            changelog.releases.sort(key=_RELEASE_KEY)
        elif not is_sorted(changelog.releases, compare_releases):
            self.warn("Releases must be sorted latest-first", None, "latest-release-first")
            # Only the section tree is sorted; the document stays as it was.
            changelog.releases.sort(key=_RELEASE_KEY)

        if self.fix:
            self._relate_versions()

        for found in await asyncio.gather(*(self._lint_release(release) for release in changelog.releases)):
            self.diagnostics.extend(found)

        self._rebuild_links()

        if self.fix:
            changelog.definitions = dict(sorted(changelog.definitions.items(), key=_DEFINITION_KEY))
        elif not is_sorted(list(changelog.definitions), compare_versions):
            self.warn("Definitions must be sorted latest-first", None, "latest-definition-first")

        if self.fix:
            self.root.children = changelog.tree()
        return LintResult(root=self.root, diagnostics=self.diagnostics)

    def _relate_versions(self) -> None:
        """Set each release's predecessor, preferring a closer git tag."""
        releases = self.changelog.releases
        for i, release in enumerate(releases):
            release.previous_version = releases[i + 1].version if i + 1 < len(releases) else None

            if not is_valid_version(release.version):
                continue

            # Tags are sorted latest-first, so the first older one is the closest
            older = next((tag.version for tag in self.tags if is_newer(release.version, tag.version)), None)
            previous = release.previous_version
            if older and (not is_valid_version(previous) or is_newer(older, previous)):
                release.previous_version = older

    async def _lint_release(self, release: Section) -> list[Diagnostic]:
        heading = release.heading
        if heading is None or heading.depth != 2:
            return [Diagnostic("Release must start with second-level heading", heading, "release-heading-depth")]
        if not release.parseable:
            return [
                Diagnostic('Release heading must have the format "<version> - <date>"', heading, "release-heading")
            ]

        found: list[Diagnostic] = []
        version = release.version

        if version:
            if version in self.versions:
                found.append(Diagnostic("Release version must be unique", heading, "unique-release"))
            self.versions.add(version)

        if not version:
            found.append(Diagnostic("Release must have a version", heading, "release-version"))
        elif not is_valid_version(version):
            found.append(Diagnostic("Release version must be semver-valid", heading, "release-version"))

        if not release.date:
            found.append(Diagnostic("Release must have date", heading, "release-date"))
        elif not _DATE_RE.match(release.date):
            found.append(Diagnostic("Release date must have format YYYY-MM-DD", heading, "release-date"))

        if release.is_empty():
            found.extend(await self._lint_empty_release(release))

        has_uncategorized_changes = any(
            group.group_type() == UNCATEGORIZED and not group.is_empty() for group in release.children
        )
        for group in release.children:
            found.extend(_lint_group(group, has_uncategorized_changes))
        return found

    async def _lint_empty_release(self, release: Section) -> list[Diagnostic]:
        version = release.version
        previous = release.previous_version
        heading = release.heading

        if self.fix and version and not previous and version in FIRST_RELEASE_VERSIONS:
            self.changelog.create_notice(release, FIRST_RELEASE_NOTICE)
            return []

        if self.fix and self.options.commits and version and previous:
            since = forgiving_tag(previous, self.tags)
            until = forgiving_tag(version, self.tags) if self._is_tagged(version) else None
            try:
                commits = await asyncio.wait_for(
                    self.repository.commits_between(
                        since=since,
                        until=until,
                        limit=CHANGELOG_LINT_COMMIT_LIMIT,
                        submodules=self.options.submodules,
                    ),
                    timeout=CHANGELOG_LINT_GIT_TIMEOUT_S,
                )
            except (GitError, TimeoutError) as exc:
                reason = str(exc) or "timed out"
                revision_range = f"{since}..{until or 'HEAD'}"
                logger.debug("Population of %s failed: %s", version, reason)
                return [
                    Diagnostic(
                        f"Failed to get commits for release ({version}) in {revision_range}: {reason}",
                        heading,
                        "no-empty-release",
                    )
                ]

            self._populate(release, commits)
            if not release.is_empty():
                return []

        return [Diagnostic(f"Release ({version or 'n/a'}) is empty", heading, "no-empty-release")]

    def _populate(self, release: Section, commits: list[Commit]) -> None:
        url = self.repository_url
        if url:
            commits = [
                commit
                if commit.repository_url or commit.submodule
                else commit.model_copy(update={"repository_url": url})
                for commit in commits
            ]

        grouped = get_changes(commits)
        # With uncategorized changes, empty groups are added as a triage hint
        insert_empty = len(grouped[UNCATEGORIZED]) > 0

        for group_type, changes in grouped.items():
            if not changes and (not insert_empty or group_type == UNCATEGORIZED):
                continue
            group = self.changelog.create_group(release, group_type)
            if changes:
                self.changelog.create_list(group, changes)

        notices = [change.notice for changes in grouped.values() for change in changes if change.notice]
        if notices:
            self.changelog.create_notice(release, " ".join(notices))

        logger.info(
            "Populated release %s with %d changes",
            release.version,
            sum(len(changes) for changes in grouped.values()),
        )

    def _rebuild_links(self) -> None:
        releases = self.changelog.releases
        definitions = self.changelog.definitions
        missing_url = False

        for i, release in enumerate(releases):
            version = release.version
            if not version or release.heading is None:
                continue

            identifier = version.lower()
            existing = definitions.get(identifier)
            is_first_release = i == len(releases) - 1

            if self.fix:
                date = release.date or DATE_PLACEHOLDER
                url = existing.url if existing else release.link_url or self._default_release_url(version)
                if url is None:
                    missing_url = True
                    release.heading.children = [Text(value=f"{version} - {date}")]
                    continue

                release.heading.children = [
                    LinkReference(
                        identifier=identifier,
                        label=identifier,
                        reference_type="shortcut",
                        children=[Text(value=version)],
                    ),
                    Text(value=f" - {date}"),
                ]
                definitions[identifier] = Definition(identifier=identifier, label=identifier, url=url)
            elif not is_first_release:
                if not release.link_type:
                    self.warn("Release version must have a link", release.heading, "release-version-link")
                elif release.link_type != "linkReference":
                    self.warn(
                        "Use link reference in release heading",
                        release.heading,
                        "release-version-link-reference",
                    )

        if missing_url:
            self.warn("Could not determine the repository URL for release links", None, "repository-url")

    async def _add_release(self, add) -> None:
        if isinstance(add, (list, tuple)):
            for item in add:
                await self._add_release(item)
            return

        try:
            if isinstance(add, str) and _RANGE_RE.match(add):
                await self._add_range(add)
            else:
                await self._add_version(add)
        except ConfigurationError as exc:
            self.warn(str(exc), None, "add-new-release")

    async def _add_version(self, add) -> None:
        if not isinstance(add, str) or not add:
            raise ConfigurationError("Target must be a non-empty string")

        specific_version = is_valid_version(add)
        target: str | None = add if specific_version else None

        if target is None:
            base = self._resolve_current_version()
            latest = self._latest_release_version()
            if latest and is_newer(latest, base):
                base = latest
            target = bump_version(base, add)

        if target is None:
            raise ConfigurationError(
                f"Target ({add}) must be a version or release type "
                "([pre]major, [pre]minor, [pre]patch or prerelease)"
            )
        if any(release.version == target for release in self.changelog.releases):
            raise ConfigurationError(f"Target version {target} already exists")

        # Take the date from the tag if it exists
        date = await self._tag_date(forgiving_tag(target, self.tags)) if specific_version else None
        self.changelog.create_release(target, _release_date(date or self.options.now()))
        logger.debug("Added release %s", target)

    async def _add_range(self, expression: str) -> None:
        matching = [tag for tag in self.tags if matches_range(tag.version, expression)]
        if not matching:
            raise ConfigurationError(f"No tags match target range ({expression})")

        existing = {release.version for release in self.changelog.releases}
        for tag in matching:
            if tag.version in existing:
                continue
            date = await self._tag_date(tag.tag)
            self.changelog.create_release(tag.version, _release_date(date or self.options.now()))
            existing.add(tag.version)

    def _resolve_current_version(self) -> str:
        if self._current_version is not None:
            return self._current_version

        try:
            from_project = self.project.version
        except ParseError as exc:
            logger.warning("Ignoring project metadata: %s", exc)
            from_project = None

        latest_tag = self.tags[0].version if self.tags else None
        candidate = self.options.version or from_project or latest_tag or "0.0.0"

        if not is_valid_version(candidate):
            raise ConfigurationError(f"No valid version found in project metadata or options ({candidate})")

        self._current_version = candidate
        return candidate

    def _check_version_option(self) -> bool:
        version = self.options.version
        if version is None or is_valid_version(version):
            return True
        self.warn(f"No valid version found in project metadata or options ({version})", None, "add-new-release")
        return False

    def _latest_release_version(self) -> str | None:
        valid = [release.version for release in self.changelog.releases if is_valid_version(release.version)]
        return sort_versions(valid)[0] if valid else None

    def _is_tagged(self, version: str) -> bool:
        return any(tag.version == version for tag in self.tags)

    def _default_release_url(self, version: str) -> str | None:
        if not self.repository_url:
            return None
        return f"{self.repository_url}/releases/tag/{forgiving_tag(version, self.tags)}"

    async def _list_tags(self) -> list[Tag]:
        try:
            return await self.repository.list_tags()
        except GitError as exc:
            logger.debug("Could not list tags: %s", exc)
            return []

    async def _tag_date(self, tag: str) -> datetime | None:
        try:
            return await self.repository.tag_date(tag)
        except GitError as exc:
            logger.debug("Could not read date of %s: %s", tag, exc)
            return None

    async def _resolve_repository_url(self) -> str | None:
        try:
            return await resolve_repository_url(self.options.repository, self.project, self.repository)
        except GitError as exc:
            logger.debug("Could not read git remote: %s", exc)
            return None


def _lint_group(group: Section, has_uncategorized_changes: bool) -> list[Diagnostic]:
    heading = group.heading
    if not group.has_valid_group_heading():
        return [Diagnostic("Group must start with a third-level, text-only heading", heading, "group-heading")]

    group_type = group.group_type()
    if not group_type or (group_type not in GROUP_TYPES and group_type != UNCATEGORIZED):
        return [Diagnostic(f"Group heading must be one of {', '.join(GROUP_TYPES)}", heading, "group-heading-type")]

    # Empty category groups beside uncategorized changes are triage hints
    if group.is_empty() and (group_type == UNCATEGORIZED or not has_uncategorized_changes):
        return [Diagnostic(f"Remove empty group {group_type}", heading, "no-empty-group")]

    if group_type == UNCATEGORIZED:
        return [Diagnostic("Categorize the changes", heading, "no-uncategorized-changes")]
    return []


def _release_date(date: datetime) -> str:
    return date.strftime("%Y-%m-%d")
