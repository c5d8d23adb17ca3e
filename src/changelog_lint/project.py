"""Project metadata and repository URL resolution."""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from changelog_lint.exceptions import ParseError

if TYPE_CHECKING:
    from changelog_lint.git import Repository

logger = logging.getLogger(__name__)

_SHORTHAND_HOSTS = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}
_SCP_RE = re.compile(r"^(?:[\w.-]+@)?([\w.-]+):(?!//)(.+)$")
_URL_KEYS = ("repository", "source", "source code", "code", "homepage")


def normalize_repository_url(url: str | None) -> str | None:
    """Turn a git remote or project URL into an ``https://host/owner/repo`` base.

    Handles ``git@host:owner/repo.git``, ``ssh://``, ``git://``,
    ``git+https://`` and ``github:owner/repo`` forms.
    """
    if not url:
        return None

    url = url.strip()
    if url.startswith("git+"):
        url = url[len("git+") :]

    if "://" in url:
        parts = urlsplit(url)
        host = parts.hostname
        path = parts.path
    else:
        match = _SCP_RE.match(url)
        if not match:
            return None
        host, path = match.groups()
        host = _SHORTHAND_HOSTS.get(host, host)

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    if not host or not path:
        return None
    return f"https://{host}/{path}"


@dataclass
class ProjectMetadata:
    """Lazily read metadata from the ``pyproject.toml`` closest to ``cwd``."""

    cwd: Path

    @cached_property
    def data(self) -> dict[str, Any]:
        path = find_pyproject(self.cwd)
        if path is None:
            return {}
        try:
            with path.open("rb") as handle:
                return tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ParseError(f"Invalid {path}: {exc}") from exc

    @property
    def version(self) -> str | None:
        project = self.data.get("project", {})
        version = project.get("version") or self.data.get("tool", {}).get("poetry", {}).get("version")
        return str(version) if version else None

    @property
    def repository_url(self) -> str | None:
        urls = {str(key).lower(): value for key, value in self.data.get("project", {}).get("urls", {}).items()}
        poetry = self.data.get("tool", {}).get("poetry", {})
        for key in _URL_KEYS:
            url = normalize_repository_url(urls.get(key) or poetry.get(key))
            if url:
                return url
        return None


def find_pyproject(start: Path) -> Path | None:
    start = start.resolve()
    for directory in (start, *start.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


async def resolve_repository_url(
    explicit: str | None,
    project: ProjectMetadata | None,
    repository: Repository | None,
) -> str | None:
    """Repository web URL from the explicit option, project metadata or git remote."""
    url = normalize_repository_url(explicit)
    if url:
        return url

    if project is not None:
        try:
            url = project.repository_url
        except ParseError as exc:
            logger.warning("Ignoring project metadata: %s", exc)
            url = None
        if url:
            return url

    if repository is not None:
        return normalize_repository_url(await repository.remote_url())
    return None
