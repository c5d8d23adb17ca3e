"""Tests for project metadata and repository URL resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from changelog_lint.exceptions import ParseError
from changelog_lint.project import ProjectMetadata, normalize_repository_url, resolve_repository_url


def _write_pyproject(directory: Path, content: str) -> None:
    (directory / "pyproject.toml").write_text(content, encoding="utf-8")


class TestNormalizeRepositoryUrl:
    """Tests for normalize_repository_url."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://github.com/o/r", "https://github.com/o/r"),
            ("https://github.com/o/r.git", "https://github.com/o/r"),
            ("https://github.com/o/r/", "https://github.com/o/r"),
            ("git+https://github.com/o/r.git", "https://github.com/o/r"),
            ("git@github.com:o/r.git", "https://github.com/o/r"),
            ("ssh://git@github.com/o/r.git", "https://github.com/o/r"),
            ("git://github.com/o/r", "https://github.com/o/r"),
            ("github:o/r", "https://github.com/o/r"),
            ("gitlab:group/project", "https://gitlab.com/group/project"),
            ("bitbucket:team/repo", "https://bitbucket.org/team/repo"),
        ],
    )
    def test_forms(self, url: str, expected: str) -> None:
        """Remote and project URL forms map to a web base URL."""
        assert normalize_repository_url(url) == expected

    @pytest.mark.parametrize("url", [None, "", "not a url", "https://github.com"])
    def test_unusable(self, url: str | None) -> None:
        """Values without host and path give None."""
        assert normalize_repository_url(url) is None


class TestProjectMetadata:
    """Tests for reading pyproject.toml."""

    def test_pep621(self, tmp_path: Path) -> None:
        """Version and repository URL come from the [project] table."""
        _write_pyproject(
            tmp_path,
            '[project]\nname = "demo"\nversion = "1.2.3"\n\n'
            '[project.urls]\nHomepage = "https://example.com"\nRepository = "https://github.com/o/r.git"\n',
        )

        metadata = ProjectMetadata(tmp_path)

        assert metadata.version == "1.2.3"
        assert metadata.repository_url == "https://github.com/o/r"

    def test_poetry(self, tmp_path: Path) -> None:
        """Poetry metadata is used as a fallback."""
        _write_pyproject(
            tmp_path,
            '[tool.poetry]\nname = "demo"\nversion = "0.4.0"\nrepository = "git@github.com:o/r.git"\n',
        )

        metadata = ProjectMetadata(tmp_path)

        assert metadata.version == "0.4.0"
        assert metadata.repository_url == "https://github.com/o/r"

    def test_found_from_subdirectory(self, tmp_path: Path) -> None:
        """The closest pyproject.toml above cwd is used."""
        _write_pyproject(tmp_path, '[project]\nname = "demo"\nversion = "2.0.0"\n')
        docs = tmp_path / "docs"
        docs.mkdir()

        assert ProjectMetadata(docs).version == "2.0.0"

    def test_missing_fields(self, tmp_path: Path) -> None:
        """Absent fields are None."""
        _write_pyproject(tmp_path, '[project]\nname = "demo"\n')

        metadata = ProjectMetadata(tmp_path)

        assert metadata.version is None
        assert metadata.repository_url is None

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """A broken pyproject.toml raises ParseError."""
        _write_pyproject(tmp_path, "[project\nversion = ")

        with pytest.raises(ParseError):
            _ = ProjectMetadata(tmp_path).version


class TestResolveRepositoryUrl:
    """Tests for resolve_repository_url."""

    @pytest.mark.asyncio
    async def test_explicit_wins(self, repository, project) -> None:
        """An explicit URL takes precedence."""
        project.repository_url = "https://github.com/project/url"

        url = await resolve_repository_url("github:explicit/url", project, repository)

        assert url == "https://github.com/explicit/url"

    @pytest.mark.asyncio
    async def test_project_before_git(self, repository, project) -> None:
        """Project metadata wins over the git remote."""
        project.repository_url = "https://github.com/project/url"

        assert await resolve_repository_url(None, project, repository) == "https://github.com/project/url"

    @pytest.mark.asyncio
    async def test_git_remote_fallback(self, repository, project) -> None:
        """The git remote is used last."""
        repository.remote = "git@github.com:remote/url.git"

        assert await resolve_repository_url(None, project, repository) == "https://github.com/remote/url"

    @pytest.mark.asyncio
    async def test_broken_metadata_falls_through(self, tmp_path: Path, repository) -> None:
        """Unreadable project metadata is skipped."""
        _write_pyproject(tmp_path, "not toml = = =")

        url = await resolve_repository_url(None, ProjectMetadata(tmp_path), repository)

        assert url == "https://github.com/test/test"

    @pytest.mark.asyncio
    async def test_nothing_known(self, repository, project) -> None:
        """None when no source knows the URL."""
        repository.remote = None

        assert await resolve_repository_url(None, project, repository) is None
