"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

from changelog_lint.cli import main

UNSORTED = """# Changelog

## 1.0.0 - 2020-01-01

### Added

- One

## 2.0.0 - 2021-01-01

### Added

- Two
"""


@pytest.fixture
def changelog(tmp_path: Path) -> Path:
    path = tmp_path / "CHANGELOG.md"
    path.write_text(UNSORTED, encoding="utf-8")
    return path


class TestMain:
    """Tests for main()."""

    def test_lint_reports(self, changelog: Path, capsys) -> None:
        """Lint mode prints diagnostics and exits with 1."""
        assert main([str(changelog)]) == 1

        out = capsys.readouterr().out.splitlines()
        assert out == [
            f"{changelog}:1: Releases must be sorted latest-first [latest-release-first]",
            f"{changelog}:9: Release version must have a link [release-version-link]",
        ]
        assert changelog.read_text(encoding="utf-8") == UNSORTED

    def test_fix_rewrites_file(self, changelog: Path, capsys) -> None:
        """Fix mode writes the file and exits with 0 when clean."""
        code = main([str(changelog), "--fix", "--no-commits", "--repository", "https://github.com/test/test"])

        assert code == 0
        assert capsys.readouterr().out == ""
        text = changelog.read_text(encoding="utf-8")
        assert text.startswith("# Changelog\n\n## [2.0.0] - 2021-01-01\n")
        assert text.endswith("[1.0.0]: https://github.com/test/test/releases/tag/v1.0.0\n")

    def test_add_release(self, changelog: Path) -> None:
        """--add creates a release."""
        code = main(
            [
                str(changelog),
                "--fix",
                "--no-commits",
                "--repository",
                "https://github.com/test/test",
                "--add",
                "2.1.0",
            ]
        )

        assert code == 1
        assert "## [2.1.0] - " in changelog.read_text(encoding="utf-8")

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is a usage error."""
        with pytest.raises(SystemExit) as excinfo:
            main([str(tmp_path / "CHANGELOG.md")])
        assert excinfo.value.code == 2
