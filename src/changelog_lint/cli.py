"""Command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from changelog_lint.config import CHANGELOG_FILENAME
from changelog_lint.engine import LintOptions, process_file
from changelog_lint.exceptions import ChangelogLintError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="changelog-lint", description="Lint or fix a CHANGELOG.md.")
    parser.add_argument("file", nargs="?", default=CHANGELOG_FILENAME, help="Changelog to process")
    parser.add_argument("--fix", action="store_true", help="Rewrite the file instead of only reporting")
    parser.add_argument(
        "--add",
        action="append",
        help="Add a release: a version, a release type (e.g. minor) or a tag range; repeatable",
    )
    parser.add_argument("--version", dest="current_version", help="Current version for --add release types")
    parser.add_argument("--submodules", action="store_true", help="Include commits of submodules")
    parser.add_argument("--no-commits", action="store_true", help="Do not populate releases from git history")
    parser.add_argument("--repository", help="Repository URL used for release links")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = Path(args.file)
    if not path.is_file():
        parser.error(f"File not found: {path}")

    add = args.add[0] if args.add and len(args.add) == 1 else args.add
    options = LintOptions(
        fix=args.fix,
        version=args.current_version,
        add=add,
        submodules=args.submodules,
        commits=not args.no_commits,
        repository=args.repository,
        cwd=path.resolve().parent,
    )

    original = path.read_text(encoding="utf-8")
    try:
        text, diagnostics = asyncio.run(process_file(path, options=options))
    except ChangelogLintError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.fix and text != original:
        path.write_text(text, encoding="utf-8")

    for diagnostic in diagnostics:
        print(f"{path}:{diagnostic}")
    return 1 if diagnostics else 0
