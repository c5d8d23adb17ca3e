"""Local configuration for changelog-lint."""

from __future__ import annotations

import os

DEFAULT_COMMIT_LIMIT = 100
DEFAULT_GIT_TIMEOUT_S = 30.0
DEFAULT_GIT_BINARY = "git"

CHANGELOG_FILENAME = "CHANGELOG.md"
CHANGELOG_TITLE = "Changelog"
DATE_PLACEHOLDER = "YYYY-MM-DD"

# Maximum number of commits listed per release when populating empty releases.
CHANGELOG_LINT_COMMIT_LIMIT = int(os.getenv("CHANGELOG_LINT_COMMIT_LIMIT", str(DEFAULT_COMMIT_LIMIT)))
CHANGELOG_LINT_GIT_TIMEOUT_S = float(os.getenv("CHANGELOG_LINT_GIT_TIMEOUT_S", str(DEFAULT_GIT_TIMEOUT_S)))
CHANGELOG_LINT_GIT_BINARY = os.getenv("CHANGELOG_LINT_GIT_BINARY", DEFAULT_GIT_BINARY)
