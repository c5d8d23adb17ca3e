"""Module entry point for running with python -m changelog_lint."""

import sys

from changelog_lint.cli import main

if __name__ == "__main__":
    sys.exit(main())
