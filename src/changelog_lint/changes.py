"""Turn raw commits into categorized, formatted change entries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from changelog_lint.schemas import Author, ChangeEntry, Commit

UNCATEGORIZED = "Uncategorized"

# Category trailer value -> group type. None excludes the commit.
CATEGORIES: dict[str, str | None] = {
    "change": "Changed",
    "addition": "Added",
    "removal": "Removed",
    "fix": "Fixed",
    "uncategorized": UNCATEGORIZED,
    "none": None,
}

_BOT_NAMES = frozenset({"Greenkeeper", "greenkeeper[bot]", "dependabot[bot]", "github-actions"})
_BREAKING_RE = re.compile(r"^breaking:", re.IGNORECASE)
_ISSUE_RE = re.compile(r"#(\d+)")
_REFERENCE_RE = re.compile(r"^(#\d+|[a-z]{2,4}-\d+|CVE-\d+-\d+)$", re.IGNORECASE)
_REFERENCE_SPLIT_RE = re.compile(r"\s*,\s*")


class Trailer(Enum):
    CATEGORY = "category"
    NOTICE = "notice"
    CO_AUTHOR = "co-author"
    REFERENCE = "reference"
    # Parsed only to drop them from the description
    EXCLUDE = "exclude"


_TRAILER_KEYS: tuple[tuple[re.Pattern[str], Trailer], ...] = (
    (re.compile(r"^Category$", re.IGNORECASE), Trailer.CATEGORY),
    (re.compile(r"^Notice$", re.IGNORECASE), Trailer.NOTICE),
    (re.compile(r"^Co-Authored-By$", re.IGNORECASE), Trailer.CO_AUTHOR),
    (re.compile(r"^(Ref|Refs|Fixes|Closes|CVE-ID)$", re.IGNORECASE), Trailer.REFERENCE),
    (re.compile(r"^(Reviewed-By|Signed-Off-By|Acked-By)$", re.IGNORECASE), Trailer.EXCLUDE),
)


@dataclass
class CommitMetadata:
    """Trailer data extracted from a commit body."""

    description: str = ""
    category: str | None = None
    notice: str | None = None
    references: list[str] = field(default_factory=list)
    authors: list[str] = field(default_factory=list)


def get_changes(commits: Iterable[Commit]) -> dict[str, list[ChangeEntry]]:
    """Group commits by change type, preserving their order.

    Merge commits are skipped and commits with ``Category: none`` are dropped.
    """
    grouped: dict[str, list[ChangeEntry]] = {
        "Changed": [],
        "Added": [],
        "Removed": [],
        "Fixed": [],
        UNCATEGORIZED: [],
    }

    for commit in commits:
        if commit.is_merge_commit:
            continue

        author = _merger(commit) if is_bot(commit.author) else commit.author
        metadata = parse_metadata(commit.description or "", author)
        category = CATEGORIES[metadata.category] if metadata.category else UNCATEGORIZED

        if category is None:
            continue

        grouped[category].append(
            ChangeEntry(
                title=format_title(commit, metadata),
                description=metadata.description,
                notice=metadata.notice,
            )
        )

    return grouped


def format_title(commit: Commit, metadata: CommitMetadata) -> str:
    """Build the list item text for a commit.

    Issue and commit references are linked when the commit knows its
    repository URL. Nested project commits without a pull request get no
    commit reference since the hash would point into the wrong repository.
    """
    repo = commit.repository_url
    title = commit.title

    if repo:
        title = _ISSUE_RE.sub(lambda match: issue_link(repo, match.group(1)), title)

    title = _prefix_title(title, commit.submodule)

    if metadata.references:
        refs = [
            issue_link(repo, ref[1:]) if repo and ref.startswith("#") else ref
            for ref in metadata.references
        ]
        title += f" ({', '.join(refs)})"

    short_ref = commit.oid[:7]
    if repo:
        if commit.pr:
            title += f" ({issue_link(repo, str(commit.pr))})"
        elif short_ref:
            title += f" ({commit_link(repo, short_ref)})"
    elif not commit.submodule:
        if commit.pr:
            title += f" (#{commit.pr})"
        elif short_ref:
            title += f" ({short_ref})"

    if metadata.authors:
        title += f" ({', '.join(metadata.authors)})"

    return title


def parse_metadata(description: str, author: Author | None) -> CommitMetadata:
    """Parse git trailers out of a commit body.

    Recognized trailer lines are removed from the returned description; all
    other lines are kept verbatim.
    """
    metadata = CommitMetadata()
    lines = re.split(r"\r?\n", description)
    co_authors: list[str] = []
    kept: list[str] = []

    i = 0
    while i < len(lines):
        line = lines[i]
        pos = line.find(":")
        key = _trailer_key(line[:pos]) if pos > 0 else None

        if key is None:
            kept.append(line)
            i += 1
            continue

        value = line[pos + 1 :].strip()

        # Folded multi-line value
        while i + 1 < len(lines) and lines[i + 1][:1] in (" ", "\t"):
            i += 1
            continuation = lines[i].strip()
            if value and continuation:
                value += " "
            value += continuation

        if key is Trailer.CATEGORY:
            value = value.rstrip(".").lower()
            if value in CATEGORIES:
                metadata.category = value
        elif key is Trailer.NOTICE:
            if value:
                metadata.notice = value
        elif key is Trailer.CO_AUTHOR:
            # Loosely parse "name <email>"; only the name is kept
            sep = value.find("<")
            if sep > 0:
                name = value[:sep].strip()
                if name and not is_bot(Author(name=name)) and name not in co_authors:
                    co_authors.append(name)
        elif key is Trailer.REFERENCE:
            refs = _REFERENCE_SPLIT_RE.split(value.rstrip("."))
            metadata.references.extend(ref for ref in refs if _REFERENCE_RE.match(ref))

        i += 1

    # Bot authors are only credited when nobody else is
    if author and author.name and (not co_authors or not is_bot(author)) and author.name not in co_authors:
        metadata.authors = [author.name, *co_authors]
    else:
        metadata.authors = co_authors

    metadata.description = "\n".join(kept).strip()
    return metadata


def is_bot(author: Author | None) -> bool:
    if author is None:
        return False
    if author.name in _BOT_NAMES or author.name.endswith("[bot]"):
        return True
    return bool(author.email and author.email.endswith("@greenkeeper.io"))


def issue_link(repository_url: str, issue: str) -> str:
    return f"[#{issue}]({repository_url}/issues/{issue})"


def commit_link(repository_url: str, short_ref: str) -> str:
    return f"[`{short_ref}`]({repository_url}/commit/{short_ref})"


def _merger(commit: Commit) -> Author | None:
    if commit.merge_commit is not None:
        return commit.merge_commit.author
    return commit.committer


def _prefix_title(title: str, subsystem: str | None) -> str:
    if _BREAKING_RE.match(title):
        title = title[len("breaking:") :].strip()
        subsystem = f"{subsystem} (breaking)" if subsystem else "Breaking"
    return f"**{subsystem}:** {title}" if subsystem else title


def _trailer_key(key: str) -> Trailer | None:
    for pattern, trailer in _TRAILER_KEYS:
        if pattern.match(key):
            return trailer
    return None
