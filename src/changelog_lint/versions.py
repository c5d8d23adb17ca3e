"""Version ordering, validation and bump resolution."""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import TYPE_CHECKING, Iterable

from semver import Version

if TYPE_CHECKING:
    from changelog_lint.schemas import Tag
    from changelog_lint.sections import Section

RELEASE_TYPES = ("major", "minor", "patch", "premajor", "preminor", "prepatch", "prerelease")
PRERELEASE_TOKEN = "rc"

_LOOSE_PREFIX_RE = re.compile(r"^[=v\s]+")
_BARE_RC_RE = re.compile(r"-rc(\d+)$")
_OPERATOR_SPACE_RE = re.compile(r"([<>=!]=?)\s+")


def clean_version(value: str | None) -> str | None:
    """Return the version in ``value`` with a leading ``v``/``=`` removed, or None."""
    if not value:
        return None
    candidate = _LOOSE_PREFIX_RE.sub("", value.strip())
    return candidate if Version.is_valid(candidate) else None


def is_valid_version(value: str | None) -> bool:
    """Strict check: ``value`` must be exactly a semantic version."""
    return bool(value) and Version.is_valid(value)


def compare_versions(a: str, b: str) -> int:
    """Order two version strings latest-first.

    Returns a negative number when ``a`` is newer than ``b``. Invalid versions
    sort after valid ones; two invalid strings fall back to plain string order.
    """
    if a == b:
        return 0

    av = _comparable(a)
    bv = _comparable(b)

    if av and bv:
        return Version.parse(bv).compare(av)
    if av:
        return -1
    if bv:
        return 1
    return (a > b) - (a < b)


def compare_releases(a: Section, b: Section) -> int:
    """Order releases latest-first, keeping the original order of unversioned ones."""
    if not a.version or not b.version:
        return a.index - b.index
    return compare_versions(a.version, b.version)


def is_newer(a: str, b: str) -> bool:
    return compare_versions(a, b) < 0


def sort_versions(values: Iterable[str]) -> list[str]:
    return sorted(values, key=cmp_to_key(compare_versions))


def is_sorted(items: list, comparator) -> bool:
    return all(comparator(items[i], items[i + 1]) <= 0 for i in range(len(items) - 1))


def bump_version(version: str, release_type: str) -> str | None:
    """Increment ``version`` by a release type such as ``minor`` or ``prerelease``.

    Returns None for an invalid version or an unknown release type.
    """
    if release_type not in RELEASE_TYPES or not is_valid_version(version):
        return None

    current = Version.parse(version)
    if release_type == "premajor":
        bumped = current.bump_major().bump_prerelease(PRERELEASE_TOKEN)
    elif release_type == "preminor":
        bumped = current.bump_minor().bump_prerelease(PRERELEASE_TOKEN)
    elif release_type == "prepatch":
        bumped = current.bump_patch().bump_prerelease(PRERELEASE_TOKEN)
    else:
        bumped = current.next_version(release_type, prerelease_token=PRERELEASE_TOKEN)
    return str(bumped)


def matches_range(version: str, expression: str) -> bool:
    """Check ``version`` against comparators like ``>=1.0.0 <2.0.0``; all must match."""
    # ">= 1.0.0" is one comparator
    expression = _OPERATOR_SPACE_RE.sub(r"\1", expression.strip())
    comparators = [part for part in re.split(r"[\s,]+", expression) if part]
    if not comparators or not is_valid_version(version):
        return False
    parsed = Version.parse(version)
    try:
        return all(parsed.match(comparator) for comparator in comparators)
    except ValueError:
        return False


def forgiving_tag(version: str, tags: list[Tag]) -> str:
    """Tag name for ``version``, preferring a historical tag without ``v`` prefix."""
    tag = version if version.startswith("v") else f"v{version}"
    for candidate in tags:
        if candidate.normalized_tag == tag:
            return candidate.tag
    return tag


def _comparable(value: str) -> str | None:
    version = clean_version(value)
    if version is None:
        return None
    # -rc9 vs -rc10 only sorts correctly as -rc.9 vs -rc.10
    return _BARE_RC_RE.sub(lambda match: f"-rc.{match.group(1)}", version)
