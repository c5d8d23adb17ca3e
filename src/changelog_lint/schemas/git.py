"""Version-control records."""

from __future__ import annotations

from pydantic import BaseModel


class Tag(BaseModel):
    """A git tag that parses as a version.

    ``normalized_tag`` always carries the ``v`` prefix while ``tag`` keeps the
    name as it exists in the repository (historical tags may lack the prefix).
    """

    tag: str
    normalized_tag: str
    version: str


class Author(BaseModel):
    name: str
    email: str | None = None


class MergeCommit(BaseModel):
    """Metadata of the merge commit that brought a commit in."""

    oid: str
    author: Author


class Commit(BaseModel):
    """A raw history commit as returned by the git collaborator.

    Attributes:
        oid: Full commit hash.
        title: First line of the commit message.
        description: Remainder of the message, trailers included.
        author: Commit author.
        committer: Commit committer.
        pr: Pull request number, if known.
        submodule: Label of the nested project the commit comes from.
        repository_url: Web base URL used to link issues and commits.
        is_merge_commit: True for commits with more than one parent.
        merge_commit: The merge that brought this commit in, if known.
    """

    oid: str
    title: str
    description: str = ""
    author: Author
    committer: Author | None = None
    pr: int | None = None
    submodule: str | None = None
    repository_url: str | None = None
    is_merge_commit: bool = False
    merge_commit: MergeCommit | None = None
