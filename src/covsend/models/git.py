"""Source-control metadata attached to a report.

All fields are descriptive strings supplied by the caller.  Nothing here
checks them against an actual repository.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class GitHead:
    """The commit the coverage run was executed against."""

    id: str
    """Full commit SHA."""

    author_name: str = ""
    author_email: str = ""
    committer_name: str = ""
    committer_email: str = ""
    message: str = ""

    committed_at: datetime | None = None
    """Commit timestamp, when known."""


@dataclass(frozen=True)
class GitRemote:
    """A named remote of the repository."""

    name: str
    url: str


@dataclass(frozen=True)
class GitMetadata:
    """Branch, head commit and remotes of the repository."""

    branch: str
    """Current branch name."""

    head: GitHead
    """Head commit."""

    remotes: tuple[GitRemote, ...] = field(default_factory=tuple)
    """Remotes in the order the caller listed them."""

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "remotes",
            tuple(r if isinstance(r, GitRemote) else GitRemote(*r) for r in self.remotes),
        )

    @classmethod
    def build(
        cls,
        *,
        branch: str,
        commit_id: str,
        author: tuple[str, str] = ("", ""),
        committer: tuple[str, str] | None = None,
        message: str = "",
        committed_at: datetime | None = None,
        remotes: Iterable[tuple[str, str]] = (),
    ) -> GitMetadata:
        """Build metadata from flat values.

        ``author`` and ``committer`` are ``(name, email)`` pairs; the committer
        defaults to the author.
        """
        committer_name, committer_email = committer if committer is not None else author
        head = GitHead(
            id=commit_id,
            author_name=author[0],
            author_email=author[1],
            committer_name=committer_name,
            committer_email=committer_email,
            message=message,
            committed_at=committed_at,
        )
        return cls(
            branch=branch,
            head=head,
            remotes=tuple(GitRemote(name, url) for name, url in remotes),
        )
