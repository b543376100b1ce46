"""Git utilities for collecting report metadata.

This module reads the head commit, branch and remotes of a local checkout by
shelling out to ``git``.  It is an optional helper for callers; the report
models never touch the repository themselves.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from datetime import datetime
from pathlib import Path

from covsend.models.git import GitHead, GitMetadata, GitRemote

logger = logging.getLogger(__name__)

_GIT_TIMEOUT_SECONDS = 10
_FIELD_SEP = "\x1f"
_HEAD_FORMAT = _FIELD_SEP.join(["%H", "%an", "%ae", "%cn", "%ce", "%cI", "%B"])
_HEAD_FIELDS = 7
_REMOTE_FIELDS = 2


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


def _run_git(repo_path: Path, *args: str) -> str:
    """Run a git command and return its stdout.

    Raises:
        GitOperationError: If git is missing, fails or times out.
    """
    try:
        result = subprocess.run(
            [_git_executable(), *args],
            cwd=repo_path,
            capture_output=True,
            text=True,
            check=True,
            timeout=_GIT_TIMEOUT_SECONDS,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise GitOperationError(f"git {' '.join(args)} failed: {stderr or exc}") from exc
    except (FileNotFoundError, subprocess.TimeoutExpired) as exc:
        raise GitOperationError(f"git {' '.join(args)} failed: {exc}") from exc
    return result.stdout


def get_head_commit(repo_path: Path) -> GitHead:
    """Read the head commit of the repository.

    Raises:
        GitOperationError: If the operation fails or the output is malformed.
    """
    output = _run_git(repo_path, "log", "-1", f"--format={_HEAD_FORMAT}")
    parts = output.split(_FIELD_SEP, _HEAD_FIELDS - 1)
    if len(parts) != _HEAD_FIELDS:
        raise GitOperationError(f"Unexpected git log output: {output!r}")

    sha, author_name, author_email, committer_name, committer_email, committed, message = parts
    try:
        committed_at: datetime | None = datetime.fromisoformat(committed.strip())
    except ValueError:
        logger.warning("Could not parse commit timestamp %r", committed)
        committed_at = None

    return GitHead(
        id=sha.strip(),
        author_name=author_name,
        author_email=author_email,
        committer_name=committer_name,
        committer_email=committer_email,
        message=message.strip(),
        committed_at=committed_at,
    )


def get_current_branch(repo_path: Path) -> str:
    """Get the current branch name (``HEAD`` when detached).

    Raises:
        GitOperationError: If the operation fails.
    """
    return _run_git(repo_path, "rev-parse", "--abbrev-ref", "HEAD").strip()


def get_remotes(repo_path: Path) -> list[GitRemote]:
    """List the fetch URL of each remote, in the order git reports them.

    Raises:
        GitOperationError: If the operation fails.
    """
    remotes: list[GitRemote] = []
    seen: set[str] = set()
    for line in _run_git(repo_path, "remote", "-v").splitlines():
        parts = line.split()
        if len(parts) < _REMOTE_FIELDS:
            continue
        name, url = parts[0], parts[1]
        if name in seen:
            continue
        seen.add(name)
        remotes.append(GitRemote(name=name, url=url))
    return remotes


def collect_git_metadata(repo_path: Path | str, *, branch: str | None = None) -> GitMetadata:
    """Collect head, branch and remotes for a report.

    Args:
        repo_path: Path to the git checkout.
        branch: Branch name override, e.g. from CI detection when the
            checkout is in detached-HEAD state.

    Returns:
        Metadata ready to attach with ``ReportBuilder.set_git``.

    Raises:
        GitOperationError: If any git command fails.
    """
    path = Path(repo_path)
    head = get_head_commit(path)
    resolved_branch = branch or get_current_branch(path)
    remotes = get_remotes(path)
    logger.debug("Collected git metadata for %s at %s", resolved_branch, head.id)
    return GitMetadata(branch=resolved_branch, head=head, remotes=tuple(remotes))
