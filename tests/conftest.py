"""Shared fixtures for covsend tests."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from covsend.models.coverage import CoverageFile
from covsend.models.git import GitMetadata
from covsend.models.report import RepoToken, Report, ReportBuilder

TOKEN = "repo-token-abc"  # noqa: S105
ENDPOINT = "https://coveralls.example.test/api/v1/jobs"


@pytest.fixture()
def lib_file() -> CoverageFile:
    """The ``src/lib.rs`` file with a mix of hit, missed and irrelevant lines."""
    return CoverageFile.from_counts("src/lib.rs", [None, 1, 1, 0, None])


@pytest.fixture()
def git_metadata() -> GitMetadata:
    return GitMetadata.build(
        branch="main",
        commit_id="3f2a9c1d",
        author=("Ada Lovelace", "ada@example.com"),
        committer=("Build Bot", "bot@example.com"),
        message="Add coverage upload",
        committed_at=datetime(2024, 3, 1, 12, 30, 0, tzinfo=UTC),
        remotes=[("origin", "https://github.com/octocat/hello-world.git")],
    )


@pytest.fixture()
def token_report(lib_file: CoverageFile) -> Report:
    """A minimal finalized report using a repository token."""
    builder = ReportBuilder(RepoToken(TOKEN))
    builder.add_source(lib_file)
    return builder.finalize()
