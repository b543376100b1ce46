"""Data models for covsend."""

from covsend.models.coverage import NOT_COVERABLE, BranchHit, CoverageFile, Hit, Line, NotCoverable
from covsend.models.git import GitHead, GitMetadata, GitRemote
from covsend.models.report import (
    Identity,
    RepoToken,
    Report,
    ReportBuilder,
    ServiceIdentity,
    identity_from,
)

__all__ = [
    "NOT_COVERABLE",
    "BranchHit",
    "CoverageFile",
    "GitHead",
    "GitMetadata",
    "GitRemote",
    "Hit",
    "Identity",
    "Line",
    "NotCoverable",
    "RepoToken",
    "Report",
    "ReportBuilder",
    "ServiceIdentity",
    "identity_from",
]
