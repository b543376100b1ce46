"""Build Coveralls-compatible coverage reports and submit them."""

from covsend.client import DEFAULT_ENDPOINT, AsyncCoverallsClient, CoverallsClient, EndpointError
from covsend.errors import ValidationError, ValidationErrorKind
from covsend.models import (
    NOT_COVERABLE,
    BranchHit,
    CoverageFile,
    GitHead,
    GitMetadata,
    GitRemote,
    Hit,
    RepoToken,
    Report,
    ReportBuilder,
    ServiceIdentity,
    identity_from,
)
from covsend.outcomes import (
    Acknowledged,
    Cancelled,
    Failed,
    Rejected,
    SubmissionState,
    Transient,
    TransientCause,
    UnexpectedResponseShape,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_ENDPOINT",
    "NOT_COVERABLE",
    "Acknowledged",
    "AsyncCoverallsClient",
    "BranchHit",
    "Cancelled",
    "CoverageFile",
    "CoverallsClient",
    "EndpointError",
    "Failed",
    "GitHead",
    "GitMetadata",
    "GitRemote",
    "Hit",
    "Rejected",
    "RepoToken",
    "Report",
    "ReportBuilder",
    "ServiceIdentity",
    "SubmissionState",
    "Transient",
    "TransientCause",
    "UnexpectedResponseShape",
    "ValidationError",
    "ValidationErrorKind",
    "identity_from",
]
