"""Construction-time errors raised while building coverage reports."""

from __future__ import annotations

from enum import Enum


class ValidationErrorKind(Enum):
    """Why a report component was rejected at construction time."""

    EMPTY_PATH = "empty_path"
    NEGATIVE_HIT_COUNT = "negative_hit_count"
    MALFORMED_BRANCH = "malformed_branch"
    DUPLICATE_PATH = "duplicate_path"
    INVALID_IDENTITY = "invalid_identity"
    EMPTY_REPORT = "empty_report"


class ValidationError(ValueError):
    """Raised when caller-supplied report data violates an invariant.

    Always raised synchronously while constructing a value, never during
    serialization or submission.
    """

    def __init__(self, kind: ValidationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        """Classified reason for the failure."""
