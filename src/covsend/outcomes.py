"""Typed results of a submission and the per-call state machine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SubmissionState(Enum):
    """Lifecycle of a single submission."""

    IDLE = "idle"
    SENDING = "sending"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionState.ACKNOWLEDGED, SubmissionState.FAILED)


_ALLOWED_TRANSITIONS: dict[SubmissionState, frozenset[SubmissionState]] = {
    SubmissionState.IDLE: frozenset({SubmissionState.SENDING, SubmissionState.FAILED}),
    SubmissionState.SENDING: frozenset({SubmissionState.ACKNOWLEDGED, SubmissionState.FAILED}),
    SubmissionState.ACKNOWLEDGED: frozenset(),
    SubmissionState.FAILED: frozenset(),
}


class TransientCause(Enum):
    """Why a retry-eligible failure happened."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"
    TRANSPORT = "transport"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class Rejected:
    """The service refused the report (HTTP 4xx); retrying will not help."""

    status: int
    body: str


@dataclass(frozen=True)
class Transient:
    """A server error or transport failure that the caller may retry."""

    cause: TransientCause
    status: int | None = None
    body: str = ""
    detail: str = ""


@dataclass(frozen=True)
class UnexpectedResponseShape:
    """A response that did not carry the expected acknowledgement."""

    status: int
    body: str


@dataclass(frozen=True)
class Cancelled:
    """The caller cancelled the submission before a response arrived."""


FailureReason = Rejected | Transient | UnexpectedResponseShape | Cancelled


@dataclass(frozen=True)
class Acknowledged:
    """The service accepted the report."""

    url: str
    """Link to the job on the coverage service."""

    message: str = ""

    @property
    def state(self) -> SubmissionState:
        return SubmissionState.ACKNOWLEDGED


@dataclass(frozen=True)
class Failed:
    """The submission did not succeed."""

    reason: FailureReason

    @property
    def state(self) -> SubmissionState:
        return SubmissionState.FAILED

    @property
    def retryable(self) -> bool:
        return isinstance(self.reason, Transient)


SubmissionResult = Acknowledged | Failed


class Submission:
    """Tracks one submission through ``IDLE -> SENDING -> ACKNOWLEDGED | FAILED``.

    A fresh instance is created for every call so clients stay free of
    per-submission state.
    """

    def __init__(self) -> None:
        self.state = SubmissionState.IDLE
        self.result: SubmissionResult | None = None

    def _move(self, target: SubmissionState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal submission transition: {self.state.value} -> {target.value}"
            )
        self.state = target

    def start(self) -> None:
        self._move(SubmissionState.SENDING)

    def finish(self, result: SubmissionResult) -> SubmissionResult:
        self._move(result.state)
        self.result = result
        return result
