"""Tests for submission results and the submission state machine."""

from __future__ import annotations

import pytest

from covsend.outcomes import (
    Acknowledged,
    Cancelled,
    Failed,
    Rejected,
    Submission,
    SubmissionState,
    Transient,
    TransientCause,
    UnexpectedResponseShape,
)


def test_new_submission_is_idle() -> None:
    submission = Submission()
    assert submission.state is SubmissionState.IDLE
    assert submission.result is None


def test_sending_then_acknowledged() -> None:
    submission = Submission()
    submission.start()
    assert submission.state is SubmissionState.SENDING

    result = submission.finish(Acknowledged(url="https://x/jobs/1"))

    assert submission.state is SubmissionState.ACKNOWLEDGED
    assert submission.state.is_terminal
    assert submission.result is result


def test_sending_then_failed() -> None:
    submission = Submission()
    submission.start()
    submission.finish(Failed(Cancelled()))

    assert submission.state is SubmissionState.FAILED


def test_terminal_state_cannot_change() -> None:
    submission = Submission()
    submission.start()
    submission.finish(Failed(Rejected(400, "bad")))

    with pytest.raises(RuntimeError, match="failed -> acknowledged"):
        submission.finish(Acknowledged(url="https://x/jobs/1"))


def test_cannot_acknowledge_without_sending() -> None:
    with pytest.raises(RuntimeError, match="idle -> acknowledged"):
        Submission().finish(Acknowledged(url="https://x/jobs/1"))


@pytest.mark.parametrize(
    ("reason", "retryable"),
    [
        (Rejected(422, "{}"), False),
        (Transient(cause=TransientCause.TIMEOUT), True),
        (Transient(cause=TransientCause.SERVER_ERROR, status=503), True),
        (UnexpectedResponseShape(200, "ok"), False),
        (Cancelled(), False),
    ],
)
def test_only_transient_failures_are_retryable(reason: object, retryable: bool) -> None:
    assert Failed(reason).retryable is retryable  # type: ignore[arg-type]
