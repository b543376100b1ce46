"""Submit coverage reports to Coveralls-compatible services.

Two clients share one submission protocol:

* :class:`CoverallsClient` uses a pooled ``requests.Session`` for blocking use.
* :class:`AsyncCoverallsClient` uses a pooled ``httpx.AsyncClient`` and can be
  cancelled by cancelling the awaiting task.

Each ``submit`` call serializes the report, uploads it as the single
``json_file`` part of a multipart/form-data POST and returns an
:class:`~covsend.outcomes.Acknowledged` or :class:`~covsend.outcomes.Failed`
value.  Transport and HTTP failures are classified, never raised.  No call
is ever retried here; use ``Failed.retryable`` to drive a retry policy.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import httpx
import requests

from covsend import serializer
from covsend.outcomes import (
    Acknowledged,
    Cancelled,
    Failed,
    Rejected,
    Submission,
    SubmissionResult,
    Transient,
    TransientCause,
    UnexpectedResponseShape,
)

if TYPE_CHECKING:
    from types import TracebackType

    from covsend.models.report import Report

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://coveralls.io/api/v1/jobs"
DEFAULT_TIMEOUT_SECONDS = 30.0

JSON_FILE_FIELD = "json_file"
_JSON_FILE_NAME = "coveralls.json"
_JSON_CONTENT_TYPE = "application/json"

_HTTP_SUCCESS_MIN = 200
_HTTP_SUCCESS_MAX = 300
_HTTP_CLIENT_ERROR_MIN = 400
_HTTP_SERVER_ERROR_MIN = 500
_HTTP_SERVER_ERROR_MAX = 600


class EndpointError(ValueError):
    """Raised when a submission endpoint is not an HTTPS URL."""


def require_https(endpoint: str) -> str:
    """Validate and normalize a submission endpoint.

    Raises:
        EndpointError: If the URL is not ``https://host/...``.
    """
    url = endpoint.strip()
    split = urlsplit(url)
    if split.scheme.lower() != "https" or not split.netloc:
        raise EndpointError(f"Submission endpoint must be an https:// URL (got: {endpoint!r})")
    return url


def build_multipart_files(report: Report) -> dict[str, tuple[str, bytes, str]]:
    """Package the serialized report as the ``json_file`` upload field."""
    payload = serializer.dumps(report).encode("utf-8")
    return {JSON_FILE_FIELD: (_JSON_FILE_NAME, payload, _JSON_CONTENT_TYPE)}


def classify_response(status: int, body: str) -> SubmissionResult:
    """Map an HTTP status and raw body onto a submission result."""
    if _HTTP_SUCCESS_MIN <= status < _HTTP_SUCCESS_MAX:
        return _parse_acknowledgement(status, body)
    if _HTTP_CLIENT_ERROR_MIN <= status < _HTTP_SERVER_ERROR_MIN:
        return Failed(Rejected(status=status, body=body))
    if _HTTP_SERVER_ERROR_MIN <= status < _HTTP_SERVER_ERROR_MAX:
        return Failed(Transient(cause=TransientCause.SERVER_ERROR, status=status, body=body))
    return Failed(UnexpectedResponseShape(status=status, body=body))


def _parse_acknowledgement(status: int, body: str) -> SubmissionResult:
    try:
        parsed: Any = json.loads(body)
    except ValueError:
        return Failed(UnexpectedResponseShape(status=status, body=body))

    if not isinstance(parsed, dict):
        return Failed(UnexpectedResponseShape(status=status, body=body))
    url = parsed.get("url")
    if not isinstance(url, str) or not url:
        return Failed(UnexpectedResponseShape(status=status, body=body))

    message = parsed.get("message")
    return Acknowledged(url=url, message=message if isinstance(message, str) else "")


def _log_result(result: SubmissionResult, url: str) -> None:
    if isinstance(result, Acknowledged):
        logger.info("Coverage report accepted: %s", result.url)
        return

    reason = result.reason
    if isinstance(reason, Rejected):
        logger.warning(
            "Coverage report rejected by %s (HTTP %d): %s", url, reason.status, reason.body[:300]
        )
    elif isinstance(reason, Transient):
        logger.warning(
            "Coverage submission to %s failed transiently (%s%s)",
            url,
            reason.cause.value,
            f", HTTP {reason.status}" if reason.status is not None else "",
        )
    elif isinstance(reason, UnexpectedResponseShape):
        logger.warning(
            "Unexpected response from %s (HTTP %d): %s", url, reason.status, reason.body[:300]
        )
    else:
        logger.info("Coverage submission to %s was cancelled", url)


class CoverallsClient:
    """Blocking client backed by a shared ``requests.Session``.

    The session is created once and reused by every ``submit`` call.  Use the
    client as a context manager, or call :meth:`close`, to release it.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Default submission URL (must be HTTPS).
            timeout: Default request timeout in seconds.
            session: Existing session to reuse; the client then does not
                close it.

        Raises:
            EndpointError: If ``endpoint`` is not an HTTPS URL.
        """
        self.endpoint = require_https(endpoint)
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    def __enter__(self) -> CoverallsClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def submit(
        self,
        report: Report,
        endpoint: str | None = None,
        *,
        timeout: float | None = None,
    ) -> SubmissionResult:
        """Upload ``report`` with a single POST and classify the outcome.

        Args:
            report: Finalized report.
            endpoint: Per-call endpoint override (must be HTTPS).
            timeout: Per-call timeout override in seconds.

        Returns:
            ``Acknowledged`` on success, otherwise ``Failed`` with the reason.

        Raises:
            EndpointError: If the endpoint override is not an HTTPS URL.
        """
        url = require_https(endpoint) if endpoint is not None else self.endpoint
        files = build_multipart_files(report)
        submission = Submission()
        submission.start()
        logger.info(
            "Submitting coverage for %d source file(s) to %s", len(report.source_files), url
        )

        try:
            response = self._session.post(
                url,
                files=files,
                timeout=timeout if timeout is not None else self.timeout,
                allow_redirects=False,
            )
        except requests.Timeout as exc:
            result: SubmissionResult = Failed(
                Transient(cause=TransientCause.TIMEOUT, detail=str(exc))
            )
        except requests.ConnectionError as exc:
            result = Failed(Transient(cause=TransientCause.CONNECTION, detail=str(exc)))
        except requests.RequestException as exc:
            result = Failed(Transient(cause=TransientCause.TRANSPORT, detail=str(exc)))
        else:
            result = classify_response(response.status_code, response.text)

        _log_result(result, url)
        return submission.finish(result)


class AsyncCoverallsClient:
    """Awaitable client backed by a shared ``httpx.AsyncClient``.

    Safe to use from many concurrent tasks.  Cancelling the task that awaits
    :meth:`submit` before a response arrives yields ``Failed(Cancelled())``.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = require_https(endpoint)
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> AsyncCoverallsClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def submit(
        self,
        report: Report,
        endpoint: str | None = None,
        *,
        timeout: float | None = None,
    ) -> SubmissionResult:
        """Upload ``report`` with a single POST and classify the outcome.

        Same contract as :meth:`CoverallsClient.submit`, plus cancellation:
        a cancelled call returns ``Failed(Cancelled())`` and is never
        acknowledged.
        """
        url = require_https(endpoint) if endpoint is not None else self.endpoint
        files = build_multipart_files(report)
        submission = Submission()
        submission.start()
        logger.info(
            "Submitting coverage for %d source file(s) to %s", len(report.source_files), url
        )

        try:
            response = await self._client.post(
                url,
                files=files,
                timeout=timeout if timeout is not None else self.timeout,
                follow_redirects=False,
            )
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
            result: SubmissionResult = Failed(Cancelled())
        except httpx.TimeoutException as exc:
            result = Failed(Transient(cause=TransientCause.TIMEOUT, detail=str(exc)))
        except httpx.ConnectError as exc:
            result = Failed(Transient(cause=TransientCause.CONNECTION, detail=str(exc)))
        except httpx.HTTPError as exc:
            result = Failed(Transient(cause=TransientCause.TRANSPORT, detail=str(exc)))
        else:
            result = classify_response(response.status_code, response.text)

        _log_result(result, url)
        return submission.finish(result)
