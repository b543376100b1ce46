"""Serialize a :class:`~covsend.models.report.Report` into the Coveralls job JSON.

The output follows the Coveralls ``/api/v1/jobs`` schema field-for-field.
Optional fields that are unset are omitted, never emitted as ``null``.  The
only ``null`` values in a document are not-coverable lines inside a
``coverage`` array.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from covsend.models.coverage import CoverageFile, Hit
from covsend.models.git import GitMetadata
from covsend.models.report import RepoToken, Report

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


def report_to_dict(report: Report) -> dict[str, Any]:
    """Build the JSON-compatible job document for ``report``."""
    payload: dict[str, Any] = {}

    identity = report.identity
    if isinstance(identity, RepoToken):
        payload["repo_token"] = identity.token
    else:
        payload["service_name"] = identity.service_name
        payload["service_job_id"] = identity.service_job_id

    if report.service_number is not None:
        payload["service_number"] = report.service_number
    if report.service_build_url is not None:
        payload["service_build_url"] = report.service_build_url
    if report.service_pull_request is not None:
        payload["service_pull_request"] = report.service_pull_request
    if report.flag_name is not None:
        payload["flag_name"] = report.flag_name
    if report.parallel:
        payload["parallel"] = True
    if report.commit_sha is not None:
        payload["commit_sha"] = report.commit_sha
    if report.run_at is not None:
        payload["run_at"] = format_timestamp(report.run_at)
    if report.git is not None:
        payload["git"] = _serialize_git(report.git)

    payload["source_files"] = [_serialize_source_file(f) for f in report.source_files]
    return payload


def dumps(report: Report) -> str:
    """Return the compact JSON document for ``report``.

    Identical reports always produce byte-identical output.  Non-ASCII text is
    written as ``\\u`` escapes so the document is always encodable as UTF-8,
    including paths decoded with ``surrogateescape``.
    """
    return json.dumps(report_to_dict(report), separators=(",", ":"))


def _serialize_source_file(source: CoverageFile) -> dict[str, Any]:
    entry: dict[str, Any] = {"name": source.path}
    if source.source_digest is not None:
        entry["source_digest"] = source.source_digest
    entry["coverage"] = [line.count if isinstance(line, Hit) else None for line in source.coverage]
    if source.branches:
        entry["branches"] = [value for branch in source.branches for value in branch.as_tuple()]
    if source.source is not None:
        entry["source"] = source.source
    return entry


def _serialize_git(git: GitMetadata) -> dict[str, Any]:
    head: dict[str, Any] = {
        "id": git.head.id,
        "author_name": git.head.author_name,
        "author_email": git.head.author_email,
        "committer_name": git.head.committer_name,
        "committer_email": git.head.committer_email,
        "message": git.head.message,
    }
    if git.head.committed_at is not None:
        head["committed_at"] = format_timestamp(git.head.committed_at)

    return {
        "head": head,
        "branch": git.branch,
        "remotes": [{"name": remote.name, "url": remote.url} for remote in git.remotes],
    }
