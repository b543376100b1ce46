"""Report identity, builder and the immutable report handed to the client."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from covsend.errors import ValidationError, ValidationErrorKind
from covsend.models.coverage import CoverageFile

if TYPE_CHECKING:
    from covsend.models.git import GitMetadata
    from covsend.utils.ci_context import CIEnvironment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepoToken:
    """Secret token identifying the target repository."""

    token: str

    def __post_init__(self) -> None:
        if not isinstance(self.token, str) or not self.token.strip():
            raise ValidationError(
                ValidationErrorKind.INVALID_IDENTITY, "Repository token must not be empty"
            )

    def __repr__(self) -> str:
        return "RepoToken(token='***')"


@dataclass(frozen=True)
class ServiceIdentity:
    """CI-integration identity: a known CI provider plus its job id."""

    service_name: str
    service_job_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.service_name, str) or not isinstance(self.service_job_id, str):
            raise ValidationError(
                ValidationErrorKind.INVALID_IDENTITY,
                "Service identity fields must be strings "
                f"(got: {self.service_name!r}, {self.service_job_id!r})",
            )
        if not self.service_name or not self.service_job_id:
            raise ValidationError(
                ValidationErrorKind.INVALID_IDENTITY,
                "Service identity requires both service_name and service_job_id "
                f"(got: {self.service_name!r}, {self.service_job_id!r})",
            )


Identity = RepoToken | ServiceIdentity


def _require_identity(identity: object) -> None:
    if not isinstance(identity, (RepoToken, ServiceIdentity)):
        raise ValidationError(
            ValidationErrorKind.INVALID_IDENTITY,
            f"Identity must be a RepoToken or ServiceIdentity (got: {type(identity)!r})",
        )


def identity_from(
    *,
    repo_token: str | None = None,
    service_name: str | None = None,
    service_job_id: str | None = None,
) -> Identity:
    """Resolve exactly one identity mode from loose values.

    Raises:
        ValidationError: If both modes, neither mode, or only half of the
            service identity are given.
    """
    has_token = bool(repo_token)
    has_service = bool(service_name) or bool(service_job_id)

    if has_token and has_service:
        raise ValidationError(
            ValidationErrorKind.INVALID_IDENTITY,
            "Set either repo_token or service_name/service_job_id, not both",
        )
    if has_token:
        return RepoToken(str(repo_token))
    if has_service:
        return ServiceIdentity(service_name or "", service_job_id or "")
    raise ValidationError(
        ValidationErrorKind.INVALID_IDENTITY,
        "Either repo_token or service_name/service_job_id is required",
    )


@dataclass(frozen=True)
class Report:
    """A finalized, immutable coverage report.

    Usually obtained from :meth:`ReportBuilder.finalize`.  Direct construction
    re-checks the identity type, the non-empty file list and path uniqueness,
    so serialization cannot fail on any ``Report`` that exists.
    """

    identity: Identity
    source_files: tuple[CoverageFile, ...]
    git: GitMetadata | None = None
    service_pull_request: str | None = None
    run_at: datetime | None = None
    service_number: str | None = None
    service_build_url: str | None = None
    commit_sha: str | None = None
    flag_name: str | None = None
    parallel: bool = False

    def __post_init__(self) -> None:
        _require_identity(self.identity)
        files = tuple(self.source_files)
        if not files:
            raise ValidationError(
                ValidationErrorKind.EMPTY_REPORT, "A report needs at least one source file"
            )
        seen: set[str] = set()
        for entry in files:
            if entry.path in seen:
                raise ValidationError(
                    ValidationErrorKind.DUPLICATE_PATH,
                    f"Source file already added to report: {entry.path}",
                )
            seen.add(entry.path)
        object.__setattr__(self, "source_files", files)

    def source_file(self, path: str) -> CoverageFile | None:
        for entry in self.source_files:
            if entry.path == path:
                return entry
        return None


@dataclass
class ReportBuilder:
    """Incrementally assemble a :class:`Report`.

    The builder is mutable and owned by a single caller.  ``finalize()``
    snapshots its state; later mutation does not affect earlier snapshots.
    """

    identity: Identity
    _files: list[CoverageFile] = field(default_factory=list, init=False, repr=False)
    _paths: set[str] = field(default_factory=set, init=False, repr=False)
    git: GitMetadata | None = field(default=None, init=False)
    pull_request: str | None = field(default=None, init=False)
    run_at: datetime | None = field(default=None, init=False)
    service_number: str | None = field(default=None, init=False)
    service_build_url: str | None = field(default=None, init=False)
    commit_sha: str | None = field(default=None, init=False)
    flag_name: str | None = field(default=None, init=False)
    parallel: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        _require_identity(self.identity)

    @classmethod
    def from_ci(cls, ci_env: CIEnvironment, *, repo_token: str | None = None) -> ReportBuilder:
        """Start a builder from a detected CI environment.

        With ``repo_token`` the token identity is used and the CI job id is
        not sent; otherwise the CI service identity is used.
        """
        identity: Identity = RepoToken(repo_token) if repo_token else ci_env.identity()
        builder = cls(identity)
        builder.pull_request = ci_env.pull_request
        builder.service_number = ci_env.service_number
        builder.service_build_url = ci_env.build_url
        builder.commit_sha = ci_env.commit_sha
        return builder

    @property
    def source_files(self) -> tuple[CoverageFile, ...]:
        return tuple(self._files)

    def add_source(self, file: CoverageFile) -> None:
        """Append a file.

        Raises:
            ValidationError: ``DUPLICATE_PATH`` if the path is already present.
                The existing entry is kept.
        """
        if file.path in self._paths:
            raise ValidationError(
                ValidationErrorKind.DUPLICATE_PATH,
                f"Source file already added to report: {file.path}",
            )
        self._files.append(file)
        self._paths.add(file.path)

    def add_sources(self, files: Iterable[CoverageFile]) -> None:
        """Append several files, adding none of them if any path is a duplicate."""
        batch = list(files)
        seen = set(self._paths)
        for entry in batch:
            if entry.path in seen:
                raise ValidationError(
                    ValidationErrorKind.DUPLICATE_PATH,
                    f"Source file already added to report: {entry.path}",
                )
            seen.add(entry.path)
        self._files.extend(batch)
        self._paths = seen

    def set_git(self, metadata: GitMetadata) -> None:
        self.git = metadata

    def set_pull_request(self, pull_request: str | int) -> None:
        self.pull_request = str(pull_request)

    def set_run_at(self, run_at: datetime) -> None:
        self.run_at = run_at

    def set_service_number(self, service_number: str | int) -> None:
        self.service_number = str(service_number)

    def set_service_build_url(self, url: str) -> None:
        self.service_build_url = url

    def set_commit_sha(self, sha: str) -> None:
        self.commit_sha = sha

    def set_flag_name(self, flag_name: str) -> None:
        self.flag_name = flag_name

    def set_parallel(self, parallel: bool = True) -> None:
        self.parallel = parallel

    def finalize(self) -> Report:
        """Snapshot the builder into an immutable :class:`Report`.

        Raises:
            ValidationError: ``EMPTY_REPORT`` if no source file was added.
        """
        report = Report(
            identity=self.identity,
            source_files=tuple(self._files),
            git=self.git,
            service_pull_request=self.pull_request,
            run_at=self.run_at,
            service_number=self.service_number,
            service_build_url=self.service_build_url,
            commit_sha=self.commit_sha,
            flag_name=self.flag_name,
            parallel=self.parallel,
        )
        logger.debug("Finalized report with %d source file(s)", len(report.source_files))
        return report
