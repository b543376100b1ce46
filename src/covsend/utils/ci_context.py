"""CI environment detection utilities."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

from covsend.models.report import ServiceIdentity

_GITHUB_PR_REF = re.compile(r"^refs/pull/(\d+)/")


@dataclass
class CIEnvironment:
    """Detected CI execution context."""

    service_name: str
    """Coveralls service name (``github``, ``travis-ci``, ``circleci``, ...)."""

    service_job_id: str
    """Job identifier assigned by the CI provider."""

    service_number: str | None = None
    """Build/workflow number, when the provider exposes one."""

    pull_request: str | None = None
    """Pull/merge request number if running for one."""

    branch: str | None = None
    """Current branch name."""

    commit_sha: str | None = None
    """Current commit SHA."""

    build_url: str | None = None
    """Link to the CI build."""

    def identity(self) -> ServiceIdentity:
        return ServiceIdentity(self.service_name, self.service_job_id)


def detect_ci_environment(env: Mapping[str, str] | None = None) -> CIEnvironment | None:
    """Detect the CI provider from environment variables.

    Supports GitHub Actions, Travis CI (and Travis Pro), CircleCI, Semaphore,
    Jenkins, Codeship and GitLab CI.

    Args:
        env: Environment to inspect; defaults to ``os.environ``.

    Returns:
        The detected environment, or None outside a supported CI provider.
    """
    if env is None:
        env = os.environ

    # GitHub Actions
    if env.get("GITHUB_ACTIONS") == "true":
        server = env.get("GITHUB_SERVER_URL", "https://github.com")
        repository = env.get("GITHUB_REPOSITORY", "")
        run_id = env.get("GITHUB_RUN_ID", "")
        pr_match = _GITHUB_PR_REF.match(env.get("GITHUB_REF", ""))
        return CIEnvironment(
            service_name="github",
            service_job_id=run_id,
            service_number=_blank_to_none(env.get("GITHUB_RUN_NUMBER")),
            pull_request=pr_match.group(1) if pr_match else None,
            branch=_blank_to_none(env.get("GITHUB_HEAD_REF")) or env.get("GITHUB_REF_NAME"),
            commit_sha=env.get("GITHUB_SHA"),
            build_url=(
                f"{server}/{repository}/actions/runs/{run_id}" if repository and run_id else None
            ),
        )

    # Travis CI
    if env.get("TRAVIS") == "true":
        pull_request = env.get("TRAVIS_PULL_REQUEST", "false")
        return CIEnvironment(
            service_name="travis-pro" if env.get("TRAVIS_PRO") else "travis-ci",
            service_job_id=env.get("TRAVIS_JOB_ID", ""),
            service_number=_blank_to_none(env.get("TRAVIS_BUILD_NUMBER")),
            pull_request=None if pull_request in {"", "false"} else pull_request,
            branch=env.get("TRAVIS_BRANCH"),
            commit_sha=env.get("TRAVIS_COMMIT"),
            build_url=_blank_to_none(env.get("TRAVIS_BUILD_WEB_URL")),
        )

    # CircleCI
    if env.get("CIRCLECI") == "true":
        pr_num = env.get("CIRCLE_PR_NUMBER") or env.get("CIRCLE_PULL_REQUEST", "").split("/")[-1]
        return CIEnvironment(
            service_name="circleci",
            service_job_id=env.get("CIRCLE_BUILD_NUM", ""),
            service_number=_blank_to_none(env.get("CIRCLE_WORKFLOW_ID")),
            pull_request=_blank_to_none(pr_num),
            branch=env.get("CIRCLE_BRANCH"),
            commit_sha=env.get("CIRCLE_SHA1"),
            build_url=_blank_to_none(env.get("CIRCLE_BUILD_URL")),
        )

    # Semaphore
    if env.get("SEMAPHORE") == "true":
        return CIEnvironment(
            service_name="semaphore",
            service_job_id=env.get("SEMAPHORE_JOB_ID", "") or env.get("SEMAPHORE_BUILD_NUMBER", ""),
            service_number=_blank_to_none(env.get("SEMAPHORE_WORKFLOW_ID")),
            pull_request=_blank_to_none(
                env.get("SEMAPHORE_GIT_PR_NUMBER") or env.get("PULL_REQUEST_NUMBER")
            ),
            branch=env.get("SEMAPHORE_GIT_BRANCH") or env.get("BRANCH_NAME"),
            commit_sha=env.get("SEMAPHORE_GIT_SHA") or env.get("REVISION"),
        )

    # Jenkins
    if env.get("JENKINS_URL"):
        return CIEnvironment(
            service_name="jenkins",
            service_job_id=env.get("BUILD_ID", ""),
            service_number=_blank_to_none(env.get("BUILD_NUMBER")),
            pull_request=_blank_to_none(env.get("CHANGE_ID") or env.get("ghprbPullId")),
            branch=env.get("BRANCH_NAME") or env.get("GIT_BRANCH"),
            commit_sha=env.get("GIT_COMMIT"),
            build_url=_blank_to_none(env.get("BUILD_URL")),
        )

    # Codeship
    if env.get("CI_NAME", "").lower() == "codeship":
        return CIEnvironment(
            service_name="codeship",
            service_job_id=env.get("CI_BUILD_ID", "") or env.get("CI_BUILD_NUMBER", ""),
            service_number=_blank_to_none(env.get("CI_BUILD_NUMBER")),
            pull_request=_blank_to_none(env.get("CI_PR_NUMBER")),
            branch=env.get("CI_BRANCH"),
            commit_sha=env.get("CI_COMMIT_ID"),
            build_url=_blank_to_none(env.get("CI_BUILD_URL")),
        )

    # GitLab CI
    if env.get("GITLAB_CI") == "true":
        return CIEnvironment(
            service_name="gitlab-ci",
            service_job_id=env.get("CI_JOB_ID", ""),
            service_number=_blank_to_none(env.get("CI_PIPELINE_IID")),
            pull_request=_blank_to_none(env.get("CI_MERGE_REQUEST_IID")),
            branch=env.get("CI_COMMIT_REF_NAME"),
            commit_sha=env.get("CI_COMMIT_SHA"),
            build_url=_blank_to_none(env.get("CI_JOB_URL")),
        )

    return None


def _blank_to_none(value: str | None) -> str | None:
    """Return None for missing or whitespace-only values."""
    if value is None or not value.strip():
        return None
    return value.strip()
