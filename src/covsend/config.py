"""Configuration parsing from ``.coveralls.yml``."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from covsend.client import (
    DEFAULT_ENDPOINT,
    DEFAULT_TIMEOUT_SECONDS,
    CoverallsClient,
    EndpointError,
    require_https,
)
from covsend.models.report import Identity, ReportBuilder, identity_from

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".coveralls.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_TRUE_VALUES = {"1", "true", "yes", "on"}

_ENV_OVERRIDES = {
    "repo_token": "COVERALLS_REPO_TOKEN",
    "service_name": "COVERALLS_SERVICE_NAME",
    "service_job_id": "COVERALLS_SERVICE_JOB_ID",
    "endpoint": "COVERALLS_ENDPOINT",
    "parallel": "COVERALLS_PARALLEL",
    "flag_name": "COVERALLS_FLAG_NAME",
}


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or parsed."""


def _resolve_env_vars(value: str, env: Mapping[str, str]) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = env.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class CoverallsConfig:
    """Settings for submitting reports, from ``.coveralls.yml`` and the environment."""

    repo_token: str = field(default="", repr=False)
    """Secret repository token (supports ${ENV_VAR} expansion)."""

    service_name: str = ""
    """CI service name used instead of a repository token."""

    service_job_id: str = ""
    """CI job id paired with ``service_name``."""

    endpoint: str = DEFAULT_ENDPOINT
    """Submission URL (e.g. a self-hosted Coveralls Enterprise instance)."""

    timeout: float = DEFAULT_TIMEOUT_SECONDS
    """Request timeout in seconds."""

    parallel: bool = False
    """Mark the job as one of several parallel jobs of a build."""

    flag_name: str = ""
    """Label distinguishing this job in parallel builds."""

    raw: dict[str, Any] = field(default_factory=dict, repr=False)
    """Raw parsed YAML for extension/debugging."""

    def identity(self) -> Identity:
        """Resolve the configured identity.

        Raises:
            ValidationError: If both or neither identity modes are configured.
        """
        return identity_from(
            repo_token=self.repo_token or None,
            service_name=self.service_name or None,
            service_job_id=self.service_job_id or None,
        )

    def create_builder(self) -> ReportBuilder:
        """Start a report builder with the configured identity and job flags."""
        builder = ReportBuilder(self.identity())
        if self.parallel:
            builder.set_parallel()
        if self.flag_name:
            builder.set_flag_name(self.flag_name)
        return builder

    def create_client(self) -> CoverallsClient:
        """Create a blocking client for the configured endpoint and timeout."""
        return CoverallsClient(self.endpoint, timeout=self.timeout)


def load_config(
    root: str | Path,
    *,
    env: Mapping[str, str] | None = None,
) -> CoverallsConfig:
    """Load ``.coveralls.yml`` from ``root`` and apply environment overrides.

    A missing file is not an error: defaults plus environment values are used.

    Args:
        root: Directory containing ``.coveralls.yml``.
        env: Environment to read overrides from; defaults to ``os.environ``.

    Returns:
        The resolved configuration.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping.
    """
    if env is None:
        env = os.environ

    config_path = Path(root) / CONFIG_FILE_NAME
    raw: dict[str, Any] = {}
    if config_path.is_file():
        try:
            loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read {config_path}: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path} must contain a mapping at the top level")
        raw = loaded
    else:
        logger.debug("No %s found in %s", CONFIG_FILE_NAME, root)

    values: dict[str, Any] = {}
    for key, value in raw.items():
        values[key] = _resolve_env_vars(value, env) if isinstance(value, str) else value

    for key, env_name in _ENV_OVERRIDES.items():
        override = env.get(env_name)
        if override:
            values[key] = override

    try:
        timeout = float(values.get("timeout", DEFAULT_TIMEOUT_SECONDS))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"timeout must be a number (got: {values.get('timeout')!r})") from exc

    return CoverallsConfig(
        repo_token=str(values.get("repo_token") or ""),
        service_name=str(values.get("service_name") or ""),
        service_job_id=str(values.get("service_job_id") or ""),
        endpoint=str(values.get("endpoint") or DEFAULT_ENDPOINT),
        timeout=timeout,
        parallel=_as_bool(values.get("parallel", False)),
        flag_name=str(values.get("flag_name") or ""),
        raw=raw,
    )


def validate_config(config: CoverallsConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    has_token = bool(config.repo_token)
    has_service = bool(config.service_name or config.service_job_id)
    if has_token and has_service:
        errors.append("repo_token and service_name/service_job_id are mutually exclusive")
    elif not has_token and not has_service:
        errors.append("either repo_token or service_name/service_job_id is required")
    elif has_service and not (config.service_name and config.service_job_id):
        errors.append("service_name and service_job_id must be set together")

    try:
        require_https(config.endpoint)
    except EndpointError:
        errors.append(f"endpoint must be an https:// URL (got: {config.endpoint})")

    if config.timeout <= 0:
        errors.append(f"timeout must be positive (got: {config.timeout})")

    return errors
