"""Tests for config.py (.coveralls.yml parsing and validation)."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
import yaml

from covsend.client import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT_SECONDS, CoverallsClient
from covsend.config import (
    CONFIG_FILE_NAME,
    ConfigError,
    CoverallsConfig,
    _as_bool,
    _resolve_env_vars,
    load_config,
    validate_config,
)
from covsend.errors import ValidationError, ValidationErrorKind
from covsend.models.report import RepoToken, ServiceIdentity


def _write_coveralls_yml(root: Path, data: dict[str, Any]) -> None:
    """Write .coveralls.yml with given data."""
    (root / CONFIG_FILE_NAME).write_text(yaml.dump(data), encoding="utf-8")


# ── _resolve_env_vars / _as_bool ─────────────────────────────────────


class TestResolveEnvVars:
    def test_resolves_existing_var(self) -> None:
        assert _resolve_env_vars("${MY_VAR}", {"MY_VAR": "hello"}) == "hello"

    def test_missing_var_returns_empty(self) -> None:
        assert _resolve_env_vars("${MISSING_VAR}", {}) == ""

    def test_no_vars_unchanged(self) -> None:
        assert _resolve_env_vars("plain text", {}) == "plain text"

    def test_embedded_var(self) -> None:
        env = {"HOST": "coveralls.example.test"}
        assert _resolve_env_vars("https://${HOST}/api", env) == "https://coveralls.example.test/api"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(True, True), (False, False), ("true", True), ("YES", True), ("1", True), ("no", False)],
)
def test_as_bool(value: object, expected: bool) -> None:
    assert _as_bool(value) is expected


# ── load_config ──────────────────────────────────────────────────────


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path, env={})

        assert config.repo_token == ""
        assert config.endpoint == DEFAULT_ENDPOINT
        assert config.timeout == DEFAULT_TIMEOUT_SECONDS
        assert config.parallel is False
        assert config.raw == {}

    def test_reads_values(self, tmp_path: Path) -> None:
        _write_coveralls_yml(
            tmp_path,
            {
                "repo_token": "abc123",
                "endpoint": "https://coveralls.example.test/api/v1/jobs",
                "timeout": 5,
                "parallel": True,
                "flag_name": "unit",
            },
        )

        config = load_config(tmp_path, env={})

        assert config.repo_token == "abc123"
        assert config.endpoint == "https://coveralls.example.test/api/v1/jobs"
        assert config.timeout == 5.0
        assert config.parallel is True
        assert config.flag_name == "unit"
        assert config.raw["flag_name"] == "unit"

    def test_resolves_env_placeholders(self, tmp_path: Path) -> None:
        _write_coveralls_yml(tmp_path, {"repo_token": "${SECRET_TOKEN}"})

        config = load_config(tmp_path, env={"SECRET_TOKEN": "from-env"})

        assert config.repo_token == "from-env"

    def test_environment_overrides_file(self, tmp_path: Path) -> None:
        _write_coveralls_yml(tmp_path, {"repo_token": "file-token", "flag_name": "file"})
        env = {
            "COVERALLS_REPO_TOKEN": "env-token",
            "COVERALLS_FLAG_NAME": "",
            "COVERALLS_PARALLEL": "true",
        }

        config = load_config(tmp_path, env=env)

        assert config.repo_token == "env-token"
        assert config.flag_name == "file"
        assert config.parallel is True

    def test_service_identity_from_environment(self, tmp_path: Path) -> None:
        env = {"COVERALLS_SERVICE_NAME": "github", "COVERALLS_SERVICE_JOB_ID": "42"}

        config = load_config(tmp_path, env=env)

        assert config.service_name == "github"
        assert config.service_job_id == "42"

    def test_defaults_to_process_environment(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, {"COVERALLS_REPO_TOKEN": "os-token"}, clear=True):
            config = load_config(tmp_path)

        assert config.repo_token == "os-token"

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text("", encoding="utf-8")

        config = load_config(tmp_path, env={})

        assert config.endpoint == DEFAULT_ENDPOINT

    def test_non_mapping_raises(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(tmp_path, env={})

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text("repo_token: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Failed to read"):
            load_config(tmp_path, env={})

    def test_non_numeric_timeout_raises(self, tmp_path: Path) -> None:
        _write_coveralls_yml(tmp_path, {"repo_token": "abc", "timeout": "soon"})

        with pytest.raises(ConfigError, match="timeout must be a number"):
            load_config(tmp_path, env={})

    def test_token_is_not_in_repr(self, tmp_path: Path) -> None:
        _write_coveralls_yml(tmp_path, {"repo_token": "very-secret"})

        config = load_config(tmp_path, env={})

        assert "very-secret" not in repr(config)


# ── validate_config ──────────────────────────────────────────────────


class TestValidateConfig:
    def test_token_config_is_valid(self) -> None:
        assert validate_config(CoverallsConfig(repo_token="abc")) == []

    def test_service_config_is_valid(self) -> None:
        config = CoverallsConfig(service_name="travis-ci", service_job_id="1")
        assert validate_config(config) == []

    def test_both_identities(self) -> None:
        config = CoverallsConfig(repo_token="abc", service_name="github", service_job_id="1")
        errors = validate_config(config)
        assert len(errors) == 1
        assert "mutually exclusive" in errors[0]

    def test_no_identity(self) -> None:
        errors = validate_config(CoverallsConfig())
        assert any("is required" in e for e in errors)

    def test_half_service_identity(self) -> None:
        errors = validate_config(CoverallsConfig(service_name="github"))
        assert any("must be set together" in e for e in errors)

    @pytest.mark.parametrize(
        "endpoint", ["http://coveralls.io/api/v1/jobs", "https://", "coveralls.io/api/v1/jobs"]
    )
    def test_non_https_endpoint(self, endpoint: str) -> None:
        config = CoverallsConfig(repo_token="abc", endpoint=endpoint)
        errors = validate_config(config)
        assert any("endpoint must be an https:// URL" in e for e in errors)

    def test_non_positive_timeout(self) -> None:
        errors = validate_config(CoverallsConfig(repo_token="abc", timeout=0))
        assert any("timeout must be positive" in e for e in errors)


# ── CoverallsConfig factories ────────────────────────────────────────


class TestCoverallsConfigFactories:
    def test_identity_prefers_token(self) -> None:
        assert CoverallsConfig(repo_token="abc").identity() == RepoToken("abc")

    def test_identity_from_service(self) -> None:
        config = CoverallsConfig(service_name="circleci", service_job_id="310")
        assert config.identity() == ServiceIdentity("circleci", "310")

    def test_identity_raises_without_any_mode(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            CoverallsConfig().identity()
        assert exc_info.value.kind is ValidationErrorKind.INVALID_IDENTITY

    def test_create_builder_applies_job_flags(self) -> None:
        config = CoverallsConfig(repo_token="abc", parallel=True, flag_name="integration")

        builder = config.create_builder()

        assert builder.identity == RepoToken("abc")
        assert builder.parallel is True
        assert builder.flag_name == "integration"

    def test_create_client_uses_endpoint_and_timeout(self) -> None:
        config = CoverallsConfig(
            repo_token="abc",
            endpoint="https://coveralls.example.test/api/v1/jobs",
            timeout=4.0,
        )

        with config.create_client() as client:
            assert isinstance(client, CoverallsClient)
            assert client.endpoint == "https://coveralls.example.test/api/v1/jobs"
            assert client.timeout == 4.0
