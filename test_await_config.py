"""
Pytest tests for await_config.py (input parsing and validation).
"""

import pytest

from await_config import (
    ACTIVE_JOB_TIMEOUT_MS,
    POLL_INTERVAL_MS,
    RUN_TIMEOUT_SECONDS,
    ConfigError,
    build_config,
    get_duration_from_value,
    get_number_from_value,
    input_from_env,
)


def _build(**overrides):
    kwargs = dict(token="secret", owner="owner", repo="repository", run_id="123456")
    kwargs.update(overrides)
    return build_config(**kwargs)


def test_defaults_applied():
    config = _build()

    assert config.run_id == 123456
    assert config.run_timeout_seconds == RUN_TIMEOUT_SECONDS == 300
    assert config.run_timeout_ms == 300_000
    assert config.poll_interval_ms == POLL_INTERVAL_MS == 5000
    assert config.active_job_timeout_ms == ACTIVE_JOB_TIMEOUT_MS
    assert config.repository == "owner/repository"


def test_explicit_values():
    config = _build(run_timeout_seconds="60", poll_interval_ms="2500", active_job_timeout_ms="3000")

    assert config.run_timeout_ms == 60_000
    assert config.poll_interval_ms == 2500
    assert config.active_job_timeout_ms == 3000


@pytest.mark.parametrize("raw", ["", "0", "  ", None])
def test_empty_or_zero_uses_default(raw):
    assert _build(poll_interval_ms=raw).poll_interval_ms == POLL_INTERVAL_MS


@pytest.mark.parametrize("raw", ["abc", "5s", "1.5"])
def test_non_numeric_is_rejected(raw):
    with pytest.raises(ConfigError, match="Unable to parse value"):
        _build(run_timeout_seconds=raw)


def test_negative_duration_is_rejected():
    with pytest.raises(ConfigError):
        get_duration_from_value("-5", 300, "run_timeout_seconds")


def test_get_number_from_value():
    assert get_number_from_value(" 42 ") == 42
    assert get_number_from_value("") is None


@pytest.mark.parametrize("raw", ["", None])
def test_missing_run_id(raw):
    with pytest.raises(ConfigError, match="Run ID must be provided"):
        _build(run_id=raw)


@pytest.mark.parametrize("raw", ["0", "-3"])
def test_non_positive_run_id(raw):
    with pytest.raises(ConfigError):
        _build(run_id=raw)


def test_missing_owner_and_repo():
    with pytest.raises(ConfigError, match="Owner must be provided"):
        _build(owner="")
    with pytest.raises(ConfigError, match="Repo must be provided"):
        _build(repo=None)


def test_repository_shorthand():
    config = _build(owner="", repo="", repository="octo/hello")

    assert (config.owner, config.repo) == ("octo", "hello")


def test_explicit_owner_wins_over_repository():
    config = _build(owner="mine", repo="", repository="octo/hello")

    assert (config.owner, config.repo) == ("mine", "hello")


@pytest.mark.parametrize("raw", ["octo", "octo/", "a/b/c"])
def test_malformed_repository(raw):
    with pytest.raises(ConfigError, match="owner/repo"):
        _build(owner="", repo="", repository=raw)


def test_blank_token_becomes_none():
    assert _build(token="  ").token is None


def test_input_from_env():
    env = {"INPUT_RUN_ID": " 99 ", "INPUT_POLL_INTERVAL_MS": "100"}

    assert input_from_env("run_id", env) == "99"
    assert input_from_env("poll_interval_ms", env) == "100"
    assert input_from_env("owner", env) == ""


def test_input_from_process_env(monkeypatch):
    monkeypatch.setenv("INPUT_OWNER", "octo")

    assert input_from_env("owner") == "octo"
