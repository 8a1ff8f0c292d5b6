#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Configuration for await-remote-run.

Inputs arrive as raw strings, either from CLI flags or from the GitHub Actions
`INPUT_<NAME>` environment variables, and are validated here before any polling starts.

Numeric inputs:
  - empty / absent / 0  -> default (run_timeout_seconds=300, poll_interval_ms=5000)
  - not an integer      -> ConfigError
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

RUN_TIMEOUT_SECONDS = 5 * 60
POLL_INTERVAL_MS = 5000
ACTIVE_JOB_TIMEOUT_MS = 1000


class ConfigError(ValueError):
    """Invalid or missing configuration input."""


@dataclass(frozen=True)
class ActionConfig:
    """Validated configuration for one await session."""

    token: Optional[str]
    owner: str
    repo: str
    run_id: int
    run_timeout_seconds: int = RUN_TIMEOUT_SECONDS
    poll_interval_ms: int = POLL_INTERVAL_MS
    active_job_timeout_ms: int = ACTIVE_JOB_TIMEOUT_MS

    @property
    def run_timeout_ms(self) -> int:
        return int(self.run_timeout_seconds) * 1000

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"


def get_number_from_value(value: Optional[str]) -> Optional[int]:
    """Parse an integer input; None for empty input, ConfigError for garbage."""
    if value is None:
        return None
    txt = str(value).strip()
    if txt == "":
        return None
    try:
        return int(txt)
    except ValueError:
        raise ConfigError(f"Unable to parse value: {value}") from None


def get_duration_from_value(value: Optional[str], default: int, name: str) -> int:
    """Parse a duration input; empty or 0 means default, negative is rejected."""
    num = get_number_from_value(value)
    if not num:
        return default
    if num < 0:
        raise ConfigError(f"{name} must not be negative: {value}")
    return num


def get_run_id_from_value(value: Optional[str]) -> int:
    run_id = get_number_from_value(value)
    if run_id is None:
        raise ConfigError("Run ID must be provided.")
    if run_id <= 0:
        raise ConfigError(f"Run ID must be a positive integer: {value}")
    return run_id


def input_from_env(name: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Read a GitHub Actions input (`with: run_id: ...` -> INPUT_RUN_ID)."""
    env = os.environ if environ is None else environ
    key = "INPUT_" + name.replace(" ", "_").upper()
    return str(env.get(key, "") or "").strip()


def build_config(
    *,
    token: Optional[str],
    owner: Optional[str],
    repo: Optional[str],
    run_id: Optional[str],
    run_timeout_seconds: Optional[str] = None,
    poll_interval_ms: Optional[str] = None,
    active_job_timeout_ms: Optional[str] = None,
    repository: Optional[str] = None,
) -> ActionConfig:
    """Validate raw inputs and return an ActionConfig.

    `repository` ("owner/repo") fills in owner/repo when those are not given separately.

    Raises:
        ConfigError: missing owner/repo/run_id or a non-numeric numeric input
    """
    owner = (owner or "").strip()
    repo = (repo or "").strip()
    if repository and (not owner or not repo):
        parts = repository.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise ConfigError(f"Repository must be in owner/repo form: {repository}")
        owner = owner or parts[0]
        repo = repo or parts[1]
    if not owner:
        raise ConfigError("Owner must be provided.")
    if not repo:
        raise ConfigError("Repo must be provided.")

    return ActionConfig(
        token=(token or "").strip() or None,
        owner=owner,
        repo=repo,
        run_id=get_run_id_from_value(run_id),
        run_timeout_seconds=get_duration_from_value(run_timeout_seconds, RUN_TIMEOUT_SECONDS, "run_timeout_seconds"),
        poll_interval_ms=get_duration_from_value(poll_interval_ms, POLL_INTERVAL_MS, "poll_interval_ms"),
        active_job_timeout_ms=get_duration_from_value(
            active_job_timeout_ms, ACTIVE_JOB_TIMEOUT_MS, "active_job_timeout_ms"
        ),
    )
