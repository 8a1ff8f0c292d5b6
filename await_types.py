#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Common shared enums/types used by every await-remote-run module:
- run status / conclusion enums (closed sets, as returned by the Actions REST API)
- the Result algebra (Success / Failure) used instead of exceptions for expected outcomes
- job/step summaries and the normalized transport response

This module MUST NOT import any other await_* module to avoid cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Mapping, NoReturn, Optional, Tuple, TypeVar, Union

T = TypeVar("T")


def assert_never(value: NoReturn) -> NoReturn:
    """Fail loudly on an enum member that a dispatch chain forgot to handle."""
    raise AssertionError(f"Unhandled value: {value!r}")


class RunStatus(str, Enum):
    """Workflow run status values.

    The status/conclusion sets are hard to find a single source of truth for; these match
    the check-suite values documented for the REST API.
    """

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUESTED = "requested"
    WAITING = "waiting"
    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: Any) -> Optional["RunStatus"]:
        """Return the member for a raw API value, or None if unrecognized (including None)."""
        try:
            return cls(raw)
        except ValueError:
            return None


class RunConclusion(str, Enum):
    """Workflow run conclusion values (only meaningful once status == completed)."""

    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    STALE = "stale"
    STARTUP_FAILURE = "startup_failure"
    ACTION_REQUIRED = "action_required"

    @classmethod
    def parse(cls, raw: Any) -> Optional["RunConclusion"]:
        try:
            return cls(raw)
        except ValueError:
            return None


class FailureReason(str, Enum):
    """Closed set of reasons carried by a Failure result."""

    TIMEOUT = "timeout"
    INCONCLUSIVE = "inconclusive"
    UNSUPPORTED = "unsupported"
    PENDING = "pending"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Expected, typed failure outcome.

    `value` is only set for `unsupported` (the offending raw value, stringified) and for
    pass-through information (the pending status, the inconclusive/timed_out conclusion).
    """

    reason: FailureReason
    value: Optional[str] = None

    @property
    def success(self) -> bool:
        return False


Result = Union[Success[T], Failure]


@dataclass(frozen=True)
class WorkflowRunState:
    """One observation of a run: raw API strings (either may be None)."""

    status: Optional[str]
    conclusion: Optional[str]


@dataclass(frozen=True)
class RunOutcome:
    """Terminal state of a run that completed successfully."""

    status: RunStatus
    conclusion: RunConclusion


@dataclass(frozen=True)
class StepSummary:
    name: str
    status: str
    conclusion: Optional[str]
    number: int

    @classmethod
    def from_api(cls, step: Mapping[str, Any]) -> "StepSummary":
        return cls(
            name=str(step.get("name", "")),
            status=str(step.get("status", "")),
            conclusion=step.get("conclusion"),
            number=int(step.get("number", 0) or 0),
        )


@dataclass(frozen=True)
class JobSummary:
    """A job within a run.

    Built from one element of `GET /repos/{owner}/{repo}/actions/runs/{run_id}/jobs`:
      {"id": 12345678, "name": "build", "status": "completed", "conclusion": "failure",
       "html_url": "https://github.com/owner/repo/actions/runs/1/job/12345678",
       "steps": [{"name": "Checkout", "status": "completed", "conclusion": "success", "number": 1}]}
    """

    id: int
    name: str
    status: str
    conclusion: Optional[str]
    url: Optional[str]
    steps: Tuple[StepSummary, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, job: Mapping[str, Any]) -> "JobSummary":
        steps = job.get("steps") or []
        return cls(
            id=int(job.get("id", 0) or 0),
            name=str(job.get("name", "")),
            status=str(job.get("status", "")),
            conclusion=job.get("conclusion"),
            url=job.get("html_url"),
            steps=tuple(StepSummary.from_api(s) for s in steps if isinstance(s, Mapping)),
        )


@dataclass(frozen=True)
class ApiResponse:
    """Normalized REST response. status_code is expected to be 200 or 304."""

    status_code: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup (works for plain dicts and requests' CaseInsensitiveDict)."""
        val = self.headers.get(name)
        if val is not None:
            return val
        name_lc = name.lower()
        for k, v in self.headers.items():
            if str(k).lower() == name_lc:
                return v
        return None


class UnexpectedResponseError(RuntimeError):
    """The API violated its response contract (malformed body, wrong status, ...)."""


class UnexpectedStatusError(UnexpectedResponseError):
    """A response status code other than 200/304 was received."""

    def __init__(self, label: str, status_code: int, expected: int = 200):
        self.label = label
        self.status_code = int(status_code)
        super().__init__(f"{label}: expected {expected} but received {status_code}")


def jobs_from_body(body: Any) -> List[JobSummary]:
    """Parse the `jobs` array of a list-jobs response body."""
    if not isinstance(body, dict):
        raise UnexpectedResponseError(f"list jobs: expected a JSON object, got {type(body).__name__}")
    jobs = body.get("jobs")
    if not isinstance(jobs, list):
        raise UnexpectedResponseError("list jobs: response has no 'jobs' array")
    return [JobSummary.from_api(j) for j in jobs if isinstance(j, dict)]

