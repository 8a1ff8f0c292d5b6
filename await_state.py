#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Run state resolution: map one observed (status, conclusion) pair to a Result.

Pure functions, no I/O. The poll loop owns logging of the outcomes.

Status:
  completed               -> Success(completed)             stop polling, check conclusion
  queued / in_progress    -> Failure(pending, status)       keep waiting
  anything else (or None) -> Failure(unsupported, status)   stop: we can't interpret it

Conclusion (only looked at once status == completed):
  success                                                -> Success(success)
  action_required/cancelled/failure/neutral/skipped      -> Failure(inconclusive, conclusion)
  timed_out                                              -> Failure(timeout, conclusion)
  anything else (stale, startup_failure, None, unknown)  -> Failure(unsupported, conclusion)
"""

from __future__ import annotations

from typing import Any

from await_types import (
    Failure,
    FailureReason,
    Result,
    RunConclusion,
    RunStatus,
    Success,
    assert_never,
)


def resolve_status(status: Any, attempt_no: int) -> Result[RunStatus]:
    """Resolve a raw run status.

    attempt_no is informational only (any value >= 0 is accepted).
    """
    parsed = RunStatus.parse(status)
    if parsed is None:
        return Failure(FailureReason.UNSUPPORTED, str(status))

    if parsed is RunStatus.COMPLETED:
        return Success(parsed)
    elif parsed is RunStatus.QUEUED or parsed is RunStatus.IN_PROGRESS:
        return Failure(FailureReason.PENDING, parsed.value)
    elif parsed in (RunStatus.REQUESTED, RunStatus.WAITING, RunStatus.PENDING):
        # Known to the API, but we don't know how to wait on these.
        return Failure(FailureReason.UNSUPPORTED, parsed.value)
    else:
        assert_never(parsed)


def resolve_conclusion(conclusion: Any) -> Result[RunConclusion]:
    parsed = RunConclusion.parse(conclusion)
    if parsed is None:
        return Failure(FailureReason.UNSUPPORTED, str(conclusion))

    if parsed is RunConclusion.SUCCESS:
        return Success(parsed)
    elif parsed in (
        RunConclusion.ACTION_REQUIRED,
        RunConclusion.CANCELLED,
        RunConclusion.FAILURE,
        RunConclusion.NEUTRAL,
        RunConclusion.SKIPPED,
    ):
        return Failure(FailureReason.INCONCLUSIVE, parsed.value)
    elif parsed is RunConclusion.TIMED_OUT:
        return Failure(FailureReason.TIMEOUT, parsed.value)
    elif parsed in (RunConclusion.STALE, RunConclusion.STARTUP_FAILURE):
        return Failure(FailureReason.UNSUPPORTED, parsed.value)
    else:
        assert_never(parsed)
