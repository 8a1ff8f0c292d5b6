#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Retry-with-deadline executor.

Repeats an operation until it returns or a wall-clock deadline passes, absorbing transient
errors (network hiccups, 5xx surfaced as exceptions by the transport, ...). The outcome is
a Result, never the raw exception:

    result = retry_on_error(lambda: fetch(), 400, "fetch_workflow_run_state")
    if not result.success:
        ...  # result.reason == FailureReason.TIMEOUT

Contract violations (UnexpectedResponseError) are not transient and propagate immediately.
Attempts are strictly sequential; the sleep between attempts is the only suspension point.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from await_types import Failure, FailureReason, Result, Success, UnexpectedResponseError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BACKOFF_MS = 1000


def log_diagnostic(logger: logging.Logger, level: int, msg: str, *args: object) -> None:
    """Log without letting a broken handler or formatter escape into a polling loop."""
    try:
        logger.log(level, msg, *args)
    except Exception:  # a diagnostic must never stop the caller
        pass


def retry_on_error(
    operation: Callable[[], T],
    timeout_ms: float,
    label: Optional[str] = None,
    *,
    backoff_ms: float = DEFAULT_BACKOFF_MS,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    reraise: Tuple[Type[BaseException], ...] = (UnexpectedResponseError,),
) -> Result[T]:
    """Call operation() until it succeeds or timeout_ms elapses.

    Args:
        operation: zero-arg callable; its return value becomes Success.value
        timeout_ms: deadline measured from the first attempt
        label: name used in warnings (falls back to the callable's __name__, then "anonymous")
        backoff_ms: fixed wait between attempts
        clock: monotonic clock in seconds
        sleep: sleep function taking seconds
        reraise: exception types that are never retried

    Returns:
        Success(value), or Failure(TIMEOUT) once the deadline is crossed.
    """
    name = label or getattr(operation, "__name__", None) or "anonymous"
    if name == "<lambda>":
        name = "anonymous"
    start = clock()

    def _elapsed_ms() -> float:
        return (clock() - start) * 1000.0

    while True:
        try:
            value = operation()
        except reraise:
            raise
        except Exception as e:
            if _elapsed_ms() >= float(timeout_ms):
                break
            log_diagnostic(
                _logger,
                logging.WARNING,
                "retry_on_error: An unexpected error has occurred:\n  name: %s\n  error: %s",
                name,
                e,
            )
            sleep(float(backoff_ms) / 1000.0)
            if _elapsed_ms() >= float(timeout_ms):
                break
            continue
        return Success(value)

    log_diagnostic(_logger, logging.DEBUG, "retry_on_error: %s timed out after %.0fms", name, _elapsed_ms())
    return Failure(FailureReason.TIMEOUT)
