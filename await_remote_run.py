#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Await the completion of a GitHub Actions workflow run and report a verdict.

Flow:
  1. locate_active_job_url()  - once, short and best-effort: a URL a human can follow
  2. await_completion()       - poll run status until completed / unsupported / deadline
  3. report_failure_details() - on failure, log failed jobs and their non-success steps

Exit codes: 0 = run concluded with success, 1 = any failure, 2 = bad configuration.

Usage:
    await_remote_run.py --repository owner/repo --run-id 123456 [--run-timeout-seconds 300]
    # or as a GitHub Action step: inputs arrive as INPUT_TOKEN, INPUT_OWNER, INPUT_RUN_ID, ...
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional, Sequence

import requests

from await_config import ConfigError, build_config, input_from_env
from await_github.api.actions_jobs_by_runid_cached import get_run_failed_jobs, get_run_jobs_cached
from await_github.api.actions_run_state_cached import get_run_state_cached
from await_retry import log_diagnostic, retry_on_error
from await_session import AwaitSession
from await_state import resolve_conclusion, resolve_status
from await_types import (
    Failure,
    FailureReason,
    JobSummary,
    Result,
    RunOutcome,
    RunStatus,
    Success,
    UnexpectedResponseError,
    assert_never,
)

_logger = logging.getLogger(__name__)

STATE_FETCH_TIMEOUT_MS = 400
ACTIVE_JOB_POLL_INTERVAL_MS = 200
URL_UNAVAILABLE = "URL unavailable"


def _diag(level: int, msg: str, *args: object) -> None:
    """Best-effort log line for the polling loops; a broken diagnostic must never stop polling."""
    log_diagnostic(_logger, level, msg, *args)


# =============================================================================
# Active job locator
# =============================================================================


def locate_active_job_url(
    session: AwaitSession,
    run_id: int,
    timeout_ms: float,
    interval_ms: float = ACTIVE_JOB_POLL_INTERVAL_MS,
) -> Result[str]:
    """Find a job of run_id that is in_progress or completed and return its URL.

    Returns Success(url) (or Success("URL unavailable") when the API gave no URL),
    Failure(TIMEOUT) when no such job shows up in time.
    """
    start = session.clock()
    while session.elapsed_ms(start) < float(timeout_ms):
        try:
            jobs = get_run_jobs_cached(session, run_id)
        except requests.RequestException as e:
            _diag(logging.WARNING, "locate_active_job_url: failed to list jobs for run %s: %s", run_id, e)
            jobs = []

        active = [job for job in jobs if job.status in (RunStatus.IN_PROGRESS.value, RunStatus.COMPLETED.value)]
        _diag(
            logging.DEBUG,
            "Fetched Jobs for Run:\n  Repository: %s/%s\n  Run ID: %s\n  Jobs: [%s]",
            session.owner,
            session.repo,
            run_id,
            ", ".join(f"{job.name} ({job.status})" for job in active),
        )
        if active:
            return Success(active[0].url or URL_UNAVAILABLE)

        _diag(logging.DEBUG, "No 'in_progress' or 'completed' Jobs found for Workflow Run %s, retrying...", run_id)
        session.sleep_ms(interval_ms)

    _diag(logging.DEBUG, "Timed out while trying to fetch URL for Workflow Run %s", run_id)
    return Failure(FailureReason.TIMEOUT)


# =============================================================================
# Poll loop
# =============================================================================


def await_completion(
    session: AwaitSession,
    run_id: int,
    poll_interval_ms: float,
    run_timeout_ms: float,
    start_time: float,
) -> Result[RunOutcome]:
    """Poll run_id until it completes, reports an unsupported status, or the deadline passes.

    Args:
        start_time: session.clock() value the overall deadline is measured from

    Returns:
        Success(RunOutcome) when the run concluded with success, otherwise the typed Failure
        from the conclusion/status resolution, or Failure(TIMEOUT) at the deadline.
    """
    attempt_no = 0
    while session.elapsed_ms(start_time) < float(run_timeout_ms):
        attempt_no += 1
        _diag(
            logging.DEBUG,
            "Polling Workflow Run %s, attempt %d (%.0fms of %.0fms elapsed)",
            run_id,
            attempt_no,
            session.elapsed_ms(start_time),
            run_timeout_ms,
        )

        fetched = retry_on_error(
            lambda: get_run_state_cached(session, run_id),
            STATE_FETCH_TIMEOUT_MS,
            "fetch_workflow_run_state",
            clock=session.clock,
            sleep=session.sleep,
        )
        if isinstance(fetched, Success):
            state = fetched.value
            status_result = resolve_status(state.status, attempt_no)
            if isinstance(status_result, Success):
                _diag(logging.DEBUG, "Run has completed")
                conclusion_result = resolve_conclusion(state.conclusion)
                if isinstance(conclusion_result, Success):
                    return Success(RunOutcome(status=status_result.value, conclusion=conclusion_result.value))
                if conclusion_result.reason is FailureReason.UNSUPPORTED:
                    _diag(logging.ERROR, "Run has failed with unsupported conclusion: %s", conclusion_result.value)
                    _diag(logging.INFO, "Please open an issue with this conclusion value")
                else:
                    _diag(logging.ERROR, "Run has failed with conclusion: %s", conclusion_result.value)
                return conclusion_result

            if status_result.reason is FailureReason.PENDING:
                if status_result.value == RunStatus.QUEUED.value:
                    _diag(logging.DEBUG, "Run is queued to begin, attempt %d...", attempt_no)
                else:
                    _diag(logging.DEBUG, "Run is in progress, attempt %d...", attempt_no)
            elif status_result.reason is FailureReason.UNSUPPORTED:
                _diag(logging.ERROR, "Run has returned an unsupported status: %s", status_result.value)
                return status_result
            else:
                raise AssertionError(f"Unexpected status resolution: {status_result!r}")
        else:
            _diag(logging.DEBUG, "Run has not yet been identified, attempt %d...", attempt_no)

        session.sleep_ms(poll_interval_ms)

    return Failure(FailureReason.TIMEOUT)


# =============================================================================
# Failure reporter
# =============================================================================


def format_failed_job(job: JobSummary) -> str:
    """Format one failed job, listing only the steps that did not succeed."""
    failed_steps = "\n".join(
        f"    {step.number}: {step.name}\n"
        f"      Status: {step.status}\n"
        f"      Conclusion: {step.conclusion}"
        for step in job.steps
        if step.conclusion != "success"
    )
    return (
        f"Job {job.name}:\n"
        f"  ID: {job.id}\n"
        f"  Status: {job.status}\n"
        f"  Conclusion: {job.conclusion}\n"
        f"  URL: {job.url}\n"
        f"  Steps (non-success):\n"
        f"{failed_steps}"
    )


def report_failure_details(session: AwaitSession, run_id: int) -> List[JobSummary]:
    """Log failed jobs of run_id with their non-success steps; return the failed jobs."""
    failed_jobs = get_run_failed_jobs(session, run_id)
    if not failed_jobs:
        _logger.warning("Failed to find failed Jobs for Workflow Run %s", run_id)
        return []
    for job in failed_jobs:
        _logger.error(format_failed_job(job))
    return failed_jobs


def failure_message(result: Failure, elapsed_ms: float) -> str:
    reason = result.reason
    if reason is FailureReason.TIMEOUT:
        if result.value:
            return f"Run has timed out ({result.value})"
        return f"Timeout exceeded while attempting to await run conclusion ({elapsed_ms:.0f}ms)"
    elif reason is FailureReason.INCONCLUSIVE:
        return f"Run was inconclusive ({result.value})"
    elif reason is FailureReason.UNSUPPORTED:
        return f"Unsupported value was returned ({result.value})"
    elif reason is FailureReason.PENDING:
        return f"Run is still pending ({result.value})"
    else:
        assert_never(reason)


def handle_action_success(run_id: int, outcome: RunOutcome) -> None:
    _logger.info(
        "Run Completed:\n  Run ID: %s\n  Status: %s\n  Conclusion: %s",
        run_id,
        outcome.status.value,
        outcome.conclusion.value,
    )


def report_failure_details_best_effort(session: AwaitSession, run_id: int) -> None:
    """report_failure_details() that only warns when the jobs query itself fails."""
    try:
        report_failure_details(session, run_id)
    except (requests.RequestException, UnexpectedResponseError) as e:
        _logger.warning("Unable to fetch failed job details for Workflow Run %s: %s", run_id, e)


def handle_action_fail(session: AwaitSession, failure_msg: str, run_id: int) -> None:
    report_failure_details_best_effort(session, run_id)
    _logger.error("Failed: %s", failure_msg)


# =============================================================================
# CLI
# =============================================================================


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Await the completion of a GitHub Actions workflow run",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Every option defaults to the matching GitHub Actions input (INPUT_<NAME> env var).",
    )
    parser.add_argument("--token", default=input_from_env("token"),
                        help="GitHub token (default: INPUT_TOKEN, ~/.config/github-token, gh CLI config)")
    parser.add_argument("--repository", default="",
                        help="owner/repo shorthand for --owner/--repo")
    parser.add_argument("--owner", default=input_from_env("owner"), help="Repository owner")
    parser.add_argument("--repo", default=input_from_env("repo"), help="Repository name")
    parser.add_argument("--run-id", default=input_from_env("run_id"), help="Workflow run ID to await")
    parser.add_argument("--run-timeout-seconds", default=input_from_env("run_timeout_seconds"),
                        help="Give up after this many seconds (default: 300)")
    parser.add_argument("--poll-interval-ms", default=input_from_env("poll_interval_ms"),
                        help="Delay between status polls in milliseconds (default: 5000)")
    parser.add_argument("--active-job-timeout-ms", default=input_from_env("active_job_timeout_ms"),
                        help="Time spent looking for an active job URL (default: 1000)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        default=os.environ.get("RUNNER_DEBUG") == "1",
                        help="Enable debug logging (also enabled by RUNNER_DEBUG=1)")
    return parser.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def run(session: AwaitSession) -> int:
    """Run the full await flow for session.config.run_id; return the process exit code."""
    config = session.config
    start = session.clock()

    url_result = locate_active_job_url(session, config.run_id, config.active_job_timeout_ms)
    url = url_result.value if isinstance(url_result, Success) else URL_UNAVAILABLE
    _logger.info(
        "Awaiting completion of Workflow Run %s...\n  Repository: %s\n  ID: %s\n  URL: %s",
        config.run_id,
        config.repository,
        config.run_id,
        url,
    )

    result = await_completion(
        session,
        config.run_id,
        poll_interval_ms=config.poll_interval_ms,
        run_timeout_ms=config.run_timeout_ms,
        start_time=start,
    )
    if isinstance(result, Success):
        handle_action_success(config.run_id, result.value)
        return 0

    handle_action_fail(session, failure_message(result, session.elapsed_ms(start)), config.run_id)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = build_config(
            token=args.token,
            owner=args.owner,
            repo=args.repo,
            repository=args.repository,
            run_id=args.run_id,
            run_timeout_seconds=args.run_timeout_seconds,
            poll_interval_ms=args.poll_interval_ms,
            active_job_timeout_ms=args.active_job_timeout_ms,
        )
        session = AwaitSession.create(config)
    except ConfigError as e:
        _logger.error("Failed: Invalid configuration: %s", e)
        return 2

    try:
        return run(session)
    except Exception as e:
        _logger.error("Failed: An unhandled error has occurred: %s", e)
        _logger.debug("Traceback:", exc_info=True)
        report_failure_details_best_effort(session, config.run_id)
        return 1
    finally:
        _logger.debug(session.api.stats.summary_text())
        rate = session.api.get_core_rate_limit_info()
        if rate:
            _logger.debug("GitHub core rate limit: %s/%s remaining", rate["remaining"], rate["limit"])


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
