# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Conditionally cached GitHub Actions workflow run jobs (indexed by run_id).

Fetched via:
  GET /repos/{owner}/{repo}/actions/runs/{run_id}/jobs?filter=latest

Example API Response:
  {
    "total_count": 1,
    "jobs": [
      {
        "id": 12345678,
        "status": "in_progress",
        "conclusion": null,
        "name": "build",
        "html_url": "https://github.com/owner/repo/actions/runs/98765432/job/12345678",
        "steps": [
          {"name": "Checkout", "status": "completed", "conclusion": "success", "number": 1}
        ]
      }
    ]
  }

Caching strategy:
  - Fingerprint: <owner>/<repo>:run_jobs:<run_id>
  - Params: {owner, repo, run_id, filter}
  - Distinct from the run_state fingerprint, so both can share one ConditionalCache.

Also provides the uncached failed-jobs query used for failure diagnostics (a fresh read
is wanted there, not whatever the active-job search saw minutes earlier).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List

from await_types import ApiResponse, JobSummary, UnexpectedStatusError, jobs_from_body

from .base_cached import ConditionalResourceBase

if TYPE_CHECKING:
    from await_session import AwaitSession

_logger = logging.getLogger(__name__)

CACHE_NAME = "run_jobs"
API_CALL_FORMAT = "REST GET /repos/{owner}/{repo}/actions/runs/{run_id}/jobs?filter={filter} (etag)"
FINGERPRINT_FORMAT = "{owner}/{repo}:run_jobs:{run_id}"
JOBS_FILTER = "latest"


class ActionsJobsByRunIdCached(ConditionalResourceBase[List[JobSummary]]):
    """Cached resource for the job list of one workflow run."""

    @property
    def cache_name(self) -> str:
        return CACHE_NAME

    def api_call_format(self) -> str:
        return API_CALL_FORMAT

    def fingerprint(self, **kwargs: Any) -> str:
        return FINGERPRINT_FORMAT.format(**self.request_params(**kwargs))

    def request_params(self, **kwargs: Any) -> Dict[str, Any]:
        return {
            "owner": str(kwargs["owner"]),
            "repo": str(kwargs["repo"]),
            "run_id": int(kwargs["run_id"]),
            "filter": str(kwargs.get("filter") or JOBS_FILTER),
        }

    def transport(self, params: Dict[str, Any], headers: Dict[str, str]) -> ApiResponse:
        return self.session.api.list_jobs_for_workflow_run(
            params["owner"],
            params["repo"],
            params["run_id"],
            headers=headers,
            filter=params["filter"],
        )

    def value_from_body(self, body: Any) -> List[JobSummary]:
        return jobs_from_body(body)


def get_run_jobs_cached(session: "AwaitSession", run_id: int) -> List[JobSummary]:
    """List the latest-attempt jobs of run_id through the session's ConditionalCache."""
    return ActionsJobsByRunIdCached(session).get(owner=session.owner, repo=session.repo, run_id=run_id)


def get_run_failed_jobs(session: "AwaitSession", run_id: int) -> List[JobSummary]:
    """List jobs of run_id whose conclusion is 'failure' (uncached, no retry).

    Raises:
        UnexpectedStatusError: for any status other than 200
    """
    resp = session.api.list_jobs_for_workflow_run(session.owner, session.repo, run_id, filter=JOBS_FILTER)
    if int(resp.status_code) != 200:
        raise UnexpectedStatusError("run_failed_jobs", resp.status_code)
    failed = [job for job in jobs_from_body(resp.body) if job.conclusion == "failure"]

    _logger.debug(
        "Fetched Jobs for Run:\n  Repository: %s/%s\n  Run ID: %s\n  Jobs: [%s]",
        session.owner,
        session.repo,
        run_id,
        ", ".join(job.name for job in failed),
    )
    for job in failed:
        _logger.debug(
            "  Job: %s\n    ID: %s\n    Status: %s\n    Conclusion: %s\n    Steps: [%s]",
            job.name,
            job.id,
            job.status,
            job.conclusion,
            ", ".join(f"{s.number}: {s.name}" for s in job.steps),
        )
    return failed
