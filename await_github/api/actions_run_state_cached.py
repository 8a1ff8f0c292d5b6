# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Conditionally cached GitHub Actions workflow run state (indexed by run_id).

Fetched via:
  GET /repos/{owner}/{repo}/actions/runs/{run_id}

Example API Response (trimmed):
  {
    "id": 21507141526,
    "run_attempt": 1,
    "status": "in_progress",
    "conclusion": null,
    "html_url": "https://github.com/owner/repo/actions/runs/21507141526"
  }

Only status/conclusion are used. They are re-read on every poll tick and never cached as
domain objects; only the raw response is kept for ETag replay.

Caching strategy:
  - Fingerprint: <owner>/<repo>:run_state:<run_id>
  - Params: {owner, repo, run_id}
  - 304 -> last 200 body replayed (free w.r.t. rate limit)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict

from await_retry import log_diagnostic
from await_types import ApiResponse, UnexpectedResponseError, WorkflowRunState

from .base_cached import ConditionalResourceBase

if TYPE_CHECKING:
    from await_session import AwaitSession

_logger = logging.getLogger(__name__)

CACHE_NAME = "run_state"
API_CALL_FORMAT = "REST GET /repos/{owner}/{repo}/actions/runs/{run_id} (etag)"
FINGERPRINT_FORMAT = "{owner}/{repo}:run_state:{run_id}"


class ActionsRunStateCached(ConditionalResourceBase[WorkflowRunState]):
    """Cached resource for the status/conclusion of one workflow run."""

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
        }

    def transport(self, params: Dict[str, Any], headers: Dict[str, str]) -> ApiResponse:
        return self.session.api.get_workflow_run(
            params["owner"], params["repo"], params["run_id"], headers=headers
        )

    def value_from_body(self, body: Any) -> WorkflowRunState:
        if not isinstance(body, dict):
            raise UnexpectedResponseError(f"{CACHE_NAME}: expected a JSON object, got {type(body).__name__}")
        return WorkflowRunState(status=body.get("status"), conclusion=body.get("conclusion"))


def get_run_state_cached(session: "AwaitSession", run_id: int) -> WorkflowRunState:
    """Fetch the current status/conclusion of run_id for the session's repository.

    Raises:
        UnexpectedStatusError / UnexpectedResponseError: API contract violations
        requests.RequestException: transport errors (transient; callers retry)
    """
    state = ActionsRunStateCached(session).get(owner=session.owner, repo=session.repo, run_id=run_id)
    log_diagnostic(
        _logger,
        logging.DEBUG,
        "Fetched Run:\n  Repository: %s/%s\n  Run ID: %s\n  Status: %s\n  Conclusion: %s",
        session.owner,
        session.repo,
        run_id,
        state.status,
        state.conclusion,
    )
    return state
