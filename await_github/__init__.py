# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitHub REST transport for await-remote-run.

Only two endpoints are used:
  GET /repos/{owner}/{repo}/actions/runs/{run_id}        (run status/conclusion)
  GET /repos/{owner}/{repo}/actions/runs/{run_id}/jobs   (jobs + steps)

Both accept conditional headers (If-None-Match). A 304 Not Modified reply does NOT count
against the rate limit, which is what makes polling every few seconds affordable; the
caching itself lives in await_cache.ConditionalCache and the resources in await_github.api.

The client returns normalized ApiResponse objects and never interprets status codes:
callers decide what a non-200/304 means.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import requests
import yaml

from await_retry import log_diagnostic
from await_types import ApiResponse, UnexpectedResponseError

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_TIMEOUT_S = 10


@dataclass
class GitHubAPIStats:
    """Per-client REST call statistics (debug aid)."""

    rest_calls_total: int = 0
    rest_calls_by_label: Dict[str, int] = field(default_factory=dict)
    etag_304_total: int = 0
    rest_errors_total: int = 0
    rest_errors_by_status: Dict[int, int] = field(default_factory=dict)
    rest_time_total_s: float = 0.0

    def record(self, *, label: str, status_code: int, elapsed_s: float) -> None:
        self.rest_calls_total += 1
        self.rest_calls_by_label[label] = int(self.rest_calls_by_label.get(label, 0)) + 1
        self.rest_time_total_s += max(0.0, float(elapsed_s))
        if status_code == 304:
            # 304s are free (don't count against the rate limit)
            self.etag_304_total += 1
        elif not status_code or status_code >= 400:
            self.rest_errors_total += 1
            self.rest_errors_by_status[status_code] = int(self.rest_errors_by_status.get(status_code, 0)) + 1

    def summary_text(self) -> str:
        billable = self.rest_calls_total - self.etag_304_total
        return (
            f"REST calls: {self.rest_calls_total} (billable={billable}, 304={self.etag_304_total}, "
            f"errors={self.rest_errors_total}, time={self.rest_time_total_s:.2f}s)"
        )


class GitHubAPIClient:
    """GitHub API client for the Actions run/job endpoints.

    Features:
    - Token detection (explicit token > ~/.config/github-token > GitHub CLI config)
    - Conditional request headers passed through untouched
    - Rate limit info captured from response headers

    Example:
        client = GitHubAPIClient(token="...")
        resp = client.get_workflow_run("octo", "hello", 42)
        resp.status_code, resp.body["status"]
    """

    @staticmethod
    def get_github_token_from_file() -> Optional[str]:
        """Get a GitHub token from local config files (first match wins).

        - ~/.config/github-token   (single line token)
        - ~/.config/gh/hosts.yml   (GitHub CLI login; oauth_token)
        """
        try:
            token_file = Path.home() / ".config" / "github-token"
            if token_file.exists():
                tok = (token_file.read_text() or "").strip()
                if tok:
                    return tok
        except OSError:
            pass
        return GitHubAPIClient.get_github_token_from_cli()

    @staticmethod
    def get_github_token_from_cli() -> Optional[str]:
        """Read the oauth_token for github.com from ~/.config/gh/hosts.yml, if present."""
        try:
            gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
            if not gh_config_path.exists():
                return None
            with open(gh_config_path, "r") as f:
                config = yaml.safe_load(f)
            github_config = (config or {}).get("github.com") or {}
            if github_config.get("oauth_token"):
                return str(github_config["oauth_token"])
            for user_config in (github_config.get("users") or {}).values():
                if isinstance(user_config, dict) and user_config.get("oauth_token"):
                    return str(user_config["oauth_token"])
        except (OSError, yaml.YAMLError, AttributeError):
            pass
        return None

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        require_auth: bool = False,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            token: personal access / Actions token; discovered from local config if omitted
            timeout_s: per-request timeout (bounds how long an in-flight call can block)
            require_auth: raise if no token can be found
            session: optional requests.Session (tests, connection reuse)
        """
        self.token = token or self.get_github_token_from_file()
        if require_auth and not self.token:
            raise RuntimeError(
                "GitHub API authentication is required but no token was found. "
                "Pass --token, or login with gh so ~/.config/gh/hosts.yml exists."
            )
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"
        self.logger = logging.getLogger(self.__class__.__name__)
        self.stats = GitHubAPIStats()
        self._http = session or requests.Session()

        # Format: {"remaining": 1234, "limit": 5000, "reset_epoch": 1766947200, "seconds_until_reset": 42}
        self._cached_rate_limit_info: Optional[Dict[str, Any]] = None

    def _rest_get(
        self,
        url: str,
        *,
        label: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:
        """requests GET wrapper: merges conditional headers, records stats and rate limit info.

        Network errors (requests.RequestException) propagate to the caller.
        """
        req_headers = dict(self.headers)
        if headers:
            req_headers.update(headers)

        log_diagnostic(
            self.logger,
            logging.DEBUG,
            "GH REST GET [%s] %s params=%s conditional=%s",
            label,
            url,
            dict(params or {}),
            "If-None-Match" in req_headers,
        )
        t0 = time.monotonic()
        resp = self._http.get(url, headers=req_headers, params=dict(params or {}), timeout=self.timeout_s)
        dt = time.monotonic() - t0

        try:
            code = int(resp.status_code or 0)
        except (ValueError, TypeError):
            code = 0
        self.stats.record(label=label, status_code=code, elapsed_s=dt)
        log_diagnostic(
            self.logger,
            logging.DEBUG,
            "GH REST RESP [%s] status=%s remaining=%s",
            label,
            code,
            resp.headers.get("X-RateLimit-Remaining"),
        )
        self._capture_rate_limit_headers(resp)
        return resp

    def _capture_rate_limit_headers(self, resp: requests.Response) -> None:
        try:
            remaining_hdr = resp.headers.get("X-RateLimit-Remaining")
            limit_hdr = resp.headers.get("X-RateLimit-Limit")
            reset_hdr = resp.headers.get("X-RateLimit-Reset")
            if remaining_hdr is None or limit_hdr is None:
                return
            reset_epoch = int(reset_hdr) if reset_hdr is not None else None
            self._cached_rate_limit_info = {
                "remaining": int(remaining_hdr),
                "limit": int(limit_hdr),
                "reset_epoch": reset_epoch,
                "seconds_until_reset": (reset_epoch - int(time.time())) if reset_epoch is not None else None,
            }
        except (ValueError, TypeError, AttributeError):
            pass

    def get_core_rate_limit_info(self) -> Optional[Dict[str, Any]]:
        """Rate limit info from the most recent response headers (None before any call)."""
        if self._cached_rate_limit_info is None:
            return None
        return dict(self._cached_rate_limit_info)

    def _to_api_response(self, resp: requests.Response, *, label: str) -> ApiResponse:
        body: Any = None
        if int(resp.status_code) == 200:
            try:
                body = resp.json()
            except ValueError as e:
                raise UnexpectedResponseError(f"{label}: response body is not valid JSON: {e}") from e
        return ApiResponse(status_code=int(resp.status_code), body=body, headers=resp.headers)

    def get_workflow_run(
        self,
        owner: str,
        repo: str,
        run_id: int,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ApiResponse:
        """GET /repos/{owner}/{repo}/actions/runs/{run_id}"""
        label = "actions_run"
        url = f"{self.base_url}/repos/{owner}/{repo}/actions/runs/{run_id}"
        return self._to_api_response(self._rest_get(url, label=label, headers=headers), label=label)

    def list_jobs_for_workflow_run(
        self,
        owner: str,
        repo: str,
        run_id: int,
        *,
        headers: Optional[Mapping[str, str]] = None,
        filter: str = "latest",
        per_page: int = 100,
    ) -> ApiResponse:
        """GET /repos/{owner}/{repo}/actions/runs/{run_id}/jobs (latest attempt only by default)"""
        label = "actions_run_jobs"
        url = f"{self.base_url}/repos/{owner}/{repo}/actions/runs/{run_id}/jobs"
        params = {"filter": filter, "per_page": int(per_page)}
        return self._to_api_response(
            self._rest_get(url, label=label, params=params, headers=headers), label=label
        )
