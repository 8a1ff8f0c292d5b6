"""Shared pytest fixtures: a fake clock and a scripted fake GitHub transport.

The fake clock counts integer milliseconds so deadline comparisons are exact, and its
sleep() only advances time (no real waiting).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest

from await_cache import ConditionalCache
from await_config import ActionConfig
from await_github import GitHubAPIStats
from await_session import AwaitSession
from await_types import ApiResponse


class FakeClock:
    def __init__(self, start_ms: int = 0):
        self.now_ms = int(start_ms)
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now_ms / 1000.0

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now_ms += int(round(seconds * 1000))

    def advance_ms(self, ms: int) -> None:
        self.now_ms += int(ms)


def run_body(status: Optional[str], conclusion: Optional[str] = None) -> Dict[str, Any]:
    return {"id": 123456, "status": status, "conclusion": conclusion}


def ok(body: Any, etag: Optional[str] = None) -> ApiResponse:
    return ApiResponse(status_code=200, body=body, headers={"ETag": etag} if etag else {})


def not_modified() -> ApiResponse:
    return ApiResponse(status_code=304, body=None, headers={})


class FakeGitHubAPI:
    """Stands in for GitHubAPIClient.

    Each endpoint has a script: a list of ApiResponse / Exception items consumed in order;
    the last item repeats once the script is exhausted.
    """

    def __init__(self):
        self.run_script: List[Any] = []
        self.jobs_script: List[Any] = []
        self.calls: List[Tuple[str, Dict[str, Any], Dict[str, str]]] = []
        self.stats = GitHubAPIStats()

    @staticmethod
    def _next(script: List[Any]) -> ApiResponse:
        if not script:
            raise AssertionError("no scripted response")
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def get_workflow_run(self, owner, repo, run_id, *, headers=None) -> ApiResponse:
        self.calls.append(("run", {"owner": owner, "repo": repo, "run_id": run_id}, dict(headers or {})))
        return self._next(self.run_script)

    def list_jobs_for_workflow_run(self, owner, repo, run_id, *, headers=None, filter="latest") -> ApiResponse:
        self.calls.append(
            ("jobs", {"owner": owner, "repo": repo, "run_id": run_id, "filter": filter}, dict(headers or {}))
        )
        return self._next(self.jobs_script)

    def get_core_rate_limit_info(self):
        return None

    def calls_for(self, endpoint: str) -> List[Tuple[str, Dict[str, Any], Dict[str, str]]]:
        return [c for c in self.calls if c[0] == endpoint]


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_api() -> FakeGitHubAPI:
    return FakeGitHubAPI()


@pytest.fixture
def config() -> ActionConfig:
    return ActionConfig(
        token="secret",
        owner="owner",
        repo="repository",
        run_id=123456,
        run_timeout_seconds=300,
        poll_interval_ms=2500,
    )


@pytest.fixture
def session(config, fake_api, fake_clock) -> AwaitSession:
    return AwaitSession(
        config=config,
        api=fake_api,
        cache=ConditionalCache(),
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )
