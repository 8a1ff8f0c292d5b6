"""
Pytest tests for await_state.py (run status / conclusion resolution).
"""

import pytest

from await_state import resolve_conclusion, resolve_status
from await_types import Failure, FailureReason, RunConclusion, RunStatus, Success


# ============================================================================
# resolve_status()
# ============================================================================

@pytest.mark.parametrize("attempt_no", [0, 1, 7, 1000])
def test_resolve_status_completed_is_success(attempt_no):
    result = resolve_status("completed", attempt_no)
    assert result == Success(RunStatus.COMPLETED)
    assert result.success


@pytest.mark.parametrize("status", ["queued", "in_progress", RunStatus.QUEUED, RunStatus.IN_PROGRESS])
def test_resolve_status_pending(status):
    result = resolve_status(status, 1)
    assert isinstance(result, Failure)
    assert result.reason is FailureReason.PENDING
    assert result.value == str(RunStatus(status).value)
    assert not result.success


@pytest.mark.parametrize("status", ["requested", "waiting", "pending", None, "anything-else", ""])
def test_resolve_status_unsupported(status):
    result = resolve_status(status, 3)
    assert isinstance(result, Failure)
    assert result.reason is FailureReason.UNSUPPORTED
    assert result.value == str(status)


# ============================================================================
# resolve_conclusion()
# ============================================================================

def test_resolve_conclusion_success():
    assert resolve_conclusion("success") == Success(RunConclusion.SUCCESS)


@pytest.mark.parametrize("conclusion", ["action_required", "cancelled", "failure", "neutral", "skipped"])
def test_resolve_conclusion_inconclusive(conclusion):
    result = resolve_conclusion(conclusion)
    assert result == Failure(FailureReason.INCONCLUSIVE, conclusion)


def test_resolve_conclusion_timed_out_is_timeout():
    assert resolve_conclusion("timed_out") == Failure(FailureReason.TIMEOUT, "timed_out")


@pytest.mark.parametrize("conclusion", [None, "unknown-string", "stale", "startup_failure"])
def test_resolve_conclusion_unsupported(conclusion):
    result = resolve_conclusion(conclusion)
    assert isinstance(result, Failure)
    assert result.reason is FailureReason.UNSUPPORTED
    assert result.value == str(conclusion)


def test_results_are_immutable():
    result = resolve_conclusion("failure")
    with pytest.raises(AttributeError):
        result.reason = FailureReason.PENDING  # type: ignore[misc]
