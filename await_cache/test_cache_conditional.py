"""
Pytest tests for ConditionalCache (ETag replay keyed by request fingerprint).
"""

from await_cache import ConditionalCache
from await_types import ApiResponse

FP = "owner/repository:run_state:123456"
PARAMS = {"owner": "owner", "repo": "repository", "run_id": 123456}


class RecordingTransport:
    """Returns scripted responses and records the conditional headers it was called with."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, params, headers):
        self.calls.append((dict(params), dict(headers)))
        return self.responses.pop(0)


def _ok(body, etag=None, header_name="ETag"):
    return ApiResponse(status_code=200, body=body, headers={header_name: etag} if etag else {})


def _not_modified():
    return ApiResponse(status_code=304)


def test_first_fetch_is_unconditional_and_stored():
    cache = ConditionalCache()
    transport = RecordingTransport(_ok({"status": "queued"}, etag='W/"v1"'))

    resp = cache.fetch(FP, PARAMS, transport)

    assert resp.body == {"status": "queued"}
    assert transport.calls == [(PARAMS, {})]
    assert cache.lookup(FP, PARAMS).etag == 'W/"v1"'
    assert FP in cache
    assert len(cache) == 1


def test_second_identical_fetch_carries_validator_and_replays_on_304():
    cache = ConditionalCache()
    first = _ok({"status": "in_progress"}, etag='"abc"')
    transport = RecordingTransport(first, _not_modified())

    cache.fetch(FP, PARAMS, transport)
    resp = cache.fetch(FP, PARAMS, transport)

    assert transport.calls[1][1] == {"If-None-Match": '"abc"'}
    # verbatim replay of the last 200
    assert resp is first
    assert resp.status_code == 200
    assert cache.stats.not_modified == 1


def test_fresh_200_on_hit_replaces_validator_and_body():
    cache = ConditionalCache()
    transport = RecordingTransport(
        _ok({"status": "in_progress"}, etag='"v1"'),
        _ok({"status": "completed"}, etag='"v2"'),
        _not_modified(),
    )

    cache.fetch(FP, PARAMS, transport)
    second = cache.fetch(FP, PARAMS, transport)
    third = cache.fetch(FP, PARAMS, transport)

    assert second.body == {"status": "completed"}
    assert transport.calls[2][1] == {"If-None-Match": '"v2"'}
    assert third.body == {"status": "completed"}


def test_differing_param_is_a_miss():
    cache = ConditionalCache()
    other = dict(PARAMS, run_id=999)
    transport = RecordingTransport(
        _ok({"id": 123456}, etag='"run-123456"'),
        _ok({"id": 999}, etag='"run-999"'),
        _ok({"id": 123456}, etag='"run-123456-b"'),
    )

    cache.fetch(FP, PARAMS, transport)
    resp = cache.fetch(FP, other, transport)

    assert transport.calls[1] == (other, {})
    assert resp.body == {"id": 999}
    # the entry was overwritten, so the original params now miss too
    cache.fetch(FP, PARAMS, transport)
    assert transport.calls[2] == (PARAMS, {})
    assert cache.stats.miss == 3


def test_fingerprints_are_independent():
    cache = ConditionalCache()
    jobs_fp = "owner/repository:run_jobs:123456"
    transport = RecordingTransport(
        _ok({"status": "queued"}, etag='"state"'),
        _ok({"jobs": []}, etag='"jobs"'),
        _not_modified(),
    )

    cache.fetch(FP, PARAMS, transport)
    cache.fetch(jobs_fp, PARAMS, transport)
    resp = cache.fetch(FP, PARAMS, transport)

    assert transport.calls[1][1] == {}
    assert transport.calls[2][1] == {"If-None-Match": '"state"'}
    assert resp.body == {"status": "queued"}


def test_error_responses_are_not_stored():
    cache = ConditionalCache()
    transport = RecordingTransport(
        ApiResponse(status_code=500, headers={"ETag": '"err"'}),
        _ok({"status": "queued"}),
    )

    resp = cache.fetch(FP, PARAMS, transport)

    assert resp.status_code == 500
    assert FP not in cache
    cache.fetch(FP, PARAMS, transport)
    assert transport.calls[1][1] == {}


def test_200_without_validator_stays_unconditional():
    cache = ConditionalCache()
    transport = RecordingTransport(_ok({"a": 1}), _ok({"a": 2}))

    cache.fetch(FP, PARAMS, transport)
    resp = cache.fetch(FP, PARAMS, transport)

    assert transport.calls[1][1] == {}
    assert resp.body == {"a": 2}


def test_validator_header_lookup_is_case_insensitive():
    cache = ConditionalCache()
    transport = RecordingTransport(_ok({"a": 1}, etag='"lower"', header_name="etag"), _not_modified())

    cache.fetch(FP, PARAMS, transport)
    cache.fetch(FP, PARAMS, transport)

    assert transport.calls[1][1] == {"If-None-Match": '"lower"'}


def test_clear_drops_all_entries():
    cache = ConditionalCache()
    transport = RecordingTransport(_ok({"a": 1}, etag='"x"'), _ok({"a": 1}, etag='"y"'))

    cache.fetch(FP, PARAMS, transport)
    cache.clear()
    cache.fetch(FP, PARAMS, transport)

    assert len(cache) == 1
    assert transport.calls[1][1] == {}
