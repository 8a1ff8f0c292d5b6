#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Conditional-request (ETag) cache for GitHub REST reads.

GitHub answers a request carrying `If-None-Match: <etag>` with 304 Not Modified when the
resource is unchanged, and 304s do NOT count against the rate limit. Polling a run every
few seconds therefore costs almost nothing while the run is idle.

Caching strategy:
  - Key: a request fingerprint, e.g. "<owner>/<repo>:run_state:<run_id>"
  - Value: {params, etag, response}
  - Hit: only when the stored params equal the incoming params in every field;
         any difference is a miss and the entry is overwritten by the next 200.
  - 304: the last 200 response is returned verbatim.
  - 200: etag + response replace the entry.
  - Other status codes: returned untouched and never stored (the caller decides).
  - No TTL; `clear()` drops everything.

Example:
    cache = ConditionalCache()
    resp = cache.fetch(
        "octo/hello:run_state:42",
        {"owner": "octo", "repo": "hello", "run_id": 42},
        lambda params, headers: api.get_workflow_run(**params, headers=headers),
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from await_types import ApiResponse

from .cache_base import BaseMemoryCache

TransportCall = Callable[[Dict[str, Any], Dict[str, str]], ApiResponse]


@dataclass(frozen=True)
class CacheEntry:
    fingerprint: str
    params: Dict[str, Any]
    etag: Optional[str]
    response: ApiResponse


class ConditionalCache(BaseMemoryCache):
    """In-memory ETag cache keyed by request fingerprint."""

    def lookup(self, fingerprint: str, params: Mapping[str, Any]) -> Optional[CacheEntry]:
        """Return the entry for fingerprint if its stored params match exactly."""
        wanted = dict(params)
        with self._mu:
            # Same fingerprint with different params is a miss.
            return self._check_item(fingerprint, accept=lambda e: e.params == wanted)

    def put(self, fingerprint: str, params: Mapping[str, Any], response: ApiResponse) -> CacheEntry:
        etag = response.header("ETag")
        entry = CacheEntry(
            fingerprint=fingerprint,
            params=dict(params),
            etag=etag.strip() if isinstance(etag, str) and etag.strip() else None,
            response=response,
        )
        with self._mu:
            self._set_item(fingerprint, entry)
        return entry

    def fetch(self, fingerprint: str, params: Mapping[str, Any], transport_call: TransportCall) -> ApiResponse:
        """Issue transport_call, conditionally when a matching entry exists.

        Returns the cached 200 response on 304 Not Modified, otherwise whatever the
        transport returned.
        """
        entry = self.lookup(fingerprint, params)

        headers: Dict[str, str] = {}
        if entry is not None and entry.etag:
            headers["If-None-Match"] = entry.etag

        resp = transport_call(dict(params), headers)
        code = int(resp.status_code)

        if code == 304 and entry is not None:
            with self._mu:
                self.stats.not_modified += 1
            return entry.response
        if 200 <= code < 300:
            self.put(fingerprint, params, resp)
        return resp
