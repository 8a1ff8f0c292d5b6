"""Base class for conditionally-cached GitHub API resources.

Every resource implements the same small interface, so a cache entry can be traced
back to the request that produced it:
- request fingerprint (cache key) and the exact request params
- API call "display format"
- the transport call
- converting a 200 body into the returned value

The shared get() flow is: ConditionalCache.fetch -> status check -> value conversion.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Generic, TypeVar

from await_retry import log_diagnostic
from await_types import ApiResponse, UnexpectedStatusError

if TYPE_CHECKING:  # pragma: no cover
    from await_session import AwaitSession

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConditionalResourceBase(ABC, Generic[T]):
    """A GitHub resource read through the session's ConditionalCache.

    Subclasses define:
    - fingerprint format
    - request params (every field that distinguishes one request from another)
    - the transport call
    - how to turn the response body into the returned value
    """

    def __init__(self, session: "AwaitSession"):
        self.session = session

    @property
    @abstractmethod
    def cache_name(self) -> str:
        """Short name used in errors and logs (e.g. 'run_state')."""

    @abstractmethod
    def api_call_format(self) -> str:
        """Human-readable description of the API call this resource performs."""

    @abstractmethod
    def fingerprint(self, **kwargs: Any) -> str:
        """Return a stable cache key for this request."""

    @abstractmethod
    def request_params(self, **kwargs: Any) -> Dict[str, Any]:
        """Return the request-distinguishing params (compared field by field on lookup)."""

    @abstractmethod
    def transport(self, params: Dict[str, Any], headers: Dict[str, str]) -> ApiResponse:
        """Perform the request with the given conditional headers."""

    @abstractmethod
    def value_from_body(self, body: Any) -> T:
        """Convert a 200 response body into the returned value."""

    def get(self, **kwargs: Any) -> T:
        """Shared get() flow.

        Raises:
            UnexpectedStatusError: for anything but 200 (or a 304 replayed from cache)
        """
        fingerprint = self.fingerprint(**kwargs)
        log_diagnostic(
            _logger, logging.DEBUG, "[%s] %s key=%s", self.cache_name, self.api_call_format(), fingerprint
        )
        resp = self.session.cache.fetch(
            fingerprint,
            self.request_params(**kwargs),
            self.transport,
        )
        if int(resp.status_code) != 200:
            raise UnexpectedStatusError(self.cache_name, resp.status_code)
        return self.value_from_body(resp.body)
