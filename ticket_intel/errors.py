"""
Error taxonomy for the ticket intelligence pipeline

Every failure surfaced to an agent carries a human-readable message,
remediation suggestions and optional debug details. The HTTP layer maps
``status_code`` onto the response; the message and suggestions are shown
verbatim.
"""
from typing import Any, Dict, List, Optional


class TicketIntelError(Exception):
    """Base class for all pipeline errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        suggestions: Optional[List[str]] = None,
        debug_info: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])
        self.debug_info = dict(debug_info or {})

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API responses"""
        return {
            "error": self.error_type,
            "message": self.message,
            "suggestions": self.suggestions,
            "debug_info": self.debug_info,
        }


class ConfigurationInvalid(TicketIntelError):
    """A required credential or URL is missing; raised before any network call"""

    status_code = 400


class UpstreamRequestFailed(TicketIntelError):
    """Generic upstream API failure (ticket source or model backend)"""

    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.upstream_status = upstream_status
        self.response_body = response_body
        if upstream_status is not None:
            self.debug_info.setdefault("upstream_status", upstream_status)


class UpstreamAuthFailed(UpstreamRequestFailed):
    """Upstream rejected the credentials (401-class)"""

    status_code = 401


class UpstreamNotFound(UpstreamRequestFailed):
    """Upstream resource (ticket or model) does not exist (404-class)"""

    status_code = 404


class UpstreamRateLimitedOrServerError(UpstreamRequestFailed):
    """Upstream answered 429 or 5xx"""

    status_code = 503


class LocalServerForbidden(UpstreamRequestFailed):
    """Local model server answered 403 on the primary endpoint (cross-origin policy)"""

    status_code = 403


class AllEndpointsFailed(UpstreamRequestFailed):
    """Every candidate local-server URL exhausted every endpoint shape"""

    status_code = 502

    def __init__(
        self,
        attempted_urls: List[str],
        last_error: Optional[Exception] = None,
        **kwargs
    ):
        detail = str(last_error) if last_error else "no endpoint responded"
        super().__init__(f"All local model server URLs failed: {detail}", **kwargs)
        self.attempted_urls = list(attempted_urls)
        self.last_error = last_error
        self.debug_info.setdefault("tried_urls", self.attempted_urls)
        self.debug_info.setdefault("error_message", detail)

    @property
    def cors_restricted(self) -> bool:
        """True when the final failure was a cross-origin policy rejection"""
        return isinstance(self.last_error, LocalServerForbidden)


class MalformedUpstreamResponse(TicketIntelError):
    """Upstream answered with success status but without the expected payload"""

    status_code = 502


class NoTicketComments(TicketIntelError):
    """The ticket exists but has no comments to summarize"""

    status_code = 422


class SummaryNotCached(TicketIntelError):
    """A follow-up question was asked before the ticket was summarized"""

    status_code = 409

