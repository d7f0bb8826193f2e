"""
Sparrow Routing - Error Definitions

Error taxonomy with infra vs semantic classification.

Provider failures are recovered inside the resolver (recorded against the
provider's health, then the next provider is tried). Only the aggregated
AllProvidersExhaustedError ever reaches callers, and it is returned inside a
result object rather than raised.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorType(str, Enum):
    """Error classification."""
    INFRA = "infra_error"
    SEMANTIC = "semantic_error"


@dataclass
class ErrorDetails:
    """Full error information for logs and result objects."""
    # Core fields (always present)
    code: str
    message: str
    type: ErrorType

    # Context fields
    provider: Optional[str] = None
    request_id: str = ""

    # Recovery fields
    retryable: bool = False
    retry_after: Optional[int] = None

    # Debug fields
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "retryable": self.retryable,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.request_id:
            result["request_id"] = self.request_id
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.details:
            result["details"] = self.details

        return {"error": result}


class RoutingException(Exception):
    """Base exception for all routing errors."""

    def __init__(self, error: ErrorDetails):
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def provider(self) -> Optional[str]:
        return self.error.provider


# ============================================================
# Provider Failures (Infra)
# ============================================================

class InfraError(RoutingException):
    """Base class for infrastructure errors."""
    pass


class ProviderFailureError(InfraError):
    """A single provider call failed (network, timeout, upstream, parse)."""

    def __init__(
        self,
        provider: str,
        message: str,
        code: str = "provider_failure",
        request_id: str = "",
        retryable: bool = True,
        retry_after: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            ErrorDetails(
                code=code,
                message=message,
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=retryable,
                retry_after=retry_after,
                details=details or {}
            )
        )


class ConnectionTimeoutError(ProviderFailureError):
    """Failed to connect to provider."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            provider,
            f"Failed to connect to {provider} within timeout",
            code="connection_timeout",
            request_id=request_id,
            retry_after=5
        )


class ReadTimeoutError(ProviderFailureError):
    """Provider did not respond in time."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            provider,
            f"{provider} did not respond within timeout",
            code="read_timeout",
            request_id=request_id,
            retry_after=10
        )


class UpstreamError(ProviderFailureError):
    """Provider returned a server error."""

    def __init__(
        self,
        provider: str,
        status_code: int,
        message: str = "",
        request_id: str = ""
    ):
        code_map = {
            500: "upstream_500",
            502: "upstream_502",
            503: "upstream_503",
            504: "upstream_504",
        }
        super().__init__(
            provider,
            message or f"{provider} returned error {status_code}",
            code=code_map.get(status_code, "upstream_error"),
            request_id=request_id,
            retry_after=30,
            details={"status_code": status_code}
        )


class RateLimitedError(ProviderFailureError):
    """Provider rate limit exceeded."""

    def __init__(self, provider: str, retry_after: int = 60, request_id: str = ""):
        super().__init__(
            provider,
            f"{provider} rate limit exceeded. Retry after {retry_after} seconds.",
            code="rate_limited",
            request_id=request_id,
            retry_after=retry_after
        )


class ProviderUnavailableError(ProviderFailureError):
    """Transport-level failure reaching the provider."""

    def __init__(self, provider: str, reason: str = "", request_id: str = ""):
        super().__init__(
            provider,
            f"{provider} appears to be unavailable" + (f": {reason}" if reason else ""),
            code="provider_unavailable",
            request_id=request_id
        )


class ResponseParseError(ProviderFailureError):
    """Provider answered but the body could not be understood."""

    def __init__(self, provider: str, reason: str = "", request_id: str = ""):
        super().__init__(
            provider,
            f"Failed to parse {provider} response" + (f": {reason}" if reason else ""),
            code="response_parse_error",
            request_id=request_id,
            retryable=False
        )


class AllProvidersExhaustedError(InfraError):
    """Every provider in the ordering failed or returned no routes."""

    USER_MESSAGE = "Could not find a route"

    def __init__(
        self,
        providers: List[str],
        last_error: Optional[RoutingException] = None,
        request_id: str = ""
    ):
        self.providers_tried = list(providers)
        self.last_error = last_error

        if last_error is not None:
            message = f"All routing providers failed; last error: {last_error}"
        else:
            message = "No route available from any provider"

        super().__init__(
            ErrorDetails(
                code="all_providers_exhausted",
                message=message,
                type=ErrorType.INFRA,
                request_id=request_id,
                retryable=False,
                details={
                    "providers_tried": self.providers_tried,
                    "last_error": last_error.error.to_dict()["error"] if last_error else None,
                }
            )
        )

    @property
    def user_message(self) -> str:
        return self.USER_MESSAGE


# ============================================================
# Semantic Errors (Not Retryable)
# ============================================================

class SemanticError(RoutingException):
    """Base class for semantic errors (caller or credentials must change)."""
    pass


class InvalidCoordinateError(SemanticError):
    """Coordinate values are not a valid WGS84 point."""

    def __init__(self, latitude: Any, longitude: Any):
        super().__init__(
            ErrorDetails(
                code="invalid_coordinate",
                message=f"Invalid coordinate ({latitude!r}, {longitude!r})",
                type=ErrorType.SEMANTIC,
                details={"latitude": repr(latitude), "longitude": repr(longitude)}
            )
        )


class ProviderAuthError(SemanticError):
    """Provider rejected our credentials."""

    def __init__(self, provider: str, status_code: int = 401, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="provider_auth_error",
                message=f"{provider} authentication failed",
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                details={"status_code": status_code}
            )
        )


class ProviderRequestError(SemanticError):
    """Provider rejected the request itself (4xx)."""

    def __init__(
        self,
        provider: str,
        status_code: int,
        message: str = "",
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="provider_request_error",
                message=message or f"{provider} rejected the request ({status_code})",
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                details={"status_code": status_code}
            )
        )


# ============================================================
# Factories
# ============================================================

def create_error_from_provider(
    provider: str,
    status_code: int,
    error_body: Optional[dict] = None,
    request_id: str = ""
) -> RoutingException:
    """Create the appropriate error for a failed provider HTTP response."""
    error_body = error_body or {}
    message = str(error_body.get("message", "")) if isinstance(error_body, dict) else ""

    if status_code in (401, 403):
        return ProviderAuthError(provider, status_code, request_id)

    if status_code == 429:
        retry_after = 60
        if "retry-after" in error_body:
            try:
                retry_after = int(error_body["retry-after"])
            except (TypeError, ValueError):
                pass
        return RateLimitedError(provider, retry_after, request_id)

    if status_code >= 500:
        return UpstreamError(provider, status_code, message, request_id)

    return ProviderRequestError(provider, status_code, message, request_id)


def wrap_provider_exception(
    provider: str,
    exc: BaseException,
    request_id: str = ""
) -> RoutingException:
    """Normalize anything a provider raised into a RoutingException."""
    if isinstance(exc, RoutingException):
        if not exc.error.request_id:
            exc.error.request_id = request_id
        return exc

    return ProviderFailureError(
        provider,
        f"{provider} failed: {type(exc).__name__}: {exc}",
        code="provider_exception",
        request_id=request_id,
        details={"exception_type": type(exc).__name__}
    )
