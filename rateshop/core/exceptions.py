"""
Carrier Error Hierarchy

Structured exception classes for the carrier integration core.
Every failure that leaves the core is exactly one CarrierError carrying the
error code, the originating carrier, the upstream HTTP status and error
details, and whether the caller may retry.

Exception Hierarchy:
    CarrierError
    ├── CarrierValidationError
    ├── ConfigurationError
    ├── AuthFailedError
    │   └── ForbiddenError
    ├── NetworkError
    ├── CarrierTimeoutError
    ├── RateLimitedError
    ├── CarrierApiError
    ├── CarrierUnavailableError
    ├── MalformedResponseError
    └── UnknownCarrierError
"""
import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class CarrierErrorCode(str, enum.Enum):
    """Machine-readable error codes for programmatic handling."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    AUTH_FAILED = "AUTH_FAILED"
    FORBIDDEN = "FORBIDDEN"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    CARRIER_API_ERROR = "CARRIER_API_ERROR"
    CARRIER_UNAVAILABLE = "CARRIER_UNAVAILABLE"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    UNKNOWN = "UNKNOWN"


class CarrierError(Exception):
    """
    Base exception for all carrier integration errors.

    Attributes:
        message: Human-readable error description
        code: CarrierErrorCode for programmatic handling
        carrier: Originating carrier id (e.g. "UPS"), if any
        http_status: Upstream HTTP status, if a response was received
        carrier_error_code: Carrier-native error code from the error body
        carrier_error_message: Carrier-native error message from the error body
        retryable: Whether retrying the same call may succeed
        retry_after_ms: Server-requested wait before retrying
        details: Additional context for debugging
        timestamp: ISO-8601 UTC creation time
    """

    default_code: CarrierErrorCode = CarrierErrorCode.UNKNOWN
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        carrier: Optional[str] = None,
        http_status: Optional[int] = None,
        carrier_error_code: Optional[str] = None,
        carrier_error_message: Optional[str] = None,
        retryable: Optional[bool] = None,
        retry_after_ms: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[CarrierErrorCode] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.carrier = carrier
        self.http_status = http_status
        self.carrier_error_code = carrier_error_code
        self.carrier_error_message = carrier_error_message
        self.retryable = self.default_retryable if retryable is None else retryable
        self.retry_after_ms = retry_after_ms
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "carrier": self.carrier,
            "http_status": self.http_status,
            "carrier_error_code": self.carrier_error_code,
            "carrier_error_message": self.carrier_error_message,
            "retryable": self.retryable,
            "retry_after_ms": self.retry_after_ms,
            "details": self.details,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code.value!r}, "
            f"carrier={self.carrier!r}, message={self.message!r})"
        )


class CarrierValidationError(CarrierError):
    """Rate request failed schema validation."""
    default_code = CarrierErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, **kwargs):
        super().__init__(f"Validation error: {message}", **kwargs)


class ConfigurationError(CarrierError):
    """Missing or malformed configuration."""
    default_code = CarrierErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, **kwargs):
        super().__init__(f"Configuration error: {message}", **kwargs)


class AuthFailedError(CarrierError):
    """Credential exchange failed or the carrier rejected the token."""
    default_code = CarrierErrorCode.AUTH_FAILED


class ForbiddenError(AuthFailedError):
    """Carrier accepted the token but refused the operation (HTTP 403)."""
    default_code = CarrierErrorCode.FORBIDDEN


class NetworkError(CarrierError):
    """No response was received from the carrier."""
    default_code = CarrierErrorCode.NETWORK_ERROR
    default_retryable = True


class CarrierTimeoutError(CarrierError):
    """The carrier did not answer within the configured timeout."""
    default_code = CarrierErrorCode.TIMEOUT
    default_retryable = True

    def __init__(self, message: str, timeout_seconds: Optional[float] = None, **kwargs):
        details = dict(kwargs.pop("details", None) or {})
        details["timeout_seconds"] = timeout_seconds
        super().__init__(message, details=details, **kwargs)


class RateLimitedError(CarrierError):
    """Carrier answered HTTP 429."""
    default_code = CarrierErrorCode.RATE_LIMITED
    default_retryable = True

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("http_status", 429)
        super().__init__(message, **kwargs)


class CarrierApiError(CarrierError):
    """Carrier answered with a 4xx/5xx error. Retryable only for 5xx."""
    default_code = CarrierErrorCode.CARRIER_API_ERROR

    def __init__(self, message: str, http_status: int, **kwargs):
        kwargs.setdefault("retryable", http_status >= 500)
        super().__init__(message, http_status=http_status, **kwargs)


class CarrierUnavailableError(CarrierError):
    """Carrier is not registered or does not support the operation."""
    default_code = CarrierErrorCode.CARRIER_UNAVAILABLE


class MalformedResponseError(CarrierError):
    """Carrier response could not be decoded or is missing required fields."""
    default_code = CarrierErrorCode.MALFORMED_RESPONSE


class UnknownCarrierError(CarrierError):
    """Any failure outside the taxonomy, coerced at the aggregation boundary."""
    default_code = CarrierErrorCode.UNKNOWN


def ensure_carrier_error(exc: BaseException, carrier: Optional[str] = None) -> CarrierError:
    """Return exc unchanged if it is a CarrierError, otherwise wrap it as UNKNOWN."""
    if isinstance(exc, CarrierError):
        return exc
    return UnknownCarrierError(
        f"Carrier {carrier} failed: {str(exc) or exc.__class__.__name__}",
        carrier=carrier,
        details={"exception_type": exc.__class__.__name__},
    )
