"""Exception taxonomy for the OAuth2 broker.

Every error carries a machine-readable ``error`` code, an optional human
``description`` and the HTTP status the server layer responds with.
"""

from __future__ import annotations

from enum import Enum


class OAuth2ErrorCode(str, Enum):
    """Error codes reported by the broker itself (not by providers)."""

    CONFIGURATION_ERROR = "configuration_error"
    INVALID_CLIENT = "invalid_client"
    SERVICE_NOT_AVAILABLE = "service_not_available"
    INVALID_REQUEST = "invalid_request"
    SERVICE_ERROR = "service_error"


class OAuthServiceError(Exception):
    """Base error with HTTP-style status information."""

    default_error: OAuth2ErrorCode = OAuth2ErrorCode.SERVICE_ERROR
    default_status_code: int = 500

    def __init__(
        self,
        description: str | None = None,
        *,
        error: str | None = None,
        status_code: int | None = None,
    ):
        self.error = error or self.default_error.value
        self.description = description
        self.status_code = status_code or self.default_status_code
        super().__init__(description or self.error)

    @property
    def message(self) -> str:
        return self.description or self.error


class ConfigurationError(OAuthServiceError):
    """Provider configuration or handler implementation could not be resolved."""

    default_error = OAuth2ErrorCode.CONFIGURATION_ERROR
    default_status_code = 500


class InvalidClientError(OAuthServiceError):
    """The provider identifier is empty or not configured."""

    default_error = OAuth2ErrorCode.INVALID_CLIENT
    default_status_code = 400


class ServiceNotAvailableError(OAuthServiceError):
    """The provider could not be reached (network failure, timeout)."""

    default_error = OAuth2ErrorCode.SERVICE_NOT_AVAILABLE
    default_status_code = 503


__all__ = [
    "OAuth2ErrorCode",
    "OAuthServiceError",
    "ConfigurationError",
    "InvalidClientError",
    "ServiceNotAvailableError",
]
