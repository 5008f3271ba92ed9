"""Contracts and shared types for provider handlers."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import Field

from oauth2_broker.errors import OAuth2ErrorCode, OAuthServiceError
from oauth2_broker.models import BrokerBaseModel


class ErrorKind(str, Enum):
    """Classification of a handler failure."""

    PERMISSION_DENIED = "permission_denied"
    OTHER = "other"


class HandlerError(OAuthServiceError):
    """Classified failure raised by a handler.

    ``code`` is the provider-facing error code passed through to the relay for
    non permission-denied validation failures; ``kind`` drives how the
    authentication flow reports the failure.
    """

    default_error = OAuth2ErrorCode.INVALID_REQUEST
    default_status_code = 400

    def __init__(
        self,
        code: str,
        description: str | None = None,
        *,
        kind: ErrorKind = ErrorKind.OTHER,
        status_code: int | None = None,
    ):
        super().__init__(description, error=code, status_code=status_code)
        self.kind = kind

    @property
    def code(self) -> str:
        return self.error

    @property
    def is_permission_denied(self) -> bool:
        return self.kind is ErrorKind.PERMISSION_DENIED

    @classmethod
    def permission_denied(cls, description: str) -> HandlerError:
        return cls(
            "perm_denied", description, kind=ErrorKind.PERMISSION_DENIED, status_code=403
        )

    @classmethod
    def invalid_request(cls, description: str) -> HandlerError:
        return cls(OAuth2ErrorCode.INVALID_REQUEST.value, description)

    @classmethod
    def from_exception(cls, exc: Exception) -> HandlerError:
        """Convert an unexpected exception into an unclassified handler error."""
        if isinstance(exc, HandlerError):
            return exc
        if isinstance(exc, OAuthServiceError):
            return cls(exc.error, exc.message, status_code=exc.status_code)
        return cls(
            OAuth2ErrorCode.SERVICE_ERROR.value,
            "An unexpected error occurred",
            status_code=500,
        )


class AuthInfo(BrokerBaseModel):
    """Per-request bundle handed to ``authenticate`` and ``refresh``."""

    params: dict[str, str] = Field(default_factory=dict)
    session_token: str | None = None
    client_id: str | None = None
    username: str | None = None


class GrantResult(BrokerBaseModel):
    """Result of exchanging or refreshing a grant with a provider."""

    access_token: str
    refresh_token: str | None = None
    expires_at: float | None = None
    scopes: list[str] | None = None
    token_type: str = "Bearer"
    raw: dict[str, Any] | None = None


@runtime_checkable
class OAuth2Handler(Protocol):
    """Interface every provider handler implements."""

    provider_name: str

    def authorize(self, relay: str | None) -> str:
        """Return the provider authorize URL, carrying ``relay`` through the flow."""

    def get_authenticate_param_keys(self) -> list[str]:
        """Query parameter names expected on the provider's redirect callback."""

    def verify_authenticate_params(self, params: dict[str, str]) -> None:
        """Raise ``HandlerError`` when required callback params are missing or invalid."""

    def authenticate(self, auth_info: AuthInfo) -> None:
        """Exchange the authorization code and persist the resulting credential."""

    def refresh(self, auth_info: AuthInfo) -> bool:
        """Refresh the stored credential of ``auth_info.username``."""

    def get_relay(self, params: dict[str, str]) -> str | None:
        """Return the caller's post-flow redirect target from the callback params."""


__all__ = [
    "AuthInfo",
    "ErrorKind",
    "GrantResult",
    "HandlerError",
    "OAuth2Handler",
]
