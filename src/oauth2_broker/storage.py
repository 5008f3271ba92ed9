"""Credential storage for exchanged provider tokens."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from oauth2_broker.models import BrokerBaseModel

logger = logging.getLogger(__name__)


class OAuthCredential(BrokerBaseModel):
    """Provider credential attached to a host account."""

    provider: str
    username: str
    access_token: str
    refresh_token: str | None = None
    expires_at: float | None = None
    scopes: list[str] | None = None
    updated_at: float


class CredentialStore(Protocol):
    """Abstract interface for credential persistence.

    Credentials are keyed by the host session token that identifies the
    account, the provider and the provider-side username. Implementations
    must be thread-safe.
    """

    def save(self, session_token: str, credential: OAuthCredential) -> None: ...

    def load(
        self, session_token: str, provider: str, username: str
    ) -> OAuthCredential | None: ...

    def delete(self, session_token: str, provider: str, username: str) -> bool: ...

    def list_for_session(self, session_token: str) -> list[OAuthCredential]: ...


class InMemoryCredentialStore(CredentialStore):
    """Process-local store, used by default and in tests."""

    def __init__(self) -> None:
        self._credentials: dict[tuple[str, str, str], OAuthCredential] = {}
        self._lock = threading.RLock()

    def save(self, session_token: str, credential: OAuthCredential) -> None:
        key = (session_token, credential.provider, credential.username)
        with self._lock:
            self._credentials[key] = credential
        logger.debug(
            "Stored credential",
            extra={"provider": credential.provider, "username": credential.username},
        )

    def load(self, session_token: str, provider: str, username: str) -> OAuthCredential | None:
        with self._lock:
            return self._credentials.get((session_token, provider, username))

    def delete(self, session_token: str, provider: str, username: str) -> bool:
        with self._lock:
            return self._credentials.pop((session_token, provider, username), None) is not None

    def list_for_session(self, session_token: str) -> list[OAuthCredential]:
        with self._lock:
            return [
                credential
                for (token, _, _), credential in self._credentials.items()
                if token == session_token
            ]


__all__ = ["OAuthCredential", "CredentialStore", "InMemoryCredentialStore"]
