"""Deterministic dummy handler for auth flow testing (no network calls)."""

from __future__ import annotations

import itertools
import time
from urllib.parse import urlencode

from oauth2_broker.config import Configuration
from oauth2_broker.constants import QUERY_CODE, QUERY_ERROR, QUERY_STATE
from oauth2_broker.storage import CredentialStore, OAuthCredential

from .contracts import AuthInfo, HandlerError, OAuth2Handler


class DummyOAuth2Handler(OAuth2Handler):
    """In-process handler used for tests and demos.

    Configuration keys (all optional):
        expected_code: authorization code accepted by ``authenticate``
        username: account name recorded for the credential
        authorize_uri: base of the URL returned by ``authorize``
    """

    provider_name = "dummy"

    def __init__(self, config: Configuration, store: CredentialStore):
        self.provider_name = config.provider
        self.store = store
        self.expected_code = config.get_string("expected_code", "TEST_CODE_OK")
        self.username = config.get_string("username", "dummy-user")
        self.authorize_uri = config.get_string(
            "authorize_uri", "https://dummy.provider/authorize"
        )
        self._generations = itertools.count(1)

    def authorize(self, relay: str | None) -> str:
        """Return a predictable URL that encodes the relay."""
        params = {"client": self.provider_name}
        if relay:
            params[QUERY_STATE] = relay
        return f"{self.authorize_uri}?{urlencode(params)}"

    def get_authenticate_param_keys(self) -> list[str]:
        return [QUERY_CODE, QUERY_ERROR, QUERY_STATE]

    def verify_authenticate_params(self, params: dict[str, str]) -> None:
        if params.get(QUERY_ERROR):
            raise HandlerError.permission_denied(
                f"Authorization was not granted: {params[QUERY_ERROR]}"
            )
        if not params.get(QUERY_CODE):
            raise HandlerError.invalid_request("Missing authorization code")

    def authenticate(self, auth_info: AuthInfo) -> None:
        """Store fixed tokens when the expected code is presented."""
        if auth_info.params.get(QUERY_CODE) != self.expected_code:
            raise HandlerError("invalid_grant", "Unknown authorization code")
        if not auth_info.session_token:
            raise HandlerError.invalid_request("A session is required to attach the credential")
        self.store.save(
            auth_info.session_token,
            OAuthCredential(
                provider=self.provider_name,
                username=self.username,
                access_token="DUMMY_ACCESS_TOKEN",
                refresh_token="DUMMY_REFRESH_TOKEN",
                expires_at=time.time() + 3600,
                scopes=["dummy.read"],
                updated_at=time.time(),
            ),
        )

    def refresh(self, auth_info: AuthInfo) -> bool:
        """Rotate the access token of a stored credential."""
        if not auth_info.session_token or not auth_info.username:
            return False
        credential = self.store.load(
            auth_info.session_token, self.provider_name, auth_info.username
        )
        if credential is None:
            return False
        generation = next(self._generations)
        self.store.save(
            auth_info.session_token,
            credential.model_copy(
                update={
                    "access_token": f"DUMMY_ACCESS_TOKEN_{generation}",
                    "expires_at": time.time() + 3600,
                    "updated_at": time.time(),
                }
            ),
        )
        return True

    def get_relay(self, params: dict[str, str]) -> str | None:
        return params.get(QUERY_STATE)


__all__ = ["DummyOAuth2Handler"]
