"""Authorization-code handler shared by the concrete providers.

Subclasses only supply endpoint defaults and small dialect switches; every
value can also be set (or overridden) through the provider configuration.
"""

from __future__ import annotations

import logging
import time
from typing import Any, ClassVar, Literal
from urllib.parse import urlencode

import httpx
from pydantic import ConfigDict, ValidationError

from oauth2_broker.config import Configuration
from oauth2_broker.constants import QUERY_CODE, QUERY_ERROR, QUERY_STATE
from oauth2_broker.errors import ConfigurationError, ServiceNotAvailableError
from oauth2_broker.models import BrokerBaseModel
from oauth2_broker.storage import CredentialStore, OAuthCredential

from .contracts import AuthInfo, GrantResult, HandlerError, OAuth2Handler

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT = 30


def create_http_client(timeout: float) -> httpx.Client:
    """Create the HTTP client used for provider round trips."""
    return httpx.Client(timeout=timeout, follow_redirects=False)


class _TokenResponse(BrokerBaseModel):
    """Minimal token endpoint response (successful or error)."""

    model_config = ConfigDict(extra="allow", frozen=True)

    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: float | None = None
    scope: str | None = None
    token_type: str | None = None

    error: str | None = None
    error_description: str | None = None


class AuthorizationCodeHandler(OAuth2Handler):
    """RFC 6749 authorization-code handler configured from a Configuration.

    Configuration keys:
        client_id, client_secret, redirect_uri: required
        authorize_uri, token_uri: required unless the subclass has defaults
        userinfo_uri, username_field: how the provider account name is found
        scope: space or comma separated scopes
        http.timeout: provider request timeout in seconds
    """

    provider_name: str = "generic"

    DEFAULT_AUTHORIZE_URI: ClassVar[str | None] = None
    DEFAULT_TOKEN_URI: ClassVar[str | None] = None
    DEFAULT_USERINFO_URI: ClassVar[str | None] = None
    DEFAULT_SCOPE: ClassVar[str] = ""
    DEFAULT_USERNAME_FIELD: ClassVar[str] = "email"
    # "post" sends client credentials in the form body, "basic" in an Authorization header
    TOKEN_AUTH_METHOD: ClassVar[Literal["post", "basic"]] = "post"
    EXTRA_AUTHORIZE_PARAMS: ClassVar[dict[str, str]] = {}

    def __init__(self, config: Configuration, store: CredentialStore):
        self.config = config
        self.store = store
        self.provider_name = config.provider

        self.client_id = config.get_string("client_id")
        self.client_secret = config.get_string("client_secret")
        self.redirect_uri = config.get_string("redirect_uri")
        self.authorize_uri = self._required_uri("authorize_uri", self.DEFAULT_AUTHORIZE_URI)
        self.token_uri = self._required_uri("token_uri", self.DEFAULT_TOKEN_URI)
        self.userinfo_uri = config.get_string("userinfo_uri", self.DEFAULT_USERINFO_URI or "")
        self.username_field = config.get_string("username_field", self.DEFAULT_USERNAME_FIELD)
        self.scopes = config.get_list("scope", self.DEFAULT_SCOPE.split())
        self.timeout = config.get_int("http.timeout", DEFAULT_HTTP_TIMEOUT)

        logger.debug(
            f"Initialized {self.__class__.__name__} for client '{self.provider_name}'",
            extra={"token_uri": self.token_uri},
        )

    # ── authorization step ───────────────────────────────────────────────────
    def authorize(self, relay: str | None) -> str:
        params = [
            ("client_id", self.client_id),
            ("redirect_uri", self.redirect_uri),
            ("response_type", "code"),
        ]
        if self.scopes:
            params.append(("scope", " ".join(self.scopes)))
        if relay:
            params.append((QUERY_STATE, relay))
        params.extend(self.EXTRA_AUTHORIZE_PARAMS.items())
        separator = "&" if "?" in self.authorize_uri else "?"
        return f"{self.authorize_uri}{separator}{urlencode(params)}"

    # ── callback step ────────────────────────────────────────────────────────
    def get_authenticate_param_keys(self) -> list[str]:
        return [QUERY_CODE, QUERY_ERROR, QUERY_STATE]

    def verify_authenticate_params(self, params: dict[str, str]) -> None:
        error = params.get(QUERY_ERROR)
        if error:
            raise HandlerError.permission_denied(f"Authorization was not granted: {error}")
        if not params.get(QUERY_CODE):
            raise HandlerError.invalid_request("Missing authorization code")

    def get_relay(self, params: dict[str, str]) -> str | None:
        return params.get(QUERY_STATE)

    def authenticate(self, auth_info: AuthInfo) -> None:
        if not auth_info.session_token:
            raise HandlerError.invalid_request("A session is required to attach the credential")

        code = auth_info.params.get(QUERY_CODE, "")
        grant = self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            }
        )
        username = self._resolve_username(grant)

        self.store.save(
            auth_info.session_token,
            OAuthCredential(
                provider=self.provider_name,
                username=username,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                expires_at=grant.expires_at,
                scopes=grant.scopes,
                updated_at=time.time(),
            ),
        )
        logger.info(
            f"Stored credential for client '{self.provider_name}'",
            extra={"username": username},
        )

    # ── maintenance ──────────────────────────────────────────────────────────
    def refresh(self, auth_info: AuthInfo) -> bool:
        if not auth_info.session_token or not auth_info.username:
            raise HandlerError.invalid_request("A session and username are required to refresh")

        credential = self.store.load(
            auth_info.session_token, self.provider_name, auth_info.username
        )
        if credential is None:
            raise HandlerError.invalid_request(
                f"No credential found for '{auth_info.username}' on client '{self.provider_name}'"
            )
        if not credential.refresh_token:
            raise HandlerError.invalid_request("The stored credential has no refresh token")

        payload = {"grant_type": "refresh_token", "refresh_token": credential.refresh_token}
        if self.scopes:
            payload["scope"] = " ".join(self.scopes)

        try:
            grant = self._request_token(payload)
        except HandlerError as e:
            # The provider rejected the refresh token; the credential needs re-authorization
            logger.warning(
                f"Refresh rejected for client '{self.provider_name}': {e.code}",
                extra={"username": auth_info.username},
            )
            return False

        self.store.save(
            auth_info.session_token,
            credential.model_copy(
                update={
                    "access_token": grant.access_token,
                    "refresh_token": grant.refresh_token or credential.refresh_token,
                    "expires_at": grant.expires_at,
                    "scopes": grant.scopes or credential.scopes,
                    "updated_at": time.time(),
                }
            ),
        )
        return True

    # ── helpers ──────────────────────────────────────────────────────────────
    def _required_uri(self, key: str, default: str | None) -> str:
        uri = self.config.get_string(key, default or "")
        if not uri:
            raise ConfigurationError(
                f"Missing configuration key '{key}' for client '{self.config.provider}'"
            )
        return uri

    def _request_token(self, payload: dict[str, str]) -> GrantResult:
        data = dict(payload)
        auth: tuple[str, str] | None = None
        if self.TOKEN_AUTH_METHOD == "basic":
            auth = (self.client_id, self.client_secret)
        else:
            data["client_id"] = self.client_id
            data["client_secret"] = self.client_secret

        try:
            with create_http_client(self.timeout) as client:
                resp = client.post(
                    self.token_uri,
                    data=data,
                    auth=auth,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Token request failed for client '{self.provider_name}': {e}")
            raise ServiceNotAvailableError(
                f"Unable to reach the token endpoint of '{self.provider_name}'"
            ) from e

        try:
            body: dict[str, Any] = resp.json()
            token = _TokenResponse.model_validate(body)
        except (ValueError, ValidationError) as exc:
            raise HandlerError(
                "invalid_grant",
                "Invalid token response payload",
                status_code=resp.status_code,
            ) from exc

        if resp.status_code != 200 or token.error is not None:
            description = token.error_description or "Failed to exchange authorization grant"
            if resp.status_code in (401, 403) or token.error == "access_denied":
                raise HandlerError.permission_denied(description)
            raise HandlerError(
                token.error or "invalid_grant", description, status_code=resp.status_code
            )

        if not token.access_token:
            raise HandlerError("invalid_grant", "No access_token in response")

        expires_at = time.time() + float(token.expires_in) if token.expires_in else None
        return GrantResult(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_at=expires_at,
            scopes=token.scope.split() if token.scope else list(self.scopes),
            token_type=token.token_type or "Bearer",
            raw=body,
        )

    def _resolve_username(self, grant: GrantResult) -> str:
        username = (grant.raw or {}).get(self.username_field)
        if not username and self.userinfo_uri:
            username = self._fetch_profile(grant.access_token).get(self.username_field)
        if not username:
            raise HandlerError(
                "invalid_grant",
                f"Unable to determine the account name for client '{self.provider_name}'",
            )
        return str(username)

    def _fetch_profile(self, access_token: str) -> dict[str, Any]:
        try:
            with create_http_client(self.timeout) as client:
                resp = client.get(
                    self.userinfo_uri,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            raise ServiceNotAvailableError(
                f"Unable to reach the profile endpoint of '{self.provider_name}'"
            ) from e

        if resp.status_code != 200:
            raise HandlerError(
                "invalid_token",
                f"Profile request failed with HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            profile: dict[str, Any] = resp.json()
        except ValueError as exc:
            raise HandlerError("invalid_token", "Invalid profile payload") from exc
        return profile


__all__ = ["AuthorizationCodeHandler", "create_http_client", "DEFAULT_HTTP_TIMEOUT"]
