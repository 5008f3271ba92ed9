from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from pytest import MonkeyPatch

from oauth2_broker.config import Configuration
from oauth2_broker.errors import ConfigurationError, ServiceNotAvailableError
from oauth2_broker.handlers import (
    AuthInfo,
    AuthorizationCodeHandler,
    GoogleOAuth2Handler,
    HandlerError,
    OutlookOAuth2Handler,
    YahooOAuth2Handler,
)
from oauth2_broker.storage import InMemoryCredentialStore, OAuthCredential
from tests.handlers.http_testkit import (
    FakeHttpClient,
    FakeResponse,
    FakeResponseJsonError,
    patch_http_client,
)

TOKEN_OK = {
    "access_token": "at-1",
    "refresh_token": "rt-1",
    "expires_in": 3600,
    "scope": "mail-r openid",
    "token_type": "bearer",
}


def _config(provider: str = "generic", **overrides: str) -> Configuration:
    values = {
        "client_id": "cid",
        "client_secret": "secret",
        "redirect_uri": "https://mail.example.com/oauth2/authenticate/" + provider,
        "authorize_uri": "https://idp.example.com/authorize",
        "token_uri": "https://idp.example.com/token",
        "userinfo_uri": "https://idp.example.com/userinfo",
        "scope": "openid email",
    }
    values.update(overrides)
    return Configuration(provider, values)


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def handler(store: InMemoryCredentialStore) -> AuthorizationCodeHandler:
    return AuthorizationCodeHandler(_config(), store)


def _stored(store: InMemoryCredentialStore, username: str) -> OAuthCredential:
    credential = store.load("session-1", "generic", username)
    assert credential is not None
    return credential


# ── construction ─────────────────────────────────────────────────────────────
def test_missing_required_key_is_configuration_error(store: InMemoryCredentialStore) -> None:
    config = Configuration("generic", {"client_id": "cid", "client_secret": "s"})
    with pytest.raises(ConfigurationError, match="redirect_uri"):
        AuthorizationCodeHandler(config, store)


def test_generic_handler_requires_endpoints(store: InMemoryCredentialStore) -> None:
    config = Configuration(
        "generic", {"client_id": "cid", "client_secret": "s", "redirect_uri": "https://x/cb"}
    )
    with pytest.raises(ConfigurationError, match="authorize_uri"):
        AuthorizationCodeHandler(config, store)


def test_provider_defaults_fill_endpoints(store: InMemoryCredentialStore) -> None:
    config = Configuration(
        "yahoo", {"client_id": "cid", "client_secret": "s", "redirect_uri": "https://x/cb"}
    )
    handler = YahooOAuth2Handler(config, store)
    assert handler.token_uri == "https://api.login.yahoo.com/oauth2/get_token"
    assert handler.scopes == ["mail-r", "sdct-r", "openid", "email"]
    assert handler.timeout == 30


# ── authorize ────────────────────────────────────────────────────────────────
def test_authorize_includes_required_params(handler: AuthorizationCodeHandler) -> None:
    url = handler.authorize("/mail?folder=inbox")
    parts = urlsplit(url)
    query = parse_qs(parts.query)

    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://idp.example.com/authorize"
    assert query["client_id"] == ["cid"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == ["https://mail.example.com/oauth2/authenticate/generic"]
    assert query["scope"] == ["openid email"]
    assert query["state"] == ["/mail?folder=inbox"]


def test_authorize_without_relay_omits_state(handler: AuthorizationCodeHandler) -> None:
    assert "state" not in parse_qs(urlsplit(handler.authorize(None)).query)


def test_google_authorize_requests_offline_access(store: InMemoryCredentialStore) -> None:
    handler = GoogleOAuth2Handler(_config("google"), store)
    query = parse_qs(urlsplit(handler.authorize("/")).query)
    assert query["access_type"] == ["offline"]
    assert query["prompt"] == ["consent"]


def test_outlook_authorize_uses_query_response_mode(store: InMemoryCredentialStore) -> None:
    handler = OutlookOAuth2Handler(_config("outlook"), store)
    assert parse_qs(urlsplit(handler.authorize("/")).query)["response_mode"] == ["query"]


# ── callback validation ──────────────────────────────────────────────────────
def test_param_keys_and_relay(handler: AuthorizationCodeHandler) -> None:
    assert handler.get_authenticate_param_keys() == ["code", "error", "state"]
    assert handler.get_relay({"state": "/mail"}) == "/mail"
    assert handler.get_relay({}) is None


def test_verify_provider_error_is_permission_denied(handler: AuthorizationCodeHandler) -> None:
    with pytest.raises(HandlerError) as exc_info:
        handler.verify_authenticate_params({"error": "access_denied", "state": "/"})
    assert exc_info.value.is_permission_denied
    assert "access_denied" in exc_info.value.message


def test_verify_missing_code(handler: AuthorizationCodeHandler) -> None:
    with pytest.raises(HandlerError) as exc_info:
        handler.verify_authenticate_params({"state": "/"})
    assert not exc_info.value.is_permission_denied
    assert exc_info.value.code == "invalid_request"


def test_verify_accepts_code(handler: AuthorizationCodeHandler) -> None:
    handler.verify_authenticate_params({"code": "abc"})


# ── authenticate ─────────────────────────────────────────────────────────────
def test_authenticate_stores_credential(
    monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler, store: InMemoryCredentialStore
) -> None:
    fake = FakeHttpClient(
        post_response=FakeResponse(200, TOKEN_OK),
        get_response=FakeResponse(200, {"email": "user@example.com"}),
    )
    patch_http_client(monkeypatch, fake)

    handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))

    credential = _stored(store, "user@example.com")
    assert credential.access_token == "at-1"
    assert credential.refresh_token == "rt-1"
    assert credential.scopes == ["mail-r", "openid"]
    assert credential.expires_at is not None

    assert len(fake.posts) == 1
    post = fake.posts[0]
    assert post.url == "https://idp.example.com/token"
    assert post.kwargs["data"]["grant_type"] == "authorization_code"
    assert post.kwargs["data"]["code"] == "abc"
    assert post.kwargs["data"]["client_secret"] == "secret"
    assert post.kwargs["auth"] is None

    assert fake.gets[0].kwargs["headers"]["Authorization"] == "Bearer at-1"


def test_authenticate_uses_username_from_token_payload(
    monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler, store: InMemoryCredentialStore
) -> None:
    fake = FakeHttpClient(post_response=FakeResponse(200, {**TOKEN_OK, "email": "tok@x.com"}))
    patch_http_client(monkeypatch, fake)

    handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))

    assert _stored(store, "tok@x.com").access_token == "at-1"
    assert fake.gets == []


def test_yahoo_sends_basic_auth(monkeypatch: MonkeyPatch, store: InMemoryCredentialStore) -> None:
    fake = FakeHttpClient(post_response=FakeResponse(200, {**TOKEN_OK, "email": "y@x.com"}))
    patch_http_client(monkeypatch, fake)
    handler = YahooOAuth2Handler(_config("yahoo"), store)

    handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))

    post = fake.posts[0]
    assert post.kwargs["auth"] == ("cid", "secret")
    assert "client_secret" not in post.kwargs["data"]


def test_authenticate_requires_session(handler: AuthorizationCodeHandler) -> None:
    with pytest.raises(HandlerError) as exc_info:
        handler.authenticate(AuthInfo(params={"code": "abc"}))
    assert exc_info.value.code == "invalid_request"


@pytest.mark.parametrize(
    ("status", "payload"),
    [
        (401, {"error": "invalid_client"}),
        (400, {"error": "access_denied", "error_description": "User said no"}),
    ],
)
def test_token_rejection_is_permission_denied(
    monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler, status: int, payload: dict
) -> None:
    patch_http_client(monkeypatch, FakeHttpClient(post_response=FakeResponse(status, payload)))

    with pytest.raises(HandlerError) as exc_info:
        handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))

    assert exc_info.value.is_permission_denied


def test_token_error_keeps_provider_code(
    monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler
) -> None:
    payload = {"error": "invalid_grant", "error_description": "Code expired"}
    patch_http_client(monkeypatch, FakeHttpClient(post_response=FakeResponse(400, payload)))

    with pytest.raises(HandlerError) as exc_info:
        handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))

    assert exc_info.value.code == "invalid_grant"
    assert exc_info.value.message == "Code expired"
    assert not exc_info.value.is_permission_denied


def test_invalid_token_payload(monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler) -> None:
    patch_http_client(
        monkeypatch, FakeHttpClient(post_response=FakeResponseJsonError(200, None))
    )

    with pytest.raises(HandlerError, match="Invalid token response payload"):
        handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))


def test_missing_access_token(monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler) -> None:
    patch_http_client(
        monkeypatch, FakeHttpClient(post_response=FakeResponse(200, {"token_type": "bearer"}))
    )

    with pytest.raises(HandlerError, match="No access_token"):
        handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))


def test_unreachable_provider(monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler) -> None:
    fake = FakeHttpClient(post_error=httpx.ConnectError("connection refused"))
    patch_http_client(monkeypatch, fake)

    with pytest.raises(ServiceNotAvailableError) as exc_info:
        handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))

    assert exc_info.value.status_code == 503


def test_unknown_username(monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler) -> None:
    fake = FakeHttpClient(
        post_response=FakeResponse(200, TOKEN_OK),
        get_response=FakeResponse(200, {"sub": "123"}),
    )
    patch_http_client(monkeypatch, fake)

    with pytest.raises(HandlerError, match="account name"):
        handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))


def test_profile_failure(monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler) -> None:
    fake = FakeHttpClient(
        post_response=FakeResponse(200, TOKEN_OK),
        get_response=FakeResponse(401, {}),
    )
    patch_http_client(monkeypatch, fake)

    with pytest.raises(HandlerError) as exc_info:
        handler.authenticate(AuthInfo(params={"code": "abc"}, session_token="session-1"))

    assert exc_info.value.code == "invalid_token"


# ── refresh ──────────────────────────────────────────────────────────────────
def _seed(store: InMemoryCredentialStore, refresh_token: str | None = "rt-1") -> None:
    store.save(
        "session-1",
        OAuthCredential(
            provider="generic",
            username="user@example.com",
            access_token="at-old",
            refresh_token=refresh_token,
            scopes=["openid"],
            updated_at=0.0,
        ),
    )


def test_refresh_rotates_access_token(
    monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler, store: InMemoryCredentialStore
) -> None:
    _seed(store)
    payload = {"access_token": "at-2", "expires_in": 60}
    fake = FakeHttpClient(post_response=FakeResponse(200, payload))
    patch_http_client(monkeypatch, fake)

    refreshed = handler.refresh(
        AuthInfo(client_id="generic", username="user@example.com", session_token="session-1")
    )

    assert refreshed is True
    credential = _stored(store, "user@example.com")
    assert credential.access_token == "at-2"
    # Providers that do not rotate refresh tokens keep the previous one
    assert credential.refresh_token == "rt-1"
    assert credential.updated_at > 0
    data = fake.posts[0].kwargs["data"]
    assert data["grant_type"] == "refresh_token"
    assert data["refresh_token"] == "rt-1"


def test_refresh_rejected_by_provider(
    monkeypatch: MonkeyPatch, handler: AuthorizationCodeHandler, store: InMemoryCredentialStore
) -> None:
    _seed(store)
    patch_http_client(
        monkeypatch,
        FakeHttpClient(post_response=FakeResponse(400, {"error": "invalid_grant"})),
    )

    refreshed = handler.refresh(AuthInfo(username="user@example.com", session_token="session-1"))

    assert refreshed is False
    assert _stored(store, "user@example.com").access_token == "at-old"


def test_refresh_unknown_credential(handler: AuthorizationCodeHandler) -> None:
    with pytest.raises(HandlerError, match="No credential found"):
        handler.refresh(AuthInfo(username="nobody@example.com", session_token="session-1"))


def test_refresh_without_refresh_token(
    handler: AuthorizationCodeHandler, store: InMemoryCredentialStore
) -> None:
    _seed(store, refresh_token=None)
    with pytest.raises(HandlerError, match="no refresh token"):
        handler.refresh(AuthInfo(username="user@example.com", session_token="session-1"))


def test_refresh_requires_session_and_username(handler: AuthorizationCodeHandler) -> None:
    with pytest.raises(HandlerError):
        handler.refresh(AuthInfo(username="user@example.com"))
    with pytest.raises(HandlerError):
        handler.refresh(AuthInfo(session_token="session-1"))
