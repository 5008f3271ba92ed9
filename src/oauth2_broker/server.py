"""Starlette application exposing the broker over HTTP.

Routes:
    GET  /oauth2/authorize/{client}?relay=...     -> 303 to the provider
    GET  /oauth2/authenticate/{client}?code=...   -> 303 to the relay
    POST /oauth2/refresh/{client}/{username}      -> {"data": true|false}

Endpoints are plain functions, so Starlette runs each request on its
threadpool; the broker core is synchronous.
"""

from __future__ import annotations

import logging
from pathlib import Path

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from oauth2_broker.config import YamlConfigurationResolver
from oauth2_broker.constants import (
    DEFAULT_SESSION_COOKIE,
    QUERY_ERROR,
    QUERY_ERROR_MSG,
    QUERY_RELAY,
)
from oauth2_broker.errors import OAuthServiceError
from oauth2_broker.handlers.registry import HandlerRegistry
from oauth2_broker.service import OAuth2Service
from oauth2_broker.storage import CredentialStore

logger = logging.getLogger(__name__)


def _session_token(request: Request, cookie_name: str) -> str | None:
    token = request.cookies.get(cookie_name)
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def _error_response(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, OAuthServiceError):
        raise exc
    logger.warning(
        f"{request.method} {request.url.path} failed: {exc.error}",
        extra={"status_code": exc.status_code},
    )
    return JSONResponse(
        {QUERY_ERROR: exc.error, QUERY_ERROR_MSG: exc.message},
        status_code=exc.status_code,
    )


def create_app(
    service: OAuth2Service,
    *,
    session_cookie: str = DEFAULT_SESSION_COOKIE,
    debug: bool = False,
) -> Starlette:
    """Build the ASGI application around an already-wired service."""

    def authorize(request: Request) -> Response:
        location = service.authorize(
            request.path_params["client"], request.query_params.get(QUERY_RELAY)
        )
        return RedirectResponse(location, status_code=303)

    def authenticate(request: Request) -> Response:
        query_params = {
            key: request.query_params.getlist(key) for key in request.query_params.keys()
        }
        location = service.authenticate(
            request.path_params["client"],
            query_params,
            _session_token(request, session_cookie),
        )
        return RedirectResponse(location, status_code=303)

    def refresh(request: Request) -> Response:
        result = service.refresh(
            request.path_params["client"],
            request.path_params["username"],
            _session_token(request, session_cookie),
        )
        return JSONResponse(result.model_dump())

    routes = [
        Route("/oauth2/authorize/{client}", authorize, methods=["GET"]),
        Route("/oauth2/authenticate/{client}", authenticate, methods=["GET"]),
        Route("/oauth2/refresh/{client}/{username}", refresh, methods=["POST"]),
    ]
    app = Starlette(
        debug=debug,
        routes=routes,
        exception_handlers={OAuthServiceError: _error_response},
    )
    app.state.service = service
    return app


def create_app_from_config(
    config_path: Path | None = None,
    *,
    credential_store: CredentialStore | None = None,
    debug: bool = False,
) -> Starlette:
    """Load the broker configuration and wire resolver, registry, service and app."""
    resolver = YamlConfigurationResolver.from_path(config_path)
    registry = HandlerRegistry(resolver, credential_store=credential_store)
    settings = resolver.settings
    service = OAuth2Service(registry, default_relay=settings.default_success_redirect)
    logger.info(f"Broker configured with clients: {', '.join(resolver.providers()) or 'none'}")
    return create_app(service, session_cookie=settings.session_cookie, debug=debug)


__all__ = ["create_app", "create_app_from_config"]
