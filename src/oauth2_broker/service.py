"""OAuth2Service sequences the authorize / authenticate / refresh flows over provider handlers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

from oauth2_broker.constants import (
    DEFAULT_SUCCESS_REDIRECT,
    DEFAULT_SUCCESS_REDIRECT_KEY,
    ERROR_ACCESS_DENIED,
    ERROR_AUTHENTICATION_ERROR,
    ERROR_INVALID_ZM_AUTH_CODE,
    ERROR_INVALID_ZM_AUTH_CODE_MSG,
    QUERY_ERROR,
    QUERY_ERROR_MSG,
)
from oauth2_broker.errors import OAuthServiceError
from oauth2_broker.handlers.contracts import AuthInfo, HandlerError, OAuth2Handler
from oauth2_broker.handlers.registry import HandlerRegistry
from oauth2_broker.models import ResponseObject
from oauth2_broker.url_utils import add_query_params, validate_relay

logger = logging.getLogger(__name__)

QueryParams = Mapping[str, Sequence[str] | None]


def _attempt(step: Callable[[], object], provider: str) -> HandlerError | None:
    """Run one handler step and return its failure instead of raising it."""
    try:
        step()
    except HandlerError as e:
        return e
    except Exception as e:
        logger.exception(f"Unexpected handler failure for client '{provider}'")
        return HandlerError.from_exception(e)
    return None


class OAuth2Service:
    """Request-level workflow shared by every provider.

    The service resolves the provider handler through the registry, lets the
    handler validate the callback and exchange the grant, and turns every
    failure after handler resolution into ``error``/``error_msg`` query
    parameters on the relay redirect.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        *,
        default_relay: str = DEFAULT_SUCCESS_REDIRECT,
    ):
        self.registry = registry
        self.default_relay = default_relay

    def authorize(self, client: str, relay: str | None) -> str:
        """Return the provider authorization URL for ``client``.

        Raises:
            InvalidClientError: If the client is unknown
            ConfigurationError: If the handler cannot be built
        """
        handler = self.registry.get_handler(client)
        location = handler.authorize(relay)
        logger.info("authorize: redirecting to provider", extra={"client": client})
        return location

    def authenticate(
        self, client: str, query_params: QueryParams, session_token: str | None
    ) -> str:
        """Complete the provider callback and return the relay redirect URL.

        Only handler resolution may raise; every later failure is reported
        through the ``error`` and ``error_msg`` query parameters.

        Raises:
            InvalidClientError: If the client is unknown
            ConfigurationError: If the handler cannot be built
        """
        handler = self.registry.get_handler(client)
        try:
            keys = handler.get_authenticate_param_keys()
        except Exception as e:
            logger.exception(f"Unable to read callback parameter keys for client '{client}'")
            params: dict[str, str] = {}
            error_params = {QUERY_ERROR: HandlerError.from_exception(e).code}
        else:
            params = self.get_params(keys, query_params)
            error_params = self._authenticate_errors(client, handler, params, session_token)

        relay: str | None = None
        try:
            relay = handler.get_relay(params)
        except Exception:
            logger.exception(f"Unable to read relay for client '{client}'")

        if error_params:
            logger.info(
                "authenticate: flow failed",
                extra={"client": client, "error": error_params[QUERY_ERROR]},
            )
        return add_query_params(validate_relay(relay, self._default_relay(client)), error_params)

    def refresh(
        self, client: str, username: str, session_token: str | None
    ) -> ResponseObject[bool]:
        """Refresh the stored credential of ``username`` for ``client``.

        Raises:
            InvalidClientError: If the client is unknown
            ConfigurationError: If the handler cannot be built
            OAuthServiceError: If the handler fails
        """
        handler = self.registry.get_handler(client)
        auth_info = AuthInfo(client_id=client, username=username, session_token=session_token)
        return ResponseObject[bool](data=handler.refresh(auth_info))

    @staticmethod
    def get_params(expected: Sequence[str], query_params: QueryParams) -> dict[str, str]:
        """Pick the first value of every expected key present in the query."""
        found: dict[str, str] = {}
        for key in expected:
            values = query_params.get(key)
            if values:
                found[key] = values[0]
        return found

    def _default_relay(self, client: str) -> str:
        """Relay fallback for ``client``: its own ``default_success_redirect`` if set."""
        try:
            config = self.registry.resolver.resolve(client)
        except OAuthServiceError:
            logger.exception(f"Unable to read default relay for client '{client}'")
            return self.default_relay
        return config.get_string(DEFAULT_SUCCESS_REDIRECT_KEY, self.default_relay)

    def _authenticate_errors(
        self,
        client: str,
        handler: OAuth2Handler,
        params: dict[str, str],
        session_token: str | None,
    ) -> dict[str, str]:
        """Run validation, session check and exchange; return the first failure as params."""
        failure = _attempt(lambda: handler.verify_authenticate_params(params), client)
        if failure is not None:
            if failure.is_permission_denied:
                return {QUERY_ERROR: ERROR_ACCESS_DENIED, QUERY_ERROR_MSG: failure.message}
            return {QUERY_ERROR: failure.code}

        # Without a host session there is no account to attach the credential to
        if not session_token:
            return {
                QUERY_ERROR: ERROR_INVALID_ZM_AUTH_CODE,
                QUERY_ERROR_MSG: ERROR_INVALID_ZM_AUTH_CODE_MSG,
            }

        auth_info = AuthInfo(params=params, session_token=session_token)
        failure = _attempt(lambda: handler.authenticate(auth_info), client)
        if failure is not None:
            # Permission failures carry no message so provider detail is not echoed
            if failure.is_permission_denied:
                return {QUERY_ERROR: ERROR_ACCESS_DENIED}
            return {QUERY_ERROR: ERROR_AUTHENTICATION_ERROR, QUERY_ERROR_MSG: failure.message}

        return {}


__all__ = ["OAuth2Service", "QueryParams"]
