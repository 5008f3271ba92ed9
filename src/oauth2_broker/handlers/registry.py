"""Handler registry: provider identifier -> lazily built handler singleton."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping

from oauth2_broker.config import Configuration, ConfigurationResolver
from oauth2_broker.constants import HANDLER_CLASS_KEY_PREFIX
from oauth2_broker.errors import ConfigurationError, InvalidClientError
from oauth2_broker.storage import CredentialStore, InMemoryCredentialStore

from .base import AuthorizationCodeHandler
from .contracts import OAuth2Handler
from .dummy import DummyOAuth2Handler
from .google import GoogleOAuth2Handler
from .outlook import OutlookOAuth2Handler
from .yahoo import YahooOAuth2Handler

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[Configuration, CredentialStore], OAuth2Handler]

# Implementation identifiers accepted by ``classes.handlers.<provider>``
HANDLER_FACTORIES: Mapping[str, HandlerFactory] = {
    "generic": AuthorizationCodeHandler,
    "google": GoogleOAuth2Handler,
    "yahoo": YahooOAuth2Handler,
    "outlook": OutlookOAuth2Handler,
    "dummy": DummyOAuth2Handler,
}


class HandlerRegistry:
    """Builds and caches one handler per provider identifier.

    Handlers are built on first use from the provider configuration: the
    ``classes.handlers.<provider>`` key names the implementation, which is
    looked up in the factory table and called with the configuration and the
    credential store.

    Lookups of already-built handlers never take the lock; building is
    serialized so each provider is constructed at most once, even when several
    requests for a new provider arrive at the same time.
    """

    def __init__(
        self,
        resolver: ConfigurationResolver,
        *,
        credential_store: CredentialStore | None = None,
        factories: Mapping[str, HandlerFactory] | None = None,
    ):
        self._resolver = resolver
        self._store = credential_store or InMemoryCredentialStore()
        self._factories: dict[str, HandlerFactory] = dict(
            HANDLER_FACTORIES if factories is None else factories
        )
        self._handlers: dict[str, OAuth2Handler] = {}
        self._lock = threading.Lock()

    @property
    def resolver(self) -> ConfigurationResolver:
        return self._resolver

    @property
    def credential_store(self) -> CredentialStore:
        return self._store

    def get_handler(self, provider: str) -> OAuth2Handler:
        """Return the handler for ``provider``, building it on first use.

        Raises:
            InvalidClientError: If the provider is empty or not configured
            ConfigurationError: If the configuration or implementation cannot
                be resolved, or the handler cannot be constructed
        """
        if not provider:
            raise InvalidClientError("A client must be specified")

        handler = self._handlers.get(provider)
        if handler is not None:
            return handler

        with self._lock:
            # Another request may have built it while we waited
            handler = self._handlers.get(provider)
            if handler is None:
                handler = self._build_handler(provider)
                self._handlers[provider] = handler
                logger.info(
                    f"Registered OAuth2 handler for client '{provider}' "
                    f"({handler.__class__.__name__})"
                )
        return handler

    def register_factory(self, name: str, factory: HandlerFactory) -> None:
        """Make an additional implementation identifier available."""
        with self._lock:
            self._factories[name] = factory

    def registered_providers(self) -> list[str]:
        """Providers whose handler has been built."""
        return sorted(self._handlers)

    def clear(self) -> None:
        """Drop every cached handler; they are rebuilt on next use."""
        with self._lock:
            self._handlers.clear()
            logger.debug("Cleared handler cache")

    def _build_handler(self, provider: str) -> OAuth2Handler:
        try:
            config = self._resolver.resolve(provider)
            implementation = config.get_string(f"{HANDLER_CLASS_KEY_PREFIX}{provider}")
        except InvalidClientError:
            raise
        except ConfigurationError as e:
            logger.exception("There was an issue loading the configuration for the client.")
            raise ConfigurationError(
                "There was an issue loading the configuration for the client."
            ) from e

        factory = self._factories.get(implementation)
        if factory is None:
            logger.error(
                f"There was an issue loading the oauth2 handler class for client: {provider}",
                extra={"implementation": implementation},
            )
            raise ConfigurationError(
                f"There was an issue loading the oauth2 handler class for client: {provider}"
            )

        try:
            return factory(config, self._store)
        except Exception as e:
            logger.exception(
                f"There was an issue instantiating the oauth2 handler class for client: {provider}"
            )
            raise ConfigurationError(
                f"There was an issue instantiating the oauth2 handler class for client: {provider}"
            ) from e


__all__ = ["HANDLER_FACTORIES", "HandlerFactory", "HandlerRegistry"]
