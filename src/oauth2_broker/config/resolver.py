"""Configuration resolvers: provider identifier -> Configuration."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from oauth2_broker.errors import ConfigurationError, InvalidClientError

from .configuration import Configuration
from .loader import flatten, load_broker_config
from .models import BrokerConfigModel, BrokerSettingsModel
from .references import resolve_value

logger = logging.getLogger(__name__)


@runtime_checkable
class ConfigurationResolver(Protocol):
    """Produces the configuration view of a provider."""

    @property
    def settings(self) -> BrokerSettingsModel:
        """Broker-wide settings."""

    def providers(self) -> list[str]:
        """Identifiers of all configured providers."""

    def resolve(self, provider: str) -> Configuration:
        """Return the configuration of ``provider``.

        Raises:
            InvalidClientError: If the provider is not configured
            ConfigurationError: If the configuration cannot be built
        """


class YamlConfigurationResolver(ConfigurationResolver):
    """Resolver backed by a parsed broker config file.

    The configuration of a provider is the flattened ``common`` section, the
    ``classes`` section (under the ``classes.`` prefix) and the provider's own
    section, in that order of precedence (later wins). Value references are
    resolved once, when the configuration is first built.
    """

    def __init__(self, config: BrokerConfigModel):
        self._config = config
        self._cache: dict[str, Configuration] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_path(cls, config_path: Path | None = None) -> YamlConfigurationResolver:
        """Load the config file and build a resolver from it.

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        try:
            return cls(load_broker_config(config_path))
        except (FileNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unable to load broker configuration: {e}") from e

    @property
    def settings(self) -> BrokerSettingsModel:
        return self._config.oauth2

    def providers(self) -> list[str]:
        return sorted(self._config.providers)

    def resolve(self, provider: str) -> Configuration:
        if not provider:
            raise InvalidClientError("A client must be specified")

        cached = self._cache.get(provider)
        if cached is not None:
            return cached

        if provider not in self._config.providers:
            raise InvalidClientError(f"Invalid client: {provider}")

        with self._lock:
            cached = self._cache.get(provider)
            if cached is None:
                cached = Configuration(provider, self._build_values(provider))
                self._cache[provider] = cached
                logger.debug(
                    f"Built configuration for client '{provider}'", extra={"keys": len(cached)}
                )
        return cached

    def _build_values(self, provider: str) -> dict[str, str]:
        values = flatten(self._config.common)
        values.update(flatten(self._config.classes, "classes."))
        values.update(flatten(self._config.providers[provider]))

        resolved: dict[str, str] = {}
        for key, value in values.items():
            try:
                resolved[key] = resolve_value(value)
            except (ValueError, FileNotFoundError) as e:
                raise ConfigurationError(
                    f"Unable to resolve configuration key '{key}' for client '{provider}'"
                ) from e
        return resolved


__all__ = ["ConfigurationResolver", "YamlConfigurationResolver"]
