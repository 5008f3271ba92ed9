"""Immutable per-provider configuration view."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping

from oauth2_broker.errors import ConfigurationError

_MISSING = object()
_LIST_SEPARATOR = re.compile(r"[\s,]+")


class Configuration(Mapping[str, str]):
    """Read-only mapping of dotted keys to string values for one provider.

    A copy of the values is taken at construction and no mutating methods are
    exposed, so a Configuration can be shared freely between threads.

    Example:
        >>> config = Configuration("yahoo", {"client_id": "abc"})
        >>> config.get_string("client_id")
        'abc'
    """

    __slots__ = ("_provider", "_values")

    def __init__(self, provider: str, values: Mapping[str, str] | None = None):
        self._provider = provider
        self._values: dict[str, str] = dict(values or {})

    @property
    def provider(self) -> str:
        return self._provider

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        # Values hold secrets; only keys are shown
        return f"Configuration(provider={self._provider!r}, keys={sorted(self._values)!r})"

    def get_string(self, key: str, default: str | object = _MISSING) -> str:
        """Return the value for ``key``.

        Raises:
            ConfigurationError: If the key is missing and no default was given
        """
        value = self._values.get(key)
        if value is None or value == "":
            if default is _MISSING:
                raise ConfigurationError(
                    f"Missing configuration key '{key}' for client '{self._provider}'"
                )
            return default  # type: ignore[return-value]
        return value

    def get_int(self, key: str, default: int) -> int:
        raw = self.get_string(key, "")
        if not raw:
            return default
        try:
            return int(float(raw))
        except ValueError as e:
            raise ConfigurationError(
                f"Configuration key '{key}' for client '{self._provider}' is not a number"
            ) from e

    def get_list(self, key: str, default: list[str] | None = None) -> list[str]:
        """Return a comma or whitespace separated value as a list."""
        raw = self.get_string(key, "")
        if not raw:
            return list(default or [])
        return [item for item in _LIST_SEPARATOR.split(raw) if item]


__all__ = ["Configuration"]
