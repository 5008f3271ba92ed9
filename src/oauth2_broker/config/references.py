"""
Value references for configuration files.

Secrets should not live in the YAML file itself. A value may instead reference
an environment variable (``${VAR_NAME}``) or a file (``file:///path``); the
reference is resolved when a provider configuration is built.
"""

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Base class for value reference resolvers."""

    @property
    def name(self) -> str:
        raise NotImplementedError

    def can_resolve(self, reference: str) -> bool:
        raise NotImplementedError

    def resolve(self, reference: str) -> str:
        raise NotImplementedError


class EnvResolver(ReferenceResolver):
    """Resolver for environment variable references like ${VAR_NAME}."""

    ENV_VAR_PATTERN = re.compile(r"\${([A-Za-z0-9_]+)}")

    @property
    def name(self) -> str:
        return "env"

    def can_resolve(self, reference: str) -> bool:
        return self.ENV_VAR_PATTERN.search(reference) is not None

    def resolve(self, reference: str) -> str:
        def _substitute(match: re.Match[str]) -> str:
            var_name = match.group(1)
            value = os.environ.get(var_name)
            if value is None:
                raise ValueError(f"Environment variable not found: {var_name}")
            return value

        return self.ENV_VAR_PATTERN.sub(_substitute, reference)


class FileResolver(ReferenceResolver):
    """Resolver for file references like file:///path/to/file."""

    FILE_URL_PATTERN = re.compile(r"file://(.+)")

    @property
    def name(self) -> str:
        return "file"

    def can_resolve(self, reference: str) -> bool:
        return reference.startswith("file://")

    def resolve(self, reference: str) -> str:
        match = self.FILE_URL_PATTERN.match(reference)
        if not match:
            raise ValueError(f"Invalid file reference: {reference}")

        file_path = Path(match.group(1))
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            return file_path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ValueError(f"Failed to read file {file_path}: {e}") from e


DEFAULT_RESOLVERS: tuple[ReferenceResolver, ...] = (FileResolver(), EnvResolver())


def resolve_value(
    value: str, resolvers: tuple[ReferenceResolver, ...] = DEFAULT_RESOLVERS
) -> str:
    """Resolve ``value`` with the first resolver that accepts it.

    Values no resolver recognises are returned unchanged.

    Raises:
        ValueError: If the reference cannot be resolved
        FileNotFoundError: If a referenced file does not exist
    """
    for resolver in resolvers:
        if resolver.can_resolve(value):
            logger.debug(f"Resolving {resolver.name} reference")
            return resolver.resolve(value)
    return value


__all__ = [
    "ReferenceResolver",
    "EnvResolver",
    "FileResolver",
    "DEFAULT_RESOLVERS",
    "resolve_value",
]
