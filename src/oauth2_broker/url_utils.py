"""Relay validation and query building for post-flow redirects."""

import logging
import re
from collections.abc import Mapping
from urllib.parse import unquote_plus, urlencode, urlsplit, urlunsplit

from oauth2_broker.constants import DEFAULT_SUCCESS_REDIRECT, ENCODING

logger = logging.getLogger(__name__)

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
# Browsers drop these while resolving a Location header
_IGNORED_BY_BROWSERS = re.compile(r"[\x00-\x1f\x7f]")


def _decode(url: str) -> str:
    """Strictly percent-decode ``url`` (``+`` is a space).

    Raises:
        ValueError: On a truncated or non-hex escape, or invalid UTF-8
    """
    if _MALFORMED_ESCAPE.search(url):
        raise ValueError("Malformed percent escape")
    return unquote_plus(url, encoding=ENCODING, errors="strict")


def validate_relay(url: str | None, default: str = DEFAULT_SUCCESS_REDIRECT) -> str:
    """Return the decoded relay if it is a relative URL, otherwise ``default``.

    Only relative targets are trusted so the relay cannot be used to redirect
    the browser to an arbitrary external host.

    Args:
        url: The (possibly percent-encoded) relay supplied by the caller
        default: Relay to use when ``url`` is empty, undecodable or absolute

    Returns:
        A relative URL
    """
    if not url:
        return default

    try:
        decoded = _decode(url)
    except ValueError:
        logger.info("Unable to decode relay parameter.")
        return default

    if _IGNORED_BY_BROWSERS.search(decoded):
        logger.info("Ignoring relay URI with control characters.")
        return default

    # Browsers treat backslashes like slashes, so "/\\host" is network-path too
    normalized = decoded.replace("\\", "/").lstrip()
    try:
        parts = urlsplit(normalized)
    except ValueError:
        logger.info("Invalid relay URI syntax found.")
        return default

    # "///host" splits with an empty netloc but browsers still resolve it to host
    if parts.scheme or parts.netloc or normalized.startswith("//"):
        logger.info("Ignoring absolute relay URI.", extra={"relay_host": parts.netloc})
        return default

    return decoded


def add_query_params(path: str, params: Mapping[str, str] | None) -> str:
    """Add query parameters to a path.

    An empty path or param map results in no change; pairs with an empty key
    or value are ignored. Existing query parameters and the fragment are kept
    as they are.

    Returns:
        The path with added query parameters, or the original path if the
        params could not be added
    """
    if not path or not params:
        return path

    pairs = [(key, value) for key, value in params.items() if key and value]
    if not pairs:
        return path

    try:
        parts = urlsplit(path)
        query = f"{parts.query}&{urlencode(pairs)}" if parts.query else urlencode(pairs)
        return urlunsplit(parts._replace(query=query))
    except ValueError:
        logger.warning(f"There was an issue adding query parameters to the path: {path}")
    # return the original path without the added params if we failed
    return path


__all__ = ["validate_relay", "add_query_params"]
