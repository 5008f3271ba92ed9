"""Provider handlers and the registry that builds them.

This module contains the handler contract, the shared authorization-code
implementation and the concrete providers.
"""

from .base import AuthorizationCodeHandler
from .contracts import AuthInfo, ErrorKind, GrantResult, HandlerError, OAuth2Handler
from .dummy import DummyOAuth2Handler
from .google import GoogleOAuth2Handler
from .outlook import OutlookOAuth2Handler
from .registry import HANDLER_FACTORIES, HandlerFactory, HandlerRegistry
from .yahoo import YahooOAuth2Handler

__all__ = [
    "AuthInfo",
    "AuthorizationCodeHandler",
    "DummyOAuth2Handler",
    "ErrorKind",
    "GoogleOAuth2Handler",
    "GrantResult",
    "HANDLER_FACTORIES",
    "HandlerError",
    "HandlerFactory",
    "HandlerRegistry",
    "OAuth2Handler",
    "OutlookOAuth2Handler",
    "YahooOAuth2Handler",
]
