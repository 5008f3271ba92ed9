"""Outlook (Microsoft identity platform) OAuth2 handler."""

from .base import AuthorizationCodeHandler


class OutlookOAuth2Handler(AuthorizationCodeHandler):
    """Outlook authorization-code handler using the v2.0 endpoints."""

    provider_name = "outlook"

    DEFAULT_AUTHORIZE_URI = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
    DEFAULT_TOKEN_URI = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
    DEFAULT_USERINFO_URI = "https://graph.microsoft.com/v1.0/me"
    DEFAULT_SCOPE = "openid email offline_access User.Read"
    DEFAULT_USERNAME_FIELD = "userPrincipalName"
    EXTRA_AUTHORIZE_PARAMS = {"response_mode": "query"}


__all__ = ["OutlookOAuth2Handler"]
