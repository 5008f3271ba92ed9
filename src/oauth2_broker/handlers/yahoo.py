"""Yahoo OAuth2 handler."""

from .base import AuthorizationCodeHandler


class YahooOAuth2Handler(AuthorizationCodeHandler):
    """Yahoo authorization-code handler.

    Yahoo expects client credentials as HTTP basic auth on the token endpoint.
    """

    provider_name = "yahoo"

    DEFAULT_AUTHORIZE_URI = "https://api.login.yahoo.com/oauth2/request_auth"
    DEFAULT_TOKEN_URI = "https://api.login.yahoo.com/oauth2/get_token"
    DEFAULT_USERINFO_URI = "https://api.login.yahoo.com/openid/v1/userinfo"
    DEFAULT_SCOPE = "mail-r sdct-r openid email"
    DEFAULT_USERNAME_FIELD = "email"
    TOKEN_AUTH_METHOD = "basic"


__all__ = ["YahooOAuth2Handler"]
