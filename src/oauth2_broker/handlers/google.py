"""Google OAuth2 handler."""

from .base import AuthorizationCodeHandler


class GoogleOAuth2Handler(AuthorizationCodeHandler):
    """Google authorization-code handler with offline access for mail sync."""

    provider_name = "google"

    DEFAULT_AUTHORIZE_URI = "https://accounts.google.com/o/oauth2/v2/auth"
    DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
    DEFAULT_USERINFO_URI = "https://www.googleapis.com/oauth2/v2/userinfo"
    DEFAULT_SCOPE = "https://mail.google.com/ email"
    DEFAULT_USERNAME_FIELD = "email"
    # Without consent + offline Google only returns a refresh token on first approval
    EXTRA_AUTHORIZE_PARAMS = {"access_type": "offline", "prompt": "consent"}


__all__ = ["GoogleOAuth2Handler"]
