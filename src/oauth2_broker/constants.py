"""Constants shared by the broker: query keys, error codes and defaults."""

# Query parameter keys appended to relay redirects
QUERY_ERROR = "error"
QUERY_ERROR_MSG = "error_msg"

# Query parameter keys used by the authorize/authenticate round trip
QUERY_RELAY = "relay"
QUERY_STATE = "state"
QUERY_CODE = "code"

# Error codes sent back to the relay
ERROR_ACCESS_DENIED = "access_denied"
ERROR_INVALID_ZM_AUTH_CODE = "invalid_zm_auth_code"
ERROR_INVALID_ZM_AUTH_CODE_MSG = "Invalid or missing Zimbra session."
ERROR_AUTHENTICATION_ERROR = "authentication_error"

# Relay used when the caller supplied none, or an untrusted one
DEFAULT_SUCCESS_REDIRECT = "/"

# Provider configuration key overriding the default relay for that provider
DEFAULT_SUCCESS_REDIRECT_KEY = "default_success_redirect"

# Cookie carrying the host session token
DEFAULT_SESSION_COOKIE = "ZM_AUTH_TOKEN"

# Configuration key prefix naming the handler implementation of a provider
HANDLER_CLASS_KEY_PREFIX = "classes.handlers."

ENCODING = "utf-8"
