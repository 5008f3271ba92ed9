"""OAuth2 credential broker.

Mediates the OAuth2 authorization-code flow for third-party providers
(Yahoo, Google, Outlook, ...) behind one authorize / authenticate / refresh
contract for a host application.

## Quick Example

```python
from pathlib import Path

from oauth2_broker import HandlerRegistry, OAuth2Service, YamlConfigurationResolver

resolver = YamlConfigurationResolver.from_path(Path("config.yaml"))
service = OAuth2Service(HandlerRegistry(resolver))

# Browser is sent to the provider...
location = service.authorize("yahoo", "/mail")

# ...and comes back to the authenticate callback
relay = service.authenticate("yahoo", {"code": ["abc"], "state": ["/mail"]}, session_token)
```
"""

from .config import Configuration, ConfigurationResolver, YamlConfigurationResolver
from .errors import (
    ConfigurationError,
    InvalidClientError,
    OAuth2ErrorCode,
    OAuthServiceError,
    ServiceNotAvailableError,
)
from .handlers import AuthInfo, ErrorKind, HandlerError, HandlerRegistry, OAuth2Handler
from .models import ResponseObject
from .service import OAuth2Service
from .storage import CredentialStore, InMemoryCredentialStore, OAuthCredential
from .url_utils import add_query_params, validate_relay

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "Configuration",
    "ConfigurationResolver",
    "YamlConfigurationResolver",
    # Errors
    "OAuth2ErrorCode",
    "OAuthServiceError",
    "ConfigurationError",
    "InvalidClientError",
    "ServiceNotAvailableError",
    "HandlerError",
    "ErrorKind",
    # Handlers
    "AuthInfo",
    "OAuth2Handler",
    "HandlerRegistry",
    # Service
    "OAuth2Service",
    "ResponseObject",
    # Storage
    "CredentialStore",
    "InMemoryCredentialStore",
    "OAuthCredential",
    # URL helpers
    "add_query_params",
    "validate_relay",
]
