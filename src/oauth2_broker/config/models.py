"""Pydantic models for the broker configuration file.

The configuration file has the following structure:

```yaml
oauth2:
  default_success_redirect: /
  session_cookie: ZM_AUTH_TOKEN
common:
  http:
    timeout: 30
classes:
  handlers:
    yahoo: yahoo
    google: google
providers:
  yahoo:
    client_id: ${YAHOO_CLIENT_ID}
    client_secret: file:///run/secrets/yahoo_secret
    redirect_uri: https://mail.example.com/oauth2/authenticate/yahoo
```
"""

from typing import Any

from pydantic import ConfigDict, Field

from oauth2_broker.constants import DEFAULT_SESSION_COOKIE, DEFAULT_SUCCESS_REDIRECT
from oauth2_broker.models import BrokerBaseModel


class BrokerSettingsModel(BrokerBaseModel):
    """Broker-wide settings (the ``oauth2`` section).

    Attributes:
        default_success_redirect: Relay used when the caller's relay is missing
            or untrusted
        session_cookie: Name of the cookie carrying the host session token
    """

    default_success_redirect: str = DEFAULT_SUCCESS_REDIRECT
    session_cookie: str = DEFAULT_SESSION_COOKIE


class BrokerConfigModel(BrokerBaseModel):
    """Root of the configuration file.

    ``common``, ``classes`` and each entry of ``providers`` are free-form
    nested mappings; they are flattened to dotted string keys when a
    provider configuration is built.
    """

    # Allow mutability for config merging
    model_config = ConfigDict(extra="forbid", frozen=False)

    oauth2: BrokerSettingsModel = Field(default_factory=BrokerSettingsModel)
    common: dict[str, Any] = Field(default_factory=dict)
    classes: dict[str, Any] = Field(default_factory=dict)
    providers: dict[str, dict[str, Any]] = Field(default_factory=dict)


__all__ = ["BrokerSettingsModel", "BrokerConfigModel"]
