"""
Broker configuration: file loading, value references and per-provider views.
"""

from .configuration import Configuration
from .loader import CONFIG_ENV_VAR, flatten, load_broker_config, parse_broker_config
from .models import BrokerConfigModel, BrokerSettingsModel
from .resolver import ConfigurationResolver, YamlConfigurationResolver

__all__ = [
    "Configuration",
    "ConfigurationResolver",
    "YamlConfigurationResolver",
    "BrokerConfigModel",
    "BrokerSettingsModel",
    "CONFIG_ENV_VAR",
    "flatten",
    "load_broker_config",
    "parse_broker_config",
]
