"""Configuration loader for the broker.

This module provides functions to load and validate the broker configuration
from a config.yaml file, and to flatten its nested sections into the dotted
keys used by provider configurations.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import BrokerConfigModel

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "OAUTH2_BROKER_CONFIG"


def find_config_path() -> Path | None:
    """Locate the configuration file.

    Looks for:
        1. OAUTH2_BROKER_CONFIG environment variable
        2. ~/.oauth2-broker/config.yaml
        3. ./config.yaml
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    candidates = [Path.home() / ".oauth2-broker" / "config.yaml", Path.cwd() / "config.yaml"]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_broker_config(config_path: Path | None = None) -> BrokerConfigModel:
    """Load the broker configuration from a YAML file.

    Args:
        config_path: Optional path to the config.yaml file. If not provided,
            the path is discovered with :func:`find_config_path`.

    Returns:
        BrokerConfigModel with the broker settings and provider sections

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValueError: If the file cannot be parsed or is invalid
    """
    if config_path is None:
        config_path = find_config_path()
        if config_path is None:
            logger.info("No broker config file found, using empty configuration")
            return BrokerConfigModel()

    if not config_path.exists():
        raise FileNotFoundError(f"Broker config file not found at {config_path}")

    logger.debug(f"Loading broker config from: {config_path}")

    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to parse YAML config file {config_path}: {e}") from e

    if not raw_config:
        logger.info("Empty broker config file, using empty configuration")
        return BrokerConfigModel()

    if not isinstance(raw_config, Mapping):
        raise ValueError(f"Broker config file {config_path} must contain a mapping")

    return parse_broker_config(raw_config)


def parse_broker_config(raw_config: Mapping[str, Any]) -> BrokerConfigModel:
    """Validate an already-parsed configuration document.

    Raises:
        ValueError: If the document is invalid
    """
    document = dict(raw_config)
    # A provider listed without settings ("yahoo:") parses as None
    providers = document.get("providers") or {}
    if not isinstance(providers, Mapping):
        raise ValueError("Invalid broker config: 'providers' must be a mapping")
    document["providers"] = {str(name): section or {} for name, section in providers.items()}
    for key in ("common", "classes", "oauth2"):
        if document.get(key) is None:
            document.pop(key, None)

    try:
        return BrokerConfigModel.model_validate(document)
    except ValidationError as e:
        raise ValueError(f"Invalid broker config: {e}") from e


def flatten(section: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested mappings into dotted string keys.

    Scalars become strings, booleans become ``true``/``false``, lists are
    joined with spaces and ``None`` values are dropped.

    Example:
        >>> flatten({"classes": {"handlers": {"yahoo": "yahoo"}}})
        {'classes.handlers.yahoo': 'yahoo'}
    """
    flat: dict[str, str] = {}
    for key, value in section.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten(value, f"{dotted}."))
        elif value is None:
            continue
        elif isinstance(value, bool):
            flat[dotted] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            flat[dotted] = " ".join(str(item) for item in value)
        else:
            flat[dotted] = str(value)
    return flat


__all__ = [
    "CONFIG_ENV_VAR",
    "find_config_path",
    "load_broker_config",
    "parse_broker_config",
    "flatten",
]
