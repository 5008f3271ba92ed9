"""
Global pytest configuration and fixtures.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from oauth2_broker.config import YamlConfigurationResolver, parse_broker_config
from oauth2_broker.handlers import HandlerRegistry
from oauth2_broker.service import OAuth2Service
from oauth2_broker.storage import InMemoryCredentialStore


def _base_document() -> dict[str, Any]:
    return {
        "oauth2": {"default_success_redirect": "/home"},
        "common": {"http": {"timeout": 5}},
        "classes": {"handlers": {"dummy": "dummy", "yahoo": "yahoo"}},
        "providers": {
            "dummy": {"username": "user@dummy.example"},
            "yahoo": {
                "client_id": "yahoo-cid",
                "client_secret": "yahoo-secret",
                "redirect_uri": "https://mail.example.com/oauth2/authenticate/yahoo",
            },
        },
    }


@pytest.fixture
def broker_document() -> dict[str, Any]:
    """A fresh, mutable configuration document for each test."""
    return _base_document()


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a configuration document to a temporary config.yaml."""

    def _write(document: dict[str, Any]) -> Path:
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(document))
        return path

    return _write


@pytest.fixture
def resolver(broker_document: dict[str, Any]) -> YamlConfigurationResolver:
    return YamlConfigurationResolver(parse_broker_config(broker_document))


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def registry(
    resolver: YamlConfigurationResolver, credential_store: InMemoryCredentialStore
) -> HandlerRegistry:
    return HandlerRegistry(resolver, credential_store=credential_store)


@pytest.fixture
def service(registry: HandlerRegistry) -> OAuth2Service:
    return OAuth2Service(registry, default_relay="/home")


@pytest.fixture(autouse=True)
def isolate_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep config discovery away from the developer's real files."""
    monkeypatch.delenv("OAUTH2_BROKER_CONFIG", raising=False)
    monkeypatch.delenv("OAUTH2_BROKER_DEBUG", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
