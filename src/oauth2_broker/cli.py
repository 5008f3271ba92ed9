"""Command line interface: ``oauth2-broker``."""

import json
import logging
import logging.handlers
import os
from pathlib import Path

import click

from oauth2_broker.config import YamlConfigurationResolver
from oauth2_broker.errors import OAuthServiceError
from oauth2_broker.handlers.registry import HandlerRegistry
from oauth2_broker.service import OAuth2Service


DEBUG_ENV_VAR = "OAUTH2_BROKER_DEBUG"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"

# httpx logs every request line at INFO, including authorization codes in URLs
_NOISY_LOGGERS = ("httpx", "httpcore")


def debug_enabled(default: bool = False) -> bool:
    """True when OAUTH2_BROKER_DEBUG is "1", "true" or "yes"."""
    value = os.environ.get(DEBUG_ENV_VAR, "").strip().lower()
    if not value:
        return default
    return value in ("1", "true", "yes")


def _rotating_file_handler(log_file: Path, max_bytes: int, backup_count: int) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def configure_logging(
    debug: bool = False,
    log_file: Path | None = None,
    log_level: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Route broker, starlette and uvicorn logs through the root logger.

    Args:
        debug: Log everything at DEBUG (also enabled by OAUTH2_BROKER_DEBUG)
        log_file: Also write logs to this file, rotated at ``max_bytes``
        log_level: Level name used when not in debug mode (default WARNING)
    """
    debug = debug or debug_enabled()
    if debug:
        level = logging.DEBUG
    else:
        level = logging.getLevelName((log_level or "WARNING").upper())
        if not isinstance(level, int):
            level = logging.WARNING

    handlers: list[logging.Handler] = []
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers.append(console)
    if log_file:
        try:
            handlers.append(_rotating_file_handler(log_file, max_bytes, backup_count))
        except OSError as e:
            click.echo(f"Warning: cannot log to {log_file}: {e}", err=True)

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)

    # uvicorn runs with log_config=None; let its loggers reach our handlers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)


def _load_resolver(config_path: Path | None) -> YamlConfigurationResolver:
    try:
        return YamlConfigurationResolver.from_path(config_path)
    except OAuthServiceError as e:
        raise click.ClickException(e.message) from e


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Path to the broker config.yaml (defaults to $OAUTH2_BROKER_CONFIG)",
)


@click.group()
def main() -> None:
    """OAuth2 credential broker for third-party mail and identity providers."""


@main.command(name="serve")
@config_option
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", type=int, default=7070, show_default=True, help="Port to listen on")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
@click.option("--log-file", type=click.Path(path_type=Path, dir_okay=False), help="Log file")
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
def serve(
    config_path: Path | None,
    host: str,
    port: int,
    debug: bool,
    log_file: Path | None,
    log_level: str | None,
) -> None:
    """Start the broker HTTP server.

    \b
    Examples:
        oauth2-broker serve --config config.yaml
        oauth2-broker serve --port 9000 --debug
    """
    import uvicorn

    from oauth2_broker.server import create_app_from_config

    configure_logging(debug=debug, log_file=log_file, log_level=log_level)
    try:
        app = create_app_from_config(config_path, debug=debug)
    except OAuthServiceError as e:
        raise click.ClickException(e.message) from e
    uvicorn.run(app, host=host, port=port, log_config=None)


@main.command(name="providers")
@config_option
@click.option("--json-output", is_flag=True, help="Output in JSON format")
def providers(config_path: Path | None, json_output: bool) -> None:
    """List configured providers and their handler implementation."""
    resolver = _load_resolver(config_path)
    rows = []
    for provider in resolver.providers():
        try:
            config = resolver.resolve(provider)
            implementation = config.get_string(f"classes.handlers.{provider}", "")
        except OAuthServiceError as e:
            implementation = f"<error: {e.message}>"
        rows.append({"provider": provider, "handler": implementation or "<unset>"})

    if json_output:
        click.echo(json.dumps({"status": "ok", "result": rows}, indent=2))
        return
    if not rows:
        click.echo("No providers configured")
    for row in rows:
        click.echo(f"{row['provider']}: {row['handler']}")


@main.command(name="authorize-url")
@config_option
@click.argument("provider")
@click.option("--relay", help="Relative URL to return to after the flow")
def authorize_url(config_path: Path | None, provider: str, relay: str | None) -> None:
    """Print the provider authorization URL for PROVIDER."""
    resolver = _load_resolver(config_path)
    service = OAuth2Service(
        HandlerRegistry(resolver),
        default_relay=resolver.settings.default_success_redirect,
    )
    try:
        click.echo(service.authorize(provider, relay))
    except OAuthServiceError as e:
        raise click.ClickException(f"{e.error}: {e.message}") from e


if __name__ == "__main__":
    main()
