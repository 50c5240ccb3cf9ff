from __future__ import annotations

import json
import logging
import pathlib
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError

from cache_renewal.batch import load_batch_file
from cache_renewal.config import get_settings
from cache_renewal.connection import ConnectionManager, open_connection
from cache_renewal.credentials import RedisCredentials
from cache_renewal.engine import RenewalEngine, RenewalItem, RenewalResult, run_batch
from cache_renewal.errors import ConfigurationError, RenewalError

app = typer.Typer(no_args_is_help=True, help="Renew Redis cache keys before they expire")

# Overridable in tests
connection_manager_factory = ConnectionManager


def _credentials(
    host: Optional[str],
    port: Optional[int],
    database: Optional[int],
    ssl: Optional[bool],
) -> RedisCredentials:
    overrides = {"host": host, "port": port, "database": database, "ssl": ssl}
    try:
        return RedisCredentials(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid Redis credentials: {exc}") from exc


def _emit(result: RenewalResult) -> None:
    payload = {"renewed": result.renewed, "not_renewed": result.not_renewed}
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str))


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(1)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (defaults to CACHE_RENEWAL_LOG_LEVEL or WARNING)."
    ),
) -> None:
    """Renew Redis cache keys before they expire."""
    if log_level is None:
        try:
            log_level = get_settings().log_level
        except ValidationError as exc:
            _fail(ConfigurationError(f"Invalid settings: {exc}"))
    level = log_level.upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING))


@app.command("renew")
def renew(
    key: str = typer.Argument(..., help="Cache key to check and potentially renew"),
    ttl: Optional[int] = typer.Option(None, "--ttl", help="Renewal TTL in seconds."),
    threshold: Optional[int] = typer.Option(
        None, "--threshold", help="Renew when this percentage of TTL or less remains (1-99)."
    ),
    original_ttl: Optional[int] = typer.Option(
        None, "--original-ttl", help="TTL the key was created with (defaults to the renewal TTL)."
    ),
    include_value: bool = typer.Option(
        True, "--include-value/--no-include-value", help="Include the cached value in the output."
    ),
    property_name: Optional[str] = typer.Option(
        None, "--property-name", help="Output property for the cached value."
    ),
    json_parse: bool = typer.Option(False, "--json-parse", help="Parse the cached value as JSON."),
    include_metadata: bool = typer.Option(
        True,
        "--include-metadata/--no-include-metadata",
        help="Include TTL and renewal status fields in the output.",
    ),
    payload: Optional[str] = typer.Option(
        None, "--payload", help="JSON object copied into the output record."
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Redis host."),
    port: Optional[int] = typer.Option(None, "--port", help="Redis port."),
    database: Optional[int] = typer.Option(None, "--db", help="Redis database index."),
    ssl: Optional[bool] = typer.Option(None, "--ssl/--no-ssl", help="Connect using TLS."),
) -> None:
    """Check a single key and renew it when its TTL is below the threshold."""
    try:
        data = json.loads(payload) if payload else {}
        if not isinstance(data, dict):
            raise ConfigurationError("--payload must be a JSON object")
        config = get_settings().default_config(
            renewal_ttl=ttl,
            renewal_threshold=threshold,
            original_ttl=original_ttl,
            include_value=include_value,
            property_name=property_name,
            json_parse=json_parse,
            include_metadata=include_metadata,
        )
    except (ValueError, ConfigurationError) as exc:
        # pydantic ValidationError and JSONDecodeError are ValueError subclasses
        _fail(exc)

    engine = RenewalEngine(connection_manager_factory())
    try:
        result = run_batch(
            [RenewalItem(key=key, config=config, payload=data)],
            _credentials(host, port, database, ssl),
            engine=engine,
        )
    except RenewalError as exc:
        _fail(exc)
    _emit(result)


@app.command("batch")
def batch(
    path: pathlib.Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML or JSON batch file"),
    host: Optional[str] = typer.Option(None, "--host", help="Redis host."),
    port: Optional[int] = typer.Option(None, "--port", help="Redis port."),
    database: Optional[int] = typer.Option(None, "--db", help="Redis database index."),
    ssl: Optional[bool] = typer.Option(None, "--ssl/--no-ssl", help="Connect using TLS."),
) -> None:
    """Process every key in a batch file over one connection."""
    engine = RenewalEngine(connection_manager_factory())
    try:
        items = load_batch_file(path)
        result = run_batch(items, _credentials(host, port, database, ssl), engine=engine)
    except RenewalError as exc:
        _fail(exc)
    _emit(result)


@app.command("ping")
def ping(
    host: Optional[str] = typer.Option(None, "--host", help="Redis host."),
    port: Optional[int] = typer.Option(None, "--port", help="Redis port."),
    database: Optional[int] = typer.Option(None, "--db", help="Redis database index."),
    ssl: Optional[bool] = typer.Option(None, "--ssl/--no-ssl", help="Connect using TLS."),
) -> None:
    """Check that the Redis store is reachable with the configured credentials."""
    manager = connection_manager_factory()
    try:
        with open_connection(_credentials(host, port, database, ssl), manager) as connection:
            ready = manager.is_ready(connection)
    except RenewalError as exc:
        _fail(exc)
    typer.echo("ok" if ready else "not ready")


if __name__ == "__main__":  # pragma: no cover
    app()
