from __future__ import annotations

import json
from typing import Optional

import typer
import uvicorn

from .app import create_app
from .config import get_settings
from .db import get_connection, init_schema
from .logging import setup_logging
from .repository import PostgresContactStore
from .services import IdentityResolver

cli = typer.Typer(help="Identity reconciliation service")


@cli.command()
def serve(host: str = "0.0.0.0", port: int = 3000) -> None:
    """Start the HTTP service using uvicorn."""

    app = create_app()
    uvicorn.run(app, host=host, port=port, log_level="info", lifespan="on")


@cli.command("init-db")
def init_db() -> None:
    """Create the contacts schema in DATABASE_URL."""

    setup_logging(get_settings().log_level)
    with get_connection() as conn:
        init_schema(conn)
    typer.echo("schema ready")


@cli.command()
def identify(
    email: Optional[str] = typer.Option(None, help="Email address to resolve"),
    phone: Optional[str] = typer.Option(None, help="Phone number to resolve"),
) -> None:
    """Resolve one identity against DATABASE_URL and print the response."""

    if not (email or phone):
        raise typer.BadParameter("pass --email, --phone or both")
    settings = get_settings()
    setup_logging(settings.log_level)
    with get_connection() as conn:
        store = PostgresContactStore(conn, lock_timeout_ms=settings.lock_timeout_ms)
        summary = IdentityResolver(store, max_attempts=settings.max_attempts).identify(email=email, phone_number=phone)
    typer.echo(json.dumps({"contact": summary.model_dump(by_alias=True)}, indent=2))


if __name__ == "__main__":
    cli()
