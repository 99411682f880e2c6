from __future__ import annotations

import contextlib
from importlib import resources
from typing import Any, Iterator

import psycopg

from .config import get_settings
from .logging import get_logger

logger = get_logger("contactgraph.db")


def get_conn_str() -> str:
    return get_settings().database_url


@contextlib.contextmanager
def get_connection() -> Iterator[psycopg.Connection[Any]]:
    """Autocommit connection; callers open explicit `transaction()` blocks."""
    conn = psycopg.connect(get_conn_str(), autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


def load_schema() -> str:
    return resources.files("contactgraph").joinpath("schema.sql").read_text(encoding="utf-8")


def init_schema(conn: psycopg.Connection[Any]) -> None:
    """Create the contacts table and its indexes if they are missing."""
    with conn.transaction():
        with conn.cursor() as cur:
            cur.execute(load_schema())
    logger.info("schema_initialized")


__all__ = ["get_conn_str", "get_connection", "init_schema", "load_schema"]
