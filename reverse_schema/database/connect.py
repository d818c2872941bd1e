"""Introspector factory keyed by dialect."""

from typing import Any, Dict, Optional, Type

from ..config import ConnectionConfig, Dialect
from ..events import EventSink
from .base import SchemaIntrospector
from .duckdb import DuckDBIntrospector
from .mysql import MySQLIntrospector
from .postgres import PostgresIntrospector
from .sqlite import SQLiteIntrospector

INTROSPECTORS: Dict[Dialect, Type[SchemaIntrospector]] = {
    Dialect.MYSQL: MySQLIntrospector,
    Dialect.POSTGRESQL: PostgresIntrospector,
    Dialect.SQLITE: SQLiteIntrospector,
    Dialect.DUCKDB: DuckDBIntrospector,
}


def create_introspector(
    config: ConnectionConfig,
    connection: Any = None,
    events: Optional[EventSink] = None,
) -> SchemaIntrospector:
    """Create the introspector for ``config.driver``.

    Driver packages are imported when the connection is opened, not here,
    so building an introspector for an uninstalled driver succeeds until
    ``connect()`` is called.
    """
    introspector_class = INTROSPECTORS[config.driver]
    return introspector_class(config, connection=connection, events=events)
