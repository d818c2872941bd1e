"""Abstract base class for schema introspection."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import ConnectionConfig, Dialect
from ..errors import ReverseSchemaError
from ..events import EngineEvent, EventSink, EventType, LoggingEventSink
from .models import (
    IntrospectionResult,
    RawColumn,
    RawForeignKey,
    RawIndex,
    RawSchema,
    RawTable,
    TableResult,
    TableWarning,
)

logger = logging.getLogger(__name__)


def select_tables(
    available: Iterable[str],
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
    system_prefixes: Sequence[str] = (),
    system_names: Sequence[str] = (),
) -> Tuple[List[str], List[str]]:
    """Apply system-table, include and exclude filtering to a table list.

    The include filter is applied first, then the exclude filter; a name in
    both lists is excluded. Included names that the catalog does not have
    are returned separately so the caller can warn about them.

    Args:
        available: Table names reported by the catalog
        include: Tables to keep (empty keeps everything)
        exclude: Tables to drop
        system_prefixes: Name prefixes of system tables that are never selected
        system_names: Exact (case-insensitive) names of system tables that are never selected

    Returns:
        Tuple of (selected tables in catalog order, missing requested tables)
    """
    prefixes = tuple(p.lower() for p in system_prefixes)
    names = {n.lower() for n in system_names}
    candidates = [
        t for t in available
        if t.lower() not in names and not (prefixes and t.lower().startswith(prefixes))
    ]
    excluded = set(exclude)

    missing: List[str] = []
    if include:
        known = set(candidates)
        wanted = set(include)
        for name in include:
            if name not in known and name not in excluded and name not in missing:
                missing.append(name)
        candidates = [t for t in candidates if t in wanted]

    selected = [t for t in candidates if t not in excluded]
    return selected, missing


def group_foreign_key_rows(
    rows: Iterable[Sequence[Any]],
    actions: Optional[Dict[str, str]] = None,
) -> List[RawForeignKey]:
    """Fold one-row-per-column foreign key results into RawForeignKeys.

    Each row is ``(constraint, column, target_table, target_column,
    on_update, on_delete)``. Constraints keep the order in which they are
    first seen and columns keep row order.
    """
    grouped: Dict[str, Dict[str, Any]] = {}
    for name, column, target_table, target_column, on_update, on_delete in rows:
        entry = grouped.setdefault(name, {
            "target_table": target_table,
            "columns": [],
            "target_columns": [],
            "on_update": on_update,
            "on_delete": on_delete,
        })
        entry["columns"].append(column)
        entry["target_columns"].append(target_column)

    return [
        RawForeignKey(
            name=name,
            columns=tuple(entry["columns"]),
            target_table=entry["target_table"],
            target_columns=tuple(entry["target_columns"]),
            on_delete=_referential_action(entry["on_delete"], actions),
            on_update=_referential_action(entry["on_update"], actions),
        )
        for name, entry in grouped.items()
    ]


def _referential_action(value: Optional[str], actions: Optional[Dict[str, str]]) -> str:
    if not value:
        return "RESTRICT"
    if actions:
        value = actions.get(value, value)
    return value.upper()


class SchemaIntrospector(ABC):
    """Abstract base class for schema introspection.

    Subclasses implement the catalog queries for one dialect. The base
    class owns table selection, per-table error capture and connection
    lifetime: a connection passed in by the caller is used as is and never
    closed here, one opened by ``connect()`` is closed by ``close()``.
    """

    dialect: Dialect

    # Override in subclasses to skip catalog/system tables
    SYSTEM_TABLE_PREFIXES: Tuple[str, ...] = ()
    SYSTEM_TABLE_NAMES: Tuple[str, ...] = ()

    def __init__(
        self,
        config: ConnectionConfig,
        connection: Any = None,
        events: Optional[EventSink] = None,
    ):
        """Initialize the introspector.

        Args:
            config: Validated connection parameters
            connection: Optional already-open DB-API connection to reuse
            events: Sink for introspection events (logs by default)
        """
        self.config = config
        self._connection = connection
        self._owns_connection = False
        self.events = events if events is not None else LoggingEventSink()

    @property
    def database_name(self) -> str:
        return self.config.dbname

    def connect(self):
        """Open the catalog connection if it is not open yet.

        Raises:
            ReverseSchemaError: CONNECTION_FAILURE when the database cannot be reached
        """
        if self._connection is not None:
            return self._connection

        try:
            self._connection = self._open_connection()
        except ImportError:
            raise
        except Exception as e:
            raise ReverseSchemaError.connection_failure(
                f"Cannot connect to {self.config.describe()}: {e}",
                cause=e,
                target=self.config.describe(),
            ) from e

        self._owns_connection = True
        logger.debug("Connected to %s", self.config.describe())
        return self._connection

    @abstractmethod
    def _open_connection(self):
        """Open a new DB-API connection for this dialect."""
        pass

    def close(self):
        """Close the connection if this introspector opened it."""
        if self._connection is not None and self._owns_connection:
            self._connection.close()
            self._connection = None
            self._owns_connection = False

    def ping(self) -> bool:
        """Run a trivial query to prove the connection works."""
        self.connect()
        try:
            self._query("SELECT 1")
        except Exception as e:
            raise ReverseSchemaError.connection_failure(
                f"Connection to {self.config.describe()} is not usable: {e}",
                cause=e,
                target=self.config.describe(),
            ) from e
        return True

    def _query(self, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        """Execute a catalog query and return all rows."""
        connection = self.connect()
        cursor = connection.cursor()
        try:
            cursor.execute(sql, tuple(params))
            return list(cursor.fetchall())
        finally:
            cursor.close()

    @abstractmethod
    def list_tables(self) -> List[str]:
        """Get all base tables in the database.

        Returns:
            List of table names, sorted
        """
        pass

    @abstractmethod
    def get_columns(self, table: str) -> List[RawColumn]:
        """Get all columns for a table in declaration order.

        Args:
            table: Table name

        Returns:
            List of RawColumn objects (empty when the table does not exist)
        """
        pass

    @abstractmethod
    def get_primary_key(self, table: str) -> List[str]:
        """Get primary key columns for a table, in key order."""
        pass

    @abstractmethod
    def get_indexes(self, table: str) -> List[RawIndex]:
        """Get the indexes of a table, including the primary index."""
        pass

    @abstractmethod
    def get_foreign_keys(self, table: str) -> List[RawForeignKey]:
        """Get the foreign keys declared by a table, in declaration order."""
        pass

    def read_table(self, table: str) -> RawTable:
        """Read the complete metadata of one table.

        Raises:
            ReverseSchemaError: METADATA_EXTRACTION_FAILURE when the table has no columns
        """
        columns = self.get_columns(table)
        if not columns:
            raise ReverseSchemaError.metadata_extraction(
                f"Table '{table}' has no readable columns",
                table=table,
            )

        return RawTable(
            name=table,
            columns=tuple(columns),
            primary_key=tuple(self.get_primary_key(table)),
            indexes=tuple(self.get_indexes(table)),
            foreign_keys=tuple(self.get_foreign_keys(table)),
        )

    def select_tables(
        self,
        table_filter: Sequence[str] = (),
        table_exclude: Sequence[str] = (),
    ) -> Tuple[List[str], List[str]]:
        """List catalog tables and apply the include/exclude filters.

        Raises:
            ReverseSchemaError: METADATA_EXTRACTION_FAILURE when the catalog cannot be listed
        """
        try:
            available = self.list_tables()
        except ReverseSchemaError:
            raise
        except Exception as e:
            raise ReverseSchemaError.metadata_extraction(
                f"Cannot list tables of {self.config.describe()}: {e}",
                cause=e,
            ) from e

        return select_tables(
            available,
            include=table_filter,
            exclude=table_exclude,
            system_prefixes=self.SYSTEM_TABLE_PREFIXES,
            system_names=self.SYSTEM_TABLE_NAMES,
        )

    def introspect(
        self,
        table_filter: Sequence[str] = (),
        table_exclude: Sequence[str] = (),
    ) -> IntrospectionResult:
        """Introspect the selected tables and return their raw metadata.

        A table whose metadata cannot be read is recorded as a failed
        TableResult; the remaining tables are still introspected.

        Args:
            table_filter: Tables to include (empty means all)
            table_exclude: Tables to exclude; wins over table_filter

        Returns:
            IntrospectionResult with the RawSchema, missing-table warnings
            and the per-table result map
        """
        self.connect()
        selected, missing = self.select_tables(table_filter, table_exclude)

        schema = RawSchema(dialect=self.dialect.value, database=self.database_name)
        result = IntrospectionResult(schema=schema)

        for name in missing:
            message = f"Requested table '{name}' does not exist in {self.database_name}"
            result.warnings.append(TableWarning(table=name, message=message))
            self.events.emit(EngineEvent(EventType.TABLE_MISSING, message, table=name))

        for name in selected:
            try:
                table = self.read_table(name)
            except Exception as e:
                if isinstance(e, ReverseSchemaError):
                    error = e
                else:
                    error = ReverseSchemaError.metadata_extraction(
                        f"Failed to read metadata of table '{name}': {e}",
                        cause=e,
                        table=name,
                    )
                result.results[name] = TableResult(table=name, success=False, error=error)
                self.events.emit(EngineEvent(
                    EventType.TABLE_FAILED,
                    error.message,
                    table=name,
                    data={"kind": error.kind.value},
                ))
                continue

            schema.tables[name] = table
            result.results[name] = TableResult(table=name, success=True)
            self.events.emit(EngineEvent(
                EventType.TABLE_INTROSPECTED,
                f"{len(table.columns)} columns, {len(table.foreign_keys)} foreign keys",
                table=name,
                data={
                    "columns": len(table.columns),
                    "foreign_keys": len(table.foreign_keys),
                    "indexes": len(table.indexes),
                },
            ))

        return result

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
