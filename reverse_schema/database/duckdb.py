"""DuckDB schema introspector."""

from typing import Any, List, Optional

from ..config import ConnectionConfig, Dialect
from ..events import EventSink
from .base import SchemaIntrospector
from .literals import is_literal_type, parse_literal_list
from .models import RawColumn, RawForeignKey, RawIndex


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


class DuckDBIntrospector(SchemaIntrospector):
    """Reads table metadata from DuckDB's duckdb_* table functions."""

    dialect = Dialect.DUCKDB

    SYSTEM_TABLE_PREFIXES = ("information_schema", "pg_catalog")

    def __init__(
        self,
        config: ConnectionConfig,
        connection: Any = None,
        events: Optional[EventSink] = None,
        schema: str = "main",
    ):
        super().__init__(config, connection=connection, events=events)
        self.schema = schema

    def _open_connection(self):
        try:
            import duckdb
        except ImportError:
            raise ImportError(
                "duckdb is required. "
                "Install it with: pip install duckdb"
            )

        path = self.config.dbname
        if path == ":memory:":
            return duckdb.connect(path)
        return duckdb.connect(path, read_only=True)

    def list_tables(self) -> List[str]:
        rows = self._query("""
            SELECT table_name
            FROM duckdb_tables()
            WHERE schema_name = ?
              AND NOT internal
            ORDER BY table_name
        """, (self.schema,))
        return [row[0] for row in rows]

    def get_columns(self, table: str) -> List[RawColumn]:
        rows = self._query("""
            SELECT
                column_name,
                data_type,
                is_nullable,
                column_default,
                character_maximum_length,
                numeric_precision,
                numeric_scale,
                comment
            FROM duckdb_columns()
            WHERE schema_name = ?
              AND table_name = ?
            ORDER BY column_index
        """, (self.schema, table))

        columns = []
        for (name, data_type, is_nullable, default, char_length,
             numeric_precision, numeric_scale, comment) in rows:
            columns.append(RawColumn(
                name=name,
                native_type=data_type,
                nullable=bool(is_nullable),
                default=default,
                length=char_length,
                precision=numeric_precision,
                scale=numeric_scale,
                unsigned=data_type.upper().startswith("U") and "INT" in data_type.upper(),
                auto_increment=(default or "").startswith("nextval("),
                comment=comment or "",
                enum_values=parse_literal_list(data_type) if is_literal_type(data_type, "enum") else None,
            ))
        return columns

    def get_primary_key(self, table: str) -> List[str]:
        rows = self._query("""
            SELECT constraint_column_names
            FROM duckdb_constraints()
            WHERE schema_name = ?
              AND table_name = ?
              AND constraint_type = 'PRIMARY KEY'
        """, (self.schema, table))
        if not rows:
            return []
        return list(_as_tuple(rows[0][0]))

    def get_indexes(self, table: str) -> List[RawIndex]:
        # duckdb_indexes() only exposes index expressions as SQL text, so
        # key and unique constraints are reported instead
        rows = self._query("""
            SELECT constraint_index, constraint_type, constraint_column_names
            FROM duckdb_constraints()
            WHERE schema_name = ?
              AND table_name = ?
              AND constraint_type IN ('PRIMARY KEY', 'UNIQUE')
            ORDER BY constraint_index
        """, (self.schema, table))

        indexes = []
        for constraint_index, constraint_type, column_names in rows:
            primary = constraint_type == "PRIMARY KEY"
            indexes.append(RawIndex(
                name="PRIMARY" if primary else f"{table}_unique_{constraint_index}",
                columns=_as_tuple(column_names),
                unique=True,
                primary=primary,
            ))
        return indexes

    def get_foreign_keys(self, table: str) -> List[RawForeignKey]:
        # referenced_table / referenced_column_names need DuckDB >= 1.1
        rows = self._query("""
            SELECT
                constraint_index,
                constraint_column_names,
                referenced_table,
                referenced_column_names
            FROM duckdb_constraints()
            WHERE schema_name = ?
              AND table_name = ?
              AND constraint_type = 'FOREIGN KEY'
            ORDER BY constraint_index
        """, (self.schema, table))

        return [
            RawForeignKey(
                name=f"{table}_fk_{ordinal}",
                columns=_as_tuple(column_names),
                target_table=referenced_table,
                target_columns=_as_tuple(referenced_columns),
            )
            for ordinal, (_index, column_names, referenced_table, referenced_columns) in enumerate(rows)
        ]
