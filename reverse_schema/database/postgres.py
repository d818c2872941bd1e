"""PostgreSQL schema introspector."""

from typing import Any, Dict, List, Optional, Tuple

from ..config import ConnectionConfig, Dialect
from ..events import EventSink
from .base import SchemaIntrospector, group_foreign_key_rows
from .models import RawColumn, RawForeignKey, RawIndex

# pg_constraint.confupdtype / confdeltype codes
_ACTIONS = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


class PostgresIntrospector(SchemaIntrospector):
    """Reads table metadata from information_schema and pg_catalog."""

    dialect = Dialect.POSTGRESQL

    SYSTEM_TABLE_PREFIXES = ("pg_catalog", "information_schema")

    def __init__(
        self,
        config: ConnectionConfig,
        connection: Any = None,
        events: Optional[EventSink] = None,
        schema: str = "public",
    ):
        super().__init__(config, connection=connection, events=events)
        self.schema = schema
        self._enum_labels: Optional[Dict[str, Tuple[str, ...]]] = None

    def _open_connection(self):
        try:
            import psycopg2
        except ImportError:
            raise ImportError(
                "psycopg2 is required for PostgreSQL connections. "
                "Install it with: pip install psycopg2-binary"
            )

        connection = psycopg2.connect(
            host=self.config.host,
            port=self.config.effective_port,
            user=self.config.user,
            password=self.config.password,
            dbname=self.config.dbname,
        )
        # A failed catalog query must not abort the queries for other tables
        connection.set_session(readonly=True, autocommit=True)
        return connection

    def list_tables(self) -> List[str]:
        rows = self._query("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """, (self.schema,))
        return [row[0] for row in rows]

    def enum_labels(self) -> Dict[str, Tuple[str, ...]]:
        """Get the labels of every enum type, in enumsortorder order."""
        if self._enum_labels is None:
            rows = self._query("""
                SELECT t.typname, e.enumlabel
                FROM pg_catalog.pg_type t
                JOIN pg_catalog.pg_enum e ON e.enumtypid = t.oid
                ORDER BY t.typname, e.enumsortorder
            """)
            labels: Dict[str, List[str]] = {}
            for type_name, label in rows:
                labels.setdefault(type_name, []).append(label)
            self._enum_labels = {name: tuple(values) for name, values in labels.items()}
        return self._enum_labels

    def get_columns(self, table: str) -> List[RawColumn]:
        rows = self._query("""
            SELECT
                c.column_name,
                c.data_type,
                c.udt_name,
                c.is_nullable,
                c.column_default,
                c.is_identity,
                c.character_maximum_length,
                c.numeric_precision,
                c.numeric_scale,
                c.datetime_precision,
                pgd.description
            FROM information_schema.columns c
            LEFT JOIN pg_catalog.pg_statio_all_tables st
              ON st.schemaname = c.table_schema
              AND st.relname = c.table_name
            LEFT JOIN pg_catalog.pg_description pgd
              ON pgd.objoid = st.relid
              AND pgd.objsubid = c.ordinal_position
            WHERE c.table_schema = %s
              AND c.table_name = %s
            ORDER BY c.ordinal_position
        """, (self.schema, table))

        columns = []
        for (name, data_type, udt_name, is_nullable, default, is_identity, char_length,
             numeric_precision, numeric_scale, datetime_precision, description) in rows:
            enum_values = None
            native_type = data_type
            if data_type == "USER-DEFINED":
                native_type = udt_name
                enum_values = self.enum_labels().get(udt_name)
            elif data_type == "ARRAY":
                native_type = udt_name

            precision = numeric_precision if numeric_precision is not None else datetime_precision
            columns.append(RawColumn(
                name=name,
                native_type=native_type,
                nullable=(is_nullable == "YES"),
                default=default,
                length=char_length,
                precision=precision,
                scale=numeric_scale,
                auto_increment=(is_identity == "YES" or (default or "").startswith("nextval(")),
                comment=description or "",
                enum_values=enum_values,
            ))
        return columns

    def get_primary_key(self, table: str) -> List[str]:
        rows = self._query("""
            SELECT kcu.column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON tc.constraint_name = kcu.constraint_name
              AND tc.table_schema = kcu.table_schema
              AND tc.table_name = kcu.table_name
            WHERE tc.table_schema = %s
              AND tc.table_name = %s
              AND tc.constraint_type = 'PRIMARY KEY'
            ORDER BY kcu.ordinal_position
        """, (self.schema, table))
        return [row[0] for row in rows]

    def get_indexes(self, table: str) -> List[RawIndex]:
        rows = self._query("""
            SELECT i.relname, ix.indisunique, ix.indisprimary, a.attname
            FROM pg_catalog.pg_class t
            JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_catalog.pg_index ix ON ix.indrelid = t.oid
            JOIN pg_catalog.pg_class i ON i.oid = ix.indexrelid
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord) ON TRUE
            JOIN pg_catalog.pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
            WHERE n.nspname = %s
              AND t.relname = %s
            ORDER BY i.relname, k.ord
        """, (self.schema, table))

        grouped: Dict[str, Dict[str, Any]] = {}
        for index_name, unique, primary, column in rows:
            entry = grouped.setdefault(index_name, {
                "unique": bool(unique),
                "primary": bool(primary),
                "columns": [],
            })
            entry["columns"].append(column)

        return [
            RawIndex(
                name=name,
                columns=tuple(entry["columns"]),
                unique=entry["unique"],
                primary=entry["primary"],
            )
            for name, entry in grouped.items()
        ]

    def get_foreign_keys(self, table: str) -> List[RawForeignKey]:
        rows = self._query("""
            SELECT
                con.conname,
                att.attname,
                ref.relname,
                ref_att.attname,
                con.confupdtype,
                con.confdeltype
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class cl ON cl.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = cl.relnamespace
            JOIN pg_catalog.pg_class ref ON ref.oid = con.confrelid
            JOIN LATERAL unnest(con.conkey, con.confkey)
                 WITH ORDINALITY AS k(attnum, ref_attnum, ord) ON TRUE
            JOIN pg_catalog.pg_attribute att
              ON att.attrelid = con.conrelid AND att.attnum = k.attnum
            JOIN pg_catalog.pg_attribute ref_att
              ON ref_att.attrelid = con.confrelid AND ref_att.attnum = k.ref_attnum
            WHERE con.contype = 'f'
              AND n.nspname = %s
              AND cl.relname = %s
            ORDER BY con.oid, k.ord
        """, (self.schema, table))
        return group_foreign_key_rows(rows, actions=_ACTIONS)
