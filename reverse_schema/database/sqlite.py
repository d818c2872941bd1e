"""SQLite schema introspector."""

import sqlite3
from pathlib import Path
from typing import Dict, List, Optional

from ..config import Dialect
from .base import SchemaIntrospector
from .literals import extract_check_in_values
from .models import RawColumn, RawForeignKey, RawIndex


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _unquote_default(value: Optional[str]) -> Optional[str]:
    """PRAGMA table_info reports defaults as SQL text ('abc', 0, CURRENT_TIMESTAMP)."""
    if value is None:
        return None
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")
    return value


class SQLiteIntrospector(SchemaIntrospector):
    """Reads table metadata through SQLite PRAGMAs and sqlite_master."""

    dialect = Dialect.SQLITE

    SYSTEM_TABLE_PREFIXES = ("sqlite_",)

    def _open_connection(self):
        path = self.config.dbname
        if path == ":memory:":
            return sqlite3.connect(path)
        # Read-only, and never create an empty database for a wrong path
        uri = Path(path).expanduser().resolve().as_uri() + "?mode=ro"
        return sqlite3.connect(uri, uri=True)

    def list_tables(self) -> List[str]:
        rows = self._query(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        return [row[0] for row in rows]

    def table_sql(self, table: str) -> str:
        """Get the CREATE TABLE statement of a table."""
        rows = self._query(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table,),
        )
        return (rows[0][0] or "") if rows else ""

    def _table_info(self, table: str) -> List[tuple]:
        # cid, name, type, notnull, dflt_value, pk
        return self._query(f"PRAGMA table_info({_quote_identifier(table)})")

    def get_columns(self, table: str) -> List[RawColumn]:
        info = self._table_info(table)
        if not info:
            return []

        ddl = self.table_sql(table)
        pk_columns = [row for row in info if row[5]]

        columns = []
        for _cid, name, declared_type, notnull, default, pk in info:
            declared_type = declared_type or ""
            # A single INTEGER PRIMARY KEY column aliases the rowid
            rowid_alias = bool(pk) and len(pk_columns) == 1 and declared_type.upper() == "INTEGER"
            columns.append(RawColumn(
                name=name,
                native_type=declared_type,
                nullable=not notnull and not pk,
                default=_unquote_default(default),
                unsigned="unsigned" in declared_type.lower(),
                auto_increment=rowid_alias,
                enum_values=extract_check_in_values(ddl, name),
            ))
        return columns

    def get_primary_key(self, table: str) -> List[str]:
        keyed = [(row[5], row[1]) for row in self._table_info(table) if row[5]]
        return [name for _position, name in sorted(keyed)]

    def get_indexes(self, table: str) -> List[RawIndex]:
        # seq, name, unique, origin, partial
        index_rows = self._query(f"PRAGMA index_list({_quote_identifier(table)})")

        indexes = []
        for row in index_rows:
            index_name, unique, origin = row[1], row[2], row[3]
            # seqno, cid, name
            info = self._query(f"PRAGMA index_info({_quote_identifier(index_name)})")
            indexes.append(RawIndex(
                name=index_name,
                columns=tuple(r[2] for r in sorted(info)),
                unique=bool(unique),
                primary=(origin == "pk"),
            ))

        if not any(index.primary for index in indexes):
            primary_key = self.get_primary_key(table)
            if primary_key:
                # rowid-alias keys have no index entry of their own
                indexes.insert(0, RawIndex(
                    name="PRIMARY",
                    columns=tuple(primary_key),
                    unique=True,
                    primary=True,
                ))

        return sorted(indexes, key=lambda index: (not index.primary, index.name))

    def get_foreign_keys(self, table: str) -> List[RawForeignKey]:
        # id, seq, table, from, to, on_update, on_delete, match
        rows = self._query(f"PRAGMA foreign_key_list({_quote_identifier(table)})")

        grouped: Dict[int, List[tuple]] = {}
        for row in rows:
            grouped.setdefault(row[0], []).append(row)

        foreign_keys = []
        # SQLite numbers constraints from the last declared one
        for ordinal, fk_id in enumerate(sorted(grouped, reverse=True)):
            fk_rows = sorted(grouped[fk_id], key=lambda r: r[1])
            target_table = fk_rows[0][2]
            columns = tuple(r[3] for r in fk_rows)
            target_columns = tuple(r[4] for r in fk_rows)
            if any(c is None for c in target_columns):
                # REFERENCES target without a column list points at its primary key
                target_columns = tuple(self.get_primary_key(target_table))

            foreign_keys.append(RawForeignKey(
                name=f"{table}_fk_{ordinal}",
                columns=columns,
                target_table=target_table,
                target_columns=target_columns,
                on_delete=(fk_rows[0][6] or "RESTRICT").upper(),
                on_update=(fk_rows[0][5] or "RESTRICT").upper(),
            ))
        return foreign_keys
