"""MySQL / MariaDB schema introspector."""

from typing import Dict, List

from ..config import Dialect
from .base import SchemaIntrospector, group_foreign_key_rows
from .literals import is_literal_type, parse_literal_list
from .models import RawColumn, RawForeignKey, RawIndex


class MySQLIntrospector(SchemaIntrospector):
    """Reads table metadata from MySQL's information_schema."""

    dialect = Dialect.MYSQL

    SYSTEM_TABLE_NAMES = ("information_schema", "performance_schema", "mysql", "sys")

    def _open_connection(self):
        try:
            import pymysql
        except ImportError:
            raise ImportError(
                "PyMySQL is required for MySQL connections. "
                "Install it with: pip install PyMySQL"
            )

        return pymysql.connect(
            host=self.config.host,
            port=self.config.effective_port,
            user=self.config.user,
            password=self.config.password,
            database=self.config.dbname,
            charset=self.config.charset,
        )

    def list_tables(self) -> List[str]:
        rows = self._query("""
            SELECT TABLE_NAME
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = %s
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
        """, (self.database_name,))
        return [row[0] for row in rows]

    def get_columns(self, table: str) -> List[RawColumn]:
        rows = self._query("""
            SELECT
                COLUMN_NAME,
                COLUMN_TYPE,
                IS_NULLABLE,
                COLUMN_DEFAULT,
                EXTRA,
                CHARACTER_MAXIMUM_LENGTH,
                NUMERIC_PRECISION,
                NUMERIC_SCALE,
                DATETIME_PRECISION,
                COLUMN_COMMENT
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = %s
              AND TABLE_NAME = %s
            ORDER BY ORDINAL_POSITION
        """, (self.database_name, table))

        columns = []
        for (name, column_type, is_nullable, default, extra, char_length,
             numeric_precision, numeric_scale, datetime_precision, comment) in rows:
            precision = numeric_precision if numeric_precision is not None else datetime_precision
            columns.append(RawColumn(
                name=name,
                native_type=column_type,
                nullable=(is_nullable == "YES"),
                default=None if default is None else str(default),
                length=None if char_length is None else int(char_length),
                precision=None if precision is None else int(precision),
                scale=None if numeric_scale is None else int(numeric_scale),
                unsigned="unsigned" in column_type.lower(),
                auto_increment="auto_increment" in (extra or "").lower(),
                comment=comment or "",
                enum_values=parse_literal_list(column_type) if is_literal_type(column_type, "enum") else None,
                set_values=parse_literal_list(column_type) if is_literal_type(column_type, "set") else None,
            ))
        return columns

    def get_primary_key(self, table: str) -> List[str]:
        rows = self._query("""
            SELECT COLUMN_NAME
            FROM information_schema.KEY_COLUMN_USAGE
            WHERE TABLE_SCHEMA = %s
              AND TABLE_NAME = %s
              AND CONSTRAINT_NAME = 'PRIMARY'
            ORDER BY ORDINAL_POSITION
        """, (self.database_name, table))
        return [row[0] for row in rows]

    def get_indexes(self, table: str) -> List[RawIndex]:
        rows = self._query("""
            SELECT INDEX_NAME, NON_UNIQUE, COLUMN_NAME
            FROM information_schema.STATISTICS
            WHERE TABLE_SCHEMA = %s
              AND TABLE_NAME = %s
            ORDER BY INDEX_NAME, SEQ_IN_INDEX
        """, (self.database_name, table))

        grouped: Dict[str, Dict] = {}
        for index_name, non_unique, column in rows:
            entry = grouped.setdefault(index_name, {"unique": not int(non_unique), "columns": []})
            entry["columns"].append(column)

        return [
            RawIndex(
                name=name,
                columns=tuple(entry["columns"]),
                unique=entry["unique"],
                primary=(name == "PRIMARY"),
            )
            for name, entry in grouped.items()
        ]

    def get_foreign_keys(self, table: str) -> List[RawForeignKey]:
        # The catalog keeps no declaration ordinal; constraint name order is used
        rows = self._query("""
            SELECT
                kcu.CONSTRAINT_NAME,
                kcu.COLUMN_NAME,
                kcu.REFERENCED_TABLE_NAME,
                kcu.REFERENCED_COLUMN_NAME,
                rc.UPDATE_RULE,
                rc.DELETE_RULE
            FROM information_schema.KEY_COLUMN_USAGE kcu
            JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
              ON rc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
              AND rc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
              AND rc.TABLE_NAME = kcu.TABLE_NAME
            WHERE kcu.TABLE_SCHEMA = %s
              AND kcu.TABLE_NAME = %s
              AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """, (self.database_name, table))
        return group_foreign_key_rows(rows)
