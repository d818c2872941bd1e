"""Database introspection module for reverse-schema.

This module reads raw catalog metadata (columns, keys, indexes, foreign
keys) with one introspector per dialect: MySQL, PostgreSQL, SQLite and
DuckDB.
"""

from .models import (
    RawColumn,
    RawIndex,
    RawForeignKey,
    RawTable,
    RawSchema,
    TableResult,
    TableWarning,
    IntrospectionResult,
)
from .base import SchemaIntrospector, select_tables
from .type_mappers import (
    TypeKind,
    TypeDescriptor,
    NormalizedType,
    TypeMapper,
    MySQLTypeMapper,
    PostgresTypeMapper,
    SQLiteTypeMapper,
    DuckDBTypeMapper,
    get_type_mapper,
    normalize,
)
from .mysql import MySQLIntrospector
from .postgres import PostgresIntrospector
from .sqlite import SQLiteIntrospector
from .duckdb import DuckDBIntrospector
from .connect import create_introspector

__all__ = [
    # Data models
    "RawColumn",
    "RawIndex",
    "RawForeignKey",
    "RawTable",
    "RawSchema",
    "TableResult",
    "TableWarning",
    "IntrospectionResult",
    # Base classes
    "SchemaIntrospector",
    "select_tables",
    # Type mappers
    "TypeKind",
    "TypeDescriptor",
    "NormalizedType",
    "TypeMapper",
    "MySQLTypeMapper",
    "PostgresTypeMapper",
    "SQLiteTypeMapper",
    "DuckDBTypeMapper",
    "get_type_mapper",
    "normalize",
    # Introspectors
    "MySQLIntrospector",
    "PostgresIntrospector",
    "SQLiteIntrospector",
    "DuckDBIntrospector",
    "create_introspector",
]
