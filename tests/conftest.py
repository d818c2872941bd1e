"""Shared pytest fixtures for reverse-schema tests."""

import sqlite3
from typing import Iterable, Optional, Sequence, Tuple, Union
from unittest.mock import MagicMock

import pytest

from reverse_schema.config import ConnectionConfig, Dialect, Settings
from reverse_schema.database.models import RawColumn, RawForeignKey, RawSchema, RawTable
from reverse_schema.events import CollectingEventSink

# A trimmed-down sakila schema:
# - film_actor is a pure junction table (no metadata columns)
# - film_category carries two metadata columns
# - film references language twice and constrains rating with CHECK IN
SAKILA_DDL = """
CREATE TABLE language (
    language_id INTEGER PRIMARY KEY,
    name CHAR(20) NOT NULL,
    last_update DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE film (
    film_id INTEGER PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    rating VARCHAR(5) DEFAULT 'G' CHECK (rating IN ('G', 'PG', 'PG-13', 'R', 'NC-17')),
    language_id INTEGER NOT NULL REFERENCES language (language_id),
    original_language_id INTEGER REFERENCES language (language_id) ON DELETE SET NULL,
    rental_rate DECIMAL(4,2) NOT NULL DEFAULT 4.99
);

CREATE TABLE actor (
    actor_id INTEGER PRIMARY KEY,
    first_name VARCHAR(45) NOT NULL,
    last_name VARCHAR(45) NOT NULL
);

CREATE TABLE film_actor (
    actor_id INTEGER NOT NULL REFERENCES actor (actor_id),
    film_id INTEGER NOT NULL REFERENCES film (film_id),
    PRIMARY KEY (actor_id, film_id)
);

CREATE TABLE category (
    category_id INTEGER PRIMARY KEY,
    name VARCHAR(25) NOT NULL
);

CREATE TABLE film_category (
    film_id INTEGER NOT NULL REFERENCES film (film_id),
    category_id INTEGER NOT NULL REFERENCES category (category_id),
    last_update DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    note TEXT,
    PRIMARY KEY (film_id, category_id)
);

CREATE INDEX idx_actor_last_name ON actor (last_name);
"""

ForeignKeySpec = Tuple[Sequence[str], str, Sequence[str]]


def build_table(
    name: str,
    columns: Iterable[Union[str, RawColumn]],
    primary_key: Sequence[str] = (),
    foreign_keys: Sequence[ForeignKeySpec] = (),
) -> RawTable:
    """Build a RawTable; plain column names become non-null ``int`` columns."""
    raw_columns = tuple(
        c if isinstance(c, RawColumn) else RawColumn(name=c, native_type="int", nullable=False)
        for c in columns
    )
    raw_fks = tuple(
        RawForeignKey(
            name=f"fk_{name}_{i}",
            columns=tuple(fk_columns),
            target_table=target,
            target_columns=tuple(target_columns),
        )
        for i, (fk_columns, target, target_columns) in enumerate(foreign_keys)
    )
    return RawTable(
        name=name,
        columns=raw_columns,
        primary_key=tuple(primary_key),
        foreign_keys=raw_fks,
    )


def build_schema(*tables: RawTable, dialect: str = "mysql") -> RawSchema:
    return RawSchema(dialect=dialect, database="test", tables={t.name: t for t in tables})


@pytest.fixture
def table_builder():
    return build_table


@pytest.fixture
def schema_builder():
    return build_schema


@pytest.fixture
def collecting_sink():
    return CollectingEventSink()


@pytest.fixture
def base_settings():
    """Settings that ignore any .env file on the machine running the tests."""
    return Settings(_env_file=None, db_name="shop", db_driver="mysql")


@pytest.fixture
def sqlite_config():
    return ConnectionConfig(driver=Dialect.SQLITE, dbname=":memory:")


@pytest.fixture
def sakila_connection():
    """In-memory sqlite3 connection holding the sakila tables."""
    connection = sqlite3.connect(":memory:")
    connection.executescript(SAKILA_DDL)
    yield connection
    connection.close()


@pytest.fixture
def sakila_path(tmp_path):
    """Path of a sqlite database file holding the sakila tables."""
    path = tmp_path / "sakila.db"
    connection = sqlite3.connect(str(path))
    connection.executescript(SAKILA_DDL)
    connection.commit()
    connection.close()
    return path


@pytest.fixture
def users_roles_schema():
    """users/roles joined by a pure user_roles junction table."""

    def factory(metadata_columns: Sequence[str] = (), primary_key: Optional[Sequence[str]] = None):
        users = build_table("users", ["id", RawColumn(name="email", native_type="varchar(255)")], ["id"])
        roles = build_table("roles", ["id", RawColumn(name="name", native_type="varchar(50)")], ["id"])
        junction_columns = ["user_id", "role_id"] + [
            RawColumn(name=c, native_type="datetime") for c in metadata_columns
        ]
        user_roles = build_table(
            "user_roles",
            junction_columns,
            primary_key if primary_key is not None else ["user_id", "role_id"],
            [(["user_id"], "users", ["id"]), (["role_id"], "roles", ["id"])],
        )
        return build_schema(users, roles, user_roles)

    return factory


@pytest.fixture
def mock_connection():
    """DB-API connection mock whose cursor returns queued result sets.

    Call the fixture with one list of rows per expected query.
    """

    def factory(*result_sets):
        cursor = MagicMock()
        cursor.fetchall.side_effect = list(result_sets)
        connection = MagicMock()
        connection.cursor.return_value = cursor
        return connection

    return factory
