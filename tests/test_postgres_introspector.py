"""Tests for the PostgreSQL introspector with a mocked DB-API connection."""

from unittest.mock import patch

import pytest

from reverse_schema.config import ConnectionConfig, Dialect
from reverse_schema.database.postgres import PostgresIntrospector


@pytest.fixture
def config():
    return ConnectionConfig(driver=Dialect.POSTGRESQL, dbname="pagila", user="postgres")


def column_row(name, data_type, udt_name, nullable="NO", default=None, identity="NO",
               length=None, precision=None, scale=None, datetime_precision=None, description=None):
    return (name, data_type, udt_name, nullable, default, identity, length, precision, scale,
            datetime_precision, description)


class TestPostgresIntrospector:
    """Test catalog row mapping."""

    def test_list_tables_uses_schema(self, config, mock_connection):
        connection = mock_connection([("actor",)])
        introspector = PostgresIntrospector(config, connection=connection, schema="sales")

        assert introspector.list_tables() == ["actor"]
        _sql, params = connection.cursor.return_value.execute.call_args[0]
        assert params == ("sales",)

    def test_get_columns(self, config, mock_connection):
        rows = [
            column_row("film_id", "integer", "int4", default="nextval('film_film_id_seq'::regclass)",
                       precision=32),
            column_row("title", "character varying", "varchar", length=255, description="Film title"),
            column_row("rating", "USER-DEFINED", "mpaa_rating", nullable="YES"),
            column_row("special_features", "ARRAY", "_text", nullable="YES"),
            column_row("last_update", "timestamp with time zone", "timestamptz", datetime_precision=6),
            column_row("code", "bigint", "int8", identity="YES", precision=64),
        ]
        enum_rows = [("mpaa_rating", "G"), ("mpaa_rating", "PG"), ("mpaa_rating", "NC-17")]
        introspector = PostgresIntrospector(config, connection=mock_connection(rows, enum_rows))

        film_id, title, rating, features, last_update, code = introspector.get_columns("film")

        assert film_id.auto_increment is True
        assert title.length == 255
        assert title.comment == "Film title"
        assert rating.native_type == "mpaa_rating"
        assert rating.enum_values == ("G", "PG", "NC-17")
        assert features.native_type == "_text"
        assert last_update.precision == 6
        assert code.auto_increment is True

    def test_enum_labels_are_cached(self, config, mock_connection):
        connection = mock_connection([("mood", "sad"), ("mood", "happy")])
        introspector = PostgresIntrospector(config, connection=connection)

        assert introspector.enum_labels() == {"mood": ("sad", "happy")}
        assert introspector.enum_labels() == {"mood": ("sad", "happy")}
        assert connection.cursor.return_value.execute.call_count == 1

    def test_get_indexes(self, config, mock_connection):
        rows = [
            ("film_actor_pkey", True, True, "actor_id"),
            ("film_actor_pkey", True, True, "film_id"),
            ("idx_fk_film_id", False, False, "film_id"),
        ]
        introspector = PostgresIntrospector(config, connection=mock_connection(rows))

        primary, secondary = introspector.get_indexes("film_actor")

        assert primary.primary is True
        assert primary.columns == ("actor_id", "film_id")
        assert secondary.unique is False

    def test_foreign_key_action_codes(self, config, mock_connection):
        rows = [
            ("film_language_id_fkey", "language_id", "language", "language_id", "c", "r"),
            ("film_original_language_id_fkey", "original_language_id", "language", "language_id", "a", "n"),
        ]
        introspector = PostgresIntrospector(config, connection=mock_connection(rows))

        first, second = introspector.get_foreign_keys("film")

        assert (first.on_update, first.on_delete) == ("CASCADE", "RESTRICT")
        assert (second.on_update, second.on_delete) == ("NO ACTION", "SET NULL")

    def test_user_table_with_pg_prefix_is_kept(self, config, mock_connection):
        introspector = PostgresIntrospector(config, connection=mock_connection([("pg_jobs",), ("users",)]))

        selected, _ = introspector.select_tables()

        assert selected == ["pg_jobs", "users"]


class TestPostgresConnect:
    """Test opening connections through psycopg2."""

    def test_session_is_read_only(self, config):
        with patch("psycopg2.connect") as connect:
            PostgresIntrospector(config).connect()

        connect.assert_called_once_with(
            host="localhost",
            port=5432,
            user="postgres",
            password="",
            dbname="pagila",
        )
        connect.return_value.set_session.assert_called_once_with(readonly=True, autocommit=True)
