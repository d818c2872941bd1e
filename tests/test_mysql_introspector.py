"""Tests for the MySQL introspector with a mocked DB-API connection."""

from unittest.mock import patch

import pytest

from reverse_schema.config import ConnectionConfig
from reverse_schema.database.mysql import MySQLIntrospector
from reverse_schema.errors import ErrorKind, ReverseSchemaError


@pytest.fixture
def config():
    return ConnectionConfig(dbname="sakila", user="app", password="secret")


def column_row(name, column_type, nullable="NO", default=None, extra="", length=None,
               precision=None, scale=None, datetime_precision=None, comment=""):
    return (name, column_type, nullable, default, extra, length, precision, scale, datetime_precision, comment)


class TestMySQLIntrospector:
    """Test information_schema row mapping."""

    def test_list_tables(self, config, mock_connection):
        connection = mock_connection([("actor",), ("film",)])
        introspector = MySQLIntrospector(config, connection=connection)

        assert introspector.list_tables() == ["actor", "film"]
        cursor = connection.cursor.return_value
        sql, params = cursor.execute.call_args[0]
        assert "information_schema.TABLES" in sql
        assert params == ("sakila",)
        cursor.close.assert_called_once()

    def test_get_columns(self, config, mock_connection):
        rows = [
            column_row("film_id", "smallint(5) unsigned", extra="auto_increment", precision=5),
            column_row("title", "varchar(128)", length=128, comment="Film title"),
            column_row("rating", "enum('G','PG','PG-13')", nullable="YES", default="G", length=5),
            column_row("special_features", "set('Trailers','Commentaries')", nullable="YES"),
            column_row("last_update", "timestamp", default="CURRENT_TIMESTAMP",
                       extra="DEFAULT_GENERATED on update CURRENT_TIMESTAMP", datetime_precision=0),
        ]
        introspector = MySQLIntrospector(config, connection=mock_connection(rows))

        columns = introspector.get_columns("film")

        film_id, title, rating, features, last_update = columns
        assert film_id.unsigned is True
        assert film_id.auto_increment is True
        assert film_id.nullable is False
        assert film_id.precision == 5
        assert title.length == 128
        assert title.comment == "Film title"
        assert rating.enum_values == ("G", "PG", "PG-13")
        assert rating.nullable is True
        assert rating.default == "G"
        assert features.set_values == ("Trailers", "Commentaries")
        assert features.enum_values is None
        assert last_update.precision == 0
        assert last_update.auto_increment is False

    def test_get_primary_key(self, config, mock_connection):
        introspector = MySQLIntrospector(config, connection=mock_connection([("actor_id",), ("film_id",)]))

        assert introspector.get_primary_key("film_actor") == ["actor_id", "film_id"]

    def test_get_indexes(self, config, mock_connection):
        rows = [
            ("PRIMARY", 0, "actor_id"),
            ("PRIMARY", 0, "film_id"),
            ("idx_fk_film_id", 1, "film_id"),
        ]
        introspector = MySQLIntrospector(config, connection=mock_connection(rows))

        primary, secondary = introspector.get_indexes("film_actor")

        assert primary.primary is True
        assert primary.unique is True
        assert primary.columns == ("actor_id", "film_id")
        assert secondary.primary is False
        assert secondary.unique is False

    def test_get_foreign_keys(self, config, mock_connection):
        rows = [
            ("fk_film_language", "language_id", "language", "language_id", "CASCADE", "RESTRICT"),
            ("fk_film_language_original", "original_language_id", "language", "language_id",
             "CASCADE", "SET NULL"),
        ]
        introspector = MySQLIntrospector(config, connection=mock_connection(rows))

        fks = introspector.get_foreign_keys("film")

        assert [fk.name for fk in fks] == ["fk_film_language", "fk_film_language_original"]
        assert fks[1].on_delete == "SET NULL"
        assert fks[1].on_update == "CASCADE"

    def test_system_tables_are_skipped(self, config, mock_connection):
        rows = [("mysql",), ("orders",), ("sys",), ("sysadmins",), ("system_settings",)]
        introspector = MySQLIntrospector(config, connection=mock_connection(rows))

        selected, _ = introspector.select_tables()

        assert selected == ["orders", "sysadmins", "system_settings"]

    def test_user_table_with_system_like_name_can_be_included(self, config, mock_connection):
        introspector = MySQLIntrospector(config, connection=mock_connection([("orders",), ("system_settings",)]))

        selected, missing = introspector.select_tables(["system_settings"])

        assert selected == ["system_settings"]
        assert missing == []


class TestMySQLConnect:
    """Test opening connections through PyMySQL."""

    def test_connect_arguments(self, config):
        with patch("pymysql.connect") as connect:
            introspector = MySQLIntrospector(config)
            introspector.connect()

        connect.assert_called_once_with(
            host="localhost",
            port=3306,
            user="app",
            password="secret",
            database="sakila",
            charset="utf8mb4",
        )

    def test_connect_failure(self, config):
        with patch("pymysql.connect", side_effect=RuntimeError("Access denied for user 'app'")):
            with pytest.raises(ReverseSchemaError) as exc_info:
                MySQLIntrospector(config).connect()

        assert exc_info.value.kind == ErrorKind.CONNECTION_FAILURE
        assert "secret" not in exc_info.value.message
