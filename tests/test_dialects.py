"""
Tests for backend profiles: URL normalisation and native upsert statements.

Statements are compiled against each dialect without a live server.
"""

import pytest
from sqlalchemy import column, table
from sqlalchemy.dialects import mysql, postgresql, sqlite

from sqladapter.db import get_dialect_profile
from sqladapter.db.dialects import MySQLDialect, PostgresDialect, SQLiteDialect


@pytest.fixture
def settings_table():
    return table("settings", column("name"), column("value"))


class TestBuildUrl:
    """Connection strings are rewritten to the async driver of each backend."""

    @pytest.mark.parametrize("connection", [
        "postgres://hf:pw@localhost:5432/models",
        "postgresql://hf:pw@localhost:5432/models",
    ])
    def test_postgres_schemes(self, connection):
        url = PostgresDialect().build_url(connection)
        assert url.drivername == "postgresql+psycopg"
        assert url.database == "models"
        assert url.port == 5432

    def test_explicit_driver_is_kept(self):
        url = PostgresDialect().build_url("postgresql+asyncpg://hf:pw@localhost/models")
        assert url.drivername == "postgresql+asyncpg"

    def test_mysql_scheme(self):
        url = MySQLDialect().build_url("mysql://hf:pw@localhost/models")
        assert url.drivername == "mysql+aiomysql"

    def test_postgres_mapping(self):
        url = PostgresDialect().build_url({
            "host": "db", "port": 5433, "user": "hf", "password": "pw", "database": "models",
        })
        assert url.drivername == "postgresql+psycopg"
        assert (url.host, url.port, url.username, url.database) == ("db", 5433, "hf", "models")
        assert url.password == "pw"

    def test_sqlite_bare_path(self):
        url = SQLiteDialect().build_url("./data/models.db")
        assert url.drivername == "sqlite+aiosqlite"
        assert url.database == "./data/models.db"

    def test_sqlite_url(self):
        url = SQLiteDialect().build_url("sqlite:///models.db")
        assert url.drivername == "sqlite+aiosqlite"
        assert url.database == "models.db"

    def test_sqlite_filename_mapping(self):
        url = SQLiteDialect().build_url({"filename": "models.db"})
        assert url.database == "models.db"

    @pytest.mark.parametrize("connection", [":memory:", "sqlite://"])
    def test_sqlite_memory(self, connection):
        profile = SQLiteDialect()
        assert profile.is_memory(profile.build_url(connection))


class TestProfiles:
    def test_lookup_by_client_type(self):
        assert isinstance(get_dialect_profile("pg"), PostgresDialect)
        assert isinstance(get_dialect_profile("mysql"), MySQLDialect)
        assert isinstance(get_dialect_profile("sqlite"), SQLiteDialect)

    def test_unknown_client_type(self):
        with pytest.raises(KeyError):
            get_dialect_profile("oracle")

    def test_dialect_names(self):
        assert PostgresDialect().get_dialect_name() == "postgresql"
        assert MySQLDialect().get_dialect_name() == "mysql"
        assert SQLiteDialect().get_dialect_name() == "sqlite"


class TestUpsert:
    """Each backend upserts in a single statement."""

    def test_postgres_on_conflict(self, settings_table):
        statement = PostgresDialect().build_upsert(settings_table, {"name": "a", "value": "b"}, "name")
        sql = str(statement.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (name) DO UPDATE SET value = excluded.value" in sql

    def test_sqlite_on_conflict(self, settings_table):
        statement = SQLiteDialect().build_upsert(settings_table, {"name": "a", "value": "b"}, "name")
        sql = str(statement.compile(dialect=sqlite.dialect()))
        assert "ON CONFLICT (name) DO UPDATE SET value = excluded.value" in sql

    def test_mysql_on_duplicate_key(self, settings_table):
        statement = MySQLDialect().build_upsert(settings_table, {"name": "a", "value": "b"}, "name")
        sql = str(statement.compile(dialect=mysql.dialect()))
        assert "ON DUPLICATE KEY UPDATE" in sql
        assert "value" in sql.split("ON DUPLICATE KEY UPDATE", 1)[1]

    def test_key_only_does_nothing_on_conflict(self):
        keys = table("keys", column("name"))
        statement = PostgresDialect().build_upsert(keys, {"name": "a"}, "name")
        sql = str(statement.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (name) DO NOTHING" in sql

    def test_key_only_mysql_reassigns_key(self):
        keys = table("keys", column("id"))
        statement = MySQLDialect().build_upsert(keys, {"id": 1}, "id")
        sql = str(statement.compile(dialect=mysql.dialect()))
        assert "ON DUPLICATE KEY UPDATE id" in sql
