"""
Backend Dialect Profiles

This module implements the DialectProfile interface for the three supported
backends. Each profile encapsulates:
- Which async driver its URLs are rewritten to
- Which pool class and connect arguments it needs
- How it expresses a native, single-round-trip upsert

Backend kinds:
- pg: PostgreSQL through psycopg 3 (picks up the numeric decoders)
- mysql: MySQL / MariaDB through aiomysql
- sqlite: SQLite through aiosqlite (file or in-memory)
"""

from typing import Any, Dict, Mapping, Optional

from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import URL
from sqlalchemy.pool import Pool, StaticPool
from sqlalchemy.sql import Executable
from sqlalchemy.sql.expression import TableClause

from sqladapter.db.interface import ConnectionParams, DialectProfile, PoolConfig


def _update_columns(values: Mapping[str, Any], key_field: str) -> list:
    return [name for name in values if name != key_field]


class PostgresDialect(DialectProfile):
    """
    PostgreSQL profile.

    Uses psycopg 3 so that the process-wide loaders registered by
    sqladapter.db.numeric apply to every pooled connection.
    """

    client_type = "pg"
    drivername = "postgresql+psycopg"
    url_schemes = ("postgres", "postgresql")

    def get_connect_args(self) -> Dict[str, Any]:
        return {}

    def build_upsert(
        self,
        table: TableClause,
        values: Mapping[str, Any],
        key_field: str,
    ) -> Optional[Executable]:
        """INSERT ... ON CONFLICT (key) DO UPDATE."""
        statement = postgresql.insert(table).values(**values)
        columns = _update_columns(values, key_field)
        if not columns:
            return statement.on_conflict_do_nothing(index_elements=[key_field])
        return statement.on_conflict_do_update(
            index_elements=[key_field],
            set_={name: statement.excluded[name] for name in columns},
        )


class MySQLDialect(DialectProfile):
    """MySQL / MariaDB profile."""

    client_type = "mysql"
    drivername = "mysql+aiomysql"
    url_schemes = ("mysql", "mariadb")

    def get_connect_args(self) -> Dict[str, Any]:
        return {"charset": "utf8mb4"}

    def build_upsert(
        self,
        table: TableClause,
        values: Mapping[str, Any],
        key_field: str,
    ) -> Optional[Executable]:
        """INSERT ... ON DUPLICATE KEY UPDATE."""
        statement = mysql.insert(table).values(**values)
        # MySQL needs at least one assignment; re-assigning the key is a no-op
        columns = _update_columns(values, key_field) or [key_field]
        return statement.on_duplicate_key_update(
            {name: statement.inserted[name] for name in columns}
        )


class SQLiteDialect(DialectProfile):
    """
    SQLite profile.

    Accepts a bare file path (or ':memory:') as well as a sqlite:/// URL,
    and a {"filename": ...} mapping.

    Key characteristics:
    - File databases use the regular async queue pool
    - In-memory databases use StaticPool: every new connection would
      otherwise open a separate, empty database
    """

    client_type = "sqlite"
    drivername = "sqlite+aiosqlite"
    url_schemes = ("sqlite",)

    def build_url(self, connection: ConnectionParams) -> URL:
        if isinstance(connection, Mapping):
            return URL.create(
                self.drivername,
                database=connection.get("filename") or connection.get("database"),
            )
        if "://" not in connection:
            return URL.create(self.drivername, database=connection)
        return super().build_url(connection)

    @staticmethod
    def is_memory(url: URL) -> bool:
        return url.database in (None, "", ":memory:")

    def get_pool_class(self, url: URL) -> type[Pool]:
        if self.is_memory(url):
            return StaticPool
        return super().get_pool_class(url)

    def get_engine_kwargs(self, url: URL, pool: PoolConfig) -> Dict[str, Any]:
        if self.is_memory(url):
            # StaticPool holds exactly one connection and takes no sizing options
            return {"echo": False}
        return super().get_engine_kwargs(url, pool)

    def get_connect_args(self) -> Dict[str, Any]:
        return {
            "check_same_thread": False
        }

    def build_upsert(
        self,
        table: TableClause,
        values: Mapping[str, Any],
        key_field: str,
    ) -> Optional[Executable]:
        """INSERT ... ON CONFLICT (key) DO UPDATE (SQLite 3.24+)."""
        statement = sqlite.insert(table).values(**values)
        columns = _update_columns(values, key_field)
        if not columns:
            return statement.on_conflict_do_nothing(index_elements=[key_field])
        return statement.on_conflict_do_update(
            index_elements=[key_field],
            set_={name: statement.excluded[name] for name in columns},
        )


DIALECT_PROFILES: Dict[str, type[DialectProfile]] = {
    PostgresDialect.client_type: PostgresDialect,
    MySQLDialect.client_type: MySQLDialect,
    SQLiteDialect.client_type: SQLiteDialect,
}

CLIENT_TYPES = tuple(DIALECT_PROFILES)


def get_dialect_profile(client_type: str) -> DialectProfile:
    """
    Factory function to get the profile for a client type.

    Args:
        client_type: One of CLIENT_TYPES

    Returns:
        DialectProfile instance

    Raises:
        KeyError: If the client type is not supported; build_adapter()
            validates before calling this
    """
    return DIALECT_PROFILES[client_type]()
