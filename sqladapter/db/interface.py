"""
Dialect Profile Interface

This module defines the per-backend abstraction that lets the adapter target
PostgreSQL, MySQL and SQLite through one code path.

A profile is resolved once, when the adapter is built, from the client type
tag. Everything after that point talks to the resulting pooled engine and
never looks at the tag again. The only backend-specific behaviour the method
bundles reach for is native upsert, and they reach for it through the
profile.

To add a new backend:
1. Create a new class inheriting from DialectProfile
2. Implement all abstract methods
3. Register it in DIALECT_PROFILES in dialects.py
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, Pool
from sqlalchemy.sql import Executable
from sqlalchemy.sql.expression import TableClause

ConnectionParams = Union[str, Mapping[str, Any]]


@dataclass(frozen=True)
class PoolConfig:
    """
    Connection pool bounds.

    Mapped onto SQLAlchemy's queue pool: `min` connections are kept open
    once created, up to `max - min` more are opened on demand and closed on
    return, and a checkout waits at most `acquire_timeout_ms`.
    """
    min: int = 2
    max: int = 25
    acquire_timeout_ms: int = 10 * 1000

    @property
    def max_overflow(self) -> int:
        # builtin max(); self.max is the field
        return max(self.max - self.min, 0)

    @property
    def timeout_seconds(self) -> float:
        return self.acquire_timeout_ms / 1000


DEFAULT_POOL = PoolConfig()


class DialectProfile(ABC):
    """
    Abstract base class for backend profiles.

    Subclasses set `client_type` (the tag accepted by build_adapter),
    `drivername` (the async SQLAlchemy driver) and `url_schemes` (schemes
    that may be rewritten to `drivername`).
    """

    client_type: str = "unknown"
    drivername: str = ""
    url_schemes: tuple = ()

    def build_url(self, connection: ConnectionParams) -> URL:
        """
        Normalise connection params into an async SQLAlchemy URL.

        Args:
            connection: Connection string, or a mapping with host, port,
                user, password and database keys

        Returns:
            URL using this profile's async driver

        Raises:
            sqlalchemy.exc.ArgumentError: If the string cannot be parsed
        """
        if isinstance(connection, Mapping):
            return URL.create(
                self.drivername,
                username=connection.get("user") or connection.get("username"),
                password=connection.get("password"),
                host=connection.get("host"),
                port=connection.get("port"),
                database=connection.get("database"),
            )

        url = make_url(connection)
        if "+" not in url.drivername and url.drivername in self.url_schemes:
            url = url.set(drivername=self.drivername)
        return url

    def create_engine(self, url: URL, pool: PoolConfig = DEFAULT_POOL) -> AsyncEngine:
        """
        Create the pooled async engine.

        Args:
            url: URL returned by build_url()
            pool: Pool bounds

        Returns:
            Configured AsyncEngine
        """
        return create_async_engine(
            url,
            poolclass=self.get_pool_class(url),
            connect_args=self.get_connect_args(),
            **self.get_engine_kwargs(url, pool)
        )

    def get_pool_class(self, url: URL) -> type[Pool]:
        """
        Get the connection pool class for this backend.

        Returns:
            Pool class; the async queue pool unless a backend overrides it
        """
        return AsyncAdaptedQueuePool

    def get_engine_kwargs(self, url: URL, pool: PoolConfig) -> Dict[str, Any]:
        """
        Get engine configuration, including pool sizing.

        Returns:
            Dictionary of engine configuration options
        """
        return {
            "echo": False,
            "pool_pre_ping": True,
            "pool_size": pool.min,
            "max_overflow": pool.max_overflow,
            "pool_timeout": pool.timeout_seconds,
        }

    @abstractmethod
    def get_connect_args(self) -> Dict[str, Any]:
        """
        Get connection arguments specific to this backend.

        Returns:
            Dictionary of DBAPI connect arguments
        """
        pass

    @abstractmethod
    def build_upsert(
        self,
        table: TableClause,
        values: Mapping[str, Any],
        key_field: str,
    ) -> Optional[Executable]:
        """
        Build a single-statement insert-or-update keyed on `key_field`.

        `key_field` must carry a primary key or unique constraint.

        Returns:
            The statement, or None if the backend has no native upsert
        """
        pass

    def get_dialect_name(self) -> str:
        """
        Get the SQLAlchemy dialect name for this backend.

        Returns:
            Dialect name (e.g., 'sqlite', 'postgresql')
        """
        return self.drivername.split("+", 1)[0]
