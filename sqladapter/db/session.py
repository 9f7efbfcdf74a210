"""
Pooled Database Handle

This module wraps SQLAlchemy's async engine in the handle that every bound
query carries back to its pool.

Key Features:
- Connection pooling: fixed bounds from PoolConfig
- One transaction per unit of work: commit on success, rollback on error
- Error translation: pool timeouts, dead connections and failed statements
  surface as PoolTimeoutError, DatabaseConnectionError and QueryError
- Lifecycle: close() disposes the pool; later calls fail fast instead of
  silently opening a fresh pool
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.sql import Executable
from sqlalchemy.sql.expression import TableClause

from sqladapter.core.exceptions import DatabaseConnectionError, PoolTimeoutError, QueryError
from sqladapter.db.interface import DEFAULT_POOL, ConnectionParams, DialectProfile, PoolConfig

logger = logging.getLogger(__name__)


class Database:
    """
    Owner of one pooled engine.

    The handle is shared read-only by every BoundQuery created from it;
    checkout and return of connections are synchronised by the pool.
    """

    def __init__(self, engine: AsyncEngine, dialect: DialectProfile, pool: PoolConfig = DEFAULT_POOL):
        self.engine = engine
        self.dialect = dialect
        self.pool = pool
        self._closed = False

    @property
    def client_type(self) -> str:
        return self.dialect.client_type

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[AsyncConnection]:
        """
        Check out a connection and open a transaction on it.

        Usage:
            async with db.begin() as conn:
                await conn.execute(statement)

        Raises:
            DatabaseConnectionError: If the handle is closed or the
                connection was invalidated
            PoolTimeoutError: If no connection frees up within the acquire
                timeout
            QueryError: For any other SQLAlchemy failure in the block
        """
        if self._closed:
            raise DatabaseConnectionError("database handle is closed", client_type=self.client_type)

        try:
            async with self.engine.begin() as conn:
                yield conn
        except sa_exc.TimeoutError as e:
            raise PoolTimeoutError(self.client_type, self.pool.acquire_timeout_ms, original_error=e) from e
        except sa_exc.DBAPIError as e:
            if e.connection_invalidated:
                raise DatabaseConnectionError(
                    f"connection lost: {e.orig}",
                    client_type=self.client_type,
                    original_error=e,
                ) from e
            raise QueryError(str(e.orig), original_error=e) from e
        except sa_exc.SQLAlchemyError as e:
            raise QueryError(str(e), original_error=e) from e

    def upsert_statement(
        self,
        table: TableClause,
        values: Mapping[str, Any],
        key_field: str,
    ) -> Optional[Executable]:
        """Native upsert for this backend, or None if it has none."""
        return self.dialect.build_upsert(table, values, key_field)

    async def close(self) -> None:
        """
        Dispose the pool. Call exactly once; repeated calls are ignored.
        """
        if self._closed:
            logger.warning(f"[{self.client_type}] close() called on an already closed database")
            return

        self._closed = True
        await self.engine.dispose()
        logger.info(f"[{self.client_type}] connection pool closed")


def connect(dialect: DialectProfile, connection: ConnectionParams, pool: PoolConfig = DEFAULT_POOL) -> Database:
    """
    Build a pooled Database for a profile.

    No connection is opened here; the pool connects lazily on first
    checkout. URL and engine construction errors from SQLAlchemy
    propagate unchanged.

    Args:
        dialect: Backend profile
        connection: Connection string or parameter mapping
        pool: Pool bounds

    Returns:
        Database handle
    """
    url = dialect.build_url(connection)
    engine = dialect.create_engine(url, pool)
    return Database(engine, dialect, pool)
