"""Pluggable SQL data-access adapter for PostgreSQL, MySQL and SQLite."""

from sqladapter.adapter import (
    ADAPTER_NAME,
    AdapterConfig,
    SQLDBAdapter,
    build_adapter,
    build_adapter_from_settings,
)
from sqladapter.core.exceptions import (
    AmbiguousMatchError,
    ConfigurationError,
    DatabaseConnectionError,
    PoolTimeoutError,
    QueryError,
    SQLAdapterException,
)
from sqladapter.db import CLIENT_TYPES, BoundQuery, ModelDescriptor, PoolConfig

__all__ = [
    "ADAPTER_NAME",
    "CLIENT_TYPES",
    "AdapterConfig",
    "AmbiguousMatchError",
    "BoundQuery",
    "ConfigurationError",
    "DatabaseConnectionError",
    "ModelDescriptor",
    "PoolConfig",
    "PoolTimeoutError",
    "QueryError",
    "SQLAdapterException",
    "SQLDBAdapter",
    "build_adapter",
    "build_adapter_from_settings",
]
