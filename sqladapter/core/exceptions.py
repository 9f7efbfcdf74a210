"""
Custom Exceptions

This module defines the error taxonomy surfaced by the adapter.

- ConfigurationError: invalid client type, empty connection params or an
  invalid model path. Always fatal to the call, never retried.
- DatabaseConnectionError / PoolTimeoutError: the pool could not hand out a
  usable connection. PoolTimeoutError lets callers tell "overloaded" apart
  from "bad query".
- QueryError: any execution failure inside a method-surface call.
  AmbiguousMatchError is the QueryError raised when a single-entity
  update or delete matches more than one record; nothing is written.

Messages never contain the connection string or credentials.
"""

from typing import Optional


class SQLAdapterException(Exception):
    """Base exception for the SQL adapter."""
    pass


class ConfigurationError(SQLAdapterException):
    """Raised when adapter or model configuration is invalid."""
    pass


class DatabaseConnectionError(SQLAdapterException, ConnectionError):
    """Raised when no usable connection can be obtained from the pool."""

    def __init__(
        self,
        message: str,
        client_type: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.client_type = client_type
        self.original_error = original_error
        prefix = f"[{client_type}] " if client_type else ""
        super().__init__(f"{prefix}{message}")


class PoolTimeoutError(DatabaseConnectionError):
    """Raised when acquiring a pooled connection exceeds the acquire timeout."""

    def __init__(
        self,
        client_type: str,
        timeout_ms: int,
        original_error: Optional[Exception] = None,
    ):
        self.timeout_ms = timeout_ms
        super().__init__(
            f"timed out after {timeout_ms}ms waiting for a pooled connection",
            client_type=client_type,
            original_error=original_error,
        )


class QueryError(SQLAdapterException):
    """Raised when a query fails to execute."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Query failed: {message}")


class AmbiguousMatchError(QueryError):
    """Raised when a single-entity write matches more than one record."""

    def __init__(self, operation: str, path: str):
        self.operation = operation
        self.path = path
        super().__init__(f"{operation} on {path} matched more than one record")
