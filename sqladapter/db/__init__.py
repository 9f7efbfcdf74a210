"""
Database module with backend abstraction.

This module provides:
- DialectProfile interface: per-backend pool, URL and upsert behaviour
- Database: the pooled connection handle and its lifecycle
- ModelDescriptor / BoundQuery: model binding
- Numeric decoding policy for PostgreSQL wire values

To add a new backend:
1. Create a new profile class inheriting from DialectProfile
2. Implement all abstract methods
3. Register it in DIALECT_PROFILES in dialects.py
"""

from sqladapter.db.dialects import CLIENT_TYPES, get_dialect_profile
from sqladapter.db.interface import DEFAULT_POOL, DialectProfile, PoolConfig
from sqladapter.db.query import BoundQuery, ModelDescriptor, bind_model
from sqladapter.db.session import Database, connect

__all__ = [
    "CLIENT_TYPES",
    "DEFAULT_POOL",
    "BoundQuery",
    "Database",
    "DialectProfile",
    "ModelDescriptor",
    "PoolConfig",
    "bind_model",
    "connect",
    "get_dialect_profile",
]
