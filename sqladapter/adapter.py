"""
SQL Adapter Factory

Builds the adapter handed to model code:

    adapter = build_adapter({"client_type": "pg", "connection": url})
    candles = adapter.db_init({"name": "Candle", "path": "candles"})
    rows = await adapter.collection_methods.find(candles, {"symbol": "tBTCUSD"})
    await adapter.close()

Importing this module installs the process-wide numeric decoders, so the
policy is in place before any engine can open a connection.
"""

import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Mapping, Optional, Union

from sqladapter.core.exceptions import ConfigurationError
from sqladapter.core.setting import Settings, settings as default_settings
from sqladapter.db import numeric
from sqladapter.db.dialects import CLIENT_TYPES, get_dialect_profile
from sqladapter.db.interface import DEFAULT_POOL, ConnectionParams
from sqladapter.db.query import BoundQuery, bind_model
from sqladapter.db.session import Database, connect
from sqladapter.services import collection_methods, generic_methods, map_methods

logger = logging.getLogger(__name__)

numeric.install_once()

ADAPTER_NAME = "SQL"


@dataclass(frozen=True)
class AdapterConfig:
    """
    Adapter configuration.

    Attributes:
        client_type: One of CLIENT_TYPES
        connection: Connection string (e.g. a PostgreSQL URL with
            authentication) or a mapping of connection parameters
    """
    client_type: Optional[str]
    connection: Optional[ConnectionParams]


@dataclass(frozen=True)
class SQLDBAdapter:
    """
    Uniform handle over one pooled backend connection.

    Shared read-only by every caller holding a reference; owned by whoever
    built it, who must call close() exactly once.
    """
    db: Database
    client_type: str
    generic_methods: ModuleType = generic_methods
    collection_methods: ModuleType = collection_methods
    map_methods: ModuleType = map_methods
    name: str = ADAPTER_NAME

    def db_init(self, model: Any) -> BoundQuery:
        """
        Bind a model to this adapter's pool.

        Args:
            model: ModelDescriptor, {name, path} mapping, or SQLModel class

        Returns:
            A fresh BoundQuery

        Raises:
            ConfigurationError: If the model path is not a non-empty string
        """
        return bind_model(self.db, model)

    async def close(self) -> None:
        """Drain and close the connection pool."""
        await self.db.close()


def _coerce_config(config: Union[AdapterConfig, Mapping[str, Any]]) -> AdapterConfig:
    # camelCase clientType is accepted as an alias of client_type
    if isinstance(config, AdapterConfig):
        return config
    return AdapterConfig(
        client_type=config.get("client_type", config.get("clientType")),
        connection=config.get("connection"),
    )


def build_adapter(config: Union[AdapterConfig, Mapping[str, Any]]) -> SQLDBAdapter:
    """
    Adapter generator based on provided configuration.

    Args:
        config: AdapterConfig, or a mapping with client_type (or its
            alias clientType) and connection

    Returns:
        SQLDBAdapter

    Raises:
        ConfigurationError: If the client type is unsupported or no
            connection params are provided
        sqlalchemy.exc.ArgumentError: If the connection string cannot be
            parsed (propagated unchanged)
    """
    config = _coerce_config(config)
    client_type = config.client_type

    if client_type not in CLIENT_TYPES:
        raise ConfigurationError(
            f"unsupported client type: {client_type} must be one of {','.join(CLIENT_TYPES)}"
        )

    if not config.connection:
        raise ConfigurationError("no connection params provided")

    # NOTE: Don't log connection string for security
    logger.info(f"[{client_type}] connecting...")

    db = connect(get_dialect_profile(client_type), config.connection, DEFAULT_POOL)
    return SQLDBAdapter(db=db, client_type=client_type)


def build_adapter_from_settings(settings: Optional[Settings] = None) -> SQLDBAdapter:
    """
    Build an adapter from DB_CLIENT_TYPE and DATABASE_URL.

    Args:
        settings: Settings instance (defaults to the module-level settings)

    Returns:
        SQLDBAdapter
    """
    settings = settings or default_settings
    return build_adapter(AdapterConfig(
        client_type=settings.DB_CLIENT_TYPE,
        connection=settings.DATABASE_URL,
    ))
