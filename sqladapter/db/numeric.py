"""
Numeric Wire Decoding

Registers process-wide psycopg loaders so that PostgreSQL numeric and bigint
columns come back as host numbers instead of the driver defaults.

- numeric (OID 1700): decoded with float() by default.
  NOTE: This results in a theoretical loss of precision. Set
  DB_DECIMAL_MODE=decimal to decode to decimal.Decimal instead.
- int8 (OID 20): decoded from text to int. Python ints are arbitrary
  precision, so values beyond 2**53 keep every digit.

psycopg copies the global adapters map when a connection, or SQLAlchemy's
psycopg dialect, is created, so registration must happen before the first
engine is built.
MySQL and SQLite results are not affected.
"""

import logging
import threading
from decimal import Decimal

import psycopg
from psycopg.adapt import AdaptersMap, Loader

from sqladapter.core.setting import DecimalMode, settings

logger = logging.getLogger(__name__)

PG_DECIMAL_OID = 1700
PG_BIGINT_OID = 20

_install_lock = threading.Lock()
_installed = False


class NumericFloatLoader(Loader):
    """Text numeric -> float."""

    def load(self, data):
        return float(bytes(data))


class NumericDecimalLoader(Loader):
    """Text numeric -> Decimal, no precision loss."""

    def load(self, data):
        return Decimal(bytes(data).decode("ascii"))


class BigIntLoader(Loader):
    """Text int8 -> int."""

    def load(self, data):
        return int(bytes(data))


def register_numeric_loaders(adapters: AdaptersMap, mode: DecimalMode = DecimalMode.float) -> None:
    """
    Register the numeric and bigint loaders on an adapters map.

    Registration is keyed by OID, so calling this twice replaces the
    previous loaders rather than stacking them.

    Args:
        adapters: Target map (psycopg.adapters for process-wide effect)
        mode: Decoding used for numeric values
    """
    numeric_loader = NumericDecimalLoader if mode is DecimalMode.decimal else NumericFloatLoader
    adapters.register_loader(PG_DECIMAL_OID, numeric_loader)
    adapters.register_loader(PG_BIGINT_OID, BigIntLoader)


def install_once() -> bool:
    """
    Install the numeric decoding policy on the global psycopg adapters map.

    Returns:
        True if this call performed the installation, False if it was
        already installed
    """
    global _installed

    with _install_lock:
        if _installed:
            return False
        register_numeric_loaders(psycopg.adapters, settings.DB_DECIMAL_MODE)
        _installed = True

    logger.debug(f"Numeric decoders installed (numeric as {settings.DB_DECIMAL_MODE.value})")
    return True


def is_installed() -> bool:
    return _installed
