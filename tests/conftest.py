"""
Shared fixtures.

Integration tests run against a throwaway SQLite file per test.
"""

import pytest
import pytest_asyncio

from sqladapter import build_adapter

from tests.models import Candle, create_tables


@pytest.fixture
def sqlite_path(tmp_path):
    return str(tmp_path / "models.db")


@pytest_asyncio.fixture
async def adapter(sqlite_path):
    adapter = build_adapter({"client_type": "sqlite", "connection": sqlite_path})
    await create_tables(adapter.db)
    yield adapter
    if not adapter.db.closed:
        await adapter.close()


@pytest.fixture
def candles(adapter):
    return adapter.db_init(Candle)


@pytest.fixture
def user_settings(adapter):
    return adapter.db_init({"name": "UserSetting", "path": "settings"})
