"""
Tests for single-entity generic methods against SQLite.

update() and delete() write at most one row; criteria matching several
rows are rejected and nothing is changed.
"""

import pytest

from sqladapter import AmbiguousMatchError, QueryError
from sqladapter.services import collection_methods, generic_methods


async def _seed(candles):
    await generic_methods.create(candles, {"symbol": "tBTCUSD", "mts": 1000, "close": 100.0, "volume": 2.5})
    await generic_methods.create(candles, {"symbol": "tBTCUSD", "mts": 2000, "close": 101.5, "volume": None})
    await generic_methods.create(candles, {"symbol": "tETHUSD", "mts": 1000, "close": 20.0, "volume": 7.0})


class TestCreate:
    @pytest.mark.asyncio
    async def test_returns_stored_row(self, candles):
        """The generated primary key comes back with the row."""
        row = await generic_methods.create(candles, {"symbol": "tBTCUSD", "mts": 1000, "close": 100.0})

        assert isinstance(row["id"], int)
        assert row["symbol"] == "tBTCUSD"
        assert row["close"] == 100.0
        assert row["volume"] is None

    @pytest.mark.asyncio
    async def test_constraint_violation_is_query_error(self, user_settings):
        await generic_methods.create(user_settings, {"key": "theme", "value": "dark"})

        with pytest.raises(QueryError) as exc_info:
            await generic_methods.create(user_settings, {"key": "theme", "value": "light"})

        assert exc_info.value.original_error is not None
        assert exc_info.value.__cause__ is exc_info.value.original_error

    @pytest.mark.asyncio
    async def test_missing_relation_is_query_error(self, adapter):
        bound = adapter.db_init({"name": "Ghost", "path": "no_such_table"})

        with pytest.raises(QueryError, match="no_such_table"):
            await generic_methods.create(bound, {"a": 1})


class TestGet:
    @pytest.mark.asyncio
    async def test_by_criteria(self, candles):
        await _seed(candles)

        row = await generic_methods.get(candles, {"symbol": "tETHUSD"})

        assert row["close"] == 20.0

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, candles):
        assert await generic_methods.get(candles, {"symbol": "tXRPUSD"}) is None

    @pytest.mark.asyncio
    async def test_pending_where_criteria(self, candles):
        """Criteria set with where() are merged into the call."""
        await _seed(candles)

        row = await generic_methods.get(candles.where(symbol="tBTCUSD"), {"mts": 2000})

        assert row["close"] == 101.5

    @pytest.mark.asyncio
    async def test_null_and_in_criteria(self, candles):
        await _seed(candles)

        row = await generic_methods.get(candles, {"volume": None})
        assert row["mts"] == 2000

        row = await generic_methods.get(candles, {"symbol": ["tETHUSD", "tLTCUSD"]})
        assert row["symbol"] == "tETHUSD"


class TestUpdate:
    @pytest.mark.asyncio
    async def test_returns_updated_row(self, candles):
        created = await generic_methods.create(candles, {"symbol": "tBTCUSD", "mts": 1000, "close": 100.0})

        row = await generic_methods.update(candles, {"id": created["id"]}, {"close": 105.0})

        assert row["id"] == created["id"]
        assert row["close"] == 105.0

    @pytest.mark.asyncio
    async def test_changing_a_filter_column(self, candles):
        await generic_methods.create(candles, {"symbol": "tBTCUSD", "mts": 1000, "close": 100.0})

        row = await generic_methods.update(candles, {"symbol": "tBTCUSD"}, {"symbol": "tBTCEUR"})

        assert row["symbol"] == "tBTCEUR"

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, candles):
        assert await generic_methods.update(candles, {"id": 999}, {"close": 1.0}) is None

    @pytest.mark.asyncio
    async def test_requires_criteria(self, candles):
        with pytest.raises(ValueError, match="requires at least one criterion"):
            await generic_methods.update(candles, None, {"close": 1.0})

    @pytest.mark.asyncio
    async def test_requires_changes(self, candles):
        with pytest.raises(ValueError, match="requires at least one change"):
            await generic_methods.update(candles, {"id": 1}, {})


    @pytest.mark.asyncio
    async def test_returns_written_row_when_new_values_collide(self, candles):
        """The row read back is the one written, not another row holding the new values."""
        other = await generic_methods.create(candles, {"symbol": "tETHUSD", "mts": 1000, "close": 1.0})
        target = await generic_methods.create(candles, {"symbol": "tBTCUSD", "mts": 2000, "close": 2.0})

        row = await generic_methods.update(candles, {"symbol": "tBTCUSD"}, {"symbol": "tETHUSD"})

        assert row["id"] == target["id"]
        assert row["id"] != other["id"]
        assert row["symbol"] == "tETHUSD"
        assert row["close"] == 2.0

    @pytest.mark.asyncio
    async def test_multiple_matches_change_nothing(self, candles):
        """A single-entity update never writes more than one row."""
        await _seed(candles)

        with pytest.raises(AmbiguousMatchError, match="update on candles"):
            await generic_methods.update(candles, {"symbol": "tBTCUSD"}, {"close": 9.0})

        assert await collection_methods.count(candles, {"close": 9.0}) == 0


class TestDeleteAndExists:
    @pytest.mark.asyncio
    async def test_delete_single_match(self, candles):
        await _seed(candles)

        assert await generic_methods.delete(candles, {"symbol": "tETHUSD"}) == 1
        assert await generic_methods.exists(candles, {"symbol": "tETHUSD"}) is False
        assert await generic_methods.exists(candles, {"symbol": "tBTCUSD"}) is True

    @pytest.mark.asyncio
    async def test_delete_no_match(self, candles):
        await _seed(candles)

        assert await generic_methods.delete(candles, {"symbol": "tXRPUSD"}) == 0

    @pytest.mark.asyncio
    async def test_delete_multiple_matches_removes_nothing(self, candles):
        await _seed(candles)

        with pytest.raises(AmbiguousMatchError, match="delete on candles"):
            await generic_methods.delete(candles, {"symbol": "tBTCUSD"})

        assert await collection_methods.count(candles, {"symbol": "tBTCUSD"}) == 2

    @pytest.mark.asyncio
    async def test_ambiguous_match_is_query_error(self, candles):
        await _seed(candles)

        with pytest.raises(QueryError):
            await generic_methods.delete(candles, {"symbol": "tBTCUSD"})

    @pytest.mark.asyncio
    async def test_delete_requires_criteria(self, candles):
        with pytest.raises(ValueError):
            await generic_methods.delete(candles, {})

    @pytest.mark.asyncio
    async def test_exists_on_empty_relation(self, candles):
        assert await generic_methods.exists(candles) is False
