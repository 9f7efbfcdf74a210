"""
Map Methods

Treats a relation as an associative store keyed by one column
(`key_field`, default "key"):
- get_key: fetch the row for a key
- set_key: insert-or-update the row for a key
- delete_key: remove the row for a key
- get_all: every row, as a {key: row} mapping ordered by key

Pending criteria on the bound query (`bound.where(...)`) scope every call:
get_key, delete_key and get_all only see rows inside the scope, and
set_key writes the criteria as column values of the stored row.

set_key() issues the backend's native upsert (ON CONFLICT / ON DUPLICATE
KEY) as a single statement, which is atomic at the storage layer. The key
column must carry a primary key or unique constraint for this to work.

If a backend profile has no native upsert, set_key() falls back to
read-then-write inside one transaction. That fallback is NOT race-free:
two concurrent writers can both see "missing" and both insert, and the
second insert fails on the unique constraint (QueryError) or, without a
constraint, duplicates the key.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from sqlalchemy import delete, insert, literal, select, update
from sqlalchemy.sql.expression import TableClause

from sqladapter.db.query import BoundQuery, select_all

logger = logging.getLogger(__name__)

DEFAULT_KEY_FIELD = "key"


def _scoped(bound: BoundQuery, key: Any, key_field: str) -> Tuple[TableClause, list]:
    # pending criteria narrow every key lookup
    filters = bound.filters({key_field: key})
    tbl = bound.relation(*filters)
    return tbl, bound.conditions(tbl, filters)


async def get_key(bound: BoundQuery, key: Any, key_field: str = DEFAULT_KEY_FIELD) -> Optional[Dict[str, Any]]:
    """Row stored under `key` within the bound's pending criteria, or None."""
    tbl, where = _scoped(bound, key, key_field)
    statement = select_all(tbl).where(*where).limit(1)

    async with bound.db.begin() as conn:
        result = await conn.execute(statement)
        row = result.mappings().first()

    return dict(row) if row is not None else None


async def set_key(
    bound: BoundQuery,
    key: Any,
    values: Optional[Mapping[str, Any]] = None,
    key_field: str = DEFAULT_KEY_FIELD,
) -> Dict[str, Any]:
    """
    Insert or update the row stored under `key`.

    Pending criteria on the bound query are written as column values, so
    the stored row always falls inside the scope it was set through.

    Args:
        bound: Bound relation
        key: Key value
        values: Other column values to store with the key
        key_field: Key column name

    Returns:
        The stored row, as read back in the same transaction

    Raises:
        ValueError: If a pending criterion is multi-valued and so cannot
            be written
    """
    for name, value in bound.criteria.items():
        if isinstance(value, (list, tuple, set)):
            raise ValueError(f"set_key on {bound.path} cannot write multi-valued criterion {name!r}")

    row = {**bound.criteria, **(values or {}), key_field: key}
    tbl = bound.relation(*row)
    key_clause = tbl.c[key_field] == key
    upsert = bound.db.upsert_statement(tbl, row, key_field)

    async with bound.db.begin() as conn:
        if upsert is not None:
            await conn.execute(upsert)
        else:
            logger.warning(f"Non-atomic upsert on {bound.path}: no native upsert for this backend")
            found = await conn.execute(select(literal(1)).select_from(tbl).where(key_clause).limit(1))
            changes = {name: value for name, value in row.items() if name != key_field}
            if found.scalar() is None:
                await conn.execute(insert(tbl).values(**row))
            elif changes:
                await conn.execute(update(tbl).where(key_clause).values(**changes))

        result = await conn.execute(select_all(tbl).where(key_clause).limit(1))
        stored = result.mappings().one()

    return dict(stored)


async def delete_key(bound: BoundQuery, key: Any, key_field: str = DEFAULT_KEY_FIELD) -> bool:
    """
    Remove the row stored under `key` within the bound's pending criteria.

    Returns:
        True if a row was removed
    """
    tbl, where = _scoped(bound, key, key_field)

    async with bound.db.begin() as conn:
        result = await conn.execute(delete(tbl).where(*where))
        return result.rowcount > 0


async def get_all(bound: BoundQuery, key_field: str = DEFAULT_KEY_FIELD) -> Dict[Any, Dict[str, Any]]:
    """
    Every row, keyed by `key_field`, in key order.

    Pending criteria on the bound query narrow the result.
    """
    filters = bound.filters()
    tbl = bound.relation(key_field, *filters)
    statement = select_all(tbl).where(*bound.conditions(tbl, filters)).order_by(tbl.c[key_field].asc())

    async with bound.db.begin() as conn:
        result = await conn.execute(statement)
        rows = result.mappings().all()

    return {row[key_field]: dict(row) for row in rows}
