"""
Collection Methods

Set-oriented operations over a BoundQuery: filtered listing with ordering
and pagination, bulk insert, bulk update, bulk delete and count.

find() always applies filter -> sort -> pagination, so identical calls
return identical pages as long as order_by names a unique column set.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.sql.expression import TableClause

from sqladapter.db.query import BoundQuery, select_all

logger = logging.getLogger(__name__)

OrderBy = Union[str, Sequence[str], None]


def _order_fields(order_by: OrderBy) -> List[str]:
    if order_by is None:
        return []
    if isinstance(order_by, str):
        return [order_by]
    return list(order_by)


def _order_clauses(tbl: TableClause, fields: List[str]) -> list:
    # "-name" sorts descending
    clauses = []
    for name in fields:
        if name.startswith("-"):
            clauses.append(tbl.c[name[1:]].desc())
        else:
            clauses.append(tbl.c[name].asc())
    return clauses


async def find(
    bound: BoundQuery,
    criteria: Optional[Mapping[str, Any]] = None,
    *,
    order_by: OrderBy = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    List records.

    Args:
        bound: Bound relation
        criteria: Equality filters, merged with the bound's pending criteria
        order_by: Column name or names; prefix with '-' for descending
        limit: Maximum number of rows
        offset: Number of rows to skip after sorting

    Returns:
        Matching rows in order

    Raises:
        ValueError: If limit or offset is negative
    """
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    if offset is not None and offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")

    filters = bound.filters(criteria)
    fields = _order_fields(order_by)
    tbl = bound.relation(*filters, *(name.lstrip("-") for name in fields))

    statement = select_all(tbl).where(*bound.conditions(tbl, filters))
    statement = statement.order_by(*_order_clauses(tbl, fields))
    if limit is not None:
        statement = statement.limit(limit)
    if offset is not None:
        statement = statement.offset(offset)

    async with bound.db.begin() as conn:
        result = await conn.execute(statement)
        return [dict(row) for row in result.mappings().all()]


async def bulk_insert(bound: BoundQuery, records: Sequence[Mapping[str, Any]]) -> int:
    """
    Insert many records in one executemany round trip.

    All records must have the same keys; missing keys are not filled in,
    since an explicit NULL would override column defaults.

    Returns:
        Number of records inserted

    Raises:
        ValueError: If the records do not share the same keys
    """
    rows = [dict(record) for record in records]
    if not rows:
        return 0

    keys = list(rows[0])
    for row in rows[1:]:
        if set(row) != set(keys):
            raise ValueError(f"bulk_insert on {bound.path} requires all records to share the same keys")

    tbl = bound.relation(*keys)
    async with bound.db.begin() as conn:
        await conn.execute(insert(tbl), rows)

    logger.debug(f"Bulk inserted {len(rows)} rows into {bound.path}")
    return len(rows)


async def update_many(
    bound: BoundQuery,
    criteria: Optional[Mapping[str, Any]],
    changes: Mapping[str, Any],
) -> int:
    """
    Apply the same changes to every matching record.

    Returns:
        Number of rows updated

    Raises:
        ValueError: If no changes are given
    """
    if not changes:
        raise ValueError(f"update_many on {bound.path} requires at least one change")

    filters = bound.filters(criteria)
    tbl = bound.relation(*filters, *changes)

    async with bound.db.begin() as conn:
        result = await conn.execute(update(tbl).where(*bound.conditions(tbl, filters)).values(**changes))
        return result.rowcount


async def bulk_delete(bound: BoundQuery, criteria: Optional[Mapping[str, Any]] = None) -> int:
    """
    Delete every matching record. With no criteria the relation is emptied.

    Returns:
        Number of rows deleted
    """
    filters = bound.filters(criteria)
    tbl = bound.relation(*filters)

    async with bound.db.begin() as conn:
        result = await conn.execute(delete(tbl).where(*bound.conditions(tbl, filters)))
        return result.rowcount


async def count(bound: BoundQuery, criteria: Optional[Mapping[str, Any]] = None) -> int:
    """Count matching records."""
    filters = bound.filters(criteria)
    tbl = bound.relation(*filters)
    statement = select(func.count()).select_from(tbl).where(*bound.conditions(tbl, filters))

    async with bound.db.begin() as conn:
        result = await conn.execute(statement)
        return int(result.scalar_one())
