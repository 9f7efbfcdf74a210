"""
Generic Methods

Single-entity CRUD over a BoundQuery:
- create: insert one record
- get: fetch the first record matching criteria
- update: change the one matching record and return it
- delete: remove the one matching record
- exists: check whether any record matches

Every call runs in its own transaction on the bound pool. Rows are returned
as plain dicts. Backend failures surface as QueryError (or the connection
errors raised by Database.begin()), never as None.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import delete as sa_delete
from sqlalchemy import insert, literal, literal_column, select
from sqlalchemy import update as sa_update

from sqladapter.core.exceptions import AmbiguousMatchError
from sqladapter.db.query import BoundQuery, select_all

logger = logging.getLogger(__name__)


def _require_criteria(bound: BoundQuery, criteria: Optional[Mapping[str, Any]], operation: str) -> Dict[str, Any]:
    filters = bound.filters(criteria)
    if not filters:
        raise ValueError(f"{operation} on {bound.path} requires at least one criterion")
    return filters


async def create(bound: BoundQuery, record: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Insert a single record.

    Where the backend supports INSERT ... RETURNING the stored row is
    returned, including generated keys and defaults. Otherwise the record
    as written is returned.

    Args:
        bound: Bound relation
        record: Column values

    Returns:
        The inserted row
    """
    values = dict(record)
    tbl = bound.relation(*values)
    statement = insert(tbl).values(**values)

    async with bound.db.begin() as conn:
        if conn.dialect.insert_returning:
            result = await conn.execute(statement.returning(literal_column("*")))
            row = result.mappings().one()
            return dict(row)
        await conn.execute(statement)

    logger.debug(f"Inserted into {bound.path} without RETURNING")
    return values


async def get(bound: BoundQuery, criteria: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """
    Fetch one record.

    Args:
        bound: Bound relation
        criteria: Equality filters, merged with the bound's pending criteria

    Returns:
        The first matching row, or None
    """
    filters = bound.filters(criteria)
    tbl = bound.relation(*filters)
    statement = select_all(tbl).where(*bound.conditions(tbl, filters)).limit(1)

    async with bound.db.begin() as conn:
        result = await conn.execute(statement)
        row = result.mappings().first()

    return dict(row) if row is not None else None


async def update(
    bound: BoundQuery,
    criteria: Optional[Mapping[str, Any]],
    changes: Mapping[str, Any],
) -> Optional[Dict[str, Any]]:
    """
    Update the one record matching criteria and return it.

    Where the backend supports UPDATE ... RETURNING the changed row comes
    straight from the statement. Otherwise the matched row is read before
    the write and returned with the changes applied, so the result is
    always the record that was written, even when its new values collide
    with another row's.

    Args:
        bound: Bound relation
        criteria: Equality filters identifying the record
        changes: Column values to set

    Returns:
        The updated row, or None if nothing matched

    Raises:
        ValueError: If no criteria or no changes are given
        AmbiguousMatchError: If the criteria match more than one record;
            the transaction is rolled back and nothing is changed
    """
    filters = _require_criteria(bound, criteria, "update")
    if not changes:
        raise ValueError(f"update on {bound.path} requires at least one change")

    tbl = bound.relation(*filters, *changes)
    where = bound.conditions(tbl, filters)
    statement = sa_update(tbl).where(*where).values(**changes)

    async with bound.db.begin() as conn:
        if conn.dialect.update_returning:
            result = await conn.execute(statement.returning(literal_column("*")))
            rows = result.mappings().all()
            if len(rows) > 1:
                raise AmbiguousMatchError("update", bound.path)
            return dict(rows[0]) if rows else None

        matched = await conn.execute(select_all(tbl).where(*where).limit(2))
        rows = matched.mappings().all()
        if not rows:
            return None
        if len(rows) > 1:
            raise AmbiguousMatchError("update", bound.path)
        result = await conn.execute(statement)
        # a matching row inserted since the read would widen the write
        if result.rowcount > 1:
            raise AmbiguousMatchError("update", bound.path)

    return {**rows[0], **changes}


async def delete(bound: BoundQuery, criteria: Optional[Mapping[str, Any]]) -> int:
    """
    Delete the one record matching criteria.

    Returns:
        Number of rows deleted (0 or 1)

    Raises:
        ValueError: If no criteria are given
        AmbiguousMatchError: If the criteria match more than one record;
            the transaction is rolled back and nothing is deleted
    """
    filters = _require_criteria(bound, criteria, "delete")
    tbl = bound.relation(*filters)

    async with bound.db.begin() as conn:
        result = await conn.execute(sa_delete(tbl).where(*bound.conditions(tbl, filters)))
        if result.rowcount > 1:
            raise AmbiguousMatchError("delete", bound.path)
        return result.rowcount


async def exists(bound: BoundQuery, criteria: Optional[Mapping[str, Any]] = None) -> bool:
    """Check whether at least one record matches."""
    filters = bound.filters(criteria)
    tbl = bound.relation(*filters)
    statement = select(literal(1)).select_from(tbl).where(*bound.conditions(tbl, filters)).limit(1)

    async with bound.db.begin() as conn:
        result = await conn.execute(statement)
        return result.scalar() is not None
