"""
Model Binding

Resolves a model descriptor to a BoundQuery: the relation the model maps to,
paired with the pooled Database it should run against. Method bundles take
a BoundQuery and never need the adapter itself.

A BoundQuery is created per db_init() call and is never cached or shared;
its pending criteria are private to it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import column, literal_column, select, table
from sqlalchemy.sql.expression import ColumnElement, Select, TableClause

from sqladapter.core.exceptions import ConfigurationError
from sqladapter.db.session import Database


@dataclass(frozen=True)
class ModelDescriptor:
    """Minimal identity of a model: its name and the relation it maps to."""
    name: str
    path: str

    @classmethod
    def coerce(cls, model: Any) -> "ModelDescriptor":
        """
        Build a descriptor from whatever the model layer hands over.

        Accepts a ModelDescriptor, a mapping with name/path keys, a
        SQLModel/SQLAlchemy table class or instance (uses the class name
        and the mapped table name), or any object with name and path
        attributes. No validation happens here; bind_model() validates the
        path.
        """
        if isinstance(model, cls):
            return model
        if isinstance(model, Mapping):
            return cls(name=model.get("name"), path=model.get("path"))
        model_cls = model if isinstance(model, type) else type(model)
        mapped_table = getattr(model_cls, "__table__", None)
        if mapped_table is not None:
            return cls(name=model_cls.__name__, path=mapped_table.fullname)
        return cls(name=getattr(model, "name", None), path=getattr(model, "path", None))


@dataclass
class BoundQuery:
    """
    A relation bound to its owning pool.

    Attributes:
        model: Descriptor this query was bound from
        db: Pooled Database to execute against
        criteria: Pending equality filters, merged into every operation
    """
    model: ModelDescriptor
    db: Database
    criteria: Dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return self.model.path

    def where(self, **criteria: Any) -> "BoundQuery":
        """Add pending filters; returns self for chaining."""
        self.criteria.update(criteria)
        return self

    def filters(self, criteria: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Pending criteria merged with call-specific criteria."""
        merged = dict(self.criteria)
        if criteria:
            merged.update(criteria)
        return merged

    def relation(self, *columns: str) -> TableClause:
        """
        Lightweight table construct for the bound path.

        Only the named columns are declared; SELECT * is used for reads, so
        the full row shape comes from the backend. A dotted path is split
        into schema and table name.
        """
        schema, _, name = self.path.rpartition(".")
        return table(
            name,
            *[column(n) for n in dict.fromkeys(columns)],
            schema=schema or None,
        )

    @staticmethod
    def conditions(tbl: TableClause, criteria: Mapping[str, Any]) -> List[ColumnElement]:
        """
        Render criteria as WHERE clauses.

        None -> IS NULL, list/tuple/set -> IN, anything else -> equality.
        """
        clauses = []
        for name, value in criteria.items():
            col = tbl.c[name]
            if value is None:
                clauses.append(col.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(col.in_(list(value)))
            else:
                clauses.append(col == value)
        return clauses


def bind_model(db: Database, model: Any) -> BoundQuery:
    """
    Bind a model to the pooled database.

    Args:
        db: Pooled Database
        model: Anything ModelDescriptor.coerce() accepts

    Returns:
        A fresh BoundQuery

    Raises:
        ConfigurationError: If the model path is not a non-empty string
    """
    descriptor = ModelDescriptor.coerce(model)

    if not isinstance(descriptor.path, str) or not descriptor.path:
        raise ConfigurationError(f"model DB path not string or empty for model {descriptor.name}")

    return BoundQuery(model=descriptor, db=db)


def select_all(tbl: TableClause) -> Select:
    """SELECT * FROM the relation; row keys come from the backend."""
    return select(literal_column("*")).select_from(tbl)
