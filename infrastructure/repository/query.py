"""
Query specifications: explicit (field, operator, value) filters translated to SQL clauses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Type, Union
from sqlalchemy import and_
from sqlalchemy.orm import QueryableAttribute
from sqlalchemy.sql.elements import ColumnElement


class Operator(str, Enum):
    """Comparison operators supported by Criterion."""
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    IN = "in"
    NOT_IN = "not_in"
    LIKE = "like"
    ILIKE = "ilike"
    IS_NULL = "is_null"


def _is_null(column, value):
    # is_null=False means IS NOT NULL
    if value is False:
        return column.is_not(None)
    return column.is_(None)


_OPERATORS = {
    Operator.EQ: lambda column, value: column == value,
    Operator.NE: lambda column, value: column != value,
    Operator.GT: lambda column, value: column > value,
    Operator.GE: lambda column, value: column >= value,
    Operator.LT: lambda column, value: column < value,
    Operator.LE: lambda column, value: column <= value,
    Operator.IN: lambda column, value: column.in_(value),
    Operator.NOT_IN: lambda column, value: column.not_in(value),
    Operator.LIKE: lambda column, value: column.like(value),
    Operator.ILIKE: lambda column, value: column.ilike(value),
    Operator.IS_NULL: _is_null,
}


@dataclass(frozen=True)
class Criterion:
    """Single filter condition on a mapped attribute, e.g. Criterion("id", Operator.GT, 1)."""

    field: str
    op: Operator = Operator.EQ
    value: Any = None

    def to_clause(self, model: Type[Any]) -> ColumnElement:
        column = getattr(model, self.field, None)
        if not isinstance(column, QueryableAttribute):
            raise ValueError(f"{model.__name__} has no column '{self.field}'")
        return _OPERATORS[Operator(self.op)](column, self.value)


Filter = Union[ColumnElement, Criterion, Sequence[Union[ColumnElement, Criterion]]]


def parse_filters(**filters) -> List[Criterion]:
    """
    Build criteria from keyword filters.

    A plain name compares for equality; a double-underscore suffix selects the
    operator, e.g. plate__like="AB%" or exited_at__is_null=True.
    """
    criteria = []
    for key, value in filters.items():
        field, _, op = key.partition("__")
        criteria.append(Criterion(field, Operator(op) if op else Operator.EQ, value))
    return criteria


def build_clause(model: Type[Any], filter: Optional[Filter]) -> Optional[ColumnElement]:
    """Translate a filter into a single WHERE clause; None means no filtering."""
    if filter is None:
        return None
    if isinstance(filter, Criterion):
        return filter.to_clause(model)
    if isinstance(filter, ColumnElement):
        return filter
    if isinstance(filter, (list, tuple)):
        clauses = [build_clause(model, item) for item in filter]
        clauses = [clause for clause in clauses if clause is not None]
        if not clauses:
            return None
        return clauses[0] if len(clauses) == 1 else and_(*clauses)
    raise TypeError(f"Unsupported filter type: {type(filter).__name__}")
