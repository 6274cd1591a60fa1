"""Apply parsed list parameters to an SQLAlchemy select.

The three steps run in a fixed order: `where` (AND-conjoined filters),
`order`, then `paginate` (OFFSET/LIMIT, or no limit for page size -1).
"""

import math
from typing import Any, List, Optional, Sequence

from sqlalchemy import asc, desc, func
from sqlmodel import Session, select

from ..schemas import FilterParams, OrderParam, PaginationData
from .query_params import INT64_MAX, INT64_MIN, UNLIMITED, InvalidParameter

_IS_LITERALS = {"null": None, "true": True, "false": False}
_TRUE = {"1", "true", "yes", "y"}
_FALSE = {"0", "false", "no", "n"}


def _column(model, field: str, allowed: Optional[Sequence[str]] = None):
    if allowed is not None and field not in allowed:
        raise InvalidParameter(field)
    column = model.__table__.columns.get(field)
    if column is None:
        raise InvalidParameter(field)
    return column


def _coerce(column, value: str) -> Any:
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    try:
        if python_type is bool:
            text = value.strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise ValueError(value)
        if python_type is int:
            number = int(value.strip())
            if not INT64_MIN <= number <= INT64_MAX:
                raise ValueError(value)
            return number
        if python_type is float:
            return float(value.strip())
    except ValueError:
        raise InvalidParameter(value) from None
    return value


def _split_values(column, value: str) -> List[Any]:
    return [_coerce(column, v) for v in value.split(",") if v.strip()]


def _predicate(column, operator: str, value: str):
    if operator == "=":
        return column == _coerce(column, value)
    if operator == "<":
        return column < _coerce(column, value)
    if operator == ">":
        return column > _coerce(column, value)
    if operator == "<=":
        return column <= _coerce(column, value)
    if operator == ">=":
        return column >= _coerce(column, value)
    if operator == "like":
        return column.like(value)
    if operator == "in":
        return column.in_(_split_values(column, value))
    if operator == "not in":
        return column.not_in(_split_values(column, value))
    if operator == "is":
        key = value.strip().lower()
        if key not in _IS_LITERALS:
            raise InvalidParameter(value)
        return column.is_(_IS_LITERALS[key])
    raise InvalidParameter(operator)


def where(filters: FilterParams, stmt, model, allowed: Optional[Sequence[str]] = None):
    """Add one WHERE predicate per filter; predicates are AND-ed.

    When `allowed` is given, only those column names may be filtered on.
    """
    for f in filters:
        stmt = stmt.where(_predicate(_column(model, f.field, allowed), f.operator, f.value))
    return stmt


def order(param: OrderParam, stmt, model, allowed: Optional[Sequence[str]] = None):
    """Add ORDER BY when both the column and the direction are set."""
    if param.order and param.order_by:
        column = _column(model, param.order_by, allowed)
        stmt = stmt.order_by(asc(column) if param.order == "asc" else desc(column))
    return stmt


def total_pages(total: int, page_size: int) -> int:
    if page_size == UNLIMITED:
        return 1 if total else 0
    if page_size <= 0:
        return 0
    return math.ceil(total / page_size)


def paginate(session: Session, stmt, page: int, page_size: int) -> PaginationData:
    """Count the filtered rows, then fetch the requested window."""
    total = session.exec(select(func.count()).select_from(stmt.order_by(None).subquery())).one()
    if page_size != UNLIMITED:
        stmt = stmt.offset((page - 1) * page_size).limit(page_size)
    rows = session.exec(stmt).all()
    return PaginationData(
        page=page,
        page_size=page_size,
        total_page=total_pages(total, page_size),
        total_data_per_page=len(rows),
        total_data=total,
        data=list(rows),
    )
