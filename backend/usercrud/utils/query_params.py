"""Translate list query-string parameters into pagination value objects.

Grammar (names as they appear in the query string):

- ``page``      integer, default ``1``
- ``pageSize``  integer, default ``-1`` (no limit)
- ``sort``      comma-separated ``field:direction``; direction is asc/desc
- ``filter``    pipe-separated ``field:value:operator``; operator is one of
                eq, lt, gt, lte, gte, in, like, is, not

Tokens that do not match the ``sort``/``filter`` patterns are skipped
silently. Tokens that match but have the wrong arity or an unknown
direction/operator raise `InvalidParameter` and abort the whole parse.
"""

import re
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..schemas import FilterParam, FilterParams, OrderParam, PaginationParam

INVALID_PARAMETER = "invalid {} parameter"

FILTER_PARAM = "filter"
ORDER_PARAM = "sort"
PAGE_PARAM = "page"
LIMIT_PARAM = "pageSize"

DEFAULT_PAGE = "1"
DEFAULT_PAGE_SIZE = "-1"
UNLIMITED = -1
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

ORDER_REGEX = re.compile(r"(\w+):(\w+)", re.ASCII)
FILTER_REGEX = re.compile(r"(\w+):([^|]+):(\w+)", re.ASCII)
_INT_REGEX = re.compile(r"[+-]?\d+", re.ASCII)

ORDER_OPERATORS = MappingProxyType({
    "desc": "desc",
    "asc": "asc",
})

FILTER_OPERATORS = MappingProxyType({
    "eq": "=",
    "lt": "<",
    "gt": ">",
    "lte": "<=",
    "gte": ">=",
    "in": "in",
    "like": "like",
    "is": "is",
    "not": "not in",
})


class QueryParamError(ValueError):
    """Base class for malformed list query parameters."""


class InvalidParameter(QueryParamError):
    """A parameter, token or operator failed validation."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(INVALID_PARAMETER.format(name))


class ParseError(QueryParamError):
    """`page` or `pageSize` is not a base-10 integer."""

    def __init__(self, param: str, raw: str):
        self.param = param
        self.raw = raw
        super().__init__(f'invalid {param} parameter: "{raw}" is not an integer')


def get_order_value(value: str) -> str:
    try:
        return ORDER_OPERATORS[value]
    except KeyError:
        raise InvalidParameter(value) from None


def get_filter_operator(operator: str) -> str:
    try:
        return FILTER_OPERATORS[operator]
    except KeyError:
        raise InvalidParameter(operator) from None


def _parse_int(param: str, raw: str) -> int:
    if not _INT_REGEX.fullmatch(raw):
        raise ParseError(param, raw)
    value = int(raw)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ParseError(param, raw)
    return value


def parse_page_limit_param(raw_page: Optional[str] = None, raw_page_size: Optional[str] = None) -> PaginationParam:
    """Parse `page`/`pageSize`; absent values fall back to 1 and -1.

    Both must fit a signed 64-bit integer. `page` must be at least 1 and
    `pageSize` at least -1; -1 is the only negative size accepted and means
    "no limit". A page whose row offset does not fit 64 bits is rejected.
    """
    page = _parse_int(PAGE_PARAM, DEFAULT_PAGE if raw_page is None else raw_page)
    page_size = _parse_int(LIMIT_PARAM, DEFAULT_PAGE_SIZE if raw_page_size is None else raw_page_size)
    if page < 1:
        raise InvalidParameter(PAGE_PARAM)
    if page_size < UNLIMITED:
        raise InvalidParameter(LIMIT_PARAM)
    if page_size > 0 and (page - 1) * page_size > INT64_MAX:
        raise InvalidParameter(PAGE_PARAM)
    return PaginationParam(page=page, page_size=page_size)


def parse_order_param(raw_order: Optional[str] = None) -> OrderParam:
    """Parse `sort`. Only the last valid token is kept."""
    p = OrderParam()
    if not raw_order:
        return p
    for token in raw_order.split(","):
        if not ORDER_REGEX.search(token):
            continue
        condition = token.split(":")
        if len(condition) != 2:
            raise InvalidParameter(ORDER_PARAM)
        value = get_order_value(condition[1])
        p.order_by = condition[0]
        p.order = value
    return p


def parse_filter_params(raw_filter: Optional[str] = None) -> FilterParams:
    """Parse `filter` into an ordered list of predicates."""
    filters: FilterParams = []
    if not raw_filter:
        return filters
    for token in raw_filter.split("|"):
        if not FILTER_REGEX.search(token):
            continue
        parts = token.split(":")
        if len(parts) != 3:
            raise InvalidParameter(token)
        operator = get_filter_operator(parts[2])
        filters.append(FilterParam(field=parts[0], value=parts[1], operator=operator))
    return filters


def _first(query: Mapping[str, str], name: str) -> Optional[str]:
    # repeated keys: the first occurrence is used
    if hasattr(query, "getlist"):
        values = query.getlist(name)
        return values[0] if values else None
    return query.get(name)


def parse_pagination_params(query: Mapping[str, str]) -> Tuple[PaginationParam, OrderParam, FilterParams]:
    """Run the page, order and filter parsers in that order.

    `query` is any mapping of query-string names to values, such as
    Starlette's `request.query_params`. When a name repeats, the first
    value is used. The first failure propagates.
    """
    page = parse_page_limit_param(_first(query, PAGE_PARAM), _first(query, LIMIT_PARAM))
    order = parse_order_param(_first(query, ORDER_PARAM))
    filters = parse_filter_params(_first(query, FILTER_PARAM))
    return page, order, filters
