import pytest
from starlette.datastructures import QueryParams

from usercrud.schemas import FilterParam, OrderParam, PaginationParam
from usercrud.utils.query_params import (
    FILTER_OPERATORS,
    ORDER_OPERATORS,
    InvalidParameter,
    ParseError,
    QueryParamError,
    parse_filter_params,
    parse_order_param,
    parse_page_limit_param,
    parse_pagination_params,
)


def test_page_defaults_when_absent():
    assert parse_page_limit_param() == PaginationParam(page=1, page_size=-1)


def test_page_and_size_parsed():
    p = parse_page_limit_param("3", "25")
    assert (p.page, p.page_size) == (3, 25)


def test_page_size_zero_is_a_limit():
    assert parse_page_limit_param("1", "0").page_size == 0


@pytest.mark.parametrize(
    "raw",
    ["abc", "1.5", "", " 2", "1_0", "٣", "１", "9223372036854775808", "99999999999999999999"],
)
def test_non_integer_page_is_parse_error(raw):
    with pytest.raises(ParseError) as exc:
        parse_page_limit_param(raw, None)
    assert exc.value.param == "page"
    assert exc.value.raw == raw


@pytest.mark.parametrize("raw", ["ten", "١٠", "-9223372036854775809"])
def test_non_integer_page_size_is_parse_error(raw):
    with pytest.raises(ParseError) as exc:
        parse_page_limit_param("1", raw)
    assert exc.value.param == "pageSize"


def test_largest_64_bit_values_parse():
    p = parse_page_limit_param("9223372036854775807", "-1")
    assert p.page == 2 ** 63 - 1
    assert parse_page_limit_param("1", "9223372036854775807").page_size == 2 ** 63 - 1


def test_page_offset_overflow_rejected():
    with pytest.raises(InvalidParameter) as exc:
        parse_page_limit_param("9223372036854775807", "10")
    assert exc.value.name == "page"


def test_page_below_one_rejected():
    with pytest.raises(InvalidParameter) as exc:
        parse_page_limit_param("0", "10")
    assert exc.value.name == "page"


def test_negative_page_size_other_than_unlimited_rejected():
    with pytest.raises(InvalidParameter) as exc:
        parse_page_limit_param("1", "-5")
    assert str(exc.value) == "invalid pageSize parameter"


def test_signed_integers_accepted():
    assert parse_page_limit_param("+2", "-1") == PaginationParam(page=2, page_size=-1)


def test_order_empty_gives_zero_value():
    assert parse_order_param("") == OrderParam()
    assert parse_order_param(None) == OrderParam()


def test_order_single_token():
    p = parse_order_param("username:desc")
    assert (p.order_by, p.order) == ("username", "desc")


def test_order_last_valid_token_wins():
    # multiple sort keys are not accumulated; only the last one is kept
    p = parse_order_param("id:asc,email:desc,username:asc")
    assert (p.order_by, p.order) == ("username", "asc")


@pytest.mark.parametrize("junk", ["garbage", ":", "-x-", "café:asc"])
def test_order_non_matching_tokens_are_skipped(junk):
    p = parse_order_param(f"id:desc,{junk}")
    assert (p.order_by, p.order) == ("id", "desc")


def test_filter_non_ascii_field_is_skipped():
    assert parse_filter_params("café:1:eq|year:2020:eq") == [FilterParam(field="year", value="2020", operator="=")]


def test_order_invalid_direction_names_the_value():
    with pytest.raises(InvalidParameter) as exc:
        parse_order_param("id:invalid")
    assert exc.value.name == "invalid"
    assert str(exc.value) == "invalid invalid parameter"


def test_order_wrong_arity_names_sort():
    with pytest.raises(InvalidParameter) as exc:
        parse_order_param("id:asc:extra")
    assert exc.value.name == "sort"


def test_filter_empty_gives_empty_list():
    assert parse_filter_params("") == []
    assert parse_filter_params(None) == []


def test_filter_two_triples():
    filters = parse_filter_params("age:30:eq|name:john:like")
    assert filters == [
        FilterParam(field="age", value="30", operator="="),
        FilterParam(field="name", value="john", operator="like"),
    ]


def test_filter_every_operator_maps_to_relational_form():
    raw = "|".join(f"f:v:{op}" for op in FILTER_OPERATORS)
    filters = parse_filter_params(raw)
    assert [f.operator for f in filters] == list(FILTER_OPERATORS.values())
    assert filters[-1].operator == "not in"


def test_filter_non_matching_triples_are_dropped():
    filters = parse_filter_params("age:30:eq|nonsense|id::eq|email:a@b.c:like")
    assert [f.field for f in filters] == ["age", "email"]


def test_filter_value_may_contain_spaces_and_commas():
    filters = parse_filter_params("id:1,2,3:in|username:john doe:eq")
    assert filters[0].value == "1,2,3"
    assert filters[1].value == "john doe"


def test_filter_unknown_operator_fails_whole_parse():
    with pytest.raises(InvalidParameter) as exc:
        parse_filter_params("age:30:eq|age:30:between")
    assert exc.value.name == "between"


def test_filter_wrong_arity_names_the_token():
    with pytest.raises(InvalidParameter) as exc:
        parse_filter_params("created:10:30:eq")
    assert exc.value.name == "created:10:30:eq"


def test_allow_lists_are_read_only():
    with pytest.raises(TypeError):
        FILTER_OPERATORS["between"] = "between"
    with pytest.raises(TypeError):
        ORDER_OPERATORS["up"] = "asc"


def test_combined_parse_defaults():
    page, order, filters = parse_pagination_params({})
    assert page == PaginationParam(page=1, page_size=-1)
    assert order == OrderParam()
    assert filters == []


def test_combined_parse_reads_all_four_names():
    page, order, filters = parse_pagination_params(
        {"page": "2", "pageSize": "5", "sort": "email:asc", "filter": "username:bob:eq"}
    )
    assert (page.page, page.page_size) == (2, 5)
    assert (order.order_by, order.order) == ("email", "asc")
    assert filters == [FilterParam(field="username", value="bob", operator="=")]


def test_combined_parse_takes_first_of_repeated_keys():
    query = QueryParams("page=2&page=9&sort=id:asc&sort=id:desc&filter=a:1:eq&filter=b:2:eq")
    page, order, filters = parse_pagination_params(query)
    assert page.page == 2
    assert order.order == "asc"
    assert [f.field for f in filters] == ["a"]


@pytest.mark.parametrize(
    "query",
    [
        {"page": "abc", "sort": "id:bogus"},
        {"sort": "id:bogus", "filter": "a:b:bogus"},
        {"filter": "a:b:bogus"},
    ],
)
def test_combined_parse_stops_at_first_error(query):
    with pytest.raises(QueryParamError):
        parse_pagination_params(query)


def test_combined_parse_reports_page_error_before_order_error():
    with pytest.raises(ParseError):
        parse_pagination_params({"page": "abc", "sort": "id:bogus"})
