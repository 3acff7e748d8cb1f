from datetime import datetime, timezone

import pytest

import reql as r
from reql.compiler import (
    Context,
    build_query,
    callable_arity,
    contains_implicit_variable,
    query_time_format,
    to_term,
)
from reql.errors import BadClientError, InternalError
from reql.query import TableSpec

from fakeserver import term_tree

DEFAULT_TABLE = ("TABLE", [("DB", ["test"]), "t"])


def compile_tree(value, ctx=None):
    return term_tree(build_query(value, ctx or Context()).query)


def func_params(tree):
    assert tree[0] == "FUNC"
    params = tree[1][0]
    assert params[0] == "MAKE_ARRAY"
    return [int(number) for number in params[1]]


def test_literal_arithmetic() -> None:
    assert compile_tree(r.expr(1).add(2)) == ("ADD", [1, 2])
    assert compile_tree(r.expr(1) + 2 * r.expr(3)) == ("ADD", [1, ("MUL", [2, 3])])


def test_plain_values_compile_directly() -> None:
    assert compile_tree({"a": [1, None]}) == ("MAKE_OBJ", [], {"a": ("MAKE_ARRAY", [1, None])})
    assert compile_tree("hello") == "hello"


def test_table_gets_default_database() -> None:
    assert compile_tree(r.table("t")) == DEFAULT_TABLE
    assert compile_tree(r.table("t"), Context(database="other")) == ("TABLE", [("DB", ["other"]), "t"])
    assert compile_tree(r.db("d").table("t")) == ("TABLE", [("DB", ["d"]), "t"])


def test_table_list_and_drop_get_default_database() -> None:
    assert compile_tree(r.table_list()) == ("TABLE_LIST", [("DB", ["test"])])
    assert compile_tree(r.table_drop("t")) == ("TABLE_DROP", [("DB", ["test"]), "t"])
    assert compile_tree(r.db("d").table_list()) == ("TABLE_LIST", [("DB", ["d"])])


def test_table_create_expands_spec() -> None:
    spec = TableSpec("t", primary_key="pk", cache_size=10, durability="soft")
    assert compile_tree(r.table_create(spec)) == (
        "TABLE_CREATE",
        [("DB", ["test"]), "t"],
        {"primary_key": "pk", "cache_size": 10, "durability": "soft"},
    )
    assert compile_tree(r.db("d").table_create("t")) == ("TABLE_CREATE", [("DB", ["d"]), "t"])


def test_use_outdated_applies_to_its_subtree_only() -> None:
    query = r.table("a").use_outdated().union(r.table("b"))
    assert compile_tree(query) == (
        "UNION",
        [
            ("TABLE", [("DB", ["test"]), "a"], {"use_outdated": True}),
            ("TABLE", [("DB", ["test"]), "b"]),
        ],
    )


def test_innermost_option_wins() -> None:
    assert compile_tree(r.table("t").use_outdated(False).use_outdated(True)) == DEFAULT_TABLE
    assert compile_tree(r.table("t").use_outdated(True).use_outdated(False)) == (
        "TABLE",
        [("DB", ["test"]), "t"],
        {"use_outdated": True},
    )


def test_filter_with_object_predicate() -> None:
    tree = compile_tree(r.table("t").filter({"num": 16}))
    assert tree == ("FILTER", [DEFAULT_TABLE, ("MAKE_OBJ", [], {"num": 16})])


def test_filter_with_lambda() -> None:
    tree = compile_tree(r.table("t").filter(lambda doc: doc["num"].eq(16)))
    assert tree[0] == "FILTER"
    assert tree[1][0] == DEFAULT_TABLE
    function = tree[1][1]
    [number] = func_params(function)
    assert function[1][1] == ("EQ", [("GETATTR", [("VAR", [number]), "num"]), 16])


def test_wrong_arity_is_rejected() -> None:
    with pytest.raises(BadClientError, match="incorrect number of arguments"):
        build_query(r.table("t").filter(lambda a, b: a), Context())
    with pytest.raises(BadClientError):
        build_query(r.table("t").reduce(lambda a: a), Context())


def test_variadic_callables_get_the_expected_arity() -> None:
    tree = compile_tree(r.table("t").reduce(lambda *args: args[0]))
    assert len(func_params(tree[1][1])) == 2


def test_implicit_row_wraps_a_function() -> None:
    tree = compile_tree(r.table("t").map(r.row["a"]))
    function = tree[1][1]
    assert len(func_params(function)) == 1
    assert function[1][1] == ("GETATTR", [("IMPLICIT_VAR", []), "a"])

    nested = compile_tree(r.table("t").map({"b": r.row["a"]}))
    assert nested[1][1][0] == "FUNC"


def test_literal_function_body_is_not_wrapped() -> None:
    tree = compile_tree(r.table("t").map({"a": 1}))
    assert tree == ("MAP", [DEFAULT_TABLE, ("MAKE_OBJ", [], {"a": 1})])


def test_variables_are_numbered_uniquely() -> None:
    tree = compile_tree(r.table("t").filter(lambda a: a).map(lambda b: b))
    first = func_params(tree[1][0][1][1])
    second = func_params(tree[1][1])
    assert first != second


def test_write_options() -> None:
    query = r.table("t").insert({"a": 1}).durability("soft").return_values().upsert()
    tree = compile_tree(query)
    assert tree == (
        "INSERT",
        [DEFAULT_TABLE, ("MAKE_OBJ", [], {"a": 1})],
        {"durability": "soft", "return_vals": True, "upsert": True},
    )
    update = compile_tree(r.table("t").update({"a": 2}).atomic(False))
    assert update[2] == {"non_atomic": True}
    assert len(compile_tree(r.table("t").delete())) == 2


def test_write_options_do_not_leak_into_reads() -> None:
    tree = compile_tree(r.table("t").get(1).durability("hard"))
    assert tree == ("GET", [DEFAULT_TABLE, 1])


def test_between_index_and_bounds() -> None:
    query = r.table("t").between(1, 5, index="num").left_bound("open").right_bound("closed")
    assert compile_tree(query) == (
        "BETWEEN",
        [DEFAULT_TABLE, 1, 5],
        {"index": "num", "left_bound": "open", "right_bound": "closed"},
    )
    assert compile_tree(r.table("t").between(1, 5)) == ("BETWEEN", [DEFAULT_TABLE, 1, 5])


def test_trailing_optargs() -> None:
    reduced = compile_tree(r.expr([1, 2]).reduce(lambda a, b: a.add(b), 0))
    assert reduced[0] == "REDUCE"
    assert reduced[2] == {"base": 0}
    assert compile_tree(r.table("t").get_all(1, 2, index="num")) == (
        "GET_ALL",
        [DEFAULT_TABLE, 1, 2],
        {"index": "num"},
    )
    assert compile_tree(r.table("a").eq_join("id", r.table("b"), "idx")) == (
        "EQ_JOIN",
        [("TABLE", [("DB", ["test"]), "a"]), "id", ("TABLE", [("DB", ["test"]), "b"])],
        {"index": "idx"},
    )
    assert compile_tree(r.js("1 + 1", timeout=2)) == ("JAVASCRIPT", ["1 + 1"], {"timeout": 2})


def test_group_by_sends_attribute_array() -> None:
    assert compile_tree(r.table("t").group_by("a", r.count())) == (
        "GROUPBY",
        [DEFAULT_TABLE, ("MAKE_ARRAY", ["a"]), ("MAKE_OBJ", [], {"COUNT": True})],
    )


def test_order_by() -> None:
    assert compile_tree(r.table("t").order_by("num")) == ("ORDERBY", [DEFAULT_TABLE, "num"])
    assert compile_tree(r.table("t").order_by(r.desc("num"))) == (
        "ORDERBY",
        [DEFAULT_TABLE, ("DESC", ["num"])],
    )


def test_do_calls_function_with_receiver() -> None:
    tree = compile_tree(r.expr(1).do(lambda x: x.add(1)))
    assert tree[0] == "FUNCALL"
    function, operand = tree[1]
    [number] = func_params(function)
    assert function[1][1] == ("ADD", [("VAR", [number]), 1])
    assert operand == 1


def test_datetime_literal_becomes_time_object() -> None:
    when = datetime(2001, 1, 1, tzinfo=timezone.utc)
    assert compile_tree(r.expr(when)) == (
        "MAKE_OBJ",
        [],
        {"$reql_type$": "TIME", "epoch_time": 978307200, "timezone": "+00:00"},
    )


def test_non_string_keys_fail_with_rendered_query() -> None:
    with pytest.raises(BadClientError) as info:
        build_query(r.expr({1: "a"}), Context())
    assert info.value.query is not None


def test_literal_depth_limit() -> None:
    value: object = 1
    for _ in range(25):
        value = [value]
    with pytest.raises(BadClientError, match="depth"):
        build_query(r.expr([1]).add(value), Context())


def test_unexpected_exceptions_become_internal_errors() -> None:
    with pytest.raises(InternalError) as info:
        build_query(r.table("t").filter(lambda doc: 1 / 0), Context())
    assert isinstance(info.value.panic_value, ZeroDivisionError)
    assert isinstance(info.value, BadClientError)


def test_function_returning_none_is_rejected() -> None:
    with pytest.raises(BadClientError, match="must return a value"):
        build_query(r.table("t").map(lambda doc: None), Context())


def test_time_format_global_optarg() -> None:
    query = build_query(r.table("t").time_format("raw"), Context())
    assert [pair.key for pair in query.global_optargs] == ["time_format"]
    assert query_time_format(query) == "raw"
    assert query_time_format(build_query(r.table("t"), Context())) == "native"
    assert len(build_query(r.table("t"), Context()).global_optargs) == 0


def test_callable_arity() -> None:
    assert callable_arity(lambda: 1) == 0
    assert callable_arity(lambda a, b=2: a) == 1
    assert callable_arity(lambda *args: 1) == -1

    def keyword_only(a, *, flag=False):
        return a

    assert callable_arity(keyword_only) == 1


def test_contains_implicit_variable() -> None:
    assert contains_implicit_variable(to_term(Context(), r.row["a"].add(1)))
    assert not contains_implicit_variable(to_term(Context(), r.expr(1).add(2)))
    assert contains_implicit_variable(to_term(Context(), {"a": [r.row]}))


def test_query_is_a_start_query() -> None:
    query = build_query(r.expr(1), Context(), token=9)
    assert query.type == 1
    assert query.token == 9


def test_table_operations_need_a_table() -> None:
    for value in [r.expr([1]).get(1), r.db("d").insert({"a": 1}), r.expr([1]).between(1, 2)]:
        with pytest.raises(BadClientError, match="requires a table"):
            build_query(value, Context())
    build_query(r.do(r.table("t"), lambda t: t.get(1)), Context())
    build_query(r.table("t").use_outdated().get(1), Context())
