"""Lowering of expressions into wire terms."""

from __future__ import annotations

import dataclasses
import inspect
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from . import datum, ql2
from .errors import BadClientError, InternalError, ReqlError
from .query import NO_ARG, OPTION_FIELDS, TERM_TYPES, TRAILING_OPTARGS, Expr, Kind, TableSpec

logger = logging.getLogger(__name__)

MAX_LITERAL_DEPTH = 20

_variable_counter = itertools.count(1)


def next_variable_number() -> int:
    return next(_variable_counter)


@dataclass(frozen=True)
class Context:
    """Options in effect while compiling a subtree."""

    database: str = "test"
    use_outdated: bool = False
    atomic: bool = True
    upsert: bool = False
    return_values: bool = False
    durability: str = ""
    left_bound: str = ""
    right_bound: str = ""
    time_format: str = ""


# Kinds that take the database as their first argument, with the number of
# remaining positional arguments when the database is left implicit.
_DATABASE_SCOPED: Dict[Kind, int] = {
    Kind.TABLE: 1,
    Kind.TABLE_CREATE: 1,
    Kind.TABLE_DROP: 1,
    Kind.TABLE_LIST: 0,
}

_WRITE_KINDS = frozenset({Kind.INSERT, Kind.UPDATE, Kind.REPLACE, Kind.DELETE})
_RANGE_KINDS = frozenset({Kind.BETWEEN, Kind.DURING})

# Operators whose receiver must evaluate to a table, and receiver kinds that never do.
_TABLE_ONLY_KINDS = frozenset({
    Kind.GET,
    Kind.GET_ALL,
    Kind.BETWEEN,
    Kind.INSERT,
    Kind.INDEX_CREATE,
    Kind.INDEX_DROP,
    Kind.INDEX_LIST,
})
_NON_TABLE_KINDS = frozenset({Kind.LITERAL, Kind.DB, Kind.FUNC})

_LEAF_TERM_TYPES = frozenset({
    ql2.TermType.DATUM,
    ql2.TermType.MAKE_ARRAY,
    ql2.TermType.MAKE_OBJ,
    ql2.TermType.JAVASCRIPT,
})


def contains_implicit_variable(term: Any) -> bool:
    """Return True if ``term`` or any descendant is an IMPLICIT_VAR."""
    if term.type == ql2.TermType.IMPLICIT_VAR:
        return True
    for arg in term.args:
        if contains_implicit_variable(arg):
            return True
    for pair in term.optargs:
        if contains_implicit_variable(pair.val):
            return True
    return False


def callable_arity(function: Callable[..., Any]) -> int:
    """Number of positional parameters ``function`` takes, or -1 if variadic."""
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError) as exc:
        raise BadClientError(f"cannot inspect function {function!r}: {exc}") from exc
    count = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return -1
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            if param.default is inspect.Parameter.empty:
                count += 1
    return count


def _make_term(term_type: int, args: Optional[List[Any]] = None) -> Any:
    term = ql2.Term()
    term.type = term_type
    for arg in args or []:
        term.args.add().CopyFrom(arg)
    return term


def _set_optarg(term: Any, key: str, value: Any) -> None:
    pair = term.optargs.add()
    pair.key = key
    pair.val.CopyFrom(value)


class Compiler:
    """Turns expressions into terms.

    One compiler is used per query. Besides the root term it collects the
    global optargs the query should carry (currently only ``time_format``).
    """

    def __init__(self) -> None:
        self.time_format = ""

    def to_term(self, ctx: Context, value: Any) -> Any:
        if isinstance(value, Expr):
            return self._expr_to_term(ctx, value)
        if callable(value) and not isinstance(value, type):
            return self.to_func_term(ctx, value, -1)
        return self.literal_to_term(ctx, value)

    def literal_to_term(self, ctx: Context, value: Any, depth: int = 0) -> Any:
        if depth > MAX_LITERAL_DEPTH:
            raise BadClientError(f"literal nesting exceeds maximum depth of {MAX_LITERAL_DEPTH}")
        if isinstance(value, Expr):
            return self._expr_to_term(ctx, value)
        if isinstance(value, Mapping):
            term = _make_term(ql2.TermType.MAKE_OBJ)
            for key, item in value.items():
                if not isinstance(key, str):
                    raise BadClientError(f"object keys must be strings, got {type(key).__name__}")
                _set_optarg(term, key, self.literal_to_term(ctx, item, depth + 1))
            return term
        if isinstance(value, (list, tuple)):
            return _make_term(
                ql2.TermType.MAKE_ARRAY,
                [self.literal_to_term(ctx, item, depth + 1) for item in value],
            )
        if callable(value) and not isinstance(value, type):
            return self.to_func_term(ctx, value, -1)
        return datum.marshal(value)

    def to_func_term(self, ctx: Context, body: Any, arity: int) -> Any:
        if callable(body) and not isinstance(body, (Expr, type)):
            return self._compile_callable(ctx, body, arity)
        term = self.to_term(ctx, body)
        if term.type in _LEAF_TERM_TYPES and not contains_implicit_variable(term):
            return term
        params = [next_variable_number() for _ in range(max(arity, 0))]
        return self._func_term(ctx, params, term)

    def _compile_callable(self, ctx: Context, function: Callable[..., Any], arity: int) -> Any:
        actual = callable_arity(function)
        if actual == -1:
            actual = max(arity, 0)
        elif arity != -1 and actual != arity:
            raise BadClientError(
                f"function expression has incorrect number of arguments: expected {arity}, got {actual}"
            )
        params = [next_variable_number() for _ in range(actual)]
        placeholders = [Expr(Kind.VAR, (number,)) for number in params]
        result = function(*placeholders)
        if result is None:
            raise BadClientError("function expression must return a value")
        return self._func_term(ctx, params, self.to_term(ctx, result))

    def _func_term(self, ctx: Context, params: List[int], body: Any) -> Any:
        return _make_term(ql2.TermType.FUNC, [self.literal_to_term(ctx, params), body])

    def _expr_to_term(self, ctx: Context, node: Expr) -> Any:
        kind = node.kind
        args = list(node.args)

        if kind is Kind.LITERAL:
            return self.literal_to_term(ctx, args[0])
        if kind is Kind.FUNC:
            return self.to_func_term(ctx, args[0], args[1])
        if kind in OPTION_FIELDS:
            inner, value = args
            if kind is Kind.TIME_FORMAT and not self.time_format:
                self.time_format = value
            return self.to_term(dataclasses.replace(ctx, **{OPTION_FIELDS[kind]: value}), inner)

        if kind in _TABLE_ONLY_KINDS:
            _check_table_receiver(kind, args[0])

        optargs: Dict[str, Any] = {}

        if kind in TRAILING_OPTARGS:
            trailing = args.pop()
            if trailing is not NO_ARG:
                optargs[TRAILING_OPTARGS[kind]] = trailing

        if kind in _DATABASE_SCOPED and len(args) == _DATABASE_SCOPED[kind]:
            args.insert(0, Expr(Kind.DB, (ctx.database,)))

        if kind is Kind.TABLE and ctx.use_outdated:
            optargs["use_outdated"] = True
        elif kind is Kind.TABLE_CREATE:
            spec = args.pop()
            if not isinstance(spec, TableSpec):
                raise BadClientError("table_create() requires a TableSpec")
            args.append(spec.name)
            optargs.update(_table_spec_optargs(spec))
        elif kind in _WRITE_KINDS:
            if ctx.durability:
                optargs["durability"] = ctx.durability
            if ctx.return_values:
                optargs["return_vals"] = True
            if kind in (Kind.UPDATE, Kind.REPLACE) and not ctx.atomic:
                optargs["non_atomic"] = True
            if kind is Kind.INSERT and ctx.upsert:
                optargs["upsert"] = True
        elif kind in _RANGE_KINDS:
            if ctx.left_bound:
                optargs["left_bound"] = ctx.left_bound
            if ctx.right_bound:
                optargs["right_bound"] = ctx.right_bound

        term = _make_term(
            TERM_TYPES[kind],
            [self.to_term(ctx, arg) for arg in args if arg is not NO_ARG],
        )
        for key, value in optargs.items():
            _set_optarg(term, key, self.to_term(ctx, value))
        return term


def _check_table_receiver(kind: Kind, receiver: Any) -> None:
    while isinstance(receiver, Expr) and receiver.kind in OPTION_FIELDS:
        receiver = receiver.args[0]
    if not isinstance(receiver, Expr) or receiver.kind in _NON_TABLE_KINDS:
        name = receiver.kind.value if isinstance(receiver, Expr) else type(receiver).__name__
        raise BadClientError(f"{kind.value}() requires a table, got {name}")


def _table_spec_optargs(spec: TableSpec) -> Dict[str, Any]:
    optargs: Dict[str, Any] = {}
    if spec.primary_key:
        optargs["primary_key"] = spec.primary_key
    if spec.datacenter:
        optargs["datacenter"] = spec.datacenter
    if spec.cache_size:
        optargs["cache_size"] = spec.cache_size
    if spec.durability:
        optargs["durability"] = spec.durability
    return optargs


def to_term(ctx: Context, value: Any) -> Any:
    """Compile ``value`` under ``ctx`` with a throwaway compiler."""
    return Compiler().to_term(ctx, value)


def _describe(value: Any) -> Optional[str]:
    from .debug import describe

    return describe(value)


def build_query(value: Any, ctx: Context, token: int = 0) -> Any:
    """Compile ``value`` into a START query.

    Client-side errors raised while compiling come back as ``ReqlError``
    subclasses carrying the rendered expression; anything else escaping the
    compiler is wrapped in :class:`InternalError`.
    """
    compiler = Compiler()
    try:
        root = compiler.to_term(ctx, value)
    except ReqlError as err:
        raise err.with_query(_describe(value))
    except Exception as exc:  # noqa: BLE001 - report compiler bugs as client errors
        logger.debug("unexpected error while compiling", exc_info=True)
        raise InternalError(
            f"unexpected error while building query: {exc!r}",
            panic_value=exc,
            query=_describe(value),
        ) from exc

    query = ql2.Query()
    query.type = ql2.QueryType.START
    query.token = token
    query.query.CopyFrom(root)
    if compiler.time_format:
        pair = query.global_optargs.add()
        pair.key = "time_format"
        pair.val.CopyFrom(datum.marshal(compiler.time_format))
    return query


def query_time_format(query: Any) -> str:
    for pair in query.global_optargs:
        if pair.key == "time_format":
            return datum.unmarshal(pair.val)
    return "native"


__all__ = [
    "Context",
    "Compiler",
    "build_query",
    "callable_arity",
    "contains_implicit_variable",
    "next_variable_number",
    "query_time_format",
    "to_term",
]
