"""Composable query expressions.

Every builder below returns a new :class:`Expr`; nothing here talks to the
network or lowers to wire terms. Lowering happens in :mod:`reql.compiler`
when an expression is run or checked.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from typing_extensions import Literal

from . import ql2
from .errors import BadClientError

if TYPE_CHECKING:
    from .cursor import Cursor
    from .session import Session

MAX_EXPR_DEPTH = 20

Durability = Literal["soft", "hard"]
Bound = Literal["open", "closed"]
TimeFormat = Literal["native", "raw"]


class _NoArg:
    """Placeholder for an optional trailing argument that was not given."""

    _instance: Optional["_NoArg"] = None

    def __new__(cls) -> "_NoArg":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_ARG"

    def __bool__(self) -> bool:
        return False


NO_ARG = _NoArg()


class Kind(enum.Enum):
    """Operator tags. The value is the name the operator is rendered with."""

    # synthetic kinds
    LITERAL = "expr"
    FUNC = "func"
    USE_OUTDATED = "use_outdated"
    DURABILITY = "durability"
    ATOMIC = "atomic"
    UPSERT = "upsert"
    RETURN_VALUES = "return_values"
    LEFT_BOUND = "left_bound"
    RIGHT_BOUND = "right_bound"
    TIME_FORMAT = "time_format"

    VAR = "var"
    JAVASCRIPT = "js"
    ERROR = "error"
    IMPLICIT_VAR = "row"
    DB = "db"
    TABLE = "table"
    GET = "get"
    GET_ALL = "get_all"
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    NOT = "not_"
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    MOD = "mod"
    APPEND = "append"
    PREPEND = "prepend"
    DIFFERENCE = "difference"
    SET_INSERT = "set_insert"
    SET_INTERSECTION = "set_intersection"
    SET_UNION = "set_union"
    SET_DIFFERENCE = "set_difference"
    SLICE = "slice"
    SKIP = "skip"
    LIMIT = "limit"
    INDEXES_OF = "indexes_of"
    CONTAINS = "contains"
    GETATTR = "attr"
    KEYS = "keys"
    HAS_FIELDS = "has_fields"
    WITH_FIELDS = "with_fields"
    PLUCK = "pluck"
    WITHOUT = "without"
    MERGE = "merge"
    BETWEEN = "between"
    REDUCE = "reduce"
    MAP = "map"
    FILTER = "filter"
    CONCATMAP = "concat_map"
    ORDERBY = "order_by"
    DISTINCT = "distinct"
    COUNT = "count"
    IS_EMPTY = "is_empty"
    UNION = "union"
    NTH = "nth"
    GROUPED_MAP_REDUCE = "grouped_map_reduce"
    GROUPBY = "group_by"
    INNER_JOIN = "inner_join"
    OUTER_JOIN = "outer_join"
    EQ_JOIN = "eq_join"
    ZIP = "zip"
    INSERT_AT = "insert_at"
    DELETE_AT = "delete_at"
    CHANGE_AT = "change_at"
    SPLICE_AT = "splice_at"
    COERCE_TO = "coerce_to"
    TYPEOF = "type_of"
    UPDATE = "update"
    DELETE = "delete"
    REPLACE = "replace"
    INSERT = "insert"
    DB_CREATE = "db_create"
    DB_DROP = "db_drop"
    DB_LIST = "db_list"
    TABLE_CREATE = "table_create"
    TABLE_DROP = "table_drop"
    TABLE_LIST = "table_list"
    INDEX_CREATE = "index_create"
    INDEX_DROP = "index_drop"
    INDEX_LIST = "index_list"
    FUNCALL = "do"
    BRANCH = "branch"
    ANY = "or_"
    ALL = "and_"
    FOREACH = "for_each"
    ASC = "asc"
    DESC = "desc"
    INFO = "info"
    MATCH = "match"
    SAMPLE = "sample"
    DEFAULT = "default"
    JSON = "json"
    NESTED_LITERAL = "literal"
    ISO8601 = "iso8601"
    TO_ISO8601 = "to_iso8601"
    EPOCH_TIME = "epoch_time"
    TO_EPOCH_TIME = "to_epoch_time"
    NOW = "now"
    IN_TIMEZONE = "in_timezone"
    DURING = "during"
    DATE = "date"
    TIME_OF_DAY = "time_of_day"
    TIMEZONE = "timezone"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    DAY_OF_WEEK = "day_of_week"
    DAY_OF_YEAR = "day_of_year"
    HOURS = "hours"
    MINUTES = "minutes"
    SECONDS = "seconds"
    TIME = "time"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    JANUARY = "january"
    FEBRUARY = "february"
    MARCH = "march"
    APRIL = "april"
    MAY = "may"
    JUNE = "june"
    JULY = "july"
    AUGUST = "august"
    SEPTEMBER = "september"
    OCTOBER = "october"
    NOVEMBER = "november"
    DECEMBER = "december"


# Option-setter kinds and the Context field each one updates.
OPTION_FIELDS: Dict[Kind, str] = {
    Kind.USE_OUTDATED: "use_outdated",
    Kind.DURABILITY: "durability",
    Kind.ATOMIC: "atomic",
    Kind.UPSERT: "upsert",
    Kind.RETURN_VALUES: "return_values",
    Kind.LEFT_BOUND: "left_bound",
    Kind.RIGHT_BOUND: "right_bound",
    Kind.TIME_FORMAT: "time_format",
}

# Optional trailing positional argument sent as an optarg, per kind.
TRAILING_OPTARGS: Dict[Kind, str] = {
    Kind.REDUCE: "base",
    Kind.GROUPED_MAP_REDUCE: "base",
    Kind.EQ_JOIN: "index",
    Kind.GET_ALL: "index",
    Kind.BETWEEN: "index",
    Kind.JAVASCRIPT: "timeout",
}

SYNTHETIC_KINDS = frozenset({Kind.LITERAL, Kind.FUNC, *OPTION_FIELDS})

TERM_TYPES: Dict[Kind, ql2.TermType] = {
    kind: ql2.TermType[kind.name]
    for kind in Kind
    if kind not in SYNTHETIC_KINDS and kind is not Kind.NESTED_LITERAL
}
TERM_TYPES[Kind.NESTED_LITERAL] = ql2.TermType.LITERAL


@dataclass(frozen=True)
class TableSpec:
    """Options for creating a table. Empty fields are left to the server."""

    name: str
    primary_key: str = ""
    datacenter: str = ""
    cache_size: int = 0
    durability: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("table name must be a non-empty string")
        if self.durability not in ("", "soft", "hard"):
            raise ValueError("durability must be 'soft' or 'hard'")
        if not isinstance(self.cache_size, int) or self.cache_size < 0:
            raise ValueError("cache_size must be a non-negative integer")


def _ensure_name(value: Any, ctx: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{ctx} must be a non-empty string")
    return value


def _ensure_choice(value: Any, choices: Tuple[str, ...], ctx: str) -> str:
    if value not in choices:
        options = " or ".join(repr(choice) for choice in choices)
        raise ValueError(f"{ctx} must be {options}")
    return value


def _check_literal_depth(value: Any, depth: int = 0) -> None:
    if depth > MAX_EXPR_DEPTH:
        raise BadClientError(f"literal nesting exceeds maximum depth of {MAX_EXPR_DEPTH}")
    if isinstance(value, Mapping):
        for item in value.values():
            _check_literal_depth(item, depth + 1)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_literal_depth(item, depth + 1)


class Expr:
    """Immutable query expression: an operator kind and its arguments.

    Arguments may be other expressions, native literals (including nested
    mappings and sequences) or callables taking expressions and returning one.
    """

    __slots__ = ("_kind", "_args")

    def __init__(self, kind: Kind, args: Sequence[Any] = ()):
        if not isinstance(kind, Kind):
            raise TypeError("expression kind must be a Kind")
        object.__setattr__(self, "_kind", kind)
        object.__setattr__(self, "_args", tuple(args))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("expressions are immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("expressions are immutable")

    @property
    def kind(self) -> Kind:
        return self._kind

    @property
    def args(self) -> Tuple[Any, ...]:
        return self._args

    def __repr__(self) -> str:
        from .debug import format_expr

        return format_expr(self)

    def __iter__(self):
        raise TypeError("expressions are not iterable; run them to get a cursor")

    # Terminals

    def run(self, session: "Session") -> "Cursor":
        """Run this expression on ``session`` and return a cursor over the result."""
        return session.run(self)

    def check(self, session: Optional["Session"] = None) -> Any:
        """Compile without sending. Raises :class:`BadClientError` on failure."""
        from .compiler import Context, build_query

        ctx = session.context() if session is not None else Context()
        return build_query(self, ctx)

    # Option setters

    def use_outdated(self, flag: bool = True) -> "Expr":
        return Expr(Kind.USE_OUTDATED, (self, bool(flag)))

    def durability(self, value: Durability) -> "Expr":
        return Expr(Kind.DURABILITY, (self, _ensure_choice(value, ("soft", "hard"), "durability")))

    def atomic(self, flag: bool = True) -> "Expr":
        return Expr(Kind.ATOMIC, (self, bool(flag)))

    def upsert(self, flag: bool = True) -> "Expr":
        return Expr(Kind.UPSERT, (self, bool(flag)))

    def return_values(self) -> "Expr":
        return Expr(Kind.RETURN_VALUES, (self, True))

    def left_bound(self, value: Bound) -> "Expr":
        return Expr(Kind.LEFT_BOUND, (self, _ensure_choice(value, ("open", "closed"), "left_bound")))

    def right_bound(self, value: Bound) -> "Expr":
        return Expr(Kind.RIGHT_BOUND, (self, _ensure_choice(value, ("open", "closed"), "right_bound")))

    def time_format(self, value: TimeFormat) -> "Expr":
        return Expr(Kind.TIME_FORMAT, (self, _ensure_choice(value, ("native", "raw"), "time_format")))

    # Math and logic

    def add(self, *others: Any) -> "Expr":
        return _nary(Kind.ADD, self, *others)

    def sub(self, *others: Any) -> "Expr":
        return _nary(Kind.SUB, self, *others)

    def mul(self, *others: Any) -> "Expr":
        return _nary(Kind.MUL, self, *others)

    def div(self, *others: Any) -> "Expr":
        return _nary(Kind.DIV, self, *others)

    def mod(self, other: Any) -> "Expr":
        return _nary(Kind.MOD, self, other)

    def and_(self, *others: Any) -> "Expr":
        return _nary(Kind.ALL, self, *others)

    def or_(self, *others: Any) -> "Expr":
        return _nary(Kind.ANY, self, *others)

    def not_(self) -> "Expr":
        return _nary(Kind.NOT, self)

    def eq(self, *others: Any) -> "Expr":
        return _nary(Kind.EQ, self, *others)

    def ne(self, *others: Any) -> "Expr":
        return _nary(Kind.NE, self, *others)

    def lt(self, *others: Any) -> "Expr":
        return _nary(Kind.LT, self, *others)

    def le(self, *others: Any) -> "Expr":
        return _nary(Kind.LE, self, *others)

    def gt(self, *others: Any) -> "Expr":
        return _nary(Kind.GT, self, *others)

    def ge(self, *others: Any) -> "Expr":
        return _nary(Kind.GE, self, *others)

    __add__ = add
    __sub__ = sub
    __mul__ = mul
    __truediv__ = div
    __mod__ = mod
    __and__ = and_
    __or__ = or_
    __invert__ = not_

    def __radd__(self, other: Any) -> "Expr":
        return _nary(Kind.ADD, expr(other), self)

    def __rsub__(self, other: Any) -> "Expr":
        return _nary(Kind.SUB, expr(other), self)

    def __rmul__(self, other: Any) -> "Expr":
        return _nary(Kind.MUL, expr(other), self)

    def __rtruediv__(self, other: Any) -> "Expr":
        return _nary(Kind.DIV, expr(other), self)

    # Documents

    def attr(self, name: str) -> "Expr":
        return _nary(Kind.GETATTR, self, _ensure_name(name, "attribute name"))

    def __getitem__(self, key: Union[str, int, slice]) -> "Expr":
        if isinstance(key, str):
            return self.attr(key)
        if isinstance(key, slice):
            if key.step is not None:
                raise ValueError("slices with a step are not supported")
            start = 0 if key.start is None else key.start
            end = -1 if key.stop is None else key.stop
            return _nary(Kind.SLICE, self, start, end)
        if isinstance(key, int) and not isinstance(key, bool):
            return self.nth(key)
        raise TypeError("expression index must be a string, integer or slice")

    def pluck(self, *fields: str) -> "Expr":
        return _nary(Kind.PLUCK, self, *fields)

    def without(self, *fields: str) -> "Expr":
        return _nary(Kind.WITHOUT, self, *fields)

    def merge(self, *others: Any) -> "Expr":
        return _nary(Kind.MERGE, self, *others)

    def keys(self) -> "Expr":
        return _nary(Kind.KEYS, self)

    def has_fields(self, *fields: Any) -> "Expr":
        return _nary(Kind.HAS_FIELDS, self, *fields)

    def with_fields(self, *fields: Any) -> "Expr":
        return _nary(Kind.WITH_FIELDS, self, *fields)

    def contains(self, *values: Any) -> "Expr":
        return _nary(Kind.CONTAINS, self, *values)

    # Arrays

    def append(self, value: Any) -> "Expr":
        return _nary(Kind.APPEND, self, value)

    def prepend(self, value: Any) -> "Expr":
        return _nary(Kind.PREPEND, self, value)

    def difference(self, values: Any) -> "Expr":
        return _nary(Kind.DIFFERENCE, self, values)

    def set_insert(self, value: Any) -> "Expr":
        return _nary(Kind.SET_INSERT, self, value)

    def set_union(self, values: Any) -> "Expr":
        return _nary(Kind.SET_UNION, self, values)

    def set_intersection(self, values: Any) -> "Expr":
        return _nary(Kind.SET_INTERSECTION, self, values)

    def set_difference(self, values: Any) -> "Expr":
        return _nary(Kind.SET_DIFFERENCE, self, values)

    def insert_at(self, index: Any, value: Any) -> "Expr":
        return _nary(Kind.INSERT_AT, self, index, value)

    def splice_at(self, index: Any, values: Any) -> "Expr":
        return _nary(Kind.SPLICE_AT, self, index, values)

    def delete_at(self, index: Any, end: Any = NO_ARG) -> "Expr":
        return _nary(Kind.DELETE_AT, self, index, end)

    def change_at(self, index: Any, value: Any) -> "Expr":
        return _nary(Kind.CHANGE_AT, self, index, value)

    def indexes_of(self, predicate: Any) -> "Expr":
        return _nary(Kind.INDEXES_OF, self, func(predicate, 1))

    def is_empty(self) -> "Expr":
        return _nary(Kind.IS_EMPTY, self)

    def sample(self, count: Any) -> "Expr":
        return _nary(Kind.SAMPLE, self, count)

    # Sequences

    def filter(self, predicate: Any) -> "Expr":
        return _nary(Kind.FILTER, self, func(predicate, 1))

    def map(self, mapping: Any) -> "Expr":
        return _nary(Kind.MAP, self, func(mapping, 1))

    def concat_map(self, mapping: Any) -> "Expr":
        return _nary(Kind.CONCATMAP, self, func(mapping, 1))

    def order_by(self, *orderings: Any) -> "Expr":
        """Order by attribute names, functions, or ``asc()``/``desc()`` markers."""
        if not orderings:
            raise ValueError("order_by() requires at least one ordering")
        wrapped = [
            ordering
            if isinstance(ordering, Expr) and ordering.kind in (Kind.ASC, Kind.DESC)
            else func(ordering, 1)
            for ordering in orderings
        ]
        return _nary(Kind.ORDERBY, self, *wrapped)

    def skip(self, count: Any) -> "Expr":
        return _nary(Kind.SKIP, self, count)

    def limit(self, count: Any) -> "Expr":
        return _nary(Kind.LIMIT, self, count)

    def slice(self, start: Any, end: Any = -1) -> "Expr":
        return _nary(Kind.SLICE, self, start, end)

    def nth(self, index: Any) -> "Expr":
        return _nary(Kind.NTH, self, index)

    def union(self, *others: Any) -> "Expr":
        return _nary(Kind.UNION, self, *others)

    def distinct(self) -> "Expr":
        return _nary(Kind.DISTINCT, self)

    def count(self) -> "Expr":
        return _nary(Kind.COUNT, self)

    def reduce(self, reduction: Any, base: Any = NO_ARG) -> "Expr":
        return _nary(Kind.REDUCE, self, func(reduction, 2), base)

    def grouped_map_reduce(
        self, grouping: Any, mapping: Any, reduction: Any, base: Any = NO_ARG
    ) -> "Expr":
        return _nary(
            Kind.GROUPED_MAP_REDUCE,
            self,
            func(grouping, 1),
            func(mapping, 1),
            func(reduction, 2),
            base,
        )

    def group_by(self, attributes: Union[str, Sequence[str]], reduction: Any) -> "Expr":
        """Group by one or more attributes and reduce each group.

        ``reduction`` is one of the descriptors returned by :func:`count`,
        :func:`sum_` or :func:`avg`.
        """
        if isinstance(attributes, str):
            attributes = [attributes]
        names = [_ensure_name(name, "group_by attribute") for name in attributes]
        if not names:
            raise ValueError("group_by() requires at least one attribute")
        return _nary(Kind.GROUPBY, self, names, reduction)

    def for_each(self, action: Any) -> "Expr":
        return _nary(Kind.FOREACH, self, func(action, 1))

    def zip(self) -> "Expr":
        return _nary(Kind.ZIP, self)

    # Joins

    def inner_join(self, other: Any, predicate: Any) -> "Expr":
        return _nary(Kind.INNER_JOIN, self, other, func(predicate, 2))

    def outer_join(self, other: Any, predicate: Any) -> "Expr":
        return _nary(Kind.OUTER_JOIN, self, other, func(predicate, 2))

    def eq_join(self, left_attribute: str, other: Any, index: Any = NO_ARG) -> "Expr":
        return _nary(Kind.EQ_JOIN, self, _ensure_name(left_attribute, "eq_join attribute"), other, index)

    # Databases and tables

    def table(self, name: str) -> "Expr":
        return _nary(Kind.TABLE, self, _ensure_name(name, "table name"))

    def table_create(self, spec: Union[str, TableSpec]) -> "Expr":
        return _nary(Kind.TABLE_CREATE, self, _table_spec(spec))

    def table_drop(self, name: str) -> "Expr":
        return _nary(Kind.TABLE_DROP, self, _ensure_name(name, "table name"))

    def table_list(self) -> "Expr":
        return _nary(Kind.TABLE_LIST, self)

    def index_create(self, name: str, function: Any = NO_ARG) -> "Expr":
        if function is NO_ARG:
            return _nary(Kind.INDEX_CREATE, self, _ensure_name(name, "index name"))
        return _nary(Kind.INDEX_CREATE, self, _ensure_name(name, "index name"), func(function, 1))

    def index_drop(self, name: str) -> "Expr":
        return _nary(Kind.INDEX_DROP, self, _ensure_name(name, "index name"))

    def index_list(self) -> "Expr":
        return _nary(Kind.INDEX_LIST, self)

    def get(self, key: Any) -> "Expr":
        return _nary(Kind.GET, self, key)

    def get_all(self, *keys: Any, index: Any = NO_ARG) -> "Expr":
        if not keys:
            raise ValueError("get_all() requires at least one key")
        return _nary(Kind.GET_ALL, self, *keys, index)

    def between(self, lower: Any, upper: Any, index: Any = NO_ARG) -> "Expr":
        return _nary(Kind.BETWEEN, self, lower, upper, index)

    def insert(self, documents: Any) -> "Expr":
        return _nary(Kind.INSERT, self, documents)

    def update(self, mapping: Any) -> "Expr":
        return _nary(Kind.UPDATE, self, func(mapping, 1))

    def replace(self, mapping: Any) -> "Expr":
        return _nary(Kind.REPLACE, self, func(mapping, 1))

    def delete(self) -> "Expr":
        return _nary(Kind.DELETE, self)

    def info(self) -> "Expr":
        return _nary(Kind.INFO, self)

    # Control and types

    def do(self, function: Any) -> "Expr":
        return Expr(Kind.FUNCALL, (func(function, -1), self))

    def default(self, value: Any) -> "Expr":
        return _nary(Kind.DEFAULT, self, value)

    def coerce_to(self, type_name: str) -> "Expr":
        return _nary(Kind.COERCE_TO, self, _ensure_name(type_name, "type name"))

    def type_of(self) -> "Expr":
        return _nary(Kind.TYPEOF, self)

    def match(self, pattern: str) -> "Expr":
        return _nary(Kind.MATCH, self, pattern)

    # Time

    def in_timezone(self, tz: str) -> "Expr":
        return _nary(Kind.IN_TIMEZONE, self, tz)

    def timezone(self) -> "Expr":
        return _nary(Kind.TIMEZONE, self)

    def during(self, start: Any, end: Any) -> "Expr":
        return _nary(Kind.DURING, self, start, end)

    def date(self) -> "Expr":
        return _nary(Kind.DATE, self)

    def time_of_day(self) -> "Expr":
        return _nary(Kind.TIME_OF_DAY, self)

    def year(self) -> "Expr":
        return _nary(Kind.YEAR, self)

    def month(self) -> "Expr":
        return _nary(Kind.MONTH, self)

    def day(self) -> "Expr":
        return _nary(Kind.DAY, self)

    def day_of_week(self) -> "Expr":
        return _nary(Kind.DAY_OF_WEEK, self)

    def day_of_year(self) -> "Expr":
        return _nary(Kind.DAY_OF_YEAR, self)

    def hours(self) -> "Expr":
        return _nary(Kind.HOURS, self)

    def minutes(self) -> "Expr":
        return _nary(Kind.MINUTES, self)

    def seconds(self) -> "Expr":
        return _nary(Kind.SECONDS, self)

    def to_iso8601(self) -> "Expr":
        return _nary(Kind.TO_ISO8601, self)

    def to_epoch_time(self) -> "Expr":
        return _nary(Kind.TO_EPOCH_TIME, self)


def _nullary(kind: Kind, *args: Any) -> Expr:
    return Expr(kind, args)


def _nary(kind: Kind, receiver: Expr, *args: Any) -> Expr:
    return Expr(kind, (receiver,) + args)


def func(body: Any, arity: int) -> Expr:
    """Wrap a callable (or expression) as a function argument.

    ``arity`` is the number of parameters the operator passes; -1 accepts any.
    """
    if arity < -1:
        raise ValueError("arity must be -1 or a non-negative integer")
    if isinstance(body, Expr) and body.kind is Kind.FUNC:
        return body
    return Expr(Kind.FUNC, (body, arity))


def expr(value: Any) -> Expr:
    """Convert a native value to an expression."""
    if isinstance(value, Expr):
        return value
    if callable(value):
        return func(value, -1)
    _check_literal_depth(value)
    return Expr(Kind.LITERAL, (value,))


def _table_spec(spec: Union[str, TableSpec]) -> TableSpec:
    if isinstance(spec, TableSpec):
        return spec
    if isinstance(spec, str):
        return TableSpec(name=spec)
    raise TypeError("table_create() requires a table name or TableSpec")


row = Expr(Kind.IMPLICIT_VAR)


def js(body: str, timeout: Any = NO_ARG) -> Expr:
    return _nullary(Kind.JAVASCRIPT, _ensure_name(body, "javascript body"), timeout)


def json(text: str) -> Expr:
    return _nullary(Kind.JSON, text)


def literal(value: Any = NO_ARG) -> Expr:
    return _nullary(Kind.NESTED_LITERAL, value)


def error(message: str) -> Expr:
    return _nullary(Kind.ERROR, message)


def db(name: str) -> Expr:
    return _nullary(Kind.DB, _ensure_name(name, "database name"))


def table(name: str) -> Expr:
    """Table in the session's default database."""
    return _nullary(Kind.TABLE, _ensure_name(name, "table name"))


def db_create(name: str) -> Expr:
    return _nullary(Kind.DB_CREATE, _ensure_name(name, "database name"))


def db_drop(name: str) -> Expr:
    return _nullary(Kind.DB_DROP, _ensure_name(name, "database name"))


def db_list() -> Expr:
    return _nullary(Kind.DB_LIST)


def table_create(spec: Union[str, TableSpec]) -> Expr:
    return _nullary(Kind.TABLE_CREATE, _table_spec(spec))


def table_drop(name: str) -> Expr:
    return _nullary(Kind.TABLE_DROP, _ensure_name(name, "table name"))


def table_list() -> Expr:
    return _nullary(Kind.TABLE_LIST)


def do(*args: Any) -> Expr:
    """Call the last argument with the preceding ones: ``do(a, b, lambda x, y: ...)``."""
    if not args:
        raise ValueError("do() requires a function")
    function = args[-1]
    return Expr(Kind.FUNCALL, (func(function, -1),) + tuple(args[:-1]))


def branch(test: Any, true_value: Any, false_value: Any) -> Expr:
    return _nullary(Kind.BRANCH, test, true_value, false_value)


def and_(*exprs: Any) -> Expr:
    if not exprs:
        raise ValueError("and_() requires at least one expression")
    return _nullary(Kind.ALL, *exprs)


def or_(*exprs: Any) -> Expr:
    if not exprs:
        raise ValueError("or_() requires at least one expression")
    return _nullary(Kind.ANY, *exprs)


def not_(value: Any) -> Expr:
    return _nullary(Kind.NOT, value)


def asc(attribute: Any) -> Expr:
    return _nullary(Kind.ASC, func(attribute, 1))


def desc(attribute: Any) -> Expr:
    return _nullary(Kind.DESC, func(attribute, 1))


# group_by reductions

def count() -> Dict[str, Any]:
    return {"COUNT": True}


def sum_(attribute: str) -> Dict[str, Any]:
    return {"SUM": _ensure_name(attribute, "sum attribute")}


def avg(attribute: str) -> Dict[str, Any]:
    return {"AVG": _ensure_name(attribute, "avg attribute")}


# Time constructors

def now() -> Expr:
    return _nullary(Kind.NOW)


def time(year: Any, month: Any, day: Any, *rest: Any) -> Expr:
    """``time(y, m, d, tz)`` or ``time(y, m, d, hours, minutes, seconds, tz)``."""
    if len(rest) not in (1, 4):
        raise ValueError("time() takes a timezone, optionally preceded by hours, minutes and seconds")
    return _nullary(Kind.TIME, year, month, day, *rest)


def epoch_time(seconds: Any) -> Expr:
    return _nullary(Kind.EPOCH_TIME, seconds)


def iso8601(text: str) -> Expr:
    return _nullary(Kind.ISO8601, text)


def monday() -> Expr:
    return _nullary(Kind.MONDAY)


def tuesday() -> Expr:
    return _nullary(Kind.TUESDAY)


def wednesday() -> Expr:
    return _nullary(Kind.WEDNESDAY)


def thursday() -> Expr:
    return _nullary(Kind.THURSDAY)


def friday() -> Expr:
    return _nullary(Kind.FRIDAY)


def saturday() -> Expr:
    return _nullary(Kind.SATURDAY)


def sunday() -> Expr:
    return _nullary(Kind.SUNDAY)


def january() -> Expr:
    return _nullary(Kind.JANUARY)


def february() -> Expr:
    return _nullary(Kind.FEBRUARY)


def march() -> Expr:
    return _nullary(Kind.MARCH)


def april() -> Expr:
    return _nullary(Kind.APRIL)


def may() -> Expr:
    return _nullary(Kind.MAY)


def june() -> Expr:
    return _nullary(Kind.JUNE)


def july() -> Expr:
    return _nullary(Kind.JULY)


def august() -> Expr:
    return _nullary(Kind.AUGUST)


def september() -> Expr:
    return _nullary(Kind.SEPTEMBER)


def october() -> Expr:
    return _nullary(Kind.OCTOBER)


def november() -> Expr:
    return _nullary(Kind.NOVEMBER)


def december() -> Expr:
    return _nullary(Kind.DECEMBER)


__all__ = [
    "NO_ARG",
    "Kind",
    "TERM_TYPES",
    "OPTION_FIELDS",
    "TRAILING_OPTARGS",
    "TableSpec",
    "Expr",
    "func",
    "expr",
    "row",
    "js",
    "json",
    "literal",
    "error",
    "db",
    "table",
    "db_create",
    "db_drop",
    "db_list",
    "table_create",
    "table_drop",
    "table_list",
    "do",
    "branch",
    "and_",
    "or_",
    "not_",
    "asc",
    "desc",
    "count",
    "sum_",
    "avg",
    "now",
    "time",
    "epoch_time",
    "iso8601",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
]
