"""Human-readable rendering of expressions and wire messages, and the debug toggle."""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

from google.protobuf import text_format

from .query import NO_ARG, OPTION_FIELDS, TRAILING_OPTARGS, Expr, Kind, TableSpec
from .compiler import callable_arity

LOGGER_NAME = "reql"

_debug_handler: Optional[logging.Handler] = None

# Kinds always rendered as ``r.name(...)`` even when the first argument is an expression.
TOP_LEVEL_KINDS = frozenset({
    Kind.DB,
    Kind.JAVASCRIPT,
    Kind.JSON,
    Kind.ERROR,
    Kind.NESTED_LITERAL,
    Kind.NOW,
    Kind.TIME,
    Kind.EPOCH_TIME,
    Kind.ISO8601,
    Kind.DB_CREATE,
    Kind.DB_DROP,
    Kind.DB_LIST,
    Kind.BRANCH,
    Kind.ASC,
    Kind.DESC,
    Kind.MONDAY,
    Kind.TUESDAY,
    Kind.WEDNESDAY,
    Kind.THURSDAY,
    Kind.FRIDAY,
    Kind.SATURDAY,
    Kind.SUNDAY,
    Kind.JANUARY,
    Kind.FEBRUARY,
    Kind.MARCH,
    Kind.APRIL,
    Kind.MAY,
    Kind.JUNE,
    Kind.JULY,
    Kind.AUGUST,
    Kind.SEPTEMBER,
    Kind.OCTOBER,
    Kind.NOVEMBER,
    Kind.DECEMBER,
})


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def set_debug(enabled: bool) -> None:
    """Toggle logging of every query and response sent by any session to stderr."""
    global _debug_handler

    logger = logging.getLogger(LOGGER_NAME)
    if enabled:
        if _debug_handler is None:
            _debug_handler = logging.StreamHandler()
            _debug_handler.setFormatter(_build_formatter())
            logger.addHandler(_debug_handler)
        logger.setLevel(logging.DEBUG)
        return
    if _debug_handler is not None:
        logger.removeHandler(_debug_handler)
        _debug_handler = None
    logger.setLevel(logging.NOTSET)


def is_debug() -> bool:
    return _debug_handler is not None


def format_message(message: Any) -> str:
    """Render a protobuf message (query, response or term) as indented text."""
    return text_format.MessageToString(message, indent=2).rstrip()


class _Formatter:
    def __init__(self) -> None:
        self._next_var = 1

    def value(self, value: Any) -> str:
        if isinstance(value, Expr):
            return self.expr(value)
        if isinstance(value, dict):
            items = ", ".join(f"{key!r}: {self.value(item)}" for key, item in value.items())
            return "{" + items + "}"
        if isinstance(value, (list, tuple)):
            return "[" + ", ".join(self.value(item) for item in value) + "]"
        if isinstance(value, TableSpec):
            return repr(value)
        if callable(value):
            return self.function(value, -1)
        return repr(value)

    def function(self, body: Any, arity: int) -> str:
        if not callable(body) or isinstance(body, Expr):
            return self.value(body)
        name = getattr(body, "__name__", type(body).__name__)
        try:
            count = callable_arity(body)
            if count == -1:
                count = max(arity, 0)
            params = []
            for _ in range(count):
                params.append(Expr(Kind.VAR, (self._next_var,)))
                self._next_var += 1
            rendered = self.value(body(*params))
        except Exception:  # noqa: BLE001 - fall back to the function name
            return f"<function {name}>"
        names = ", ".join(self.expr(param) for param in params)
        return f"lambda {names}: {rendered}" if names else f"lambda: {rendered}"

    def call_args(self, kind: Kind, args: List[Any]) -> str:
        keyword: Optional[str] = None
        if kind in TRAILING_OPTARGS and args:
            last = args.pop()
            if last is not NO_ARG:
                keyword = f"{TRAILING_OPTARGS[kind]}={self.value(last)}"
        parts = [self.value(arg) for arg in args if arg is not NO_ARG]
        if keyword is not None:
            parts.append(keyword)
        return ", ".join(parts)

    def expr(self, node: Expr) -> str:
        kind = node.kind
        args = list(node.args)

        if kind is Kind.LITERAL:
            return f"r.expr({self.value(args[0])})"
        if kind is Kind.FUNC:
            return self.function(args[0], args[1])
        if kind is Kind.IMPLICIT_VAR:
            return "r.row"
        if kind is Kind.VAR:
            return f"var_{args[0]}"
        if kind in OPTION_FIELDS:
            inner, value = args
            rendered = "" if kind is Kind.RETURN_VALUES else repr(value)
            return f"{self.expr(inner)}.{kind.value}({rendered})"
        if kind is Kind.GETATTR:
            return f"{self.value(args[0])}[{args[1]!r}]"
        if kind is Kind.FUNCALL:
            function, operands = args[0], args[1:]
            if len(operands) == 1 and isinstance(operands[0], Expr):
                return f"{self.expr(operands[0])}.do({self.value(function)})"
            rendered = [self.value(operand) for operand in operands] + [self.value(function)]
            return f"r.do({', '.join(rendered)})"
        if kind in TOP_LEVEL_KINDS or not args or not isinstance(args[0], Expr):
            return f"r.{kind.value}({self.call_args(kind, args)})"
        receiver = self.expr(args[0])
        return f"{receiver}.{kind.value}({self.call_args(kind, args[1:])})"


def format_expr(value: Any) -> str:
    """Render an expression as the Python code that builds it.

    ``r.table('t').filter({'num': 16}).count()``. Callables are rendered by
    calling them with placeholder variables; if that fails the function name
    is shown instead.
    """
    return _Formatter().value(value)


def describe(value: Any) -> Optional[str]:
    """Like :func:`format_expr`, but returns None instead of raising."""
    try:
        return format_expr(value)
    except Exception:  # noqa: BLE001 - rendering is diagnostic only
        logging.getLogger(__name__).debug("could not render expression", exc_info=True)
        return None


def _bool_env(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


if _bool_env("REQL_DEBUG"):
    set_debug(True)


__all__ = [
    "LOGGER_NAME",
    "TOP_LEVEL_KINDS",
    "describe",
    "format_expr",
    "format_message",
    "is_debug",
    "set_debug",
]
