"""Query driver for RethinkDB-style servers.

    import reql as r

    session = r.connect("localhost:28015", "test")
    r.table("t").filter({"num": 16}).count().run(session).one()
"""

from .cursor import Cursor, Shape
from .debug import format_expr, is_debug, set_debug
from .errors import (
    ErrorCode,
    ReqlError,
    BadClientError,
    InternalError,
    UnmarshalableError,
    BadQueryError,
    RuntimeQueryError,
    BrokenClientError,
    NoSuchRowError,
    WrongResponseTypeError,
    ReqlNetworkError,
    ReqlTimeoutError,
    ClosedError,
)
from .query import (
    Expr,
    Kind,
    TableSpec,
    and_,
    april,
    asc,
    august,
    avg,
    branch,
    count,
    db,
    db_create,
    db_drop,
    db_list,
    december,
    desc,
    do,
    epoch_time,
    error,
    expr,
    february,
    friday,
    iso8601,
    january,
    js,
    json,
    july,
    june,
    literal,
    march,
    may,
    monday,
    not_,
    november,
    now,
    october,
    or_,
    row,
    saturday,
    september,
    sum_,
    sunday,
    table,
    table_create,
    table_drop,
    table_list,
    thursday,
    time,
    tuesday,
    wednesday,
)
from .responses import WriteResponse, write_response
from .session import Session, connect

__version__ = "0.1.0"

__all__ = [
    "connect",
    "Session",
    "Cursor",
    "Shape",
    "Expr",
    "Kind",
    "TableSpec",
    "WriteResponse",
    "write_response",
    "format_expr",
    "set_debug",
    "is_debug",
    # Expression constructors
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
    # Error types
    "ErrorCode",
    "ReqlError",
    "BadClientError",
    "InternalError",
    "UnmarshalableError",
    "BadQueryError",
    "RuntimeQueryError",
    "BrokenClientError",
    "NoSuchRowError",
    "WrongResponseTypeError",
    "ReqlNetworkError",
    "ReqlTimeoutError",
    "ClosedError",
]
