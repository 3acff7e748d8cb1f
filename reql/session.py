"""Sessions: connection pooling, token allocation and query dispatch."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Any, List, Optional, Union

from .compiler import Context, build_query, query_time_format
from .cursor import Cursor, Shape, shape_of
from .debug import describe
from .errors import (
    BrokenClientError,
    ClosedError,
    ReqlError,
    ReqlNetworkError,
    error_from_response,
    is_error_response,
)
from .net import Connection, parse_address

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "localhost:28015"
DEFAULT_DATABASE = "test"
DEFAULT_MAX_IDLE = 5

TimeoutInput = Optional[Union[int, float, timedelta]]


def _coerce_timeout(value: TimeoutInput) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        raise TypeError("timeout must be a number of seconds, a timedelta or None")
    if seconds <= 0:
        raise ValueError("timeout must be positive")
    return seconds


def _ensure_database(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("database must be a non-empty string")
    return name


class Session:
    """Connection handle to one server.

    A session pools idle connections (LIFO, at most ``max_idle``) and is safe
    to share for pool operations, but each query and cursor uses its
    connection exclusively. Use one session per thread for concurrent work.
    """

    def __init__(
        self,
        address: str = DEFAULT_ADDRESS,
        database: str = DEFAULT_DATABASE,
        *,
        timeout: TimeoutInput = None,
        max_idle: int = DEFAULT_MAX_IDLE,
    ):
        if not isinstance(max_idle, int) or isinstance(max_idle, bool) or max_idle < 0:
            raise ValueError("max_idle must be a non-negative integer")
        self.address = address
        self._host, self._port = parse_address(address)
        self._database = _ensure_database(database)
        self._timeout = _coerce_timeout(timeout)
        self._max_idle = max_idle
        self._lock = threading.Lock()
        self._token_lock = threading.Lock()
        self._token = 0
        self._idle: List[Connection] = []
        self._closed = False

    @classmethod
    def connect(
        cls,
        address: str = DEFAULT_ADDRESS,
        database: str = DEFAULT_DATABASE,
        *,
        timeout: TimeoutInput = None,
        max_idle: int = DEFAULT_MAX_IDLE,
    ) -> "Session":
        """Create a session and verify the server is reachable."""
        session = cls(address, database, timeout=timeout, max_idle=max_idle)
        session.release(session._dial())
        return session

    @property
    def database(self) -> str:
        return self._database

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def max_idle(self) -> int:
        return self._max_idle

    @property
    def is_closed(self) -> bool:
        """Returns True if the session has been closed."""
        return self._closed

    @property
    def idle_connections(self) -> int:
        with self._lock:
            return len(self._idle)

    def use(self, database: str) -> "Session":
        """Set the default database for tables named without one."""
        self._database = _ensure_database(database)
        return self

    def set_timeout(self, timeout: TimeoutInput) -> "Session":
        """Deadline applied to every network round trip; None disables it."""
        self._timeout = _coerce_timeout(timeout)
        return self

    def context(self) -> Context:
        return Context(database=self._database)

    def close(self) -> None:
        """Close the session and every idle connection.

        Calling close() multiple times is safe. If closing a connection fails
        the last such error is raised after all of them have been attempted.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            idle, self._idle = self._idle, []
        last_error: Optional[ReqlNetworkError] = None
        for conn in idle:
            try:
                conn.close()
            except ReqlNetworkError as err:
                last_error = err
        if last_error is not None:
            raise last_error

    def reconnect(self) -> "Session":
        """Drop pooled connections and verify the server is reachable again."""
        try:
            self.close()
        except ReqlNetworkError:
            logger.debug("ignoring close error during reconnect", exc_info=True)
        with self._lock:
            self._closed = False
        self.release(self._dial())
        return self

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Session {self.address} db={self._database!r} {state}>"

    def _assert_open(self) -> None:
        if self._closed:
            raise ClosedError("session is closed")

    def next_token(self) -> int:
        with self._token_lock:
            self._token += 1
            return self._token

    def _dial(self) -> Connection:
        return Connection.open(self._host, self._port, self._timeout)

    def acquire(self) -> Connection:
        with self._lock:
            self._assert_open()
            if self._idle:
                return self._idle.pop()
        logger.debug("pool empty, dialing %s", self.address)
        return self._dial()

    def release(self, conn: Connection) -> None:
        """Return a connection to the pool, or close it if the pool is full or the session closed."""
        if conn.closed:
            return
        with self._lock:
            if not self._closed and len(self._idle) < self._max_idle:
                self._idle.append(conn)
                return
        logger.debug("closing surplus connection to %s", self.address)
        self.discard(conn)

    def discard(self, conn: Connection) -> None:
        try:
            conn.close()
        except ReqlNetworkError:
            logger.debug("error closing discarded connection", exc_info=True)

    def round_trip(self, conn: Connection, query: Any) -> Any:
        """Execute one query on ``conn`` under the session deadline.

        On failure the connection has already been closed and must not be
        returned to the pool.
        """
        return conn.execute(query, self._timeout)

    def run(self, value: Any) -> Cursor:
        """Compile and send ``value``; return a cursor over its result.

        Compilation failures and server-reported errors are latched on the
        returned cursor. Network failures, timeouts and running on a closed
        session raise immediately.
        """
        self._assert_open()
        try:
            query = build_query(value, self.context())
        except ReqlError as err:
            return Cursor.failed(self, err)
        query.token = self.next_token()
        time_format = query_time_format(query)

        conn = self.acquire()
        try:
            response = self.round_trip(conn, query)
        except BaseException:
            self.discard(conn)
            raise

        shape = shape_of(response)
        if shape is Shape.PARTIAL:
            return Cursor(
                self,
                connection=conn,
                token=query.token,
                shape=shape,
                datums=response.response,
                complete=False,
                expression=value,
                time_format=time_format,
            )
        if shape is not None:
            self.release(conn)
            return Cursor(
                self,
                token=query.token,
                shape=shape,
                datums=response.response,
                expression=value,
                time_format=time_format,
            )
        if is_error_response(response):
            self.release(conn)
            return Cursor.failed(self, error_from_response(response, describe(value)))
        self.discard(conn)
        return Cursor.failed(
            self,
            BrokenClientError(
                f"unexpected response type {response.type}",
                response=response,
                query=describe(value),
            ),
        )


def connect(
    address: str = DEFAULT_ADDRESS,
    database: str = DEFAULT_DATABASE,
    *,
    timeout: TimeoutInput = None,
    max_idle: int = DEFAULT_MAX_IDLE,
) -> Session:
    """Open a session to ``address`` (``host[:port]``) using ``database`` by default."""
    return Session.connect(address, database, timeout=timeout, max_idle=max_idle)


__all__ = ["Session", "connect", "DEFAULT_ADDRESS", "DEFAULT_DATABASE", "DEFAULT_MAX_IDLE"]
