"""Result cursors with transparent continuation."""

from __future__ import annotations

import collections
import enum
import logging
from typing import TYPE_CHECKING, Any, Deque, Iterable, Iterator, List, Optional

from . import ql2
from .datum import unmarshal
from .debug import describe
from .errors import (
    BadClientError,
    BrokenClientError,
    NoSuchRowError,
    ReqlError,
    WrongResponseTypeError,
    error_from_response,
    is_error_response,
)

if TYPE_CHECKING:
    from .net import Connection
    from .session import Session

logger = logging.getLogger(__name__)


class Shape(enum.Enum):
    """How the server answered the START query."""

    ATOM = "atom"
    SEQUENCE = "sequence"
    PARTIAL = "partial"


_SHAPES = {
    ql2.ResponseType.SUCCESS_ATOM: Shape.ATOM,
    ql2.ResponseType.SUCCESS_SEQUENCE: Shape.SEQUENCE,
    ql2.ResponseType.SUCCESS_PARTIAL: Shape.PARTIAL,
}


def shape_of(response: Any) -> Optional[Shape]:
    return _SHAPES.get(response.type)


class Cursor:
    """Iterator over the datums of one query.

    Use ``next()``/``scan()`` or plain iteration. A cursor on a partial
    response holds a connection and fetches further batches as the buffer
    runs dry; the connection goes back to the session pool exactly once,
    when the stream completes or the cursor is closed.
    """

    def __init__(
        self,
        session: Optional["Session"],
        *,
        connection: Optional["Connection"] = None,
        token: int = 0,
        shape: Optional[Shape] = None,
        datums: Iterable[Any] = (),
        complete: bool = True,
        error: Optional[ReqlError] = None,
        expression: Any = None,
        time_format: str = "native",
    ):
        self._session = session
        self._conn = connection
        self._token = token
        self._shape = shape
        self._buffer: Deque[Any] = collections.deque(datums)
        self._current: Any = None
        self._has_current = False
        self._complete = complete
        # a cursor that holds no connection and will fetch nothing more is closed;
        # its buffered batch can still be read
        self._closed = connection is None and complete
        self._err = error
        self._expression = expression
        self._query: Optional[str] = None
        self._time_format = time_format

    @classmethod
    def failed(cls, session: Optional["Session"], error: ReqlError) -> "Cursor":
        """A cursor that yields nothing and reports ``error``."""
        return cls(session, error=error)

    @property
    def token(self) -> int:
        return self._token

    @property
    def shape(self) -> Optional[Shape]:
        return self._shape

    @property
    def is_closed(self) -> bool:
        return self._closed

    def err(self) -> Optional[ReqlError]:
        """The error that stopped this cursor, if any. End of stream is not an error."""
        return self._err

    def next(self) -> bool:
        """Advance to the next datum, fetching another batch if needed."""
        self._has_current = False
        self._current = None
        if self._err is not None or (self._closed and not self._buffer):
            return False
        while not self._buffer:
            if self._complete:
                self.close()
                return False
            try:
                self._fetch_more()
            except ReqlError as err:
                self._err = err.with_query(self._rendered_query())
                self.close()
                return False
        self._current = self._buffer.popleft()
        self._has_current = True
        return True

    def scan(self) -> Any:
        """Return the current datum as a Python value."""
        if not self._has_current:
            raise BadClientError("scan() called without a current row; call next() first")
        return unmarshal(self._current, time_format=self._time_format)

    def one(self) -> Any:
        """Return the single value of an atom response.

        Raises :class:`NoSuchRowError` when that value is null.
        """
        try:
            self._raise_error()
            if self._shape is not Shape.ATOM:
                raise WrongResponseTypeError(
                    f"one() requires an atom response, got {self._shape_name()}",
                    query=self._rendered_query(),
                )
            if not self.next():
                self._raise_error()
                raise NoSuchRowError(query=self._rendered_query())
            value = self.scan()
        finally:
            self.close()
        if value is None:
            raise NoSuchRowError(query=self._rendered_query())
        return value

    def all(self) -> List[Any]:
        """Return every remaining value.

        For an atom response the atom itself must be an array (or null).
        """
        try:
            self._raise_error()
            if self._shape is Shape.ATOM:
                value = self.scan() if self.next() else None
                if value is None:
                    return []
                if not isinstance(value, list):
                    raise WrongResponseTypeError(
                        f"all() on an atom response requires an array, got {type(value).__name__}",
                        query=self._rendered_query(),
                    )
                return value
            if self._shape is None:
                raise WrongResponseTypeError("all() requires a stream response", query=self._rendered_query())
            rows = []
            while self.next():
                rows.append(self.scan())
            self._raise_error()
            return rows
        finally:
            self.close()

    def exec_(self) -> None:
        """Discard all results, raising any error the query produced."""
        try:
            while self.next():
                pass
            self._raise_error()
        finally:
            self.close()

    def close(self) -> None:
        """Release the connection; sends STOP if the stream was not exhausted."""
        self._buffer.clear()
        if self._closed:
            return
        self._closed = True
        conn, self._conn = self._conn, None
        if conn is None:
            return
        if not self._complete:
            self._complete = True
            query = self._followup(ql2.QueryType.STOP)
            try:
                self._require_session().round_trip(conn, query)
            except ReqlError:
                logger.warning("failed to stop cursor token=%d", self._token, exc_info=True)
                return
        self._require_session().release(conn)

    def __iter__(self) -> Iterator[Any]:
        try:
            while self.next():
                yield self.scan()
        finally:
            self.close()
        self._raise_error()

    def __enter__(self) -> "Cursor":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Cursor token={self._token} shape={self._shape_name()} {state}>"

    def _shape_name(self) -> str:
        return self._shape.value if self._shape is not None else "error"

    def _rendered_query(self) -> Optional[str]:
        if self._query is None and self._expression is not None:
            self._query = describe(self._expression)
        return self._query

    def _raise_error(self) -> None:
        if self._err is not None:
            raise self._err

    def _require_session(self) -> "Session":
        if self._session is None:
            raise BrokenClientError("cursor has no session")
        return self._session

    def _followup(self, query_type: ql2.QueryType) -> Any:
        query = ql2.Query()
        query.type = query_type
        query.token = self._token
        return query

    def _fetch_more(self) -> None:
        conn = self._conn
        if conn is None:
            raise BrokenClientError("cursor lost its connection before the stream completed")
        session = self._require_session()
        try:
            response = session.round_trip(conn, self._followup(ql2.QueryType.CONTINUE))
        except ReqlError:
            # round_trip closed the connection
            self._conn = None
            self._complete = True
            raise
        shape = shape_of(response)
        if shape is Shape.PARTIAL:
            self._buffer.extend(response.response)
            return
        self._conn = None
        self._complete = True
        if shape is Shape.SEQUENCE:
            self._buffer.extend(response.response)
            session.release(conn)
            return
        if is_error_response(response):
            session.release(conn)
            raise error_from_response(response, self._rendered_query())
        session.discard(conn)
        raise BrokenClientError(
            f"unexpected response type {response.type} to CONTINUE", response=response
        )


__all__ = ["Cursor", "Shape", "shape_of"]
