"""Exception hierarchy raised by the driver."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

from . import ql2


class ErrorCode:
    """Error codes attached to every driver exception."""
    UNKNOWN = "UNKNOWN"
    BAD_CLIENT = "BAD_CLIENT"
    INTERNAL = "INTERNAL"
    UNMARSHALABLE = "UNMARSHALABLE"
    BAD_QUERY = "BAD_QUERY"
    RUNTIME = "RUNTIME"
    BROKEN_CLIENT = "BROKEN_CLIENT"
    NO_SUCH_ROW = "NO_SUCH_ROW"
    WRONG_RESPONSE_TYPE = "WRONG_RESPONSE_TYPE"
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    CLOSED = "CLOSED"


class ReqlError(Exception):
    """Base exception class for all driver errors.

    ``response`` holds the server response that produced the error when there
    was one, ``query`` the rendered expression that was being run, and
    ``frames`` the backtrace path the server reported (positional indexes and
    optarg names from the root term down to the offending sub-term).
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.UNKNOWN,
        *,
        response: Any = None,
        query: Optional[str] = None,
        frames: Optional[List[Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.response = response
        self.query = query
        self.frames: List[Any] = list(frames or [])

    def __str__(self) -> str:
        text = self.message
        if self.frames:
            text = f"{text} (backtrace: {self.frames!r})"
        if self.query:
            text = f"{text} in:\n{self.query}"
        return text

    def with_query(self, query: Optional[str]) -> "ReqlError":
        if self.query is None:
            self.query = query
        return self


class BadClientError(ReqlError):
    """Error raised when a query cannot be built on the client side."""

    def __init__(self, message: str, code: str = ErrorCode.BAD_CLIENT, **kwargs: Any):
        super().__init__(message, code, **kwargs)


class InternalError(BadClientError):
    """Unexpected exception escaping the compiler, tagged with its cause."""

    def __init__(self, message: str, panic_value: Optional[BaseException] = None, **kwargs: Any):
        super().__init__(message, ErrorCode.INTERNAL, **kwargs)
        self.panic_value = panic_value


class UnmarshalableError(BadClientError):
    """Error raised when a value cannot be converted to or from a datum."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, ErrorCode.UNMARSHALABLE, **kwargs)


class BadQueryError(ReqlError):
    """Server could not make sense of the query."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, ErrorCode.BAD_QUERY, **kwargs)


class RuntimeQueryError(ReqlError):
    """Server failed while evaluating the query."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, ErrorCode.RUNTIME, **kwargs)


class BrokenClientError(ReqlError):
    """Protocol invariant violated by either side of the connection."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, ErrorCode.BROKEN_CLIENT, **kwargs)


class NoSuchRowError(ReqlError):
    def __init__(self, message: str = "no rows returned", **kwargs: Any):
        super().__init__(message, ErrorCode.NO_SUCH_ROW, **kwargs)


class WrongResponseTypeError(ReqlError):
    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, ErrorCode.WRONG_RESPONSE_TYPE, **kwargs)


class ReqlNetworkError(ReqlError):
    """Error raised when the socket fails during dial, write or read."""

    def __init__(self, message: str, code: str = ErrorCode.NETWORK, **kwargs: Any):
        super().__init__(message, code, **kwargs)


class ReqlTimeoutError(ReqlNetworkError):
    """Error raised when a round trip exceeds the session deadline."""

    def __init__(self, message: str = "query deadline exceeded", **kwargs: Any):
        super().__init__(message, ErrorCode.TIMEOUT, **kwargs)


class ClosedError(ReqlError):
    """Error raised when operations are attempted on a closed session."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, ErrorCode.CLOSED, **kwargs)


# ErrorCode -> exception class; every code has exactly one.
_ERROR_CLASS_MAP: Dict[str, Type[ReqlError]] = {
    ErrorCode.UNKNOWN: ReqlError,
    ErrorCode.BAD_CLIENT: BadClientError,
    ErrorCode.INTERNAL: InternalError,
    ErrorCode.UNMARSHALABLE: UnmarshalableError,
    ErrorCode.BAD_QUERY: BadQueryError,
    ErrorCode.RUNTIME: RuntimeQueryError,
    ErrorCode.BROKEN_CLIENT: BrokenClientError,
    ErrorCode.NO_SUCH_ROW: NoSuchRowError,
    ErrorCode.WRONG_RESPONSE_TYPE: WrongResponseTypeError,
    ErrorCode.NETWORK: ReqlNetworkError,
    ErrorCode.TIMEOUT: ReqlTimeoutError,
    ErrorCode.CLOSED: ClosedError,
}

_RESPONSE_ERROR_CODES: Dict[int, str] = {
    ql2.ResponseType.CLIENT_ERROR: ErrorCode.BROKEN_CLIENT,
    ql2.ResponseType.COMPILE_ERROR: ErrorCode.BAD_QUERY,
    ql2.ResponseType.RUNTIME_ERROR: ErrorCode.RUNTIME,
}

_RESPONSE_ERROR_PREFIXES: Dict[str, str] = {
    ErrorCode.BROKEN_CLIENT: "server rejected the message as malformed",
    ErrorCode.BAD_QUERY: "server could not make sense of the query",
    ErrorCode.RUNTIME: "server could not execute the query",
}


def is_error_response(response: Any) -> bool:
    return response.type in _RESPONSE_ERROR_CODES


def backtrace_frames(response: Any) -> List[Any]:
    """Return the backtrace as a list of ints (positional) and strs (optarg keys)."""
    frames: List[Any] = []
    if not response.HasField("backtrace"):
        return frames
    for frame in response.backtrace.frames:
        if frame.type == ql2.FrameType.POS:
            frames.append(frame.pos)
        else:
            frames.append(frame.opt)
    return frames


def error_from_response(response: Any, query: Optional[str] = None) -> ReqlError:
    """Build the typed error for an error response.

    The server puts the message in the first datum of the response as a
    string; anything else is reported as-is.
    """
    code = _RESPONSE_ERROR_CODES.get(response.type)
    if code is None:
        return BrokenClientError(
            f"unexpected response type {response.type}", response=response, query=query
        )
    detail = ""
    if len(response.response) > 0:
        first = response.response[0]
        if first.type == ql2.DatumType.R_STR:
            detail = first.r_str
        else:
            detail = str(first).strip()
    message = _RESPONSE_ERROR_PREFIXES[code]
    if detail:
        message = f"{message}: {detail}"
    error_class = _ERROR_CLASS_MAP[code]
    return error_class(
        message, response=response, query=query, frames=backtrace_frames(response)
    )


__all__ = [
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
    "backtrace_frames",
    "error_from_response",
    "is_error_response",
]
