"""Framed protobuf transport over a TCP socket."""

from __future__ import annotations

import logging
import socket
import struct
import time
from typing import Any, Optional, Tuple

from google.protobuf.message import DecodeError

from . import ql2
from .debug import format_message
from .errors import BrokenClientError, ReqlError, ReqlNetworkError, ReqlTimeoutError

logger = logging.getLogger(__name__)

_LENGTH = struct.Struct("<I")
MAX_FRAME_SIZE = 64 * 1024 * 1024


def encode_frame(payload: bytes) -> bytes:
    """Prefix ``payload`` with its little-endian uint32 length."""
    if len(payload) > MAX_FRAME_SIZE:
        raise BrokenClientError(f"frame payload of {len(payload)} bytes exceeds {MAX_FRAME_SIZE}")
    return _LENGTH.pack(len(payload)) + payload


def handshake() -> bytes:
    return struct.pack("<I", ql2.VERSION_MAGIC)


def parse_address(address: str, default_port: int = ql2.DEFAULT_PORT) -> Tuple[str, int]:
    """Split ``host[:port]``; bracketed IPv6 literals are accepted."""
    if not isinstance(address, str) or not address.strip():
        raise ValueError("address must be a non-empty string")
    address = address.strip()
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep:
            raise ValueError(f"invalid address: {address!r}")
        port_text = rest[1:] if rest.startswith(":") else ""
    elif address.count(":") == 1:
        host, _, port_text = address.partition(":")
    else:
        host, port_text = address, ""
    if not port_text:
        return host, default_port
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid port in address: {address!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in address: {address!r}")
    return host, port


class Connection:
    """A single TCP connection to the server.

    At most one query is in flight at a time. Each round trip runs under an
    absolute deadline; any failure during a round trip closes the socket,
    since the stream can no longer be trusted to be on a frame boundary.
    """

    def __init__(self, sock: socket.socket, address: Tuple[str, int]):
        self._sock = sock
        self.address = address
        self._closed = False

    @classmethod
    def open(cls, host: str, port: int, timeout: Optional[float] = None) -> "Connection":
        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except socket.timeout as exc:
            raise ReqlTimeoutError(f"timed out connecting to {host}:{port}") from exc
        except OSError as exc:
            raise ReqlNetworkError(f"could not connect to {host}:{port}: {exc}") from exc
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        conn = cls(sock, (host, port))
        try:
            conn._write(handshake(), deadline)
        except ReqlError:
            conn._abort()
            raise
        finally:
            conn._clear_deadline()
        logger.debug("connected to %s:%d", host, port)
        return conn

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
        except OSError as exc:
            raise ReqlNetworkError(f"error closing connection to {self._peer()}: {exc}") from exc

    def _abort(self) -> None:
        try:
            self.close()
        except ReqlNetworkError:
            logger.debug("error while aborting connection", exc_info=True)

    def _peer(self) -> str:
        return f"{self.address[0]}:{self.address[1]}"

    def execute(self, query: Any, timeout: Optional[float] = None) -> Any:
        """Send ``query`` and return the response carrying its token.

        Responses with a smaller token are leftovers from an earlier query on
        this connection and are skipped.
        """
        if self._closed:
            raise ReqlNetworkError("connection is closed")
        deadline = None if timeout is None else time.monotonic() + timeout
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("sending query to %s:\n%s", self._peer(), format_message(query))
        try:
            self._write(encode_frame(query.SerializeToString()), deadline)
            while True:
                response = self._read_response(deadline)
                if response.token < query.token:
                    logger.debug(
                        "skipping stale response token=%d (waiting for %d)", response.token, query.token
                    )
                    continue
                if response.token > query.token:
                    raise BrokenClientError(
                        f"received response for token {response.token} while waiting for {query.token}",
                        response=response,
                    )
                break
        except ReqlError:
            self._abort()
            raise
        finally:
            self._clear_deadline()
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("received response from %s:\n%s", self._peer(), format_message(response))
        return response

    def _apply_deadline(self, deadline: Optional[float]) -> None:
        if deadline is None:
            self._sock.settimeout(None)
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ReqlTimeoutError(f"query deadline exceeded talking to {self._peer()}")
        self._sock.settimeout(remaining)

    def _clear_deadline(self) -> None:
        if self._closed:
            return
        try:
            self._sock.settimeout(None)
        except OSError:
            logger.debug("could not reset socket timeout", exc_info=True)

    def _write(self, data: bytes, deadline: Optional[float]) -> None:
        view = memoryview(data)
        while view:
            self._apply_deadline(deadline)
            try:
                sent = self._sock.send(view)
            except socket.timeout as exc:
                raise ReqlTimeoutError(f"query deadline exceeded writing to {self._peer()}") from exc
            except OSError as exc:
                raise ReqlNetworkError(f"error writing to {self._peer()}: {exc}") from exc
            view = view[sent:]

    def _read_exactly(self, size: int, deadline: Optional[float], *, frame_start: bool = False) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            self._apply_deadline(deadline)
            try:
                chunk = self._sock.recv(size - len(buf))
            except socket.timeout as exc:
                raise ReqlTimeoutError(f"query deadline exceeded reading from {self._peer()}") from exc
            except OSError as exc:
                raise ReqlNetworkError(f"error reading from {self._peer()}: {exc}") from exc
            if not chunk:
                if frame_start and not buf:
                    raise ReqlNetworkError(f"connection closed by {self._peer()}")
                raise BrokenClientError(f"truncated frame from {self._peer()}")
            buf.extend(chunk)
        return bytes(buf)

    def _read_response(self, deadline: Optional[float]) -> Any:
        (length,) = _LENGTH.unpack(self._read_exactly(_LENGTH.size, deadline, frame_start=True))
        if length > MAX_FRAME_SIZE:
            raise BrokenClientError(f"response frame of {length} bytes exceeds {MAX_FRAME_SIZE}")
        payload = self._read_exactly(length, deadline)
        try:
            return ql2.Response.FromString(payload)
        except DecodeError as exc:
            raise BrokenClientError(f"could not decode response: {exc}") from exc


__all__ = [
    "MAX_FRAME_SIZE",
    "Connection",
    "encode_frame",
    "handshake",
    "parse_address",
]
