"""In-process server speaking the framed protobuf protocol, for tests."""

from __future__ import annotations

import socket
import struct
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from reql import ql2
from reql.datum import to_datum, unmarshal

Handler = Callable[[Any], Optional[List[Any]]]

_LENGTH = struct.Struct("<I")


def make_response(
    token: int,
    response_type: int,
    values: Iterable[Any] = (),
    frames: Iterable[Any] = (),
) -> Any:
    response = ql2.Response()
    response.type = response_type
    response.token = token
    for value in values:
        response.response.add().CopyFrom(to_datum(value))
    frames = list(frames)
    if frames:
        for item in frames:
            frame = response.backtrace.frames.add()
            if isinstance(item, int):
                frame.type = ql2.FrameType.POS
                frame.pos = item
            else:
                frame.type = ql2.FrameType.OPT
                frame.opt = item
    return response


def atom(value: Any) -> Handler:
    def handler(query: Any) -> List[Any]:
        return [make_response(query.token, ql2.ResponseType.SUCCESS_ATOM, [value])]

    return handler


def error(response_type: int, message: str, frames: Iterable[Any] = ()) -> Handler:
    def handler(query: Any) -> List[Any]:
        return [make_response(query.token, response_type, [message], frames)]

    return handler


class Stream:
    """Serve ``batches`` for every START: partial responses, then a final sequence."""

    def __init__(self, batches: List[List[Any]]):
        self.batches = batches
        self._cursors: Dict[int, int] = {}
        self._lock = threading.Lock()

    def _batch(self, token: int, index: int) -> Any:
        last = index >= len(self.batches) - 1
        response_type = ql2.ResponseType.SUCCESS_SEQUENCE if last else ql2.ResponseType.SUCCESS_PARTIAL
        values = self.batches[index] if index < len(self.batches) else []
        return make_response(token, response_type, values)

    def __call__(self, query: Any) -> List[Any]:
        with self._lock:
            if query.type == ql2.QueryType.START:
                self._cursors[query.token] = 0
                return [self._batch(query.token, 0)]
            if query.type == ql2.QueryType.CONTINUE:
                index = self._cursors[query.token] + 1
                self._cursors[query.token] = index
                return [self._batch(query.token, index)]
            self._cursors.pop(query.token, None)
            return [make_response(query.token, ql2.ResponseType.SUCCESS_SEQUENCE)]


class FakeServer:
    """Accepts connections, checks the handshake and answers queries via ``handler``.

    A handler returns the responses to send for a query; an empty list sends
    nothing. Every decoded query is recorded in ``queries``.
    """

    def __init__(self, handler: Handler):
        self.handler = handler
        self.queries: List[Any] = []
        self.handshakes: List[int] = []
        self.connections = 0
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(16)
        self.port = self._listener.getsockname()[1]
        self.address = f"127.0.0.1:{self.port}"
        self._lock = threading.Lock()
        self._clients: List[socket.socket] = []
        self._closed = False
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)

    def start(self) -> "FakeServer":
        self._thread.start()
        return self

    def close(self) -> None:
        self._closed = True
        try:
            self._listener.close()
        except OSError:
            pass
        with self._lock:
            clients = list(self._clients)
        for client in clients:
            try:
                client.close()
            except OSError:
                pass

    def queries_of_type(self, query_type: int) -> List[Any]:
        with self._lock:
            return [query for query in self.queries if query.type == query_type]

    def _accept_loop(self) -> None:
        while not self._closed:
            try:
                client, _ = self._listener.accept()
            except OSError:
                return
            with self._lock:
                self.connections += 1
                self._clients.append(client)
            threading.Thread(target=self._serve, args=(client,), daemon=True).start()

    def _recv_exactly(self, client: socket.socket, size: int) -> Optional[bytes]:
        buf = bytearray()
        while len(buf) < size:
            try:
                chunk = client.recv(size - len(buf))
            except OSError:
                return None
            if not chunk:
                return None
            buf.extend(chunk)
        return bytes(buf)

    def _serve(self, client: socket.socket) -> None:
        magic = self._recv_exactly(client, 4)
        if magic is None:
            return
        with self._lock:
            self.handshakes.append(struct.unpack("<I", magic)[0])
        while True:
            header = self._recv_exactly(client, _LENGTH.size)
            if header is None:
                return
            payload = self._recv_exactly(client, _LENGTH.unpack(header)[0])
            if payload is None:
                return
            query = ql2.Query.FromString(payload)
            with self._lock:
                self.queries.append(query)
            for response in self.handler(query) or []:
                data = response.SerializeToString()
                try:
                    client.sendall(_LENGTH.pack(len(data)) + data)
                except OSError:
                    return


def term_tree(term: Any) -> Any:
    """Compact view of a term for assertions: datums become Python values."""
    if term.type == ql2.TermType.DATUM:
        return unmarshal(term)
    name = ql2.TermType(term.type).name
    args = [term_tree(arg) for arg in term.args]
    optargs = {pair.key: term_tree(pair.val) for pair in term.optargs}
    if optargs:
        return (name, args, optargs)
    return (name, args)
