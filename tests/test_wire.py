import struct

import pytest

from reql import net, ql2
from reql.compiler import Context, build_query
from reql.errors import BrokenClientError, ReqlNetworkError, ReqlTimeoutError
from reql.net import MAX_FRAME_SIZE, Connection, encode_frame, handshake, parse_address
import reql as r

from fakeserver import atom, make_response


def test_handshake_is_little_endian_magic() -> None:
    assert handshake() == b"\x36\xba\x61\x3f"
    assert struct.unpack("<I", handshake())[0] == ql2.VERSION_MAGIC


def test_encode_frame_prefixes_length() -> None:
    assert encode_frame(b"abc") == b"\x03\x00\x00\x00abc"
    assert encode_frame(b"") == b"\x00\x00\x00\x00"


def test_query_serializes_and_parses() -> None:
    query = build_query(r.expr(1).add(2), Context(), token=7)
    parsed = ql2.Query.FromString(query.SerializeToString())
    assert parsed.type == ql2.QueryType.START
    assert parsed.token == 7
    assert parsed.query.type == ql2.TermType.ADD
    assert len(parsed.query.args) == 2


def test_response_carries_backtrace() -> None:
    response = make_response(3, ql2.ResponseType.COMPILE_ERROR, ["bad"], [1, "index"])
    parsed = ql2.Response.FromString(response.SerializeToString())
    assert parsed.token == 3
    assert [frame.type for frame in parsed.backtrace.frames] == [ql2.FrameType.POS, ql2.FrameType.OPT]


def test_parse_address() -> None:
    assert parse_address("localhost") == ("localhost", 28015)
    assert parse_address("db.example.com:1234") == ("db.example.com", 1234)
    assert parse_address("[::1]:29015") == ("::1", 29015)
    assert parse_address("[::1]") == ("::1", 28015)
    with pytest.raises(ValueError):
        parse_address("")
    with pytest.raises(ValueError):
        parse_address("host:http")
    with pytest.raises(ValueError):
        parse_address("host:70000")


def test_connection_writes_handshake_and_executes(fake_server) -> None:
    server = fake_server(atom(3))
    conn = Connection.open("127.0.0.1", server.port, timeout=5)
    query = build_query(r.expr(1).add(2), Context(), token=1)
    response = conn.execute(query, timeout=5)
    assert response.type == ql2.ResponseType.SUCCESS_ATOM
    assert response.response[0].r_num == 3
    assert server.handshakes == [ql2.VERSION_MAGIC]
    conn.close()
    conn.close()
    assert conn.closed


def test_connection_skips_stale_tokens(fake_server) -> None:
    def handler(query):
        return [
            make_response(query.token - 1, ql2.ResponseType.SUCCESS_ATOM, ["stale"]),
            make_response(query.token, ql2.ResponseType.SUCCESS_ATOM, ["fresh"]),
        ]

    server = fake_server(handler)
    conn = Connection.open("127.0.0.1", server.port, timeout=5)
    response = conn.execute(build_query(r.expr(1), Context(), token=5), timeout=5)
    assert response.response[0].r_str == "fresh"
    assert not conn.closed
    conn.close()


def test_connection_rejects_future_tokens(fake_server) -> None:
    def handler(query):
        return [make_response(query.token + 1, ql2.ResponseType.SUCCESS_ATOM, [1])]

    server = fake_server(handler)
    conn = Connection.open("127.0.0.1", server.port, timeout=5)
    with pytest.raises(BrokenClientError):
        conn.execute(build_query(r.expr(1), Context(), token=5), timeout=5)
    assert conn.closed


def test_connection_timeout_closes_socket(fake_server) -> None:
    server = fake_server(lambda query: [])
    conn = Connection.open("127.0.0.1", server.port, timeout=5)
    with pytest.raises(ReqlTimeoutError):
        conn.execute(build_query(r.expr(1), Context(), token=1), timeout=0.2)
    assert conn.closed
    with pytest.raises(ReqlNetworkError):
        conn.execute(build_query(r.expr(1), Context(), token=2), timeout=0.2)


def test_connect_failure_is_network_error() -> None:
    with pytest.raises(ReqlNetworkError):
        Connection.open("127.0.0.1", 1, timeout=2)


def test_oversized_frame_is_a_client_error(monkeypatch) -> None:
    monkeypatch.setattr(net, "MAX_FRAME_SIZE", 8)
    assert encode_frame(b"12345678") == b"\x08\x00\x00\x0012345678"
    with pytest.raises(BrokenClientError, match="exceeds 8"):
        encode_frame(b"123456789")
    assert MAX_FRAME_SIZE == 64 * 1024 * 1024
