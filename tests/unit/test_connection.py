"""
Unit tests for buffered request reads on a client connection.
"""

import socket

import pytest

from userserver.core.connection import Connection, ConnectionState


@pytest.fixture
def socket_pair():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    client_side.close()
    server_side.close()


def make_connection(sock, **overrides) -> Connection:
    settings = dict(timeout=1.0, keep_alive_timeout=0.2)
    settings.update(overrides)
    return Connection(socket=sock, address=("127.0.0.1", 4000), **settings)


class TestReadRequest:
    def test_single_request(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        client_side.sendall(b"GET /username/1 HTTP/1.1\r\nHost: x\r\n\r\n")

        assert conn.read_request() == b"GET /username/1 HTTP/1.1\r\nHost: x\r\n\r\n"
        assert conn.requests_handled == 1
        assert conn.state == ConnectionState.PROCESSING

    def test_body_read_to_content_length(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)
        body = b'{"username":"Dan","age":41}'

        client_side.sendall(
            b"POST /adduser HTTP/1.1\r\nContent-Length: " + str(len(body)).encode() + b"\r\n\r\n"
        )
        client_side.sendall(body)

        assert conn.read_request().endswith(body)

    def test_pipelined_requests_split(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        first = b"GET /username/1 HTTP/1.1\r\n\r\n"
        second = b"GET /username/2 HTTP/1.1\r\n\r\n"
        client_side.sendall(first + second)

        assert conn.read_request() == first
        assert conn.read_request() == second

    def test_client_close_returns_none(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        client_side.shutdown(socket.SHUT_WR)

        assert conn.read_request() is None

    def test_first_request_timeout(self, socket_pair):
        server_side, _ = socket_pair
        conn = make_connection(server_side, timeout=0.1)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_idle_keep_alive_returns_none(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")
        conn.read_request()

        assert conn.read_request() is None

    def test_too_large(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side, max_request_size=64, buffer_size=16)

        client_side.sendall(b"GET / HTTP/1.1\r\nX-Pad: " + b"a" * 200)

        with pytest.raises(ValueError):
            conn.read_request()

    @pytest.mark.parametrize("headers, expected", [
        (b"POST / HTTP/1.1\r\nContent-Length: 12", 12),
        (b"POST / HTTP/1.1\r\ncontent-length:3", 3),
        (b"POST / HTTP/1.1\r\nContent-Length: abc", 0),
        (b"POST / HTTP/1.1\r\nContent-Length: -7", 0),
        (b"GET / HTTP/1.1", 0),
    ])
    def test_parse_content_length(self, headers, expected):
        assert Connection._parse_content_length(headers) == expected


class TestWriteAndClose:
    def test_send_response(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n") is True
        assert client_side.recv(1024) == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_close_is_idempotent(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)

        with make_connection(server_side) as conn:
            pass

        assert conn.state == ConnectionState.CLOSED
        conn.close()
        assert conn.state == ConnectionState.CLOSED
