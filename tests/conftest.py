"""
pytest configuration and fixtures.
"""

import json
import logging
import threading
from typing import Any, Dict, Generator, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userserver import create_app, HTTPServer, ServerConfig, User, UserStore, QueryError


# =============================================================================
# RAW REQUESTS
# =============================================================================

@pytest.fixture
def sample_get_request() -> bytes:
    """Sample lookup request."""
    return (
        b"GET /username/1?verbose=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample insert request with a JSON body."""
    body = b'{"username": "Dan", "age": 41}'
    return (
        b"POST /adduser HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
        + body
    )


# =============================================================================
# STORES AND FAKE REMOTES
# =============================================================================

@pytest.fixture
def alice_store() -> UserStore:
    """The single-user store used throughout the examples."""
    return UserStore({1: User(id=1, name="Alice", age=30)})


@pytest.fixture
def static_store() -> UserStore:
    return UserStore.from_static()


class FakeClient:
    """
    Stands in for RemoteClient.

    Records every call; ``rows`` feeds select(), ``fail_with`` makes the
    next calls raise QueryError.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows = rows or []
        self.fail_with: Optional[str] = None
        self.selects: List[tuple] = []
        self.inserts: List[tuple] = []
        self.closed = False

    def select(self, table: str, columns=("*",)) -> List[Dict[str, Any]]:
        self.selects.append((table, tuple(columns)))
        if self.fail_with:
            raise QueryError(self.fail_with)
        return list(self.rows)

    def insert(self, table: str, row: Dict[str, Any]) -> None:
        self.inserts.append((table, dict(row)))
        if self.fail_with:
            raise QueryError(self.fail_with, 409)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient(rows=[
        {"id": 1, "username": "Alice", "age": 30},
        {"id": 7, "username": "Grace", "age": 45},
    ])


class FakeResponse:
    """Just enough of requests.Response for RemoteClient."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self.reason = "OK" if status_code < 400 else "Error"
        if text is not None:
            self.text = text
        elif payload is not None:
            self.text = json.dumps(payload)
        else:
            self.text = ""

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """
    Stands in for requests.Session.

    Responses (or exceptions) are queued in ``responses`` and handed out
    in order; every call is recorded in ``calls``.
    """

    def __init__(self, *responses):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self) -> None:
        self.closed = True


# =============================================================================
# LIVE SERVER
# =============================================================================

class TestServer:
    """Runs an HTTPServer on a free port in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None
        self._log_level = logging.getLogger("userserver").level

    @property
    def port(self) -> int:
        return self.server.bound_address[1]

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self) -> "TestServer":
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")
        return self

    def stop(self) -> None:
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        # run() sets the package log level; don't leak it into later tests
        logging.getLogger("userserver").setLevel(self._log_level)


def make_test_config(**overrides) -> ServerConfig:
    settings = dict(
        host="127.0.0.1",
        port=0,  # let the OS pick
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )
    settings.update(overrides)
    return ServerConfig(**settings)


@pytest.fixture
def live_server(alice_store: UserStore, fake_client: FakeClient) -> Generator[TestServer, None, None]:
    """Server with the Alice store and a fake remote, so /adduser exists."""
    server = create_app(alice_store, client=fake_client, config=make_test_config())
    test_srv = TestServer(server).start()
    yield test_srv
    test_srv.stop()


@pytest.fixture
def static_server(static_store: UserStore) -> Generator[TestServer, None, None]:
    """Server with the static store and no remote, so /adduser is absent."""
    server = create_app(static_store, config=make_test_config())
    test_srv = TestServer(server).start()
    yield test_srv
    test_srv.stop()
