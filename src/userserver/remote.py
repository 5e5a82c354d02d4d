"""
=============================================================================
REMOTE STORE CLIENT
=============================================================================

A thin PostgREST client for the hosted users table, built on
``requests``.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   select("users", ("id", "username", "age"))                        │
    │       GET  {rest_url}/users?select=id,username,age                  │
    │       ← 200 [{"id": 1, "username": "Alice", "age": 30}, ...]        │
    │                                                                      │
    │   insert("users", {"username": "Dan", "age": 41})                   │
    │       POST {rest_url}/users        Prefer: return=minimal           │
    │       ← 201 (empty body)                                            │
    └─────────────────────────────────────────────────────────────────────┘

Every request carries the project key twice, as PostgREST expects:

    apikey: <API_KEY>
    Authorization: Bearer <API_KEY>

One client (and one requests.Session, so one connection pool) is built
at startup and shared by the startup loader and every /adduser request.
Failures of any kind surface as store.QueryError; nothing is retried.

=============================================================================
"""

import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests

from .config import RemoteConfig
from .store import QueryError


logger = logging.getLogger(__name__)


class RemoteClient:
    """
    Client for the remote users table.

        client = RemoteClient.from_env()
        rows = client.select("users", ("id", "username", "age"))
        client.insert("users", {"username": "Dan", "age": 41})
        client.close()

    Usable as a context manager; leaving the block closes the session.
    """

    def __init__(self, config: RemoteConfig, session: Optional[requests.Session] = None):
        """
        Args:
            config: Validated remote settings.
            session: Session to send requests through. A new one is created
                     when omitted; tests pass a fake.

        Raises:
            ConfigurationError: If ``config`` is missing the key or ref.
        """
        config.validate()
        self.config = config

        self._session = session or requests.Session()
        self._session.headers.update({
            "apikey": config.api_key,
            "Authorization": f"Bearer {config.api_key}",
            "Accept": "application/json",
        })

        if config.debug:
            logger.setLevel(logging.DEBUG)

    @classmethod
    def from_env(cls) -> "RemoteClient":
        """
        Raises:
            ConfigurationError: If API_KEY or PROJECT_REF is not set.
        """
        return cls(RemoteConfig.from_env())

    # =========================================================================
    # QUERIES
    # =========================================================================

    def select(self, table: str, columns: Sequence[str] = ("*",)) -> List[Dict[str, Any]]:
        """
        Read every row of ``table``.

        Raises:
            QueryError: On transport failure, a non-2xx answer, or a body
                        that is not a JSON array of objects.
        """
        response = self._request("GET", table, params={"select": ",".join(columns)})

        try:
            rows = response.json()
        except ValueError as e:
            raise QueryError(f"Invalid JSON from {table}: {e}", response.status_code)

        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise QueryError(f"Expected a list of rows from {table}", response.status_code)

        return rows

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        """
        Insert one row into ``table``.

        The remote store assigns the id; nothing is read back.

        Raises:
            QueryError: If the insert fails.
        """
        self._request(
            "POST",
            table,
            json=dict(row),
            headers={"Prefer": "return=minimal", "Content-Type": "application/json"},
        )

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request(self, method: str, table: str, **kwargs: Any) -> requests.Response:
        url = f"{self.config.rest_url}/{table}"
        start_time = time.time()

        try:
            response = self._session.request(method, url, timeout=self.config.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise QueryError(f"{method} {table} failed: {e}")

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(f"{method} {url} -> {response.status_code} ({duration_ms:.2f}ms)")

        if not response.ok:
            message = self._error_message(response)
            logger.error(f"{method} {url} returned {response.status_code}: {message}")
            raise QueryError(message, response.status_code)

        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """
        Best human-readable error out of a PostgREST error response.

        PostgREST answers ``{"code": ..., "message": ..., "details": ...}``;
        anything else falls back to the raw text, then the reason phrase.
        """
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])

        return response.text.strip() or f"{response.status_code} {response.reason}"

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "RemoteClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
