"""
=============================================================================
USERSERVER
=============================================================================

A small HTTP/1.1 service that serves user records by id.

    GET  /username/<id>    → 200 {"id": 1, "username": "Alice", "age": 30}
    POST /adduser          → 201 User added successfully   (remote store)

Users come from either a built-in static mapping or a hosted PostgREST
``users`` table that is read once at startup.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    userserver/
    ├── __main__.py      CLI: python -m userserver
    ├── app.py           create_app(): store + handlers + routes
    ├── server.py        HTTPServer: thread per connection, keep-alive loop
    ├── config.py        ServerConfig, RemoteConfig, .env loading
    ├── models.py        User
    ├── store.py         UserStore snapshot, static/remote loaders
    ├── remote.py        RemoteClient (requests.Session → PostgREST)
    ├── core/            listening socket, client connections
    ├── http/            request parsing, responses, routing, status codes
    ├── middleware/      pipeline, access logging
    └── handlers/        UserHandler.lookup / add_user

=============================================================================
"""

__version__ = "1.0.0"

from .app import create_app
from .config import ServerConfig, RemoteConfig, ConfigurationError
from .models import User
from .server import HTTPServer
from .store import UserStore, StoreError, QueryError

__all__ = [
    "create_app",
    "HTTPServer",
    "ServerConfig",
    "RemoteConfig",
    "ConfigurationError",
    "User",
    "UserStore",
    "StoreError",
    "QueryError",
    "__version__",
]
