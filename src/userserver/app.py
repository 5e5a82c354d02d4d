"""
Application wiring: store + handlers + routes on an HTTPServer.

    ANY  /username           → 400 Invalid request URL
    ANY  /username/*rest     → UserHandler.lookup
    ANY  /adduser            → UserHandler.add_user   (remote store only)

Both user routes accept every method so the handlers, not the router,
decide the status: lookups answer the same way whatever the method, and
/adduser answers its own 405 with ``Allow: POST``.
"""

import logging
from typing import TYPE_CHECKING, Optional

from .config import ServerConfig
from .handlers import UserHandler
from .middleware import LoggingMiddleware
from .server import HTTPServer
from .store import UserStore

if TYPE_CHECKING:
    from .remote import RemoteClient


logger = logging.getLogger(__name__)


def create_app(
    store: UserStore,
    client: Optional["RemoteClient"] = None,
    config: Optional[ServerConfig] = None,
) -> HTTPServer:
    """
    Build a ready-to-run server.

    Args:
        store: Snapshot the lookup route reads.
        client: Remote client for inserts. Without one, /adduser is not
                registered and answers 404 like any unknown path.
        config: Listener settings; defaults to localhost:8080.
    """
    config = config or ServerConfig()
    server = HTTPServer(config)
    server.use(LoggingMiddleware(log_format=config.log_format))

    handler = UserHandler(store, client=client)

    server.router.add_route("/username", handler.lookup, name="lookup_bare")
    server.router.add_route("/username/*rest", handler.lookup, name="lookup")

    if client is not None:
        server.router.add_route("/adduser", handler.add_user, name="add_user")

    logger.debug(f"App built with {len(store)} users, inserts {'on' if client else 'off'}")
    return server
