"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together:

    SocketServer ──accept──► Connection ──thread──► _process_connection
                                                        │
                                          RequestParser │ bytes → HTTPRequest
                                                        ▼
                                      MiddlewarePipeline(Router.handle)
                                                        │
                                                        ▼
                                                  HTTPResponse → bytes

=============================================================================
ONE THREAD PER CONNECTION
=============================================================================

Every accepted connection gets its own daemon thread, which runs the
keep-alive loop until the client closes, goes idle, or sends a request
that cannot be parsed. There is no worker pool and no queue: a burst of
clients is a burst of threads.

Handlers only read the store's immutable snapshot, so connection threads
share nothing mutable. The one blocking call a handler makes, the remote
insert, is bounded by the client's request timeout.

=============================================================================
"""

import logging
import threading
import time
from typing import Optional, Callable, Set

from .config import ServerConfig
from .core import SocketServer, Connection
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
)
from .http.response import error, internal_error
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server.

        server = HTTPServer(ServerConfig())
        server.use(LoggingMiddleware())

        @server.get("/ping")
        def ping(request):
            return ok({"pong": True})

        server.run()   # blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._running = False
        self._threads: Set[threading.Thread] = set()
        self._threads_lock = threading.Lock()

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. The first added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def route(self, path: str, method: Optional[str] = None, **kwargs):
        return self._router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self._router.post(path, **kwargs)

    @property
    def bound_address(self):
        """(host, port) actually listened on, once run() has bound."""
        return self._socket_server.bound_address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self) -> None:
        """
        Serve until shutdown() is called or SIGINT/SIGTERM arrives.

        Raises:
            OSError: If the listening address cannot be bound.
        """
        self.config.setup_logging()
        self._handler = self._middleware.wrap(self._router.handle)
        self._running = True

        logger.info(f"Starting {self.config.server_name} on {self.config.address}")
        logger.info("Routes:")
        self._router.log_routes()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._stop()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self) -> None:
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _stop(self) -> None:
        """Stop keep-alive loops and give open connections a moment to finish."""
        logger.info("Shutting down server...")
        self._running = False

        with self._threads_lock:
            threads = list(self._threads)

        deadline = time.time() + self.config.keep_alive_timeout
        for thread in threads:
            thread.join(max(deadline - time.time(), 0))

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        """Start a daemon thread for ``conn`` (called from the accept loop)."""
        thread = threading.Thread(
            target=self._run_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        with self._threads_lock:
            self._threads.add(thread)
        thread.start()

    def _run_connection(self, conn: Connection) -> None:
        try:
            self._process_connection(conn)
        finally:
            with self._threads_lock:
                self._threads.discard(threading.current_thread())

    def _process_connection(self, conn: Connection) -> None:
        """
        Keep-alive loop for one connection.

        read → parse → middleware/router → send, repeated until the client
        asks to close, goes idle, or sends something unparseable.
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, HTTPStatus(e.status_code), str(e))
                        break

                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = internal_error()

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    wire = response.to_bytes(
                        self.config.server_name,
                        include_body=request.method != "HEAD",
                    )
                    if not conn.send_response(wire):
                        break

                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except ValueError as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break
                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str) -> None:
        """Answer a request that never reached a handler, then close."""
        response = error(status, message)
        response.set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))
