"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) pairs to handler functions.

    GET  /username/1         → UserHandler.lookup     path_params={"rest": "1"}
    POST /adduser            → UserHandler.add_user
    GET  /nope               → 404 "No route matches /nope"

=============================================================================
PATTERN SYNTAX
=============================================================================

    /adduser            static       exact match
    /users/:id          parameter    one segment      → {"id": "..."}
    /username/*rest     wildcard     the remainder    → {"rest": "..."}

Patterns compile to anchored regular expressions once, at registration:

    "/username/*rest"   →   ^/username/(?P<rest>.*)\Z     (DOTALL)

A route registered without a method accepts every method. The user
routes rely on this: the handlers answer 400/405 themselves so their
messages stay the same whatever method the client used.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


logger = logging.getLogger(__name__)

# Every handler takes a request and returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A URL pattern bound to a handler."""

    path: str
    method: Optional[str]              # None = any method
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)


@dataclass
class RouteMatch:
    """A matched route plus the parameters pulled out of the path."""
    route: Route
    params: Dict[str, str]


class Router:
    """
    HTTP request router.

        router = Router()

        @router.get("/users/:id")
        def get_user(request):
            return ok({"id": request.path_params["id"]})

        router.add_route("/username/*rest", handler.lookup)   # any method

    Routes are tried in registration order; the first match wins.
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register ``handler`` for ``path``.

        Args:
            path: URL pattern (``/adduser``, ``/users/:id``, ``/username/*rest``)
            handler: Callable taking an HTTPRequest, returning an HTTPResponse
            method: HTTP method, or None to accept any method
            name: Optional route name, shown in the startup route table
        """
        pattern = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            _pattern=pattern,
        )
        self._routes.append(route)

        logger.debug(f"Registered route {route.method or 'ANY'} {path}")
        return route

    def _compile_pattern(self, path: str) -> re.Pattern:
        """Compile a route pattern to an anchored regex with named groups."""
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                regex_parts.append(f"(?P<{param_name}>[^/]+)")

            elif segment.startswith("*"):
                # Wildcard swallows the rest of the path, so stop here
                param_name = segment[1:] or "wildcard"
                regex_parts.append(f"(?P<{param_name}>.*)")
                break

            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")  # root route "/"

        regex_parts.append(r"\Z")
        return re.compile("".join(regex_parts), re.DOTALL)

    # =========================================================================
    # MATCHING
    # =========================================================================

    @staticmethod
    def _normalize(path: str) -> str:
        """Leading slash, no trailing slash ("/username/" → "/username")."""
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First route matching ``method`` and ``path``, or None."""
        path = self._normalize(path)

        for route in self._routes:
            if route.method and route.method != method.upper():
                continue

            found = route._pattern.match(path) if route._pattern else None
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods registered for ``path`` (feeds the 405 Allow header)."""
        path = self._normalize(path)
        methods = set()

        for route in self._routes:
            if route._pattern and route._pattern.match(path):
                if route.method is None:
                    return ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]
                methods.add(route.method)

        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch ``request``.

        Path exists with another method → 405 with Allow.
        Path does not exist at all      → 404.
        """
        found = self.match(request.method, request.path)

        if found:
            request.path_params = found.params
            return found.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found(f"No route matches {request.path}")

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(); returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        return list(self._routes)

    def log_routes(self) -> None:
        """Log the route table at startup."""
        for route in self._routes:
            label = f"  ({route.name})" if route.name else ""
            logger.info(f"  {route.method or 'ANY':8} {route.path}{label}")
