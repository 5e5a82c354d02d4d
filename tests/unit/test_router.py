"""
Unit tests for URL router.
"""

from userserver.http.router import Router
from userserver.http.request import HTTPRequest
from userserver.http.response import HTTPResponse, ResponseBuilder, HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    return HTTPRequest(method=method, path=path)


def echo_handler(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder().json({"path": request.path, "params": request.path_params}).build()


class TestRouter:
    """Tests for Router."""

    def test_add_route(self):
        router = Router()
        route = router.add_route("/adduser", echo_handler, method="post")

        assert route.method == "POST"
        assert router.routes() == [route]

    def test_route_without_method_accepts_any(self):
        router = Router()
        router.add_route("/adduser", echo_handler)

        for method in ("GET", "POST", "DELETE"):
            assert router.match(method, "/adduser") is not None

    def test_match_static_path(self):
        router = Router()
        router.add_route("/adduser", echo_handler, method="POST")

        assert router.match("POST", "/adduser").route.path == "/adduser"
        assert router.match("POST", "/adduser/") is not None
        assert router.match("POST", "/addusers") is None

    def test_match_param(self):
        router = Router()
        router.add_route("/users/:id", echo_handler, method="GET")

        assert router.match("GET", "/users/42").params == {"id": "42"}
        assert router.match("GET", "/users/42/extra") is None

    def test_match_wildcard(self):
        router = Router()
        router.add_route("/username/*rest", echo_handler)

        assert router.match("GET", "/username/1").params == {"rest": "1"}
        assert router.match("GET", "/username/1/x/y").params == {"rest": "1/x/y"}
        assert router.match("GET", "/username") is None

    def test_root_route(self):
        router = Router()
        router.add_route("/", echo_handler, method="GET")

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/anything") is None

    def test_first_registered_wins(self):
        router = Router()
        first = router.add_route("/username/*rest", echo_handler)
        router.add_route("/username/:id", echo_handler)

        assert router.match("GET", "/username/1").route is first

    def test_get_allowed_methods(self):
        router = Router()
        router.add_route("/items", echo_handler, method="GET")
        router.add_route("/items", echo_handler, method="POST")

        assert router.get_allowed_methods("/items") == ["GET", "POST"]
        assert router.get_allowed_methods("/nothing") == []

    def test_handle_sets_path_params(self):
        router = Router()
        router.add_route("/username/*rest", echo_handler)

        response = router.handle(make_request("GET", "/username/7"))

        assert response.status == HTTPStatus.OK
        assert b'"rest":"7"' in response.body

    def test_handle_not_found(self):
        router = Router()
        router.add_route("/adduser", echo_handler, method="POST")

        response = router.handle(make_request("GET", "/nope"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "No route matches /nope"

    def test_handle_method_not_allowed(self):
        router = Router()
        router.add_route("/adduser", echo_handler, method="POST")

        response = router.handle(make_request("GET", "/adduser"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "POST"


class TestRouterDecorators:
    def test_get_decorator(self):
        router = Router()

        @router.get("/ping")
        def ping(request):
            return ResponseBuilder().text("pong").build()

        assert router.match("GET", "/ping").route.handler is ping
        assert router.match("POST", "/ping") is None

    def test_post_decorator(self):
        router = Router()

        @router.post("/adduser")
        def add(request):
            return ResponseBuilder().build()

        assert router.match("POST", "/adduser").route.method == "POST"


class TestRouterNewlines:
    def test_wildcard_keeps_newline(self):
        router = Router()
        router.add_route("/username/*rest", echo_handler)

        assert router.match("GET", "/username/1\n").params == {"rest": "1\n"}
        assert router.match("GET", "/username/1\nx").params == {"rest": "1\nx"}

    def test_static_path_rejects_trailing_newline(self):
        router = Router()
        router.add_route("/adduser", echo_handler, method="POST")

        assert router.match("POST", "/adduser\n") is None

    def test_param_captures_newline(self):
        router = Router()
        router.add_route("/users/:id", echo_handler)

        assert router.match("GET", "/users/1\n").params == {"id": "1\n"}
        assert router.match("GET", "/users/1\n/x") is None


class TestRouteTable:
    def test_log_routes(self, caplog):
        router = Router()
        router.add_route("/username/*rest", echo_handler, name="lookup")
        router.add_route("/adduser", echo_handler, method="POST")

        with caplog.at_level("INFO", logger="userserver.http.router"):
            router.log_routes()

        assert "ANY" in caplog.text
        assert "/username/*rest" in caplog.text
        assert "(lookup)" in caplog.text
        assert "POST" in caplog.text
