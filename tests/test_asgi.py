"""Tests for perch.asgi and perch._internal.asgi — the ASGI hosting adapter."""

from typing import Any

import pytest

from perch._internal.asgi import HTTPScope
from perch.asgi import ASGIApp
from perch.http.response import Response
from perch.scope import RouterBuilder
from perch.testing import TestClient


def _make_scope(**overrides: object) -> dict[str, object]:
    """Build a minimal valid ASGI HTTP scope dict."""
    base: dict[str, object] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": [],
        "server": ("localhost", 8000),
        "client": ("127.0.0.1", 54321),
    }
    base.update(overrides)
    return base


class TestHTTPScope:
    def test_from_scope_basic(self) -> None:
        parsed = HTTPScope.from_scope(_make_scope(method="post", raw_path=b"/users/42"))
        assert parsed.method == "POST"
        assert parsed.raw_path == "/users/42"
        assert parsed.http_version == "1.1"
        assert parsed.client == ("127.0.0.1", 54321)

    def test_raw_path_kept_encoded(self) -> None:
        parsed = HTTPScope.from_scope(_make_scope(path="/users/ x", raw_path=b"/users/%20x"))
        assert parsed.raw_path == "/users/%20x"

    def test_raw_path_query_stripped(self) -> None:
        parsed = HTTPScope.from_scope(_make_scope(raw_path=b"/search?q=1"))
        assert parsed.raw_path == "/search"

    def test_non_ascii_raw_path_is_quoted(self) -> None:
        parsed = HTTPScope.from_scope(_make_scope(raw_path=b"/caf\xc3\xa9/%20x"))
        assert parsed.raw_path == "/caf%C3%A9/%20x"

    def test_falls_back_to_quoted_path(self) -> None:
        parsed = HTTPScope.from_scope(_make_scope(path="/users/ x", raw_path=None))
        assert parsed.raw_path == "/users/%20x"

    def test_defaults_for_missing_keys(self) -> None:
        parsed = HTTPScope.from_scope({"type": "http", "method": "GET", "path": "/"})
        assert parsed.query_string == ""
        assert parsed.headers == ()
        assert parsed.client is None

    def test_frozen(self) -> None:
        parsed = HTTPScope.from_scope(_make_scope())
        with pytest.raises(AttributeError):
            parsed.method = "POST"  # type: ignore[misc]


class TestASGIApp:
    async def test_round_trip(self) -> None:
        config = RouterBuilder().get("/users/:id", lambda r: Response.json(dict(r.params))).build()
        async with TestClient(config) as client:
            response = await client.get("/users/42")
        assert response.status == 200
        assert response.content_type == "application/json"
        assert response.text == '{"id": "42"}'

    async def test_encoded_path(self) -> None:
        config = RouterBuilder().get("/users/:id", lambda r: Response(r.params["id"])).build()
        response = await TestClient(config).get("/users/%20x")
        assert response.text == " x"

    async def test_query_and_headers(self) -> None:
        def handler(request):
            return Response(f"{request.query_string} {request.headers['x-token']}")

        config = RouterBuilder().get("/search", handler).build()
        response = await TestClient(config).get("/search?q=perch", headers={"X-Token": "t"})
        assert response.text == "q=perch t"

    async def test_json_body(self) -> None:
        def create(request):
            return Response.json(request.json(), status=201)

        config = RouterBuilder().post("/items", create).build()
        response = await TestClient(config).post("/items", json={"name": "perch"})
        assert response.status == 201
        assert response.text == '{"name": "perch"}'

    async def test_response_headers(self) -> None:
        config = (
            RouterBuilder()
            .get("/", lambda r: Response("ok").with_header("X-Served-By", "perch"))
            .build()
        )
        response = await TestClient(config).get("/")
        assert response.header("x-served-by") == "perch"

    async def test_status_responses(self) -> None:
        config = RouterBuilder().get("/users", lambda r: Response()).build()
        client = TestClient(config)
        assert (await client.get("/nope")).status == 404
        assert (await client.delete("/users")).status == 405
        options = await client.options("/users")
        assert options.status == 204
        assert options.header("allow") == "GET"
        assert (await client.get("/bad%zz")).status == 400

    async def test_remote_addr_from_client(self) -> None:
        config = RouterBuilder().get("/", lambda r: Response(r.remote_addr[0])).build()
        response = await TestClient(config, client_addr=("198.51.100.4", 4242)).get("/")
        assert response.text == "198.51.100.4"

    async def test_chunked_body_is_buffered(self) -> None:
        config = RouterBuilder().put("/upload", lambda r: Response(str(len(r.body)))).build()
        app = ASGIApp(config)
        messages = [
            {"type": "http.request", "body": b"abc", "more_body": True},
            {"type": "http.request", "body": b"defg", "more_body": False},
        ]
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return messages.pop(0)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app(_make_scope(method="PUT", raw_path=b"/upload"), receive, send)

        assert sent[0]["type"] == "http.response.start"
        assert sent[0]["status"] == 200
        assert (b"content-length", b"1") in sent[0]["headers"]
        assert sent[1]["body"] == b"7"

    async def test_no_body_for_204(self) -> None:
        config = RouterBuilder().delete("/x", lambda r: Response("ignored", status=204)).build()
        response = await TestClient(config).delete("/x")
        assert response.status == 204
        assert response.body_bytes == b""

    async def test_non_response_result_raises(self) -> None:
        config = RouterBuilder().get("/", lambda r: "plain").build()
        with pytest.raises(TypeError, match="Response only"):
            await TestClient(config).get("/")

    async def test_non_ascii_raw_path_routes(self) -> None:
        config = (
            RouterBuilder().get("/caf\u00e9/:item", lambda r: Response(r.params["item"])).build()
        )
        app = ASGIApp(config)
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app(_make_scope(raw_path=b"/caf\xc3\xa9/cr\xc3\xa8me"), receive, send)
        assert sent[0]["status"] == 200
        assert sent[1]["body"] == "cr\u00e8me".encode()

    async def test_lifespan(self) -> None:
        app = ASGIApp(RouterBuilder().build())
        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return incoming.pop(0)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
