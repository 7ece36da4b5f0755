"""Unit tests for the request context."""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import ValidationError

from crmshield.core.context import DEFAULT_CLIENT_IP, RequestContext, get_client_ip


class TestGetClientIp:
    """Tests for client IP resolution."""

    def test_first_forwarded_for_entry(self):
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1, 10.0.0.2"}
        assert get_client_ip(headers) == "203.0.113.7"

    def test_forwarded_for_is_trimmed(self):
        assert get_client_ip({"x-forwarded-for": "  203.0.113.7  "}) == "203.0.113.7"

    def test_forwarded_for_wins_over_real_ip(self):
        headers = {"x-forwarded-for": "203.0.113.7", "x-real-ip": "198.51.100.1"}
        assert get_client_ip(headers) == "203.0.113.7"

    def test_real_ip(self):
        assert get_client_ip({"x-real-ip": "198.51.100.1"}) == "198.51.100.1"

    def test_empty_forwarded_for_falls_through(self):
        headers = {"x-forwarded-for": " , 10.0.0.1", "x-real-ip": "198.51.100.1"}
        assert get_client_ip(headers) == "198.51.100.1"

    def test_default(self):
        assert get_client_ip({}) == DEFAULT_CLIENT_IP == "127.0.0.1"


class TestRequestContextBuild:
    """Tests for RequestContext.build."""

    def test_normalises_parts(self):
        ctx = RequestContext.build(
            method="post",
            url="http://localhost:3000/api/contacts?page=2",
            headers={"X-Forwarded-For": "203.0.113.7", "User-Agent": "Mozilla/5.0"},
            cookies={"session-token": "sess-1"},
        )

        assert ctx.method == "POST"
        assert ctx.path == "/api/contacts"
        assert ctx.url == "http://localhost:3000/api/contacts?page=2"
        assert ctx.client_ip == "203.0.113.7"
        assert ctx.user_agent == "Mozilla/5.0"
        assert ctx.cookies == {"session-token": "sess-1"}

    def test_header_lookup_is_case_insensitive(self):
        ctx = RequestContext.build("GET", "http://h/x", headers={"X-CSRF-Token": "t"})
        assert ctx.header("x-csrf-token") == "t"
        assert ctx.header("X-Csrf-Token") == "t"
        assert ctx.header("missing") is None

    def test_missing_optional_headers(self):
        ctx = RequestContext.build("GET", "http://h")

        assert ctx.path == "/"
        assert ctx.user_agent == ""
        assert ctx.origin is None

    def test_frozen(self):
        ctx = RequestContext.build("GET", "http://h/x")
        with pytest.raises(ValidationError):
            ctx.method = "POST"


class TestRequestContextFromRequest:
    """Tests for building a context from a live request."""

    def test_from_request(self):
        app = FastAPI()
        captured: list[RequestContext] = []

        @app.get("/api/contacts")
        def endpoint(request: Request) -> dict[str, str]:
            captured.append(RequestContext.from_request(request))
            return {"ok": "yes"}

        client = TestClient(app, base_url="http://localhost:3000")
        client.cookies.set("session-token", "sess-1")
        client.get(
            "/api/contacts?q=1",
            headers={"X-Real-IP": "198.51.100.1", "Origin": "http://localhost:3000"},
        )

        ctx = captured[0]
        assert ctx.method == "GET"
        assert ctx.path == "/api/contacts"
        assert ctx.url.endswith("/api/contacts?q=1")
        assert ctx.client_ip == "198.51.100.1"
        assert ctx.origin == "http://localhost:3000"
        assert ctx.cookies == {"session-token": "sess-1"}
