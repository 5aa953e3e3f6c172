"""Tests for the httpx-backed analysis transport."""

from __future__ import annotations

import json

import httpx
import pytest

from convo_dispatch.models import HttpxTransport, TransportError


def _transport_with(handler, **kwargs) -> HttpxTransport:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpxTransport(http_client=client, backoff_seconds=0.0, **kwargs)


def test_post_sends_json_and_headers():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"summary": "fine"})

    with _transport_with(handler) as transport:
        response = transport.post(
            "https://analysis.example/api",
            {"content-type": "application/json", "authorization": "Bearer k"},
            {"conv_id": "c1", "messages": []},
        )

    assert seen == {
        "method": "POST",
        "url": "https://analysis.example/api",
        "auth": "Bearer k",
        "body": {"conv_id": "c1", "messages": []},
    }
    assert response.status_ok is True
    assert response.status_code == 200
    assert json.loads(response.body_text) == {"summary": "fine"}


def test_error_status_is_returned_not_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    transport = _transport_with(handler, max_retries=3)
    response = transport.post("https://analysis.example/api", {}, {})
    assert response.status_ok is False
    assert response.status_code == 500
    assert response.status_text == "Internal Server Error"
    assert response.body_text == "boom"


def test_status_errors_are_not_retried():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(502, text="bad gateway")

    _transport_with(handler, max_retries=3).post("https://analysis.example/api", {}, {})
    assert calls["count"] == 1


def test_network_errors_are_retried_up_to_limit():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, text="ok")

    response = _transport_with(handler, max_retries=3).post("https://analysis.example/api", {}, {})
    assert calls["count"] == 3
    assert response.body_text == "ok"


def test_single_attempt_reraises_network_error():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(httpx.ReadTimeout):
        _transport_with(handler).post("https://analysis.example/api", {}, {})
    assert calls["count"] == 1


def test_transport_error_message():
    exc = TransportError(404, "Not Found", "")
    assert str(exc) == "HTTP 404 Not Found"
    assert exc.status_code == 404
