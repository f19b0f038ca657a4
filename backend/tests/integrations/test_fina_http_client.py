"""FinaHttpClient against a scripted requests.Session double (no network)."""

from __future__ import annotations

import json
from collections import deque
from datetime import timedelta

import pytest
import requests

from app.integrations.fina import http_client as http_module
from app.integrations.fina.errors import FinaAuthError, FinaClientError, FinaPayloadError, FinaServerError
from app.integrations.fina.http_client import FinaHttpClient


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class ScriptedSession:
    """post() answers auth, request() pops the scripted responses in order."""

    def __init__(self, responses=(), tokens=("tok-1", "tok-2", "tok-3")):
        self.responses = deque(responses)
        self.tokens = deque(tokens)
        self.auth_calls = []
        self.requests = []
        self.closed = False

    def post(self, url, json=None, headers=None, timeout=None):
        self.auth_calls.append({"url": url, "json": json})
        return FakeResponse(200, {"token": self.tokens.popleft()})

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.requests.append({"method": method, "url": url, "auth": headers.get("Authorization")})
        item = self.responses.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


def _client(session, **kwargs) -> FinaHttpClient:
    kwargs.setdefault("max_retries", 0)
    return FinaHttpClient(
        base_url="http://fina.test:8082",
        login="user",
        password="secret",
        session=session,
        **kwargs,
    )


def test_authenticates_once_and_sends_bearer_token():
    session = ScriptedSession([FakeResponse(200, {"products": []}), FakeResponse(200, {"prices": []})])
    client = _client(session)

    assert client.get_json("/api/operation/getProducts") == {"products": []}
    assert client.get_json("/api/operation/getProductPrices") == {"prices": []}

    assert len(session.auth_calls) == 1
    assert session.auth_calls[0]["url"] == "http://fina.test:8082/api/authentication/authenticate"
    assert session.auth_calls[0]["json"] == {"login": "user", "password": "secret"}
    assert [r["auth"] for r in session.requests] == ["Bearer tok-1", "Bearer tok-1"]
    assert session.requests[0]["url"] == "http://fina.test:8082/api/operation/getProducts"


def test_401_refreshes_token_once_and_replays():
    session = ScriptedSession([FakeResponse(401, text="expired"), FakeResponse(200, {"ok": True})])
    client = _client(session)

    assert client.get_json("/x") == {"ok": True}
    assert len(session.auth_calls) == 2
    assert [r["auth"] for r in session.requests] == ["Bearer tok-1", "Bearer tok-2"]


def test_second_401_raises_auth_error():
    session = ScriptedSession([FakeResponse(401, text="no"), FakeResponse(401, text="still no")])
    with pytest.raises(FinaAuthError) as exc:
        _client(session).get_json("/x")
    assert exc.value.status == 401


def test_expired_token_is_renewed_before_request(monkeypatch):
    session = ScriptedSession([FakeResponse(200, {}), FakeResponse(200, {})])
    client = _client(session, token_ttl_sec=60)
    client.get_json("/x")

    later = http_module._now_utc() + timedelta(seconds=61)
    monkeypatch.setattr(http_module, "_now_utc", lambda: later)
    client.get_json("/x")
    assert len(session.auth_calls) == 2


@pytest.mark.parametrize("status, error", [(500, FinaServerError), (503, FinaServerError), (429, FinaClientError), (404, FinaClientError)])
def test_status_mapping_without_retries(status, error):
    session = ScriptedSession([FakeResponse(status, text="nope")])
    with pytest.raises(error) as exc:
        _client(session).get_json("/x")
    assert exc.value.status == status
    assert len(session.requests) == 1


def test_retries_server_errors_when_configured(monkeypatch):
    monkeypatch.setattr(FinaHttpClient, "_sleep_backoff", lambda self, attempt: None)
    session = ScriptedSession([FakeResponse(502, text="bad gateway"), FakeResponse(200, {"ok": 1})])
    assert _client(session, max_retries=1).get_json("/x") == {"ok": 1}
    assert len(session.requests) == 2


def test_network_error_becomes_client_error():
    session = ScriptedSession([requests.ConnectionError("refused")])
    with pytest.raises(FinaClientError):
        _client(session).get_json("/x")


def test_non_json_body_is_payload_error():
    session = ScriptedSession([FakeResponse(200, None, text="<html>")])
    with pytest.raises(FinaPayloadError) as exc:
        _client(session).get_json("/x")
    assert "<html>" in exc.value.body


def test_missing_credentials_fail_fast():
    client = FinaHttpClient(base_url="http://fina.test", login="", password="", session=ScriptedSession())
    client.login = None
    with pytest.raises(FinaAuthError):
        client.get_valid_token()


def test_auth_response_without_token_is_rejected():
    class NoToken(ScriptedSession):
        def post(self, url, json=None, headers=None, timeout=None):
            return FakeResponse(200, {"message": "welcome"})

    with pytest.raises(FinaAuthError):
        _client(NoToken()).get_valid_token()


def test_token_status_reports_lifetime_not_value():
    session = ScriptedSession()
    client = _client(session, token_ttl_sec=3600)
    assert client.token_status()["has_token"] is False

    client.get_valid_token()
    status = client.token_status()
    assert status["has_token"] is True and status["is_valid"] is True
    assert 3590 <= status["seconds_until_expiry"] <= 3600
    assert "tok-1" not in json.dumps(status)
