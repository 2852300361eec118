"""Integration tests for the gateway endpoint and health check."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from security_gateway.core.app_factory import create_app
from security_gateway.core.config import GatewaySettings, Settings

GATEWAY_URL = "/v1/security-utils"


@pytest.fixture
def client(store):
    with TestClient(create_app(store=store)) as test_client:
        yield test_client


class TestPreflight:
    def test_options_returns_empty_body_with_cors_headers(self, flaky_store) -> None:
        with TestClient(create_app(store=flaky_store)) as client:
            resp = client.options(GATEWAY_URL)

        assert resp.status_code == 200
        assert resp.content == b""
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "content-type" in resp.headers["access-control-allow-headers"]
        assert "count_attempts" not in flaky_store.calls
        assert "insert_event" not in flaky_store.calls


class TestRateLimitCheck:
    def test_allowed_then_denied(self, client: TestClient) -> None:
        payload = {
            "action": "rate_limit_check",
            "rateLimitAction": "login_attempt",
            "identifier": "203.0.113.9",
            "limit": 2,
            "window": 60,
        }

        first = client.post(GATEWAY_URL, json=payload)
        second = client.post(GATEWAY_URL, json=payload)
        third = client.post(GATEWAY_URL, json=payload)

        assert first.status_code == 200
        assert first.json() == {"allowed": True, "remaining": 1}
        assert second.json() == {"allowed": True, "remaining": 0}

        assert third.status_code == 429
        data = third.json()
        assert data["allowed"] is False
        assert data["remaining"] == 0
        assert "resetAt" in data
        assert third.headers["retry-after"] == "60"
        assert third.headers["x-ratelimit-limit"] == "2"
        assert third.headers["access-control-allow-origin"] == "*"

    def test_denial_is_logged_as_security_event(self, client: TestClient, store) -> None:
        payload = {"action": "rate_limit_check", "rateLimitAction": "otp", "identifier": "u1", "limit": 0}

        client.post(GATEWAY_URL, json=payload)

        events = client.portal.call(store.list_events)
        assert [e.action for e in events] == ["rate_limit_exceeded"]

    def test_defaults_from_settings(self, store) -> None:
        cfg = Settings(gateway=GatewaySettings(rate_limit_default_limit=1))
        payload = {"action": "rate_limit_check", "rateLimitAction": "login", "identifier": "u1"}

        with TestClient(create_app(app_settings=cfg, store=store)) as client:
            assert client.post(GATEWAY_URL, json=payload).status_code == 200
            assert client.post(GATEWAY_URL, json=payload).status_code == 429

    def test_missing_identifier_is_400(self, client: TestClient) -> None:
        resp = client.post(GATEWAY_URL, json={"action": "rate_limit_check", "rateLimitAction": "login"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required field: identifier"}


class TestSecurityLog:
    def test_success(self, client: TestClient) -> None:
        resp = client.post(
            GATEWAY_URL,
            json={"action": "security_log", "logAction": "test_event", "details": {}, "severity": "high"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    def test_store_failure_is_500(self, flaky_store) -> None:
        flaky_store.fail_insert_event = True

        with TestClient(create_app(store=flaky_store)) as client:
            resp = client.post(
                GATEWAY_URL,
                json={"action": "security_log", "logAction": "test_event", "severity": "critical"},
            )

        assert resp.status_code == 500
        data = resp.json()
        assert data["success"] is False
        assert data["error"]


class TestValidateInput:
    def test_script_stripped(self, client: TestClient) -> None:
        resp = client.post(
            GATEWAY_URL,
            json={"action": "validate_input", "input": "<script>alert(1)</script>hello", "type": "generic"},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["isValid"] is True
        assert data["sanitized"] == "hello"
        assert "Input was sanitized" in data["warnings"]

    def test_search_sql_keywords(self, client: TestClient) -> None:
        resp = client.post(
            GATEWAY_URL,
            json={"action": "validate_input", "input": "SELECT * FROM users", "type": "search"},
        )

        data = resp.json()
        assert resp.status_code == 200
        assert "Potential SQL injection attempt detected" in data["warnings"]
        assert "SELECT" not in data["sanitized"]

    def test_too_long(self, client: TestClient) -> None:
        resp = client.post(GATEWAY_URL, json={"action": "validate_input", "input": "a" * 10_050})

        data = resp.json()
        assert data["isValid"] is False
        assert len(data["sanitized"]) == 10_000
        assert "Input too long" in data["warnings"]


class TestErrors:
    def test_unknown_action(self, client: TestClient) -> None:
        resp = client.post(GATEWAY_URL, json={"action": "unknown", "identifier": "u1"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid action"}
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_malformed_json(self, client: TestClient) -> None:
        resp = client.post(
            GATEWAY_URL,
            content=b"{broken",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid JSON body"}


class TestCorsOrigins:
    def test_configured_origin_is_echoed(self, store) -> None:
        cfg = Settings(gateway=GatewaySettings(cors_allow_origins="https://shop.example, https://admin.example"))

        with TestClient(create_app(app_settings=cfg, store=store)) as client:
            allowed = client.options(GATEWAY_URL, headers={"Origin": "https://admin.example"})
            blocked = client.options(GATEWAY_URL, headers={"Origin": "https://evil.example"})

        assert allowed.headers["access-control-allow-origin"] == "https://admin.example"
        assert "access-control-allow-origin" not in blocked.headers


class TestHealth:
    def test_ok(self, client: TestClient) -> None:
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "store": "memory"}

    def test_unreachable_store_is_503(self, unreachable_store) -> None:
        with TestClient(create_app(store=unreachable_store)) as client:
            resp = client.get("/health")

        assert resp.status_code == 503
        assert resp.json() == {"error": "Event store unavailable"}

    def test_openapi_documents_request_variants(self, client: TestClient) -> None:
        schema = client.get("/openapi.json").json()

        body = schema["paths"][GATEWAY_URL]["post"]["requestBody"]["content"]["application/json"]["schema"]
        refs = {variant["$ref"].rsplit("/", 1)[-1] for variant in body["oneOf"]}
        assert refs == {"RateLimitCheckRequest", "SecurityLogRequest", "ValidateInputRequest"}
        assert "Severity" in schema["components"]["schemas"]

        error_ref = schema["paths"][GATEWAY_URL]["post"]["responses"]["400"]["content"]["application/json"]["schema"]
        assert error_ref["$ref"].endswith("/ErrorResponse")
