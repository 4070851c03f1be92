"""Tests for rate limiting behaviour."""

import pytest
from fastapi.testclient import TestClient

from device_guard.main import app


class TestRateLimiting:
    """Verify that rate limiting kicks in for the code endpoints."""

    @pytest.fixture()
    def limited_client(self, _test_env):
        """
        TestClient with rate limiting **enabled** (unlike the default
        `client` fixture which disables it for convenience).
        """
        from device_guard.rate_limit import limiter

        limiter.enabled = True
        # Reset in-memory state so previous tests don't pollute counts
        limiter.reset()

        with TestClient(app, raise_server_exceptions=False) as tc:
            yield tc

        limiter.enabled = False

    def test_send_rate_limit(self, limited_client):
        """POST /api/v1/email/send is limited to 5 requests/minute."""
        body = {"accountId": "U1", "address": "customer@example.com"}
        for i in range(5):
            resp = limited_client.post("/api/v1/email/send", json=body)
            assert resp.status_code == 200, f"Request {i + 1} should succeed"

        # 6th request should be rate-limited
        resp = limited_client.post("/api/v1/email/send", json=body)
        assert resp.status_code == 429
        assert "Rate limit exceeded" in resp.json()["message"]

    def test_verify_rate_limit(self, limited_client):
        """POST /api/v1/email/verify is limited to 10 requests/minute."""
        body = {"accountId": "U1", "externalCustomerId": "1", "code": "000000"}
        for i in range(10):
            resp = limited_client.post("/api/v1/email/verify", json=body)
            # 400 (no code) is fine – we just need it not to be 429 yet
            assert resp.status_code == 400, f"Request {i + 1} should not be rate-limited"

        # 11th request should be rate-limited
        resp = limited_client.post("/api/v1/email/verify", json=body)
        assert resp.status_code == 429

    def test_forwarded_header_does_not_open_new_bucket(self, limited_client):
        """A client-supplied X-Forwarded-For must not reset the verify limit."""
        body = {"accountId": "U1", "externalCustomerId": "1", "code": "000000"}
        statuses = [
            limited_client.post(
                "/api/v1/email/verify", json=body, headers={"X-Forwarded-For": f"10.9.{i}.1"}
            ).status_code
            for i in range(15)
        ]
        assert statuses[:10] == [400] * 10
        assert statuses[10:] == [429] * 5

    def test_default_limit_on_other_routes(self, limited_client):
        """Routes without an explicit tier fall under the 60/minute default."""
        for i in range(60):
            resp = limited_client.post(
                "/api/v1/check-device",
                json={"accountId": "A1", "deviceId": "D1"},
            )
            assert resp.status_code == 200, f"Request {i + 1} should succeed"

        resp = limited_client.post(
            "/api/v1/check-device",
            json={"accountId": "A1", "deviceId": "D1"},
        )
        assert resp.status_code == 429

    def test_device_check_not_limited_at_low_volume(self, limited_client):
        for i in range(10):
            resp = limited_client.post(
                "/api/v1/check-device",
                json={"accountId": "A1", "deviceId": "D1"},
            )
            assert resp.status_code == 200
