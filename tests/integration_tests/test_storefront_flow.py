"""
End-to-end storefront flow through the HTTP API.

A customer logs in from their devices until the fleet is full, then
verifies their email with a one-time code.
"""


def test_login_and_verification_flow(client, mailer, shopify):
    # ── Merchant configures the storefront ────────────────────────────
    resp = client.post(
        "/api/settings",
        json={"max_devices": 2, "block_message": "You can use at most {limit} devices."},
    )
    assert resp.status_code == 200

    # ── Customer logs in from phone and laptop, then a third device ───
    for device in ("phone", "laptop"):
        resp = client.post("/api/v1/check-device", json={"accountId": "C42", "deviceId": device})
        assert resp.json() == {"status": "allowed"}

    resp = client.post("/api/v1/check-device", json={"accountId": "C42", "deviceId": "tablet"})
    assert resp.status_code == 403
    assert resp.json()["message"] == "You can use at most 2 devices."

    # Known devices keep working
    resp = client.post("/api/v1/check-device", json={"accountId": "C42", "deviceId": "phone"})
    assert resp.status_code == 200

    # ── Support grants one more slot ─────────────────────────────────
    client.put("/api/v1/accounts/C42/device-limit", json={"device_limit": 3})
    resp = client.post("/api/v1/check-device", json={"accountId": "C42", "deviceId": "tablet"})
    assert resp.status_code == 200
    assert client.get("/api/v1/accounts/C42").json()["devices"] == ["laptop", "phone", "tablet"]

    # ── Email verification ────────────────────────────────────────────
    assert client.get("/api/v1/customers/555/verified").json()["verified"] is False

    resp = client.post(
        "/api/v1/email/send",
        json={"accountId": "C42", "address": "c42@example.com"},
    )
    assert resp.status_code == 200
    code = mailer.last_code

    resp = client.post(
        "/api/v1/email/verify",
        json={"accountId": "C42", "externalCustomerId": "555", "code": code},
    )
    assert resp.status_code == 200
    assert shopify.tagged == ["555"]
    assert client.get("/api/v1/customers/555/verified").json()["verified"] is True

    # The code is single-use
    resp = client.post(
        "/api/v1/email/verify",
        json={"accountId": "C42", "externalCustomerId": "555", "code": code},
    )
    assert resp.status_code == 400
    assert resp.json()["reason"] == "no_code_found"
