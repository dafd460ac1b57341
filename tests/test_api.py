"""HTTP API tests"""

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from slowapi.middleware import SlowAPIMiddleware

from cart_engagement.main import create_app
from cart_engagement.middleware.rate_limit import limiter


def line_payload(line_id, price, quantity=1, **fields):
    return {
        "id": line_id,
        "product_id": fields.pop("product_id", f"prod-{line_id}"),
        "name": f"Product {line_id}",
        "unit_price": price,
        "quantity": quantity,
        **fields,
    }


@pytest.fixture
def client(service):
    limiter.reset()
    with TestClient(create_app(service)) as test_client:
        yield test_client


@pytest.fixture
def saved_cart(client):
    response = client.post(
        "/api/v1/saved-carts",
        json={
            "customer_id": "cust-1",
            "name": "Test Cart",
            "lines": [line_payload("a", "99.99", 2), line_payload("b", "149.99", 1)],
            "tags": ["gift"],
        },
    )
    assert response.status_code == 201
    return response.json()


def test_health(client, settings):
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["environment"] == settings.ENVIRONMENT

    detailed = client.get("/health/detailed").json()
    assert detailed["components"]["price_sweep"]["status"] == "healthy"
    assert detailed["components"]["recovery"]["pending_jobs"] == 0


def test_save_and_fetch_cart(client, saved_cart):
    assert Decimal(saved_cart["total_value"]) == Decimal("349.97")
    assert saved_cart["total_quantity"] == 3

    fetched = client.get(f"/api/v1/saved-carts/{saved_cart['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Test Cart"

    listed = client.get("/api/v1/saved-carts", params={"customer_id": "cust-1", "tags": "gift"})
    assert [cart["id"] for cart in listed.json()] == [saved_cart["id"]]


def test_update_and_delete_cart(client, saved_cart):
    path = f"/api/v1/saved-carts/{saved_cart['id']}"

    updated = client.patch(path, json={"name": "Renamed"})
    assert updated.json()["name"] == "Renamed"
    assert updated.json()["tags"] == ["gift"]

    assert client.delete(path).json() == {"deleted": True}
    assert client.delete(path).json() == {"deleted": False}


def test_unknown_cart_uses_error_envelope(client):
    response = client.get("/api/v1/saved-carts/saved_cart_missing", headers={"X-Request-ID": "req-42"})

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "SAVED_CART_NOT_FOUND"
    assert error["request_id"] == "req-42"


def test_share_flow(client, saved_cart):
    grant = client.post(
        "/api/v1/shares",
        json={
            "snapshot_id": saved_cart["id"],
            "issuer_id": "cust-1",
            "password": "open-sesame",
            "access_level": "edit",
        },
    ).json()
    assert "password_hash" not in grant
    assert grant["is_password_protected"] is True
    token = grant["share_token"]

    denied = client.post(f"/api/v1/shares/{token}/resolve", json={"password": "nope"})
    assert denied.status_code == 403

    view = client.post(f"/api/v1/shares/{token}/resolve", json={"password": "open-sesame"})
    assert view.status_code == 200
    assert view.json()["snapshot"]["id"] == saved_cart["id"]
    assert view.json()["grant"]["access_count"] == 1

    edited = client.patch(
        f"/api/v1/shares/{token}/cart",
        json={"password": "open-sesame", "updates": {"occasion": "wedding"}},
    )
    assert edited.json()["snapshot"]["occasion"] == "wedding"

    grants = client.get(f"/api/v1/saved-carts/{saved_cart['id']}/shares").json()
    assert [item["id"] for item in grants] == [grant["id"]]

    assert client.delete(f"/api/v1/shares/{grant['id']}").json() == {"revoked": True}
    gone = client.post(f"/api/v1/shares/{token}/resolve", json={"password": "open-sesame"})
    assert gone.status_code == 404


def test_expired_share_is_not_found(client, saved_cart, clock):
    grant = client.post(
        "/api/v1/shares",
        json={"snapshot_id": saved_cart["id"], "issuer_id": "cust-1", "expires_in_hours": 1},
    ).json()
    clock.advance(timedelta(hours=2))

    response = client.post(f"/api/v1/shares/{grant['share_token']}/resolve", json={})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "SHARE_NOT_FOUND"


def test_share_resolution_is_rate_limited(client):
    statuses = [
        client.post("/api/v1/shares/guess/resolve", json={}).status_code for _ in range(31)
    ]

    assert statuses[:30] == [404] * 30
    assert statuses[30] == 429


def test_bulk_operation(client):
    response = client.post(
        "/api/v1/bulk-operations",
        json={
            "kind": "apply_discount",
            "target_ids": ["a", "zzz"],
            "payload": {"discount_code": "SAVE10"},
            "executor_id": "cust-1",
            "lines": [line_payload("a", "20.00"), line_payload("b", "5.00")],
        },
    )

    body = response.json()
    assert response.status_code == 200
    assert body["operation"]["affected_count"] == 1
    assert body["operation"]["success"] is False
    assert Decimal(body["lines"][0]["unit_price"]) == Decimal("18.00")

    history = client.get("/api/v1/bulk-operations/history", params={"executor_id": "cust-1"})
    assert len(history.json()) == 1


def test_bulk_operation_rejects_unknown_kind(client):
    response = client.post(
        "/api/v1/bulk-operations",
        json={"kind": "teleport", "target_ids": ["a"], "executor_id": "cust-1"},
    )
    assert response.status_code == 422


def test_price_observation_fires_alert(client, sink):
    client.post(
        "/api/v1/price-alerts",
        json={
            "customer_id": "cust-2",
            "product_id": "blender",
            "target_price": "35.00",
            "current_price": "45.00",
        },
    )

    observed = client.put("/api/v1/price-alerts/prices/blender", json={"price": "30.00"})
    assert observed.json() == {"product_id": "blender", "price": "30.00"}
    assert client.put("/api/v1/price-alerts/prices/blender", json={"price": "-1"}).status_code == 422

    stats = client.post("/api/v1/price-alerts/sweep").json()
    assert stats["triggered"] == 1
    assert sink.sent[-1].recipient == "cust-2"


def test_price_alert_endpoints(client, oracle, sink):
    oracle.set_price("kettle", "30.00")
    created = client.post(
        "/api/v1/price-alerts",
        json={
            "customer_id": "cust-1",
            "product_id": "kettle",
            "target_price": "35.00",
            "current_price": "45.00",
            "notification_cap": 1,
        },
    )
    assert created.status_code == 201
    alert_id = created.json()["id"]

    stats = client.post("/api/v1/price-alerts/sweep").json()
    assert stats["triggered"] == 1
    assert stats["deactivated"] == 1

    alert = client.get(f"/api/v1/price-alerts/{alert_id}").json()
    assert alert["active"] is False
    assert alert["notifications_sent"] == 1

    active = client.get("/api/v1/price-alerts", params={"customer_id": "cust-1", "active_only": True})
    assert active.json() == []

    revive = client.patch(f"/api/v1/price-alerts/{alert_id}", json={"active": True})
    assert revive.status_code == 422

    assert client.delete(f"/api/v1/price-alerts/{alert_id}").json() == {"deleted": True}
    assert client.get(f"/api/v1/price-alerts/{alert_id}").status_code == 404


def test_recovery_endpoints(client):
    captured = client.post(
        "/api/v1/recovery/abandonments",
        json={
            "session_id": "sess-9",
            "lines": [line_payload("a", "40.00")],
            "contact_handle": "shopper@example.com",
        },
    )
    assert captured.status_code == 201
    assert Decimal(captured.json()["captured_total"]) == Decimal("40.00")

    assert client.get("/health/detailed").json()["components"]["recovery"]["pending_jobs"] == 3

    assert client.post("/api/v1/recovery/abandonments/sess-9/recovered").json() == {"recovered": True}
    assert client.post("/api/v1/recovery/abandonments/unknown/recovered").status_code == 404

    engagement = client.post(
        "/api/v1/recovery/abandonments/sess-9/engagement",
        json={"stage": "initial", "event": "opened"},
    )
    assert engagement.status_code == 404

    stats = client.get("/api/v1/recovery/analytics").json()
    assert stats["total_abandoned"] == 1
    assert stats["recovery_rate"] == 1.0


def test_recovery_analytics_accepts_naive_dates(client):
    client.post(
        "/api/v1/recovery/abandonments",
        json={"session_id": "sess-3", "lines": [line_payload("a", "12.00")]},
    )

    since = client.get("/api/v1/recovery/analytics", params={"date_from": "2026-01-01T00:00:00"})
    assert since.status_code == 200
    assert since.json()["total_abandoned"] == 1

    before = client.get("/api/v1/recovery/analytics", params={"date_to": "2026-02-01T00:00:00"})
    assert before.json()["total_abandoned"] == 0


def test_recommendations(client):
    response = client.post(
        "/api/v1/recommendations",
        json={"lines": [line_payload("a", "250.00", product_id="espresso")]},
    )

    kinds = [rec["kind"] for rec in response.json()]
    assert kinds == ["frequently_bought_together", "upsell"]


def test_cart_analytics(client, saved_cart):
    summary = client.get("/api/v1/analytics/carts").json()

    assert summary["total_snapshots"] == 1
    assert summary["average_snapshot_value"] == pytest.approx(349.97)
    assert summary["top_products"][0]["saved_count"] == 1


def test_rate_limit_middleware_is_installed(client):
    assert any(middleware.cls is SlowAPIMiddleware for middleware in client.app.user_middleware)
