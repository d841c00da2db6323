import pytest
from flask import Blueprint

from kolia.routes import RouteConflictError, check_route_conflicts


def _create_order(client, auth_headers, world, **overrides):
    body = {
        "restaurantId": world["raha_id"],
        "items": [{"dishId": 101, "quantity": 2, "price": 1}],
        "deliveryAddress": "Quartier Nyawera, Bukavu",
        "phone": "+243970111222",
        "paymentMethod": "mobile",
    }
    body.update(overrides)
    return client.post("/api/orders", json=body, headers=auth_headers("client"))


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.get_json()["success"] is True


def test_register_then_login(client):
    res = client.post(
        "/api/auth/register",
        json={
            "name": "Aline Bahati",
            "email": "Aline@Bukavu.com",
            "password": "secret123",
            "phone": "+243990000111",
            "address": "Avenue Kabare, Bukavu",
        },
    )
    assert res.status_code == 201
    assert res.get_json()["data"]["user"]["role"] == "client"

    res = client.post("/api/auth/login", json={"email": "aline@bukavu.com", "password": "secret123"})
    assert res.status_code == 200
    token = res.get_json()["data"]["token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.get_json()["data"]["email"] == "aline@bukavu.com"

    res = client.post("/api/auth/login", json={"email": "aline@bukavu.com", "password": "nope"})
    assert res.status_code == 401
    assert res.get_json() == {"success": False, "message": "Email ou mot de passe incorrect"}


def test_protected_routes_need_a_valid_token(client):
    assert client.get("/api/orders/my-orders").status_code == 401
    res = client.get("/api/orders/my-orders", headers={"Authorization": "Bearer garbage"})
    assert res.status_code == 401
    assert res.get_json()["message"] == "Token invalide"


def test_create_order_over_http(client, auth_headers, world, notifier):
    res = _create_order(client, auth_headers, world)
    assert res.status_code == 201
    body = res.get_json()
    assert body["success"] is True
    assert body["message"] == "Commande créée avec succès"
    assert body["data"]["total"] == 82940.0
    assert len(notifier.sent) == 1

    listed = client.get("/api/orders/my-orders", headers=auth_headers("client")).get_json()
    assert listed["count"] == 1


def test_create_order_with_foreign_dish(client, auth_headers, world):
    res = _create_order(client, auth_headers, world, items=[{"dishId": 201, "quantity": 1}])
    assert res.status_code == 400
    assert res.get_json()["message"] == "Plat non disponible: 201"
    assert client.get("/api/orders/my-orders", headers=auth_headers("client")).get_json()["count"] == 0


def test_only_clients_create_orders(client, auth_headers, world):
    res = client.post("/api/orders", json={}, headers=auth_headers("owner"))
    assert res.status_code == 403


def test_status_workflow_over_http(client, auth_headers, world, actors):
    order_id = _create_order(client, auth_headers, world).get_json()["data"]["id"]
    url = f"/api/orders/{order_id}/status"

    assert client.patch(url, json={"status": "preparing"}, headers=auth_headers("other_owner")).status_code == 403
    res = client.patch(url, json={"status": "flying"}, headers=auth_headers("owner"))
    assert res.status_code == 400
    assert res.get_json()["message"] == "Statut invalide"

    res = client.patch(url, json={"status": "preparing", "expectedStatus": "pending"}, headers=auth_headers("owner"))
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "preparing"

    res = client.patch(url, json={"status": "ready_for_delivery", "expectedStatus": "pending"}, headers=auth_headers("owner"))
    assert res.status_code == 400

    res = client.patch(
        f"/api/orders/{order_id}/assign-driver",
        json={"driverId": actors["driver"].id},
        headers=auth_headers("owner"),
    )
    assert res.get_json()["data"]["status"] == "out_for_delivery"
    deliveries = client.get("/api/orders/my-deliveries", headers=auth_headers("driver")).get_json()
    assert [o["id"] for o in deliveries["data"]] == [order_id]

    res = client.patch(url, json={"status": "delivered"}, headers=auth_headers("driver"))
    assert res.get_json()["data"]["status"] == "delivered"

    res = client.patch(f"/api/orders/{order_id}/cancel", headers=auth_headers("client"))
    assert res.status_code == 400
    assert res.get_json()["message"] == "Cette commande ne peut pas être annulée"


def test_status_updates_accept_form_bodies(client, auth_headers, world):
    order = _create_order(client, auth_headers, world).get_json()["data"]
    url = f"/api/orders/{order['id']}"
    version = str(order["version"])

    res = client.patch(
        f"{url}/status", data={"status": "confirmed", "expectedVersion": version}, headers=auth_headers("owner")
    )
    assert res.status_code == 200
    confirmed = res.get_json()["data"]
    assert confirmed["status"] == "confirmed"

    res = client.patch(f"{url}/cancel", data={"expectedVersion": version}, headers=auth_headers("client"))
    assert res.status_code == 400
    res = client.patch(
        f"{url}/cancel", data={"expectedVersion": str(confirmed["version"])}, headers=auth_headers("client")
    )
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "cancelled"


def test_order_detail_is_private(client, auth_headers, world):
    order_id = _create_order(client, auth_headers, world).get_json()["data"]["id"]
    assert client.get(f"/api/orders/{order_id}", headers=auth_headers("client")).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers=auth_headers("other_client")).status_code == 403
    assert client.get("/api/orders/9999", headers=auth_headers("admin")).status_code == 404


def test_payment_flow_over_http(client, auth_headers, world, gateway):
    gateway.fail_init = True
    order_id = _create_order(client, auth_headers, world).get_json()["data"]["id"]

    res = client.post(
        "/api/payments/initialize", json={"orderId": order_id, "amount": 82940}, headers=auth_headers("client")
    )
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["is_mock"] is True
    tx_id = data["transaction_id"]

    res = client.post("/api/payments/verify", json={"transactionId": tx_id}, headers=auth_headers("client"))
    assert res.get_json()["data"]["status"] == "completed"

    order = client.get(f"/api/orders/{order_id}", headers=auth_headers("client")).get_json()["data"]
    assert (order["status"], order["payment_status"]) == ("confirmed", "paid")

    status = client.get(f"/api/payments/{tx_id}/status", headers=auth_headers("client")).get_json()["data"]
    assert status["order_payment_status"] == "paid"

    assert client.post(f"/api/payments/{tx_id}/refund", json={}, headers=auth_headers("client")).status_code == 403
    res = client.post(f"/api/payments/{tx_id}/refund", json={"reason": "rupture"}, headers=auth_headers("admin"))
    assert res.get_json()["data"]["status"] == "refunded"
    res = client.post(f"/api/payments/{tx_id}/refund", json={}, headers=auth_headers("admin"))
    assert res.status_code == 404


def test_failed_verification_returns_400(client, auth_headers, world, gateway):
    gateway.status_code = "627"
    order_id = _create_order(client, auth_headers, world).get_json()["data"]["id"]
    tx_id = client.post(
        "/api/payments/initialize", json={"orderId": order_id, "amount": 82940}, headers=auth_headers("client")
    ).get_json()["data"]["transaction_id"]
    res = client.post("/api/payments/verify", json={"transactionId": tx_id}, headers=auth_headers("client"))
    assert res.status_code == 400
    assert res.get_json()["data"]["status"] == "failed"


def test_payment_in_another_currency_is_rejected(client, auth_headers, world, gateway):
    order_id = _create_order(client, auth_headers, world).get_json()["data"]["id"]
    for currency in ("XOF", 978):
        res = client.post(
            "/api/payments/initialize",
            json={"orderId": order_id, "amount": 82940, "currency": currency},
            headers=auth_headers("client"),
        )
        assert res.status_code == 400
    assert gateway.initialized == []


def test_webhook_always_acknowledges(client, auth_headers, world):
    order_id = _create_order(client, auth_headers, world).get_json()["data"]["id"]
    tx_id = client.post(
        "/api/payments/initialize", json={"orderId": order_id, "amount": 82940}, headers=auth_headers("client")
    ).get_json()["data"]["transaction_id"]

    res = client.post("/api/payments/webhook", data={"cpm_trans_id": tx_id})
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "completed"
    # replayed notification
    assert client.post("/api/payments/webhook", data={"cpm_trans_id": tx_id}).status_code == 200

    res = client.post("/api/payments/webhook", data={"cpm_trans_id": "KOLIA_0_0"})
    assert res.status_code == 200
    assert res.get_json()["message"] == "ignored"


def test_catalog_browsing(client, world):
    res = client.get("/api/restaurants", query_string={"commune": "Ibanda"})
    assert [r["name"] for r in res.get_json()["data"]] == ["Kivu Raha"]
    detail = client.get(f"/api/restaurants/{world['raha_id']}").get_json()["data"]
    assert [d["id"] for d in detail["dishes"]] == [101]


def test_admin_stats(client, auth_headers, world):
    _create_order(client, auth_headers, world)
    assert client.get("/api/admin/stats", headers=auth_headers("client")).status_code == 403
    stats = client.get("/api/admin/stats", headers=auth_headers("admin")).get_json()["data"]
    assert stats["total_orders"] == 1
    assert stats["orders_by_status"] == {"pending": 1}
    assert stats["users_by_role"]["livreur"] == 2


def test_route_conflicts_are_detected(app):
    check_route_conflicts(app)

    clash = Blueprint("clash", __name__, url_prefix="/api/orders")

    @clash.get("/<int:other_id>")
    def shadow(other_id):
        return ""

    app.register_blueprint(clash)
    with pytest.raises(RouteConflictError):
        check_route_conflicts(app)
