import io
from pathlib import Path

import requests

from storefront.extensions import db
from storefront.models import AdminNotification, AdminPushToken, Product
from storefront.services import notifications

BASE = "/functions/v1"
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def test_shoppers_are_kept_out(client, shopper):
    h = shopper["headers"]
    assert client.get(f"{BASE}/admin-get-users", headers=h).status_code == 403
    assert client.get(f"{BASE}/get-admin-orders", headers=h).status_code == 403
    r = client.post(f"{BASE}/create-admin-category", json={"name": "Shoes"}, headers=h)
    assert r.status_code == 403
    assert "lacks" in r.get_json()["error"]
    assert client.get(f"{BASE}/admin-get-users").status_code == 401


def test_list_users_with_search(client, admin, shopper, seller):
    body = client.get(f"{BASE}/admin-get-users?limit=2", headers=admin["headers"]).get_json()
    assert body["totalUsers"] == 3
    assert body["totalPages"] == 2

    found = client.get(f"{BASE}/admin-get-users?search=seller", headers=admin["headers"]).get_json()
    assert [u["email"] for u in found["users"]] == ["seller@example.com"]
    assert found["users"][0]["role"] == "SELLER"


def test_order_status_update(client, admin, shopper, catalog):
    client.post(f"{BASE}/add-to-cart", json={"productId": catalog["shirt"], "quantity": 1}, headers=shopper["headers"])
    order_id = client.post(f"{BASE}/create-order", json={"shippingAddress": {"street": "1 Main"}},
                           headers=shopper["headers"]).get_json()["order"]["id"]

    listed = client.get(f"{BASE}/get-admin-orders?status=pending", headers=admin["headers"]).get_json()
    assert [o["id"] for o in listed["data"]["orders"]] == [order_id]

    r = client.post(f"{BASE}/update-admin-order-status", json={"orderId": order_id, "status": "SHIPPED"},
                    headers=admin["headers"])
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "SHIPPED"

    bad = client.post(f"{BASE}/update-admin-order-status", json={"orderId": order_id, "status": "LOST"},
                      headers=admin["headers"])
    assert bad.status_code == 400
    missing = client.post(f"{BASE}/update-admin-order-status", json={"orderId": "nope", "status": "SHIPPED"},
                          headers=admin["headers"])
    assert missing.status_code == 404


def test_create_product_from_json(client, admin, catalog):
    r = client.post(f"{BASE}/create-admin-product", json={
        "name": "Wool Coat", "description": "Warm", "price": 120, "stockQuantity": 4,
        "categoryId": catalog["tops"], "images": ["https://cdn.example.com/coat.jpg"],
    }, headers=admin["headers"])
    assert r.status_code == 201
    product = r.get_json()["data"]
    assert product["slug"] == "wool-coat"
    assert product["images"] == ["https://cdn.example.com/coat.jpg"]
    assert product["sellerId"] == admin["id"]

    dup = client.post(f"{BASE}/create-admin-product", json={
        "name": "Wool  Coat!", "description": "", "price": 1, "stockQuantity": 1,
    }, headers=admin["headers"])
    assert dup.status_code == 409


def test_create_product_validation(client, admin):
    h = admin["headers"]
    assert client.post(f"{BASE}/create-admin-product", json={"name": "X"}, headers=h).status_code == 400
    r = client.post(f"{BASE}/create-admin-product", json={
        "name": "X", "description": "", "price": -1, "stockQuantity": 1,
    }, headers=h)
    assert r.status_code == 400
    r = client.post(f"{BASE}/create-admin-product", json={
        "name": "X", "description": "", "price": 1, "stockQuantity": 1, "categoryId": 777,
    }, headers=h)
    assert r.status_code == 400


def test_multipart_upload_update_and_delete(app, client, admin):
    upload_dir = Path(app.config["PRODUCT_UPLOAD_DIR"])
    r = client.post(f"{BASE}/create-admin-product", data={
        "name": "Canvas Tote", "description": "Roomy", "price": "18.50", "stockQuantity": "7",
        "images": [(io.BytesIO(PNG), "front.png"), (io.BytesIO(PNG), "back.png")],
    }, headers=admin["headers"], content_type="multipart/form-data")
    assert r.status_code == 201, r.get_json()
    product = r.get_json()["data"]
    assert product["price"] == 18.5
    assert len(product["images"]) == 2
    assert all(p.startswith("/uploads/products/") for p in product["images"])
    assert len(list(upload_dir.iterdir())) == 2

    served = client.get(product["images"][0])
    assert served.status_code == 200
    assert served.data == PNG

    keep = product["images"][:1]
    r = client.post(f"{BASE}/update-admin-product", json={"id": product["id"], "images": keep, "discount": 20},
                    headers=admin["headers"])
    assert r.status_code == 200
    assert r.get_json()["data"]["images"] == keep
    assert r.get_json()["data"]["discount"] == 20.0
    assert len(list(upload_dir.iterdir())) == 1

    r = client.post(f"{BASE}/delete-admin-product", json={"id": product["id"]}, headers=admin["headers"])
    assert r.status_code == 200
    assert list(upload_dir.iterdir()) == []
    with app.app_context():
        assert db.session.get(Product, product["id"]) is None


def test_upload_rejects_non_images(app, client, admin):
    r = client.post(f"{BASE}/create-admin-product", data={
        "name": "Odd", "description": "", "price": "1", "stockQuantity": "1",
        "images": [(io.BytesIO(b"#!/bin/sh"), "run.sh")],
    }, headers=admin["headers"], content_type="multipart/form-data")
    assert r.status_code == 400
    assert not Path(app.config["PRODUCT_UPLOAD_DIR"]).exists() or \
        list(Path(app.config["PRODUCT_UPLOAD_DIR"]).iterdir()) == []


def test_update_product_renames_slug(client, admin, catalog):
    r = client.post(f"{BASE}/update-admin-product", json={"id": catalog["scarf"], "name": "Cotton Scarf"},
                    headers=admin["headers"])
    assert r.get_json()["data"]["slug"] == "cotton-scarf"

    clash = client.post(f"{BASE}/update-admin-product", json={"id": catalog["scarf"], "name": "Midi Dress"},
                        headers=admin["headers"])
    assert clash.status_code == 409
    assert client.post(f"{BASE}/update-admin-product", json={"id": 4040, "price": 1},
                       headers=admin["headers"]).status_code == 404


def test_delete_product_clears_references(app, client, admin, shopper, catalog):
    h = shopper["headers"]
    client.post(f"{BASE}/add-to-cart", json={"productId": catalog["midi"], "quantity": 1}, headers=h)
    client.post(f"{BASE}/add-to-wishlist", json={"product_id": catalog["midi"]}, headers=h)

    r = client.post(f"{BASE}/delete-admin-product", json={"id": catalog["midi"]}, headers=admin["headers"])
    assert r.status_code == 200
    assert client.get(f"{BASE}/get-cart", headers=h).get_json()["items"] == []
    assert client.get(f"{BASE}/get-wishlist", headers=h).get_json()["wishlist"] == []
    summer = client.get(f"{BASE}/get-public-collections").get_json()["data"][0]
    assert [p["id"] for p in summer["products"]] == [catalog["shirt"]]


def test_ordered_product_cannot_be_deleted(client, admin, shopper, catalog):
    client.post(f"{BASE}/add-to-cart", json={"productId": catalog["shirt"], "quantity": 1}, headers=shopper["headers"])
    client.post(f"{BASE}/create-order", json={"shippingAddress": {"street": "1 Main"}}, headers=shopper["headers"])

    r = client.post(f"{BASE}/delete-admin-product", json={"id": catalog["shirt"]}, headers=admin["headers"])
    assert r.status_code == 409
    r = client.post(f"{BASE}/update-admin-product", json={"id": catalog["shirt"], "isActive": False},
                    headers=admin["headers"])
    assert r.get_json()["data"]["isActive"] is False


def test_create_category(client, admin, catalog):
    r = client.post(f"{BASE}/create-admin-category", json={"name": " Outerwear ", "description": "Coats"},
                    headers=admin["headers"])
    assert r.status_code == 201
    assert r.get_json()["data"]["slug"] == "outerwear"

    dup = client.post(f"{BASE}/create-admin-category", json={"name": "Dresses"}, headers=admin["headers"])
    assert dup.status_code == 409
    assert dup.get_json()["error"] == 'A category with the name "Dresses" already exists.'

    bad = client.post(f"{BASE}/create-admin-category", json={"name": 12}, headers=admin["headers"])
    assert bad.status_code == 400
    assert bad.get_json()["error"] == "Invalid category name provided."


def test_notification_without_devices_is_stored(app, client, seller):
    r = client.post(f"{BASE}/send-admin-notification", json={"title": "Restock", "body": "Scarves low"},
                    headers=seller["headers"])
    assert r.status_code == 200
    body = r.get_json()
    assert body["delivered"] == 0
    assert body["notification"]["type"] == "general"
    with app.app_context():
        assert AdminNotification.query.count() == 1


class _PushResponse:
    def __init__(self, status=200):
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} from push service")


def test_notification_pushes_to_registered_devices(app, client, admin, monkeypatch):
    sent = []

    def fake_post(url, json=None, timeout=None):
        sent.append((url, json))
        return _PushResponse()

    monkeypatch.setattr(notifications.requests, "post", fake_post)
    for tok in ("ExponentPushToken[a]", "ExponentPushToken[b]", "ExponentPushToken[a]"):
        r = client.post(f"{BASE}/register-admin-push-token", json={"token": tok}, headers=admin["headers"])
        assert r.status_code == 200

    r = client.post(f"{BASE}/send-admin-notification",
                    json={"type": "stock", "title": "Low stock", "data": {"productId": 3}},
                    headers=admin["headers"])
    assert r.get_json()["delivered"] == 2
    url, messages = sent[0]
    assert url == app.config["EXPO_PUSH_URL"]
    assert {m["to"] for m in messages} == {"ExponentPushToken[a]", "ExponentPushToken[b]"}
    assert messages[0]["data"] == {"productId": 3}


def test_failed_push_keeps_the_notification(app, client, admin, monkeypatch):
    monkeypatch.setattr(notifications.requests, "post", lambda *a, **kw: _PushResponse(502))
    with app.app_context():
        db.session.add(AdminPushToken(token="ExponentPushToken[x]"))
        db.session.commit()

    r = client.post(f"{BASE}/send-admin-notification", json={"title": "Ping"}, headers=admin["headers"])
    assert r.status_code == 200
    assert r.get_json()["delivered"] == 0
    with app.app_context():
        assert AdminNotification.query.filter_by(title="Ping").count() == 1


def test_notification_validation(client, admin, shopper):
    assert client.post(f"{BASE}/send-admin-notification", json={"body": "x"},
                       headers=admin["headers"]).status_code == 400
    assert client.post(f"{BASE}/send-admin-notification", json={"title": "x", "data": [1]},
                       headers=admin["headers"]).status_code == 400
    assert client.post(f"{BASE}/send-admin-notification", json={"title": "x"},
                       headers=shopper["headers"]).status_code == 403


def test_list_users_by_role(client, admin, shopper, seller):
    found = client.get(f"{BASE}/admin-get-users?role=seller", headers=admin["headers"]).get_json()
    assert [u["email"] for u in found["users"]] == ["seller@example.com"]

    r = client.get(f"{BASE}/admin-get-users?role=bogus", headers=admin["headers"])
    assert r.status_code == 400
    assert r.get_json()["error"] == "Unknown role: BOGUS"
