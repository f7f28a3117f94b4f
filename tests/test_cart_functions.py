from storefront.extensions import db
from storefront.models import CartItem
from storefront.services import cart_service

BASE = "/functions/v1"


def _add(client, user, **body):
    return client.post(f"{BASE}/add-to-cart", json=body, headers=user["headers"])


def _quantities(client, user):
    items = client.get(f"{BASE}/get-cart", headers=user["headers"]).get_json()["items"]
    return {i["product"]["id"]: i["quantity"] for i in items}


def test_get_cart_without_cart_is_empty(client, shopper):
    r = client.get(f"{BASE}/get-cart", headers=shopper["headers"])
    assert r.status_code == 200
    assert r.get_json() == {"items": []}


def test_add_creates_cart_and_increments(client, shopper, catalog):
    r = _add(client, shopper, productId=catalog["midi"], quantity=2)
    assert r.status_code == 200
    body = r.get_json()
    assert body["cart"]["id"]
    line = body["items"][0]
    assert line["quantity"] == 2
    assert set(line["product"]) >= {"id", "name", "price", "images", "slug", "stockQuantity", "discount"}

    _add(client, shopper, productId=catalog["midi"], quantity=3)
    assert _quantities(client, shopper) == {catalog["midi"]: 5}


def test_zero_quantity_removes_and_is_idempotent(client, shopper, catalog):
    _add(client, shopper, productId=catalog["midi"], quantity=2)
    _add(client, shopper, productId=catalog["shirt"], quantity=1)

    first = _add(client, shopper, productId=catalog["midi"], quantity=0)
    second = _add(client, shopper, productId=catalog["midi"], quantity=0)
    assert first.status_code == second.status_code == 200
    assert first.get_json()["items"] == second.get_json()["items"]
    assert _quantities(client, shopper) == {catalog["shirt"]: 1}


def test_negative_quantity_is_rejected(client, shopper, catalog):
    r = _add(client, shopper, productId=catalog["midi"], quantity=-1)
    assert r.status_code == 400


def test_unknown_product_is_404(client, shopper):
    assert _add(client, shopper, productId=424242, quantity=1).status_code == 404


def test_delta_below_one_removes_line(app, client, shopper, catalog):
    _add(client, shopper, productId=catalog["midi"], quantity=2)
    r = _add(client, shopper, productId=catalog["midi"], delta=-1)
    assert r.get_json()["items"][0]["quantity"] == 1

    r = _add(client, shopper, productId=catalog["midi"], delta=-5)
    assert r.status_code == 200
    assert r.get_json()["items"] == []
    with app.app_context():
        assert db.session.query(CartItem).filter(CartItem.quantity <= 0).count() == 0


def test_positive_delta_inserts_missing_line(client, shopper, catalog):
    _add(client, shopper, productId=catalog["shirt"], delta=2)
    assert _quantities(client, shopper) == {catalog["shirt"]: 2}


def test_merge_keeps_larger_quantity_and_is_repeatable(client, shopper, catalog):
    _add(client, shopper, productId=catalog["midi"], quantity=3)
    guest = {"items": [
        {"product": {"id": catalog["midi"]}, "quantity": 1},
        {"productId": catalog["shirt"], "quantity": 2},
        {"product": {"id": 999999}, "quantity": 1},
        {"productId": catalog["scarf"], "quantity": 0},
    ]}
    r1 = client.post(f"{BASE}/merge-cart", json=guest, headers=shopper["headers"])
    r2 = client.post(f"{BASE}/merge-cart", json=guest, headers=shopper["headers"])
    assert r1.status_code == r2.status_code == 200
    assert _quantities(client, shopper) == {catalog["midi"]: 3, catalog["shirt"]: 2}


def test_merge_requires_item_list(client, shopper):
    r = client.post(f"{BASE}/merge-cart", json={"items": "nope"}, headers=shopper["headers"])
    assert r.status_code == 400


def test_clear_cart(client, shopper, catalog):
    _add(client, shopper, productId=catalog["midi"], quantity=1)
    r = client.post(f"{BASE}/clear-cart", headers=shopper["headers"])
    assert r.get_json()["success"] is True
    assert _quantities(client, shopper) == {}


def test_add_collection_tags_lines(client, shopper, catalog):
    _add(client, shopper, productId=catalog["shirt"], quantity=1)
    r = client.post(f"{BASE}/add-collection-to-cart",
                    json={"collectionId": catalog["bundle"], "quantity": 2}, headers=shopper["headers"])
    assert r.status_code == 200
    lines = {i["product"]["id"]: i for i in r.get_json()["items"]}
    assert lines[catalog["midi"]]["quantity"] == 2
    assert lines[catalog["shirt"]]["quantity"] == 3
    assert lines[catalog["midi"]]["collectionId"] == catalog["bundle"]


def test_add_collection_edge_cases(client, shopper, catalog):
    r = client.post(f"{BASE}/add-collection-to-cart",
                    json={"collectionId": catalog["draft"], "quantity": 1}, headers=shopper["headers"])
    assert r.status_code == 200
    assert r.get_json()["items"] == []

    r = client.post(f"{BASE}/add-collection-to-cart",
                    json={"collectionId": 31337, "quantity": 1}, headers=shopper["headers"])
    assert r.status_code == 404


def test_cart_functions_need_a_token(client, catalog):
    r = client.post(f"{BASE}/add-to-cart", json={"productId": catalog["midi"], "quantity": 1})
    assert r.status_code == 401
    assert r.headers["Access-Control-Allow-Origin"] == "*"


def test_preflight_answers_ok_with_cors_headers(client):
    r = client.options(f"{BASE}/add-to-cart")
    assert r.status_code == 200
    assert r.get_data(as_text=True) == "ok"
    assert "authorization" in r.headers["Access-Control-Allow-Headers"]


def _lookup_misses(monkeypatch):
    # the row exists but this request read before the other one committed it
    monkeypatch.setattr(cart_service, "_locked_line", lambda cart_id, product_id: None)


def test_insert_racing_an_existing_line_adds_to_it(client, shopper, catalog, monkeypatch):
    _add(client, shopper, productId=catalog["midi"], quantity=2)
    _lookup_misses(monkeypatch)

    r = _add(client, shopper, productId=catalog["midi"], quantity=3)
    assert r.status_code == 200
    assert _quantities(client, shopper) == {catalog["midi"]: 5}

    r = _add(client, shopper, productId=catalog["midi"], delta=1)
    assert r.status_code == 200
    assert _quantities(client, shopper) == {catalog["midi"]: 6}


def test_merge_racing_an_existing_line_keeps_larger(client, shopper, catalog, monkeypatch):
    _add(client, shopper, productId=catalog["shirt"], quantity=3)
    _lookup_misses(monkeypatch)

    r = client.post(f"{BASE}/merge-cart", json={"items": [{"productId": catalog["shirt"], "quantity": 1}]},
                    headers=shopper["headers"])
    assert r.status_code == 200
    assert _quantities(client, shopper) == {catalog["shirt"]: 3}

    client.post(f"{BASE}/merge-cart", json={"items": [{"productId": catalog["shirt"], "quantity": 7}]},
                headers=shopper["headers"])
    assert _quantities(client, shopper) == {catalog["shirt"]: 7}


def test_collection_racing_an_existing_line_is_tagged(client, shopper, catalog, monkeypatch):
    _add(client, shopper, productId=catalog["shirt"], quantity=1)
    _lookup_misses(monkeypatch)

    r = client.post(f"{BASE}/add-collection-to-cart",
                    json={"collectionId": catalog["bundle"], "quantity": 1}, headers=shopper["headers"])
    assert r.status_code == 200
    lines = {i["product"]["id"]: i for i in r.get_json()["items"]}
    assert lines[catalog["shirt"]]["quantity"] == 2
    assert lines[catalog["shirt"]]["collectionId"] == catalog["bundle"]
