BASE = "/functions/v1"


def test_wishlist_add_list_remove(client, shopper, catalog):
    h = shopper["headers"]
    r = client.post(f"{BASE}/add-to-wishlist", json={"product_id": catalog["midi"]}, headers=h)
    assert r.status_code == 201
    assert r.get_json()["item"]["productId"] == catalog["midi"]

    again = client.post(f"{BASE}/add-to-wishlist", json={"product_id": catalog["midi"]}, headers=h)
    assert again.status_code == 200
    assert again.get_json()["message"] == "Item already in wishlist"

    listed = client.get(f"{BASE}/get-wishlist", headers=h).get_json()["wishlist"]
    assert len(listed) == 1
    assert listed[0]["product"]["slug"] == "midi-dress"

    assert client.post(f"{BASE}/remove-from-wishlist", json={"product_id": catalog["midi"]}, headers=h).status_code == 200
    assert client.post(f"{BASE}/remove-from-wishlist", json={"product_id": catalog["midi"]}, headers=h).status_code == 404
    assert client.get(f"{BASE}/get-wishlist", headers=h).get_json()["wishlist"] == []


def test_wishlist_is_per_user(client, shopper, other_shopper, catalog):
    client.post(f"{BASE}/add-to-wishlist", json={"product_id": catalog["shirt"]}, headers=shopper["headers"])
    assert client.get(f"{BASE}/get-wishlist", headers=other_shopper["headers"]).get_json()["wishlist"] == []


def test_wishlist_validation(client, shopper):
    h = shopper["headers"]
    assert client.post(f"{BASE}/add-to-wishlist", json={}, headers=h).status_code == 400
    assert client.post(f"{BASE}/add-to-wishlist", json={"product_id": 8888}, headers=h).status_code == 404
    assert client.get(f"{BASE}/get-wishlist").status_code == 401
