from storefront.auth.tokens import bearer_token, load_access_token


def test_register_returns_token_and_lowercases_email(client):
    r = client.post("/api/v1/auth/register", json={"email": "New.User@Example.com", "password": "pw12345"})
    assert r.status_code == 201
    body = r.get_json()
    assert body["success"] is True
    assert body["user"]["email"] == "new.user@example.com"
    assert body["user"]["role"] == "USER"
    assert body["user"]["name"].startswith("User_")
    assert body["token"]


def test_register_requires_email_and_password(client):
    r = client.post("/api/v1/auth/register", json={"email": "a@b.com"})
    assert r.status_code == 400
    assert r.get_json()["success"] is False


def test_register_duplicate_email_conflicts(client, shopper):
    r = client.post("/api/v1/auth/register", json={"email": "SHOPPER@example.com", "password": "x"})
    assert r.status_code == 409


def test_login_and_me(client, shopper):
    r = client.post("/api/v1/auth/login", json={"email": "shopper@example.com", "password": "secret123"})
    assert r.status_code == 200
    token = r.get_json()["token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.get_json()["user"]["id"] == shopper["id"]


def test_login_wrong_password_is_401(client, shopper):
    r = client.post("/api/v1/auth/login", json={"email": "shopper@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.get_json()["error"] == "Invalid credentials"


def test_me_without_token_is_json_401(client):
    r = client.get("/api/v1/auth/me")
    assert r.status_code == 401
    assert r.get_json()["success"] is False


def test_tampered_token_is_rejected(client, shopper):
    r = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {shopper['token']}x"})
    assert r.status_code == 401


def test_expired_token_yields_no_user(app, shopper):
    with app.app_context():
        assert load_access_token(shopper["token"]) == shopper["id"]
        assert load_access_token(shopper["token"], max_age_seconds=-1) is None


def test_bearer_token_parsing():
    assert bearer_token("Bearer abc") == "abc"
    assert bearer_token("bearer   abc ") == "abc"
    assert bearer_token("Basic abc") is None
    assert bearer_token("") is None
    assert bearer_token(None) is None
