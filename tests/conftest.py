from decimal import Decimal
from urllib.parse import urlsplit

import pytest
import requests

from storefront import create_app
from storefront.auth.tokens import make_access_token
from storefront.extensions import db
from storefront.models import Category, Collection, Product, User


@pytest.fixture
def app(tmp_path):
    app = create_app("config.TestingConfig")
    app.config["PRODUCT_UPLOAD_DIR"] = str(tmp_path / "uploads")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(app, email, role="USER", password="secret123"):
    with app.app_context():
        u = User(name=email.split("@")[0].title(), email=email, role=role)
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        token = make_access_token(u)
        return {"id": u.id, "email": email, "token": token, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture
def shopper(app):
    return make_user(app, "shopper@example.com")


@pytest.fixture
def other_shopper(app):
    return make_user(app, "other@example.com")


@pytest.fixture
def seller(app):
    return make_user(app, "seller@example.com", role="SELLER")


@pytest.fixture
def admin(app):
    return make_user(app, "admin@example.com", role="ADMIN")


@pytest.fixture
def catalog(app):
    """Two categories, four products (one inactive) and one active collection."""
    with app.app_context():
        dresses = Category(name="Dresses", slug="dresses")
        tops = Category(name="Tops", slug="tops")
        db.session.add_all([dresses, tops])
        db.session.flush()

        midi = Product(name="Midi Dress", slug="midi-dress", price=Decimal("60.00"), discount=Decimal("10"),
                       stock_quantity=5, images=["/images/midi.jpg"], category_id=dresses.id)
        shirt = Product(name="Linen Shirt", slug="linen-shirt", price=Decimal("25.00"),
                        stock_quantity=20, images=[], category_id=tops.id)
        scarf = Product(name="Silk Scarf", slug="silk-scarf", price=Decimal("15.00"),
                        stock_quantity=2, images=[], category_id=tops.id)
        hidden = Product(name="Archived Coat", slug="archived-coat", price=Decimal("200.00"),
                         stock_quantity=1, images=[], is_active=False)
        db.session.add_all([midi, shirt, scarf, hidden])
        db.session.flush()

        bundle = Collection(name="Summer Set", price=Decimal("80.00"), status="active")
        bundle.products = [midi, shirt]
        draft = Collection(name="Draft Set", status="draft")
        db.session.add_all([bundle, draft])
        db.session.commit()

        return {
            "dresses": dresses.id,
            "tops": tops.id,
            "midi": midi.id,
            "shirt": shirt.id,
            "scarf": scarf.id,
            "hidden": hidden.id,
            "bundle": bundle.id,
            "draft": draft.id,
        }


@pytest.fixture
def ledger_category(app):
    with app.app_context():
        c = Category(name="Groceries", slug="groceries")
        db.session.add(c)
        db.session.commit()
        return c.id


class _Response:
    def __init__(self, resp):
        self.status_code = resp.status_code
        self._resp = resp
        self.text = resp.get_data(as_text=True)

    def json(self):
        data = self._resp.get_json(silent=True)
        if data is None:
            raise ValueError("no JSON body")
        return data


class FlaskSession:
    """Looks enough like requests.Session for CartApi; routes to the test client."""

    def __init__(self, client):
        self.client = client
        self.offline = False
        self.failing = set()
        self.calls = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        name = path.rsplit("/", 1)[-1]
        self.calls.append((method, name, json))
        if self.offline:
            raise requests.ConnectionError("network unreachable")
        if name in self.failing:
            return _Failure()
        return _Response(self.client.open(path, method=method, json=json, headers=headers))


class _Failure:
    status_code = 503
    text = '{"success": false, "error": "Service unavailable"}'

    def json(self):
        return {"success": False, "error": "Service unavailable"}


@pytest.fixture
def flask_session(client):
    return FlaskSession(client)
