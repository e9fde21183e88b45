from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.urls import reverse

from apps.menu.models import MenuCategory, MenuItem
from apps.payments import functions
from apps.restaurants.models import Restaurant, payment_settings_for


@pytest.fixture(autouse=True)
def _fresh_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="owner", email="owner@example.com", password="pass12345")


@pytest.fixture
def owner_client(client, user):
    client.force_login(user)
    return client


@pytest.fixture
def restaurant(user):
    return Restaurant.objects.create(
        owner=user,
        name="Mama Oliech",
        slug="mama-oliech",
        notification_phone="+254712345678",
    )


@pytest.fixture
def category(restaurant):
    return MenuCategory.objects.create(restaurant=restaurant, name="Mains", display_order=1)


@pytest.fixture
def menu_items(restaurant, category):
    return {
        "pilau": MenuItem.objects.create(restaurant=restaurant, category=category, name="Pilau", price=Decimal("450.00")),
        "chapati": MenuItem.objects.create(restaurant=restaurant, category=category, name="Chapati", price=Decimal("30.50")),
        "sukuma": MenuItem.objects.create(restaurant=restaurant, category=category, name="Sukuma wiki", price=Decimal("120.00")),
    }


@pytest.fixture
def enable_method(restaurant):
    def _enable(method, **values):
        ps = payment_settings_for(restaurant)
        ps.update_method(method, {"enabled": True, **values})
        return ps

    return _enable


class DummyFunctions:
    """Stands in for the payment functions endpoint; answers by function name."""

    def __init__(self):
        self.calls = []
        self.answers = {}

    def invoke(self, name, body):
        self.calls.append((name, body))
        answer = self.answers.get(name)
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(body)
        if answer is None:
            raise functions.FunctionError(f"{name} not stubbed")
        return dict(answer)


@pytest.fixture
def fake_functions(monkeypatch):
    df = DummyFunctions()
    monkeypatch.setattr(functions, "invoke", df.invoke)
    return df


@pytest.fixture
def add_to_cart(client):
    def _add(restaurant, item, qty=1, **extra):
        resp = client.post(
            reverse("cart:add", args=[restaurant.slug]),
            {"item_id": str(item.id), "qty": qty, **extra},
        )
        assert resp.status_code == 200
        return resp

    return _add
