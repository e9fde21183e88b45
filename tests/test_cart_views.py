import json
import uuid

import pytest
from django.urls import reverse


@pytest.mark.django_db
def test_add_uses_menu_price_not_posted_price(client, restaurant, menu_items):
    resp = client.post(
        reverse("cart:add", args=[restaurant.slug]),
        {"item_id": str(menu_items["pilau"].id), "qty": 2, "price": "1.00", "name": "Free food"},
    )
    assert resp.status_code == 200
    assert json.loads(resp["HX-Trigger"])["flash"]["title"] == "Added"
    stored = client.session[f"cart_{restaurant.id}"]
    assert stored == [{"id": str(menu_items["pilau"].id), "name": "Pilau", "price": 450.0, "quantity": 2}]
    assert b"KES 900.00" in resp.content


@pytest.mark.django_db
def test_add_unknown_or_unavailable_item_is_404(client, restaurant, menu_items):
    url = reverse("cart:add", args=[restaurant.slug])
    assert client.post(url, {"item_id": str(uuid.uuid4())}).status_code == 404
    assert client.post(url, {"item_id": "not-a-uuid"}).status_code == 404
    menu_items["sukuma"].is_available = False
    menu_items["sukuma"].save()
    assert client.post(url, {"item_id": str(menu_items["sukuma"].id)}).status_code == 404


@pytest.mark.django_db
def test_update_and_remove_lines(client, restaurant, menu_items, add_to_cart):
    add_to_cart(restaurant, menu_items["pilau"], 1)
    add_to_cart(restaurant, menu_items["chapati"], 2)

    resp = client.post(reverse("cart:update", args=[restaurant.slug]), {"item_id": str(menu_items["chapati"].id), "qty": 4})
    assert resp.status_code == 200
    resp = client.post(reverse("cart:remove", args=[restaurant.slug]), {"item_id": str(menu_items["pilau"].id)})
    assert resp.status_code == 200

    state = client.get(reverse("cart:state", args=[restaurant.slug])).json()
    assert state["count"] == 4
    assert state["total"] == "122.00"
    assert state["in_sync"] is True
    assert [line["name"] for line in state["lines"]] == ["Chapati"]


@pytest.mark.django_db
def test_update_missing_line_flashes_error(client, restaurant, menu_items):
    resp = client.post(reverse("cart:update", args=[restaurant.slug]), {"item_id": str(menu_items["pilau"].id), "qty": 2})
    assert resp.status_code == 422
    assert "HX-Trigger" in resp


@pytest.mark.django_db
def test_update_without_a_quantity_keeps_the_line(client, restaurant, menu_items, add_to_cart):
    add_to_cart(restaurant, menu_items["pilau"], 2)
    url = reverse("cart:update", args=[restaurant.slug])
    for payload in ({"item_id": str(menu_items["pilau"].id)}, {"item_id": str(menu_items["pilau"].id), "qty": "lots"}):
        resp = client.post(url, payload)
        assert resp.status_code == 422
        assert json.loads(resp["HX-Trigger"])["flash"]["type"] == "error"
    assert client.get(reverse("cart:state", args=[restaurant.slug])).json()["count"] == 2


@pytest.mark.django_db
def test_reset_clears_session_entry(client, restaurant, menu_items, add_to_cart):
    add_to_cart(restaurant, menu_items["pilau"])
    resp = client.post(reverse("cart:reset", args=[restaurant.slug]))
    assert resp.status_code == 200
    assert f"cart_{restaurant.id}" not in client.session
    sidebar = client.get(reverse("cart:sidebar", args=[restaurant.slug]))
    assert b"Your cart is empty" in sidebar.content


@pytest.mark.django_db
def test_inactive_restaurant_has_no_cart(client, restaurant, menu_items):
    restaurant.is_active = False
    restaurant.save()
    assert client.get(reverse("cart:sidebar", args=[restaurant.slug])).status_code == 404


@pytest.mark.django_db
def test_menu_page_shows_cart_and_remembers_table(client, restaurant, menu_items, add_to_cart):
    add_to_cart(restaurant, menu_items["pilau"])
    resp = client.get(reverse("ordering:menu_home", args=[restaurant.slug]) + "?table=7")
    assert resp.status_code == 200
    assert resp.context["count"] == 1
    assert resp.context["table_number"] == "7"
    assert client.session[f"table_{restaurant.id}"] == "7"
    assert b"Pilau" in resp.content
