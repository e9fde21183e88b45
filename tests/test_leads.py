import pytest
from django.urls import reverse

from apps.leads.models import CustomerLead
from apps.leads.services import link_first_order
from apps.ordering.models import Order


@pytest.mark.django_db
def test_capture_stores_lead_with_cart_context(client, restaurant, menu_items, add_to_cart):
    add_to_cart(restaurant, menu_items["pilau"], 2)
    resp = client.post(
        reverse("leads:capture", args=[restaurant.slug]),
        {
            "name": "Wanjiku",
            "phone": "0722 000 111",
            "email": "wanjiku@example.com",
            "dietary_restrictions": ["vegetarian", "vegetarian", " halal "],
            "dining_frequency": "weekly",
            "marketing_consent": "on",
        },
    )
    assert resp.status_code == 204
    lead = CustomerLead.objects.get()
    assert lead.phone == "+254722000111"
    assert lead.dietary_restrictions == ["vegetarian", "halal"]
    assert lead.dining_frequency == "weekly"
    assert lead.marketing_consent
    assert lead.order_context == {
        "items": [{"id": str(menu_items["pilau"].id), "name": "Pilau", "quantity": 2, "unit_price": 450.0}],
        "itemCount": 2,
        "subtotal": 900.0,
        "currency": "KES",
    }
    assert client.session[f"lead_{restaurant.id}"] == str(lead.id)


@pytest.mark.django_db
def test_capture_validates_input(client, restaurant):
    url = reverse("leads:capture", args=[restaurant.slug])
    assert client.post(url, {"name": "W", "phone": "0722000111"}).status_code == 422
    assert client.post(url, {"name": "Wanjiku", "phone": "12"}).status_code == 422
    assert not CustomerLead.objects.exists()


@pytest.mark.django_db
def test_capture_is_rate_limited(client, restaurant):
    url = reverse("leads:capture", args=[restaurant.slug])
    codes = [client.post(url, {"name": "Wanjiku", "phone": "0722000111"}).status_code for _ in range(6)]
    assert codes == [204] * 5 + [429]


@pytest.mark.django_db
def test_only_the_first_order_is_linked(restaurant):
    lead = CustomerLead.objects.create(restaurant=restaurant, name="Wanjiku", phone="+254722000111")
    first = Order.objects.create(restaurant=restaurant, total_amount=1, amount_due=1)
    second = Order.objects.create(restaurant=restaurant, total_amount=1, amount_due=1)
    assert link_first_order(lead.id, first)
    assert not link_first_order(lead.id, second)
    assert not link_first_order("not-a-uuid", second)
    lead.refresh_from_db()
    assert lead.first_order == first
