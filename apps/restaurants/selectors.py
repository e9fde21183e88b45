from __future__ import annotations

from django.core.exceptions import ValidationError
from django.http import Http404
from django.shortcuts import get_object_or_404

from .models import Restaurant

SESSION_KEY = "dashboard_restaurant_id"


def get_public_restaurant(slug: str) -> Restaurant:
    return get_object_or_404(Restaurant, slug=slug, is_active=True)


def current_restaurant(request) -> Restaurant:
    """The restaurant the logged-in owner is managing.

    `?restaurant=<id>` switches between restaurants and is remembered in the
    session; otherwise the owner's oldest restaurant is used.
    """
    owned = Restaurant.objects.filter(owner=request.user)
    wanted = request.GET.get("restaurant") or request.session.get(SESSION_KEY)
    restaurant = None
    if wanted:
        try:
            restaurant = owned.filter(pk=wanted).first()
        except ValidationError:
            restaurant = None
    if restaurant is None:
        restaurant = owned.order_by("created_at").first()
    if restaurant is None:
        raise Http404("No restaurant for this account")
    request.session[SESSION_KEY] = str(restaurant.id)
    return restaurant
