import logging

from django.core.exceptions import ValidationError
from django.http import Http404, JsonResponse
from django.shortcuts import render
from django.views.decorators.http import require_GET, require_POST

from apps.common.flash import flash_error, with_flash
from apps.menu.models import MenuItem
from apps.restaurants.selectors import get_public_restaurant

from .store import CartItem, CartStore

log = logging.getLogger(__name__)


def _int(value, default: int | None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _menu_item_or_404(restaurant, item_id) -> MenuItem:
    try:
        item = (
            MenuItem.objects.filter(restaurant=restaurant, pk=item_id, is_available=True, category__is_active=True)
            .only("id", "name", "price")
            .first()
        )
    except (ValidationError, ValueError):
        item = None
    if item is None:
        raise Http404("Menu item not found")
    return item


def render_sidebar(request, restaurant, cart: CartStore, status: int = 200):
    return render(
        request,
        "public/_cart_sidebar.html",
        {
            "restaurant": restaurant,
            "lines": cart.cart_items,
            "count": cart.get_cart_count(),
            "total": cart.get_cart_total(),
        },
        status=status,
    )


@require_POST
def cart_add(request, slug: str):
    restaurant = get_public_restaurant(slug)
    item = _menu_item_or_404(restaurant, request.POST.get("item_id"))
    qty = max(1, _int(request.POST.get("qty"), 1))
    cart = CartStore(request.session, restaurant.id)
    line = CartItem(
        id=str(item.id),
        name=item.name,
        price=item.price,
        quantity=qty,
        customizations=request.POST.get("customizations"),
        special_instructions=request.POST.get("special_instructions"),
    )
    if not cart.add_to_cart(line, qty):
        return flash_error("We couldn't add that item. Your cart may be full.", title="Cart")
    resp = render_sidebar(request, restaurant, cart)
    return with_flash(resp, "success", "Added", f"{item.name} added to your cart.")


@require_POST
def cart_update(request, slug: str):
    restaurant = get_public_restaurant(slug)
    qty = _int(request.POST.get("qty"), None)
    if qty is None:
        return flash_error("Choose how many you want.", title="Cart")
    cart = CartStore(request.session, restaurant.id)
    ok = cart.update_quantity(request.POST.get("item_id") or "", qty, request.POST.get("customizations"))
    if not ok:
        return flash_error("That item is no longer in your cart.", title="Cart")
    return render_sidebar(request, restaurant, cart)


@require_POST
def cart_remove(request, slug: str):
    restaurant = get_public_restaurant(slug)
    cart = CartStore(request.session, restaurant.id)
    cart.remove_from_cart(request.POST.get("item_id") or "", request.POST.get("customizations"))
    return render_sidebar(request, restaurant, cart)


@require_POST
def cart_reset(request, slug: str):
    restaurant = get_public_restaurant(slug)
    cart = CartStore(request.session, restaurant.id)
    cart.reset_cart()
    return with_flash(render_sidebar(request, restaurant, cart), "success", "Cart cleared", "Your cart is empty.")


@require_GET
def cart_sidebar(request, slug: str):
    restaurant = get_public_restaurant(slug)
    return render_sidebar(request, restaurant, CartStore(request.session, restaurant.id))


@require_GET
def cart_state(request, slug: str):
    restaurant = get_public_restaurant(slug)
    cart = CartStore(request.session, restaurant.id)
    check = cart.validate_cart_state()
    return JsonResponse(
        {
            "count": cart.get_cart_count(check.latest),
            "total": str(cart.get_cart_total(check.latest)),
            "lines": [line.to_dict() for line in check.latest],
            "in_sync": check.in_sync,
        }
    )
