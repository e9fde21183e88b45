import logging

from django.views.decorators.http import require_POST

from apps.cart.store import CartStore
from apps.common.flash import flash_error, flash_success
from apps.common.phone import to_e164
from apps.common.rate_limit import rate_limit, session_ident
from apps.restaurants.selectors import get_public_restaurant

from .models import CustomerLead
from .services import build_order_context, lead_session_key

log = logging.getLogger(__name__)

FREQUENCIES = {key for key, _ in CustomerLead.FREQUENCY_CHOICES}


def _clean_list(values, limit: int = 10) -> list[str]:
    out = []
    for v in values:
        v = (v or "").strip()[:60]
        if v and v not in out:
            out.append(v)
    return out[:limit]


@require_POST
def lead_capture(request, slug: str):
    """Receive the "stay in touch" form from the public menu via HTMX.

    Success: 204 with an HX-Trigger toast. Errors: 422/429 with the same.
    """
    restaurant = get_public_restaurant(slug)
    rl = rate_limit("lead", session_ident(request), limit=5, window_seconds=3600)
    if not rl.allowed:
        return flash_error("Too many attempts. Please try again later.", status=429, retry_after=rl.retry_after)

    name = (request.POST.get("name") or "").strip()
    email = (request.POST.get("email") or "").strip()
    if len(name) < 2:
        return flash_error("Please enter your name.")
    try:
        phone = to_e164((request.POST.get("phone") or "").strip())
    except ValueError:
        return flash_error("Enter a valid phone number (e.g. 0712 345 678).", title="Invalid phone")
    if email and "@" not in email:
        return flash_error("Enter a valid e-mail address.")
    frequency = (request.POST.get("dining_frequency") or "").strip()
    if frequency not in FREQUENCIES:
        frequency = ""

    cart = CartStore(request.session, restaurant.id)
    lead = CustomerLead.objects.create(
        restaurant=restaurant,
        name=name[:160],
        phone=phone,
        email=email,
        dietary_restrictions=_clean_list(request.POST.getlist("dietary_restrictions")),
        favorite_cuisines=_clean_list(request.POST.getlist("favorite_cuisines")),
        dining_frequency=frequency,
        marketing_consent=request.POST.get("marketing_consent") in ("1", "on", "true", "yes"),
        lead_source=(request.POST.get("lead_source") or "menu").strip()[:40],
        notes=(request.POST.get("notes") or "").strip()[:1000],
        order_context=build_order_context(cart),
    )
    request.session[lead_session_key(restaurant.id)] = str(lead.id)
    log.info("[leads] captured lead=%s restaurant=%s", lead.id, restaurant.id)
    return flash_success("Thanks! We'll keep you posted.", title="You're in")
