import datetime as dt
import logging

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from apps.ordering.models import Order

from .gateways import GatewayError, TransientGatewayError
from .models import ONLINE_METHODS, PaymentStatus
from .services import verify_order_payment

log = logging.getLogger(__name__)


def pending_online_orders(now=None):
    now = now or timezone.now()
    after = dt.timedelta(minutes=int(getattr(settings, "PAYMENT_REVERIFY_AFTER_MINUTES", 10)))
    max_age = dt.timedelta(hours=int(getattr(settings, "PAYMENT_REVERIFY_MAX_AGE_HOURS", 48)))
    return (
        Order.objects.select_related("restaurant")
        .filter(
            payment_method__in=[m.value for m in ONLINE_METHODS],
            payment_status=PaymentStatus.PENDING,
            created_at__lte=now - after,
            created_at__gte=now - max_age,
        )
        .exclude(payment_reference="")
        .order_by("created_at")
    )


@shared_task
def reverify_pending_payments():
    """Ask the gateways about online payments that never called back.

    Only definitive answers are applied; silence leaves the order pending.
    """
    checked = settled = errors = 0
    for order in pending_online_orders():
        checked += 1
        try:
            result = verify_order_payment(order, source="reverify")
        except TransientGatewayError as e:
            errors += 1
            log.info("[payments] reverify deferred order=%s error=%s", order.code, e)
            continue
        except GatewayError as e:
            errors += 1
            log.warning("[payments] reverify failed order=%s error=%s", order.code, e)
            continue
        if result is not None and result.is_final:
            settled += 1
    log.info("[payments] reverify checked=%s settled=%s errors=%s", checked, settled, errors)
    return {"checked": checked, "settled": settled, "errors": errors}
