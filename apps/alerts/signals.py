from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from apps.ordering.models import Order, WaiterCall

from .services import push_event

# Alerts fire after commit; a cache or settings-row failure is logged by
# Django and never reaches the checkout that created the row.


@receiver(post_save, sender=Order)
def order_created(sender, instance: Order, created, **kwargs):
    if not created:
        return
    where = f"table {instance.table_number}" if instance.table_number else instance.get_order_type_display()
    transaction.on_commit(
        lambda: push_event(
            instance.restaurant,
            "order",
            f"New order {instance.code}",
            f"{instance.currency} {instance.total_amount} · {where}",
            ref=str(instance.id),
        ),
        robust=True,
    )


@receiver(post_save, sender=WaiterCall)
def waiter_call_created(sender, instance: WaiterCall, created, **kwargs):
    if not created:
        return
    transaction.on_commit(
        lambda: push_event(
            instance.restaurant,
            "waiter_call",
            f"Table {instance.table_number} needs a waiter",
            instance.notes,
            ref=str(instance.id),
        ),
        robust=True,
    )
