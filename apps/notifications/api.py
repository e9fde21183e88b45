from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from django.db import IntegrityError, transaction

from .models import Notification
from .tasks import send_notification


def enqueue(
    *,
    type: str,
    to: str,
    template_code: str,
    payload: dict,
    idempotency_key: Optional[str] = None,
    restaurant=None,
) -> Notification:
    """Store a notification and dispatch it once the surrounding transaction commits.

    A repeated idempotency_key returns the notification already queued.
    """
    if idempotency_key:
        existing = Notification.objects.filter(idempotency_key=idempotency_key).first()
        if existing:
            return existing
    n = Notification(
        restaurant=restaurant,
        type=type,
        to=to,
        template_code=template_code,
        payload_json=payload or {},
        status="queued",
        idempotency_key=idempotency_key or None,
    )
    try:
        with transaction.atomic():
            n.save()
    except IntegrityError:
        # race on idempotency_key unique
        existing = Notification.objects.filter(idempotency_key=idempotency_key).first() if idempotency_key else None
        if existing:
            return existing
        raise

    transaction.on_commit(lambda: send_notification.delay(str(n.id)), robust=True)
    return n


@dataclass
class Enqueue:
    type: str
    to: str
    template_code: str
    payload: dict
    idempotency_key: Optional[str] = None
    restaurant: object = None


def enqueue_many(items: Iterable[Optional[Enqueue]]) -> list[Notification]:
    return [
        enqueue(
            type=it.type,
            to=it.to,
            template_code=it.template_code,
            payload=it.payload,
            idempotency_key=it.idempotency_key,
            restaurant=it.restaurant,
        )
        for it in items
        if it
    ]
